"""LLM service for Ollama integration."""

import json
import logging
from typing import Any

import httpx

from src.config import get_settings
from src.services.recipe_extractor import strip_code_fences

logger = logging.getLogger(__name__)


class LLMService:
    """Service for text completions from an Ollama model."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.base_url = self.settings.ollama_base_url
        self.model = self.settings.llm_model
        self.timeout = 120.0  # 2 minutes for LLM responses

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.9,
        max_tokens: int = 2048,
    ) -> str:
        """Generate a response from the LLM."""
        return await self.chat(
            [{"role": "user", "content": prompt}],
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    async def chat(
        self,
        history: list[dict],
        system_prompt: str | None = None,
        temperature: float = 0.9,
        max_tokens: int = 2048,
    ) -> str:
        """Continue a conversation given as {role, content} messages, oldest first."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(history)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/api/chat",
                json={
                    "model": self.model,
                    "messages": messages,
                    "stream": False,
                    "options": {
                        "temperature": temperature,
                        "num_predict": max_tokens,
                    },
                },
            )
            response.raise_for_status()
            data = response.json()
            return data["message"]["content"]

    async def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float = 0.3,
    ) -> Any:
        """Generate a structured JSON response from the LLM."""
        result = await self.generate(
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=temperature,
        )
        cleaned = strip_code_fences(result)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse LLM response as JSON: {e}")
            logger.warning(f"Raw response: {result}")
            raise

    async def health_check(self) -> bool:
        """Check if Ollama is available and the model is loaded."""
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                response.raise_for_status()
                data = response.json()
                models = [m["name"] for m in data.get("models", [])]
                return self.model in models or any(self.model in m for m in models)
        except httpx.HTTPError:
            return False


def get_llm_service() -> LLMService:
    """Get an LLM service instance."""
    return LLMService()
