"""Best-effort cooking helpers: descriptions, improvement ideas and tips.

Unlike photo extraction these are optional garnish. A failed LLM call is
logged and yields an empty result instead of an error.
"""

import json
import logging

import httpx

from src.schemas.assistant import ChatMessage, CookingTip, RecipeImprovement
from src.services.llm import LLMService
from src.services.llm_prompts import (
    COOKING_ASSISTANT_SYSTEM_PROMPT,
    get_cooking_tips_prompt,
    get_description_prompt,
    get_improvements_prompt,
)

logger = logging.getLogger(__name__)


class CookingAssistant:
    """Generates helper text for recipes with the text LLM."""

    def __init__(self, llm: LLMService) -> None:
        self.llm = llm

    async def generate_description(self, ingredients: list[str], instructions: str) -> str:
        """Write a 2-3 sentence description, or "" if the LLM is unavailable."""
        try:
            text = await self.llm.generate(
                prompt=get_description_prompt(ingredients, instructions),
                system_prompt=COOKING_ASSISTANT_SYSTEM_PROMPT,
            )
        except (httpx.HTTPError, KeyError) as e:
            logger.error(f"Error generating recipe description: {e}")
            return ""
        return text.strip()

    async def chat(self, messages: list[ChatMessage]) -> str:
        """Reply to the latest message of a conversation, or "" if the LLM is unavailable."""
        try:
            text = await self.llm.chat(
                [message.model_dump() for message in messages],
                system_prompt=COOKING_ASSISTANT_SYSTEM_PROMPT,
            )
        except (httpx.HTTPError, KeyError) as e:
            logger.error(f"Error in cooking assistant chat: {e}")
            return ""
        return text.strip()

    async def suggest_improvements(self, recipe_text: str) -> list[RecipeImprovement]:
        """Suggest 2-3 improvements."""
        items = await self._generate_list(get_improvements_prompt(recipe_text), "improvements")
        return [
            RecipeImprovement(
                suggestion=str(item["suggestion"]), reason=str(item.get("reason") or "")
            )
            for item in items
            if isinstance(item, dict) and item.get("suggestion")
        ]

    async def cooking_tips(self, ingredients: list[str]) -> list[CookingTip]:
        """Give 2-3 tips for working with the given ingredients."""
        items = await self._generate_list(get_cooking_tips_prompt(ingredients), "cooking tips")
        return [
            CookingTip(tip=str(item["tip"]), explanation=str(item.get("explanation") or ""))
            for item in items
            if isinstance(item, dict) and item.get("tip")
        ]

    async def _generate_list(self, prompt: str, what: str) -> list:
        try:
            result = await self.llm.generate_json(
                prompt=prompt,
                system_prompt=COOKING_ASSISTANT_SYSTEM_PROMPT,
            )
        except (httpx.HTTPError, KeyError, json.JSONDecodeError) as e:
            logger.error(f"Error generating {what}: {e}")
            return []

        if not isinstance(result, list):
            logger.warning(f"Expected a JSON array of {what}, got {type(result).__name__}")
            return []
        return result
