"""Vision completion service using Claude Vision."""

import logging

import anthropic

from src.config import get_settings
from src.services.exceptions import ExtractionServiceError
from src.services.image_encoder import EncodedImage

logger = logging.getLogger(__name__)


class VisionService:
    """Sends a prompt plus an inlined image to Claude and returns the reply text."""

    def __init__(self, client: anthropic.AsyncAnthropic | None = None) -> None:
        """Initialize the vision service."""
        settings = get_settings()
        self.api_key = settings.anthropic_api_key
        self.model = settings.vision_model
        self.default_temperature = settings.vision_temperature
        self.default_max_tokens = settings.vision_max_tokens
        self._client = client
        self._configured = client is not None or bool(self.api_key)
        self._timeout = settings.vision_timeout_seconds

    @property
    def is_configured(self) -> bool:
        """Check if the Anthropic API is configured."""
        return self._configured

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            # Single attempt per extraction; retries are user re-triggers
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key, max_retries=0, timeout=self._timeout
            )
        return self._client

    async def complete(
        self,
        prompt: str,
        image: EncodedImage,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Run one multimodal completion.

        Args:
            prompt: Instruction text sent after the image
            image: Base64 image payload and MIME type
            temperature: Sampling temperature (defaults to settings)
            max_tokens: Output token limit (defaults to settings)

        Returns:
            The text of the model's reply

        Raises:
            ExtractionServiceError: if the service is unconfigured, the call
                fails, or the reply has no text.
        """
        if not self.is_configured:
            raise ExtractionServiceError("Anthropic API not configured")

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens or self.default_max_tokens,
                temperature=self.default_temperature if temperature is None else temperature,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": image.media_type,
                                    "data": image.data,
                                },
                            },
                            {
                                "type": "text",
                                "text": prompt,
                            },
                        ],
                    }
                ],
            )
        except anthropic.APIError as e:
            logger.error(f"Claude Vision request failed: {e}")
            raise ExtractionServiceError(f"Recipe analysis service failed: {e}") from e

        texts = [block.text for block in message.content if getattr(block, "type", None) == "text"]
        if not texts:
            logger.error(
                f"Claude Vision returned no text content (stop_reason={message.stop_reason})"
            )
            raise ExtractionServiceError("Recipe analysis service returned an empty response")

        return "".join(texts)
