"""Gemini image client for strip rendering and text removal."""

import asyncio
import logging
from typing import Optional

from google import genai
from google.genai import types

from config.exceptions import (
    AIResponseParseError,
    AITimeoutError,
    AITransportError,
    InvalidConfigError,
)
from config.settings import IMAGE_MODELS, Settings
from tools.image_utils import decode_data_url, to_data_url

logger = logging.getLogger(__name__)


class GeminiImageClient:
    """Thin async wrapper over google-genai image generation.

    Every call returns exactly one image as a data URL, or raises.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self._client: Optional[genai.Client] = None
        self.total_calls = 0

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.settings.gemini_api_key:
                raise InvalidConfigError("GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=self.settings.gemini_api_key)
        return self._client

    def _config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=types.ImageConfig(
                aspect_ratio=self.settings.image_aspect_ratio,
                image_size=self.settings.image_size,
            ),
        )

    async def generate_image(
        self,
        prompt: str,
        references: Optional[list[tuple[str, str]]] = None,
        model: Optional[str] = None,
    ) -> str:
        """Render one image from a text prompt plus labelled reference images.

        Args:
            prompt: Composite text prompt.
            references: (label, data URL) pairs, e.g. one per character.
            model: Image model override.

        Returns:
            The rendered image as a data URL.
        """
        parts = [types.Part.from_text(text=prompt)]
        for label, image in references or []:
            try:
                mime_type, data = decode_data_url(image)
            except ValueError:
                logger.debug("Skipping non-inline reference image for %s", label)
                continue
            parts.append(types.Part.from_text(text=f"Visual reference for {label}:"))
            parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        return await self._generate(parts, model)

    async def edit_image(self, image: str, instruction: str, model: Optional[str] = None) -> str:
        """Apply an edit instruction to an existing image and return the result."""
        try:
            mime_type, data = decode_data_url(image)
        except ValueError as e:
            raise AIResponseParseError(f"Source image is not inline data: {e}") from e
        parts = [
            types.Part.from_bytes(data=data, mime_type=mime_type),
            types.Part.from_text(text=instruction),
        ]
        return await self._generate(parts, model)

    async def _generate(self, parts: list, model: Optional[str]) -> str:
        model = model or self.settings.image_model
        if model not in IMAGE_MODELS:
            raise InvalidConfigError(f"Unknown image model: {model}")
        self.total_calls += 1
        logger.debug("Gemini image call: model=%s, parts=%d", model, len(parts))

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=model,
                    contents=parts,
                    config=self._config(),
                ),
                timeout=self.settings.ai_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise AITimeoutError(timeout=self.settings.ai_timeout_seconds) from e
        except InvalidConfigError:
            raise
        except Exception as e:
            raise AITransportError(f"Gemini request failed: {e}") from e

        return self._extract_image(response)

    @staticmethod
    def _extract_image(response) -> str:
        candidates = getattr(response, "candidates", None) or []
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data:
                    logger.debug("Gemini image received: %s, %d bytes", inline.mime_type, len(inline.data))
                    return to_data_url(inline.data, inline.mime_type or "image/png")
        text = getattr(response, "text", None) or ""
        raise AIResponseParseError("No image data in response", raw_response=text)

    def get_usage_summary(self) -> dict:
        return {"total_calls": self.total_calls}
