"""Gemini vision client used as the OCR engine for document photos."""

from __future__ import annotations

import asyncio
import logging
from textwrap import dedent

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPICallError, NotFound

from docverify.core.config import GeminiSettings

_VISION_FALLBACKS: tuple[str, ...] = (
    "gemini-1.5-flash",
    "gemini-1.5-pro",
)

_TRANSCRIBE_PROMPT = dedent(
    """
    Transcribe every line of printed text visible on this identity document
    exactly as it appears, one line per output line, preserving the original
    order. Do not translate, summarise, correct or add anything.
    """
).strip()

logger = logging.getLogger(__name__)


class GeminiModelError(RuntimeError):
    """Raised when Gemini cannot produce a transcription."""


class GeminiClient:
    """Turn document photos into raw text."""

    def __init__(self, settings: GeminiSettings) -> None:
        self._settings = settings
        if settings.api_key:
            # Configure the global client once per process.
            genai.configure(api_key=settings.api_key)

    async def transcribe_document(self, image_bytes: bytes, *, mime_type: str) -> str:
        """Return the raw OCR text of an image."""
        if not self._settings.api_key:
            raise GeminiModelError("GEMINI_API_KEY is not configured; OCR is unavailable.")
        contents = [_TRANSCRIBE_PROMPT, {"mime_type": mime_type, "data": image_bytes}]
        return await asyncio.to_thread(self._transcribe, contents)

    def _transcribe(self, contents: list) -> str:
        models = self._vision_models()
        for attempt, model_name in enumerate(models, start=1):
            try:
                response = genai.GenerativeModel(model_name).generate_content(
                    contents, safety_settings=[]
                )
            except NotFound:  # pragma: no cover - network call
                logger.warning(
                    "Gemini vision model '%s' not found (attempt %d/%d).",
                    model_name,
                    attempt,
                    len(models),
                )
                continue
            except GoogleAPICallError as exc:  # pragma: no cover - network call
                raise GeminiModelError(f"Gemini OCR request failed: {exc.message}") from exc

            try:
                return response.text or ""
            except ValueError as exc:
                # Raised by the SDK when the candidate was blocked or empty.
                raise GeminiModelError(f"Gemini returned no text: {exc}") from exc

        raise GeminiModelError(
            f"No Gemini vision model available (tried {', '.join(models)}). "
            "Update GEMINI_VISION_MODEL_NAME to a supported value."
        )

    def _vision_models(self) -> list[str]:
        names = [self._settings.vision_model_name, *_VISION_FALLBACKS]
        return list(dict.fromkeys(name.strip() for name in names if name and name.strip()))


__all__ = ["GeminiClient", "GeminiModelError"]
