"""Gemini backend — Google generateContent API via httpx."""

from __future__ import annotations

import logging

import httpx

from notework.backends.base import SYSTEM_PROMPT, build_user_message, error_detail
from notework.config import settings
from notework.errors import ProviderError

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiBackend:
    """Model backend using Google's Gemini API."""

    name: str = "gemini"
    label: str = "Gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.google_api_key
        self.model = model
        self._transport = transport

    async def complete(self, content: str, question: str) -> str:
        # Gemini has no system role here, so the guidelines lead the user turn
        prompt = f"{SYSTEM_PROMPT}\n\n{build_user_message(content, question)}"

        try:
            async with httpx.AsyncClient(
                timeout=settings.request_timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    GEMINI_API_URL.format(model=self.model),
                    headers={
                        "Content-Type": "application/json",
                        "x-goog-api-key": self.api_key,
                    },
                    json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
                )
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"Network error: {exc}") from exc

        if response.is_error:
            raise ProviderError(self.name, error_detail(response))

        try:
            return self._extract_text(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Malformed Gemini response: %s", response.text[:500])
            raise ProviderError(self.name, f"Malformed response: {exc}") from exc

    def _extract_text(self, data: dict) -> str:
        """Extract the first non-empty text part of the first candidate."""
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderError(self.name, message or "Unknown error")
        for candidate in data.get("candidates") or []:
            for part in candidate.get("content", {}).get("parts", []):
                if part.get("text"):
                    return part["text"]
            break
        logger.warning("Gemini returned no text: %s", str(data)[:500])
        raise ProviderError(self.name, "Empty response")
