"""OpenAI backend — chat completions API via httpx."""

from __future__ import annotations

import logging

import httpx

from notework.backends.base import SYSTEM_PROMPT, build_user_message, error_detail
from notework.config import settings
from notework.errors import ProviderError

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIBackend:
    """Model backend using OpenAI's chat completions API."""

    name: str = "openai"
    label: str = "GPT"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model
        self._transport = transport

    async def complete(self, content: str, question: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=settings.request_timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    OPENAI_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "messages": [
                            {"role": "system", "content": SYSTEM_PROMPT},
                            {"role": "user", "content": build_user_message(content, question)},
                        ],
                        "max_tokens": 4096,
                    },
                )
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"Network error: {exc}") from exc

        if response.is_error:
            raise ProviderError(self.name, error_detail(response))

        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> str:
        """Return the message content of the first choice."""
        try:
            choices = response.json().get("choices") or []
            text = choices[0]["message"].get("content") if choices else None
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Malformed OpenAI response: %s", response.text[:500])
            raise ProviderError(self.name, f"Malformed response: {exc}") from exc
        if not text:
            raise ProviderError(self.name, "Empty response")
        logger.debug("OpenAI returned %d chars", len(text))
        return text
