"""Claude backend — Anthropic API via httpx."""

from __future__ import annotations

import logging

import httpx

from notework.backends.base import SYSTEM_PROMPT, build_user_message, error_detail
from notework.config import settings
from notework.errors import ProviderError

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL = "claude-sonnet-4-20250514"


class ClaudeBackend:
    """Model backend using Anthropic's Claude API."""

    name: str = "claude"
    label: str = "Claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model
        self._transport = transport

    async def complete(self, content: str, question: str) -> str:
        """Send the request to Claude and return the first text block."""
        try:
            async with httpx.AsyncClient(
                timeout=settings.request_timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    ANTHROPIC_API_URL,
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": "2023-06-01",
                        "content-type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "max_tokens": 4096,
                        "system": SYSTEM_PROMPT,
                        "messages": [
                            {"role": "user", "content": build_user_message(content, question)}
                        ],
                    },
                )
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"Network error: {exc}") from exc

        if response.is_error:
            raise ProviderError(self.name, error_detail(response))

        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> str:
        """Return the first non-empty text block of a messages response."""
        try:
            for block in response.json().get("content", []):
                if block.get("type") == "text" and block.get("text"):
                    logger.debug("Claude returned %d chars", len(block["text"]))
                    return block["text"]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Malformed Claude response: %s", response.text[:500])
            raise ProviderError(self.name, f"Malformed response: {exc}") from exc
        raise ProviderError(self.name, "Empty response")
