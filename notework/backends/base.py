"""Base protocol for all model backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

SYSTEM_PROMPT = """\
You are an expert in the subject of the provided document. Answer the request \
professionally and in detail, based on the document.

Guidelines:
- Explain technical terms in plain language.
- Provide relevant background knowledge.
- Include practical examples or applications where useful.
- Structure the answer logically.\
"""


@runtime_checkable
class ModelBackend(Protocol):
    """Interface that every AI provider backend must implement."""

    name: str  # model id used across the engine: claude, openai, gemini
    label: str  # short label shown in question notes
    api_key: str

    async def complete(self, content: str, question: str) -> str:
        """Answer ``question`` about ``content`` and return the response text."""
        ...


def build_user_message(content: str, question: str) -> str:
    """Build the user message from the request and its reference document."""
    return f"## Request:\n{question}\n\n## Reference document:\n{content}"


def error_detail(response: httpx.Response) -> str:
    """Pull a provider's error message out of a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:500]}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return f"HTTP {response.status_code}: {response.text[:500]}"
