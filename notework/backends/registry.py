"""Model registry — routes invoke_model calls to configured backends."""

from __future__ import annotations

import logging

from notework.backends.base import ModelBackend
from notework.backends.claude import ClaudeBackend
from notework.backends.gemini import GeminiBackend
from notework.backends.openai import OpenAIBackend
from notework.errors import MissingCredentialError, ProviderError

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Holds one backend per model id and tracks which have credentials."""

    def __init__(self, backends: list[ModelBackend]) -> None:
        if not backends:
            raise ValueError("At least one backend is required")
        self.backends: dict[str, ModelBackend] = {b.name: b for b in backends}

    @classmethod
    def default(cls) -> ModelRegistry:
        """Build the claude/openai/gemini registry from settings."""
        return cls([ClaudeBackend(), OpenAIBackend(), GeminiBackend()])

    @property
    def models(self) -> list[str]:
        return list(self.backends)

    def has_credential(self, model: str) -> bool:
        backend = self.backends.get(model)
        return bool(backend and backend.api_key)

    def configured_models(self) -> list[str]:
        return [name for name in self.backends if self.has_credential(name)]

    def credential_flags(self) -> dict[str, bool]:
        return {name: self.has_credential(name) for name in self.backends}

    def set_credential(self, model: str, api_key: str) -> None:
        self._backend(model).api_key = api_key.strip()
        logger.info("Credential set for %s", model)

    def clear_credential(self, model: str) -> None:
        self._backend(model).api_key = ""
        logger.info("Credential cleared for %s", model)

    def label(self, model: str) -> str:
        backend = self.backends.get(model)
        return backend.label if backend else model

    async def invoke(self, model: str, content: str, question: str) -> str:
        """Call ``model`` with content and question and return its text."""
        backend = self._backend(model)
        if not backend.api_key:
            raise MissingCredentialError(backend.label)
        logger.info("Invoking %s (%d chars of content)", model, len(content))
        return await backend.complete(content, question)

    def _backend(self, model: str) -> ModelBackend:
        try:
            return self.backends[model]
        except KeyError:
            raise ProviderError(model, f"Unknown model: {model}") from None
