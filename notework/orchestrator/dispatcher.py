"""Comparison dispatcher — fans one question out to every configured model."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol

from notework.errors import CredentialError
from notework.orchestrator.usage import UsageTracker

logger = logging.getLogger(__name__)


class ModelInvoker(Protocol):
    """The opaque invoke_model collaborator plus credential presence checks."""

    def has_credential(self, model: str) -> bool: ...

    def configured_models(self) -> list[str]: ...

    def label(self, model: str) -> str: ...

    async def invoke(self, model: str, content: str, question: str) -> str: ...


@dataclass
class ComparisonBoard:
    """Per-model result slots for one comparison run.

    Each in-flight call writes only its own ``results``/``loading``/``failed``
    entry, so slots can be read while other calls are still running.
    """

    question: str
    models: list[str]
    results: dict[str, str] = field(default_factory=dict)
    loading: dict[str, bool] = field(default_factory=dict)
    failed: dict[str, bool] = field(default_factory=dict)

    @property
    def done(self) -> bool:
        return not any(self.loading.values())


SlotListener = Callable[[str, ComparisonBoard], "Awaitable[None] | None"]


class Dispatcher:
    """Dispatches a question to several models concurrently."""

    def __init__(self, models: ModelInvoker, usage: UsageTracker) -> None:
        self.models = models
        self.usage = usage
        self.board: ComparisonBoard | None = None

    async def compare(
        self,
        question: str,
        content: str,
        listener: SlotListener | None = None,
    ) -> ComparisonBoard:
        """Ask every configured model the same question.

        A failing model gets an inline error in its slot; the others are not
        affected. Returns once every slot has settled.
        """
        models = self.models.configured_models()
        if not models:
            raise CredentialError("Set at least one model API key first")

        board = ComparisonBoard(
            question=question,
            models=models,
            loading={m: True for m in models},
        )
        self.board = board
        logger.info("Comparing across %d models: %s", len(models), models)

        tasks = [
            asyncio.create_task(self._run_model(board, model, content, listener))
            for model in models
        ]
        await asyncio.wait(tasks)
        return board

    async def _run_model(
        self,
        board: ComparisonBoard,
        model: str,
        content: str,
        listener: SlotListener | None,
    ) -> None:
        """Run a single model and write its slot."""
        try:
            response = await self.models.invoke(model, content, board.question)
            board.results[model] = response
            self.usage.record(model, content + board.question, response)
            logger.info("Model %s answered (%d chars)", model, len(response))
        except Exception as exc:
            logger.error("Model %s failed: %s", model, exc)
            board.results[model] = f"Error: {exc}"
            board.failed[model] = True
        finally:
            board.loading[model] = False

        if listener is not None:
            try:
                outcome = listener(model, board)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Comparison listener failed for %s", model)
