"""
Action pipeline — resolves content and context, calls a model and commits
the result into the note store and usage tracker.

Every action walks IDLE -> RESOLVING -> INVOKING -> COMMITTING -> IDLE. An
error at any step marks the action FAILED, is stored as ``last_error`` and
re-raised, and the pipeline returns to IDLE. Nothing is committed before the
model call has succeeded, so a failed action never creates a note or adds
cost.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from notework.config import settings
from notework.errors import (
    EmptyContentError,
    EmptyQuestionError,
    InsufficientSourcesError,
    MissingCredentialError,
    NoActiveSourceError,
    NoteWorkError,
    ValidationError,
)
from notework.models.note import Note, NoteKind
from notework.models.source import Source
from notework.models.templates import AnalysisTemplate
from notework.orchestrator.conversation import ConversationChain
from notework.orchestrator.dispatcher import ComparisonBoard, Dispatcher, ModelInvoker, SlotListener
from notework.orchestrator.notes import NoteStore
from notework.orchestrator.registry import SourceRegistry
from notework.orchestrator.resolver import ContentResolver
from notework.orchestrator.usage import UsageTracker

logger = logging.getLogger(__name__)

# Translate, summarize, template and source comparison always use this model.
DEFAULT_MODEL = "claude"

SELECTION_PREVIEW = 100
COMPARE_EXCERPT = 2000

TRANSLATE_PROMPT = (
    "Translate the reference document into {language}. Preserve the structure, "
    "headings and lists, and keep technical terms accurate."
)
SUMMARIZE_PROMPT = (
    "Summarize the reference document. Start with a one-paragraph overview, then "
    "list the key points and any important details or conclusions."
)
COMPARE_SOURCES_PROMPT = (
    "Compare and analyze the documents above. Summarize what they have in common, "
    "how they differ, and the core claims of each document."
)
QUICK_QUESTION_PROMPT = 'Explain the following passage in detail: "{text}"'


class ActionPhase(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    INVOKING = "invoking"
    COMMITTING = "committing"
    FAILED = "failed"


class ActionPipeline:
    def __init__(
        self,
        sources: SourceRegistry,
        resolver: ContentResolver,
        notes: NoteStore,
        conversation: ConversationChain,
        usage: UsageTracker,
        models: ModelInvoker,
    ) -> None:
        self.sources = sources
        self.resolver = resolver
        self.notes = notes
        self.conversation = conversation
        self.usage = usage
        self.models = models
        self.dispatcher = Dispatcher(models, usage)

        self.phase = ActionPhase.IDLE
        self.active_action: str | None = None
        self.last_error: str | None = None

    @property
    def busy(self) -> bool:
        return self.phase is not ActionPhase.IDLE

    @contextmanager
    def _action(self, name: str) -> Iterator[None]:
        self.active_action = name
        self.last_error = None
        logger.info("Action %s started", name)
        try:
            yield
        except NoteWorkError as exc:
            self.phase = ActionPhase.FAILED
            self.last_error = exc.message
            logger.error("Action %s failed: %s", name, exc.message)
            raise
        else:
            logger.info("Action %s finished", name)
        finally:
            self.phase = ActionPhase.IDLE
            self.active_action = None

    def _require_active(self) -> Source:
        source = self.sources.get_active()
        if source is None:
            raise NoActiveSourceError()
        return source

    # -- Source actions --

    async def translate(self) -> Note:
        prompt = TRANSLATE_PROMPT.format(language=settings.translate_language)
        return await self._transform("translate", prompt, NoteKind.TRANSLATION)

    async def summarize(self) -> Note:
        return await self._transform("summarize", SUMMARIZE_PROMPT, NoteKind.SUMMARY)

    async def _transform(self, name: str, prompt: str, kind: NoteKind) -> Note:
        with self._action(name):
            source = self._require_active()
            self.phase = ActionPhase.RESOLVING
            content = await self.resolver.resolve(source)

            self.phase = ActionPhase.INVOKING
            response = await self.models.invoke(DEFAULT_MODEL, content, prompt)

            self.phase = ActionPhase.COMMITTING
            note = self.notes.append(response, kind, source.id, DEFAULT_MODEL)
            self.usage.record(DEFAULT_MODEL, content, response)
            return note

    async def template_analysis(self, template: AnalysisTemplate) -> Note:
        with self._action(f"template:{template.id}"):
            source = self._require_active()
            self.phase = ActionPhase.RESOLVING
            content = await self.resolver.resolve(source)
            if not content.strip():
                raise EmptyContentError("Source content is empty", {"source_id": source.id})

            self.phase = ActionPhase.INVOKING
            response = await self.models.invoke(DEFAULT_MODEL, content, template.prompt)

            self.phase = ActionPhase.COMMITTING
            note = self.notes.append(
                f"## {template.icon} {template.name}\n\n{response}",
                NoteKind.TEMPLATE,
                source.id,
                DEFAULT_MODEL,
                template.id,
            )
            # Usage is counted against the full prompt, not only the content
            full_prompt = f"{template.prompt}\n\nContent:\n{content}"
            self.usage.record(DEFAULT_MODEL, full_prompt, response)
            return note

    # -- Questions --

    async def ask_question(
        self,
        question: str,
        model: str = DEFAULT_MODEL,
        follow_up: bool = False,
        selection: str = "",
    ) -> Note:
        """Ask ``model`` about the latest note of the active source."""
        with self._action("question"):
            question = question.strip()
            if not question:
                raise EmptyQuestionError()

            self.phase = ActionPhase.RESOLVING
            context = self.conversation.context_for(follow_up)
            label = self.models.label(model)
            if not self.models.has_credential(model):
                raise MissingCredentialError(label)

            sent_question = question
            if selection:
                sent_question = (
                    f'Regarding the selected passage:\n\n"{selection}"\n\nQuestion: {question}'
                )

            self.phase = ActionPhase.INVOKING
            response = await self.models.invoke(model, context, sent_question)

            self.phase = ActionPhase.COMMITTING
            source_id = self.sources.state.active_source_id
            self.conversation.record(question, response, label, source_id or "")
            note = self.notes.append(
                self._question_body(question, label, selection, response),
                NoteKind.QUESTION,
                source_id,
                model,
            )
            self.usage.record(model, context + sent_question, response)
            return note

    async def ask_follow_up(self, prompt: str, model: str = DEFAULT_MODEL) -> Note:
        return await self.ask_question(prompt, model, follow_up=True)

    def _question_body(self, question: str, label: str, selection: str, response: str) -> str:
        header = f"**Q: {question}** *({label})*"
        if selection:
            excerpt = selection[:SELECTION_PREVIEW]
            if len(selection) > SELECTION_PREVIEW:
                excerpt += "..."
            header += f'\n> Selection: "{excerpt}"'
        return f"{header}\n\n{response}"

    async def quick_question(self, text: str) -> Note:
        """Explain a passage selected in the active source."""
        with self._action("quick_question"):
            text = text.strip()
            if not text:
                raise ValidationError("Select some text first")
            source = self._require_active()
            self.phase = ActionPhase.RESOLVING
            content = await self.resolver.resolve(source)

            self.phase = ActionPhase.INVOKING
            response = await self.models.invoke(
                DEFAULT_MODEL, content, QUICK_QUESTION_PROMPT.format(text=text)
            )

            self.phase = ActionPhase.COMMITTING
            note = self.notes.append(
                f'**Selected text:** "{text}"\n\n{response}',
                NoteKind.QUESTION,
                source.id,
                DEFAULT_MODEL,
            )
            self.usage.record(DEFAULT_MODEL, content + text, response)
            return note

    # -- Comparisons --

    async def compare_models(
        self,
        question: str,
        content: str | None = None,
        listener: SlotListener | None = None,
    ) -> ComparisonBoard:
        """Ask every configured model the same question about ``content``.

        ``content`` defaults to the notes' text view.
        """
        question = question.strip()
        if content is None:
            content = self.notes.state.raw_note_text
        content = content.strip()
        if not content or not question:
            raise ValidationError("Add notes and enter a question first")
        return await self.dispatcher.compare(question, content, listener)

    async def compare_sources(self) -> Note:
        with self._action("compare_sources"):
            sources = list(self.sources.sources)
            if len(sources) < 2:
                raise InsufficientSourcesError(len(sources))

            self.phase = ActionPhase.RESOLVING
            excerpts: list[str] = []
            for i, source in enumerate(sources, 1):
                content = await self.resolver.resolve(source)
                excerpts.append(f"[Document {i}: {source.title}]\n{content[:COMPARE_EXCERPT]}...")
            combined = "\n\n---\n\n".join(excerpts)

            self.phase = ActionPhase.INVOKING
            response = await self.models.invoke(DEFAULT_MODEL, combined, COMPARE_SOURCES_PROMPT)

            self.phase = ActionPhase.COMMITTING
            note = self.notes.append(
                f"## 📊 Source comparison\n\n{response}",
                NoteKind.SUMMARY,
                None,
                DEFAULT_MODEL,
            )
            self.usage.record(DEFAULT_MODEL, combined, response)
            return note

    # -- Manual notes --

    def add_highlight(self, text: str) -> Note:
        text = text.strip()
        if not text:
            raise ValidationError("Select some text first")
        source = self._require_active()
        return self.notes.append(text, NoteKind.HIGHLIGHT, source.id)

    def add_text_note(self, text: str) -> Note:
        text = text.strip()
        if not text:
            raise ValidationError("Note text is empty")
        return self.notes.append(text, NoteKind.TEXT, self.sources.state.active_source_id)
