"""Conversation context chain — what context a question uses and what follow-ups add."""

from __future__ import annotations

import uuid

from notework.errors import NoContextError
from notework.models.note import ConversationEntry, Note
from notework.orchestrator.state import EngineState

FOLLOW_UP_PROMPTS = (
    "Explain in more detail",
    "Give me an example",
    "How can this be applied in practice?",
    "What are the related concepts?",
)


class ConversationChain:
    def __init__(self, state: EngineState) -> None:
        self.state = state

    @property
    def history(self) -> list[ConversationEntry]:
        return self.state.conversation

    @property
    def last_entry(self) -> ConversationEntry | None:
        last_id = self.state.last_conversation_id
        if last_id is None:
            return None
        return next((c for c in self.state.conversation if c.id == last_id), None)

    @property
    def follow_up_prompts(self) -> tuple[str, ...]:
        """Canned follow-ups, offered once a question has been answered."""
        return FOLLOW_UP_PROMPTS if self.last_entry is not None else ()

    def base_note(self) -> Note:
        """The most recent note for the active source.

        Questions are asked against this note's content, not the raw source
        text and not the whole note collection.
        """
        source_id = self.state.active_source_id
        if source_id is not None:
            for note in reversed(self.state.notes):
                if note.source_id == source_id:
                    return note
        raise NoContextError(source_id)

    def context_for(self, follow_up: bool = False) -> str:
        note = self.base_note()
        last = self.last_entry
        if follow_up and last is not None:
            return (
                f"Previous question: {last.question}\n"
                f"Previous answer: {last.answer}\n\n"
                f"Reference content:\n{note.content}"
            )
        return note.content

    def record(self, question: str, answer: str, model: str, source_id: str) -> ConversationEntry:
        entry = ConversationEntry(
            id=str(uuid.uuid4()),
            question=question,
            answer=answer,
            model=model,
            source_id=source_id,
        )
        self.state.conversation.append(entry)
        self.state.last_conversation_id = entry.id
        return entry
