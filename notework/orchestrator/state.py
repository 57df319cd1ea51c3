"""Engine state — the single mutable working set owned by the engine."""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal

from notework.models.note import ConversationEntry, Note, NoteVersion
from notework.models.session import ApiUsage, Project
from notework.models.source import Source
from notework.models.templates import DEFAULT_PROMPT_PRESETS, PromptPreset

VERSION_LIMIT = 100


def _version_ring() -> deque[NoteVersion]:
    return deque(maxlen=VERSION_LIMIT)


@dataclass
class EngineState:
    """All live state. Components receive it explicitly; nothing is global."""

    sources: list[Source] = field(default_factory=list)
    active_source_id: str | None = None
    notes: list[Note] = field(default_factory=list)
    versions: deque[NoteVersion] = field(default_factory=_version_ring)
    conversation: list[ConversationEntry] = field(default_factory=list)
    last_conversation_id: str | None = None
    total_cost: Decimal = Decimal("0")
    last_usage: ApiUsage | None = None
    raw_note_text: str = ""

    projects: list[Project] = field(default_factory=list)
    current_project: Project | None = None
    url_history: list[str] = field(default_factory=list)
    # models that had a key when the state was last saved
    saved_credentials: dict[str, bool] = field(default_factory=dict)
    presets: list[PromptPreset] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_PROMPT_PRESETS)
    )

    def reset_session(self) -> None:
        """Clear the working set for a new or switched project."""
        self.sources = []
        self.active_source_id = None
        self.notes = []
        self.conversation = []
        self.last_conversation_id = None
        self.total_cost = Decimal("0")
        self.last_usage = None
        self.raw_note_text = ""
