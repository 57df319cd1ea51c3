"""Session, project and usage data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from notework.models.note import ConversationEntry, Note, NoteVersion
from notework.models.source import Source
from notework.models.templates import PromptPreset


@dataclass
class Project:
    id: str
    name: str
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class ApiUsage:
    """Token and cost estimate for the most recent AI call."""

    model: str
    input_tokens: int
    output_tokens: int
    cost: Decimal


@dataclass
class Session:
    """Snapshot of the live working set; the unit of persistence."""

    id: str
    project_id: str
    sources: list[Source] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)
    conversation_history: list[ConversationEntry] = field(default_factory=list)
    total_cost: Decimal = Decimal("0")
    last_activity: datetime = field(default_factory=datetime.now)


@dataclass
class SavedState:
    """Everything read back from storage at startup."""

    session: Session | None = None
    versions: list[NoteVersion] = field(default_factory=list)
    url_history: list[str] = field(default_factory=list)
    presets: list[PromptPreset] | None = None
    projects: list[Project] = field(default_factory=list)
    credentials: dict[str, bool] = field(default_factory=dict)
