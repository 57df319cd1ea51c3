"""Note, version and conversation data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class NoteKind(str, Enum):
    TEXT = "text"
    QUESTION = "question"
    SUMMARY = "summary"
    TRANSLATION = "translation"
    HIGHLIGHT = "highlight"
    TEMPLATE = "template"


@dataclass
class Note:
    """A persisted unit of content, user-authored or AI-generated.

    ``source_id`` is a plain back-reference: the source may have been removed
    since, in which case it no longer resolves.
    """

    id: str
    kind: NoteKind
    content: str
    source_id: str | None = None
    tags: set[str] = field(default_factory=set)
    timestamp: datetime = field(default_factory=datetime.now)
    ai_model: str | None = None
    is_important: bool = False
    template_id: str | None = None


@dataclass
class NoteVersion:
    """Content of a note as it was before an edit."""

    id: str
    note_id: str
    content: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ConversationEntry:
    """One completed question/answer exchange."""

    id: str
    question: str
    answer: str
    model: str
    source_id: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class NoteFilter:
    """Criteria for a filtered note view. Empty fields do not narrow."""

    kind: NoteKind | None = None
    important: bool = False
    date_range: str = "all"  # all, today, week, month
    tags: list[str] = field(default_factory=list)
    search: str = ""
