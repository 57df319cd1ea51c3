"""Note & version store — notes, bounded edit history and filtered views."""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import datetime, timedelta

from notework.models.note import Note, NoteFilter, NoteKind, NoteVersion
from notework.orchestrator.state import EngineState

logger = logging.getLogger(__name__)

NOTE_SEPARATOR = "\n\n---\n\n"


def notes_to_text(notes: list[Note]) -> str:
    """Render notes as the plain-text edit view."""
    blocks: list[str] = []
    for note in notes:
        prefix = ""
        if note.kind == NoteKind.QUESTION:
            prefix = "**Q: "
        elif note.kind == NoteKind.HIGHLIGHT:
            prefix = "> "
        important = " ⭐" if note.is_important else ""
        tags = "".join(f" #{tag}" for tag in sorted(note.tags))
        blocks.append(f"{prefix}{note.content}{important}{tags}")
    return NOTE_SEPARATOR.join(blocks)


def date_cutoff(date_range: str, now: datetime) -> datetime | None:
    """Earliest timestamp kept by a date-range filter, None for no limit."""
    if date_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_range == "week":
        return now - timedelta(days=7)
    if date_range == "month":
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
        day = min(now.day, calendar.monthrange(year, month)[1])
        return now.replace(year=year, month=month, day=day)
    return None


class NoteStore:
    def __init__(self, state: EngineState) -> None:
        self.state = state

    @property
    def notes(self) -> list[Note]:
        return self.state.notes

    @property
    def versions(self) -> list[NoteVersion]:
        return list(self.state.versions)

    def get(self, note_id: str) -> Note | None:
        return next((n for n in self.state.notes if n.id == note_id), None)

    def append(
        self,
        content: str,
        kind: NoteKind,
        source_id: str | None = None,
        model: str | None = None,
        template_id: str | None = None,
    ) -> Note:
        note = Note(
            id=str(uuid.uuid4()),
            kind=kind,
            content=content,
            source_id=source_id,
            ai_model=model,
            template_id=template_id,
        )
        self.state.notes.append(note)
        self._refresh_text()
        return note

    def edit(self, note_id: str, new_content: str) -> None:
        """Overwrite a note's content, recording the old content as a version.

        The version ring is a bounded deque, so the oldest version across all
        notes falls off once it holds 100 entries.
        """
        note = self.get(note_id)
        if note is None:
            return
        self.state.versions.append(
            NoteVersion(id=str(uuid.uuid4()), note_id=note_id, content=note.content)
        )
        note.content = new_content
        self._refresh_text()

    def restore_version(self, version: NoteVersion) -> None:
        self.edit(version.note_id, version.content)

    def find_version(self, version_id: str) -> NoteVersion | None:
        return next((v for v in self.state.versions if v.id == version_id), None)

    def versions_for(self, note_id: str) -> list[NoteVersion]:
        return [v for v in self.state.versions if v.note_id == note_id]

    def toggle_important(self, note_id: str) -> None:
        note = self.get(note_id)
        if note is not None:
            note.is_important = not note.is_important
            self._refresh_text()

    def add_tag(self, note_id: str, tag: str) -> None:
        note = self.get(note_id)
        tag = tag.strip().lstrip("#")
        if note is not None and tag:
            note.tags.add(tag)
            self._refresh_text()

    def remove_tag(self, note_id: str, tag: str) -> None:
        note = self.get(note_id)
        if note is not None:
            note.tags.discard(tag)
            self._refresh_text()

    def delete(self, note_id: str) -> None:
        self.state.notes = [n for n in self.state.notes if n.id != note_id]
        self._refresh_text()

    def clear(self) -> None:
        self.state.notes = []
        self._refresh_text()
        logger.info("Cleared all notes")

    def all_tags(self) -> set[str]:
        tags: set[str] = set()
        for note in self.state.notes:
            tags |= note.tags
        return tags

    def filter(self, criteria: NoteFilter, now: datetime | None = None) -> list[Note]:
        """Narrow notes by kind, importance, date range, tags and search text."""
        notes = self.state.notes

        if criteria.kind is not None:
            notes = [n for n in notes if n.kind == criteria.kind]

        if criteria.important:
            notes = [n for n in notes if n.is_important]

        cutoff = date_cutoff(criteria.date_range, now or datetime.now())
        if cutoff is not None:
            notes = [n for n in notes if n.timestamp >= cutoff]

        if criteria.tags:
            wanted = set(criteria.tags)
            notes = [n for n in notes if n.tags & wanted]

        if criteria.search:
            query = criteria.search.lower()
            notes = [n for n in notes if query in n.content.lower()]

        return notes

    def _refresh_text(self) -> None:
        self.state.raw_note_text = notes_to_text(self.state.notes)
