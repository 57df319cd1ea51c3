"""Source registry — the loaded sources and the active-source pointer."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from notework.errors import EmptyContentError, UnknownSourceError
from notework.models.source import PALETTE, Source, SourceDescriptor
from notework.orchestrator.state import EngineState

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50


def extract_title(content: str) -> str:
    """First non-blank line with markdown heading marks removed."""
    for line in content.splitlines():
        if line.strip():
            return line.strip().lstrip("#").strip()[:TITLE_LENGTH]
    return ""


class SourceRegistry:
    def __init__(self, state: EngineState) -> None:
        self.state = state

    @property
    def sources(self) -> list[Source]:
        return self.state.sources

    def add(self, descriptor: SourceDescriptor) -> Source:
        """Register a source, give it the next palette color and make it active."""
        if not descriptor.is_file and not descriptor.content.strip():
            raise EmptyContentError("Source content is empty", {"url": descriptor.url})

        source = Source(
            id=str(uuid.uuid4()),
            url=descriptor.url,
            title=descriptor.title or extract_title(descriptor.content) or descriptor.url,
            content=descriptor.content,
            color=PALETTE[len(self.state.sources) % len(PALETTE)],
            loaded_at=datetime.now(),
            is_file=descriptor.is_file,
            file_type=descriptor.file_type,
            file_path=descriptor.file_path,
            file_blob_ref=descriptor.file_blob_ref,
        )
        self.state.sources.append(source)
        self.state.active_source_id = source.id
        logger.info("Added source %s (%s)", source.id, source.title)
        return source

    def remove(self, source_id: str) -> None:
        remaining = [s for s in self.state.sources if s.id != source_id]
        if len(remaining) == len(self.state.sources):
            return
        self.state.sources = remaining
        if self.state.active_source_id == source_id:
            self.state.active_source_id = remaining[0].id if remaining else None
        logger.info("Removed source %s", source_id)

    def set_active(self, source_id: str) -> None:
        self.get(source_id)
        self.state.active_source_id = source_id

    def get(self, source_id: str) -> Source:
        for source in self.state.sources:
            if source.id == source_id:
                return source
        raise UnknownSourceError(source_id)

    def get_active(self) -> Source | None:
        if self.state.active_source_id is None:
            return None
        return next(
            (s for s in self.state.sources if s.id == self.state.active_source_id), None
        )

    def update_content(self, source_id: str, content: str) -> Source:
        """Replace a source's text after a manual edit."""
        source = self.get(source_id)
        source.content = content
        return source
