"""Content resolver — analyzable text for a source, caching file extraction."""

from __future__ import annotations

import logging
from typing import Protocol

from notework.errors import NoContentError
from notework.models.source import FileType, Source

logger = logging.getLogger(__name__)


class TextExtractor(Protocol):
    async def extract(self, blob_ref: str, file_type: FileType | None) -> str: ...


class ContentResolver:
    def __init__(self, extractor: TextExtractor) -> None:
        self.extractor = extractor

    async def resolve(self, source: Source) -> str:
        """Return the source's text, extracting and caching it for files.

        Extraction errors propagate and leave ``source.content`` untouched.
        """
        if source.content:
            return source.content

        if source.is_file and source.file_blob_ref:
            text = await self.extractor.extract(source.file_blob_ref, source.file_type)
            source.content = text
            logger.info("Cached %d extracted chars for source %s", len(text), source.id)
            return text

        raise NoContentError(source.id)
