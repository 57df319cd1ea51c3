"""Source data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePath

PALETTE = ["#3b82f6", "#8b5cf6", "#10b981", "#f59e0b", "#ef4444", "#ec4899"]

MANUAL_INPUT_URL = "manual-input"


class FileType(str, Enum):
    PDF = "pdf"
    PPT = "ppt"
    PPTX = "pptx"
    XLS = "xls"
    XLSX = "xlsx"
    DOC = "doc"
    DOCX = "docx"
    IMAGE = "image"
    TEXT = "text"


_EXTENSIONS: dict[str, FileType] = {
    "pdf": FileType.PDF,
    "ppt": FileType.PPT,
    "pptx": FileType.PPTX,
    "xls": FileType.XLS,
    "xlsx": FileType.XLSX,
    "doc": FileType.DOC,
    "docx": FileType.DOCX,
    "png": FileType.IMAGE,
    "jpg": FileType.IMAGE,
    "jpeg": FileType.IMAGE,
    "gif": FileType.IMAGE,
    "webp": FileType.IMAGE,
    "txt": FileType.TEXT,
    "md": FileType.TEXT,
}


def file_type_for(name: str) -> FileType | None:
    """Map a file name to its FileType by extension, None if unsupported."""
    return _EXTENSIONS.get(PurePath(name).suffix.lower().lstrip("."))


@dataclass
class SourceDescriptor:
    """What the caller knows about a source before it is registered."""

    url: str
    content: str = ""
    title: str = ""
    is_file: bool = False
    file_type: FileType | None = None
    file_path: str | None = None
    file_blob_ref: str | None = None


@dataclass
class Source:
    """A unit of loadable content: web/Notion page, pasted text or file."""

    id: str
    url: str
    title: str
    content: str
    color: str
    loaded_at: datetime = field(default_factory=datetime.now)
    is_file: bool = False
    file_type: FileType | None = None
    file_path: str | None = None
    file_blob_ref: str | None = None
