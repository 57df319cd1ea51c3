"""
File text extraction for file sources.

Extraction is blocking (pypdf, openpyxl, python-docx, python-pptx) and runs
in a worker thread so the event loop keeps serving other actions.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from notework.errors import ExtractionError
from notework.models.source import FileType

logger = logging.getLogger(__name__)

LEGACY_OFFICE_NOTICE = (
    "[{kind} file]\n\n"
    "Text extraction is not supported for this file format. "
    "Use PDF, XLSX, DOCX or PPTX, or paste the text directly."
)
IMAGE_NOTICE = (
    "[Image file]\n\n"
    "Extracting text from images requires OCR, which is not available. "
    "Only preview is supported."
)


class FileExtractor:
    """Resolves a file blob reference (a filesystem path) to text."""

    async def extract(self, blob_ref: str, file_type: FileType | None) -> str:
        return await asyncio.to_thread(self.extract_sync, blob_ref, file_type)

    def extract_sync(self, blob_ref: str, file_type: FileType | None) -> str:
        path = Path(blob_ref)
        if not path.is_file():
            raise ExtractionError(f"File not found: {blob_ref}", {"path": blob_ref})

        try:
            if file_type is FileType.PDF:
                text = self._extract_pdf(path)
            elif file_type is FileType.XLSX:
                text = self._extract_xlsx(path)
            elif file_type is FileType.DOCX:
                text = self._extract_docx(path)
            elif file_type is FileType.PPTX:
                text = self._extract_pptx(path)
            elif file_type is FileType.TEXT:
                text = path.read_text(encoding="utf-8", errors="replace")
            elif file_type in (FileType.DOC, FileType.PPT, FileType.XLS):
                text = LEGACY_OFFICE_NOTICE.format(kind=file_type.value.upper())
            elif file_type is FileType.IMAGE:
                text = IMAGE_NOTICE
            else:
                raise ExtractionError(f"Unsupported file type: {file_type}", {"path": blob_ref})
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(
                f"Could not extract text from {path.name}: {exc}", {"path": blob_ref}
            ) from exc

        logger.info("Extracted %d chars from %s", len(text), path.name)
        return text

    def _extract_pdf(self, path: Path) -> str:
        from pypdf import PdfReader

        reader = PdfReader(path)
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n\n".join(p.strip() for p in pages if p.strip())

    def _extract_xlsx(self, path: Path) -> str:
        from openpyxl import load_workbook

        workbook = load_workbook(path, read_only=True, data_only=True)
        parts: list[str] = []
        try:
            for sheet in workbook.worksheets:
                parts.append(f"## Sheet: {sheet.title}\n")
                for row in sheet.iter_rows(values_only=True):
                    parts.append("\t".join("" if cell is None else str(cell) for cell in row))
                parts.append("")
        finally:
            workbook.close()
        return "\n".join(parts)

    def _extract_docx(self, path: Path) -> str:
        from docx import Document as DocxDocument

        document = DocxDocument(str(path))
        paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                paragraphs.append("\t".join(cell.text for cell in row.cells))
        return "\n".join(paragraphs)

    def _extract_pptx(self, path: Path) -> str:
        from pptx import Presentation

        presentation = Presentation(str(path))
        parts: list[str] = []
        for i, slide in enumerate(presentation.slides, 1):
            parts.append(f"## Slide {i}")
            for shape in slide.shapes:
                if shape.has_text_frame and shape.text_frame.text.strip():
                    parts.append(shape.text_frame.text)
            parts.append("")
        return "\n".join(parts)
