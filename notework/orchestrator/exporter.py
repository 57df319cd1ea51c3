"""Note exporter — renders the note collection as Markdown, text, HTML or JSON."""

from __future__ import annotations

import asyncio
import html
import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from pydantic import TypeAdapter

from notework.errors import ValidationError
from notework.models.note import Note
from notework.models.source import Source
from notework.orchestrator.notes import notes_to_text

EXPORT_FORMATS = ("md", "txt", "html", "json")
DEFAULT_PROJECT_NAME = "Default"
TITLE = "NoteWork Export"
RULE_WIDTH = 50

HTML_STYLE = """\
    body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; max-width: 800px; margin: 0 auto; padding: 2rem; background: #f5f5f5; }
    h1 { color: #4f46e5; }
    .note { background: white; padding: 1rem; margin: 1rem 0; border-radius: 8px; border-left: 4px solid #4f46e5; }
    .note.question { border-left-color: #10b981; }
    .note.summary { border-left-color: #8b5cf6; }
    .note.translation { border-left-color: #3b82f6; }
    .note.highlight { border-left-color: #fbbf24; background: #fef3c7; }
    .tag { background: #4f46e5; color: white; padding: 2px 8px; border-radius: 12px; font-size: 0.75rem; margin-right: 4px; }
    .meta { color: #666; font-size: 0.85rem; margin-top: 0.5rem; }"""

_notes_adapter = TypeAdapter(list[Note])


class NoteExporter:
    """Renders notes plus their sources and the running cost into one document."""

    def __init__(
        self,
        notes: list[Note],
        sources: list[Source],
        total_cost: Decimal,
        project_name: str | None = None,
        exported_at: datetime | None = None,
    ) -> None:
        if not notes:
            raise ValidationError("No notes to export")
        self.notes = notes
        self.sources = sources
        self.total_cost = total_cost
        self.project_name = project_name or DEFAULT_PROJECT_NAME
        self.exported_at = exported_at or datetime.now()

    def render(self, fmt: str) -> str:
        renderers = {
            "md": self.to_markdown,
            "txt": self.to_text,
            "html": self.to_html,
            "json": self.to_json,
        }
        try:
            return renderers[fmt]()
        except KeyError:
            raise ValidationError(f"Unsupported export format: {fmt}", {"format": fmt}) from None

    @property
    def _cost(self) -> str:
        return f"${self.total_cost:.4f}"

    @property
    def _date(self) -> str:
        return self.exported_at.strftime("%Y-%m-%d %H:%M:%S")

    def to_markdown(self) -> str:
        lines = [
            f"# {TITLE}",
            "",
            f"**Project:** {self.project_name}",
            f"**Date:** {self._date}",
            "",
            "---",
            "",
        ]
        if self.sources:
            lines.append("## Sources")
            lines.append("")
            for source in self.sources:
                lines.append(f"- [{source.title}]({source.url})")
            lines += ["", "---", ""]

        lines += ["## Notes", "", notes_to_text(self.notes), "", "---", ""]
        lines.append(f"**Total API Cost:** {self._cost}")
        return "\n".join(lines) + "\n"

    def to_text(self) -> str:
        rule = "-" * RULE_WIDTH
        lines = [
            TITLE,
            "=" * RULE_WIDTH,
            "",
            f"Project: {self.project_name}",
            f"Date: {self._date}",
            "",
            rule,
            "",
        ]
        if self.sources:
            lines.append("Sources:")
            for source in self.sources:
                lines.append(f"  - {source.title}: {source.url}")
            lines += ["", rule, ""]

        lines += ["Notes:", ""]
        for note in self.notes:
            lines.append(f"[{note.kind.value.upper()}] {note.timestamp.isoformat()}")
            lines.append(note.content)
            if note.tags:
                lines.append(f"Tags: {', '.join(sorted(note.tags))}")
            lines.append("")

        lines.append(rule)
        lines.append(f"Total API Cost: {self._cost}")
        return "\n".join(lines) + "\n"

    def to_html(self) -> str:
        project = self._escape(self.project_name)
        parts = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '  <meta charset="UTF-8">',
            f"  <title>{TITLE} - {project}</title>",
            "  <style>",
            HTML_STYLE,
            "  </style>",
            "</head>",
            "<body>",
            f"  <h1>{TITLE}</h1>",
            f"  <p><strong>Project:</strong> {project}</p>",
            f"  <p><strong>Date:</strong> {self._date}</p>",
        ]
        if self.sources:
            parts.append("  <h2>Sources</h2>")
            parts.append("  <ul>")
            for source in self.sources:
                parts.append(
                    f'    <li><a href="{self._escape(source.url)}">{self._escape(source.title)}</a></li>'
                )
            parts.append("  </ul>")

        parts.append("  <h2>Notes</h2>")
        for note in self.notes:
            parts.append(self._render_note(note))

        parts.append(f'  <p class="meta"><strong>Total API Cost:</strong> {self._cost}</p>')
        parts += ["</body>", "</html>"]
        return "\n".join(parts) + "\n"

    def _render_note(self, note: Note) -> str:
        body = self._escape(note.content).replace("\n", "<br>")
        lines = [f'  <div class="note {note.kind.value}">', f"    <div>{body}</div>"]
        if note.tags:
            tags = "".join(f'<span class="tag">#{self._escape(t)}</span>' for t in sorted(note.tags))
            lines.append(f'    <div class="meta">{tags}</div>')
        meta = note.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        if note.ai_model:
            meta += f" | {self._escape(note.ai_model)}"
        lines.append(f'    <div class="meta">{meta}</div>')
        lines.append("  </div>")
        return "\n".join(lines)

    def to_json(self) -> str:
        document = {
            "project": self.project_name,
            "export_date": self.exported_at.isoformat(),
            "sources": [{"title": s.title, "url": s.url} for s in self.sources],
            "notes": _notes_adapter.dump_python(self.notes, mode="json"),
            "total_cost": str(self.total_cost),
        }
        return json.dumps(document, ensure_ascii=False, indent=2)

    def _escape(self, text: str) -> str:
        return html.escape(text, quote=True)


async def export_file(path: str | Path, content: str) -> None:
    """Write an export to disk without blocking the event loop."""
    target = Path(path)
    await asyncio.to_thread(target.write_text, content, encoding="utf-8")
