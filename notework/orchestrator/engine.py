"""
Engine controller — owns the EngineState and wires every component to it.

The engine runs as a single actor on the event loop: all mutations are plain
synchronous methods, and the only suspension points are the collaborator
calls (URL fetch, file extraction, model invoke, storage).
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from notework.backends.registry import ModelRegistry
from notework.errors import ValidationError
from notework.fetchers.files import FileExtractor
from notework.fetchers.url_resolver import UrlResolver
from notework.models.note import ConversationEntry, Note, NoteFilter, NoteVersion
from notework.models.session import ApiUsage, Project, SavedState
from notework.models.source import (
    MANUAL_INPUT_URL,
    FileType,
    Source,
    SourceDescriptor,
    file_type_for,
)
from notework.models.templates import ANALYSIS_TEMPLATES, AnalysisTemplate, PromptPreset, get_template
from notework.orchestrator.conversation import ConversationChain
from notework.orchestrator.dispatcher import ComparisonBoard
from notework.orchestrator.exporter import EXPORT_FORMATS, NoteExporter, export_file
from notework.orchestrator.notes import NoteStore
from notework.orchestrator.persistence import KeyValueStore, SessionPersistence
from notework.orchestrator.pipeline import ActionPhase, ActionPipeline
from notework.orchestrator.registry import SourceRegistry, extract_title
from notework.orchestrator.resolver import ContentResolver, TextExtractor
from notework.orchestrator.state import VERSION_LIMIT, EngineState
from notework.orchestrator.usage import UsageTracker

logger = logging.getLogger(__name__)

URL_HISTORY_LIMIT = 20
MANUAL_INPUT_TITLE = "Manual Input"


@dataclass
class SearchResults:
    sources: list[Source] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)


@dataclass
class ReadModel:
    """Everything a client needs to draw the workspace."""

    sources: list[Source]
    active_source_id: str | None
    notes: list[Note]
    raw_note_text: str
    conversation: list[ConversationEntry]
    follow_up_prompts: list[str]
    total_cost: Decimal
    last_usage: ApiUsage | None
    phase: ActionPhase
    active_action: str | None
    last_error: str | None
    comparison: ComparisonBoard | None
    url_history: list[str]
    presets: list[PromptPreset]
    templates: list[AnalysisTemplate]
    projects: list[Project]
    current_project: Project | None
    credentials: dict[str, bool]
    missing_credentials: list[str]
    notion_connected: bool


class NoteWorkEngine:
    def __init__(
        self,
        store: KeyValueStore,
        models: ModelRegistry | None = None,
        urls: UrlResolver | None = None,
        extractor: TextExtractor | None = None,
        autosave_interval: float | None = None,
    ) -> None:
        self.state = EngineState()
        self.models = models or ModelRegistry.default()
        self.urls = urls or UrlResolver()
        self.extractor = extractor or FileExtractor()

        self.sources = SourceRegistry(self.state)
        self.resolver = ContentResolver(self.extractor)
        self.notes = NoteStore(self.state)
        self.conversation = ConversationChain(self.state)
        self.usage = UsageTracker(self.state)
        self.pipeline = ActionPipeline(
            self.sources,
            self.resolver,
            self.notes,
            self.conversation,
            self.usage,
            self.models,
        )
        self.persistence = SessionPersistence(
            self.state,
            store,
            interval=autosave_interval,
            credential_flags=self.credential_flags,
        )

    # -- Lifecycle --

    def init(self, saved: SavedState | None = None, autosave: bool = True) -> None:
        """Load a saved state (if any) and start autosave."""
        if saved is not None:
            self.state.url_history = list(saved.url_history[:URL_HISTORY_LIMIT])
            if saved.presets is not None:
                self.state.presets = list(saved.presets)
            self.state.projects = list(saved.projects)
            self.state.current_project = self.state.projects[0] if self.state.projects else None
            self.state.versions = deque(saved.versions, maxlen=VERSION_LIMIT)
            self.state.saved_credentials = dict(saved.credentials)
            if saved.session is not None:
                self.persistence.restore(saved.session)
        if autosave:
            self.persistence.start_autosave()
        logger.info("Engine initialized (%d sources)", len(self.state.sources))

    async def teardown(self, flush: bool = True) -> None:
        await self.persistence.stop_autosave()
        if flush:
            await self.persistence.save()
        logger.info("Engine stopped")

    async def save(self) -> bool:
        return await self.persistence.save()

    # -- Sources --

    async def load_url(self, url: str) -> Source:
        """Fetch a web or Notion page and register it as the active source."""
        url = url.strip()
        if not url:
            raise ValidationError("Enter a URL first")
        content = await self.urls.resolve(url)
        source = self.sources.add(SourceDescriptor(url=url, content=content))
        self.remember_url(url)
        return source

    def add_text(self, text: str, title: str = "") -> Source:
        return self.sources.add(
            SourceDescriptor(
                url=MANUAL_INPUT_URL,
                content=text,
                title=title.strip() or extract_title(text) or MANUAL_INPUT_TITLE,
            )
        )

    async def add_file(self, path: str | Path) -> Source:
        """Register a file. Text files are read now; other types on first use."""
        file_path = Path(path)
        file_type = file_type_for(file_path.name)
        if file_type is None:
            raise ValidationError(
                f"Unsupported file type: {file_path.name}", {"path": str(file_path)}
            )

        if file_type == FileType.TEXT:
            content = await self.extractor.extract(str(file_path), file_type)
            return self.sources.add(
                SourceDescriptor(url=str(file_path), content=content, title=file_path.name)
            )

        return self.sources.add(
            SourceDescriptor(
                url=str(file_path),
                title=file_path.name,
                is_file=True,
                file_type=file_type,
                file_path=str(file_path),
                file_blob_ref=str(file_path),
            )
        )

    def remove_source(self, source_id: str) -> None:
        self.sources.remove(source_id)

    def set_active_source(self, source_id: str) -> None:
        self.sources.set_active(source_id)

    def update_source_content(self, source_id: str, content: str) -> Source:
        return self.sources.update_content(source_id, content)

    # -- URL history --

    def remember_url(self, url: str) -> None:
        url = url.strip()
        if not url:
            return
        history = [u for u in self.state.url_history if u != url]
        self.state.url_history = [url, *history][:URL_HISTORY_LIMIT]

    def clear_url_history(self) -> None:
        self.state.url_history = []

    # -- Prompt presets --

    def add_preset(self, name: str, prompt: str, category: str = "custom") -> PromptPreset:
        name, prompt = name.strip(), prompt.strip()
        if not name or not prompt:
            raise ValidationError("Preset name and prompt are required")
        preset = PromptPreset(id=str(uuid.uuid4()), name=name, prompt=prompt, category=category)
        self.state.presets.append(preset)
        return preset

    def remove_preset(self, preset_id: str) -> None:
        self.state.presets = [p for p in self.state.presets if p.id != preset_id]

    # -- Projects --

    def create_project(self, name: str) -> Project:
        name = name.strip()
        if not name:
            raise ValidationError("Project name is required")
        project = Project(id=str(uuid.uuid4()), name=name)
        self.state.projects.append(project)
        self.state.current_project = project
        self.state.reset_session()
        logger.info("Created project %s (%s)", project.id, name)
        return project

    def switch_project(self, project_id: str) -> Project:
        project = next((p for p in self.state.projects if p.id == project_id), None)
        if project is None:
            raise ValidationError(f"Unknown project: {project_id}", {"project_id": project_id})
        project.updated_at = datetime.now()
        self.state.current_project = project
        self.state.reset_session()
        logger.info("Switched to project %s", project_id)
        return project

    # -- Credentials and connections --

    def set_credential(self, model: str, api_key: str) -> None:
        if not api_key.strip():
            raise ValidationError("API key is empty", {"model": model})
        self.models.set_credential(model, api_key)

    def clear_credential(self, model: str) -> None:
        self.models.clear_credential(model)
        self.state.saved_credentials.pop(model, None)

    def credential_flags(self) -> dict[str, bool]:
        """Presence flags to persist; a key remembered from the last run stays flagged."""
        live = self.models.credential_flags()
        return {
            model: present or self.state.saved_credentials.get(model, False)
            for model, present in live.items()
        }

    def missing_credentials(self) -> list[str]:
        """Models that had a key when last saved but have none now."""
        live = self.models.credential_flags()
        return [
            model
            for model, present in self.state.saved_credentials.items()
            if present and not live.get(model, False)
        ]

    async def connect_notion(self, token: str | None = None) -> None:
        if token:
            self.urls.notion.token = token.strip()
        await self.urls.notion.connect()

    def disconnect_notion(self) -> None:
        self.urls.notion.disconnect()
        logger.info("Disconnected from Notion")

    # -- Actions --

    async def run_template(self, template_id: str) -> Note:
        template = get_template(template_id)
        if template is None:
            raise ValidationError(f"Unknown template: {template_id}", {"template_id": template_id})
        return await self.pipeline.template_analysis(template)

    def edit_note(self, note_id: str, content: str) -> None:
        self.notes.edit(note_id, content)

    def restore_version(self, version_id: str) -> NoteVersion:
        version = self.notes.find_version(version_id)
        if version is None:
            raise ValidationError(f"Unknown version: {version_id}", {"version_id": version_id})
        self.notes.restore_version(version)
        return version

    # -- Queries --

    def search(self, query: str) -> SearchResults:
        """Case-insensitive search over source titles/content and note content/tags."""
        query = query.strip().lower()
        if not query:
            return SearchResults()
        return SearchResults(
            sources=[
                s
                for s in self.state.sources
                if query in s.title.lower() or query in s.content.lower()
            ],
            notes=[
                n
                for n in self.state.notes
                if query in n.content.lower() or any(query in t.lower() for t in n.tags)
            ],
        )

    def filter_notes(self, criteria: NoteFilter) -> list[Note]:
        return self.notes.filter(criteria)

    def render_export(self, fmt: str = "md") -> str:
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format: {fmt}", {"format": fmt})
        project = self.state.current_project
        exporter = NoteExporter(
            self.state.notes,
            self.state.sources,
            self.state.total_cost,
            project.name if project else None,
        )
        return exporter.render(fmt)

    async def export_notes(self, path: str | Path, fmt: str = "md") -> str:
        content = self.render_export(fmt)
        await export_file(path, content)
        logger.info("Exported %d notes to %s", len(self.state.notes), path)
        return content

    def read_model(self) -> ReadModel:
        return ReadModel(
            sources=list(self.state.sources),
            active_source_id=self.state.active_source_id,
            notes=list(self.state.notes),
            raw_note_text=self.state.raw_note_text,
            conversation=list(self.state.conversation),
            follow_up_prompts=list(self.conversation.follow_up_prompts),
            total_cost=self.state.total_cost,
            last_usage=self.state.last_usage,
            phase=self.pipeline.phase,
            active_action=self.pipeline.active_action,
            last_error=self.pipeline.last_error,
            comparison=self.pipeline.dispatcher.board,
            url_history=list(self.state.url_history),
            presets=list(self.state.presets),
            templates=list(ANALYSIS_TEMPLATES),
            projects=list(self.state.projects),
            current_project=self.state.current_project,
            credentials=self.models.credential_flags(),
            missing_credentials=self.missing_credentials(),
            notion_connected=self.urls.notion_connected,
        )
