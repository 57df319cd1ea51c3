"""
Session persistence — snapshot/restore of the working set plus autosave.

Saving never raises: a failed write is logged and the previously stored
state stays in place.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Protocol

from pydantic import TypeAdapter

from notework.config import settings
from notework.models.note import NoteVersion
from notework.models.session import Project, SavedState, Session
from notework.models.templates import PromptPreset
from notework.orchestrator.notes import notes_to_text
from notework.orchestrator.state import EngineState

logger = logging.getLogger(__name__)

SESSION_KEY = "session.current"
VERSIONS_KEY = "session.note_versions"
URL_HISTORY_KEY = "url_history"
PRESETS_KEY = "prompt_presets"
PROJECTS_KEY = "projects"
CREDENTIALS_KEY = "credentials"

DEFAULT_PROJECT_ID = "default"

session_adapter = TypeAdapter(Session)
versions_adapter = TypeAdapter(list[NoteVersion])
projects_adapter = TypeAdapter(list[Project])
presets_adapter = TypeAdapter(list[PromptPreset])


class KeyValueStore(Protocol):
    async def persist(self, key: str, value: Any) -> None: ...

    async def load(self, key: str) -> Any | None: ...


class SessionPersistence:
    def __init__(
        self,
        state: EngineState,
        store: KeyValueStore,
        interval: float | None = None,
        credential_flags: Callable[[], dict[str, bool]] | None = None,
    ) -> None:
        self.state = state
        self.store = store
        self.interval = interval if interval is not None else settings.autosave_interval
        self.credential_flags = credential_flags
        self._task: asyncio.Task | None = None

    def snapshot(self) -> Session:
        project = self.state.current_project
        return Session(
            id=str(uuid.uuid4()),
            project_id=project.id if project else DEFAULT_PROJECT_ID,
            sources=list(self.state.sources),
            notes=list(self.state.notes),
            conversation_history=list(self.state.conversation),
            total_cost=self.state.total_cost,
            last_activity=datetime.now(),
        )

    def restore(self, session: Session) -> None:
        """Replace the live working set with ``session`` in one step."""
        sources = list(session.sources)
        notes = list(session.notes)
        conversation = list(session.conversation_history)
        raw_text = notes_to_text(notes)

        self.state.sources = sources
        self.state.notes = notes
        self.state.conversation = conversation
        self.state.total_cost = session.total_cost
        self.state.active_source_id = sources[0].id if sources else None
        self.state.last_conversation_id = None
        self.state.last_usage = None
        self.state.raw_note_text = raw_text
        logger.info(
            "Restored session %s (%d sources, %d notes)", session.id, len(sources), len(notes)
        )

    async def save(self) -> bool:
        """Persist the snapshot and side state. Returns False if it failed."""
        try:
            # Serialize before the first await so the payload is one consistent state
            payload = {
                SESSION_KEY: session_adapter.dump_python(self.snapshot(), mode="json"),
                VERSIONS_KEY: versions_adapter.dump_python(list(self.state.versions), mode="json"),
                URL_HISTORY_KEY: list(self.state.url_history),
                PRESETS_KEY: presets_adapter.dump_python(self.state.presets, mode="json"),
                PROJECTS_KEY: projects_adapter.dump_python(self.state.projects, mode="json"),
            }
            if self.credential_flags is not None:
                payload[CREDENTIALS_KEY] = self.credential_flags()

            for key, value in payload.items():
                await self.store.persist(key, value)
        except Exception:
            logger.exception("Failed to save session")
            return False
        logger.debug("Session saved")
        return True

    async def load_saved(self) -> SavedState:
        """Read everything back; unreadable entries are logged and skipped."""
        saved = SavedState()

        session = await self._load(SESSION_KEY, session_adapter)
        if session is not None:
            saved.session = session
        versions = await self._load(VERSIONS_KEY, versions_adapter)
        if versions is not None:
            saved.versions = versions
        history = await self._load(URL_HISTORY_KEY, TypeAdapter(list[str]))
        if history is not None:
            saved.url_history = history
        saved.presets = await self._load(PRESETS_KEY, presets_adapter)
        projects = await self._load(PROJECTS_KEY, projects_adapter)
        if projects is not None:
            saved.projects = projects
        credentials = await self._load(CREDENTIALS_KEY, TypeAdapter(dict[str, bool]))
        if credentials is not None:
            saved.credentials = credentials
        return saved

    async def _load(self, key: str, adapter: TypeAdapter) -> Any | None:
        try:
            raw = await self.store.load(key)
            return None if raw is None else adapter.validate_python(raw)
        except Exception:
            logger.exception("Failed to load %s", key)
            return None

    # -- Autosave --

    def start_autosave(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._autosave_loop())
            logger.info("Autosave every %.0fs", self.interval)

    async def stop_autosave(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.save()
