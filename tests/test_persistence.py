"""
Tests for session persistence and the aiosqlite key/value store.
"""

import asyncio
from decimal import Decimal

import pytest

from notework.db.database import Database
from notework.models.note import NoteKind
from notework.models.session import Project
from notework.models.source import FileType, SourceDescriptor
from notework.orchestrator.persistence import (
    CREDENTIALS_KEY,
    DEFAULT_PROJECT_ID,
    SESSION_KEY,
    SessionPersistence,
)
from tests.conftest import MemoryStore


@pytest.fixture
async def database(tmp_path):
    db = Database(str(tmp_path / "notework-test.db"))
    await db.connect()
    yield db
    await db.close()


def _fill(engine):
    source = engine.add_text("# Cells\nThe cell is the unit of life.")
    engine.sources.add(
        SourceDescriptor(
            url="/data/slides.pptx",
            title="slides.pptx",
            is_file=True,
            file_type=FileType.PPTX,
            file_blob_ref="/data/slides.pptx",
        )
    )
    note = engine.notes.append("Cells summary", NoteKind.SUMMARY, source.id, "claude")
    engine.notes.add_tag(note.id, "biology")
    engine.notes.edit(note.id, "Cells summary, revised")
    engine.usage.record("claude", "a" * 3000, "b" * 300)
    return source, note


@pytest.mark.unit
class TestSnapshot:
    def test_snapshot_reflects_state(self, engine):
        source, note = _fill(engine)

        session = engine.persistence.snapshot()

        assert session.project_id == DEFAULT_PROJECT_ID
        assert [s.id for s in session.sources][0] == source.id
        assert session.notes[0].id == note.id
        assert session.total_cost == engine.state.total_cost

    def test_snapshot_ids_are_fresh(self, engine):
        assert engine.persistence.snapshot().id != engine.persistence.snapshot().id

    def test_restore_activates_first_source(self, engine):
        source, _ = _fill(engine)
        session = engine.persistence.snapshot()
        engine.state.reset_session()

        engine.persistence.restore(session)

        assert engine.state.active_source_id == source.id
        assert engine.state.raw_note_text == "Cells summary, revised #biology"
        assert engine.state.last_usage is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestSaveAndLoad:
    async def test_round_trip_through_memory_store(self, engine, store):
        _, note = _fill(engine)
        engine.remember_url("https://example.com/a")

        assert await engine.save() is True
        saved = await engine.persistence.load_saved()

        restored = saved.session
        assert restored.total_cost == engine.state.total_cost
        assert isinstance(restored.total_cost, Decimal)
        assert restored.notes[0].kind is NoteKind.SUMMARY
        assert restored.notes[0].tags == {"biology"}
        assert restored.sources[1].file_type is FileType.PPTX
        assert [v.content for v in saved.versions] == ["Cells summary"]
        assert saved.url_history == ["https://example.com/a"]
        assert [p.id for p in saved.presets] == [p.id for p in engine.state.presets]
        assert set(store.data) == {
            "session.current",
            "session.note_versions",
            "url_history",
            "prompt_presets",
            "projects",
        }

    async def test_credential_flags_read_back(self, engine, store, invoker):
        await engine.save()
        saved = await engine.persistence.load_saved()
        assert saved.credentials == {"claude": True, "openai": True, "gemini": True}

        invoker.keys["claude"] = ""
        engine.init(saved, autosave=False)

        assert engine.read_model().missing_credentials == ["claude"]
        await engine.save()
        assert store.data[CREDENTIALS_KEY]["claude"] is True

        engine.set_credential("claude", "sk-ant")
        assert engine.read_model().missing_credentials == []

        engine.clear_credential("claude")
        await engine.save()
        assert store.data[CREDENTIALS_KEY]["claude"] is False
        assert engine.read_model().missing_credentials == []

    async def test_save_failure_is_logged_not_raised(self, engine, store, caplog):
        store.fail = True

        assert await engine.save() is False
        assert "Failed to save session" in caplog.text

    async def test_corrupt_entry_is_skipped(self, engine, store):
        store.data[SESSION_KEY] = {"id": "x"}
        store.data["url_history"] = ["https://a"]

        saved = await engine.persistence.load_saved()

        assert saved.session is None
        assert saved.url_history == ["https://a"]

    async def test_empty_store(self, engine):
        saved = await engine.persistence.load_saved()

        assert saved.session is None
        assert saved.presets is None
        assert saved.projects == []

    async def test_round_trip_through_sqlite(self, engine, database):
        _fill(engine)
        engine.create_project("Biology")
        engine.add_text("Mitochondria")
        persistence = SessionPersistence(engine.state, database)

        assert await persistence.save() is True
        saved = await SessionPersistence(engine.state, database).load_saved()

        assert saved.session.project_id == engine.state.current_project.id
        assert [s.title for s in saved.session.sources] == ["Mitochondria"]
        assert [p.name for p in saved.projects] == ["Biology"]
        assert isinstance(saved.projects[0], Project)

    async def test_autosave_runs_on_interval(self, engine):
        store = MemoryStore()
        persistence = SessionPersistence(engine.state, store, interval=0.01)

        persistence.start_autosave()
        await asyncio.sleep(0.05)
        await persistence.stop_autosave()

        assert SESSION_KEY in store.data


@pytest.mark.unit
@pytest.mark.asyncio
class TestDatabase:
    async def test_persist_load_delete(self, database):
        await database.persist("k", {"a": [1, 2], "b": "ü"})

        assert await database.load("k") == {"a": [1, 2], "b": "ü"}
        assert await database.keys() == ["k"]

        await database.persist("k", "replaced")
        assert await database.load("k") == "replaced"

        await database.delete("k")
        assert await database.load("k") is None

    async def test_requires_connect(self, tmp_path):
        db = Database(str(tmp_path / "x.db"))

        with pytest.raises(RuntimeError):
            await db.load("k")
