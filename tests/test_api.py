"""
Tests for the HTTP and WebSocket surface, via FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from notework.db.database import Database
from notework.errors import (
    ExtractionError,
    MissingCredentialError,
    NoContextError,
    ProviderError,
    UnknownSourceError,
)
from notework.main import create_app, status_for
from notework.orchestrator.engine import NoteWorkEngine
from tests.conftest import FakeExtractor, FakeInvoker, FakeUrlResolver


@pytest.fixture
def api_invoker():
    return FakeInvoker(failures={"gemini": ProviderError("gemini", "quota exceeded")})


@pytest.fixture
def client(tmp_path, api_invoker):
    def factory(db):
        return NoteWorkEngine(
            db,
            models=api_invoker,
            urls=FakeUrlResolver({"https://example.com/post": "Title: Post\n\nBody text."}),
            extractor=FakeExtractor(),
        )

    app = create_app(Database(str(tmp_path / "api.db")), factory)
    with TestClient(app) as client:
        yield client


@pytest.mark.unit
class TestStatusMapping:
    def test_families(self):
        assert status_for(NoContextError("s")) == 400
        assert status_for(UnknownSourceError("s")) == 404
        assert status_for(MissingCredentialError("Claude")) == 412
        assert status_for(ProviderError("claude", "x")) == 502
        assert status_for(ExtractionError("x")) == 502


@pytest.mark.unit
class TestApi:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_source_and_summary_flow(self, client):
        source = client.post("/api/sources/url", json={"url": "https://example.com/post"}).json()
        assert source["url"] == "https://example.com/post"

        note = client.post("/api/actions/summarize").json()
        assert note["kind"] == "summary"
        assert note["source_id"] == source["id"]

        state = client.get("/api/state").json()
        assert state["active_source_id"] == source["id"]
        assert state["raw_note_text"] == "claude answer"
        assert state["url_history"] == ["https://example.com/post"]
        assert state["phase"] == "idle"
        assert state["total_cost"] > 0

    def test_question_without_context_is_400(self, client):
        client.post("/api/sources/text", json={"text": "Some pasted text"})

        response = client.post("/api/actions/question", json={"question": "Why?"})

        assert response.status_code == 400
        assert response.json()["error"] == "NoContextError"

    def test_unknown_source_is_404(self, client):
        response = client.post("/api/sources/missing/activate")

        assert response.status_code == 404

    def test_fetch_failure_is_502(self, client):
        response = client.post("/api/sources/url", json={"url": "https://example.com/gone"})

        assert response.status_code == 502

    def test_missing_credential_is_412(self, client, api_invoker):
        client.post("/api/sources/text", json={"text": "Some pasted text"})
        api_invoker.keys["claude"] = ""

        response = client.post("/api/actions/translate")

        assert response.status_code == 412
        assert response.json()["context"] == {"model": "Claude"}

    def test_notes_filter_and_tags(self, client):
        first = client.post("/api/notes", json={"text": "alpha"}).json()
        client.post("/api/notes", json={"text": "beta"})
        client.post(f"/api/notes/{first['id']}/tags", json={"tag": "greek"})
        client.post(f"/api/notes/{first['id']}/important")

        notes = client.get("/api/notes", params={"important": True, "tags": ["greek"]}).json()

        assert [n["content"] for n in notes] == ["alpha"]
        assert notes[0]["tags"] == ["greek"]

    def test_edit_and_restore_version(self, client):
        note = client.post("/api/notes", json={"text": "draft"}).json()
        client.put(f"/api/notes/{note['id']}", json={"content": "final"})

        versions = client.get("/api/versions", params={"note_id": note["id"]}).json()
        assert [v["content"] for v in versions] == ["draft"]

        client.post(f"/api/versions/{versions[0]['id']}/restore")
        notes = client.get("/api/notes").json()
        assert notes[0]["content"] == "draft"

    def test_search(self, client):
        client.post("/api/sources/text", json={"text": "Enzymes speed up reactions"})
        client.post("/api/notes", json={"text": "enzyme kinetics"})

        results = client.get("/api/search", params={"q": "enzyme"}).json()

        assert len(results["sources"]) == 1
        assert len(results["notes"]) == 1

    def test_compare_models_over_http(self, client):
        client.post("/api/notes", json={"text": "notes to compare"})

        board = client.post("/api/actions/compare-models", json={"question": "Summarize"}).json()

        assert board["results"]["claude"] == "claude answer"
        assert board["failed"] == {"gemini": True}

    def test_projects_and_credentials(self, client):
        project = client.post("/api/projects", json={"name": "Thesis"}).json()
        assert client.get("/api/projects").json()[0]["id"] == project["id"]

        flags = client.delete("/api/credentials/openai").json()
        assert flags["openai"] is False

    def test_export_inline(self, client):
        assert client.post("/api/export", json={"format": "md"}).status_code == 400

        client.post("/api/notes", json={"text": "exported"})
        body = client.post("/api/export", json={"format": "txt"}).json()

        assert "exported" in body["content"]

    def test_every_source_route_saves(self, client):
        client.post("/api/sources/text", json={"text": "Pasted text"})
        client.post("/api/sources/file", json={"path": "/data/slides.pptx"})

        engine = client.app.state.engine
        saved = client.portal.call(engine.persistence.load_saved)

        assert [s.title for s in saved.session.sources] == ["Pasted text", "slides.pptx"]

    def test_notion_connect_and_disconnect(self, client):
        assert client.post("/api/notion/connect", json={"token": "secret"}).json() == {
            "connected": True
        }

        assert client.post("/api/notion/disconnect").json() == {"connected": False}
        assert client.get("/api/state").json()["notion_connected"] is False


@pytest.mark.unit
class TestCompareWebSocket:
    def test_streams_slots_then_done(self, client):
        client.post("/api/notes", json={"text": "notes to compare"})

        with client.websocket_connect("/ws/compare") as ws:
            ws.send_json({"question": "Summarize"})
            messages = [ws.receive_json() for _ in range(4)]

        slots = {m["model"]: m for m in messages if m["type"] == "slot"}
        assert set(slots) == {"claude", "openai", "gemini"}
        assert slots["gemini"]["failed"] is True
        assert messages[-1]["type"] == "done"
        assert messages[-1]["board"]["results"]["openai"] == "openai answer"

    def test_validation_error_reported_inline(self, client):
        with client.websocket_connect("/ws/compare") as ws:
            ws.send_json({"question": "Summarize"})
            message = ws.receive_json()

        assert message["type"] == "error"
