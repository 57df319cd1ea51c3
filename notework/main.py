"""NoteWork — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

import uvicorn
from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from notework.config import settings
from notework.db.database import Database
from notework.errors import (
    AcquisitionError,
    CredentialError,
    NoteWorkError,
    ProviderError,
    UnknownSourceError,
    ValidationError,
)
from notework.models.note import NoteFilter, NoteKind
from notework.orchestrator.dispatcher import ComparisonBoard
from notework.orchestrator.engine import NoteWorkEngine

logger = logging.getLogger(__name__)

EngineFactory = Callable[[Database], NoteWorkEngine]


def status_for(exc: NoteWorkError) -> int:
    if isinstance(exc, UnknownSourceError):
        return 404
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, CredentialError):
        return 412
    if isinstance(exc, (ProviderError, AcquisitionError)):
        return 502
    return 500


# --- Request models ---


class UrlRequest(BaseModel):
    url: str


class TextSourceRequest(BaseModel):
    text: str
    title: str = ""


class FileRequest(BaseModel):
    path: str


class ContentRequest(BaseModel):
    content: str


class TextRequest(BaseModel):
    text: str


class QuestionRequest(BaseModel):
    question: str
    model: str = "claude"
    follow_up: bool = False
    selection: str = ""


class CompareRequest(BaseModel):
    question: str
    content: str | None = None


class TagRequest(BaseModel):
    tag: str


class PresetRequest(BaseModel):
    name: str
    prompt: str
    category: str = "custom"


class ProjectRequest(BaseModel):
    name: str


class CredentialRequest(BaseModel):
    api_key: str


class NotionRequest(BaseModel):
    token: str | None = None


class ExportRequest(BaseModel):
    format: str = "md"
    path: str | None = None


def create_app(
    database: Database | None = None,
    engine_factory: EngineFactory | None = None,
) -> FastAPI:
    """Build the app around one engine bound to ``database``."""
    database = database or Database(settings.database_path)
    engine_factory = engine_factory or (lambda db: NoteWorkEngine(db))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.connect()
        engine = engine_factory(database)
        engine.init(await engine.persistence.load_saved())
        app.state.engine = engine
        yield
        await engine.teardown(flush=True)
        await database.close()

    app = FastAPI(
        title="NoteWork",
        description="AI-assisted research notebook",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NoteWorkError)
    async def notework_error_handler(request: Request, exc: NoteWorkError):
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": exc.message, "error": type(exc).__name__, "context": exc.context},
        )

    def engine_of(request: Request) -> NoteWorkEngine:
        return request.app.state.engine

    # --- Read model ---

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/state")
    async def get_state(request: Request):
        return engine_of(request).read_model()

    @app.get("/api/notes")
    async def list_notes(
        request: Request,
        kind: NoteKind | None = None,
        important: bool = False,
        date_range: str = "all",
        tags: list[str] = Query(default=[]),
        search: str = "",
    ):
        criteria = NoteFilter(
            kind=kind, important=important, date_range=date_range, tags=tags, search=search
        )
        return engine_of(request).filter_notes(criteria)

    @app.get("/api/search")
    async def search(request: Request, q: str = ""):
        return engine_of(request).search(q)

    @app.get("/api/versions")
    async def list_versions(request: Request, note_id: str | None = None):
        notes = engine_of(request).notes
        return notes.versions_for(note_id) if note_id else notes.versions

    # --- Sources ---

    @app.post("/api/sources/url")
    async def load_url(req: UrlRequest, request: Request):
        engine = engine_of(request)
        source = await engine.load_url(req.url)
        await engine.save()
        return source

    @app.post("/api/sources/text")
    async def add_text(req: TextSourceRequest, request: Request):
        engine = engine_of(request)
        source = engine.add_text(req.text, req.title)
        await engine.save()
        return source

    @app.post("/api/sources/file")
    async def add_file(req: FileRequest, request: Request):
        engine = engine_of(request)
        source = await engine.add_file(req.path)
        await engine.save()
        return source

    @app.delete("/api/sources/{source_id}")
    async def remove_source(source_id: str, request: Request):
        engine_of(request).remove_source(source_id)
        return {"status": "ok"}

    @app.post("/api/sources/{source_id}/activate")
    async def activate_source(source_id: str, request: Request):
        engine_of(request).set_active_source(source_id)
        return {"active_source_id": source_id}

    @app.put("/api/sources/{source_id}/content")
    async def update_source(source_id: str, req: ContentRequest, request: Request):
        return engine_of(request).update_source_content(source_id, req.content)

    @app.delete("/api/url-history")
    async def clear_url_history(request: Request):
        engine = engine_of(request)
        engine.clear_url_history()
        await engine.save()
        return {"status": "ok"}

    # --- Actions ---

    @app.post("/api/actions/translate")
    async def translate(request: Request):
        return await engine_of(request).pipeline.translate()

    @app.post("/api/actions/summarize")
    async def summarize(request: Request):
        return await engine_of(request).pipeline.summarize()

    @app.post("/api/actions/template/{template_id}")
    async def run_template(template_id: str, request: Request):
        return await engine_of(request).run_template(template_id)

    @app.post("/api/actions/question")
    async def ask_question(req: QuestionRequest, request: Request):
        return await engine_of(request).pipeline.ask_question(
            req.question, req.model, follow_up=req.follow_up, selection=req.selection
        )

    @app.post("/api/actions/quick-question")
    async def quick_question(req: TextRequest, request: Request):
        return await engine_of(request).pipeline.quick_question(req.text)

    @app.post("/api/actions/compare-sources")
    async def compare_sources(request: Request):
        return await engine_of(request).pipeline.compare_sources()

    @app.post("/api/actions/compare-models")
    async def compare_models(req: CompareRequest, request: Request):
        return await engine_of(request).pipeline.compare_models(req.question, req.content)

    # --- Notes ---

    @app.post("/api/notes")
    async def add_note(req: TextRequest, request: Request):
        return engine_of(request).pipeline.add_text_note(req.text)

    @app.post("/api/notes/highlight")
    async def add_highlight(req: TextRequest, request: Request):
        return engine_of(request).pipeline.add_highlight(req.text)

    @app.put("/api/notes/{note_id}")
    async def edit_note(note_id: str, req: ContentRequest, request: Request):
        engine_of(request).edit_note(note_id, req.content)
        return {"status": "ok"}

    @app.post("/api/notes/{note_id}/important")
    async def toggle_important(note_id: str, request: Request):
        engine_of(request).notes.toggle_important(note_id)
        return {"status": "ok"}

    @app.post("/api/notes/{note_id}/tags")
    async def add_tag(note_id: str, req: TagRequest, request: Request):
        engine_of(request).notes.add_tag(note_id, req.tag)
        return {"status": "ok"}

    @app.delete("/api/notes/{note_id}/tags/{tag}")
    async def remove_tag(note_id: str, tag: str, request: Request):
        engine_of(request).notes.remove_tag(note_id, tag)
        return {"status": "ok"}

    @app.delete("/api/notes/{note_id}")
    async def delete_note(note_id: str, request: Request):
        engine_of(request).notes.delete(note_id)
        return {"status": "ok"}

    @app.delete("/api/notes")
    async def clear_notes(request: Request):
        engine_of(request).notes.clear()
        return {"status": "ok"}

    @app.post("/api/versions/{version_id}/restore")
    async def restore_version(version_id: str, request: Request):
        return engine_of(request).restore_version(version_id)

    # --- Presets, projects and credentials ---

    @app.post("/api/presets")
    async def add_preset(req: PresetRequest, request: Request):
        engine = engine_of(request)
        preset = engine.add_preset(req.name, req.prompt, req.category)
        await engine.save()
        return preset

    @app.delete("/api/presets/{preset_id}")
    async def remove_preset(preset_id: str, request: Request):
        engine = engine_of(request)
        engine.remove_preset(preset_id)
        await engine.save()
        return {"status": "ok"}

    @app.get("/api/projects")
    async def list_projects(request: Request):
        return engine_of(request).state.projects

    @app.post("/api/projects")
    async def create_project(req: ProjectRequest, request: Request):
        engine = engine_of(request)
        project = engine.create_project(req.name)
        await engine.save()
        return project

    @app.post("/api/projects/{project_id}/switch")
    async def switch_project(project_id: str, request: Request):
        engine = engine_of(request)
        project = engine.switch_project(project_id)
        await engine.save()
        return project

    @app.put("/api/credentials/{model}")
    async def set_credential(model: str, req: CredentialRequest, request: Request):
        engine = engine_of(request)
        engine.set_credential(model, req.api_key)
        await engine.save()
        return engine.models.credential_flags()

    @app.delete("/api/credentials/{model}")
    async def clear_credential(model: str, request: Request):
        engine = engine_of(request)
        engine.clear_credential(model)
        await engine.save()
        return engine.models.credential_flags()

    @app.post("/api/notion/connect")
    async def connect_notion(req: NotionRequest, request: Request):
        await engine_of(request).connect_notion(req.token)
        return {"connected": True}

    @app.post("/api/notion/disconnect")
    async def disconnect_notion(request: Request):
        engine_of(request).disconnect_notion()
        return {"connected": False}

    # --- Session and export ---

    @app.post("/api/session/save")
    async def save_session(request: Request):
        return {"saved": await engine_of(request).save()}

    @app.post("/api/export")
    async def export_notes(req: ExportRequest, request: Request):
        engine = engine_of(request)
        if req.path:
            content = await engine.export_notes(req.path, req.format)
        else:
            content = engine.render_export(req.format)
        return {"format": req.format, "path": req.path, "content": content}

    # --- WebSocket ---

    # Clients watching comparison runs
    connections: list[WebSocket] = []

    async def broadcast(message: dict) -> None:
        """Send a message to every comparison client."""
        for ws in list(connections):
            try:
                await ws.send_json(message)
            except Exception:
                logger.debug("Dropping comparison client after failed send")
                connections.remove(ws)

    async def on_slot(model: str, board: ComparisonBoard) -> None:
        await broadcast({
            "type": "slot",
            "model": model,
            "result": board.results.get(model, ""),
            "failed": board.failed.get(model, False),
        })

    @app.websocket("/ws/compare")
    async def compare_ws(websocket: WebSocket):
        """Run model comparisons and stream each slot as it settles."""
        await websocket.accept()
        connections.append(websocket)
        engine: NoteWorkEngine = websocket.app.state.engine
        try:
            while True:
                data = await websocket.receive_json()
                try:
                    board = await engine.pipeline.compare_models(
                        data.get("question", ""), data.get("content"), listener=on_slot
                    )
                except NoteWorkError as exc:
                    await websocket.send_json({"type": "error", "detail": exc.message})
                    continue
                await broadcast({"type": "done", "board": jsonable_encoder(board)})
        except WebSocketDisconnect:
            if websocket in connections:
                connections.remove(websocket)

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
