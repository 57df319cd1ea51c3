"""Shared fixtures and in-memory fakes for the engine's collaborators."""

import json

import pytest

from notework.errors import ExtractionError, FetchError, MissingCredentialError
from notework.models.source import SourceDescriptor
from notework.orchestrator.engine import NoteWorkEngine
from notework.orchestrator.state import EngineState


class FakeInvoker:
    """Stands in for ModelRegistry; records every call."""

    LABELS = {"claude": "Claude", "openai": "GPT", "gemini": "Gemini"}

    def __init__(self, responses=None, failures=None, keys=None):
        self.responses = dict(responses or {})
        self.failures = dict(failures or {})
        self.keys = dict(keys) if keys is not None else {m: "test-key" for m in self.LABELS}
        self.calls = []

    def has_credential(self, model):
        return bool(self.keys.get(model))

    def configured_models(self):
        return [m for m in self.LABELS if self.has_credential(m)]

    def credential_flags(self):
        return {m: self.has_credential(m) for m in self.LABELS}

    def set_credential(self, model, api_key):
        self.keys[model] = api_key

    def clear_credential(self, model):
        self.keys[model] = ""

    def label(self, model):
        return self.LABELS.get(model, model)

    async def invoke(self, model, content, question):
        self.calls.append((model, content, question))
        if not self.has_credential(model):
            raise MissingCredentialError(self.label(model))
        if model in self.failures:
            raise self.failures[model]
        return self.responses.get(model, f"{model} answer")


class FakeExtractor:
    def __init__(self, texts=None):
        self.texts = dict(texts or {})
        self.calls = []

    async def extract(self, blob_ref, file_type):
        self.calls.append((blob_ref, file_type))
        if blob_ref not in self.texts:
            raise ExtractionError(f"Cannot read {blob_ref}", {"path": blob_ref})
        return self.texts[blob_ref]


class FakeNotion:
    def __init__(self):
        self.token = ""
        self.connected = False

    async def connect(self):
        if not self.token:
            raise FetchError("Set the Notion token first")
        self.connected = True

    def disconnect(self):
        self.connected = False


class FakeUrlResolver:
    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.notion = FakeNotion()

    @property
    def notion_connected(self):
        return self.notion.connected

    async def resolve(self, url):
        if url not in self.pages:
            raise FetchError("HTTP error: 404", {"url": url})
        return self.pages[url]


class MemoryStore:
    """Key/value store that round-trips values through JSON like the database."""

    def __init__(self):
        self.data = {}
        self.fail = False

    async def persist(self, key, value):
        if self.fail:
            raise RuntimeError("disk full")
        self.data[key] = json.loads(json.dumps(value))

    async def load(self, key):
        return self.data.get(key)


@pytest.fixture
def state():
    return EngineState()


@pytest.fixture
def invoker():
    return FakeInvoker()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def urls():
    return FakeUrlResolver(
        {"https://example.com/post": "Title: Example post\n\nSome article text."}
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(store, invoker, urls, extractor):
    return NoteWorkEngine(store, models=invoker, urls=urls, extractor=extractor)


@pytest.fixture
def pipeline(engine):
    return engine.pipeline


@pytest.fixture
def text_source(engine):
    """An active pasted-text source."""
    return engine.sources.add(
        SourceDescriptor(url="manual-input", content="# Photosynthesis\nPlants turn light into sugar.")
    )
