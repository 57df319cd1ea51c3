"""
Exception hierarchy for NoteWork.

Every error raised by the engine derives from NoteWorkError so the API layer
can map whole families to status codes.
"""

from __future__ import annotations


class NoteWorkError(Exception):
    """Base exception for all NoteWork errors."""

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# --- Validation: missing or empty input, reported inline, never retried ---


class ValidationError(NoteWorkError):
    """Input is missing or empty."""


class EmptyContentError(ValidationError):
    """A source or action was given blank content."""


class NoActiveSourceError(ValidationError):
    """The action needs an active source and none is selected."""

    def __init__(self) -> None:
        super().__init__("Load or select a source first")


class EmptyQuestionError(ValidationError):
    """A question action was given a blank question."""

    def __init__(self) -> None:
        super().__init__("Enter a question first")


class NoContextError(ValidationError):
    """No note exists yet for the active source."""

    def __init__(self, source_id: str | None) -> None:
        super().__init__(
            "Run a translation, summary or template analysis on this source first",
            {"source_id": source_id},
        )


class NoContentError(ValidationError):
    """A source has neither text content nor a file to extract from."""

    def __init__(self, source_id: str) -> None:
        super().__init__("Source has no content", {"source_id": source_id})


class UnknownSourceError(ValidationError):
    """A source id does not name a loaded source."""

    def __init__(self, source_id: str) -> None:
        super().__init__(f"Unknown source: {source_id}", {"source_id": source_id})


class InsufficientSourcesError(ValidationError):
    """Source comparison needs at least two sources."""

    def __init__(self, count: int, required: int = 2) -> None:
        super().__init__(
            f"Need at least {required} sources to compare (have {count})",
            {"count": count, "required": required},
        )


# --- Credentials ---


class CredentialError(NoteWorkError):
    """A model credential is not configured."""


class MissingCredentialError(CredentialError):
    """The named model has no API key configured."""

    def __init__(self, model: str) -> None:
        super().__init__(f"Set the {model} API key first", {"model": model})
        self.model = model


# --- Provider and content acquisition failures, surfaced verbatim ---


class ProviderError(NoteWorkError):
    """An AI provider call failed."""

    def __init__(self, model: str, detail: str) -> None:
        super().__init__(f"{model}: {detail}", {"model": model})
        self.model = model
        self.detail = detail


class AcquisitionError(NoteWorkError):
    """Fetching or extracting source content failed."""


class FetchError(AcquisitionError):
    """A URL could not be resolved to text."""


class ExtractionError(AcquisitionError):
    """Text could not be extracted from a file."""
