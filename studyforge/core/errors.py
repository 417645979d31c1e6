"""Exception taxonomy for ingestion and generation workflows.

Every error carries a ``context`` dict (topic_id, source_id, generation_id, ...)
so callers can log and attribute the failure without parsing messages.
"""

from typing import Any, Dict, Optional


class StudyForgeError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in (context or {}).items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ExtractionError(StudyForgeError):
    """A strategy could not turn the input into text and has no fallback."""


class UnsupportedFormatError(ExtractionError):
    """Legacy binary office formats that must be converted first."""

    def __init__(self, legacy_format: str, modern_format: str, context: Optional[Dict[str, Any]] = None):
        message = (
            f"Legacy {legacy_format} format is not supported. Please save as {modern_format} format "
            f"for full processing. Most Office applications can convert: File -> Save As -> {modern_format} format."
        )
        super().__init__(message, context)
        self.legacy_format = legacy_format
        self.modern_format = modern_format


class ExtractionTimeoutError(StudyForgeError, TimeoutError):
    """A network or transcription call exceeded its bound."""


class UploadError(StudyForgeError):
    """Blob store failure."""


class PersistenceError(StudyForgeError):
    """Relational store write failure, including constraint violations."""


class NotFoundError(StudyForgeError):
    """A requested record does not exist for this principal."""


class NoSourcesError(StudyForgeError):
    """Generation input resolved to zero sources."""


class EmptyIntersectionError(NoSourcesError):
    """None of the requested source ids belong to the topic."""


class GenerationError(StudyForgeError):
    """Completion service failure or malformed response."""


class GenerationStateError(GenerationError):
    """Attempt to change a Generation that already reached a terminal status."""


class CompletionTimeoutError(GenerationError, TimeoutError):
    """The completion service did not answer within its timeout."""


class QuotaError(StudyForgeError):
    """Completion service rate or credit limit; callers should back off."""
