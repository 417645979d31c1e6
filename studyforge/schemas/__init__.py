"""Pydantic schemas for API endpoints and data validation."""

from studyforge.schemas.extracted_content import ExtractedContent
from studyforge.schemas.generation import GenerationResult, ParsedCompletion
from studyforge.schemas.history import HistoryEntry, SourceStats, TopicReport
from studyforge.schemas.raw_input import FileInput, RawInput, TextInput, UrlInput
from studyforge.schemas.source import BatchIngestionResult, SourceRead

__all__ = [
    "BatchIngestionResult",
    "ExtractedContent",
    "FileInput",
    "GenerationResult",
    "HistoryEntry",
    "ParsedCompletion",
    "RawInput",
    "SourceRead",
    "SourceStats",
    "TextInput",
    "TopicReport",
    "UrlInput",
]
