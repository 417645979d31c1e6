"""Pydantic schemas for topics, sources and documents."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class TopicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Topic label sent to the completion service")


class TopicRead(BaseModel):
    id: str
    name: str
    user_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TextSourceCreate(BaseModel):
    text: str = Field(..., description="Pasted text body")
    title: Optional[str] = Field(None, description="Display name for the text source")


class UrlSourceCreate(BaseModel):
    url: str = Field(..., min_length=1, description="Web page or video URL")


class DocumentUpdate(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255, description="New display name")


class SourceRead(BaseModel):
    """A Source as returned by ingestion endpoints."""

    id: str
    topic_id: str
    document_id: Optional[str] = None
    knowledge_base_id: Optional[str] = None
    kind: str
    source_name: str
    original_name: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None
    word_count: int = 0
    processing_status: str
    source_metadata: Dict[str, Any] = Field(default_factory=dict)
    ingested_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FileIngestionOutcome(BaseModel):
    """Per-file result inside a batch upload."""

    filename: str
    success: bool
    source: Optional[SourceRead] = None
    error: Optional[str] = None


class BatchIngestionResult(BaseModel):
    """Outcome of ingesting several files one at a time."""

    results: List[FileIngestionOutcome] = Field(default_factory=list)

    @computed_field
    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)
