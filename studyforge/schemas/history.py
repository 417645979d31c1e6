"""Pydantic schemas for the topic history and attribution reports."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class HistoryEntry(BaseModel):
    """One row of the merged source/generation timeline."""

    entry_type: Literal["source", "generation"]
    id: str
    title: str
    timestamp: datetime
    status: str
    details: Dict[str, Any] = Field(default_factory=dict)


class SourceStats(BaseModel):
    """A Source plus how many generated items were derived from it.

    ``generated_items_count`` is None when the count could not be computed;
    ``error`` then says why.
    """

    id: str
    kind: str
    source_name: str
    word_count: int = 0
    processing_status: str
    ingested_at: datetime
    document_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    generated_items_count: Optional[int] = 0
    error: Optional[str] = None


class GenerationItemRead(BaseModel):
    id: str
    question_id: str
    item_type: str
    item_title: Optional[str] = None
    difficulty: Optional[str] = None
    derived_from_sources: List[str] = Field(default_factory=list)


class GenerationRecord(BaseModel):
    """A Generation with its items, as shown in the history."""

    id: str
    generation_type: str
    status: str
    source_ids: List[str] = Field(default_factory=list)
    items_generated: int = 0
    breakdown: Dict[str, int] = Field(default_factory=dict)
    ai_model: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    processing_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    items: List[GenerationItemRead] = Field(default_factory=list)


class TopicSummary(BaseModel):
    total_sources: int = 0
    total_generations: int = 0
    total_words: int = 0
    total_generated_items: int = 0


class TopicReport(BaseModel):
    """Aggregate history view of one topic."""

    topic_id: str
    summary: TopicSummary
    timeline: List[HistoryEntry] = Field(default_factory=list)
    sources: List[SourceStats] = Field(default_factory=list)
    generations: List[GenerationRecord] = Field(default_factory=list)
