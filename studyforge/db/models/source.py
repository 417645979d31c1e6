"""Source model: the provenance unit a generation can be attributed to."""

from datetime import datetime, UTC
from typing import Any, Dict, Optional
import uuid

from sqlalchemy import String, Integer, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from studyforge.core.constants import PROCESSING_STATUS_PROCESSING
from studyforge.db.base_class import Base


class Source(Base):
    """One unit of ingested content, independent of how it is stored."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    topic_id: Mapped[str] = mapped_column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    document_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=True, index=True
    )
    knowledge_base_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("knowledge_base.id", ondelete="SET NULL"), nullable=True
    )

    kind: Mapped[str] = mapped_column(String(32), index=True)
    source_name: Mapped[str] = mapped_column(String(512))
    original_name: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    size_bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, default=0)
    processing_status: Mapped[str] = mapped_column(String(20), default=PROCESSING_STATUS_PROCESSING)
    source_metadata: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), index=True
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Source(id='{self.id}', kind='{self.kind}', source_name='{self.source_name}')>"

    def to_dict(self):
        """Convert model to dict."""
        return {
            "id": self.id,
            "topic_id": self.topic_id,
            "document_id": self.document_id,
            "knowledge_base_id": self.knowledge_base_id,
            "kind": self.kind,
            "source_name": self.source_name,
            "original_name": self.original_name,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "word_count": self.word_count,
            "processing_status": self.processing_status,
            "metadata": self.source_metadata,
            "ingested_at": self.ingested_at.isoformat() if self.ingested_at else None,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }
