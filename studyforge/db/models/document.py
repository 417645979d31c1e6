"""Document model for raw ingested content."""

from datetime import datetime, UTC
from typing import Any, Dict, Optional
import uuid

from sqlalchemy import String, Integer, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from studyforge.db.base_class import Base


class Document(Base):
    """Raw-content record for one ingestion.

    ``storage_path`` is only set when a binary blob was uploaded; text, web and
    video ingestions store no blob.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    topic_id: Mapped[str] = mapped_column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    filename: Mapped[str] = mapped_column(String(512))
    storage_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    size_bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    document_metadata: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    def __repr__(self):
        return f"<Document(id='{self.id}', filename='{self.filename}')>"

    def to_dict(self):
        """Convert model to dict."""
        return {
            "id": self.id,
            "topic_id": self.topic_id,
            "user_id": self.user_id,
            "filename": self.filename,
            "storage_path": self.storage_path,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "metadata": self.document_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
