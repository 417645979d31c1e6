"""Knowledge base entries holding durable extracted text."""

from datetime import datetime, UTC
from typing import Any, Dict, Optional
import uuid

from sqlalchemy import String, Text, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from studyforge.db.base_class import Base


class KnowledgeBaseEntry(Base):
    """Normalized extracted text; written once per ingestion and never mutated."""

    __tablename__ = "knowledge_base"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    topic_id: Mapped[str] = mapped_column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    document_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=True, index=True
    )
    kind: Mapped[str] = mapped_column(String(32))
    source_label: Mapped[str] = mapped_column(String(512))
    text: Mapped[str] = mapped_column(Text)
    entry_metadata: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    def __repr__(self):
        return f"<KnowledgeBaseEntry(id='{self.id}', kind='{self.kind}', source_label='{self.source_label}')>"
