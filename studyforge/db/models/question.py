"""Question model: one generated study artifact in a topic's pool."""

from datetime import datetime, UTC
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import String, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from studyforge.db.base_class import Base


class Question(Base):
    """Generated flashcard, multiple-choice, open-ended or summary payload.

    ``is_saved`` is the only column updated after creation.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    topic_id: Mapped[str] = mapped_column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    item_type: Mapped[str] = mapped_column(String(32))
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON)
    is_saved: Mapped[bool] = mapped_column(Boolean, default=False)
    generation_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("generations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    source_attribution: Mapped[List[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    def __repr__(self):
        return f"<Question(id='{self.id}', item_type='{self.item_type}', is_saved={self.is_saved})>"

    def to_dict(self):
        """Convert model to dict."""
        return {
            **(self.payload or {}),
            "id": self.id,
            "type": self.item_type,
            "is_saved": self.is_saved,
            "generation_id": self.generation_id,
            "source_attribution": list(self.source_attribution or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
