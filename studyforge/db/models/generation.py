"""Generation run, generated-item and attribution models."""

from datetime import datetime, UTC
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import String, Integer, Text, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyforge.core.constants import GENERATION_STATUS_PROCESSING, TERMINAL_GENERATION_STATUSES
from studyforge.db.base_class import Base


class Generation(Base):
    """One completion-service run against a resolved set of sources."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    topic_id: Mapped[str] = mapped_column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    generation_type: Mapped[str] = mapped_column(String(32))
    ai_model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Resolved, validated source ids actually used as input
    source_ids: Mapped[List[str]] = mapped_column(JSON, default=list)

    status: Mapped[str] = mapped_column(String(20), default=GENERATION_STATUS_PROCESSING, index=True)
    items_generated: Mapped[int] = mapped_column(Integer, default=0)
    breakdown: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    processing_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    items: Mapped[List["GenerationItem"]] = relationship(
        "GenerationItem",
        back_populates="generation",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="GenerationItem.created_at",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_GENERATION_STATUSES

    def __repr__(self):
        return f"<Generation(id='{self.id}', type='{self.generation_type}', status='{self.status}')>"

    def to_dict(self):
        """Convert model to dict."""
        return {
            "id": self.id,
            "topic_id": self.topic_id,
            "generation_type": self.generation_type,
            "ai_model": self.ai_model,
            "source_ids": list(self.source_ids or []),
            "status": self.status,
            "items_generated": self.items_generated,
            "breakdown": self.breakdown,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "processing_time_ms": self.processing_time_ms,
        }


class GenerationItem(Base):
    """Links one generated Question to its Generation and contributing Sources."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    generation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("generations.id", ondelete="CASCADE"), index=True
    )
    question_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("questions.id", ondelete="CASCADE"), index=True, unique=True
    )
    item_type: Mapped[str] = mapped_column(String(32))
    item_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    difficulty: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    generation: Mapped["Generation"] = relationship("Generation", back_populates="items")
    source_links: Mapped[List["GenerationItemSource"]] = relationship(
        "GenerationItemSource",
        back_populates="generation_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def derived_from_sources(self) -> List[str]:
        return [link.source_id for link in self.source_links]

    def __repr__(self):
        return f"<GenerationItem(id='{self.id}', item_type='{self.item_type}')>"

    def to_dict(self):
        """Convert model to dict."""
        return {
            "id": self.id,
            "generation_id": self.generation_id,
            "question_id": self.question_id,
            "item_type": self.item_type,
            "item_title": self.item_title,
            "difficulty": self.difficulty,
            "derived_from_sources": self.derived_from_sources,
        }


class GenerationItemSource(Base):
    """Join table expressing GenerationItem.derived_from_sources with foreign keys."""

    generation_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("generation_items.id", ondelete="CASCADE"), primary_key=True
    )
    source_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sources.id", ondelete="CASCADE"), primary_key=True, index=True
    )

    generation_item: Mapped["GenerationItem"] = relationship("GenerationItem", back_populates="source_links")
