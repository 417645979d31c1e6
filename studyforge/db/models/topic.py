"""Topic model grouping sources, generations and questions."""

from datetime import datetime, UTC
import uuid

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from studyforge.db.base_class import Base


class Topic(Base):
    """A study topic owned by one principal."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True),
                                                 default=lambda: datetime.now(UTC),
                                                 onupdate=lambda: datetime.now(UTC))

    def __repr__(self):
        return f"<Topic(id='{self.id}', name='{self.name}')>"

    def to_dict(self):
        """Convert model to dict."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
