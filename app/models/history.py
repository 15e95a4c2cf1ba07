"""SQLAlchemy model for persisted coaching feedback."""

from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text, func

from app.models.base import Base


class HistoryEntry(Base):
    """One completed analysis, owned by a user identity."""

    __tablename__ = "history_entries"
    __table_args__ = (
        Index("ix_history_entries_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    kind = Column(String(16), nullable=False)
    feedback = Column(Text, nullable=False)
    tool_suggestions = Column(JSON, nullable=False, default=list)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


__all__ = ["HistoryEntry"]
