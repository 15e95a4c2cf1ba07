"""SQLAlchemy models for the fluency coach backend."""

from .base import Base
from .history import HistoryEntry  # noqa: F401

__all__ = ["Base", "HistoryEntry"]
