"""Persistence helpers for the per-user feedback history."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.history import HistoryEntry
from app.services.media import MediaKind

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Raised when the history store cannot be read or written."""


@dataclass(frozen=True)
class HistoryRecord:
    """Immutable view of a stored history entry."""

    id: int
    user_id: str
    kind: MediaKind
    feedback: str
    tool_suggestions: tuple[str, ...]
    created_at: datetime

    @property
    def timestamp(self) -> int:
        """Creation time as whole seconds since the Unix epoch."""

        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return int(created.timestamp())

    @classmethod
    def from_row(cls, row: HistoryEntry) -> "HistoryRecord":
        return cls(
            id=row.id,
            user_id=row.user_id,
            kind=MediaKind(row.kind),
            feedback=row.feedback,
            tool_suggestions=tuple(row.tool_suggestions or ()),
            created_at=row.created_at,
        )


class HistoryRepository:
    """Append, list and purge history entries through an async session factory."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(
        self,
        user_id: str,
        kind: MediaKind,
        feedback: str,
        tool_suggestions: Sequence[str],
    ) -> HistoryRecord:
        row = HistoryEntry(
            user_id=user_id,
            kind=kind.value,
            feedback=feedback,
            tool_suggestions=list(tool_suggestions),
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
                return HistoryRecord.from_row(row)
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceError(f"Failed to append history for user={user_id}: {exc}") from exc

    async def list_for_user(self, user_id: str) -> list[HistoryRecord]:
        """Return the user's entries, newest first; empty when there are none."""

        query = (
            select(HistoryEntry)
            .where(HistoryEntry.user_id == user_id)
            .order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceError(f"Failed to read history for user={user_id}: {exc}") from exc
        return [HistoryRecord.from_row(row) for row in rows]

    async def delete_all_for_user(self, user_id: str) -> int:
        """Remove every entry owned by ``user_id`` in one transaction."""

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(HistoryEntry).where(HistoryEntry.user_id == user_id)
                )
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise PersistenceError(f"Failed to delete history for user={user_id}: {exc}") from exc

        removed = result.rowcount or 0
        logger.info("Deleted %d history entries for user=%s", removed, user_id)
        return removed


__all__ = ["HistoryRecord", "HistoryRepository", "PersistenceError"]
