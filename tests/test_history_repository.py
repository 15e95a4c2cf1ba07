"""Tests for the SQLAlchemy-backed history repository."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.models import HistoryEntry
from app.services import HistoryRepository, MediaKind, PersistenceError


def test_append_then_list_round_trip(history_repository):
    stored = asyncio.run(
        history_repository.append(
            "user-1", MediaKind.VIDEO, "Nice energy!", ["Hand Movements", "Smiling"]
        )
    )

    records = asyncio.run(history_repository.list_for_user("user-1"))

    assert records == [stored]
    assert stored.kind is MediaKind.VIDEO
    assert stored.tool_suggestions == ("Hand Movements", "Smiling")
    assert stored.timestamp > 0


def test_list_for_unknown_user_is_empty(history_repository):
    assert asyncio.run(history_repository.list_for_user("nobody")) == []


def test_list_orders_by_creation_time_then_id(history_repository, session_factory):
    same_time = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    async def _seed() -> None:
        async with session_factory() as session:
            session.add_all(
                [
                    HistoryEntry(user_id="u", kind="audio", feedback="a", tool_suggestions=[], created_at=same_time),
                    HistoryEntry(user_id="u", kind="audio", feedback="b", tool_suggestions=[], created_at=same_time),
                    HistoryEntry(
                        user_id="u",
                        kind="video",
                        feedback="c",
                        tool_suggestions=[],
                        created_at=datetime(2024, 4, 1, tzinfo=timezone.utc),
                    ),
                ]
            )
            await session.commit()

    asyncio.run(_seed())

    records = asyncio.run(history_repository.list_for_user("u"))

    assert [record.feedback for record in records] == ["b", "a", "c"]


def test_delete_all_returns_removed_count(history_repository):
    for text in ("one", "two"):
        asyncio.run(history_repository.append("user-1", MediaKind.AUDIO, text, []))
    asyncio.run(history_repository.append("user-2", MediaKind.AUDIO, "other", []))

    removed = asyncio.run(history_repository.delete_all_for_user("user-1"))

    assert removed == 2
    assert asyncio.run(history_repository.list_for_user("user-1")) == []
    assert len(asyncio.run(history_repository.list_for_user("user-2"))) == 1


def test_delete_all_for_user_without_history(history_repository):
    assert asyncio.run(history_repository.delete_all_for_user("nobody")) == 0


def test_database_errors_become_persistence_errors():
    class _BrokenSession:
        async def __aenter__(self):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        async def __aexit__(self, *exc_info):
            return False

    repository = HistoryRepository(_BrokenSession)

    with pytest.raises(PersistenceError):
        asyncio.run(repository.list_for_user("user-1"))
    with pytest.raises(PersistenceError):
        asyncio.run(repository.append("user-1", MediaKind.AUDIO, "text", []))
    with pytest.raises(PersistenceError):
        asyncio.run(repository.delete_all_for_user("user-1"))


def test_naive_timestamps_are_treated_as_utc(history_repository):
    record = asyncio.run(history_repository.append("user-1", MediaKind.AUDIO, "text", []))
    naive = record.created_at.replace(tzinfo=None)

    assert replace(record, created_at=naive).timestamp == record.timestamp
