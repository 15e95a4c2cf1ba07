"""Tests for /chat-history and /delete-account."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from app.models import HistoryEntry
from app.services import MediaKind, PersistenceError
from app.utils import create_access_token
from conftest import auth_headers


def _seed(session_factory, *entries: HistoryEntry) -> None:
    async def _insert() -> None:
        async with session_factory() as session:
            session.add_all(entries)
            await session.commit()

    asyncio.run(_insert())


def _entry(user_id: str, feedback: str, created_at: datetime, kind: str = "audio") -> HistoryEntry:
    return HistoryEntry(
        user_id=user_id,
        kind=kind,
        feedback=feedback,
        tool_suggestions=["Smiling"],
        created_at=created_at,
    )


def test_chat_history_is_empty_for_new_user(client):
    response = client.get("/chat-history", headers=auth_headers("fresh-user"))

    assert response.status_code == 200
    assert response.json() == []


def test_chat_history_requires_token(client):
    response = client.get("/chat-history")

    assert response.status_code == 401


def test_chat_history_lists_newest_first_and_only_own_entries(client, session_factory):
    _seed(
        session_factory,
        _entry("user-123", "older", datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)),
        _entry("user-123", "newer", datetime(2024, 3, 2, 9, 0, tzinfo=timezone.utc), "video"),
        _entry("someone-else", "not mine", datetime(2024, 3, 3, 9, 0, tzinfo=timezone.utc)),
    )

    response = client.get("/chat-history", headers=auth_headers())

    assert response.status_code == 200
    body = response.json()
    assert [item["feedback"] for item in body] == ["newer", "older"]
    assert body[0]["type"] == "video"
    assert body[0]["userId"] == "user-123"
    assert body[0]["toolSuggestions"] == ["Smiling"]
    assert body[0]["timestamp"] == int(datetime(2024, 3, 2, 9, 0, tzinfo=timezone.utc).timestamp())
    assert isinstance(body[0]["id"], str)


def test_analysis_result_shows_up_in_history(client):
    analyzed = client.post(
        "/analyze-audio",
        headers=auth_headers(),
        files={"audioFile": ("recording.webm", b"payload", "audio/webm")},
    )
    assert analyzed.status_code == 200

    history = client.get("/api/chat-history", headers=auth_headers()).json()

    assert len(history) == 1
    assert history[0]["feedback"] == analyzed.json()["textFeedback"]
    assert history[0]["toolSuggestions"] == analyzed.json()["toolSuggestions"]
    assert history[0]["type"] == "audio"


def test_chat_history_store_failure_returns_500(client, services, monkeypatch):
    async def _broken(user_id: str):
        raise PersistenceError("database unavailable")

    monkeypatch.setattr(services.history, "list_for_user", _broken)

    response = client.get("/chat-history", headers=auth_headers())

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to fetch chat history."


def test_delete_account_purges_only_callers_history(client, session_factory, history_repository):
    now = datetime.now(timezone.utc)
    _seed(
        session_factory,
        _entry("user-123", "first", now),
        _entry("user-123", "second", now),
        _entry("someone-else", "kept", now),
    )

    response = client.post("/delete-account", headers=auth_headers())

    assert response.status_code == 200
    assert response.json() == {
        "message": "Account and all associated history deleted successfully."
    }
    assert asyncio.run(history_repository.list_for_user("user-123")) == []
    remaining = asyncio.run(history_repository.list_for_user("someone-else"))
    assert [record.feedback for record in remaining] == ["kept"]

    after = client.get("/chat-history", headers=auth_headers())
    assert after.json() == []


def test_delete_account_with_matching_body_token(client, history_repository):
    asyncio.run(history_repository.append("user-123", MediaKind.AUDIO, "hello", ["Smiling"]))

    response = client.post(
        "/delete-account",
        headers=auth_headers(),
        json={"idToken": create_access_token("user-123")},
    )

    assert response.status_code == 200
    assert asyncio.run(history_repository.list_for_user("user-123")) == []


def test_delete_account_rejects_mismatched_body_token(client, history_repository):
    asyncio.run(history_repository.append("user-123", MediaKind.AUDIO, "hello", ["Smiling"]))

    response = client.post(
        "/delete-account",
        headers=auth_headers(),
        json={"idToken": create_access_token("intruder")},
    )

    assert response.status_code == 401
    assert len(asyncio.run(history_repository.list_for_user("user-123"))) == 1


def test_delete_account_requires_token(client):
    response = client.post("/delete-account")

    assert response.status_code == 401


def test_delete_account_store_failure_returns_500(client, services, monkeypatch):
    async def _broken(user_id: str) -> int:
        raise PersistenceError("database unavailable")

    monkeypatch.setattr(services.history, "delete_all_for_user", _broken)

    response = client.post("/delete-account", headers=auth_headers())

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to delete account."
