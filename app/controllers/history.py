"""Feedback history endpoint."""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from app.controllers.dependencies import CurrentUserIdDep, ServicesDep
from app.services import PersistenceError
from app.views import HistoryItem

router = APIRouter(tags=["history"])

logger = logging.getLogger(__name__)


@router.get("/chat-history", response_model=List[HistoryItem])
async def get_chat_history(user_id: CurrentUserIdDep, services: ServicesDep) -> List[HistoryItem]:
    """Return the caller's stored feedback, newest first."""

    try:
        records = await services.history.list_for_user(user_id)
    except PersistenceError as exc:
        logger.exception("Error fetching chat history user=%s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch chat history.",
        ) from exc

    return [HistoryItem.from_record(record) for record in records]
