"""Account deletion endpoint.

Removing the identity itself belongs to the identity provider; this service
owns the user's history and purges it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, HTTPException, status

from app.controllers.dependencies import CurrentUserIdDep, ServicesDep
from app.services import PersistenceError
from app.utils import AuthenticationError, decode_access_token
from app.views import DeleteAccountRequest, MessageResponse

router = APIRouter(tags=["account"])

logger = logging.getLogger(__name__)

_DELETE_ACCOUNT_BODY = Body(default=None)


@router.post("/delete-account", response_model=MessageResponse)
async def delete_account(
    user_id: CurrentUserIdDep,
    services: ServicesDep,
    payload: Optional[DeleteAccountRequest] = _DELETE_ACCOUNT_BODY,
) -> MessageResponse:
    """Delete every history entry owned by the caller."""

    if payload is not None and payload.id_token:
        try:
            body_identity = decode_access_token(payload.id_token)
        except AuthenticationError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
            ) from None
        if body_identity.sub != user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token in body does not match the authenticated user",
            )

    try:
        removed = await services.history.delete_all_for_user(user_id)
    except PersistenceError as exc:
        logger.exception("Error deleting account user=%s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete account.",
        ) from exc

    logger.info("Account data deleted user=%s entries=%d", user_id, removed)
    return MessageResponse(message="Account and all associated history deleted successfully.")
