"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.pipelines.analysis import AnalysisOrchestrator, AnalysisServices
from app.utils import AuthenticationError, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Verify the bearer identity token and return the user id it names."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized()
    try:
        payload = decode_access_token(credentials.credentials)
    except AuthenticationError:
        raise _unauthorized() from None

    request.state.user_id = payload.sub
    return payload.sub


def get_analysis_services(request: Request) -> AnalysisServices:
    """Return the service container created at application startup."""

    services = getattr(request.app.state, "analysis_services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analysis services are not initialised",
        )
    return services


CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]
ServicesDep = Annotated[AnalysisServices, Depends(get_analysis_services)]


def get_orchestrator(services: ServicesDep) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(services)


OrchestratorDep = Annotated[AnalysisOrchestrator, Depends(get_orchestrator)]


__all__ = [
    "bearer_scheme",
    "get_analysis_services",
    "get_current_user_id",
    "get_orchestrator",
    "CurrentUserIdDep",
    "OrchestratorDep",
    "ServicesDep",
]
