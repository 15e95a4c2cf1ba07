"""Typed containers shared across the analysis pipeline.

Kept apart from the stage modules so `ingestion`, `synthesis` and
`orchestrator` can import them without circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.services.media import MediaKind


class InvalidInputError(ValueError):
    """Raised when a request carries no usable media or no verified user."""


@dataclass(frozen=True)
class AnalysisRequest:
    """Media submitted by one authenticated user for one analysis."""

    data: bytes
    kind: MediaKind
    user_id: str
    content_type: str | None = None
    filename: str | None = None

    def validate(self) -> None:
        if not self.user_id:
            raise InvalidInputError("A verified user identity is required.")
        if not self.data:
            raise InvalidInputError(f"No {self.kind.value} file uploaded.")


__all__ = ["AnalysisRequest", "InvalidInputError"]
