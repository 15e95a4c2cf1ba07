"""Pydantic schemas used as views in the MVC architecture."""

from .analysis import (
    DeleteAccountRequest,
    FeedbackResponse,
    HistoryItem,
    MessageResponse,
)
from .common import ErrorResponse

__all__ = [
    "DeleteAccountRequest",
    "ErrorResponse",
    "FeedbackResponse",
    "HistoryItem",
    "MessageResponse",
]
