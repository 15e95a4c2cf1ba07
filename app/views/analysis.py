"""Pydantic schemas for the analysis, history and account endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.history_repository import HistoryRecord
from app.services.response_contract import FeedbackResult


class FeedbackResponse(BaseModel):
    """Coaching feedback returned by /analyze-audio and /analyze-video."""

    textFeedback: str = Field(..., description="Coaching narrative addressed to the user")
    toolSuggestions: List[str] = Field(
        default_factory=list,
        description="Recommended techniques from the fixed tool vocabulary",
    )

    @classmethod
    def from_result(cls, result: FeedbackResult) -> "FeedbackResponse":
        return cls(
            textFeedback=result.text_feedback,
            toolSuggestions=list(result.tool_suggestions),
        )


class HistoryItem(BaseModel):
    """One stored analysis as shown on the history page."""

    id: str = Field(..., description="History entry identifier")
    userId: str = Field(..., description="Owning user identity")
    type: str = Field(..., description="Recording kind: audio or video")
    feedback: str = Field(..., description="Stored coaching narrative")
    toolSuggestions: List[str] = Field(default_factory=list)
    timestamp: int = Field(..., description="Creation time in seconds since the Unix epoch")

    @classmethod
    def from_record(cls, record: HistoryRecord) -> "HistoryItem":
        return cls(
            id=str(record.id),
            userId=record.user_id,
            type=record.kind.value,
            feedback=record.feedback,
            toolSuggestions=list(record.tool_suggestions),
            timestamp=record.timestamp,
        )


class DeleteAccountRequest(BaseModel):
    """Optional body of /delete-account repeating the caller's identity token."""

    id_token: Optional[str] = Field(default=None, alias="idToken")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    message: str
