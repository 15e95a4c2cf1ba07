"""Pydantic models for validating LLM JSON responses.

The feedback model must answer with exactly one JSON object holding
``textFeedback`` and ``toolSuggestions``. Anything else is rejected; the
pipeline never repairs or re-requests malformed output.
"""

from __future__ import annotations

import json
from typing import List, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class SynthesisFormatError(RuntimeError):
    """Raised when the LLM output does not honour the feedback contract."""

    def __init__(self, message: str, *, reason: Literal["not_json", "wrong_shape"]) -> None:
        super().__init__(message)
        self.reason = reason


class FeedbackResult(BaseModel):
    """Coaching narrative plus the recommended tools.

    Only the wire names ``textFeedback`` and ``toolSuggestions`` are accepted.
    The narrative is returned and stored with surrounding whitespace stripped.
    """

    text_feedback: str = Field(alias="textFeedback")
    tool_suggestions: List[str] = Field(alias="toolSuggestions")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("text_feedback")
    @classmethod
    def require_text(cls, value: str) -> str:
        """Reject blank narratives; surrounding whitespace is stripped before use."""

        if not value.strip():
            raise ValueError("textFeedback must not be blank")
        return value.strip()

    @field_validator("tool_suggestions")
    @classmethod
    def strip_names(cls, value: List[str]) -> List[str]:
        return [name.strip() for name in value]

    @classmethod
    def from_json(cls, payload: str) -> "FeedbackResult":
        """Parse raw model text, raising ``SynthesisFormatError`` on any deviation."""

        try:
            data = json.loads(payload.strip())
        except (json.JSONDecodeError, AttributeError) as exc:
            raise SynthesisFormatError(
                f"LLM output is not a JSON document: {exc}", reason="not_json"
            ) from exc

        if not isinstance(data, dict):
            raise SynthesisFormatError(
                "LLM output must be a JSON object.", reason="wrong_shape"
            )
        try:
            return cls.model_validate(data, strict=True)
        except ValidationError as exc:
            raise SynthesisFormatError(
                f"LLM output has the wrong shape: {exc.error_count()} error(s)",
                reason="wrong_shape",
            ) from exc

    def restricted_to(self, vocabulary: Sequence[str]) -> tuple["FeedbackResult", list[str]]:
        """Keep only known tools, deduplicated and in vocabulary order; also return the dropped names."""

        suggested = set(self.tool_suggestions)
        kept = [name for name in vocabulary if name in suggested]
        dropped = [name for name in self.tool_suggestions if name not in vocabulary]
        return self.model_copy(update={"tool_suggestions": kept}), dropped

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


__all__ = ["FeedbackResult", "SynthesisFormatError"]
