"""Feedback synthesis stage: prompt, LLM call and contract validation."""

from __future__ import annotations

import logging
from typing import Protocol

from app.services.face_detection import VisualSignal
from app.services.media import MediaKind
from app.services.prompt_builder import PromptContext, build_feedback_prompt
from app.services.response_contract import FeedbackResult, SynthesisFormatError

logger = logging.getLogger("app.services.analysis_pipeline")


class TextGenerator(Protocol):
    async def invoke(self, prompt: str, *, max_tokens: int | None = None) -> str: ...


def _truncate(value: str, max_length: int = 500) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


class FeedbackSynthesizer:
    """Turn a transcript (and optional visual signal) into structured feedback."""

    def __init__(self, llm: TextGenerator, *, max_tokens: int = 1024) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    async def synthesize(
        self,
        transcript: str,
        visual_signal: VisualSignal | None = None,
    ) -> FeedbackResult:
        """Build the prompt, call the model once and parse its answer strictly.

        A visual signal selects the video variant of the prompt; without one
        the audio variant is used.
        """

        kind = MediaKind.VIDEO if visual_signal is not None else MediaKind.AUDIO
        bundle = build_feedback_prompt(
            PromptContext(kind=kind, transcript=transcript, visual_signal=visual_signal)
        )
        logger.debug("Feedback prompt kind=%s\n%s", kind.value, _truncate(bundle.prompt))

        raw_response = await self._llm.invoke(bundle.prompt, max_tokens=self._max_tokens)
        logger.info("Raw LLM response kind=%s: %s", kind.value, _truncate(raw_response))

        try:
            return FeedbackResult.from_json(raw_response)
        except SynthesisFormatError as exc:
            logger.warning(
                "LLM broke the feedback contract kind=%s reason=%s: %s",
                kind.value,
                exc.reason,
                exc,
            )
            raise


__all__ = ["FeedbackSynthesizer", "TextGenerator"]
