"""Stage map and state tracking for the media analysis pipeline.

One request moves through these states::

    Uploading -> Transcribing (+ AnalyzingVisual for video) -> Synthesizing
              -> Persisting -> Cleanup -> Done

``Failed`` is reachable from every stage; ``Cleanup`` still runs on that path
because the stored object is held by ``MediaStorage.stored_media``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from app.services.media import MediaKind
from app.telemetry import increment_analysis, observe_stage

logger = logging.getLogger("app.services.analysis_pipeline")


class AnalysisStage(str, Enum):
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    ANALYZING_VISUAL = "analyzing_visual"
    SYNTHESIZING = "synthesizing"
    PERSISTING = "persisting"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the analysis pipeline."""

    order: int
    stage: AnalysisStage
    module: str
    summary: str


class AnalysisPipeline:
    """Utility wrapper for documenting the analysis flow."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            AnalysisStage.UPLOADING,
            "app.services.storage",
            "Store the uploaded recording in the media bucket under a fresh key.",
        ),
        PipelineStage(
            2,
            AnalysisStage.TRANSCRIBING,
            "app.services.transcribe / app.services.face_detection",
            "Run the Transcribe job; video also runs Rekognition face detection concurrently, "
            "transcoding to MP4 first when needed.",
        ),
        PipelineStage(
            3,
            AnalysisStage.SYNTHESIZING,
            "app.pipelines.analysis.synthesis",
            "Render the coaching prompt, call Bedrock and validate the JSON contract.",
        ),
        PipelineStage(
            4,
            AnalysisStage.PERSISTING,
            "app.services.history_repository",
            "Append the feedback to the user's history (best effort).",
        ),
        PipelineStage(
            5,
            AnalysisStage.CLEANUP,
            "app.services.storage",
            "Delete the transient recording on every exit path.",
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)


class StageTracker:
    """Record stage transitions of one request in the pipeline log and metrics."""

    def __init__(self, kind: MediaKind, user_id: str) -> None:
        self._kind = kind
        self._user_id = user_id
        self._stage: AnalysisStage | None = None
        self._work_stage: AnalysisStage | None = None
        self._entered_at = time.perf_counter()
        self.history: list[AnalysisStage] = []

    @property
    def stage(self) -> AnalysisStage | None:
        return self._stage

    def enter(self, stage: AnalysisStage, *parallel: AnalysisStage) -> None:
        self._close_current()
        self._stage = stage
        self._entered_at = time.perf_counter()
        self.history.extend((stage, *parallel))
        if stage not in (AnalysisStage.CLEANUP, AnalysisStage.DONE, AnalysisStage.FAILED):
            self._work_stage = stage
        label = "+".join(s.value for s in (stage, *parallel))
        logger.info("kind=%s user=%s stage=%s", self._kind.value, self._user_id, label)

    def done(self) -> None:
        self.enter(AnalysisStage.DONE)
        increment_analysis(self._kind.value, "succeeded")

    def fail(self, exc: BaseException) -> None:
        # Cleanup may follow the failing stage.
        failed_in = self._work_stage.value if self._work_stage else "-"
        self.enter(AnalysisStage.FAILED)
        increment_analysis(self._kind.value, type(exc).__name__)
        logger.error(
            "kind=%s user=%s failed during=%s error=%r",
            self._kind.value,
            self._user_id,
            failed_in,
            exc,
        )

    def _close_current(self) -> None:
        if self._stage is None or self._stage in (AnalysisStage.DONE, AnalysisStage.FAILED):
            return
        observe_stage(self._kind.value, self._stage.value, time.perf_counter() - self._entered_at)


__all__ = ["AnalysisPipeline", "AnalysisStage", "PipelineStage", "StageTracker"]
