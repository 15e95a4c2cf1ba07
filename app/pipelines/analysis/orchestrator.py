"""Coordinator for one media analysis request."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from app.services.face_detection import SUPPORTED_VIDEO_EXTENSIONS, VisualSignal
from app.services.history_repository import PersistenceError
from app.services.media import MediaKind, ObjectRef
from app.services.prompt_builder import TOOL_VOCABULARY
from app.services.response_contract import FeedbackResult
from app.services.transcribe import TranscriptionResult

from .context import AnalysisServices
from .flow import AnalysisStage, StageTracker
from .types import AnalysisRequest

logger = logging.getLogger("app.services.analysis_pipeline")
transcript_logger = logging.getLogger("app.logs.transcript")


class AnalysisOrchestrator:
    """Drive storage, recognition, synthesis and history for a recording.

    The stored recording is held by ``MediaStorage.stored_media`` so it is
    deleted on every exit path. Video recordings run transcription and face
    detection concurrently; if either fails the other is cancelled and the
    whole request fails. Video in a container face detection cannot read is
    transcoded to MP4 and held as a second transient object for the duration
    of the face job. History writes are best effort.
    """

    def __init__(
        self,
        services: AnalysisServices,
        *,
        tool_vocabulary: Sequence[str] = TOOL_VOCABULARY,
    ) -> None:
        self._services = services
        self._tool_vocabulary = tuple(tool_vocabulary)

    async def analyze(self, request: AnalysisRequest) -> FeedbackResult:
        request.validate()
        tracker = StageTracker(request.kind, request.user_id)

        try:
            tracker.enter(AnalysisStage.UPLOADING)
            async with self._services.storage.stored_media(request.data, request.kind) as ref:
                try:
                    feedback = await self._process(request, ref, tracker)
                finally:
                    tracker.enter(AnalysisStage.CLEANUP)
        except BaseException as exc:
            tracker.fail(exc)
            raise

        tracker.done()
        return feedback

    async def _process(
        self,
        request: AnalysisRequest,
        ref: ObjectRef,
        tracker: StageTracker,
    ) -> FeedbackResult:
        transcript, signal = await self._recognize(ref, request.data, tracker)
        transcript_logger.info(
            "user=%s | kind=%s | job=%s | text=%s",
            request.user_id,
            request.kind.value,
            transcript.job_name,
            transcript.transcript,
        )

        tracker.enter(AnalysisStage.SYNTHESIZING)
        feedback = await self._services.synthesizer.synthesize(transcript.transcript, signal)
        feedback = self._restrict_tools(feedback, request)

        tracker.enter(AnalysisStage.PERSISTING)
        await self._persist(request, feedback)
        return feedback

    async def _recognize(
        self,
        ref: ObjectRef,
        data: bytes,
        tracker: StageTracker,
    ) -> tuple[TranscriptionResult, VisualSignal | None]:
        if ref.kind is MediaKind.AUDIO:
            tracker.enter(AnalysisStage.TRANSCRIBING)
            return await self._services.transcriber.transcribe(ref), None

        tracker.enter(AnalysisStage.TRANSCRIBING, AnalysisStage.ANALYZING_VISUAL)
        transcription = asyncio.ensure_future(self._services.transcriber.transcribe(ref))
        visual = asyncio.ensure_future(self._analyze_visual(ref, data))
        try:
            transcript, signal = await asyncio.gather(transcription, visual)
        except BaseException:
            # Both jobs must be settled before the recording is deleted.
            for task in (transcription, visual):
                task.cancel()
            await asyncio.gather(transcription, visual, return_exceptions=True)
            raise
        return transcript, signal

    async def _analyze_visual(self, ref: ObjectRef, data: bytes) -> VisualSignal:
        face_detector = self._services.face_detector
        if ref.extension in SUPPORTED_VIDEO_EXTENSIONS:
            return await face_detector.analyze_face(ref)

        mp4_data = await self._services.transcoder.to_mp4(data)
        async with self._services.storage.stored_media(
            mp4_data, MediaKind.VIDEO, extension="mp4"
        ) as mp4_ref:
            return await face_detector.analyze_face(mp4_ref)

    def _restrict_tools(self, feedback: FeedbackResult, request: AnalysisRequest) -> FeedbackResult:
        restricted, dropped = feedback.restricted_to(self._tool_vocabulary)
        if dropped:
            logger.warning(
                "Dropped unknown tool suggestions user=%s kind=%s tools=%s",
                request.user_id,
                request.kind.value,
                dropped,
            )
        return restricted

    async def _persist(self, request: AnalysisRequest, feedback: FeedbackResult) -> None:
        try:
            await self._services.history.append(
                request.user_id,
                request.kind,
                feedback.text_feedback,
                feedback.tool_suggestions,
            )
        except PersistenceError:
            logger.exception(
                "History write failed user=%s kind=%s; returning feedback anyway",
                request.user_id,
                request.kind.value,
            )


__all__ = ["AnalysisOrchestrator"]
