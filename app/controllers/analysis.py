"""Media analysis endpoints.

For a stage-by-stage map see `app.pipelines.analysis.flow.AnalysisPipeline`.
Both POST routes:

1. Verify the bearer identity token and read the multipart upload.
2. Hand an `AnalysisRequest` to the `AnalysisOrchestrator`.
3. Translate pipeline errors into HTTP responses.
"""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from app.config.settings import settings
from app.controllers.dependencies import CurrentUserIdDep, OrchestratorDep
from app.pipelines.analysis import (
    AnalysisOrchestrator,
    AnalysisPipeline,
    InvalidInputError,
    UploadTooLargeError,
    read_upload,
)
from app.services import MediaKind, NoTranscriptError
from app.views import ErrorResponse, FeedbackResponse

router = APIRouter(tags=["analysis"])

logger = logging.getLogger(__name__)

PIPELINE_STAGES = tuple(AnalysisPipeline.describe())
"""Ordered pipeline metadata used for quick reference and debugging."""

_AUDIO_FILE_UPLOAD = File(default=None, alias="audioFile")
_VIDEO_FILE_UPLOAD = File(default=None, alias="videoFile")

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

_NO_TRANSCRIPT_DETAIL = {
    MediaKind.AUDIO: "Could not transcribe audio.",
    MediaKind.VIDEO: "Could not transcribe audio from video.",
}


async def _run_analysis(
    upload: UploadFile | None,
    kind: MediaKind,
    user_id: str,
    orchestrator: AnalysisOrchestrator,
) -> FeedbackResponse:
    try:
        request = await read_upload(
            upload,
            kind=kind,
            user_id=user_id,
            max_bytes=settings.max_upload_bytes,
        )
    except UploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except InvalidInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        result = await orchestrator.analyze(request)
    except NoTranscriptError as exc:
        logger.warning("No transcript kind=%s user=%s: %s", kind.value, user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_NO_TRANSCRIPT_DETAIL[kind],
        ) from exc
    except Exception as exc:
        logger.exception("Error during %s analysis user=%s", kind.value, user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to analyze {kind.value}. Check server logs.",
        ) from exc

    return FeedbackResponse.from_result(result)


@router.post("/analyze-audio", response_model=FeedbackResponse, responses=_ERROR_RESPONSES)
async def analyze_audio(
    user_id: CurrentUserIdDep,
    orchestrator: OrchestratorDep,
    audio_file: UploadFile | None = _AUDIO_FILE_UPLOAD,
) -> FeedbackResponse:
    """Transcribe an uploaded recording and return coaching feedback."""

    return await _run_analysis(audio_file, MediaKind.AUDIO, user_id, orchestrator)


@router.post("/analyze-video", response_model=FeedbackResponse, responses=_ERROR_RESPONSES)
async def analyze_video(
    user_id: CurrentUserIdDep,
    orchestrator: OrchestratorDep,
    video_file: UploadFile | None = _VIDEO_FILE_UPLOAD,
) -> FeedbackResponse:
    """Transcribe and face-check an uploaded video, then return unified feedback."""

    return await _run_analysis(video_file, MediaKind.VIDEO, user_id, orchestrator)
