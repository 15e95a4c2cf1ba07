"""Amazon Rekognition Video face detection used as a coarse tension signal."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.services.jobs import JobTimeoutError, wait_for_job
from app.services.media import ObjectRef

logger = logging.getLogger(__name__)

_PENDING_STATES = frozenset({"IN_PROGRESS"})
_FIRST_PAGE_SIZE = 100
# Rekognition Video only reads H.264 in these containers.
SUPPORTED_VIDEO_EXTENSIONS = frozenset({"mp4", "mov"})


class VisualSignal(str, Enum):
    """Categorical outcome of the visual analysis."""

    TENSION_DETECTED = "tension-detected"
    NO_SIGNAL = "no-signal"


class VisualAnalysisError(RuntimeError):
    """Raised when the face detection job cannot be completed."""


def signal_from_result(result: Mapping[str, Any]) -> VisualSignal:
    """Map the first page of a face detection result to a ``VisualSignal``."""

    faces = result.get("Faces")
    if isinstance(faces, list) and len(faces) > 0:
        return VisualSignal.TENSION_DETECTED
    return VisualSignal.NO_SIGNAL


class FaceDetectionService:
    """Submit face detection jobs and reduce them to a ``VisualSignal``."""

    def __init__(
        self,
        client: Any,
        *,
        poll_interval: float = 2.0,
        timeout: float = 900.0,
    ) -> None:
        self._client = client
        self._poll_interval = poll_interval
        self._timeout = timeout

    async def analyze_face(self, ref: ObjectRef) -> VisualSignal:
        job_id = await self._start_job(ref)

        def _fetch() -> Mapping[str, Any]:
            return self._client.get_face_detection(JobId=job_id, MaxResults=_FIRST_PAGE_SIZE)

        try:
            result = await wait_for_job(
                _fetch,
                lambda payload: str(payload.get("JobStatus", "")),
                pending_states=_PENDING_STATES,
                poll_interval=self._poll_interval,
                timeout=self._timeout,
                description=f"Face detection job {job_id}",
            )
        except JobTimeoutError as exc:
            raise VisualAnalysisError(str(exc)) from exc
        except (BotoCoreError, ClientError) as exc:
            raise VisualAnalysisError(f"Polling face detection job failed: {exc}") from exc

        if result.get("JobStatus") != "SUCCEEDED":
            message = result.get("StatusMessage") or "unknown reason"
            raise VisualAnalysisError(f"Face detection job {job_id} failed: {message}")

        signal = signal_from_result(result)
        logger.info("Face detection complete job=%s signal=%s", job_id, signal.value)
        return signal

    async def _start_job(self, ref: ObjectRef) -> str:
        try:
            response = await run_in_threadpool(
                self._client.start_face_detection,
                Video={"S3Object": {"Bucket": ref.bucket, "Name": ref.key}},
                FaceAttributes="DEFAULT",
            )
        except (BotoCoreError, ClientError) as exc:
            raise VisualAnalysisError(f"Could not start face detection job: {exc}") from exc

        job_id = response.get("JobId")
        if not job_id:
            raise VisualAnalysisError("Face detection did not return a job id.")
        logger.info("Started face detection job=%s media=%s", job_id, ref.uri)
        return job_id


__all__ = [
    "FaceDetectionService",
    "SUPPORTED_VIDEO_EXTENSIONS",
    "VisualAnalysisError",
    "VisualSignal",
    "signal_from_result",
]
