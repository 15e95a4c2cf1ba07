"""Amazon Transcribe integration using batch transcription jobs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.services.jobs import JobTimeoutError, wait_for_job
from app.services.media import ObjectRef
from app.services.storage import MediaStorage, StorageError

logger = logging.getLogger(__name__)

_PENDING_STATES = frozenset({"QUEUED", "IN_PROGRESS"})


@dataclass(frozen=True)
class TranscriptionResult:
    """Structured transcription outcome returned to the orchestrator."""

    transcript: str
    job_name: str
    segments: tuple[str, ...] = field(default_factory=tuple)
    language_code: str | None = None


class TranscriptionError(RuntimeError):
    """Raised when Amazon Transcribe fails to process the recording."""


class NoTranscriptError(TranscriptionError):
    """Raised when the recording yields no recognizable speech."""


def join_transcript_segments(document: Mapping[str, Any]) -> tuple[str, ...]:
    """Return the non-empty transcript segments of a Transcribe output document."""

    results = document.get("results") or {}
    segments: list[str] = []
    for item in results.get("transcripts") or []:
        text = str(item.get("transcript", "")).strip() if isinstance(item, Mapping) else ""
        if text:
            segments.append(text)
    return tuple(segments)


class TranscribeService:
    """High-level facade for long-running Amazon Transcribe jobs."""

    def __init__(
        self,
        client: Any,
        storage: MediaStorage,
        *,
        language_code: str = "en-US",
        sample_rate_hz: int = 48000,
        poll_interval: float = 2.0,
        timeout: float = 900.0,
        output_prefix: str = "transcripts",
    ) -> None:
        self._client = client
        self._storage = storage
        self._language_code = language_code
        self._sample_rate_hz = sample_rate_hz
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._output_prefix = output_prefix.strip("/")

    async def transcribe(self, ref: ObjectRef) -> TranscriptionResult:
        """Run a transcription job against ``ref`` and return the joined transcript."""

        job_name = f"fluency-{uuid4().hex}"
        output_key = f"{self._output_prefix}/{job_name}.json"
        try:
            await self._start_job(job_name, ref, output_key)
            job = await self._wait(job_name)
            status = job.get("TranscriptionJobStatus")
            if status == "FAILED":
                reason = job.get("FailureReason") or "unknown reason"
                raise NoTranscriptError(f"Transcription job {job_name} failed: {reason}")

            document = await self._read_output(output_key)
        finally:
            await self._storage.delete_key(output_key)
            await self._forget_job(job_name)

        segments = join_transcript_segments(document)
        transcript = "\n".join(segments)
        if not transcript:
            raise NoTranscriptError(f"Transcription job {job_name} returned no speech.")

        logger.info("Transcription complete job=%s length=%d", job_name, len(transcript))
        return TranscriptionResult(
            transcript=transcript,
            job_name=job_name,
            segments=segments,
            language_code=self._language_code,
        )

    async def _start_job(self, job_name: str, ref: ObjectRef, output_key: str) -> None:
        try:
            await run_in_threadpool(
                self._client.start_transcription_job,
                TranscriptionJobName=job_name,
                LanguageCode=self._language_code,
                MediaFormat=ref.extension,
                MediaSampleRateHertz=self._sample_rate_hz,
                Media={"MediaFileUri": ref.uri},
                OutputBucketName=ref.bucket,
                OutputKey=output_key,
            )
        except (BotoCoreError, ClientError) as exc:
            raise TranscriptionError(f"Could not start transcription job: {exc}") from exc
        logger.info("Started transcription job=%s media=%s", job_name, ref.uri)

    async def _wait(self, job_name: str) -> Mapping[str, Any]:
        def _fetch() -> Mapping[str, Any]:
            response = self._client.get_transcription_job(TranscriptionJobName=job_name)
            return response.get("TranscriptionJob", {})

        try:
            return await wait_for_job(
                _fetch,
                lambda job: str(job.get("TranscriptionJobStatus", "")),
                pending_states=_PENDING_STATES,
                poll_interval=self._poll_interval,
                timeout=self._timeout,
                description=f"Transcription job {job_name}",
            )
        except JobTimeoutError as exc:
            raise TranscriptionError(str(exc)) from exc
        except (BotoCoreError, ClientError) as exc:
            raise TranscriptionError(f"Polling transcription job failed: {exc}") from exc

    async def _read_output(self, output_key: str) -> Mapping[str, Any]:
        try:
            raw = await self._storage.read_bytes(output_key)
        except StorageError as exc:
            raise TranscriptionError(str(exc)) from exc
        try:
            document = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TranscriptionError(f"Transcript document is not valid JSON: {exc}") from exc
        if not isinstance(document, Mapping):
            raise TranscriptionError("Transcript document has an unexpected shape.")
        return document

    async def _forget_job(self, job_name: str) -> None:
        try:
            await run_in_threadpool(
                self._client.delete_transcription_job,
                TranscriptionJobName=job_name,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Could not delete transcription job=%s: %s", job_name, exc)


__all__ = [
    "NoTranscriptError",
    "TranscribeService",
    "TranscriptionError",
    "TranscriptionResult",
    "join_transcript_segments",
]
