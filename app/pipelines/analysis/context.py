"""Service container handed to the analysis orchestrator.

All external clients are created once at startup by ``build_analysis_services``
and passed around explicitly, so tests can swap any adapter for a fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from app.config.settings import Settings
from app.services.aws import create_boto3_client
from app.services.face_detection import FaceDetectionService
from app.services.history_repository import HistoryRepository
from app.services.llm_client import BedrockLlmClient, create_bedrock_runtime
from app.services.media import MediaKind
from app.services.storage import MediaStorage
from app.services.transcribe import TranscribeService
from app.services.transcode import VideoTranscoder

from .synthesis import FeedbackSynthesizer


@dataclass(frozen=True)
class AnalysisServices:
    storage: MediaStorage
    transcriber: TranscribeService
    face_detector: FaceDetectionService
    transcoder: VideoTranscoder
    synthesizer: FeedbackSynthesizer
    history: HistoryRepository


def build_analysis_services(
    config: Settings,
    session_factory: Callable[[], Any],
) -> AnalysisServices:
    """Create the AWS-backed adapters from one resolved settings object."""

    storage = MediaStorage(
        create_boto3_client("s3", region_name=config.s3.region),
        config.s3.bucket_name,
        key_prefix=config.s3.key_prefix,
        extensions={
            MediaKind.AUDIO: config.s3.audio_extension,
            MediaKind.VIDEO: config.s3.video_extension,
        },
    )
    transcriber = TranscribeService(
        create_boto3_client(
            "transcribe",
            region_name=config.transcribe.region or config.s3.region,
        ),
        storage,
        language_code=config.transcribe.language_code,
        sample_rate_hz=config.transcribe.sample_rate_hz,
        poll_interval=config.transcribe.poll_interval_seconds,
        timeout=config.transcribe.job_timeout_seconds,
    )
    face_detector = FaceDetectionService(
        create_boto3_client(
            "rekognition",
            region_name=config.rekognition.region or config.s3.region,
        ),
        poll_interval=config.rekognition.poll_interval_seconds,
        timeout=config.rekognition.job_timeout_seconds,
    )
    transcoder = VideoTranscoder(
        config.rekognition.ffmpeg_binary,
        timeout=config.rekognition.transcode_timeout_seconds,
    )
    synthesizer = FeedbackSynthesizer(
        BedrockLlmClient(create_bedrock_runtime(config.bedrock), config.bedrock),
        max_tokens=config.bedrock.max_tokens,
    )
    return AnalysisServices(
        storage=storage,
        transcriber=transcriber,
        face_detector=face_detector,
        transcoder=transcoder,
        synthesizer=synthesizer,
        history=HistoryRepository(session_factory),
    )


__all__ = ["AnalysisServices", "build_analysis_services"]
