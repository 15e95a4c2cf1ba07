"""Service layer helpers for external integrations."""

from .face_detection import FaceDetectionService, VisualAnalysisError, VisualSignal
from .history_repository import HistoryRecord, HistoryRepository, PersistenceError
from .llm_client import BedrockLlmClient, LlmInvocationError
from .media import MediaKind, ObjectRef
from .response_contract import FeedbackResult, SynthesisFormatError
from .storage import MediaStorage, StorageError
from .transcode import TranscodeError, VideoTranscoder
from .transcribe import (
    NoTranscriptError,
    TranscribeService,
    TranscriptionError,
    TranscriptionResult,
)

__all__ = [
    "BedrockLlmClient",
    "FaceDetectionService",
    "FeedbackResult",
    "HistoryRecord",
    "HistoryRepository",
    "LlmInvocationError",
    "MediaKind",
    "MediaStorage",
    "NoTranscriptError",
    "ObjectRef",
    "PersistenceError",
    "StorageError",
    "SynthesisFormatError",
    "TranscodeError",
    "TranscribeService",
    "TranscriptionError",
    "TranscriptionResult",
    "VisualAnalysisError",
    "VisualSignal",
    "VideoTranscoder",
]
