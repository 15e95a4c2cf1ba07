"""Shared fixtures: in-memory AWS clients and a SQLite-backed history store."""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path
import sys
from typing import Any

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from app.config.settings import BedrockConfig  # noqa: E402
from app.controllers.dependencies import get_analysis_services  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base  # noqa: E402
from app.pipelines.analysis import AnalysisServices, FeedbackSynthesizer  # noqa: E402
from app.services import (  # noqa: E402
    BedrockLlmClient,
    FaceDetectionService,
    HistoryRepository,
    MediaStorage,
    TranscribeService,
    TranscodeError,
)
from app.utils import create_access_token  # noqa: E402

DEFAULT_FEEDBACK = {
    "textFeedback": "Great work on this practice! Your pacing was steady.",
    "toolSuggestions": ["Soft Landing", "Short Phrasing"],
}


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_put = False
        self.fail_delete = False

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str | None = None) -> dict:
        if self.fail_put:
            raise _client_error("ServiceUnavailable", "PutObject")
        self.objects[Key] = bytes(Body)
        self.uploaded.append(Key)
        return {}

    def get_object(self, *, Bucket: str, Key: str) -> dict:
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}

    def delete_object(self, *, Bucket: str, Key: str) -> dict:
        if self.fail_delete:
            raise _client_error("AccessDenied", "DeleteObject")
        self.objects.pop(Key, None)
        self.deleted.append(Key)
        return {}


class FakeTranscribeClient:
    """Completes every job after ``pending_polls`` IN_PROGRESS answers."""

    def __init__(self, s3: FakeS3Client, transcripts: list[str] | None = None) -> None:
        self.s3 = s3
        self.transcripts = ["Hello everyone, today I want to talk about my trip."] if transcripts is None else transcripts
        self.pending_polls = 1
        self.fail_job = False
        self.jobs: dict[str, dict[str, Any]] = {}
        self.started: list[dict[str, Any]] = []

    def start_transcription_job(self, **kwargs: Any) -> dict:
        self.started.append(kwargs)
        self.jobs[kwargs["TranscriptionJobName"]] = {"request": kwargs, "polls": 0}
        return {"TranscriptionJob": {"TranscriptionJobStatus": "QUEUED"}}

    def get_transcription_job(self, *, TranscriptionJobName: str) -> dict:
        job = self.jobs[TranscriptionJobName]
        job["polls"] += 1
        if job["polls"] <= self.pending_polls:
            return {"TranscriptionJob": {"TranscriptionJobStatus": "IN_PROGRESS"}}
        if self.fail_job:
            return {
                "TranscriptionJob": {
                    "TranscriptionJobStatus": "FAILED",
                    "FailureReason": "The media contained no speech.",
                }
            }
        request = job["request"]
        document = {
            "jobName": TranscriptionJobName,
            "results": {"transcripts": [{"transcript": text} for text in self.transcripts]},
        }
        self.s3.objects[request["OutputKey"]] = json.dumps(document).encode("utf-8")
        return {"TranscriptionJob": {"TranscriptionJobStatus": "COMPLETED"}}

    def delete_transcription_job(self, *, TranscriptionJobName: str) -> dict:
        self.jobs.pop(TranscriptionJobName, None)
        return {}


class FakeRekognitionClient:
    def __init__(self, faces: list[dict] | None = None) -> None:
        self.faces = [{"Timestamp": 0, "Face": {"Confidence": 99.5}}] if faces is None else faces
        self.status = "SUCCEEDED"
        self.pending_polls = 1
        self.polls = 0
        self.started: list[dict[str, Any]] = []

    def start_face_detection(self, **kwargs: Any) -> dict:
        name = kwargs["Video"]["S3Object"]["Name"]
        if not name.lower().endswith((".mp4", ".mov")):
            raise _client_error("InvalidParameterException", "StartFaceDetection")
        self.started.append(kwargs)
        return {"JobId": f"face-job-{len(self.started)}"}

    def get_face_detection(self, *, JobId: str, MaxResults: int) -> dict:
        self.polls += 1
        if self.polls <= self.pending_polls:
            return {"JobStatus": "IN_PROGRESS"}
        if self.status != "SUCCEEDED":
            return {"JobStatus": self.status, "StatusMessage": "Unsupported codec"}
        payload: dict[str, Any] = {"JobStatus": "SUCCEEDED"}
        if self.faces is not None:
            payload["Faces"] = self.faces
        return payload


class FakeBedrockRuntime:
    def __init__(self, text: str | None = None) -> None:
        self.text = json.dumps(DEFAULT_FEEDBACK) if text is None else text
        self.calls: list[dict[str, Any]] = []

    def converse(self, **kwargs: Any) -> dict:
        self.calls.append(kwargs)
        return {"output": {"message": {"content": [{"text": self.text}]}}}

    @property
    def prompts(self) -> list[str]:
        return [call["messages"][0]["content"][0]["text"] for call in self.calls]


class FakeTranscoder:
    """Stands in for ffmpeg; tags the payload so tests can spot the rendition."""

    def __init__(self) -> None:
        self.calls: list[bytes] = []
        self.fail = False

    async def to_mp4(self, data: bytes) -> bytes:
        self.calls.append(data)
        if self.fail:
            raise TranscodeError("ffmpeg failed to convert video to MP4: corrupt input")
        return b"mp4:" + data


class FakeAws:
    """Bundle of the fake clients used by one test."""

    def __init__(self) -> None:
        self.s3 = FakeS3Client()
        self.transcribe = FakeTranscribeClient(self.s3)
        self.rekognition = FakeRekognitionClient()
        self.bedrock = FakeBedrockRuntime()
        self.transcoder = FakeTranscoder()


@pytest.fixture
def fake_aws() -> FakeAws:
    return FakeAws()


@pytest.fixture
def session_factory(tmp_path: Path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'history.db'}",
        poolclass=NullPool,
    )

    async def _create_tables() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_tables())
    yield async_sessionmaker(engine, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def history_repository(session_factory) -> HistoryRepository:
    return HistoryRepository(session_factory)


@pytest.fixture
def services(fake_aws: FakeAws, history_repository: HistoryRepository) -> AnalysisServices:
    storage = MediaStorage(fake_aws.s3, "test-bucket")
    return AnalysisServices(
        storage=storage,
        transcriber=TranscribeService(
            fake_aws.transcribe,
            storage,
            poll_interval=0.01,
            timeout=5.0,
        ),
        face_detector=FaceDetectionService(
            fake_aws.rekognition,
            poll_interval=0.01,
            timeout=5.0,
        ),
        transcoder=fake_aws.transcoder,
        synthesizer=FeedbackSynthesizer(
            BedrockLlmClient(fake_aws.bedrock, BedrockConfig()),
            max_tokens=1024,
        ),
        history=history_repository,
    )


@pytest.fixture
def client(services: AnalysisServices):
    """Test client wired to the fake service container."""

    app.dependency_overrides[get_analysis_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id: str = "user-123") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
