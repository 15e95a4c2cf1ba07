"""Integration-style tests for /analyze-audio and /analyze-video."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace

from app.controllers.dependencies import get_analysis_services
from app.main import app
from app.services import MediaKind, MediaStorage
from conftest import DEFAULT_FEEDBACK, auth_headers

WEBM_BYTES = b"\x1aE\xdf\xa3fake-webm-payload"


def _post_audio(client, headers=None, **kwargs):
    return client.post(
        "/analyze-audio",
        headers=auth_headers() if headers is None else headers,
        files={"audioFile": ("recording.webm", WEBM_BYTES, "audio/webm")},
        **kwargs,
    )


def _post_video(client, headers=None):
    return client.post(
        "/analyze-video",
        headers=auth_headers() if headers is None else headers,
        files={"videoFile": ("recording.webm", WEBM_BYTES, "video/webm")},
    )


def test_analyze_audio_returns_feedback_and_records_history(client, fake_aws, history_repository):
    response = _post_audio(client)

    assert response.status_code == 200
    assert response.json() == {
        "textFeedback": DEFAULT_FEEDBACK["textFeedback"],
        "toolSuggestions": ["Short Phrasing", "Soft Landing"],
    }

    started = fake_aws.transcribe.started[0]
    assert started["MediaFormat"] == "webm"
    assert started["MediaSampleRateHertz"] == 48000
    assert started["LanguageCode"] == "en-US"
    assert started["Media"]["MediaFileUri"].startswith("s3://test-bucket/")
    assert started["Media"]["MediaFileUri"].endswith(".webm")
    assert fake_aws.rekognition.started == []

    records = asyncio.run(history_repository.list_for_user("user-123"))
    assert len(records) == 1
    assert records[0].feedback == DEFAULT_FEEDBACK["textFeedback"]
    assert records[0].kind.value == "audio"


def test_analyze_audio_removes_transient_objects(client, fake_aws):
    response = _post_audio(client)

    assert response.status_code == 200
    assert len(fake_aws.s3.uploaded) == 1
    assert fake_aws.s3.uploaded[0] in fake_aws.s3.deleted
    assert fake_aws.s3.objects == {}


def test_analyze_audio_prompt_has_no_visual_section(client, fake_aws):
    _post_audio(client)

    prompt = fake_aws.bedrock.prompts[0]
    assert "VISUAL ANALYSIS" not in prompt
    assert "Hello everyone" in prompt
    assert fake_aws.bedrock.calls[0]["inferenceConfig"]["maxTokens"] == 1024


def test_analyze_audio_without_file_is_rejected(client, fake_aws):
    response = client.post("/analyze-audio", headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["detail"] == "No audio file uploaded."
    assert fake_aws.s3.uploaded == []


def test_analyze_video_without_file_is_rejected(client):
    response = client.post("/analyze-video", headers=auth_headers())

    assert response.status_code == 400
    assert response.json()["detail"] == "No video file uploaded."


def test_analyze_audio_with_empty_file_is_rejected(client, fake_aws):
    response = client.post(
        "/analyze-audio",
        headers=auth_headers(),
        files={"audioFile": ("empty.webm", b"", "audio/webm")},
    )

    assert response.status_code == 400
    assert fake_aws.s3.uploaded == []


def test_missing_token_is_unauthorized(client, fake_aws):
    response = _post_audio(client, headers={})

    assert response.status_code == 401
    assert fake_aws.s3.uploaded == []


def test_invalid_token_is_unauthorized(client):
    response = _post_audio(client, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Could not validate credentials"


def test_empty_transcript_skips_synthesis_and_cleans_up(client, fake_aws, history_repository):
    fake_aws.transcribe.transcripts = [""]

    response = _post_audio(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Could not transcribe audio."
    assert fake_aws.bedrock.calls == []
    assert fake_aws.s3.objects == {}
    assert asyncio.run(history_repository.list_for_user("user-123")) == []


def test_failed_transcription_job_is_reported_as_no_transcript(client, fake_aws):
    fake_aws.transcribe.fail_job = True

    response = _post_video(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Could not transcribe audio from video."
    assert fake_aws.bedrock.calls == []
    assert fake_aws.s3.objects == {}


def test_malformed_llm_output_fails_request_and_cleans_up(client, fake_aws, history_repository):
    fake_aws.bedrock.text = "Sure! Here is your feedback: " + json.dumps(DEFAULT_FEEDBACK)

    response = _post_audio(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to analyze audio. Check server logs."
    assert len(fake_aws.bedrock.calls) == 1
    assert fake_aws.s3.objects == {}
    assert asyncio.run(history_repository.list_for_user("user-123")) == []


def test_wrong_key_set_from_llm_fails_request(client, fake_aws):
    fake_aws.bedrock.text = json.dumps({**DEFAULT_FEEDBACK, "score": 7})

    response = _post_audio(client)

    assert response.status_code == 500


def test_snake_case_keys_from_llm_fail_request(client, fake_aws, history_repository):
    fake_aws.bedrock.text = json.dumps(
        {"text_feedback": "Nice work.", "tool_suggestions": ["Smiling"]}
    )

    response = _post_audio(client)

    assert response.status_code == 500
    assert asyncio.run(history_repository.list_for_user("user-123")) == []


def test_unknown_tool_names_are_dropped(client, fake_aws, history_repository):
    fake_aws.bedrock.text = json.dumps(
        {"textFeedback": "Nice and calm.", "toolSuggestions": ["Breathing Box", "Smiling"]}
    )

    response = _post_audio(client)

    assert response.status_code == 200
    assert response.json()["toolSuggestions"] == ["Smiling"]
    records = asyncio.run(history_repository.list_for_user("user-123"))
    assert records[0].tool_suggestions == ("Smiling",)


def test_upload_failure_aborts_before_any_job(client, fake_aws):
    fake_aws.s3.fail_put = True

    response = _post_audio(client)

    assert response.status_code == 500
    assert fake_aws.transcribe.started == []
    assert fake_aws.bedrock.calls == []


def test_cleanup_failure_does_not_mask_feedback(client, fake_aws):
    fake_aws.s3.fail_delete = True

    response = _post_audio(client)

    assert response.status_code == 200
    assert response.json()["textFeedback"] == DEFAULT_FEEDBACK["textFeedback"]


def test_analyze_video_with_faces_mentions_tension(client, fake_aws, history_repository):
    response = _post_video(client)

    assert response.status_code == 200
    assert len(fake_aws.transcribe.started) == 1
    assert fake_aws.transcribe.started[0]["Media"]["MediaFileUri"].endswith(".webm")
    assert fake_aws.transcoder.calls == [WEBM_BYTES]
    started = fake_aws.rekognition.started[0]
    assert started["Video"]["S3Object"]["Bucket"] == "test-bucket"
    assert started["Video"]["S3Object"]["Name"].endswith(".mp4")
    assert len(fake_aws.s3.uploaded) == 2
    assert set(fake_aws.s3.uploaded) <= set(fake_aws.s3.deleted)

    prompt = fake_aws.bedrock.prompts[0]
    assert "VISUAL ANALYSIS" in prompt
    assert "could indicate tension" in prompt
    assert fake_aws.s3.objects == {}

    records = asyncio.run(history_repository.list_for_user("user-123"))
    assert records[0].kind.value == "video"


def test_analyze_video_without_faces_never_claims_tension(client, fake_aws):
    fake_aws.rekognition.faces = []

    response = _post_video(client)

    assert response.status_code == 200
    prompt = fake_aws.bedrock.prompts[0]
    assert "could indicate tension" not in prompt
    assert "No significant facial tension" in prompt


def test_video_fails_when_visual_analysis_fails(client, fake_aws, history_repository):
    fake_aws.rekognition.status = "FAILED"

    response = _post_video(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to analyze video. Check server logs."
    assert fake_aws.bedrock.calls == []
    assert fake_aws.s3.objects == {}
    assert asyncio.run(history_repository.list_for_user("user-123")) == []


def test_routes_are_also_served_under_api_prefix(client):
    response = client.post(
        "/api/analyze-audio",
        headers=auth_headers(),
        files={"audioFile": ("recording.webm", WEBM_BYTES, "audio/webm")},
    )

    assert response.status_code == 200


def test_video_already_in_mp4_skips_transcoding(client, fake_aws, services):
    mp4_storage = MediaStorage(fake_aws.s3, "test-bucket", extensions={MediaKind.VIDEO: "mp4"})
    app.dependency_overrides[get_analysis_services] = lambda: replace(services, storage=mp4_storage)

    response = _post_video(client)

    assert response.status_code == 200
    assert fake_aws.transcoder.calls == []
    assert fake_aws.rekognition.started[0]["Video"]["S3Object"]["Name"].endswith(".mp4")
    assert len(fake_aws.s3.uploaded) == 1
    assert fake_aws.s3.objects == {}


def test_transcoding_failure_fails_video_and_cleans_up(client, fake_aws, history_repository):
    fake_aws.transcoder.fail = True

    response = _post_video(client)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to analyze video. Check server logs."
    assert fake_aws.rekognition.started == []
    assert fake_aws.bedrock.calls == []
    assert fake_aws.s3.objects == {}
    assert asyncio.run(history_repository.list_for_user("user-123")) == []


def test_failed_request_still_records_cleanup_stage(client, fake_aws, caplog):
    fake_aws.bedrock.text = "not json"

    with caplog.at_level(logging.INFO, logger="app.services.analysis_pipeline"):
        response = _post_audio(client)

    assert response.status_code == 500
    assert "stage=cleanup" in caplog.text
    assert "failed during=synthesizing" in caplog.text
