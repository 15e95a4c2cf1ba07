"""Request ingestion helpers (first stage of the analysis pipeline)."""

from __future__ import annotations

from fastapi import UploadFile

from app.services.media import MediaKind

from .types import AnalysisRequest, InvalidInputError


class UploadTooLargeError(InvalidInputError):
    """Raised when an upload exceeds the configured byte limit."""


async def read_upload(
    upload: UploadFile | None,
    *,
    kind: MediaKind,
    user_id: str,
    max_bytes: int,
) -> AnalysisRequest:
    """Load a multipart upload fully into memory as an ``AnalysisRequest``."""

    if upload is None:
        raise InvalidInputError(f"No {kind.value} file uploaded.")

    try:
        data = await upload.read(max_bytes + 1)
    finally:
        await upload.close()

    if len(data) > max_bytes:
        raise UploadTooLargeError(
            f"Uploaded {kind.value} file exceeds the {max_bytes // (1024 * 1024)} MB limit."
        )

    request = AnalysisRequest(
        data=data,
        kind=kind,
        user_id=user_id,
        content_type=upload.content_type,
        filename=upload.filename,
    )
    request.validate()
    return request


__all__ = ["UploadTooLargeError", "read_upload"]
