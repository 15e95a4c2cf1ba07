"""S3 storage helpers for transient analysis media."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping
from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.services.aws import client_error_code
from app.services.media import MediaKind, ObjectRef
from app.telemetry import increment_cleanup_failure

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {
    "webm": "video/webm",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "ogg": "audio/ogg",
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "flac": "audio/flac",
}


class StorageError(RuntimeError):
    """Raised when the media bucket cannot accept an upload."""


class MediaStorage:
    """Upload and remove per-request media objects in a single bucket."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        *,
        key_prefix: str = "",
        extensions: Mapping[MediaKind, str] | None = None,
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._key_prefix = key_prefix.strip("/")
        self._extensions = {MediaKind.AUDIO: "webm", MediaKind.VIDEO: "webm"}
        if extensions:
            self._extensions.update(
                {kind: ext.lstrip(".").lower() for kind, ext in extensions.items()}
            )

    @property
    def bucket(self) -> str:
        return self._bucket

    def _new_key(self, kind: MediaKind, extension: str | None = None) -> str:
        ext = extension.lstrip(".").lower() if extension else self._extensions[kind]
        name = f"{uuid4().hex}.{ext}"
        return f"{self._key_prefix}/{name}" if self._key_prefix else name

    async def store(
        self,
        data: bytes,
        kind: MediaKind,
        *,
        extension: str | None = None,
    ) -> ObjectRef:
        """Upload ``data`` under a fresh unique key and return its reference.

        ``extension`` overrides the configured container extension for ``kind``.
        """

        if not data:
            raise StorageError("Media payload for upload was empty.")
        if not self._bucket:
            raise StorageError("S3 bucket name is not configured.")

        ref = ObjectRef(bucket=self._bucket, key=self._new_key(kind, extension), kind=kind)
        try:
            await run_in_threadpool(
                self._client.put_object,
                Bucket=ref.bucket,
                Key=ref.key,
                Body=data,
                ContentType=_CONTENT_TYPES.get(ref.extension, "application/octet-stream"),
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to upload {kind.value} media: {exc}") from exc

        logger.info("Stored %s media key=%s bytes=%d", kind.value, ref.key, len(data))
        return ref

    async def delete(self, ref: ObjectRef) -> bool:
        """Remove a stored object; failures are logged and reported as ``False``."""

        deleted = await self.delete_key(ref.key)
        if not deleted:
            increment_cleanup_failure()
        return deleted

    async def delete_key(self, key: str) -> bool:
        """Best-effort removal of any object in the media bucket."""

        try:
            await run_in_threadpool(
                self._client.delete_object,
                Bucket=self._bucket,
                Key=key,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error(
                "Failed to delete media key=%s code=%s: %s",
                key,
                client_error_code(exc),
                exc,
            )
            return False
        except Exception:
            # Cleanup must never replace the pipeline's own result.
            logger.exception("Unexpected error deleting media key=%s", key)
            return False

        logger.debug("Deleted media key=%s", key)
        return True

    async def read_bytes(self, key: str) -> bytes:
        """Fetch an object body from the media bucket."""

        def _read() -> bytes:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()

        try:
            return await run_in_threadpool(_read)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to read key {key}: {exc}") from exc

    @asynccontextmanager
    async def stored_media(
        self,
        data: bytes,
        kind: MediaKind,
        *,
        extension: str | None = None,
    ) -> AsyncIterator[ObjectRef]:
        """Hold an uploaded object for the duration of the ``async with`` block."""

        ref = await self.store(data, kind, extension=extension)
        try:
            yield ref
        finally:
            await self.delete(ref)


__all__ = ["MediaStorage", "StorageError"]
