"""ffmpeg helpers that prepare browser recordings for face detection."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path

from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class TranscodeError(RuntimeError):
    """Raised when ffmpeg cannot convert a recording."""


class VideoTranscoder:
    """Convert uploaded video (typically WebM/VP8) to H.264 MP4 with ffmpeg."""

    def __init__(self, ffmpeg_binary: str = "ffmpeg", *, timeout: float = 300.0) -> None:
        self._ffmpeg_binary = ffmpeg_binary
        self._timeout = timeout

    async def to_mp4(self, data: bytes) -> bytes:
        """Return an MP4 rendition of ``data``; the audio track is dropped."""

        if not data:
            raise TranscodeError("Video payload for transcoding was empty.")
        return await run_in_threadpool(self._to_mp4_sync, data)

    def _to_mp4_sync(self, data: bytes) -> bytes:
        """Synchronous conversion through temporary files so ffmpeg can seek."""

        with tempfile.TemporaryDirectory(prefix="fluency-transcode-") as workdir:
            source = Path(workdir) / "source"
            target = Path(workdir) / "target.mp4"
            source.write_bytes(data)

            try:
                subprocess.run(
                    [
                        self._ffmpeg_binary,
                        "-y",
                        "-loglevel", "error",
                        "-i", str(source),
                        "-an",
                        "-c:v", "libx264",
                        "-preset", "veryfast",
                        "-pix_fmt", "yuv420p",
                        "-movflags", "+faststart",
                        str(target),
                    ],
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    check=True,
                    timeout=self._timeout,
                )
            except FileNotFoundError as exc:
                raise TranscodeError(f"ffmpeg binary not found: {self._ffmpeg_binary}") from exc
            except subprocess.TimeoutExpired as exc:
                raise TranscodeError(
                    f"ffmpeg did not finish within {self._timeout:.0f}s"
                ) from exc
            except subprocess.CalledProcessError as exc:
                error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
                logger.error("ffmpeg failed. stderr: %s", error_msg)
                raise TranscodeError(f"ffmpeg failed to convert video to MP4: {error_msg}") from exc

            output = target.read_bytes() if target.exists() else b""

        if not output:
            raise TranscodeError("ffmpeg produced empty output.")
        logger.info("Transcoded video to MP4 in_bytes=%d out_bytes=%d", len(data), len(output))
        return output


__all__ = ["TranscodeError", "VideoTranscoder"]
