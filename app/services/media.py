"""Value types shared by the media adapters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MediaKind(str, Enum):
    """Kind of recording submitted for analysis."""

    AUDIO = "audio"
    VIDEO = "video"


@dataclass(frozen=True)
class ObjectRef:
    """Opaque handle to a transient object held in the media bucket."""

    bucket: str
    key: str
    kind: MediaKind

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    @property
    def extension(self) -> str:
        _, _, ext = self.key.rpartition(".")
        return ext.lower()


__all__ = ["MediaKind", "ObjectRef"]
