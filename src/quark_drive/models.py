"""Data models for the quark_drive library."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _from_millis(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


@dataclass(frozen=True)
class FileNode:
    """A file or folder entry in the drive."""

    fid: str
    name: str
    size: int
    created_at: datetime | None
    updated_at: datetime | None
    is_dir: bool

    @classmethod
    def from_raw(cls, item: dict[str, Any]) -> FileNode:
        """Normalize a raw listing entry.

        An entry is a directory when its ``dir`` flag is set or its
        ``file_type`` code is 0.
        """
        return cls(
            fid=str(item.get("fid", "")),
            name=str(item.get("file_name", "")),
            size=int(item.get("size") or 0),
            created_at=_from_millis(item.get("created_at")),
            updated_at=_from_millis(item.get("updated_at")),
            is_dir=bool(item.get("dir")) or item.get("file_type") == 0,
        )


@dataclass(frozen=True)
class AccountInfo:
    """Result of the advisory cookie identity check."""

    valid: bool
    nickname: str | None = None


@dataclass
class UploadSession:
    """State negotiated for one upload; only ``etags`` changes after creation."""

    task_id: str
    fid: str
    finish: bool
    part_size: int
    bucket: str = ""
    obj_key: str = ""
    upload_id: str = ""
    upload_url: str = ""
    auth_info: str = ""
    callback: dict[str, Any] = field(default_factory=dict)
    etags: list[str] = field(default_factory=list)

    @classmethod
    def from_envelope(cls, envelope: dict[str, Any], default_part_size: int) -> UploadSession:
        """Build a session from the pre-upload response envelope."""
        data = envelope.get("data") or {}
        metadata = envelope.get("metadata") or {}
        part_size = metadata.get("part_size") or default_part_size
        return cls(
            task_id=str(data.get("task_id", "")),
            fid=str(data.get("fid", "")),
            finish=bool(data.get("finish")),
            part_size=int(part_size),
            bucket=data.get("bucket") or "",
            obj_key=data.get("obj_key") or "",
            upload_id=data.get("upload_id") or "",
            upload_url=data.get("upload_url") or "",
            auth_info=data.get("auth_info") or "",
            callback=data.get("callback") or {},
        )

    @property
    def has_storage_params(self) -> bool:
        return bool(self.upload_id and self.obj_key and self.bucket)


@dataclass(frozen=True)
class UploadResult:
    """Result of uploading a file into a folder path."""

    file_id: str
    folder_id: str
    name: str
    size: int
    instant: bool = False
