"""Data models for LiveDB API responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .exceptions import LiveDBUploadError

ProgressCallback = Callable[[float, int, int], None]
"""Called as ``callback(progress, sent_bytes, total_bytes)``, progress in 0..1"""


def _parse_bool(value: Any) -> bool:
    return value is True or value == "true"


def _parse_int_safe(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return 0
    return 0


def _as_str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


@dataclass
class UploadResponse:
    """Result of an upload call.

    Failed uploads are represented by ``success=False`` with a message
    describing what went wrong, rather than by an exception.
    """

    success: bool
    message: str
    link: str = ""
    """Link to access the uploaded file"""

    is_encrypted: bool = False
    insert_id: int = 0
    """Database insert ID of the file record"""

    file_size_kb: int = 0
    file_type: str | None = None
    """MIME type reported by the server"""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UploadResponse:
        file_type = data.get("file_type")
        return cls(
            success=_parse_bool(data.get("success")),
            message=_as_str(data.get("message")),
            link=_as_str(data.get("link")),
            is_encrypted=data.get("is_encrypted") is True
            or data.get("is_encrypted") == 1,
            insert_id=_parse_int_safe(data.get("insert_id")),
            file_size_kb=_parse_int_safe(data.get("file_size_kb")),
            file_type=None if file_type is None else str(file_type),
        )

    @classmethod
    def failure(cls, message: str) -> UploadResponse:
        return cls(success=False, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "link": self.link,
            "is_encrypted": self.is_encrypted,
            "insert_id": self.insert_id,
            "file_size_kb": self.file_size_kb,
            "file_type": self.file_type,
        }

    @property
    def has_link(self) -> bool:
        """True if the upload succeeded and produced a link."""
        return self.success and bool(self.link)

    def raise_for_status(self) -> UploadResponse:
        """Raise LiveDBUploadError if the upload failed, else return self."""
        if not self.success:
            raise LiveDBUploadError(self.message or "Upload failed")
        return self


@dataclass
class TokenResponse:
    """Result of the token generation endpoint."""

    success: bool
    message: str
    token: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenResponse:
        token = data.get("token")
        return cls(
            success=_parse_bool(data.get("success")),
            message=_as_str(data.get("message")),
            token=None if token is None else str(token),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, "token": self.token}


@dataclass
class DeleteResponse:
    """Result of the file deletion endpoint."""

    success: bool
    message: str
    data: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeleteResponse:
        return cls(
            success=_parse_bool(data.get("success")),
            message=_as_str(data.get("message")),
            data=data.get("data"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, "data": self.data}


@dataclass
class UploadProgress:
    """Snapshot of an upload's progress."""

    progress: float
    sent: int
    total: int

    @property
    def percentage(self) -> float:
        return self.progress * 100.0

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.sent >= self.total
