"""Exception hierarchy for the quark_drive library."""

from __future__ import annotations


class DriveError(Exception):
    """Base exception for all quark_drive errors."""

    pass


class NetworkError(DriveError):
    """Raised on a transport failure or a non-2xx response to a raw fetch."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(DriveError):
    """Raised when a drive API envelope cannot be parsed or reports failure."""

    def __init__(self, message: str, code: int | str | None = None) -> None:
        super().__init__(message)
        self.code = code


class UploadError(DriveError):
    """Raised when a file upload fails."""

    pass


class UploadParameterError(UploadError):
    """Raised when pre-upload negotiation lacks the object storage parameters."""

    pass


class PartUploadError(UploadError):
    """Raised when a single part PUT to object storage is rejected.

    The part_number attribute is 1-based, matching the multipart upload.
    """

    def __init__(self, part_number: int, status_code: int) -> None:
        super().__init__(f"Part {part_number} upload failed: HTTP {status_code}")
        self.part_number = part_number
        self.status_code = status_code


class CommitError(UploadError):
    """Raised when the multipart completion POST is rejected."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        message = f"Commit multipart upload failed: HTTP {status_code}"
        if detail:
            message = f"{message} - {detail}"
        super().__init__(message)
        self.status_code = status_code
