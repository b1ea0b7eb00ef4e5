from __future__ import annotations

from typing import Any, Optional


class MediaFireError(RuntimeError):
    """Base error for the MediaFire client."""


class AuthenticationRequired(MediaFireError):
    """A call needed an active session and there was none."""

    def __init__(self, message: str = "Not authenticated; call login() first") -> None:
        super().__init__(message)


class ApiError(MediaFireError):
    """The server answered with an `Error` envelope."""

    def __init__(self, message: str, code: Optional[int] = None, response: Any = None) -> None:
        super().__init__(f"{message} (code={code})" if code is not None else message)
        self.message = message
        self.code = code
        self.response = response


class TransportError(MediaFireError):
    """Network failure, non-2xx HTTP status, or a body that is not a valid envelope."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UploadError(MediaFireError):
    """Base error for the upload pipeline."""


class UploadTimeout(UploadError):
    """Polling budget exhausted before the upload reached a terminal state."""

    def __init__(self, upload_key: str, attempts: int) -> None:
        super().__init__(f"Upload {upload_key} not confirmed after {attempts} poll attempts")
        self.upload_key = upload_key
        self.attempts = attempts


class UploadFileError(UploadError):
    """Server reported a file-level processing failure while polling."""

    def __init__(self, upload_key: str, file_error: str) -> None:
        super().__init__(f"Upload error: {file_error}")
        self.upload_key = upload_key
        self.file_error = file_error


class UploadCancelled(UploadError):
    """The poll loop was stopped through its cancellation token."""


__all__ = [
    "ApiError",
    "AuthenticationRequired",
    "MediaFireError",
    "TransportError",
    "UploadCancelled",
    "UploadError",
    "UploadFileError",
    "UploadTimeout",
]
