"""
MediaFire API client.

Modules:
- signature: login/request signatures, secret rotation, canonical queries
- session: the single active session and its serialized secret updates
- api: signed-call dispatcher shared by every wrapper
- upload: submit-then-poll upload pipeline
- user, files, folders: thin wrappers over the dispatcher
"""

from .client import MediaFireClient
from .config import ClientConfig
from .errors import (
    ApiError,
    AuthenticationRequired,
    MediaFireError,
    TransportError,
    UploadCancelled,
    UploadError,
    UploadFileError,
    UploadTimeout,
)
from .schedule import CancellationToken, PollSchedule
from .session import Session
from .upload import UploadOptions, UploadResult

__all__ = [
    "ApiError",
    "AuthenticationRequired",
    "CancellationToken",
    "ClientConfig",
    "MediaFireClient",
    "MediaFireError",
    "PollSchedule",
    "Session",
    "TransportError",
    "UploadCancelled",
    "UploadError",
    "UploadFileError",
    "UploadOptions",
    "UploadResult",
    "UploadTimeout",
]
