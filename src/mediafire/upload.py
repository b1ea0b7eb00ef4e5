from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel

from .api import RequestDispatcher
from .errors import ApiError, UploadCancelled, UploadError, UploadFileError, UploadTimeout
from .schedule import CancellationToken, PollSchedule
from .utils import to_int, yes


logger = logging.getLogger(__name__)

SUBMIT_ENDPOINT = "upload/simple"
POLL_ENDPOINT = "upload/poll_upload"
CHECK_ENDPOINT = "upload/check"
INSTANT_ENDPOINT = "upload/instant"

# `doupload.status` once the file is stored and has a permanent quickkey
STATUS_COMPLETE = "99"
DEFAULT_MAX_ATTEMPTS = 30
ROOT_FOLDER = "myfiles"


class UploadStatus(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETE = "complete"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class UploadOptions(BaseModel):
    folder_key: Optional[str] = None
    action_on_duplicate: Optional[Literal["skip", "keep", "replace"]] = None
    path: Optional[str] = None

    def as_params(self) -> Dict[str, Optional[str]]:
        return {
            "folder_key": self.folder_key,
            "action_on_duplicate": self.action_on_duplicate,
            "path": self.path,
        }


class UploadResult(BaseModel):
    quick_key: str
    filename: str
    size: int
    upload_key: Optional[str] = None


class UploadCheck(BaseModel):
    hash_exists: bool
    in_account: bool
    in_folder: bool
    duplicate_quick_key: Optional[str] = None


class PollOutcome(BaseModel):
    quick_key: str
    filename: Optional[str] = None
    size: Optional[int] = None
    attempts: int


@dataclass
class UploadJob:
    """In-memory record of one upload; never persisted."""

    payload: bytes
    filename: str
    declared_size: int
    content_hash: str
    upload_key: Optional[str] = None
    status: UploadStatus = UploadStatus.SUBMITTED
    resolved_id: Optional[str] = None

    @classmethod
    def create(cls, payload: bytes, filename: str) -> "UploadJob":
        return cls(payload=payload, filename=filename, declared_size=len(payload), content_hash=content_hash(payload))


def content_hash(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


class UploadCoordinator:
    """
    Two-phase upload: submit raw bytes, then poll until the server confirms.

    Notes
    - Submit is a single signed call whose body is the file itself; name,
      size and SHA-256 travel in `x-filename` / `x-filesize` / `x-filehash`.
    - Only the confirmation is polled; submit is never retried.
    - The loop waits between attempts outside the session lock, so other
      calls on the same session keep flowing.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        schedule: Optional[PollSchedule] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._dispatcher = dispatcher
        self._schedule = schedule or PollSchedule()
        self._max_attempts = max_attempts

    # --------------- Public API ---------------
    def upload_file(
        self,
        file_path: Union[str, Path],
        options: Optional[UploadOptions] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> UploadResult:
        path = Path(file_path)
        return self.upload_bytes(path.read_bytes(), path.name, options, cancel=cancel)

    def upload_bytes(
        self,
        payload: bytes,
        filename: str,
        options: Optional[UploadOptions] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> UploadResult:
        """Submit `payload` as `filename` and wait for its permanent quickkey."""
        job = UploadJob.create(payload, filename)
        upload_key = self.start(job, options)
        try:
            outcome = self.poll(upload_key, cancel=cancel)
        except UploadTimeout:
            job.status = UploadStatus.TIMED_OUT
            raise
        except UploadCancelled:
            job.status = UploadStatus.CANCELLED
            raise
        except Exception:
            job.status = UploadStatus.FAILED
            raise
        job.status = UploadStatus.COMPLETE
        job.resolved_id = outcome.quick_key
        logger.info("Upload of %s complete: %s", filename, outcome.quick_key)
        return UploadResult(
            quick_key=outcome.quick_key,
            filename=outcome.filename or filename,
            size=outcome.size if outcome.size is not None else job.declared_size,
            upload_key=job.upload_key,
        )

    def submit(self, payload: bytes, filename: str, options: Optional[UploadOptions] = None) -> UploadJob:
        """Send the file bytes and return the job carrying its upload key."""
        job = UploadJob.create(payload, filename)
        self.start(job, options)
        return job

    def start(self, job: UploadJob, options: Optional[UploadOptions] = None) -> str:
        """
        Submit `job` and return its upload key; the job moves to POLLING.

        Raises UploadError("no handle received") when a Success envelope has
        no `doupload.key`, and ApiError when `doupload.result` is non-zero.
        Any failure leaves the job FAILED.
        """
        opts = options or UploadOptions()
        headers = {
            "Content-Type": "application/octet-stream",
            "x-filename": quote(job.filename, safe="!~*'()"),
            "x-filesize": str(job.declared_size),
            "x-filehash": job.content_hash,
        }
        logger.info("Submitting upload %s (%d bytes)", job.filename, job.declared_size)
        try:
            data = self._dispatcher.call_raw(SUBMIT_ENDPOINT, opts.as_params(), job.payload, headers)
            doupload = data.get("doupload") if isinstance(data.get("doupload"), dict) else {}
            result = doupload.get("result")
            if result not in (None, "", "0", 0):
                raise ApiError(f"Upload rejected (doupload result {result})", to_int(result, -1), data)
            key = doupload.get("key")
            if not key:
                raise UploadError("no handle received")
        except Exception:
            job.status = UploadStatus.FAILED
            raise
        job.upload_key = str(key)
        job.status = UploadStatus.POLLING
        return job.upload_key

    def poll(
        self,
        upload_key: str,
        max_attempts: Optional[int] = None,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> PollOutcome:
        """
        Poll `upload/poll_upload` until a terminal state.

        Per attempt, in order:
        - a non-empty `fileerror` raises UploadFileError at once;
        - status 99 with a `quickkey` returns the outcome;
        - anything else waits one schedule delay and tries again.
        Raises UploadTimeout once `max_attempts` (or the schedule deadline) is
        spent and UploadCancelled when `cancel` fires.
        """
        budget = max_attempts if max_attempts is not None else self._max_attempts
        if budget <= 0:
            raise ValueError("max_attempts must be > 0")
        started = self._schedule.now()
        attempt = 0
        while attempt < budget:
            if cancel is not None and cancel.cancelled:
                raise UploadCancelled(f"Polling for {upload_key} cancelled")
            data = self._dispatcher.call(POLL_ENDPOINT, {"key": upload_key})
            attempt += 1
            doupload: Dict[str, Any] = data.get("doupload") if isinstance(data.get("doupload"), dict) else {}
            status = doupload.get("status")
            logger.debug("Poll %s attempt %d: status=%s", upload_key, attempt, status)

            file_error = doupload.get("fileerror")
            if file_error not in (None, ""):
                raise UploadFileError(upload_key, str(file_error))

            quick_key = doupload.get("quickkey")
            if str(status) == STATUS_COMPLETE and quick_key:
                size = doupload.get("size")
                return PollOutcome(
                    quick_key=str(quick_key),
                    filename=doupload.get("filename") or None,
                    size=to_int(size) if size not in (None, "") else None,
                    attempts=attempt,
                )

            if attempt >= budget or self._schedule.expired(started):
                break
            if self._schedule.pause(attempt - 1, cancel):
                raise UploadCancelled(f"Polling for {upload_key} cancelled")

        raise UploadTimeout(upload_key, attempt)

    def check(self, hash: str, filename: str, size: int, folder_key: Optional[str] = None) -> UploadCheck:
        """Ask whether a file with this SHA-256 already exists server-side."""
        data = self._dispatcher.call(
            CHECK_ENDPOINT,
            {"hash": hash, "filename": filename, "size": size, "folder_key": folder_key or ROOT_FOLDER},
        )
        return UploadCheck(
            hash_exists=yes(data.get("hash_exists")),
            in_account=yes(data.get("in_account")),
            in_folder=yes(data.get("in_folder")),
            duplicate_quick_key=data.get("duplicate_quickkey") or None,
        )

    def instant(self, hash: str, filename: str, size: int, folder_key: Optional[str] = None) -> UploadResult:
        """Store a file the server already has, by hash, without sending bytes."""
        data = self._dispatcher.call(
            INSTANT_ENDPOINT,
            {"hash": hash, "filename": filename, "size": size, "folder_key": folder_key or ROOT_FOLDER},
        )
        quick_key = data.get("quickkey")
        if not quick_key:
            raise UploadError("Instant upload failed; file may not exist on the server")
        return UploadResult(quick_key=str(quick_key), filename=data.get("filename") or filename, size=size)


__all__ = [
    "PollOutcome",
    "UploadCheck",
    "UploadCoordinator",
    "UploadJob",
    "UploadOptions",
    "UploadResult",
    "UploadStatus",
    "content_hash",
]
