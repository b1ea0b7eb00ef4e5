from __future__ import annotations

import logging
import os
from typing import Dict, Optional, Tuple

import boto3
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from mediafire.session import Session

from .models import State


logger = logging.getLogger(__name__)

ENV_BUCKET = "MEDIAFIRE_STATE_BUCKET"
ENV_KEY = "MEDIAFIRE_STATE_KEY"
ENV_FERNET_KEY = "MEDIAFIRE_FERNET_KEY"

DEFAULT_KEY = "session.json"
DEFAULT_COMMIT_ATTEMPTS = 3

_MISSING_CODES = ("NoSuchKey", "404")
# 412 for a failed If-Match / If-None-Match, 409 for a concurrent conditional put
_CONFLICT_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict", "409")


class StateConflict(Exception):
    """The stored object changed after it was read."""


def _error_code(exc: ClientError) -> Optional[str]:
    return exc.response.get("Error", {}).get("Code")


def _check_session(session: Dict[str, str]) -> None:
    try:
        Session.model_validate(session)
    except ValidationError as exc:
        raise ValueError(f"Incomplete MediaFire session: {exc}") from exc


def _seal(state: State, fernet: Fernet) -> bytes:
    return fernet.encrypt(state.model_dump_json().encode("utf-8"))


def _open(token: bytes, fernet: Fernet) -> State:
    try:
        plain = fernet.decrypt(token)
    except InvalidToken as exc:
        raise ValueError("Stored session state could not be decrypted") from exc
    try:
        state = State.model_validate_json(plain)
    except ValidationError as exc:
        raise ValueError(f"Stored session state is malformed: {exc}") from exc
    if state.session is not None:
        _check_session(state.session)
    return state


class SessionStateStore:
    """
    Keeps the uploader's `State` (exported session + counters) in one
    Fernet-encrypted S3 object.

    Notes
    - Every write is conditional: `IfMatch` on the ETag that was read, or
      `IfNoneMatch="*"` when nothing was stored yet. Losing a race raises
      StateConflict instead of overwriting another run's rotated secret.
    - `commit()` re-reads and merges after a conflict. The committing run's
      session wins because it holds the secret the server expects next.
    - A stored session must have every `Session` field; a partial one is
      rejected on read and on write.
    """

    def __init__(
        self,
        *,
        bucket: str,
        fernet_key: str | bytes,
        key: str = DEFAULT_KEY,
        s3: Optional[object] = None,
        region_name: Optional[str] = None,
        attempts: int = DEFAULT_COMMIT_ATTEMPTS,
    ) -> None:
        if attempts <= 0:
            raise ValueError("attempts must be > 0")
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._bucket = bucket
        self._key = key
        self._fernet = Fernet(fernet_key.encode("utf-8") if isinstance(fernet_key, str) else fernet_key)
        self._attempts = attempts

    @classmethod
    def from_env(cls) -> "SessionStateStore":
        bucket = os.environ.get(ENV_BUCKET)
        fernet_key = os.environ.get(ENV_FERNET_KEY)
        missing = [name for name, val in ((ENV_BUCKET, bucket), (ENV_FERNET_KEY, fernet_key)) if not val]
        if missing:
            raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
        return cls(bucket=bucket, key=os.environ.get(ENV_KEY) or DEFAULT_KEY, fernet_key=fernet_key)

    @property
    def location(self) -> str:
        return f"s3://{self._bucket}/{self._key}"

    def load(self) -> Tuple[State, Optional[str]]:
        """Return `(state, etag)`; `(State.empty(), None)` when nothing is stored.

        Raises ValueError for an undecryptable or incomplete object.
        """
        try:
            resp = self._s3.get_object(Bucket=self._bucket, Key=self._key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                logger.info("No session state at %s", self.location)
                return State.empty(), None
            raise
        return _open(resp["Body"].read(), self._fernet), resp.get("ETag")

    def save(self, state: State, *, etag: Optional[str]) -> str:
        """Write `state` only if the object still carries `etag` (None: only if absent)."""
        if state.session is not None:
            _check_session(state.session)
        precondition = {"IfMatch": etag} if etag else {"IfNoneMatch": "*"}
        try:
            resp = self._s3.put_object(
                Bucket=self._bucket,
                Key=self._key,
                Body=_seal(state, self._fernet),
                ContentType="application/octet-stream",
                **precondition,
            )
        except ClientError as exc:
            if _error_code(exc) in _CONFLICT_CODES:
                raise StateConflict(f"{self.location} changed since it was read") from exc
            raise
        return str(resp.get("ETag"))

    def commit(
        self,
        base: State,
        session: Optional[Dict[str, str]],
        *,
        etag: Optional[str],
        uploads: int = 0,
    ) -> Tuple[State, str]:
        """
        Store `session` on top of `base` and add `uploads` to the counter.

        `session=None` keeps the stored session; commit never clears one.
        Returns the written state and its ETag. Raises StateConflict when
        every attempt lost a race.
        """
        attempt = 1
        current, current_etag = base, etag
        while True:
            merged = State(
                session=session if session is not None else current.session,
                uploads_completed=current.uploads_completed + uploads,
            )
            try:
                return merged, self.save(merged, etag=current_etag)
            except StateConflict:
                if attempt >= self._attempts:
                    raise
                logger.warning("Session state at %s changed concurrently; merging (attempt %d)", self.location, attempt)
                attempt += 1
                current, current_etag = self.load()


__all__ = ["DEFAULT_KEY", "SessionStateStore", "StateConflict"]
