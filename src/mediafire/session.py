from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from . import envelope
from .config import ClientConfig
from .errors import AuthenticationRequired, TransportError
from .signature import api_uri, canonicalize, login_signature


logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "user/get_session_token"
TOKEN_VERSION = 2


class Session(BaseModel):
    """
    The one authenticated session of a client.

    Fields
    - token: opaque session token sent with every call.
    - secret: decimal string seed of the LCG shared with the server. Kept as
      the exact string the server (or an import) provided until a rotation
      rewrites it.
    - server_time: server clock reference mixed into every request signature.
    - identity: the account email used to log in.
    """

    model_config = ConfigDict(strict=True)

    token: str
    secret: str
    server_time: str
    identity: str


@dataclass(frozen=True)
class SessionSnapshot:
    """What a call signs with, plus the generation it was taken from."""

    token: str
    secret: str
    server_time: str
    identity: str
    generation: int


class SessionStore:
    """
    Owns the single active Session and serializes every secret mutation.

    Notes
    - `exclusive()` is the per-session critical section: callers snapshot the
      secret, sign, send and apply any rotation while holding it.
    - `read_modify_write()` is the only path that changes the secret; it
      refuses to touch a Session that was replaced (login/logout/import)
      after the caller's snapshot.
    - Login performs its network call outside the lock and swaps the whole
      Session in one step on success.
    """

    def __init__(self, config: ClientConfig, client: httpx.Client) -> None:
        self._config = config
        self._client = client
        self._lock = threading.RLock()
        self._session: Optional[Session] = None
        self._generation = 0

    # --------------- Read side ---------------
    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._session is not None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def current(self) -> Optional[Session]:
        with self._lock:
            return self._session.model_copy() if self._session is not None else None

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            if self._session is None:
                raise AuthenticationRequired()
            s = self._session
            return SessionSnapshot(
                token=s.token,
                secret=s.secret,
                server_time=s.server_time,
                identity=s.identity,
                generation=self._generation,
            )

    @contextmanager
    def exclusive(self) -> Iterator[SessionSnapshot]:
        """Hold the session lock; yields the snapshot to sign with."""
        with self._lock:
            yield self.snapshot()

    # --------------- Mutation ---------------
    def read_modify_write(self, fn: Callable[[str], str], *, generation: int) -> Optional[str]:
        """
        Replace the secret with `fn(secret)` and return the new value.

        Returns None, leaving everything untouched, when the Session is gone or
        is no longer the one identified by `generation`.
        """
        with self._lock:
            if self._session is None or generation != self._generation:
                logger.warning(
                    "Discarding secret rotation for stale session (generation %s, current %s)",
                    generation,
                    self._generation,
                )
                return None
            new_secret = fn(self._session.secret)
            self._session.secret = new_secret
            return new_secret

    def _replace(self, session: Optional[Session]) -> None:
        with self._lock:
            self._session = session
            self._generation += 1

    # --------------- Lifecycle ---------------
    def login(self, identity: str, password: str) -> Session:
        """
        Create a new Session from credentials.

        The previous Session (if any) stays in place unless the login fully
        succeeds. Raises ApiError when the server rejects the credentials and
        TransportError for HTTP failures or incomplete login responses.
        """
        app_id = self._config.app_id
        query = canonicalize(
            {
                "application_id": app_id,
                "email": identity,
                "password": password,
                "response_format": "json",
                "token_version": TOKEN_VERSION,
            }
        )
        body = f"{query}&signature={login_signature(identity, password, app_id)}"
        url = self._config.endpoint_url(api_uri(self._config.api_version, LOGIN_ENDPOINT))
        try:
            resp = self._client.post(
                url,
                content=body.encode("utf-8"),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "User-Agent": self._config.user_agent,
                },
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Login request failed: {exc}") from exc

        data = envelope.decode(resp)
        envelope.raise_for_result(data, default_message="Authentication failed")
        envelope.ensure_http_success(resp)

        fields = {k: data.get(k) for k in ("session_token", "secret_key", "time")}
        missing = [k for k, v in fields.items() if v in (None, "")]
        if missing:
            raise TransportError(f"Login response missing fields: {', '.join(missing)}")

        session = Session(
            token=str(fields["session_token"]),
            secret=str(fields["secret_key"]),
            server_time=str(fields["time"]),
            identity=identity,
        )
        self._replace(session)
        logger.info("Logged in as %s", identity)
        return session.model_copy()

    def logout(self) -> None:
        with self._lock:
            had_session = self._session is not None
            self._replace(None)
        if had_session:
            logger.info("Logged out")

    def export_session(self) -> Optional[Dict[str, str]]:
        session = self.current()
        return session.model_dump() if session is not None else None

    def import_session(self, data: Mapping[str, Any]) -> Session:
        """Restore an exported Session verbatim; strings are not re-normalized."""
        try:
            session = Session.model_validate(dict(data))
        except ValidationError as exc:
            raise ValueError(f"Invalid session data: {exc}") from exc
        self._replace(session)
        logger.info("Restored session for %s", session.identity)
        return session.model_copy()


__all__ = ["Session", "SessionSnapshot", "SessionStore"]
