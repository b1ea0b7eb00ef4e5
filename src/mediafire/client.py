from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from .api import RequestDispatcher
from .config import ClientConfig
from .files import FilesApi
from .folders import FoldersApi
from .schedule import PollSchedule
from .session import Session, SessionStore
from .signature import Scalar
from .upload import UploadCoordinator
from .user import UserApi


class MediaFireClient:
    """
    MediaFire API client.

    Notes
    - All capabilities are built once, here, and share one SessionStore and
      one RequestDispatcher: `user`, `files`, `folders`, `upload`.
    - Pass `client` to reuse an httpx.Client (or an httpx.MockTransport in
      tests); it is closed only if this object created it.
    - Pass `schedule` to control the delay between upload poll attempts.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        client: Optional[httpx.Client] = None,
        schedule: Optional[PollSchedule] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self._config.timeout)

        self.sessions = SessionStore(self._config, self._client)
        self.dispatcher = RequestDispatcher(self._config, self.sessions, self._client)
        self.user = UserApi(self.dispatcher)
        self.files = FilesApi(self.dispatcher)
        self.folders = FoldersApi(self.dispatcher)
        self.upload = UploadCoordinator(
            self.dispatcher,
            schedule=schedule or PollSchedule(self._config.poll_interval),
            max_attempts=self._config.max_poll_attempts,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "MediaFireClient":
        return cls(ClientConfig.from_env(), **kwargs)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "MediaFireClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Session ---------------
    def login(self, email: str, password: str) -> Session:
        return self.sessions.login(email, password)

    def logout(self) -> None:
        self.sessions.logout()

    def is_authenticated(self) -> bool:
        return self.sessions.is_authenticated

    def get_session(self) -> Optional[Session]:
        return self.sessions.current()

    def export_session(self) -> Optional[Dict[str, str]]:
        return self.sessions.export_session()

    def import_session(self, data: Mapping[str, Any]) -> Session:
        return self.sessions.import_session(data)

    # --------------- Raw access ---------------
    def call(self, endpoint: str, parameters: Optional[Mapping[str, Scalar]] = None) -> Dict[str, Any]:
        """Signed call to any endpoint; returns the `response` object."""
        return self.dispatcher.call(endpoint, parameters)


__all__ = ["MediaFireClient"]
