from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_BASE_URL = "https://www.mediafire.com/api"
DEFAULT_APP_ID = "42511"
DEFAULT_API_VERSION = "1.3"
DEFAULT_USER_AGENT = "mediafire-python/0.1 (httpx)"

ENV_APP_ID = "MEDIAFIRE_APP_ID"
ENV_API_VERSION = "MEDIAFIRE_API_VERSION"
ENV_BASE_URL = "MEDIAFIRE_BASE_URL"
ENV_TIMEOUT = "MEDIAFIRE_TIMEOUT"
ENV_POLL_INTERVAL = "MEDIAFIRE_POLL_INTERVAL"
ENV_MAX_POLL_ATTEMPTS = "MEDIAFIRE_MAX_POLL_ATTEMPTS"


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _number(name: str, default: float, cast=float):
    raw = _getenv(name)
    if raw is None:
        return cast(default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"Invalid value for {name}: {raw!r}") from exc


class ClientConfig(BaseModel):
    """
    Static client settings.

    Fields
    - app_id: application id sent on login and mixed into the login signature.
    - api_version: path segment of every endpoint, e.g. `/api/1.3/...`.
    - base_url: API root without the version segment.
    - timeout: per-request timeout in seconds for the owned httpx client.
    - poll_interval / max_poll_attempts: defaults for upload confirmation.
    """

    app_id: str = DEFAULT_APP_ID
    api_version: str = DEFAULT_API_VERSION
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=30.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    poll_interval: float = Field(default=1.0, ge=0)
    max_poll_attempts: int = Field(default=30, gt=0)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            app_id=_getenv(ENV_APP_ID, DEFAULT_APP_ID),
            api_version=_getenv(ENV_API_VERSION, DEFAULT_API_VERSION),
            base_url=_getenv(ENV_BASE_URL, DEFAULT_BASE_URL),
            timeout=_number(ENV_TIMEOUT, 30.0),
            poll_interval=_number(ENV_POLL_INTERVAL, 1.0),
            max_poll_attempts=_number(ENV_MAX_POLL_ATTEMPTS, 30, cast=int),
        )

    def endpoint_url(self, uri: str) -> str:
        """Absolute URL for a signed URI such as `/api/1.3/user/get_info.php`."""
        root = self.base_url.rstrip("/")
        if root.endswith("/api") and uri.startswith("/api/"):
            root = root[: -len("/api")]
        return f"{root}{uri}"


__all__ = ["ClientConfig", "DEFAULT_APP_ID", "DEFAULT_API_VERSION", "DEFAULT_BASE_URL"]
