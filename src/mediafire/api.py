from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from . import envelope
from .config import ClientConfig
from .errors import TransportError
from .session import SessionSnapshot, SessionStore
from .signature import Params, Scalar, SignedRequest, api_uri, build_signed_request, rotate_secret


logger = logging.getLogger(__name__)


def _rotate_decimal(secret: str) -> str:
    return str(rotate_secret(int(secret)))


class RequestDispatcher:
    """
    Generic signed-call primitive shared by every API wrapper.

    Notes
    - Every call is signed with the session's current secret; the server may
      answer with `new_key=yes`, in which case the secret advances exactly one
      LCG step before the call returns or raises.
    - Snapshot, send and rotation happen inside `SessionStore.exclusive()` so
      concurrent calls never sign with, or rotate from, the same secret.
    - No retries: transport and API failures surface to the caller.
    """

    def __init__(self, config: ClientConfig, sessions: SessionStore, client: httpx.Client) -> None:
        self._config = config
        self._sessions = sessions
        self._client = client

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    # --------------- Public API ---------------
    def call(self, endpoint: str, parameters: Optional[Mapping[str, Scalar]] = None) -> Dict[str, Any]:
        """
        Signed form-encoded POST to `endpoint` (e.g. `"user/get_info"`).

        Returns the `response` object of a Success envelope.
        Raises AuthenticationRequired, ApiError or TransportError.
        """
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": self._config.user_agent,
        }

        def send(url: str, signed: SignedRequest) -> httpx.Response:
            return self._client.post(url, content=signed.query.encode("utf-8"), headers=headers)

        return self._dispatch(endpoint, parameters or {}, send)

    def call_raw(
        self,
        endpoint: str,
        parameters: Optional[Mapping[str, Scalar]],
        content: bytes,
        headers: Mapping[str, str],
    ) -> Dict[str, Any]:
        """
        Signed POST whose body is `content` as-is.

        The signed query travels in the URL; caller metadata goes in `headers`.
        Same signing, rotation and error contract as `call`.
        """
        all_headers = {"User-Agent": self._config.user_agent, **headers}

        def send(url: str, signed: SignedRequest) -> httpx.Response:
            return self._client.post(f"{url}?{signed.query}", content=content, headers=all_headers)

        return self._dispatch(endpoint, parameters or {}, send)

    # --------------- Internal ---------------
    def _base_params(self, token: str, parameters: Mapping[str, Scalar]) -> Params:
        merged: Dict[str, Scalar] = {"response_format": "json", "session_token": token}
        merged.update(parameters)
        return merged

    def _dispatch(
        self,
        endpoint: str,
        parameters: Mapping[str, Scalar],
        send: Callable[[str, SignedRequest], httpx.Response],
    ) -> Dict[str, Any]:
        version = self._config.api_version
        url = self._config.endpoint_url(api_uri(version, endpoint))

        decode_error: Optional[TransportError] = None
        data: Dict[str, Any] = {}
        with self._sessions.exclusive() as snap:
            signed = build_signed_request(
                endpoint,
                self._base_params(snap.token, parameters),
                secret=snap.secret,
                server_time=snap.server_time,
                api_version=version,
            )
            logger.debug("POST %s", signed.endpoint)
            try:
                resp = send(url, signed)
            except httpx.HTTPError as exc:
                raise TransportError(f"Request to {signed.endpoint} failed: {exc}") from exc
            try:
                data = envelope.decode(resp)
            except TransportError as exc:
                decode_error = exc
            else:
                if envelope.rotation_requested(data):
                    self._rotate(snap)

        envelope.ensure_http_success(resp)
        if decode_error is not None:
            raise decode_error
        return envelope.raise_for_result(data)

    def _rotate(self, snap: SessionSnapshot) -> None:
        new_secret = self._sessions.read_modify_write(_rotate_decimal, generation=snap.generation)
        if new_secret is not None:
            logger.debug("Secret rotated (generation %s)", snap.generation)


__all__ = ["RequestDispatcher"]
