from __future__ import annotations

from typing import Any, Dict

import httpx

from .errors import ApiError, TransportError


RESULT_SUCCESS = "Success"
RESULT_ERROR = "Error"
# Flag inside the `response` object telling the client to advance its secret
ROTATION_FIELD = "new_key"
ROTATION_VALUE = "yes"


def decode(resp: httpx.Response) -> Dict[str, Any]:
    """
    Return the inner `response` object of a `{"response": {...}}` envelope.

    HTTP status is not checked here so that callers can still honor a rotation
    instruction carried by an error status. Raises TransportError when the body
    is not JSON or not shaped like an envelope.
    """
    try:
        data = resp.json()
    except ValueError as exc:
        raise TransportError(
            f"Invalid JSON response: {resp.text[:200]}",
            status_code=resp.status_code,
            body=resp.text,
        ) from exc
    inner = data.get("response") if isinstance(data, dict) else None
    if not isinstance(inner, dict):
        raise TransportError(
            "Malformed response envelope (missing 'response' object)",
            status_code=resp.status_code,
            body=resp.text,
        )
    return inner


def rotation_requested(envelope: Dict[str, Any]) -> bool:
    return envelope.get(ROTATION_FIELD) == ROTATION_VALUE


def ensure_http_success(resp: httpx.Response) -> None:
    if not resp.is_success:
        raise TransportError(
            f"API request failed: HTTP {resp.status_code}",
            status_code=resp.status_code,
            body=resp.text[:500],
        )


def _error_code(envelope: Dict[str, Any]) -> Any:
    code = envelope.get("error")
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


def raise_for_result(envelope: Dict[str, Any], *, default_message: str = "Unknown MediaFire API error") -> Dict[str, Any]:
    """Return the envelope on `Success`, raise ApiError on `Error`."""
    result = envelope.get("result")
    if result == RESULT_SUCCESS:
        return envelope
    if result == RESULT_ERROR:
        raise ApiError(envelope.get("message") or default_message, _error_code(envelope), envelope)
    raise TransportError(f"Unexpected result in response envelope: {result!r}")


__all__ = [
    "RESULT_ERROR",
    "RESULT_SUCCESS",
    "ROTATION_FIELD",
    "decode",
    "ensure_http_success",
    "raise_for_result",
    "rotation_requested",
]
