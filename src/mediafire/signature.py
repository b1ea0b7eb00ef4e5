from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote_plus, urlencode


# Park-Miller "minimal standard" LCG used by the server to advance the secret
LCG_MULTIPLIER = 16807
LCG_MODULUS = 2**31 - 1

Scalar = Union[str, int, float, bool, None]
Params = Union[Mapping[str, Scalar], Iterable[Tuple[str, Scalar]]]


def login_signature(identity: str, password: str, app_id: str) -> str:
    """SHA-1 over `identity + password + app_id` (no separators), lowercase hex.

    Only the session-token call uses this scheme; every other call is signed
    with `request_signature`.
    """
    sha1 = hashlib.sha1()
    sha1.update(identity.encode("utf-8"))
    sha1.update(password.encode("utf-8"))
    sha1.update(app_id.encode("utf-8"))
    return sha1.hexdigest()


def rotate_secret(secret: int) -> int:
    """Advance the secret one LCG step: `(secret * 16807) mod (2^31 - 1)`."""
    if secret < 0:
        raise ValueError("secret must be non-negative")
    return (secret * LCG_MULTIPLIER) % LCG_MODULUS


def request_signature(secret: Union[int, str], server_time: str, uri: str, canonical_query: str) -> str:
    """MD5 over `{secret % 256}{server_time}{uri}?{canonical_query}`, lowercase hex."""
    secret_mod = int(secret) % 256
    base = f"{secret_mod}{server_time}{uri}?{canonical_query}"
    return hashlib.md5(base.encode("utf-8")).hexdigest()


def _render(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _pairs(parameters: Params) -> List[Tuple[str, str]]:
    items = parameters.items() if isinstance(parameters, Mapping) else parameters
    return [(str(k), _render(v)) for k, v in items if v is not None]


def canonicalize(parameters: Params) -> str:
    """
    Serialize parameters into the query string that is both sent and signed.

    - Keys are ordered by their UTF-8 bytes, never by locale collation.
    - The sort is stable, so repeated keys keep their relative order.
    - `None` values are dropped; booleans render as `true`/`false`.
    """
    pairs = _pairs(parameters)
    pairs.sort(key=lambda kv: kv[0].encode("utf-8"))
    return urlencode(pairs, quote_via=quote_plus)


def api_uri(api_version: str, endpoint: str) -> str:
    """Path portion that gets signed, e.g. `/api/1.3/user/get_info.php`."""
    return f"/api/{api_version}/{normalize_endpoint(endpoint)}.php"


def normalize_endpoint(endpoint: str) -> str:
    endpoint = endpoint.strip("/")
    return endpoint[:-4] if endpoint.endswith(".php") else endpoint


@dataclass(frozen=True)
class SignedRequest:
    endpoint: str
    parameters: Tuple[Tuple[str, str], ...]
    canonical_query: str
    signature: Optional[str] = None

    @property
    def query(self) -> str:
        """Canonical query with the signature appended (when signed)."""
        if self.signature is None:
            return self.canonical_query
        return f"{self.canonical_query}&signature={self.signature}"


def build_signed_request(
    endpoint: str,
    parameters: Params,
    *,
    secret: Union[int, str],
    server_time: str,
    api_version: str,
) -> SignedRequest:
    pairs = _pairs(parameters)
    query = canonicalize(pairs)
    sig = request_signature(secret, server_time, api_uri(api_version, endpoint), query)
    return SignedRequest(
        endpoint=normalize_endpoint(endpoint),
        parameters=tuple(pairs),
        canonical_query=query,
        signature=sig,
    )


__all__ = [
    "LCG_MODULUS",
    "LCG_MULTIPLIER",
    "SignedRequest",
    "api_uri",
    "build_signed_request",
    "canonicalize",
    "login_signature",
    "normalize_endpoint",
    "request_signature",
    "rotate_secret",
]
