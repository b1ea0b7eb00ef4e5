from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Any, Dict, Iterable, Optional, Tuple

from mediafire.client import MediaFireClient
from mediafire.config import ClientConfig
from mediafire.upload import UploadOptions
from state.models import State
from state.s3_store import DEFAULT_KEY, SessionStateStore


logger = logging.getLogger(__name__)

# Environment configuration
ENV_STATE_BUCKET = "STATE_BUCKET"
ENV_STATE_KEY = "STATE_KEY"  # optional; defaults to "session.json"
ENV_PARAM_PREFIX = "PARAM_PREFIX"

# Fallbacks, same names as SessionStateStore.from_env
FALLBACK_ENV_STATE_BUCKET = "MEDIAFIRE_STATE_BUCKET"
FALLBACK_ENV_STATE_KEY = "MEDIAFIRE_STATE_KEY"

SSM_NAMES = ["mediafire_email", "mediafire_password", "fernet_key"]


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _require(v: Optional[str], what: str) -> str:
    if not v:
        raise RuntimeError(f"Missing required configuration: {what}")
    return v


def _load_ssm_params(prefix: str, names: Iterable[str]) -> Dict[str, Optional[str]]:
    import boto3
    from botocore.exceptions import ClientError

    ssm = boto3.client("ssm")
    out: Dict[str, Optional[str]] = {k: None for k in names}
    for name in names:
        full = f"{prefix}{name}"
        try:
            resp = ssm.get_parameter(Name=full, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("ParameterNotFound", "AccessDeniedException"):
                out[name] = None
                continue
            raise
        val = resp.get("Parameter", {}).get("Value")
        out[name] = val if isinstance(val, str) and val != "" else None
    return out


def _payload_from_event(event: Dict[str, Any]) -> Tuple[bytes, str]:
    """Return `(bytes, filename)` from `content_b64`+`filename` or from `path`."""
    content = event.get("content_b64")
    if isinstance(content, str):
        filename = event.get("filename")
        if not isinstance(filename, str) or not filename:
            raise ValueError("event.filename is required with content_b64")
        try:
            return base64.b64decode(content, validate=True), filename
        except binascii.Error as exc:
            raise ValueError("event.content_b64 is not valid base64") from exc
    path = event.get("path")
    if isinstance(path, str) and path:
        with open(path, "rb") as f:
            data = f.read()
        return data, event.get("filename") or os.path.basename(path)
    raise ValueError("event must provide content_b64 or path")


def _ensure_session(mf: MediaFireClient, state: State, *, email: str, password: str, fresh_login: bool) -> None:
    if state.session and not fresh_login:
        mf.import_session(state.session)
        return
    mf.login(email, password)

def _save_after_failure(store: SessionStateStore, mf: MediaFireClient, state: State, etag: Optional[str]) -> None:
    """Persist a possibly rotated secret without masking the error in flight."""
    session = mf.export_session()
    if session is None:
        # Nothing signed with a new secret; the stored session stays as it is
        return
    try:
        store.commit(state, session, etag=etag)
    except Exception as exc:
        logger.error("Could not persist session to %s after a failed upload: %s", store.location, exc)


def run_once(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Upload one file to MediaFire, reusing the persisted session.

    - Resolves state bucket/key and SSM prefix from env, with fallbacks.
    - Loads credentials and the Fernet key from SSM via prefix.
    - Restores the session from S3, or logs in when there is none or
      `event["fresh_login"]` is set.
    - Uploads `content_b64` (+ `filename`) or `path` into `folder_key`.
    - Writes the session back even if the upload failed, so a rotated
      secret is never lost. A failed login never clears the stored
      session, and a failed write-back never hides the upload error.

    Returns: {"ok": True, "quick_key": str, "filename": str, "size": int}.
    """
    bucket = _getenv(ENV_STATE_BUCKET) or _getenv(FALLBACK_ENV_STATE_BUCKET)
    key = _getenv(ENV_STATE_KEY) or _getenv(FALLBACK_ENV_STATE_KEY, DEFAULT_KEY)
    prefix = _getenv(ENV_PARAM_PREFIX)

    bucket = _require(bucket, ENV_STATE_BUCKET)
    prefix = _require(prefix, ENV_PARAM_PREFIX)

    payload, filename = _payload_from_event(event)
    options = UploadOptions(
        folder_key=event.get("folder_key"),
        action_on_duplicate=event.get("action_on_duplicate"),
    )

    params = _load_ssm_params(prefix, SSM_NAMES)
    email = _require(params.get("mediafire_email"), f"{prefix}mediafire_email")
    password = _require(params.get("mediafire_password"), f"{prefix}mediafire_password")
    fernet_key = _require(params.get("fernet_key"), f"{prefix}fernet_key")

    store = SessionStateStore(bucket=bucket, key=key, fernet_key=fernet_key)
    state, etag = store.load()

    with MediaFireClient(ClientConfig.from_env()) as mf:
        try:
            _ensure_session(mf, state, email=email, password=password, fresh_login=bool(event.get("fresh_login")))
            result = mf.upload.upload_bytes(payload, filename, options)
        except Exception:
            _save_after_failure(store, mf, state, etag)
            raise
        store.commit(state, mf.export_session(), etag=etag, uploads=1)

    logger.info("Uploaded %s as %s", result.filename, result.quick_key)
    return {"ok": True, "quick_key": result.quick_key, "filename": result.filename, "size": result.size}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda entry for one upload.

    Environment:
    - STATE_BUCKET, STATE_KEY (default: session.json), PARAM_PREFIX
    - MEDIAFIRE_* client settings (see mediafire.config)
    - SSM under PARAM_PREFIX must provide: mediafire_email, mediafire_password, fernet_key
    """
    return run_once(event or {})
