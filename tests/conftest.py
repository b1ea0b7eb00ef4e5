import hashlib
import itertools
import os
import sys
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qsl

import httpx
import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `mediafire.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


Reply = Union[Dict[str, Any], httpx.Response, Callable[[Dict[str, str]], Any]]


class Recorded:
    def __init__(self, endpoint: str, request: httpx.Request, query: str, params: List[Tuple[str, str]]) -> None:
        self.endpoint = endpoint
        self.request = request
        self.query = query
        self.params = params

    @property
    def param_dict(self) -> Dict[str, str]:
        return dict(self.params)


class FakeMediaFire:
    """
    In-process stand-in for the MediaFire API, served through httpx.MockTransport.

    - Tracks its own copy of the secret and checks every request signature.
    - Replies are queued per endpoint; a dict is the inner `response` object
      (`result` defaults to Success), an httpx.Response is returned as-is, a
      callable gets the parsed params and returns either of those.
    - `rotate_all=True` adds `new_key=yes` to every signed reply and advances
      the server-side secret accordingly.
    """

    def __init__(
        self,
        *,
        token: str = "tok-1",
        secret: str = "1234567890",
        server_time: str = "1700000000.1234",
        api_version: str = "1.3",
    ) -> None:
        self.token = token
        self.secret = int(secret)
        self.initial_secret = secret
        self.server_time = server_time
        self.api_version = api_version
        self.rotate_all = False
        self.login_reply: Optional[Reply] = None
        self.queues: Dict[str, List[Reply]] = {}
        self.defaults: Dict[str, Reply] = {}
        self.requests: List[Recorded] = []
        self.bad_signatures = 0
        self._lock = threading.Lock()

    # --------------- Scripting ---------------
    def queue(self, endpoint: str, *replies: Reply) -> None:
        self.queues.setdefault(endpoint, []).extend(replies)

    def default(self, endpoint: str, reply: Reply) -> None:
        self.defaults[endpoint] = reply

    def calls(self, endpoint: str) -> List[Recorded]:
        return [r for r in self.requests if r.endpoint == endpoint]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), timeout=5.0)

    # --------------- Transport ---------------
    def _endpoint(self, request: httpx.Request) -> str:
        prefix = f"/api/{self.api_version}/"
        path = request.url.path
        assert path.startswith(prefix) and path.endswith(".php"), path
        return path[len(prefix) : -len(".php")]

    def _next_reply(self, endpoint: str, params: Dict[str, str]) -> Any:
        queue = self.queues.get(endpoint)
        if queue:
            reply = queue.pop(0)
        else:
            reply = self.defaults.get(endpoint, {})
        if callable(reply):
            reply = reply(params)
        return reply

    def _login(self, request: httpx.Request, body: str) -> httpx.Response:
        params = dict(parse_qsl(body.rsplit("&signature=", 1)[0]))
        reply = self.login_reply
        if callable(reply):
            reply = reply(params)
        if isinstance(reply, httpx.Response):
            return reply
        inner = {
            "result": "Success",
            "session_token": self.token,
            "secret_key": self.initial_secret,
            "time": self.server_time,
        }
        if reply is not None:
            inner = dict(reply)
        if inner.get("result") == "Success" and inner.get("secret_key"):
            self.secret = int(inner["secret_key"])
        return httpx.Response(200, json={"response": inner})

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            endpoint = self._endpoint(request)
            if endpoint == "user/get_session_token":
                body = request.content.decode("utf-8")
                self.requests.append(Recorded(endpoint, request, body, parse_qsl(body)))
                return self._login(request, body)

            if request.headers.get("content-type") == "application/octet-stream":
                raw = request.url.query
                signed = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            else:
                signed = request.content.decode("utf-8")
            query, _, signature = signed.rpartition("&signature=")
            params = parse_qsl(query)
            self.requests.append(Recorded(endpoint, request, query, params))

            base = f"{self.secret % 256}{self.server_time}{request.url.path}?{query}"
            if hashlib.md5(base.encode("utf-8")).hexdigest() != signature:
                self.bad_signatures += 1
                return httpx.Response(
                    200, json={"response": {"result": "Error", "error": 127, "message": "Invalid signature"}}
                )

            reply = self._next_reply(endpoint, dict(params))
            if isinstance(reply, httpx.Response):
                return reply
            inner = {"result": "Success", **reply}
            if self.rotate_all:
                inner["new_key"] = "yes"
            if inner.get("new_key") == "yes":
                self.secret = (self.secret * 16807) % (2**31 - 1)
            return httpx.Response(200, json={"response": inner})


@pytest.fixture
def fake_api() -> FakeMediaFire:
    return FakeMediaFire()


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class FakeS3:
    """
    Dict-backed S3 client covering the calls the session store makes.

    `put_object` honors `IfMatch` / `IfNoneMatch="*"` like S3 conditional
    writes. `before_put` runs ahead of every put, letting a test slip in a
    competing write; `fail_put` makes every put fail with AccessDenied.
    """

    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.puts = 0
        self.fail_put = False
        self.before_put: Optional[Callable[[], None]] = None
        self._etags = itertools.count(1)

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str, IfMatch=None, IfNoneMatch=None):
        from botocore.exceptions import ClientError

        if self.before_put is not None:
            hook, self.before_put = self.before_put, None
            hook()
        if self.fail_put:
            raise ClientError({"Error": {"Code": "AccessDenied"}}, "PutObject")
        current = self.objects.get((Bucket, Key))
        if IfNoneMatch == "*" and current is not None:
            raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "PutObject")
        if IfMatch is not None and (current is None or current["ETag"] != IfMatch):
            raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "PutObject")
        etag = f'"etag-{next(self._etags)}"'
        self.objects[(Bucket, Key)] = {"Body": Body, "ETag": etag}
        self.puts += 1
        return {"ETag": etag}

    def get_object(self, *, Bucket: str, Key: str):
        from botocore.exceptions import ClientError

        item = self.objects.get((Bucket, Key))
        if item is None:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _FakeBody(item["Body"]), "ETag": item["ETag"]}


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()
