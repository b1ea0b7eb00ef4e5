from __future__ import annotations

import pytest
from botocore.exceptions import ClientError
from cryptography.fernet import Fernet

from state.models import State
from state.s3_store import SessionStateStore, StateConflict


SESSION = {"token": "tok-1", "secret": "0001234567", "server_time": "1700000000.5", "identity": "a@b.c"}
ROTATED = {**SESSION, "secret": "282475249"}


@pytest.fixture
def fernet_key() -> bytes:
    return Fernet.generate_key()


def _store(s3, key: bytes, **kwargs) -> SessionStateStore:
    return SessionStateStore(s3=s3, bucket="b", fernet_key=key, **kwargs)


def _seed(s3, key: bytes, state: State) -> str:
    return _store(s3, key).save(state, etag=None)


def test_load_missing_returns_empty_state(fake_s3, fernet_key):
    state, etag = _store(fake_s3, fernet_key).load()
    assert etag is None
    assert state == State.empty()


def test_save_and_load_keep_secret_verbatim(fake_s3, fernet_key):
    store = _store(fake_s3, fernet_key)
    etag = store.save(State(session=SESSION, uploads_completed=3), etag=None)

    state, read_etag = store.load()
    assert read_etag == etag
    assert state.session == SESSION
    assert state.session["secret"] == "0001234567"
    assert state.uploads_completed == 3


def test_stored_bytes_are_encrypted(fake_s3, fernet_key):
    _seed(fake_s3, fernet_key, State(session=SESSION))
    raw = fake_s3.objects[("b", "session.json")]["Body"]
    assert b"tok-1" not in raw
    assert b"0001234567" not in raw


def test_load_with_wrong_key_raises_value_error(fake_s3, fernet_key):
    _seed(fake_s3, fernet_key, State(session=SESSION))
    with pytest.raises(ValueError, match="decrypted"):
        _store(fake_s3, Fernet.generate_key()).load()


def test_load_rejects_incomplete_session(fake_s3, fernet_key):
    body = Fernet(fernet_key).encrypt(b'{"session": {"token": "t"}, "uploads_completed": 0}')
    fake_s3.objects[("b", "session.json")] = {"Body": body, "ETag": '"x"'}
    with pytest.raises(ValueError, match="Incomplete MediaFire session"):
        _store(fake_s3, fernet_key).load()


def test_save_rejects_incomplete_session(fake_s3, fernet_key):
    with pytest.raises(ValueError):
        _store(fake_s3, fernet_key).save(State(session={"token": "t"}), etag=None)
    assert fake_s3.objects == {}


def test_load_reraises_other_client_errors(fake_s3, fernet_key):
    def denied(**_kwargs):
        raise ClientError({"Error": {"Code": "AccessDenied"}}, "GetObject")

    fake_s3.get_object = denied
    with pytest.raises(ClientError):
        _store(fake_s3, fernet_key).load()


def test_first_save_refuses_to_overwrite_existing_object(fake_s3, fernet_key):
    _seed(fake_s3, fernet_key, State(session=SESSION))
    with pytest.raises(StateConflict):
        _store(fake_s3, fernet_key).save(State(), etag=None)


def test_save_with_stale_etag_raises_conflict(fake_s3, fernet_key):
    store = _store(fake_s3, fernet_key)
    etag1 = store.save(State(), etag=None)
    store.save(State(uploads_completed=1), etag=etag1)

    with pytest.raises(StateConflict):
        store.save(State(uploads_completed=2), etag=etag1)
    assert store.load()[0].uploads_completed == 1


def test_from_env_missing_vars_raises(monkeypatch):
    for name in ("MEDIAFIRE_STATE_BUCKET", "MEDIAFIRE_STATE_KEY", "MEDIAFIRE_FERNET_KEY"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(RuntimeError, match="MEDIAFIRE_STATE_BUCKET"):
        SessionStateStore.from_env()


# --------------- commit ---------------
def test_commit_writes_session_and_counts_upload(fake_s3, fernet_key):
    store = _store(fake_s3, fernet_key)
    base, etag = store.load()

    written, new_etag = store.commit(base, SESSION, etag=etag, uploads=1)

    assert written == State(session=SESSION, uploads_completed=1)
    assert store.load() == (written, new_etag)


def test_commit_without_session_keeps_stored_one(fake_s3, fernet_key):
    _seed(fake_s3, fernet_key, State(session=SESSION, uploads_completed=2))
    store = _store(fake_s3, fernet_key)
    base, etag = store.load()

    written, _ = store.commit(base, None, etag=etag)

    assert written.session == SESSION
    assert store.load()[0].session == SESSION


def test_commit_merges_after_concurrent_write(fake_s3, fernet_key):
    _seed(fake_s3, fernet_key, State(session=SESSION, uploads_completed=1))
    store = _store(fake_s3, fernet_key)
    base, etag = store.load()

    # Another run lands an upload between our read and our write
    other = _store(fake_s3, fernet_key)
    fake_s3.before_put = lambda: other.save(State(session=SESSION, uploads_completed=5), etag=etag)

    written, _ = store.commit(base, ROTATED, etag=etag, uploads=1)

    assert written.session == ROTATED
    assert written.uploads_completed == 6
    assert store.load()[0] == written


def test_commit_gives_up_after_attempts(fake_s3, fernet_key):
    _seed(fake_s3, fernet_key, State(session=SESSION))
    store = _store(fake_s3, fernet_key, attempts=1)
    base, etag = store.load()
    _store(fake_s3, fernet_key).save(State(session=ROTATED), etag=etag)

    with pytest.raises(StateConflict):
        store.commit(base, SESSION, etag=etag)
    assert store.load()[0].session == ROTATED


def test_invalid_attempts():
    with pytest.raises(ValueError):
        SessionStateStore(s3=object(), bucket="b", fernet_key=Fernet.generate_key(), attempts=0)
