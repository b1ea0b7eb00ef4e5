import pytest

from mediafire.config import ClientConfig


def test_defaults():
    cfg = ClientConfig()
    assert cfg.app_id == "42511"
    assert cfg.api_version == "1.3"
    assert cfg.max_poll_attempts == 30
    assert cfg.endpoint_url("/api/1.3/user/get_info.php") == "https://www.mediafire.com/api/1.3/user/get_info.php"


def test_endpoint_url_with_custom_root():
    cfg = ClientConfig(base_url="http://localhost:8080/")
    assert cfg.endpoint_url("/api/1.3/file/get_info.php") == "http://localhost:8080/api/1.3/file/get_info.php"


def test_from_env(monkeypatch):
    monkeypatch.setenv("MEDIAFIRE_APP_ID", "99")
    monkeypatch.setenv("MEDIAFIRE_API_VERSION", "1.5")
    monkeypatch.setenv("MEDIAFIRE_TIMEOUT", "12.5")
    monkeypatch.setenv("MEDIAFIRE_MAX_POLL_ATTEMPTS", "5")
    monkeypatch.setenv("MEDIAFIRE_POLL_INTERVAL", "")
    cfg = ClientConfig.from_env()
    assert cfg.app_id == "99"
    assert cfg.api_version == "1.5"
    assert cfg.timeout == 12.5
    assert cfg.max_poll_attempts == 5
    assert cfg.poll_interval == 1.0


def test_from_env_rejects_bad_number(monkeypatch):
    monkeypatch.setenv("MEDIAFIRE_MAX_POLL_ATTEMPTS", "many")
    with pytest.raises(RuntimeError, match="MEDIAFIRE_MAX_POLL_ATTEMPTS"):
        ClientConfig.from_env()
