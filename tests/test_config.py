"""Tests for vulnfeed.config."""

import os

import pytest

from vulnfeed.config import load_config

_OPTIONAL_VARS = (
    "WEB_HOST", "WEB_PORT", "SYNC_PAGE_LIMIT", "DEFAULT_SYNC_INTERVAL_MINUTES",
    "HTTP_TIMEOUT_SECONDS", "GITHUB_TOKEN", "DING_API_URL", "MAX_REFERENCE_LINKS",
    "LOG_LEVEL", "LOG_FORMAT", "APP_ENV",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove all config-related env vars before each test."""
    for key in ("DATABASE_PATH", *_OPTIONAL_VARS):
        monkeypatch.delenv(key, raising=False)
    # Prevent .env file from re-setting variables during tests
    monkeypatch.setattr("vulnfeed.config.load_dotenv", lambda *a, **kw: None)


def test_missing_required_vars_raises():
    """load_config raises ValueError naming the missing variable."""
    with pytest.raises(ValueError, match="DATABASE_PATH"):
        load_config()


def test_empty_required_var_counts_as_missing(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "")
    with pytest.raises(ValueError, match="Missing required environment variables"):
        load_config()


def test_load_config_defaults(monkeypatch):
    """Config loads with only DATABASE_PATH set and fills in defaults."""
    monkeypatch.setenv("DATABASE_PATH", "./test.db")

    config = load_config()

    assert config.database_path == "./test.db"
    assert config.web_host == "0.0.0.0"
    assert config.web_port == 8080
    assert config.sync_page_limit == 1
    assert config.default_sync_interval_minutes == 30
    assert config.http_timeout_seconds == 30
    assert config.github_token is None
    assert config.ding_api_url == "https://oapi.dingtalk.com/robot/send"
    assert config.max_reference_links == 8
    assert config.log_level == "INFO"
    assert config.log_format == "json"
    assert config.app_env == "production"


def test_optional_overrides(monkeypatch):
    """Optional variables override their defaults and are coerced to int."""
    monkeypatch.setenv("DATABASE_PATH", "/data/vulnfeed.db")
    monkeypatch.setenv("WEB_PORT", "9000")
    monkeypatch.setenv("SYNC_PAGE_LIMIT", "3")
    monkeypatch.setenv("DEFAULT_SYNC_INTERVAL_MINUTES", "15")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    monkeypatch.setenv("MAX_REFERENCE_LINKS", "4")
    monkeypatch.setenv("LOG_FORMAT", "text")

    config = load_config()

    assert config.web_port == 9000
    assert config.sync_page_limit == 3
    assert config.default_sync_interval_minutes == 15
    assert config.github_token == "ghp_test"
    assert config.max_reference_links == 4
    assert config.log_format == "text"


def test_empty_github_token_is_none(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "./test.db")
    monkeypatch.setenv("GITHUB_TOKEN", "")
    assert load_config().github_token is None


def test_config_is_frozen(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "./test.db")
    config = load_config()
    with pytest.raises(AttributeError):
        config.database_path = "other.db"


def test_env_file_is_loaded(monkeypatch, tmp_path):
    """A .env file passed explicitly is read when the real loader is used."""
    from dotenv import load_dotenv

    monkeypatch.setattr("vulnfeed.config.load_dotenv", load_dotenv)
    env_file = tmp_path / ".env"
    env_file.write_text("DATABASE_PATH=/tmp/from-env-file.db\nSYNC_PAGE_LIMIT=2\n")

    config = load_config(env_path=env_file)

    assert config.database_path == "/tmp/from-env-file.db"
    assert config.sync_page_limit == 2
    # load_dotenv writes into os.environ; monkeypatch.delenv in the fixture
    # only restores keys it saw, so clean up explicitly.
    os.environ.pop("DATABASE_PATH", None)
    os.environ.pop("SYNC_PAGE_LIMIT", None)
