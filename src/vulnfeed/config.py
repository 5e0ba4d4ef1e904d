"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Application configuration. All values sourced from environment variables."""

    # Required
    database_path: str

    # Optional: Web
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Optional: Sync
    sync_page_limit: int = 1
    default_sync_interval_minutes: int = 30
    http_timeout_seconds: int = 30
    github_token: str | None = None

    # Optional: Push
    ding_api_url: str = "https://oapi.dingtalk.com/robot/send"
    max_reference_links: int = 8

    # Optional: Application
    log_level: str = "INFO"
    log_format: str = "json"
    app_env: str = "production"


_REQUIRED_VARS = [
    "DATABASE_PATH",
]


def load_config(env_path: str | Path | None = None) -> Config:
    """Load configuration from environment variables.

    Loads a .env file if present (for local development), then validates
    that all required variables are set. Raises ValueError listing any
    missing variables.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [var for var in _REQUIRED_VARS if not os.environ.get(var)]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return Config(
        # Required
        database_path=os.environ["DATABASE_PATH"],
        # Optional: Web
        web_host=os.environ.get("WEB_HOST", "0.0.0.0"),
        web_port=int(os.environ.get("WEB_PORT", "8080")),
        # Optional: Sync
        sync_page_limit=int(os.environ.get("SYNC_PAGE_LIMIT", "1")),
        default_sync_interval_minutes=int(
            os.environ.get("DEFAULT_SYNC_INTERVAL_MINUTES", "30")
        ),
        http_timeout_seconds=int(os.environ.get("HTTP_TIMEOUT_SECONDS", "30")),
        github_token=os.environ.get("GITHUB_TOKEN") or None,
        # Optional: Push
        ding_api_url=os.environ.get("DING_API_URL", "https://oapi.dingtalk.com/robot/send"),
        max_reference_links=int(os.environ.get("MAX_REFERENCE_LINKS", "8")),
        # Optional: Application
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "json"),
        app_env=os.environ.get("APP_ENV", "production"),
    )
