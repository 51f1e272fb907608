"""Centralized settings for the repo."""
# ruff: noqa: I001
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]
_ROOT_ENV_FILE = _REPO_ROOT / ".env"


class Settings(BaseSettings):
    """
    Centralized configuration for the API, monitor and dashboard.

    Values come from environment variables (and optionally a .env file).
    """

    model_config = SettingsConfigDict(
        # Always load the root .env for local runs, regardless of current working directory.
        env_file=str(_ROOT_ENV_FILE),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # General
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # API
    API_KEY: str = ""
    API_BASE_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    HTTP_MAX_ATTEMPTS: int = 3

    # Data feed: "mock" runs the in-process simulator, "http" talks to the API
    FEED_BACKEND: str = "mock"
    POLL_INTERVAL_SECONDS: float = 10.0
    MONITOR_WORKER_ID: str = "1"

    # Simulator
    SIMULATOR_SEED: int | None = None
    SIMULATED_LATENCY_SCALE: float = 1.0
    VITALS_HISTORY_SIZE: int = 24
    EVENT_SEED_COUNT: int = 20

    # Events
    EVENTS_PAGE_SIZE: int = 10
    DEFAULT_SUPERVISOR: str = "John Supervisor"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
