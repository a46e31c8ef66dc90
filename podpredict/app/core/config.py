"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides helper functions to load the YAML file
containing the model rules (``configs/settings.yaml``).
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

import yaml
from pydantic_settings import BaseSettings

DEFAULT_MODEL_STRATEGY = "ols"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0


class Settings(BaseSettings):
    """Configuration loaded from ``PODPREDICT_*`` environment variables or a .env file."""

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = ""
    log_level: str = "INFO"

    # Daily metrics source: "table" (CSV/Parquet file) or "sheets" (CSV export)
    data_source: str = "table"
    data_path: str = "data/daily_metrics.csv"
    spreadsheet_id: str | None = None
    sheet_gid: int = 0

    # Unset values fall back to configs/settings.yaml
    config_root: str = "configs"
    model_strategy: str | None = None
    request_timeout_seconds: float | None = None

    class Config:
        env_prefix = "PODPREDICT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _rules(settings: Settings) -> dict[str, Any]:
    return load_yaml(os.path.join(settings.config_root, "settings.yaml"))


def resolve_model_strategy(settings: Settings) -> str:
    """Environment override first, then ``model_strategy`` from settings.yaml."""
    if settings.model_strategy:
        return settings.model_strategy
    return str(_rules(settings).get("model_strategy", DEFAULT_MODEL_STRATEGY))


def resolve_request_timeout(settings: Settings) -> float:
    if settings.request_timeout_seconds is not None:
        return float(settings.request_timeout_seconds)
    return float(_rules(settings).get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS))
