"""Environment-driven configuration.

Precedence for every setting: explicit argument, then environment variable,
then the built-in default. The CLI loads a local ``.env`` (without overriding
variables already set) before any of these helpers run.
"""

from __future__ import annotations

import os
from pathlib import Path

DATABASE_URL_ENV = "STATEMENT_ANALYZER_DATABASE_URL"
STORAGE_KEY_ENV = "STATEMENT_ANALYZER_STORAGE_KEY"
LOG_LEVEL_ENV = "STATEMENT_ANALYZER_LOG_LEVEL"
LOG_FORMAT_ENV = "STATEMENT_ANALYZER_LOG_FORMAT"

DEFAULT_STORAGE_KEY = "analyzer-storage"
DEFAULT_DATA_DIR = Path("~/.statement_analyzer")


def default_database_url() -> str:
    db_file = (DEFAULT_DATA_DIR / "analyzer.db").expanduser()
    return f"sqlite+pysqlite:///{db_file}"


def resolve_database_url(override: str | None = None) -> str:
    if override and override.strip():
        return override.strip()
    env_val = os.getenv(DATABASE_URL_ENV)
    if env_val and env_val.strip():
        return env_val.strip()
    return default_database_url()


def resolve_storage_key(override: str | None = None) -> str:
    if override and override.strip():
        return override.strip()
    env_val = os.getenv(STORAGE_KEY_ENV)
    if env_val and env_val.strip():
        return env_val.strip()
    return DEFAULT_STORAGE_KEY


__all__ = [
    "DATABASE_URL_ENV",
    "DEFAULT_STORAGE_KEY",
    "LOG_FORMAT_ENV",
    "LOG_LEVEL_ENV",
    "STORAGE_KEY_ENV",
    "default_database_url",
    "resolve_database_url",
    "resolve_storage_key",
]
