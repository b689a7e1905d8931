from __future__ import annotations

import pytest

from statement_analyzer.config import (
    DATABASE_URL_ENV,
    DEFAULT_STORAGE_KEY,
    default_database_url,
    resolve_database_url,
    resolve_storage_key,
)


def test_database_url_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(DATABASE_URL_ENV, "sqlite+pysqlite:///from-env.db")
    assert resolve_database_url("sqlite+pysqlite:///explicit.db") == "sqlite+pysqlite:///explicit.db"
    assert resolve_database_url(None) == "sqlite+pysqlite:///from-env.db"

    monkeypatch.delenv(DATABASE_URL_ENV)
    assert resolve_database_url("  ") == default_database_url()
    assert default_database_url().endswith("analyzer.db")
    assert "~" not in default_database_url()


def test_storage_key_default() -> None:
    assert resolve_storage_key() == DEFAULT_STORAGE_KEY == "analyzer-storage"
