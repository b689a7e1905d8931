"""Pytest configuration for test isolation.

The analyzer persists its snapshot to a local SQLite database whose location
defaults to ``~/.statement_analyzer``. To keep tests hermetic (and off the
developer's real data) every test gets its own database file through the
``STATEMENT_ANALYZER_DATABASE_URL`` environment variable, and the cached
engine for it is disposed afterwards.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Make sure the workspace `packages/` and `libs/db/src` dirs are importable
_ROOT = Path(__file__).resolve().parents[1]
_PATHS = [_ROOT / "packages", _ROOT / "libs" / "db" / "src", _ROOT]
sys.path[:0] = [str(p) for p in _PATHS if str(p) not in sys.path]

from db.client import dispose_engine  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """Point the analyzer at a per-test SQLite file and yield its URL."""

    url = f"sqlite+pysqlite:///{tmp_path / 'analyzer.db'}"
    monkeypatch.setenv("STATEMENT_ANALYZER_DATABASE_URL", url)
    monkeypatch.delenv("STATEMENT_ANALYZER_STORAGE_KEY", raising=False)
    monkeypatch.delenv("STATEMENT_ANALYZER_LOG_LEVEL", raising=False)
    monkeypatch.delenv("STATEMENT_ANALYZER_LOG_FORMAT", raising=False)
    yield url
    dispose_engine(url)


@pytest.fixture
def database_url(_isolate_database: str) -> str:
    return _isolate_database
