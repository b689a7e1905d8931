"""Centralized SQLAlchemy engine/session helpers for the workspace.

Usage
-----
from db.client import get_engine, session_scope

with session_scope(database_url=url) as s:
    s.execute(...)

Engines are cached per database URL so that independent stores (and tests
running against separate SQLite files) never share a connection pool.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

_ENGINES: dict[str, Engine] = {}
_SESSION_MAKERS: dict[str, sessionmaker[Session]] = {}


def _ensure_sqlite_parent(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def get_engine(*, database_url: str) -> Engine:
    """Return the engine for ``database_url``, creating it (and tables) on first use."""

    engine = _ENGINES.get(database_url)
    if engine is not None:
        return engine

    _ensure_sqlite_parent(database_url)
    engine = create_engine(database_url, pool_pre_ping=True)
    # Local storage has a single table; create it eagerly instead of migrating.
    Base.metadata.create_all(bind=engine)
    _ENGINES[database_url] = engine
    _SESSION_MAKERS[database_url] = sessionmaker(
        bind=engine, expire_on_commit=False, class_=Session
    )
    return engine


def get_session(*, database_url: str) -> Session:
    """Return a new SQLAlchemy session bound to the engine for ``database_url``."""

    get_engine(database_url=database_url)
    return _SESSION_MAKERS[database_url]()


@contextmanager
def session_scope(*, database_url: str) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine(database_url: str) -> None:
    """Dispose and forget the cached engine for ``database_url`` (no-op if absent)."""

    engine = _ENGINES.pop(database_url, None)
    _SESSION_MAKERS.pop(database_url, None)
    if engine is not None:
        engine.dispose()


__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session",
    "session_scope",
]
