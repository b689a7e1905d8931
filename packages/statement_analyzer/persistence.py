# ruff: noqa: I001
"""Persistence of the analyzer's durable snapshot.

The snapshot (projects, active project id, statements, transactions and
matching rules) is stored as a single named local-storage entry in the
``sa_local_storage`` table owned by ``libs/db``. Ephemeral UI state (filters,
processing progress) is never part of the snapshot.

Scope:
- Read/validate the snapshot, refusing versions newer than this code.
- Replace the snapshot on every durable change.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol

from db.client import session_scope
from db.models.storage import LocalStorageEntry

from .config import resolve_database_url, resolve_storage_key
from .errors import SnapshotVersionError
from .logging_setup import get_logger
from .models import SNAPSHOT_SCHEMA_VERSION, AnalyzerSnapshot

_logger = get_logger("statement_analyzer.persistence")


class SnapshotStorage(Protocol):
    def load(self) -> AnalyzerSnapshot | None: ...

    def save(self, snapshot: AnalyzerSnapshot) -> None: ...


class SqlSnapshotStorage:
    """Snapshot storage in a SQLAlchemy database (SQLite by default).

    Parameters
    ----------
    database_url:
        SQLAlchemy URL. ``None`` resolves through
        :func:`statement_analyzer.config.resolve_database_url`.
    key:
        Name of the storage entry. ``None`` resolves through
        :func:`statement_analyzer.config.resolve_storage_key`.
    """

    def __init__(self, database_url: str | None = None, *, key: str | None = None) -> None:
        self.database_url = resolve_database_url(database_url)
        self.key = resolve_storage_key(key)

    def load(self) -> AnalyzerSnapshot | None:
        with session_scope(database_url=self.database_url) as session:
            row = session.get(LocalStorageEntry, self.key)
            if row is None:
                return None
            version, payload = row.schema_version, dict(row.payload)

        if version > SNAPSHOT_SCHEMA_VERSION:
            raise SnapshotVersionError(version, SNAPSHOT_SCHEMA_VERSION)
        snapshot = AnalyzerSnapshot.model_validate(payload)
        _logger.debug(
            "snapshot:load key=%s projects=%d statements=%d transactions=%d",
            self.key,
            len(snapshot.projects),
            len(snapshot.statements),
            len(snapshot.transactions),
        )
        return snapshot

    def save(self, snapshot: AnalyzerSnapshot) -> None:
        payload = snapshot.model_dump(mode="json")
        with session_scope(database_url=self.database_url) as session:
            session.merge(
                LocalStorageEntry(
                    name=self.key,
                    schema_version=snapshot.schema_version,
                    payload=payload,
                    updated_at=datetime.now(UTC),
                )
            )

    def clear(self) -> None:
        with session_scope(database_url=self.database_url) as session:
            row = session.get(LocalStorageEntry, self.key)
            if row is not None:
                session.delete(row)


__all__ = ["SnapshotStorage", "SqlSnapshotStorage"]
