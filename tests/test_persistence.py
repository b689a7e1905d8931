from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from db.client import session_scope
from db.models.storage import LocalStorageEntry
from statement_analyzer.errors import SnapshotVersionError
from statement_analyzer.ingest.extract import SourceFile
from statement_analyzer.models import DEFAULT_FILTERS, FormDoc, MatchingRule
from statement_analyzer.persistence import SqlSnapshotStorage
from statement_analyzer.store import AnalyzerStore

from tests.helpers.fakes import FakeExtractor, SequentialIds, fixed_clock
from tests.helpers.statements import CHASE_JANUARY, W2_FORM


def _store(storage: SqlSnapshotStorage) -> AnalyzerStore:
    return AnalyzerStore.open(
        storage,
        extractor=FakeExtractor({"jan.pdf": CHASE_JANUARY, "w2.pdf": W2_FORM}),
        clock=fixed_clock,
        id_factory=SequentialIds(),
    )


def test_empty_storage_opens_an_empty_store() -> None:
    storage = SqlSnapshotStorage()
    assert storage.load() is None
    store = _store(storage)
    assert store.projects == ()
    assert [r.rule_id for r in store.matching_rules] == ["cap-one-0488", "ach-0478"]


def test_snapshot_round_trip_excludes_filters() -> None:
    storage = SqlSnapshotStorage()
    store = _store(storage)
    asyncio.run(
        store.process_files([SourceFile("jan.pdf", b""), SourceFile("w2.pdf", b"")])
    )
    store.add_rule(MatchingRule(rule_id="rent", name="Rent", match_type="merchant", patterns=["rent"]))
    txn = store.transactions[0]
    store.update_transaction_category(txn.id, "Salary")
    store.set_filters(direction="OUT", search="coffee")

    reopened = AnalyzerStore.open(SqlSnapshotStorage())

    assert reopened.snapshot() == store.snapshot()
    assert reopened.filters == DEFAULT_FILTERS
    assert reopened.transactions[0].category == "Salary"
    assert isinstance(reopened.get_documents()[0], FormDoc)
    assert reopened.active_project_id == store.active_project_id


def test_project_changes_are_persisted() -> None:
    store = _store(SqlSnapshotStorage())
    a = store.create_project("A")
    b = store.create_project("B")
    store.set_active_project(a)
    store.delete_project(b)

    reopened = AnalyzerStore.open(SqlSnapshotStorage())
    assert [p.name for p in reopened.projects] == ["A"]
    assert reopened.active_project_id == a


def test_storage_keys_are_independent() -> None:
    _store(SqlSnapshotStorage(key="alpha")).create_project("Alpha")
    assert SqlSnapshotStorage(key="beta").load() is None
    assert [p.name for p in SqlSnapshotStorage(key="alpha").load().projects] == ["Alpha"]


def test_storage_key_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATEMENT_ANALYZER_STORAGE_KEY", "from-env")
    assert SqlSnapshotStorage().key == "from-env"
    assert SqlSnapshotStorage(key="explicit").key == "explicit"


def test_newer_snapshot_version_is_rejected(database_url: str) -> None:
    with session_scope(database_url=database_url) as session:
        session.add(
            LocalStorageEntry(
                name="analyzer-storage",
                schema_version=99,
                payload={"schema_version": 99},
                updated_at=datetime.now(UTC),
            )
        )

    with pytest.raises(SnapshotVersionError) as excinfo:
        AnalyzerStore.open(SqlSnapshotStorage())
    assert excinfo.value.found == 99


def test_clear_removes_the_entry() -> None:
    storage = SqlSnapshotStorage()
    _store(storage).create_project("A")
    storage.clear()
    assert storage.load() is None
