"""The analyzer store: owner of projects, statements, transactions and rules.

:class:`AnalyzerStore` is an explicitly constructed aggregate. Collaborators
(text extractor, snapshot storage, categorizer, clock, id factory) are
injected so tests can run isolated instances side by side.

Every mutation replaces records rather than editing them in place, and every
durable mutation is followed by a snapshot write when storage is attached.
Filters and processing progress are ephemeral and never persisted.

Selectors are pure functions of the current state. Two behaviors are kept
as-is and documented for users:

- :meth:`AnalyzerStore.get_dashboard_stats` honors only the date-range
  filter, while the ledger (:meth:`AnalyzerStore.get_filtered_transactions`)
  and the summaries derived from it honor all filters.
- The two quick filters *replace* the running ledger with their own result
  set. With both enabled, the ACH-to-0478 view is computed from the
  0488-transfer view, which leaves only transactions matching both rules.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from .categorization import Categorizer
from .errors import ProcessingInProgressError, UnknownProjectError
from .ingest.adapters import parse_chase_statement, parse_generic_statement
from .ingest.classify import (
    FORM_CONFIDENCE,
    RAW_TEXT_EXCERPT_CHARS,
    detect_bank,
    detect_document_type,
    detect_form,
)
from .ingest.extract import PdfTextExtractor, SourceFile, TextExtractor
from .ingest.primitives import new_id
from .logging_setup import get_logger
from .matching import (
    PatternError,
    check_rule_patterns,
    get_ach_to_0478,
    get_transfers_to_0488,
)
from .models import (
    DEFAULT_FILTERS,
    DEFAULT_MATCHING_RULES,
    AnalyzerSnapshot,
    CategorySummary,
    DashboardFilters,
    DashboardStats,
    FormDoc,
    MatchingRule,
    MerchantSummary,
    MonthlyTrend,
    ProcessingProgress,
    Project,
    RuleTotals,
    Statement,
    StatementDoc,
    Transaction,
)
from .persistence import SnapshotStorage
from .reports import category_summary, monthly_trends, top_merchants, total_by_direction

DEFAULT_PROJECT_NAME = "Default Project"
FAILED_PARSE_PREFIX = "Failed to parse: "

_logger = get_logger("statement_analyzer.store")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def _rule_totals(transactions: Sequence[Transaction]) -> RuleTotals:
    total_in, total_out = total_by_direction(transactions)
    return RuleTotals(
        total=total_in + total_out, count=len(transactions), transactions=list(transactions)
    )


class AnalyzerStore:
    """Application state for the statement analyzer.

    Parameters
    ----------
    storage:
        Snapshot storage. ``None`` keeps everything in memory.
    extractor:
        Async text extractor; defaults to :class:`PdfTextExtractor`.
    categorizer:
        Categorizer holding the session's manual overrides. Overrides are not
        part of the persisted snapshot.
    clock:
        Returns the current timezone-aware time; used for ``created_at``,
        ``parsed_at`` and the parsers' "current year" fallback.
    id_factory:
        Returns fresh unique ids for projects, statements and transactions.
    snapshot:
        Initial durable state. :meth:`open` loads it from ``storage``.
    """

    def __init__(
        self,
        *,
        storage: SnapshotStorage | None = None,
        extractor: TextExtractor | None = None,
        categorizer: Categorizer | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = new_id,
        snapshot: AnalyzerSnapshot | None = None,
    ) -> None:
        self._storage = storage
        self._extractor: TextExtractor = extractor or PdfTextExtractor()
        self._categorizer = categorizer or Categorizer()
        self._clock = clock
        self._new_id = id_factory

        self._projects: list[Project] = []
        self._active_project_id: str | None = None
        self._statements: list[Statement] = []
        self._transactions: list[Transaction] = []
        self._rules: list[MatchingRule] = []
        self._restore(snapshot or AnalyzerSnapshot())

        self._filters: DashboardFilters = DEFAULT_FILTERS
        self._is_processing = False
        self._processing_progress: ProcessingProgress | None = None

    @classmethod
    def open(cls, storage: SnapshotStorage, **kwargs: Any) -> AnalyzerStore:
        """Construct a store rehydrated from ``storage`` (empty when nothing is saved)."""

        store = cls(storage=storage, **kwargs)
        store.load()
        return store

    def _restore(self, snap: AnalyzerSnapshot) -> None:
        self._projects = list(snap.projects)
        self._active_project_id = snap.active_project_id
        self._statements = list(snap.statements)
        self._transactions = list(snap.transactions)
        self._rules = list(snap.matching_rules)

    def load(self) -> bool:
        """Replace the durable state with the stored snapshot, if there is one.

        Returns ``True`` when a snapshot was restored. Filters are reset.

        Raises
        ------
        SnapshotVersionError
            When the stored snapshot was written by a newer schema.
        """

        if self._storage is None:
            return False
        snapshot = self._storage.load()
        _logger.info(
            "store:load restored=%s projects=%d",
            snapshot is not None,
            len(snapshot.projects) if snapshot else 0,
        )
        if snapshot is None:
            return False
        self._restore(snapshot)
        self._filters = DEFAULT_FILTERS
        return True

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def projects(self) -> tuple[Project, ...]:
        return tuple(self._projects)

    @property
    def active_project_id(self) -> str | None:
        return self._active_project_id

    @property
    def active_project(self) -> Project | None:
        return self._find_project(self._active_project_id)

    @property
    def statements(self) -> tuple[Statement, ...]:
        return tuple(self._statements)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    @property
    def matching_rules(self) -> tuple[MatchingRule, ...]:
        return tuple(self._rules)

    @property
    def filters(self) -> DashboardFilters:
        return self._filters

    @property
    def categorizer(self) -> Categorizer:
        return self._categorizer

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def processing_progress(self) -> ProcessingProgress | None:
        return self._processing_progress

    def snapshot(self) -> AnalyzerSnapshot:
        return AnalyzerSnapshot(
            projects=list(self._projects),
            active_project_id=self._active_project_id,
            statements=list(self._statements),
            transactions=list(self._transactions),
            matching_rules=list(self._rules),
        )

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save(self.snapshot())

    def _find_project(self, project_id: str | None) -> Project | None:
        if project_id is None:
            return None
        for p in self._projects:
            if p.id == project_id:
                return p
        return None

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, name: str) -> str:
        """Create a project, make it active, and return its id."""

        project = Project(
            id=self._new_id(), name=name, created_at=_iso(self._clock()), statement_ids=[]
        )
        self._projects.append(project)
        self._active_project_id = project.id
        self._persist()
        _logger.info("project:create id=%s name=%s", project.id, name)
        return project.id

    def set_active_project(self, project_id: str) -> None:
        """Activate ``project_id`` and reset the ledger filters."""

        if self._find_project(project_id) is None:
            raise UnknownProjectError(project_id)
        self._active_project_id = project_id
        self._filters = DEFAULT_FILTERS
        self._persist()

    def delete_project(self, project_id: str) -> None:
        """Delete a project along with its statements and their transactions.

        When the deleted project was active, the first remaining project (if
        any) becomes active.
        """

        project = self._find_project(project_id)
        if project is None:
            raise UnknownProjectError(project_id)

        doomed = set(project.statement_ids)
        self._projects = [p for p in self._projects if p.id != project_id]
        self._statements = [s for s in self._statements if s.id not in doomed]
        before = len(self._transactions)
        self._transactions = [t for t in self._transactions if t.statement_id not in doomed]
        if self._active_project_id == project_id:
            self._active_project_id = self._projects[0].id if self._projects else None
        self._persist()
        _logger.info(
            "project:delete id=%s statements=%d transactions=%d",
            project_id,
            len(doomed),
            before - len(self._transactions),
        )

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------

    async def process_files(
        self,
        files: Sequence[SourceFile],
        *,
        on_progress: Callable[[ProcessingProgress], None] | None = None,
    ) -> list[Statement]:
        """Extract, classify and parse ``files`` sequentially into the active project.

        A "Default Project" is created when no project is active. A failure
        on one file is recorded as a zero-confidence statement carrying a
        ``"Failed to parse: ..."`` warning and never aborts the batch.

        Raises
        ------
        ProcessingInProgressError
            When another batch is still running on this store.
        """

        if self._is_processing:
            raise ProcessingInProgressError("a batch is already being processed")

        project_id = self._active_project_id
        if self._find_project(project_id) is None:
            project_id = self.create_project(DEFAULT_PROJECT_NAME)

        new_statements: list[Statement] = []
        new_transactions: list[Transaction] = []
        self._is_processing = True
        try:
            for i, source in enumerate(files, start=1):
                progress = ProcessingProgress(current=i, total=len(files), filename=source.name)
                self._processing_progress = progress
                if on_progress is not None:
                    on_progress(progress)

                try:
                    statement, transactions = await self._ingest_one(source)
                except Exception as e:  # noqa: BLE001 - any per-file failure becomes a warning
                    _logger.warning(
                        "process_files:file_failed file=%s error=%s: %s",
                        source.name,
                        e.__class__.__name__,
                        e,
                    )
                    statement, transactions = self._failed_statement(source.name, e), []

                new_statements.append(statement)
                new_transactions.extend(transactions)
                _logger.info(
                    "process_files:file_done i=%d/%d file=%s doc_type=%s bank=%s transactions=%d",
                    i,
                    len(files),
                    source.name,
                    statement.doc_type,
                    statement.bank,
                    len(transactions),
                )
        finally:
            self._is_processing = False
            self._processing_progress = None

        added_ids = [s.id for s in new_statements]
        self._projects = [
            p.model_copy(update={"statement_ids": [*p.statement_ids, *added_ids]})
            if p.id == project_id
            else p
            for p in self._projects
        ]
        if self._find_project(project_id) is None:
            _logger.warning("process_files:project_gone id=%s", project_id)
        self._statements.extend(new_statements)
        self._transactions.extend(new_transactions)
        self._persist()
        return new_statements

    async def _ingest_one(self, source: SourceFile) -> tuple[Statement, list[Transaction]]:
        text = await self._extractor.extract(source)
        doc_type = detect_document_type(text, source.name)
        bank = detect_bank(text, source.name)
        statement_id = self._new_id()
        now = self._clock()

        if doc_type == "form":
            info = detect_form(text)
            form = FormDoc(
                id=statement_id,
                bank=bank,
                uploaded_filename=source.name,
                parsed_at=_iso(now),
                parse_confidence=FORM_CONFIDENCE,
                form_type=info.type,
                form_year=info.year,
                form_fields=dict(info.fields),
                raw_text=text[:RAW_TEXT_EXCERPT_CHARS],
            )
            return form, []

        parser = parse_chase_statement if bank == "Chase" else parse_generic_statement
        result = parser(
            text,
            statement_id,
            source.name,
            categorizer=self._categorizer,
            id_factory=self._new_id,
            today=now.date(),
        )
        statement = StatementDoc(
            id=statement_id,
            bank=bank,
            account_hint=result.account_hint,
            period_start=result.period_start,
            period_end=result.period_end,
            uploaded_filename=source.name,
            parsed_at=_iso(now),
            parse_confidence=result.confidence,
            transaction_count=len(result.transactions),
            total_in=result.total_in,
            total_out=result.total_out,
            warnings=list(result.warnings),
            raw_text=text[:RAW_TEXT_EXCERPT_CHARS],
        )
        return statement, list(result.transactions)

    def _failed_statement(self, filename: str, error: BaseException) -> StatementDoc:
        message = str(error) or "Unknown error"
        return StatementDoc(
            id=self._new_id(),
            bank="Other",
            uploaded_filename=filename,
            parsed_at=_iso(self._clock()),
            parse_confidence=0.0,
            warnings=[f"{FAILED_PARSE_PREFIX}{message}"],
        )

    # ------------------------------------------------------------------
    # Filters (ephemeral)
    # ------------------------------------------------------------------

    def set_filters(self, **changes: Any) -> DashboardFilters:
        """Merge ``changes`` into the current filters.

        Values are validated through :class:`DashboardFilters`, so strings are
        accepted for amounts and a mapping for ``date_range``.
        """

        merged = {**self._filters.model_dump(), **changes}
        self._filters = DashboardFilters.model_validate(merged)
        return self._filters

    def reset_filters(self) -> None:
        self._filters = DEFAULT_FILTERS

    # ------------------------------------------------------------------
    # Matching rules
    # ------------------------------------------------------------------

    def update_rule(self, rule: MatchingRule) -> None:
        """Replace the rule sharing ``rule.rule_id``; unknown ids are ignored."""

        self._rules = [rule if r.rule_id == rule.rule_id else r for r in self._rules]
        self._persist()

    def add_rule(self, rule: MatchingRule) -> None:
        self._rules.append(rule)
        self._persist()

    def delete_rule(self, rule_id: str) -> None:
        self._rules = [r for r in self._rules if r.rule_id != rule_id]
        self._persist()

    def reset_rules(self) -> None:
        self._rules = list(DEFAULT_MATCHING_RULES)
        self._persist()

    def get_rule_pattern_errors(self) -> list[PatternError]:
        return [err for rule in self._rules for err in check_rule_patterns(rule)]

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def update_transaction_category(self, transaction_id: str, category: str) -> bool:
        """Re-categorize one transaction. Returns ``False`` for unknown ids."""

        found = False
        updated: list[Transaction] = []
        for t in self._transactions:
            if t.id == transaction_id:
                found = True
                t = t.model_copy(update={"category": category})
            updated.append(t)
        if not found:
            return False
        self._transactions = updated
        self._persist()
        return True

    def add_category_override(self, description_raw: str, category: str) -> None:
        """Route future parses of ``description_raw`` to ``category`` (session only)."""

        self._categorizer.add_override(description_raw, category)

    def remove_category_override(self, description_raw: str) -> None:
        self._categorizer.remove_override(description_raw)

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    def _project_transactions(self) -> list[Transaction]:
        project = self.active_project
        if project is None:
            return []
        ids = set(project.statement_ids)
        return [t for t in self._transactions if t.statement_id in ids]

    def _in_date_range(self, transactions: Iterable[Transaction]) -> list[Transaction]:
        date_range = self._filters.date_range
        if date_range is None:
            return list(transactions)
        return [t for t in transactions if date_range.start <= t.date <= date_range.end]

    def get_filtered_transactions(self) -> list[Transaction]:
        """The active project's ledger after every filter, newest first."""

        f = self._filters
        out = self._in_date_range(self._project_transactions())

        if f.amount_min is not None:
            out = [t for t in out if t.amount >= f.amount_min]
        if f.amount_max is not None:
            out = [t for t in out if t.amount <= f.amount_max]
        if f.direction is not None:
            out = [t for t in out if t.direction == f.direction]
        if f.category:
            out = [t for t in out if t.category == f.category]
        if f.source_statement and any(s.id == f.source_statement for s in self._statements):
            out = [t for t in out if t.statement_id == f.source_statement]
        if f.search:
            needle = f.search.lower()
            out = [
                t
                for t in out
                if needle in t.description_raw.lower()
                or needle in t.description_clean.lower()
                or needle in t.category.lower()
            ]

        # Quick filters replace the running set.
        if f.only_transfers_to_0488:
            out = get_transfers_to_0488(out, self._rules)
        if f.only_ach_to_0478:
            out = get_ach_to_0478(out, self._rules)

        return sorted(out, key=lambda t: t.date, reverse=True)

    def get_dashboard_stats(self) -> DashboardStats:
        """Headline totals over the active project, honoring only the date range."""

        txns = self._in_date_range(self._project_transactions())
        total_in, total_out = total_by_direction(txns)
        return DashboardStats(
            total_in=total_in,
            total_out=total_out,
            transfers_to_0488=_rule_totals(get_transfers_to_0488(txns, self._rules)),
            ach_to_0478=_rule_totals(get_ach_to_0478(txns, self._rules)),
        )

    def get_category_summary(self) -> list[CategorySummary]:
        return category_summary(self.get_filtered_transactions())

    def get_top_merchants(self) -> list[MerchantSummary]:
        return top_merchants(self.get_filtered_transactions())

    def get_monthly_trends(self) -> list[MonthlyTrend]:
        return monthly_trends(self.get_filtered_transactions())

    def _active_documents(self) -> list[Statement]:
        project = self.active_project
        if project is None:
            return []
        ids = set(project.statement_ids)
        return [s for s in self._statements if s.id in ids]

    def get_active_project_statements(self) -> list[StatementDoc]:
        return [s for s in self._active_documents() if isinstance(s, StatementDoc)]

    def get_documents(self) -> list[FormDoc]:
        return [s for s in self._active_documents() if isinstance(s, FormDoc)]


__all__ = ["AnalyzerStore", "DEFAULT_PROJECT_NAME", "FAILED_PARSE_PREFIX"]
