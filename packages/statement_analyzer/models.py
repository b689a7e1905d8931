"""Data models and type aliases for ``statement_analyzer``.

Persisted entities (transactions, statements, projects, matching rules and the
snapshot that wraps them) are pydantic models so the durable snapshot can be
validated on load. Derived, read-only views (summaries, trends, parse
results) are plain frozen dataclasses.

All persisted entities are frozen: the store replaces records rather than
mutating them, which keeps every selector call looking at a consistent
snapshot.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------

Direction = Literal["IN", "OUT"]
Channel = Literal["ACH", "CARD", "WIRE", "ZELLE", "VENMO", "CHECK", "CASH", "OTHER"]
Bank = Literal["Chase", "CapitalOne", "Other"]
DocType = Literal["statement", "form"]
MatchType = Literal["contains", "regex", "merchant"]

UNCATEGORIZED = "Uncategorized"

# Bump only when the persisted snapshot shape changes.
SNAPSHOT_SCHEMA_VERSION: int = 1


_FROZEN = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=False)


# ---------------------------------------------------------------------------
# Core entities
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """One ledger entry.

    ``amount`` is always the absolute magnitude; the sign lives only in
    ``direction``. ``category`` is the only field the store ever replaces
    after creation.
    """

    model_config = _FROZEN

    id: str
    account_id: str
    statement_id: str
    date: str
    description_raw: str
    description_clean: str
    amount: Decimal
    direction: Direction
    category: str
    channel: Channel
    tags: list[str] = Field(default_factory=list)

    @field_validator("amount")
    @classmethod
    def _amount_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("amount must be a non-negative magnitude; use direction for sign")
        return v


class _StatementBase(BaseModel):
    model_config = _FROZEN

    id: str
    bank: Bank
    account_hint: str = ""
    period_start: str = ""
    period_end: str = ""
    uploaded_filename: str
    parsed_at: str
    parse_confidence: float = 0.0
    # Parse-time snapshots; never recomputed when transactions change later.
    transaction_count: int = 0
    total_in: Decimal = Decimal("0")
    total_out: Decimal = Decimal("0")
    warnings: list[str] = Field(default_factory=list)
    raw_text: str = ""

    @field_validator("parse_confidence")
    @classmethod
    def _confidence_in_unit_interval(cls, v: float) -> float:
        if 0.0 <= v <= 1.0:
            return v
        raise ValueError("parse_confidence must be within [0,1]")


class StatementDoc(_StatementBase):
    """A parsed bank statement."""

    doc_type: Literal["statement"] = "statement"


class FormDoc(_StatementBase):
    """A tax form (1095, W-2, 1099 ...) stored alongside statements."""

    doc_type: Literal["form"] = "form"
    form_type: str = "Unknown"
    form_year: str = ""
    form_fields: dict[str, str] = Field(default_factory=dict)


Statement = Annotated[StatementDoc | FormDoc, Field(discriminator="doc_type")]
"""Tagged union of uploaded documents, discriminated by ``doc_type``."""


class Project(BaseModel):
    model_config = _FROZEN

    id: str
    name: str
    created_at: str
    statement_ids: list[str] = Field(default_factory=list)


class MatchingRule(BaseModel):
    """A named, user-editable pattern rule evaluated on demand."""

    model_config = _FROZEN

    rule_id: str
    name: str
    match_type: MatchType
    patterns: list[str]
    channel_filter: Channel | None = None
    enabled: bool = True


TRANSFERS_TO_0488_RULE_ID = "cap-one-0488"
ACH_TO_0478_RULE_ID = "ach-0478"

DEFAULT_MATCHING_RULES: tuple[MatchingRule, ...] = (
    MatchingRule(
        rule_id=TRANSFERS_TO_0488_RULE_ID,
        name="Capital One 0488 Transfers",
        match_type="contains",
        patterns=["0488", "CAPITAL ONE", "CAP ONE"],
        enabled=True,
    ),
    MatchingRule(
        rule_id=ACH_TO_0478_RULE_ID,
        name="ACH to 0478",
        match_type="contains",
        patterns=["0478"],
        channel_filter="ACH",
        enabled=True,
    ),
)


# ---------------------------------------------------------------------------
# Ephemeral UI state
# ---------------------------------------------------------------------------


class DateRange(BaseModel):
    model_config = _FROZEN

    start: str
    end: str


class DashboardFilters(BaseModel):
    """Ledger filters. Never persisted; reset whenever the active project changes."""

    model_config = _FROZEN

    date_range: DateRange | None = None
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None
    direction: Direction | None = None
    category: str | None = None
    search: str = ""
    source_statement: str | None = None
    only_transfers_to_0488: bool = False
    only_ach_to_0478: bool = False


DEFAULT_FILTERS = DashboardFilters()


# ---------------------------------------------------------------------------
# Durable snapshot
# ---------------------------------------------------------------------------


class AnalyzerSnapshot(BaseModel):
    """Everything the store persists to local storage (and nothing else)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_version: int = SNAPSHOT_SCHEMA_VERSION
    projects: list[Project] = Field(default_factory=list)
    active_project_id: str | None = None
    statements: list[Statement] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    matching_rules: list[MatchingRule] = Field(
        default_factory=lambda: list(DEFAULT_MATCHING_RULES)
    )

    @model_validator(mode="after")
    def _active_project_exists(self) -> AnalyzerSnapshot:
        if self.active_project_id is not None and not any(
            p.id == self.active_project_id for p in self.projects
        ):
            raise ValueError("active_project_id does not reference a known project")
        return self


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Output of a statement parser for one document."""

    transactions: list[Transaction]
    period_start: str
    period_end: str
    account_hint: str
    confidence: float
    warnings: list[str] = field(default_factory=list)

    @property
    def total_in(self) -> Decimal:
        return sum((t.amount for t in self.transactions if t.direction == "IN"), Decimal("0"))

    @property
    def total_out(self) -> Decimal:
        return sum((t.amount for t in self.transactions if t.direction == "OUT"), Decimal("0"))


@dataclass(frozen=True, slots=True)
class CategorySummary:
    category: str
    total: Decimal
    count: int
    percentage: float


@dataclass(frozen=True, slots=True)
class MerchantSummary:
    merchant: str
    total: Decimal
    count: int


@dataclass(frozen=True, slots=True)
class MonthlyTrend:
    month: str
    total_in: Decimal
    total_out: Decimal


@dataclass(frozen=True, slots=True)
class RuleTotals:
    total: Decimal
    count: int
    transactions: Sequence[Transaction]


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_in: Decimal
    total_out: Decimal
    transfers_to_0488: RuleTotals
    ach_to_0478: RuleTotals


@dataclass(frozen=True, slots=True)
class ProcessingProgress:
    """1-based position of the file currently being processed."""

    current: int
    total: int
    filename: str


__all__ = [
    "ACH_TO_0478_RULE_ID",
    "AnalyzerSnapshot",
    "Bank",
    "CategorySummary",
    "Channel",
    "DEFAULT_FILTERS",
    "DEFAULT_MATCHING_RULES",
    "DashboardFilters",
    "DashboardStats",
    "DateRange",
    "Direction",
    "DocType",
    "FormDoc",
    "MatchType",
    "MatchingRule",
    "MerchantSummary",
    "MonthlyTrend",
    "ParseResult",
    "ProcessingProgress",
    "Project",
    "RuleTotals",
    "SNAPSHOT_SCHEMA_VERSION",
    "Statement",
    "StatementDoc",
    "TRANSFERS_TO_0488_RULE_ID",
    "Transaction",
    "UNCATEGORIZED",
]
