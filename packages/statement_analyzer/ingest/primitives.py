"""Parsing primitives shared by the statement adapters.

Amount/date normalization, statement period and account-hint extraction,
section-header detection, deduplication and transaction enrichment. The
heuristics are kept as ordered data tables (``SECTION_RULES``,
``ACCOUNT_HINT_PATTERNS`` ...) so each can be tested without running a full
scan, and so a new bank format can add tables rather than code paths.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from ..categorization import Categorizer, clean_description, detect_channel
from ..logging_setup import get_logger
from ..models import Direction, Transaction

_logger = get_logger("statement_analyzer.ingest.primitives")

# ---------------------------------------------------------------------------
# Token patterns
# ---------------------------------------------------------------------------

# Optional parentheses, optional sign, optional "$", comma-grouped, 2 decimals.
AMOUNT_TOKEN = r"\(?-?\$?[\d,]+\.\d{2}\)?"
SHORT_DATE_TOKEN = r"\d{1,2}/\d{1,2}"

_MONTHS: dict[str, int] = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
}
_MONTH_ALIASES: dict[str, int] = {
    **_MONTHS,
    **{name[:3]: num for name, num in _MONTHS.items()},
    "sept": 9,
}
_MONTH_NAME = "|".join(sorted(_MONTH_ALIASES, key=len, reverse=True))
_RANGE_SEP = r"\s*(?:through|thru|to|-)\s*"

_NAMED_PERIOD_RE = re.compile(
    rf"\b({_MONTH_NAME})\.?\s+(\d{{1,2}}),?\s*(\d{{4}}){_RANGE_SEP}"
    rf"({_MONTH_NAME})\.?\s+(\d{{1,2}}),?\s*(\d{{4}})",
    re.IGNORECASE,
)
_NUMERIC_PERIOD_RE = re.compile(
    rf"(\d{{1,2}})/(\d{{1,2}})/(\d{{2,4}}){_RANGE_SEP}(\d{{1,2}})/(\d{{1,2}})/(\d{{2,4}})",
    re.IGNORECASE,
)
_YEAR_TOKEN_RE = re.compile(r"(?<!\d)(20[1-3]\d)(?!\d)")

ACCOUNT_HINT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"account\s*(?:number|#|no\.?)?\s*[:.]?\s*(?:\.\.\.|…|x+|\*+)?\s*(\d{4,})",
        re.IGNORECASE,
    ),
    re.compile(r"ending\s*in\s*(\d{4})", re.IGNORECASE),
    re.compile(r"(?:\.\.\.|…|x{3,}|\*{3,})(\d{4})", re.IGNORECASE),
)

# Checked in order; the IN keywords win when a header mentions both.
SECTION_RULES: tuple[tuple[tuple[str, ...], Direction], ...] = (
    (("DEPOSIT", "ADDITION", "CREDIT"), "IN"),
    (("WITHDRAWAL", "PAYMENT", "PURCHASE", "DEBIT", "FEE", "ELECTRONIC"), "OUT"),
)

MIN_DESCRIPTION_LENGTH = 3


# ---------------------------------------------------------------------------
# Amounts and dates
# ---------------------------------------------------------------------------


def parse_amount(token: str) -> Decimal:
    """Return the absolute value of an amount token; ``0`` when unparseable.

    Currency symbols, thousands separators, whitespace and parentheses are
    stripped first. A result of exactly ``0`` means "no transaction" to the
    scanners; a genuine $0.00 line cannot be told apart from a parse failure.
    """

    cleaned = re.sub(r"[$,\s()]", "", token)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return abs(value)


def is_negative_token(token: str) -> bool:
    s = token.strip()
    return s.startswith("-") or s.startswith("(") or s.endswith(")")


@dataclass(frozen=True, slots=True)
class StatementPeriod:
    """Detected statement period. ``start``/``end`` are empty when undetected."""

    start: str
    end: str
    year: int

    @property
    def detected(self) -> bool:
        return bool(self.start and self.end)


def _full_year(raw: str) -> int:
    y = int(raw)
    return y + 2000 if y < 100 else y


def _iso(y: int, m: int, d: int) -> str:
    """``YYYY-MM-DD`` for a real calendar date; raises ``ValueError`` otherwise."""

    return date(y, m, d).isoformat()


def resolve_year(month: int, year: int, period: StatementPeriod | None = None) -> int:
    """Pick the calendar year for a month/day token.

    For a statement spanning a year boundary (e.g. Dec 15 through Jan 14),
    months after the closing month belong to the opening year.
    """

    if period is None or not period.detected:
        return year
    start_year, end_year = int(period.start[:4]), int(period.end[:4])
    end_month = int(period.end[5:7])
    if start_year < end_year and month > end_month:
        return start_year
    return year


def parse_date(token: str, year: int, period: StatementPeriod | None = None) -> str:
    """Normalize ``M/D``, ``M/D/YY[YY]`` or ``M-D-YY[YY]`` to ``YYYY-MM-DD``.

    Raises ``ValueError`` when the numbers do not form a calendar date
    (``13/45``, ``02/30``). Tokens in any other shape are returned unchanged.
    """

    parts = re.split(r"[/-]", token.strip())
    if not all(p.isdigit() for p in parts):
        return token
    if len(parts) == 2:
        month, day = int(parts[0]), int(parts[1])
        return _iso(resolve_year(month, year, period), month, day)
    if len(parts) == 3 and len(parts[2]) in (2, 4):
        return _iso(_full_year(parts[2]), int(parts[0]), int(parts[1]))
    return token


def extract_statement_period(text: str, *, today: date | None = None) -> StatementPeriod:
    """Detect the statement period.

    Tries, in order: a named-month range ("January 1, 2024 through January 31,
    2024"), a numeric range ("01/01/2024 through 01/31/2024"), then the first
    year token anywhere in the text (year only). The current year is the last
    resort.
    """

    # A range naming an impossible date falls through to the next pattern.
    m = _NAMED_PERIOD_RE.search(text)
    if m:
        start_month = _MONTH_ALIASES[m.group(1).lower()]
        end_month = _MONTH_ALIASES[m.group(4).lower()]
        start_year, end_year = int(m.group(3)), int(m.group(6))
        try:
            return StatementPeriod(
                start=_iso(start_year, start_month, int(m.group(2))),
                end=_iso(end_year, end_month, int(m.group(5))),
                year=end_year,
            )
        except ValueError:
            _logger.debug("extract_statement_period:invalid_range text=%r", m.group(0))

    m = _NUMERIC_PERIOD_RE.search(text)
    if m:
        start_year, end_year = _full_year(m.group(3)), _full_year(m.group(6))
        try:
            return StatementPeriod(
                start=_iso(start_year, int(m.group(1)), int(m.group(2))),
                end=_iso(end_year, int(m.group(4)), int(m.group(5))),
                year=end_year,
            )
        except ValueError:
            _logger.debug("extract_statement_period:invalid_range text=%r", m.group(0))

    m = _YEAR_TOKEN_RE.search(text)
    if m:
        return StatementPeriod(start="", end="", year=int(m.group(1)))
    return StatementPeriod(start="", end="", year=(today or date.today()).year)


def extract_account_hint(text: str) -> str:
    """Last four digits of the account number, or ``""`` when none is found."""

    for pattern in ACCOUNT_HINT_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1)[-4:]
    return ""


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------


def detect_section(line: str) -> Direction | None:
    upper = line.upper()
    for keywords, direction in SECTION_RULES:
        if any(k in upper for k in keywords):
            return direction
    return None


def is_column_header(description: str) -> bool:
    upper = description.upper()
    return "DATE" in upper and "DESCRIPTION" in upper


def is_usable_description(description: str) -> bool:
    return len(description) >= MIN_DESCRIPTION_LENGTH and not is_column_header(description)


@dataclass(frozen=True, slots=True)
class Candidate:
    """A matched ``<date> <description> <amount>`` triple before enrichment."""

    date_token: str
    description: str
    amount: Decimal
    direction: Direction


# ---------------------------------------------------------------------------
# Enrichment and deduplication
# ---------------------------------------------------------------------------


def new_id() -> str:
    return str(uuid.uuid4())


def build_transactions(
    candidates: Iterable[Candidate],
    *,
    statement_id: str,
    account_id: str,
    year: int,
    period: StatementPeriod | None = None,
    categorizer: Categorizer | None = None,
    id_factory: Callable[[], str] = new_id,
) -> list[Transaction]:
    """Enrich candidates with category, channel and cleaned description.

    Candidates whose date token is not a calendar date are dropped, the same
    way scanners drop zero amounts.
    """

    cat = categorizer or Categorizer()
    out: list[Transaction] = []
    for c in candidates:
        try:
            iso_date = parse_date(c.date_token, year, period)
        except ValueError:
            _logger.debug("build_transactions:invalid_date token=%s", c.date_token)
            continue
        out.append(
            Transaction(
                id=id_factory(),
                account_id=account_id,
                statement_id=statement_id,
                date=iso_date,
                description_raw=c.description,
                description_clean=clean_description(c.description),
                amount=c.amount,
                direction=c.direction,
                category=cat.categorize(c.description),
                channel=detect_channel(c.description),
                tags=[],
            )
        )
    return out


def dedupe(transactions: Sequence[Transaction]) -> tuple[list[Transaction], int]:
    """Drop repeats of (date, raw description, amount, direction); keep the first.

    Returns the surviving transactions and the number removed. Scope is a
    single parse: the same line in two uploaded statements is kept twice.
    """

    seen: set[tuple[str, str, Decimal, str]] = set()
    kept: list[Transaction] = []
    for t in transactions:
        key = (t.date, t.description_raw, t.amount, t.direction)
        if key in seen:
            continue
        seen.add(key)
        kept.append(t)
    return kept, len(transactions) - len(kept)


__all__ = [
    "ACCOUNT_HINT_PATTERNS",
    "AMOUNT_TOKEN",
    "Candidate",
    "MIN_DESCRIPTION_LENGTH",
    "SECTION_RULES",
    "SHORT_DATE_TOKEN",
    "StatementPeriod",
    "build_transactions",
    "dedupe",
    "detect_section",
    "extract_account_hint",
    "extract_statement_period",
    "is_column_header",
    "is_negative_token",
    "is_usable_description",
    "new_id",
    "parse_amount",
    "parse_date",
    "resolve_year",
]
