"""Generic statement adapter for banks without dedicated heuristics.

Scans every line for slash-dated and dash-dated ``<date> <description>
<amount>`` entries. There is no section tracking: a negative (or
parenthesised) amount is outbound, anything else inbound. Results are always
flagged as less reliable and confidence is capped at 0.7.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date

from ...categorization import Categorizer
from ...logging_setup import get_logger
from ...models import Direction, ParseResult
from ..primitives import (
    AMOUNT_TOKEN,
    Candidate,
    build_transactions,
    extract_account_hint,
    extract_statement_period,
    is_negative_token,
    new_id,
    parse_amount,
)

_logger = get_logger("statement_analyzer.ingest.generic_pdf")

ACCOUNT_FALLBACK = "unknown"
CONFIDENCE_CAP = 0.7
FULL_CONFIDENCE_AT = 30

# Scanned one family at a time, in this order.
LINE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(\d{{1,2}}/\d{{1,2}}(?:/\d{{2,4}})?)\s+(.+?)\s+({AMOUNT_TOKEN})\s*$"),
    re.compile(rf"(\d{{1,2}}-\d{{1,2}}-\d{{2,4}})\s+(.+?)\s+({AMOUNT_TOKEN})\s*$"),
)

WARN_GENERIC = "Using generic parser - results may be less accurate"
WARN_NO_TRANSACTIONS = "No transactions could be extracted."


def scan_generic(text: str) -> list[Candidate]:
    lines = [line.strip() for line in text.split("\n")]
    out: list[Candidate] = []
    for pattern in LINE_PATTERNS:
        for line in lines:
            m = pattern.search(line)
            if m is None:
                continue
            description, amount_token = m.group(2).strip(), m.group(3)
            if len(description) < 3:
                continue
            amount = parse_amount(amount_token)
            if amount == 0:
                continue
            direction: Direction = "OUT" if is_negative_token(amount_token) else "IN"
            out.append(Candidate(m.group(1), description, amount, direction))
    return out


def parse_generic_statement(
    text: str,
    statement_id: str,
    filename: str,
    *,
    categorizer: Categorizer | None = None,
    id_factory: Callable[[], str] = new_id,
    today: date | None = None,
) -> ParseResult:
    warnings = [WARN_GENERIC]
    period = extract_statement_period(text, today=today)
    account_hint = extract_account_hint(text)

    transactions = build_transactions(
        scan_generic(text),
        statement_id=statement_id,
        account_id=account_hint or ACCOUNT_FALLBACK,
        year=period.year,
        period=period,
        categorizer=categorizer,
        id_factory=id_factory,
    )
    if not transactions:
        warnings.append(WARN_NO_TRANSACTIONS)

    n = len(transactions)
    confidence = min(CONFIDENCE_CAP, n / FULL_CONFIDENCE_AT) if n else 0.0
    _logger.debug("parse_generic_statement:done file=%s transactions=%d", filename, n)
    return ParseResult(
        transactions=transactions,
        period_start=period.start,
        period_end=period.end,
        account_hint=account_hint,
        confidence=confidence,
        warnings=warnings,
    )


__all__ = ["parse_generic_statement", "scan_generic"]
