"""Chase checking-statement adapter (extracted text → transactions).

The extracted text carries no layout, so the scan is heuristic:

1. Period and account hint are read from anywhere in the text.
2. Lines are scanned top to bottom. Lines that do not look like a
   transaction but mention a section keyword ("DEPOSITS AND ADDITIONS",
   "ELECTRONIC WITHDRAWALS" ...) switch the running direction.
3. Transaction lines end in ``<M/D> <description> <amount>``; a negative or
   parenthesised amount is always outbound.
4. When no line matches, the whole text is scanned with a global pattern and
   direction is inferred from the 200 characters preceding each match.
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
    SHORT_DATE_TOKEN,
    Candidate,
    build_transactions,
    dedupe,
    detect_section,
    extract_account_hint,
    extract_statement_period,
    is_negative_token,
    is_usable_description,
    new_id,
    parse_amount,
)

_logger = get_logger("statement_analyzer.ingest.chase_pdf")

ACCOUNT_FALLBACK = "chase"
LOOKBEHIND_CHARS = 200
FULL_CONFIDENCE_AT = 20

_LINE_RE = re.compile(rf"({SHORT_DATE_TOKEN})\s+(.+?)\s+({AMOUNT_TOKEN})\s*$")
_FULL_TEXT_RE = re.compile(
    rf"({SHORT_DATE_TOKEN})\s+((?:(?!{SHORT_DATE_TOKEN}).)+?)\s+({AMOUNT_TOKEN})"
)
_INBOUND_CONTEXT = ("DEPOSIT", "ADDITION", "CREDIT")

WARN_NO_PERIOD = "Could not detect statement period"
WARN_NO_TRANSACTIONS = (
    "No transactions could be extracted. The PDF format may not be supported."
)


def scan_lines(text: str, *, initial_section: Direction = "OUT") -> list[Candidate]:
    """Line-oriented pass with section-aware direction."""

    current: Direction = initial_section
    out: list[Candidate] = []
    for line in text.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        m = _LINE_RE.search(trimmed)
        if m is None:
            section = detect_section(trimmed)
            if section is not None:
                current = section
            continue

        date_token, description, amount_token = m.group(1), m.group(2).strip(), m.group(3)
        if not is_usable_description(description):
            continue
        amount = parse_amount(amount_token)
        if amount == 0:
            continue
        direction: Direction = "OUT" if is_negative_token(amount_token) else current
        out.append(Candidate(date_token, description, amount, direction))
    return out


def scan_full_text(text: str) -> list[Candidate]:
    """Fallback pass over the whole blob, ignoring line structure."""

    out: list[Candidate] = []
    for m in _FULL_TEXT_RE.finditer(text):
        date_token, description, amount_token = m.group(1), m.group(2).strip(), m.group(3)
        if len(description) < 3:
            continue
        amount = parse_amount(amount_token)
        if amount == 0:
            continue
        context = text[max(0, m.start() - LOOKBEHIND_CHARS) : m.start()].upper()
        direction: Direction = (
            "IN" if any(k in context for k in _INBOUND_CONTEXT) else "OUT"
        )
        if amount_token.lstrip().startswith("-"):
            direction = "OUT"
        out.append(Candidate(date_token, description, amount, direction))
    return out


def parse_chase_statement(
    text: str,
    statement_id: str,
    filename: str,
    *,
    categorizer: Categorizer | None = None,
    id_factory: Callable[[], str] = new_id,
    today: date | None = None,
) -> ParseResult:
    warnings: list[str] = []
    period = extract_statement_period(text, today=today)
    account_hint = extract_account_hint(text)
    if not period.detected:
        warnings.append(WARN_NO_PERIOD)

    candidates = scan_lines(text)
    used_fallback = False
    if not candidates:
        candidates = scan_full_text(text)
        used_fallback = True

    transactions = build_transactions(
        candidates,
        statement_id=statement_id,
        account_id=account_hint or ACCOUNT_FALLBACK,
        year=period.year,
        period=period,
        categorizer=categorizer,
        id_factory=id_factory,
    )
    if not transactions:
        warnings.append(WARN_NO_TRANSACTIONS)

    transactions, removed = dedupe(transactions)
    if removed:
        warnings.append(f"Removed {removed} duplicate transactions")

    confidence = min(1.0, len(transactions) / FULL_CONFIDENCE_AT) if transactions else 0.0
    _logger.debug(
        "parse_chase_statement:done file=%s transactions=%d duplicates=%d fallback=%s",
        filename,
        len(transactions),
        removed,
        used_fallback,
    )
    return ParseResult(
        transactions=transactions,
        period_start=period.start,
        period_end=period.end,
        account_hint=account_hint,
        confidence=confidence,
        warnings=warnings,
    )


__all__ = ["parse_chase_statement", "scan_full_text", "scan_lines"]
