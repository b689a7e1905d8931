"""Matching rule engine.

Rules are evaluated on demand against transactions; they never mutate them.
A malformed ``regex`` pattern simply never matches. Rule editors that want to
surface the problem call :func:`check_rule_patterns`, which reports it
explicitly instead of swallowing it.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from .models import (
    ACH_TO_0478_RULE_ID,
    TRANSFERS_TO_0488_RULE_ID,
    MatchingRule,
    Transaction,
)


@dataclass(frozen=True, slots=True)
class PatternError:
    rule_id: str
    pattern: str
    message: str


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str] | re.error:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        return exc


def check_rule_patterns(rule: MatchingRule) -> list[PatternError]:
    """Return one :class:`PatternError` per pattern that fails to compile.

    Only ``regex`` rules can have invalid patterns; other match types always
    return an empty list.
    """

    if rule.match_type != "regex":
        return []
    errors: list[PatternError] = []
    for pattern in rule.patterns:
        compiled = _compile(pattern)
        if isinstance(compiled, re.error):
            errors.append(PatternError(rule.rule_id, pattern, str(compiled)))
    return errors


def _regex_hit(pattern: str, text: str) -> bool:
    compiled = _compile(pattern)
    if isinstance(compiled, re.error):
        return False
    return compiled.search(text) is not None


def matches_rule(transaction: Transaction, rule: MatchingRule) -> bool:
    if not rule.enabled:
        return False
    if rule.channel_filter is not None and transaction.channel != rule.channel_filter:
        return False

    match rule.match_type:
        case "contains":
            desc = transaction.description_raw.upper()
            return any(p.upper() in desc for p in rule.patterns)
        case "regex":
            return any(_regex_hit(p, transaction.description_raw) for p in rule.patterns)
        case "merchant":
            clean = transaction.description_clean.upper()
            return any(p.upper() in clean for p in rule.patterns)
    return False


def get_matching_transactions(
    transactions: Iterable[Transaction], rule: MatchingRule
) -> list[Transaction]:
    """Transactions matching ``rule`` in input order, each at most once."""

    return [t for t in transactions if matches_rule(t, rule)]


def find_rule(rules: Sequence[MatchingRule], rule_id: str) -> MatchingRule | None:
    for rule in rules:
        if rule.rule_id == rule_id:
            return rule
    return None


def _outbound_matching(
    transactions: Iterable[Transaction], rules: Sequence[MatchingRule], rule_id: str
) -> list[Transaction]:
    rule = find_rule(rules, rule_id)
    if rule is None:
        return []
    return [t for t in transactions if t.direction == "OUT" and matches_rule(t, rule)]


def get_transfers_to_0488(
    transactions: Iterable[Transaction], rules: Sequence[MatchingRule]
) -> list[Transaction]:
    """Outbound transfers to the Capital One account ending 0488."""

    return _outbound_matching(transactions, rules, TRANSFERS_TO_0488_RULE_ID)


def get_ach_to_0478(
    transactions: Iterable[Transaction], rules: Sequence[MatchingRule]
) -> list[Transaction]:
    """Outbound ACH payments to the account ending 0478."""

    return _outbound_matching(transactions, rules, ACH_TO_0478_RULE_ID)


__all__ = [
    "PatternError",
    "check_rule_patterns",
    "find_rule",
    "get_ach_to_0478",
    "get_matching_transactions",
    "get_transfers_to_0488",
    "matches_rule",
]
