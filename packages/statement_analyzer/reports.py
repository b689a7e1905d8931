"""Aggregates over a transaction list: category, merchant and monthly rollups.

These are pure functions; the store feeds them its filtered ledger.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from .models import CategorySummary, MerchantSummary, MonthlyTrend, Transaction

TOP_MERCHANTS_LIMIT = 15

_ZERO = Decimal("0")


def total_by_direction(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal]:
    """Return ``(total_in, total_out)``."""

    total_in = total_out = _ZERO
    for t in transactions:
        if t.direction == "IN":
            total_in += t.amount
        else:
            total_out += t.amount
    return total_in, total_out


def category_summary(transactions: Iterable[Transaction]) -> list[CategorySummary]:
    """Outbound spend per category, largest first, with share of total spend."""

    totals: dict[str, list] = {}
    for t in transactions:
        if t.direction != "OUT":
            continue
        acc = totals.setdefault(t.category, [_ZERO, 0])
        acc[0] += t.amount
        acc[1] += 1

    spend = sum((v[0] for v in totals.values()), _ZERO)
    rows = [
        CategorySummary(
            category=category,
            total=total,
            count=count,
            percentage=float(total / spend * 100) if spend > 0 else 0.0,
        )
        for category, (total, count) in totals.items()
    ]
    # Stable sort keeps first-seen order among equal totals.
    rows.sort(key=lambda r: r.total, reverse=True)
    return rows


def top_merchants(
    transactions: Iterable[Transaction], *, limit: int = TOP_MERCHANTS_LIMIT
) -> list[MerchantSummary]:
    """Outbound spend grouped by cleaned description, largest first."""

    totals: dict[str, list] = {}
    for t in transactions:
        if t.direction != "OUT":
            continue
        acc = totals.setdefault(t.description_clean, [_ZERO, 0])
        acc[0] += t.amount
        acc[1] += 1

    rows = [MerchantSummary(merchant=m, total=v[0], count=v[1]) for m, v in totals.items()]
    rows.sort(key=lambda r: r.total, reverse=True)
    return rows[:limit]


def monthly_trends(transactions: Iterable[Transaction]) -> list[MonthlyTrend]:
    """In/out totals per ``YYYY-MM``, oldest month first."""

    months: dict[str, list[Decimal]] = {}
    for t in transactions:
        acc = months.setdefault(t.date[:7], [_ZERO, _ZERO])
        if t.direction == "IN":
            acc[0] += t.amount
        else:
            acc[1] += t.amount
    return [
        MonthlyTrend(month=month, total_in=v[0], total_out=v[1])
        for month, v in sorted(months.items())
    ]


__all__ = [
    "TOP_MERCHANTS_LIMIT",
    "category_summary",
    "monthly_trends",
    "top_merchants",
    "total_by_direction",
]
