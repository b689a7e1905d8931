from __future__ import annotations

from decimal import Decimal

from statement_analyzer.models import Transaction
from statement_analyzer.reports import (
    category_summary,
    monthly_trends,
    top_merchants,
    total_by_direction,
)


def _t(i: int, *, date: str, amount: str, direction: str = "OUT", category: str = "Misc",
       merchant: str = "Shop") -> Transaction:
    return Transaction(
        id=f"t{i}",
        account_id="x",
        statement_id="s",
        date=date,
        description_raw=merchant.upper(),
        description_clean=merchant,
        amount=Decimal(amount),
        direction=direction,
        category=category,
        channel="CARD",
    )


def test_totals_by_direction() -> None:
    rows = [
        _t(1, date="2024-01-01", amount="10.00"),
        _t(2, date="2024-01-02", amount="5.50", direction="IN"),
    ]
    assert total_by_direction(rows) == (Decimal("5.50"), Decimal("10.00"))
    assert total_by_direction([]) == (Decimal("0"), Decimal("0"))


def test_category_summary_only_counts_outbound() -> None:
    rows = [
        _t(1, date="2024-01-01", amount="30.00", category="Food"),
        _t(2, date="2024-01-02", amount="10.00", category="Fun"),
        _t(3, date="2024-01-03", amount="60.00", category="Food"),
        _t(4, date="2024-01-04", amount="999.00", category="Salary", direction="IN"),
    ]
    summary = category_summary(rows)
    assert [(c.category, c.total, c.count) for c in summary] == [
        ("Food", Decimal("90.00"), 2),
        ("Fun", Decimal("10.00"), 1),
    ]
    assert summary[0].percentage == 90.0
    assert summary[1].percentage == 10.0


def test_category_summary_empty() -> None:
    assert category_summary([_t(1, date="2024-01-01", amount="5.00", direction="IN")]) == []


def test_top_merchants_groups_by_clean_description_and_limits() -> None:
    rows = [
        _t(i, date="2024-01-01", amount=f"{i}.00", merchant=f"M{i}") for i in range(1, 21)
    ]
    rows.append(_t(99, date="2024-01-02", amount="1.00", merchant="M20"))
    merchants = top_merchants(rows)
    assert len(merchants) == 15
    assert (merchants[0].merchant, merchants[0].total, merchants[0].count) == (
        "M20",
        Decimal("21.00"),
        2,
    )
    assert top_merchants(rows, limit=3)[-1].merchant == "M18"


def test_monthly_trends_sorted_ascending() -> None:
    rows = [
        _t(1, date="2024-03-05", amount="10.00"),
        _t(2, date="2024-01-09", amount="7.00", direction="IN"),
        _t(3, date="2024-03-20", amount="2.50"),
    ]
    trends = monthly_trends(rows)
    assert [(m.month, m.total_in, m.total_out) for m in trends] == [
        ("2024-01", Decimal("7.00"), Decimal("0")),
        ("2024-03", Decimal("0"), Decimal("12.50")),
    ]
