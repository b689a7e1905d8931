from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from statement_analyzer.ingest.primitives import (
    StatementPeriod,
    dedupe,
    detect_section,
    extract_account_hint,
    extract_statement_period,
    is_column_header,
    is_negative_token,
    parse_amount,
    parse_date,
)
from statement_analyzer.models import Transaction


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("24.50", Decimal("24.50")),
        ("-$24.50", Decimal("24.50")),
        ("$1,234.56", Decimal("1234.56")),
        ("(15.49)", Decimal("15.49")),
        ("abc", Decimal("0")),
    ],
)
def test_parse_amount_is_absolute(token: str, expected: Decimal) -> None:
    assert parse_amount(token) == expected


def test_is_negative_token() -> None:
    assert is_negative_token("-$24.50")
    assert is_negative_token("(15.49)")
    assert not is_negative_token("$24.50")


def test_parse_date_shapes() -> None:
    assert parse_date("3/5", 2024) == "2024-03-05"
    assert parse_date("03/15/24", 2000) == "2024-03-15"
    assert parse_date("02-10-2024", 2000) == "2024-02-10"
    assert parse_date("March 5", 2024) == "March 5"


def test_parse_date_resolves_year_boundary() -> None:
    period = StatementPeriod(start="2023-12-15", end="2024-01-14", year=2024)
    assert parse_date("12/20", 2024, period) == "2023-12-20"
    assert parse_date("01/03", 2024, period) == "2024-01-03"


def test_extract_statement_period_named_and_numeric() -> None:
    named = extract_statement_period("January 1, 2024 through January 31, 2024")
    assert (named.start, named.end, named.year) == ("2024-01-01", "2024-01-31", 2024)

    numeric = extract_statement_period("Period 02/01/2024 - 02/29/2024")
    assert (numeric.start, numeric.end) == ("2024-02-01", "2024-02-29")
    assert numeric.detected


def test_extract_statement_period_fallbacks() -> None:
    year_only = extract_statement_period("Statement for 2022 activity")
    assert not year_only.detected
    assert year_only.year == 2022

    nothing = extract_statement_period("no dates here", today=date(2030, 5, 1))
    assert (nothing.start, nothing.end, nothing.year) == ("", "", 2030)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Account Number: 000000123456789", "6789"),
        ("Primary account ending in 4321", "4321"),
        ("Card ...9876 statement", "9876"),
        ("nothing to see", ""),
    ],
)
def test_extract_account_hint(text: str, expected: str) -> None:
    assert extract_account_hint(text) == expected


def test_detect_section_prefers_inbound_keywords() -> None:
    assert detect_section("DEPOSITS AND ADDITIONS") == "IN"
    assert detect_section("ELECTRONIC WITHDRAWALS") == "OUT"
    assert detect_section("CHECKING SUMMARY") is None


def test_is_column_header() -> None:
    assert is_column_header("Date Description Amount")
    assert not is_column_header("Starbucks")


def _t(tid: str, desc: str = "A", amount: str = "1.00") -> Transaction:
    return Transaction(
        id=tid,
        account_id="x",
        statement_id="s",
        date="2024-01-01",
        description_raw=desc,
        description_clean=desc,
        amount=Decimal(amount),
        direction="OUT",
        category="Uncategorized",
        channel="OTHER",
    )


def test_dedupe_keeps_first_occurrence() -> None:
    kept, removed = dedupe([_t("a"), _t("b"), _t("c", amount="2.00")])
    assert [t.id for t in kept] == ["a", "c"]
    assert removed == 1


def test_transaction_amount_must_be_non_negative() -> None:
    with pytest.raises(ValueError):
        _t("neg", amount="-1.00")


@pytest.mark.parametrize("token", ["13/45", "02/30", "00/00/2024", "02-29-2023"])
def test_parse_date_rejects_impossible_dates(token: str) -> None:
    with pytest.raises(ValueError):
        parse_date(token, 2023)


def test_parse_date_accepts_leap_day() -> None:
    assert parse_date("02/29", 2024) == "2024-02-29"


def test_extract_statement_period_skips_impossible_range() -> None:
    period = extract_statement_period("Period 02/30/2024 - 03/31/2024")
    assert not period.detected
    assert period.year == 2024
