"""Keyword-rule categorization, channel detection and description cleanup.

Every function here is a pure function of the raw description string, except
that :class:`Categorizer` consults its user overrides before the built-in
rules. Matching is case-insensitive substring matching; rules are evaluated
in table order and the first hit wins.

The rule tables are plain data so they can be unit-tested on their own and
extended without touching the scanning code in ``ingest``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from .models import UNCATEGORIZED, Channel

# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

# Order matters: e.g. "UBER EATS" hits Rideshare before Restaurants, and
# "ATM FEE" hits Bank Fees before Cash / ATM.
CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Rideshare / Transport", ("UBER", "LYFT", "TAXI", "PARKING", "METRO", "TRANSIT")),
    (
        "Gas / Fuel",
        ("SHELL", "EXXON", "CHEVRON", "BP ", "SUNOCO", "CITGO", "FUEL", "GAS STATION",
         "SPEEDWAY", "WAWA"),
    ),
    (
        "Groceries",
        ("WALMART", "TARGET", "COSTCO", "WHOLE FOODS", "TRADER JOE", "KROGER", "ALDI",
         "SAFEWAY", "PUBLIX", "HEB ", "GROCERY"),
    ),
    (
        "Restaurants / Dining",
        ("MCDONALD", "STARBUCKS", "CHIPOTLE", "CHICK-FIL", "SUBWAY", "DUNKIN", "DOORDASH",
         "GRUBHUB", "UBER EATS", "RESTAURANT", "PIZZA", "CAFE", "DINER", "TACO BELL",
         "WENDY", "BURGER KING", "PANERA"),
    ),
    (
        "Shopping / Retail",
        ("AMAZON", "AMZN", "APPLE.COM", "BEST BUY", "HOME DEPOT", "LOWES", "IKEA",
         "NORDSTROM", "MACYS", "ROSS", "TJ MAXX", "MARSHALLS"),
    ),
    (
        "Insurance",
        ("PROGRESSIVE", "GEICO", "STATE FARM", "ALLSTATE", "INSURANCE", "OSCAR", "AETNA",
         "CIGNA", "UNITED HEALTH", "HUMANA", "BLUE CROSS"),
    ),
    (
        "Utilities",
        ("ELECTRIC", "GAS BILL", "WATER BILL", "INTERNET", "COMCAST", "VERIZON", "AT&T",
         "T-MOBILE", "SPRINT", "XFINITY", "SPECTRUM", "CON EDISON", "CONED"),
    ),
    (
        "Subscriptions",
        ("NETFLIX", "SPOTIFY", "HULU", "DISNEY+", "HBO", "APPLE MUSIC", "YOUTUBE", "ADOBE",
         "MICROSOFT", "GOOGLE STORAGE", "ICLOUD"),
    ),
    (
        "Government / Tax",
        ("IRS", "TAX", "DMV", "STATE OF", "FEDERAL", "GOVT", "GOVERNMENT"),
    ),
    ("P2P Transfers", ("ZELLE", "VENMO", "CASHAPP", "CASH APP", "PAYPAL")),
    ("Wire / ACH Transfer", ("WIRE", "ACH", "TRANSFER", "XFER")),
    (
        "Health / Medical",
        ("PHARMACY", "CVS", "WALGREENS", "DOCTOR", "HOSPITAL", "MEDICAL", "DENTAL", "CLINIC",
         "HEALTH"),
    ),
    (
        "Education",
        ("UNIVERSITY", "COLLEGE", "SCHOOL", "TUITION", "STUDENT", "COURSERA", "UDEMY"),
    ),
    ("Rent / Housing", ("RENT", "MORTGAGE", "LANDLORD", "PROPERTY", "HOA")),
    (
        "Bank Fees",
        ("SERVICE FEE", "OVERDRAFT", "ATM FEE", "MONTHLY FEE", "MAINTENANCE FEE", "LATE FEE"),
    ),
    ("Cash / ATM", ("ATM", "CASH WITHDRAWAL", "CASH DEPOSIT")),
    ("Income / Deposit", ("DIRECT DEP", "PAYROLL", "SALARY", "DEPOSIT", "REFUND")),
    ("Check", ("CHECK #", "CHECK NO", "CHECKCARD")),
)

CHANNEL_RULES: tuple[tuple[tuple[str, ...], Channel], ...] = (
    (("ACH", "ELECTRONIC"), "ACH"),
    (("ZELLE",), "ZELLE"),
    (("VENMO",), "VENMO"),
    (("WIRE",), "WIRE"),
    (("CHECK",), "CHECK"),
    (("ATM", "CASH"), "CASH"),
    (("CARD", "PURCHASE", "DEBIT", "POS"), "CARD"),
)


def all_categories() -> list[str]:
    """Distinct built-in categories in rule order, followed by ``Uncategorized``."""

    seen: dict[str, None] = {}
    for category, _keywords in CATEGORY_RULES:
        seen.setdefault(category, None)
    return [*seen, UNCATEGORIZED]


def match_category_rule(description_raw: str) -> str | None:
    """Return the first built-in category whose keyword occurs in the description."""

    upper = description_raw.upper()
    for category, keywords in CATEGORY_RULES:
        for keyword in keywords:
            if keyword in upper:
                return category
    return None


def detect_channel(description_raw: str) -> Channel:
    upper = description_raw.upper()
    for keywords, channel in CHANNEL_RULES:
        if any(k in upper for k in keywords):
            return channel
    return "OTHER"


# ---------------------------------------------------------------------------
# Categorizer (built-in rules + user overrides)
# ---------------------------------------------------------------------------


class Categorizer:
    """Assign spending categories, consulting user overrides first.

    Overrides map a substring pattern to a category name and are checked in
    insertion order. They live as long as this instance; the store that owns
    the categorizer does not persist them.
    """

    def __init__(self, overrides: dict[str, str] | None = None) -> None:
        self._overrides: dict[str, str] = dict(overrides or {})

    def categorize(self, description_raw: str) -> str:
        upper = description_raw.upper()
        for pattern, category in self._overrides.items():
            if pattern.upper() in upper:
                return category
        return match_category_rule(description_raw) or UNCATEGORIZED

    def add_override(self, pattern: str, category: str) -> None:
        # Re-adding an existing pattern keeps its original position, like a Map.set.
        self._overrides[pattern] = category

    def remove_override(self, pattern: str) -> None:
        self._overrides.pop(pattern, None)

    def overrides(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._overrides.items()))

    def __len__(self) -> int:
        return len(self._overrides)


# ---------------------------------------------------------------------------
# Description cleanup
# ---------------------------------------------------------------------------

_CLEANUP_STEPS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s{2,}"), " "),
    (re.compile(r"\d{2}/\d{2}\s*"), ""),
    (re.compile(r"PURCHASE\s*(?:AUTHORIZED ON|RETURN)\s*", re.IGNORECASE), ""),
    (re.compile(r"RECURRING\s*", re.IGNORECASE), ""),
    (re.compile(r"CARD\s*\d+\s*", re.IGNORECASE), ""),
    (re.compile(r"\bPOS\b\s*", re.IGNORECASE), ""),
    # ACH trace tails: everything from the marker to the end of the text.
    (re.compile(r"ORIG CO NAME:.*$", re.IGNORECASE), ""),
    (re.compile(r"CO ENTRY:.*$", re.IGNORECASE), ""),
    (re.compile(r"SEC:.*$", re.IGNORECASE), ""),
    (re.compile(r"IND ID:.*$", re.IGNORECASE), ""),
    (re.compile(r"IND NAME:.*$", re.IGNORECASE), ""),
    (re.compile(r"TRN\*.*$", re.IGNORECASE), ""),
)

_WORD_START_RE = re.compile(r"\b\w")


def clean_description(raw: str) -> str:
    """Return a display-friendly merchant label for ``raw``.

    Falls back to ``raw`` unchanged when the cleanup removes everything.
    """

    cleaned = raw
    for pattern, replacement in _CLEANUP_STEPS:
        cleaned = pattern.sub(replacement, cleaned)
    cleaned = " ".join(cleaned.split())
    if not cleaned:
        return raw
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), cleaned.lower())


__all__ = [
    "CATEGORY_RULES",
    "CHANNEL_RULES",
    "Categorizer",
    "all_categories",
    "clean_description",
    "detect_channel",
    "match_category_rule",
]
