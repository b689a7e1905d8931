"""Cheap document classification run before committing to a parse path.

All functions are pure functions of the extracted text (and filename). A
false negative only means a document falls through to the generic parser or
is stored as a statement; nothing here fails.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..models import Bank, DocType

# ---------------------------------------------------------------------------
# Rule tables: (text markers, filename markers, outcome), checked in order
# ---------------------------------------------------------------------------

DOC_TYPE_RULES: tuple[tuple[tuple[str, ...], tuple[str, ...], DocType], ...] = (
    (("1095-A", "1095-B", "1095-C"), ("1095",), "form"),
    (("W-2", "W2"), ("W-2", "W2"), "form"),
    (("1099",), ("1099",), "form"),
    (
        ("STATEMENT", "TRANSACTION", "BALANCE", "DEPOSIT", "WITHDRAWAL", "DEBIT", "CREDIT"),
        (),
        "statement",
    ),
)

BANK_RULES: tuple[tuple[tuple[str, ...], tuple[str, ...], Bank], ...] = (
    (("JPMORGAN CHASE", "CHASE BANK", "J.P. MORGAN"), ("CHASE",), "Chase"),
    (("CAPITAL ONE",), ("CAPITAL ONE", "CAPITALONE"), "CapitalOne"),
)

FORM_TYPE_MARKERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("1095-A",), "1095-A"),
    (("1095-B",), "1095-B"),
    (("1095-C",), "1095-C"),
    (("1099-MISC",), "1099-MISC"),
    (("1099-NEC",), "1099-NEC"),
    (("1099-INT",), "1099-INT"),
    (("W-2", "W2"), "W-2"),
)

_AMOUNT = r"\$?\s*([\d,]+\.\d{2})"
_TAX_YEAR_RE = re.compile(
    r"(?:TAX\s*YEAR|CALENDAR\s*YEAR|FOR\s*(?:THE\s*)?YEAR)\s*(\d{4})", re.IGNORECASE
)
_ANY_YEAR_RE = re.compile(r"20[1-3]\d")

# Labelled values worth lifting out of each form; first match per label wins.
FORM_FIELD_PATTERNS: dict[str, tuple[tuple[str, re.Pattern[str]], ...]] = {
    "1095-A": (
        ("marketplace_identifier", re.compile(r"Marketplace identifier\s*[:#]?\s*([\w-]+)", re.I)),
        ("policy_number", re.compile(r"Marketplace-assigned policy number\s*[:#]?\s*([\w-]+)", re.I)),
        ("policy_issuer", re.compile(r"Policy issuer'?s name\s*[:]?\s*([A-Za-z][\w .,&-]+)", re.I)),
        ("annual_premium", re.compile(r"Annual Totals?\s*" + _AMOUNT, re.I)),
    ),
    "1095-B": (
        ("origin_of_coverage", re.compile(r"origin of the (?:health )?coverage\s*[:]?\s*([A-G])\b", re.I)),
    ),
    "1095-C": (
        ("employer_ein", re.compile(r"Employer identification number[^\d]*(\d{2}-\d{7})", re.I)),
    ),
    "W-2": (
        ("employer_ein", re.compile(r"Employer identification number[^\d]*(\d{2}-\d{7})", re.I)),
        ("wages", re.compile(r"Wages,? tips,? other compensation\s*" + _AMOUNT, re.I)),
        ("federal_tax_withheld", re.compile(r"Federal income tax withheld\s*" + _AMOUNT, re.I)),
        ("social_security_wages", re.compile(r"Social security wages\s*" + _AMOUNT, re.I)),
    ),
    "1099-MISC": (
        ("payer_tin", re.compile(r"PAYER'?S (?:TIN|federal identification number)[^\d]*([\d-]{9,11})", re.I)),
        ("rents", re.compile(r"\bRents\s*" + _AMOUNT, re.I)),
        ("other_income", re.compile(r"Other income\s*" + _AMOUNT, re.I)),
    ),
    "1099-NEC": (
        ("payer_tin", re.compile(r"PAYER'?S (?:TIN|federal identification number)[^\d]*([\d-]{9,11})", re.I)),
        ("nonemployee_compensation", re.compile(r"Nonemployee compensation\s*" + _AMOUNT, re.I)),
    ),
    "1099-INT": (
        ("payer_tin", re.compile(r"PAYER'?S (?:TIN|federal identification number)[^\d]*([\d-]{9,11})", re.I)),
        ("interest_income", re.compile(r"Interest income\s*" + _AMOUNT, re.I)),
    ),
}

FORM_CONFIDENCE = 0.5
RAW_TEXT_EXCERPT_CHARS = 5000


@dataclass(frozen=True, slots=True)
class FormInfo:
    type: str
    year: str
    fields: dict[str, str] = field(default_factory=dict)


def _any_in(markers: tuple[str, ...], haystack: str) -> bool:
    return any(m in haystack for m in markers)


def detect_document_type(text: str, filename: str) -> DocType:
    upper, fn_upper = text.upper(), filename.upper()
    for text_markers, name_markers, outcome in DOC_TYPE_RULES:
        if _any_in(text_markers, upper) or _any_in(name_markers, fn_upper):
            return outcome
    return "statement"


def detect_bank(text: str, filename: str) -> Bank:
    upper, fn_upper = text.upper(), filename.upper()
    for text_markers, name_markers, bank in BANK_RULES:
        if _any_in(text_markers, upper) or _any_in(name_markers, fn_upper):
            return bank
    return "Other"


def detect_form(text: str) -> FormInfo:
    """Identify the tax form type, its year and any recognizable fields."""

    upper = text.upper()
    form_type = "Unknown"
    for markers, name in FORM_TYPE_MARKERS:
        if _any_in(markers, upper):
            form_type = name
            break

    year = ""
    m = _TAX_YEAR_RE.search(text)
    if m:
        year = m.group(1)
    else:
        m_any = _ANY_YEAR_RE.search(text)
        if m_any:
            year = m_any.group(0)

    fields: dict[str, str] = {}
    for label, pattern in FORM_FIELD_PATTERNS.get(form_type, ()):
        fm = pattern.search(text)
        if fm:
            fields[label] = fm.group(1).strip()

    return FormInfo(type=form_type, year=year, fields=fields)


__all__ = [
    "BANK_RULES",
    "DOC_TYPE_RULES",
    "FORM_CONFIDENCE",
    "FORM_FIELD_PATTERNS",
    "FORM_TYPE_MARKERS",
    "FormInfo",
    "RAW_TEXT_EXCERPT_CHARS",
    "detect_bank",
    "detect_document_type",
    "detect_form",
]
