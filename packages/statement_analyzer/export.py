"""CSV exports of the ledger, the category summary and rule detail views.

Written with the stdlib :mod:`csv` module: fields are quoted only when they
contain a comma, quote or line break, and embedded quotes are doubled. Rows
are separated by ``\\n`` with no trailing newline.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from io import StringIO
from os import PathLike
from pathlib import Path
from typing import Literal

from .models import CategorySummary, Transaction

ExportKind = Literal["transactions", "categories", "transfers"]

TRANSACTION_HEADERS = (
    "Date",
    "Description",
    "Cleaned Description",
    "Category",
    "Amount",
    "Direction",
    "Channel",
    "Tags",
    "Source Statement",
)
CATEGORY_HEADERS = ("Category", "Total", "Count", "Percentage")
TRANSFER_HEADERS = ("Label", "Date", "Description", "Amount", "Channel")

TAG_SEPARATOR = "; "


def _fmt_amount(d: Decimal) -> str:
    return f"{d.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"


def _signed_amount(t: Transaction) -> str:
    s = _fmt_amount(t.amount)
    return f"-{s}" if t.direction == "OUT" else s


def _render(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buf = StringIO()
    writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue().removesuffix("\n")


def export_transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Ledger export; OUT amounts carry a leading ``-``."""

    return _render(
        TRANSACTION_HEADERS,
        (
            (
                t.date,
                t.description_raw,
                t.description_clean,
                t.category,
                _signed_amount(t),
                t.direction,
                t.channel,
                TAG_SEPARATOR.join(t.tags),
                t.statement_id,
            )
            for t in transactions
        ),
    )


def export_category_summary_to_csv(summaries: Iterable[CategorySummary]) -> str:
    return _render(
        CATEGORY_HEADERS,
        (
            (c.category, _fmt_amount(c.total), str(c.count), f"{c.percentage:.1f}%")
            for c in summaries
        ),
    )


def export_transfers_detail_to_csv(transactions: Iterable[Transaction], label: str) -> str:
    """Detail rows for one rule view, each tagged with ``label``."""

    return _render(
        TRANSFER_HEADERS,
        (
            (label, t.date, t.description_raw, _fmt_amount(t.amount), t.channel)
            for t in transactions
        ),
    )


def export_filename(kind: ExportKind, today: date) -> str:
    return f"{kind}-{today.isoformat()}.csv"


def write_export(path: str | PathLike[str], content: str) -> Path:
    """Write ``content`` as UTF-8, creating parent directories. Returns the path."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    return p


__all__ = [
    "CATEGORY_HEADERS",
    "ExportKind",
    "TRANSACTION_HEADERS",
    "TRANSFER_HEADERS",
    "export_category_summary_to_csv",
    "export_filename",
    "export_transactions_to_csv",
    "export_transfers_detail_to_csv",
    "write_export",
]
