from __future__ import annotations

from datetime import UTC, date, datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

import statement_analyzer.ingest.extract as extract_mod
from db.client import session_scope
from db.models.storage import LocalStorageEntry
from statement_analyzer.cli import app

from tests.helpers.statements import CHASE_JANUARY, W2_FORM

runner = CliRunner()


@pytest.fixture
def pdfs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> list[Path]:
    """Two on-disk "PDFs" whose extracted text is canned."""

    texts = {"chase-jan.pdf": CHASE_JANUARY, "w2.pdf": W2_FORM}
    monkeypatch.setattr(extract_mod, "extract_text", lambda source: texts[source.name])
    paths = []
    for name in texts:
        p = tmp_path / name
        p.write_bytes(b"%PDF-1.4")
        paths.append(p)
    return paths


def _ingest(pdfs: list[Path], *extra: str):
    result = runner.invoke(app, ["ingest", *map(str, pdfs), *extra])
    assert result.exit_code == 0, result.output
    return result


def test_ingest_and_list_projects(pdfs: list[Path]) -> None:
    result = _ingest(pdfs, "--project", "Taxes")
    assert "chase-jan.pdf\tstatement\tChase\ttransactions=6" in result.output
    assert "w2.pdf\tform\tOther\ttransactions=0" in result.output
    assert "warning: Removed 1 duplicate transactions" in result.output

    listing = runner.invoke(app, ["projects"])
    assert listing.exit_code == 0
    [line] = listing.output.strip().splitlines()
    assert line.startswith("* ")
    assert "\tTaxes\tdocuments=2\t" in line


def test_ingest_skips_non_pdf_and_fails_without_inputs(tmp_path: Path) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("hi")
    result = runner.invoke(app, ["ingest", str(notes)])
    assert result.exit_code == 1
    assert "Skipping non-PDF file" in result.output


def test_ingest_rejects_malformed_override(pdfs: list[Path]) -> None:
    result = runner.invoke(app, ["ingest", str(pdfs[0]), "--override", "nope"])
    assert result.exit_code == 1
    assert "PATTERN=CATEGORY" in result.output


def test_ingest_override_applies_to_run(pdfs: list[Path]) -> None:
    _ingest(pdfs, "--override", "STARBUCKS=Coffee")
    result = runner.invoke(app, ["ledger", "--category", "Coffee"])
    assert result.exit_code == 0
    assert "2024-01-15\t-5.75\tCoffee\tCARD" in result.output


def test_ledger_filters(pdfs: list[Path]) -> None:
    _ingest(pdfs)
    result = runner.invoke(app, ["ledger", "--direction", "out", "--min", "40"])
    assert result.exit_code == 0
    dates = [line.split("\t")[0] for line in result.output.strip().splitlines()]
    assert dates == ["2024-01-18", "2024-01-12", "2024-01-10"]

    quick = runner.invoke(app, ["ledger", "--only-0488"])
    assert quick.output.count("\n") == 1
    assert "Capital One Online Pmt 0488 Transfer" in quick.output

    bad = runner.invoke(app, ["ledger", "--direction", "sideways"])
    assert bad.exit_code == 1
    assert "invalid filter" in bad.output


def test_dashboard_and_summaries(pdfs: list[Path]) -> None:
    _ingest(pdfs)

    dashboard = runner.invoke(app, ["dashboard"])
    assert dashboard.exit_code == 0
    assert "Total in:\t$2,650.00" in dashboard.output
    assert "Total out:\t$845.75" in dashboard.output
    assert "Transfers to 0488:\t$500.00\t(1 transactions)" in dashboard.output
    assert "ACH to 0478:\t$300.00\t(1 transactions)" in dashboard.output

    categories = runner.invoke(app, ["categories"])
    assert categories.output.splitlines()[0] == "Wire / ACH Transfer\t$800.00\t2\t94.6%"

    merchants = runner.invoke(app, ["merchants"])
    assert merchants.output.splitlines()[0].startswith("Capital One Online Pmt 0488 Transfer\t")

    trends = runner.invoke(app, ["trends"])
    assert trends.output.strip() == "2024-01\tin=$2,650.00\tout=$845.75"

    documents = runner.invoke(app, ["documents"])
    assert "form\tw2.pdf\tW-2\t2023" in documents.output
    assert "  wages: 85,000.00" in documents.output


def test_project_commands(pdfs: list[Path]) -> None:
    created = runner.invoke(app, ["new-project", "Household"])
    assert created.exit_code == 0
    household = created.output.strip()

    _ingest(pdfs)
    other = runner.invoke(app, ["new-project", "Other"]).output.strip()

    assert runner.invoke(app, ["use-project", household]).exit_code == 0
    deleted = runner.invoke(app, ["delete-project", household])
    assert deleted.exit_code == 0
    assert "Active project: Other" in deleted.output
    assert runner.invoke(app, ["ledger"]).output == ""

    missing = runner.invoke(app, ["use-project", "nope"])
    assert missing.exit_code == 1
    assert "unknown project" in missing.output
    assert runner.invoke(app, ["delete-project", other]).exit_code == 0


def test_rule_commands() -> None:
    assert runner.invoke(app, ["rules"]).exit_code == 0

    added = runner.invoke(
        app, ["add-rule", "rx", "Broken", "--pattern", "(oops", "--match-type", "regex"]
    )
    assert added.exit_code == 0
    listing = runner.invoke(app, ["rules"])
    assert listing.exit_code == 1
    assert "Invalid pattern in rx" in listing.output

    assert runner.invoke(app, ["delete-rule", "rx"]).exit_code == 0
    assert runner.invoke(app, ["delete-rule", "rx"]).exit_code == 1

    invalid = runner.invoke(app, ["add-rule", "x", "X", "--pattern", "a", "--match-type", "glob"])
    assert invalid.exit_code == 1
    assert "invalid rule" in invalid.output


def test_set_category(pdfs: list[Path]) -> None:
    _ingest(pdfs)
    ledger = runner.invoke(app, ["ledger", "--search", "shell"]).output
    txn_id = ledger.strip().split("\t")[-1]

    assert runner.invoke(app, ["set-category", txn_id, "Car"]).exit_code == 0
    assert "\tCar\t" in runner.invoke(app, ["ledger", "--search", "shell"]).output
    assert runner.invoke(app, ["set-category", "missing", "Car"]).exit_code == 1


def test_export_commands(pdfs: list[Path], tmp_path: Path) -> None:
    _ingest(pdfs)
    out = tmp_path / "exports"
    stamp = date.today().isoformat()

    result = runner.invoke(app, ["export", "transactions", "--out", str(out)])
    assert result.exit_code == 0
    ledger_csv = (out / f"transactions-{stamp}.csv").read_text(encoding="utf-8")
    assert ledger_csv.startswith("Date,Description,Cleaned Description,")
    assert len(ledger_csv.splitlines()) == 7

    runner.invoke(app, ["export", "categories", "--out", str(out)])
    assert (out / f"categories-{stamp}.csv").exists()

    runner.invoke(app, ["export", "transfers", "--out", str(out)])
    transfers_csv = (out / f"transfers-{stamp}.csv").read_text(encoding="utf-8")
    assert "Capital One 0488 Transfers,2024-01-10,Capital One Online Pmt 0488 Transfer,500.00,OTHER" in transfers_csv

    unknown = runner.invoke(app, ["export", "pie-chart"])
    assert unknown.exit_code == 2


def test_no_arguments_shows_help() -> None:
    result = runner.invoke(app, [])
    assert "Usage" in result.output


def test_summaries_honor_ledger_filters(pdfs: list[Path]) -> None:
    _ingest(pdfs)

    categories = runner.invoke(app, ["categories", "--start", "2024-01-13", "--end", "2024-01-31"])
    assert categories.exit_code == 0
    assert categories.output.splitlines() == [
        "Gas / Fuel\t$40.00\t1\t87.4%",
        "Restaurants / Dining\t$5.75\t1\t12.6%",
    ]

    merchants = runner.invoke(app, ["merchants", "--search", "starbucks"])
    [line] = merchants.output.splitlines()
    assert "Starbucks" in line
    assert line.endswith("\t$5.75\t1")

    trends = runner.invoke(app, ["trends", "--direction", "in"])
    assert trends.output.strip() == "2024-01\tin=$2,650.00\tout=$0.00"

    bad = runner.invoke(app, ["categories", "--min", "lots"])
    assert bad.exit_code == 1
    assert "invalid filter" in bad.output


def test_exports_honor_ledger_filters(pdfs: list[Path], tmp_path: Path) -> None:
    _ingest(pdfs)
    out = tmp_path / "filtered"
    stamp = date.today().isoformat()

    result = runner.invoke(
        app, ["export", "transactions", "--out", str(out), "--category", "Gas / Fuel"]
    )
    assert result.exit_code == 0
    rows = (out / f"transactions-{stamp}.csv").read_text(encoding="utf-8").splitlines()
    assert len(rows) == 2
    assert rows[1].startswith("2024-01-18,Card Purchase Shell Oil 12345,")

    runner.invoke(app, ["export", "categories", "--out", str(out), "--start", "2024-01-13"])
    categories_csv = (out / f"categories-{stamp}.csv").read_text(encoding="utf-8")
    assert "Gas / Fuel,40.00,1,87.4%" in categories_csv
    assert "Wire / ACH Transfer" not in categories_csv

    runner.invoke(app, ["export", "transfers", "--out", str(out), "--end", "2024-01-05"])
    transfers_csv = (out / f"transfers-{stamp}.csv").read_text(encoding="utf-8")
    assert transfers_csv == "Label,Date,Description,Amount,Channel"


def test_commands_report_unreadable_saved_state(database_url: str) -> None:
    with session_scope(database_url=database_url) as session:
        session.add(
            LocalStorageEntry(
                name="analyzer-storage",
                schema_version=99,
                payload={"schema_version": 99},
                updated_at=datetime.now(UTC),
            )
        )

    for command in (["projects"], ["ledger"], ["categories"], ["rules"]):
        result = runner.invoke(app, command)
        assert result.exit_code == 1, command
        assert "failed to load saved state" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


def test_unknown_log_level_is_a_usage_error() -> None:
    result = runner.invoke(app, ["--log-level", "chatty", "projects"])
    assert result.exit_code == 2
