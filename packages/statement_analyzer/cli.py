# ruff: noqa: I001
"""CLI for the ``statement_analyzer`` package.

Command handlers (``cmd_*``) return a process exit code and print results to
stdout and errors to stderr; the Typer commands below are thin wrappers that
resolve options and exit with that code. Environment variables are loaded
from a local ``.env`` by the root callback before any command runs. State
lives in the local snapshot storage (see :mod:`statement_analyzer.config`).
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from .config import DATABASE_URL_ENV, LOG_FORMAT_ENV, LOG_LEVEL_ENV
from .errors import AnalyzerError, UnknownProjectError
from .export import (
    ExportKind,
    export_category_summary_to_csv,
    export_filename,
    export_transactions_to_csv,
    export_transfers_detail_to_csv,
    write_export,
)
from .ingest.extract import SourceFile, is_pdf
from .logging_setup import LOG_FORMATS, configure_logging
from .matching import find_rule, get_matching_transactions
from .models import TRANSFERS_TO_0488_RULE_ID, MatchingRule, Transaction
from .persistence import SqlSnapshotStorage
from .store import AnalyzerStore


# ---- Small module-level helpers used by CLI commands -------------------------


def _open_store(database_url: str | None) -> AnalyzerStore:
    return AnalyzerStore.open(SqlSnapshotStorage(database_url))


def _load_store(database_url: str | None, **filters) -> AnalyzerStore | None:
    """Open the store and apply ledger ``filters``.

    Prints the error and returns ``None`` when the saved state cannot be
    loaded or a filter value is invalid.
    """

    try:
        store = _open_store(database_url)
    except (AnalyzerError, ValidationError) as e:
        print(f"Error: failed to load saved state: {e}", file=sys.stderr)
        return None
    try:
        _apply_ledger_filters(store, **filters)
    except ValidationError as e:
        print(f"Error: invalid filter: {e}", file=sys.stderr)
        return None
    return store


def _money(d: Decimal) -> str:
    return f"${d:,.2f}"


def _signed(t: Transaction) -> str:
    return f"-{t.amount:,.2f}" if t.direction == "OUT" else f"{t.amount:,.2f}"


def _parse_overrides(raw: Sequence[str]) -> list[tuple[str, str]]:
    """Parse ``PATTERN=CATEGORY`` pairs; raises ``ValueError`` on bad input."""

    pairs: list[tuple[str, str]] = []
    for item in raw:
        pattern, sep, category = item.partition("=")
        if not sep or not pattern.strip() or not category.strip():
            raise ValueError(f"expected PATTERN=CATEGORY, got {item!r}")
        pairs.append((pattern.strip(), category.strip()))
    return pairs


def _apply_ledger_filters(
    store: AnalyzerStore,
    *,
    start: str | None = None,
    end: str | None = None,
    amount_min: str | None = None,
    amount_max: str | None = None,
    direction: str | None = None,
    category: str | None = None,
    search: str | None = None,
    statement: str | None = None,
    only_0488: bool = False,
    only_0478: bool = False,
) -> None:
    """Translate CLI options into store filters; raises ``ValidationError``."""

    date_range = None
    if start or end:
        date_range = {"start": start or "0000-01-01", "end": end or "9999-12-31"}
    store.set_filters(
        date_range=date_range,
        amount_min=amount_min,
        amount_max=amount_max,
        direction=direction.upper() if direction else None,
        category=category,
        search=search or "",
        source_statement=statement,
        only_transfers_to_0488=only_0488,
        only_ach_to_0478=only_0478,
    )


# ---- Command handlers ---------------------------------------------------------


def cmd_ingest(
    paths: Sequence[Path],
    *,
    database_url: str | None = None,
    project: str | None = None,
    overrides: Sequence[str] = (),
) -> int:
    """Parse PDF statements/forms into the active (or named) project.

    Non-PDF paths are skipped with a notice. When ``project`` names an
    existing project it is activated, otherwise it is created. ``overrides``
    are ``PATTERN=CATEGORY`` pairs applied to this run only.
    """

    try:
        override_pairs = _parse_overrides(overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    sources: list[SourceFile] = []
    for path in paths:
        if not is_pdf(path.name):
            print(f"Skipping non-PDF file: {path}", file=sys.stderr)
            continue
        try:
            sources.append(SourceFile.from_path(path))
        except FileNotFoundError:
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1
        except PermissionError:
            print(f"Error: Permission denied: {path}", file=sys.stderr)
            return 1
    if not sources:
        print("Error: no PDF files to process", file=sys.stderr)
        return 1

    store = _load_store(database_url)
    if store is None:
        return 1
    try:
        if project:
            existing = next((p for p in store.projects if p.name == project), None)
            if existing is None:
                store.create_project(project)
            else:
                store.set_active_project(existing.id)
        for pattern, category in override_pairs:
            store.add_category_override(pattern, category)
        statements = asyncio.run(store.process_files(sources))
    except AnalyzerError as e:
        print(f"Error: ingest failed: {e}", file=sys.stderr)
        return 1

    for s in statements:
        print(
            f"{s.uploaded_filename}\t{s.doc_type}\t{s.bank}\t"
            f"transactions={s.transaction_count}\tconfidence={s.parse_confidence:.2f}"
        )
        for warning in s.warnings:
            print(f"  warning: {warning}")
    return 0


def cmd_projects(*, database_url: str | None = None) -> int:
    store = _load_store(database_url)
    if store is None:
        return 1
    if not store.projects:
        print("No projects yet. Use `new-project` or `ingest`.")
        return 0
    for p in store.projects:
        marker = "*" if p.id == store.active_project_id else " "
        print(f"{marker} {p.id}\t{p.name}\tdocuments={len(p.statement_ids)}\t{p.created_at}")
    return 0


def cmd_new_project(name: str, *, database_url: str | None = None) -> int:
    if not name.strip():
        print("Error: project name must not be empty", file=sys.stderr)
        return 1
    store = _load_store(database_url)
    if store is None:
        return 1
    print(store.create_project(name.strip()))
    return 0


def cmd_use_project(project_id: str, *, database_url: str | None = None) -> int:
    store = _load_store(database_url)
    if store is None:
        return 1
    try:
        store.set_active_project(project_id)
    except UnknownProjectError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_delete_project(project_id: str, *, database_url: str | None = None) -> int:
    store = _load_store(database_url)
    if store is None:
        return 1
    try:
        store.delete_project(project_id)
    except UnknownProjectError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    active = store.active_project
    print(f"Deleted {project_id}. Active project: {active.name if active else '(none)'}")
    return 0


def cmd_ledger(*, database_url: str | None = None, **filters) -> int:
    store = _load_store(database_url, **filters)
    if store is None:
        return 1
    for t in store.get_filtered_transactions():
        print(
            f"{t.date}\t{_signed(t)}\t{t.category}\t{t.channel}\t"
            f"{t.description_clean}\t{t.id}"
        )
    return 0


def cmd_dashboard(
    *, database_url: str | None = None, start: str | None = None, end: str | None = None
) -> int:
    """Totals honor the project and date range only, not the other ledger filters."""

    store = _load_store(database_url, start=start, end=end)
    if store is None:
        return 1
    stats = store.get_dashboard_stats()
    print(f"Total in:\t{_money(stats.total_in)}")
    print(f"Total out:\t{_money(stats.total_out)}")
    print(f"Net:\t{_money(stats.total_in - stats.total_out)}")
    print(
        f"Transfers to 0488:\t{_money(stats.transfers_to_0488.total)}"
        f"\t({stats.transfers_to_0488.count} transactions)"
    )
    print(
        f"ACH to 0478:\t{_money(stats.ach_to_0478.total)}"
        f"\t({stats.ach_to_0478.count} transactions)"
    )
    return 0


def cmd_categories(*, database_url: str | None = None, **filters) -> int:
    store = _load_store(database_url, **filters)
    if store is None:
        return 1
    for c in store.get_category_summary():
        print(f"{c.category}\t{_money(c.total)}\t{c.count}\t{c.percentage:.1f}%")
    return 0


def cmd_merchants(*, database_url: str | None = None, **filters) -> int:
    store = _load_store(database_url, **filters)
    if store is None:
        return 1
    for m in store.get_top_merchants():
        print(f"{m.merchant}\t{_money(m.total)}\t{m.count}")
    return 0


def cmd_trends(*, database_url: str | None = None, **filters) -> int:
    store = _load_store(database_url, **filters)
    if store is None:
        return 1
    for row in store.get_monthly_trends():
        print(f"{row.month}\tin={_money(row.total_in)}\tout={_money(row.total_out)}")
    return 0


def cmd_documents(*, database_url: str | None = None) -> int:
    store = _load_store(database_url)
    if store is None:
        return 1
    for s in store.get_active_project_statements():
        period = f"{s.period_start}..{s.period_end}" if s.period_start else "(unknown period)"
        print(f"statement\t{s.uploaded_filename}\t{s.bank}\t{period}\t{s.transaction_count}")
    for form in store.get_documents():
        print(f"form\t{form.uploaded_filename}\t{form.form_type}\t{form.form_year or '?'}")
        for key, value in form.form_fields.items():
            print(f"  {key}: {value}")
    return 0


def cmd_rules(*, database_url: str | None = None) -> int:
    store = _load_store(database_url)
    if store is None:
        return 1
    for r in store.matching_rules:
        state = "on" if r.enabled else "off"
        channel = r.channel_filter or "any"
        print(
            f"{r.rule_id}\t{r.name}\t{r.match_type}\t{state}\tchannel={channel}\t"
            + " | ".join(r.patterns)
        )
    errors = store.get_rule_pattern_errors()
    for err in errors:
        print(f"Invalid pattern in {err.rule_id}: {err.pattern!r}: {err.message}", file=sys.stderr)
    return 1 if errors else 0


def cmd_add_rule(
    rule_id: str,
    name: str,
    patterns: Sequence[str],
    *,
    database_url: str | None = None,
    match_type: str = "contains",
    channel: str | None = None,
    enabled: bool = True,
) -> int:
    try:
        rule = MatchingRule(
            rule_id=rule_id,
            name=name,
            match_type=match_type,
            patterns=list(patterns),
            channel_filter=channel.upper() if channel else None,
            enabled=enabled,
        )
    except ValidationError as e:
        print(f"Error: invalid rule: {e}", file=sys.stderr)
        return 1

    store = _load_store(database_url)
    if store is None:
        return 1
    if find_rule(store.matching_rules, rule_id) is not None:
        store.update_rule(rule)
    else:
        store.add_rule(rule)
    return 0


def cmd_delete_rule(rule_id: str, *, database_url: str | None = None) -> int:
    store = _load_store(database_url)
    if store is None:
        return 1
    if find_rule(store.matching_rules, rule_id) is None:
        print(f"Error: unknown rule: {rule_id}", file=sys.stderr)
        return 1
    store.delete_rule(rule_id)
    return 0


def cmd_set_category(
    transaction_id: str, category: str, *, database_url: str | None = None
) -> int:
    store = _load_store(database_url)
    if store is None:
        return 1
    if not store.update_transaction_category(transaction_id, category):
        print(f"Error: unknown transaction: {transaction_id}", file=sys.stderr)
        return 1
    return 0


def cmd_export(
    kind: ExportKind,
    *,
    database_url: str | None = None,
    out_dir: Path = Path("."),
    rule_id: str = TRANSFERS_TO_0488_RULE_ID,
    today: date | None = None,
    **filters,
) -> int:
    """Write a date-stamped CSV export of the filtered ledger and print its path."""

    store = _load_store(database_url, **filters)
    if store is None:
        return 1
    if kind == "transactions":
        content = export_transactions_to_csv(store.get_filtered_transactions())
    elif kind == "categories":
        content = export_category_summary_to_csv(store.get_category_summary())
    elif kind == "transfers":
        rule = find_rule(store.matching_rules, rule_id)
        if rule is None:
            print(f"Error: unknown rule: {rule_id}", file=sys.stderr)
            return 1
        outbound = [t for t in store.get_filtered_transactions() if t.direction == "OUT"]
        content = export_transfers_detail_to_csv(
            get_matching_transactions(outbound, rule), rule.name
        )
    else:
        print(f"Error: unknown export kind: {kind}", file=sys.stderr)
        return 1

    try:
        path = write_export(out_dir / export_filename(kind, today or date.today()), content)
    except OSError as e:
        print(f"Error: failed to write export: {e}", file=sys.stderr)
        return 1
    print(path)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Analyze PDF bank statements locally: ingest, categorize, filter, "
        "summarize and export to CSV."
    ),
)


def _db(ctx: typer.Context) -> str | None:
    return (ctx.obj or {}).get("database_url")


# Ledger filter options shared by ledger, the summaries and export.
StartOpt = Annotated[
    str | None, typer.Option("--start", help="Earliest date, YYYY-MM-DD (inclusive).")
]
EndOpt = Annotated[str | None, typer.Option("--end", help="Latest date, YYYY-MM-DD (inclusive).")]
MinOpt = Annotated[str | None, typer.Option("--min", help="Minimum amount.")]
MaxOpt = Annotated[str | None, typer.Option("--max", help="Maximum amount.")]
DirectionOpt = Annotated[str | None, typer.Option("--direction", help="IN or OUT.")]
CategoryOpt = Annotated[str | None, typer.Option("--category", help="Exact category name.")]
SearchOpt = Annotated[
    str | None, typer.Option("--search", help="Case-insensitive text search.")
]
StatementOpt = Annotated[str | None, typer.Option("--statement", help="Only this statement id.")]
Only0488Opt = Annotated[bool, typer.Option("--only-0488", help="Transfers to 0488 only.")]
Only0478Opt = Annotated[bool, typer.Option("--only-0478", help="ACH to 0478 only.")]


def _filters(
    start: str | None,
    end: str | None,
    amount_min: str | None,
    amount_max: str | None,
    direction: str | None,
    category: str | None,
    search: str | None,
    statement: str | None,
    only_0488: bool,
    only_0478: bool,
) -> dict:
    return {
        "start": start,
        "end": end,
        "amount_min": amount_min,
        "amount_max": amount_max,
        "direction": direction,
        "category": category,
        "search": search,
        "statement": statement,
        "only_0488": only_0488,
        "only_0478": only_0478,
    }


@app.command("ingest")
def ingest_cmd(
    ctx: typer.Context,
    files: Annotated[list[Path], typer.Argument(help="PDF statements or tax forms.")],
    *,
    project: str | None = typer.Option(
        None, help="Project name to ingest into (created when missing)."
    ),
    override: list[str] = typer.Option(
        [], "--override", help="PATTERN=CATEGORY override for this run (repeatable)."
    ),
) -> None:
    raise typer.Exit(
        cmd_ingest(files, database_url=_db(ctx), project=project, overrides=override)
    )


@app.command("projects")
def projects_cmd(ctx: typer.Context) -> None:
    """List projects; the active one is marked with ``*``."""

    raise typer.Exit(cmd_projects(database_url=_db(ctx)))


@app.command("new-project")
def new_project_cmd(ctx: typer.Context, name: str) -> None:
    raise typer.Exit(cmd_new_project(name, database_url=_db(ctx)))


@app.command("use-project")
def use_project_cmd(ctx: typer.Context, project_id: str) -> None:
    raise typer.Exit(cmd_use_project(project_id, database_url=_db(ctx)))


@app.command("delete-project")
def delete_project_cmd(ctx: typer.Context, project_id: str) -> None:
    raise typer.Exit(cmd_delete_project(project_id, database_url=_db(ctx)))


@app.command("ledger")
def ledger_cmd(
    ctx: typer.Context,
    *,
    start: StartOpt = None,
    end: EndOpt = None,
    amount_min: MinOpt = None,
    amount_max: MaxOpt = None,
    direction: DirectionOpt = None,
    category: CategoryOpt = None,
    search: SearchOpt = None,
    statement: StatementOpt = None,
    only_0488: Only0488Opt = False,
    only_0478: Only0478Opt = False,
) -> None:
    """Print the filtered ledger of the active project, newest first."""

    filters = _filters(
        start, end, amount_min, amount_max, direction, category, search, statement,
        only_0488, only_0478,
    )
    raise typer.Exit(cmd_ledger(database_url=_db(ctx), **filters))


@app.command("dashboard")
def dashboard_cmd(ctx: typer.Context, *, start: StartOpt = None, end: EndOpt = None) -> None:
    raise typer.Exit(cmd_dashboard(database_url=_db(ctx), start=start, end=end))


@app.command("categories")
def categories_cmd(
    ctx: typer.Context,
    *,
    start: StartOpt = None,
    end: EndOpt = None,
    amount_min: MinOpt = None,
    amount_max: MaxOpt = None,
    direction: DirectionOpt = None,
    category: CategoryOpt = None,
    search: SearchOpt = None,
    statement: StatementOpt = None,
    only_0488: Only0488Opt = False,
    only_0478: Only0478Opt = False,
) -> None:
    """Outflow totals per category for the filtered ledger."""

    filters = _filters(
        start, end, amount_min, amount_max, direction, category, search, statement,
        only_0488, only_0478,
    )
    raise typer.Exit(cmd_categories(database_url=_db(ctx), **filters))


@app.command("merchants")
def merchants_cmd(
    ctx: typer.Context,
    *,
    start: StartOpt = None,
    end: EndOpt = None,
    amount_min: MinOpt = None,
    amount_max: MaxOpt = None,
    direction: DirectionOpt = None,
    category: CategoryOpt = None,
    search: SearchOpt = None,
    statement: StatementOpt = None,
    only_0488: Only0488Opt = False,
    only_0478: Only0478Opt = False,
) -> None:
    filters = _filters(
        start, end, amount_min, amount_max, direction, category, search, statement,
        only_0488, only_0478,
    )
    raise typer.Exit(cmd_merchants(database_url=_db(ctx), **filters))


@app.command("trends")
def trends_cmd(
    ctx: typer.Context,
    *,
    start: StartOpt = None,
    end: EndOpt = None,
    amount_min: MinOpt = None,
    amount_max: MaxOpt = None,
    direction: DirectionOpt = None,
    category: CategoryOpt = None,
    search: SearchOpt = None,
    statement: StatementOpt = None,
    only_0488: Only0488Opt = False,
    only_0478: Only0478Opt = False,
) -> None:
    filters = _filters(
        start, end, amount_min, amount_max, direction, category, search, statement,
        only_0488, only_0478,
    )
    raise typer.Exit(cmd_trends(database_url=_db(ctx), **filters))


@app.command("documents")
def documents_cmd(ctx: typer.Context) -> None:
    raise typer.Exit(cmd_documents(database_url=_db(ctx)))


@app.command("rules")
def rules_cmd(ctx: typer.Context) -> None:
    raise typer.Exit(cmd_rules(database_url=_db(ctx)))


@app.command("add-rule")
def add_rule_cmd(
    ctx: typer.Context,
    rule_id: str,
    name: str,
    *,
    pattern: list[str] = typer.Option(..., "--pattern", help="Pattern (repeatable)."),
    match_type: str = typer.Option("contains", help="contains, regex or merchant."),
    channel: str | None = typer.Option(None, help="Only match this channel."),
    enabled: bool = typer.Option(True, help="Whether the rule is active."),
) -> None:
    """Add a matching rule, or replace the rule with the same id."""

    raise typer.Exit(
        cmd_add_rule(
            rule_id,
            name,
            pattern,
            database_url=_db(ctx),
            match_type=match_type,
            channel=channel,
            enabled=enabled,
        )
    )


@app.command("delete-rule")
def delete_rule_cmd(ctx: typer.Context, rule_id: str) -> None:
    raise typer.Exit(cmd_delete_rule(rule_id, database_url=_db(ctx)))


@app.command("set-category")
def set_category_cmd(ctx: typer.Context, transaction_id: str, category: str) -> None:
    raise typer.Exit(cmd_set_category(transaction_id, category, database_url=_db(ctx)))


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    kind: str,
    *,
    out: Path = typer.Option(Path("."), help="Directory for the CSV file."),
    rule: str = typer.Option(
        TRANSFERS_TO_0488_RULE_ID, help="Rule id for the transfers export."
    ),
    start: StartOpt = None,
    end: EndOpt = None,
    amount_min: MinOpt = None,
    amount_max: MaxOpt = None,
    direction: DirectionOpt = None,
    category: CategoryOpt = None,
    search: SearchOpt = None,
    statement: StatementOpt = None,
    only_0488: Only0488Opt = False,
    only_0478: Only0478Opt = False,
) -> None:
    """Export ``transactions``, ``categories`` or ``transfers`` as CSV."""

    if kind not in ("transactions", "categories", "transfers"):
        print(f"Error: unknown export kind: {kind}", file=sys.stderr)
        raise typer.Exit(2)
    filters = _filters(
        start, end, amount_min, amount_max, direction, category, search, statement,
        only_0488, only_0478,
    )
    raise typer.Exit(
        cmd_export(kind, database_url=_db(ctx), out_dir=out, rule_id=rule, **filters)
    )


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    database_url: str | None = typer.Option(
        None, help=f"Override {DATABASE_URL_ENV} (falls back to env var)."
    ),
    log_level: str | None = typer.Option(
        None, help=f"Override {LOG_LEVEL_ENV} (e.g. DEBUG, INFO)."
    ),
    log_format: str | None = typer.Option(
        None,
        help=f"Override {LOG_FORMAT_ENV}: {', '.join(LOG_FORMATS)} or a logging format string.",
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    try:
        configure_logging(log_level, fmt=log_format)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e

    ctx.obj = {"database_url": database_url}

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
