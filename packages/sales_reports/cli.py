# ruff: noqa: I001
"""CLI for the ``sales_reports`` package.

Exposes a Typer app with a single ``run`` command that sends the monthly
sales reports. Environment variables are loaded from a local ``.env`` using
``python-dotenv`` (existing variables win) before settings are resolved;
command-line options override the environment. Business logic lives in
``sales_reports.api`` and the modules it wires together.

Output: one ``<group>\\t<status>\\t<reason>`` line per dispatch outcome on
stdout, followed by a summary line on stderr. Exit code ``0`` means the run
completed (even if individual groups were skipped or failed); ``1`` means the
run could not start or could not read its transactions.
"""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Send monthly sales reports: one CSV per sales rep, unassigned sales to "
        "the administrator. Loads settings from a local .env before running."
    ),
)


# Module-level option object to satisfy ruff B008 (no calls in parameter
# defaults). Typer will inspect this when used as a default value below.
INPUT_CSV_OPTION: OptionInfo = typer.Option(
    None,
    "--input-csv",
    help="Read transactions from an exported CSV instead of the database.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the row source reports unreadable files itself
)


@app.command("run")
def run_cmd(
    input_csv: Path | None = INPUT_CSV_OPTION,
    *,
    period: str | None = typer.Option(
        None, help="Reporting period: previous-month (default) or current-month."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    admin_id: str | None = typer.Option(
        None, help="Employee id of the administrator (SALES_REPORTS_ADMIN_ID)."
    ),
    sender_id: str | None = typer.Option(
        None, help="Employee id used as the sender; defaults to the administrator."
    ),
    output_dir: Path | None = typer.Option(
        None, help="Directory for report CSV files (SALES_REPORTS_ARTIFACT_DIR)."
    ),
    rep_fallback: str | None = typer.Option(
        None, help="Rep fallback for rows without a sales rep: none or customer-default."
    ),
    concurrency: int | None = typer.Option(None, help="Parallel dispatch workers (1-32)."),
    timeout: float | None = typer.Option(
        None, help="Seconds allowed per dispatch; 0 disables the limit."
    ),
    dry_run: bool = typer.Option(False, help="Log emails instead of sending them."),
    persist: bool = typer.Option(False, help="Record dispatch outcomes in the database."),
) -> None:
    """Build and send the sales reports for one period."""

    # Deferred imports to keep CLI startup fast
    import sys

    from .api import run_sales_reports
    from .config import ReportSettings
    from .errors import ConfigError, RowSourceError

    try:
        settings = ReportSettings.from_env(
            period=period,
            database_url=database_url,
            admin_id=admin_id,
            sender_id=sender_id,
            artifact_dir=output_dir,
            rep_fallback=rep_fallback,
            concurrency=concurrency,
            dispatch_timeout=timeout,
            # Flags only ever switch these on; the environment can too.
            dry_run=True if dry_run else None,
            persist=True if persist else None,
        )
        summary = run_sales_reports(settings, input_csv=input_csv)
    except (ConfigError, RowSourceError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise typer.Exit(1) from exc

    for outcome in summary.outcomes:
        typer.echo(f"{outcome.group_key}\t{outcome.status.value}\t{outcome.reason}")
    print(
        f"{summary.period.label}: {summary.delivered} delivered, "
        f"{summary.skipped} skipped, {summary.failed} failed "
        f"({summary.rows_seen} rows, {summary.rows_skipped} malformed)",
        file=sys.stderr,
    )


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    # Running as a module: `python -m sales_reports.cli`
    app()
