"""Public entry points for running the monthly sales reports.

:func:`run_sales_reports` wires :class:`~sales_reports.config.ReportSettings`
to the concrete adapters (database or CSV row source, database identity
directory, local artifact store, SMTP or dry-run mail) and runs the pipeline.
Any collaborator can be replaced by passing an instance explicitly, which is
how hosts embed the pipeline with their own services.

DB imports are local to the functions that need them so that CSV-only runs
never touch the database library.
"""

from __future__ import annotations

import os
from datetime import date
from os import PathLike

from .collaborators import ArtifactStore, CustomerRepLookup, IdentityLookup, MailService, RowSource
from .config import ReportSettings
from .dispatch import ReportDispatcher
from .errors import ConfigError
from .logging_setup import get_logger
from .mail import LoggingMailService, SmtpMailService
from .models import RunSummary
from .normalizer import RepFallbackPolicy
from .periods import resolve_period
from .pipeline import run_pipeline
from .storage import LocalArtifactStore

_logger = get_logger("sales_reports.api")


def build_mail_service(settings: ReportSettings) -> MailService:
    if settings.dry_run:
        return LoggingMailService()
    settings.require_smtp()
    assert settings.smtp_host is not None and settings.from_address is not None
    return SmtpMailService(
        host=settings.smtp_host,
        port=settings.smtp_port,
        from_address=settings.from_address,
        username=settings.smtp_username,
        password=settings.smtp_password,
        starttls=settings.smtp_starttls,
    )


def run_sales_reports(
    settings: ReportSettings,
    *,
    input_csv: str | PathLike[str] | None = None,
    today: date | None = None,
    row_source: RowSource | None = None,
    identities: IdentityLookup | None = None,
    rep_lookup: CustomerRepLookup | None = None,
    store: ArtifactStore | None = None,
    mail: MailService | None = None,
) -> RunSummary:
    """Run one reporting cycle and return its summary.

    Raises :class:`~sales_reports.errors.RowSourceError` when transactions
    cannot be read and :class:`~sales_reports.errors.ConfigError` when a
    required collaborator cannot be built from ``settings``.
    """

    period = resolve_period(settings.period, today=today)

    needs_db = (
        (row_source is None and input_csv is None)
        or identities is None
        or (rep_lookup is None and settings.rep_fallback is RepFallbackPolicy.CUSTOMER_DEFAULT)
        or settings.persist
    )
    if needs_db and settings.database_url is None:
        if not os.getenv("DATABASE_URL"):
            raise ConfigError("DATABASE_URL is required for this run (or pass collaborators)")

    if row_source is None:
        if input_csv is not None:
            from .ingest import CsvRowSource

            row_source = CsvRowSource(input_csv)
        else:
            from .persistence import SqlRowSource

            row_source = SqlRowSource(database_url=settings.database_url)

    if identities is None or (
        rep_lookup is None and settings.rep_fallback is RepFallbackPolicy.CUSTOMER_DEFAULT
    ):
        from .persistence import SqlDirectory

        directory = SqlDirectory(database_url=settings.database_url)
        identities = identities or directory
        if rep_lookup is None and settings.rep_fallback is RepFallbackPolicy.CUSTOMER_DEFAULT:
            rep_lookup = directory

    dispatcher = ReportDispatcher(
        identities=identities,
        store=store or LocalArtifactStore(settings.artifact_dir),
        mail=mail or build_mail_service(settings),
        admin_id=settings.admin_id,
        sender_id=settings.sender_id,
    )

    summary = run_pipeline(
        row_source,
        dispatcher,
        period=period,
        policy=settings.rep_fallback,
        rep_lookup=rep_lookup,
        header=settings.csv_header,
        concurrency=settings.concurrency,
        dispatch_timeout=settings.dispatch_timeout,
    )

    if settings.persist:
        from db.client import session_scope

        from .persistence import record_dispatch_outcomes

        # Audit rows are best-effort: the reports have already gone out.
        try:
            with session_scope(database_url=settings.database_url) as session:
                n = record_dispatch_outcomes(
                    session,
                    run_id=summary.run_id,
                    period=summary.period,
                    outcomes=summary.outcomes,
                )
            _logger.info("Recorded %d dispatch outcomes for run %s", n, summary.run_id)
        except Exception:  # noqa: BLE001
            _logger.error(
                "Could not record dispatch outcomes for run %s", summary.run_id, exc_info=True
            )

    return summary


__all__ = ["build_mail_service", "run_sales_reports"]
