"""Public interface for the ``sales_reports`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
Database-backed adapters live in ``sales_reports.persistence`` and are not
imported here so that the package can be used without a database.
"""

from .api import build_mail_service, run_sales_reports
from .config import ReportSettings
from .dispatch import ReportDispatcher
from .errors import (
    ConfigError,
    DeliveryError,
    IdentityLookupError,
    MalformedRowError,
    RowSourceError,
    SalesReportError,
)
from .grouping import GroupAccumulator
from .models import (
    UNASSIGNED,
    ArtifactHandle,
    DispatchOutcome,
    DispatchStatus,
    EntityRef,
    Identity,
    LineItem,
    OutboundEmail,
    RawTransactionRow,
    RecipientKind,
    Report,
    RunSummary,
)
from .normalizer import RepFallbackPolicy, normalize_row, normalize_rows
from .periods import PeriodKind, ReportingPeriod, resolve_period
from .pipeline import run_pipeline
from .render import DEFAULT_HEADER, build_report, render_csv

__all__ = [
    # API
    "build_mail_service",
    "run_pipeline",
    "run_sales_reports",
    "ReportSettings",
    # Components
    "GroupAccumulator",
    "ReportDispatcher",
    "build_report",
    "normalize_row",
    "normalize_rows",
    "render_csv",
    "resolve_period",
    "DEFAULT_HEADER",
    # Models / types
    "UNASSIGNED",
    "ArtifactHandle",
    "DispatchOutcome",
    "DispatchStatus",
    "EntityRef",
    "Identity",
    "LineItem",
    "OutboundEmail",
    "PeriodKind",
    "RawTransactionRow",
    "RecipientKind",
    "RepFallbackPolicy",
    "Report",
    "ReportingPeriod",
    "RunSummary",
    # Errors
    "ConfigError",
    "DeliveryError",
    "IdentityLookupError",
    "MalformedRowError",
    "RowSourceError",
    "SalesReportError",
]
