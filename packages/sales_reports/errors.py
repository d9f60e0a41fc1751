"""Exception taxonomy for ``sales_reports``.

Failures local to one row or one group are contained where they occur (see
``normalizer.normalize_rows`` and ``dispatch.ReportDispatcher.dispatch``).
Only :class:`RowSourceError` is fatal for a run.
"""

from __future__ import annotations


class SalesReportError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(SalesReportError, ValueError):
    """Settings are missing or invalid."""


class RowSourceError(SalesReportError):
    """The transaction rows for the period could not be obtained at all."""


class MalformedRowError(SalesReportError, ValueError):
    """A single raw transaction row cannot be normalized."""

    def __init__(self, message: str, *, row_id: str | None = None) -> None:
        super().__init__(message)
        self.row_id = row_id


class IdentityLookupError(SalesReportError):
    """An identity (representative, administrator, customer) lookup failed."""


class DeliveryError(SalesReportError):
    """The mail service refused or could not deliver a message.

    Recoverable: the dispatcher records the group as skipped and moves on.
    """


__all__ = [
    "ConfigError",
    "DeliveryError",
    "IdentityLookupError",
    "MalformedRowError",
    "RowSourceError",
    "SalesReportError",
]
