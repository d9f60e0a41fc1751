"""Interfaces of the external collaborators the pipeline calls.

Concrete adapters live in ``persistence`` (database), ``ingest`` (CSV
export), ``storage`` (files) and ``mail`` (SMTP / dry run). Tests provide
in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from .models import ArtifactHandle, Identity, OutboundEmail, RawTransactionRow
from .periods import ReportingPeriod


@runtime_checkable
class RowSource(Protocol):
    def fetch_rows(self, period: ReportingPeriod) -> Iterable[RawTransactionRow]:
        """Return every transaction row of ``period``.

        Raise :class:`~sales_reports.errors.RowSourceError` when the rows
        cannot be obtained at all.
        """
        ...


@runtime_checkable
class ArtifactStore(Protocol):
    def save(self, name: str, content: str) -> ArtifactHandle: ...

    def read(self, handle: ArtifactHandle) -> bytes: ...


@runtime_checkable
class MailService(Protocol):
    def send(self, message: OutboundEmail, attachment_content: bytes) -> None:
        """Attempt one delivery; raise :class:`~sales_reports.errors.DeliveryError` on refusal."""
        ...


@runtime_checkable
class IdentityLookup(Protocol):
    def lookup(self, identity_id: str) -> Identity | None: ...


@runtime_checkable
class CustomerRepLookup(Protocol):
    def default_rep_for_customer(self, customer_id: str) -> str | None: ...


__all__ = [
    "ArtifactStore",
    "CustomerRepLookup",
    "IdentityLookup",
    "MailService",
    "RowSource",
]
