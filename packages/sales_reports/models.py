"""Data models for the sales report pipeline.

Records are frozen ``dataclass``es with explicit field order so they can be
shared across threads in the dispatch phase without copying. Raw input keeps
whatever the row source produced; normalization into report-ready values
happens in ``normalizer``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Any

from .periods import ReportingPeriod

# Grouping key for transactions without a sales representative.
UNASSIGNED: str = "Unassigned"


# ---------------------------------------------------------------------------
# Input rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EntityRef:
    """Reference to a platform record: internal id plus display text."""

    id: str | None
    name: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> EntityRef | None:
        """Build from a ``{"value", "text"}`` mapping or a one-element list of them.

        Both shapes appear in search results (``{"value": "12", "text": "Jo"}``)
        and in field lookups (``[{"value": "12", "text": "Jo"}]``). Empty
        values map to ``None``; anything else is rejected with ``TypeError``.
        """

        if raw is None or raw == "" or raw == []:
            return None
        if isinstance(raw, EntityRef):
            return raw
        if isinstance(raw, list | tuple):
            if len(raw) != 1:
                raise TypeError(f"expected a single entity reference, got {len(raw)}")
            return cls.from_raw(raw[0])
        if isinstance(raw, Mapping):
            ident = _clean(raw.get("value"))
            name = _clean(raw.get("text"))
            if ident is None and name is None:
                return None
            return cls(id=ident, name=name)
        raise TypeError(f"unsupported entity reference: {type(raw).__name__}")


def _clean(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


@dataclass(frozen=True, slots=True)
class RawTransactionRow:
    """One transaction as produced by a row source.

    Only ``internal_id`` is expected to be always present; every other field
    may be missing and is defaulted by the normalizer.
    """

    internal_id: str | None
    document_number: str | None = None
    customer: EntityRef | None = None
    customer_email: str | None = None
    amount: str | Decimal | None = None
    sales_rep: EntityRef | None = None
    tran_date: date | None = None

    @classmethod
    def from_search_result(cls, result: Mapping[str, Any]) -> RawTransactionRow:
        """Build from a search-result mapping (``{"id": ..., "values": {...}}``).

        ``values`` keys follow the saved search columns: ``tranid``, ``entity``,
        ``email.customer`` (or ``email``), ``amount`` and ``salesrep`` (or the
        customer-joined ``salesrep.customerMain``). Raises ``TypeError`` or
        ``KeyError`` for shapes that cannot be interpreted; the normalizer
        treats those rows as malformed.
        """

        values = result["values"]
        if not isinstance(values, Mapping):
            raise TypeError("search result 'values' must be a mapping")
        rep_raw = values.get("salesrep")
        if rep_raw in (None, "", []):
            rep_raw = values.get("salesrep.customerMain")
        email = values.get("email.customer")
        if email is None:
            email = values.get("email")
        amount = values.get("amount")
        return cls(
            internal_id=_clean(result.get("id")),
            document_number=_clean(values.get("tranid")),
            customer=EntityRef.from_raw(values.get("entity")),
            customer_email=_clean(email),
            amount=amount if isinstance(amount, Decimal) else _clean(amount),
            sales_rep=EntityRef.from_raw(rep_raw),
        )


# ---------------------------------------------------------------------------
# Normalized items and reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LineItem:
    """One report line. Values are raw text; CSV quoting is the renderer's job."""

    customer_name: str
    customer_email: str
    document_number: str
    amount: str
    group_key: str

    @property
    def is_unassigned(self) -> bool:
        return self.group_key == UNASSIGNED

    def as_row(self) -> tuple[str, str, str, str]:
        return (self.customer_name, self.customer_email, self.document_number, self.amount)


class RecipientKind(StrEnum):
    ADMIN = "admin"
    REPRESENTATIVE = "representative"


def recipient_kind_for(group_key: str) -> RecipientKind:
    """Unassigned groups go to the administrator, all others to their rep."""

    if group_key == UNASSIGNED:
        return RecipientKind.ADMIN
    return RecipientKind.REPRESENTATIVE


@dataclass(frozen=True, slots=True)
class Report:
    """Rendered CSV for one group, ready for dispatch."""

    group_key: str
    period: ReportingPeriod
    filename: str
    csv_text: str
    line_count: int

    @property
    def recipient_kind(self) -> RecipientKind:
        return recipient_kind_for(self.group_key)


# ---------------------------------------------------------------------------
# Collaborator payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Identity:
    """A person known to the identity directory (employee/administrator)."""

    id: str
    display_name: str
    email: str | None = None


@dataclass(frozen=True, slots=True)
class ArtifactHandle:
    """Retrievable reference to a stored report file."""

    id: str
    name: str
    path: str
    content_type: str = "text/csv"


@dataclass(frozen=True, slots=True)
class OutboundEmail:
    sender: Identity
    recipient: Identity
    subject: str
    body: str
    attachment: ArtifactHandle


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class DispatchStatus(StrEnum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class DispatchOutcome:
    """Result of one group's render+dispatch attempt (terminal, never retried)."""

    group_key: str
    status: DispatchStatus
    reason: str
    recipient_kind: RecipientKind
    recipient_id: str | None = None
    recipient_name: str | None = None
    artifact_id: str | None = None
    line_count: int = 0


@dataclass(frozen=True, slots=True)
class RunSummary:
    period: ReportingPeriod
    run_id: str
    rows_seen: int
    rows_skipped: int
    outcomes: tuple[DispatchOutcome, ...] = field(default_factory=tuple)

    def count(self, status: DispatchStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def delivered(self) -> int:
        return self.count(DispatchStatus.DELIVERED)

    @property
    def skipped(self) -> int:
        return self.count(DispatchStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(DispatchStatus.FAILED)


__all__ = [
    "UNASSIGNED",
    "ArtifactHandle",
    "DispatchOutcome",
    "DispatchStatus",
    "EntityRef",
    "Identity",
    "LineItem",
    "OutboundEmail",
    "RawTransactionRow",
    "RecipientKind",
    "Report",
    "RunSummary",
    "recipient_kind_for",
]
