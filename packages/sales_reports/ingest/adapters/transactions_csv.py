"""Adapter for mapping a transaction search CSV export to raw rows.

CSV header (exact keys; ``*`` marks required columns):
Internal ID*, Document Number, Date*, Customer ID, Customer*, Customer Email,
Amount*, Sales Rep ID, Sales Rep

Output: :class:`~sales_reports.models.RawTransactionRow` in file order.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from datetime import date, datetime

from ...logging_setup import get_logger
from ...models import EntityRef, RawTransactionRow

REQUIRED_HEADERS: frozenset[str] = frozenset({"Internal ID", "Date", "Customer", "Amount"})

_logger = get_logger("sales_reports.ingest.transactions_csv")


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    # Replace internal newlines with spaces, collapse whitespace, and strip.
    cleaned = re.sub(r"\s+", " ", value.replace("\r", " ").replace("\n", " ")).strip()
    return cleaned if cleaned != "" else None


def parse_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD``, ``MM/DD/YYYY`` or ``MM/DD/YY``; blank → ``None``.

    Raises ``ValueError`` for non-blank values in none of those formats.
    """

    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    # Exports may append a time component; only the date part matters.
    first = s.split()[0]
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y"):
        try:
            return datetime.strptime(first, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"invalid date: {value!r}")


def _entity(ident: str | None, name: str | None) -> EntityRef | None:
    ident_c = _clean_text(ident)
    name_c = _clean_text(name)
    if ident_c is None and name_c is None:
        return None
    return EntityRef(id=ident_c, name=name_c)


def to_raw_rows(rows: Iterable[Mapping[str, str | None]]) -> Iterator[RawTransactionRow]:
    """Convert export rows to :class:`RawTransactionRow`.

    Mapping rules:
    - ``internal_id``: ``Internal ID``
    - ``customer``: ``Customer ID`` + ``Customer`` (``None`` when both blank)
    - ``sales_rep``: ``Sales Rep ID`` + ``Sales Rep`` (``None`` when both blank)
    - ``amount``: ``Amount`` as text; parsed later by the normalizer
    - ``tran_date``: parsed ``Date``

    Rows with an unparseable date cannot be placed in a period; they are
    logged and dropped here.
    """

    for line_no, row in enumerate(rows, start=2):  # header is line 1
        # Skip blank lines (all values empty)
        if all((v or "").strip() == "" for v in row.values()):
            continue
        try:
            tran_date = parse_date(row.get("Date"))
        except ValueError as exc:
            _logger.warning("Dropping CSV line %d: %s", line_no, exc)
            continue
        yield RawTransactionRow(
            internal_id=_clean_text(row.get("Internal ID")),
            document_number=_clean_text(row.get("Document Number")),
            customer=_entity(row.get("Customer ID"), row.get("Customer")),
            customer_email=_clean_text(row.get("Customer Email")),
            amount=_clean_text(row.get("Amount")),
            sales_rep=_entity(row.get("Sales Rep ID"), row.get("Sales Rep")),
            tran_date=tran_date,
        )


__all__ = ["REQUIRED_HEADERS", "parse_date", "to_raw_rows"]
