"""Raw transaction row → :class:`~sales_reports.models.LineItem`.

Defaults for missing values:

- customer name ``"Unknown"``, customer email ``"No Email"``
- document number ``""``, amount ``"0.00"``
- group key ``"Unassigned"`` when no sales representative is known

Amounts are normalized to exactly two decimals (ROUND_HALF_UP). Values are
kept unescaped; CSV quoting happens once, in ``render``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from .collaborators import CustomerRepLookup
from .errors import MalformedRowError
from .logging_setup import get_logger
from .models import UNASSIGNED, LineItem, RawTransactionRow

DEFAULT_CUSTOMER_NAME = "Unknown"
DEFAULT_CUSTOMER_EMAIL = "No Email"
DEFAULT_DOCUMENT_NUMBER = ""
DEFAULT_AMOUNT = "0.00"

_logger = get_logger("sales_reports.normalizer")


class RepFallbackPolicy(StrEnum):
    """What to do when a transaction carries no sales representative."""

    NONE = "none"
    CUSTOMER_DEFAULT = "customer_default"

    @classmethod
    def parse(cls, raw: str | RepFallbackPolicy) -> RepFallbackPolicy:
        if isinstance(raw, RepFallbackPolicy):
            return raw
        key = str(raw).strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError as exc:
            raise ValueError(f"unknown rep fallback policy: {raw!r}") from exc


# ---------------------------------------------------------------------------
# Amount parsing
# ---------------------------------------------------------------------------


def _to_decimal(raw: str) -> Decimal:
    s = raw.strip()
    negative = False

    # Strip sign, currency symbol and accounting parentheses in any order.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").strip()
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    return -abs(d) if negative else d


def format_amount(raw: str | Decimal | None) -> str:
    """Return ``raw`` as a two-decimal string; blank or ``None`` → ``"0.00"``."""

    if raw is None:
        return DEFAULT_AMOUNT
    if isinstance(raw, Decimal):
        if not raw.is_finite():
            raise ValueError(f"invalid amount: {raw!r}")
        d = raw
    else:
        if not str(raw).strip():
            return DEFAULT_AMOUNT
        d = _to_decimal(str(raw))
    try:
        q = d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except ArithmeticError as exc:
        # More digits than the decimal context holds.
        raise ValueError(f"amount out of range: {raw!r}") from exc
    return f"{q:.2f}"


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


def _text_or(value: object, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str):
        value = str(value)
    s = value.strip()
    return s or default


def _resolve_group_key(
    row: RawTransactionRow,
    *,
    policy: RepFallbackPolicy,
    rep_lookup: CustomerRepLookup | None,
) -> str:
    rep_id = row.sales_rep.id if row.sales_rep is not None else None
    if rep_id:
        return rep_id
    if policy is not RepFallbackPolicy.CUSTOMER_DEFAULT or rep_lookup is None:
        return UNASSIGNED
    customer_id = row.customer.id if row.customer is not None else None
    if not customer_id:
        return UNASSIGNED
    try:
        fallback = rep_lookup.default_rep_for_customer(customer_id)
    except Exception as exc:  # noqa: BLE001 - lookup failures never drop the row
        _logger.warning(
            "Default rep lookup failed for customer %s (row %s): %s",
            customer_id,
            row.internal_id,
            exc,
        )
        return UNASSIGNED
    fallback = (fallback or "").strip()
    if fallback:
        _logger.debug("Row %s assigned to customer default rep %s", row.internal_id, fallback)
        return fallback
    return UNASSIGNED


def normalize_row(
    row: RawTransactionRow,
    *,
    policy: RepFallbackPolicy = RepFallbackPolicy.NONE,
    rep_lookup: CustomerRepLookup | None = None,
) -> LineItem:
    """Normalize one raw row. Raises :class:`MalformedRowError` on bad input."""

    if not isinstance(row, RawTransactionRow):
        raise MalformedRowError(f"expected RawTransactionRow, got {type(row).__name__}")
    try:
        amount = format_amount(row.amount)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise MalformedRowError(str(exc), row_id=row.internal_id) from exc

    try:
        customer_name = row.customer.name if row.customer is not None else None
        return LineItem(
            customer_name=_text_or(customer_name, DEFAULT_CUSTOMER_NAME),
            customer_email=_text_or(row.customer_email, DEFAULT_CUSTOMER_EMAIL),
            document_number=_text_or(row.document_number, DEFAULT_DOCUMENT_NUMBER),
            amount=amount,
            group_key=_resolve_group_key(row, policy=policy, rep_lookup=rep_lookup),
        )
    except (AttributeError, TypeError) as exc:
        raise MalformedRowError(f"unexpected row shape: {exc}", row_id=row.internal_id) from exc


def coerce_row(raw: RawTransactionRow | Mapping[str, Any]) -> RawTransactionRow:
    """Accept a ready row or a search-result mapping."""

    if isinstance(raw, RawTransactionRow):
        return raw
    if isinstance(raw, Mapping):
        try:
            return RawTransactionRow.from_search_result(raw)
        except (KeyError, TypeError, ValueError) as exc:
            row_id = raw.get("id")
            raise MalformedRowError(
                f"unreadable search result: {exc}",
                row_id=str(row_id) if row_id is not None else None,
            ) from exc
    raise MalformedRowError(f"unsupported row type: {type(raw).__name__}")


@dataclass(slots=True)
class NormalizationStats:
    seen: int = 0
    skipped: int = 0

    @property
    def normalized(self) -> int:
        return self.seen - self.skipped


def normalize_rows(
    rows: Iterable[RawTransactionRow | Mapping[str, Any]],
    *,
    policy: RepFallbackPolicy = RepFallbackPolicy.NONE,
    rep_lookup: CustomerRepLookup | None = None,
    stats: NormalizationStats | None = None,
) -> Iterator[LineItem]:
    """Yield a LineItem per well-formed row; log and skip malformed rows.

    Errors raised by the ``rows`` iterable itself are not caught here: they
    mean the row source failed, which is fatal for the run.
    """

    counters = stats if stats is not None else NormalizationStats()
    for position, raw in enumerate(rows):
        counters.seen += 1
        try:
            item = normalize_row(coerce_row(raw), policy=policy, rep_lookup=rep_lookup)
        except MalformedRowError as exc:
            counters.skipped += 1
            _logger.warning(
                "Skipping malformed row at position %d (id=%s): %s",
                position,
                exc.row_id,
                exc,
            )
            continue
        except Exception:  # noqa: BLE001 - one bad row never aborts the batch
            counters.skipped += 1
            row_id = raw.internal_id if isinstance(raw, RawTransactionRow) else None
            _logger.warning(
                "Skipping row at position %d (id=%s): normalization raised",
                position,
                row_id,
                exc_info=True,
            )
            continue
        yield item


__all__ = [
    "DEFAULT_AMOUNT",
    "DEFAULT_CUSTOMER_EMAIL",
    "DEFAULT_CUSTOMER_NAME",
    "DEFAULT_DOCUMENT_NUMBER",
    "NormalizationStats",
    "RepFallbackPolicy",
    "coerce_row",
    "format_amount",
    "normalize_row",
    "normalize_rows",
]
