# ruff: noqa: I001
"""Database integration for sales_reports.

Adapters here read from and write to the shared database owned by
``libs/db``. They rely on SQLAlchemy ORM models defined in
``db.models.sales`` and sessions provided by ``db.client``.

Scope:
- ``SqlRowSource``: transaction header rows of a reporting period.
- ``SqlDirectory``: employee identities and customers' default sales reps.
- ``record_dispatch_outcomes``: audit trail of a run's dispatch outcomes.

Each call opens its own short session, so the adapters are safe to share
across the dispatch worker threads.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased
from sqlalchemy.sql import expression as sa_expr

from db.client import session_scope
from db.models.sales import SrCustomer, SrEmployee, SrReportDispatch, SrTransaction
from .errors import IdentityLookupError, RowSourceError
from .logging_setup import get_logger
from .models import DispatchOutcome, EntityRef, Identity, RawTransactionRow
from .periods import ReportingPeriod

DEFAULT_TRAN_TYPE = "SalesOrd"

_logger = get_logger("sales_reports.persistence")


class SqlRowSource:
    """Transactions of one type within the period, for active customers only.

    Rows are ordered by transaction date, then id, so the arrival order (and
    therefore the order of lines in each report) is stable across runs.
    """

    def __init__(
        self,
        *,
        database_url: str | None = None,
        tran_type: str = DEFAULT_TRAN_TYPE,
        excluded_statuses: Iterable[str] = (),
    ) -> None:
        self.database_url = database_url
        self.tran_type = tran_type
        self.excluded_statuses = tuple(excluded_statuses)

    def fetch_rows(self, period: ReportingPeriod) -> list[RawTransactionRow]:
        rep = aliased(SrEmployee)
        stmt = (
            select(SrTransaction, SrCustomer, rep)
            .outerjoin(SrCustomer, SrTransaction.customer_id == SrCustomer.id)
            .outerjoin(rep, SrTransaction.sales_rep_id == rep.id)
            .where(
                SrTransaction.tran_type == self.tran_type,
                SrTransaction.tran_date >= period.start,
                SrTransaction.tran_date < period.end,
                or_(SrCustomer.id.is_(None), SrCustomer.is_inactive == sa_expr.false()),
            )
            .order_by(SrTransaction.tran_date, SrTransaction.id)
        )
        if self.excluded_statuses:
            stmt = stmt.where(
                or_(
                    SrTransaction.status.is_(None),
                    SrTransaction.status.not_in(self.excluded_statuses),
                )
            )

        try:
            with session_scope(database_url=self.database_url) as session:
                rows = [
                    _to_raw_row(tx, customer, rep_row)
                    for tx, customer, rep_row in session.execute(stmt).all()
                ]
        except (SQLAlchemyError, RuntimeError) as exc:
            raise RowSourceError(f"transaction query failed: {exc}") from exc

        _logger.info(
            "Fetched %d %s transactions for %s", len(rows), self.tran_type, period.label
        )
        return rows


def _to_raw_row(
    tx: SrTransaction,
    customer: SrCustomer | None,
    rep: SrEmployee | None,
) -> RawTransactionRow:
    sales_rep = None
    if tx.sales_rep_id:
        sales_rep = EntityRef(id=tx.sales_rep_id, name=rep.entity_name if rep else None)
    return RawTransactionRow(
        internal_id=tx.id,
        document_number=tx.document_number,
        customer=EntityRef(id=customer.id, name=customer.name) if customer else None,
        customer_email=customer.email if customer else None,
        amount=tx.amount,
        sales_rep=sales_rep,
        tran_date=tx.tran_date,
    )


class SqlDirectory:
    """Identity lookup over ``sr_employees`` and default reps over ``sr_customers``."""

    def __init__(self, *, database_url: str | None = None) -> None:
        self.database_url = database_url

    def lookup(self, identity_id: str) -> Identity | None:
        try:
            with session_scope(database_url=self.database_url) as session:
                emp = session.get(SrEmployee, identity_id)
                if emp is None:
                    return None
                # Inactive employees cannot receive mail; keep the name for greetings.
                email = None if emp.is_inactive else emp.email
                return Identity(id=emp.id, display_name=emp.entity_name, email=email)
        except (SQLAlchemyError, RuntimeError) as exc:
            raise IdentityLookupError(f"employee lookup failed for {identity_id}: {exc}") from exc

    def default_rep_for_customer(self, customer_id: str) -> str | None:
        try:
            with session_scope(database_url=self.database_url) as session:
                return session.scalar(
                    select(SrCustomer.sales_rep_id).where(SrCustomer.id == customer_id)
                )
        except (SQLAlchemyError, RuntimeError) as exc:
            raise IdentityLookupError(f"customer lookup failed for {customer_id}: {exc}") from exc


def record_dispatch_outcomes(
    session: Session,
    *,
    run_id: str,
    period: ReportingPeriod,
    outcomes: Iterable[DispatchOutcome],
) -> int:
    """Insert one ``sr_report_dispatches`` row per outcome; return the count."""

    n = 0
    for o in outcomes:
        session.add(
            SrReportDispatch(
                run_id=run_id,
                period_start=period.start,
                group_key=o.group_key,
                status=o.status.value,
                reason=o.reason,
                recipient_kind=o.recipient_kind.value,
                recipient_id=o.recipient_id,
                recipient_name=o.recipient_name,
                artifact_id=o.artifact_id,
                line_count=o.line_count,
            )
        )
        n += 1
    session.flush()
    return n


__all__ = [
    "DEFAULT_TRAN_TYPE",
    "SqlDirectory",
    "SqlRowSource",
    "record_dispatch_outcomes",
]
