from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import expression as sa_expr


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: sr_employees
# ---------------------------


class SrEmployee(Base):
    """Employees: sales representatives and administrators alike."""

    __tablename__ = "sr_employees"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Display name shown in greetings (``entityid`` on the source platform).
    entity_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    is_sales_rep: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    is_inactive: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )


# ---------------------------
# Reference: sr_customers
# ---------------------------


class SrCustomer(Base):
    __tablename__ = "sr_customers"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    # Customer's default sales rep; used by the ``customer_default`` fallback
    # policy when a transaction carries no rep of its own.
    sales_rep_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("sr_employees.id"), nullable=True
    )
    is_inactive: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=sa_expr.false()
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )


# ---------------------------
# Core: sr_transactions
# ---------------------------


class SrTransaction(Base):
    """Transaction header rows (one per document, i.e. "main line" only)."""

    __tablename__ = "sr_transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tran_type: Mapped[str] = mapped_column(String, nullable=False)
    document_number: Mapped[str | None] = mapped_column(String, nullable=True)
    tran_date: Mapped[date] = mapped_column(Date, nullable=False)
    customer_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("sr_customers.id"), nullable=True
    )
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    sales_rep_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("sr_employees.id"), nullable=True
    )
    status: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )

    __table_args__ = (Index("ix_sr_transactions_type_date", "tran_type", "tran_date"),)


# ---------------------------
# Audit: sr_report_dispatches
# ---------------------------


class SrReportDispatch(Base):
    """One row per group per run: the terminal dispatch outcome."""

    __tablename__ = "sr_report_dispatches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    group_key: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    recipient_kind: Mapped[str] = mapped_column(String, nullable=False)
    recipient_id: Mapped[str | None] = mapped_column(String, nullable=True)
    recipient_name: Mapped[str | None] = mapped_column(String, nullable=True)
    artifact_id: Mapped[str | None] = mapped_column(String, nullable=True)
    line_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )

    __table_args__ = (
        CheckConstraint(
            "status in ('delivered','skipped','failed')",
            name="ck_sr_dispatch_status",
        ),
        CheckConstraint(
            "recipient_kind in ('admin','representative')",
            name="ck_sr_dispatch_recipient_kind",
        ),
    )


__all__ = [
    "Base",
    "SrCustomer",
    "SrEmployee",
    "SrReportDispatch",
    "SrTransaction",
]
