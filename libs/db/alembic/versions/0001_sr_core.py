# ruff: noqa: I001
"""Sales reporting core tables.

Revision ID: 0001_sr_core
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_sr_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    # sr_employees
    op.create_table(
        "sr_employees",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("entity_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("is_sales_rep", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_inactive", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )

    # sr_customers
    op.create_table(
        "sr_customers",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("sales_rep_id", sa.String(), nullable=True),
        sa.Column("is_inactive", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["sales_rep_id"],
            ["sr_employees.id"],
            name="fk_sr_customers_sales_rep",
        ),
    )

    # sr_transactions
    op.create_table(
        "sr_transactions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("tran_type", sa.String(), nullable=False),
        sa.Column("document_number", sa.String(), nullable=True),
        sa.Column("tran_date", sa.Date(), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=True),
        sa.Column("amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("sales_rep_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["sr_customers.id"],
            name="fk_sr_tx_customer",
        ),
        sa.ForeignKeyConstraint(
            ["sales_rep_id"],
            ["sr_employees.id"],
            name="fk_sr_tx_sales_rep",
        ),
    )
    op.create_index(
        "ix_sr_transactions_type_date",
        "sr_transactions",
        ["tran_type", "tran_date"],
        unique=False,
    )

    # sr_report_dispatches
    op.create_table(
        "sr_report_dispatches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("run_id", sa.String(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("group_key", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("recipient_kind", sa.String(), nullable=False),
        sa.Column("recipient_id", sa.String(), nullable=True),
        sa.Column("recipient_name", sa.String(), nullable=True),
        sa.Column("artifact_id", sa.String(), nullable=True),
        sa.Column("line_count", sa.Integer(), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "status in ('delivered','skipped','failed')",
            name="ck_sr_dispatch_status",
        ),
        sa.CheckConstraint(
            "recipient_kind in ('admin','representative')",
            name="ck_sr_dispatch_recipient_kind",
        ),
    )
    op.create_index(
        "ix_sr_report_dispatches_run_id",
        "sr_report_dispatches",
        ["run_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_sr_report_dispatches_run_id", table_name="sr_report_dispatches")
    op.drop_table("sr_report_dispatches")
    op.drop_index("ix_sr_transactions_type_date", table_name="sr_transactions")
    op.drop_table("sr_transactions")
    op.drop_table("sr_customers")
    op.drop_table("sr_employees")
