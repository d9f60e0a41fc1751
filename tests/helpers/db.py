"""DB helpers for tests: bootstrap a temporary SQLite DB and seed sales data."""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from db.models.sales import SrCustomer, SrEmployee, SrTransaction
from sqlalchemy import event


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default), which matters
    once dispatch runs on worker threads.
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.execute("PRAGMA foreign_keys = ON")

    Base.metadata.create_all(bind=engine)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def seed_employees(
    *,
    database_url: str,
    employees: list[tuple[str, str, str | None]],
    inactive: frozenset[str] = frozenset(),
) -> None:
    """Insert ``(id, entity_name, email)`` employees; ids in ``inactive`` are flagged."""

    with session_scope(database_url=database_url) as session:
        for emp_id, name, email in employees:
            session.add(
                SrEmployee(
                    id=emp_id,
                    entity_name=name,
                    email=email,
                    is_sales_rep=True,
                    is_inactive=emp_id in inactive,
                )
            )


def seed_customers(
    *,
    database_url: str,
    customers: list[tuple[str, str, str | None, str | None]],
    inactive: frozenset[str] = frozenset(),
) -> None:
    """Insert ``(id, name, email, default_rep_id)`` customers."""

    with session_scope(database_url=database_url) as session:
        for cust_id, name, email, rep_id in customers:
            session.add(
                SrCustomer(
                    id=cust_id,
                    name=name,
                    email=email,
                    sales_rep_id=rep_id,
                    is_inactive=cust_id in inactive,
                )
            )


def seed_transactions(
    *,
    database_url: str,
    transactions: list[dict],
) -> None:
    """Insert transactions given as dicts of :class:`SrTransaction` columns.

    ``tran_type`` defaults to ``"SalesOrd"`` and ``amount`` strings are
    converted to ``Decimal``.
    """

    with session_scope(database_url=database_url) as session:
        for tx in transactions:
            values = dict(tx)
            values.setdefault("tran_type", "SalesOrd")
            if isinstance(values.get("amount"), str):
                values["amount"] = Decimal(values["amount"])
            if isinstance(values.get("tran_date"), str):
                values["tran_date"] = date.fromisoformat(values["tran_date"])
            session.add(SrTransaction(**values))
