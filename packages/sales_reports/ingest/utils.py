"""Ingest utilities shared by the CLI and the API.

Exposes a loader for transaction search CSV exports and a row source built on
it, for runs that work from an exported file instead of the database.
"""

from __future__ import annotations

import csv
from os import PathLike
from pathlib import Path

from ..errors import RowSourceError
from ..logging_setup import get_logger
from ..models import RawTransactionRow
from ..periods import ReportingPeriod
from .adapters.transactions_csv import REQUIRED_HEADERS, to_raw_rows

_logger = get_logger("sales_reports.ingest")


def load_rows_from_csv(csv_path: str | PathLike[str]) -> list[RawTransactionRow]:
    """Read a transaction export and return its rows in file order.

    Raises ``csv.Error`` when the header row is missing or lacks required
    columns; ``OSError`` when the file cannot be read.
    """

    p = Path(csv_path)
    # utf-8-sig: exports opened and re-saved in Excel carry a BOM.
    with p.open(encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        headers_set = set(reader.fieldnames or [])
        if not headers_set:
            raise csv.Error(f"CSV appears to have no header row: {csv_path}")
        missing = sorted(h for h in REQUIRED_HEADERS if h not in headers_set)
        if missing:
            raise csv.Error(
                "CSV header mismatch for transaction export. Missing columns: "
                + ", ".join(missing)
            )
        return list(to_raw_rows(reader))


class CsvRowSource:
    """Row source over an exported CSV file, filtered to the reporting period."""

    def __init__(self, csv_path: str | PathLike[str]) -> None:
        self.csv_path = Path(csv_path)

    def fetch_rows(self, period: ReportingPeriod) -> list[RawTransactionRow]:
        try:
            rows = load_rows_from_csv(self.csv_path)
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise RowSourceError(f"cannot read {self.csv_path}: {exc}") from exc

        selected: list[RawTransactionRow] = []
        for row in rows:
            if row.tran_date is None:
                _logger.warning("Dropping row %s: no transaction date", row.internal_id)
                continue
            if period.contains(row.tran_date):
                selected.append(row)
        _logger.info(
            "Loaded %d of %d rows from %s for %s",
            len(selected),
            len(rows),
            self.csv_path,
            period.label,
        )
        return selected


__all__ = ["CsvRowSource", "load_rows_from_csv"]
