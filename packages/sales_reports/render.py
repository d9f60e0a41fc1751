"""CSV rendering for one group of line items.

Quoting follows RFC 4180 via the stdlib :mod:`csv` writer with minimal
quoting: a field containing a comma, a double quote or a line break is
wrapped in double quotes (embedded quotes doubled); other fields are written
as-is. This is the only place escaping happens, so rendering the same items
again always yields identical text.
"""

from __future__ import annotations

import csv
import hashlib
import re
from collections.abc import Sequence
from io import StringIO

from .models import LineItem, Report
from .periods import ReportingPeriod

DEFAULT_HEADER: tuple[str, str, str, str] = (
    "Customer Name",
    "Customer Email",
    "Sales Order Document Number",
    "Sales Amount",
)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\-.]")


def render_csv(items: Sequence[LineItem], *, header: Sequence[str] = DEFAULT_HEADER) -> str:
    """Return the CSV document (header + one line per item, ``\\n`` endings)."""

    if len(header) != 4:
        raise ValueError(f"header must have exactly 4 columns, got {len(header)}")
    with StringIO() as buf:
        writer = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
        writer.writerow(header)
        for item in items:
            writer.writerow(item.as_row())
        return buf.getvalue()


def report_filename(group_key: str, period: ReportingPeriod) -> str:
    """``Sales_Report_<key>_<Month>_<Year>.csv`` with unsafe characters replaced.

    When replacing characters changed the key, a short digest of the raw key
    is appended so distinct groups never share a file name.
    """

    raw = group_key.strip()
    key = _UNSAFE_FILENAME_CHARS.sub("_", raw) or "_"
    if key != raw:
        key = f"{key}_{hashlib.sha1(raw.encode('utf-8')).hexdigest()[:8]}"
    return f"Sales_Report_{key}_{period.slug}.csv"


def build_report(
    group_key: str,
    items: Sequence[LineItem],
    *,
    period: ReportingPeriod,
    header: Sequence[str] = DEFAULT_HEADER,
) -> Report:
    return Report(
        group_key=group_key,
        period=period,
        filename=report_filename(group_key, period),
        csv_text=render_csv(items, header=header),
        line_count=len(items),
    )


__all__ = ["DEFAULT_HEADER", "build_report", "render_csv", "report_filename"]
