from __future__ import annotations

from datetime import date

import pytest

from sales_reports.periods import PeriodKind, ReportingPeriod, month_period, resolve_period


@pytest.mark.parametrize(
    ("today", "start", "end"),
    [
        (date(2026, 10, 18), date(2026, 9, 1), date(2026, 10, 1)),
        (date(2026, 1, 1), date(2025, 12, 1), date(2026, 1, 1)),
        (date(2024, 3, 31), date(2024, 2, 1), date(2024, 3, 1)),
    ],
)
def test_previous_month(today: date, start: date, end: date) -> None:
    period = resolve_period(PeriodKind.PREVIOUS_MONTH, today=today)
    assert (period.start, period.end) == (start, end)


def test_current_month_accepts_cli_spelling() -> None:
    period = resolve_period("current-month", today=date(2026, 12, 5))
    assert (period.start, period.end) == (date(2026, 12, 1), date(2027, 1, 1))


def test_labels_use_english_month_names() -> None:
    period = month_period(2026, 9)
    assert period.label == "September 2026"
    assert period.slug == "September_2026"
    assert period.month_name == "September"


def test_contains_is_half_open() -> None:
    period = month_period(2026, 2)
    assert period.contains(date(2026, 2, 1))
    assert period.contains(date(2026, 2, 28))
    assert not period.contains(date(2026, 3, 1))
    assert not period.contains(date(2026, 1, 31))


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(ValueError, match="unknown reporting period"):
        PeriodKind.parse("last-quarter")


def test_period_end_must_follow_start() -> None:
    with pytest.raises(ValueError):
        ReportingPeriod(start=date(2026, 9, 1), end=date(2026, 9, 1))
