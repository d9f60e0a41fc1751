"""Reporting-period resolution.

A reporting period is one calendar month, either the month before ``today``
(the scheduled monthly run) or the month containing ``today``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from dateutil.relativedelta import relativedelta


class PeriodKind(StrEnum):
    PREVIOUS_MONTH = "previous_month"
    CURRENT_MONTH = "current_month"

    @classmethod
    def parse(cls, raw: str | PeriodKind) -> PeriodKind:
        """Accept ``previous-month``/``previous_month`` (any case)."""

        if isinstance(raw, PeriodKind):
            return raw
        key = str(raw).strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError as exc:
            allowed = ", ".join(k.value for k in cls)
            raise ValueError(
                f"unknown reporting period: {raw!r} (expected one of: {allowed})"
            ) from exc


@dataclass(frozen=True, slots=True)
class ReportingPeriod:
    """Half-open date window ``[start, end)`` covering one calendar month."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("ReportingPeriod.end must be after start")

    @property
    def label(self) -> str:
        """Human-readable label, e.g. ``"September 2026"``."""

        return f"{self.month_name} {self.start.year}"

    @property
    def month_name(self) -> str:
        return _MONTH_NAMES[self.start.month - 1]

    @property
    def slug(self) -> str:
        """File-name friendly label, e.g. ``"September_2026"``."""

        return f"{self.month_name}_{self.start.year}"

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


# Fixed English names; ``strftime("%B")`` would follow the process locale.
_MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def month_period(year: int, month: int) -> ReportingPeriod:
    start = date(year, month, 1)
    return ReportingPeriod(start=start, end=start + relativedelta(months=1))


def resolve_period(kind: PeriodKind | str, *, today: date | None = None) -> ReportingPeriod:
    """Return the calendar month selected by ``kind`` relative to ``today``."""

    k = PeriodKind.parse(kind)
    ref = today or date.today()
    first_of_month = ref.replace(day=1)
    if k is PeriodKind.PREVIOUS_MONTH:
        first_of_month = first_of_month - relativedelta(months=1)
    return month_period(first_of_month.year, first_of_month.month)


__all__ = ["PeriodKind", "ReportingPeriod", "month_period", "resolve_period"]
