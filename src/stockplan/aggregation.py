"""Helpers for summing daily demand over date windows."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from .demand import DailyValue
from .periods import add_days, add_months, iter_days

DemandSource = Callable[[date], "int | DailyValue"]


def _value_of(entry: int | DailyValue) -> int:
    if isinstance(entry, DailyValue):
        return entry.value
    return int(entry)


def month_window(start: date, months: float | int) -> tuple[date, date]:
    return start, add_months(start, months)


def day_window(start: date, days: int) -> tuple[date, date]:
    return start, add_days(start, days)


def aggregate_demand(value_for: DemandSource, start: date, end: date) -> int:
    """Sum ``value_for`` over ``[start, end)``; empty ranges sum to 0."""
    return sum(_value_of(value_for(day)) for day in iter_days(start, end))


def format_window(start: date, end: date) -> str:
    if start >= end:
        return "none"
    last_day = end - timedelta(days=1)
    return f"{start.isoformat()} ~ {last_day.isoformat()}"


@dataclass(frozen=True)
class DemandWindow:
    label: str
    start: date
    end: date
    total: int
    details: Sequence[DailyValue] = ()

    @property
    def days(self) -> int:
        return max(0, (self.end - self.start).days)

    def describe(self) -> str:
        return format_window(self.start, self.end)


def demand_window(
    value_for: DemandSource,
    start: date,
    end: date,
    *,
    label: str = "",
    keep_details: bool = False,
) -> DemandWindow:
    total = 0
    details: list[DailyValue] = []
    for day in iter_days(start, end):
        entry = value_for(day)
        total += _value_of(entry)
        if keep_details and isinstance(entry, DailyValue):
            details.append(entry)
    return DemandWindow(
        label=label,
        start=start,
        end=end,
        total=total,
        details=tuple(details),
    )
