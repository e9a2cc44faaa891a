"""Calendar helpers shared by the demand engine."""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from datetime import date, datetime, timedelta
import math

from dateutil.relativedelta import relativedelta


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def coerce_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if "T" in text:
            text = text.split("T", 1)[0]
        elif " " in text:
            text = text.split(" ", 1)[0]
        try:
            return date.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Invalid date value: {value!r}.") from exc
    raise TypeError(f"Unsupported date value: {value!r}.")


def month_key(day: date) -> str:
    return f"{day.year}-{day.month:02d}"


def parse_month_key(key: str) -> tuple[int, int]:
    try:
        year_text, month_text = key.strip().split("-")[:2]
        year, month = int(year_text), int(month_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month key: {key!r}.") from exc
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid year-month key: {key!r}.")
    return year, month


def shift_month_key(key: str, months: int) -> str:
    year, month = parse_month_key(key)
    shifted = date(year, month, 1) + relativedelta(months=months)
    return month_key(shifted)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def finite_float(value: object, default: float) -> float:
    """``value`` as a finite float, or ``default`` when it is not one."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def non_negative_int(value: object, default: int = 0) -> int:
    number = finite_float(value, float("nan"))
    if math.isnan(number):
        return default
    return max(0, int(number))


def normalize_months(months: float | int | None) -> int:
    if months is None:
        return 0
    if isinstance(months, float) and not math.isfinite(months):
        return 0
    return max(0, round_half_up(float(months)))


def add_months(day: date, months: float | int) -> date:
    return day + relativedelta(months=normalize_months(months))


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=max(0, int(days)))


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day in ``[start, end)``."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)
