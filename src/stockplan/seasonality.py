"""Weekday seasonality factors."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
import logging
import math

from .periods import days_in_month

logger = logging.getLogger(__name__)

DEFAULT_WEEKDAY_FACTOR = 1.0
WEEKDAY_COUNT = 7


def _valid_factor(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


@dataclass(frozen=True)
class WeekdayFactors:
    """Relative demand per weekday, Monday first.

    Anything other than seven finite, non-negative numbers falls back to a
    uniform factor of 1.
    """

    factors: Sequence[float] | None = None
    _values: tuple[float, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        values = tuple(self.factors) if self.factors is not None else ()
        if len(values) != WEEKDAY_COUNT or not all(
            _valid_factor(value) for value in values
        ):
            if self.factors is not None:
                logger.debug(
                    "Ignoring weekday factors %r; using uniform weights.", values
                )
            values = (DEFAULT_WEEKDAY_FACTOR,) * WEEKDAY_COUNT
        object.__setattr__(self, "_values", tuple(float(value) for value in values))

    @property
    def values(self) -> tuple[float, ...]:
        return self._values

    @property
    def is_uniform(self) -> bool:
        return all(value == DEFAULT_WEEKDAY_FACTOR for value in self._values)

    def factor(self, day: date) -> float:
        return self._values[day.weekday()]

    def month_weight_total(self, year: int, month: int) -> float:
        total = 0.0
        for day_number in range(1, days_in_month(year, month) + 1):
            total += self._values[date(year, month, day_number).weekday()]
        return total
