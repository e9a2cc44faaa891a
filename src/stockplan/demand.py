"""Per-day demand resolution from actuals and monthly forecast totals."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .forecasting import ForecastConfig, MonthlyTotal, MonthlyTotalSelector
from .periods import coerce_date, days_in_month, month_key, round_half_up
from .seasonality import WeekdayFactors


class Provenance(str, Enum):
    """Where a day's value comes from."""

    ACTUAL = "Actual"
    FORECAST = "Forecast"
    MIX = "Mix"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class DailyValue:
    day: date
    value: int
    provenance: Provenance
    month_total: int
    weight: float
    total_weights: float
    daily_forecast: int
    daily_actual: int
    trace: str = ""


def _normalize_daily_actuals(
    records: Mapping[date, int] | Mapping[str, int] | None,
) -> dict[date, int]:
    if not records:
        return {}
    return {coerce_date(day): int(quantity) for day, quantity in records.items()}


class DailyValueResolver:
    """Resolve the effective demand for any calendar day.

    Days before ``today`` are history, days after it are forecast, and
    ``today`` itself takes the larger of the actual-so-far and the forecast.
    """

    def __init__(
        self,
        *,
        today: date,
        selector: MonthlyTotalSelector,
        weekday_factors: WeekdayFactors | Sequence[float] | None = None,
        daily_actuals: Mapping[date, int] | Mapping[str, int] | None = None,
        monthly_actuals: Mapping[str, int] | None = None,
    ) -> None:
        self.today = coerce_date(today)
        self.selector = selector
        if not isinstance(weekday_factors, WeekdayFactors):
            weekday_factors = WeekdayFactors(weekday_factors)
        self.weekday_factors = weekday_factors
        self.daily_actuals = _normalize_daily_actuals(daily_actuals)
        self.monthly_actuals = dict(monthly_actuals or {})
        self._months_with_detail = {month_key(day) for day in self.daily_actuals}
        self._month_totals: dict[str, MonthlyTotal] = {}
        self._weight_totals: dict[tuple[int, int], float] = {}

    def monthly_total(self, key: str) -> MonthlyTotal:
        if key not in self._month_totals:
            self._month_totals[key] = self.selector.monthly_total(key)
        return self._month_totals[key]

    def _total_weights(self, day: date) -> float:
        month = (day.year, day.month)
        if month not in self._weight_totals:
            self._weight_totals[month] = self.weekday_factors.month_weight_total(
                day.year, day.month
            )
        return self._weight_totals[month]

    def _split(self, total: float, day: date, weight: float, total_weights: float) -> int:
        if total_weights > 0:
            return round_half_up(total * weight / total_weights)
        return round_half_up(total / days_in_month(day.year, day.month))

    def forecast_value(self, day: date) -> int:
        day = coerce_date(day)
        return self._split(
            self.monthly_total(month_key(day)).value,
            day,
            self.weekday_factors.factor(day),
            self._total_weights(day),
        )

    def _history_value(
        self, day: date, key: str, weight: float, total_weights: float
    ) -> tuple[int, str]:
        if day in self.daily_actuals:
            return self.daily_actuals[day], "actual record"
        monthly_actual = int(self.monthly_actuals.get(key) or 0)
        if key not in self._months_with_detail and monthly_actual > 0:
            value = self._split(monthly_actual, day, weight, total_weights)
            return value, (
                f"reconstructed from monthly actual {monthly_actual} "
                f"x {weight:g} / {total_weights:g}"
            )
        # Partial daily detail: never back-fill from the monthly total.
        return 0, "no daily record"

    def daily_value(self, day: date) -> DailyValue:
        day = coerce_date(day)
        key = month_key(day)
        month_total = self.monthly_total(key)
        weight = self.weekday_factors.factor(day)
        total_weights = self._total_weights(day)
        daily_forecast = self._split(month_total.value, day, weight, total_weights)
        daily_actual = self.daily_actuals.get(day, 0)

        if day < self.today:
            value, trace = self._history_value(day, key, weight, total_weights)
            provenance = Provenance.ACTUAL
        elif day > self.today:
            value = daily_forecast
            provenance = Provenance.FORECAST
            trace = (
                f"{month_total.value} x {weight:g} / {total_weights:g} "
                f"({month_total.trace})"
            )
        else:
            value = max(daily_actual, daily_forecast)
            provenance = Provenance.MIX
            trace = f"max(actual {daily_actual}, forecast {daily_forecast})"

        return DailyValue(
            day=day,
            value=value,
            provenance=provenance,
            month_total=month_total.value,
            weight=weight,
            total_weights=total_weights,
            daily_forecast=daily_forecast,
            daily_actual=daily_actual,
            trace=trace,
        )

    __call__ = daily_value


@dataclass(frozen=True)
class DemandInputs:
    """Everything the engine reads, supplied by external collaborators."""

    daily_actuals: Mapping[date, int] | Mapping[str, int] = field(default_factory=dict)
    monthly_actuals: Mapping[str, int] = field(default_factory=dict)
    overrides: Mapping[str, int] = field(default_factory=dict)
    calculated: Mapping[str, int] = field(default_factory=dict)
    baseline: Mapping[str, int] = field(default_factory=dict)
    weekday_factors: Sequence[float] | None = None
    forecast_config: ForecastConfig = field(default_factory=ForecastConfig)

    def selector(self, today: date) -> MonthlyTotalSelector:
        return MonthlyTotalSelector(
            today=today,
            config=self.forecast_config,
            overrides=self.overrides,
            calculated=self.calculated,
            baseline=self.baseline,
            daily_actuals=self.daily_actuals,
        )

    def resolver(self, today: date) -> DailyValueResolver:
        return DailyValueResolver(
            today=today,
            selector=self.selector(today),
            weekday_factors=self.weekday_factors,
            daily_actuals=self.daily_actuals,
            monthly_actuals=self.monthly_actuals,
        )
