"""Monthly forecast totals: overrides, benchmark blends and fallbacks."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
import logging
import math

from .periods import (
    coerce_date,
    days_in_month,
    finite_float,
    month_key,
    non_negative_int,
    parse_month_key,
    round_half_up,
    shift_month_key,
)

logger = logging.getLogger(__name__)

BENCHMARK_MOM = "mom"
BENCHMARK_YOY = "yoy"

_BENCHMARK_ALIASES = {
    BENCHMARK_MOM: BENCHMARK_MOM,
    "month_over_month": BENCHMARK_MOM,
    "sequential": BENCHMARK_MOM,
    BENCHMARK_YOY: BENCHMARK_YOY,
    "year_over_year": BENCHMARK_YOY,
    "seasonal": BENCHMARK_YOY,
}

FALLBACK_WINDOW_DAYS = 30


def normalize_benchmark_type(benchmark_type: str | None) -> str:
    if benchmark_type is None:
        return BENCHMARK_MOM
    normalized = benchmark_type.strip().lower().replace("-", "_")
    if normalized in _BENCHMARK_ALIASES:
        return _BENCHMARK_ALIASES[normalized]
    logger.debug(
        "Unknown benchmark type %r; using month-over-month.", benchmark_type
    )
    return BENCHMARK_MOM


def _normalize_splits(
    splits: Sequence[float] | None, default: tuple[float, float]
) -> tuple[float, float]:
    values = list(splits) if splits is not None else []
    if len(values) < 2:
        return default
    cleaned: list[float] = []
    for value in values[:2]:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        if not math.isfinite(number):
            return default
        cleaned.append(min(100.0, max(0.0, number)))
    first, second = sorted(cleaned)
    return first, second


class MonthlySource(str, Enum):
    OVERRIDE = "override"
    CALCULATED = "calculated"
    BASELINE = "baseline"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ForecastConfig:
    """Benchmark settings behind calculated monthly totals."""

    benchmark_type: str = BENCHMARK_MOM
    mom_range: int = 6
    mom_time_splits: Sequence[float] = (33, 66)
    mom_weight_splits: Sequence[float] = (60, 90)
    yoy_range: int = 3
    yoy_weight_splits: Sequence[float] = (33, 66)
    ratio_adjustment: float = 0.0
    fallback_daily_rate: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "benchmark_type", normalize_benchmark_type(self.benchmark_type)
        )
        object.__setattr__(self, "mom_range", non_negative_int(self.mom_range, 6))
        object.__setattr__(
            self, "yoy_range", min(3, max(1, non_negative_int(self.yoy_range, 3)))
        )
        object.__setattr__(
            self,
            "mom_time_splits",
            _normalize_splits(self.mom_time_splits, (33.0, 66.0)),
        )
        object.__setattr__(
            self,
            "mom_weight_splits",
            _normalize_splits(self.mom_weight_splits, (60.0, 90.0)),
        )
        object.__setattr__(
            self,
            "yoy_weight_splits",
            _normalize_splits(self.yoy_weight_splits, (33.0, 66.0)),
        )
        object.__setattr__(
            self, "ratio_adjustment", finite_float(self.ratio_adjustment, 0.0)
        )
        rate = finite_float(self.fallback_daily_rate, -1.0)
        object.__setattr__(self, "fallback_daily_rate", rate if rate >= 0 else None)

    def yoy_weights(self) -> list[float]:
        first, second = self.yoy_weight_splits
        if self.yoy_range == 1:
            return [1.0]
        if self.yoy_range == 2:
            return [first / 100, (100 - first) / 100]
        return [first / 100, (second - first) / 100, (100 - second) / 100]

    def mom_cut_points(self) -> tuple[int, int]:
        first, second = self.mom_time_splits
        return (
            round_half_up(self.mom_range * first / 100),
            round_half_up(self.mom_range * second / 100),
        )

    def mom_weights(self) -> tuple[float, float, float]:
        first, second = self.mom_weight_splits
        return first / 100, (second - first) / 100, (100 - second) / 100


@dataclass(frozen=True)
class MonthlyTotal:
    month: str
    value: int
    source: MonthlySource
    trace: str


@dataclass(frozen=True)
class BenchmarkResult:
    value: int
    trace: str


def _history_value(monthly_actuals: Mapping[str, int], key: str) -> int:
    value = monthly_actuals.get(key)
    if value is None:
        return 0
    return int(value)


def yoy_benchmark(
    month: str, monthly_actuals: Mapping[str, int], config: ForecastConfig
) -> BenchmarkResult:
    weights = config.yoy_weights()
    parts: list[str] = []
    prediction = 0.0
    for offset, weight in enumerate(weights, start=1):
        key = shift_month_key(month, -12 * offset)
        history = _history_value(monthly_actuals, key)
        prediction += history * weight
        parts.append(f"{key}={history}x{weight:.2f}")
    value = round_half_up(prediction)
    return BenchmarkResult(value=value, trace=f"yoy: {' + '.join(parts)} = {value}")


def mom_benchmark(
    today: date, monthly_actuals: Mapping[str, int], config: ForecastConfig
) -> BenchmarkResult:
    """Blend the trailing months before ``today``'s month in three slices.

    The window is anchored at the reference date, not at the month being
    forecast, so every future month receives the same blended value.
    """
    window = config.mom_range
    current = month_key(today)
    history = [
        _history_value(monthly_actuals, shift_month_key(current, -offset))
        for offset in range(1, window + 1)
    ]
    split1, split2 = config.mom_cut_points()
    weights = config.mom_weights()
    bounds = ((0, split1), (split1, split2), (split2, window))

    total_weight = 0.0
    weighted = 0.0
    parts: list[str] = []
    for (start, end), weight in zip(bounds, weights):
        segment = history[start:end]
        if not segment:
            continue
        average = sum(segment) / len(segment)
        weighted += average * weight
        total_weight += weight
        parts.append(f"avg{segment}x{weight:.2f}")
    prediction = weighted / total_weight if total_weight > 0 else 0.0
    value = round_half_up(prediction)
    return BenchmarkResult(
        value=value,
        trace=f"mom[{window}]: ({' + '.join(parts) or 'no history'}) / "
        f"{total_weight:.2f} = {value}",
    )


def benchmark_forecast(
    month: str,
    *,
    today: date,
    monthly_actuals: Mapping[str, int],
    config: ForecastConfig,
) -> BenchmarkResult:
    if config.benchmark_type == BENCHMARK_YOY:
        return yoy_benchmark(month, monthly_actuals, config)
    return mom_benchmark(today, monthly_actuals, config)


def calculate_benchmark_forecasts(
    months: Iterable[str],
    *,
    today: date,
    monthly_actuals: Mapping[str, int],
    config: ForecastConfig,
) -> dict[str, int]:
    """Recompute the calculated forecast map for ``months``."""
    return {
        month: benchmark_forecast(
            month, today=today, monthly_actuals=monthly_actuals, config=config
        ).value
        for month in months
    }


def forecast_months(today: date, end_month: str) -> list[str]:
    """Month keys from ``today``'s month through ``end_month`` inclusive."""
    end_year, end_month_number = parse_month_key(end_month)
    months: list[str] = []
    key = month_key(today)
    while parse_month_key(key) <= (end_year, end_month_number):
        months.append(key)
        key = shift_month_key(key, 1)
    return months


def _positive(value: object) -> bool:
    return value is not None and not isinstance(value, bool) and value > 0


class MonthlyTotalSelector:
    """Pick the authoritative forecast total for a year-month.

    Precedence: manual override, then the supplied calculated value, then
    the baseline forecast, then a flat recent-average rate. Calculated
    values come from ``calculate_benchmark_forecasts``; nothing is
    recomputed here. The ratio adjustment only touches non-override values.
    """

    def __init__(
        self,
        *,
        today: date,
        config: ForecastConfig | None = None,
        overrides: Mapping[str, int] | None = None,
        calculated: Mapping[str, int] | None = None,
        baseline: Mapping[str, int] | None = None,
        daily_actuals: Mapping[date, int] | None = None,
    ) -> None:
        self.today = coerce_date(today)
        self.config = config if config is not None else ForecastConfig()
        self.overrides = dict(overrides or {})
        self.calculated = dict(calculated or {})
        self.baseline = dict(baseline or {})
        self._daily_actuals = {
            coerce_date(day): int(quantity)
            for day, quantity in (daily_actuals or {}).items()
        }
        self._fallback_rate: float | None = None

    def fallback_daily_rate(self) -> float:
        if self.config.fallback_daily_rate is not None:
            return self.config.fallback_daily_rate
        if self._fallback_rate is None:
            start = self.today - timedelta(days=FALLBACK_WINDOW_DAYS)
            recent = sum(
                quantity
                for day, quantity in self._daily_actuals.items()
                if start <= day < self.today
            )
            self._fallback_rate = recent / FALLBACK_WINDOW_DAYS
        return self._fallback_rate

    def _adjust(self, value: int) -> tuple[int, str]:
        ratio = self.config.ratio_adjustment
        if ratio == 0:
            return value, ""
        adjusted = round_half_up(value * (1 + ratio / 100))
        return adjusted, f"; ratio {ratio:+g}% -> {adjusted}"

    def monthly_total(self, month: str) -> MonthlyTotal:
        override = self.overrides.get(month)
        if _positive(override):
            return MonthlyTotal(
                month=month,
                value=int(override),
                source=MonthlySource.OVERRIDE,
                trace="override",
            )

        calculated = self.calculated.get(month)
        if _positive(calculated):
            value, note = self._adjust(int(calculated))
            return MonthlyTotal(
                month=month,
                value=value,
                source=MonthlySource.CALCULATED,
                trace=f"calculated {int(calculated)}{note}",
            )

        baseline = self.baseline.get(month)
        if _positive(baseline):
            value, note = self._adjust(int(baseline))
            return MonthlyTotal(
                month=month,
                value=value,
                source=MonthlySource.BASELINE,
                trace=f"baseline {int(baseline)}{note}",
            )

        year, month_number = parse_month_key(month)
        rate = self.fallback_daily_rate()
        length = days_in_month(year, month_number)
        raw = round_half_up(rate * length)
        value, note = self._adjust(raw)
        return MonthlyTotal(
            month=month,
            value=value,
            source=MonthlySource.FALLBACK,
            trace=f"fallback {rate:.2f}/day x {length} days = {raw}{note}",
        )
