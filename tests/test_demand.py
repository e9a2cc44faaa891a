from datetime import date, timedelta

from stockplan import (
    DailyValueResolver,
    DemandInputs,
    ForecastConfig,
    MonthlyTotalSelector,
    Provenance,
)
from stockplan.periods import iter_days


TODAY = date(2025, 3, 15)


def _resolver(
    *,
    today=TODAY,
    overrides=None,
    daily_actuals=None,
    monthly_actuals=None,
    weekday_factors=None,
):
    selector = MonthlyTotalSelector(today=today, overrides=overrides or {})
    return DailyValueResolver(
        today=today,
        selector=selector,
        weekday_factors=weekday_factors,
        daily_actuals=daily_actuals or {},
        monthly_actuals=monthly_actuals or {},
    )


def test_history_with_full_daily_detail_uses_records():
    daily = {day: day.day * 2 for day in iter_days(date(2025, 2, 1), date(2025, 3, 1))}
    resolver = _resolver(daily_actuals=daily, monthly_actuals={"2025-02": 1})

    for day in iter_days(date(2025, 2, 1), date(2025, 3, 1)):
        value = resolver.daily_value(day)
        assert value.value == day.day * 2
        assert value.provenance is Provenance.ACTUAL


def test_future_days_split_month_total_by_weekday_weights():
    resolver = _resolver(
        overrides={"2025-05": 3100},
        weekday_factors=[1, 1, 1, 1, 1, 0.5, 0.5],
    )
    days = list(iter_days(date(2025, 5, 1), date(2025, 6, 1)))
    values = [resolver.daily_value(day) for day in days]

    weekday_values = {v.value for v in values if v.day.weekday() < 5}
    weekend_values = {v.value for v in values if v.day.weekday() >= 5}

    assert all(v.provenance is Provenance.FORECAST for v in values)
    assert min(weekday_values) > max(weekend_values)
    assert abs(sum(v.value for v in values) - 3100) <= len(days)
    first = values[0]
    assert first.value == round(3100 * first.weight / first.total_weights)


def test_today_takes_max_of_actual_and_forecast():
    busy = _resolver(overrides={"2025-03": 310}, daily_actuals={TODAY: 500})
    quiet = _resolver(overrides={"2025-03": 310}, daily_actuals={TODAY: 5})

    busy_value = busy.daily_value(TODAY)
    quiet_value = quiet.daily_value(TODAY)

    assert busy_value.provenance is Provenance.MIX
    assert busy_value.value == 500
    assert quiet_value.value == 10
    assert quiet_value.daily_forecast == 10
    assert quiet_value.daily_actual == 5


def test_partial_month_does_not_backfill_from_monthly_total():
    daily = {date(2025, 1, day): 10 for day in range(1, 11)}
    resolver = _resolver(daily_actuals=daily, monthly_actuals={"2025-01": 500})

    missing = resolver.daily_value(date(2025, 1, 15))

    assert missing.value == 0
    assert missing.provenance is Provenance.ACTUAL
    assert resolver.daily_value(date(2025, 1, 5)).value == 10


def test_aggregate_only_month_is_reconstructed_from_monthly_total():
    resolver = _resolver(monthly_actuals={"2024-12": 310})

    values = [
        resolver.daily_value(day)
        for day in iter_days(date(2024, 12, 1), date(2025, 1, 1))
    ]

    assert {v.value for v in values} == {10}
    assert all(v.provenance is Provenance.ACTUAL for v in values)
    assert "reconstructed" in values[0].trace


def test_history_without_any_data_is_zero():
    resolver = _resolver(overrides={"2025-02": 2800})

    value = resolver.daily_value(date(2025, 2, 3))

    assert value.value == 0
    assert value.daily_forecast == 100


def test_zero_weekday_weights_split_evenly_by_days():
    resolver = _resolver(overrides={"2025-04": 300}, weekday_factors=[0] * 7)

    value = resolver.daily_value(date(2025, 4, 10))

    assert value.total_weights == 0
    assert value.value == 10


def test_string_date_keys_are_accepted():
    resolver = _resolver(daily_actuals={"2025-03-10": 42})

    assert resolver.daily_value("2025-03-10").value == 42
    assert resolver(date(2025, 3, 10)).value == 42


def test_demand_inputs_build_consistent_resolvers():
    inputs = DemandInputs(
        daily_actuals={TODAY - timedelta(days=1): 7},
        overrides={"2025-03": 620},
        forecast_config=ForecastConfig(ratio_adjustment=50),
    )
    resolver = inputs.resolver(TODAY)

    assert resolver.daily_value(TODAY - timedelta(days=1)).value == 7
    assert resolver.daily_value(TODAY + timedelta(days=1)).value == 20
    assert resolver.monthly_total("2025-03").trace == "override"
