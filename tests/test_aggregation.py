from datetime import date

from stockplan import (
    DailyValueResolver,
    MonthlyTotalSelector,
    aggregate_demand,
    day_window,
    demand_window,
    month_window,
)


def test_month_window_uses_calendar_arithmetic():
    start, end = month_window(date(2025, 1, 31), 1)

    assert end == date(2025, 2, 28)
    assert aggregate_demand(lambda day: 1, start, end) == 28


def test_month_window_spans_exact_days():
    start, end = month_window(date(2025, 3, 1), 2)

    assert (end - start).days == 61
    assert aggregate_demand(lambda day: 2, start, end) == 122


def test_empty_and_reversed_ranges_sum_to_zero():
    start, end = day_window(date(2025, 3, 1), 0)

    assert start == end
    assert aggregate_demand(lambda day: 5, start, end) == 0
    assert aggregate_demand(lambda day: 5, date(2025, 3, 5), date(2025, 3, 1)) == 0


def test_demand_window_keeps_daily_details():
    today = date(2025, 3, 1)
    resolver = DailyValueResolver(
        today=today,
        selector=MonthlyTotalSelector(today=today, overrides={"2025-03": 310}),
    )

    window = demand_window(
        resolver.daily_value,
        date(2025, 3, 1),
        date(2025, 4, 1),
        label="safety_stock",
        keep_details=True,
    )

    assert window.total == 310
    assert window.days == 31
    assert len(window.details) == 31
    assert window.details[0].day == today
    assert window.describe() == "2025-03-01 ~ 2025-03-31"


def test_empty_window_describes_as_none():
    window = demand_window(lambda day: 1, date(2025, 3, 1), date(2025, 3, 1))

    assert window.total == 0
    assert window.describe() == "none"
