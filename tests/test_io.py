import csv
from datetime import date

import pytest

from stockplan import (
    DailyActualRecord,
    DailyValueResolver,
    MonthlySource,
    MonthlyTotalSelector,
    PolicyParameters,
    Provenance,
    StockPosition,
    DemandInputs,
    ForecastConfig,
    build_daily_grid,
    build_monthly_grid,
    daily_actuals_to_mapping,
    daily_grid_rows_to_dataframe,
    daily_grid_rows_to_dicts,
    iter_daily_actuals_from_csv,
    monthly_actual_totals_from_daily,
    monthly_grid_rows_to_dicts,
    simulate_inventory,
    simulation_snapshots_to_dicts,
    write_daily_grid_to_csv,
    write_simulation_snapshots_to_csv,
)


TODAY = date(2025, 3, 15)


def _write_csv(path, fieldnames, rows):
    with open(path, "w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


def _resolver():
    selector = MonthlyTotalSelector(today=TODAY, overrides={"2025-03": 310})
    return DailyValueResolver(
        today=TODAY,
        selector=selector,
        daily_actuals={date(2025, 3, 14): 5},
    )


def test_daily_grid_marks_provenance_per_day():
    rows = build_daily_grid(_resolver(), date(2025, 3, 14), date(2025, 3, 17))

    assert [row.ds for row in rows] == ["2025-03-14", "2025-03-15", "2025-03-16"]
    assert [row.provenance for row in rows] == [
        Provenance.ACTUAL,
        Provenance.MIX,
        Provenance.FORECAST,
    ]
    assert [row.value for row in rows] == [5, 10, 10]
    assert all(row.month == "2025-03" for row in rows)

    dicts = daily_grid_rows_to_dicts(rows)
    assert dicts[1]["provenance"] == "Mix"
    assert dicts[0]["daily_actual"] == 5


def test_monthly_grid_splits_actual_mix_and_forecast():
    selector = MonthlyTotalSelector(
        today=TODAY, overrides={"2025-03": 300, "2025-04": 500}
    )
    monthly_actuals = {"2025-02": 100, "2025-03": 400}

    rows = build_monthly_grid(
        selector, monthly_actuals, ["2025-02", "2025-03", "2025-04"], today=TODAY
    )
    february, march, april = rows

    assert (february.value, february.provenance) == (100, Provenance.ACTUAL)
    assert (march.value, march.provenance) == (400, Provenance.MIX)
    assert march.forecast_total == 300
    assert (april.value, april.provenance) == (500, Provenance.FORECAST)
    assert april.forecast_source is MonthlySource.OVERRIDE
    assert april.trace == "override"

    dicts = monthly_grid_rows_to_dicts(rows)
    assert [entry["provenance"] for entry in dicts] == ["Actual", "Mix", "Forecast"]
    assert dicts[2]["forecast_source"] == "override"


def test_daily_actuals_csv_loading(tmp_path):
    path = tmp_path / "actuals.csv"
    _write_csv(
        path,
        ["date", "quantity", "note"],
        [
            {"date": "2025-01-30", "quantity": "4", "note": ""},
            {"date": "2025-01-30", "quantity": "6", "note": "second order"},
            {"date": "2025-01-31", "quantity": "", "note": "missing"},
            {"date": "2025-02-01T08:30:00", "quantity": "7.0", "note": ""},
        ],
    )

    records = list(iter_daily_actuals_from_csv(str(path)))
    daily = daily_actuals_to_mapping(records)

    assert records[0] == DailyActualRecord(day=date(2025, 1, 30), quantity=4)
    assert len(records) == 3
    assert daily == {date(2025, 1, 30): 10, date(2025, 2, 1): 7}
    assert monthly_actual_totals_from_daily(records) == {"2025-01": 10, "2025-02": 7}
    assert monthly_actual_totals_from_daily(daily) == {"2025-01": 10, "2025-02": 7}


def test_daily_actuals_csv_custom_field_names(tmp_path):
    path = tmp_path / "sales.csv"
    _write_csv(path, ["ds", "sold"], [{"ds": "2025-03-01", "sold": "12"}])

    records = list(
        iter_daily_actuals_from_csv(str(path), date_field="ds", quantity_field="sold")
    )

    assert records == [DailyActualRecord(day=date(2025, 3, 1), quantity=12)]


def test_daily_actuals_csv_missing_columns(tmp_path):
    path = tmp_path / "broken.csv"
    _write_csv(path, ["date"], [{"date": "2025-03-01"}])

    with pytest.warns(UserWarning, match="Missing required columns"):
        with pytest.raises(ValueError, match="missing required columns: quantity"):
            list(iter_daily_actuals_from_csv(str(path)))


def test_write_daily_grid_to_csv(tmp_path):
    path = tmp_path / "grid.csv"
    rows = build_daily_grid(_resolver(), date(2025, 3, 14), date(2025, 3, 16))

    write_daily_grid_to_csv(str(path), rows)

    with open(path, newline="") as handle:
        written = list(csv.DictReader(handle))
    assert [row["ds"] for row in written] == ["2025-03-14", "2025-03-15"]
    assert [row["provenance"] for row in written] == ["Actual", "Mix"]


def test_simulation_snapshots_export(tmp_path):
    resolver = DemandInputs(
        forecast_config=ForecastConfig(fallback_daily_rate=10)
    ).resolver(date(2025, 3, 1))
    result = simulate_inventory(
        resolver,
        policy=PolicyParameters(lead_time_days=5),
        position=StockPosition(on_hand=0),
        horizon_days=3,
    )
    path = tmp_path / "simulation.csv"

    dicts = simulation_snapshots_to_dicts(result)
    write_simulation_snapshots_to_csv(str(path), result)

    assert dicts[0]["restock_index"] == 1
    assert dicts[0]["restock_arrival"] == "2025-03-06"
    assert dicts[1]["restock_arrival"] is None
    with open(path, newline="") as handle:
        written = list(csv.DictReader(handle))
    assert len(written) == 3
    assert written[1]["restock_arrival"] == ""
    assert written[0]["provenance"] == "Mix"


def test_empty_export_writes_empty_file(tmp_path):
    path = tmp_path / "empty.csv"

    write_daily_grid_to_csv(str(path), [])

    assert path.read_text() == ""


def test_daily_grid_to_pandas():
    pd = pytest.importorskip("pandas")
    rows = build_daily_grid(_resolver(), date(2025, 3, 14), date(2025, 3, 17))

    frame = daily_grid_rows_to_dataframe(rows)

    assert isinstance(frame, pd.DataFrame)
    assert list(frame["value"]) == [5, 10, 10]
    assert list(frame["provenance"]) == ["Actual", "Mix", "Forecast"]


def test_dataframe_rejects_unknown_library():
    with pytest.raises(ValueError, match="library must be"):
        daily_grid_rows_to_dataframe([], library="arrow")
