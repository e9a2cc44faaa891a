"""Grid rows, simulation exports and input loading."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
import csv
from dataclasses import dataclass
from datetime import date
import warnings

from .demand import DailyValueResolver, Provenance
from .forecasting import MonthlySource, MonthlyTotalSelector
from .periods import coerce_date, iter_days, month_key
from .simulation import DaySnapshot, SimulationResult


@dataclass(frozen=True)
class DailyActualRecord:
    day: date
    quantity: int


@dataclass(frozen=True)
class DailyGridRow:
    ds: str
    month: str
    value: int
    provenance: Provenance
    month_total: int
    weight: float
    total_weights: float
    daily_forecast: int
    daily_actual: int
    trace: str


@dataclass(frozen=True)
class MonthlyGridRow:
    month: str
    value: int
    provenance: Provenance
    actual_total: int
    forecast_total: int
    forecast_source: MonthlySource
    trace: str


def build_daily_grid(
    resolver: DailyValueResolver, start: date, end: date
) -> list[DailyGridRow]:
    """Daily values over ``[start, end)`` with provenance and derivation."""
    rows: list[DailyGridRow] = []
    for day in iter_days(coerce_date(start), coerce_date(end)):
        value = resolver.daily_value(day)
        rows.append(
            DailyGridRow(
                ds=day.isoformat(),
                month=month_key(day),
                value=value.value,
                provenance=value.provenance,
                month_total=value.month_total,
                weight=value.weight,
                total_weights=value.total_weights,
                daily_forecast=value.daily_forecast,
                daily_actual=value.daily_actual,
                trace=value.trace,
            )
        )
    return rows


def build_monthly_grid(
    selector: MonthlyTotalSelector,
    monthly_actuals: Mapping[str, int],
    months: Iterable[str],
    *,
    today: date,
) -> list[MonthlyGridRow]:
    """Month rows: actuals before the current month, forecasts after it.

    The current month shows the larger of the actual-so-far and the forecast.
    """
    current = month_key(coerce_date(today))
    rows: list[MonthlyGridRow] = []
    for month in months:
        total = selector.monthly_total(month)
        actual = int(monthly_actuals.get(month) or 0)
        if month < current:
            value, provenance = actual, Provenance.ACTUAL
        elif month > current:
            value, provenance = total.value, Provenance.FORECAST
        else:
            value, provenance = max(actual, total.value), Provenance.MIX
        rows.append(
            MonthlyGridRow(
                month=month,
                value=value,
                provenance=provenance,
                actual_total=actual,
                forecast_total=total.value,
                forecast_source=total.source,
                trace=total.trace,
            )
        )
    return rows


def daily_grid_rows_to_dicts(
    rows: Iterable[DailyGridRow],
) -> list[dict[str, str | int | float]]:
    return [
        {
            "ds": row.ds,
            "month": row.month,
            "value": row.value,
            "provenance": row.provenance.label,
            "month_total": row.month_total,
            "weight": row.weight,
            "total_weights": row.total_weights,
            "daily_forecast": row.daily_forecast,
            "daily_actual": row.daily_actual,
            "trace": row.trace,
        }
        for row in rows
    ]


def monthly_grid_rows_to_dicts(
    rows: Iterable[MonthlyGridRow],
) -> list[dict[str, str | int]]:
    return [
        {
            "month": row.month,
            "value": row.value,
            "provenance": row.provenance.label,
            "actual_total": row.actual_total,
            "forecast_total": row.forecast_total,
            "forecast_source": row.forecast_source.value,
            "trace": row.trace,
        }
        for row in rows
    ]


def simulation_snapshots_to_dicts(
    snapshots: Iterable[DaySnapshot] | SimulationResult,
) -> list[dict[str, str | int | None]]:
    if isinstance(snapshots, SimulationResult):
        snapshots = snapshots.snapshots
    return [
        {
            "ds": snapshot.day.isoformat(),
            "demand": snapshot.demand,
            "provenance": snapshot.demand_provenance.label,
            "stock": snapshot.stock,
            "backlog": snapshot.backlog,
            "fulfilled": snapshot.fulfilled,
            "rop": snapshot.rop,
            "safety_stock": snapshot.safety_stock,
            "target_cycle_demand": snapshot.target_cycle_demand,
            "in_transit": snapshot.in_transit,
            "inbound_external": snapshot.inbound_external,
            "inbound_restock": snapshot.inbound_restock,
            "restock_qty": snapshot.restock_qty,
            "restock_index": snapshot.restock_index,
            "restock_arrival": (
                snapshot.restock_arrival.isoformat()
                if snapshot.restock_arrival is not None
                else None
            ),
        }
        for snapshot in snapshots
    ]


def _to_dataframe(data: list[dict], *, library: str, caller: str):
    if library == "pandas":
        try:
            import pandas as pd  # type: ignore
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError(
                f"pandas is required for {caller}(library='pandas')."
            ) from exc
        return pd.DataFrame(data)
    if library == "polars":
        try:
            import polars as pl  # type: ignore
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError(
                f"polars is required for {caller}(library='polars')."
            ) from exc
        return pl.DataFrame(data)
    raise ValueError("library must be 'pandas' or 'polars'.")


def daily_grid_rows_to_dataframe(
    rows: Iterable[DailyGridRow], *, library: str = "pandas"
):
    return _to_dataframe(
        daily_grid_rows_to_dicts(rows),
        library=library,
        caller="daily_grid_rows_to_dataframe",
    )


def monthly_grid_rows_to_dataframe(
    rows: Iterable[MonthlyGridRow], *, library: str = "pandas"
):
    return _to_dataframe(
        monthly_grid_rows_to_dicts(rows),
        library=library,
        caller="monthly_grid_rows_to_dataframe",
    )


def simulation_snapshots_to_dataframe(
    snapshots: Iterable[DaySnapshot] | SimulationResult, *, library: str = "pandas"
):
    return _to_dataframe(
        simulation_snapshots_to_dicts(snapshots),
        library=library,
        caller="simulation_snapshots_to_dataframe",
    )


def _write_dicts_to_csv(path: str, entries: list[dict]) -> None:
    if not entries:
        open(path, "w", newline="").close()
        return
    with open(path, "w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(entries[0].keys()))
        writer.writeheader()
        for entry in entries:
            writer.writerow(
                {key: "" if value is None else value for key, value in entry.items()}
            )


def write_daily_grid_to_csv(path: str, rows: Iterable[DailyGridRow]) -> None:
    _write_dicts_to_csv(path, daily_grid_rows_to_dicts(rows))


def write_monthly_grid_to_csv(path: str, rows: Iterable[MonthlyGridRow]) -> None:
    _write_dicts_to_csv(path, monthly_grid_rows_to_dicts(rows))


def write_simulation_snapshots_to_csv(
    path: str, snapshots: Iterable[DaySnapshot] | SimulationResult
) -> None:
    _write_dicts_to_csv(path, simulation_snapshots_to_dicts(snapshots))


def _validate_required_columns(
    fieldnames: Iterable[str] | None,
    *,
    required_fields: Iterable[str],
    context: str,
) -> None:
    if not fieldnames:
        warnings.warn(f"Missing header row for {context}.", stacklevel=2)
        raise ValueError(f"{context} is missing a header row.")
    field_set = set(fieldnames)
    missing_required = [field for field in required_fields if field not in field_set]
    if missing_required:
        missing_display = ", ".join(missing_required)
        warnings.warn(
            f"Missing required columns for {context}: {missing_display}.",
            stacklevel=2,
        )
        raise ValueError(f"{context} is missing required columns: {missing_display}.")


def iter_daily_actuals_from_csv(
    path: str,
    *,
    date_field: str = "date",
    quantity_field: str = "quantity",
) -> Iterator[DailyActualRecord]:
    with open(path, newline="") as handle:
        reader = csv.DictReader(handle)
        _validate_required_columns(
            reader.fieldnames,
            required_fields=[date_field, quantity_field],
            context="daily-actuals CSV",
        )
        for row in reader:
            quantity_text = (row[quantity_field] or "").strip()
            if not quantity_text:
                continue
            yield DailyActualRecord(
                day=coerce_date(row[date_field]),
                quantity=int(float(quantity_text)),
            )


def daily_actuals_to_mapping(
    records: Iterable[DailyActualRecord],
) -> dict[date, int]:
    """Sum records per day; repeated dates accumulate."""
    totals: dict[date, int] = {}
    for record in records:
        totals[record.day] = totals.get(record.day, 0) + record.quantity
    return totals


def monthly_actual_totals_from_daily(
    records: Iterable[DailyActualRecord] | Mapping[date, int],
) -> dict[str, int]:
    if isinstance(records, Mapping):
        items = ((coerce_date(day), int(quantity)) for day, quantity in records.items())
    else:
        items = ((record.day, record.quantity) for record in records)
    totals: dict[str, int] = {}
    for day, quantity in items:
        key = month_key(day)
        totals[key] = totals.get(key, 0) + quantity
    return totals
