"""Single-SKU demand resolution, reorder points and inventory simulation."""

from importlib.metadata import PackageNotFoundError, version as _dist_version

try:
    from ._version import version as __version__
except ModuleNotFoundError:
    try:
        __version__ = _dist_version("stockplan")
    except PackageNotFoundError:
        __version__ = "0.0.0"

from .seasonality import WeekdayFactors
from .forecasting import (
    BENCHMARK_MOM,
    BENCHMARK_YOY,
    BenchmarkResult,
    ForecastConfig,
    MonthlySource,
    MonthlyTotal,
    MonthlyTotalSelector,
    benchmark_forecast,
    calculate_benchmark_forecasts,
    forecast_months,
    mom_benchmark,
    yoy_benchmark,
)
from .demand import DailyValue, DailyValueResolver, DemandInputs, Provenance
from .aggregation import (
    DemandWindow,
    aggregate_demand,
    day_window,
    demand_window,
    month_window,
)
from .simulation import (
    DaySnapshot,
    InTransitBatch,
    InventoryState,
    ScheduledOrder,
    SimulationContext,
    SimulationResult,
    SimulationSummary,
    advance,
    simulate_inventory,
)
from .policies import (
    DEFAULT_LEAD_TIME_DAYS,
    PolicyParameters,
    PriceTier,
    ReorderLevels,
    ReorderPointPolicy,
    ReorderPointResult,
    RestockDecision,
    StockPosition,
    SupplierTerms,
    evaluate_reorder_point,
    reorder_levels,
    restock_quantity,
    round_order_quantity,
)
from .io import (
    DailyActualRecord,
    DailyGridRow,
    MonthlyGridRow,
    build_daily_grid,
    build_monthly_grid,
    daily_actuals_to_mapping,
    daily_grid_rows_to_dataframe,
    daily_grid_rows_to_dicts,
    iter_daily_actuals_from_csv,
    monthly_actual_totals_from_daily,
    monthly_grid_rows_to_dataframe,
    monthly_grid_rows_to_dicts,
    simulation_snapshots_to_dataframe,
    simulation_snapshots_to_dicts,
    write_daily_grid_to_csv,
    write_monthly_grid_to_csv,
    write_simulation_snapshots_to_csv,
)

__all__ = [
    "__version__",
    "WeekdayFactors",
    "BENCHMARK_MOM",
    "BENCHMARK_YOY",
    "BenchmarkResult",
    "ForecastConfig",
    "MonthlySource",
    "MonthlyTotal",
    "MonthlyTotalSelector",
    "benchmark_forecast",
    "calculate_benchmark_forecasts",
    "forecast_months",
    "mom_benchmark",
    "yoy_benchmark",
    "DailyValue",
    "DailyValueResolver",
    "DemandInputs",
    "Provenance",
    "DemandWindow",
    "aggregate_demand",
    "day_window",
    "demand_window",
    "month_window",
    "DaySnapshot",
    "InTransitBatch",
    "InventoryState",
    "ScheduledOrder",
    "SimulationContext",
    "SimulationResult",
    "SimulationSummary",
    "advance",
    "simulate_inventory",
    "DEFAULT_LEAD_TIME_DAYS",
    "PolicyParameters",
    "PriceTier",
    "ReorderLevels",
    "ReorderPointPolicy",
    "ReorderPointResult",
    "RestockDecision",
    "StockPosition",
    "SupplierTerms",
    "evaluate_reorder_point",
    "reorder_levels",
    "restock_quantity",
    "round_order_quantity",
    "DailyActualRecord",
    "DailyGridRow",
    "MonthlyGridRow",
    "build_daily_grid",
    "build_monthly_grid",
    "daily_actuals_to_mapping",
    "daily_grid_rows_to_dataframe",
    "daily_grid_rows_to_dicts",
    "iter_daily_actuals_from_csv",
    "monthly_actual_totals_from_daily",
    "monthly_grid_rows_to_dataframe",
    "monthly_grid_rows_to_dicts",
    "simulation_snapshots_to_dataframe",
    "simulation_snapshots_to_dicts",
    "write_daily_grid_to_csv",
    "write_monthly_grid_to_csv",
    "write_simulation_snapshots_to_csv",
]
