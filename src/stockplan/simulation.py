"""Day-by-day inventory simulation with reorder feedback."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol

from .demand import DailyValue, DailyValueResolver, Provenance
from .periods import add_days, coerce_date, iter_days

if TYPE_CHECKING:
    from .policies import PolicyParameters, ReorderLevels, RestockDecision, StockPosition

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 365


class OrderingPolicy(Protocol):
    lead_time_days: int

    def decision_for(
        self, state: "InventoryState"
    ) -> tuple["ReorderLevels", "RestockDecision"]:
        ...


@dataclass(frozen=True)
class InTransitBatch:
    arrival_date: date
    quantity: int
    batch_id: str = ""
    is_overdue: bool = False


@dataclass(frozen=True)
class ScheduledOrder:
    restock_index: int
    order_date: date
    arrival_date: date
    quantity: int


@dataclass(frozen=True)
class InventoryState:
    """State entering ``day``.

    ``ledger`` holds arrivals scheduled by the simulation itself, keyed by
    arrival date. ``in_transit`` is the pending total after ``day`` as seen
    at the day's ordering decision.
    """

    day: date
    stock: int
    backlog: int = 0
    in_transit: int = 0
    ledger: Mapping[date, int] = field(default_factory=dict)
    restock_count: int = 0


@dataclass(frozen=True)
class DaySnapshot:
    day: date
    demand: int
    demand_provenance: Provenance
    stock: int
    backlog: int
    fulfilled: int
    rop: int
    safety_stock: int
    target_cycle_demand: int
    in_transit: int
    inbound_external: int = 0
    inbound_restock: int = 0
    restock_qty: int = 0
    restock_index: int | None = None
    restock_arrival: date | None = None

    @property
    def inbound(self) -> int:
        return self.inbound_external + self.inbound_restock


@dataclass(frozen=True)
class SimulationSummary:
    total_demand: int
    total_fulfilled: int
    ending_backlog: int
    fill_rate: float
    average_stock: float
    stockout_days: int
    restock_count: int
    total_restocked: int


@dataclass(frozen=True)
class SimulationResult:
    snapshots: Sequence[DaySnapshot]
    summary: SimulationSummary
    orders: Sequence[ScheduledOrder] = ()


@dataclass(frozen=True)
class SimulationContext:
    """Read-only inputs shared by every simulated day of one run."""

    policy: OrderingPolicy
    demand: Mapping[date, DailyValue]
    external_arrivals: Mapping[date, int] = field(default_factory=dict)
    resolver: DailyValueResolver | None = None

    def demand_for(self, day: date) -> DailyValue:
        if day in self.demand:
            return self.demand[day]
        if self.resolver is not None:
            return self.resolver.daily_value(day)
        return DailyValue(
            day=day,
            value=0,
            provenance=Provenance.FORECAST,
            month_total=0,
            weight=0.0,
            total_weights=0.0,
            daily_forecast=0,
            daily_actual=0,
            trace="outside lookahead",
        )

    def external_in_transit_after(self, day: date) -> int:
        return sum(
            quantity
            for arrival, quantity in self.external_arrivals.items()
            if arrival > day
        )


def external_arrivals_by_date(
    batches: Iterable[InTransitBatch], today: date
) -> dict[date, int]:
    """Map batch arrivals to dates; overdue batches land on ``today``."""
    arrivals: dict[date, int] = {}
    for batch in batches:
        arrival = coerce_date(batch.arrival_date)
        if batch.is_overdue or arrival < today:
            arrival = today
        arrivals[arrival] = arrivals.get(arrival, 0) + max(0, int(batch.quantity))
    return arrivals


def advance(
    state: InventoryState, context: SimulationContext
) -> tuple[InventoryState, DaySnapshot, ScheduledOrder | None]:
    """Simulate ``state.day`` and return the state entering the next day."""
    day = state.day
    ledger = dict(state.ledger)

    in_transit = context.external_in_transit_after(day) + sum(
        quantity for arrival, quantity in ledger.items() if arrival > day
    )

    demand = context.demand_for(day)
    backlog = state.backlog + demand.value

    inbound_external = context.external_arrivals.get(day, 0)
    inbound_restock = 0
    for arrival in sorted(ledger):
        if arrival <= day:
            inbound_restock += ledger.pop(arrival)
    stock = state.stock + inbound_external + inbound_restock

    fulfilled = min(stock, backlog)
    stock -= fulfilled
    backlog -= fulfilled

    decision_state = InventoryState(
        day=day,
        stock=stock,
        backlog=backlog,
        in_transit=in_transit,
        ledger=MappingProxyType(dict(ledger)),
        restock_count=state.restock_count,
    )
    levels, decision = context.policy.decision_for(decision_state)

    order: ScheduledOrder | None = None
    restock_count = state.restock_count
    if decision.quantity > 0:
        restock_count += 1
        arrival = add_days(day, context.policy.lead_time_days)
        ledger[arrival] = ledger.get(arrival, 0) + decision.quantity
        order = ScheduledOrder(
            restock_index=restock_count,
            order_date=day,
            arrival_date=arrival,
            quantity=decision.quantity,
        )
        logger.debug(
            "Restock #%d on %s: %d units arriving %s (rop=%d, backlog=%d).",
            restock_count,
            day,
            decision.quantity,
            arrival,
            levels.rop,
            backlog,
        )

    snapshot = DaySnapshot(
        day=day,
        demand=demand.value,
        demand_provenance=demand.provenance,
        stock=stock,
        backlog=backlog,
        fulfilled=fulfilled,
        rop=levels.rop,
        safety_stock=levels.safety_stock,
        target_cycle_demand=levels.target_cycle_demand,
        in_transit=in_transit,
        inbound_external=inbound_external,
        inbound_restock=inbound_restock,
        restock_qty=decision.quantity,
        restock_index=order.restock_index if order is not None else None,
        restock_arrival=order.arrival_date if order is not None else None,
    )
    next_state = InventoryState(
        day=day + timedelta(days=1),
        stock=stock,
        backlog=backlog,
        in_transit=in_transit,
        ledger=MappingProxyType(ledger),
        restock_count=restock_count,
    )
    return next_state, snapshot, order


def build_lookahead(
    resolver: DailyValueResolver, start: date, end: date
) -> dict[date, DailyValue]:
    return {day: resolver.daily_value(day) for day in iter_days(start, end)}


def _summarize(
    snapshots: Sequence[DaySnapshot], orders: Sequence[ScheduledOrder]
) -> SimulationSummary:
    total_demand = sum(snapshot.demand for snapshot in snapshots)
    total_fulfilled = sum(snapshot.fulfilled for snapshot in snapshots)
    periods = len(snapshots)
    return SimulationSummary(
        total_demand=total_demand,
        total_fulfilled=total_fulfilled,
        ending_backlog=snapshots[-1].backlog if snapshots else 0,
        fill_rate=total_fulfilled / total_demand if total_demand else 1.0,
        average_stock=(
            sum(snapshot.stock for snapshot in snapshots) / periods if periods else 0.0
        ),
        stockout_days=sum(1 for snapshot in snapshots if snapshot.backlog > 0),
        restock_count=len(orders),
        total_restocked=sum(order.quantity for order in orders),
    )


def simulate_inventory(
    resolver: DailyValueResolver,
    *,
    policy: "PolicyParameters",
    position: "StockPosition | None" = None,
    batches: Iterable[InTransitBatch] = (),
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> SimulationResult:
    """Roll stock, backlog and in-transit forward from ``resolver.today``.

    The demand lookahead is built once for the whole horizon plus the
    longest forward window, so orders placed during the run never change
    an earlier day's window sums.
    """
    from .policies import ReorderPointPolicy, StockPosition

    position = position if position is not None else StockPosition()
    today = resolver.today
    horizon_days = max(0, int(horizon_days))
    last_day = add_days(today, max(0, horizon_days - 1))
    lookahead = build_lookahead(resolver, today, policy.lookahead_end(last_day))

    def value_for(day: date) -> DailyValue:
        return lookahead[day] if day in lookahead else resolver.daily_value(day)

    context = SimulationContext(
        policy=ReorderPointPolicy(value_for=value_for, parameters=policy),
        demand=lookahead,
        external_arrivals=external_arrivals_by_date(batches, today),
        resolver=resolver,
    )
    state = InventoryState(day=today, stock=position.on_hand, backlog=position.backlog)
    snapshots: list[DaySnapshot] = []
    orders: list[ScheduledOrder] = []
    for _ in range(horizon_days):
        state, snapshot, order = advance(state, context)
        snapshots.append(snapshot)
        if order is not None:
            orders.append(order)

    return SimulationResult(
        snapshots=snapshots,
        summary=_summarize(snapshots, orders),
        orders=orders,
    )
