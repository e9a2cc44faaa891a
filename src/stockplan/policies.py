"""Reorder point, safety stock and restock quantity policies."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
import logging
import math

from .aggregation import DemandSource, DemandWindow, demand_window, format_window
from .demand import DailyValueResolver
from .periods import (
    add_days,
    add_months,
    coerce_date,
    non_negative_int,
    normalize_months,
)
from .simulation import InventoryState

logger = logging.getLogger(__name__)

DEFAULT_LEAD_TIME_DAYS = 30


@dataclass(frozen=True)
class PriceTier:
    min_qty: int = 0
    price: float = 0.0
    lead_time: int = DEFAULT_LEAD_TIME_DAYS
    is_selected: bool = False


@dataclass(frozen=True)
class SupplierTerms:
    """Supplier ordering constraints; tier selection is set elsewhere."""

    min_order_qty: int = 1
    order_unit_qty: int = 1
    price_tiers: Sequence[PriceTier] = ()
    default_lead_time: int = DEFAULT_LEAD_TIME_DAYS

    def selected_tier(self) -> PriceTier | None:
        for tier in self.price_tiers:
            if tier.is_selected:
                return tier
        return None

    def lead_time_days(self) -> int:
        tier = self.selected_tier()
        if tier is None:
            return non_negative_int(self.default_lead_time, DEFAULT_LEAD_TIME_DAYS)
        return non_negative_int(tier.lead_time)


@dataclass(frozen=True)
class PolicyParameters:
    """Windowing and ordering parameters for the reorder point calculation."""

    safety_stock_months: int = 1
    replenishment_cycle_months: int = 1
    lead_time_days: int = DEFAULT_LEAD_TIME_DAYS
    min_order_qty: int = 1
    order_unit: int = 1

    def __post_init__(self) -> None:
        raw = (
            self.safety_stock_months,
            self.replenishment_cycle_months,
            self.lead_time_days,
            self.min_order_qty,
            self.order_unit,
        )
        object.__setattr__(
            self, "safety_stock_months", normalize_months(self.safety_stock_months)
        )
        object.__setattr__(
            self,
            "replenishment_cycle_months",
            normalize_months(self.replenishment_cycle_months),
        )
        object.__setattr__(
            self, "lead_time_days", non_negative_int(self.lead_time_days)
        )
        object.__setattr__(
            self, "min_order_qty", max(1, non_negative_int(self.min_order_qty, 1))
        )
        object.__setattr__(
            self, "order_unit", max(1, non_negative_int(self.order_unit, 1))
        )
        normalized = (
            self.safety_stock_months,
            self.replenishment_cycle_months,
            self.lead_time_days,
            self.min_order_qty,
            self.order_unit,
        )
        if normalized != raw:
            logger.debug("Normalized policy parameters %r -> %r.", raw, normalized)

    @classmethod
    def from_supplier(
        cls,
        supplier: SupplierTerms | None,
        *,
        safety_stock_months: int,
        replenishment_cycle_months: int,
    ) -> "PolicyParameters":
        supplier = supplier if supplier is not None else SupplierTerms()
        return cls(
            safety_stock_months=safety_stock_months,
            replenishment_cycle_months=replenishment_cycle_months,
            lead_time_days=supplier.lead_time_days(),
            min_order_qty=supplier.min_order_qty,
            order_unit=supplier.order_unit_qty,
        )

    def lookahead_end(self, anchor: date) -> date:
        """First day past every window anchored at ``anchor``."""
        safety_end = add_months(anchor, self.safety_stock_months)
        return max(
            add_days(safety_end, self.lead_time_days),
            add_months(anchor, self.replenishment_cycle_months),
        )


@dataclass(frozen=True)
class StockPosition:
    on_hand: int = 0
    in_transit: int = 0
    backlog: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "on_hand", non_negative_int(self.on_hand))
        object.__setattr__(self, "in_transit", non_negative_int(self.in_transit))
        object.__setattr__(self, "backlog", non_negative_int(self.backlog))


@dataclass(frozen=True)
class ReorderLevels:
    anchor: date
    safety_stock: int
    lead_time_demand: int
    rop: int
    target_cycle_demand: int
    safety_window: DemandWindow
    lead_time_window: DemandWindow
    cycle_window: DemandWindow


def reorder_levels(
    value_for: DemandSource,
    anchor: date,
    policy: PolicyParameters,
    *,
    keep_details: bool = False,
) -> ReorderLevels:
    """Derive safety stock, ROP and cycle demand for windows at ``anchor``.

    The replenishment-cycle window starts at ``anchor`` and overlaps the
    safety-stock window, so the order-up-to level sits a full cycle above
    the reorder point.
    """
    safety_end = add_months(anchor, policy.safety_stock_months)
    safety_window = demand_window(
        value_for, anchor, safety_end, label="safety_stock", keep_details=keep_details
    )
    lead_window = demand_window(
        value_for,
        safety_end,
        add_days(safety_end, policy.lead_time_days),
        label="lead_time",
        keep_details=keep_details,
    )
    cycle_window = demand_window(
        value_for,
        anchor,
        add_months(anchor, policy.replenishment_cycle_months),
        label="replenishment_cycle",
        keep_details=keep_details,
    )
    safety_stock = max(0, safety_window.total)
    lead_time_demand = max(0, lead_window.total)
    return ReorderLevels(
        anchor=anchor,
        safety_stock=safety_stock,
        lead_time_demand=lead_time_demand,
        rop=max(0, safety_stock + lead_time_demand),
        target_cycle_demand=max(0, cycle_window.total),
        safety_window=safety_window,
        lead_time_window=lead_window,
        cycle_window=cycle_window,
    )


@dataclass(frozen=True)
class RestockDecision:
    triggered: bool
    quantity: int
    raw_gap: int
    trigger_threshold: int
    effective_on_hand: int
    moq_applied: bool = False
    order_unit_applied: bool = False


def round_order_quantity(raw_gap: int, min_order_qty: int, order_unit: int) -> int:
    quantity = max(raw_gap, min_order_qty)
    if order_unit > 1:
        quantity = math.ceil(quantity / order_unit) * order_unit
    return quantity


def restock_quantity(
    *,
    rop: int,
    target_cycle_demand: int,
    on_hand: int,
    in_transit: int,
    backlog: int,
    min_order_qty: int = 1,
    order_unit: int = 1,
) -> RestockDecision:
    effective_on_hand = on_hand + in_transit
    threshold = rop + backlog
    if effective_on_hand >= threshold:
        return RestockDecision(
            triggered=False,
            quantity=0,
            raw_gap=0,
            trigger_threshold=threshold,
            effective_on_hand=effective_on_hand,
        )
    raw_gap = max(0, rop + target_cycle_demand + backlog - on_hand - in_transit)
    quantity = round_order_quantity(raw_gap, min_order_qty, order_unit)
    return RestockDecision(
        triggered=True,
        quantity=quantity,
        raw_gap=raw_gap,
        trigger_threshold=threshold,
        effective_on_hand=effective_on_hand,
        moq_applied=min_order_qty > 1 and min_order_qty > raw_gap,
        order_unit_applied=order_unit > 1,
    )


@dataclass(frozen=True)
class ReorderPointResult:
    today: date
    safety_stock: int
    lead_time_demand: int
    rop: int
    target_cycle_demand: int
    restock_qty: int
    levels: ReorderLevels
    decision: RestockDecision
    position: StockPosition
    advice: str = ""
    restock_trace: str = ""
    explanation: str = ""
    details: Sequence = field(default_factory=tuple)

    @property
    def safety_stock_window(self) -> str:
        return self.levels.safety_window.describe()

    @property
    def lead_time_window(self) -> str:
        return self.levels.lead_time_window.describe()

    @property
    def replenishment_window(self) -> str:
        return self.levels.cycle_window.describe()

    @property
    def rop_window(self) -> str:
        return format_window(
            self.levels.safety_window.start, self.levels.lead_time_window.end
        )


def _restock_trace(
    decision: RestockDecision,
    levels: ReorderLevels,
    position: StockPosition,
    policy: PolicyParameters,
) -> str:
    if not decision.triggered:
        return (
            f"on hand + in transit ({decision.effective_on_hand}) covers "
            f"trigger threshold ({decision.trigger_threshold})"
        )
    lines = [
        f"trigger: on hand + in transit ({decision.effective_on_hand}) < "
        f"threshold ({decision.trigger_threshold})",
        "restock = (rop + cycle demand + backlog) - on hand - in transit",
        f"({levels.rop} + {levels.target_cycle_demand} + {position.backlog}) - "
        f"{position.on_hand} - {position.in_transit} = {decision.raw_gap}",
    ]
    if decision.moq_applied:
        lines.append(f"minimum order quantity applied: {policy.min_order_qty}")
    if decision.order_unit_applied:
        lines.append(f"rounded up to order unit: {policy.order_unit}")
    lines.append(f"result: {decision.quantity}")
    return "\n".join(lines)


def _explanation(
    levels: ReorderLevels, position: StockPosition, policy: PolicyParameters
) -> str:
    return "\n".join(
        [
            f"safety stock: {levels.safety_stock} "
            f"({levels.safety_window.describe()})",
            f"reorder point: {levels.rop} = {levels.safety_stock} + "
            f"{levels.lead_time_demand} lead-time demand "
            f"({levels.lead_time_window.describe()}, "
            f"{policy.lead_time_days} days)",
            f"replenishment cycle demand: {levels.target_cycle_demand} "
            f"({levels.cycle_window.describe()})",
            f"on hand {position.on_hand}, in transit {position.in_transit}, "
            f"backlog {position.backlog}",
        ]
    )


def _reference_date(value_for: DemandSource, today: date | None) -> date:
    resolver_today = (
        value_for.today if isinstance(value_for, DailyValueResolver) else None
    )
    if today is None:
        if resolver_today is None:
            raise ValueError(
                "today is required unless value_for is a DailyValueResolver."
            )
        return resolver_today
    today = coerce_date(today)
    if resolver_today is not None and today != resolver_today:
        raise ValueError(
            f"today {today} does not match the resolver reference date "
            f"{resolver_today}."
        )
    return today


def evaluate_reorder_point(
    value_for: DemandSource,
    *,
    policy: PolicyParameters,
    today: date | None = None,
    position: StockPosition | None = None,
    keep_details: bool = False,
) -> ReorderPointResult:
    """Snapshot reorder point and restock recommendation at ``today``.

    When ``value_for`` is a ``DailyValueResolver`` its own reference date is
    the anchor; ``today`` may be omitted and must match it when given.
    """
    today = _reference_date(value_for, today)
    position = position if position is not None else StockPosition()
    levels = reorder_levels(value_for, today, policy, keep_details=keep_details)
    decision = restock_quantity(
        rop=levels.rop,
        target_cycle_demand=levels.target_cycle_demand,
        on_hand=position.on_hand,
        in_transit=position.in_transit,
        backlog=position.backlog,
        min_order_qty=policy.min_order_qty,
        order_unit=policy.order_unit,
    )
    advice = (
        f"restock needed: order {decision.quantity}"
        if decision.triggered
        else "stock sufficient"
    )
    return ReorderPointResult(
        today=today,
        safety_stock=levels.safety_stock,
        lead_time_demand=levels.lead_time_demand,
        rop=levels.rop,
        target_cycle_demand=levels.target_cycle_demand,
        restock_qty=decision.quantity,
        levels=levels,
        decision=decision,
        position=position,
        advice=advice,
        restock_trace=_restock_trace(decision, levels, position, policy),
        explanation=_explanation(levels, position, policy),
        details=tuple(levels.safety_window.details)
        + tuple(levels.lead_time_window.details),
    )


@dataclass(frozen=True)
class ReorderPointPolicy:
    """Order when stock plus in-transit falls below reorder point plus backlog."""

    value_for: Callable[[date], object]
    parameters: PolicyParameters = field(default_factory=PolicyParameters)

    @property
    def lead_time_days(self) -> int:
        return self.parameters.lead_time_days

    def decision_for(
        self, state: InventoryState
    ) -> tuple[ReorderLevels, RestockDecision]:
        levels = reorder_levels(self.value_for, state.day, self.parameters)
        decision = restock_quantity(
            rop=levels.rop,
            target_cycle_demand=levels.target_cycle_demand,
            on_hand=state.stock,
            in_transit=state.in_transit,
            backlog=state.backlog,
            min_order_qty=self.parameters.min_order_qty,
            order_unit=self.parameters.order_unit,
        )
        return levels, decision

    def order_quantity_for(self, state: InventoryState) -> int:
        return self.decision_for(state)[1].quantity
