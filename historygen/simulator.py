"""Day-by-day inventory simulator for a single location.

Each simulator owns its ``LocationState`` (inventory rows and orders in
transit) and its random stream; nothing is shared between locations, so
simulators can be stepped in any interleaving.

Per-day transition (``simulate_day``), strictly ordered:
    1. process deliveries arriving today
    2. consume components for today's model demand; every draw becomes a
       replenishment order with a quality-dependent lead time
    3. report failure rates for every (supplier, component) pair used
    4. advance to the next day (or finish when the series runs out)
    5. emit the report for the day just simulated

Usage:
    from historygen.simulator import LocationSimulator

    sim = LocationSimulator("west", series, seed="demo-west")
    while (report := sim.simulate_day()) is not None:
        ...
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field, replace
from datetime import date, timedelta

from historygen.catalog import DEFAULT_CATALOG, Catalog, get_target_inventory_level
from historygen.dates import ONE_DAY
from historygen.errors import (
    InventoryDepletionError,
    MissingDayDataError,
    MissingSupplierQualityError,
    SimulationError,
)
from historygen.random_stream import DEFAULT_ALGORITHM, create_random
from historygen.time_series import DailyLocationData, DayData, TimeSeries

logger = logging.getLogger("historygen.simulator")


@dataclass
class ComponentInventory:
    supplier: str
    component_id: str
    quantity: int


@dataclass(frozen=True)
class OrderInTransit:
    supplier: str
    component_id: str
    quantity: int
    order_date: date
    arrival_date: date


@dataclass
class LocationState:
    inventory: list[ComponentInventory] = field(default_factory=list)
    orders_in_transit: list[OrderInTransit] = field(default_factory=list)


@dataclass(frozen=True)
class ComponentUsage:
    supplier: str
    component_id: str
    quantity: int


@dataclass(frozen=True)
class Delivery:
    supplier: str
    component_id: str
    order_size: int
    lead_time_variance: int
    discount: float = 0


@dataclass(frozen=True)
class ComponentFailure:
    supplier: str
    component_id: str
    failure_rate: float


@dataclass(frozen=True)
class ModelDemand:
    model_id: str
    demand_units: int


@dataclass(frozen=True)
class DailyLocationReport:
    date: date
    location: str
    market_trend_index: float
    inflation_rate: float
    model_demand: tuple[ModelDemand, ...]
    component_inventory: tuple[ComponentInventory, ...]  # snapshot after the day's transition
    deliveries: tuple[Delivery, ...]
    component_failures: tuple[ComponentFailure, ...]


@dataclass(frozen=True)
class ProcessDemandResult:
    orders_generated: list[OrderInTransit]
    components_used: list[ComponentUsage]


@dataclass(frozen=True)
class DeliveryTimingModel:
    """Quality-dependent delivery lead time.

    Most orders use the supplier's base lead time. The rest are early or late:
    quality is normalized to 0-1 over [0.7, 1.3], better suppliers are early
    more often and worse ones are late by more days. Ladders are evaluated in
    order; the first ``severity < fraction * factor`` entry wins.
    """

    variable_probability: float = 0.3
    early_base: float = 0.05
    early_quality_weight: float = 0.6
    early_ladder: tuple[tuple[float, int], ...] = ((1.2, -2),)
    early_default: int = -1
    late_ladder: tuple[tuple[float, int], ...] = ((0.7, 7), (1.2, 5), (1.8, 3))
    late_default: int = 2
    lateness_exponent: float = 1.5

    @staticmethod
    def normalize_quality(quality_index: float) -> float:
        return min(1.0, max(0.0, (quality_index - 0.7) / 0.6))

    def day_adjustment(self, normalized_quality: float, is_early: bool, severity: float) -> int:
        # float error at the 1.3 clamp can push this past 1.0
        normalized_quality = min(1.0, max(0.0, normalized_quality))
        if is_early:
            factor = normalized_quality
            ladder, default = self.early_ladder, self.early_default
        else:
            factor = (1 - normalized_quality) ** self.lateness_exponent
            ladder, default = self.late_ladder, self.late_default
        for fraction, adjustment in ladder:
            if severity < factor * fraction:
                return adjustment
        return default

    def lead_time(self, base_lead_time: int, quality_index: float, rng: random.Random) -> int:
        if rng.random() >= self.variable_probability:
            return base_lead_time

        normalized = self.normalize_quality(quality_index)
        is_early = rng.random() < self.early_base + normalized * self.early_quality_weight
        severity = rng.random()
        return max(1, base_lead_time + self.day_adjustment(normalized, is_early, severity))


DEFAULT_TIMING = DeliveryTimingModel()


def failure_rate(baseline_failure_rate: float, quality_index: float) -> float:
    """Exponential quality penalty: each 0.1 of quality below 1.0 doubles the rate."""
    return baseline_failure_rate * 2.0 ** ((1 - quality_index) * 10)


def initialize_location_state(location_id: str, catalog: Catalog = DEFAULT_CATALOG) -> LocationState:
    """Fresh state with the target inventory split evenly across eligible suppliers."""
    location = catalog.locations[location_id]
    inventory = []
    for supplier_id in location.suppliers:
        for offer in catalog.suppliers[supplier_id].components:
            target = get_target_inventory_level(location_id, offer.component_id, catalog=catalog)
            suppliers_for_component = catalog.suppliers_for_component(location_id, offer.component_id)
            inventory.append(
                ComponentInventory(
                    supplier=supplier_id,
                    component_id=offer.component_id,
                    quantity=math.ceil(target / len(suppliers_for_component)),
                )
            )
    return LocationState(inventory=inventory, orders_in_transit=[])


def initialize_location_states(catalog: Catalog = DEFAULT_CATALOG) -> dict[str, LocationState]:
    return {code: initialize_location_state(code, catalog) for code in catalog.locations}


class LocationSimulator:
    """Stateful stepper over a date-indexed time series for one location."""

    def __init__(
        self,
        location_id: str,
        time_series: TimeSeries,
        seed: str,
        initial_state: LocationState | None = None,
        *,
        catalog: Catalog = DEFAULT_CATALOG,
        timing: DeliveryTimingModel = DEFAULT_TIMING,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        if not time_series:
            raise SimulationError(f"Time series for location {location_id} is empty")
        if location_id not in catalog.locations:
            raise SimulationError(f"Unknown location: {location_id}")

        self._location_id = location_id
        self._time_series = time_series
        self._catalog = catalog
        self._timing = timing
        self._rng = create_random(seed, algorithm)
        self._current_date = min(time_series)
        self._state = initial_state if initial_state is not None else initialize_location_state(location_id, catalog)
        self._finished = False

    @property
    def current_date(self) -> date:
        return self._current_date

    @property
    def location_state(self) -> LocationState:
        return self._state

    @property
    def location_id(self) -> str:
        return self._location_id

    @property
    def simulation_finished(self) -> bool:
        return self._finished

    def _today(self) -> DayData:
        day_data = self._time_series.get(self._current_date)
        if day_data is None:
            raise MissingDayDataError(self._current_date, self._location_id)
        return day_data

    def _location_data(self) -> DailyLocationData:
        location_data = self._today().location_data.get(self._location_id)
        if location_data is None:
            raise MissingDayDataError(self._current_date, self._location_id)
        return location_data

    def _quality_index(self, supplier: str) -> float:
        quality = self._location_data().supplier_quality.get(supplier)
        if quality is None:
            raise MissingSupplierQualityError(supplier, self._location_id, self._current_date)
        return quality.quality_index

    def _advance_day(self) -> None:
        next_date = self._current_date + ONE_DAY
        if next_date not in self._time_series:
            self._finished = True
            return
        self._current_date = next_date

    def _log_depletion_context(self, row: ComponentInventory, quantity: int) -> None:
        logger.error(
            f"Inventory depletion on {self._current_date.isoformat()} in {self._location_id}: "
            f"supplier {row.supplier}, component {row.component_id}, "
            f"on hand {row.quantity}, requested {quantity}"
        )
        for md in self._location_data().model_demand:
            logger.error(f"  demand {md.model_id}: {md.demand} units")
        for inv in self._state.inventory:
            if inv.component_id == row.component_id:
                logger.error(f"  inventory {inv.supplier}: {inv.quantity} units")
        for order in self._state.orders_in_transit:
            if order.component_id == row.component_id:
                logger.error(
                    f"  pending {order.supplier}: {order.quantity} units, "
                    f"arriving {order.arrival_date.isoformat()}"
                )

    def _take(self, row: ComponentInventory, quantity: int) -> OrderInTransit:
        """Consume ``quantity`` from ``row`` and place the matching replenishment order."""
        if row.quantity - quantity < 1:
            self._log_depletion_context(row, quantity)
            raise InventoryDepletionError(
                location_id=self._location_id,
                day=self._current_date,
                supplier=row.supplier,
                component_id=row.component_id,
                on_hand=row.quantity,
                requested=quantity,
            )

        quality_index = self._quality_index(row.supplier)
        row.quantity -= quantity

        lead_time = self._timing.lead_time(
            self._catalog.base_lead_time(row.supplier), quality_index, self._rng
        )
        order = OrderInTransit(
            supplier=row.supplier,
            component_id=row.component_id,
            quantity=quantity,
            order_date=self._current_date,
            arrival_date=self._current_date + timedelta(days=lead_time),
        )
        self._state.orders_in_transit.append(order)
        return order

    def process_deliveries(self) -> list[Delivery]:
        """Receive every order arriving today into its inventory row."""
        deliveries = []
        still_in_transit = []
        for order in self._state.orders_in_transit:
            if order.arrival_date != self._current_date:
                still_in_transit.append(order)
                continue

            row = next(
                (
                    inv for inv in self._state.inventory
                    if inv.supplier == order.supplier and inv.component_id == order.component_id
                ),
                None,
            )
            if row is None:
                raise SimulationError(
                    f"No inventory row for supplier {order.supplier} component {order.component_id} "
                    f"in location {self._location_id}"
                )
            row.quantity += order.quantity

            actual_lead_time = (order.arrival_date - order.order_date).days
            deliveries.append(
                Delivery(
                    supplier=order.supplier,
                    component_id=order.component_id,
                    order_size=order.quantity,
                    lead_time_variance=actual_lead_time - self._catalog.base_lead_time(order.supplier),
                )
            )

        self._state.orders_in_transit[:] = still_in_transit
        return deliveries

    def process_model_demand(self) -> ProcessDemandResult:
        """Draw today's demand from inventory, spreading it across suppliers at random."""
        orders: list[OrderInTransit] = []
        used: list[ComponentUsage] = []

        for md in self._location_data().model_demand:
            if md.demand <= 0:
                continue
            model = self._catalog.models.get(md.model_id)
            if model is None:
                raise SimulationError(f"Unknown tractor model: {md.model_id}")

            for component_id in model.components:
                remaining = md.demand
                candidates = [inv for inv in self._state.inventory if inv.component_id == component_id]

                while remaining > 0:
                    if not candidates:
                        raise InventoryDepletionError(
                            location_id=self._location_id,
                            day=self._current_date,
                            supplier=None,
                            component_id=component_id,
                            on_hand=0,
                            requested=remaining,
                        )

                    if len(candidates) == 1:
                        take = remaining
                        selected = candidates.pop()
                    else:
                        selected = candidates.pop(int(self._rng.random() * len(candidates)))
                        take = int(self._rng.random() * remaining) + 1

                    order = self._take(selected, take)
                    orders.append(order)
                    used.append(ComponentUsage(order.supplier, order.component_id, order.quantity))
                    remaining -= take

        return ProcessDemandResult(orders_generated=orders, components_used=used)

    def generate_failures(self, components_used: list[ComponentUsage]) -> list[ComponentFailure]:
        """One failure-rate record per distinct (supplier, component) pair, in first-use order."""
        failures = []
        seen = set()
        for usage in components_used:
            key = (usage.supplier, usage.component_id)
            if key in seen:
                continue
            seen.add(key)
            failures.append(
                ComponentFailure(
                    supplier=usage.supplier,
                    component_id=usage.component_id,
                    failure_rate=failure_rate(
                        self._catalog.failure_rate(usage.component_id),
                        self._quality_index(usage.supplier),
                    ),
                )
            )
        return failures

    def simulate_day(self) -> DailyLocationReport | None:
        """Run one day; returns None once the series is exhausted."""
        if self._finished:
            return None

        report_date = self._current_date
        day_data = self._today()
        location_data = self._location_data()

        deliveries = self.process_deliveries()
        demand = self.process_model_demand()
        failures = self.generate_failures(demand.components_used)

        self._advance_day()

        return DailyLocationReport(
            date=report_date,
            location=self._location_id,
            market_trend_index=day_data.market_trend,
            inflation_rate=location_data.inflation_rate,
            model_demand=tuple(ModelDemand(md.model_id, md.demand) for md in location_data.model_demand),
            component_inventory=tuple(replace(inv) for inv in self._state.inventory),
            deliveries=tuple(deliveries),
            component_failures=tuple(failures),
        )
