"""Exception hierarchy for history generation.

Every error here is fatal: generation runs are never retried or resumed
after one of these is raised.
"""

from __future__ import annotations

from datetime import date


class SimulationError(Exception):
    """Raised when history generation encounters an unrecoverable error."""
    pass


class DataLoadError(SimulationError):
    """Raised when required data files cannot be loaded."""
    pass


class ConfigValidationError(SimulationError):
    """Raised when configuration values are invalid."""
    pass


class MissingDayDataError(SimulationError):
    """Raised when the time series has no entry for a date the simulator expects."""

    def __init__(self, day: date, location_id: str | None = None) -> None:
        self.date = day
        self.location_id = location_id
        where = f" (location {location_id})" if location_id else ""
        super().__init__(f"No time series data found for date {day.isoformat()}{where}")


class MissingSupplierQualityError(SimulationError):
    """Raised when a supplier has no quality data at a location that uses it."""

    def __init__(self, supplier: str, location_id: str, day: date) -> None:
        self.supplier = supplier
        self.location_id = location_id
        self.date = day
        super().__init__(
            f"No supplier quality data found for {supplier} in location {location_id} "
            f"on {day.isoformat()}. This indicates a data generation issue."
        )


class InventoryDepletionError(SimulationError):
    """Raised when demand would take an inventory row below one unit.

    Signals that the target inventory sizing does not cover the demand profile.
    """

    def __init__(
        self,
        *,
        location_id: str,
        day: date,
        supplier: str | None,
        component_id: str,
        on_hand: int,
        requested: int,
    ) -> None:
        self.location_id = location_id
        self.date = day
        self.supplier = supplier
        self.component_id = component_id
        self.on_hand = on_hand
        self.requested = requested
        supplier_part = f"supplier {supplier} " if supplier else ""
        super().__init__(
            f"Attempt to deplete inventory for {supplier_part}component {component_id} "
            f"in location {location_id} on {day.isoformat()} "
            f"(on hand {on_hand}, requested {requested}). "
            f"Target inventory levels may need to be increased."
        )
