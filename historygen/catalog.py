"""Static configuration tables: components, tractor models, suppliers, locations.

Iteration order of every table is its declaration order, and that order is
part of the determinism contract (random draws follow it).

Usage:
    from historygen.catalog import DEFAULT_CATALOG, get_target_inventory_level

    level = get_target_inventory_level("west", "ENGINE-B")

The tables can also be loaded from JSON (see ``load_catalog``), in the same
shape ``catalog_to_dict`` produces.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from historygen.errors import ConfigValidationError, DataLoadError


TREND_DIRECTIONS = ("up", "down", "stable")

# Demand generation constants
MIN_BASE_DEMAND = 40
MAX_BASE_DEMAND = 150
DAYS_OF_INVENTORY = 30


@dataclass(frozen=True)
class Component:
    id: str
    name: str
    baseline_failure_rate: float


@dataclass(frozen=True)
class TractorModel:
    id: str
    components: tuple[str, ...]  # bill of materials, in draw order
    market_sensitivity: float  # 0-1, how much market affects demand
    inflation_sensitivity: float  # 0-1, how much inflation affects demand


@dataclass(frozen=True)
class SupplierComponent:
    component_id: str
    price_per_unit: float


@dataclass(frozen=True)
class Supplier:
    id: str
    base_lead_time: int  # days
    components: tuple[SupplierComponent, ...]

    def supplies(self, component_id: str) -> bool:
        return any(c.component_id == component_id for c in self.components)


@dataclass(frozen=True)
class Location:
    code: str
    suppliers: tuple[str, ...]
    model_preferences: dict[str, float]  # demand multiplier per model


@dataclass(frozen=True)
class SupplierQualityConfig:
    quality_volatility: float
    seasonal_strength: float
    quality_momentum: float
    starting_quality: float = 1.0
    efficiency_bias: float = 0.0
    story: tuple[str, ...] | None = None  # six period trends; None draws a random story


@dataclass(frozen=True)
class Catalog:
    components: dict[str, Component]
    models: dict[str, TractorModel]
    suppliers: dict[str, Supplier]
    locations: dict[str, Location]
    quality_configs: dict[str, SupplierQualityConfig] = field(default_factory=dict)

    def base_lead_time(self, supplier_id: str) -> int:
        return self.suppliers[supplier_id].base_lead_time

    def failure_rate(self, component_id: str) -> float:
        component = self.components.get(component_id)
        if component is None:
            raise ConfigValidationError(f"Unknown component ID: {component_id}")
        return component.baseline_failure_rate

    def suppliers_for_component(self, location_id: str, component_id: str) -> list[str]:
        return [
            sid for sid in self.locations[location_id].suppliers
            if self.suppliers[sid].supplies(component_id)
        ]


COMPONENTS = {
    "ENGINE-A": Component("ENGINE-A", "Basic Engine", 0.03),
    "ENGINE-B": Component("ENGINE-B", "Standard Engine", 0.025),
    "CHASSIS-BASIC": Component("CHASSIS-BASIC", "Basic Chassis", 0.02),
    "CHASSIS-PREMIUM": Component("CHASSIS-PREMIUM", "Premium Chassis", 0.015),
    "HYDRAULICS-SMALL": Component("HYDRAULICS-SMALL", "Small Hydraulics", 0.04),
    "HYDRAULICS-MEDIUM": Component("HYDRAULICS-MEDIUM", "Medium Hydraulics", 0.035),
}

TRACTOR_MODELS = {
    "TX-100": TractorModel("TX-100", ("ENGINE-A", "CHASSIS-BASIC", "HYDRAULICS-SMALL"), 0.3, 0.7),
    "TX-300": TractorModel("TX-300", ("ENGINE-B", "CHASSIS-BASIC", "HYDRAULICS-MEDIUM"), 0.6, 0.4),
    # High-end, less affected by price
    "TX-500": TractorModel("TX-500", ("ENGINE-B", "CHASSIS-PREMIUM", "HYDRAULICS-MEDIUM"), 0.8, 0.2),
}


def _parts(*pairs: tuple[str, float]) -> tuple[SupplierComponent, ...]:
    return tuple(SupplierComponent(cid, price) for cid, price in pairs)


SUPPLIERS = {
    # Premium: high price, short lead time, best quality
    "Elite": Supplier("Elite", 5, _parts(
        ("ENGINE-A", 1100), ("ENGINE-B", 2300), ("CHASSIS-PREMIUM", 2500),
        ("HYDRAULICS-SMALL", 680), ("CHASSIS-BASIC", 950),
    )),
    # Balanced: medium price, medium lead time
    "Crank": Supplier("Crank", 7, _parts(
        ("ENGINE-B", 2000), ("HYDRAULICS-MEDIUM", 1150), ("HYDRAULICS-SMALL", 600),
        ("CHASSIS-PREMIUM", 2300),
    )),
    # Budget: low price, long lead time, declining quality
    "Atlas": Supplier("Atlas", 8, _parts(
        ("ENGINE-A", 850), ("CHASSIS-BASIC", 680), ("HYDRAULICS-MEDIUM", 980),
        ("ENGINE-B", 1700), ("CHASSIS-PREMIUM", 2050), ("HYDRAULICS-SMALL", 550),
    )),
    # Volume: slowest, recovers late
    "Bolt": Supplier("Bolt", 10, _parts(
        ("ENGINE-A", 880), ("CHASSIS-BASIC", 700), ("CHASSIS-PREMIUM", 2100),
        ("HYDRAULICS-MEDIUM", 1000), ("ENGINE-B", 1900),
    )),
    # Specialist: declining quality at premium prices
    "Dynamo": Supplier("Dynamo", 9, _parts(
        ("HYDRAULICS-SMALL", 620), ("HYDRAULICS-MEDIUM", 1200), ("CHASSIS-BASIC", 880),
        ("ENGINE-A", 1050), ("CHASSIS-PREMIUM", 2400),
    )),
}

LOCATIONS = {
    "west": Location("west", ("Atlas", "Crank", "Elite"), {"TX-100": 0.15, "TX-300": 1.0, "TX-500": 3.0}),
    "south": Location("south", ("Atlas", "Bolt", "Dynamo"), {"TX-100": 2.0, "TX-300": 1.2, "TX-500": 0.15}),
    "heartland": Location("heartland", ("Bolt", "Crank", "Elite"), {"TX-100": 1.2, "TX-300": 1.0, "TX-500": 0.5}),
}

SUPPLIER_QUALITY_CONFIGS = {
    # Premium supplier that keeps improving from an already high start
    "Elite": SupplierQualityConfig(0.1, 0.5, 0.4, 1.15, 0.03,
                                   ("stable", "up", "stable", "up", "stable", "up")),
    # Mid-tier with a seasonal up/down rhythm
    "Crank": SupplierQualityConfig(0.2, 0.8, 0.3, 1.0, 0.01,
                                   ("up", "down", "up", "down", "up", "down")),
    # Budget supplier sliding downhill
    "Atlas": SupplierQualityConfig(0.25, 0.7, 0.5, 0.95, -0.02,
                                   ("down", "stable", "down", "stable", "down", "down")),
    # Volume supplier recovering after two bad years
    "Bolt": SupplierQualityConfig(0.3, 0.9, 0.2, 0.9, 0.0,
                                  ("down", "down", "stable", "stable", "up", "up")),
    # High-end supplier in decline
    "Dynamo": SupplierQualityConfig(0.4, 1.0, 0.6, 1.2, -0.03,
                                    ("stable", "stable", "down", "down", "down", "down")),
}

DEFAULT_CATALOG = Catalog(
    components=COMPONENTS,
    models=TRACTOR_MODELS,
    suppliers=SUPPLIERS,
    locations=LOCATIONS,
    quality_configs=SUPPLIER_QUALITY_CONFIGS,
)


def get_component_failure_rate(component_id: str, catalog: Catalog = DEFAULT_CATALOG) -> float:
    return catalog.failure_rate(component_id)


def get_target_inventory_level(
    location_id: str,
    component_id: str,
    days_of_inventory: int = DAYS_OF_INVENTORY,
    catalog: Catalog = DEFAULT_CATALOG,
) -> int:
    """Preference-weighted stock level for one component at one location.

    Sums a safety-factored base demand over every model that uses the
    component, then covers ``days_of_inventory * 1.2`` days of it.
    """
    location = catalog.locations[location_id]
    models_using = [m.id for m in catalog.models.values() if component_id in m.components]
    if not models_using:
        return 0

    total_weighted_demand = 0.0
    for model_id in models_using:
        preference = location.model_preferences.get(model_id, 0.0)
        scaled_min = MIN_BASE_DEMAND * max(0.5, math.sqrt(preference))
        scaled_max = MAX_BASE_DEMAND * max(0.2, preference)

        if preference < 0.2:
            base_position, safety_factor = 0.6, 1.8
        elif preference < 1:
            base_position, safety_factor = 0.4, 1.3
        else:
            base_position, safety_factor = 0.7, 1.5
        base_demand = scaled_min + base_position * (scaled_max - scaled_min)
        total_weighted_demand += base_demand * safety_factor

    target = math.ceil(total_weighted_demand * days_of_inventory * 1.2)
    return max(200, target)


def load_json(path: Path) -> Any:
    """Load JSON file with error handling."""
    if not path.exists():
        raise DataLoadError(f"Required data file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON in {path}: {e}") from e


def catalog_to_dict(catalog: Catalog = DEFAULT_CATALOG) -> dict[str, Any]:
    return {
        "components": [asdict(c) for c in catalog.components.values()],
        "models": [asdict(m) for m in catalog.models.values()],
        "suppliers": [asdict(s) for s in catalog.suppliers.values()],
        "locations": [asdict(loc) for loc in catalog.locations.values()],
        "quality_configs": {sid: asdict(cfg) for sid, cfg in catalog.quality_configs.items()},
    }


def catalog_from_dict(data: dict[str, Any]) -> Catalog:
    """Build a catalog from ``catalog_to_dict`` output; validates references."""
    try:
        components = {
            c["id"]: Component(c["id"], c.get("name", c["id"]), float(c["baseline_failure_rate"]))
            for c in data["components"]
        }
        models = {
            m["id"]: TractorModel(
                m["id"], tuple(m["components"]),
                float(m["market_sensitivity"]), float(m["inflation_sensitivity"]),
            )
            for m in data["models"]
        }
        suppliers = {
            s["id"]: Supplier(
                s["id"], int(s["base_lead_time"]),
                tuple(SupplierComponent(c["component_id"], float(c["price_per_unit"])) for c in s["components"]),
            )
            for s in data["suppliers"]
        }
        locations = {
            loc["code"]: Location(
                loc["code"], tuple(loc["suppliers"]),
                {k: float(v) for k, v in loc["model_preferences"].items()},
            )
            for loc in data["locations"]
        }
        quality_configs = {
            sid: SupplierQualityConfig(
                quality_volatility=float(cfg["quality_volatility"]),
                seasonal_strength=float(cfg["seasonal_strength"]),
                quality_momentum=float(cfg["quality_momentum"]),
                starting_quality=float(cfg.get("starting_quality", 1.0)),
                efficiency_bias=float(cfg.get("efficiency_bias", 0.0)),
                story=tuple(cfg["story"]) if cfg.get("story") else None,
            )
            for sid, cfg in data.get("quality_configs", {}).items()
        }
    except (KeyError, TypeError, ValueError) as e:
        raise DataLoadError(f"Malformed catalog data: {e}") from e

    catalog = Catalog(components, models, suppliers, locations, quality_configs)
    validate_catalog(catalog)
    return catalog


def validate_catalog(catalog: Catalog) -> None:
    errors = []
    for model in catalog.models.values():
        for cid in model.components:
            if cid not in catalog.components:
                errors.append(f"model {model.id} uses unknown component {cid}")
    for supplier in catalog.suppliers.values():
        if supplier.base_lead_time < 1:
            errors.append(f"supplier {supplier.id} base_lead_time must be at least 1")
    for location in catalog.locations.values():
        for sid in location.suppliers:
            if sid not in catalog.suppliers:
                errors.append(f"location {location.code} references unknown supplier {sid}")
    for sid, cfg in catalog.quality_configs.items():
        if cfg.story is not None:
            if len(cfg.story) != 6:
                errors.append(f"quality story for {sid} must have 6 entries")
            elif any(t not in TREND_DIRECTIONS for t in cfg.story):
                errors.append(f"quality story for {sid} has an unknown trend")
        if not 0.7 <= cfg.starting_quality <= 1.3:
            errors.append(f"starting_quality for {sid} must be between 0.7 and 1.3")

    if errors:
        raise ConfigValidationError("Invalid catalog: " + "; ".join(errors))


def load_catalog(path: Path) -> Catalog:
    data = load_json(path)
    if not isinstance(data, dict):
        raise DataLoadError(f"Expected catalog JSON object in {path}")
    return catalog_from_dict(data)
