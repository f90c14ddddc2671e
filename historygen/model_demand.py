"""Daily unit demand per (location, tractor model).

Demand is anchored to a base level derived from the location's preference for
the model, then shaped by annual growth, agricultural seasonality, the market
trend, inflation and daily noise.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Sequence

from historygen.catalog import DEFAULT_CATALOG, MAX_BASE_DEMAND, MIN_BASE_DEMAND, Catalog
from historygen.market_trend import MarketTrendPoint

BASE_ANNUAL_GROWTH_RATE = 0.18

# Agricultural equipment: winter slump, harvest peak
QUARTER_SEASONAL_FACTORS = {1: 0.9, 2: 1.05, 3: 1.15, 4: 0.95}

DEFAULT_SENSITIVITY = 0.5


@dataclass(frozen=True)
class ModelDemandConfig:
    market_multiplier: float = 100  # max additional units from a perfect market
    inflation_multiplier: float = 80  # max reduction from high inflation
    randomness: float = 0.1  # daily random variation (0-1)


def generate_model_demand(
    model_id: str,
    location_id: str,
    market_trends: Sequence[MarketTrendPoint],
    inflation_rates: Sequence[float],
    config: ModelDemandConfig,
    rng: random.Random,
    catalog: Catalog = DEFAULT_CATALOG,
) -> list[int]:
    """One non-negative integer demand per market trend point.

    Raises ValueError when the trend and inflation series differ in length.
    """
    if len(market_trends) != len(inflation_rates):
        raise ValueError("Market trends and inflation rates must cover the same time period")

    model = catalog.models.get(model_id)
    market_sensitivity = model.market_sensitivity if model else DEFAULT_SENSITIVITY
    inflation_sensitivity = model.inflation_sensitivity if model else DEFAULT_SENSITIVITY

    preference = catalog.locations[location_id].model_preferences.get(model_id) or 1.0

    # Higher preference: higher base and narrower band
    scaled_min = MIN_BASE_DEMAND * math.sqrt(preference)
    scaled_max = MAX_BASE_DEMAND * preference
    very_low = preference < 0.2
    band_factor = 2.0 if very_low else min(1.0, 0.7 + 0.3 / (preference + 0.5))
    band_width = (scaled_max - scaled_min) * band_factor

    if very_low:
        base_position = 0.5
    elif preference < 1:
        base_position = 0.3
    else:
        base_position = 0.6
    base_demand = scaled_min + math.floor((base_position + (rng.random() - 0.5) * 0.6) * band_width)

    market_factor = 0.6 if very_low else 0.4
    market_boost = 1.2 if market_sensitivity > 0.6 else 1.0
    inflation_factor = 0.4 if very_low else 0.25
    inflation_boost = 1.2 if inflation_sensitivity > 0.5 else 1.0
    if very_low:
        random_factor = 0.25
    elif preference < 0.5:
        random_factor = 0.15
    else:
        random_factor = 0.1

    if very_low:
        min_demand = max(8, scaled_min * 0.5)
    else:
        min_demand = max(5, scaled_min * 0.7)

    start_year = market_trends[0].date.year if market_trends else 0
    demand_units = []
    for trend, inflation in zip(market_trends, inflation_rates):
        years_since_start = trend.date.year - start_year
        growth_variation = (rng.random() - 0.5) * 0.4 * BASE_ANNUAL_GROWTH_RATE
        growth_factor = (1 + BASE_ANNUAL_GROWTH_RATE + growth_variation) ** years_since_start
        seasonal_factor = QUARTER_SEASONAL_FACTORS[(trend.date.month - 1) // 3 + 1]

        market_impact = (trend.index - 0.5) * band_width * market_factor * market_sensitivity * market_boost
        inflation_impact = (
            -max(0.0, inflation - 0.02) * band_width * inflation_factor * inflation_sensitivity * inflation_boost
        )
        random_variation = (rng.random() - 0.5) * 2 * config.randomness * band_width * random_factor

        demand = (base_demand + market_impact + inflation_impact + random_variation) * seasonal_factor * growth_factor

        max_demand = scaled_max * 1.1 * max(1.0, growth_factor * 0.9)
        demand = min(max_demand, max(min_demand, demand))
        demand_units.append(int(math.floor(demand + 0.5)))

    return demand_units
