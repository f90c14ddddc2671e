"""Assembly of all time-independent series into a date-indexed structure.

Generation happens in two steps:
    1. generate_time_independent_series: one list per signal (market trend,
       per-location inflation, supplier quality and model demand), all
       aligned to the same calendar
    2. transform_to_date_indexed: pivot into ``{date: DayData}``, the shape
       the day-by-day simulator consumes

Every signal draws from its own sub-stream so that adding a location,
supplier or model never shifts the numbers of the others:
    market          {seed}
    inflation       {seed}-{location}
    quality         {seed}-{location}-{supplier}
    model demand    {seed}-{location}-{model}
    simulator       {seed}-{location}-simulator  (HistoryEngine)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from historygen.catalog import DEFAULT_CATALOG, Catalog
from historygen.dates import generate_dates_between
from historygen.inflation import InflationPeriod, LocationInflationConfig, generate_inflation
from historygen.market_trend import (
    DEFAULT_MARKET_CONFIG,
    MarketPeriod,
    MarketTrendConfig,
    MarketTrendPoint,
    generate_market_trend,
)
from historygen.model_demand import ModelDemandConfig, generate_model_demand
from historygen.random_stream import DEFAULT_ALGORITHM, create_random, derive_random
from historygen.supplier_quality import (
    DEFAULT_QUALITY_CONFIG,
    SupplierQualitySeries,
    generate_supplier_quality,
)

logger = logging.getLogger("historygen.time_series")


@dataclass(frozen=True)
class SeriesConfig:
    inflation: LocationInflationConfig = field(default_factory=LocationInflationConfig)
    demand: ModelDemandConfig = field(default_factory=ModelDemandConfig)
    market: MarketTrendConfig = DEFAULT_MARKET_CONFIG


@dataclass(frozen=True)
class ModelDemandSeries:
    model_id: str
    demand_units: list[int]


@dataclass(frozen=True)
class LocationSeries:
    inflation_rates: list[float]
    supplier_quality: dict[str, SupplierQualitySeries]
    model_demand: list[ModelDemandSeries]
    inflation_periods: list[InflationPeriod] = field(default_factory=list)


@dataclass(frozen=True)
class LegacySeries:
    market_trend: list[MarketTrendPoint]
    market_periods: list[MarketPeriod]
    location_data: dict[str, LocationSeries]


@dataclass(frozen=True)
class DailySupplierQuality:
    quality_index: float
    efficiency_index: float


@dataclass(frozen=True)
class DailyModelDemand:
    model_id: str
    demand: int


@dataclass(frozen=True)
class DailyLocationData:
    inflation_rate: float
    supplier_quality: dict[str, DailySupplierQuality]  # only the location's suppliers
    model_demand: list[DailyModelDemand]


@dataclass(frozen=True)
class DayData:
    date: date
    market_trend: float
    location_data: dict[str, DailyLocationData]


TimeSeries = dict[date, DayData]


def generate_time_independent_series(
    start: date,
    end: date,
    config: SeriesConfig | None = None,
    seed: str = "fixed-seed-for-tests",
    algorithm: str = DEFAULT_ALGORITHM,
    catalog: Catalog = DEFAULT_CATALOG,
) -> LegacySeries:
    """Generate every per-day signal for ``start`` through ``end`` inclusive."""
    config = config or SeriesConfig()
    dates = list(generate_dates_between(start, end))
    if not dates:
        raise ValueError(f"End date {end} is before start date {start}")

    market = generate_market_trend(dates, create_random(seed, algorithm), config.market)
    logger.debug(f"Generated {len(market.points)} market trend points in {len(market.periods)} periods")

    location_data = {}
    for code, location in catalog.locations.items():
        inflation = generate_inflation(
            market.points, config.inflation, derive_random(seed, code, algorithm=algorithm)
        )

        supplier_quality = {}
        for supplier_id in location.suppliers:
            supplier_quality[supplier_id] = generate_supplier_quality(
                supplier_id,
                start,
                end,
                catalog.quality_configs.get(supplier_id, DEFAULT_QUALITY_CONFIG),
                derive_random(seed, code, supplier_id, algorithm=algorithm),
            )

        model_demand = [
            ModelDemandSeries(
                model_id,
                generate_model_demand(
                    model_id,
                    code,
                    market.points,
                    inflation.rates,
                    config.demand,
                    derive_random(seed, code, model_id, algorithm=algorithm),
                    catalog,
                ),
            )
            for model_id in catalog.models
        ]

        location_data[code] = LocationSeries(
            inflation_rates=inflation.rates,
            supplier_quality=supplier_quality,
            model_demand=model_demand,
            inflation_periods=inflation.periods,
        )
        logger.debug(
            f"Location {code}: {len(supplier_quality)} supplier series, {len(model_demand)} model series"
        )

    return LegacySeries(market_trend=market.points, market_periods=market.periods, location_data=location_data)


def transform_to_date_indexed(legacy: LegacySeries, catalog: Catalog = DEFAULT_CATALOG) -> TimeSeries:
    """Pivot per-signal lists into one ``DayData`` per market trend date."""
    transformed: TimeSeries = {}
    for day_index, mti in enumerate(legacy.market_trend):
        location_data = {}
        for location_id, series in legacy.location_data.items():
            location = catalog.locations[location_id]
            supplier_quality = {}
            for supplier_id in location.suppliers:
                point = series.supplier_quality[supplier_id].points[day_index]
                supplier_quality[supplier_id] = DailySupplierQuality(point.quality_index, point.efficiency_index)
            location_data[location_id] = DailyLocationData(
                inflation_rate=series.inflation_rates[day_index],
                supplier_quality=supplier_quality,
                model_demand=[
                    DailyModelDemand(md.model_id, md.demand_units[day_index]) for md in series.model_demand
                ],
            )
        transformed[mti.date] = DayData(date=mti.date, market_trend=mti.index, location_data=location_data)
    return transformed


def generate_date_indexed_series(
    start: date,
    end: date,
    config: SeriesConfig | None = None,
    seed: str = "fixed-seed-for-tests",
    algorithm: str = DEFAULT_ALGORITHM,
    catalog: Catalog = DEFAULT_CATALOG,
) -> TimeSeries:
    legacy = generate_time_independent_series(start, end, config, seed, algorithm, catalog)
    return transform_to_date_indexed(legacy, catalog)
