"""Per-location daily inflation rates driven by a lagged market trend."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from historygen.dates import ONE_DAY
from historygen.market_trend import MarketTrendPoint

# Seasonal base adjustment by quarter of the period's start month
QUARTER_SEASONAL_ADJUSTMENT = {1: 0.004, 2: 0.001, 3: -0.003, 4: 0.002}


@dataclass(frozen=True)
class LocationInflationConfig:
    base_rate: float = 0.02
    mti_influence: float = 0.02
    location_volatility: float = 0.01
    lag_days: int = 30


@dataclass(frozen=True)
class InflationPeriod:
    start_date: date
    end_date: date
    base_rate: float
    volatility: float
    seasonal_adjustment: float


@dataclass(frozen=True)
class InflationSeries:
    periods: list[InflationPeriod]
    rates: list[float]


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


def generate_inflation_periods(start: date, end: date, rng: random.Random) -> list[InflationPeriod]:
    """Contiguous 90-99 day periods from ``start`` through ``end``; the last is truncated."""
    periods = []
    cursor = start
    while cursor <= end:
        length = 90 + int(rng.random() * 10)
        period_end = min(cursor + (length - 1) * ONE_DAY, end)
        base_rate = 0.02 + (rng.random() - 0.5) * 0.005
        seasonal = QUARTER_SEASONAL_ADJUSTMENT[quarter_of(cursor)] + (rng.random() - 0.5) * 0.001
        volatility = 0.001 + rng.random() * 0.002
        periods.append(InflationPeriod(cursor, period_end, base_rate, volatility, seasonal))
        cursor = period_end + ONE_DAY
    return periods


def generate_inflation(
    market_trends: Sequence[MarketTrendPoint],
    config: LocationInflationConfig,
    rng: random.Random,
) -> InflationSeries:
    """Daily inflation for every market trend point.

    The rate reacts to the market index ``lag_days`` earlier (the first day's
    index before that). Rates are not clamped.
    """
    if not market_trends:
        raise ValueError("Market trends must not be empty")

    periods = generate_inflation_periods(market_trends[0].date, market_trends[-1].date, rng)
    rates = []
    period_iter = iter(periods)
    period = next(period_iter)
    for i, point in enumerate(market_trends):
        while point.date > period.end_date:
            period = next(period_iter)
        lagged_index = market_trends[max(0, i - config.lag_days)].index
        rate = (
            period.base_rate
            + lagged_index * config.mti_influence
            + (rng.random() - 0.5) * 2 * period.volatility
            + period.seasonal_adjustment
        )
        rates.append(rate)
    return InflationSeries(periods=periods, rates=rates)


def generate_inflation_rates(
    market_trends: Sequence[MarketTrendPoint],
    config: LocationInflationConfig,
    rng: random.Random,
) -> list[float]:
    return generate_inflation(market_trends, config, rng).rates
