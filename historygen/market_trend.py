"""Market Trend Index (MTI) generator.

Two layers:
    regime layer   consecutive market periods with a baseline trend
                   (up/down/stable), volatility and momentum
    daily layer    a bounded random walk driven by the active period, with
                   momentum, mean reversion towards 0.65 and a boundary force

The walk state (index, previous change) carries across period boundaries.
Each new regime is biased by the index the previous period actually ended on.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from historygen.dates import ONE_DAY, generate_dates_for_years


@dataclass(frozen=True)
class MarketTrendConfig:
    initial_index: float = 0.65
    min_index: float = 0.35
    max_index: float = 0.95
    max_daily_change: float = 0.15
    mean_reversion_target: float = 0.65
    min_period_days: int = 60
    period_days_spread: int = 60


@dataclass(frozen=True)
class MarketTrendPoint:
    date: date
    index: float


@dataclass(frozen=True)
class MarketPeriod:
    start_date: date
    end_date: date
    baseline_trend: str  # "up" | "down" | "stable"
    volatility: float
    momentum: float

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1


@dataclass(frozen=True)
class MarketTrendSeries:
    periods: list[MarketPeriod]
    points: list[MarketTrendPoint]

    @property
    def indices(self) -> list[float]:
        return [p.index for p in self.points]


DEFAULT_MARKET_CONFIG = MarketTrendConfig()

TREND_VOLATILITY_FACTOR = {"up": 0.8, "down": 1.5, "stable": 0.7}
TREND_MOMENTUM_FACTOR = {"up": 1.2, "down": 1.2, "stable": 0.7}
TREND_BASE_CHANGE = {"up": 0.002, "down": -0.002, "stable": 0.0}


def regime_probabilities(last_index: float) -> tuple[float, float, float]:
    """(up, down, stable) probabilities for the next regime.

    Markets near the top are more likely to turn down and markets near the
    bottom more likely to recover.
    """
    up_prob = 0.35
    down_prob = 0.35
    if last_index > 0.8:
        shift = 0.25 * (last_index - 0.8) / 0.15
        up_prob -= shift
        down_prob += shift
    elif last_index < 0.5:
        shift = 0.25 * (0.5 - last_index) / 0.15
        up_prob += shift
        down_prob -= shift

    up_prob = min(0.6, max(0.1, up_prob))
    down_prob = min(0.6, max(0.1, down_prob))
    return up_prob, down_prob, 1.0 - up_prob - down_prob


def next_market_period(
    cursor: date,
    end: date,
    last_index: float,
    rng: random.Random,
    config: MarketTrendConfig = DEFAULT_MARKET_CONFIG,
) -> MarketPeriod:
    """Draw the regime starting at ``cursor``; truncated so it never passes ``end``."""
    length = config.min_period_days + int(rng.random() * config.period_days_spread)
    period_end = min(cursor + (length - 1) * ONE_DAY, end)

    up_prob, down_prob, _ = regime_probabilities(last_index)
    roll = rng.random()
    if roll < up_prob:
        trend = "up"
    elif roll < up_prob + down_prob:
        trend = "down"
    else:
        trend = "stable"

    volatility = (0.02 + rng.random() * 0.06) * TREND_VOLATILITY_FACTOR[trend]
    momentum = (0.2 + rng.random() * 0.4) * TREND_MOMENTUM_FACTOR[trend]

    return MarketPeriod(
        start_date=cursor,
        end_date=period_end,
        baseline_trend=trend,
        volatility=volatility,
        momentum=momentum,
    )


def market_index_change(
    index: float,
    previous_change: float,
    period: MarketPeriod,
    r: float,
    config: MarketTrendConfig = DEFAULT_MARKET_CONFIG,
) -> float:
    """Clamped one-day change of the index for a uniform draw ``r``."""
    volatility = period.volatility
    momentum = period.momentum
    if index > 0.85 or index < 0.45:
        # Turbulence near the extremes, with weaker follow-through
        volatility *= 2
        momentum *= 0.5

    base_change = TREND_BASE_CHANGE[period.baseline_trend]
    random_change = (r - 0.5) * volatility
    momentum_change = previous_change * momentum

    distance = index - config.mean_reversion_target
    mean_reversion = -distance * 0.001 * abs(distance) * 10

    boundary_force = 0.0
    if index > 0.9:
        boundary_force = -0.006 * ((index - 0.9) / 0.05) * 5
        if index > 0.93:
            boundary_force -= 0.005
    elif index < 0.4:
        boundary_force = 0.006 * ((0.4 - index) / 0.05) * 5
        if index < 0.37:
            boundary_force += 0.005

    total = base_change + random_change + momentum_change + mean_reversion + boundary_force
    return max(-config.max_daily_change, min(config.max_daily_change, total))


def _generate(
    dates: Sequence[date],
    config: MarketTrendConfig,
    rng: random.Random,
) -> tuple[list[MarketPeriod], list[MarketTrendPoint]]:
    periods: list[MarketPeriod] = []
    points: list[MarketTrendPoint] = []
    if not dates:
        return periods, points

    end = dates[-1]
    index = config.initial_index
    previous_change = 0.0
    position = 0
    while position < len(dates):
        period = next_market_period(dates[position], end, index, rng, config)
        periods.append(period)

        while position < len(dates) and dates[position] <= period.end_date:
            change = market_index_change(index, previous_change, period, rng.random(), config)
            index = max(config.min_index, min(config.max_index, index + change))
            previous_change = change
            points.append(MarketTrendPoint(dates[position], index))
            position += 1

    return periods, points


def generate_market_trends(
    dates: Sequence[date],
    rng: random.Random,
    config: MarketTrendConfig = DEFAULT_MARKET_CONFIG,
) -> list[MarketTrendPoint]:
    """One MTI point per date, in date order."""
    return _generate(list(dates), config, rng)[1]


def generate_market_trend(
    dates: Sequence[date],
    rng: random.Random,
    config: MarketTrendConfig = DEFAULT_MARKET_CONFIG,
) -> MarketTrendSeries:
    periods, points = _generate(list(dates), config, rng)
    return MarketTrendSeries(periods=periods, points=points)


def generate_market_trend_for_years(
    start: date,
    years: int,
    rng: random.Random,
    config: MarketTrendConfig = DEFAULT_MARKET_CONFIG,
) -> MarketTrendSeries:
    return generate_market_trend(list(generate_dates_for_years(start, years)), rng, config)
