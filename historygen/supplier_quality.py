"""Per-supplier daily quality and efficiency indices.

The range is split into six quality periods. Each period follows one step of
the supplier's "story" (a fixed sequence of up/down/stable trends), moving the
quality linearly from its start level to a drawn target. Efficiency is derived
from the day's quality plus a per-supplier bias.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date

from historygen.catalog import SupplierQualityConfig
from historygen.dates import ONE_DAY, days_between, generate_dates_between
from historygen.errors import ConfigValidationError

QUALITY_PERIODS = 6
MIN_QUALITY = 0.7
MAX_QUALITY = 1.3
MIN_EFFICIENCY = 0.8
MAX_EFFICIENCY = 1.2

# Used for suppliers without an entry in the catalog's quality configs
DEFAULT_QUALITY_CONFIG = SupplierQualityConfig(
    quality_volatility=0.2,
    seasonal_strength=0.8,
    quality_momentum=0.3,
)


@dataclass(frozen=True)
class QualityPeriod:
    start_date: date
    end_date: date
    trend: str
    start_quality: float
    end_quality: float


@dataclass(frozen=True)
class SupplierQualityPoint:
    date: date
    quality_index: float
    efficiency_index: float


@dataclass(frozen=True)
class SupplierQualitySeries:
    supplier_id: str
    config: SupplierQualityConfig
    periods: list[QualityPeriod]
    points: list[SupplierQualityPoint]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def draw_story(rng: random.Random) -> tuple[str, ...]:
    story = []
    for _ in range(QUALITY_PERIODS):
        if rng.random() > 0.6:
            story.append("up")
        elif rng.random() > 0.3:
            story.append("stable")
        else:
            story.append("down")
    return tuple(story)


def quality_target(trend: str, quality: float, rng: random.Random) -> float:
    """End-of-period quality for a period starting at ``quality``."""
    if trend == "up":
        max_increase = min(0.18, (1.28 - quality) * 0.7)
        target = quality + 0.08 + rng.random() * (max_increase - 0.08)
    elif trend == "down":
        max_decrease = min(0.18, (quality - 0.72) * 0.7)
        target = quality - 0.08 - rng.random() * (max_decrease - 0.08)
    else:
        target = quality + (rng.random() - 0.5) * 0.02
    return _clamp(target, MIN_QUALITY, MAX_QUALITY)


def generate_quality_periods(
    start: date,
    end: date,
    config: SupplierQualityConfig,
    rng: random.Random,
) -> list[QualityPeriod]:
    total_days = days_between(start, end) + 1
    if total_days < QUALITY_PERIODS:
        raise ConfigValidationError(
            f"Supplier quality needs at least {QUALITY_PERIODS} days, got {total_days}"
        )

    story = config.story or draw_story(rng)
    period_days = total_days // QUALITY_PERIODS
    periods = []
    quality = config.starting_quality
    for i, trend in enumerate(story):
        period_start = start + i * period_days * ONE_DAY
        if i == QUALITY_PERIODS - 1:
            period_end = end
        else:
            period_end = period_start + (period_days - 1) * ONE_DAY
        target = quality_target(trend, quality, rng)
        periods.append(QualityPeriod(period_start, period_end, trend, quality, target))
        quality = target
    return periods


def generate_supplier_quality(
    supplier_id: str,
    start: date,
    end: date,
    config: SupplierQualityConfig,
    rng: random.Random,
) -> SupplierQualitySeries:
    """One quality/efficiency point per day from ``start`` through ``end``."""
    periods = generate_quality_periods(start, end, config, rng)

    points = []
    period_iter = iter(periods)
    period = next(period_iter)
    for day in generate_dates_between(start, end):
        while day > period.end_date:
            period = next(period_iter)

        span = days_between(period.start_date, period.end_date)
        progress = days_between(period.start_date, day) / span if span > 0 else 0.0
        base = period.start_quality + (period.end_quality - period.start_quality) * progress
        noise_scale = 0.0005 if period.trend == "stable" else 0.001
        noise = (rng.random() - 0.5) * noise_scale * config.quality_volatility
        quality = _clamp(base + noise, MIN_QUALITY, MAX_QUALITY)

        efficiency = (
            0.8
            + (quality - MIN_QUALITY) / (MAX_QUALITY - MIN_QUALITY) * 0.4
            + config.efficiency_bias
            + (rng.random() - 0.5) * 0.003
        )
        points.append(SupplierQualityPoint(day, quality, _clamp(efficiency, MIN_EFFICIENCY, MAX_EFFICIENCY)))

    return SupplierQualitySeries(supplier_id=supplier_id, config=config, periods=periods, points=points)
