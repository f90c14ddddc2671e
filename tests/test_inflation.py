"""
Tests for per-location inflation rates.
"""

from datetime import date, timedelta

import pytest

from historygen.inflation import (
    QUARTER_SEASONAL_ADJUSTMENT,
    LocationInflationConfig,
    generate_inflation,
    generate_inflation_periods,
    generate_inflation_rates,
    quarter_of,
)
from historygen.market_trend import generate_market_trend_for_years
from historygen.random_stream import create_random


@pytest.fixture(scope="module")
def market_points():
    return generate_market_trend_for_years(date(2022, 1, 1), 2, create_random("test-seed")).points


class TestInflationPeriods:
    """Contiguous 90-99 day periods."""

    def test_periods_contiguous(self):
        periods = generate_inflation_periods(date(2022, 1, 1), date(2023, 12, 31), create_random("p"))
        assert periods[0].start_date == date(2022, 1, 1)
        assert periods[-1].end_date == date(2023, 12, 31)
        for a, b in zip(periods, periods[1:]):
            assert b.start_date == a.end_date + timedelta(days=1)

    def test_period_lengths_and_parameters(self):
        periods = generate_inflation_periods(date(2022, 1, 1), date(2023, 12, 31), create_random("p"))
        for period in periods[:-1]:
            assert 90 <= (period.end_date - period.start_date).days + 1 <= 99
        for period in periods:
            assert 0.0175 <= period.base_rate <= 0.0225
            assert 0.001 <= period.volatility <= 0.003
            seasonal = QUARTER_SEASONAL_ADJUSTMENT[quarter_of(period.start_date)]
            assert abs(period.seasonal_adjustment - seasonal) <= 0.0005

    def test_quarter_of(self):
        assert [quarter_of(date(2024, m, 1)) for m in (1, 3, 4, 6, 7, 9, 10, 12)] == [1, 1, 2, 2, 3, 3, 4, 4]


class TestDailyRates:
    """Daily rate formula."""

    def test_one_rate_per_day(self, market_points):
        rates = generate_inflation_rates(market_points, LocationInflationConfig(), create_random("west"))
        assert len(rates) == len(market_points)

    def test_rate_follows_lagged_index(self, market_points):
        config = LocationInflationConfig(lag_days=30, mti_influence=0.02)
        series = generate_inflation(market_points, config, create_random("west"))

        for i, (point, rate) in enumerate(zip(market_points, series.rates)):
            period = next(p for p in series.periods if p.start_date <= point.date <= p.end_date)
            lagged = market_points[max(0, i - 30)].index
            noise = rate - period.base_rate - lagged * 0.02 - period.seasonal_adjustment
            assert abs(noise) <= period.volatility + 1e-12

    def test_deterministic(self, market_points):
        a = generate_inflation_rates(market_points, LocationInflationConfig(), create_random("south"))
        b = generate_inflation_rates(market_points, LocationInflationConfig(), create_random("south"))
        assert a == b

    def test_empty_trend_rejected(self):
        with pytest.raises(ValueError):
            generate_inflation([], LocationInflationConfig(), create_random("empty"))
