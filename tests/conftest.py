"""
Pytest configuration and fixtures for historygen tests.
"""

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from historygen.catalog import DEFAULT_CATALOG
from historygen.time_series import (
    DailyLocationData,
    DailyModelDemand,
    DailySupplierQuality,
    DayData,
    generate_date_indexed_series,
)


def build_series(location_id, days, demand, quality=1.0, start=date(2024, 1, 1), catalog=DEFAULT_CATALOG):
    """Hand-built time series with constant demand and quality for one location.

    ``demand`` maps model id to units per day; models not listed get 0.
    """
    location = catalog.locations[location_id]
    series = {}
    for offset in range(days):
        day = start + timedelta(days=offset)
        series[day] = DayData(
            date=day,
            market_trend=0.65,
            location_data={
                location_id: DailyLocationData(
                    inflation_rate=0.02,
                    supplier_quality={
                        sid: DailySupplierQuality(quality, 1.0) for sid in location.suppliers
                    },
                    model_demand=[
                        DailyModelDemand(model_id, demand.get(model_id, 0)) for model_id in catalog.models
                    ],
                )
            },
        )
    return series


@pytest.fixture
def series_builder():
    """Factory for constant-input time series."""
    return build_series


@pytest.fixture(scope="session")
def generated_series():
    """Generated series for the first quarter of 2024 (91 days, leap day included)."""
    return generate_date_indexed_series(date(2024, 1, 1), date(2024, 3, 31), seed="test-seed")
