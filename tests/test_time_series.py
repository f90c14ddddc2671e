"""
Tests for time series assembly and the date-indexed pivot.
"""

from dataclasses import replace
from datetime import date, timedelta

import pytest

from historygen.catalog import DEFAULT_CATALOG
from historygen.time_series import (
    SeriesConfig,
    generate_date_indexed_series,
    generate_time_independent_series,
    transform_to_date_indexed,
)

START = date(2024, 1, 1)
END = date(2024, 3, 31)


class TestDateIndexedSeries:
    """Structure of the pivoted series."""

    def test_one_entry_per_day(self, generated_series):
        days = list(generated_series)
        assert len(days) == 91
        assert days[0] == START
        assert days[-1] == END
        assert all(b - a == timedelta(days=1) for a, b in zip(days, days[1:]))
        assert date(2024, 2, 29) in generated_series

    def test_locations_present(self, generated_series):
        for day_data in generated_series.values():
            assert list(day_data.location_data) == list(DEFAULT_CATALOG.locations)

    def test_supplier_quality_only_for_location_suppliers(self, generated_series):
        day_data = generated_series[START]
        for code, location in DEFAULT_CATALOG.locations.items():
            assert list(day_data.location_data[code].supplier_quality) == list(location.suppliers)

    def test_model_demand_in_catalog_order(self, generated_series):
        day_data = generated_series[START]
        for location_data in day_data.location_data.values():
            assert [md.model_id for md in location_data.model_demand] == list(DEFAULT_CATALOG.models)

    def test_values_in_bounds(self, generated_series):
        for day_data in generated_series.values():
            assert 0.35 <= day_data.market_trend <= 0.95
            for location_data in day_data.location_data.values():
                for quality in location_data.supplier_quality.values():
                    assert 0.7 <= quality.quality_index <= 1.3
                    assert 0.8 <= quality.efficiency_index <= 1.2


class TestDeterminism:
    def test_identical_inputs_equal_output(self, generated_series):
        again = generate_date_indexed_series(START, END, seed="test-seed")
        assert again == generated_series

    def test_different_seed_differs(self, generated_series):
        other = generate_date_indexed_series(START, END, seed="other-seed")
        assert other[START].market_trend != generated_series[START].market_trend

    def test_pivot_matches_legacy_lists(self):
        legacy = generate_time_independent_series(START, END, SeriesConfig(), "test-seed")
        indexed = transform_to_date_indexed(legacy)
        day_index = 10
        day = START + timedelta(days=day_index)
        west = indexed[day].location_data["west"]
        assert indexed[day].market_trend == legacy.market_trend[day_index].index
        assert west.inflation_rate == legacy.location_data["west"].inflation_rates[day_index]
        assert west.supplier_quality["Elite"].quality_index == (
            legacy.location_data["west"].supplier_quality["Elite"].points[day_index].quality_index
        )
        assert west.model_demand[0].demand == legacy.location_data["west"].model_demand[0].demand_units[day_index]

    def test_sub_streams_independent_of_other_locations(self, generated_series):
        locations = {k: v for k, v in DEFAULT_CATALOG.locations.items() if k != "heartland"}
        smaller = replace(DEFAULT_CATALOG, locations=locations)
        series = generate_date_indexed_series(START, END, seed="test-seed", catalog=smaller)
        for day, day_data in series.items():
            assert day_data.location_data["west"] == generated_series[day].location_data["west"]

    def test_algorithm_changes_output(self, generated_series):
        other = generate_date_indexed_series(START, END, seed="test-seed", algorithm="pcg64")
        assert other[START].market_trend != generated_series[START].market_trend

    def test_reversed_range_rejected(self):
        with pytest.raises(ValueError):
            generate_time_independent_series(END, START)
