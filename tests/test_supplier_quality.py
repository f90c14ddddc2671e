"""
Tests for supplier quality and efficiency series.
"""

from datetime import date, timedelta

import pytest

from historygen.catalog import SUPPLIER_QUALITY_CONFIGS, SupplierQualityConfig
from historygen.errors import ConfigValidationError
from historygen.random_stream import create_random
from historygen.supplier_quality import (
    DEFAULT_QUALITY_CONFIG,
    draw_story,
    generate_quality_periods,
    generate_supplier_quality,
    quality_target,
)

START = date(2022, 1, 1)
END = date(2024, 12, 31)


@pytest.fixture(scope="module", params=list(SUPPLIER_QUALITY_CONFIGS))
def supplier_series(request):
    supplier_id = request.param
    return generate_supplier_quality(
        supplier_id, START, END, SUPPLIER_QUALITY_CONFIGS[supplier_id], create_random(f"test-seed-west-{supplier_id}")
    )


class TestQualityBounds:
    def test_quality_and_efficiency_bounds(self, supplier_series):
        for point in supplier_series.points:
            assert 0.7 <= point.quality_index <= 1.3
            assert 0.8 <= point.efficiency_index <= 1.2

    def test_one_point_per_day(self, supplier_series):
        assert len(supplier_series.points) == (END - START).days + 1
        assert supplier_series.points[0].date == START
        assert supplier_series.points[-1].date == END


class TestQualityPeriods:
    """Six story periods per supplier."""

    def test_six_contiguous_periods(self, supplier_series):
        periods = supplier_series.periods
        assert len(periods) == 6
        assert periods[0].start_date == START
        assert periods[-1].end_date == END
        for a, b in zip(periods, periods[1:]):
            assert b.start_date == a.end_date + timedelta(days=1)
            assert b.start_quality == a.end_quality

    def test_story_followed(self, supplier_series):
        story = SUPPLIER_QUALITY_CONFIGS[supplier_series.supplier_id].story
        assert tuple(p.trend for p in supplier_series.periods) == story

    def test_starting_quality(self, supplier_series):
        config = SUPPLIER_QUALITY_CONFIGS[supplier_series.supplier_id]
        assert supplier_series.periods[0].start_quality == config.starting_quality

    def test_first_day_of_period_near_start_quality(self, supplier_series):
        by_date = {p.date: p for p in supplier_series.points}
        for period in supplier_series.periods:
            assert abs(by_date[period.start_date].quality_index - period.start_quality) <= 0.001

    def test_period_lengths_split_evenly(self):
        periods = generate_quality_periods(date(2024, 1, 1), date(2024, 1, 20), DEFAULT_QUALITY_CONFIG, create_random("s"))
        lengths = [(p.end_date - p.start_date).days + 1 for p in periods]
        assert lengths == [3, 3, 3, 3, 3, 5]

    def test_fewer_than_six_days_rejected(self):
        with pytest.raises(ConfigValidationError):
            generate_supplier_quality("Elite", date(2024, 1, 1), date(2024, 1, 5), DEFAULT_QUALITY_CONFIG, create_random("s"))

    def test_single_day_periods(self):
        series = generate_supplier_quality(
            "Elite", date(2024, 1, 1), date(2024, 1, 6), SUPPLIER_QUALITY_CONFIGS["Elite"], create_random("s")
        )
        assert len(series.points) == 6
        assert all(p.start_date == p.end_date for p in series.periods)


class TestTargets:
    def test_up_from_elite_start(self):
        rng = create_random("t")
        for _ in range(100):
            assert 1.23 - 1e-9 <= quality_target("up", 1.15, rng) <= 1.2411

    def test_down_from_atlas_start(self):
        rng = create_random("t")
        for _ in range(100):
            target = quality_target("down", 0.95, rng)
            assert 0.95 - 0.162 <= target <= 0.87 + 1e-9

    def test_stable_small_drift(self):
        rng = create_random("t")
        for _ in range(100):
            assert abs(quality_target("stable", 1.0, rng) - 1.0) <= 0.01

    def test_targets_clamped(self):
        rng = create_random("t")
        for _ in range(100):
            assert 0.7 <= quality_target("down", 0.72, rng) <= 1.3
            assert 0.7 <= quality_target("up", 1.29, rng) <= 1.3


class TestRandomStory:
    def test_unknown_supplier_gets_random_story(self):
        config = SupplierQualityConfig(0.2, 0.8, 0.3)
        series = generate_supplier_quality("Nova", START, END, config, create_random("nova"))
        assert len(series.periods) == 6
        assert all(p.trend in {"up", "down", "stable"} for p in series.periods)

    def test_draw_story_deterministic(self):
        assert draw_story(create_random("story")) == draw_story(create_random("story"))
