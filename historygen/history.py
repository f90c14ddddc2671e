"""History Engine - drives a full multi-location history generation run.

Builds the date-indexed time series once, creates one ``LocationSimulator``
per location (each with its own ``{seed}-{location}-simulator`` stream and a
freshly initialized state) and steps all of them day by day in location
declaration order. Every ``run()`` starts from fresh simulators, so repeated
runs yield the same history.

Usage:
    from historygen.history import HistoryEngine
    from historygen.sinks import JsonlReportSink

    engine = HistoryEngine(start=date(2022, 1, 1), years=3, seed="demo")
    with JsonlReportSink(Path("out/history.jsonl")) as sink:
        engine.run_to_sink(sink)

Configuration:
    See DEFAULT_CONFIG for all configurable parameters. Overrides are merged
    per section, so ``{"demand": {"randomness": 0.2}}`` keeps the other
    demand settings.
"""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterator

from historygen.catalog import DEFAULT_CATALOG, Catalog
from historygen.dates import end_date_for_years, to_utc_date
from historygen.errors import ConfigValidationError
from historygen.inflation import LocationInflationConfig
from historygen.model_demand import ModelDemandConfig
from historygen.random_stream import ALGORITHMS, derive_seed
from historygen.simulator import DailyLocationReport, LocationSimulator
from historygen.supplier_quality import SupplierQualitySeries
from historygen.time_series import LegacySeries, SeriesConfig, generate_time_independent_series, transform_to_date_indexed

logger = logging.getLogger("historygen.history")

# Default generation parameters (can be overridden via config)
DEFAULT_CONFIG: dict[str, Any] = {
    # Inflation settings
    "inflation": {
        "base_rate": 0.02,
        "mti_influence": 0.02,
        "location_volatility": 0.01,
        "lag_days": 30,
    },
    # Demand settings
    "demand": {
        "market_multiplier": 100,
        "inflation_multiplier": 80,
        "randomness": 0.1,
    },
    # PRNG: mt19937 (stdlib) or a numpy bit generator (pcg64, philox, sfc64)
    "rng_algorithm": "mt19937",
    # Log progress every N percent of simulated days
    "progress_log_pct": 5,
}

# Report sanity thresholds
MAX_ABS_INFLATION = 0.1
MAX_TOTAL_DEMAND = 5000
LOW_INVENTORY_WARNING = 100


def merge_config(overrides: dict[str, Any] | None) -> dict[str, Any]:
    """Merge overrides onto DEFAULT_CONFIG, one level deep for dict sections."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def validate_config(cfg: dict[str, Any]) -> None:
    """Validate configuration values."""
    errors = []

    inflation = cfg.get("inflation", {})
    demand = cfg.get("demand", {})
    for section in ("inflation", "demand"):
        unknown = set(cfg.get(section, {})) - set(DEFAULT_CONFIG[section])
        if unknown:
            errors.append(f"unknown {section} settings: {', '.join(sorted(unknown))}")
    if not isinstance(inflation.get("lag_days"), int) or inflation["lag_days"] < 0:
        errors.append("inflation.lag_days must be a non-negative integer")
    if inflation.get("mti_influence", 0) < 0:
        errors.append("inflation.mti_influence must be non-negative")
    if inflation.get("location_volatility", 0) < 0:
        errors.append("inflation.location_volatility must be non-negative")
    if demand.get("randomness", 0) < 0 or demand.get("randomness", 0) > 1:
        errors.append("demand.randomness must be between 0 and 1")
    if demand.get("market_multiplier", 0) < 0:
        errors.append("demand.market_multiplier must be non-negative")
    if demand.get("inflation_multiplier", 0) < 0:
        errors.append("demand.inflation_multiplier must be non-negative")
    if cfg.get("rng_algorithm") not in ALGORITHMS:
        errors.append(f"rng_algorithm must be one of {', '.join(ALGORITHMS)}")
    pct = cfg.get("progress_log_pct")
    if not isinstance(pct, (int, float)) or pct <= 0 or pct > 100:
        errors.append("progress_log_pct must be between 0 (exclusive) and 100")

    if errors:
        raise ConfigValidationError("Invalid configuration: " + "; ".join(errors))


def build_series_config(cfg: dict[str, Any]) -> SeriesConfig:
    return SeriesConfig(
        inflation=LocationInflationConfig(**cfg["inflation"]),
        demand=ModelDemandConfig(**cfg["demand"]),
    )


@dataclass(frozen=True)
class DailyReport:
    """All location reports for one simulated day, in location declaration order."""
    date: date
    location_reports: tuple[DailyLocationReport, ...]


def validate_daily_report(report: DailyLocationReport) -> list[str]:
    """Sanity warnings for a generated report; an empty list means it looks plausible."""
    warnings = []
    if not 0 <= report.market_trend_index <= 1:
        warnings.append(f"market trend index out of range: {report.market_trend_index:.4f}")
    if abs(report.inflation_rate) > MAX_ABS_INFLATION:
        warnings.append(f"unusual inflation rate: {report.inflation_rate:.4f}")
    total_demand = sum(md.demand_units for md in report.model_demand)
    if total_demand == 0 or total_demand > MAX_TOTAL_DEMAND:
        warnings.append(f"unusual total demand: {total_demand}")
    for inv in report.component_inventory:
        if inv.quantity < LOW_INVENTORY_WARNING:
            warnings.append(f"low inventory: {inv.supplier} {inv.component_id} at {inv.quantity} units")
    return warnings


class HistoryEngine:
    """
    Generates a multi-year daily history for every catalog location.

    The time series is generated eagerly in the constructor; simulation runs
    lazily as ``run()`` is iterated.
    """

    def __init__(
        self,
        *,
        start: date | str,
        years: int,
        seed: str = "fixed-seed-for-tests",
        config: dict[str, Any] | None = None,
        catalog: Catalog = DEFAULT_CATALOG,
    ) -> None:
        self.start = to_utc_date(start)
        self.years = years
        self.seed = str(seed)
        self.catalog = catalog

        self.config = merge_config(config)
        validate_config(self.config)
        self.algorithm = self.config["rng_algorithm"]

        try:
            self.end = end_date_for_years(self.start, years)
        except ValueError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}") from e

        logger.info(
            f"Generating time series {self.start.isoformat()} to {self.end.isoformat()} "
            f"(seed '{self.seed}', rng {self.algorithm})"
        )
        self.legacy: LegacySeries = generate_time_independent_series(
            self.start,
            self.end,
            build_series_config(self.config),
            self.seed,
            self.algorithm,
            catalog,
        )
        self.series = transform_to_date_indexed(self.legacy, catalog)
        self.total_days = len(self.series)

        self.simulators = self._build_simulators()

    def _build_simulators(self) -> list[LocationSimulator]:
        return [
            LocationSimulator(
                code,
                self.series,
                derive_seed(self.seed, code, "simulator"),
                catalog=self.catalog,
                algorithm=self.algorithm,
            )
            for code in self.catalog.locations
        ]

    def quality_series(self) -> list[SupplierQualitySeries]:
        """Supplier quality series per location, in location then supplier order."""
        return [
            series
            for location in self.legacy.location_data.values()
            for series in location.supplier_quality.values()
        ]

    def run(self) -> Iterator[DailyReport]:
        """Simulate every day, yielding one ``DailyReport`` per calendar day."""
        if any(sim.current_date != self.start or sim.simulation_finished for sim in self.simulators):
            self.simulators = self._build_simulators()
        start_real_time = time.time()
        last_progress = 0
        step = self.config["progress_log_pct"]

        for day_number in range(1, self.total_days + 1):
            location_reports = []
            for simulator in self.simulators:
                report = simulator.simulate_day()
                if report is None:
                    continue
                for warning in validate_daily_report(report):
                    logger.warning(f"{report.date.isoformat()} {report.location}: {warning}")
                location_reports.append(report)
            if not location_reports:
                break

            progress_pct = int(day_number / self.total_days * 100)
            if progress_pct >= last_progress + step:
                elapsed = time.time() - start_real_time
                rate = day_number / elapsed if elapsed > 0 else 0
                logger.info(
                    f"{progress_pct:3d}% | Sim date: {location_reports[0].date.isoformat()} | "
                    f"Rate: {rate:.0f} days/sec"
                )
                last_progress = progress_pct

            yield DailyReport(date=location_reports[0].date, location_reports=tuple(location_reports))

        logger.info(f"History complete: {self.total_days} days x {len(self.simulators)} locations")

    def run_to_sink(self, sink) -> int:
        """Write every location report to ``sink``; returns the number written."""
        written = 0
        for daily in self.run():
            for report in daily.location_reports:
                sink.write(report)
                written += 1
        return written
