from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import date
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from historygen.catalog import DEFAULT_CATALOG, catalog_to_dict, load_catalog
from historygen.dates import to_utc_date
from historygen.errors import ConfigValidationError, DataLoadError, SimulationError
from historygen.history import HistoryEngine


BASE_DIR = Path(__file__).resolve().parent
OUTPUT_DIR = BASE_DIR / "output"
DEFAULT_CONFIG_PATH = BASE_DIR / "config.json"
LOG_FILE = BASE_DIR / "historygen.log"

OUTPUT_FORMATS = ("jsonl", "csv", "db")

# Global logger
logger: logging.Logger | None = None


def setup_logging(log_file: Path = LOG_FILE, level: int = logging.INFO) -> logging.Logger:
    """Set up rotating file logging plus console output for the historygen loggers."""
    log = logging.getLogger("historygen")
    log.setLevel(level)

    # Avoid duplicate handlers
    if log.handlers:
        return log

    # File handler with rotation (10MB max, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(level)

    # Console handler for immediate feedback
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    # Format: timestamp - level - message
    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    log.addHandler(file_handler)
    log.addHandler(console_handler)

    return log


def load_config(path: Path | None) -> dict[str, Any]:
    """Load configuration from JSON file."""
    if path is None or not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in config file {path}: {e}", file=sys.stderr)
        sys.exit(1)
    except IOError as e:
        print(f"Error: Cannot read config file {path}: {e}", file=sys.stderr)
        sys.exit(1)


def resolve_value(cli_value: Any, cfg_section: dict[str, Any], key: str, fallback: Any) -> Any:
    """Resolve configuration value with priority: CLI > config file > fallback."""
    if cli_value is not None:
        return cli_value
    if key in cfg_section:
        return cfg_section[key]
    return fallback


def run_history_generation(
    *,
    years: int,
    seed: str,
    start: date,
    output_dir: Path,
    output_format: str,
    quality_trace: bool,
    engine_config: dict[str, Any] | None = None,
    catalog_path: Path | None = None,
) -> None:
    """Generate N years of daily location reports and write them out."""
    catalog = load_catalog(catalog_path) if catalog_path else DEFAULT_CATALOG

    logger.info(f"Generating {years} year(s) of history from {start.isoformat()} (seed '{seed}')")
    start_real_time = time.time()
    engine = HistoryEngine(start=start, years=years, seed=seed, config=engine_config, catalog=catalog)
    logger.info(f"  Days: {engine.total_days:,} | Locations: {', '.join(catalog.locations)}")

    if output_format == "jsonl":
        from historygen.sinks import JsonlReportSink

        with JsonlReportSink(output_dir / "history.jsonl") as sink:
            written = engine.run_to_sink(sink)
    elif output_format == "csv":
        from historygen.export import reports_to_frames, write_frames_csv
        from historygen.sinks import MemoryReportSink

        with MemoryReportSink() as sink:
            written = engine.run_to_sink(sink)
        write_frames_csv(reports_to_frames(sink.reports), output_dir)
    else:
        from historygen.db_manager import DatabaseReportSink, init_tables

        init_tables()
        with DatabaseReportSink() as sink:
            written = engine.run_to_sink(sink)

    if quality_trace:
        from historygen.sinks import write_quality_trace

        write_quality_trace(engine.quality_series(), output_dir / "supplier_quality_trace.json")

    elapsed_total = time.time() - start_real_time
    logger.info("Historical data generation complete!")
    logger.info(f"  Reports written: {written:,}")
    logger.info(f"  Time elapsed: {elapsed_total:.1f} seconds")


def main() -> int:
    global logger
    parser = argparse.ArgumentParser(
        description="Synthetic supply chain history generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  generate-history Generate N years of daily location reports
  export-catalog   Write the static catalog tables as JSON
  init-db          Create the history tables in the configured database
  clear-history    Delete all generated history from the database

Examples:
  python main.py generate-history --years 3 --seed demo --start-date 2022-01-01
  python main.py generate-history --years 1 --format csv --output-dir out/
  python main.py export-catalog --out catalog.json
        """
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: ./config.json if present).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # generate-history command
    hist = sub.add_parser("generate-history", help="Generate N years of daily location reports")
    hist.add_argument("--years", type=int, default=None, help="Number of years of history (default: 3).")
    hist.add_argument("--seed", type=str, default=None, help="Seed string for all random streams.")
    hist.add_argument(
        "--start-date",
        type=str,
        default=None,
        help="First simulated day, YYYY-MM-DD (default: 2022-01-01).",
    )
    hist.add_argument("--output-dir", type=Path, default=None, help="Output directory (default: ./output).")
    hist.add_argument("--format", choices=OUTPUT_FORMATS, default=None, help="Output format (default: jsonl).")
    hist.add_argument(
        "--quality-trace",
        action="store_true",
        default=None,
        help="Also write the supplier quality periods and daily points as JSON.",
    )
    hist.add_argument("--catalog", type=Path, default=None, help="Catalog JSON (default: built-in tables).")

    # export-catalog command
    cat = sub.add_parser("export-catalog", help="Write the static catalog tables as JSON")
    cat.add_argument("--out", type=Path, default=None, help="Output path (default: ./output/catalog.json).")

    sub.add_parser("init-db", help="Create the history tables")
    sub.add_parser("clear-history", help="Delete all generated history from the database")

    args = parser.parse_args()
    config_path = args.config or (DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None)
    config = load_config(config_path)
    logger = setup_logging()

    try:
        if args.command == "generate-history":
            section = config.get("generate-history", {})
            years = resolve_value(args.years, section, "years", 3)
            seed = resolve_value(args.seed, section, "seed", "fixed-seed-for-tests")
            start_raw = resolve_value(args.start_date, section, "start_date", "2022-01-01")
            output_dir = Path(resolve_value(args.output_dir, section, "output_dir", OUTPUT_DIR))
            output_format = resolve_value(args.format, section, "format", "jsonl")
            quality_trace = resolve_value(args.quality_trace, section, "quality_trace", False)
            catalog_raw = resolve_value(args.catalog, section, "catalog", None)
            engine_config = section.get("engine", {})

            if output_format not in OUTPUT_FORMATS:
                print(f"Error: format must be one of {', '.join(OUTPUT_FORMATS)}", file=sys.stderr)
                return 1
            try:
                start = to_utc_date(start_raw)
            except ValueError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1

            run_history_generation(
                years=years,
                seed=str(seed),
                start=start,
                output_dir=output_dir,
                output_format=output_format,
                quality_trace=quality_trace,
                engine_config=engine_config,
                catalog_path=Path(catalog_raw) if catalog_raw else None,
            )
            return 0

        if args.command == "export-catalog":
            section = config.get("export-catalog", {})
            out = Path(resolve_value(args.out, section, "out", OUTPUT_DIR / "catalog.json"))
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(json.dumps(catalog_to_dict(DEFAULT_CATALOG), indent=2), encoding="utf-8")
            logger.info(f"Catalog written to {out}")
            return 0

        if args.command in ("init-db", "clear-history"):
            from historygen import db_manager

            if args.command == "init-db":
                db_manager.init_tables()
            else:
                removed = db_manager.clear_history()
                logger.info(f"Removed {removed:,} reports")
            return 0

    except DataLoadError as e:
        print(f"Error loading data: {e}", file=sys.stderr)
        return 1
    except ConfigValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except SimulationError as e:
        logger.error(f"Generation failed: {e}")
        return 1
    except ValueError as e:
        # Missing database credentials
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
