"""Database connection and operations for storing generated history.

Key Functions:
    - get_engine(): Create/return cached SQLAlchemy engine
    - get_session(): Context manager for database sessions
    - init_tables(): Create the report tables if they do not exist
    - insert_reports_batch(): Bulk insert daily location reports
    - clear_history(): Delete all generated history
    - get_report_count(): Number of stored (date, location) reports

Usage:
    from historygen.db_manager import DatabaseReportSink, init_tables

    init_tables()
    with DatabaseReportSink() as sink:
        engine.run_to_sink(sink)

Note:
    Credentials come from a .env file: either DATABASE_URL, or DB_HOST,
    DB_PORT, DB_NAME, DB_USER, DB_PASSWORD (and optionally DB_SSLMODE).
"""

from __future__ import annotations

import logging
import os
import urllib.parse
from contextlib import contextmanager
from typing import Generator, Sequence

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from historygen.errors import SimulationError
from historygen.simulator import DailyLocationReport
from historygen.sinks import ReportSink

# Module-level engine cache for connection reuse
_engine: Engine | None = None

# Logger for database operations
_logger = logging.getLogger("historygen.db")

BATCH_SIZE = 100

# Child tables first so deletes respect foreign keys
HISTORY_TABLES = [
    "report_failures",
    "report_deliveries",
    "report_inventory",
    "report_model_demand",
    "daily_location_reports",
]

DDL_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS daily_location_reports (
        date DATE NOT NULL,
        location_id VARCHAR(50) NOT NULL,
        market_trend_index DOUBLE PRECISION NOT NULL,
        inflation_rate DOUBLE PRECISION NOT NULL,
        PRIMARY KEY (date, location_id)
    )
    """,
    """CREATE TABLE IF NOT EXISTS report_model_demand (
        date DATE NOT NULL,
        location_id VARCHAR(50) NOT NULL,
        model_id VARCHAR(50) NOT NULL,
        demand_units INTEGER NOT NULL,
        FOREIGN KEY (date, location_id) REFERENCES daily_location_reports (date, location_id)
    )
    """,
    """CREATE TABLE IF NOT EXISTS report_inventory (
        date DATE NOT NULL,
        location_id VARCHAR(50) NOT NULL,
        supplier_id VARCHAR(50) NOT NULL,
        component_id VARCHAR(50) NOT NULL,
        quantity INTEGER NOT NULL,
        FOREIGN KEY (date, location_id) REFERENCES daily_location_reports (date, location_id)
    )
    """,
    """CREATE TABLE IF NOT EXISTS report_deliveries (
        date DATE NOT NULL,
        location_id VARCHAR(50) NOT NULL,
        supplier_id VARCHAR(50) NOT NULL,
        component_id VARCHAR(50) NOT NULL,
        order_size INTEGER NOT NULL,
        lead_time_variance INTEGER NOT NULL,
        discount DOUBLE PRECISION NOT NULL DEFAULT 0,
        FOREIGN KEY (date, location_id) REFERENCES daily_location_reports (date, location_id)
    )
    """,
    """CREATE TABLE IF NOT EXISTS report_failures (
        date DATE NOT NULL,
        location_id VARCHAR(50) NOT NULL,
        supplier_id VARCHAR(50) NOT NULL,
        component_id VARCHAR(50) NOT NULL,
        failure_rate DOUBLE PRECISION NOT NULL,
        FOREIGN KEY (date, location_id) REFERENCES daily_location_reports (date, location_id)
    )
    """,
]


def database_url_from_env() -> str:
    """Build the connection URL from .env / environment variables.

    Raises:
        ValueError: If neither DATABASE_URL nor the DB_* variables are set.
    """
    load_dotenv()

    url = os.getenv("DATABASE_URL")
    if url:
        return url

    required_vars = ["DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD"]
    missing = [var for var in required_vars if not os.getenv(var)]
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    host = os.getenv("DB_HOST")
    port = os.getenv("DB_PORT")
    name = os.getenv("DB_NAME")
    user = os.getenv("DB_USER")
    password = urllib.parse.quote_plus(os.getenv("DB_PASSWORD"))
    sslmode = os.getenv("DB_SSLMODE", "require")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def get_engine(url: str | None = None) -> Engine:
    """Create or return cached SQLAlchemy engine.

    Args:
        url: Explicit database URL; defaults to the .env configuration.
    """
    global _engine
    if _engine is not None:
        return _engine

    url = url or database_url_from_env()
    if url.startswith("sqlite"):
        _engine = create_engine(url)
    else:
        _engine = create_engine(
            url,
            pool_pre_ping=True,  # Verify connections before use
            pool_size=5,
            max_overflow=10,
            pool_recycle=3600,  # Recycle connections after 1 hour
        )
    return _engine


def reset_engine() -> None:
    """Reset the cached engine (useful for testing or reconnection)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager for database sessions; commits on success, rolls back on error."""
    engine = get_engine()
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_connection() -> bool:
    """Test database connectivity."""
    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, ValueError):
        return False


def init_tables() -> None:
    """Create report tables if they do not exist."""
    with get_session() as session:
        for ddl in DDL_STATEMENTS:
            session.execute(text(ddl))
    _logger.info(f"Ensured {len(DDL_STATEMENTS)} history tables exist")


def _report_rows(reports: Sequence[DailyLocationReport]) -> dict[str, list[dict]]:
    rows: dict[str, list[dict]] = {name: [] for name in HISTORY_TABLES}
    for r in reports:
        key = {"date": r.date.isoformat(), "location_id": r.location}
        rows["daily_location_reports"].append(
            {**key, "market_trend_index": r.market_trend_index, "inflation_rate": r.inflation_rate}
        )
        rows["report_model_demand"].extend(
            {**key, "model_id": md.model_id, "demand_units": md.demand_units} for md in r.model_demand
        )
        rows["report_inventory"].extend(
            {**key, "supplier_id": inv.supplier, "component_id": inv.component_id, "quantity": inv.quantity}
            for inv in r.component_inventory
        )
        rows["report_deliveries"].extend(
            {
                **key,
                "supplier_id": d.supplier,
                "component_id": d.component_id,
                "order_size": d.order_size,
                "lead_time_variance": d.lead_time_variance,
                "discount": d.discount,
            }
            for d in r.deliveries
        )
        rows["report_failures"].extend(
            {**key, "supplier_id": f.supplier, "component_id": f.component_id, "failure_rate": f.failure_rate}
            for f in r.component_failures
        )
    return rows


INSERT_STATEMENTS = {
    "daily_location_reports": """
        INSERT INTO daily_location_reports (date, location_id, market_trend_index, inflation_rate)
        VALUES (:date, :location_id, :market_trend_index, :inflation_rate)
    """,
    "report_model_demand": """
        INSERT INTO report_model_demand (date, location_id, model_id, demand_units)
        VALUES (:date, :location_id, :model_id, :demand_units)
    """,
    "report_inventory": """
        INSERT INTO report_inventory (date, location_id, supplier_id, component_id, quantity)
        VALUES (:date, :location_id, :supplier_id, :component_id, :quantity)
    """,
    "report_deliveries": """
        INSERT INTO report_deliveries
            (date, location_id, supplier_id, component_id, order_size, lead_time_variance, discount)
        VALUES (:date, :location_id, :supplier_id, :component_id, :order_size, :lead_time_variance, :discount)
    """,
    "report_failures": """
        INSERT INTO report_failures (date, location_id, supplier_id, component_id, failure_rate)
        VALUES (:date, :location_id, :supplier_id, :component_id, :failure_rate)
    """,
}


def insert_reports_batch(reports: Sequence[DailyLocationReport]) -> int:
    """Bulk insert reports with their child rows.

    Returns:
        Number of inserted reports (0 on failure).

    Note:
        This is an all-or-nothing operation. If any row fails,
        the entire batch is rolled back.
    """
    if not reports:
        return 0

    rows = _report_rows(reports)
    try:
        with get_session() as session:
            # Parent rows first, children after
            for table in reversed(HISTORY_TABLES):
                if rows[table]:
                    session.execute(text(INSERT_STATEMENTS[table]), rows[table])
        return len(reports)
    except OperationalError as e:
        _logger.error(f"Database connection error in batch insert ({len(reports)} reports): {e}")
        return 0
    except SQLAlchemyError as e:
        _logger.warning(f"Failed to batch insert {len(reports)} reports: {e}")
        return 0


class DatabaseReportSink(ReportSink):
    """Buffers reports and writes them in batches of ``batch_size``.

    A failed batch aborts the run: history with holes is worse than no history.
    """

    def __init__(self, batch_size: int = BATCH_SIZE) -> None:
        self.batch_size = batch_size
        self.count = 0
        self._buffer: list[DailyLocationReport] = []

    def write(self, report: DailyLocationReport) -> None:
        self._buffer.append(report)
        if len(self._buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self._buffer:
            return
        inserted = insert_reports_batch(self._buffer)
        if inserted != len(self._buffer):
            raise SimulationError(f"Database write failed for batch of {len(self._buffer)} reports")
        self.count += inserted
        self._buffer = []

    def close(self) -> None:
        self.flush()
        _logger.info(f"Inserted {self.count:,} reports into the database")


def clear_history() -> int:
    """Delete all generated history; returns the number of reports removed."""
    with get_session() as session:
        removed = session.execute(text("SELECT COUNT(*) FROM daily_location_reports")).scalar() or 0
        for table in HISTORY_TABLES:
            session.execute(text(f"DELETE FROM {table}"))
    _logger.info(f"Cleared {removed:,} reports from the database")
    return removed


def get_report_count() -> int:
    """Get total number of stored reports.

    Returns:
        Count of reports or -1 on error.
    """
    try:
        with get_session() as session:
            result = session.execute(text("SELECT COUNT(*) FROM daily_location_reports"))
            row = result.fetchone()
            return row[0] if row else 0
    except SQLAlchemyError:
        return -1
