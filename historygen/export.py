"""Flatten reports into pandas DataFrames and CSV files.

One frame per repeated report section, each keyed by ``date`` + ``location``:
    reports        one row per (date, location) with the scalar signals
    model_demand   one row per model
    inventory      one row per inventory row (end-of-day snapshot)
    deliveries     one row per delivery
    failures       one row per (supplier, component) failure record
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandas as pd

from historygen.simulator import DailyLocationReport

logger = logging.getLogger("historygen.export")

FRAME_COLUMNS = {
    "reports": ["date", "location", "market_trend_index", "inflation_rate"],
    "model_demand": ["date", "location", "model_id", "demand_units"],
    "inventory": ["date", "location", "supplier", "component_id", "quantity"],
    "deliveries": ["date", "location", "supplier", "component_id", "order_size", "lead_time_variance", "discount"],
    "failures": ["date", "location", "supplier", "component_id", "failure_rate"],
}


def reports_to_frames(reports: Iterable[DailyLocationReport]) -> dict[str, pd.DataFrame]:
    rows: dict[str, list[dict]] = {name: [] for name in FRAME_COLUMNS}
    for r in reports:
        key = {"date": r.date.isoformat(), "location": r.location}
        rows["reports"].append({**key, "market_trend_index": r.market_trend_index, "inflation_rate": r.inflation_rate})
        for md in r.model_demand:
            rows["model_demand"].append({**key, "model_id": md.model_id, "demand_units": md.demand_units})
        for inv in r.component_inventory:
            rows["inventory"].append(
                {**key, "supplier": inv.supplier, "component_id": inv.component_id, "quantity": inv.quantity}
            )
        for d in r.deliveries:
            rows["deliveries"].append({
                **key,
                "supplier": d.supplier,
                "component_id": d.component_id,
                "order_size": d.order_size,
                "lead_time_variance": d.lead_time_variance,
                "discount": d.discount,
            })
        for f in r.component_failures:
            rows["failures"].append(
                {**key, "supplier": f.supplier, "component_id": f.component_id, "failure_rate": f.failure_rate}
            )

    return {name: pd.DataFrame(rows[name], columns=columns) for name, columns in FRAME_COLUMNS.items()}


def write_frames_csv(frames: dict[str, pd.DataFrame], out_dir: Path) -> list[Path]:
    """Write each frame to ``{out_dir}/{name}.csv``; returns the written paths."""
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for name, df in frames.items():
        path = out_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        logger.info(f"Wrote {len(df):,} rows to {path}")
        paths.append(path)
    return paths
