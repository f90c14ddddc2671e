"""Report sinks and trace writers.

A sink is any object with ``write(report)`` and ``close()``; the engine does
not care where reports go. Sinks are context managers.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Iterable

from historygen.simulator import DailyLocationReport
from historygen.supplier_quality import SupplierQualitySeries

logger = logging.getLogger("historygen.sinks")


def report_to_dict(report: DailyLocationReport) -> dict[str, Any]:
    """JSON-ready dict for one report (dates as YYYY-MM-DD)."""
    data = asdict(report)
    data["date"] = report.date.isoformat()
    return data


class ReportSink:
    def write(self, report: DailyLocationReport) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class MemoryReportSink(ReportSink):
    """Keeps every report in ``self.reports``."""

    def __init__(self) -> None:
        self.reports: list[DailyLocationReport] = []

    def write(self, report: DailyLocationReport) -> None:
        self.reports.append(report)


class JsonlReportSink(ReportSink):
    """One JSON object per line, in the order reports are written."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.count = 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8")

    def write(self, report: DailyLocationReport) -> None:
        self._file.write(json.dumps(report_to_dict(report), ensure_ascii=False) + "\n")
        self.count += 1

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.info(f"Wrote {self.count:,} reports to {self.path}")


def quality_trace(series: Iterable[SupplierQualitySeries]) -> list[dict[str, Any]]:
    trace = []
    for s in series:
        trace.append({
            "supplier_id": s.supplier_id,
            "config": asdict(s.config),
            "periods": [
                {**asdict(p), "start_date": p.start_date.isoformat(), "end_date": p.end_date.isoformat()}
                for p in s.periods
            ],
            "points": [
                {"date": p.date.isoformat(), "quality_index": p.quality_index, "efficiency_index": p.efficiency_index}
                for p in s.points
            ],
        })
    return trace


def write_quality_trace(series: Iterable[SupplierQualitySeries], path: Path) -> None:
    """Dump supplier quality periods and daily points as a JSON array."""
    path.parent.mkdir(parents=True, exist_ok=True)
    trace = quality_trace(series)
    path.write_text(json.dumps(trace, indent=2), encoding="utf-8")
    logger.info(f"Wrote supplier quality trace for {len(trace)} series to {path}")
