"""
Reporting data reader: loads comparison outputs written by the compare stage.

Loaders return ``None`` rather than raising when no file is found, so CLI
commands can emit a friendly "no data yet" message without try/except at the
call site.  Files that exist but cannot be parsed are logged and also yield
``None``.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from avocado_forecaster.backtest.metrics import ForecastRecord

logger = logging.getLogger(__name__)


def load_forecast_records(path: Path) -> list[ForecastRecord] | None:
    """Load ForecastRecords from ``forecasts.parquet``.

    Returns:
        List of records (empty for an empty file), or None if missing/unreadable.
    """
    if not path.exists():
        logger.debug("No forecast Parquet at %s", path)
        return None
    try:
        table = pq.read_table(path)
    except (pa.ArrowInvalid, OSError) as exc:
        logger.warning("Failed to read forecast Parquet %s: %s", path, exc)
        return None

    return [
        ForecastRecord(
            region=row["region"],
            product_type=row["product_type"],
            week=row["week"],
            model_name=row["model_name"],
            horizon_weeks=int(row["horizon_weeks"]),
            predicted_value=row["predicted_value"],
            actual_value=row["actual_value"],
        )
        for row in table.to_pylist()
    ]


def load_manifest(path: Path) -> dict | None:
    """Load a comparison ``manifest.json``; None if missing or malformed."""
    if not path.exists():
        logger.debug("No manifest at %s", path)
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to load manifest %s: %s", path, exc)
        return None


def load_csv_rows(path: Path) -> list[dict] | None:
    """Load any output CSV as a list of row dicts; None if missing."""
    if not path.exists():
        return None
    try:
        with path.open(newline="", encoding="utf-8") as f:
            return [dict(row) for row in csv.DictReader(f)]
    except (csv.Error, OSError) as exc:
        logger.warning("Failed to load CSV %s: %s", path, exc)
        return None
