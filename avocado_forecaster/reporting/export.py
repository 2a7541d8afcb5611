"""
Export helpers for exploratory tables and manual analysis.

All functions write to disk and return the written ``Path``.
They accept generic ``list[dict]`` data (or a DataFrame, for the
``export_frame`` convenience) to stay decoupled from specific report shapes.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path

import pandas as pd


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    List of row dicts.
        path:       Destination file path (parent dirs created if missing).
        fieldnames: Column order.  If None, uses the keys of the first record.

    Returns:
        ``path`` as written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(
    data: dict | list,
    path: Path,
) -> Path:
    """Write ``data`` to a pretty-printed JSON file.

    Returns:
        ``path`` as written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def export_frame(frame: pd.DataFrame, path: Path) -> Path:
    """Write a summary DataFrame as CSV, flattening any index into columns."""
    flat = frame.reset_index() if not isinstance(frame.index, pd.RangeIndex) else frame
    return export_to_csv(flat.to_dict(orient="records"), path, fieldnames=list(flat.columns))
