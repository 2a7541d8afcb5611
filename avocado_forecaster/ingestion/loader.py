"""
Dataset loader for weekly avocado sales observations.

Input format — the public Hass Avocado Board export, as CSV or Excel, with a
header row.  Required columns (either spelling is accepted):

  Date          | week     → week ending date
  AveragePrice  | price    → average unit price
  Total Volume  | volume   → units sold (proxy for demand)
  type          | type     → "conventional" or "organic"
  region        | region   → market region name

Other columns (PLU breakdowns, bag counts, year, index) are dropped.

Validation
----------
Rows with an unparseable date, missing or non-positive price, or missing or
negative volume are dropped and counted.  Duplicate (region, type, week) rows
collapse to the last occurrence.  A file whose every row is invalid raises
``DatasetError``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

import pandas as pd

if TYPE_CHECKING:
    from avocado_forecaster.config import DataConfig

logger = logging.getLogger(__name__)

# Source header → canonical column name.
COLUMN_ALIASES: dict[str, str] = {
    "date":          "week",
    "week":          "week",
    "averageprice":  "price",
    "average_price": "price",
    "price":         "price",
    "total volume":  "volume",
    "total_volume":  "volume",
    "volume":        "volume",
    "type":          "type",
    "region":        "region",
}

REQUIRED_COLUMNS: tuple[str, ...] = ("region", "type", "week", "price", "volume")
SERIES_KEY: list[str] = ["region", "type"]

_EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm", ".xls"})


class DatasetError(ValueError):
    """Raised when the input spreadsheet cannot be turned into observations."""


def load_dataset(path: Path | str, sheet_name: Optional[str] = None) -> pd.DataFrame:
    """Read and validate the avocado dataset.

    Args:
        path:       CSV or Excel file.
        sheet_name: Worksheet to read for Excel input (first sheet if None).

    Returns:
        DataFrame with columns ``region, type, week, price, volume``, sorted by
        (region, type, week), with a fresh RangeIndex.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        DatasetError: On missing required columns or when no valid row remains.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")

    raw = _read_table(path, sheet_name)
    frame = normalize_columns(raw)
    frame = validate_observations(frame, source=path.name)

    logger.info(
        "Loaded %d observations | regions=%d | types=%d | weeks=%s..%s | file=%s",
        len(frame),
        frame["region"].nunique(),
        frame["type"].nunique(),
        frame["week"].min().date(),
        frame["week"].max().date(),
        path.name,
    )
    return frame


def normalize_columns(raw: pd.DataFrame) -> pd.DataFrame:
    """Rename known headers to canonical names and keep only required columns.

    Raises:
        DatasetError: If any required column is missing after renaming.
    """
    renames: dict[str, str] = {}
    for col in raw.columns:
        key = str(col).strip().lower()
        if key in COLUMN_ALIASES and COLUMN_ALIASES[key] not in renames.values():
            renames[col] = COLUMN_ALIASES[key]

    frame = raw.rename(columns=renames)
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise DatasetError(
            f"Dataset missing required columns: {missing}\n"
            f"Found columns: {[str(c) for c in raw.columns]}"
        )
    return frame[list(REQUIRED_COLUMNS)].copy()


def validate_observations(frame: pd.DataFrame, source: str = "<frame>") -> pd.DataFrame:
    """Coerce types, drop invalid rows and collapse duplicate keys."""
    out = frame.copy()
    out["region"] = out["region"].astype("string").str.strip()
    out["type"]   = out["type"].astype("string").str.strip().str.lower()
    out["week"]   = pd.to_datetime(out["week"], errors="coerce")
    out["price"]  = pd.to_numeric(out["price"], errors="coerce")
    out["volume"] = pd.to_numeric(out["volume"], errors="coerce")

    invalid = (
        out["week"].isna()
        | out["region"].isna() | (out["region"] == "")
        | out["type"].isna() | (out["type"] == "")
        | out["price"].isna() | (out["price"] <= 0)
        | out["volume"].isna() | (out["volume"] < 0)
    )
    n_invalid = int(invalid.sum())
    if n_invalid == len(out):
        raise DatasetError(f"No valid observations in {source} ({n_invalid} row(s) rejected).")
    if n_invalid:
        logger.warning(
            "Dropped %d invalid row(s) from %s (first indices: %s)",
            n_invalid, source, list(out.index[invalid][:5]),
        )
        out = out[~invalid]

    out["region"] = out["region"].astype(str)
    out["type"] = out["type"].astype(str)
    out["week"] = out["week"].dt.normalize()

    n_before = len(out)
    out = out.drop_duplicates(subset=[*SERIES_KEY, "week"], keep="last")
    if len(out) < n_before:
        logger.warning(
            "Collapsed %d duplicate (region, type, week) row(s) in %s",
            n_before - len(out), source,
        )

    return out.sort_values([*SERIES_KEY, "week"]).reset_index(drop=True)


def filter_regions(
    frame: pd.DataFrame,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> pd.DataFrame:
    """Restrict ``frame`` to ``include`` regions (all if empty), minus ``exclude``.

    Unknown region names in ``include`` are logged, not raised.
    """
    include = list(include)
    exclude = set(exclude)
    out = frame
    if include:
        unknown = sorted(set(include) - set(frame["region"].unique()))
        if unknown:
            logger.warning("Requested regions not in dataset: %s", unknown)
        out = out[out["region"].isin(include)]
    if exclude:
        out = out[~out["region"].isin(exclude)]
    return out.reset_index(drop=True)


def _read_table(path: Path, sheet_name: Optional[str]) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix in _EXCEL_SUFFIXES:
        return pd.read_excel(path, sheet_name=sheet_name or 0)
    if suffix in (".csv", ".txt"):
        return pd.read_csv(path)
    raise DatasetError(f"Unsupported dataset format '{suffix}' for {path.name}.")


def load_configured_dataset(data: DataConfig) -> pd.DataFrame:
    """Load ``data.dataset_path`` and apply the configured region filters.

    Raises:
        DatasetError: If no rows remain after filtering.
    """
    frame = load_dataset(data.dataset_path, sheet_name=data.sheet_name)
    frame = filter_regions(frame, data.include_regions, data.exclude_regions)
    if frame.empty:
        raise DatasetError(
            f"No observations left in {data.dataset_path} after region filtering."
        )
    logger.info(
        "Dataset ready | rows=%d | regions=%d | types=%s",
        len(frame), frame["region"].nunique(), sorted(frame["type"].unique()),
    )
    return frame
