"""
Tests for the avocado dataset loader.

What we test
------------
1. Public dataset headers are renamed to canonical columns; extras dropped.
2. Output is sorted by (region, type, week) with a fresh index.
3. Invalid rows (bad date, non-positive price, negative volume) are dropped.
4. Duplicate (region, type, week) rows collapse to the last occurrence.
5. Missing required columns / all rows invalid / unsupported suffix →
   DatasetError; missing file → FileNotFoundError.
6. Excel input is read the same way as CSV.
7. filter_regions include / exclude semantics.
8. load_configured_dataset applies the configured filters.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from avocado_forecaster.config import DataConfig
from avocado_forecaster.ingestion.loader import (
    REQUIRED_COLUMNS,
    DatasetError,
    filter_regions,
    load_configured_dataset,
    load_dataset,
    normalize_columns,
    validate_observations,
)


def _raw(rows: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=["Date", "AveragePrice", "Total Volume", "type", "region"])


def _row(date: str = "2015-01-04", price: float = 1.2, volume: float = 1000.0,
         ptype: str = "conventional", region: str = "Albany") -> dict:
    return {"Date": date, "AveragePrice": price, "Total Volume": volume, "type": ptype, "region": region}


# ── load_dataset ──────────────────────────────────────────────────────────────

def test_load_dataset_renames_columns(dataset_csv: Path) -> None:
    frame = load_dataset(dataset_csv)
    assert list(frame.columns) == list(REQUIRED_COLUMNS)
    assert pd.api.types.is_datetime64_any_dtype(frame["week"])
    assert "year" not in frame.columns


def test_load_dataset_sorted_with_range_index(dataset_csv: Path) -> None:
    frame = load_dataset(dataset_csv)
    expected = frame.sort_values(["region", "type", "week"]).reset_index(drop=True)
    pd.testing.assert_frame_equal(frame, expected)
    assert frame.index.equals(pd.RangeIndex(len(frame)))


def test_load_dataset_row_count(dataset_csv: Path, panel: pd.DataFrame) -> None:
    assert len(load_dataset(dataset_csv)) == len(panel)


def test_load_dataset_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_dataset(tmp_path / "missing.csv")


def test_load_dataset_unsupported_suffix(tmp_path: Path) -> None:
    path = tmp_path / "data.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(DatasetError, match="Unsupported"):
        load_dataset(path)


def test_load_dataset_excel(tmp_path: Path) -> None:
    path = tmp_path / "avocado.xlsx"
    _raw([_row(), _row(date="2015-01-11")]).to_excel(path, index=False)
    frame = load_dataset(path)
    assert len(frame) == 2
    assert frame["region"].tolist() == ["Albany", "Albany"]


# ── normalize_columns ─────────────────────────────────────────────────────────

def test_missing_required_columns_listed() -> None:
    raw = pd.DataFrame({"Date": ["2015-01-04"], "region": ["Albany"]})
    with pytest.raises(DatasetError) as exc_info:
        normalize_columns(raw)
    message = str(exc_info.value)
    assert "price" in message and "volume" in message and "type" in message


def test_canonical_headers_accepted() -> None:
    raw = pd.DataFrame({
        "week": ["2015-01-04"], "price": [1.0], "volume": [5.0],
        "type": ["organic"], "region": ["Boston"], "extra": [1],
    })
    assert list(normalize_columns(raw).columns) == list(REQUIRED_COLUMNS)


# ── validate_observations ─────────────────────────────────────────────────────

def test_invalid_rows_dropped() -> None:
    raw = _raw([
        _row(),
        _row(date="not-a-date"),
        _row(date="2015-01-11", price=0.0),
        _row(date="2015-01-18", volume=-1.0),
        _row(date="2015-01-25", volume=0.0),
    ])
    frame = validate_observations(normalize_columns(raw))
    assert len(frame) == 2
    assert frame["volume"].min() == 0.0


def test_all_invalid_raises() -> None:
    raw = _raw([_row(price=-1.0), _row(date="bad")])
    with pytest.raises(DatasetError, match="No valid observations"):
        validate_observations(normalize_columns(raw))


def test_duplicates_keep_last() -> None:
    raw = _raw([_row(volume=100.0), _row(volume=200.0)])
    frame = validate_observations(normalize_columns(raw))
    assert len(frame) == 1
    assert frame["volume"].iloc[0] == 200.0


def test_type_lowercased_and_stripped() -> None:
    raw = _raw([_row(ptype=" Organic ", region=" Boston ")])
    frame = validate_observations(normalize_columns(raw))
    assert frame["type"].iloc[0] == "organic"
    assert frame["region"].iloc[0] == "Boston"


# ── filter_regions ────────────────────────────────────────────────────────────

def test_filter_regions_include(panel: pd.DataFrame) -> None:
    out = filter_regions(panel, include=["Boston"])
    assert set(out["region"]) == {"Boston"}


def test_filter_regions_exclude(panel: pd.DataFrame) -> None:
    out = filter_regions(panel, exclude=["TotalUS"])
    assert "TotalUS" not in set(out["region"])
    assert set(out["region"]) == {"Albany", "Boston"}


def test_filter_regions_empty_include_keeps_all(panel: pd.DataFrame) -> None:
    assert len(filter_regions(panel)) == len(panel)


def test_filter_regions_unknown_include_yields_empty(panel: pd.DataFrame) -> None:
    assert filter_regions(panel, include=["Atlantis"]).empty


# ── load_configured_dataset ───────────────────────────────────────────────────

def test_load_configured_dataset_applies_filters(dataset_csv: Path) -> None:
    data = DataConfig(dataset_path=str(dataset_csv), exclude_regions=["TotalUS"])
    frame = load_configured_dataset(data)
    assert set(frame["region"]) == {"Albany", "Boston"}


def test_load_configured_dataset_empty_after_filter(dataset_csv: Path) -> None:
    data = DataConfig(dataset_path=str(dataset_csv), include_regions=["Atlantis"])
    with pytest.raises(DatasetError):
        load_configured_dataset(data)
