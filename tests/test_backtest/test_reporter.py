"""
Tests for comparison output files.

What we test
------------
1. records_to_table uses FORECAST_SCHEMA and keeps None as null.
2. write_comparison_outputs writes every CSV, the Parquet and the manifest.
3. summary.csv follows model order; by_series.csv carries the model spec.
4. Manifest content: split dates, win counts, skipped series, output paths.
5. Parquet written here reads back through reporting.reader.
6. sur_coefficients.csv: one row per equation over the union of coefficient
   names (absent ones empty); header only when SUR produced nothing.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from avocado_forecaster.backtest.evaluator import ComparisonResult
from avocado_forecaster.backtest.metrics import ForecastRecord
from avocado_forecaster.backtest.reporter import (
    FORECAST_SCHEMA,
    make_output_dir,
    records_to_table,
    write_comparison_outputs,
    write_sur_coefficients_csv,
)
from avocado_forecaster.backtest.splits import SplitPlan
from avocado_forecaster.reporting.reader import load_csv_rows, load_forecast_records


# ── Helpers ────────────────────────────────────────────────────────────────────

def _plan() -> SplitPlan:
    return SplitPlan(
        train_start=pd.Timestamp("2015-01-04"),
        train_end=pd.Timestamp("2015-11-29"),
        test_start=pd.Timestamp("2015-12-06"),
        test_end=pd.Timestamp("2015-12-13"),
        train_weeks=48,
        test_weeks=2,
    )


def _record(model: str, week: date, predicted: float | None, actual: float = 100.0,
            region: str = "Boston", h: int = 1) -> ForecastRecord:
    return ForecastRecord(
        region=region, product_type="organic", week=week, model_name=model,
        horizon_weeks=h, predicted_value=predicted, actual_value=actual,
    )


def _result() -> ComparisonResult:
    w1, w2 = date(2015, 12, 6), date(2015, 12, 13)
    records = [
        _record("naive", w1, 90.0), _record("naive", w2, 90.0, h=2),
        _record("arima", w1, 99.0), _record("arima", w2, None, h=2),
    ]
    return ComparisonResult(
        records=records,
        plan=_plan(),
        model_names=["naive", "arima"],
        descriptions={("Boston", "organic", "arima"): "ARIMA(1,1,0) w/ drift"},
        skipped_series=[("Albany", "organic")],
        sur_elasticities={},
    )


# ── Tests ──────────────────────────────────────────────────────────────────────

def test_records_to_table_schema() -> None:
    table = records_to_table(_result().records)
    assert table.schema.equals(FORECAST_SCHEMA)
    assert table.num_rows == 4
    assert table.column("predicted_value").null_count == 1


def test_make_output_dir() -> None:
    assert make_output_dir("data/outputs") == Path("data/outputs") / "comparison"


def test_write_comparison_outputs(tmp_path: Path) -> None:
    out = tmp_path / "comparison"
    manifest = write_comparison_outputs(
        _result(), out, run_slug="abc", dataset_path="data.csv", config_snapshot={"k": 1},
    )
    for name in ("summary.csv", "by_series.csv", "by_type.csv", "by_horizon.csv",
                 "sur_coefficients.csv", "forecasts.parquet", "manifest.json"):
        assert (out / name).exists(), name

    with open(out / "summary.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["model_name"] for r in rows] == ["naive", "arima"]
    assert rows[0]["rmse"] == "10.0000"
    assert rows[1]["n_evaluated"] == "1"

    with open(out / "by_series.csv", newline="", encoding="utf-8") as f:
        series_rows = {r["model_name"]: r for r in csv.DictReader(f)}
    assert series_rows["arima"]["model_spec"] == "ARIMA(1,1,0) w/ drift"
    assert series_rows["naive"]["model_spec"] == ""

    on_disk = json.loads((out / "manifest.json").read_text(encoding="utf-8"))
    assert on_disk["run_slug"] == "abc"
    assert on_disk["split"]["train_end"] == "2015-11-29"
    assert on_disk["skipped_series"] == ["Albany/organic"]
    assert on_disk["model_win_counts"] == {"arima": 1}
    assert on_disk["config_snapshot"] == {"k": 1}
    assert manifest["n_series"] == 1


def test_parquet_round_trip_through_reader(tmp_path: Path) -> None:
    out = tmp_path / "comparison"
    result = _result()
    write_comparison_outputs(result, out, "abc", "data.csv", {})
    loaded = load_forecast_records(out / "forecasts.parquet")
    assert loaded == result.records


def test_empty_mape_cell_when_abstained(tmp_path: Path) -> None:
    out = tmp_path / "comparison"
    result = _result()
    result.records = [_record("naive", date(2015, 12, 6), None)]
    result.model_names = ["naive"]
    write_comparison_outputs(result, out, "abc", "data.csv", {})
    with open(out / "summary.csv", newline="", encoding="utf-8") as f:
        row = next(csv.DictReader(f))
    assert row["mape"] == ""
    assert row["n_predictions"] == "1"


@pytest.mark.parametrize("name", ["by_type.csv", "by_horizon.csv"])
def test_slice_csvs_have_rows(tmp_path: Path, name: str) -> None:
    out = tmp_path / "comparison"
    write_comparison_outputs(_result(), out, "abc", "data.csv", {})
    with open(out / name, newline="", encoding="utf-8") as f:
        assert len(list(csv.DictReader(f))) >= 2


def test_sur_coefficients_csv_union_of_columns(tmp_path: Path) -> None:
    path = tmp_path / "sur_coefficients.csv"
    write_sur_coefficients_csv(
        [
            {"equation": "Albany|organic", "const": 9.5, "trend": 0.01, "log_price": -1.2, "month_2": 0.1},
            {"equation": "Boston|organic", "const": 9.1, "trend": 0.02, "log_price": -0.8},
        ],
        path,
    )
    rows = load_csv_rows(path)
    assert [r["equation"] for r in rows] == ["Albany|organic", "Boston|organic"]
    assert rows[0]["log_price"] == "-1.2000"
    assert rows[1]["month_2"] == ""


def test_sur_coefficients_csv_header_only_without_sur(tmp_path: Path) -> None:
    out = tmp_path / "comparison"
    write_comparison_outputs(_result(), out, "abc", "data.csv", {})
    assert (out / "sur_coefficients.csv").read_text(encoding="utf-8").strip() == "equation"
    assert load_csv_rows(out / "sur_coefficients.csv") == []
