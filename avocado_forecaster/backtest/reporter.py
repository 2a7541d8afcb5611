"""
Comparison result reporting: CSV files, Parquet forecasts and JSON manifest.

Output layout (one comparison run):
  <output_dir>/comparison/
    summary.csv         — aggregate metrics per model
    by_series.csv       — metrics per (region, type, model) + fitted model spec
    by_type.csv         — metrics per (type, model)
    by_horizon.csv      — metrics per (model, horizon step)
    sur_coefficients.csv — fitted SUR coefficients per equation
    forecasts.parquet   — one row per ForecastRecord (full raw data)
    manifest.json       — split, models, win counts, config snapshot

These outputs enable:
  - Quick review in a spreadsheet from the CSV files.
  - The ``report`` stage to rebuild figures without refitting models.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from avocado_forecaster.backtest.evaluator import ComparisonResult
from avocado_forecaster.backtest.metrics import AccuracyMetrics, ForecastRecord, compute_metrics
from avocado_forecaster.backtest.slices import (
    model_win_counts,
    slice_by_horizon,
    slice_by_model,
    slice_by_series,
    slice_by_type_and_model,
)

log = logging.getLogger(__name__)

FORECAST_SCHEMA = pa.schema([
    pa.field("region",          pa.string(),  nullable=False),
    pa.field("product_type",    pa.string(),  nullable=False),
    pa.field("week",            pa.date32(),  nullable=False),
    pa.field("model_name",      pa.string(),  nullable=False),
    pa.field("horizon_weeks",   pa.int32(),   nullable=False),
    pa.field("predicted_value", pa.float64(), nullable=True),
    pa.field("actual_value",    pa.float64(), nullable=True),
])

_METRIC_FIELDS = ["n_predictions", "n_evaluated", "mae", "rmse", "mape", "mean_actual", "mean_predicted"]


def _metric_cells(m: AccuracyMetrics) -> dict[str, Any]:
    return {
        "n_predictions":  m.n_predictions,
        "n_evaluated":    m.n_evaluated,
        "mae":            _fmt(m.mae),
        "rmse":           _fmt(m.rmse),
        "mape":           _fmt(m.mape),
        "mean_actual":    _fmt(m.mean_actual),
        "mean_predicted": _fmt(m.mean_predicted),
    }


# ── CSV output ─────────────────────────────────────────────────────────────────

def write_summary_csv(
    metrics_by_model: dict[str, AccuracyMetrics],
    path: Path,
    model_order: list[str] | None = None,
) -> None:
    """Write aggregate per-model metrics as CSV (in ``model_order`` if given)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    names = [m for m in (model_order or sorted(metrics_by_model)) if m in metrics_by_model]
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["model_name", *_METRIC_FIELDS])
        writer.writeheader()
        for name in names:
            writer.writerow({"model_name": name, **_metric_cells(metrics_by_model[name])})
    log.info("Summary CSV written: %s", path)


def write_by_series_csv(
    series_metrics: dict[tuple[str, str, str], AccuracyMetrics],
    descriptions: dict[tuple[str, str, str], str],
    path: Path,
) -> None:
    """Write per-(region, type, model) metrics with the fitted model spec."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = ["region", "product_type", "model_name", "model_spec", *_METRIC_FIELDS]
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for key, m in sorted(series_metrics.items()):
            region, ptype, model = key
            writer.writerow({
                "region":       region,
                "product_type": ptype,
                "model_name":   model,
                "model_spec":   descriptions.get(key, ""),
                **_metric_cells(m),
            })
    log.info("By-series CSV written: %s (%d rows)", path, len(series_metrics))


def write_by_type_csv(
    type_metrics: dict[tuple[str, str], AccuracyMetrics],
    path: Path,
) -> None:
    """Write per-(type, model) metrics as CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["product_type", "model_name", *_METRIC_FIELDS])
        writer.writeheader()
        for (ptype, model), m in sorted(type_metrics.items()):
            writer.writerow({"product_type": ptype, "model_name": model, **_metric_cells(m)})
    log.info("By-type CSV written: %s", path)


def write_by_horizon_csv(
    horizon_metrics: dict[tuple[str, int], AccuracyMetrics],
    path: Path,
) -> None:
    """Write per-(model, horizon step) metrics as CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["model_name", "horizon_weeks", *_METRIC_FIELDS])
        writer.writeheader()
        for (model, h), m in sorted(horizon_metrics.items()):
            writer.writerow({"model_name": model, "horizon_weeks": h, **_metric_cells(m)})
    log.info("By-horizon CSV written: %s", path)


def write_sur_coefficients_csv(rows: list[dict[str, Any]], path: Path) -> None:
    """Write one row per SUR equation; columns are the union of coefficient names.

    A coefficient absent from an equation (e.g. a month never seen in its
    training weeks) is left empty.  With no rows only the header is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = ["equation"]
    for row in rows:
        fieldnames.extend(name for name in row if name not in fieldnames)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, restval="")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: v if k == "equation" else _fmt(v) for k, v in row.items()})
    log.info("SUR coefficients CSV written: %s (%d equations)", path, len(rows))


# ── Parquet output ─────────────────────────────────────────────────────────────

def records_to_table(records: list[ForecastRecord]) -> pa.Table:
    """Convert ForecastRecords to a pyarrow Table with ``FORECAST_SCHEMA``."""
    columns: dict[str, list] = {f.name: [] for f in FORECAST_SCHEMA}
    for r in records:
        columns["region"].append(r.region)
        columns["product_type"].append(r.product_type)
        columns["week"].append(r.week)
        columns["model_name"].append(r.model_name)
        columns["horizon_weeks"].append(r.horizon_weeks)
        columns["predicted_value"].append(r.predicted_value)
        columns["actual_value"].append(r.actual_value)
    arrays = [pa.array(columns[f.name], type=f.type) for f in FORECAST_SCHEMA]
    return pa.Table.from_arrays(arrays, schema=FORECAST_SCHEMA)


def write_forecasts_parquet(records: list[ForecastRecord], path: Path) -> None:
    """Write all ForecastRecords to Parquet."""
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(records_to_table(records), path)
    log.info("Forecast Parquet written: %s (%d rows)", path, len(records))


# ── JSON manifest ──────────────────────────────────────────────────────────────

def build_comparison_manifest(
    result: ComparisonResult,
    run_slug: str,
    dataset_path: str,
    output_dir: Path,
    config_snapshot: dict[str, Any],
) -> dict[str, Any]:
    """Build a JSON manifest summarising this comparison run."""
    overall = compute_metrics(result.records)
    plan = result.plan
    return {
        "schema_version": "1.0",
        "built_at":     datetime.now(tz=timezone.utc).isoformat(),
        "run_slug":     run_slug,
        "dataset_path": dataset_path,
        "split": {
            "train_start": plan.train_start.date().isoformat(),
            "train_end":   plan.train_end.date().isoformat(),
            "test_start":  plan.test_start.date().isoformat(),
            "test_end":    plan.test_end.date().isoformat(),
            "train_weeks": plan.train_weeks,
            "test_weeks":  plan.test_weeks,
        },
        "n_series":       result.n_series,
        "skipped_series": ["/".join(k) for k in result.skipped_series],
        "model_names":    result.model_names,
        "model_win_counts": model_win_counts(result.records),
        "evaluation_summary": {
            "n_predictions": overall.n_predictions,
            "n_evaluated":   overall.n_evaluated,
            "rmse":          overall.rmse,
            "mape":          overall.mape,
        },
        "sur_elasticities": result.sur_elasticities,
        "output_files": {
            "summary_csv":       str(output_dir / "summary.csv"),
            "by_series_csv":     str(output_dir / "by_series.csv"),
            "by_type_csv":       str(output_dir / "by_type.csv"),
            "by_horizon_csv":    str(output_dir / "by_horizon.csv"),
            "sur_coefficients_csv": str(output_dir / "sur_coefficients.csv"),
            "forecasts_parquet": str(output_dir / "forecasts.parquet"),
        },
        "config_snapshot": config_snapshot,
    }


def write_manifest(manifest: dict[str, Any], path: Path) -> None:
    """Write the manifest dict as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, default=str)
    log.info("Comparison manifest written: %s", path)


def write_comparison_outputs(
    result: ComparisonResult,
    output_dir: Path,
    run_slug: str,
    dataset_path: str,
    config_snapshot: dict[str, Any],
) -> dict[str, Any]:
    """Write every comparison output file into ``output_dir``; return the manifest."""
    output_dir.mkdir(parents=True, exist_ok=True)
    records = result.records

    write_summary_csv(slice_by_model(records), output_dir / "summary.csv", result.model_names)
    write_by_series_csv(slice_by_series(records), result.descriptions, output_dir / "by_series.csv")
    write_by_type_csv(slice_by_type_and_model(records), output_dir / "by_type.csv")
    write_by_horizon_csv(slice_by_horizon(records), output_dir / "by_horizon.csv")
    write_sur_coefficients_csv(result.sur_coefficients, output_dir / "sur_coefficients.csv")
    write_forecasts_parquet(records, output_dir / "forecasts.parquet")

    manifest = build_comparison_manifest(
        result, run_slug, dataset_path, output_dir, config_snapshot,
    )
    write_manifest(manifest, output_dir / "manifest.json")
    return manifest


def make_output_dir(base_dir: str) -> Path:
    """Deterministic output directory for the comparison run."""
    return Path(base_dir) / "comparison"


def _fmt(v: float | None) -> str:
    """Format float to 4 decimal places, or empty string for None."""
    if v is None:
        return ""
    return f"{v:.4f}"
