"""
Evaluation slicing — break down accuracy by different dimensions.

  slice_by_model           → one row per model (which model is best overall?)
  slice_by_series          → (region, type, model) grid
  slice_by_type_and_model  → (type, model): organic vs conventional
  slice_by_horizon         → (model, horizon step): does accuracy decay?
  best_model_per_series    → lowest-RMSE model for each series
  model_win_counts         → how many series each model wins

All slicers return dict[key, AccuracyMetrics] and reuse compute_metrics().
"""

from __future__ import annotations

from collections import Counter, defaultdict

from avocado_forecaster.backtest.metrics import AccuracyMetrics, ForecastRecord, compute_metrics


def slice_by_model(records: list[ForecastRecord]) -> dict[str, AccuracyMetrics]:
    """Aggregate metrics per model name."""
    groups: dict[str, list[ForecastRecord]] = defaultdict(list)
    for r in records:
        groups[r.model_name].append(r)
    return {
        name: compute_metrics(recs, model_name=name, slice_key=name)
        for name, recs in groups.items()
    }


def slice_by_series(
    records: list[ForecastRecord],
) -> dict[tuple[str, str, str], AccuracyMetrics]:
    """Aggregate metrics per (region, type, model)."""
    groups: dict[tuple[str, str, str], list[ForecastRecord]] = defaultdict(list)
    for r in records:
        groups[(r.region, r.product_type, r.model_name)].append(r)
    return {
        key: compute_metrics(recs, model_name=key[2], slice_key=f"{key[0]}/{key[1]}")
        for key, recs in groups.items()
    }


def slice_by_type_and_model(
    records: list[ForecastRecord],
) -> dict[tuple[str, str], AccuracyMetrics]:
    """Aggregate metrics per (product type, model).

    MAPE is the meaningful column here; RMSE is dominated by large regions.
    """
    groups: dict[tuple[str, str], list[ForecastRecord]] = defaultdict(list)
    for r in records:
        groups[(r.product_type, r.model_name)].append(r)
    return {
        key: compute_metrics(recs, model_name=key[1], slice_key=key[0])
        for key, recs in groups.items()
    }


def slice_by_horizon(
    records: list[ForecastRecord],
) -> dict[tuple[str, int], AccuracyMetrics]:
    """Aggregate metrics per (model, horizon step in weeks)."""
    groups: dict[tuple[str, int], list[ForecastRecord]] = defaultdict(list)
    for r in records:
        groups[(r.model_name, r.horizon_weeks)].append(r)
    return {
        key: compute_metrics(recs, model_name=key[0], slice_key=f"h{key[1]}")
        for key, recs in groups.items()
    }


def best_model_per_series(
    records: list[ForecastRecord],
) -> dict[tuple[str, str], str]:
    """Map each (region, type) to the model with the lowest RMSE.

    Models that abstained for a series (rmse is None) cannot win it.  Ties go
    to the model name that sorts first, so results are deterministic.
    """
    best: dict[tuple[str, str], tuple[float, str]] = {}
    for (region, ptype, model), m in slice_by_series(records).items():
        if m.rmse is None:
            continue
        key = (region, ptype)
        candidate = (m.rmse, model)
        if key not in best or candidate < best[key]:
            best[key] = candidate
    return {key: model for key, (_, model) in best.items()}


def model_win_counts(records: list[ForecastRecord]) -> dict[str, int]:
    """Number of series on which each model has the lowest RMSE."""
    return dict(Counter(best_model_per_series(records).values()))
