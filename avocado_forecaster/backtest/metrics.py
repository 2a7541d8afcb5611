"""
Forecast accuracy metrics.

Metric design rationale
-----------------------
RMSE (Root Mean Squared Error)
  In units of weekly avocados sold.  Squares errors before averaging, so one
  badly missed promotion week counts for more than many small misses.
  Not comparable across series: TotalUS volumes are ~1000× a small city's.
  Interpretation: lower is better; 0 is perfect.

MAPE (Mean Absolute Percentage Error)
  Normalises each error by the actual volume, enabling comparison between
  large and small markets and between conventional and organic.
  Safeguard: actual volumes below MAPE_EPSILON are excluded to prevent
  division-by-zero and exploding percentages.
  Interpretation: 0.05 = 5% average error.

MAE (Mean Absolute Error)
  Reported alongside RMSE; RMSE > MAE implies occasional large misses.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

MAPE_EPSILON = 1.0  # minimum actual volume (units) to include in MAPE


@dataclass(frozen=True)
class ForecastRecord:
    """One forecast-vs-actual comparison for a single series/model/week.

    Attributes:
        region:          Market region name.
        product_type:    "conventional" or "organic".
        week:            Week being forecast.
        model_name:      Name of the model that made this forecast.
        horizon_weeks:   Steps ahead of the cutoff (1 = first test week).
        predicted_value: Forecast volume (None = model abstained).
        actual_value:    Observed volume (None = no observation).
    """

    region: str
    product_type: str
    week: date
    model_name: str
    horizon_weeks: int
    predicted_value: float | None
    actual_value: float | None

    @property
    def series_key(self) -> tuple[str, str]:
        return (self.region, self.product_type)


@dataclass(frozen=True)
class AccuracyMetrics:
    """Aggregated accuracy over a set of ForecastRecords.

    All float fields are None when there is insufficient data to compute them
    (e.g., n_evaluated == 0).

    Attributes:
        n_predictions:  Total forecasts attempted.
        n_evaluated:    Forecasts where both actual and predicted are non-null.
        mae:            Mean absolute error (volume units).
        rmse:           Root mean squared error (volume units).
        mape:           Mean absolute percentage error (0.05 = 5%).
        mean_actual:    Mean actual volume (sanity check).
        mean_predicted: Mean predicted volume (sanity check).
        model_name:     Source model name (optional label).
        slice_key:      Identifies the evaluation slice (optional label).
    """

    n_predictions: int
    n_evaluated: int
    mae: float | None
    rmse: float | None
    mape: float | None
    mean_actual: float | None
    mean_predicted: float | None
    model_name: str | None = None
    slice_key: str | None = None


def rmse(actual: list[float], predicted: list[float]) -> float:
    """Root mean squared error of two equal-length sequences."""
    if len(actual) != len(predicted):
        raise ValueError(f"Length mismatch: {len(actual)} vs {len(predicted)}")
    if not actual:
        raise ValueError("rmse of empty sequences is undefined")
    return math.sqrt(sum((a - p) ** 2 for a, p in zip(actual, predicted)) / len(actual))


def mape(actual: list[float], predicted: list[float]) -> float | None:
    """Mean absolute percentage error; actuals below MAPE_EPSILON are skipped."""
    if len(actual) != len(predicted):
        raise ValueError(f"Length mismatch: {len(actual)} vs {len(predicted)}")
    terms = [abs(a - p) / a for a, p in zip(actual, predicted) if a >= MAPE_EPSILON]
    return (sum(terms) / len(terms)) if terms else None


def compute_metrics(
    records: list[ForecastRecord],
    model_name: str | None = None,
    slice_key: str | None = None,
) -> AccuracyMetrics:
    """Compute all accuracy metrics for a set of ForecastRecords.

    Rows where either actual or predicted is None are excluded from metric
    computation but counted in n_predictions.
    """
    n_predictions = len(records)
    evaluated = [
        r for r in records
        if r.actual_value is not None and r.predicted_value is not None
    ]
    n_evaluated = len(evaluated)

    if not evaluated:
        return AccuracyMetrics(
            n_predictions=n_predictions,
            n_evaluated=0,
            mae=None, rmse=None, mape=None,
            mean_actual=None, mean_predicted=None,
            model_name=model_name, slice_key=slice_key,
        )

    actuals   = [r.actual_value    for r in evaluated]   # type: ignore[misc]
    predicted = [r.predicted_value for r in evaluated]   # type: ignore[misc]

    mae = sum(abs(a - p) for a, p in zip(actuals, predicted)) / n_evaluated

    return AccuracyMetrics(
        n_predictions=n_predictions,
        n_evaluated=n_evaluated,
        mae=mae,
        rmse=rmse(actuals, predicted),
        mape=mape(actuals, predicted),
        mean_actual=sum(actuals) / n_evaluated,
        mean_predicted=sum(predicted) / n_evaluated,
        model_name=model_name,
        slice_key=slice_key,
    )
