"""
Tests for evaluation slicing.

What we test
------------
1. slice_by_model / slice_by_series / slice_by_type_and_model /
   slice_by_horizon group on the right keys and carry labels.
2. best_model_per_series picks the lowest RMSE, ignores abstaining models,
   and breaks ties by model name.
3. model_win_counts tallies the winners.
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from avocado_forecaster.backtest.metrics import ForecastRecord
from avocado_forecaster.backtest.slices import (
    best_model_per_series,
    model_win_counts,
    slice_by_horizon,
    slice_by_model,
    slice_by_series,
    slice_by_type_and_model,
)


def _records(
    model: str,
    errors: list[float | None],
    region: str = "Boston",
    ptype: str = "conventional",
) -> list[ForecastRecord]:
    """One record per error; predicted = 100 + error (None → abstain)."""
    start = date(2017, 8, 6)
    return [
        ForecastRecord(
            region=region,
            product_type=ptype,
            week=start + timedelta(weeks=i),
            model_name=model,
            horizon_weeks=i + 1,
            predicted_value=None if e is None else 100.0 + e,
            actual_value=100.0,
        )
        for i, e in enumerate(errors)
    ]


def test_slice_by_model() -> None:
    records = _records("naive", [10.0, 10.0]) + _records("arima", [1.0, 1.0])
    out = slice_by_model(records)
    assert set(out) == {"naive", "arima"}
    assert out["naive"].rmse == pytest.approx(10.0)
    assert out["arima"].model_name == "arima"


def test_slice_by_series() -> None:
    records = (
        _records("naive", [2.0], region="Boston")
        + _records("naive", [4.0], region="Albany")
    )
    out = slice_by_series(records)
    assert set(out) == {("Boston", "conventional", "naive"), ("Albany", "conventional", "naive")}
    assert out[("Albany", "conventional", "naive")].mae == pytest.approx(4.0)
    assert out[("Albany", "conventional", "naive")].slice_key == "Albany/conventional"


def test_slice_by_type_and_model() -> None:
    records = (
        _records("sur", [5.0], ptype="organic")
        + _records("sur", [1.0], ptype="conventional")
    )
    out = slice_by_type_and_model(records)
    assert out[("organic", "sur")].mape == pytest.approx(0.05)
    assert out[("conventional", "sur")].slice_key == "conventional"


def test_slice_by_horizon() -> None:
    out = slice_by_horizon(_records("arima", [1.0, 2.0, 3.0]))
    assert set(out) == {("arima", 1), ("arima", 2), ("arima", 3)}
    assert out[("arima", 3)].mae == pytest.approx(3.0)
    assert out[("arima", 2)].slice_key == "h2"


def test_best_model_per_series() -> None:
    records = (
        _records("naive", [10.0, 10.0])
        + _records("arima", [1.0, 2.0])
        + _records("sur", [None, None])
        + _records("naive", [1.0], region="Albany")
        + _records("arima", [3.0], region="Albany")
    )
    best = best_model_per_series(records)
    assert best == {("Boston", "conventional"): "arima", ("Albany", "conventional"): "naive"}


def test_best_model_tie_breaks_by_name() -> None:
    records = _records("tslm_fourier", [2.0]) + _records("arima", [2.0])
    assert best_model_per_series(records) == {("Boston", "conventional"): "arima"}


def test_all_abstained_series_has_no_winner() -> None:
    assert best_model_per_series(_records("sur", [None])) == {}


def test_model_win_counts() -> None:
    records = (
        _records("arima", [1.0], region="A") + _records("naive", [2.0], region="A")
        + _records("arima", [1.0], region="B") + _records("naive", [2.0], region="B")
        + _records("arima", [3.0], region="C") + _records("naive", [2.0], region="C")
    )
    assert model_win_counts(records) == {"arima": 2, "naive": 1}
