"""
Tests for the per-series forecasting models.

What we test
------------
1. NaiveModel: every forecast equals the last training volume (zero
   included); abstains when never fitted on data.
2. ArimaModel (none / price / fourier): forecasts have the test length, are
   positive and finite; order and IC are exposed after fit; Fourier K is
   within 1..max_k; description reflects drift/mean.
3. TslmFourierModel: recovers a (near) noise-free trend + Fourier signal.
4. Too-short training data → abstention (predict returns None).
5. Models never read the test volume column.
6. information_criterion and select_differencing helpers (the KPSS call
   raises no FutureWarning).
7. build_series_models skips cross-series models.
"""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm

from avocado_forecaster.backtest.models import (
    MIN_TRAIN_WEEKS,
    ArimaModel,
    NaiveModel,
    TslmFourierModel,
    build_series_models,
    information_criterion,
    select_differencing,
)
from avocado_forecaster.backtest.splits import compute_cutoff, split_series
from avocado_forecaster.config import ArimaConfig, FourierConfig
from avocado_forecaster.features.calendar import add_calendar_features, weekly_calendar
from avocado_forecaster.features.fourier import fourier_terms

_ARIMA = ArimaConfig(max_p=1, max_d=1, max_q=1, maxiter=50)
_FOURIER = FourierConfig(max_k=2)


# ── Helpers ────────────────────────────────────────────────────────────────────

@pytest.fixture
def train_test(panel: pd.DataFrame) -> tuple[pd.DataFrame, pd.DataFrame]:
    calendar = weekly_calendar(panel)
    features = add_calendar_features(panel, calendar)
    plan = compute_cutoff(calendar, 48, 12)
    series = features[(features["region"] == "TotalUS") & (features["type"] == "conventional")]
    return split_series(series, plan)


def _without_volume(test: pd.DataFrame) -> pd.DataFrame:
    return test.drop(columns=["volume", "log_volume"])


def _assert_valid_forecast(forecast: list[float] | None, n: int) -> None:
    assert forecast is not None
    assert len(forecast) == n
    assert all(np.isfinite(v) and v > 0 for v in forecast)


# ── NaiveModel ─────────────────────────────────────────────────────────────────

def test_naive_repeats_last_value(train_test) -> None:
    train, test = train_test
    model = NaiveModel()
    model.fit(train)
    forecast = model.predict(test)
    assert forecast == pytest.approx([train["volume"].iloc[-1]] * len(test))


def test_naive_keeps_zero_last_volume() -> None:
    train = pd.DataFrame({"volume": [5.0, 3.0, 0.0]})
    model = NaiveModel()
    model.fit(train)
    assert model.predict(pd.DataFrame({"trend": [4, 5]})) == [0.0, 0.0]


def test_naive_abstains_on_empty_train(train_test) -> None:
    _, test = train_test
    model = NaiveModel()
    model.fit(test.iloc[0:0])
    assert model.predict(test) is None


def test_naive_description() -> None:
    assert NaiveModel().description == "NAIVE"


# ── ArimaModel ─────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("exog, name", [
    ("none", "arima"),
    ("price", "arima_price"),
    ("fourier", "arima_fourier"),
])
def test_arima_forecast_shape(train_test, exog: str, name: str) -> None:
    train, test = train_test
    model = ArimaModel(exog, _ARIMA, _FOURIER)
    assert model.name == name
    model.fit(train)
    assert model.order is not None
    assert model.ic_value is not None and np.isfinite(model.ic_value)
    _assert_valid_forecast(model.predict(_without_volume(test)), len(test))


def test_arima_order_within_grid(train_test) -> None:
    train, _ = train_test
    model = ArimaModel("none", _ARIMA, _FOURIER)
    model.fit(train)
    p, d, q = model.order
    assert 0 <= p <= _ARIMA.max_p
    assert 0 <= d <= _ARIMA.max_d
    assert 0 <= q <= _ARIMA.max_q


def test_arima_fourier_k_within_range(train_test) -> None:
    train, _ = train_test
    model = ArimaModel("fourier", _ARIMA, _FOURIER)
    model.fit(train)
    assert model.fourier_k in range(1, _FOURIER.max_k + 1)
    assert f"K={model.fourier_k}" in model.description


def test_arima_description_reflects_d(train_test) -> None:
    train, _ = train_test
    model = ArimaModel("none", _ARIMA, _FOURIER)
    model.fit(train)
    _, d, _ = model.order
    assert ("w/ mean" in model.description) == (d == 0)
    assert ("w/ drift" in model.description) == (d == 1)


def test_arima_abstains_on_short_train(train_test) -> None:
    train, test = train_test
    model = ArimaModel("none", _ARIMA, _FOURIER)
    model.fit(train.iloc[: MIN_TRAIN_WEEKS - 1])
    assert model.order is None
    assert model.predict(test) is None
    assert "abstained" in model.description


def test_arima_rejects_unknown_exog() -> None:
    with pytest.raises(ValueError):
        ArimaModel("weather")


def test_arima_refit_resets_state(train_test) -> None:
    train, test = train_test
    model = ArimaModel("none", _ARIMA, _FOURIER)
    model.fit(train)
    model.fit(train.iloc[:3])
    assert model.predict(test) is None


# ── TslmFourierModel ───────────────────────────────────────────────────────────

def test_tslm_recovers_exact_signal() -> None:
    trend = pd.Series(np.arange(60))
    wave = fourier_terms(trend, 52.18, 1)
    noise = np.random.default_rng(1).normal(0.0, 1e-4, 60)
    log_volume = 8.0 + 0.01 * trend + 0.3 * wave["fourier_sin_1"] - 0.2 * wave["fourier_cos_1"] + noise
    frame = pd.DataFrame({"trend": trend, "log_volume": log_volume, "volume": np.exp(log_volume)})

    model = TslmFourierModel(_FOURIER, "aic")
    model.fit(frame.iloc[:48])
    forecast = model.predict(frame.iloc[48:][["trend"]])
    assert forecast == pytest.approx(frame["volume"].iloc[48:].tolist(), rel=1e-3)
    assert model.fourier_k in (1, 2)


def test_tslm_forecast_shape(train_test) -> None:
    train, test = train_test
    model = TslmFourierModel(_FOURIER)
    model.fit(train)
    _assert_valid_forecast(model.predict(_without_volume(test)), len(test))
    assert model.description.startswith("TSLM")


def test_tslm_abstains_on_short_train(train_test) -> None:
    train, test = train_test
    model = TslmFourierModel(_FOURIER)
    model.fit(train.iloc[:5])
    assert model.predict(test) is None


# ── Helpers ────────────────────────────────────────────────────────────────────

def test_select_differencing_stationary_noise() -> None:
    rng = np.random.default_rng(0)
    assert select_differencing(rng.normal(size=200), max_d=1, alpha=0.01) == 0


def test_select_differencing_random_walk() -> None:
    rng = np.random.default_rng(0)
    walk = np.cumsum(rng.normal(size=200)) + 0.5 * np.arange(200)
    assert select_differencing(walk, max_d=1, alpha=0.05) == 1


def test_select_differencing_emits_no_future_warning() -> None:
    rng = np.random.default_rng(1)
    walk = np.cumsum(rng.normal(size=120)) + 0.5 * np.arange(120)
    with warnings.catch_warnings():
        warnings.simplefilter("error", FutureWarning)
        assert select_differencing(walk, max_d=2, alpha=0.05) >= 1


def test_select_differencing_respects_max_d() -> None:
    walk = np.cumsum(np.cumsum(np.ones(100)))
    assert select_differencing(walk, max_d=0, alpha=0.05) == 0


def test_build_series_models_names() -> None:
    models = build_series_models(
        ["naive", "arima", "sur", "tslm_fourier", "ensemble"], _ARIMA, _FOURIER,
    )
    assert [m.name for m in models] == ["naive", "arima", "tslm_fourier"]


def test_information_criterion_ols_aicc() -> None:
    rng = np.random.default_rng(3)
    x = sm.add_constant(np.arange(30, dtype=float))
    result = sm.OLS(rng.normal(size=30) + 0.1 * np.arange(30), x).fit()
    assert information_criterion(result, "aic") == pytest.approx(result.aic)
    assert information_criterion(result, "bic") == pytest.approx(result.bic)
    # k = 2 parameters, n = 30: correction 2*2*3 / 27
    assert information_criterion(result, "aicc") == pytest.approx(result.aic + 12.0 / 27.0)
