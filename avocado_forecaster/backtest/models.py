"""
Per-series forecasting models.

Every model answers the same question for ONE (region, type) series: given
the 135 training weeks, what are weekly volumes over the 34 held-out weeks?

  NaiveModel        → "Next week looks like last week."
                       The yardstick every other model must beat.

  ArimaModel        → "Volume is autocorrelated; its own past predicts it."
    exog="none"        univariate ARIMA
    exog="price"       regression on log(price) with ARIMA errors
                       (tests whether knowing the price path helps)
    exog="fourier"     regression on annual Fourier terms with ARIMA errors
                       (tests whether smooth yearly seasonality helps)

  TslmFourierModel  → "Volume is a trend plus a yearly wave."
                       OLS on trend + Fourier terms, no error dynamics.

All models are fit on log(volume) and forecasts are mapped back with
``inverse_log`` before they are returned.

Interface contract
------------------
  fit(train: DataFrame) → None
    ``train`` holds one series' training weeks with the calendar features
    (``trend``, ``month``, ``log_volume``, ``log_price``).

  predict(test: DataFrame) → list[float] | None
    ``test`` holds the held-out weeks.  Only exogenous columns (``trend``,
    ``log_price``, ``month``) are read; ``volume`` is never touched.
    Returns one forecast per test row on the volume scale, or None when
    the model abstains (too little data or every candidate fit failed).

Order selection
---------------
Differencing order d is chosen with repeated KPSS stationarity tests (as in
the Hyndman–Khandakar auto-ARIMA procedure).  With d fixed, every (p, q) in
the configured grid is fit and the one minimising the information criterion
(AICc by default) wins.  A constant is included when d = 0 and a drift term
when d = 1.  Candidates that raise numerical errors are skipped.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    InterpolationWarning,
    ValueWarning,
)
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.stattools import kpss

from avocado_forecaster.config import ArimaConfig, FourierConfig
from avocado_forecaster.features.calendar import inverse_log
from avocado_forecaster.features.fourier import fourier_terms

log = logging.getLogger(__name__)

# Fewer training weeks than this → every model except naive abstains.
MIN_TRAIN_WEEKS = 10

_EXOG_MODES = ("none", "price", "fourier")


# ── Helpers ────────────────────────────────────────────────────────────────────

def information_criterion(result: Any, criterion: str) -> float:
    """Read (or derive) the requested criterion from a fitted results object.

    OLS results do not expose AICc, so it is computed from AIC:
    AICc = AIC + 2k(k+1) / (n - k - 1).
    """
    if criterion == "aic":
        return float(result.aic)
    if criterion == "bic":
        return float(result.bic)
    aicc = getattr(result, "aicc", None)
    if aicc is not None:
        return float(aicc)
    k = float(result.df_model + result.k_constant)
    n = float(result.nobs)
    if n - k - 1 <= 0:
        return float("inf")
    return float(result.aic + 2.0 * k * (k + 1.0) / (n - k - 1.0))


def select_differencing(y: np.ndarray, max_d: int, alpha: float) -> int:
    """Smallest d in 0..max_d for which the KPSS test does not reject stationarity."""
    x = np.asarray(y, dtype=float)
    d = 0
    while d < max_d:
        if len(x) < 4 or np.ptp(x) == 0.0:
            break
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", InterpolationWarning)
            result = kpss(x, regression="c", nlags="auto", result_object=True)
        if result.pvalue >= alpha:
            break
        x = np.diff(x)
        d += 1
    return d


def _quiet_fit(model: ARIMA, maxiter: int):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        warnings.simplefilter("ignore", ValueWarning)
        warnings.simplefilter("ignore", UserWarning)
        warnings.simplefilter("ignore", RuntimeWarning)
        return model.fit(method_kwargs={"maxiter": maxiter})


# ── Models ─────────────────────────────────────────────────────────────────────

class NaiveModel:
    """Naive baseline: every forecast equals the last training volume."""

    name = "naive"

    def __init__(self) -> None:
        self._last: float | None = None

    @property
    def description(self) -> str:
        return "NAIVE"

    def fit(self, train: pd.DataFrame) -> None:
        self._last = None
        if not train.empty:
            self._last = float(train["volume"].iloc[-1])

    def predict(self, test: pd.DataFrame) -> list[float] | None:
        if self._last is None:
            return None
        return [self._last] * len(test)


class ArimaModel:
    """ARIMA on log(volume), optionally with price or Fourier regressors.

    Attributes after fit:
        order:     Selected (p, d, q), or None if no candidate fit.
        fourier_k: Selected number of Fourier pairs (exog="fourier" only).
        ic_value:  Criterion value of the selected candidate.
    """

    def __init__(
        self,
        exog: str = "none",
        arima: ArimaConfig | None = None,
        fourier: FourierConfig | None = None,
    ) -> None:
        if exog not in _EXOG_MODES:
            raise ValueError(f"exog must be one of {_EXOG_MODES}, got '{exog}'")
        self.exog = exog
        self._cfg = arima or ArimaConfig()
        self._fourier = fourier or FourierConfig()
        self.name = {"none": "arima", "price": "arima_price", "fourier": "arima_fourier"}[exog]
        self._reset()

    def _reset(self) -> None:
        self._result: Any = None
        self.order: tuple[int, int, int] | None = None
        self.fourier_k: int | None = None
        self.ic_value: float | None = None

    @property
    def description(self) -> str:
        if self.order is None:
            return "ARIMA(abstained)"
        p, d, q = self.order
        label = f"ARIMA({p},{d},{q})"
        if d == 0:
            label += " w/ mean"
        elif d == 1:
            label += " w/ drift"
        if self.exog == "price":
            label = f"LM w/ {label} errors [log_price]"
        elif self.exog == "fourier":
            label = f"LM w/ {label} errors [fourier K={self.fourier_k}]"
        return label

    def _exog_frame(self, frame: pd.DataFrame, k: int | None) -> np.ndarray | None:
        if self.exog == "price":
            return frame[["log_price"]].to_numpy(dtype=float)
        if self.exog == "fourier":
            return fourier_terms(frame["trend"], self._fourier.period, k).to_numpy()
        return None

    def fit(self, train: pd.DataFrame) -> None:
        self._reset()
        if len(train) < MIN_TRAIN_WEEKS:
            return

        y = train["log_volume"].to_numpy(dtype=float)
        d = select_differencing(y, self._cfg.max_d, self._cfg.kpss_alpha)
        trend = "c" if d == 0 else ("t" if d == 1 else "n")
        k_values: list[int | None] = (
            list(range(1, self._fourier.max_k + 1)) if self.exog == "fourier" else [None]
        )

        best_ic = float("inf")
        for k in k_values:
            exog = self._exog_frame(train, k)
            for p in range(self._cfg.max_p + 1):
                for q in range(self._cfg.max_q + 1):
                    try:
                        result = _quiet_fit(
                            ARIMA(y, exog=exog, order=(p, d, q), trend=trend),
                            self._cfg.maxiter,
                        )
                    except (ValueError, np.linalg.LinAlgError) as exc:
                        log.debug("%s (%d,%d,%d) k=%s failed: %s", self.name, p, d, q, k, exc)
                        continue
                    ic = information_criterion(result, self._cfg.information_criterion)
                    if np.isfinite(ic) and ic < best_ic:
                        best_ic = ic
                        self._result = result
                        self.order = (p, d, q)
                        self.fourier_k = k
                        self.ic_value = ic

    def predict(self, test: pd.DataFrame) -> list[float] | None:
        if self._result is None:
            return None
        exog = self._exog_frame(test, self.fourier_k)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ValueWarning)
            log_fc = self._result.forecast(steps=len(test), exog=exog)
        return inverse_log(log_fc).tolist()


class TslmFourierModel:
    """Time-series linear model: log(volume) ~ 1 + trend + Fourier(K).

    K is chosen over 1..max_k by the configured information criterion.
    """

    name = "tslm_fourier"

    def __init__(
        self,
        fourier: FourierConfig | None = None,
        criterion: str = "aicc",
    ) -> None:
        self._fourier = fourier or FourierConfig()
        self._criterion = criterion
        self._result: Any = None
        self.fourier_k: int | None = None
        self.ic_value: float | None = None

    @property
    def description(self) -> str:
        if self.fourier_k is None:
            return "TSLM(abstained)"
        return f"TSLM trend + fourier K={self.fourier_k}"

    def _design(self, frame: pd.DataFrame, k: int) -> pd.DataFrame:
        terms = fourier_terms(frame["trend"].reset_index(drop=True), self._fourier.period, k)
        design = pd.concat(
            [frame[["trend"]].reset_index(drop=True).astype(float), terms], axis=1
        )
        return sm.add_constant(design, has_constant="add")

    def fit(self, train: pd.DataFrame) -> None:
        self._result = None
        self.fourier_k = None
        self.ic_value = None
        if len(train) < MIN_TRAIN_WEEKS:
            return

        y = train["log_volume"].to_numpy(dtype=float)
        best_ic = float("inf")
        for k in range(1, self._fourier.max_k + 1):
            try:
                result = sm.OLS(y, self._design(train, k)).fit()
            except (ValueError, np.linalg.LinAlgError) as exc:
                log.debug("tslm_fourier k=%d failed: %s", k, exc)
                continue
            ic = information_criterion(result, self._criterion)
            if np.isfinite(ic) and ic < best_ic:
                best_ic = ic
                self._result = result
                self.fourier_k = k
                self.ic_value = ic

    def predict(self, test: pd.DataFrame) -> list[float] | None:
        if self._result is None or self.fourier_k is None:
            return None
        log_fc = self._result.predict(self._design(test, self.fourier_k))
        return inverse_log(log_fc).tolist()


def build_series_models(
    enabled: list[str],
    arima: ArimaConfig,
    fourier: FourierConfig,
) -> list[Any]:
    """Return fresh instances of every enabled per-series model.

    ``sur`` and ``ensemble`` are cross-series and built by the evaluator.
    """
    factories = {
        "naive":         lambda: NaiveModel(),
        "arima":         lambda: ArimaModel("none", arima, fourier),
        "arima_price":   lambda: ArimaModel("price", arima, fourier),
        "arima_fourier": lambda: ArimaModel("fourier", arima, fourier),
        "tslm_fourier":  lambda: TslmFourierModel(fourier, arima.information_criterion),
    }
    return [factories[name]() for name in enabled if name in factories]
