"""
Seemingly-unrelated regression (SUR) across all series.

Why a system estimator?
-----------------------
Avocado volumes in different regions and product types are hit by the same
national shocks (holiday promotions, supply disruptions from Mexico, weather).
Fitting each regression separately ignores that the errors are correlated.
SUR stacks one equation per series:

    log_volume_i = a_i + b_i * trend + e_i * log_price_i + Σ_m g_im * month_m + u_i

and estimates all of them jointly by feasible GLS: equation-by-equation OLS
first, then the cross-equation residual covariance is used to re-weight the
stacked system.  Each series keeps its own coefficients (its own price
elasticity e_i); only the error covariance is shared.

Constraints
-----------
- Every equation must cover the same training weeks (guaranteed by the
  shared split cutoff and gap completion).
- The residual covariance is (n_equations × n_equations) estimated from
  ``train_weeks`` residual vectors; it is singular unless
  train_weeks > n_equations.  That condition is checked up front.
"""

from __future__ import annotations

import logging
from typing import Any, Hashable

import numpy as np
import pandas as pd
from linearmodels.system import SUR

from avocado_forecaster.features.calendar import inverse_log

log = logging.getLogger(__name__)

_MONTH_COLUMNS = [f"month_{m}" for m in range(2, 13)]  # January is the baseline


def equation_label(key: tuple[Hashable, ...]) -> str:
    """Equation label for a (region, type) key."""
    return "|".join(str(k) for k in key)


def month_dummies(months: pd.Series) -> pd.DataFrame:
    """Indicator columns month_2..month_12 (January baseline)."""
    values = months.to_numpy()
    return pd.DataFrame(
        {f"month_{m}": (values == m).astype(float) for m in range(2, 13)},
        index=months.index,
    )


class SurModel:
    """Joint FGLS regression with one equation per (region, type) series."""

    name = "sur"

    def __init__(self, include_month: bool = True, min_equations: int = 2) -> None:
        self.include_month = include_month
        self.min_equations = min_equations
        self._params: dict[str, pd.Series] = {}
        self._result: Any = None

    @property
    def n_equations(self) -> int:
        return len(self._params)

    def elasticities(self) -> dict[str, float]:
        """Estimated log-price coefficient per equation label."""
        return {
            label: float(params["log_price"])
            for label, params in self._params.items()
            if "log_price" in params.index
        }

    def _design(self, frame: pd.DataFrame) -> pd.DataFrame:
        base = frame[["trend", "log_price"]].reset_index(drop=True).astype(float)
        base.insert(0, "const", 1.0)
        if not self.include_month:
            return base
        dummies = month_dummies(frame["month"].reset_index(drop=True))
        return pd.concat([base, dummies], axis=1)

    def fit(self, train_frames: dict[tuple, pd.DataFrame]) -> None:
        """Estimate the system on each series' training weeks.

        Raises:
            ValueError: If there are fewer than ``min_equations`` series, the
                series have unequal lengths, or there are not more training
                weeks than equations.
        """
        self._params = {}
        self._result = None

        n_eq = len(train_frames)
        if n_eq < self.min_equations:
            raise ValueError(f"SUR needs at least {self.min_equations} series, got {n_eq}.")

        lengths = {len(f) for f in train_frames.values()}
        if len(lengths) != 1:
            raise ValueError(f"SUR equations have unequal training lengths: {sorted(lengths)}")
        n_obs = lengths.pop()
        if n_obs <= n_eq:
            raise ValueError(
                f"SUR residual covariance is singular: {n_obs} training weeks "
                f"for {n_eq} equations (need weeks > equations)."
            )

        equations: dict[str, dict[str, Any]] = {}
        for key, frame in train_frames.items():
            exog = self._design(frame)
            # Months absent from this window would make the design singular.
            empty = [c for c in _MONTH_COLUMNS if c in exog.columns and exog[c].sum() == 0]
            exog = exog.drop(columns=empty)
            dependent = frame["log_volume"].reset_index(drop=True).astype(float)
            equations[equation_label(key)] = {"dependent": dependent, "exog": exog}

        self._result = SUR(equations).fit(method="gls", cov_type="unadjusted")
        self._params = {
            label: eq_result.params for label, eq_result in self._result.equations.items()
        }
        log.info("SUR fitted | equations=%d | weeks=%d", n_eq, n_obs)

    def predict(self, test_frames: dict[tuple, pd.DataFrame]) -> dict[tuple, list[float]]:
        """Forecast each series' held-out weeks on the volume scale.

        Series that were not part of the fitted system are omitted.
        """
        out: dict[tuple, list[float]] = {}
        for key, frame in test_frames.items():
            params = self._params.get(equation_label(key))
            if params is None:
                continue
            design = self._design(frame).reindex(columns=params.index, fill_value=0.0)
            log_fc = design.to_numpy(dtype=float) @ params.to_numpy(dtype=float)
            out[key] = inverse_log(log_fc).tolist()
        return out

    def summary_rows(self) -> list[dict[str, Any]]:
        """One row per equation: label and fitted coefficients (for reports)."""
        rows: list[dict[str, Any]] = []
        for label, params in self._params.items():
            row: dict[str, Any] = {"equation": label}
            row.update({name: float(v) for name, v in params.items() if np.isfinite(v)})
            rows.append(row)
        return rows
