"""
Pooled price-elasticity regression.

    log(volume) ~ log(price) * C(type) + trend + C(month) + C(region)

In a log-log model the log(price) coefficient is the price elasticity of
volume: -1.5 means a 1% price rise goes with a 1.5% fall in units sold.
The interaction with ``type`` gives organic its own elasticity.  Region
fixed effects absorb market size; month effects absorb seasonality.

This is a descriptive benchmark for the per-series SUR elasticities, not a
causal demand estimate (price and volume are jointly determined).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd
import statsmodels.formula.api as smf

log = logging.getLogger(__name__)

POOLED_FORMULA = "log_volume ~ log_price * C(type) + trend + C(month) + C(region)"


@dataclass(frozen=True)
class ElasticityResult:
    """Pooled regression output.

    Attributes:
        elasticities: Product type → log-price coefficient for that type.
        r_squared:    In-sample R².
        n_obs:        Observations used.
        coefficients: Full coefficient table (estimate, std_error, p_value).
    """

    elasticities: dict[str, float]
    r_squared: float
    n_obs: int
    coefficients: pd.DataFrame


def fit_pooled_regression(frame: pd.DataFrame, formula: str = POOLED_FORMULA) -> ElasticityResult:
    """Fit the pooled OLS on the feature frame.

    Raises:
        ValueError: If the frame has fewer than two product types or regions
            (the formula's categorical terms would be degenerate).
    """
    if frame["type"].nunique() < 2:
        raise ValueError("Pooled regression needs at least two product types.")
    if frame["region"].nunique() < 2:
        raise ValueError("Pooled regression needs at least two regions.")

    result = smf.ols(formula, data=frame).fit()

    types = sorted(frame["type"].unique())
    base = float(result.params["log_price"])
    elasticities = {types[0]: base}
    for ptype in types[1:]:
        term = f"log_price:C(type)[T.{ptype}]"
        elasticities[ptype] = base + float(result.params.get(term, 0.0))

    coefficients = pd.DataFrame({
        "estimate":  result.params,
        "std_error": result.bse,
        "p_value":   result.pvalues,
    })
    coefficients.index.name = "term"

    log.info(
        "Pooled regression | n=%d | R2=%.3f | elasticities=%s",
        int(result.nobs), result.rsquared,
        {k: round(v, 3) for k, v in elasticities.items()},
    )
    return ElasticityResult(
        elasticities=elasticities,
        r_squared=float(result.rsquared),
        n_obs=int(result.nobs),
        coefficients=coefficients,
    )
