"""
Fourier seasonal regressors.

For weekly data the annual cycle has a non-integer period (≈52.18 weeks), so
seasonal dummies or a seasonal ARIMA term do not fit it well.  A handful of
sine/cosine pairs approximates the cycle smoothly:

  fourier_sin_j(t) = sin(2π j t / period)
  fourier_cos_j(t) = cos(2π j t / period)     for j = 1..K

K controls smoothness: K = 1 is a single annual wave, larger K allows sharper
seasonal peaks (e.g. the Super Bowl / Cinco de Mayo spikes in avocado volume).
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def fourier_columns(k: int) -> list[str]:
    """Column names produced by ``fourier_terms(..., k)`` in order."""
    cols: list[str] = []
    for j in range(1, k + 1):
        cols.extend([f"fourier_sin_{j}", f"fourier_cos_{j}"])
    return cols


def fourier_terms(trend, period: float, k: int) -> pd.DataFrame:
    """Build 2*k Fourier regressors from an integer time index.

    Args:
        trend:  Time index (e.g. the ``trend`` column).  Using the shared
                calendar index keeps train and test terms on one phase.
        period: Seasonal period in observations.
        k:      Number of sine/cosine pairs.

    Returns:
        DataFrame indexed like ``trend`` (when it is a Series) with columns
        from ``fourier_columns(k)``.

    Raises:
        ValueError: If ``k < 1`` or ``2 * k > period``.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if 2 * k > period:
        raise ValueError(f"k={k} too large for period={period} (need 2k <= period)")

    index = trend.index if isinstance(trend, pd.Series) else None
    t = np.asarray(trend, dtype=float)
    data: dict[str, np.ndarray] = {}
    for j in range(1, k + 1):
        angle = 2.0 * np.pi * j * t / period
        data[f"fourier_sin_{j}"] = np.sin(angle)
        data[f"fourier_cos_{j}"] = np.cos(angle)
    return pd.DataFrame(data, index=index)
