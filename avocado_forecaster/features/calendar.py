"""
Calendar and transform features shared by every forecasting model.

  trend        0-based index of the week on the global weekly calendar.  Every
               series gets the same trend value for the same week, so trend
               coefficients are comparable across series and the SUR system.
  month        Calendar month (1..12) of the week-ending date; categorical.
  log_volume   Natural log of volume (variance-stabilising; models are fit on
               this scale and forecasts are mapped back with ``inverse_log``).
  log_price    Natural log of average price (elasticity regressor).
"""

from __future__ import annotations

import numpy as np
import pandas as pd

# Zero volume is clipped to this floor before taking logs.
VOLUME_FLOOR = 1.0


def weekly_calendar(frame: pd.DataFrame) -> pd.DatetimeIndex:
    """Return the sorted unique weeks present anywhere in ``frame``."""
    return pd.DatetimeIndex(sorted(frame["week"].unique()), name="week")


def add_calendar_features(
    frame: pd.DataFrame,
    calendar: pd.DatetimeIndex | None = None,
) -> pd.DataFrame:
    """Return a copy of ``frame`` with trend, month, log_volume and log_price.

    Args:
        frame:    Observations with ``week``, ``price`` and ``volume``.
        calendar: Week calendar used for the trend index.  Defaults to
                  ``weekly_calendar(frame)``.

    Raises:
        ValueError: If a week in ``frame`` is missing from ``calendar``.
    """
    if calendar is None:
        calendar = weekly_calendar(frame)

    out = frame.copy()
    positions = pd.Series(np.arange(len(calendar)), index=calendar)
    trend = out["week"].map(positions)
    if trend.isna().any():
        missing = sorted(out.loc[trend.isna(), "week"].dt.date.unique())[:5]
        raise ValueError(f"Weeks not on the calendar: {missing}")

    out["trend"] = trend.astype(int)
    out["month"] = out["week"].dt.month.astype(int)
    out["log_volume"] = log_transform(out["volume"])
    out["log_price"] = np.log(out["price"].astype(float))
    return out


def log_transform(values) -> np.ndarray:
    """Natural log of ``values`` with zeros clipped to ``VOLUME_FLOOR``."""
    arr = np.asarray(values, dtype=float)
    return np.log(np.clip(arr, VOLUME_FLOOR, None))


def inverse_log(values) -> np.ndarray:
    """Map log-scale forecasts back to the volume scale."""
    return np.exp(np.asarray(values, dtype=float))
