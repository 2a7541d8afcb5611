"""
Weekly gap handling for individual (region, type) series.

A handful of small-market series miss a few weeks.  ARIMA and the SUR system
need regularly spaced observations, so each series is reindexed onto the
global weekly calendar and short interior gaps are linearly interpolated.
Series with a gap longer than ``max_gap_weeks``, or that start late / end
early, are rejected (``None``) and left out of the comparison.
"""

from __future__ import annotations

import logging

import pandas as pd

logger = logging.getLogger(__name__)

_INTERPOLATED = ("price", "volume")


def longest_gap(mask: pd.Series) -> int:
    """Length of the longest run of True values in a boolean Series."""
    longest = run = 0
    for missing in mask:
        run = run + 1 if missing else 0
        longest = max(longest, run)
    return longest


def complete_weekly_series(
    series: pd.DataFrame,
    calendar: pd.DatetimeIndex,
    max_gap_weeks: int,
) -> pd.DataFrame | None:
    """Reindex one series onto ``calendar`` and fill short interior gaps.

    Args:
        series:        Rows of one (region, type) series with ``week``,
                       ``price`` and ``volume`` (other columns are carried
                       forward for constant identifiers only).
        calendar:      Global sorted week index.
        max_gap_weeks: Longest run of consecutive missing weeks that may be
                       interpolated.

    Returns:
        Complete series with one row per calendar week and a boolean
        ``interpolated`` column marking filled weeks, or ``None`` if the
        series cannot be completed.
    """
    if series.empty:
        return None

    region = series["region"].iloc[0]
    ptype = series["type"].iloc[0]
    indexed = series.set_index("week").sort_index()
    full = indexed.reindex(calendar)

    missing = full["volume"].isna()
    full["interpolated"] = missing.to_numpy()
    if not missing.any():
        return full.rename_axis("week").reset_index()

    if missing.iloc[0] or missing.iloc[-1]:
        logger.debug("Series %s/%s does not span the calendar; skipped", region, ptype)
        return None

    gap = longest_gap(missing)
    if gap > max_gap_weeks:
        logger.debug(
            "Series %s/%s has a %d-week gap (> %d); skipped",
            region, ptype, gap, max_gap_weeks,
        )
        return None

    for col in _INTERPOLATED:
        full[col] = full[col].interpolate(method="linear")
    full["region"] = region
    full["type"] = ptype
    logger.debug("Series %s/%s: interpolated %d missing week(s)", region, ptype, int(missing.sum()))
    return full.rename_axis("week").reset_index()
