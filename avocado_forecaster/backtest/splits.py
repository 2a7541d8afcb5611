"""
Fixed-cutoff train/test split on the weekly calendar.

Design
------
Every (region, type) series is split at the SAME cutoff week: the first
``train_weeks`` weeks of the global calendar are training data and the next
``test_weeks`` weeks are held out.  With the public dataset (169 weeks,
2015-01-04 .. 2018-03-25) the defaults give 135 train / 34 test weeks.

A single shared cutoff keeps the SUR system aligned (all equations see the
same training weeks) and makes per-series errors comparable.  There is no
rolling-origin validation.

Leakage prevention
------------------
The structural guarantee is: every test week > train_end.
Models receive only the train frame for fitting; the test frame supplies
exogenous regressors (price, trend, month) for the horizon, and its volume
column is used solely to score forecasts.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class SplitPlan:
    """The shared train/test cutoff.

    Attributes:
        train_start: First training week.
        train_end:   Last training week (the cutoff).
        test_start:  First held-out week.
        test_end:    Last held-out week.
        train_weeks: Number of training weeks.
        test_weeks:  Number of held-out weeks (the forecast horizon).
    """

    train_start: pd.Timestamp
    train_end: pd.Timestamp
    test_start: pd.Timestamp
    test_end: pd.Timestamp
    train_weeks: int
    test_weeks: int


def compute_cutoff(
    calendar: pd.DatetimeIndex,
    train_weeks: int,
    test_weeks: int,
) -> SplitPlan:
    """Place the cutoff after the first ``train_weeks`` calendar weeks.

    Weeks beyond ``train_weeks + test_weeks`` (if any) are ignored.

    Raises:
        ValueError: If parameters are < 1 or the calendar is too short.
    """
    if train_weeks < 1:
        raise ValueError(f"train_weeks must be >= 1, got {train_weeks}")
    if test_weeks < 1:
        raise ValueError(f"test_weeks must be >= 1, got {test_weeks}")
    if len(calendar) < train_weeks + test_weeks:
        raise ValueError(
            f"Calendar has {len(calendar)} weeks; need at least "
            f"{train_weeks + test_weeks} (train={train_weeks}, test={test_weeks})."
        )

    weeks = pd.DatetimeIndex(sorted(calendar))
    return SplitPlan(
        train_start=weeks[0],
        train_end=weeks[train_weeks - 1],
        test_start=weeks[train_weeks],
        test_end=weeks[train_weeks + test_weeks - 1],
        train_weeks=train_weeks,
        test_weeks=test_weeks,
    )


def split_series(
    series: pd.DataFrame,
    plan: SplitPlan,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Partition one series into (train, test) frames by the plan's cutoff."""
    ordered = series.sort_values("week")
    train_mask = (ordered["week"] >= plan.train_start) & (ordered["week"] <= plan.train_end)
    test_mask = (ordered["week"] >= plan.test_start) & (ordered["week"] <= plan.test_end)
    train = ordered[train_mask].reset_index(drop=True)
    test = ordered[test_mask].reset_index(drop=True)
    return train, test
