"""
Tests for the fixed-cutoff train/test split.

What we test
------------
1. Cutoff placement: train_end is the train_weeks-th calendar week.
2. Leakage: every test week is strictly after every train week.
3. Sizes: a complete series splits into train_weeks / test_weeks rows.
4. Weeks beyond train + test are ignored.
5. Calendar too short or non-positive sizes → ValueError.
"""

from __future__ import annotations

import pandas as pd
import pytest

from avocado_forecaster.backtest.splits import compute_cutoff, split_series
from avocado_forecaster.features.calendar import weekly_calendar


def _calendar(n: int) -> pd.DatetimeIndex:
    return pd.DatetimeIndex(pd.date_range("2015-01-04", periods=n, freq="7D"), name="week")


def test_cutoff_positions() -> None:
    calendar = _calendar(169)
    plan = compute_cutoff(calendar, 135, 34)
    assert plan.train_start == calendar[0]
    assert plan.train_end == calendar[134]
    assert plan.test_start == calendar[135]
    assert plan.test_end == calendar[168]
    assert plan.train_weeks == 135 and plan.test_weeks == 34


def test_public_dataset_dates() -> None:
    plan = compute_cutoff(_calendar(169), 135, 34)
    assert plan.test_end == pd.Timestamp("2018-03-25")


def test_extra_weeks_ignored() -> None:
    calendar = _calendar(20)
    plan = compute_cutoff(calendar, 10, 5)
    assert plan.test_end == calendar[14]


def test_calendar_too_short() -> None:
    with pytest.raises(ValueError, match="need at least"):
        compute_cutoff(_calendar(10), 8, 5)


@pytest.mark.parametrize("train, test", [(0, 5), (5, 0)])
def test_non_positive_sizes(train: int, test: int) -> None:
    with pytest.raises(ValueError):
        compute_cutoff(_calendar(20), train, test)


def test_split_sizes_and_no_leakage(panel: pd.DataFrame) -> None:
    plan = compute_cutoff(weekly_calendar(panel), 48, 12)
    series = panel[(panel["region"] == "Boston") & (panel["type"] == "conventional")]
    train, test = split_series(series, plan)
    assert len(train) == 48
    assert len(test) == 12
    assert train["week"].max() < test["week"].min()
    assert (test["week"] > plan.train_end).all()
    assert train["week"].is_monotonic_increasing
