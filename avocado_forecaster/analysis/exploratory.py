"""
Exploratory summaries of the avocado panel.

These tables back the exploratory section of the report.  All functions take
the feature frame produced by ``add_calendar_features`` (or the raw loader
output where noted) and return small pandas DataFrames.

Regional aggregates
-------------------
The public dataset mixes cities, multi-state regions and ``TotalUS`` in the
same ``region`` column, so naive sums double count.  National figures use the
``TotalUS`` rows when they exist and fall back to summing all regions.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

NATIONAL_REGION = "TotalUS"


def _national_rows(frame: pd.DataFrame) -> pd.DataFrame:
    national = frame[frame["region"] == NATIONAL_REGION]
    return national if not national.empty else frame


def summarize_by_type(frame: pd.DataFrame) -> pd.DataFrame:
    """Price and volume summary per product type (loader output is enough).

    Columns: n_obs, n_regions, mean_price, median_price, std_price,
    mean_volume, median_volume, total_volume.
    """
    grouped = frame.groupby("type")
    out = pd.DataFrame({
        "n_obs":         grouped.size(),
        "n_regions":     grouped["region"].nunique(),
        "mean_price":    grouped["price"].mean(),
        "median_price":  grouped["price"].median(),
        "std_price":     grouped["price"].std(),
        "mean_volume":   grouped["volume"].mean(),
        "median_volume": grouped["volume"].median(),
        "total_volume":  _national_rows(frame).groupby("type")["volume"].sum(),
    })
    out.index.name = "type"
    return out


def price_volume_correlation(frame: pd.DataFrame) -> pd.DataFrame:
    """Pearson correlation of log price and log volume, per type.

    Computed within region (region means removed) so the coefficient reflects
    week-to-week co-movement rather than big markets having different prices.
    """
    rows = []
    for ptype, sub in frame.groupby("type"):
        demeaned = sub[["log_price", "log_volume"]] - sub.groupby("region")[
            ["log_price", "log_volume"]
        ].transform("mean")
        corr = demeaned["log_price"].corr(demeaned["log_volume"])
        rows.append({"type": ptype, "n_obs": len(sub), "corr_log_price_log_volume": corr})
    return pd.DataFrame(rows).set_index("type")


def monthly_profile(frame: pd.DataFrame) -> pd.DataFrame:
    """Seasonal index: mean national volume per month relative to the annual mean.

    Returns a (month × type) table where 1.0 is an average month.
    """
    national = _national_rows(frame)
    by_month = national.groupby(["month", "type"])["volume"].mean().unstack("type")
    return by_month / by_month.mean()


def top_regions(frame: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """The ``n`` regions with the highest mean weekly volume (TotalUS excluded)."""
    regional = frame[frame["region"] != NATIONAL_REGION]
    table = (
        regional.groupby("region")
        .agg(mean_volume=("volume", "mean"), mean_price=("price", "mean"))
        .sort_values("mean_volume", ascending=False)
        .head(n)
    )
    return table


def national_weekly_totals(frame: pd.DataFrame) -> pd.DataFrame:
    """Weekly national volume and volume-weighted price per type.

    Returns a frame indexed by week with columns ``volume_<type>`` and
    ``price_<type>``.
    """
    national = _national_rows(frame)
    weighted = national.assign(revenue=national["price"] * national["volume"])
    grouped = weighted.groupby(["week", "type"]).agg(
        volume=("volume", "sum"), revenue=("revenue", "sum"),
    )
    grouped["price"] = np.where(
        grouped["volume"] > 0, grouped["revenue"] / grouped["volume"], np.nan,
    )
    wide = grouped[["volume", "price"]].unstack("type")
    wide.columns = [f"{metric}_{ptype}" for metric, ptype in wide.columns]
    return wide.sort_index()
