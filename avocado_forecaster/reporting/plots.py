"""
Static figures for the analysis report (matplotlib, Agg backend).

Every function draws one figure, saves it as PNG to ``path`` and closes it,
returning the written path.  Nothing is shown interactively, so the pipeline
runs headless.

  plot_national_volume       weekly national volume by type
  plot_price_distribution    histogram of average price by type
  plot_price_vs_volume       log price vs log volume scatter
  plot_monthly_profile       seasonal index by month
  plot_accuracy_by_model     RMSE and MAPE bars per model
  plot_forecast_vs_actual    one series: history, test actuals, forecasts
"""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from avocado_forecaster.backtest.metrics import AccuracyMetrics, ForecastRecord  # noqa: E402

_TYPE_COLORS = {"conventional": "#2e7d32", "organic": "#8d6e63"}


def _save(fig, path: Path, dpi: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_national_volume(weekly: pd.DataFrame, path: Path, dpi: int = 110) -> Path:
    """Line chart of ``volume_<type>`` columns from ``national_weekly_totals``."""
    fig, ax = plt.subplots(figsize=(11, 4.5))
    for col in [c for c in weekly.columns if c.startswith("volume_")]:
        ptype = col.removeprefix("volume_")
        ax.plot(weekly.index, weekly[col], label=ptype, color=_TYPE_COLORS.get(ptype))
    ax.set_title("Weekly national volume by type")
    ax.set_xlabel("Week")
    ax.set_ylabel("Units sold")
    ax.legend()
    return _save(fig, path, dpi)


def plot_price_distribution(frame: pd.DataFrame, path: Path, dpi: int = 110) -> Path:
    """Overlaid histograms of average price per product type."""
    fig, ax = plt.subplots(figsize=(8, 4.5))
    for ptype, sub in frame.groupby("type"):
        ax.hist(sub["price"], bins=40, alpha=0.6, label=str(ptype), color=_TYPE_COLORS.get(str(ptype)))
    ax.set_title("Distribution of average price")
    ax.set_xlabel("Average price (USD)")
    ax.set_ylabel("Observations")
    ax.legend()
    return _save(fig, path, dpi)


def plot_price_vs_volume(frame: pd.DataFrame, path: Path, dpi: int = 110) -> Path:
    """Scatter of log price against log volume, coloured by type."""
    fig, ax = plt.subplots(figsize=(7, 5.5))
    for ptype, sub in frame.groupby("type"):
        ax.scatter(
            sub["log_price"], sub["log_volume"],
            s=4, alpha=0.3, label=str(ptype), color=_TYPE_COLORS.get(str(ptype)),
        )
    ax.set_title("log(price) vs log(volume)")
    ax.set_xlabel("log(average price)")
    ax.set_ylabel("log(volume)")
    ax.legend(markerscale=4)
    return _save(fig, path, dpi)


def plot_monthly_profile(profile: pd.DataFrame, path: Path, dpi: int = 110) -> Path:
    """Bar chart of the (month × type) seasonal index."""
    fig, ax = plt.subplots(figsize=(9, 4.5))
    width = 0.8 / max(len(profile.columns), 1)
    for i, ptype in enumerate(profile.columns):
        ax.bar(
            profile.index + i * width - 0.4 + width / 2, profile[ptype],
            width=width, label=str(ptype), color=_TYPE_COLORS.get(str(ptype)),
        )
    ax.axhline(1.0, color="grey", linewidth=0.8, linestyle="--")
    ax.set_xticks(range(1, 13))
    ax.set_title("Seasonal index (mean national volume / annual mean)")
    ax.set_xlabel("Month")
    ax.legend()
    return _save(fig, path, dpi)


def plot_accuracy_by_model(
    metrics_by_model: dict[str, AccuracyMetrics],
    path: Path,
    model_order: list[str] | None = None,
    dpi: int = 110,
) -> Path:
    """Side-by-side bars of pooled RMSE and MAPE for each model."""
    names = [m for m in (model_order or sorted(metrics_by_model)) if m in metrics_by_model]
    rmses = [metrics_by_model[n].rmse or 0.0 for n in names]
    mapes = [(metrics_by_model[n].mape or 0.0) * 100.0 for n in names]

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4.5))
    ax1.bar(names, rmses, color="#5c6bc0")
    ax1.set_title("RMSE by model (all series)")
    ax1.tick_params(axis="x", rotation=35)
    ax2.bar(names, mapes, color="#ef6c00")
    ax2.set_title("MAPE by model (%)")
    ax2.tick_params(axis="x", rotation=35)
    return _save(fig, path, dpi)


def plot_forecast_vs_actual(
    history: pd.DataFrame,
    records: list[ForecastRecord],
    path: Path,
    title: str,
    dpi: int = 110,
) -> Path:
    """Plot one series' training history, test actuals and each model's forecast.

    Args:
        history: The series' rows (``week``, ``volume``) up to the cutoff.
        records: ForecastRecords for this series only (all models).
        title:   Figure title, e.g. ``"TotalUS / conventional"``.
    """
    fig, ax = plt.subplots(figsize=(11, 5))
    ax.plot(history["week"], history["volume"], color="black", linewidth=1.0, label="train")

    by_model: dict[str, list[ForecastRecord]] = {}
    for r in records:
        by_model.setdefault(r.model_name, []).append(r)

    actual = sorted(next(iter(by_model.values()), []), key=lambda r: r.week)
    if actual:
        ax.plot(
            [pd.Timestamp(r.week) for r in actual], [r.actual_value for r in actual],
            color="black", linestyle="--", linewidth=1.0, label="actual",
        )
    for name, recs in by_model.items():
        recs = sorted((r for r in recs if r.predicted_value is not None), key=lambda r: r.week)
        if recs:
            ax.plot(
                [pd.Timestamp(r.week) for r in recs], [r.predicted_value for r in recs],
                linewidth=1.2, label=name,
            )
    ax.set_title(title)
    ax.set_xlabel("Week")
    ax.set_ylabel("Units sold")
    ax.legend(fontsize=8, ncol=2)
    return _save(fig, path, dpi)
