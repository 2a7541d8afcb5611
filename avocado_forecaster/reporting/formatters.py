"""
ASCII terminal formatters for CLI commands.

All formatters accept metrics / result objects and return plain multi-line
strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Reading the accuracy table
--------------------------
RMSE is in weekly units sold and is dominated by the largest markets
(TotalUS alone outweighs every city).  MAPE is scale-free and is the column
to compare when ranking models across regions of different size.
"""

from __future__ import annotations

import pandas as pd

from avocado_forecaster.analysis.elasticity import ElasticityResult
from avocado_forecaster.backtest.metrics import AccuracyMetrics
from avocado_forecaster.backtest.splits import SplitPlan


def _num(v: float | None, spec: str = ",.0f") -> str:
    return "N/A" if v is None else format(v, spec)


def _pct(v: float | None) -> str:
    return "N/A" if v is None else f"{v:.2%}"


# ── Split ─────────────────────────────────────────────────────────────────────


def format_split(plan: SplitPlan) -> str:
    """One-block description of the shared train/test cutoff."""
    return "\n".join([
        "",
        "=== Train / Test Split ===",
        f"  Train: {plan.train_start.date()} .. {plan.train_end.date()}  ({plan.train_weeks} weeks)",
        f"  Test:  {plan.test_start.date()} .. {plan.test_end.date()}  ({plan.test_weeks} weeks)",
    ])


# ── Model accuracy ────────────────────────────────────────────────────────────


def format_model_summary(
    metrics_by_model: dict[str, AccuracyMetrics],
    model_order: list[str] | None = None,
) -> str:
    """Format pooled accuracy per model as an ASCII table.

    Args:
        metrics_by_model: Output of ``slice_by_model``.
        model_order:      Display order; defaults to ascending MAPE with
                          abstaining models last.

    Returns:
        Multi-line string.
    """
    lines = ["", "=== Model Accuracy (all series, test weeks) ==="]
    if not metrics_by_model:
        lines.append("  (no forecasts)")
        return "\n".join(lines)

    if model_order is None:
        model_order = sorted(
            metrics_by_model,
            key=lambda n: (metrics_by_model[n].mape is None, metrics_by_model[n].mape or 0.0, n),
        )
    names = [n for n in model_order if n in metrics_by_model]

    header = (
        f"  {'Model':<14}  {'Evaluated':>9}  {'RMSE':>14}  {'MAE':>14}  {'MAPE':>8}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for name in names:
        m = metrics_by_model[name]
        lines.append(
            f"  {name:<14}  {m.n_evaluated:>4}/{m.n_predictions:<4}  "
            f"{_num(m.rmse):>14}  {_num(m.mae):>14}  {_pct(m.mape):>8}"
        )
    return "\n".join(lines)


def format_win_counts(win_counts: dict[str, int], n_series: int) -> str:
    """Format how many series each model wins on RMSE."""
    lines = ["", f"=== Best Model per Series (lowest RMSE, {n_series} series) ==="]
    if not win_counts:
        lines.append("  (no model produced an evaluable forecast)")
        return "\n".join(lines)
    for name, wins in sorted(win_counts.items(), key=lambda kv: (-kv[1], kv[0])):
        share = wins / n_series if n_series else 0.0
        bar = "#" * round(share * 40)
        lines.append(f"  {name:<14}  {wins:>4}  {share:>6.1%}  {bar}")
    return "\n".join(lines)


# ── Exploratory ───────────────────────────────────────────────────────────────


def format_type_summary(summary: pd.DataFrame) -> str:
    """Format ``summarize_by_type`` output."""
    lines = ["", "=== Price and Volume by Type ==="]
    header = (
        f"  {'Type':<14}  {'Obs':>7}  {'Regions':>7}  {'Mean $':>7}  "
        f"{'Median $':>8}  {'Mean volume':>14}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for ptype, row in summary.iterrows():
        lines.append(
            f"  {str(ptype):<14}  {int(row['n_obs']):>7}  {int(row['n_regions']):>7}  "
            f"{row['mean_price']:>7.2f}  {row['median_price']:>8.2f}  "
            f"{row['mean_volume']:>14,.0f}"
        )
    return "\n".join(lines)


def format_correlations(corr: pd.DataFrame) -> str:
    """Format ``price_volume_correlation`` output."""
    lines = ["", "=== log(price) vs log(volume), within-region correlation ==="]
    for ptype, row in corr.iterrows():
        lines.append(f"  {str(ptype):<14}  r = {row['corr_log_price_log_volume']:+.3f}  (n={int(row['n_obs'])})")
    return "\n".join(lines)


# ── Elasticity ────────────────────────────────────────────────────────────────


def format_elasticity(
    result: ElasticityResult,
    sur_elasticities: dict[str, float] | None = None,
) -> str:
    """Format pooled elasticities, optionally with a per-series SUR summary.

    SUR labels are ``"region|type"``; they are summarised per type as the
    median across regions.
    """
    lines = ["", "=== Price Elasticity of Volume ==="]
    lines.append(f"  Pooled OLS: n={result.n_obs}  R2={result.r_squared:.3f}")
    for ptype, value in sorted(result.elasticities.items()):
        lines.append(f"    {ptype:<14}  {value:+.3f}")

    if sur_elasticities:
        by_type: dict[str, list[float]] = {}
        for label, value in sur_elasticities.items():
            by_type.setdefault(label.split("|", 1)[-1], []).append(value)
        lines.append(f"  SUR (median across {len(sur_elasticities)} equations):")
        for ptype, values in sorted(by_type.items()):
            median = float(pd.Series(values).median())
            lines.append(f"    {ptype:<14}  {median:+.3f}  ({len(values)} series)")
    return "\n".join(lines)
