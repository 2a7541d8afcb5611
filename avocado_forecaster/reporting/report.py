"""
Markdown analysis report.

``render_markdown_report`` writes ``report.md`` next to the figures it links
to, so the output directory can be zipped or opened in any Markdown viewer.
Sections:

  1. Data             — dataset path, series counts, type summary table
  2. Exploration      — correlations, seasonality, figures
  3. Price elasticity — pooled OLS and SUR summaries (when available)
  4. Model comparison — split, accuracy table, wins per model, figures

Every table is built as a DataFrame of display strings by one of the
``*_table`` functions below; the Markdown renderer emits them with
``DataFrame.to_markdown`` and the PDF renderer (``reporting.pdf``) draws the
same frames, so both documents always show the same numbers.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from avocado_forecaster.analysis.elasticity import ElasticityResult
from avocado_forecaster.backtest.metrics import AccuracyMetrics

log = logging.getLogger(__name__)

REPORT_TITLE = "Avocado Demand Forecasting Report"


@dataclass
class ReportInputs:
    """Everything the report renders; any section may be missing.

    Attributes:
        dataset_path:     Source spreadsheet.
        type_summary:     ``summarize_by_type`` output.
        correlations:     ``price_volume_correlation`` output.
        seasonal_profile: ``monthly_profile`` output.
        top_regions:      ``top_regions`` output.
        elasticity:       Pooled regression result.
        manifest:         Comparison ``manifest.json`` contents.
        sur_coefficients: ``sur_coefficients.csv`` rows (one per equation).
        metrics_by_model: ``slice_by_model`` over the comparison records.
        type_metrics:     ``slice_by_type_and_model`` over the same records.
        figures:          Figure title → PNG path.
    """

    dataset_path: str
    type_summary: pd.DataFrame | None = None
    correlations: pd.DataFrame | None = None
    seasonal_profile: pd.DataFrame | None = None
    top_regions: pd.DataFrame | None = None
    elasticity: ElasticityResult | None = None
    manifest: dict[str, Any] | None = None
    sur_coefficients: pd.DataFrame | None = None
    metrics_by_model: dict[str, AccuracyMetrics] = field(default_factory=dict)
    type_metrics: dict[tuple[str, str], AccuracyMetrics] = field(default_factory=dict)
    figures: dict[str, Path] = field(default_factory=dict)


def _num(v: float | None, spec: str = ",.0f") -> str:
    return "n/a" if v is None else format(v, spec)


def _pct(v: float | None) -> str:
    return "n/a" if v is None else f"{v:.2%}"


def _coef(v: Any) -> str:
    try:
        value = float(v)
    except (TypeError, ValueError):
        return "n/a"
    return f"{value:+.3f}" if math.isfinite(value) else "n/a"


def _figure(title: str, path: Path, report_dir: Path) -> str:
    rel = Path(os.path.relpath(path, report_dir)).as_posix()
    return f"![{title}]({rel})"


def _markdown(table: pd.DataFrame) -> str:
    # Cells are pre-formatted strings; numparse would re-round "-1.250" to "-1.25".
    return table.to_markdown(index=False, disable_numparse=True)


# ── Tables ─────────────────────────────────────────────────────────────────────

def type_summary_table(inputs: ReportInputs) -> pd.DataFrame | None:
    if inputs.type_summary is None:
        return None
    return pd.DataFrame(
        [
            {
                "Type": ptype,
                "Observations": str(int(r["n_obs"])),
                "Regions": str(int(r["n_regions"])),
                "Mean price": f"{r['mean_price']:.2f}",
                "Median price": f"{r['median_price']:.2f}",
                "Mean weekly volume": _num(r["mean_volume"]),
            }
            for ptype, r in inputs.type_summary.iterrows()
        ]
    )


def top_regions_table(inputs: ReportInputs) -> pd.DataFrame | None:
    if inputs.top_regions is None or inputs.top_regions.empty:
        return None
    return pd.DataFrame(
        [
            {"Region": region, "Mean volume": _num(r["mean_volume"]), "Mean price": f"{r['mean_price']:.2f}"}
            for region, r in inputs.top_regions.iterrows()
        ]
    )


def pooled_elasticity_table(inputs: ReportInputs) -> pd.DataFrame | None:
    if inputs.elasticity is None:
        return None
    return pd.DataFrame(
        [
            {"Type": ptype, "Elasticity": f"{v:+.3f}"}
            for ptype, v in sorted(inputs.elasticity.elasticities.items())
        ]
    )


def sur_summary_table(inputs: ReportInputs) -> pd.DataFrame | None:
    """Median / min / max SUR log-price coefficient per product type."""
    sur = (inputs.manifest or {}).get("sur_elasticities") or {}
    if not sur:
        return None
    frame = pd.DataFrame(
        [{"Type": label.split("|", 1)[-1], "value": float(v)} for label, v in sur.items()]
    )
    grouped = frame.groupby("Type")["value"].agg(["count", "median", "min", "max"]).sort_index()
    return pd.DataFrame(
        [
            {
                "Type": ptype,
                "Series": str(int(r["count"])),
                "Median": f"{r['median']:+.3f}",
                "Min": f"{r['min']:+.3f}",
                "Max": f"{r['max']:+.3f}",
            }
            for ptype, r in grouped.iterrows()
        ]
    )


def sur_equation_table(inputs: ReportInputs) -> pd.DataFrame | None:
    """Trend and log-price coefficient of every SUR equation."""
    coefs = inputs.sur_coefficients
    if coefs is None or coefs.empty or "equation" not in coefs.columns:
        return None
    return pd.DataFrame(
        [
            {
                "Equation": str(row["equation"]).replace("|", " / "),
                "Trend": _coef(row.get("trend")),
                "Log price": _coef(row.get("log_price")),
            }
            for _, row in coefs.sort_values("equation").iterrows()
        ]
    )


def _model_names(inputs: ReportInputs) -> list[str]:
    manifest = inputs.manifest or {}
    names = [m for m in manifest.get("model_names", []) if m in inputs.metrics_by_model]
    return names + sorted(set(inputs.metrics_by_model) - set(names))


def accuracy_table(inputs: ReportInputs) -> pd.DataFrame | None:
    """Per-model accuracy over every series, with the number of series won."""
    if inputs.manifest is None:
        return None
    wins = inputs.manifest.get("model_win_counts", {})
    rows = []
    for name in _model_names(inputs):
        m = inputs.metrics_by_model[name]
        rows.append({
            "Model": name,
            "Evaluated": f"{m.n_evaluated}/{m.n_predictions}",
            "RMSE": _num(m.rmse),
            "MAE": _num(m.mae),
            "MAPE": _pct(m.mape),
            "Series won": str(wins.get(name, 0)),
        })
    return pd.DataFrame(rows, columns=["Model", "Evaluated", "RMSE", "MAE", "MAPE", "Series won"])


def type_mape_table(inputs: ReportInputs) -> pd.DataFrame | None:
    if inputs.manifest is None or not inputs.type_metrics:
        return None
    types = sorted({t for t, _ in inputs.type_metrics})
    rows = []
    for name in _model_names(inputs):
        row = {"Model": name}
        for t in types:
            m = inputs.type_metrics.get((t, name))
            row[t] = "n/a" if m is None else _pct(m.mape)
        rows.append(row)
    return pd.DataFrame(rows, columns=["Model", *types])


def split_summary(manifest: dict[str, Any]) -> str:
    split = manifest.get("split", {})
    return (
        f"Train {split.get('train_start')} to {split.get('train_end')} "
        f"({split.get('train_weeks')} weeks); test {split.get('test_start')} to "
        f"{split.get('test_end')} ({split.get('test_weeks')} weeks). "
        f"{manifest.get('n_series', 0)} series evaluated, "
        f"{len(manifest.get('skipped_series', []))} skipped."
    )


def report_tables(inputs: ReportInputs) -> list[tuple[str, pd.DataFrame]]:
    """Every available table with its caption, in report order."""
    captioned = [
        ("Summary by product type", type_summary_table(inputs)),
        ("Largest markets by mean weekly volume", top_regions_table(inputs)),
        ("Pooled OLS price elasticity", pooled_elasticity_table(inputs)),
        ("SUR log-price coefficients across series", sur_summary_table(inputs)),
        ("SUR coefficients per equation", sur_equation_table(inputs)),
        ("Accuracy by model", accuracy_table(inputs)),
        ("MAPE by product type", type_mape_table(inputs)),
    ]
    return [(caption, table) for caption, table in captioned if table is not None]


# ── Sections ───────────────────────────────────────────────────────────────────

def _data_section(inputs: ReportInputs) -> list[str]:
    lines = ["## Data", "", f"Source: `{inputs.dataset_path}`", ""]
    types = type_summary_table(inputs)
    if types is not None:
        lines.extend([_markdown(types), ""])
    regions = top_regions_table(inputs)
    if regions is not None:
        lines.extend(["Largest markets by mean weekly volume:", "", _markdown(regions), ""])
    return lines


def _exploration_section(inputs: ReportInputs, report_dir: Path) -> list[str]:
    lines = ["## Exploration", ""]
    if inputs.correlations is not None:
        for ptype, r in inputs.correlations.iterrows():
            lines.append(
                f"- {ptype}: within-region correlation of log price and log volume "
                f"r = {r['corr_log_price_log_volume']:+.3f}"
            )
        lines.append("")
    if inputs.seasonal_profile is not None:
        profile = inputs.seasonal_profile
        for ptype in profile.columns:
            peak, trough = int(profile[ptype].idxmax()), int(profile[ptype].idxmin())
            lines.append(
                f"- {ptype}: volume peaks in month {peak} "
                f"({profile[ptype].max():.2f}x average) and is lowest in month {trough} "
                f"({profile[ptype].min():.2f}x)"
            )
        lines.append("")
    for title in ("National volume", "Price distribution", "Price vs volume", "Seasonality"):
        if title in inputs.figures:
            lines.extend([_figure(title, inputs.figures[title], report_dir), ""])
    return lines


def _elasticity_section(inputs: ReportInputs) -> list[str]:
    lines = ["## Price elasticity", ""]
    pooled = pooled_elasticity_table(inputs)
    if pooled is None:
        lines.extend(["Pooled regression not available.", ""])
    else:
        e = inputs.elasticity
        lines.extend([f"Pooled OLS (n = {e.n_obs}, R² = {e.r_squared:.3f}):", "", _markdown(pooled), ""])

    sur = sur_summary_table(inputs)
    if sur is not None:
        lines.extend(["SUR log-price coefficients across series:", "", _markdown(sur), ""])
    equations = sur_equation_table(inputs)
    if equations is not None:
        lines.extend(["SUR coefficients per equation:", "", _markdown(equations), ""])
    return lines


def _comparison_section(inputs: ReportInputs, report_dir: Path) -> list[str]:
    lines = ["## Model comparison", ""]
    if inputs.manifest is None:
        lines.extend(["No comparison run found; run `avocado-forecaster compare` first.", ""])
        return lines

    lines.extend([split_summary(inputs.manifest), "", _markdown(accuracy_table(inputs)), ""])

    by_type = type_mape_table(inputs)
    if by_type is not None:
        lines.extend(["MAPE by product type:", "", _markdown(by_type), ""])

    for title, path in inputs.figures.items():
        if title.startswith("Accuracy") or title.startswith("Forecast"):
            lines.extend([_figure(title, path, report_dir), ""])
    return lines


def render_markdown_report(inputs: ReportInputs, path: Path) -> Path:
    """Write the Markdown report to ``path`` and return it.

    Figure links are made relative to ``path``'s directory.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    report_dir = path.parent
    generated = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    lines = [f"# {REPORT_TITLE}", "", f"_Generated {generated}_", ""]
    lines.extend(_data_section(inputs))
    lines.extend(_exploration_section(inputs, report_dir))
    lines.extend(_elasticity_section(inputs))
    lines.extend(_comparison_section(inputs, report_dir))

    path.write_text("\n".join(lines), encoding="utf-8")
    log.info("Markdown report written: %s", path)
    return path
