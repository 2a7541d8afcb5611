"""
Tests for the Markdown report renderer.

What we test
------------
1. All four section headings are always present.
2. Missing inputs render placeholder text rather than failing.
3. Tables carry the type summary, pooled elasticities, SUR medians and
   per-model accuracy from the manifest, rendered as pipe tables with the
   pre-formatted numbers kept as written.
4. Figure links are relative to the report directory.
5. SUR per-equation coefficients render from CSV string rows; labels are
   made pipe-free and missing coefficients show n/a.
6. report_tables lists only the tables whose inputs are present.
"""

from __future__ import annotations

import re
from pathlib import Path

import pandas as pd

from avocado_forecaster.analysis.elasticity import ElasticityResult
from avocado_forecaster.analysis.exploratory import (
    monthly_profile,
    price_volume_correlation,
    summarize_by_type,
    top_regions,
)
from avocado_forecaster.backtest.metrics import AccuracyMetrics
from avocado_forecaster.reporting.report import (
    ReportInputs,
    render_markdown_report,
    report_tables,
    sur_equation_table,
)


def _has_row(text: str, *cells: str) -> bool:
    pattern = r"\|\s*" + r"\s*\|\s*".join(re.escape(c) for c in cells) + r"\s*\|"
    return re.search(pattern, text) is not None


def _manifest() -> dict:
    return {
        "split": {
            "train_start": "2015-01-04", "train_end": "2015-11-29",
            "test_start": "2015-12-06", "test_end": "2016-02-21",
            "train_weeks": 48, "test_weeks": 12,
        },
        "n_series": 6,
        "skipped_series": [],
        "model_names": ["naive", "sur", "ensemble"],
        "model_win_counts": {"sur": 4, "naive": 2},
        "sur_elasticities": {"Albany|organic": -1.0, "Boston|organic": -1.4},
    }


# ── Empty report ──────────────────────────────────────────────────────────────


def test_minimal_inputs_render_all_sections(tmp_path: Path) -> None:
    out = render_markdown_report(ReportInputs(dataset_path="data/avocado.csv"), tmp_path / "report.md")
    text = out.read_text(encoding="utf-8")
    for heading in ("## Data", "## Exploration", "## Price elasticity", "## Model comparison"):
        assert heading in text
    assert "`data/avocado.csv`" in text
    assert "Pooled regression not available." in text
    assert "No comparison run found" in text


# ── Full report ───────────────────────────────────────────────────────────────


def test_full_report_tables(tmp_path: Path, feature_panel: pd.DataFrame) -> None:
    inputs = ReportInputs(
        dataset_path="avocado.csv",
        type_summary=summarize_by_type(feature_panel),
        correlations=price_volume_correlation(feature_panel),
        seasonal_profile=monthly_profile(feature_panel),
        top_regions=top_regions(feature_panel, n=2),
        elasticity=ElasticityResult({"conventional": -1.25, "organic": -1.1}, 0.97, 360, pd.DataFrame()),
        manifest=_manifest(),
        metrics_by_model={
            "naive": AccuracyMetrics(72, 72, 900.0, 1200.0, 0.081, 1.0e5, 1.0e5, "naive"),
            "sur": AccuracyMetrics(72, 72, 500.0, 700.0, 0.043, 1.0e5, 1.0e5, "sur"),
        },
        type_metrics={
            ("organic", "sur"): AccuracyMetrics(36, 36, 1.0, 1.0, 0.05, 1.0, 1.0, "sur"),
        },
    )
    text = render_markdown_report(inputs, tmp_path / "report.md").read_text(encoding="utf-8")

    assert _has_row(text, "conventional")
    assert "-1.250" in text
    assert "-1.200" in text  # SUR median across the two organic series
    assert _has_row(text, "sur", "72/72", "700", "500", "4.30%", "4")
    assert "4.30%" in text
    assert "MAPE by product type:" in text
    assert "48 weeks" in text
    assert "ensemble" not in text.split("## Model comparison")[1].split("MAPE by product type")[0]


def test_figure_links_are_relative(tmp_path: Path) -> None:
    figure = tmp_path / "figures" / "national_volume.png"
    figure.parent.mkdir()
    figure.write_bytes(b"")
    inputs = ReportInputs(
        dataset_path="avocado.csv",
        figures={"National volume": figure, "Accuracy by model": tmp_path / "figures" / "acc.png"},
        manifest=_manifest(),
    )
    text = render_markdown_report(inputs, tmp_path / "report.md").read_text(encoding="utf-8")
    assert "![National volume](figures/national_volume.png)" in text
    assert "![Accuracy by model](figures/acc.png)" in text


# ── SUR coefficients ──────────────────────────────────────────────────────────


def test_sur_equation_table_from_csv_rows(tmp_path: Path) -> None:
    coefs = pd.DataFrame([
        {"equation": "Boston|organic", "const": "9.1000", "trend": "0.0020", "log_price": "-0.8000"},
        {"equation": "Albany|organic", "const": "9.5000", "trend": "0.0010", "log_price": ""},
    ])
    inputs = ReportInputs(dataset_path="avocado.csv", sur_coefficients=coefs)

    table = sur_equation_table(inputs)
    assert table["Equation"].tolist() == ["Albany / organic", "Boston / organic"]
    assert table["Log price"].tolist() == ["n/a", "-0.800"]

    text = render_markdown_report(inputs, tmp_path / "report.md").read_text(encoding="utf-8")
    assert "SUR coefficients per equation:" in text
    assert _has_row(text, "Boston / organic", "+0.002", "-0.800")


def test_report_tables_only_present_inputs() -> None:
    assert report_tables(ReportInputs(dataset_path="avocado.csv")) == []
    captions = [c for c, _ in report_tables(ReportInputs(dataset_path="avocado.csv", manifest=_manifest()))]
    assert captions == ["SUR log-price coefficients across series", "Accuracy by model"]
