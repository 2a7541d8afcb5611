"""
ReportStage — figures, the Markdown report and its PDF rendering.

This stage:
1. Rebuilds the exploratory tables and figures from the dataset.
2. Loads the comparison outputs (``forecasts.parquet``, ``manifest.json``,
   ``sur_coefficients.csv``)
   written by ``CompareStage``; when they are missing the report says so
   instead of failing, so ``explore`` + ``report`` works without a comparison.
3. Draws the accuracy comparison and the forecast-vs-actual figure for the
   configured highlight series.
4. Writes ``<output_dir>/report.md`` and ``<output_dir>/report.pdf``.
"""

from __future__ import annotations

import logging

import pandas as pd

from avocado_forecaster.models.meta import RunMetadata
from avocado_forecaster.pipeline.base import PipelineStage

log = logging.getLogger(__name__)

REPORT_NAME = "report.md"
PDF_REPORT_NAME = "report.pdf"


class ReportStage(PipelineStage):
    """Markdown and PDF report pipeline stage."""

    stage_name = "report"

    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Render the report.

        Returns:
            Number of figures embedded in the report.
        """
        from avocado_forecaster.analysis.elasticity import fit_pooled_regression
        from avocado_forecaster.backtest.reporter import make_output_dir
        from avocado_forecaster.backtest.slices import slice_by_model, slice_by_type_and_model
        from avocado_forecaster.features.calendar import add_calendar_features
        from avocado_forecaster.ingestion.loader import load_configured_dataset
        from avocado_forecaster.pipeline.explore import compute_exploration, draw_exploration_figures
        from avocado_forecaster.reporting.plots import plot_accuracy_by_model, plot_forecast_vs_actual
        from avocado_forecaster.reporting.pdf import render_pdf_report
        from avocado_forecaster.reporting.reader import load_csv_rows, load_forecast_records, load_manifest
        from avocado_forecaster.reporting.report import ReportInputs, render_markdown_report

        cfg = self.config
        dpi = cfg.report.figure_dpi
        figures_dir = self.output_dir / "figures"

        features = add_calendar_features(load_configured_dataset(cfg.data))
        tables = compute_exploration(features, cfg.report.top_regions)
        figures = draw_exploration_figures(features, tables, figures_dir, dpi)

        inputs = ReportInputs(
            dataset_path=cfg.data.dataset_path,
            type_summary=tables.type_summary,
            correlations=tables.correlations,
            seasonal_profile=tables.seasonal_profile,
            top_regions=tables.top_regions,
            figures=figures,
        )

        try:
            inputs.elasticity = fit_pooled_regression(features)
        except ValueError as exc:
            log.warning("Pooled elasticity regression skipped: %s", exc)

        comparison_dir = make_output_dir(str(self.output_dir))
        manifest = load_manifest(comparison_dir / "manifest.json")
        records = load_forecast_records(comparison_dir / "forecasts.parquet")

        if manifest is None or not records:
            log.warning("No comparison outputs in %s; report omits model comparison", comparison_dir)
        else:
            inputs.manifest = manifest
            inputs.metrics_by_model = slice_by_model(records)
            inputs.type_metrics = slice_by_type_and_model(records)
            sur_rows = load_csv_rows(comparison_dir / "sur_coefficients.csv")
            if sur_rows:
                inputs.sur_coefficients = pd.DataFrame(sur_rows)
            figures["Accuracy by model"] = plot_accuracy_by_model(
                inputs.metrics_by_model,
                figures_dir / "accuracy_by_model.png",
                model_order=manifest.get("model_names"),
                dpi=dpi,
            )

            region, ptype = cfg.report.highlight_region, cfg.report.highlight_type
            series_records = [r for r in records if r.series_key == (region, ptype)]
            if series_records:
                train_end = pd.Timestamp(manifest["split"]["train_end"])
                history = features[
                    (features["region"] == region)
                    & (features["type"] == ptype)
                    & (features["week"] <= train_end)
                ]
                figures[f"Forecast vs actual: {region} / {ptype}"] = plot_forecast_vs_actual(
                    history,
                    series_records,
                    figures_dir / "forecast_vs_actual.png",
                    title=f"{region} / {ptype}",
                    dpi=dpi,
                )
            else:
                log.warning("Highlight series %s/%s not in comparison outputs", region, ptype)

        render_markdown_report(inputs, self.output_dir / REPORT_NAME)
        render_pdf_report(inputs, self.output_dir / PDF_REPORT_NAME)
        return len(figures)
