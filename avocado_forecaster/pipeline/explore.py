"""
ExploreStage — exploratory tables, figures and the pooled elasticity fit.

This stage:
1. Loads the dataset and applies the configured region filters.
2. Adds calendar features (trend, month, log transforms).
3. Writes summary tables as CSV to ``<output_dir>/exploration/``.
4. Draws the exploratory figures into ``<output_dir>/figures/``.
5. Fits the pooled log-log elasticity regression and writes its
   coefficients; a dataset too narrow for the regression (one type or one
   region) is logged and skipped.

The table and figure helpers are module-level so ``ReportStage`` can rebuild
them without re-running this stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from avocado_forecaster.models.meta import RunMetadata
from avocado_forecaster.pipeline.base import PipelineStage

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplorationTables:
    """Exploratory summary tables (see ``analysis.exploratory``)."""

    type_summary: pd.DataFrame
    correlations: pd.DataFrame
    seasonal_profile: pd.DataFrame
    top_regions: pd.DataFrame
    national_weekly: pd.DataFrame


def compute_exploration(features: pd.DataFrame, top_n: int) -> ExplorationTables:
    """Build every exploratory table from the feature frame."""
    from avocado_forecaster.analysis.exploratory import (
        monthly_profile,
        national_weekly_totals,
        price_volume_correlation,
        summarize_by_type,
        top_regions,
    )

    return ExplorationTables(
        type_summary=summarize_by_type(features),
        correlations=price_volume_correlation(features),
        seasonal_profile=monthly_profile(features),
        top_regions=top_regions(features, n=top_n),
        national_weekly=national_weekly_totals(features),
    )


def draw_exploration_figures(
    features: pd.DataFrame,
    tables: ExplorationTables,
    figures_dir: Path,
    dpi: int,
) -> dict[str, Path]:
    """Draw the exploratory PNGs; return figure title → path."""
    from avocado_forecaster.reporting.plots import (
        plot_monthly_profile,
        plot_national_volume,
        plot_price_distribution,
        plot_price_vs_volume,
    )

    return {
        "National volume": plot_national_volume(
            tables.national_weekly, figures_dir / "national_volume.png", dpi=dpi,
        ),
        "Price distribution": plot_price_distribution(
            features, figures_dir / "price_distribution.png", dpi=dpi,
        ),
        "Price vs volume": plot_price_vs_volume(
            features, figures_dir / "price_vs_volume.png", dpi=dpi,
        ),
        "Seasonality": plot_monthly_profile(
            tables.seasonal_profile, figures_dir / "seasonality.png", dpi=dpi,
        ),
    }


class ExploreStage(PipelineStage):
    """Exploratory analysis pipeline stage."""

    stage_name = "explore"

    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Write exploratory tables, figures and elasticity outputs.

        Returns:
            Number of observations analysed.
        """
        from avocado_forecaster.analysis.elasticity import fit_pooled_regression
        from avocado_forecaster.features.calendar import add_calendar_features
        from avocado_forecaster.ingestion.loader import load_configured_dataset
        from avocado_forecaster.reporting.export import export_frame, export_to_json

        cfg = self.config
        frame = load_configured_dataset(cfg.data)
        features = add_calendar_features(frame)

        out_dir = self.output_dir / "exploration"
        tables = compute_exploration(features, cfg.report.top_regions)
        export_frame(tables.type_summary,     out_dir / "type_summary.csv")
        export_frame(tables.correlations,     out_dir / "correlations.csv")
        export_frame(tables.seasonal_profile, out_dir / "monthly_profile.csv")
        export_frame(tables.top_regions,      out_dir / "top_regions.csv")
        export_frame(tables.national_weekly,  out_dir / "national_weekly.csv")

        figures = draw_exploration_figures(
            features, tables, self.output_dir / "figures", cfg.report.figure_dpi,
        )
        log.info("Exploration figures written: %d", len(figures))

        try:
            result = fit_pooled_regression(features)
        except ValueError as exc:
            log.warning("Pooled elasticity regression skipped: %s", exc)
        else:
            export_frame(result.coefficients, out_dir / "elasticity_coefficients.csv")
            export_to_json(
                {
                    "run_slug":     run.run_slug,
                    "elasticities": result.elasticities,
                    "r_squared":    result.r_squared,
                    "n_obs":        result.n_obs,
                },
                out_dir / "elasticity.json",
            )

        return len(frame)
