"""
CompareStage — fixed-cutoff model comparison pipeline stage.

This stage:
1. Loads the dataset and applies the configured region filters.
2. Runs every enabled model on every usable (region, type) series via
   ``run_comparison`` (train on the first weeks, forecast the last weeks).
3. Writes CSV summaries, the forecast Parquet and a JSON manifest to
   ``<output_dir>/comparison/``.

The ComparisonResult of the most recent run is kept on ``self.result`` so the
CLI can print a summary without re-reading the files.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from avocado_forecaster.models.meta import RunMetadata
from avocado_forecaster.pipeline.base import PipelineStage

if TYPE_CHECKING:
    from avocado_forecaster.backtest.evaluator import ComparisonResult

log = logging.getLogger(__name__)


class CompareStage(PipelineStage):
    """Model comparison pipeline stage."""

    stage_name = "compare"
    result: Optional[ComparisonResult] = None

    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Fit, forecast and score every model.

        Returns:
            Number of ForecastRecords written.
        """
        from avocado_forecaster.backtest.evaluator import run_comparison
        from avocado_forecaster.backtest.reporter import (
            make_output_dir,
            write_comparison_outputs,
        )
        from avocado_forecaster.ingestion.loader import load_configured_dataset

        cfg = self.config
        frame = load_configured_dataset(cfg.data)
        result = run_comparison(frame, cfg)

        out_dir = make_output_dir(str(self.output_dir))
        write_comparison_outputs(
            result,
            output_dir=out_dir,
            run_slug=run.run_slug,
            dataset_path=cfg.data.dataset_path,
            config_snapshot=run.config_snapshot,
        )
        self.result = result

        log.info(
            "Comparison outputs written | dir=%s | series=%d | records=%d",
            out_dir, result.n_series, len(result.records),
        )
        return len(result.records)
