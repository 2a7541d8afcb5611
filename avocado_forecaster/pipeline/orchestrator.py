"""
Full analysis orchestration: explore → compare → report.

``run_full_analysis`` runs the three stages in a fixed order under one
``orchestrator`` run record.  Each stage still writes its own run record, so
``runs.jsonl`` shows both the overall run and its parts.

Failure handling
----------------
Stages depend on each other's outputs (the report reads the comparison
files), so the first failing stage stops the run: its exception propagates
after both the stage record and the orchestrator record are marked failed.
"""

from __future__ import annotations

import logging

from avocado_forecaster.config import AppConfig
from avocado_forecaster.models.meta import RunMetadata
from avocado_forecaster.pipeline.base import PipelineStage
from avocado_forecaster.pipeline.compare import CompareStage
from avocado_forecaster.pipeline.explore import ExploreStage
from avocado_forecaster.pipeline.report import ReportStage

logger = logging.getLogger(__name__)

STAGE_ORDER: tuple[type[PipelineStage], ...] = (ExploreStage, CompareStage, ReportStage)


class FullAnalysisStage(PipelineStage):
    """Runs every stage in ``STAGE_ORDER``; ``stage_runs`` holds their records."""

    stage_name = "orchestrator"

    def __init__(self, config: AppConfig, output_dir: str | None = None) -> None:
        super().__init__(config, output_dir)
        self.stage_runs: list[RunMetadata] = []

    def _execute(self, run: RunMetadata, **kwargs) -> int:
        total = 0
        for stage_cls in STAGE_ORDER:
            stage = stage_cls(config=self.config, output_dir=str(self.output_dir))
            stage_run = stage.run()
            self.stage_runs.append(stage_run)
            total += stage_run.rows_processed
        logger.info(
            "Full analysis complete | stages=%s",
            [r.pipeline_stage for r in self.stage_runs],
        )
        return total


def run_full_analysis(
    config: AppConfig,
    output_dir: str | None = None,
) -> list[RunMetadata]:
    """Run explore, compare and report in order.

    Returns:
        The stage run records in execution order, followed by the
        orchestrator's own record.

    Raises:
        Exception: Whatever the first failing stage raised.
    """
    orchestrator = FullAnalysisStage(config=config, output_dir=output_dir)
    run = orchestrator.run()
    return [*orchestrator.stage_runs, run]
