"""
Abstract base class for the analysis stages.

Contract shared by every stage:
  1. Constructed with ``AppConfig`` (and optionally an output directory that
     overrides ``config.data.output_dir``).
  2. ``run(**kwargs)`` is the only public entry point.  It opens a
     ``RunMetadata`` record, calls ``_execute()``, and closes the record as
     ``success`` or ``failed``.
  3. Every closed record is appended as one JSON line to
     ``<output_dir>/runs.jsonl``; ``load_run_log`` reads them back.
  4. Exceptions from ``_execute()`` are re-raised after the failed record is
     written, so callers (the CLI, the orchestrator) decide how to report them.

Usage::

    class CountRows(PipelineStage):
        stage_name = "explore"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            return len(load_configured_dataset(self.config.data))

    run = CountRows(config=app_config).run()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

from avocado_forecaster.config import AppConfig
from avocado_forecaster.models.meta import RunMetadata, utcnow

logger = logging.getLogger(__name__)

RUN_LOG_NAME = "runs.jsonl"


def load_run_log(output_dir: Path | str) -> list[RunMetadata]:
    """Read every run record from ``<output_dir>/runs.jsonl`` (oldest first).

    Returns an empty list when no stage has run in ``output_dir`` yet.
    """
    path = Path(output_dir) / RUN_LOG_NAME
    if not path.exists():
        return []
    with open(path, encoding="utf-8") as f:
        return [RunMetadata.model_validate_json(line) for line in f if line.strip()]


class PipelineStage(ABC):
    """Base for explore / compare / report and the orchestrator.

    Attributes:
        stage_name: One of ``VALID_PIPELINE_STAGES``; set by each subclass.
        config:     Configuration for this run.
        output_dir: Where the stage writes its outputs and ``runs.jsonl``.
    """

    stage_name: str

    def __init__(
        self,
        config: AppConfig,
        output_dir: str | None = None,
    ) -> None:
        self.config = config
        self.output_dir = Path(output_dir or config.data.output_dir)

    def run(self, **kwargs) -> RunMetadata:
        """Execute the stage and return its closed run record.

        Raises:
            Exception: Whatever ``_execute()`` raised, after the run has been
                recorded with ``status='failed'``.
        """
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            dataset_path=self.config.data.dataset_path,
            config_snapshot=self.config.model_dump(),
            started_at=utcnow(),
        )
        logger.info(
            "Stage [%s] starting | run_slug=%s | output_dir=%s",
            self.stage_name, run.run_slug, self.output_dir,
        )

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            self._finish(run, "failed", error=exc)
            raise

        self._finish(run, "success", rows=rows)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Do the stage's work; return a stage-specific count for the record."""
        ...

    def _finish(
        self,
        run: RunMetadata,
        status: str,
        rows: int = 0,
        error: Exception | None = None,
    ) -> None:
        run.status = status
        run.rows_processed = rows
        run.finished_at = utcnow()
        elapsed = (run.finished_at - run.started_at).total_seconds()

        if error is None:
            logger.info(
                "Stage [%s] completed in %.1fs | rows=%d | run_slug=%s",
                self.stage_name, elapsed, rows, run.run_slug,
            )
        else:
            run.error_message = f"{type(error).__name__}: {error}"
            logger.error(
                "Stage [%s] FAILED after %.1fs: %s | run_slug=%s",
                self.stage_name, elapsed, run.error_message, run.run_slug,
            )
        self._append_run(run)

    def _append_run(self, run: RunMetadata) -> None:
        """Append ``run`` to ``runs.jsonl``; an unwritable log is logged, not raised."""
        path = self.output_dir / RUN_LOG_NAME
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(run.model_dump_json() + "\n")
        except OSError as exc:
            logger.error(
                "Could not append run record to %s (run_slug=%s): %s",
                path, run.run_slug, exc,
            )
