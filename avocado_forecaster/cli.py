"""
Avocado demand forecaster — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()`` and apply path overrides.
  2. Configure logging.
  3. Execute the pipeline stage (or analysis) for the command.
  4. Report result to stdout; failures print ``[ERROR] ...`` and exit 1.

Install and run::

    pip install -e .
    avocado-forecaster --help
    avocado-forecaster validate-config
    avocado-forecaster explore --dataset data/raw/avocado.csv
    avocado-forecaster compare
    avocado-forecaster elasticity
    avocado-forecaster report
    avocado-forecaster run-all --output-dir data/outputs/run1
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="avocado-forecaster",
    help="Avocado demand forecasting — model comparison and reporting CLI.",
    add_completion=False,
)

_CONFIG_HELP = "Path to TOML config file (default: config/default.toml)."
_DATASET_HELP = "Dataset CSV/XLSX path; overrides [data].dataset_path."
_OUTPUT_HELP = "Output directory; overrides [data].output_dir."


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(
    config_path: Optional[str] = None,
    dataset: Optional[str] = None,
    output_dir: Optional[str] = None,
):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from avocado_forecaster.config import load_config, with_overrides

    try:
        cfg_path = Path(config_path) if config_path else None
        config = load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)
    return with_overrides(config, dataset_path=dataset, output_dir=output_dir)


def _configure_logging(config):
    """Set up logging from config."""
    from avocado_forecaster.utils.logging import configure_logging
    configure_logging(config.logging)


def _run_stage_or_exit(stage):
    """Run a pipeline stage; on failure print the error and exit 1."""
    try:
        return stage.run()
    except Exception as exc:
        typer.echo(f"[ERROR] {stage.stage_name} failed: {exc}", err=True)
        raise typer.Exit(code=1)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Dataset:          {config.data.dataset_path}")
    typer.echo(f"  Output dir:       {config.data.output_dir}")
    typer.echo(f"  Split:            {config.split.train_weeks} train / {config.split.test_weeks} test weeks")
    typer.echo(f"  Models:           {', '.join(config.models.enabled)}")
    typer.echo(f"  Ensemble members: {', '.join(config.ensemble.members)}")
    typer.echo(f"  IC:               {config.arima.information_criterion}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")


@app.command("explore")
def explore(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_HELP),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help=_OUTPUT_HELP),
) -> None:
    """Write exploratory tables, figures and the pooled elasticity fit."""
    from avocado_forecaster.pipeline.explore import ExploreStage

    config = _load_config_or_exit(config_path, dataset, output_dir)
    _configure_logging(config)

    run = _run_stage_or_exit(ExploreStage(config=config))
    out = Path(config.data.output_dir)
    typer.echo(f"  Observations analysed: {run.rows_processed}")
    typer.echo(f"  Tables:  {out / 'exploration'}")
    typer.echo(f"  Figures: {out / 'figures'}")
    typer.echo("[OK] Exploration complete.")


@app.command("compare")
def compare(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_HELP),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help=_OUTPUT_HELP),
) -> None:
    """Fit every enabled model per series and compare test-period accuracy."""
    from avocado_forecaster.backtest.reporter import make_output_dir
    from avocado_forecaster.backtest.slices import model_win_counts, slice_by_model
    from avocado_forecaster.pipeline.compare import CompareStage
    from avocado_forecaster.reporting.formatters import (
        format_model_summary,
        format_split,
        format_win_counts,
    )

    config = _load_config_or_exit(config_path, dataset, output_dir)
    _configure_logging(config)

    stage = CompareStage(config=config)
    _run_stage_or_exit(stage)
    result = stage.result

    typer.echo(format_split(result.plan))
    typer.echo(format_model_summary(slice_by_model(result.records), result.model_names))
    typer.echo(format_win_counts(model_win_counts(result.records), result.n_series))
    if result.skipped_series:
        typer.echo("")
        typer.echo(f"  Skipped {len(result.skipped_series)} incomplete series.")
    typer.echo("")
    typer.echo(f"[OK] Comparison outputs written to {make_output_dir(config.data.output_dir)}")


@app.command("elasticity")
def elasticity(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_HELP),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Where to look for SUR results from 'compare'.",
    ),
) -> None:
    """Print pooled price elasticities (and SUR ones if 'compare' has run)."""
    from avocado_forecaster.analysis.elasticity import fit_pooled_regression
    from avocado_forecaster.backtest.reporter import make_output_dir
    from avocado_forecaster.features.calendar import add_calendar_features
    from avocado_forecaster.ingestion.loader import load_configured_dataset
    from avocado_forecaster.reporting.formatters import format_elasticity
    from avocado_forecaster.reporting.reader import load_manifest

    config = _load_config_or_exit(config_path, dataset, output_dir)
    _configure_logging(config)

    try:
        features = add_calendar_features(load_configured_dataset(config.data))
        result = fit_pooled_regression(features)
    except Exception as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    manifest = load_manifest(make_output_dir(config.data.output_dir) / "manifest.json")
    sur = (manifest or {}).get("sur_elasticities")
    typer.echo(format_elasticity(result, sur))
    typer.echo("")


@app.command("report")
def report(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_HELP),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help=_OUTPUT_HELP),
) -> None:
    """Draw figures and write the Markdown and PDF reports from existing outputs."""
    from avocado_forecaster.pipeline.report import PDF_REPORT_NAME, REPORT_NAME, ReportStage

    config = _load_config_or_exit(config_path, dataset, output_dir)
    _configure_logging(config)

    run = _run_stage_or_exit(ReportStage(config=config))
    typer.echo(f"  Figures: {run.rows_processed}")
    out = Path(config.data.output_dir)
    typer.echo(f"  PDF: {out / PDF_REPORT_NAME}")
    typer.echo(f"[OK] Report written to {out / REPORT_NAME}")


@app.command("run-all")
def run_all(
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
    dataset: Optional[str] = typer.Option(None, "--dataset", help=_DATASET_HELP),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help=_OUTPUT_HELP),
) -> None:
    """Run explore → compare → report in one go."""
    from avocado_forecaster.pipeline.orchestrator import run_full_analysis

    config = _load_config_or_exit(config_path, dataset, output_dir)
    _configure_logging(config)

    try:
        runs = run_full_analysis(config)
    except Exception as exc:
        typer.echo(f"[ERROR] Full analysis failed: {exc}", err=True)
        raise typer.Exit(code=1)

    for i, run in enumerate(runs[:-1], start=1):
        typer.echo(
            f"  [{i}/{len(runs) - 1}] {run.pipeline_stage:<8} "
            f"status={run.status} | rows={run.rows_processed}"
        )
    typer.echo("")
    typer.echo(f"[OK] Full analysis complete. Outputs in {config.data.output_dir}")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
