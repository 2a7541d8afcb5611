"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local env overrides (gitignored)
  4. Environment variables        — ``AVOCADO_FORECASTER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

All pipeline stages and CLI commands receive an ``AppConfig`` instance —
never raw dicts or individual env var lookups scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# Every model name the comparison can produce, in report order.
KNOWN_MODEL_NAMES: tuple[str, ...] = (
    "naive",
    "arima",
    "arima_price",
    "arima_fourier",
    "tslm_fourier",
    "sur",
    "ensemble",
)

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Dataset location, region filters and output directory."""

    model_config = ConfigDict(frozen=True)

    dataset_path: str = "data/raw/avocado.csv"
    sheet_name: Optional[str] = None
    output_dir: str = "data/outputs"
    include_regions: list[str] = []
    exclude_regions: list[str] = []


class SplitConfig(BaseModel):
    """Fixed train/test cutoff on the weekly calendar."""

    model_config = ConfigDict(frozen=True)

    train_weeks: int = 135
    test_weeks: int = 34
    max_gap_weeks: int = 4

    @field_validator("train_weeks", "test_weeks")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Split sizes must be >= 1, got {v}.")
        return v

    @field_validator("max_gap_weeks")
    @classmethod
    def validate_gap(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_gap_weeks must be >= 0, got {v}.")
        return v


class ArimaConfig(BaseModel):
    """Order search grid for the ARIMA family of models."""

    model_config = ConfigDict(frozen=True)

    max_p: int = 2
    max_d: int = 1
    max_q: int = 2
    information_criterion: str = "aicc"
    kpss_alpha: float = 0.05
    maxiter: int = 200

    @field_validator("max_p", "max_d", "max_q")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"ARIMA order bounds must be >= 0, got {v}.")
        return v

    @field_validator("information_criterion")
    @classmethod
    def validate_ic(cls, v: str) -> str:
        valid = {"aic", "aicc", "bic"}
        if v.lower() not in valid:
            raise ValueError(
                f"information_criterion must be one of {sorted(valid)}, got '{v}'."
            )
        return v.lower()

    @field_validator("kpss_alpha")
    @classmethod
    def validate_alpha(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"kpss_alpha must be in (0.0, 1.0), got {v}.")
        return v


class FourierConfig(BaseModel):
    """Fourier seasonal regressors (weekly data, annual cycle)."""

    model_config = ConfigDict(frozen=True)

    period: float = 52.18
    max_k: int = 3

    @model_validator(mode="after")
    def validate_k(self) -> "FourierConfig":
        if self.max_k < 1:
            raise ValueError(f"max_k must be >= 1, got {self.max_k}.")
        if 2 * self.max_k > self.period:
            raise ValueError(
                f"max_k={self.max_k} is too large for period={self.period} "
                "(need 2 * max_k <= period)."
            )
        return self


class SurConfig(BaseModel):
    """Cross-series seemingly-unrelated regression settings."""

    model_config = ConfigDict(frozen=True)

    include_month: bool = True
    min_equations: int = 2

    @field_validator("min_equations")
    @classmethod
    def validate_min_equations(cls, v: int) -> int:
        if v < 2:
            raise ValueError(f"min_equations must be >= 2 for a system fit, got {v}.")
        return v


class EnsembleConfig(BaseModel):
    """Which model forecasts are averaged into the ensemble."""

    model_config = ConfigDict(frozen=True)

    members: list[str] = ["arima", "sur"]

    @field_validator("members")
    @classmethod
    def validate_members(cls, v: list[str]) -> list[str]:
        if len(v) < 2:
            raise ValueError("An ensemble needs at least 2 members.")
        unknown = [m for m in v if m not in KNOWN_MODEL_NAMES or m == "ensemble"]
        if unknown:
            raise ValueError(f"Unknown ensemble members: {unknown}.")
        return v


class ModelsConfig(BaseModel):
    """Models included in the comparison."""

    model_config = ConfigDict(frozen=True)

    enabled: list[str] = list(KNOWN_MODEL_NAMES)

    @field_validator("enabled")
    @classmethod
    def validate_enabled(cls, v: list[str]) -> list[str]:
        unknown = [m for m in v if m not in KNOWN_MODEL_NAMES]
        if unknown:
            raise ValueError(
                f"Unknown model names {unknown}. Must be among {list(KNOWN_MODEL_NAMES)}."
            )
        return v


class ReportConfig(BaseModel):
    """Figures and Markdown report settings."""

    model_config = ConfigDict(frozen=True)

    highlight_region: str = "TotalUS"
    highlight_type: str = "conventional"
    figure_dpi: int = 110
    top_regions: int = 10


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/forecaster.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    All pipeline stages and CLI commands receive an ``AppConfig`` instance.
    It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    split: SplitConfig = SplitConfig()
    arima: ArimaConfig = ArimaConfig()
    fourier: FourierConfig = FourierConfig()
    sur: SurConfig = SurConfig()
    ensemble: EnsembleConfig = EnsembleConfig()
    models: ModelsConfig = ModelsConfig()
    report: ReportConfig = ReportConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False

    @model_validator(mode="after")
    def validate_ensemble_members_enabled(self) -> "AppConfig":
        if "ensemble" in self.models.enabled:
            missing = [m for m in self.ensemble.members if m not in self.models.enabled]
            if missing:
                raise ValueError(
                    f"Ensemble members {missing} are not enabled in [models].enabled."
                )
        return self


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    # Also merge local.toml if present (gitignored local overrides)
    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply AVOCADO_FORECASTER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply AVOCADO_FORECASTER_* env vars to the raw config dict.

    Supported overrides:
      AVOCADO_FORECASTER_DATASET     → raw["data"]["dataset_path"]
      AVOCADO_FORECASTER_OUTPUT_DIR  → raw["data"]["output_dir"]
      AVOCADO_FORECASTER_LOG_LEVEL   → raw["logging"]["level"]
      AVOCADO_FORECASTER_DEBUG       → raw["debug"]
    """
    if dataset := os.environ.get("AVOCADO_FORECASTER_DATASET"):
        raw.setdefault("data", {})["dataset_path"] = dataset

    if output_dir := os.environ.get("AVOCADO_FORECASTER_OUTPUT_DIR"):
        raw.setdefault("data", {})["output_dir"] = output_dir

    if log_level := os.environ.get("AVOCADO_FORECASTER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("AVOCADO_FORECASTER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        data=DataConfig(**raw.get("data", {})),
        split=SplitConfig(**raw.get("split", {})),
        arima=ArimaConfig(**raw.get("arima", {})),
        fourier=FourierConfig(**raw.get("fourier", {})),
        sur=SurConfig(**raw.get("sur", {})),
        ensemble=EnsembleConfig(**raw.get("ensemble", {})),
        models=ModelsConfig(**raw.get("models", {})),
        report=ReportConfig(**raw.get("report", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )


def with_overrides(
    config: AppConfig,
    dataset_path: Optional[str] = None,
    output_dir: Optional[str] = None,
) -> AppConfig:
    """Return a copy of ``config`` with CLI-level path overrides applied."""
    updates: dict[str, Any] = {}
    if dataset_path:
        updates["dataset_path"] = dataset_path
    if output_dir:
        updates["output_dir"] = output_dir
    if not updates:
        return config
    return config.model_copy(update={"data": config.data.model_copy(update=updates)})
