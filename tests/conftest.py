"""
Shared pytest fixtures for the avocado demand forecaster test suite.

Provides:
  - ``make_panel``: deterministic synthetic avocado panel builder (fixture
    returning the builder function, so tests can vary its shape).
  - ``panel`` / ``feature_panel``: the default panel, raw and with calendar
    features.
  - ``dataset_csv``: the default panel written with the public dataset's
    column headers.
  - ``small_config``: an ``AppConfig`` sized for the synthetic panel (short
    split, small ARIMA grid) writing into ``tmp_path``.

The panel: 3 regions (TotalUS + 2 cities) × 2 types × 60 weeks from
2015-01-04.  Log volume follows a small trend, an annual wave and a
price elasticity of -1.2, with seeded noise.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from avocado_forecaster.config import (  # noqa: E402
    AppConfig,
    ArimaConfig,
    DataConfig,
    FourierConfig,
    LoggingConfig,
    ReportConfig,
    SplitConfig,
)
from avocado_forecaster.features.calendar import add_calendar_features  # noqa: E402

REGIONS = ("Albany", "Boston", "TotalUS")
TYPES = ("conventional", "organic")
N_WEEKS = 60
TRAIN_WEEKS = 48
TEST_WEEKS = 12

_BASE_VOLUME = {"TotalUS": 2.0e6, "Albany": 8.0e4, "Boston": 1.2e5}
_BASE_PRICE = {"conventional": 1.10, "organic": 1.60}
_TYPE_SHARE = {"conventional": 1.0, "organic": 0.04}


def build_panel(
    regions: tuple[str, ...] = REGIONS,
    types: tuple[str, ...] = TYPES,
    n_weeks: int = N_WEEKS,
    seed: int = 7,
) -> pd.DataFrame:
    """Synthetic panel with canonical columns region, type, week, price, volume."""
    rng = np.random.default_rng(seed)
    weeks = pd.date_range("2015-01-04", periods=n_weeks, freq="7D")
    t = np.arange(n_weeks, dtype=float)
    season = np.sin(2.0 * np.pi * t / 52.18)

    frames = []
    for region in regions:
        for ptype in types:
            base_price = _BASE_PRICE.get(ptype, 1.3)
            price = base_price + 0.12 * season + rng.normal(0.0, 0.03, n_weeks)
            log_volume = (
                np.log(_BASE_VOLUME.get(region, 5.0e4) * _TYPE_SHARE.get(ptype, 0.1))
                + 0.002 * t
                + 0.10 * np.cos(2.0 * np.pi * t / 52.18)
                - 1.2 * np.log(price / base_price)
                + rng.normal(0.0, 0.04, n_weeks)
            )
            frames.append(pd.DataFrame({
                "region": region,
                "type":   ptype,
                "week":   weeks,
                "price":  price,
                "volume": np.exp(log_volume),
            }))
    return pd.concat(frames, ignore_index=True)


def to_public_headers(frame: pd.DataFrame) -> pd.DataFrame:
    """Rename canonical columns to the Hass Avocado Board export headers."""
    out = frame.rename(columns={
        "week": "Date", "price": "AveragePrice", "volume": "Total Volume",
    })
    out["year"] = out["Date"].dt.year
    out["Date"] = out["Date"].dt.strftime("%Y-%m-%d")
    return out[["Date", "AveragePrice", "Total Volume", "type", "year", "region"]]


@pytest.fixture
def make_panel() -> Callable[..., pd.DataFrame]:
    return build_panel


@pytest.fixture
def panel() -> pd.DataFrame:
    return build_panel()


@pytest.fixture
def feature_panel(panel: pd.DataFrame) -> pd.DataFrame:
    return add_calendar_features(panel)


@pytest.fixture
def dataset_csv(tmp_path: Path, panel: pd.DataFrame) -> Path:
    path = tmp_path / "avocado.csv"
    to_public_headers(panel).to_csv(path, index=False)
    return path


@pytest.fixture
def small_config(tmp_path: Path, dataset_csv: Path) -> AppConfig:
    return AppConfig(
        data=DataConfig(
            dataset_path=str(dataset_csv),
            output_dir=str(tmp_path / "outputs"),
        ),
        split=SplitConfig(train_weeks=TRAIN_WEEKS, test_weeks=TEST_WEEKS),
        arima=ArimaConfig(max_p=1, max_d=1, max_q=1, maxiter=50),
        fourier=FourierConfig(max_k=2),
        report=ReportConfig(figure_dpi=40, top_regions=2),
        logging=LoggingConfig(log_file=str(tmp_path / "logs" / "test.log")),
    )
