"""
Comparison evaluator: fit every model to every series and score the test weeks.

How it works
------------
1. Build the global weekly calendar and the shared split cutoff.
2. Complete each (region, type) series onto the calendar (short gaps are
   interpolated, incomplete series are skipped) and add calendar features.
3. For each series:
   a. Split into train (first 135 weeks) and test (last 34 weeks).
   b. For each per-series model: fit(train), predict(test), and emit one
      ForecastRecord per test week.
4. Fit ONE SUR system across all usable series and emit its records.
5. Average the ensemble members' forecasts per (series, week).

Leakage proof
-------------
- Models receive only the train frame in fit().
- predict() receives the test frame for its exogenous columns; the volume
  column is read here, by the evaluator, only to fill ``actual_value``.
- Fourier terms are phased on the shared calendar trend, so test terms
  continue the training wave rather than restarting it.

Failure handling
----------------
A model that raises a numerical error for one series is logged and recorded
as abstaining (predicted_value=None) for that series; other models and
series continue.  The same applies to the SUR system as a whole.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from avocado_forecaster.backtest.metrics import ForecastRecord
from avocado_forecaster.backtest.models import build_series_models
from avocado_forecaster.backtest.splits import SplitPlan, compute_cutoff, split_series
from avocado_forecaster.backtest.sur import SurModel
from avocado_forecaster.config import AppConfig
from avocado_forecaster.features.calendar import add_calendar_features, weekly_calendar
from avocado_forecaster.features.gaps import complete_weekly_series
from avocado_forecaster.ingestion.loader import SERIES_KEY

log = logging.getLogger(__name__)

SeriesKey = tuple[str, str]


@dataclass
class ComparisonResult:
    """Everything the comparison produced.

    Attributes:
        records:        One ForecastRecord per (series × model × test week).
        plan:           The shared split cutoff.
        model_names:    Models evaluated, in run order.
        descriptions:   (region, type, model) → fitted model description,
                        e.g. "ARIMA(1,1,0) w/ drift".
        skipped_series: Series left out because they could not be completed.
        sur_elasticities: SUR log-price coefficient per equation label.
        sur_coefficients: SUR coefficient rows, one per equation.
    """

    records: list[ForecastRecord]
    plan: SplitPlan
    model_names: list[str]
    descriptions: dict[tuple[str, str, str], str] = field(default_factory=dict)
    skipped_series: list[SeriesKey] = field(default_factory=list)
    sur_elasticities: dict[str, float] = field(default_factory=dict)
    sur_coefficients: list[dict[str, Any]] = field(default_factory=list)

    @property
    def n_series(self) -> int:
        return len({r.series_key for r in self.records})


def prepare_series(
    frame: pd.DataFrame,
    calendar: pd.DatetimeIndex,
    max_gap_weeks: int,
) -> tuple[dict[SeriesKey, pd.DataFrame], list[SeriesKey]]:
    """Complete every series onto ``calendar`` and add calendar features.

    Returns:
        (usable series keyed by (region, type), skipped keys)
    """
    usable: dict[SeriesKey, pd.DataFrame] = {}
    skipped: list[SeriesKey] = []
    for (region, ptype), rows in frame.groupby(SERIES_KEY, sort=True):
        key = (str(region), str(ptype))
        completed = complete_weekly_series(rows, calendar, max_gap_weeks)
        if completed is None:
            skipped.append(key)
            continue
        usable[key] = add_calendar_features(completed, calendar)

    if skipped:
        log.warning("Skipped %d incomplete series: %s", len(skipped), skipped[:10])
    return usable, skipped


def _series_records(
    key: SeriesKey,
    model_name: str,
    test: pd.DataFrame,
    predicted: list[float] | None,
) -> list[ForecastRecord]:
    weeks = test["week"].dt.date.tolist()
    # Interpolated weeks were never observed, so they carry no actual.
    actuals = [
        None if filled else float(v)
        for v, filled in zip(test["volume"], test["interpolated"].astype(bool))
    ]
    if predicted is not None and len(predicted) != len(test):
        log.warning(
            "%s returned %d forecasts for %d test weeks on %s/%s; treated as abstention",
            model_name, len(predicted), len(test), *key,
        )
        predicted = None
    return [
        ForecastRecord(
            region=key[0],
            product_type=key[1],
            week=week,
            model_name=model_name,
            horizon_weeks=step + 1,
            predicted_value=None if predicted is None else float(predicted[step]),
            actual_value=actual,
        )
        for step, (week, actual) in enumerate(zip(weeks, actuals))
    ]


def build_ensemble(
    records: list[ForecastRecord],
    members: list[str],
    name: str = "ensemble",
) -> list[ForecastRecord]:
    """Average the members' forecasts per (series, week).

    The ensemble abstains for a week when any member abstained or is missing.
    """
    member_set = set(members)
    grouped: dict[tuple[str, str, Any], dict[str, ForecastRecord]] = defaultdict(dict)
    for r in records:
        if r.model_name in member_set:
            grouped[(r.region, r.product_type, r.week)][r.model_name] = r

    out: list[ForecastRecord] = []
    for (region, ptype, week), by_model in grouped.items():
        first = next(iter(by_model.values()))
        values = [by_model[m].predicted_value for m in members if m in by_model]
        if len(values) == len(members) and all(v is not None for v in values):
            predicted: float | None = float(np.mean(values))
        else:
            predicted = None
        out.append(ForecastRecord(
            region=region,
            product_type=ptype,
            week=week,
            model_name=name,
            horizon_weeks=first.horizon_weeks,
            predicted_value=predicted,
            actual_value=first.actual_value,
        ))
    out.sort(key=lambda r: (r.region, r.product_type, r.week))
    return out


def run_comparison(frame: pd.DataFrame, config: AppConfig) -> ComparisonResult:
    """Evaluate every enabled model on every usable series.

    Args:
        frame:  Observations from ``load_dataset`` (already region-filtered).
        config: Application config (split, model, and search settings).

    Returns:
        ComparisonResult with all ForecastRecords.

    Raises:
        ValueError: If the calendar is too short for the configured split or
            no series survives gap completion.
    """
    calendar = weekly_calendar(frame)
    plan = compute_cutoff(calendar, config.split.train_weeks, config.split.test_weeks)
    log.info(
        "Split | train=[%s..%s] (%d wk) | test=[%s..%s] (%d wk)",
        plan.train_start.date(), plan.train_end.date(), plan.train_weeks,
        plan.test_start.date(), plan.test_end.date(), plan.test_weeks,
    )

    series, skipped = prepare_series(frame, calendar, config.split.max_gap_weeks)
    if not series:
        raise ValueError("No complete series available for the comparison.")

    enabled = list(config.models.enabled)
    models = build_series_models(enabled, config.arima, config.fourier)
    result = ComparisonResult(
        records=[], plan=plan, model_names=enabled, skipped_series=skipped,
    )

    splits: dict[SeriesKey, tuple[pd.DataFrame, pd.DataFrame]] = {
        key: split_series(s, plan) for key, s in series.items()
    }

    for i, (key, (train, test)) in enumerate(splits.items(), start=1):
        log.debug("Series %d/%d %s/%s", i, len(splits), *key)
        for model in models:
            try:
                model.fit(train)
                predicted = model.predict(test)
            except (ValueError, np.linalg.LinAlgError) as exc:
                log.warning("%s failed on %s/%s: %s", model.name, key[0], key[1], exc)
                predicted = None
            if predicted is None:
                log.debug("%s abstained on %s/%s", model.name, *key)
            result.descriptions[(key[0], key[1], model.name)] = model.description
            result.records.extend(_series_records(key, model.name, test, predicted))

    if "sur" in enabled:
        sur = SurModel(
            include_month=config.sur.include_month,
            min_equations=config.sur.min_equations,
        )
        sur_forecasts: dict[SeriesKey, list[float]] = {}
        try:
            sur.fit({key: train for key, (train, _) in splits.items()})
            sur_forecasts = sur.predict({key: test for key, (_, test) in splits.items()})
            result.sur_elasticities = sur.elasticities()
            result.sur_coefficients = sur.summary_rows()
        except (ValueError, np.linalg.LinAlgError) as exc:
            log.warning("SUR system failed; sur abstains for all series: %s", exc)
        for key, (_, test) in splits.items():
            result.descriptions[(key[0], key[1], "sur")] = (
                "SUR FGLS [trend, log_price" + (", month]" if sur.include_month else "]")
            )
            result.records.extend(_series_records(key, "sur", test, sur_forecasts.get(key)))

    if "ensemble" in enabled:
        ensemble = build_ensemble(result.records, list(config.ensemble.members))
        result.records.extend(ensemble)
        for key in splits:
            result.descriptions[(key[0], key[1], "ensemble")] = (
                "mean(" + ", ".join(config.ensemble.members) + ")"
            )

    log.info(
        "Comparison complete | series=%d | skipped=%d | models=%d | records=%d",
        len(splits), len(skipped), len(enabled), len(result.records),
    )
    return result
