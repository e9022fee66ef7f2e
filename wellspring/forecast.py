"""
Short-horizon burnout forecast from the recent score history.

Fits an OLS line over (days since first point, burnout score) and projects
it forward one day at a time. Confidence shrinks with horizon, with scatter
around the fit, and with short histories.
"""

from datetime import timedelta
from typing import List, Optional, Sequence, Union

import numpy as np

from wellspring.config import EngineConfig, ForecastParams, ZoneThresholds
from wellspring.models import (
    Forecast,
    ForecastPoint,
    InsufficientData,
    Zone,
    ZoneState,
)
from wellspring.signals import _ols_line, fit_trend
from wellspring.zones import raw_zone


def forecast_confidence(
    offset: int,
    n_points: int,
    residual_std: float,
    p: ForecastParams,
) -> float:
    """Confidence in [0, 100] for a projection `offset` days ahead."""
    sample_factor = min(1.0, n_points / p.full_confidence_points)
    scatter_factor = 1.0 / (1.0 + residual_std / p.scatter_normalizer)
    horizon_factor = max(0.0, 1.0 - p.horizon_decay * offset)
    return round(float(np.clip(100.0 * sample_factor * scatter_factor * horizon_factor, 0.0, 100.0)), 1)


def forecast_trend(
    history: Sequence[ZoneState],
    cfg: EngineConfig,
    thresholds: Optional[ZoneThresholds] = None,
) -> Union[Forecast, InsufficientData]:
    """
    Project the burnout score up to `horizon_days` ahead.

    `history` may be in any order; the store hands it over most-recent-first.
    Only the latest `history_points` states are used. `thresholds` replaces
    `cfg.zones` when classifying projected points.
    """
    p = cfg.forecast
    zones = thresholds or cfg.zones

    ordered = sorted(history, key=lambda s: s.date)[-p.history_points:]
    if len(ordered) < p.min_points:
        return InsufficientData(
            required=p.min_points,
            available=len(ordered),
            detail="Not enough scored days to fit a trend",
        )

    first = ordered[0].date
    x = np.array([(s.date - first).days for s in ordered], dtype=np.float64)
    y = np.array([s.burnout_score for s in ordered], dtype=np.float64)

    slope, intercept = _ols_line(y, x)
    summary = fit_trend(y, x, cfg.trend)
    last = ordered[-1]
    last_index = x[-1]

    points: List[ForecastPoint] = []
    for d in range(1, p.horizon_days + 1):
        predicted = float(np.clip(intercept + slope * (last_index + d), 0.0, 100.0))
        points.append(
            ForecastPoint(
                offset_days=d,
                date=last.date + timedelta(days=d),
                predicted_score=round(predicted, 2),
                predicted_zone=raw_zone(predicted, zones),
                confidence=forecast_confidence(d, len(ordered), summary.residual_std, p),
            )
        )

    days_until_red = next(
        (pt.offset_days for pt in points if pt.predicted_zone is Zone.RED),
        None,
    )

    warning = None
    if (
        days_until_red is not None
        and days_until_red <= p.urgency_days
        and last.zone is not Zone.RED
    ):
        warning = (
            f"Burnout score projected to reach the red zone in {days_until_red} "
            f"day{'s' if days_until_red != 1 else ''}"
        )

    return Forecast(
        employee_id=last.employee_id,
        current_score=last.burnout_score,
        current_zone=last.zone,
        trend=summary,
        points=tuple(points),
        days_until_red=days_until_red,
        red_zone_warning=warning,
    )
