"""
Signal extraction: OLS trend fit and trend-direction labelling.

Shared by the forecaster, the pattern detector, and team aggregation so that
"worsening" means the same thing everywhere. All functions are pure.

Slopes are in burnout points per day: a positive slope means burnout risk is
rising, which is labelled `worsening`.
"""

from typing import Optional, Tuple

import numpy as np

from wellspring.config import TrendThresholds
from wellspring.models import TrendDirection, TrendSummary


# ---------------------------------------------------------------------------
# OLS primitives (slope, intercept, R², residual scatter)
# ---------------------------------------------------------------------------

def _as_arrays(y, x=None) -> Tuple[np.ndarray, np.ndarray]:
    y = np.asarray(y, dtype=np.float64)
    if x is None:
        x = np.arange(len(y), dtype=np.float64)
    else:
        x = np.asarray(x, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same length, got {len(x)} and {len(y)}")
    return x, y


def _ols_line(y, x=None) -> Tuple[float, float]:
    """
    Ordinary least-squares slope and intercept.

    Uses the closed-form solution:  slope = Σ(x_c · y_c) / Σ(x_c²)
    where x_c and y_c are mean-centered. When x is omitted the points are
    taken as evenly spaced (0, 1, 2, ...).
    """
    x, y = _as_arrays(y, x)
    n = len(y)
    if n == 0:
        return 0.0, 0.0
    if n < 2:
        return 0.0, float(y[0])
    x_c = x - x.mean()
    y_c = y - y.mean()
    denom = np.dot(x_c, x_c)
    if denom == 0.0:
        return 0.0, float(y.mean())
    slope = float(np.dot(x_c, y_c) / denom)
    intercept = float(y.mean() - slope * x.mean())
    return slope, intercept


def _ols_slope(y, x=None) -> float:
    return _ols_line(y, x)[0]


def _ols_r_squared(y, x=None) -> float:
    """
    Coefficient of determination (R²) for a linear fit.

    R² = 1 - SS_res / SS_tot

    Returns 0.0 for degenerate cases (n < 2, constant series).
    Clamped to [0, 1] for numerical safety.
    """
    x, y = _as_arrays(y, x)
    if len(y) < 2:
        return 0.0

    y_c = y - y.mean()
    ss_tot = np.dot(y_c, y_c)
    if ss_tot == 0.0:
        # Constant series: a flat line fits, but explains nothing.
        return 0.0

    slope, intercept = _ols_line(y, x)
    ss_res = np.sum((y - (slope * x + intercept)) ** 2)

    r2 = 1.0 - ss_res / ss_tot
    return float(np.clip(r2, 0.0, 1.0))


def _residual_std(y, x=None) -> float:
    """Standard error of the regression: sqrt(SS_res / (n - 2)). 0.0 when n <= 2."""
    x, y = _as_arrays(y, x)
    n = len(y)
    if n <= 2:
        return 0.0
    slope, intercept = _ols_line(y, x)
    ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
    return float(np.sqrt(ss_res / (n - 2)))


# ---------------------------------------------------------------------------
# Trend classification
# ---------------------------------------------------------------------------

def classify_direction(delta: float, min_magnitude: float) -> TrendDirection:
    """Map a burnout change (slope or week-over-week delta) to a direction."""
    if delta > min_magnitude:
        return TrendDirection.WORSENING
    if delta < -min_magnitude:
        return TrendDirection.IMPROVING
    return TrendDirection.STABLE


def fit_trend(
    y,
    x=None,
    t: Optional[TrendThresholds] = None,
) -> TrendSummary:
    """Fit a line through the scores and label its direction."""
    if t is None:
        t = TrendThresholds()
    slope, intercept = _ols_line(y, x)
    return TrendSummary(
        direction=classify_direction(slope, t.min_slope),
        slope=round(slope, 4),
        intercept=round(intercept, 4),
        r_squared=round(_ols_r_squared(y, x), 4),
        residual_std=round(_residual_std(y, x), 4),
        points=len(y),
    )
