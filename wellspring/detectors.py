"""
Pattern detectors: weekday recurrence, anomalies, sustained trends, predictions.

Each detector is a pure function over the score history that returns
DetectedPattern records. No side effects; persistence and the
acknowledge/dismiss lifecycle live in the store.
"""

from datetime import timedelta
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from wellspring.config import EngineConfig
from wellspring.models import (
    DetectedPattern,
    Forecast,
    Impact,
    PatternKind,
    TrendDirection,
    ZoneState,
)
from wellspring.signals import fit_trend


WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def history_frame(history: Sequence[ZoneState]) -> pd.DataFrame:
    """Date-sorted frame of burnout scores, one row per day."""
    df = pd.DataFrame(
        [{"date": pd.Timestamp(s.date), "score": float(s.burnout_score)} for s in history],
        columns=["date", "score"],
    )
    if df.empty:
        return df
    df = df.drop_duplicates(subset="date", keep="last")
    df.sort_values("date", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


# ---------------------------------------------------------------------------
# Recurrence (day-of-week effects)
# ---------------------------------------------------------------------------

def detect_recurrence(
    employee_id: str,
    df: pd.DataFrame,
    cfg: EngineConfig,
) -> List[DetectedPattern]:
    """
    Flag weekdays whose scores sit consistently away from the overall mean.

    A weekday fires when:
        - its mean differs from the overall mean by more than the margin
        - at least `min_cycles` of its occurrences fall on the same side
    """
    pp = cfg.patterns
    if df.empty:
        return []

    overall = df["score"].mean()
    df = df.assign(weekday=df["date"].dt.dayofweek)
    detected_on = df["date"].max().date()
    patterns: List[DetectedPattern] = []

    for weekday, group in df.groupby("weekday"):
        gap = group["score"].mean() - overall
        if abs(gap) <= pp.recurrence_margin:
            continue

        worse = gap > 0
        same_side = int((group["score"] > overall).sum() if worse else (group["score"] < overall).sum())
        if same_side < pp.min_cycles:
            continue

        day_name = WEEKDAYS[int(weekday)]
        confidence = min(95.0, 50.0 + 5.0 * same_side + (abs(gap) - pp.recurrence_margin))
        if worse:
            title = f"{day_name}s run hotter"
            description = (
                f"Burnout scores on {day_name}s average {abs(gap):.1f} points above "
                f"your overall mean across {same_side} weeks"
            )
        else:
            title = f"{day_name}s are a recovery day"
            description = (
                f"Burnout scores on {day_name}s average {abs(gap):.1f} points below "
                f"your overall mean across {same_side} weeks"
            )

        patterns.append(
            DetectedPattern(
                employee_id=employee_id,
                kind=PatternKind.CORRELATION,
                key=f"correlation:weekday:{int(weekday)}",
                title=title,
                description=description,
                confidence=round(confidence, 1),
                impact=Impact.NEGATIVE if worse else Impact.POSITIVE,
                detected_on=detected_on,
                factors={"weekday": float(weekday), "gap": round(float(gap), 2), "cycles": float(same_side)},
            )
        )

    return patterns


# ---------------------------------------------------------------------------
# Anomalies (rolling z-score)
# ---------------------------------------------------------------------------

def detect_anomalies(
    employee_id: str,
    df: pd.DataFrame,
    cfg: EngineConfig,
) -> List[DetectedPattern]:
    """
    Flag days whose score is more than `anomaly_z` standard deviations from
    the rolling mean of the preceding `anomaly_window` days.

    The window is shifted by one so a spike does not dilute its own baseline.
    """
    pp = cfg.patterns
    if df.empty:
        return []

    prior = df["score"].shift(1).rolling(pp.anomaly_window, min_periods=pp.anomaly_min_periods)
    mean = prior.mean()
    std = prior.std()
    z = (df["score"] - mean) / std.where(std > 0)

    flagged = df.assign(mean=mean, z=z)[z.abs() > pp.anomaly_z]
    patterns: List[DetectedPattern] = []

    for row in flagged.itertuples(index=False):
        day = row.date.date()
        spike = row.z > 0
        patterns.append(
            DetectedPattern(
                employee_id=employee_id,
                kind=PatternKind.ANOMALY,
                key=f"anomaly:{day.isoformat()}",
                title="Unusual spike in burnout score" if spike else "Unusual drop in burnout score",
                description=(
                    f"Score of {row.score:.1f} on {day.isoformat()} was {abs(row.z):.1f} "
                    f"standard deviations {'above' if spike else 'below'} your recent average "
                    f"of {row.mean:.1f}"
                ),
                confidence=round(min(99.0, 60.0 + 10.0 * (abs(row.z) - pp.anomaly_z)), 1),
                impact=Impact.NEGATIVE if spike else Impact.POSITIVE,
                detected_on=day,
                factors={"score": round(float(row.score), 2), "z": round(float(row.z), 2)},
            )
        )

    return patterns


# ---------------------------------------------------------------------------
# Sustained trend
# ---------------------------------------------------------------------------

def detect_sustained_trend(
    employee_id: str,
    df: pd.DataFrame,
    cfg: EngineConfig,
) -> List[DetectedPattern]:
    """
    Multi-week directional change: OLS over the last `trend_window_days`.

    Fires when the fit is steep enough and linear enough (R²) to not be noise.
    """
    pp = cfg.patterns
    if df.empty:
        return []

    end = df["date"].max()
    window = df[df["date"] > end - pd.Timedelta(days=pp.trend_window_days)]
    if len(window) < pp.trend_min_points:
        return []

    x = (window["date"] - window["date"].min()).dt.days.to_numpy(dtype="float64")
    summary = fit_trend(window["score"].to_numpy(dtype="float64"), x, cfg.trend)

    if abs(summary.slope) < pp.trend_min_slope or summary.r_squared < pp.trend_min_r_squared:
        return []

    worsening = summary.slope > 0
    direction = TrendDirection.WORSENING if worsening else TrendDirection.IMPROVING
    weekly = abs(summary.slope) * 7

    return [
        DetectedPattern(
            employee_id=employee_id,
            kind=PatternKind.TREND,
            key=f"trend:{direction.value}",
            title="Burnout risk climbing" if worsening else "Burnout risk easing",
            description=(
                f"Burnout score has been {'rising' if worsening else 'falling'} by about "
                f"{weekly:.1f} points per week over the last {len(window)} scored days"
            ),
            confidence=round(min(95.0, 100.0 * summary.r_squared), 1),
            impact=Impact.NEGATIVE if worsening else Impact.POSITIVE,
            detected_on=end.date(),
            factors={"slope": summary.slope, "r_squared": summary.r_squared, "points": float(len(window))},
        )
    ]


# ---------------------------------------------------------------------------
# Forecast-driven prediction
# ---------------------------------------------------------------------------

def detect_prediction(
    employee_id: str,
    forecast: Optional[Forecast],
) -> List[DetectedPattern]:
    """Surface an urgent red-zone projection as a pattern."""
    if forecast is None or forecast.red_zone_warning is None:
        return []

    point = forecast.points[forecast.days_until_red - 1]
    return [
        DetectedPattern(
            employee_id=employee_id,
            kind=PatternKind.PREDICTION,
            key="prediction:red-zone",
            title="Red zone ahead",
            description=forecast.red_zone_warning,
            confidence=point.confidence,
            impact=Impact.NEGATIVE,
            detected_on=point.date - timedelta(days=point.offset_days),
            factors={"days_until_red": float(forecast.days_until_red), "slope": forecast.trend.slope},
        )
    ]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def detect_patterns(
    employee_id: str,
    history: Sequence[ZoneState],
    cfg: EngineConfig,
    forecast: Optional[Forecast] = None,
) -> List[DetectedPattern]:
    """Run every detector over the history."""
    df = history_frame(history)
    return (
        detect_recurrence(employee_id, df, cfg)
        + detect_anomalies(employee_id, df, cfg)
        + detect_sustained_trend(employee_id, df, cfg)
        + detect_prediction(employee_id, forecast)
    )


def scan_patterns(
    employee_id: str,
    history: Sequence[ZoneState],
    existing: Iterable[DetectedPattern],
    cfg: EngineConfig,
    forecast: Optional[Forecast] = None,
) -> List[DetectedPattern]:
    """
    Detect patterns and drop those already stored for the same structure.

    `existing` must hold every stored pattern for the employee, whatever its
    status: an acknowledged or dismissed key stays closed on later scans.
    """
    known_keys = {p.key for p in existing}
    fresh: List[DetectedPattern] = []
    for pattern in detect_patterns(employee_id, history, cfg, forecast):
        if pattern.key in known_keys:
            continue
        known_keys.add(pattern.key)
        fresh.append(pattern)
    return fresh
