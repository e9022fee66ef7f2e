"""
Risk zone classification with hysteresis.

Maps a burnout score → red / yellow / green. The previous persisted zone
widens the exit boundary so a score hovering around a threshold does not
flip the zone every day. This is the only place thresholds are applied to
real (persisted) states; forecasts use `raw_zone` without hysteresis.
"""

from typing import Optional

from wellspring.config import EngineConfig, ZoneThresholds
from wellspring.models import ScoreResult, Zone, ZoneState


def raw_zone(score: float, t: ZoneThresholds) -> Zone:
    """Plain threshold classification, no memory."""
    if score >= t.high:
        return Zone.RED
    if score <= t.low:
        return Zone.GREEN
    return Zone.YELLOW


def classify_zone(
    score: float,
    previous: Optional[Zone],
    t: ZoneThresholds,
) -> Zone:
    """
    Classify with hysteresis against the immediately preceding zone.

    Decision order matters, first match wins:
        previous red,   score >= high - band  → stays red
        previous green, score <= low + band   → stays green
        otherwise                             → raw thresholds
    """
    if previous is Zone.RED and score >= t.high - t.hysteresis_band:
        return Zone.RED

    if previous is Zone.GREEN and score <= t.low + t.hysteresis_band:
        return Zone.GREEN

    return raw_zone(score, t)


def is_no_data(result: ScoreResult) -> bool:
    """True when nothing on the day could be compared against the baseline."""
    return result.low_confidence and not result.burnout_explanation


def transition(
    result: ScoreResult,
    previous_state: Optional[ZoneState],
    cfg: EngineConfig,
    thresholds: Optional[ZoneThresholds] = None,
) -> ZoneState:
    """
    Build the ZoneState for a freshly scored day.

    `previous_state` is the latest persisted state strictly before
    `result.date` (None for the employee's first day). `thresholds`
    overrides `cfg.zones` for employees with resolved per-employee bounds.

    A no-data day carries the previous zone forward unchanged.
    """
    previous = previous_state.zone if previous_state is not None else None
    if previous is not None and is_no_data(result):
        zone = previous
    else:
        zone = classify_zone(result.burnout_score, previous, thresholds or cfg.zones)

    return ZoneState(
        employee_id=result.employee_id,
        date=result.date,
        zone=zone,
        previous_zone=previous,
        changed=previous is not None and zone is not previous,
        burnout_score=result.burnout_score,
        readiness_score=result.readiness_score,
        low_confidence=result.low_confidence,
    )
