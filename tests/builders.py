"""Small factories for samples, score results, and zone histories."""

from datetime import date, timedelta
from typing import List, Optional, Sequence

from wellspring.config import EngineConfig
from wellspring.models import MetricSample, ScoreResult, Zone, ZoneState
from wellspring.zones import raw_zone

CFG = EngineConfig()
START = date(2026, 3, 2)  # Monday


def day(n: int) -> date:
    return START + timedelta(days=n)


def sample(employee_id: str = "emp-1", on: date = START, **fields) -> MetricSample:
    return MetricSample(employee_id=employee_id, date=on, **fields)


def daily_samples(employee_id: str, days: int, start: date = START, **fields) -> List[MetricSample]:
    return [sample(employee_id, start + timedelta(days=i), **fields) for i in range(days)]


def score_result(score: float, on: date = START, employee_id: str = "emp-1",
                 readiness: float = 50.0) -> ScoreResult:
    return ScoreResult(
        employee_id=employee_id,
        date=on,
        burnout_score=score,
        readiness_score=readiness,
    )


def zone_state(score: float, on: date = START, employee_id: str = "emp-1",
               previous: Optional[Zone] = None, readiness: float = 50.0) -> ZoneState:
    zone = raw_zone(score, CFG.zones)
    return ZoneState(
        employee_id=employee_id,
        date=on,
        zone=zone,
        previous_zone=previous,
        changed=previous is not None and zone is not previous,
        burnout_score=score,
        readiness_score=readiness,
    )


def zone_history(scores: Sequence[float], employee_id: str = "emp-1",
                 start: date = START, dates: Optional[Sequence[date]] = None) -> List[ZoneState]:
    """Chronological states with raw-threshold zones, one per consecutive day unless `dates` is given."""
    if dates is None:
        dates = [start + timedelta(days=i) for i in range(len(scores))]
    states = []
    previous = None
    for on, score in zip(dates, scores):
        state = zone_state(score, on, employee_id, previous=previous)
        states.append(state)
        previous = state.zone
    return states
