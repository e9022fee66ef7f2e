"""
Domain records shared by every engine stage.

Factor names, zones, and pattern kinds are closed enums so explanations and
pattern listings can be checked exhaustively. Records are frozen: a corrective
write replaces a record under the same key, it never mutates one in place.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Factor(str, Enum):
    """Scoring factors. Each maps to one sample field, except task completion."""

    SLEEP_HOURS = "sleep_hours"
    SLEEP_QUALITY = "sleep_quality"
    HRV = "hrv"
    RESTING_HR = "resting_hr"
    EXERCISE = "exercise"
    DEEP_SLEEP = "deep_sleep"
    HOURS_WORKED = "hours_worked"
    OVERTIME = "overtime"
    MEETING_LOAD = "meeting_load"
    TASK_COMPLETION = "task_completion"


class Zone(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


class TrendDirection(str, Enum):
    WORSENING = "worsening"
    IMPROVING = "improving"
    STABLE = "stable"


class PatternKind(str, Enum):
    CORRELATION = "correlation"
    TREND = "trend"
    ANOMALY = "anomaly"
    PREDICTION = "prediction"


class Impact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class PatternStatus(str, Enum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    DISMISSED = "dismissed"


class PrivacyStatus(str, Enum):
    OK = "ok"
    SUPPRESSED_TOO_SMALL = "suppressed-too-small"


# ---------------------------------------------------------------------------
# Metric samples
# ---------------------------------------------------------------------------

_FACTOR_FIELDS = {
    Factor.SLEEP_HOURS: "sleep_hours",
    Factor.SLEEP_QUALITY: "sleep_quality",
    Factor.HRV: "hrv",
    Factor.RESTING_HR: "resting_hr",
    Factor.EXERCISE: "exercise_minutes",
    Factor.DEEP_SLEEP: "deep_sleep_hours",
    Factor.HOURS_WORKED: "hours_worked",
    Factor.OVERTIME: "overtime_hours",
    Factor.MEETING_LOAD: "meetings_attended",
}

METRIC_FIELDS = (
    "sleep_hours",
    "sleep_quality",
    "hrv",
    "resting_hr",
    "exercise_minutes",
    "deep_sleep_hours",
    "hours_worked",
    "overtime_hours",
    "meetings_attended",
    "tasks_completed",
    "tasks_assigned",
)


@dataclass(frozen=True)
class MetricSample:
    """One employee, one calendar day. None means the reading is absent."""

    employee_id: str
    date: date
    sleep_hours: Optional[float] = None
    sleep_quality: Optional[float] = None
    hrv: Optional[float] = None
    resting_hr: Optional[float] = None
    exercise_minutes: Optional[float] = None
    deep_sleep_hours: Optional[float] = None
    hours_worked: Optional[float] = None
    overtime_hours: Optional[float] = None
    meetings_attended: Optional[float] = None
    tasks_completed: Optional[float] = None
    tasks_assigned: Optional[float] = None

    def factor_value(self, factor: Factor) -> Optional[float]:
        """Value of a scoring factor, or None when it cannot be derived."""
        if factor is Factor.TASK_COMPLETION:
            if self.tasks_completed is None or not self.tasks_assigned:
                return None
            return self.tasks_completed / self.tasks_assigned
        return getattr(self, _FACTOR_FIELDS[factor])

    def factor_values(self) -> Dict[Factor, Optional[float]]:
        return {f: self.factor_value(f) for f in Factor}

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in METRIC_FIELDS)


# ---------------------------------------------------------------------------
# Baseline and scores
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Baseline:
    """Per-factor means over a trailing window. Missing keys are absent factors."""

    employee_id: str
    values: Dict[Factor, float]
    sample_count: int
    window_start: Optional[date] = None
    window_end: Optional[date] = None
    low_confidence: bool = False

    def get(self, factor: Factor) -> Optional[float]:
        return self.values.get(factor)


@dataclass(frozen=True)
class FactorContribution:
    """One line of a score explanation. Contribution is in score points."""

    factor: Factor
    raw_deviation: float
    deviation: float
    weight: float
    sign: int
    contribution: float


@dataclass(frozen=True)
class ScoreResult:
    employee_id: str
    date: date
    burnout_score: float
    readiness_score: float
    burnout_explanation: Tuple[FactorContribution, ...] = ()
    readiness_explanation: Tuple[FactorContribution, ...] = ()
    low_confidence: bool = False
    policy_version: str = ""


@dataclass(frozen=True)
class ZoneState:
    """Persisted per (employee, date). previous_zone is None on the first row."""

    employee_id: str
    date: date
    zone: Zone
    previous_zone: Optional[Zone]
    changed: bool
    burnout_score: float
    readiness_score: float
    low_confidence: bool = False


@dataclass(frozen=True)
class Recommendations:
    """Suggestions for the employee (personal) and their manager (leadership)."""

    zone: Zone
    personal: Tuple[str, ...] = ()
    leadership: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ForecastPoint:
    offset_days: int
    date: date
    predicted_score: float
    predicted_zone: Zone
    confidence: float


@dataclass(frozen=True)
class TrendSummary:
    direction: TrendDirection
    slope: float
    intercept: float
    r_squared: float
    residual_std: float
    points: int


@dataclass(frozen=True)
class Forecast:
    employee_id: str
    current_score: float
    current_zone: Zone
    trend: TrendSummary
    points: Tuple[ForecastPoint, ...]
    days_until_red: Optional[int] = None
    red_zone_warning: Optional[str] = None


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectedPattern:
    """
    A recurring structure found in an employee's history.

    `key` identifies the structure itself (e.g. "correlation:weekday:0"),
    so a rerun that finds the same structure can be matched to an open row.
    """

    employee_id: str
    kind: PatternKind
    key: str
    title: str
    description: str
    confidence: float
    impact: Impact
    detected_on: date
    status: PatternStatus = PatternStatus.OPEN
    pattern_id: Optional[str] = None
    factors: Dict[str, float] = field(default_factory=dict)

    def with_status(self, status: PatternStatus) -> "DetectedPattern":
        return replace(self, status=status)


# ---------------------------------------------------------------------------
# Team aggregates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WeeklyTrendPoint:
    week_start: date
    avg_burnout: float
    avg_readiness: float
    member_count: int


@dataclass(frozen=True)
class ActionItem:
    priority: str
    kind: str
    message: str
    action: str


@dataclass(frozen=True)
class TeamAggregate:
    manager_id: str
    team_size: int
    zone_distribution: Dict[Zone, int]
    burnout_distribution: Dict[str, int]
    weekly_trend: List[WeeklyTrendPoint]
    trend_direction: TrendDirection
    elevated_stress_count: int
    elevated_stress_percentage: int
    team_health_score: int
    action_items: List[ActionItem]
    as_of: Optional[date] = None
    privacy_status: PrivacyStatus = PrivacyStatus.OK
    privacy_note: str = "Individual scores not shown. All data aggregated across consenting team members."


# ---------------------------------------------------------------------------
# Soft results (returned, never raised)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InsufficientData:
    """Expected shortfall of history. Callers branch on it; it is not a fault."""

    required: int
    available: int
    detail: str = ""
    reason: str = "insufficient-data"


@dataclass(frozen=True)
class PrivacySuppressed:
    """Rollup withheld because too few consenting members contribute."""

    manager_id: str
    consenting_count: int
    minimum_required: int
    note: str = ""
    privacy_status: PrivacyStatus = PrivacyStatus.SUPPRESSED_TOO_SMALL
