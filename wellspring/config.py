"""
Centralized configuration for all thresholds, weights, and window parameters.

Every tunable constant lives here. Weight tables are versioned policies: when
calibration changes, bump the policy version so stored scores stay auditable.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from wellspring.models import Factor


# ---------------------------------------------------------------------------
# Baseline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BaselineParams:
    """Trailing window used to derive an employee's personal reference values."""

    window_days: int = 30
    min_history_days: int = 7      # fewer samples → low confidence

    def __post_init__(self):
        if self.window_days < 1:
            raise ValueError(f"window_days must be >= 1, got {self.window_days}")
        if self.min_history_days < 1:
            raise ValueError(f"min_history_days must be >= 1, got {self.min_history_days}")


# ---------------------------------------------------------------------------
# Scoring policies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FactorWeight:
    """
    One row of a scoring policy.

    sign = +1 → the score rises when the factor is above baseline
    sign = -1 → the score rises when the factor is below baseline
    """

    factor: Factor
    weight: float
    sign: int

    def __post_init__(self):
        if self.weight <= 0:
            raise ValueError(f"{self.factor.value}: weight must be positive, got {self.weight}")
        if self.sign not in (1, -1):
            raise ValueError(f"{self.factor.value}: sign must be +1 or -1, got {self.sign}")


@dataclass(frozen=True)
class ScoringPolicy:
    """
    Weighted multi-factor policy for one score.

    contribution_i = scale * sign_i * weight_i * clip(deviation_i) / W
    score          = clamp(neutral + sum(contribution_i), 0, 100)

    where W is the total weight of the factors actually present on both
    the sample and the baseline.
    """

    version: str
    weights: Tuple[FactorWeight, ...]
    deviation_clip: float = 1.0
    neutral: float = 50.0
    scale: float = 50.0

    def __post_init__(self):
        factors = [w.factor for w in self.weights]
        if len(set(factors)) != len(factors):
            raise ValueError(f"Policy {self.version} lists a factor more than once")
        if self.deviation_clip <= 0:
            raise ValueError(f"deviation_clip must be positive, got {self.deviation_clip}")
        if not 0.0 <= self.neutral <= 100.0:
            raise ValueError(f"neutral must be in [0, 100], got {self.neutral}")

    def by_factor(self) -> Dict[Factor, FactorWeight]:
        return {w.factor: w for w in self.weights}


DEFAULT_BURNOUT_POLICY = ScoringPolicy(
    version="burnout-v1",
    weights=(
        FactorWeight(Factor.SLEEP_HOURS, 0.20, -1),
        FactorWeight(Factor.SLEEP_QUALITY, 0.10, -1),
        FactorWeight(Factor.HRV, 0.15, -1),
        FactorWeight(Factor.RESTING_HR, 0.10, 1),
        FactorWeight(Factor.EXERCISE, 0.05, -1),
        FactorWeight(Factor.DEEP_SLEEP, 0.05, -1),
        FactorWeight(Factor.HOURS_WORKED, 0.10, 1),
        FactorWeight(Factor.OVERTIME, 0.10, 1),
        FactorWeight(Factor.MEETING_LOAD, 0.05, 1),
        FactorWeight(Factor.TASK_COMPLETION, 0.10, -1),
    ),
)

DEFAULT_READINESS_POLICY = ScoringPolicy(
    version="readiness-v1",
    weights=(
        FactorWeight(Factor.SLEEP_HOURS, 0.15, 1),
        FactorWeight(Factor.SLEEP_QUALITY, 0.10, 1),
        FactorWeight(Factor.HRV, 0.20, 1),
        FactorWeight(Factor.RESTING_HR, 0.10, -1),
        FactorWeight(Factor.EXERCISE, 0.10, 1),
        FactorWeight(Factor.DEEP_SLEEP, 0.10, 1),
        FactorWeight(Factor.HOURS_WORKED, 0.05, -1),
        FactorWeight(Factor.OVERTIME, 0.10, -1),
        FactorWeight(Factor.MEETING_LOAD, 0.05, -1),
        FactorWeight(Factor.TASK_COMPLETION, 0.05, 1),
    ),
)


# ---------------------------------------------------------------------------
# Zone classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ZoneThresholds:
    """Burnout-score boundaries and the hysteresis band applied on exit."""

    high: float = 70.0             # score >= high → red
    low: float = 35.0              # score <= low  → green
    hysteresis_band: float = 5.0

    def __post_init__(self):
        if self.low >= self.high:
            raise ValueError(f"low ({self.low}) must be below high ({self.high})")
        if self.hysteresis_band < 0:
            raise ValueError(f"hysteresis_band must be >= 0, got {self.hysteresis_band}")
        if 2 * self.hysteresis_band >= self.high - self.low:
            raise ValueError("hysteresis bands overlap; widen the yellow zone or shrink the band")


# ---------------------------------------------------------------------------
# Trend direction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrendThresholds:
    """Minimum slope magnitude (burnout points per day) to call a trend."""

    min_slope: float = 0.5


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ForecastParams:
    """
    Linear projection parameters.

    confidence(d) = 100 * sample_factor * scatter_factor * max(0, 1 - horizon_decay * d)

    - sample_factor: min(1, n / full_confidence_points)
    - scatter_factor: 1 / (1 + residual_std / scatter_normalizer)
    """

    min_points: int = 3
    history_points: int = 14
    horizon_days: int = 7
    urgency_days: int = 3
    full_confidence_points: int = 14
    scatter_normalizer: float = 10.0
    horizon_decay: float = 0.07

    def __post_init__(self):
        if self.min_points < 3:
            raise ValueError(f"min_points must be >= 3, got {self.min_points}")
        if self.history_points < self.min_points:
            raise ValueError("history_points must be >= min_points")
        if not 1 <= self.horizon_days <= 7:
            raise ValueError(f"horizon_days must be in [1, 7], got {self.horizon_days}")


# ---------------------------------------------------------------------------
# Pattern detection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatternParams:
    """Thresholds for recurrence, anomaly, and sustained-trend detection."""

    recurrence_margin: float = 8.0
    min_cycles: int = 3

    anomaly_window: int = 7
    anomaly_min_periods: int = 5
    anomaly_z: float = 2.5

    trend_window_days: int = 28
    trend_min_points: int = 14
    trend_min_slope: float = 0.3
    trend_min_r_squared: float = 0.3


# ---------------------------------------------------------------------------
# Team aggregation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AggregateParams:
    """Privacy floor and bucketing for manager-facing rollups."""

    min_aggregate_size: int = 5
    weeks: int = 4
    week_min_delta: float = 5.0
    bucket_moderate: float = 40.0
    bucket_high: float = 70.0
    elevated_stress: float = 50.0

    def __post_init__(self):
        if self.min_aggregate_size < 1:
            raise ValueError(f"min_aggregate_size must be >= 1, got {self.min_aggregate_size}")
        if self.bucket_moderate >= self.bucket_high:
            raise ValueError("bucket_moderate must be below bucket_high")


# ---------------------------------------------------------------------------
# Top-level config aggregate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration. Pass to pipeline to override defaults."""

    version: str = "2026.1"
    baseline: BaselineParams = field(default_factory=BaselineParams)
    burnout: ScoringPolicy = DEFAULT_BURNOUT_POLICY
    readiness: ScoringPolicy = DEFAULT_READINESS_POLICY
    zones: ZoneThresholds = field(default_factory=ZoneThresholds)
    trend: TrendThresholds = field(default_factory=TrendThresholds)
    forecast: ForecastParams = field(default_factory=ForecastParams)
    patterns: PatternParams = field(default_factory=PatternParams)
    aggregate: AggregateParams = field(default_factory=AggregateParams)
