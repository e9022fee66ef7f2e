import pytest

from wellspring.config import (
    DEFAULT_BURNOUT_POLICY,
    DEFAULT_READINESS_POLICY,
    AggregateParams,
    BaselineParams,
    EngineConfig,
    FactorWeight,
    ForecastParams,
    ScoringPolicy,
    ZoneThresholds,
)
from wellspring.models import Factor


# ═══════════════════════════════════════════════════════════════════════
# DEFAULTS
# ═══════════════════════════════════════════════════════════════════════

def test_default_config_builds():
    cfg = EngineConfig()
    assert cfg.baseline.window_days == 30
    assert cfg.zones.high == 70.0 and cfg.zones.low == 35.0
    assert cfg.aggregate.min_aggregate_size == 5


def test_default_policies_cover_every_factor():
    for policy in (DEFAULT_BURNOUT_POLICY, DEFAULT_READINESS_POLICY):
        assert set(policy.by_factor()) == set(Factor)
        assert sum(w.weight for w in policy.weights) == pytest.approx(1.0)


def test_policies_are_versioned():
    assert DEFAULT_BURNOUT_POLICY.version == "burnout-v1"
    assert DEFAULT_READINESS_POLICY.version == "readiness-v1"


def test_burnout_and_readiness_disagree_on_sleep_direction():
    burnout = DEFAULT_BURNOUT_POLICY.by_factor()[Factor.SLEEP_HOURS]
    readiness = DEFAULT_READINESS_POLICY.by_factor()[Factor.SLEEP_HOURS]
    assert burnout.sign == -1 and readiness.sign == 1


# ═══════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def test_non_positive_weight_raises():
    with pytest.raises(ValueError):
        FactorWeight(Factor.HRV, 0.0, 1)


def test_bad_sign_raises():
    with pytest.raises(ValueError):
        FactorWeight(Factor.HRV, 0.2, 0)


def test_duplicate_factor_in_policy_raises():
    with pytest.raises(ValueError):
        ScoringPolicy(
            version="dup",
            weights=(FactorWeight(Factor.HRV, 0.5, 1), FactorWeight(Factor.HRV, 0.5, -1)),
        )


def test_inverted_zone_thresholds_raise():
    with pytest.raises(ValueError):
        ZoneThresholds(high=35.0, low=70.0)


def test_overlapping_hysteresis_bands_raise():
    with pytest.raises(ValueError):
        ZoneThresholds(high=70.0, low=35.0, hysteresis_band=20.0)


def test_forecast_horizon_capped_at_a_week():
    with pytest.raises(ValueError):
        ForecastParams(horizon_days=8)


def test_forecast_needs_three_points():
    with pytest.raises(ValueError):
        ForecastParams(min_points=2)


def test_aggregate_floor_must_be_positive():
    with pytest.raises(ValueError):
        AggregateParams(min_aggregate_size=0)


def test_baseline_window_must_be_positive():
    with pytest.raises(ValueError):
        BaselineParams(window_days=0)
