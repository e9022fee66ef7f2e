import logging
from pathlib import Path

import pytest

from wellspring import WellnessEngine, analyze, analyze_data, generate_report
from wellspring.config import ZoneThresholds
from wellspring.errors import ConcurrencyConflictError
from wellspring.models import (
    Forecast,
    InsufficientData,
    PatternStatus,
    PrivacySuppressed,
    TeamAggregate,
    Zone,
)
from wellspring.store import InMemoryTimeSeriesStore
from wellspring.thresholds import ThresholdOverride, ThresholdResolver

from tests.builders import CFG, day, sample, zone_history, zone_state

SAMPLE_DATA = Path(__file__).parent.parent / "sample_data.json"


class FlakyStore(InMemoryTimeSeriesStore):
    """Rejects the first `conflicts` zone writes."""

    def __init__(self, conflicts):
        super().__init__()
        self.conflicts = conflicts
        self.attempts = 0

    def upsert_zone_state(self, state, expected_previous):
        self.attempts += 1
        if self.attempts <= self.conflicts:
            raise ConcurrencyConflictError(state.employee_id, state.date)
        return super().upsert_zone_state(state, expected_previous)


class RacingStore(InMemoryTimeSeriesStore):
    """Lands `intruder` right after the engine's first prior-zone read."""

    def __init__(self, intruder):
        super().__init__()
        self.intruder = intruder
        self.raced = False

    def get_latest_zone_state(self, employee_id, before=None):
        latest = super().get_latest_zone_state(employee_id, before)
        if not self.raced:
            self.raced = True
            super().upsert_zone_state(self.intruder, expected_previous=None)
        return latest


def seeded_engine(days=10):
    store = InMemoryTimeSeriesStore()
    for n in range(days):
        store.record_sample(sample(on=day(n), sleep_hours=7.0, hrv=50.0, overtime_hours=0.5))
    return WellnessEngine(store, CFG)


def seed_history(engine, states):
    previous = None
    for state in states:
        engine.store.upsert_zone_state(state, expected_previous=previous)
        previous = state


# ═══════════════════════════════════════════════════════════════════════
# DAILY SCORING
# ═══════════════════════════════════════════════════════════════════════

def test_first_day_without_history_is_neutral():
    outcome = seeded_engine().score_day("emp-1", day(0))
    assert outcome.score.burnout_score == 50.0
    assert outcome.score.low_confidence
    assert outcome.zone_state.zone is Zone.YELLOW
    assert outcome.zone_state.previous_zone is None


def test_strained_day_moves_employee_to_red(caplog):
    engine = seeded_engine()
    engine.store.record_sample(sample(on=day(10), sleep_hours=4.0, hrv=20.0, overtime_hours=3.0))
    for n in range(10):
        engine.score_day("emp-1", day(n))

    caplog.set_level(logging.INFO, logger="wellspring.pipeline")
    outcome = engine.score_day("emp-1", day(10))

    assert outcome.baseline.sample_count == 10
    assert not outcome.score.low_confidence
    assert outcome.score.burnout_score >= 70
    assert outcome.zone_state.zone is Zone.RED
    assert outcome.zone_state.previous_zone is Zone.YELLOW
    assert outcome.zone_state.changed
    assert "Zone change for emp-1" in caplog.text


def test_missing_sample_scores_neutral():
    engine = seeded_engine()
    for n in range(10):
        engine.score_day("emp-1", day(n))
    outcome = engine.score_day("emp-1", day(12))
    assert outcome.score.burnout_score == 50.0
    assert outcome.score.low_confidence


def test_missing_day_after_red_keeps_red(caplog):
    engine = seeded_engine()
    engine.store.record_sample(sample(on=day(10), sleep_hours=4.0, hrv=20.0, overtime_hours=3.0))
    for n in range(11):
        engine.score_day("emp-1", day(n))

    caplog.set_level(logging.INFO, logger="wellspring.pipeline")
    outcome = engine.score_day("emp-1", day(11))

    assert outcome.score.low_confidence
    assert outcome.zone_state.zone is Zone.RED
    assert outcome.zone_state.previous_zone is Zone.RED
    assert not outcome.zone_state.changed
    assert "Zone change" not in caplog.text


def test_employee_override_relaxes_red_boundary():
    resolver = ThresholdResolver()
    resolver.add_override(ThresholdOverride(employee_id="emp-1", start=day(0), high=85.0, reason="on-call rotation"))
    engine = seeded_engine()
    engine.thresholds = resolver
    engine.store.record_sample(sample(on=day(10), sleep_hours=4.0, hrv=20.0, overtime_hours=3.0))
    for n in range(10):
        engine.score_day("emp-1", day(n))

    outcome = engine.score_day("emp-1", day(10))
    assert outcome.score.burnout_score >= 70
    assert outcome.zone_state.zone is Zone.YELLOW


def test_red_day_carries_recommendations():
    engine = seeded_engine()
    engine.store.record_sample(sample(on=day(10), sleep_hours=4.0, hrv=20.0, overtime_hours=3.0))
    for n in range(10):
        engine.score_day("emp-1", day(n))
    recs = engine.score_day("emp-1", day(10)).recommendations
    assert recs.zone is Zone.RED
    assert recs.leadership[0].startswith("DIVERSION")


def test_rescoring_a_day_is_idempotent():
    engine = seeded_engine()
    first = engine.score_day("emp-1", day(3))
    second = engine.score_day("emp-1", day(3))
    assert first.zone_state == second.zone_state
    assert len(engine.store.get_zone_state_history("emp-1", 10)) == 1


# ═══════════════════════════════════════════════════════════════════════
# CONFLICT RETRY
# ═══════════════════════════════════════════════════════════════════════

def test_single_conflict_is_retried(caplog):
    store = FlakyStore(conflicts=1)
    caplog.set_level(logging.WARNING, logger="wellspring.pipeline")
    outcome = WellnessEngine(store, CFG).score_day("emp-1", day(0))
    assert store.attempts == 2
    assert store.get_latest_zone_state("emp-1") == outcome.zone_state
    assert "retrying" in caplog.text


def test_second_conflict_propagates():
    store = FlakyStore(conflicts=2)
    with pytest.raises(ConcurrencyConflictError):
        WellnessEngine(store, CFG).score_day("emp-1", day(0))


def test_retry_rereads_prior_zone():
    intruder = zone_state(80.0, day(-1))
    store = RacingStore(intruder)
    for n in range(-10, 1):
        store.record_sample(sample(on=day(n), sleep_hours=7.0, hrv=50.0, overtime_hours=0.5))
    outcome = WellnessEngine(store, CFG).score_day("emp-1", day(0))
    assert outcome.zone_state.previous_zone is Zone.RED
    assert outcome.zone_state.zone is Zone.YELLOW
    assert outcome.zone_state.changed


def test_batch_keeps_failures():
    store = FlakyStore(conflicts=2)
    batch = WellnessEngine(store, CFG).score_batch(["emp-a", "emp-b"], day(0))
    assert set(batch.failures) == {"emp-a"}
    assert set(batch.outcomes) == {"emp-b"}


# ═══════════════════════════════════════════════════════════════════════
# FORECAST / PATTERNS / TEAM
# ═══════════════════════════════════════════════════════════════════════

def test_forecast_needs_scored_days():
    assert isinstance(seeded_engine().forecast("emp-1"), InsufficientData)


def test_forecast_reads_recent_history():
    engine = seeded_engine()
    seed_history(engine, zone_history([39.0 + 3.0 * i for i in range(10)]))
    forecast = engine.forecast("emp-1")
    assert forecast.days_until_red == 2
    assert forecast.red_zone_warning


def test_pattern_scan_persists_once(caplog):
    engine = seeded_engine()
    seed_history(engine, zone_history([70.0 if i % 7 == 0 else 50.0 for i in range(35)]))

    caplog.set_level(logging.INFO, logger="wellspring.pipeline")
    first = engine.scan_patterns("emp-1")
    assert "correlation:weekday:0" in {p.key for p in first}
    assert "new pattern" in caplog.text

    assert engine.scan_patterns("emp-1") == []


def test_dismissed_pattern_stays_dismissed_on_rescan():
    engine = seeded_engine()
    seed_history(engine, zone_history([70.0 if i % 7 == 0 else 50.0 for i in range(35)]))
    first = engine.scan_patterns("emp-1")
    for p in first:
        engine.pattern_store.dismiss(p.pattern_id)

    assert engine.scan_patterns("emp-1") == []
    assert engine.pattern_store.list_patterns("emp-1", PatternStatus.OPEN) == []
    assert len(engine.pattern_store.list_patterns("emp-1", PatternStatus.DISMISSED)) == len(first)


def test_acknowledged_anomaly_not_reopened():
    engine = seeded_engine()
    seed_history(engine, zone_history([50.0, 52.0, 48.0, 51.0, 49.0] * 3 + [90.0]))
    anomaly_key = f"anomaly:{day(15).isoformat()}"
    first = engine.scan_patterns("emp-1")
    assert anomaly_key in {p.key for p in first}
    for p in first:
        if p.key == anomaly_key:
            engine.pattern_store.acknowledge(p.pattern_id)

    assert engine.scan_patterns("emp-1") == []
    stored = [p for p in engine.pattern_store.list_patterns("emp-1") if p.key == anomaly_key]
    assert [p.status for p in stored] == [PatternStatus.ACKNOWLEDGED]


def test_team_aggregate_for_consenting_team():
    store = InMemoryTimeSeriesStore()
    for i, score in enumerate([20, 30, 45, 55, 72, 80]):
        store.add_employee(f"emp-{i}", manager_id="mgr-1")
        store.upsert_zone_state(zone_state(score, day(1), f"emp-{i}"), expected_previous=None)
    result = WellnessEngine(store, CFG).team_aggregate("mgr-1")
    assert isinstance(result, TeamAggregate)
    assert result.team_size == 6


def test_calibration_reads_recent_team_scores():
    store = InMemoryTimeSeriesStore()
    engine = WellnessEngine(store, CFG)
    ids = [f"emp-{i}" for i in range(4)]
    for i, employee_id in enumerate(ids):
        seed_history(engine, zone_history([40.0 + 10.0 * i] * 3, employee_id=employee_id, start=day(0)))
    result = engine.calibrate_thresholds(ids, as_of=day(2))
    assert isinstance(result, ZoneThresholds)
    assert result.high == 60.0


def test_calibration_without_enough_scores(caplog):
    caplog.set_level(logging.WARNING, logger="wellspring.pipeline")
    result = seeded_engine().calibrate_thresholds(["emp-1"], as_of=day(10))
    assert isinstance(result, InsufficientData)
    assert "Percentile thresholds need" in caplog.text


def test_suppressed_aggregate_is_logged(caplog):
    store = InMemoryTimeSeriesStore()
    store.add_employee("emp-1", manager_id="mgr-1")
    caplog.set_level(logging.WARNING, logger="wellspring.pipeline")
    result = WellnessEngine(store, CFG).team_aggregate("mgr-1")
    assert isinstance(result, PrivacySuppressed)
    assert "suppressed" in caplog.text


# ═══════════════════════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════════

def test_analyze_sample_file():
    results = analyze(SAMPLE_DATA)
    assert set(results) == {"emp-001", "emp-002"}
    assert results["emp-001"]["days_scored"] == 21
    for result in results.values():
        assert 0.0 <= result["latest"].burnout_score <= 100.0


def test_deteriorating_week_raises_burnout():
    result = analyze(SAMPLE_DATA)["emp-001"]
    assert result["latest"].burnout_score > 60.0
    assert result["latest"].zone is not Zone.GREEN


def test_report_mentions_employee_and_zone():
    result = analyze(SAMPLE_DATA)["emp-001"]
    report = generate_report(result)
    assert "WELLNESS STATUS REPORT: emp-001" in report
    assert result["latest"].zone.value.upper() in report
    assert "Recommendations:" in report
    assert result["recommendations"].leadership[0] in report


def test_analyze_data_rejects_empty_input():
    with pytest.raises(ValueError):
        analyze_data([])


def test_analyze_data_rejects_single_payload():
    with pytest.raises(ValueError, match="list"):
        analyze_data({"employee_id": "emp-9", "date": "2026-03-02"})


def test_analyze_data_from_payloads():
    payloads = [
        {"employee_id": "emp-9", "date": f"2026-03-{d:02d}", "sleep_hours": 7.0, "hrv": 50}
        for d in range(2, 7)
    ]
    results = analyze_data(payloads)
    assert results["emp-9"]["days_scored"] == 5
    forecast = results["emp-9"]["forecast"]
    assert isinstance(forecast, Forecast)
    assert forecast.days_until_red is None
