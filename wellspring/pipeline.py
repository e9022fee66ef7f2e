"""
Pipeline orchestration: read → baseline → score → classify → persist → report.

This is the only module that talks to storage. All analytical logic is
delegated to baseline, scoring, zones, forecast, detectors, and aggregate,
which are pure functions over their inputs.

Entry points:
    WellnessEngine           service object bound to a store (backend mode)
    analyze(filepath)        CLI mode, replays a JSON sample file
    analyze_data(payloads)   same, from already-decoded payloads
    generate_report(result)  formatted text report for one employee
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from wellspring.aggregate import TeamAggregator
from wellspring.baseline import baseline_window, compute_baseline, empty_baseline
from wellspring.config import EngineConfig, ZoneThresholds
from wellspring.detectors import scan_patterns
from wellspring.errors import ConcurrencyConflictError
from wellspring.forecast import forecast_trend
from wellspring.ingest import load_samples, parse_samples
from wellspring.models import (
    Baseline,
    DetectedPattern,
    Forecast,
    InsufficientData,
    MetricSample,
    PrivacySuppressed,
    Recommendations,
    ScoreResult,
    TeamAggregate,
    ZoneState,
)
from wellspring.recommendations import recommend
from wellspring.scoring import compute_scores, top_factors
from wellspring.store import (
    InMemoryPatternStore,
    InMemoryTimeSeriesStore,
    PatternStore,
    TimeSeriesStore,
)
from wellspring.thresholds import ThresholdResolver, percentile_thresholds
from wellspring.zones import transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyOutcome:
    """Everything produced by scoring one employee-day."""

    score: ScoreResult
    zone_state: ZoneState
    baseline: Baseline
    recommendations: Recommendations


@dataclass
class BatchResult:
    """Per-employee outcomes of a batch run. Failures are kept, not dropped."""

    day: date
    outcomes: Dict[str, DailyOutcome] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Engine (storage-bound service)
# ---------------------------------------------------------------------------

class WellnessEngine:
    """
    Binds the pure engine stages to a TimeSeriesStore.

    Scoring for different employees shares no state, so callers may shard
    `score_day` across workers by employee id. The only write is the
    zone-state upsert, which is retried once on a concurrent-write conflict.
    """

    PATTERN_HISTORY_DAYS = 90
    CALIBRATION_DAYS = 30

    def __init__(
        self,
        store: TimeSeriesStore,
        cfg: Optional[EngineConfig] = None,
        pattern_store: Optional[PatternStore] = None,
        thresholds: Optional[ThresholdResolver] = None,
    ):
        self.store = store
        self.cfg = cfg or EngineConfig()
        self.pattern_store = pattern_store or InMemoryPatternStore()
        self.thresholds = thresholds or ThresholdResolver(self.cfg.zones)
        self.aggregator = TeamAggregator(cfg=self.cfg)

    # -- scoring ---------------------------------------------------------------

    def _baseline_for(self, employee_id: str, day: date) -> Baseline:
        start, end = baseline_window(day, self.cfg)
        history = self.store.get_metric_samples(employee_id, start, end)
        baseline = compute_baseline(employee_id, history, self.cfg, as_of=end)
        if isinstance(baseline, InsufficientData):
            logger.debug("No baseline history for %s before %s", employee_id, day)
            return empty_baseline(employee_id, as_of=end)
        return baseline

    def score_day(self, employee_id: str, day: date) -> DailyOutcome:
        """
        Score one day and persist its ZoneState.

        A missing sample is scored as empty (neutral, low confidence) and
        leaves the previous zone in place.
        """
        todays = self.store.get_metric_samples(employee_id, day, day)
        sample = todays[-1] if todays else MetricSample(employee_id=employee_id, date=day)

        baseline = self._baseline_for(employee_id, day)
        result = compute_scores(sample, baseline, self.cfg)
        resolved = self.thresholds.resolve(employee_id, day)
        if resolved.source != "default":
            logger.debug(
                "Using %s thresholds for %s on %s: high=%.1f low=%.1f",
                resolved.source, employee_id, day, resolved.thresholds.high, resolved.thresholds.low,
            )

        for attempt in (1, 2):
            previous = self.store.get_latest_zone_state(employee_id, before=day)
            state = transition(result, previous, self.cfg, resolved.thresholds)
            try:
                self.store.upsert_zone_state(state, expected_previous=previous)
                break
            except ConcurrencyConflictError:
                if attempt == 2:
                    logger.error("Zone write for %s on %s conflicted twice", employee_id, day)
                    raise
                logger.warning("Zone write conflict for %s on %s, retrying", employee_id, day)

        logger.debug(
            "Scored %s on %s: burnout=%.2f readiness=%.2f zone=%s",
            employee_id, day, result.burnout_score, result.readiness_score, state.zone.value,
        )
        if state.changed:
            logger.info(
                "Zone change for %s on %s: %s -> %s",
                employee_id, day, state.previous_zone.value, state.zone.value,
            )

        return DailyOutcome(
            score=result,
            zone_state=state,
            baseline=baseline,
            recommendations=recommend(state.zone, result.burnout_explanation),
        )

    def score_batch(self, employee_ids: Iterable[str], day: date) -> BatchResult:
        """Nightly recomputation: score each employee independently."""
        batch = BatchResult(day=day)
        for employee_id in employee_ids:
            try:
                batch.outcomes[employee_id] = self.score_day(employee_id, day)
            except ConcurrencyConflictError as exc:
                batch.failures[employee_id] = exc
        if batch.failures:
            logger.error(
                "Batch for %s finished with %d failure(s): %s",
                day, len(batch.failures), ", ".join(sorted(batch.failures)),
            )
        return batch

    # -- on-demand reads -------------------------------------------------------

    def _forecast_from(self, employee_id: str, history: List[ZoneState]) -> Union[Forecast, InsufficientData]:
        if not history:
            return forecast_trend(history, self.cfg)
        latest = max(s.date for s in history)
        return forecast_trend(history, self.cfg, self.thresholds.resolve(employee_id, latest).thresholds)

    def forecast(self, employee_id: str) -> Union[Forecast, InsufficientData]:
        history = self.store.get_zone_state_history(employee_id, self.cfg.forecast.history_points)
        return self._forecast_from(employee_id, history)

    def scan_patterns(self, employee_id: str) -> List[DetectedPattern]:
        """Detect patterns and persist the ones not already stored in any status. Returns the new ones."""
        history = self.store.get_zone_state_history(employee_id, self.PATTERN_HISTORY_DAYS)
        forecast = self._forecast_from(employee_id, history)
        if isinstance(forecast, InsufficientData):
            forecast = None

        existing = self.pattern_store.list_patterns(employee_id)
        fresh = scan_patterns(employee_id, history, existing, self.cfg, forecast)
        stored = self.pattern_store.add_patterns(fresh)
        if stored:
            logger.info("Detected %d new pattern(s) for %s", len(stored), employee_id)
        return stored

    def team_aggregate(
        self,
        manager_id: str,
        as_of: Optional[date] = None,
    ) -> Union[TeamAggregate, PrivacySuppressed]:
        members = self.store.get_consenting_direct_reports(manager_id)
        limit = 7 * (self.cfg.aggregate.weeks + 1)
        histories = {e: self.store.get_zone_state_history(e, limit) for e in members}
        result = self.aggregator.aggregate(manager_id, histories, as_of)
        if isinstance(result, PrivacySuppressed):
            logger.warning(
                "Aggregate for manager %s suppressed: %d consenting member(s), %d required",
                manager_id, result.consenting_count, result.minimum_required,
            )
        return result

    def calibrate_thresholds(
        self,
        employee_ids: Iterable[str],
        as_of: date,
        percentile: float = 70.0,
    ) -> Union[ZoneThresholds, InsufficientData]:
        """
        Percentile-based thresholds from the group's scores over the last
        CALIBRATION_DAYS. Not applied; pass the result to
        `thresholds.set_organization` to adopt it.
        """
        start = as_of - timedelta(days=self.CALIBRATION_DAYS)
        scores = [
            s.burnout_score
            for e in employee_ids
            for s in self.store.get_zone_state_history(e, self.PATTERN_HISTORY_DAYS)
            if start <= s.date <= as_of
        ]
        result = percentile_thresholds(scores, percentile, self.cfg.zones)
        if isinstance(result, InsufficientData):
            logger.warning(
                "Percentile thresholds need %d scores, have %d", result.required, result.available,
            )
        else:
            logger.info(
                "P%.0f red threshold over %d scores: %.0f", percentile, len(scores), result.high,
            )
        return result

    # -- replay ----------------------------------------------------------------

    def replay(self, samples: Iterable[MetricSample]) -> Dict[str, List[DailyOutcome]]:
        """Record samples and score every (employee, date) in date order."""
        by_employee: Dict[str, set] = {}
        for s in samples:
            self.store.record_sample(s)
            by_employee.setdefault(s.employee_id, set()).add(s.date)

        outcomes: Dict[str, List[DailyOutcome]] = {}
        for employee_id in sorted(by_employee):
            outcomes[employee_id] = [
                self.score_day(employee_id, day) for day in sorted(by_employee[employee_id])
            ]
        return outcomes


# ---------------------------------------------------------------------------
# Public Entry Points
# ---------------------------------------------------------------------------

def _summarize(engine: WellnessEngine, employee_id: str, days: List[DailyOutcome]) -> Dict[str, Any]:
    latest = days[-1]
    return {
        "employee_id": employee_id,
        "days_scored": len(days),
        "latest": latest.zone_state,
        "score": latest.score,
        "baseline": latest.baseline,
        "zone_changes": sum(1 for d in days if d.zone_state.changed),
        "recommendations": latest.recommendations,
        "forecast": engine.forecast(employee_id),
        "patterns": engine.scan_patterns(employee_id),
    }


def analyze_data(
    data: List[Dict[str, Any]],
    cfg: Optional[EngineConfig] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    Backend / UI integration entry point.

    Accepts list-of-dict sample payloads directly.
    No file system usage.
    """
    if not isinstance(data, list):
        raise ValueError(f"Input data must be a list of sample payloads, got {type(data).__name__}")
    if not data:
        raise ValueError("Input data cannot be empty")

    engine = WellnessEngine(InMemoryTimeSeriesStore(), cfg)
    replayed = engine.replay(parse_samples(data))
    return {emp: _summarize(engine, emp, days) for emp, days in replayed.items()}


def analyze(
    filepath: Union[str, Path],
    cfg: Optional[EngineConfig] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    CLI-compatible entry point.
    Reads a JSON sample file and replays it through the engine.
    """
    engine = WellnessEngine(InMemoryTimeSeriesStore(), cfg)
    replayed = engine.replay(load_samples(filepath))
    return {emp: _summarize(engine, emp, days) for emp, days in replayed.items()}


# ---------------------------------------------------------------------------
# Report generation
# ---------------------------------------------------------------------------

def generate_report(result: Dict[str, Any]) -> str:
    """Format one employee's analysis as a human-readable text report."""
    state: ZoneState = result["latest"]
    score: ScoreResult = result["score"]
    forecast = result["forecast"]

    lines = [
        f"WELLNESS STATUS REPORT: {result['employee_id']}",
        "=" * 58,
        "",
        f"  Date                : {state.date.isoformat()}",
        f"  Burnout Score       : {state.burnout_score:.1f}",
        f"  Readiness Score     : {state.readiness_score:.1f}",
        f"  Zone                : {state.zone.value.upper()}"
        + (f" (was {state.previous_zone.value})" if state.changed else ""),
        f"  Days Scored         : {result['days_scored']} ({result['zone_changes']} zone change(s))",
        f"  Low Confidence      : {'YES' if state.low_confidence else 'No'}",
        "",
        "  Top Burnout Factors:",
    ]

    drivers = top_factors(score.burnout_explanation)
    if not drivers:
        lines.append("    (no factor with both a reading and a baseline)")
    for c in drivers:
        label = c.factor.value.replace("_", " ").title()
        lines.append(
            f"    {label:16s} : {c.contribution:+7.2f} pts  (deviation {c.raw_deviation:+.0%})"
        )

    lines.append("")
    if isinstance(forecast, InsufficientData):
        lines.append(
            f"  Forecast            : unavailable ({forecast.available}/{forecast.required} days)"
        )
    else:
        t = forecast.trend
        lines.append(f"  Trend               : {t.direction.value} (slope: {t.slope:+.2f}/day, R²: {t.r_squared})")
        week = forecast.points[-1]
        lines.append(
            f"  Forecast (+{week.offset_days}d)      : {week.predicted_score:.1f} "
            f"{week.predicted_zone.value} (confidence {week.confidence:.0f}%)"
        )
        if forecast.days_until_red is not None:
            lines.append(f"  Days Until Red      : {forecast.days_until_red}")
        if forecast.red_zone_warning:
            lines.append("")
            lines.append(f"  ⚠  {forecast.red_zone_warning}")

    if result["patterns"]:
        lines.append("")
        lines.append("  Patterns Detected:")
        for p in result["patterns"]:
            lines.append(f"    - [{p.kind.value}] {p.title} ({p.confidence:.0f}%)")

    recs: Recommendations = result["recommendations"]
    lines.append("")
    lines.append("  Recommendations:")
    for item in recs.personal:
        lines.append(f"    - {item}")
    lines.append("")
    lines.append("  Manager Actions:")
    for item in recs.leadership:
        lines.append(f"    - {item}")

    lines.append("")
    lines.append("=" * 58)
    return "\n".join(lines)
