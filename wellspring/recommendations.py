"""
Zone- and factor-driven recommendations.

Every zone carries a fixed set of personal and leadership suggestions. In
the red and yellow zones the factors pushing burnout up the most add
targeted advice ahead of the generic lines.
"""

from typing import Dict, List, Tuple

from wellspring.models import Factor, FactorContribution, Recommendations, Zone
from wellspring.scoring import top_factors

MAX_ITEMS = 6


# ---------------------------------------------------------------------------
# Suggestion tables
# ---------------------------------------------------------------------------

FACTOR_ADVICE: Dict[Factor, str] = {
    Factor.SLEEP_HOURS: "Prioritize getting your ideal sleep hours, set a bedtime alarm",
    Factor.SLEEP_QUALITY: "Keep a consistent wind-down routine before bed",
    Factor.DEEP_SLEEP: "Avoid screens and caffeine late in the day to protect deep sleep",
    Factor.HRV: "Add a few minutes of slow breathing or a short walk between work blocks",
    Factor.RESTING_HR: "Go easy on intense training until your resting heart rate settles",
    Factor.EXERCISE: "Fit in light movement, even a 20 minute walk helps",
    Factor.HOURS_WORKED: "Set a firm end time for your working day",
    Factor.OVERTIME: "Push back on after-hours work where you can",
    Factor.MEETING_LOAD: "Block focus time on your calendar between meetings",
    Factor.TASK_COMPLETION: "Narrow today's list to the few tasks that matter most",
}

LEADERSHIP_FACTOR_ADVICE: Dict[Factor, str] = {
    Factor.MEETING_LOAD: "MEETINGS: Reduce meeting load for the next two weeks",
    Factor.OVERTIME: "HOURS: Stop after-hours requests until recovery",
    Factor.HOURS_WORKED: "HOURS: Review workload so the working day ends on time",
}

PERSONAL: Dict[Zone, Tuple[str, ...]] = {
    Zone.RED: (
        "Take short breaks every 90 minutes to prevent mental fatigue",
        "Consider using the wellness resources available to you",
    ),
    Zone.YELLOW: (
        "Maintain your current routine and monitor trends",
        "Focus on a consistent sleep schedule this week",
    ),
    Zone.GREEN: (
        "This is a great time to tackle challenging projects",
        "Maintain your current wellness routine, it's working",
    ),
}

LEADERSHIP: Dict[Zone, Tuple[str, ...]] = {
    Zone.RED: (
        "DIVERSION: Reassign non-critical tasks to reduce workload by 20-30%",
        "SUPPORT: Schedule a 1:1 check-in to discuss priorities",
        "PROTECT: Shield from new project requests until recovery",
    ),
    Zone.YELLOW: (
        "MONITOR: Keep standard workload, watch for trend changes",
        "BALANCE: Ensure a mix of challenging and routine tasks",
        "CHECK-IN: Brief weekly sync to gauge wellbeing",
    ),
    Zone.GREEN: (
        "OPPORTUNITY: Assign high-impact, challenging projects",
        "GROWTH: Offer stretch assignments or leadership opportunities",
        "RECOGNITION: Acknowledge their peak performance state",
    ),
}


def _unique(items: List[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))[:MAX_ITEMS]


def recommend(
    zone: Zone,
    burnout_explanation: Tuple[FactorContribution, ...] = (),
    drivers: int = 2,
) -> Recommendations:
    """
    Build recommendations for a classified day.

    Only factors with a positive burnout contribution count as drivers.
    Leadership factor advice is added in the red zone only.
    """
    pushing: List[FactorContribution] = []
    if zone is not Zone.GREEN:
        pushing = [c for c in top_factors(burnout_explanation) if c.contribution > 0][:drivers]

    personal = [FACTOR_ADVICE[c.factor] for c in pushing] + list(PERSONAL[zone])
    leadership = list(LEADERSHIP[zone])
    if zone is Zone.RED:
        leadership.extend(
            LEADERSHIP_FACTOR_ADVICE[c.factor] for c in pushing
            if c.factor in LEADERSHIP_FACTOR_ADVICE
        )

    return Recommendations(zone=zone, personal=_unique(personal), leadership=_unique(leadership))
