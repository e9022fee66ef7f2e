from wellspring.models import Baseline, Factor, Zone
from wellspring.recommendations import FACTOR_ADVICE, MAX_ITEMS, recommend
from wellspring.scoring import compute_scores

from tests.builders import CFG, sample


def strained_explanation():
    today = sample(sleep_hours=4.0, hrv=20.0, overtime_hours=3.0, meetings_attended=9.0)
    baseline = Baseline(
        employee_id="emp-1",
        values={Factor.SLEEP_HOURS: 7.0, Factor.HRV: 50.0, Factor.OVERTIME: 0.5, Factor.MEETING_LOAD: 3.0},
        sample_count=30,
    )
    return compute_scores(today, baseline, CFG).burnout_explanation


# ═══════════════════════════════════════════════════════════════════════
# ZONE SUGGESTIONS
# ═══════════════════════════════════════════════════════════════════════

def test_every_zone_has_both_audiences():
    for zone in Zone:
        recs = recommend(zone)
        assert recs.zone is zone
        assert recs.personal
        assert recs.leadership


def test_red_zone_starts_with_workload_diversion():
    assert recommend(Zone.RED).leadership[0].startswith("DIVERSION")


def test_green_zone_ignores_drivers():
    recs = recommend(Zone.GREEN, strained_explanation())
    assert not any(advice in recs.personal for advice in FACTOR_ADVICE.values())
    assert recs.leadership[0].startswith("OPPORTUNITY")


# ═══════════════════════════════════════════════════════════════════════
# FACTOR-DRIVEN ADVICE
# ═══════════════════════════════════════════════════════════════════════

def test_top_drivers_lead_personal_advice():
    recs = recommend(Zone.RED, strained_explanation())
    assert recs.personal[0] == FACTOR_ADVICE[Factor.OVERTIME]
    assert recs.personal[1] == FACTOR_ADVICE[Factor.HRV]
    assert len(recs.personal) <= MAX_ITEMS


def test_red_overtime_driver_adds_leadership_action():
    recs = recommend(Zone.RED, strained_explanation())
    assert any(item.startswith("HOURS") for item in recs.leadership)


def test_yellow_zone_has_no_factor_leadership_actions():
    recs = recommend(Zone.YELLOW, strained_explanation())
    assert recs.personal[0] == FACTOR_ADVICE[Factor.OVERTIME]
    assert not any(item.startswith("HOURS") for item in recs.leadership)


def test_factors_easing_burnout_are_not_drivers():
    today = sample(sleep_hours=9.0, hrv=70.0)
    baseline = Baseline(employee_id="emp-1", values={Factor.SLEEP_HOURS: 7.0, Factor.HRV: 50.0},
                        sample_count=30)
    explanation = compute_scores(today, baseline, CFG).burnout_explanation
    recs = recommend(Zone.YELLOW, explanation)
    assert recs.personal == recommend(Zone.YELLOW).personal
