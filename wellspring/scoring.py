"""
Burnout and readiness scoring: today's sample against the personal baseline.

For every factor present on both sides the normalized deviation
(current - baseline) / baseline is clipped, signed, and weighted. Each
factor's contribution is expressed in score points, so

    score == neutral + sum(contribution for each explained factor)

holds up to rounding (and clamping, which the default policy never needs:
contributions are bounded by ±scale).
"""

from typing import List, Tuple

import numpy as np

from wellspring.config import EngineConfig, ScoringPolicy
from wellspring.models import (
    Baseline,
    FactorContribution,
    MetricSample,
    ScoreResult,
)


def normalized_deviation(current: float, reference: float, clip: float) -> Tuple[float, float]:
    """
    Return (raw, clipped) relative deviation of `current` from `reference`.

    A zero reference has no relative scale: equal readings deviate by 0,
    any positive reading counts as the full clip.
    """
    if reference == 0:
        raw = 0.0 if current == 0 else float(np.sign(current)) * clip
    else:
        raw = (current - reference) / reference
    return raw, float(np.clip(raw, -clip, clip))


def _score_with_policy(
    sample: MetricSample,
    baseline: Baseline,
    policy: ScoringPolicy,
) -> Tuple[float, Tuple[FactorContribution, ...]]:
    """Apply one policy. Returns (score, explanation)."""
    included = []
    for fw in policy.weights:
        current = sample.factor_value(fw.factor)
        reference = baseline.get(fw.factor)
        if current is None or reference is None:
            continue
        raw, dev = normalized_deviation(current, reference, policy.deviation_clip)
        included.append((fw, raw, dev))

    if not included:
        return policy.neutral, ()

    total_weight = sum(fw.weight for fw, _, _ in included)
    explanation: List[FactorContribution] = []
    total_points = 0.0
    for fw, raw, dev in included:
        points = policy.scale * fw.sign * fw.weight * dev / total_weight
        total_points += points
        explanation.append(
            FactorContribution(
                factor=fw.factor,
                raw_deviation=round(raw, 4),
                deviation=round(dev, 4),
                weight=fw.weight,
                sign=fw.sign,
                contribution=round(points, 4),
            )
        )

    return float(np.clip(policy.neutral + total_points, 0.0, 100.0)), tuple(explanation)


def compute_scores(
    sample: MetricSample,
    baseline: Baseline,
    cfg: EngineConfig,
) -> ScoreResult:
    """
    Score one day. Pure and deterministic.

    An empty sample, or one with no factor in common with the baseline,
    yields the policies' neutral scores with empty explanations and a
    low-confidence flag.
    """
    burnout, burnout_expl = _score_with_policy(sample, baseline, cfg.burnout)
    readiness, readiness_expl = _score_with_policy(sample, baseline, cfg.readiness)

    low_confidence = (
        baseline.low_confidence
        or sample.is_empty
        or not burnout_expl
        or not readiness_expl
    )

    return ScoreResult(
        employee_id=sample.employee_id,
        date=sample.date,
        burnout_score=round(burnout, 2),
        readiness_score=round(readiness, 2),
        burnout_explanation=burnout_expl,
        readiness_explanation=readiness_expl,
        low_confidence=low_confidence,
        policy_version=f"{cfg.burnout.version}/{cfg.readiness.version}",
    )


def top_factors(
    explanation: Tuple[FactorContribution, ...],
    n: int = 4,
) -> List[FactorContribution]:
    """Explanation entries ranked by absolute contribution, largest first."""
    ranked = sorted(
        explanation,
        key=lambda c: (-abs(c.contribution), c.factor.value),
    )
    return ranked[:n]


def explanation_total(explanation: Tuple[FactorContribution, ...]) -> float:
    """Sum of contributions; neutral + total reconstructs the score."""
    return round(sum(c.contribution for c in explanation), 4)
