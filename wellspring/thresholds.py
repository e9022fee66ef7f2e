"""
Per-employee zone thresholds.

Resolution order for one employee on one day, first match wins:
    active employee override    newest added wins when several overlap
    organization thresholds     when the employee belongs to one
    engine default              cfg.zones

An override may move the red boundary, the green boundary, or both; the
hysteresis band always comes from the level below it. Percentile
thresholds derive an organization's red boundary from its recent scores.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from wellspring.config import ZoneThresholds
from wellspring.models import InsufficientData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThresholdOverride:
    """Dated replacement of one employee's zone boundaries. `end` is inclusive."""

    employee_id: str
    start: date
    high: Optional[float] = None
    low: Optional[float] = None
    end: Optional[date] = None
    reason: str = ""
    override_id: Optional[str] = None

    def __post_init__(self):
        if self.high is None and self.low is None:
            raise ValueError("A threshold override must set high, low, or both")
        if self.end is not None and self.end < self.start:
            raise ValueError(f"Override ends ({self.end}) before it starts ({self.start})")

    def active_on(self, day: date) -> bool:
        return self.start <= day and (self.end is None or day <= self.end)

    def apply(self, base: ZoneThresholds) -> ZoneThresholds:
        """Overlay onto `base`. ZoneThresholds re-validates the result."""
        return replace(
            base,
            high=self.high if self.high is not None else base.high,
            low=self.low if self.low is not None else base.low,
        )


@dataclass(frozen=True)
class ResolvedThresholds:
    thresholds: ZoneThresholds
    source: str                    # "employee" | "organization" | "default"
    reason: Optional[str] = None

    @property
    def has_employee_override(self) -> bool:
        return self.source == "employee"


class ThresholdResolver:
    """In-memory threshold registry. Thread-safe."""

    def __init__(self, default: Optional[ZoneThresholds] = None):
        self.default = default or ZoneThresholds()
        self._organizations: Dict[str, ZoneThresholds] = {}
        self._memberships: Dict[str, str] = {}
        self._overrides: Dict[str, List[ThresholdOverride]] = {}
        self._lock = threading.Lock()

    def set_organization(self, organization_id: str, thresholds: ZoneThresholds) -> None:
        with self._lock:
            self._organizations[organization_id] = thresholds

    def assign(self, employee_id: str, organization_id: str) -> None:
        with self._lock:
            self._memberships[employee_id] = organization_id

    def _base_for(self, employee_id: str) -> ResolvedThresholds:
        org = self._memberships.get(employee_id)
        if org is not None and org in self._organizations:
            return ResolvedThresholds(self._organizations[org], "organization")
        return ResolvedThresholds(self.default, "default")

    def add_override(self, override: ThresholdOverride) -> ThresholdOverride:
        """Store an override. Raises ValueError if it cannot apply to the current base."""
        with self._lock:
            override.apply(self._base_for(override.employee_id).thresholds)
            record = replace(override, override_id=override.override_id or uuid.uuid4().hex)
            self._overrides.setdefault(record.employee_id, []).append(record)
        logger.info(
            "Threshold override %s for %s from %s: %s",
            record.override_id, record.employee_id, record.start, record.reason or "no reason given",
        )
        return record

    def remove_override(self, employee_id: str, override_id: str) -> bool:
        with self._lock:
            kept = [o for o in self._overrides.get(employee_id, []) if o.override_id != override_id]
            removed = len(kept) != len(self._overrides.get(employee_id, []))
            self._overrides[employee_id] = kept
        return removed

    def active_overrides(self, employee_id: str, on: date) -> List[ThresholdOverride]:
        """Overrides in force on `on`, newest first."""
        with self._lock:
            return [o for o in reversed(self._overrides.get(employee_id, [])) if o.active_on(on)]

    def resolve(self, employee_id: str, on: date) -> ResolvedThresholds:
        active = self.active_overrides(employee_id, on)
        with self._lock:
            base = self._base_for(employee_id)
        if not active:
            return base
        newest = active[0]
        return ResolvedThresholds(newest.apply(base.thresholds), "employee", newest.reason or None)


def percentile_thresholds(
    scores: Sequence[float],
    percentile: float = 70.0,
    base: Optional[ZoneThresholds] = None,
    min_samples: int = 10,
) -> Union[ZoneThresholds, InsufficientData]:
    """
    Red boundary at the given percentile of recent burnout scores.

    Uses the nearest-rank value at floor(p/100 * n), rounded to a whole
    point. The green boundary and band are kept from `base`.
    """
    if not 0.0 < percentile <= 100.0:
        raise ValueError(f"percentile must be in (0, 100], got {percentile}")
    base = base or ZoneThresholds()

    values = np.sort(np.asarray(scores, dtype=np.float64))
    if len(values) < min_samples:
        return InsufficientData(
            required=min_samples,
            available=len(values),
            detail="Not enough recent scores for percentile thresholds",
        )

    index = min(int(np.floor(percentile / 100.0 * len(values))), len(values) - 1)
    high = float(round(values[index]))
    # yellow must stay wider than both hysteresis bands
    high = min(100.0, max(high, base.low + 2 * base.hysteresis_band + 1.0))
    return replace(base, high=high)
