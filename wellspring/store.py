"""
Storage capabilities the engine needs, and in-memory implementations.

The engine never talks to a database directly: it reads samples and zone
history, and writes zone states, through `TimeSeriesStore`. A production
deployment implements the same interface over its database; the in-memory
versions back the CLI and the test suite.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from wellspring.errors import ConcurrencyConflictError, PatternNotFoundError
from wellspring.models import DetectedPattern, MetricSample, PatternStatus, ZoneState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------

class TimeSeriesStore(ABC):
    """Per-employee samples and zone states, keyed by (employee, date)."""

    @abstractmethod
    def record_sample(self, sample: MetricSample) -> None:
        """Insert, or replace the sample already stored for the same key."""

    @abstractmethod
    def get_metric_samples(self, employee_id: str, start: date, end: date) -> List[MetricSample]:
        """Samples with start <= date <= end, oldest first."""

    @abstractmethod
    def get_latest_zone_state(self, employee_id: str, before: Optional[date] = None) -> Optional[ZoneState]:
        """Latest state, or the latest strictly before `before` when given."""

    @abstractmethod
    def get_zone_state_history(self, employee_id: str, limit: int) -> List[ZoneState]:
        """Up to `limit` states, most recent first."""

    @abstractmethod
    def upsert_zone_state(self, state: ZoneState, expected_previous: Optional[ZoneState]) -> ZoneState:
        """
        Write `state` under its key, replacing any existing row.

        Raises ConcurrencyConflictError when the latest state before
        `state.date` is no longer `expected_previous`.
        """

    @abstractmethod
    def get_consenting_direct_reports(self, manager_id: str) -> List[str]:
        """Active direct reports who allow aggregate contribution."""


class PatternStore(ABC):
    """Acknowledgement lifecycle for detected patterns."""

    @abstractmethod
    def list_patterns(self, employee_id: str, status: Optional[PatternStatus] = None) -> List[DetectedPattern]:
        """Patterns for an employee, optionally filtered by status."""

    @abstractmethod
    def add_patterns(self, patterns: Iterable[DetectedPattern]) -> List[DetectedPattern]:
        """Persist new patterns, assigning ids. Returns the stored records."""

    @abstractmethod
    def acknowledge(self, pattern_id: str) -> DetectedPattern:
        """Mark a pattern acknowledged."""

    @abstractmethod
    def dismiss(self, pattern_id: str) -> DetectedPattern:
        """Mark a pattern dismissed."""


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------

class InMemoryTimeSeriesStore(TimeSeriesStore):
    """Thread-safe dictionary-backed store."""

    def __init__(self):
        self._samples: Dict[Tuple[str, date], MetricSample] = {}
        self._states: Dict[Tuple[str, date], ZoneState] = {}
        self._reports: Dict[str, List[str]] = {}
        self._active: Set[str] = set()
        self._opted_out: Set[str] = set()
        self._lock = threading.Lock()

    # -- roster ----------------------------------------------------------------

    def add_employee(
        self,
        employee_id: str,
        manager_id: Optional[str] = None,
        consent: bool = True,
        active: bool = True,
    ) -> None:
        with self._lock:
            if manager_id is not None:
                reports = self._reports.setdefault(manager_id, [])
                if employee_id not in reports:
                    reports.append(employee_id)
            if active:
                self._active.add(employee_id)
            else:
                self._active.discard(employee_id)
            if consent:
                self._opted_out.discard(employee_id)
            else:
                self._opted_out.add(employee_id)

    def set_consent(self, employee_id: str, consent: bool) -> None:
        with self._lock:
            if consent:
                self._opted_out.discard(employee_id)
            else:
                self._opted_out.add(employee_id)

    def get_consenting_direct_reports(self, manager_id: str) -> List[str]:
        with self._lock:
            return [
                e for e in self._reports.get(manager_id, [])
                if e in self._active and e not in self._opted_out
            ]

    # -- samples ---------------------------------------------------------------

    def record_sample(self, sample: MetricSample) -> None:
        key = (sample.employee_id, sample.date)
        with self._lock:
            if key in self._samples:
                logger.debug("Corrective write for %s on %s", sample.employee_id, sample.date)
            self._samples[key] = sample

    def get_metric_samples(self, employee_id: str, start: date, end: date) -> List[MetricSample]:
        with self._lock:
            rows = [
                s for (emp, day), s in self._samples.items()
                if emp == employee_id and start <= day <= end
            ]
        return sorted(rows, key=lambda s: s.date)

    # -- zone states -----------------------------------------------------------

    def _latest_before(self, employee_id: str, before: Optional[date]) -> Optional[ZoneState]:
        candidates = [
            s for (emp, day), s in self._states.items()
            if emp == employee_id and (before is None or day < before)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda s: s.date)

    def get_latest_zone_state(self, employee_id: str, before: Optional[date] = None) -> Optional[ZoneState]:
        with self._lock:
            return self._latest_before(employee_id, before)

    def get_zone_state_history(self, employee_id: str, limit: int) -> List[ZoneState]:
        with self._lock:
            rows = [s for (emp, _), s in self._states.items() if emp == employee_id]
        rows.sort(key=lambda s: s.date, reverse=True)
        return rows[:limit]

    def upsert_zone_state(self, state: ZoneState, expected_previous: Optional[ZoneState]) -> ZoneState:
        with self._lock:
            current_previous = self._latest_before(state.employee_id, state.date)
            if current_previous != expected_previous:
                raise ConcurrencyConflictError(state.employee_id, state.date)
            self._states[(state.employee_id, state.date)] = state
        return state


class InMemoryPatternStore(PatternStore):
    """Thread-safe dictionary-backed pattern lifecycle store."""

    def __init__(self):
        self._patterns: Dict[str, DetectedPattern] = {}
        self._lock = threading.Lock()

    def list_patterns(self, employee_id: str, status: Optional[PatternStatus] = None) -> List[DetectedPattern]:
        with self._lock:
            rows = [
                p for p in self._patterns.values()
                if p.employee_id == employee_id and (status is None or p.status is status)
            ]
        return sorted(rows, key=lambda p: (p.detected_on, p.key))

    def add_patterns(self, patterns: Iterable[DetectedPattern]) -> List[DetectedPattern]:
        stored = []
        with self._lock:
            for p in patterns:
                record = replace(p, pattern_id=p.pattern_id or uuid.uuid4().hex)
                self._patterns[record.pattern_id] = record
                stored.append(record)
        return stored

    def _set_status(self, pattern_id: str, status: PatternStatus) -> DetectedPattern:
        with self._lock:
            if pattern_id not in self._patterns:
                raise PatternNotFoundError(pattern_id)
            updated = self._patterns[pattern_id].with_status(status)
            self._patterns[pattern_id] = updated
        logger.info("Pattern %s marked %s", pattern_id, status.value)
        return updated

    def acknowledge(self, pattern_id: str) -> DetectedPattern:
        return self._set_status(pattern_id, PatternStatus.ACKNOWLEDGED)

    def dismiss(self, pattern_id: str) -> DetectedPattern:
        return self._set_status(pattern_id, PatternStatus.DISMISSED)
