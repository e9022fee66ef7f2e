"""
Exceptions for hard and recoverable failures.

Expected shortfalls (too little history, privacy suppression) are not here:
they are returned as `InsufficientData` / `PrivacySuppressed` values.
"""

from datetime import date
from typing import Optional, Sequence


class WellspringError(Exception):
    """Base class for engine errors."""


class InvalidSampleError(WellspringError, ValueError):
    """A metric sample failed validation at ingestion."""

    def __init__(self, message: str, employee_id: Optional[str] = None,
                 sample_date: Optional[date] = None, problems: Sequence[str] = ()):
        super().__init__(message)
        self.employee_id = employee_id
        self.sample_date = sample_date
        self.problems = list(problems)


class ConcurrencyConflictError(WellspringError):
    """The prior zone read for hysteresis changed before the upsert landed."""

    def __init__(self, employee_id: str, day: date):
        super().__init__(f"Concurrent zone write for {employee_id} on {day.isoformat()}")
        self.employee_id = employee_id
        self.day = day


class PatternNotFoundError(WellspringError, KeyError):
    """Acknowledge/dismiss referenced a pattern id the store does not hold."""

    def __init__(self, pattern_id: str):
        super().__init__(pattern_id)
        self.pattern_id = pattern_id

    def __str__(self) -> str:
        return f"Pattern not found: {self.pattern_id}"
