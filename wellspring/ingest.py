"""
Ingestion boundary: validate raw sample payloads before they reach the engine.

The scoring core assumes well-formed samples. Anything out of range (negative
hours, quality above 100, more tasks completed than assigned) is rejected
here with InvalidSampleError.
"""

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from wellspring.errors import InvalidSampleError
from wellspring.models import MetricSample

logger = logging.getLogger(__name__)


class MetricSampleIn(BaseModel):
    """Wire shape of one daily sample. Omitted or null fields are absent."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    employee_id: str = Field(min_length=1)
    date: dt.date

    sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)
    sleep_quality: Optional[float] = Field(default=None, ge=0, le=100)
    hrv: Optional[float] = Field(default=None, ge=0, le=300)
    resting_hr: Optional[float] = Field(default=None, gt=0, le=250)
    exercise_minutes: Optional[float] = Field(default=None, ge=0, le=1440)
    deep_sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)

    hours_worked: Optional[float] = Field(default=None, ge=0, le=24)
    overtime_hours: Optional[float] = Field(default=None, ge=0, le=24)
    meetings_attended: Optional[float] = Field(default=None, ge=0, le=100)
    tasks_completed: Optional[float] = Field(default=None, ge=0, le=10000)
    tasks_assigned: Optional[float] = Field(default=None, ge=0, le=10000)

    @model_validator(mode="after")
    def _check_consistency(self) -> "MetricSampleIn":
        if (
            self.deep_sleep_hours is not None
            and self.sleep_hours is not None
            and self.deep_sleep_hours > self.sleep_hours
        ):
            raise ValueError("deep_sleep_hours cannot exceed sleep_hours")
        if (
            self.overtime_hours is not None
            and self.hours_worked is not None
            and self.overtime_hours > self.hours_worked
        ):
            raise ValueError("overtime_hours cannot exceed hours_worked")
        if (
            self.tasks_completed is not None
            and self.tasks_assigned is not None
            and self.tasks_assigned > 0
            and self.tasks_completed > self.tasks_assigned
        ):
            raise ValueError("tasks_completed cannot exceed tasks_assigned")
        return self

    def to_sample(self) -> MetricSample:
        return MetricSample(**self.model_dump())


def parse_sample(payload: Any) -> MetricSample:
    """Validate one payload. Raises InvalidSampleError, also for non-object payloads."""
    try:
        return MetricSampleIn.model_validate(payload).to_sample()
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or 'sample'}: {err['msg']}"
            for err in exc.errors()
        ]
        fields = payload if isinstance(payload, dict) else {}
        raise InvalidSampleError(
            f"Invalid metric sample: {'; '.join(problems)}",
            employee_id=fields.get("employee_id"),
            sample_date=fields.get("date"),
            problems=problems,
        ) from exc


def parse_samples(payloads: Iterable[Dict[str, Any]]) -> List[MetricSample]:
    """Validate every payload; the first invalid one aborts the batch."""
    return [parse_sample(p) for p in payloads]


def load_samples(filepath: Union[str, Path]) -> List[MetricSample]:
    """Load and validate daily samples from a JSON array file."""
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Data file must hold a JSON array of samples, got {type(data).__name__}")
    if not data:
        raise ValueError("Data file is empty")

    samples = parse_samples(data)
    logger.info("Loaded %d samples from %s", len(samples), path)
    return samples
