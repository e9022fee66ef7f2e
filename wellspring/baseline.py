"""
Personal baseline: per-factor means over a trailing window of samples.

A factor that never appears in the window stays absent, and the scorer skips
its deviation term. Short histories still produce a baseline, flagged
low-confidence so callers can propagate the flag into the score.
"""

from datetime import date, timedelta
from typing import Optional, Sequence, Union

import pandas as pd

from wellspring.config import EngineConfig
from wellspring.models import Baseline, Factor, InsufficientData, MetricSample


def samples_to_frame(samples: Sequence[MetricSample]) -> pd.DataFrame:
    """
    One row per date, one column per factor (NaN where absent).

    Later samples for the same date replace earlier ones, matching the
    corrective-write semantics of the store.
    """
    rows = []
    for s in samples:
        row = {"date": pd.Timestamp(s.date)}
        row.update({f.value: s.factor_value(f) for f in Factor})
        rows.append(row)

    columns = ["date"] + [f.value for f in Factor]
    df = pd.DataFrame(rows, columns=columns)
    if df.empty:
        return df
    df[[f.value for f in Factor]] = df[[f.value for f in Factor]].astype("float64")
    df = df.drop_duplicates(subset="date", keep="last")
    df.sort_values("date", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def compute_baseline(
    employee_id: str,
    samples: Sequence[MetricSample],
    cfg: EngineConfig,
    as_of: Optional[date] = None,
) -> Union[Baseline, InsufficientData]:
    """
    Mean of each factor over the `window_days` ending at `as_of` (inclusive).

    `as_of` defaults to the latest sample date. Returns InsufficientData when
    no sample falls in the window.
    """
    bp = cfg.baseline
    df = samples_to_frame(samples)

    if df.empty:
        return InsufficientData(
            required=1, available=0, detail=f"No samples for {employee_id}"
        )

    end = pd.Timestamp(as_of) if as_of is not None else df["date"].max()
    start = end - pd.Timedelta(days=bp.window_days - 1)
    window = df[(df["date"] >= start) & (df["date"] <= end)]

    if window.empty:
        return InsufficientData(
            required=1,
            available=0,
            detail=f"No samples for {employee_id} in the {bp.window_days}-day window",
        )

    means = window[[f.value for f in Factor]].mean(skipna=True)
    values = {
        f: float(means[f.value])
        for f in Factor
        if pd.notna(means[f.value])
    }

    n = len(window)
    return Baseline(
        employee_id=employee_id,
        values=values,
        sample_count=n,
        window_start=start.date(),
        window_end=end.date(),
        low_confidence=n < bp.min_history_days,
    )


def empty_baseline(employee_id: str, as_of: Optional[date] = None) -> Baseline:
    """All-absent baseline for employees with no usable history."""
    return Baseline(
        employee_id=employee_id,
        values={},
        sample_count=0,
        window_end=as_of,
        low_confidence=True,
    )


def baseline_window(day: date, cfg: EngineConfig) -> tuple:
    """(start, end) of the trailing window scored against `day`, excluding the day itself."""
    end = day - timedelta(days=1)
    start = day - timedelta(days=cfg.baseline.window_days)
    return start, end
