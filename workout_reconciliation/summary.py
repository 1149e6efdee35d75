"""Display formatting and the planned-vs-executed comparison table."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

import pandas as pd

from .config import METERS_PER_KM, METERS_PER_MILE, MPS_TO_KPH, MPS_TO_MPH
from .models import (
    KIND_UNSPECIFIED,
    POOL_YARDS,
    ExecutedInterval,
    OverallSummary,
    PlannedStep,
    ReconciliationResult,
)

UNITS_IMPERIAL = "imperial"
UNITS_METRIC = "metric"
ABSENT = "—"

COMPARISON_COLUMNS = [
    "Step",
    "Kind",
    "Planned",
    "Planned Target",
    "Executed",
    "Time",
    "Distance",
    "BPM",
]

_KIND_LABELS = {
    "warmup": "Warm-up",
    "work": "Work",
    "rest": "Rest",
    "cooldown": "Cool-down",
    KIND_UNSPECIFIED: "Step",
}


def _present(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _clock(seconds: float) -> str:
    total = int(round(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_duration(seconds: Optional[float]) -> str:
    """``m:ss`` (or ``h:mm:ss``) for a positive duration, else ``—``."""

    if not _present(seconds):
        return ABSENT
    return _clock(seconds)


def format_pace(sec_per_mile: Optional[float], units: str = UNITS_IMPERIAL) -> str:
    if not _present(sec_per_mile):
        return ABSENT
    if units == UNITS_METRIC:
        return f"{_clock(sec_per_mile * METERS_PER_KM / METERS_PER_MILE)}/km"
    return f"{_clock(sec_per_mile)}/mi"


def format_distance(meters: Optional[float], units: str = UNITS_IMPERIAL) -> str:
    """Miles or kilometres; two decimals below one unit, one above."""

    if not _present(meters):
        return ABSENT
    if units == UNITS_METRIC:
        value, suffix = meters / METERS_PER_KM, "km"
    else:
        value, suffix = meters / METERS_PER_MILE, "mi"
    decimals = 2 if value < 1 else 1
    return f"{value:.{decimals}f} {suffix}"


def format_speed(mps: Optional[float], units: str = UNITS_IMPERIAL) -> str:
    if not _present(mps):
        return ABSENT
    if units == UNITS_METRIC:
        return f"{mps * MPS_TO_KPH:.1f} km/h"
    return f"{mps * MPS_TO_MPH:.1f} mph"


def format_swim_pace(sec_per_100: Optional[float], pool_unit: Optional[str]) -> str:
    if not _present(sec_per_100) or pool_unit is None:
        return ABSENT
    suffix = "/100yd" if pool_unit == POOL_YARDS else "/100m"
    return f"{_clock(sec_per_100)} {suffix}"


def format_power(watts: Optional[float]) -> str:
    if not _present(watts):
        return ABSENT
    return f"{int(round(watts))} W"


def format_planned_pace(step: PlannedStep, units: str = UNITS_IMPERIAL) -> str:
    """Return the planned intensity target for ``step``.

    Tries an explicit pace, a pace range, a pace derived from distance and
    duration, then a power target or range.
    """

    if _present(step.target_pace_s_per_mi):
        return format_pace(step.target_pace_s_per_mi, units)
    if step.target_pace_range:
        low, high = step.target_pace_range
        low_text = format_pace(low, units)
        high_text = format_pace(high, units)
        if ABSENT not in (low_text, high_text):
            return f"{low_text.split('/')[0]}–{high_text}"
    if _present(step.target_distance_m) and _present(step.target_duration_s):
        miles = step.target_distance_m / METERS_PER_MILE
        return format_pace(step.target_duration_s / miles, units)
    if _present(step.target_power_w):
        return format_power(step.target_power_w)
    if step.target_power_range:
        low, high = step.target_power_range
        return f"{int(round(low))}–{int(round(high))} W"
    return ABSENT


def format_planned_target(step: PlannedStep, units: str = UNITS_IMPERIAL) -> str:
    """Return the step's distance or duration target for display."""

    if _present(step.target_distance_m):
        if step.target_distance_m < METERS_PER_KM:
            return f"{int(round(step.target_distance_m))} m"
        return format_distance(step.target_distance_m, units)
    if _present(step.target_duration_s):
        return format_duration(step.target_duration_s)
    return ABSENT


def format_executed(
    interval: ExecutedInterval, units: str = UNITS_IMPERIAL
) -> str:
    """Return the sport-appropriate executed intensity metric."""

    if interval.avg_pace_s_per_mi is not None:
        return format_pace(interval.avg_pace_s_per_mi, units)
    if interval.avg_power_w is not None:
        return format_power(interval.avg_power_w)
    if interval.swim_pace_s_per_100 is not None:
        return format_swim_pace(interval.swim_pace_s_per_100, interval.swim_pace_unit)
    if interval.avg_speed_mps is not None:
        return format_speed(interval.avg_speed_mps, units)
    return ABSENT


def _step_name(step: PlannedStep) -> str:
    if step.label:
        return step.label
    return f"{_KIND_LABELS.get(step.kind, 'Step')} {step.index + 1}"


def _overall_frame(overall: OverallSummary, units: str) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"Metric": "Distance", "Value": format_distance(overall.distance_m, units)},
            {"Metric": "Moving Time", "Value": format_duration(overall.duration_s)},
            {
                "Metric": "Avg Pace",
                "Value": format_pace(overall.avg_pace_s_per_mi, units),
            },
        ]
    )


def build_comparison_frame(
    result: ReconciliationResult, units: str = UNITS_IMPERIAL
) -> pd.DataFrame:
    """Return one row per planned step, or a single Status row.

    The whole-workout summary is attached as ``df.attrs["overall"]``.
    """

    if not result.has_comparison:
        df = pd.DataFrame({"Status": [result.message or "No comparison available."]})
        df.attrs["overall"] = _overall_frame(result.overall, units)
        return df

    steps_by_index: Dict[int, PlannedStep] = {s.index: s for s in result.steps}
    rows: List[Dict[str, Any]] = []
    for interval in result.intervals:
        step = steps_by_index.get(interval.step_index)
        if step is None:
            step = PlannedStep(index=interval.step_index, kind=interval.kind)
        rows.append(
            {
                "Step": _step_name(step),
                "Kind": _KIND_LABELS.get(step.kind, "Step"),
                "Planned": format_planned_target(step, units),
                "Planned Target": format_planned_pace(step, units),
                "Executed": format_executed(interval, units),
                "Time": format_duration(interval.duration_s),
                "Distance": format_distance(interval.distance_m, units),
                "BPM": str(interval.avg_hr) if interval.avg_hr is not None else ABSENT,
            }
        )
    df = pd.DataFrame(rows, columns=COMPARISON_COLUMNS)
    df.attrs["overall"] = _overall_frame(result.overall, units)
    return df


__all__ = [
    "ABSENT",
    "COMPARISON_COLUMNS",
    "UNITS_IMPERIAL",
    "UNITS_METRIC",
    "build_comparison_frame",
    "format_distance",
    "format_duration",
    "format_executed",
    "format_pace",
    "format_planned_pace",
    "format_planned_target",
    "format_power",
    "format_speed",
    "format_swim_pace",
]
