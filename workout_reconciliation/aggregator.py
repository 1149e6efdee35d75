"""Metric aggregator: turn one step slice into an executed interval."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import (
    HR_OUTLIER_FRACTION,
    HR_WARMUP_SETTLE_SECONDS,
    MAX_SPEED_INTEGRATION_GAP_S,
    METERS_PER_MILE,
    METERS_PER_YARD,
    MIN_MOVING_SPEED_MPS,
    MIN_SLICE_SECONDS,
    REST_MAX_SPEED_MPS,
    REST_PACE_MAX_S_PER_MI,
    REST_PACE_MIN_S_PER_MI,
    RUN_INTERVAL_MAX_MILES,
    RUN_INTERVAL_MIN_MILES,
)
from .distance import plausible_speed
from .models import (
    BOUND_DISTANCE,
    BOUND_NONE,
    ISSUE_IMPLAUSIBLE_VALUE,
    ISSUE_MISSING_SIGNAL,
    ISSUE_UNRESOLVABLE_STEP,
    KIND_REST,
    KIND_WARMUP,
    KIND_WORK,
    POOL_METERS,
    POOL_YARDS,
    SPORT_RIDE,
    SPORT_RUN,
    SPORT_SWIM,
    SPORT_WALK,
    AccumulatedSample,
    ExecutedInterval,
    OverallSummary,
    StepSlice,
)

LOGGER = logging.getLogger(__name__)


def average_heart_rate(
    window: Sequence[AccumulatedSample], *, warmup: bool = False
) -> Optional[int]:
    """Return the outlier-resistant mean heart rate of ``window`` in bpm.

    Implausible readings were already dropped at normalization. Warm-ups
    skip the first settle seconds unless that leaves nothing. With three or
    more readings, values further than ``HR_OUTLIER_FRACTION`` from the
    median are dropped before averaging.
    """

    if not window:
        return None
    origin = window[0].time_s
    readings: List[Tuple[float, float]] = [
        (row.time_s, row.sample.heart_rate)
        for row in window
        if row.sample.heart_rate is not None
    ]
    if warmup:
        settled = [r for r in readings if r[0] - origin >= HR_WARMUP_SETTLE_SECONDS]
        if settled:
            readings = settled
    if not readings:
        return None

    values = np.asarray([hr for _, hr in readings], dtype=float)
    if values.size >= 3:
        median = float(np.median(values))
        keep = np.abs(values - median) <= HR_OUTLIER_FRACTION * median
        if keep.any():
            values = values[keep]
    return int(round(float(values.mean())))


def _slice_distance(
    window: Sequence[AccumulatedSample], step_slice: StepSlice
) -> Optional[float]:
    if not any(row.distance_signal for row in window[1:]):
        return None
    measured = window[-1].distance_m - window[0].distance_m
    if step_slice.bound == BOUND_DISTANCE and step_slice.target_distance_m:
        return min(measured, step_slice.target_distance_m)
    return measured


def _mean_plausible_speed(
    window: Sequence[AccumulatedSample], ceiling: Optional[float] = None
) -> Optional[float]:
    speeds = []
    for row in window:
        speed = plausible_speed(row.sample.speed_mps)
        if speed is None:
            continue
        if ceiling is not None and speed >= ceiling:
            continue
        speeds.append(speed)
    if not speeds:
        return None
    return float(np.mean(speeds))


class _Metrics:
    """Collects optional metrics with the issues and notes explaining gaps."""

    __slots__ = (
        "distance_m",
        "pace",
        "power",
        "speed",
        "swim_pace",
        "swim_unit",
        "issues",
        "notes",
    )

    def __init__(self, distance_m: Optional[float]) -> None:
        self.distance_m = distance_m
        self.pace: Optional[float] = None
        self.power: Optional[float] = None
        self.speed: Optional[float] = None
        self.swim_pace: Optional[float] = None
        self.swim_unit: Optional[str] = None
        self.issues: List[str] = []
        self.notes: List[str] = []

    def flag(self, issue: str, note: str) -> None:
        if issue not in self.issues:
            self.issues.append(issue)
        self.notes.append(note)


def _run_pace(
    metrics: _Metrics,
    window: Sequence[AccumulatedSample],
    step_slice: StepSlice,
    duration: float,
) -> None:
    step = step_slice.step
    distance = metrics.distance_m
    miles = distance / METERS_PER_MILE if distance is not None else None

    if miles is not None and RUN_INTERVAL_MIN_MILES <= miles <= RUN_INTERVAL_MAX_MILES:
        metrics.pace = duration / miles
        return

    too_short = miles is None or miles < RUN_INTERVAL_MIN_MILES
    planned = step_slice.target_distance_m or step.target_distance_m
    if too_short and step.kind == KIND_WORK and planned:
        metrics.pace = duration / (planned / METERS_PER_MILE)
        metrics.notes.append("pace from planned distance")
        return

    if step.kind == KIND_REST:
        speed = _mean_plausible_speed(window, ceiling=REST_MAX_SPEED_MPS)
        if speed is not None:
            pace = METERS_PER_MILE / speed
            if REST_PACE_MIN_S_PER_MI <= pace <= REST_PACE_MAX_S_PER_MI:
                metrics.pace = pace
                metrics.notes.append("pace from average speed")
                if metrics.distance_m is None:
                    metrics.distance_m = speed * duration
                return
            metrics.flag(
                ISSUE_IMPLAUSIBLE_VALUE, "speed-derived rest pace out of range"
            )
            return

    if miles is None:
        metrics.flag(ISSUE_MISSING_SIGNAL, "pace unavailable")
    else:
        metrics.flag(ISSUE_IMPLAUSIBLE_VALUE, "interval distance out of range")


def _ride_output(
    metrics: _Metrics, window: Sequence[AccumulatedSample], duration: float
) -> None:
    powers = [row.sample.power_w for row in window if row.sample.power_w is not None]
    if powers:
        metrics.power = float(np.mean(powers))
        return
    if metrics.distance_m is not None and duration > 0:
        metrics.speed = metrics.distance_m / duration
        return
    speed = _mean_plausible_speed(window)
    if speed is not None:
        metrics.speed = speed
        return
    metrics.flag(ISSUE_MISSING_SIGNAL, "no power or speed signal")


def _swim_pace(metrics: _Metrics, duration: float, pool_unit: Optional[str]) -> None:
    if metrics.distance_m is None or metrics.distance_m <= 0:
        metrics.flag(ISSUE_MISSING_SIGNAL, "no swim distance")
        return
    if pool_unit == POOL_YARDS:
        units = metrics.distance_m / METERS_PER_YARD
    elif pool_unit == POOL_METERS:
        units = metrics.distance_m
    else:
        metrics.flag(ISSUE_MISSING_SIGNAL, "pool unit unknown")
        return
    metrics.swim_pace = duration / (units / 100.0)
    metrics.swim_unit = pool_unit


def aggregate_slice(
    samples: Sequence[AccumulatedSample],
    step_slice: StepSlice,
    *,
    sport: str,
    pool_unit: Optional[str] = None,
) -> ExecutedInterval:
    """Return the executed metrics for one slice of the accumulated stream."""

    step = step_slice.step
    if step_slice.bound == BOUND_NONE:
        return ExecutedInterval(
            step_index=step.index,
            kind=step.kind,
            planned_step_id=step.id,
            issues=(ISSUE_UNRESOLVABLE_STEP,),
            notes=("step has no distance or duration target",),
        )

    if step_slice.sample_count < 2:
        return ExecutedInterval(
            step_index=step.index,
            kind=step.kind,
            planned_step_id=step.id,
            issues=(ISSUE_MISSING_SIGNAL,),
            notes=("no samples remain for this step",),
        )

    window = samples[step_slice.start : step_slice.end + 1]
    duration = window[-1].time_s - window[0].time_s
    metrics = _Metrics(_slice_distance(window, step_slice))
    if duration < MIN_SLICE_SECONDS and step.target_duration_s:
        duration = float(step.target_duration_s)
        metrics.notes.append("planned duration reported")

    # Averages follow the half-open slice so the shared boundary sample
    # counts once, toward the step that starts there.
    averaged = window[:-1]
    avg_hr = average_heart_rate(averaged, warmup=step.kind == KIND_WARMUP)
    if avg_hr is None:
        metrics.flag(ISSUE_MISSING_SIGNAL, "no heart rate")

    if sport in (SPORT_RUN, SPORT_WALK):
        _run_pace(metrics, averaged, step_slice, duration)
    elif sport == SPORT_RIDE:
        _ride_output(metrics, averaged, duration)
    elif sport == SPORT_SWIM:
        _swim_pace(metrics, duration, pool_unit)
    elif metrics.distance_m is not None and duration > 0:
        metrics.speed = metrics.distance_m / duration

    if metrics.distance_m is None and sport != SPORT_SWIM:
        metrics.flag(ISSUE_MISSING_SIGNAL, "no distance signal")

    if metrics.issues:
        LOGGER.debug(
            "Step %d degraded: %s", step.index, ", ".join(metrics.notes)
        )
    return ExecutedInterval(
        step_index=step.index,
        kind=step.kind,
        planned_step_id=step.id,
        distance_m=metrics.distance_m,
        duration_s=duration,
        avg_pace_s_per_mi=metrics.pace,
        avg_power_w=metrics.power,
        avg_speed_mps=metrics.speed,
        swim_pace_s_per_100=metrics.swim_pace,
        swim_pace_unit=metrics.swim_unit,
        avg_hr=avg_hr,
        issues=tuple(metrics.issues),
        notes=tuple(metrics.notes),
    )


def summarize_overall(
    samples: Sequence[AccumulatedSample], *, sport: str
) -> OverallSummary:
    """Return whole-workout distance, moving time and (run/walk) pace.

    Moving time sums the gaps whose distance increment shows real movement.
    Without any distance signal the elapsed time is reported instead.
    """

    if len(samples) < 2:
        return OverallSummary()
    elapsed = samples[-1].time_s - samples[0].time_s
    if not any(row.distance_signal for row in samples[1:]):
        return OverallSummary(duration_s=elapsed)

    distance = samples[-1].distance_m - samples[0].distance_m
    moving = 0.0
    for prev, curr in zip(samples, samples[1:]):
        delta_t = curr.time_s - prev.time_s
        if not (0.0 < delta_t < MAX_SPEED_INTEGRATION_GAP_S):
            continue
        if curr.distance_m - prev.distance_m >= MIN_MOVING_SPEED_MPS * delta_t:
            moving += delta_t

    pace = None
    if sport in (SPORT_RUN, SPORT_WALK) and distance > 0 and moving > 0:
        pace = moving / (distance / METERS_PER_MILE)
    return OverallSummary(
        distance_m=distance,
        duration_s=moving if moving > 0 else elapsed,
        avg_pace_s_per_mi=pace,
    )


__all__ = ["aggregate_slice", "average_heart_rate", "summarize_overall"]
