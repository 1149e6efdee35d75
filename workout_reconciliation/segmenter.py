"""Step segmenter: carve the accumulated stream into one slice per planned step.

A single :class:`~workout_reconciliation.models.Cursor` is threaded through
the planned steps. Each step starts where the previous one ended and the
cursor only ever moves forward, so slices never overlap and nothing is
counted twice.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .config import (
    IDLE_TRIM_DISTANCE_M,
    IDLE_TRIM_MAX_SECONDS,
    IDLE_TRIM_WINDOW_SECONDS,
    MIN_MOVING_SPEED_MPS,
)
from .models import (
    BOUND_DISTANCE,
    BOUND_DURATION,
    BOUND_NONE,
    KIND_COOLDOWN,
    KIND_REST,
    KIND_WARMUP,
    AccumulatedSample,
    Cursor,
    PlannedStep,
    StepSlice,
)

LOGGER = logging.getLogger(__name__)

# Kinds that never inherit the workout-level interval distance.
_NO_TYPICAL_DISTANCE_KINDS = frozenset({KIND_WARMUP, KIND_REST, KIND_COOLDOWN})


def step_bound(
    step: PlannedStep, typical_interval_m: Optional[float] = None
) -> Tuple[str, Optional[float]]:
    """Return how ``step`` is bounded and the target value for that bound.

    Distance beats duration. A step with neither borrows the workout's
    typical interval distance unless it is a warm-up, rest or cool-down.
    """

    if step.is_resolvable:
        if (step.target_distance_m or 0) > 0:
            return BOUND_DISTANCE, step.target_distance_m
        return BOUND_DURATION, step.target_duration_s
    if (
        typical_interval_m
        and typical_interval_m > 0
        and step.kind not in _NO_TYPICAL_DISTANCE_KINDS
    ):
        return BOUND_DISTANCE, typical_interval_m
    return BOUND_NONE, None


def _window_end(samples: Sequence[AccumulatedSample], idx: int) -> Optional[int]:
    """Return the first index at least one idle window after ``idx``."""

    origin = samples[idx].time_s
    for later in range(idx + 1, len(samples)):
        if samples[later].time_s - origin >= IDLE_TRIM_WINDOW_SECONDS:
            return later
    return None


def _window_idle(samples: Sequence[AccumulatedSample], idx: int) -> bool:
    end = _window_end(samples, idx)
    if end is None:
        return False
    span = samples[end].time_s - samples[idx].time_s
    moved = samples[end].distance_m - samples[idx].distance_m
    return moved <= min(IDLE_TRIM_DISTANCE_M, MIN_MOVING_SPEED_MPS * span)


def _pair_stationary(
    samples: Sequence[AccumulatedSample], idx: int
) -> bool:
    delta_t = samples[idx + 1].time_s - samples[idx].time_s
    delta_d = samples[idx + 1].distance_m - samples[idx].distance_m
    return delta_t > 0 and delta_d <= MIN_MOVING_SPEED_MPS * delta_t


def trim_leading_idle(samples: Sequence[AccumulatedSample], start: int = 0) -> int:
    """Return the index where real movement begins.

    The start advances while the following window averages below the
    stationary speed (and covers no more than ``IDLE_TRIM_DISTANCE_M``) or
    the next pair is stationary, so a GPS-lock delay is not attributed to
    the first step. Slow but real movement such as swimming is kept.
    Streams with no distance signal at all are never trimmed.
    """

    if IDLE_TRIM_MAX_SECONDS <= 0 or len(samples) < 2:
        return start
    if not any(row.distance_signal for row in samples[start + 1 :]):
        return start

    origin = samples[start].time_s
    last = len(samples) - 1
    idx = start
    while idx < last:
        if samples[idx + 1].time_s - origin > IDLE_TRIM_MAX_SECONDS:
            break
        if not (_window_idle(samples, idx) or _pair_stationary(samples, idx)):
            break
        idx += 1
    if idx > start:
        LOGGER.debug(
            "Trimmed %.1fs of leading idle samples", samples[idx].time_s - origin
        )
    return idx


def segment_step(
    samples: Sequence[AccumulatedSample],
    step: PlannedStep,
    cursor: Cursor,
    *,
    typical_interval_m: Optional[float] = None,
    trimmed_s: float = 0.0,
) -> Tuple[StepSlice, Cursor]:
    """Return the slice for ``step`` starting at ``cursor`` and the new cursor."""

    bound, target = step_bound(step, typical_interval_m)
    last = len(samples) - 1
    end = cursor.index

    if bound == BOUND_DISTANCE:
        goal = cursor.distance_m + float(target)
        while end < last and samples[end].distance_m < goal:
            end += 1
    elif bound == BOUND_DURATION:
        duration = float(target)
        if step.kind == KIND_WARMUP:
            remaining = samples[last].time_s - cursor.time_s
            duration = min(duration, max(remaining, 0.0))
        goal = cursor.time_s + duration
        while end < last and samples[end].time_s < goal:
            end += 1
    else:
        LOGGER.debug("Step %d has no distance or duration target", step.index)

    next_cursor = cursor.advance_to(samples, end)
    step_slice = StepSlice(
        step=step,
        start=cursor.index,
        end=end,
        bound=bound,
        target_distance_m=float(target) if bound == BOUND_DISTANCE else None,
        trimmed_s=trimmed_s,
    )
    return step_slice, next_cursor


def segment_steps(
    samples: Sequence[AccumulatedSample],
    steps: Sequence[PlannedStep],
    *,
    typical_interval_m: Optional[float] = None,
    trim_idle: bool = True,
) -> List[StepSlice]:
    """Return one contiguous slice per planned step.

    Yields nothing when there are no samples, no steps, or no step that can
    be bounded; the caller reports "no comparison available" in that case.
    """

    if not samples or not steps:
        return []
    if all(step_bound(s, typical_interval_m)[0] == BOUND_NONE for s in steps):
        LOGGER.info("No planned step has a distance or duration target")
        return []

    start = trim_leading_idle(samples) if trim_idle else 0
    cursor = Cursor.at(samples, start)
    trimmed_s = samples[start].time_s - samples[0].time_s

    slices: List[StepSlice] = []
    for position, step in enumerate(steps):
        step_slice, cursor = segment_step(
            samples,
            step,
            cursor,
            typical_interval_m=typical_interval_m,
            trimmed_s=trimmed_s if position == 0 else 0.0,
        )
        slices.append(step_slice)
    return slices


__all__ = ["segment_steps", "segment_step", "step_bound", "trim_leading_idle"]
