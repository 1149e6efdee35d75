"""Reconciliation entry point: planned steps against executed telemetry.

``reconcile`` runs one linear pass: normalize, accumulate distance, resolve
the planned steps, segment, aggregate. It never raises for sparse data; only
payloads whose shape cannot be interpreted raise ``MalformedInputError``.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Mapping, Optional, Sequence

from .aggregator import aggregate_slice, summarize_overall
from .distance import accumulate_distance
from .errors import MalformedInputError
from .fields import FieldSpec, resolve_field
from .models import (
    SPORT_OTHER,
    SPORT_RIDE,
    SPORT_RUN,
    SPORT_SWIM,
    SPORT_WALK,
    STATUS_NO_PLAN,
    STATUS_NO_TELEMETRY,
    STATUS_OK,
    STATUS_PRECOMPUTED,
    ExecutedInterval,
    PlannedStep,
    ReconciliationResult,
)
from .normalizer import normalize_samples
from .resolver import (
    classify_pool,
    infer_pool_length_m,
    resolve_steps,
    typical_interval_distance_m,
)
from .segmenter import segment_steps

LOGGER = logging.getLogger(__name__)

MESSAGE_NO_PLAN = "No plan to compare."
MESSAGE_NO_COMPARISON = "No comparison available."
MESSAGE_PENDING = "Still computing."

SPORT_KEYS = ("sport", "type", "activity_type")
_SPORT_PATTERNS = (
    (re.compile(r"walk|hik"), SPORT_WALK),
    (re.compile(r"run"), SPORT_RUN),
    (re.compile(r"ride|bike|cycl"), SPORT_RIDE),
    (re.compile(r"swim"), SPORT_SWIM),
)

_EXECUTED_DISTANCE_FIELDS = (FieldSpec("distance_m"), FieldSpec("distanceMeters"))
_EXECUTED_DURATION_FIELDS = (FieldSpec("duration_s"), FieldSpec("durationSeconds"))
_EXECUTED_PACE_FIELDS = (FieldSpec("avg_pace_s_per_mi"),)
_EXECUTED_POWER_FIELDS = (FieldSpec("avg_power_w"), FieldSpec("avg_power"))
_EXECUTED_SPEED_FIELDS = (FieldSpec("avg_speed_mps"),)
_EXECUTED_HR_FIELDS = (FieldSpec("avg_hr"), FieldSpec("avg_heart_rate"))


def detect_sport(completed: Mapping[str, Any]) -> str:
    """Return the sport named by the completed workout, or ``other``."""

    for key in SPORT_KEYS:
        value = completed.get(key)
        if not isinstance(value, str) or not value.strip():
            continue
        text = value.lower()
        for pattern, sport in _SPORT_PATTERNS:
            if pattern.search(text):
                return sport
    return SPORT_OTHER


def server_computed_intervals(
    completed: Mapping[str, Any],
) -> List[Mapping[str, Any]]:
    """Return intervals the activity store already computed, if any."""

    raw = completed.get("serverComputedIntervals")
    if raw is None:
        computed = completed.get("computed")
        if isinstance(computed, Mapping):
            raw = computed.get("intervals")
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise MalformedInputError("Server-computed intervals must be a list")
    return [row for row in raw if isinstance(row, Mapping)]


def _precomputed_interval(
    step: PlannedStep, row: Mapping[str, Any]
) -> ExecutedInterval:
    executed = row.get("executed")
    if not isinstance(executed, Mapping):
        executed = row
    hr = resolve_field(executed, _EXECUTED_HR_FIELDS)
    planned_id = row.get("planned_step_id")
    return ExecutedInterval(
        step_index=step.index,
        kind=step.kind,
        planned_step_id=str(planned_id) if planned_id is not None else step.id,
        distance_m=resolve_field(executed, _EXECUTED_DISTANCE_FIELDS),
        duration_s=resolve_field(executed, _EXECUTED_DURATION_FIELDS),
        avg_pace_s_per_mi=resolve_field(executed, _EXECUTED_PACE_FIELDS),
        avg_power_w=resolve_field(executed, _EXECUTED_POWER_FIELDS),
        avg_speed_mps=resolve_field(executed, _EXECUTED_SPEED_FIELDS),
        avg_hr=int(round(hr)) if hr is not None else None,
        notes=("server computed",),
    )


def align_precomputed(
    steps: Sequence[PlannedStep], rows: Sequence[Mapping[str, Any]]
) -> List[ExecutedInterval]:
    """Pair server-computed rows with planned steps in order.

    When the plan has more steps than the server computed, the leading extras
    (typically a stray warm-up or recovery) are dropped.
    """

    extra = len(steps) - len(rows)
    aligned = list(steps[extra:]) if extra > 0 else list(steps)
    return [_precomputed_interval(step, row) for step, row in zip(aligned, rows)]


def _coerce_mapping(value: Any, label: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MalformedInputError(
            f"{label} workout must be a mapping, got {type(value).__name__}"
        )
    return value


def reconcile(
    planned: Optional[Mapping[str, Any]], completed: Mapping[str, Any]
) -> ReconciliationResult:
    """Return one executed interval per planned step.

    Raises:
        MalformedInputError: If either payload has an uninterpretable shape.
    """

    if not isinstance(completed, Mapping):
        raise MalformedInputError(
            f"Completed workout must be a mapping, got {type(completed).__name__}"
        )
    planned = _coerce_mapping(planned, "Planned")

    sport = detect_sport(completed)
    pool_unit = (
        classify_pool(infer_pool_length_m(completed)) if sport == SPORT_SWIM else None
    )
    steps = resolve_steps(planned)
    samples = accumulate_distance(normalize_samples(completed))
    overall = summarize_overall(samples, sport=sport)

    if not steps:
        LOGGER.info("No planned steps to reconcile")
        return ReconciliationResult(
            status=STATUS_NO_PLAN,
            sport=sport,
            pool_unit=pool_unit,
            overall=overall,
            message=MESSAGE_NO_PLAN,
        )

    precomputed = server_computed_intervals(completed)
    if precomputed:
        intervals = align_precomputed(steps, precomputed)
        LOGGER.info("Using %d server-computed intervals", len(intervals))
        return ReconciliationResult(
            status=STATUS_PRECOMPUTED,
            sport=sport,
            steps=tuple(steps[len(steps) - len(intervals) :]),
            intervals=tuple(intervals),
            pool_unit=pool_unit,
            overall=overall,
        )

    if len(samples) < 2:
        LOGGER.info("Completed workout has %d usable samples", len(samples))
        return ReconciliationResult(
            status=STATUS_NO_TELEMETRY,
            sport=sport,
            steps=tuple(steps),
            pool_unit=pool_unit,
            overall=overall,
            message=MESSAGE_NO_COMPARISON,
        )

    slices = segment_steps(
        samples,
        steps,
        typical_interval_m=typical_interval_distance_m(planned),
        trim_idle=sport != SPORT_WALK,
    )
    if not slices:
        return ReconciliationResult(
            status=STATUS_NO_PLAN,
            sport=sport,
            steps=tuple(steps),
            pool_unit=pool_unit,
            overall=overall,
            message=MESSAGE_NO_COMPARISON,
        )

    intervals = tuple(
        aggregate_slice(samples, step_slice, sport=sport, pool_unit=pool_unit)
        for step_slice in slices
    )
    LOGGER.info(
        "Reconciled %d planned steps against %d samples (%s)",
        len(steps),
        len(samples),
        sport,
    )
    return ReconciliationResult(
        status=STATUS_OK,
        sport=sport,
        steps=tuple(steps),
        intervals=intervals,
        pool_unit=pool_unit,
        overall=overall,
    )


__all__ = [
    "MESSAGE_NO_COMPARISON",
    "MESSAGE_NO_PLAN",
    "MESSAGE_PENDING",
    "align_precomputed",
    "detect_sport",
    "reconcile",
    "server_computed_intervals",
]
