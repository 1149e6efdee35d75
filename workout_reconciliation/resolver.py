"""Planned-step resolver: a usable step list from whatever the plan provides.

Plans arrive either as structured step records (with many provider aliases)
or only as loose text: preset tokens such as
``interval_6x400m_5kpace_R2min`` and a human description such as
``"Warm-up 15 min, 6 x 800m with 2-3 min jog, cool-down 10 min"``. The
structured list wins whenever it looks complete; the text is a fallback.

This module also infers swim pool length and classifies it into yards or
metres, which is pure metadata resolution like the rest of the module.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .config import (
    METER_POOL_LENGTHS_M,
    METERS_PER_KM,
    METERS_PER_MILE,
    METERS_PER_YARD,
    MIN_STRUCTURED_STEPS,
    YARD_POOL_LENGTHS_M,
)
from .errors import MalformedInputError
from .fields import (
    LENGTH_COUNT_FIELDS,
    POOL_LENGTH_FIELDS,
    WORKOUT_DISTANCE_FIELDS,
    FieldSpec,
    coerce_number,
    resolve_field,
)
from .models import (
    KIND_COOLDOWN,
    KIND_REST,
    KIND_UNSPECIFIED,
    KIND_WARMUP,
    KIND_WORK,
    POOL_METERS,
    POOL_UNKNOWN,
    POOL_YARDS,
    PlannedStep,
    Range,
)
from .normalizer import SWIM_KEYS

LOGGER = logging.getLogger(__name__)

STEP_LIST_KEYS = ("steps", "intervals")
TOKEN_KEYS = ("tokens", "steps_preset")
DESCRIPTION_KEYS = ("renderedDescription", "rendered_description", "description")

_UNIT_TO_METERS = {
    "mi": METERS_PER_MILE,
    "mile": METERS_PER_MILE,
    "miles": METERS_PER_MILE,
    "km": METERS_PER_KM,
    "m": 1.0,
    "yd": METERS_PER_YARD,
    "yard": METERS_PER_YARD,
    "yards": METERS_PER_YARD,
}


def _yards_to_m(value: float) -> Optional[float]:
    return value * METERS_PER_YARD


STEP_DISTANCE_FIELDS = (
    FieldSpec("distanceMeters"),
    FieldSpec("distance_m"),
    FieldSpec("meters"),
    FieldSpec("m"),
    FieldSpec("distance_yd", _yards_to_m),
)

STEP_DURATION_FIELDS = (
    FieldSpec("duration"),
    FieldSpec("seconds"),
    FieldSpec("duration_sec"),
    FieldSpec("durationSeconds"),
    FieldSpec("time_sec"),
    FieldSpec("timeSeconds"),
)

STEP_PACE_FIELDS = (
    FieldSpec("targetPaceSecondsPerMile"),
    FieldSpec("pace_sec_per_mi"),
)

STEP_POWER_FIELDS = (
    FieldSpec("targetPowerWatts"),
    FieldSpec("power_w"),
)

_KIND_KEYS = ("kind", "type", "effortLabel", "name", "label")
_KIND_PATTERNS = (
    (re.compile(r"warm[\s_-]*up|\bwu\b"), KIND_WARMUP),
    (re.compile(r"cool[\s_-]*down|\bcd\b"), KIND_COOLDOWN),
    (re.compile(r"rest|recovery|jog"), KIND_REST),
    (re.compile(r"work|interval|main|rep"), KIND_WORK),
)
_MMSS_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def _positive(value: Optional[float]) -> Optional[float]:
    if value is None or value <= 0:
        return None
    return value


# ---------------------------------------------------------------------------
# Structured steps
# ---------------------------------------------------------------------------


def classify_kind(record: Mapping[str, Any]) -> str:
    """Return the step kind implied by the record's kind/type/label text."""

    for key in _KIND_KEYS:
        value = record.get(key)
        if not isinstance(value, str) or not value.strip():
            continue
        text = value.strip().lower()
        for pattern, kind in _KIND_PATTERNS:
            if pattern.search(text):
                return kind
    return KIND_UNSPECIFIED


def _step_distance_m(record: Mapping[str, Any]) -> Optional[float]:
    distance = _positive(resolve_field(record, STEP_DISTANCE_FIELDS))
    if distance is not None:
        return distance
    value = _positive(coerce_number(record.get("original_val")))
    unit = str(record.get("original_units") or "").strip().lower()
    if value is not None and unit in _UNIT_TO_METERS:
        return value * _UNIT_TO_METERS[unit]
    return None


def _step_duration_s(record: Mapping[str, Any]) -> Optional[float]:
    duration = _positive(resolve_field(record, STEP_DURATION_FIELDS))
    if duration is not None:
        return duration
    match = _MMSS_RE.match(str(record.get("time") or "").strip())
    if match:
        return _positive(float(int(match.group(1)) * 60 + int(match.group(2))))
    return None


def _coerce_range(value: Any) -> Optional[Range]:
    if isinstance(value, Mapping):
        low = value.get("lower", value.get("min"))
        high = value.get("upper", value.get("max"))
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        low, high = value
    else:
        return None
    low_num = _positive(coerce_number(low))
    high_num = _positive(coerce_number(high))
    if low_num is None or high_num is None:
        return None
    return (min(low_num, high_num), max(low_num, high_num))


def _first_range(record: Mapping[str, Any], keys: Iterable[str]) -> Optional[Range]:
    for key in keys:
        parsed = _coerce_range(record.get(key))
        if parsed is not None:
            return parsed
    return None


def _step_id(record: Mapping[str, Any]) -> Optional[str]:
    for key in ("id", "planned_step_id"):
        value = record.get(key)
        if value is not None and value != "":
            return str(value)
    return None


def _step_label(record: Mapping[str, Any]) -> Optional[str]:
    for key in ("label", "name", "effortLabel"):
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def coerce_planned_step(record: Mapping[str, Any], index: int) -> PlannedStep:
    """Return a :class:`PlannedStep` from one provider step record."""

    return PlannedStep(
        index=index,
        kind=classify_kind(record),
        id=_step_id(record),
        target_distance_m=_step_distance_m(record),
        target_duration_s=_step_duration_s(record),
        target_pace_s_per_mi=_positive(resolve_field(record, STEP_PACE_FIELDS)),
        target_pace_range=_first_range(record, ("targetPaceRange", "pace_range")),
        target_power_w=_positive(resolve_field(record, STEP_POWER_FIELDS)),
        target_power_range=_first_range(record, ("targetPowerRange", "power_range")),
        label=_step_label(record),
    )


def coerce_planned_steps(raw: Any) -> List[PlannedStep]:
    """Return structured steps from a raw step list.

    Raises:
        MalformedInputError: If ``raw`` is not a list of mappings.
    """

    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise MalformedInputError(
            f"Planned steps must be a list, got {type(raw).__name__}"
        )
    steps: List[PlannedStep] = []
    for index, record in enumerate(raw):
        if not isinstance(record, Mapping):
            raise MalformedInputError(
                f"Planned step {index} must be a mapping, got {type(record).__name__}"
            )
        steps.append(coerce_planned_step(record, index))
    return steps


# ---------------------------------------------------------------------------
# Text and token plans
# ---------------------------------------------------------------------------

_NUM = r"(\d+(?:\.\d+)?)"
_RANGE_TAIL = r"(?:\s*(?:-|–|to)\s*" + _NUM + r")?"
_WARMUP_RE = re.compile(r"warm[\s_-]*up\D{0,30}?" + _NUM + _RANGE_TAIL + r"\s*_?min")
_COOLDOWN_RE = re.compile(r"cool[\s_-]*down\D{0,30}?" + _NUM + _RANGE_TAIL + r"\s*_?min")
_REPEAT_RE = re.compile(
    r"(\d{1,2})\s*[x×]\s*" + _NUM + r"\s*(min|miles|mile|mi|km|yd|m|s)(?![a-z])"
)
_REST_TOKEN_RE = re.compile(
    r"(?:^|[\s_,(])r" + _NUM + _RANGE_TAIL + r"\s*(min|s)?(?![a-z])"
)
_REST_PHRASE_RE = re.compile(
    _NUM
    + _RANGE_TAIL
    + r"\s*(min(?:ute)?s?|s|sec(?:ond)?s?)\s*(?:of\s+)?(?:jog|rest|recovery|easy)"
)


@dataclass(frozen=True, slots=True)
class TextPlan:
    """What could be recovered from a plan's tokens and description."""

    warmup_s: Optional[float] = None
    cooldown_s: Optional[float] = None
    rest_s: Optional[float] = None
    repeat_count: Optional[int] = None
    repeat_distance_m: Optional[float] = None
    repeat_duration_s: Optional[float] = None


def _mean_of(low: str, high: Optional[str]) -> float:
    if high is None:
        return float(low)
    return (float(low) + float(high)) / 2.0


def _minutes(pattern: re.Pattern[str], text: str) -> Optional[float]:
    match = pattern.search(text)
    if not match:
        return None
    return _positive(_mean_of(match.group(1), match.group(2)) * 60.0)


def _rest_seconds(text: str) -> Optional[float]:
    match = _REST_TOKEN_RE.search(text)
    if match:
        value = _mean_of(match.group(1), match.group(2))
        unit = match.group(3)
        return _positive(value * 60.0 if unit == "min" else value)
    match = _REST_PHRASE_RE.search(text)
    if match:
        value = _mean_of(match.group(1), match.group(2))
        return _positive(value * 60.0 if match.group(3).startswith("min") else value)
    return None


def _plan_text(tokens: Optional[Sequence[Any]], description: Optional[str]) -> str:
    parts = [str(token) for token in tokens or () if token is not None]
    if description:
        parts.append(str(description))
    return " ".join(parts).lower()


def parse_text_plan(
    tokens: Optional[Sequence[Any]] = None, description: Optional[str] = None
) -> TextPlan:
    """Return the warm-up, repeats, rest and cool-down found in the text."""

    text = _plan_text(tokens, description)
    if not text:
        return TextPlan()

    count = distance_m = duration_s = None
    repeat = _REPEAT_RE.search(text)
    if repeat:
        count = int(repeat.group(1))
        value = float(repeat.group(2))
        unit = repeat.group(3)
        if unit == "min":
            duration_s = value * 60.0
        elif unit == "s":
            duration_s = value
        else:
            distance_m = value * _UNIT_TO_METERS[unit]

    return TextPlan(
        warmup_s=_minutes(_WARMUP_RE, text),
        cooldown_s=_minutes(_COOLDOWN_RE, text),
        rest_s=_rest_seconds(text),
        repeat_count=count if count and count > 0 else None,
        repeat_distance_m=_positive(distance_m),
        repeat_duration_s=_positive(duration_s),
    )


def parse_plan_text(
    tokens: Optional[Sequence[Any]] = None, description: Optional[str] = None
) -> List[PlannedStep]:
    """Build ``[warmup] + count x work (rest between) + [cooldown]`` from text."""

    plan = parse_text_plan(tokens, description)
    steps: List[PlannedStep] = []

    def add(kind: str, label: str, **targets: Optional[float]) -> None:
        steps.append(PlannedStep(index=len(steps), kind=kind, label=label, **targets))

    if plan.warmup_s:
        add(KIND_WARMUP, "Warm-up", target_duration_s=plan.warmup_s)
    if plan.repeat_count:
        for rep in range(plan.repeat_count):
            add(
                KIND_WORK,
                f"Interval {rep + 1}",
                target_distance_m=plan.repeat_distance_m,
                target_duration_s=plan.repeat_duration_s,
            )
            if plan.rest_s and rep < plan.repeat_count - 1:
                add(KIND_REST, "Rest", target_duration_s=plan.rest_s)
    if plan.cooldown_s:
        add(KIND_COOLDOWN, "Cool-down", target_duration_s=plan.cooldown_s)
    return steps


# ---------------------------------------------------------------------------
# Plan lookup
# ---------------------------------------------------------------------------


def _raw_step_list(planned: Mapping[str, Any]) -> Any:
    for key in STEP_LIST_KEYS:
        if planned.get(key) is not None:
            return planned[key]
    computed = planned.get("computed")
    if isinstance(computed, Mapping) and computed.get("steps") is not None:
        return computed["steps"]
    return None


def _tokens(planned: Mapping[str, Any]) -> Optional[Sequence[Any]]:
    for key in TOKEN_KEYS:
        value = planned.get(key)
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return value
    return None


def _description(planned: Mapping[str, Any]) -> Optional[str]:
    for key in DESCRIPTION_KEYS:
        value = planned.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def resolve_steps(planned: Mapping[str, Any]) -> List[PlannedStep]:
    """Return the step list to reconcile against.

    A structured list with at least ``MIN_STRUCTURED_STEPS`` entries is used
    as is. Otherwise the text-derived list replaces it only when it is longer.
    """

    if not isinstance(planned, Mapping):
        raise MalformedInputError(
            f"Planned workout must be a mapping, got {type(planned).__name__}"
        )
    structured = coerce_planned_steps(_raw_step_list(planned))
    if len(structured) >= MIN_STRUCTURED_STEPS:
        return structured

    from_text = parse_plan_text(_tokens(planned), _description(planned))
    if len(from_text) > len(structured):
        LOGGER.info(
            "Using %d steps parsed from plan text in place of %d structured steps",
            len(from_text),
            len(structured),
        )
        return from_text
    return structured


def typical_interval_distance_m(planned: Mapping[str, Any]) -> Optional[float]:
    """Return the representative work-interval distance named in the plan text."""

    if not isinstance(planned, Mapping):
        return None
    return parse_text_plan(_tokens(planned), _description(planned)).repeat_distance_m


# ---------------------------------------------------------------------------
# Swim pool
# ---------------------------------------------------------------------------


def _length_count(completed: Mapping[str, Any]) -> Optional[float]:
    count = _positive(resolve_field(completed, LENGTH_COUNT_FIELDS))
    if count is not None:
        return count
    containers: List[Any] = [completed.get(key) for key in SWIM_KEYS]
    swim_data = completed.get("swim_data")
    if isinstance(swim_data, Mapping):
        containers.append(swim_data.get("lengths"))
    for value in containers:
        if isinstance(value, (list, tuple)) and value:
            return float(len(value))
    return None


def infer_pool_length_m(completed: Mapping[str, Any]) -> Optional[float]:
    """Return the pool length in metres, or ``None`` when it cannot be known.

    An explicit pool length wins (converted when its unit says yards);
    otherwise total distance divided by the number of lengths.
    """

    explicit = _positive(resolve_field(completed, POOL_LENGTH_FIELDS))
    if explicit is not None:
        unit = str(
            completed.get("pool_length_unit") or completed.get("poolLengthUnit") or ""
        ).strip().lower()
        if unit in ("yd", "yard", "yards"):
            return explicit * METERS_PER_YARD
        return explicit

    distance = _positive(resolve_field(completed, WORKOUT_DISTANCE_FIELDS))
    count = _length_count(completed)
    if distance is not None and count:
        return distance / count
    return None


def _matches(length_m: float, pools: Sequence[tuple]) -> bool:
    return any(abs(length_m - nominal) <= tolerance for nominal, tolerance in pools)


def classify_pool(length_m: Optional[float]) -> str:
    """Return ``yards``, ``meters`` or ``unknown`` for a pool length in metres."""

    if length_m is None or length_m <= 0:
        return POOL_UNKNOWN
    if _matches(length_m, YARD_POOL_LENGTHS_M):
        return POOL_YARDS
    if _matches(length_m, METER_POOL_LENGTHS_M):
        return POOL_METERS
    return POOL_UNKNOWN


__all__ = [
    "TextPlan",
    "classify_kind",
    "classify_pool",
    "coerce_planned_step",
    "coerce_planned_steps",
    "infer_pool_length_m",
    "parse_plan_text",
    "parse_text_plan",
    "resolve_steps",
    "typical_interval_distance_m",
]
