"""Dataclasses shared by the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from .errors import CursorRewindError

# Sports
SPORT_RUN = "run"
SPORT_WALK = "walk"
SPORT_RIDE = "ride"
SPORT_SWIM = "swim"
SPORT_OTHER = "other"

# Planned step kinds
KIND_WARMUP = "warmup"
KIND_WORK = "work"
KIND_REST = "rest"
KIND_COOLDOWN = "cooldown"
KIND_UNSPECIFIED = "unspecified"

# Pool units
POOL_YARDS = "yards"
POOL_METERS = "meters"
POOL_UNKNOWN = "unknown"

# Slice bounds
BOUND_DISTANCE = "distance"
BOUND_DURATION = "duration"
BOUND_NONE = "none"

# Degraded-data issue codes
ISSUE_MISSING_SIGNAL = "missing_signal"
ISSUE_IMPLAUSIBLE_VALUE = "implausible_value"
ISSUE_UNRESOLVABLE_STEP = "unresolvable_step"

# Result status
STATUS_OK = "ok"
STATUS_PRECOMPUTED = "precomputed"
STATUS_NO_PLAN = "no_plan"
STATUS_NO_TELEMETRY = "no_telemetry"
STATUS_PENDING = "pending"

Range = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class Sample:
    """One instant of recorded telemetry, keyed by seconds since start."""

    time_s: float
    lat: Optional[float] = None
    lng: Optional[float] = None
    heart_rate: Optional[float] = None
    speed_mps: Optional[float] = None
    cumulative_distance_m: Optional[float] = None
    power_w: Optional[float] = None

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass(frozen=True, slots=True)
class AccumulatedSample:
    """Sample annotated with a monotonic cumulative distance."""

    sample: Sample
    distance_m: float
    # True when distance at this sample came from a provider value or a real
    # GPS/speed increment from the previous sample.
    distance_signal: bool

    @property
    def time_s(self) -> float:
        return self.sample.time_s


@dataclass(frozen=True, slots=True)
class PlannedStep:
    """One segment of the intended workout."""

    index: int
    kind: str = KIND_UNSPECIFIED
    id: Optional[str] = None
    target_distance_m: Optional[float] = None
    target_duration_s: Optional[float] = None
    target_pace_s_per_mi: Optional[float] = None
    target_pace_range: Optional[Range] = None
    target_power_w: Optional[float] = None
    target_power_range: Optional[Range] = None
    label: Optional[str] = None

    @property
    def is_resolvable(self) -> bool:
        return (self.target_distance_m or 0) > 0 or (self.target_duration_s or 0) > 0


@dataclass(frozen=True, slots=True)
class Cursor:
    """Segmenter position; only ever moves forward."""

    index: int
    time_s: float
    distance_m: float

    @classmethod
    def at(cls, samples: Sequence[AccumulatedSample], index: int) -> "Cursor":
        row = samples[index]
        return cls(index=index, time_s=row.time_s, distance_m=row.distance_m)

    def advance_to(self, samples: Sequence[AccumulatedSample], index: int) -> "Cursor":
        if index < self.index:
            raise CursorRewindError(
                f"Cursor cannot move from index {self.index} back to {index}"
            )
        return Cursor.at(samples, index)


@dataclass(frozen=True, slots=True)
class StepSlice:
    """Contiguous run of samples attributed to one planned step.

    ``start`` and ``end`` are inclusive sample indices; the next slice starts
    at this slice's ``end``.
    """

    step: PlannedStep
    start: int
    end: int
    bound: str
    target_distance_m: Optional[float] = None
    trimmed_s: float = 0.0

    @property
    def sample_count(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True, slots=True)
class ExecutedInterval:
    """Measured outcome attributed to one planned step.

    ``None`` means the metric could not be defended from the data; the
    matching entry in ``issues`` says why.
    """

    step_index: int
    kind: str
    planned_step_id: Optional[str] = None
    distance_m: Optional[float] = None
    duration_s: Optional[float] = None
    avg_pace_s_per_mi: Optional[float] = None
    avg_power_w: Optional[float] = None
    avg_speed_mps: Optional[float] = None
    swim_pace_s_per_100: Optional[float] = None
    swim_pace_unit: Optional[str] = None
    avg_hr: Optional[int] = None
    issues: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class OverallSummary:
    """Whole-workout totals computed from the accumulated stream."""

    distance_m: Optional[float] = None
    duration_s: Optional[float] = None
    avg_pace_s_per_mi: Optional[float] = None


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    status: str
    sport: str
    steps: Tuple[PlannedStep, ...] = ()
    intervals: Tuple[ExecutedInterval, ...] = ()
    pool_unit: Optional[str] = None
    overall: OverallSummary = field(default_factory=OverallSummary)
    message: Optional[str] = None

    @property
    def has_comparison(self) -> bool:
        return bool(self.intervals)
