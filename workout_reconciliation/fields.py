"""Prioritised field resolution for provider-specific telemetry records.

Providers name the same metric many different ways. Each metric has one
ordered list of ``FieldSpec`` candidates; the first candidate present on a
record with a finite numeric value wins. Keeping the order in data (rather
than in scattered ``or`` chains) makes the priority itself testable.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Callable, Mapping, Optional, Sequence


def _identity(value: float) -> Optional[float]:
    return value


def _pace_min_per_km_to_mps(value: float) -> Optional[float]:
    if value <= 0:
        return None
    return 1000.0 / (value * 60.0)


def _pace_s_per_km_to_mps(value: float) -> Optional[float]:
    if value <= 0:
        return None
    return 1000.0 / value


def _km_to_m(value: float) -> Optional[float]:
    return value * 1000.0


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """A candidate key plus the conversion into the canonical unit."""

    key: str
    convert: Callable[[float], Optional[float]] = _identity


def coerce_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None``.

    Booleans are rejected even though they are ints.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def resolve_field(
    record: Mapping[str, Any], candidates: Sequence[FieldSpec]
) -> Optional[float]:
    """Return the first convertible candidate value present on ``record``."""

    for candidate in candidates:
        number = coerce_number(record.get(candidate.key))
        if number is None:
            continue
        converted = candidate.convert(number)
        if converted is None or not math.isfinite(converted):
            continue
        return converted
    return None


TIME_FIELDS = (
    FieldSpec("timerDurationInSeconds"),
    FieldSpec("clockDurationInSeconds"),
    FieldSpec("elapsedDurationInSeconds"),
    FieldSpec("sumDurationInSeconds"),
    FieldSpec("offsetInSeconds"),
    FieldSpec("startTimeInSeconds"),
    FieldSpec("elapsed_s"),
    FieldSpec("t"),
    FieldSpec("time"),
    FieldSpec("seconds"),
)

HEART_RATE_FIELDS = (
    FieldSpec("heartRate"),
    FieldSpec("heart_rate"),
    FieldSpec("hr"),
    FieldSpec("bpm"),
    FieldSpec("heartRateInBeatsPerMinute"),
    FieldSpec("avg_heart_rate"),
)

# Explicit m/s fields first, pace-derived conversions last.
SPEED_FIELDS = (
    FieldSpec("speedMetersPerSecond"),
    FieldSpec("speedInMetersPerSecond"),
    FieldSpec("enhancedSpeedInMetersPerSecond"),
    FieldSpec("currentSpeedInMetersPerSecond"),
    FieldSpec("instantaneousSpeedInMetersPerSecond"),
    FieldSpec("speed_mps"),
    FieldSpec("enhancedSpeed"),
    FieldSpec("speed"),
    FieldSpec("pace_min_per_km", _pace_min_per_km_to_mps),
    FieldSpec("paceInSecondsPerKilometer", _pace_s_per_km_to_mps),
)

CUMULATIVE_DISTANCE_FIELDS = (
    FieldSpec("totalDistanceInMeters"),
    FieldSpec("distanceInMeters"),
    FieldSpec("cumulativeDistanceInMeters"),
    FieldSpec("totalDistance"),
    FieldSpec("distance"),
)

POWER_FIELDS = (
    FieldSpec("powerInWatts"),
    FieldSpec("power_w"),
    FieldSpec("power"),
    FieldSpec("watts"),
)

LATITUDE_FIELDS = (
    FieldSpec("lat"),
    FieldSpec("latitude"),
    FieldSpec("latitudeInDegree"),
)

LONGITUDE_FIELDS = (
    FieldSpec("lng"),
    FieldSpec("lon"),
    FieldSpec("longitude"),
    FieldSpec("longitudeInDegree"),
)

GPS_TIME_FIELDS = (
    FieldSpec("startTimeInSeconds"),
    FieldSpec("elapsed_s"),
    FieldSpec("t"),
    FieldSpec("seconds"),
)

SWIM_LENGTH_DURATION_FIELDS = (
    FieldSpec("duration_s"),
    FieldSpec("duration"),
    FieldSpec("durationInSeconds"),
)

SWIM_LENGTH_DISTANCE_FIELDS = (
    FieldSpec("distance_m"),
    FieldSpec("distance"),
    FieldSpec("distanceInMeters"),
)

# Whole-workout distance in metres; the bare ``distance`` key is kilometres.
WORKOUT_DISTANCE_FIELDS = (
    FieldSpec("distance_meters"),
    FieldSpec("distanceInMeters"),
    FieldSpec("distance_m"),
    FieldSpec("distance", _km_to_m),
)

POOL_LENGTH_FIELDS = (
    FieldSpec("pool_length"),
    FieldSpec("poolLength"),
    FieldSpec("poolLengthInMeters"),
)

LENGTH_COUNT_FIELDS = (
    FieldSpec("number_of_active_lengths"),
    FieldSpec("numberOfActiveLengths"),
    FieldSpec("active_lengths"),
)


__all__ = [
    "FieldSpec",
    "coerce_number",
    "resolve_field",
    "TIME_FIELDS",
    "HEART_RATE_FIELDS",
    "SPEED_FIELDS",
    "CUMULATIVE_DISTANCE_FIELDS",
    "POWER_FIELDS",
    "LATITUDE_FIELDS",
    "LONGITUDE_FIELDS",
    "GPS_TIME_FIELDS",
    "SWIM_LENGTH_DURATION_FIELDS",
    "SWIM_LENGTH_DISTANCE_FIELDS",
    "WORKOUT_DISTANCE_FIELDS",
    "POOL_LENGTH_FIELDS",
    "LENGTH_COUNT_FIELDS",
]
