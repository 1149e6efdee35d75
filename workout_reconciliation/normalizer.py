"""Sample normalizer: heterogeneous provider telemetry into one ordered stream.

Completed workouts arrive with any combination of a generic sensor-sample
array, a GPS track (list of points or an encoded polyline) and per-length swim
records, each using provider-specific field names. ``normalize_samples``
flattens them into a single list of :class:`~workout_reconciliation.models.Sample`
sorted by time with no duplicate timestamps.

When both a sensor stream and a GPS track exist they are merged by array
index, not by interpolated time. Providers do not guarantee aligned indices,
so this is a best-effort approximation.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from polyline import decode as polyline_decode

from .config import HR_MAX_BPM, HR_MIN_BPM
from .errors import MalformedInputError
from .fields import (
    CUMULATIVE_DISTANCE_FIELDS,
    GPS_TIME_FIELDS,
    HEART_RATE_FIELDS,
    LATITUDE_FIELDS,
    LONGITUDE_FIELDS,
    POWER_FIELDS,
    SPEED_FIELDS,
    SWIM_LENGTH_DISTANCE_FIELDS,
    SWIM_LENGTH_DURATION_FIELDS,
    TIME_FIELDS,
    coerce_number,
    resolve_field,
)
from .models import Sample

LOGGER = logging.getLogger(__name__)

SENSOR_KEYS = ("samples", "sensor_data", "sensorData")
GPS_KEYS = ("gpsTrack", "gps_track", "polyline")
SWIM_KEYS = ("swimLengths", "swim_lengths")

# Fewer sensor samples than this and swim lengths take over.
_SWIM_FALLBACK_MIN_SAMPLES = 3

GpsPoint = Tuple[Optional[float], Optional[float], Optional[float]]


@dataclass(slots=True)
class _Draft:
    """Mutable sample under construction."""

    time_s: float
    lat: Optional[float] = None
    lng: Optional[float] = None
    heart_rate: Optional[float] = None
    speed_mps: Optional[float] = None
    cumulative_distance_m: Optional[float] = None
    power_w: Optional[float] = None

    def fill_missing(self, other: "_Draft") -> None:
        for name in (
            "lat",
            "lng",
            "heart_rate",
            "speed_mps",
            "cumulative_distance_m",
            "power_w",
        ):
            if getattr(self, name) is None:
                setattr(self, name, getattr(other, name))

    def freeze(self, origin_s: float) -> Sample:
        return Sample(
            time_s=self.time_s - origin_s,
            lat=self.lat,
            lng=self.lng,
            heart_rate=self.heart_rate,
            speed_mps=self.speed_mps,
            cumulative_distance_m=self.cumulative_distance_m,
            power_w=self.power_w,
        )


def normalize_samples(completed: Mapping[str, Any]) -> List[Sample]:
    """Return the completed workout's telemetry as one time-ordered stream.

    Times are rebased so the earliest sample sits at ``0.0`` seconds.

    Raises:
        MalformedInputError: If ``completed`` or one of its telemetry
            containers has a shape that cannot be interpreted.
    """

    if not isinstance(completed, Mapping):
        raise MalformedInputError(
            f"Completed workout must be a mapping, got {type(completed).__name__}"
        )

    drafts = [
        _sensor_draft(record, idx)
        for idx, record in enumerate(_sensor_records(completed))
    ]

    if len(drafts) < _SWIM_FALLBACK_MIN_SAMPLES:
        swim_lengths = _swim_length_records(completed)
        if swim_lengths:
            LOGGER.debug(
                "Using %d swim lengths in place of %d sensor samples",
                len(swim_lengths),
                len(drafts),
            )
            drafts = _swim_drafts(swim_lengths)

    _merge_gps(drafts, _gps_points(completed))

    if not drafts:
        return []
    ordered = _dedupe_timestamps(sorted(drafts, key=lambda d: d.time_s))
    origin = ordered[0].time_s
    return [draft.freeze(origin) for draft in ordered]


# ---------------------------------------------------------------------------
# Container lookup
# ---------------------------------------------------------------------------


def _decode_json_container(value: Any, key: str) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError as exc:
        raise MalformedInputError(f"'{key}' is not valid JSON") from exc


def _as_record_list(value: Any, key: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        nested = value.get("samples")
        if nested is None:
            return []
        value = nested
    if not isinstance(value, (list, tuple)):
        raise MalformedInputError(
            f"'{key}' must be a list of records, got {type(value).__name__}"
        )
    return list(value)


def _sensor_records(completed: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    for key in SENSOR_KEYS:
        if key not in completed:
            continue
        records = _as_record_list(
            _decode_json_container(completed[key], key), key
        )
        for record in records:
            if not isinstance(record, Mapping):
                raise MalformedInputError(
                    f"'{key}' entries must be mappings, got {type(record).__name__}"
                )
        if records:
            return records
    return []


def _swim_length_records(completed: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    candidates: List[Tuple[str, Any]] = [
        (key, completed.get(key)) for key in SWIM_KEYS
    ]
    swim_data = completed.get("swim_data")
    if isinstance(swim_data, Mapping):
        candidates.append(("swim_data.lengths", swim_data.get("lengths")))
    for key, value in candidates:
        if value is None:
            continue
        if not isinstance(value, (list, tuple)):
            raise MalformedInputError(f"'{key}' must be a list of lengths")
        records = [rec for rec in value if isinstance(rec, Mapping)]
        if records:
            return records
    return []


def _gps_points(completed: Mapping[str, Any]) -> List[GpsPoint]:
    for key in GPS_KEYS:
        value = completed.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            return _decode_polyline(value, key)
        if not isinstance(value, (list, tuple)):
            raise MalformedInputError(
                f"'{key}' must be a list of points or an encoded polyline"
            )
        points = [_gps_point(point, key) for point in value]
        if points:
            return points
    return []


def _decode_polyline(encoded: str, key: str) -> List[GpsPoint]:
    if not encoded:
        return []
    try:
        decoded = polyline_decode(encoded)
    except (ValueError, TypeError, IndexError) as exc:
        raise MalformedInputError(f"Unable to decode polyline in '{key}'") from exc
    return [(float(lat), float(lng), None) for lat, lng in decoded]


def _gps_point(point: Any, key: str) -> GpsPoint:
    if isinstance(point, Mapping):
        return (
            resolve_field(point, LATITUDE_FIELDS),
            resolve_field(point, LONGITUDE_FIELDS),
            resolve_field(point, GPS_TIME_FIELDS),
        )
    if isinstance(point, (list, tuple)) and len(point) >= 2:
        # GeoJSON order: [lng, lat]
        return coerce_number(point[1]), coerce_number(point[0]), None
    raise MalformedInputError(f"Unrecognised GPS point in '{key}': {point!r}")


# ---------------------------------------------------------------------------
# Draft construction
# ---------------------------------------------------------------------------


def _plausible_hr(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    if value <= HR_MIN_BPM or value >= HR_MAX_BPM:
        return None
    return value


def _non_negative(value: Optional[float]) -> Optional[float]:
    if value is None or value < 0:
        return None
    return value


def _sensor_draft(record: Mapping[str, Any], position: int) -> _Draft:
    time_s = resolve_field(record, TIME_FIELDS)
    return _Draft(
        time_s=float(position) if time_s is None else time_s,
        lat=resolve_field(record, LATITUDE_FIELDS),
        lng=resolve_field(record, LONGITUDE_FIELDS),
        heart_rate=_plausible_hr(resolve_field(record, HEART_RATE_FIELDS)),
        speed_mps=_non_negative(resolve_field(record, SPEED_FIELDS)),
        cumulative_distance_m=_non_negative(
            resolve_field(record, CUMULATIVE_DISTANCE_FIELDS)
        ),
        power_w=_non_negative(resolve_field(record, POWER_FIELDS)),
    )


def _swim_drafts(lengths: Sequence[Mapping[str, Any]]) -> List[_Draft]:
    """Turn pool lengths into one synthetic sample per length start.

    Each sample carries its length's average speed and heart rate. Length
    distances are provider data, so the running total is attached as the
    cumulative distance while every length so far reported one. A closing
    sample marks the end of the final length.
    """

    drafts: List[_Draft] = []
    elapsed = 0.0
    total_m: Optional[float] = 0.0
    last_speed: Optional[float] = None
    for length in lengths:
        duration = resolve_field(length, SWIM_LENGTH_DURATION_FIELDS) or 0.0
        distance = resolve_field(length, SWIM_LENGTH_DISTANCE_FIELDS) or 0.0
        speed = distance / duration if duration > 0 and distance > 0 else None
        drafts.append(
            _Draft(
                time_s=elapsed,
                heart_rate=_plausible_hr(resolve_field(length, HEART_RATE_FIELDS)),
                speed_mps=speed,
                cumulative_distance_m=total_m,
            )
        )
        if total_m is not None:
            total_m = total_m + distance if distance > 0 else None
        elapsed += duration if duration > 0 else 1.0
        last_speed = speed
    if drafts:
        drafts.append(
            _Draft(time_s=elapsed, speed_mps=last_speed, cumulative_distance_m=total_m)
        )
    return drafts


def _merge_gps(drafts: List[_Draft], points: Sequence[GpsPoint]) -> None:
    """Attach GPS positions by index; extra points become their own samples."""

    if not points:
        return
    merged = min(len(drafts), len(points))
    for idx in range(merged):
        lat, lng, _ = points[idx]
        drafts[idx].lat = lat
        drafts[idx].lng = lng
    if len(points) > len(drafts):
        LOGGER.debug(
            "GPS track has %d points beyond the sensor stream",
            len(points) - len(drafts),
        )
    for idx in range(merged, len(points)):
        lat, lng, gps_time = points[idx]
        time_s = _extra_gps_time(drafts, points, idx, gps_time)
        drafts.append(_Draft(time_s=time_s, lat=lat, lng=lng))


def _extra_gps_time(
    drafts: Sequence[_Draft],
    points: Sequence[GpsPoint],
    idx: int,
    gps_time: Optional[float],
) -> float:
    """Return a time for a GPS-only point that continues the existing stream."""

    if not drafts:
        return float(idx) if gps_time is None else gps_time
    prev_time = drafts[-1].time_s
    prev_gps_time = points[idx - 1][2] if idx > 0 else None
    if gps_time is not None and prev_gps_time is not None and gps_time > prev_gps_time:
        return prev_time + (gps_time - prev_gps_time)
    return prev_time + 1.0


def _dedupe_timestamps(ordered: Sequence[_Draft]) -> List[_Draft]:
    """Collapse equal timestamps; the earliest input record wins."""

    result: List[_Draft] = []
    for draft in ordered:
        if result and result[-1].time_s == draft.time_s:
            result[-1].fill_missing(draft)
            continue
        result.append(draft)
    return result


__all__ = ["normalize_samples"]
