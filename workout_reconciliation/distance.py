"""Distance accumulator: a monotonic cumulative distance at every sample.

Signals are preferred in order: provider-reported cumulative distance, the
great-circle distance between consecutive GPS fixes, then integration of
instantaneous speed over short time gaps. When none of them exists for a
pair of samples the running total holds steady; distance is never invented.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from .config import MAX_SPEED_INTEGRATION_GAP_S, MIN_MOVING_SPEED_MPS
from .models import AccumulatedSample, Sample

LOGGER = logging.getLogger(__name__)
_EARTH_RADIUS_M = 6_371_000.0


def pairwise_haversine_m(samples: Sequence[Sample]) -> NDArray[np.float64]:
    """Return haversine distances between consecutive samples.

    Entry ``i`` holds the distance from sample ``i`` to ``i + 1`` and is NaN
    when either sample lacks a position.
    """

    count = len(samples)
    if count < 2:
        return np.zeros(0, dtype=float)
    lats = np.asarray(
        [s.lat if s.has_position else np.nan for s in samples], dtype=float
    )
    lngs = np.asarray(
        [s.lng if s.has_position else np.nan for s in samples], dtype=float
    )
    lat_rad = np.radians(lats)
    lng_rad = np.radians(lngs)
    delta_lat = np.diff(lat_rad)
    delta_lng = np.diff(lng_rad)
    a = (
        np.sin(delta_lat / 2.0) ** 2
        + np.cos(lat_rad[:-1]) * np.cos(lat_rad[1:]) * np.sin(delta_lng / 2.0) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    return 2.0 * _EARTH_RADIUS_M * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def plausible_speed(value: Optional[float]) -> Optional[float]:
    """Return ``value`` when it indicates real movement, else ``None``."""

    if value is None or not math.isfinite(value):
        return None
    if value < MIN_MOVING_SPEED_MPS:
        return None
    return value


def _speed_increment(prev: Sample, curr: Sample) -> Optional[float]:
    delta_t = curr.time_s - prev.time_s
    if not (0.0 < delta_t < MAX_SPEED_INTEGRATION_GAP_S):
        return None
    v0 = plausible_speed(prev.speed_mps)
    v1 = plausible_speed(curr.speed_mps)
    if v0 is not None and v1 is not None:
        return (v0 + v1) / 2.0 * delta_t
    if v1 is not None:
        return v1 * delta_t
    if v0 is not None:
        return v0 * delta_t
    return None


def _provider_distance(sample: Sample) -> Optional[float]:
    value = sample.cumulative_distance_m
    if value is None or not math.isfinite(value) or value < 0:
        return None
    return value


def accumulate_distance(samples: Sequence[Sample]) -> List[AccumulatedSample]:
    """Annotate each sample with a non-decreasing cumulative distance."""

    if not samples:
        return []

    gps_steps = pairwise_haversine_m(samples)
    first_provider = _provider_distance(samples[0])
    total = first_provider if first_provider is not None else 0.0
    rows = [
        AccumulatedSample(
            sample=samples[0],
            distance_m=total,
            distance_signal=first_provider is not None,
        )
    ]
    held_back = 0
    for idx in range(1, len(samples)):
        prev = samples[idx - 1]
        curr = samples[idx]
        signal = True
        provider = _provider_distance(curr)
        if provider is not None:
            if provider < total:
                held_back += 1
            total = max(total, provider)
        elif not math.isnan(gps_steps[idx - 1]):
            total += float(gps_steps[idx - 1])
        else:
            increment = _speed_increment(prev, curr)
            if increment is None:
                signal = False
            else:
                total += increment
        rows.append(
            AccumulatedSample(sample=curr, distance_m=total, distance_signal=signal)
        )

    if held_back:
        LOGGER.debug(
            "Held distance steady for %d provider values that went backwards",
            held_back,
        )
    return rows


__all__ = [
    "accumulate_distance",
    "pairwise_haversine_m",
    "plausible_speed",
]
