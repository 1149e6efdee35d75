import math

import pytest

from workout_reconciliation.distance import (
    accumulate_distance,
    pairwise_haversine_m,
)
from workout_reconciliation.models import Sample


def _distances(rows):
    return [row.distance_m for row in rows]


def test_provider_distance_never_goes_backwards():
    samples = [
        Sample(time_s=t, cumulative_distance_m=d)
        for t, d in [(0, 0.0), (1, 10.0), (2, 8.0), (3, 20.0)]
    ]
    assert _distances(accumulate_distance(samples)) == [0.0, 10.0, 10.0, 20.0]


def test_gps_fixes_add_great_circle_distance():
    samples = [
        Sample(time_s=0, lat=51.5, lng=-0.1),
        Sample(time_s=1, lat=51.501, lng=-0.1),
    ]
    rows = accumulate_distance(samples)
    # 0.001 degrees of latitude
    assert rows[1].distance_m == pytest.approx(111.19, abs=0.05)
    assert rows[1].distance_signal


def test_pairwise_haversine_skips_missing_positions():
    samples = [
        Sample(time_s=0, lat=40.0, lng=-74.0),
        Sample(time_s=1, lat=40.01, lng=-74.01),
        Sample(time_s=2),
    ]
    steps = pairwise_haversine_m(samples)
    assert steps[0] == pytest.approx(1400.7, rel=1e-3)
    assert math.isnan(steps[1])


def test_speed_is_integrated_over_short_gaps():
    samples = [Sample(time_s=t, speed_mps=3.0) for t in (0, 1, 2)]
    assert _distances(accumulate_distance(samples)) == [0.0, 3.0, 6.0]


def test_long_gap_holds_distance_without_signal():
    samples = [Sample(time_s=0, speed_mps=3.0), Sample(time_s=100, speed_mps=3.0)]
    rows = accumulate_distance(samples)
    assert _distances(rows) == [0.0, 0.0]
    assert not rows[1].distance_signal


def test_stationary_speed_adds_nothing():
    samples = [Sample(time_s=t, speed_mps=0.1) for t in (0, 1, 2)]
    rows = accumulate_distance(samples)
    assert _distances(rows) == [0.0, 0.0, 0.0]
    assert not any(row.distance_signal for row in rows)


def test_heart_rate_only_stream_fabricates_no_distance():
    samples = [Sample(time_s=t, heart_rate=140.0) for t in range(10)]
    rows = accumulate_distance(samples)
    assert set(_distances(rows)) == {0.0}
    assert not any(row.distance_signal for row in rows)


def test_first_sample_uses_provider_offset():
    samples = [
        Sample(time_s=0, cumulative_distance_m=500.0),
        Sample(time_s=1, speed_mps=4.0),
    ]
    assert _distances(accumulate_distance(samples)) == [500.0, 504.0]


def test_mixed_signals_stay_monotonic():
    samples = [
        Sample(time_s=0, cumulative_distance_m=0.0),
        Sample(time_s=1, lat=10.0, lng=10.0),
        Sample(time_s=2, lat=10.0001, lng=10.0),
        Sample(time_s=3, cumulative_distance_m=5.0),
        Sample(time_s=4, speed_mps=2.5),
        Sample(time_s=5),
        Sample(time_s=6, cumulative_distance_m=40.0),
    ]
    distances = _distances(accumulate_distance(samples))
    assert all(b >= a for a, b in zip(distances, distances[1:]))
    assert distances[-1] == 40.0


def test_empty_input():
    assert accumulate_distance([]) == []
