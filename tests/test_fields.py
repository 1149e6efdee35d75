import pytest

from workout_reconciliation.fields import (
    HEART_RATE_FIELDS,
    SPEED_FIELDS,
    WORKOUT_DISTANCE_FIELDS,
    FieldSpec,
    coerce_number,
    resolve_field,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (12, 12.0),
        ("12.5", 12.5),
        (" 7 ", 7.0),
        ("n/a", None),
        (True, None),
        (float("nan"), None),
        (float("inf"), None),
        (None, None),
        ([1], None),
    ],
)
def test_coerce_number(value, expected):
    assert coerce_number(value) == expected


def test_explicit_speed_beats_pace_conversion():
    record = {"speedMetersPerSecond": 3.0, "pace_min_per_km": 4.0}
    assert resolve_field(record, SPEED_FIELDS) == 3.0


def test_pace_min_per_km_converts_to_mps():
    speed = resolve_field({"pace_min_per_km": 5.0}, SPEED_FIELDS)
    assert speed == pytest.approx(1000.0 / 300.0)


def test_non_numeric_candidate_falls_through_to_next():
    record = {"heartRate": "n/a", "hr": 140}
    assert resolve_field(record, HEART_RATE_FIELDS) == 140.0


def test_zero_pace_is_not_infinite_speed():
    assert resolve_field({"paceInSecondsPerKilometer": 0}, SPEED_FIELDS) is None


def test_bare_distance_is_kilometres():
    assert resolve_field({"distance": 5}, WORKOUT_DISTANCE_FIELDS) == 5000.0
    assert resolve_field({"distance_meters": 800, "distance": 5}, WORKOUT_DISTANCE_FIELDS) == 800.0


def test_custom_conversion_rejecting_value_is_skipped():
    candidates = (FieldSpec("a", lambda v: None), FieldSpec("b"))
    assert resolve_field({"a": 1, "b": 2}, candidates) == 2.0
    assert resolve_field({}, candidates) is None
