import pytest

from workout_reconciliation import reconcile
from workout_reconciliation.engine import (
    MESSAGE_NO_COMPARISON,
    MESSAGE_NO_PLAN,
    align_precomputed,
    detect_sport,
    server_computed_intervals,
)
from workout_reconciliation.errors import MalformedInputError
from workout_reconciliation.models import (
    KIND_REST,
    KIND_WARMUP,
    KIND_WORK,
    POOL_METERS,
    SPORT_OTHER,
    SPORT_RIDE,
    SPORT_RUN,
    SPORT_SWIM,
    SPORT_WALK,
    STATUS_NO_PLAN,
    STATUS_NO_TELEMETRY,
    STATUS_OK,
    STATUS_PRECOMPUTED,
    PlannedStep,
)

from conftest import steady_records


@pytest.mark.parametrize(
    "completed,expected",
    [
        ({"sport": "Running"}, SPORT_RUN),
        ({"type": "TrailRun"}, SPORT_RUN),
        ({"activity_type": "hiking"}, SPORT_WALK),
        ({"sport": "Walk"}, SPORT_WALK),
        ({"type": "VirtualRide"}, SPORT_RIDE),
        ({"sport": "cycling"}, SPORT_RIDE),
        ({"sport": "Pool Swim"}, SPORT_SWIM),
        ({"sport": "Yoga"}, SPORT_OTHER),
        ({}, SPORT_OTHER),
    ],
)
def test_detect_sport(completed, expected):
    assert detect_sport(completed) == expected


def test_no_plan_reports_message_and_no_intervals(completed_run):
    for planned in (None, {}):
        result = reconcile(planned, completed_run)
        assert result.status == STATUS_NO_PLAN
        assert result.intervals == ()
        assert result.message == MESSAGE_NO_PLAN
        assert not result.has_comparison


def test_reconcile_structured_run(structured_run_plan, completed_run):
    result = reconcile(structured_run_plan, completed_run)
    assert result.status == STATUS_OK
    assert result.sport == SPORT_RUN
    assert len(result.intervals) == 3

    warmup, work, rest = result.intervals
    assert [i.kind for i in result.intervals] == [KIND_WARMUP, KIND_WORK, KIND_REST]
    assert [i.planned_step_id for i in result.intervals] == ["wu", "rep", "rec"]
    assert warmup.duration_s == pytest.approx(60.0)
    assert work.distance_m == pytest.approx(400.0)
    assert rest.duration_s == pytest.approx(60.0)
    for interval in result.intervals:
        assert interval.avg_hr == 150
        assert interval.issues == ()

    assert result.overall.distance_m == pytest.approx(1200.0)
    assert result.overall.duration_s == pytest.approx(400.0)


def test_reconcile_is_deterministic(structured_run_plan, completed_run):
    assert reconcile(structured_run_plan, completed_run) == reconcile(
        structured_run_plan, completed_run
    )


def test_plan_from_tokens_only(interval_tokens):
    completed = {"sport": "run", "samples": steady_records(3600, 3.0)}
    result = reconcile({"tokens": interval_tokens}, completed)
    assert result.status == STATUS_OK
    assert len(result.intervals) == 13
    assert [i.step_index for i in result.intervals] == list(range(13))


def test_precomputed_intervals_bypass_segmentation():
    planned = {
        "steps": [
            {"id": "a", "type": "warmup", "duration": 600},
            {"id": "b", "type": "recovery", "duration": 60},
            {"id": "c", "type": "interval", "distanceMeters": 400},
            {"id": "d", "type": "recovery", "duration": 90},
        ]
    }
    completed = {
        "sport": "run",
        "serverComputedIntervals": [
            {
                "planned_step_id": "c",
                "executed": {"distance_m": 402, "duration_s": 95, "avg_hr": 171.6},
            },
            {"executed": {"distance_m": 180, "duration_s": 90}},
        ],
    }
    result = reconcile(planned, completed)
    assert result.status == STATUS_PRECOMPUTED
    assert [i.step_index for i in result.intervals] == [2, 3]
    assert [s.id for s in result.steps] == ["c", "d"]
    assert result.intervals[0].avg_hr == 172
    assert result.intervals[0].distance_m == 402
    assert result.intervals[1].planned_step_id == "d"


def test_align_precomputed_with_fewer_steps_than_rows():
    steps = [PlannedStep(index=0), PlannedStep(index=1)]
    rows = [{"duration_s": 60}, {"duration_s": 60}, {"duration_s": 60}]
    intervals = align_precomputed(steps, rows)
    assert [i.step_index for i in intervals] == [0, 1]


def test_server_computed_intervals_lookup():
    assert server_computed_intervals({}) == []
    nested = {"computed": {"intervals": [{"duration_s": 60}, "junk"]}}
    assert server_computed_intervals(nested) == [{"duration_s": 60}]
    with pytest.raises(MalformedInputError):
        server_computed_intervals({"serverComputedIntervals": "pending"})


def test_empty_telemetry(structured_run_plan):
    result = reconcile(structured_run_plan, {"sport": "run", "samples": []})
    assert result.status == STATUS_NO_TELEMETRY
    assert result.intervals == ()
    assert result.message == MESSAGE_NO_COMPARISON
    assert len(result.steps) == 3


def test_steps_without_targets(completed_run):
    planned = {"steps": [{"type": "warmup"}, {"type": "interval"}, {"type": "cooldown"}]}
    result = reconcile(planned, completed_run)
    assert result.status == STATUS_NO_PLAN
    assert result.message == MESSAGE_NO_COMPARISON
    assert result.intervals == ()


def test_malformed_payloads_raise(structured_run_plan):
    with pytest.raises(MalformedInputError):
        reconcile(structured_run_plan, ["not", "a", "workout"])
    with pytest.raises(MalformedInputError):
        reconcile("plan", {"sport": "run"})
    with pytest.raises(MalformedInputError):
        reconcile(structured_run_plan, {"sport": "run", "samples": 42})


def test_swim_in_meter_pool():
    lengths = [{"duration_s": 30, "distance_m": 25, "heart_rate": 130}] * 8
    completed = {"sport": "Pool Swim", "pool_length": 25, "swimLengths": lengths}
    planned = {
        "steps": [
            {"type": "interval", "distanceMeters": 100},
            {"type": "interval", "distanceMeters": 100},
            {"type": "interval", "distanceMeters": 100},
        ]
    }
    result = reconcile(planned, completed)
    assert result.status == STATUS_OK
    assert result.pool_unit == POOL_METERS
    first, second, third = result.intervals
    assert first.swim_pace_s_per_100 == pytest.approx(120.0)
    assert second.swim_pace_s_per_100 == pytest.approx(120.0)
    assert first.avg_hr == 130
    assert first.avg_pace_s_per_mi is None
    # The stream is exhausted before the third step begins.
    assert third.duration_s is None


def test_implausible_heart_rates_do_not_reach_the_average():
    hrs = [45, 250, 140, 142, 150]
    completed = {
        "sport": "run",
        "samples": [
            {"t": t, "speed_mps": 3.0, "hr": hr} for t, hr in enumerate(hrs)
        ],
    }
    planned = {"steps": [{"duration": 4}, {"duration": 60}, {"duration": 60}]}
    result = reconcile(planned, completed)
    assert result.intervals[0].avg_hr == 141
