import pytest

from workout_reconciliation import reconcile
from workout_reconciliation.models import (
    POOL_METERS,
    POOL_YARDS,
    STATUS_NO_PLAN,
    ExecutedInterval,
    PlannedStep,
    ReconciliationResult,
)
from workout_reconciliation.summary import (
    ABSENT,
    COMPARISON_COLUMNS,
    UNITS_METRIC,
    build_comparison_frame,
    format_distance,
    format_duration,
    format_executed,
    format_pace,
    format_planned_pace,
    format_planned_target,
    format_power,
    format_speed,
    format_swim_pace,
)


@pytest.mark.parametrize(
    "seconds,expected",
    [(65, "1:05"), (3725, "1:02:05"), (59.6, "1:00"), (0, ABSENT), (None, ABSENT)],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_pace_units():
    assert format_pace(480) == "8:00/mi"
    assert format_pace(480, UNITS_METRIC) == "4:58/km"
    assert format_pace(float("nan")) == ABSENT


def test_format_distance_decimals():
    assert format_distance(1609.34) == "1.0 mi"
    assert format_distance(800) == "0.50 mi"
    assert format_distance(5000, UNITS_METRIC) == "5.0 km"
    assert format_distance(None) == ABSENT


def test_format_speed_and_power():
    assert format_speed(10.0) == "22.4 mph"
    assert format_speed(10.0, UNITS_METRIC) == "36.0 km/h"
    assert format_power(220.4) == "220 W"
    assert format_power(-1) == ABSENT


def test_format_swim_pace():
    assert format_swim_pace(90, POOL_YARDS) == "1:30 /100yd"
    assert format_swim_pace(105, POOL_METERS) == "1:45 /100m"
    assert format_swim_pace(90, None) == ABSENT


def test_planned_pace_fallbacks():
    assert format_planned_pace(PlannedStep(0, target_pace_s_per_mi=450)) == "7:30/mi"
    ranged = PlannedStep(0, target_pace_range=(420.0, 450.0))
    assert format_planned_pace(ranged) == "7:00–7:30/mi"
    derived = PlannedStep(0, target_distance_m=1609.34, target_duration_s=420)
    assert format_planned_pace(derived) == "7:00/mi"
    assert format_planned_pace(PlannedStep(0, target_power_w=250)) == "250 W"
    power_range = PlannedStep(0, target_power_range=(200.0, 250.0))
    assert format_planned_pace(power_range) == "200–250 W"
    assert format_planned_pace(PlannedStep(0, target_duration_s=60)) == ABSENT


def test_planned_target():
    assert format_planned_target(PlannedStep(0, target_distance_m=400)) == "400 m"
    assert format_planned_target(PlannedStep(0, target_distance_m=1609.34)) == "1.0 mi"
    assert format_planned_target(PlannedStep(0, target_duration_s=60)) == "1:00"
    assert format_planned_target(PlannedStep(0)) == ABSENT


def test_format_executed_prefers_sport_metric():
    assert format_executed(ExecutedInterval(0, "work", avg_pace_s_per_mi=420)) == "7:00/mi"
    assert format_executed(ExecutedInterval(0, "work", avg_power_w=230)) == "230 W"
    swim = ExecutedInterval(
        0, "work", swim_pace_s_per_100=90, swim_pace_unit=POOL_YARDS
    )
    assert format_executed(swim) == "1:30 /100yd"
    assert format_executed(ExecutedInterval(0, "work")) == ABSENT


def test_comparison_frame(structured_run_plan, completed_run):
    df = build_comparison_frame(reconcile(structured_run_plan, completed_run))
    assert list(df.columns) == COMPARISON_COLUMNS
    assert len(df) == 3
    assert list(df["BPM"]) == ["150", "150", "150"]
    assert df.loc[1, "Planned"] == "400 m"
    assert df.loc[0, "Kind"] == "Warm-up"
    assert df.loc[0, "Time"] == "1:00"
    overall = df.attrs["overall"]
    assert list(overall["Metric"]) == ["Distance", "Moving Time", "Avg Pace"]


def test_comparison_frame_without_intervals():
    result = ReconciliationResult(
        status=STATUS_NO_PLAN, sport="run", message="No plan to compare."
    )
    df = build_comparison_frame(result)
    assert list(df.columns) == ["Status"]
    assert df.loc[0, "Status"] == "No plan to compare."
    assert list(df.attrs["overall"]["Value"]) == [ABSENT, ABSENT, ABSENT]
