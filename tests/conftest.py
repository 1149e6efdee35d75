"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable builders for telemetry
streams and plans so individual test files stay short.
"""
from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from workout_reconciliation.models import AccumulatedSample, Sample


# --- Factory helpers -------------------------------------------------
def make_accumulated(
    times,
    distances,
    *,
    heart_rates=None,
    speeds=None,
    powers=None,
    signal=True,
):
    """Build an accumulated stream directly, bypassing normalization."""

    rows = []
    for i, (t, d) in enumerate(zip(times, distances)):
        sample = Sample(
            time_s=float(t),
            heart_rate=heart_rates[i] if heart_rates else None,
            speed_mps=speeds[i] if speeds else None,
            power_w=powers[i] if powers else None,
        )
        rows.append(
            AccumulatedSample(
                sample=sample,
                distance_m=float(d),
                distance_signal=bool(signal) and i > 0,
            )
        )
    return rows


def steady_stream(seconds, speed_mps, *, heart_rate=None, idle_s=0):
    """1 Hz stream that stands still for ``idle_s`` then moves steadily."""

    times = list(range(seconds + 1))
    distances = [max(0, t - idle_s) * speed_mps for t in times]
    hrs = [heart_rate] * len(times) if heart_rate is not None else None
    return make_accumulated(times, distances, heart_rates=hrs)


def steady_records(seconds, speed_mps, *, heart_rate=150.0, idle_s=0):
    """Raw sensor records for a 1 Hz workout, as a provider would send them."""

    return [
        {
            "t": float(t),
            "speed_mps": speed_mps if t >= idle_s else 0.0,
            "heart_rate": heart_rate,
        }
        for t in range(seconds + 1)
    ]


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def interval_tokens():
    return [
        "warmup_run_quality_12min",
        "interval_6x400m_5kpace_R2min",
        "cooldown_easy_10min",
    ]


@pytest.fixture
def structured_run_plan():
    return {
        "steps": [
            {"id": "wu", "type": "warmup", "duration": 60},
            {"id": "rep", "type": "interval", "distanceMeters": 400},
            {"id": "rec", "type": "recovery", "duration": 60},
        ]
    }


@pytest.fixture
def completed_run():
    return {"sport": "Running", "samples": steady_records(400, 3.0)}
