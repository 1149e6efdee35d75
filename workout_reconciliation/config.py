"""Central configuration for the workout reconciliation engine.

All values are constants imported by the rest of the package. Thresholds can
be tuned through environment variables (optionally via a local `.env`).
"""

from __future__ import annotations

import os

from dotenv import load_dotenv


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env from the current directory or any parent folder.
load_dotenv()


# ---------------------------------------------------------------------------
# Unit constants
# ---------------------------------------------------------------------------
METERS_PER_MILE = 1609.34
METERS_PER_KM = 1000.0
METERS_PER_YARD = 0.9144
MPS_TO_MPH = 2.236936
MPS_TO_KPH = 3.6


# ---------------------------------------------------------------------------
# Sample plausibility
# ---------------------------------------------------------------------------
# Open heart rate band (bpm). Values on or outside the bounds are discarded
# at normalization, never clamped.
HR_MIN_BPM = _env_float("HR_MIN_BPM", 40.0)
HR_MAX_BPM = _env_float("HR_MAX_BPM", 230.0)

# With at least three in-slice readings, drop values further than this
# fraction away from the slice median.
HR_OUTLIER_FRACTION = _env_float("HR_OUTLIER_FRACTION", 0.35)

# Warm-up slices ignore the first seconds of heart rate while the strap settles.
HR_WARMUP_SETTLE_SECONDS = _env_float("HR_WARMUP_SETTLE_SECONDS", 5.0)

# Instantaneous speed below this (m/s) counts as stationary/noise.
MIN_MOVING_SPEED_MPS = _env_float("MIN_MOVING_SPEED_MPS", 0.3)

# Speed integration ignores gaps at or above this many seconds (clock jumps).
MAX_SPEED_INTEGRATION_GAP_S = _env_float("MAX_SPEED_INTEGRATION_GAP_S", 60.0)


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------
# Leading idle trim: the start advances while the next window averages below
# MIN_MOVING_SPEED_MPS and covers no more than IDLE_TRIM_DISTANCE_M.
IDLE_TRIM_WINDOW_SECONDS = _env_float("IDLE_TRIM_WINDOW_SECONDS", 5.0)
IDLE_TRIM_DISTANCE_M = _env_float("IDLE_TRIM_DISTANCE_M", 10.0)
# Upper bound on how much leading time may be trimmed. Set to 0 to disable.
IDLE_TRIM_MAX_SECONDS = _env_float("IDLE_TRIM_MAX_SECONDS", 120.0)

# Slices shorter than this report the planned duration instead.
MIN_SLICE_SECONDS = _env_float("MIN_SLICE_SECONDS", 5.0)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------
# Plausible single-interval run distance (miles).
RUN_INTERVAL_MIN_MILES = _env_float("RUN_INTERVAL_MIN_MILES", 0.03)
RUN_INTERVAL_MAX_MILES = _env_float("RUN_INTERVAL_MAX_MILES", 5.0)

# Speed-derived rest paces are accepted only inside this band (sec/mile).
REST_PACE_MIN_S_PER_MI = _env_float("REST_PACE_MIN_S_PER_MI", 240.0)
REST_PACE_MAX_S_PER_MI = _env_float("REST_PACE_MAX_S_PER_MI", 1200.0)

# Speed samples at or above this are implausible inside a rest segment.
REST_MAX_SPEED_MPS = _env_float("REST_MAX_SPEED_MPS", 8.0)


# ---------------------------------------------------------------------------
# Swim pool classification
# ---------------------------------------------------------------------------
# (nominal length in metres, tolerance in metres)
YARD_POOL_LENGTHS_M = [(22.86, 0.6)]
METER_POOL_LENGTHS_M = [(25.0, 0.8), (50.0, 1.2), (33.33, 1.0)]


# ---------------------------------------------------------------------------
# Planned-step resolution
# ---------------------------------------------------------------------------
# Plans with fewer structured steps than this are treated as unstructured.
MIN_STRUCTURED_STEPS = _env_int("MIN_STRUCTURED_STEPS", 3)


# ---------------------------------------------------------------------------
# Activity store polling
# ---------------------------------------------------------------------------
ACTIVITY_STORE_URL = os.getenv("ACTIVITY_STORE_URL", "")
ACTIVITY_STORE_TOKEN = os.getenv("ACTIVITY_STORE_TOKEN", "")

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_int("REQUEST_TIMEOUT", 15)

# Attempts before a not-yet-populated payload is reported as pending.
FETCH_MAX_ATTEMPTS = _env_int("FETCH_MAX_ATTEMPTS", 4)
# Initial delay between attempts; doubles per attempt up to the cap.
FETCH_BACKOFF_SECONDS = _env_float("FETCH_BACKOFF_SECONDS", 2.0)
FETCH_BACKOFF_MAX_SECONDS = _env_float("FETCH_BACKOFF_MAX_SECONDS", 8.0)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------
# "imperial" or "metric".
DEFAULT_UNITS = os.getenv("DEFAULT_UNITS", "imperial")

OUTPUT_FILE = "workout_comparison"
# Append _YYYYMMDD_HHMMSS to the output name when True.
OUTPUT_FILE_TIMESTAMP_ENABLED = _env_bool("OUTPUT_FILE_TIMESTAMP_ENABLED", False)

# Automatically size columns after writing each sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = True
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
EXCEL_AUTOSIZE_MAX_ROWS = 5000  # skip autosize for very large sheets
