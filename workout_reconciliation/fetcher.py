"""Fetch completed-workout payloads from the activity store.

Telemetry is often written to the store a little after the workout record
itself. The fetcher polls with exponential backoff until the payload carries
telemetry (or server-computed intervals) and otherwise reports it as
pending, so a half-populated payload is never reconciled.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Any, Mapping, Optional

import requests

from .config import (
    ACTIVITY_STORE_TOKEN,
    ACTIVITY_STORE_URL,
    FETCH_BACKOFF_MAX_SECONDS,
    FETCH_BACKOFF_SECONDS,
    FETCH_MAX_ATTEMPTS,
    REQUEST_TIMEOUT,
)
from .engine import (
    MESSAGE_PENDING,
    detect_sport,
    reconcile,
    server_computed_intervals,
)
from .errors import ActivityFetchError
from .models import STATUS_PENDING, ReconciliationResult
from .normalizer import normalize_samples

LOGGER = logging.getLogger(__name__)

__all__ = [
    "ActivityFetcher",
    "FetchOutcome",
    "create_session",
    "is_populated",
    "reconcile_fetched",
]


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Result of polling the store for one workout."""

    workout_id: str
    payload: Optional[Mapping[str, Any]]
    pending: bool
    attempts: int


def create_session(token: str = ACTIVITY_STORE_TOKEN) -> requests.Session:
    session = requests.Session()
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
        }
    )
    if token:
        session.headers["Authorization"] = f"Bearer {token}"
    return session


def is_populated(payload: Mapping[str, Any]) -> bool:
    """True when the payload carries usable telemetry or computed intervals.

    Containers are judged by their decoded records, so an empty wrapper or
    an empty JSON-string container still counts as pending.

    Raises:
        MalformedInputError: If a telemetry container has an uninterpretable
            shape; polling cannot fix that.
    """

    if server_computed_intervals(payload):
        return True
    return len(normalize_samples(payload)) >= 2


class ActivityFetcher:
    """GETs completed workouts with bounded polling and backoff."""

    def __init__(
        self,
        base_url: str = ACTIVITY_STORE_URL,
        *,
        session: requests.Session | None = None,
        timeout: int = REQUEST_TIMEOUT,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
        backoff: float = FETCH_BACKOFF_SECONDS,
        backoff_max: float = FETCH_BACKOFF_MAX_SECONDS,
    ) -> None:
        if not base_url:
            raise ActivityFetchError("ACTIVITY_STORE_URL is not configured")
        self._base_url = base_url.rstrip("/")
        self._session = session or create_session()
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)
        self._initial_backoff = backoff
        self._backoff_max = backoff_max

    def workout_url(self, workout_id: str) -> str:
        return f"{self._base_url}/workouts/{workout_id}"

    def _get(self, url: str) -> Optional[requests.Response]:
        try:
            return self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            LOGGER.warning("GET %s failed: %s", url, exc.__class__.__name__)
            return None

    def fetch(self, workout_id: str) -> FetchOutcome:
        """Poll until the workout is populated or attempts run out.

        Raises:
            ActivityFetchError: On a 4xx response, a non-JSON body, or when
                every attempt failed at the network or server level.
        """

        url = self.workout_url(workout_id)
        backoff = self._initial_backoff
        payload: Optional[Mapping[str, Any]] = None
        last_error: Optional[str] = None
        for attempt in range(1, self._max_attempts + 1):
            response = self._get(url)
            if response is None:
                last_error = "network error"
            elif response.status_code >= 500:
                last_error = f"HTTP {response.status_code}"
                LOGGER.warning(
                    "Activity store returned %s for workout=%s attempt=%s",
                    response.status_code,
                    workout_id,
                    attempt,
                )
            elif response.status_code >= 400:
                message = (
                    f"Activity store rejected workout {workout_id}: "
                    f"HTTP {response.status_code}"
                )
                LOGGER.error(message)
                raise ActivityFetchError(message)
            else:
                try:
                    body = response.json()
                except ValueError as exc:
                    message = f"Activity store returned non-JSON for {workout_id}"
                    LOGGER.error(message)
                    raise ActivityFetchError(message) from exc
                if not isinstance(body, Mapping):
                    raise ActivityFetchError(
                        f"Activity store returned {type(body).__name__} for {workout_id}"
                    )
                payload = body
                last_error = None
                if is_populated(body):
                    return FetchOutcome(workout_id, body, False, attempt)
                LOGGER.info(
                    "Workout %s not populated yet (attempt %s/%s)",
                    workout_id,
                    attempt,
                    self._max_attempts,
                )

            if attempt < self._max_attempts:
                LOGGER.warning(
                    "Retrying workout=%s in %.1fs", workout_id, backoff
                )
                time.sleep(backoff)
                backoff = min(backoff * 2, self._backoff_max)

        if payload is None:
            message = (
                f"Unable to fetch workout {workout_id} after "
                f"{self._max_attempts} attempts ({last_error})"
            )
            LOGGER.error(message)
            raise ActivityFetchError(message)
        LOGGER.info("Workout %s still pending after polling", workout_id)
        return FetchOutcome(workout_id, payload, True, self._max_attempts)


def reconcile_fetched(
    planned: Optional[Mapping[str, Any]], outcome: FetchOutcome
) -> ReconciliationResult:
    """Reconcile a fetched workout, or report it as still computing."""

    if outcome.pending or outcome.payload is None:
        return ReconciliationResult(
            status=STATUS_PENDING,
            sport=detect_sport(outcome.payload or {}),
            message=MESSAGE_PENDING,
        )
    return reconcile(planned, outcome.payload)
