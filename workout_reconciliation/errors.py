"""Central error types used across the application."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base error for reconciliation failures."""


class MalformedInputError(ReconciliationError):
    """Raised when a planned or completed payload has an impossible shape.

    Sparse or partially missing data is not malformed; it degrades to
    explicitly marked absences instead.
    """


class CursorRewindError(ReconciliationError):
    """Raised when the segmenter cursor is asked to move backwards."""


class ActivityFetchError(ReconciliationError):
    """Raised when the activity store cannot be reached or rejects a request."""


__all__ = [
    "ReconciliationError",
    "MalformedInputError",
    "CursorRewindError",
    "ActivityFetchError",
]
