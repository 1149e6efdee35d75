"""Planned-versus-executed workout reconciliation package."""

from .engine import reconcile
from .errors import MalformedInputError, ReconciliationError
from .models import ExecutedInterval, PlannedStep, ReconciliationResult

__all__ = [
    "reconcile",
    "ExecutedInterval",
    "PlannedStep",
    "ReconciliationResult",
    "MalformedInputError",
    "ReconciliationError",
]
