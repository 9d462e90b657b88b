# src/daily_planner/errors.py

"""
Error taxonomy shared by the stores and the mutation pipeline.

Storage failures are never retried here; they propagate to the caller.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner errors."""


class NotFound(PlannerError, LookupError):
    """The mutation target does not exist."""

    def __init__(self, task_id: int) -> None:
        super().__init__(f"task {task_id} not found")
        self.task_id = task_id


class PersistenceFailure(PlannerError):
    """The underlying store could not complete a read or write."""


class InvalidTransition(PlannerError):
    """
    Reserved for status-transition rules.

    Any status value is currently accepted; enum membership is checked at the
    boundary (TaskUpdate) before a request reaches the mutator.
    """
