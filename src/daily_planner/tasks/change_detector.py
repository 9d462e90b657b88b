# src/daily_planner/tasks/change_detector.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .task_models import Task, TaskUpdate

# Audited fields in the order their diffs are emitted within one mutation.
TRACKED_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "deadline",
    "reminder_time",
    "estimated_time",
    "actual_time",
    "priority",
    "status",
    "recurring_pattern",
    "recurring_end_date",
)


@dataclass(slots=True, frozen=True)
class FieldChange:
    field_name: str
    old_value: str | None
    new_value: str | None


def normalize(value: Any) -> str | None:
    """
    Canonical string form used both for comparison and for the audit trail.

    Datetimes become UTC instants, so the repeated hour of a DST fold
    (same wall clock, different instant) still compares as a change.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def detect_changes(task: Task, update: TaskUpdate | dict[str, Any]) -> list[FieldChange]:
    """
    Field-level diffs between a snapshot and a sparse proposal.

    Fields absent from the proposal, untracked fields, and fields whose
    normalized value equals the current one produce nothing.
    """
    proposed = update.proposed() if isinstance(update, TaskUpdate) else dict(update)

    changes: list[FieldChange] = []
    for name in TRACKED_FIELDS:
        if name not in proposed:
            continue
        old = normalize(getattr(task, name))
        new = normalize(proposed[name])
        if old != new:
            changes.append(FieldChange(name, old, new))
    return changes
