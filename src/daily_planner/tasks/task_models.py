# src/daily_planner/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import StrEnum
from typing import Any

NAME_MAX_LEN = 200


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.NONE
        try:
            return cls(raw)
        except ValueError:
            return cls.NONE


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class RecurringPattern(StrEnum):
    """
    Calendar rule for spawning the next occurrence.

    "custom" advances by recurrence_interval weeks.
    """

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"

    @classmethod
    def from_db(cls, raw: str | None) -> RecurringPattern:
        if not raw:
            return cls.NONE
        try:
            return cls(raw)
        except ValueError:
            return cls.NONE


# ---- instants ----
# Instants are stored as epoch seconds and exposed as naive local datetimes,
# so range filters compare absolute instants while recurrence works on the
# local calendar.


def to_ts(dt: datetime | None) -> float | None:
    return dt.timestamp() if dt is not None else None


def from_ts(ts: float | None) -> datetime | None:
    return datetime.fromtimestamp(float(ts)) if ts is not None else None


@dataclass(slots=True)
class Task:
    id: int
    name: str
    description: str | None
    list_id: int
    deadline: datetime | None
    reminder_time: datetime | None
    estimated_time: int | None
    actual_time: int | None
    priority: Priority
    status: TaskStatus
    completed_at: datetime | None
    recurring_pattern: RecurringPattern
    recurring_end_date: datetime | None
    recurrence_interval: int | None
    parent_task_id: int | None
    position: int
    created_at: datetime
    updated_at: datetime

    @property
    def is_subtask(self) -> bool:
        return self.parent_task_id is not None

    @property
    def is_recurring(self) -> bool:
        return self.recurring_pattern != RecurringPattern.NONE


@dataclass(slots=True, frozen=True)
class ChangeLogEntry:
    id: int
    task_id: int
    field_name: str
    old_value: str | None
    new_value: str | None
    changed_at: datetime


@dataclass(slots=True)
class TaskList:
    id: int
    name: str
    emoji: str
    color: str
    is_inbox: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class Label:
    id: int
    name: str
    emoji: str
    color: str
    created_at: datetime
    updated_at: datetime


# ---- request payloads (validated at construction) ----


class _Unset:
    """Marker for "field not present in this update"."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def _clean_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("name is required")
    name = name.strip()
    if len(name) > NAME_MAX_LEN:
        raise ValueError(f"name must be at most {NAME_MAX_LEN} characters")
    return name


def _clean_minutes(field_name: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer number of minutes")
    if value < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return value


def _clean_instant(field_name: str, value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ValueError(f"{field_name} must be a datetime")
    return value


def _clean_interval(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError("recurrence_interval must be a non-negative integer")
    return value


@dataclass(slots=True, frozen=True)
class TaskCreate:
    """Fields for a new task. list_id=None means the Inbox list."""

    name: str
    list_id: int | None = None
    description: str | None = None
    deadline: datetime | None = None
    reminder_time: datetime | None = None
    estimated_time: int | None = None
    actual_time: int | None = None
    priority: Priority = Priority.NONE
    recurring_pattern: RecurringPattern = RecurringPattern.NONE
    recurring_end_date: datetime | None = None
    recurrence_interval: int | None = None
    parent_task_id: int | None = None
    position: int = 0
    labels: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _clean_name(self.name))
        object.__setattr__(self, "priority", Priority(self.priority))
        object.__setattr__(self, "recurring_pattern", RecurringPattern(self.recurring_pattern))
        for name in ("deadline", "reminder_time", "recurring_end_date"):
            _clean_instant(name, getattr(self, name))
        for name in ("estimated_time", "actual_time"):
            _clean_minutes(name, getattr(self, name))
        _clean_interval(self.recurrence_interval)
        object.__setattr__(self, "labels", tuple(int(x) for x in self.labels))


@dataclass(slots=True, frozen=True)
class TaskUpdate:
    """
    Sparse update: only fields that are not UNSET are applied.

    Setting a field to None clears it. completed_at is deliberately absent;
    the mutator derives it from status.
    """

    name: str | _Unset = UNSET
    description: str | None | _Unset = UNSET
    deadline: datetime | None | _Unset = UNSET
    reminder_time: datetime | None | _Unset = UNSET
    estimated_time: int | None | _Unset = UNSET
    actual_time: int | None | _Unset = UNSET
    priority: Priority | _Unset = UNSET
    status: TaskStatus | _Unset = UNSET
    recurring_pattern: RecurringPattern | _Unset = UNSET
    recurring_end_date: datetime | None | _Unset = UNSET
    recurrence_interval: int | None | _Unset = UNSET
    position: int | _Unset = UNSET

    def __post_init__(self) -> None:
        if self.name is not UNSET:
            object.__setattr__(self, "name", _clean_name(self.name))
        if self.priority is not UNSET:
            object.__setattr__(self, "priority", Priority(self.priority))
        if self.status is not UNSET:
            object.__setattr__(self, "status", TaskStatus(self.status))
        if self.recurring_pattern is not UNSET:
            object.__setattr__(self, "recurring_pattern", RecurringPattern(self.recurring_pattern))
        for name in ("deadline", "reminder_time", "recurring_end_date"):
            value = getattr(self, name)
            if value is not UNSET:
                _clean_instant(name, value)
        for name in ("estimated_time", "actual_time"):
            value = getattr(self, name)
            if value is not UNSET:
                _clean_minutes(name, value)
        if self.recurrence_interval is not UNSET:
            _clean_interval(self.recurrence_interval)
        if self.position is not UNSET and (
            isinstance(self.position, bool) or not isinstance(self.position, int)
        ):
            raise ValueError("position must be an integer")

    def proposed(self) -> dict[str, Any]:
        """Present fields only, in declaration order."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not UNSET:
                out[f.name] = value
        return out

    def is_empty(self) -> bool:
        return not self.proposed()
