# src/daily_planner/tasks/recurrence.py

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta

from .task_models import RecurringPattern, Task, TaskCreate, TaskStatus
from .task_mutator import TaskMutator

logger = logging.getLogger(__name__)


def _month_max_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _add_months(dt: datetime, months: int) -> datetime:
    """Same day next month(s); days past the end of the target month clamp to its last day."""
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    return dt.replace(year=year, month=month, day=min(dt.day, _month_max_day(year, month)))


def _add_years(dt: datetime, years: int) -> datetime:
    """Same month/day; Feb 29 lands on Feb 28 in non-leap years."""
    year = dt.year + years
    return dt.replace(year=year, day=min(dt.day, _month_max_day(year, dt.month)))


def _settle(dt: datetime) -> datetime:
    """
    Resolve a computed wall-clock time to one that exists locally.

    A time inside a spring-forward gap moves forward by the gap (02:30 becomes
    03:30), which is what storing and reloading the instant yields anyway.
    """
    return datetime.fromtimestamp(dt.timestamp())


def next_occurrence(
    deadline: datetime | None,
    pattern: RecurringPattern | str,
    interval: int | None = None,
) -> datetime | None:
    """
    Next deadline of a recurring series, in local calendar arithmetic.

    Time of day is preserved unless it falls into a DST gap on the target
    day. `interval` is only read by the custom pattern, where it counts weeks
    (missing or 0 means 1).
    """
    if deadline is None:
        return None
    pattern = RecurringPattern.from_db(str(pattern))

    if pattern == RecurringPattern.DAILY:
        nxt = deadline + timedelta(days=1)
    elif pattern == RecurringPattern.WEEKLY:
        nxt = deadline + timedelta(days=7)
    elif pattern == RecurringPattern.WEEKDAYS:
        nxt = deadline + timedelta(days=1)
        while nxt.weekday() >= 5:  # Sat/Sun
            nxt += timedelta(days=1)
    elif pattern == RecurringPattern.MONTHLY:
        nxt = _add_months(deadline, 1)
    elif pattern == RecurringPattern.YEARLY:
        nxt = _add_years(deadline, 1)
    elif pattern == RecurringPattern.CUSTOM:
        weeks = interval if interval and interval > 0 else 1
        nxt = deadline + timedelta(weeks=weeks)
    else:
        return None
    return _settle(nxt)


def is_eligible(task: Task, *, now: datetime | None = None) -> bool:
    """
    Whether a completed recurring task may spawn its next occurrence.

    The end date is checked against `now` at call time, not against the
    completion instant.
    """
    if task.status != TaskStatus.DONE or task.recurring_pattern == RecurringPattern.NONE:
        return False
    if task.recurring_end_date is not None:
        now = now or datetime.now()
        if now > task.recurring_end_date:
            return False
    return True


class InstanceSpawner:
    """Materializes the next occurrence of a recurring task as a new row."""

    def __init__(self, mutator: TaskMutator) -> None:
        self._mutator = mutator

    def spawn_next(self, task: Task, *, now: datetime | None = None) -> Task | None:
        if not is_eligible(task, now=now):
            logger.debug("Task %s not eligible for a next occurrence", task.id)
            return None

        deadline = next_occurrence(task.deadline, task.recurring_pattern, task.recurrence_interval)
        if deadline is None:
            logger.debug("Task %s has no next occurrence (deadline=%s)", task.id, task.deadline)
            return None

        # Fresh task: no actual_time, labels or history carried over.
        spawned = self._mutator.create(
            TaskCreate(
                name=task.name,
                description=task.description,
                list_id=task.list_id,
                deadline=deadline,
                estimated_time=task.estimated_time,
                priority=task.priority,
                recurring_pattern=task.recurring_pattern,
                recurring_end_date=task.recurring_end_date,
                recurrence_interval=task.recurrence_interval,
            )
        )
        logger.info(
            "Spawned task %s from %s pattern=%s deadline=%s",
            spawned.id,
            task.id,
            task.recurring_pattern.value,
            deadline.isoformat(),
        )
        return spawned
