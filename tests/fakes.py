# tests/fakes.py

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any

from daily_planner.errors import PersistenceFailure
from daily_planner.tasks.audit_store import AuditStore
from daily_planner.tasks.task_models import Priority, RecurringPattern, Task, TaskStatus
from daily_planner.tasks.task_store import TaskStore


class FailingPersistTaskStore(TaskStore):
    """TaskStore whose field writes always fail (reads and creates still work)."""

    def persist(
        self,
        task_id: int,
        fields: dict[str, Any],
        *,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        raise PersistenceFailure("disk I/O error")


class FailingAuditStore(AuditStore):
    """
    AuditStore that accepts `fail_after` appends, then fails.

    Used to check that a failed audit append rolls back the task write.
    """

    def __init__(self, *args: Any, fail_after: int = 0, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fail_after = fail_after
        self.calls = 0

    def append(
        self,
        task_id: int,
        field_name: str,
        old_value: str | None,
        new_value: str | None,
        *,
        changed_at: datetime | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> int:
        self.calls += 1
        if self.calls > self.fail_after:
            raise PersistenceFailure("audit table is read-only")
        return super().append(
            task_id, field_name, old_value, new_value, changed_at=changed_at, conn=conn
        )


def make_task(**overrides: Any) -> Task:
    """Detached Task snapshot for pure-function tests."""
    base = datetime(2024, 1, 15, 10, 0)
    values: dict[str, Any] = dict(
        id=1,
        name="Water plants",
        description=None,
        list_id=1,
        deadline=base,
        reminder_time=None,
        estimated_time=None,
        actual_time=None,
        priority=Priority.NONE,
        status=TaskStatus.TODO,
        completed_at=None,
        recurring_pattern=RecurringPattern.NONE,
        recurring_end_date=None,
        recurrence_interval=None,
        parent_task_id=None,
        position=0,
        created_at=base,
        updated_at=base,
    )
    values.update(overrides)
    return Task(**values)
