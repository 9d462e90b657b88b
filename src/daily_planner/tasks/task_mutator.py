# src/daily_planner/tasks/task_mutator.py

from __future__ import annotations

"""
Task mutation pipeline.

The mutator is the only writer of task fields after creation:
- loads the snapshot (NotFound if missing),
- diffs it against the proposal (change_detector),
- persists the proposal plus derived fields in one write,
- appends one audit record per diff.

The write and its audit records share one SQLite transaction, so a failed
write leaves no audit rows and a failed audit append rolls the write back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..core.ports import AuditRepo, TaskRepo
from ..db import Database
from .change_detector import FieldChange, detect_changes
from .task_models import Task, TaskCreate, TaskStatus, TaskUpdate

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class MutationResult:
    task: Task
    previous: Task
    changes: tuple[FieldChange, ...]

    @property
    def became_done(self) -> bool:
        return self.previous.status != TaskStatus.DONE and self.task.status == TaskStatus.DONE


def derive_completed_at(
    snapshot: Task,
    proposed: dict[str, Any],
    now: datetime,
) -> dict[str, Any]:
    """
    Derived fields for a proposal, computed separately from the field copy.

    completed_at is stamped when status is set to done and the task was not
    already done with a stamp. It is never cleared here when status moves
    away from done.
    """
    if proposed.get("status") != TaskStatus.DONE:
        return {}
    if snapshot.status == TaskStatus.DONE and snapshot.completed_at is not None:
        return {}
    return {"completed_at": now}


class TaskMutator:
    def __init__(self, db: Database, task_store: TaskRepo, audit_store: AuditRepo) -> None:
        self._db = db
        self._tasks = task_store
        self._audit = audit_store

    def create(self, payload: TaskCreate) -> Task:
        """Create path: status starts as todo; no audit history is written."""
        fields: dict[str, Any] = {
            "name": payload.name,
            "list_id": payload.list_id,
            "description": payload.description,
            "deadline": payload.deadline,
            "reminder_time": payload.reminder_time,
            "estimated_time": payload.estimated_time,
            "actual_time": payload.actual_time,
            "priority": payload.priority,
            "status": TaskStatus.TODO,
            "recurring_pattern": payload.recurring_pattern,
            "recurring_end_date": payload.recurring_end_date,
            "recurrence_interval": payload.recurrence_interval,
            "parent_task_id": payload.parent_task_id,
            "position": payload.position,
        }
        with self._db.transaction() as conn:
            task = self._tasks.create(fields, conn=conn)
            if payload.labels:
                self._tasks.add_labels(task.id, payload.labels, conn=conn)

        logger.info("Task %s created name=%r pattern=%s", task.id, task.name, task.recurring_pattern.value)
        return task

    def apply(self, task_id: int, update: TaskUpdate, *, now: datetime | None = None) -> MutationResult:
        now = now or datetime.now()

        with self._db.transaction() as conn:
            snapshot = self._tasks.load(task_id, conn=conn)
            changes = detect_changes(snapshot, update)

            fields = update.proposed()
            if not fields:
                return MutationResult(task=snapshot, previous=snapshot, changes=())

            fields.update(derive_completed_at(snapshot, fields, now))
            self._tasks.persist(task_id, fields, conn=conn)

            for change in changes:
                self._audit.append(
                    task_id,
                    change.field_name,
                    change.old_value,
                    change.new_value,
                    changed_at=now,
                    conn=conn,
                )

            task = self._tasks.load(task_id, conn=conn)

        logger.info(
            "Task %s updated fields=%s audited=%d",
            task_id,
            ",".join(fields),
            len(changes),
        )
        return MutationResult(task=task, previous=snapshot, changes=tuple(changes))

    def update(self, task_id: int, update: TaskUpdate, *, now: datetime | None = None) -> Task:
        """Apply a sparse update and return the reloaded snapshot."""
        return self.apply(task_id, update, now=now).task
