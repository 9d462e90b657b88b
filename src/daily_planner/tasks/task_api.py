# src/daily_planner/tasks/task_api.py

from __future__ import annotations

import logging
from datetime import datetime

from ..core.state import AppState
from .task_models import ChangeLogEntry, Label, Task, TaskCreate, TaskStatus, TaskUpdate

logger = logging.getLogger(__name__)


def add_task(state: AppState, payload: TaskCreate) -> Task:
    return state.mutator.create(payload)


def edit_task(
    state: AppState,
    task_id: int,
    update: TaskUpdate,
    *,
    now: datetime | None = None,
) -> tuple[Task, Task | None]:
    """
    Apply an update and, when it moves a recurring task into done, spawn the
    next occurrence.

    Returns (updated task, spawned task or None). A repeated done -> done
    update spawns nothing.
    """
    result = state.mutator.apply(task_id, update, now=now)

    spawned: Task | None = None
    if result.became_done and result.task.is_recurring:
        spawned = state.spawner.spawn_next(result.task, now=now)
    return result.task, spawned


def set_status(
    state: AppState,
    task_id: int,
    status: TaskStatus | str,
    *,
    now: datetime | None = None,
) -> tuple[Task, Task | None]:
    return edit_task(state, task_id, TaskUpdate(status=TaskStatus(status)), now=now)


def delete_task(state: AppState, task_id: int) -> bool:
    return state.task_store.delete(task_id)


def resolve_labels(state: AppState, names: list[str]) -> list[Label]:
    """Labels by name, creating the ones that do not exist yet."""
    labels: list[Label] = []
    for name in names:
        label = state.task_store.find_label(name)
        if label is None:
            label = state.task_store.create_label(name)
            logger.info("Label created id=%s name=%r", label.id, label.name)
        labels.append(label)
    return labels


def label_task(state: AppState, task_id: int, names: list[str]) -> list[Label]:
    """Attach labels (created on demand) to an existing task; returns its labels."""
    state.task_store.load(task_id)
    labels = resolve_labels(state, names)
    state.task_store.add_labels(task_id, [lb.id for lb in labels])
    return state.task_store.labels_for_task(task_id)


def unlabel_task(state: AppState, task_id: int, name: str) -> bool:
    state.task_store.load(task_id)
    label = state.task_store.find_label(name)
    if label is None:
        return False
    return state.task_store.remove_label(task_id, label.id)


def task_history(state: AppState, task_id: int, page: int | None = None) -> list[ChangeLogEntry]:
    """Change log of an existing task, newest first (NotFound for unknown ids)."""
    state.task_store.load(task_id)
    limit = None if page is None else int(getattr(state.settings, "audit_page_size", 20))
    return state.audit_store.list_by_task(task_id, page=page, limit=limit)


def purge_audit(state: AppState, days: int | None = None) -> int:
    if days is None:
        days = int(getattr(state.settings, "audit_retention_days", 90))
    deleted = state.audit_store.purge_older_than(days)
    logger.info("Purged %d change-log entries older than %d days", deleted, days)
    return deleted
