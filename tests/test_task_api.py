# tests/test_task_api.py

from __future__ import annotations

from datetime import timedelta

import pytest

from daily_planner.errors import NotFound
from daily_planner.tasks.task_api import (
    add_task,
    delete_task,
    edit_task,
    purge_audit,
    set_status,
    task_history,
)
from daily_planner.tasks.task_models import TaskCreate, TaskStatus, TaskUpdate


def test_completing_recurring_task_spawns_next_once(state, now) -> None:
    task = add_task(state, TaskCreate(name="Standup", deadline=now, recurring_pattern="weekdays"))

    done, spawned = set_status(state, task.id, TaskStatus.DONE, now=now)

    assert done.status == TaskStatus.DONE
    assert spawned is not None
    assert spawned.deadline == now + timedelta(days=1)

    # done -> done is a no-op and must not create a duplicate occurrence.
    _, again = set_status(state, task.id, "done", now=now)
    assert again is None
    assert state.task_store.count_tasks() == 2


def test_end_date_in_the_past_blocks_spawning(state, now) -> None:
    task = add_task(
        state,
        TaskCreate(
            name="Old series",
            deadline=now - timedelta(days=30),
            recurring_pattern="daily",
            recurring_end_date=now - timedelta(days=1),
        ),
    )

    _, spawned = set_status(state, task.id, "done", now=now)

    assert spawned is None
    assert state.task_store.count_tasks() == 1


def test_edit_with_status_goes_through_the_same_path(state, now) -> None:
    task = add_task(state, TaskCreate(name="Rent", deadline=now, recurring_pattern="monthly"))

    updated, spawned = edit_task(state, task.id, TaskUpdate(status="done", actual_time=5), now=now)

    assert updated.actual_time == 5
    assert spawned is not None and spawned.actual_time is None


def test_history_uses_configured_page_size(state, now) -> None:
    task = add_task(state, TaskCreate(name="v0"))
    for i in range(1, 26):
        edit_task(state, task.id, TaskUpdate(name=f"v{i}"), now=now + timedelta(minutes=i))

    assert len(task_history(state, task.id)) == 25
    page0 = task_history(state, task.id, page=0)
    assert len(page0) == state.settings.audit_page_size
    assert page0[0].new_value == "v25"
    with pytest.raises(NotFound):
        task_history(state, 999)


def test_delete_and_purge(state) -> None:
    task = add_task(state, TaskCreate(name="Temp"))
    edit_task(state, task.id, TaskUpdate(name="Temp 2"))

    assert purge_audit(state) == 0
    assert delete_task(state, task.id)
    assert not delete_task(state, task.id)
