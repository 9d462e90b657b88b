# tests/test_task_mutator.py

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from daily_planner.errors import NotFound, PersistenceFailure
from daily_planner.tasks.task_models import Priority, TaskCreate, TaskStatus, TaskUpdate
from daily_planner.tasks.task_mutator import TaskMutator

from .fakes import FailingAuditStore, FailingPersistTaskStore


def test_create_defaults_to_todo_in_inbox_without_history(state) -> None:
    task = state.mutator.create(TaskCreate(name="  Buy milk  ", labels=()))

    assert task.name == "Buy milk"
    assert task.status == TaskStatus.TODO
    assert task.completed_at is None
    inbox = state.task_store.list_lists()[0]
    assert inbox.is_inbox and task.list_id == inbox.id
    assert state.audit_store.count_by_task(task.id) == 0


def test_update_writes_one_audit_record_per_diff(state, now) -> None:
    task = state.mutator.create(TaskCreate(name="Report", priority=Priority.LOW))

    updated = state.mutator.update(
        task.id,
        TaskUpdate(name="Quarterly report", priority=Priority.HIGH, description=None),
        now=now,
    )

    assert updated.name == "Quarterly report"
    assert updated.priority == Priority.HIGH
    entries = state.audit_store.list_by_task(task.id)
    assert len(entries) == 2
    got = {(e.field_name, e.old_value, e.new_value) for e in entries}
    assert got == {("name", "Report", "Quarterly report"), ("priority", "low", "high")}
    assert all(e.changed_at == now for e in entries)


def test_no_op_update_writes_no_audit(state) -> None:
    task = state.mutator.create(TaskCreate(name="Report"))

    state.mutator.update(task.id, TaskUpdate(name="Report"))
    state.mutator.update(task.id, TaskUpdate())

    assert state.audit_store.count_by_task(task.id) == 0


def test_moving_deadline_across_repeated_dst_hour_is_audited(state, new_york_tz) -> None:
    first = datetime(2024, 11, 3, 1, 30, fold=0)
    second = datetime(2024, 11, 3, 1, 30, fold=1)
    task = state.mutator.create(TaskCreate(name="Night shift", deadline=first))

    updated = state.mutator.update(task.id, TaskUpdate(deadline=second))

    assert updated.deadline.timestamp() - first.timestamp() == 3600
    entries = state.audit_store.list_by_task(task.id)
    assert [(e.field_name, e.old_value, e.new_value) for e in entries] == [
        ("deadline", "2024-11-03T05:30:00.000000+00:00", "2024-11-03T06:30:00.000000+00:00")
    ]


def test_done_sets_completed_at_and_audits_status_only(state, now) -> None:
    task = state.mutator.create(TaskCreate(name="Report"))

    done = state.mutator.update(task.id, TaskUpdate(status=TaskStatus.DONE), now=now)

    assert done.status == TaskStatus.DONE
    assert done.completed_at == now
    fields = [e.field_name for e in state.audit_store.list_by_task(task.id)]
    assert fields == ["status"]


def test_other_fields_never_touch_completed_at(state, now) -> None:
    task = state.mutator.create(TaskCreate(name="Report"))
    state.mutator.update(task.id, TaskUpdate(status="in_progress"), now=now)
    renamed = state.mutator.update(task.id, TaskUpdate(name="Report v2"), now=now)
    assert renamed.completed_at is None

    done = state.mutator.update(task.id, TaskUpdate(status="done"), now=now)
    later = now + timedelta(hours=2)
    again = state.mutator.update(task.id, TaskUpdate(actual_time=45), now=later)
    assert again.completed_at == done.completed_at == now


def test_completed_at_is_kept_when_reopened(state, now) -> None:
    task = state.mutator.create(TaskCreate(name="Report"))
    state.mutator.update(task.id, TaskUpdate(status="done"), now=now)

    reopened = state.mutator.update(task.id, TaskUpdate(status="todo"), now=now + timedelta(days=1))

    assert reopened.status == TaskStatus.TODO
    assert reopened.completed_at == now


def test_update_missing_task_raises_not_found(state) -> None:
    with pytest.raises(NotFound) as exc:
        state.mutator.update(999, TaskUpdate(name="x"))
    assert exc.value.task_id == 999


def test_failed_write_leaves_no_audit_records(state) -> None:
    task = state.mutator.create(TaskCreate(name="Report"))
    mutator = TaskMutator(state.db, FailingPersistTaskStore(state.db), state.audit_store)

    with pytest.raises(PersistenceFailure):
        mutator.update(task.id, TaskUpdate(name="Renamed", status="done"))

    assert state.audit_store.count_by_task(task.id) == 0
    assert state.task_store.load(task.id).name == "Report"


def test_failed_audit_append_rolls_back_write(state) -> None:
    task = state.mutator.create(TaskCreate(name="Report"))
    audit = FailingAuditStore(state.db, fail_after=1)
    mutator = TaskMutator(state.db, state.task_store, audit)

    with pytest.raises(PersistenceFailure):
        mutator.update(task.id, TaskUpdate(name="Renamed", priority="high"))

    assert audit.calls == 2
    reloaded = state.task_store.load(task.id)
    assert reloaded.name == "Report"
    assert reloaded.priority == Priority.NONE
    assert state.audit_store.count_by_task(task.id) == 0


def test_invalid_payloads_are_rejected_before_the_mutator() -> None:
    with pytest.raises(ValueError):
        TaskCreate(name="   ")
    with pytest.raises(ValueError):
        TaskCreate(name="x" * 201)
    with pytest.raises(ValueError):
        TaskUpdate(status="archived")
    with pytest.raises(ValueError):
        TaskUpdate(estimated_time=-5)
    with pytest.raises(ValueError):
        TaskUpdate(deadline="2024-01-01")
    assert TaskUpdate(deadline=datetime(2024, 1, 1)).proposed() == {"deadline": datetime(2024, 1, 1)}
