# tests/test_task_store.py

from __future__ import annotations

from datetime import datetime

import pytest

from daily_planner.db import Database
from daily_planner.errors import NotFound, PersistenceFailure
from daily_planner.tasks.task_models import RecurringPattern, TaskStatus
from daily_planner.tasks.task_store import TaskStore


def test_inbox_is_created_once_and_protected(db: Database) -> None:
    store = TaskStore(db)
    TaskStore(db)  # second start: no duplicate inbox

    lists = store.list_lists()
    assert [lst.name for lst in lists] == ["Inbox"]
    with pytest.raises(ValueError):
        store.delete_list(lists[0].id)

    work = store.create_list("Work", "💼")
    assert [lst.name for lst in store.list_lists()] == ["Inbox", "Work"]
    store.delete_list(work.id)
    assert store.get_list(work.id) is None


def test_create_load_and_persist_round_trip(task_store: TaskStore) -> None:
    deadline = datetime(2024, 3, 1, 8, 15)
    task = task_store.create(
        {"name": "Dentist", "deadline": deadline, "recurring_pattern": RecurringPattern.YEARLY}
    )

    loaded = task_store.load(task.id)
    assert loaded.deadline == deadline
    assert loaded.status == TaskStatus.TODO
    assert loaded.recurring_pattern == RecurringPattern.YEARLY

    task_store.persist(task.id, {"status": TaskStatus.IN_PROGRESS, "position": 3})
    again = task_store.load(task.id)
    assert again.status == TaskStatus.IN_PROGRESS
    assert again.position == 3
    assert again.updated_at >= loaded.updated_at


def test_unknown_ids_and_fields(task_store: TaskStore) -> None:
    with pytest.raises(NotFound):
        task_store.load(42)
    with pytest.raises(NotFound):
        task_store.persist(42, {"name": "x"})
    task = task_store.create({"name": "x"})
    with pytest.raises(ValueError):
        task_store.persist(task.id, {"created_at": 0})


def test_missing_list_surfaces_as_persistence_failure(task_store: TaskStore) -> None:
    with pytest.raises(PersistenceFailure):
        task_store.create({"name": "orphan", "list_id": 9999})


def test_delete_cascades_to_subtasks_and_labels(task_store: TaskStore) -> None:
    parent = task_store.create({"name": "Trip"})
    child = task_store.create({"name": "Pack", "parent_task_id": parent.id})
    label = task_store.create_label("travel")
    task_store.add_labels(parent.id, [label.id, label.id])

    assert [t.id for t in task_store.find_subtasks(parent.id)] == [child.id]
    assert task_store.load(child.id).is_subtask
    assert [lb.name for lb in task_store.labels_for_task(parent.id)] == ["travel"]
    assert [t.id for t in task_store.find_by_list(parent.list_id)] == [parent.id]

    assert task_store.delete(parent.id)
    assert task_store.get(child.id) is None
    assert task_store.labels_for_task(parent.id) == []
    assert [lb.name for lb in task_store.list_labels()] == ["travel"]
    assert not task_store.delete(parent.id)


def test_labels_are_found_by_name_and_detached(task_store: TaskStore) -> None:
    task = task_store.create({"name": "Groceries"})
    errands = task_store.create_label("Errands")
    task_store.add_labels(task.id, [errands.id])

    assert task_store.find_label("  errands ") == errands
    assert task_store.find_label("chores") is None

    assert task_store.remove_label(task.id, errands.id)
    assert not task_store.remove_label(task.id, errands.id)
    assert task_store.labels_for_task(task.id) == []
    assert task_store.list_labels() == [errands]


def test_find_by_status(task_store: TaskStore) -> None:
    a = task_store.create({"name": "a"})
    task_store.create({"name": "b"})
    task_store.persist(a.id, {"status": TaskStatus.DONE})

    assert [t.name for t in task_store.find_by_status(TaskStatus.DONE)] == ["a"]
    assert [t.name for t in task_store.find_by_status(TaskStatus.TODO)] == ["b"]
