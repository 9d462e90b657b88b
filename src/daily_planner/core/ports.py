# src/daily_planner/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The mutation pipeline and the views depend on Protocols instead of the
SQLite stores, so tests can substitute in-memory or failing fakes.
"""

import sqlite3
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from ..tasks.task_models import ChangeLogEntry, Task


class TaskRepo(Protocol):
    # Mutation pipeline
    def load(self, task_id: int, *, conn: sqlite3.Connection | None = None) -> Task: ...
    def persist(
            self,
            task_id: int,
            fields: dict[str, Any],
            *,
            conn: sqlite3.Connection | None = None,
    ) -> None: ...
    def create(self, fields: dict[str, Any], *, conn: sqlite3.Connection | None = None) -> Task: ...
    def add_labels(
            self,
            task_id: int,
            label_ids: Iterable[int],
            *,
            conn: sqlite3.Connection | None = None,
    ) -> None: ...

    # View queries
    def find_all(self) -> list[Task]: ...
    def find_by_deadline_range(self, start: datetime, end: datetime) -> list[Task]: ...
    def find_overdue(self, now: datetime) -> list[Task]: ...


class AuditRepo(Protocol):
    def append(
            self,
            task_id: int,
            field_name: str,
            old_value: str | None,
            new_value: str | None,
            *,
            changed_at: datetime | None = None,
            conn: sqlite3.Connection | None = None,
    ) -> int: ...
    def list_by_task(
            self,
            task_id: int,
            page: int | None = None,
            limit: int | None = None,
    ) -> list[ChangeLogEntry]: ...
    def count_by_task(self, task_id: int) -> int: ...
    def purge_older_than(self, days: int = 90, *, now: datetime | None = None) -> int: ...
