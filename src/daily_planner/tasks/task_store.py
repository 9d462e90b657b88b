# src/daily_planner/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ..db import Database
from ..errors import NotFound
from .task_models import (
    Label,
    Priority,
    RecurringPattern,
    Task,
    TaskList,
    TaskStatus,
    from_ts,
    to_ts,
)

logger = logging.getLogger(__name__)

TASK_COLUMNS = (
    "id",
    "name",
    "description",
    "list_id",
    "deadline",
    "reminder_time",
    "estimated_time",
    "actual_time",
    "priority",
    "status",
    "completed_at",
    "recurring_pattern",
    "recurring_end_date",
    "recurrence_interval",
    "parent_task_id",
    "position",
    "created_at",
    "updated_at",
)

# Columns holding instants (REAL epoch seconds in SQLite, datetime in Task).
INSTANT_COLUMNS = frozenset(
    {"deadline", "reminder_time", "completed_at", "recurring_end_date", "created_at", "updated_at"}
)

# Columns a caller may write through persist(); id/created_at are owned by the store.
WRITABLE_COLUMNS = frozenset(TASK_COLUMNS) - {"id", "created_at", "updated_at"}

_SELECT_TASK = f"SELECT {', '.join(TASK_COLUMNS)} FROM tasks"


def _instant(raw: float | None) -> datetime:
    return datetime.fromtimestamp(float(raw or 0.0))


def _encode(column: str, value: Any) -> Any:
    if value is None:
        return None
    if column in INSTANT_COLUMNS:
        return to_ts(value) if isinstance(value, datetime) else float(value)
    if isinstance(value, (Priority, TaskStatus, RecurringPattern)):
        return value.value
    return value


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Every public method takes an optional `conn` so that it can join a
    transaction opened by the caller (see Database.transaction()).
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._ensure_schema()
        self.ensure_inbox()
        logger.info("TaskStore ready db=%s total=%s", db.path, self.count_tasks())

    # ---- schema ----

    def _ensure_schema(self) -> None:
        with self._db.transaction() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS lists (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    emoji TEXT NOT NULL DEFAULT '📋',
                    color TEXT NOT NULL DEFAULT '#3b82f6',
                    is_inbox INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    list_id INTEGER NOT NULL,
                    deadline REAL,
                    reminder_time REAL,
                    estimated_time INTEGER,
                    actual_time INTEGER,
                    priority TEXT NOT NULL DEFAULT 'none',
                    status TEXT NOT NULL DEFAULT 'todo',
                    completed_at REAL,
                    recurring_pattern TEXT NOT NULL DEFAULT 'none',
                    recurring_end_date REAL,
                    recurrence_interval INTEGER,
                    parent_task_id INTEGER,
                    position INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    FOREIGN KEY (list_id) REFERENCES lists(id) ON DELETE CASCADE,
                    FOREIGN KEY (parent_task_id) REFERENCES tasks(id) ON DELETE CASCADE
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("reminder_time", "REAL")
            add_col("completed_at", "REAL")
            add_col("recurring_pattern", "TEXT NOT NULL DEFAULT 'none'")
            add_col("recurring_end_date", "REAL")
            add_col("recurrence_interval", "INTEGER")
            add_col("parent_task_id", "INTEGER")
            add_col("position", "INTEGER NOT NULL DEFAULT 0")

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS labels (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    emoji TEXT NOT NULL DEFAULT '🏷️',
                    color TEXT NOT NULL DEFAULT '#8b5cf6',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_labels (
                    task_id INTEGER NOT NULL,
                    label_id INTEGER NOT NULL,
                    PRIMARY KEY (task_id, label_id),
                    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE,
                    FOREIGN KEY (label_id) REFERENCES labels(id) ON DELETE CASCADE
                )
                """
            )

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_list_id ON tasks(list_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_deadline ON tasks(deadline)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks(parent_task_id)")

    def ensure_inbox(self, *, conn: sqlite3.Connection | None = None) -> int:
        """Create the Inbox list on first start; return its id."""
        with self._db.session(conn) as c:
            row = c.execute("SELECT id FROM lists WHERE is_inbox = 1 ORDER BY id LIMIT 1").fetchone()
            if row is not None:
                return int(row["id"])
            now = time.time()
            cur = c.execute(
                "INSERT INTO lists(name, emoji, color, is_inbox, created_at, updated_at) "
                "VALUES ('Inbox', '📥', '#3b82f6', 1, ?, ?)",
                (now, now),
            )
            logger.info("Inbox list created id=%s", cur.lastrowid)
            return int(cur.lastrowid or 0)

    # ---- row mapping ----

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            name=str(row["name"] or ""),
            description=row["description"],
            list_id=int(row["list_id"]),
            deadline=from_ts(row["deadline"]),
            reminder_time=from_ts(row["reminder_time"]),
            estimated_time=row["estimated_time"],
            actual_time=row["actual_time"],
            priority=Priority.from_db(row["priority"]),
            status=TaskStatus.from_db(row["status"]),
            completed_at=from_ts(row["completed_at"]),
            recurring_pattern=RecurringPattern.from_db(row["recurring_pattern"]),
            recurring_end_date=from_ts(row["recurring_end_date"]),
            recurrence_interval=row["recurrence_interval"],
            parent_task_id=row["parent_task_id"],
            position=int(row["position"] or 0),
            created_at=_instant(row["created_at"]),
            updated_at=_instant(row["updated_at"]),
        )

    @staticmethod
    def _row_to_list(row: sqlite3.Row) -> TaskList:
        return TaskList(
            id=int(row["id"]),
            name=str(row["name"]),
            emoji=str(row["emoji"]),
            color=str(row["color"]),
            is_inbox=bool(row["is_inbox"]),
            created_at=_instant(row["created_at"]),
            updated_at=_instant(row["updated_at"]),
        )

    @staticmethod
    def _row_to_label(row: sqlite3.Row) -> Label:
        return Label(
            id=int(row["id"]),
            name=str(row["name"]),
            emoji=str(row["emoji"]),
            color=str(row["color"]),
            created_at=_instant(row["created_at"]),
            updated_at=_instant(row["updated_at"]),
        )

    def _query_tasks(self, sql: str, params: Iterable[Any] = ()) -> list[Task]:
        with self._db.session() as conn:
            rows = conn.execute(sql, tuple(params)).fetchall()
        return [self._row_to_task(r) for r in rows]

    # ---- tasks: reads ----

    def count_tasks(self) -> int:
        with self._db.session() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
        return int(n)

    def get(self, task_id: int, *, conn: sqlite3.Connection | None = None) -> Task | None:
        with self._db.session(conn) as c:
            row = c.execute(f"{_SELECT_TASK} WHERE id = ?", (int(task_id),)).fetchone()
        return self._row_to_task(row) if row else None

    def load(self, task_id: int, *, conn: sqlite3.Connection | None = None) -> Task:
        task = self.get(task_id, conn=conn)
        if task is None:
            raise NotFound(task_id)
        return task

    def find_all(self) -> list[Task]:
        return self._query_tasks(f"{_SELECT_TASK} ORDER BY position, created_at")

    def find_by_list(self, list_id: int) -> list[Task]:
        """Top-level tasks of one list (subtasks are reached via find_subtasks)."""
        return self._query_tasks(
            f"{_SELECT_TASK} WHERE list_id = ? AND parent_task_id IS NULL ORDER BY position, created_at",
            (int(list_id),),
        )

    def find_by_status(self, status: TaskStatus) -> list[Task]:
        return self._query_tasks(
            f"{_SELECT_TASK} WHERE status = ? ORDER BY position, created_at",
            (TaskStatus(status).value,),
        )

    def find_subtasks(self, parent_id: int) -> list[Task]:
        return self._query_tasks(
            f"{_SELECT_TASK} WHERE parent_task_id = ? ORDER BY position",
            (int(parent_id),),
        )

    def find_by_deadline_range(self, start: datetime, end: datetime) -> list[Task]:
        """Tasks with start <= deadline <= end (inclusive on both ends)."""
        return self._query_tasks(
            f"{_SELECT_TASK} WHERE deadline >= ? AND deadline <= ? ORDER BY deadline",
            (to_ts(start), to_ts(end)),
        )

    def find_overdue(self, now: datetime) -> list[Task]:
        return self._query_tasks(
            f"{_SELECT_TASK} WHERE deadline < ? AND status != 'done' ORDER BY deadline",
            (to_ts(now),),
        )

    # ---- tasks: writes ----

    def create(self, fields: dict[str, Any], *, conn: sqlite3.Connection | None = None) -> Task:
        """
        Insert a task row. Unknown keys are rejected; list_id defaults to the Inbox.
        """
        unknown = set(fields) - WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"unknown task fields: {sorted(unknown)}")
        if not str(fields.get("name") or "").strip():
            raise ValueError("name is required")

        values = dict(fields)
        if values.get("list_id") is None:
            values["list_id"] = self.ensure_inbox(conn=conn)
        values.setdefault("priority", Priority.NONE)
        values.setdefault("status", TaskStatus.TODO)
        values.setdefault("recurring_pattern", RecurringPattern.NONE)
        values.setdefault("position", 0)

        now = time.time()
        values["created_at"] = now
        values["updated_at"] = now

        cols = list(values)
        placeholders = ", ".join("?" for _ in cols)
        params = [_encode(c, values[c]) for c in cols]

        with self._db.session(conn) as c:
            cur = c.execute(
                f"INSERT INTO tasks({', '.join(cols)}) VALUES ({placeholders})",
                params,
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task = self.load(int(rowid), conn=c)

        logger.debug(
            "Task created id=%s list_id=%s pattern=%s deadline=%s",
            task.id,
            task.list_id,
            task.recurring_pattern.value,
            task.deadline,
        )
        return task

    def persist(
        self,
        task_id: int,
        fields: dict[str, Any],
        *,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        """Write the given columns in one UPDATE; updated_at is always bumped."""
        unknown = set(fields) - WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"unknown task fields: {sorted(unknown)}")

        sets = [f"{name} = ?" for name in fields]
        params: list[Any] = [_encode(name, value) for name, value in fields.items()]
        sets.append("updated_at = ?")
        params.append(time.time())
        params.append(int(task_id))

        with self._db.session(conn) as c:
            cur = c.execute(f"UPDATE tasks SET {', '.join(sets)} WHERE id = ?", params)
            if cur.rowcount == 0:
                raise NotFound(task_id)

    def delete(self, task_id: int) -> bool:
        """
        Delete a task. Label links, subtasks and change-log entries go with it
        through ON DELETE CASCADE.
        """
        with self._db.session() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            deleted = cur.rowcount == 1
        if deleted:
            logger.info("Task deleted id=%s", task_id)
        return deleted

    # ---- lists ----

    def create_list(self, name: str, emoji: str = "📋", color: str = "#3b82f6") -> TaskList:
        if not name or not name.strip():
            raise ValueError("list name is required")
        now = time.time()
        with self._db.session() as conn:
            cur = conn.execute(
                "INSERT INTO lists(name, emoji, color, is_inbox, created_at, updated_at) "
                "VALUES (?, ?, ?, 0, ?, ?)",
                (name.strip(), emoji, color, now, now),
            )
            row = conn.execute("SELECT * FROM lists WHERE id = ?", (cur.lastrowid,)).fetchone()
        return self._row_to_list(row)

    def get_list(self, list_id: int) -> TaskList | None:
        with self._db.session() as conn:
            row = conn.execute("SELECT * FROM lists WHERE id = ?", (int(list_id),)).fetchone()
        return self._row_to_list(row) if row else None

    def list_lists(self) -> list[TaskList]:
        with self._db.session() as conn:
            rows = conn.execute("SELECT * FROM lists ORDER BY is_inbox DESC, created_at").fetchall()
        return [self._row_to_list(r) for r in rows]

    def delete_list(self, list_id: int) -> None:
        lst = self.get_list(list_id)
        if lst is not None and lst.is_inbox:
            raise ValueError("Cannot delete Inbox list")
        with self._db.session() as conn:
            conn.execute("DELETE FROM lists WHERE id = ?", (int(list_id),))

    # ---- labels ----

    def create_label(self, name: str, emoji: str = "🏷️", color: str = "#8b5cf6") -> Label:
        if not name or not name.strip():
            raise ValueError("label name is required")
        now = time.time()
        with self._db.session() as conn:
            cur = conn.execute(
                "INSERT INTO labels(name, emoji, color, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (name.strip(), emoji, color, now, now),
            )
            row = conn.execute("SELECT * FROM labels WHERE id = ?", (cur.lastrowid,)).fetchone()
        return self._row_to_label(row)

    def find_label(self, name: str) -> Label | None:
        """Label by name, case-insensitive."""
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT * FROM labels WHERE lower(name) = lower(?) ORDER BY id LIMIT 1",
                (name.strip(),),
            ).fetchone()
        return self._row_to_label(row) if row else None

    def list_labels(self) -> list[Label]:
        with self._db.session() as conn:
            rows = conn.execute("SELECT * FROM labels ORDER BY created_at, id").fetchall()
        return [self._row_to_label(r) for r in rows]

    def add_labels(
        self,
        task_id: int,
        label_ids: Iterable[int],
        *,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        with self._db.session(conn) as c:
            for label_id in label_ids:
                c.execute(
                    "INSERT OR IGNORE INTO task_labels(task_id, label_id) VALUES (?, ?)",
                    (int(task_id), int(label_id)),
                )

    def remove_label(self, task_id: int, label_id: int) -> bool:
        with self._db.session() as conn:
            cur = conn.execute(
                "DELETE FROM task_labels WHERE task_id = ? AND label_id = ?",
                (int(task_id), int(label_id)),
            )
            return cur.rowcount == 1

    def labels_for_task(self, task_id: int) -> list[Label]:
        with self._db.session() as conn:
            rows = conn.execute(
                """
                SELECT l.*
                FROM labels l
                JOIN task_labels tl ON l.id = tl.label_id
                WHERE tl.task_id = ?
                ORDER BY l.created_at, l.id
                """,
                (int(task_id),),
            ).fetchall()
        return [self._row_to_label(r) for r in rows]
