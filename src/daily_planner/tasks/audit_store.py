# src/daily_planner/tasks/audit_store.py

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import datetime

from ..db import Database
from .task_models import ChangeLogEntry, from_ts, to_ts

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
UNPAGINATED_CAP = 100
DEFAULT_RETENTION_DAYS = 90


class AuditStore:
    """
    Append-only change log (one row per changed field).

    There is no update or single-row delete API. Rows disappear only through
    purge_older_than() or when their task is deleted (ON DELETE CASCADE).
    Reads are always most-recent-first.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS change_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id INTEGER NOT NULL,
                    field_name TEXT NOT NULL,
                    old_value TEXT,
                    new_value TEXT,
                    changed_at REAL NOT NULL,
                    FOREIGN KEY (task_id) REFERENCES tasks(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_change_logs_task_id ON change_logs(task_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_change_logs_changed_at ON change_logs(changed_at)")

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ChangeLogEntry:
        return ChangeLogEntry(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            field_name=str(row["field_name"]),
            old_value=row["old_value"],
            new_value=row["new_value"],
            changed_at=from_ts(row["changed_at"]) or datetime.fromtimestamp(0),
        )

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
        """
        Record one field change. Storage errors propagate as PersistenceFailure;
        nothing is swallowed here.
        """
        ts = to_ts(changed_at) if changed_at is not None else time.time()
        with self._db.session(conn) as c:
            cur = c.execute(
                """
                INSERT INTO change_logs(task_id, field_name, old_value, new_value, changed_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (int(task_id), field_name, old_value, new_value, ts),
            )
            rowid = cur.lastrowid
        if rowid is None:
            raise RuntimeError("SQLite did not return lastrowid for change_logs insert")
        logger.debug("Audit task_id=%s field=%s %r -> %r", task_id, field_name, old_value, new_value)
        return int(rowid)

    def list_by_task(
        self,
        task_id: int,
        page: int | None = None,
        limit: int | None = None,
    ) -> list[ChangeLogEntry]:
        """
        Entries for one task, newest first.

        - page is None: the newest UNPAGINATED_CAP entries (limit may lower the cap)
        - page given:   `limit` entries (DEFAULT_PAGE_SIZE) starting at page * limit
        """
        if page is None:
            size = UNPAGINATED_CAP if limit is None else max(0, min(int(limit), UNPAGINATED_CAP))
            offset = 0
        else:
            size = DEFAULT_PAGE_SIZE if limit is None else max(0, int(limit))
            offset = max(0, int(page)) * size

        with self._db.session() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM change_logs
                WHERE task_id = ?
                ORDER BY changed_at DESC, id DESC
                    LIMIT ? OFFSET ?
                """,
                (int(task_id), size, offset),
            ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def count_by_task(self, task_id: int) -> int:
        with self._db.session() as conn:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM change_logs WHERE task_id = ?", (int(task_id),)
            ).fetchone()
        return int(n)

    def purge_older_than(self, days: int = DEFAULT_RETENTION_DAYS, *, now: datetime | None = None) -> int:
        """Bulk retention purge; returns the number of deleted entries."""
        now_ts = to_ts(now) if now is not None else time.time()
        cutoff = now_ts - max(0, int(days)) * 86400
        with self._db.session() as conn:
            cur = conn.execute("DELETE FROM change_logs WHERE changed_at < ?", (cutoff,))
            deleted = int(cur.rowcount)
        logger.info("Audit purge days=%s deleted=%s", days, deleted)
        return deleted
