# src/daily_planner/db.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class Database:
    """
    Storage handle owned by the composition root.

    Stores receive this object in their constructor instead of reaching for a
    module-level connection. Connections are short-lived; a transaction() can
    be shared by several store calls so that their writes commit together.
    """

    def __init__(self, db_path: str | Path = "planner.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        One connection for a unit of work.

        Commits when the block exits normally; rolls back on any exception
        (including non-storage errors raised by the caller inside the block).
        """
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.debug("transaction rolled back db=%s", self._db_path, exc_info=True)
            raise PersistenceFailure(str(exc)) from exc
        except BaseException:
            conn.rollback()
            logger.debug("transaction rolled back db=%s", self._db_path)
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def session(self, conn: sqlite3.Connection | None = None) -> Iterator[sqlite3.Connection]:
        """
        Join the caller's connection if one is given, otherwise run in a
        transaction of our own.
        """
        if conn is None:
            with self.transaction() as own:
                yield own
            return

        try:
            yield conn
        except sqlite3.Error as exc:
            raise PersistenceFailure(str(exc)) from exc
