# tests/conftest.py

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from daily_planner.cli.bootstrap import create_initial_state
from daily_planner.core.state import AppState
from daily_planner.db import Database
from daily_planner.tasks.audit_store import AuditStore
from daily_planner.tasks.task_store import TaskStore

# Monday, 2024-01-15 10:00 local time.
NOW = datetime(2024, 1, 15, 10, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="planner-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "planner.sqlite3",
        audit_retention_days=90,
        audit_page_size=20,
        purge_on_start=False,
        show_completed=False,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired by the real composition root.

    NOTE: We keep real SQLite stores here because their transactional
    behavior is part of what we want to test.
    """
    return create_initial_state(settings=settings)


@pytest.fixture()
def db(tmp_path: Path) -> Database:
    return Database(tmp_path / "stores.sqlite3")


@pytest.fixture()
def task_store(db: Database) -> TaskStore:
    return TaskStore(db)


@pytest.fixture()
def audit_store(db: Database, task_store: TaskStore) -> AuditStore:
    return AuditStore(db)


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def new_york_tz(monkeypatch: pytest.MonkeyPatch):
    """
    Switch the process-local timezone to America/New_York (has DST).

    Naive datetimes are local time everywhere in the app, so DST behavior
    can only be exercised by changing TZ for the duration of a test.
    """
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")

    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    if time.tzname[0] != "EST":
        monkeypatch.undo()
        time.tzset()
        pytest.skip("America/New_York tz data is not installed")
    try:
        yield
    finally:
        monkeypatch.undo()
        time.tzset()
