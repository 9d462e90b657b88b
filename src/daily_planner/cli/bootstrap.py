# src/daily_planner/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- opens the Database handle and wires stores, mutator, spawner and views into AppState,
- runs the optional startup retention purge of the change log.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..db import Database
from ..tasks.audit_store import AuditStore
from ..tasks.recurrence import InstanceSpawner
from ..tasks.task_mutator import TaskMutator
from ..tasks.task_store import TaskStore
from ..tasks.views import ViewFilter

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    db = Database(settings.db_path)
    task_store = TaskStore(db)
    audit_store = AuditStore(db)
    mutator = TaskMutator(db, task_store, audit_store)

    state = AppState(
        settings=settings,
        db=db,
        task_store=task_store,
        audit_store=audit_store,
        mutator=mutator,
        spawner=InstanceSpawner(mutator),
        views=ViewFilter(task_store),
        show_completed=bool(getattr(settings, "show_completed", False)),
    )

    if getattr(settings, "purge_on_start", False):
        deleted = audit_store.purge_older_than(int(settings.audit_retention_days))
        if deleted:
            logger.info("Startup purge removed %d change-log entries", deleted)

    return state
