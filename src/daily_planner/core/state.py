# src/daily_planner/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..db import Database
from ..tasks.audit_store import AuditStore
from ..tasks.recurrence import InstanceSpawner
from ..tasks.task_mutator import TaskMutator
from ..tasks.task_store import TaskStore
from ..tasks.views import ViewFilter


@dataclass
class AppState:
    # Settings are kept on the state so command handlers can read them.
    settings: object

    db: Database
    task_store: TaskStore
    audit_store: AuditStore
    mutator: TaskMutator
    spawner: InstanceSpawner
    views: ViewFilter

    show_completed: bool = False
