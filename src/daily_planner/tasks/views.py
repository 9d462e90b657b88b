# src/daily_planner/tasks/views.py

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from enum import StrEnum

from ..core.ports import TaskRepo
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


class ViewName(StrEnum):
    TODAY = "today"
    NEXT_7_DAYS = "next_7_days"
    UPCOMING = "upcoming"
    ALL = "all"
    OVERDUE = "overdue"


def start_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.min)


def end_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.max)


def _visible(tasks: list[Task], show_completed: bool) -> list[Task]:
    if show_completed:
        return tasks
    return [t for t in tasks if t.status != TaskStatus.DONE]


class ViewFilter:
    """
    Read-only "today / next 7 days / upcoming / all / overdue" views.

    show_completed applies to every view except overdue, which never
    contains done tasks.
    """

    def __init__(self, task_store: TaskRepo) -> None:
        self._tasks = task_store

    def today(self, show_completed: bool = False, *, now: datetime | None = None) -> list[Task]:
        now = now or datetime.now()
        tasks = self._tasks.find_by_deadline_range(start_of_day(now), end_of_day(now))
        return _visible(tasks, show_completed)

    def next_7_days(self, show_completed: bool = False, *, now: datetime | None = None) -> list[Task]:
        now = now or datetime.now()
        start = start_of_day(now)
        end = end_of_day(start + timedelta(days=7))
        return _visible(self._tasks.find_by_deadline_range(start, end), show_completed)

    def upcoming(self, show_completed: bool = False, *, now: datetime | None = None) -> list[Task]:
        start = start_of_day(now or datetime.now())
        tasks = [t for t in self._tasks.find_all() if t.deadline is not None and t.deadline >= start]
        return _visible(tasks, show_completed)

    def all(self, show_completed: bool = False, *, now: datetime | None = None) -> list[Task]:
        return _visible(self._tasks.find_all(), show_completed)

    def overdue(self, show_completed: bool = False, *, now: datetime | None = None) -> list[Task]:
        # show_completed has no effect: overdue tasks are never done.
        return self._tasks.find_overdue(now or datetime.now())

    def by_view(
        self,
        view: ViewName | str,
        show_completed: bool = False,
        *,
        now: datetime | None = None,
    ) -> list[Task]:
        handlers = {
            ViewName.TODAY: self.today,
            ViewName.NEXT_7_DAYS: self.next_7_days,
            ViewName.UPCOMING: self.upcoming,
            ViewName.ALL: self.all,
            ViewName.OVERDUE: self.overdue,
        }
        try:
            name = ViewName(view)
        except ValueError:
            logger.debug("Unknown view %r", view)
            return []
        return handlers[name](show_completed, now=now)
