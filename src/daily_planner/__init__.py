"""Personal task/list planner: recurring tasks, views and per-task change history."""

__version__ = "0.1.0"
