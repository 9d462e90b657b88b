# src/daily_planner/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any, cast

from ..core.state import AppState
from ..errors import NotFound, PersistenceFailure
from ..tasks.task_api import (
    add_task,
    delete_task,
    edit_task,
    label_task,
    purge_audit,
    resolve_labels,
    set_status,
    task_history,
    unlabel_task,
)
from ..tasks.task_models import Label, Task, TaskCreate, TaskStatus, TaskUpdate
from ..tasks.views import ViewName

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        NotFound and PersistenceFailure are reported with different messages so
        "nothing to update" is distinguishable from "could not save".
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except NotFound as e:
            return f"Task {e.task_id} not found."
        except PersistenceFailure as e:
            logger.warning("Command /%s failed to save: %s", name, e)
            return f"Could not save: {e}"
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument parsing ----

# key=value aliases accepted by /add and /edit.
_FIELD_KEYS = {
    "name": "name",
    "desc": "description",
    "description": "description",
    "due": "deadline",
    "deadline": "deadline",
    "remind": "reminder_time",
    "est": "estimated_time",
    "actual": "actual_time",
    "prio": "priority",
    "priority": "priority",
    "status": "status",
    "repeat": "recurring_pattern",
    "until": "recurring_end_date",
    "every": "recurrence_interval",
    "pos": "position",
    "list": "list_id",
    "parent": "parent_task_id",
    "label": "labels",
    "labels": "labels",
}
_INSTANT_FIELDS = {"deadline", "reminder_time", "recurring_end_date"}
_INT_FIELDS = {"estimated_time", "actual_time", "recurrence_interval", "position", "list_id", "parent_task_id"}
_CLEAR = {"none", "-", ""}


def _split_names(raw: str) -> list[str]:
    return [n.strip() for n in raw.split(",") if n.strip()]


def _parse_value(field_name: str, raw: str) -> Any:
    if field_name in _INSTANT_FIELDS:
        return None if raw.lower() in _CLEAR else datetime.fromisoformat(raw)
    if field_name in _INT_FIELDS:
        return None if raw.lower() in _CLEAR else int(raw)
    if field_name == "description" and raw.lower() in _CLEAR:
        return None
    if field_name == "labels":
        return [] if raw.lower() in _CLEAR else _split_names(raw)
    return raw


def parse_fields(args: list[str]) -> tuple[list[str], dict[str, Any]]:
    """Split `word word key=value "key=quoted value"` into free words and typed fields."""
    words: list[str] = []
    fields: dict[str, Any] = {}
    for token in shlex.split(" ".join(args)):
        key, sep, raw = token.partition("=")
        if sep and key.lower() in _FIELD_KEYS:
            field_name = _FIELD_KEYS[key.lower()]
            fields[field_name] = _parse_value(field_name, raw)
        else:
            words.append(token)
    return words, fields


def _parse_task_id(args: list[str]) -> int:
    if not args:
        raise ValueError("task id is required")
    try:
        return int(args[0].lstrip("#"))
    except ValueError as e:
        raise ValueError(f"not a task id: {args[0]}") from e


def _fmt_dt(dt: datetime | None) -> str:
    return dt.strftime("%Y-%m-%d %H:%M") if dt is not None else "-"


def _label_names(labels: list[Label]) -> str:
    return ", ".join(f"{lb.emoji} {lb.name}" for lb in labels) or "-"


def format_task(task: Task) -> str:
    mark = {TaskStatus.TODO: " ", TaskStatus.IN_PROGRESS: "~", TaskStatus.DONE: "x"}[task.status]
    details: list[str] = []
    if task.deadline is not None:
        details.append(f"due {_fmt_dt(task.deadline)}")
    if task.priority.value != "none":
        details.append(task.priority.value)
    if task.is_recurring:
        details.append(f"repeats {task.recurring_pattern.value}")
    suffix = f" ({', '.join(details)})" if details else ""
    indent = "  " if task.is_subtask else ""
    return f"{indent}#{task.id} [{mark}] {task.name}{suffix}"


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add Pay rent due=2024-01-31T09:00 repeat=monthly prio=high label=home,bills
    """
    words, fields = parse_fields(args)
    if "name" not in fields:
        fields["name"] = " ".join(words)
    fields.pop("status", None)
    names = fields.pop("labels", [])
    payload = TaskCreate(**fields)
    if names:
        payload = replace(payload, labels=tuple(lb.id for lb in resolve_labels(state, names)))
    task = add_task(state, payload)
    return f"Added {format_task(task)}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit 12 due=2024-02-01 prio=low "name=Pay the rent"
    """
    task_id = _parse_task_id(args)
    _, fields = parse_fields(args[1:])
    for key in ("list_id", "parent_task_id", "labels"):
        if key in fields:
            raise ValueError(f"{key} cannot be changed with /edit")
    update = TaskUpdate(**fields)
    if update.is_empty():
        return "Nothing to change. Usage: /edit <id> key=value ..."
    task, spawned = edit_task(state, task_id, update)
    reply = f"Updated {format_task(task)}"
    if spawned is not None:
        reply += f"\nNext occurrence: {format_task(spawned)}"
    return reply


def _status_command(status: TaskStatus) -> Callable[[AppState, list[str]], str]:
    def handler(state: AppState, args: list[str]) -> str:
        task, spawned = set_status(state, _parse_task_id(args), status)
        reply = format_task(task)
        if spawned is not None:
            reply += f"\nNext occurrence: {format_task(spawned)}"
        return reply

    return handler


def cmd_rm(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    if not delete_task(state, task_id):
        raise NotFound(task_id)
    return f"Deleted task {task_id}."


def cmd_show(state: AppState, args: list[str]) -> str:
    task = state.task_store.load(_parse_task_id(args))
    lines = [format_task(task)]
    if task.description:
        lines.append(f"  {task.description}")
    lines.append(f"  status: {task.status.value}  completed: {_fmt_dt(task.completed_at)}")
    lines.append(f"  reminder: {_fmt_dt(task.reminder_time)}")
    if task.is_recurring:
        lines.append(
            f"  repeats: {task.recurring_pattern.value} until {_fmt_dt(task.recurring_end_date)}"
        )
    labels = state.task_store.labels_for_task(task.id)
    if labels:
        lines.append(f"  labels: {_label_names(labels)}")
    for sub in state.task_store.find_subtasks(task.id):
        lines.append(format_task(sub))
    lines.append(f"  changes: {state.audit_store.count_by_task(task.id)}")
    return "\n".join(lines)


_VIEW_ALIASES = {
    "today": ViewName.TODAY,
    "week": ViewName.NEXT_7_DAYS,
    "next7": ViewName.NEXT_7_DAYS,
    "next_7_days": ViewName.NEXT_7_DAYS,
    "upcoming": ViewName.UPCOMING,
    "all": ViewName.ALL,
    "overdue": ViewName.OVERDUE,
}


def cmd_view(state: AppState, args: list[str]) -> str:
    """
    /view today|week|upcoming|all|overdue [--all]
    --all also lists completed tasks (except in overdue).
    """
    show_completed = state.show_completed or "--all" in args
    rest = [a for a in args if a != "--all"]
    key = rest[0].lower() if rest else "today"
    view = _VIEW_ALIASES.get(key)
    if view is None:
        return "Usage: /view today|week|upcoming|all|overdue [--all]"

    tasks = state.views.by_view(view, show_completed)
    if not tasks:
        return f"No tasks in {view.value}."
    return "\n".join([f"{view.value} ({len(tasks)}):"] + [format_task(t) for t in tasks])


def cmd_history(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    page = int(args[1]) if len(args) > 1 else None
    entries = task_history(state, task_id, page=page)
    if not entries:
        return f"No changes recorded for task {task_id}."
    lines = [f"Changes for task {task_id} (newest first):"]
    for e in entries:
        lines.append(
            f"  {_fmt_dt(e.changed_at)} {e.field_name}: {e.old_value or '-'} -> {e.new_value or '-'}"
        )
    return "\n".join(lines)


def cmd_lists(state: AppState, args: list[str]) -> str:
    lists = state.task_store.list_lists()
    return "\n".join(f"{lst.id}. {lst.emoji} {lst.name}" for lst in lists)


def cmd_label(state: AppState, args: list[str]) -> str:
    """
    /label 12 home,bills
    """
    task_id = _parse_task_id(args)
    names = _split_names(" ".join(args[1:]))
    if not names:
        return "Usage: /label <id> name[,name...]"
    labels = label_task(state, task_id, names)
    return f"Task {task_id} labels: {_label_names(labels)}"


def cmd_unlabel(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    name = " ".join(args[1:]).strip()
    if not name:
        return "Usage: /unlabel <id> name"
    if not unlabel_task(state, task_id, name):
        return f"Task {task_id} has no label {name!r}."
    return f"Task {task_id} labels: {_label_names(state.task_store.labels_for_task(task_id))}"


def cmd_labels(state: AppState, args: list[str]) -> str:
    labels = state.task_store.list_labels()
    if not labels:
        return "No labels yet. Use label=... with /add or /label <id> name."
    return "\n".join(f"{lb.id}. {lb.emoji} {lb.name}" for lb in labels)


def cmd_purge(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    days = int(args[0]) if args else None
    if emit:
        emit("[AUDIT] Purging old change-log entries...")
    deleted = purge_audit(state, days)
    return f"Removed {deleted} change-log entries."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Add a task: /add <name> [due=..] [repeat=..] [prio=..].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> key=value ...")
registry.register("start", _status_command(TaskStatus.IN_PROGRESS), help_text="Mark a task in progress.")
registry.register("done", _status_command(TaskStatus.DONE), help_text="Complete a task (spawns the next occurrence).")
registry.register("todo", _status_command(TaskStatus.TODO), help_text="Move a task back to todo.")
registry.register("rm", cmd_rm, help_text="Delete a task with its history.", aliases=["del"])
registry.register("show", cmd_show, help_text="Show task details.")
registry.register("view", cmd_view, help_text="List tasks: /view today|week|upcoming|all|overdue [--all].")
registry.register("history", cmd_history, help_text="Change log of a task: /history <id> [page].")
registry.register("lists", cmd_lists, help_text="Show lists.")
registry.register("labels", cmd_labels, help_text="Show labels.")
registry.register("label", cmd_label, help_text="Attach labels: /label <id> name[,name...].")
registry.register("unlabel", cmd_unlabel, help_text="Detach a label: /unlabel <id> name.")
registry.register("purge", cmd_purge, help_text="Delete change-log entries older than N days: /purge [days].")
