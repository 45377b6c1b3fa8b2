# src/taskwise/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any, cast

from ..core.clock import in_zone
from ..core.state import AppState
from ..schedule.hierarchy import TaskNode, build_hierarchy
from ..schedule.timeline import build_timeline
from ..tasks.task_api import (
    TaskFilter,
    TaskNotFoundError,
    change_status,
    create_task,
    delete_task,
    filter_tasks,
    set_dependencies,
    split_active_archived,
)
from ..tasks.task_export import export_tasks, import_tasks
from ..tasks.task_models import Level, Task, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 8


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
        Dispatch "/name arg arg ...". None when the line is not a command;
        handlers taking a third parameter also receive `emit` for progress notes.
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

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _short(task_id: str) -> str:
    return task_id[:SHORT_ID]


def _find(tasks: list[Task], ref: str) -> Task:
    """Exact id, else unique id prefix."""
    for t in tasks:
        if t.id == ref:
            return t
    matches = [t for t in tasks if t.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise TaskNotFoundError(ref)
    raise ValueError(f"Ambiguous task id prefix: {ref}")


def _fmt_dt(state: AppState, value: datetime | None) -> str:
    if value is None:
        return "-"
    return in_zone(value, state.tz).strftime("%Y-%m-%d %H:%M")


def _parse_dt(state: AppState, raw: str) -> datetime:
    return in_zone(datetime.fromisoformat(raw), state.tz)


def _parse_add_options(state: AppState, segments: list[str]) -> tuple[dict[str, Any], bool]:
    """
    Parse "key=value" segments of /add.

    Keys: desc, due, start, end, est, deps, priority, complexity, icon, estimate (flag).
    """
    fields: dict[str, Any] = {}
    estimate = False
    tasks: list[Task] | None = None

    for seg in segments:
        seg = seg.strip()
        if not seg:
            continue
        if seg.lower() == "estimate":
            estimate = True
            continue
        key, sep, value = seg.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got: {seg}")
        key = key.strip().lower()
        value = value.strip()

        if key in ("desc", "description"):
            fields["description"] = value
        elif key == "due":
            fields["due_date"] = date.fromisoformat(value)
        elif key == "start":
            fields["start_time"] = _parse_dt(state, value)
        elif key == "end":
            fields["end_time"] = _parse_dt(state, value)
        elif key in ("est", "estimate"):
            fields["estimated_time"] = int(value)
        elif key in ("deps", "dependencies"):
            if tasks is None:
                tasks = state.task_store.list_tasks()
            refs = [r for r in value.replace(",", " ").split() if r]
            fields["dependencies"] = [_find(tasks, r).id for r in refs]
        elif key == "priority":
            fields["priority"] = Level(value.lower())
        elif key == "complexity":
            fields["complexity"] = Level(value.lower())
        elif key == "icon":
            fields["icon"] = value
        else:
            raise ValueError(f"Unknown option: {key}")

    return fields, estimate


def _task_line(state: AppState, t: Task) -> str:
    due = f" due {t.due_date.isoformat()}" if t.due_date else ""
    deps = f" deps={','.join(_short(d) for d in t.dependencies)}" if t.dependencies else ""
    return f"[{_short(t.id)}] {t.title} ({t.status.value}, {t.priority.value}){due}{deps}"


def _render_node(node: TaskNode, depth: int, lines: list[str]) -> None:
    stack = [(node, depth)]
    while stack:
        current, level = stack.pop()
        t = current.task
        lines.append(f"{'    ' * level}- {t.title} [{_short(t.id)}] ({t.status.value})")
        stack.extend((child, level + 1) for child in reversed(current.children))


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_info(state: AppState, args: list[str]) -> str:
    total = state.task_store.count_tasks()
    tz = state.tz or in_zone(state.clock.now(), None).tzinfo
    estimator = type(state.llm).__name__ if state.llm is not None else "heuristic"
    return (
        "Status:\n"
        f"  Tasks: {total}\n"
        f"  Time zone: {tz}\n"
        f"  Default duration: {state.default_duration_minutes} min\n"
        f"  Estimator: {estimator}"
    )


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <title> [| key=value | ...]

    Example: /add Write report | due=2024-03-01 | est=90 | deps=ab12cd34
    """
    if not args:
        return "Usage: /add <title> [| due=YYYY-MM-DD | start=ISO | end=ISO | est=MIN | deps=ID,ID | priority=low|medium|high | estimate]"

    title, *segments = " ".join(args).split("|")
    try:
        fields, estimate = _parse_add_options(state, segments)
        if estimate and emit:
            with contextlib.suppress(Exception):
                emit("[ESTIMATE] Asking the estimator...")
        task = create_task(state, title, estimate=estimate, **fields)
    except TaskNotFoundError as e:
        return f"No task matches id {e.args[0]}."
    except ValueError as e:
        return f"Cannot add task: {e}"

    return f"Added {_task_line(state, task)} est={task.estimated_time}min"


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list              -> active tasks, newest first
    /list archived     -> archived tasks
    /list <text>       -> active tasks matching text
    """
    tasks = state.task_store.list_tasks()
    active, archived = split_active_archived(tasks)

    source = active
    words = list(args)
    if words and words[0].lower() == "archived":
        source = archived
        words = words[1:]

    shown = filter_tasks(source, TaskFilter(search=" ".join(words)))
    if not shown:
        return "No tasks."
    return "\n".join(_task_line(state, t) for t in shown)


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <id>"
    tasks = state.task_store.list_tasks()
    try:
        t = _find(tasks, args[0])
    except TaskNotFoundError:
        return f"No task matches id {args[0]}."
    except ValueError as e:
        return str(e)

    by_id = {x.id: x for x in tasks}
    lines = [
        f"{t.title} [{t.id}]",
        f"  Status: {t.status.value}",
        f"  Priority: {t.priority.value}  Complexity: {t.complexity.value}",
        f"  Due: {t.due_date.isoformat() if t.due_date else '-'}",
        f"  Start/End: {_fmt_dt(state, t.start_time)} / {_fmt_dt(state, t.end_time)}",
        f"  Estimate: {t.estimated_time} min",
        f"  Started: {_fmt_dt(state, t.started_at)}  Completed: {_fmt_dt(state, t.completed_at)}",
        f"  Created: {_fmt_dt(state, t.created_at)}",
    ]
    if t.description:
        lines.append(f"  {t.description}")
    if t.dependencies:
        lines.append("  Depends on:")
        for dep_id in t.dependencies:
            dep = by_id.get(dep_id)
            if dep is None:
                lines.append(f"    - [{_short(dep_id)}] (missing)")
            else:
                lines.append(f"    - [{_short(dep.id)}] {dep.title} ({dep.status.value})")
    return "\n".join(lines)


def cmd_dep(state: AppState, args: list[str]) -> str:
    """
    /dep <id> <dep_id> [dep_id ...]  -> replace dependencies
    /dep <id> -                      -> clear dependencies
    """
    if len(args) < 2:
        return "Usage: /dep <id> <dep_id...> | /dep <id> -"
    tasks = state.task_store.list_tasks()
    try:
        task = _find(tasks, args[0])
        refs = [] if args[1:] == ["-"] else args[1:]
        dep_ids = [_find(tasks, r).id for r in refs]
        updated = set_dependencies(state, task.id, dep_ids)
    except TaskNotFoundError as e:
        return f"No task matches id {e.args[0]}."
    except ValueError as e:
        return str(e)
    return f"Updated {_task_line(state, updated)}"


def cmd_status(state: AppState, args: list[str]) -> str:
    """/status <id> <not_started|in_progress|completed|archived>"""
    if len(args) < 2:
        return "Usage: /status <id> <not_started|in_progress|completed|archived>"
    try:
        new_status = TaskStatus(args[1].lower())
    except ValueError:
        return f"Unknown status: {args[1]}"

    try:
        task = _find(state.task_store.list_tasks(), args[0])
        result = change_status(state, task.id, new_status)
    except TaskNotFoundError:
        return f"No task matches id {args[0]}."
    except ValueError as e:
        return str(e)
    return result.message


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <id>"
    try:
        task = _find(state.task_store.list_tasks(), args[0])
        delete_task(state, task.id)
    except TaskNotFoundError:
        return f"No task matches id {args[0]}."
    except ValueError as e:
        return str(e)
    return f"Deleted [{_short(task.id)}] {task.title}"


def cmd_timeline(state: AppState, args: list[str]) -> str:
    """/timeline [archived] -> resolved intervals packed into lanes"""
    tasks = state.task_store.list_tasks()
    active, archived = split_active_archived(tasks)
    view = archived if args and args[0].lower() == "archived" else active

    timeline = build_timeline(
        tasks,
        now=state.clock.now(),
        tz=state.tz,
        visible_ids={t.id for t in view},
        default_duration_minutes=state.default_duration_minutes,
    )
    if not timeline.entries:
        return "Nothing to show on the timeline."

    lines = [f"Timeline ({timeline.lane_count} lane(s)):"]
    for lane in range(timeline.lane_count):
        lines.append(f"  Lane {lane}:")
        for e in timeline.entries:
            if e.lane != lane:
                continue
            span = f"{_fmt_dt(state, e.interval.start_date)} -> {_fmt_dt(state, e.interval.end_date)}"
            tag = " all-day" if e.interval.is_all_day else ""
            lines.append(f"    {span}{tag}  {e.task.title} [{_short(e.task.id)}]")
    for cycle in timeline.cycles:
        lines.append("  ! dependency cycle ignored: " + " -> ".join(_short(i) for i in cycle))
    return "\n".join(lines)


def cmd_tree(state: AppState, args: list[str]) -> str:
    """/tree -> dependency forest of active tasks, grouped by creation day"""
    tasks = state.task_store.list_tasks()
    active, _ = split_active_archived(tasks)
    # Tree order follows the stored collection, not the newest-first list order.
    active_ids = {t.id for t in active}
    view = [t for t in tasks if t.id in active_ids]

    forest = build_hierarchy(view, all_tasks=tasks, tz=state.tz)
    if not forest.buckets:
        return "No tasks."

    lines = [forest.title]
    for bucket in forest.buckets:
        lines.append(f"  {bucket.label}")
        for root in bucket.roots:
            _render_node(root, 2, lines)
    return "\n".join(lines)


def cmd_export(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /export <path.json>"
    try:
        n = export_tasks(state.task_store, args[0])
    except OSError as e:
        return f"Export failed: {e}"
    return f"Exported {n} task(s) to {args[0]}"


def cmd_import(state: AppState, args: list[str]) -> str:
    """/import <path.json> -> REPLACES the stored collection"""
    if not args:
        return "Usage: /import <path.json>"
    try:
        n = import_tasks(state.task_store, args[0])
    except (OSError, ValueError) as e:
        return f"Import failed: {e}"
    return f"Imported {n} task(s) from {args[0]}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("info", cmd_info, help_text="Show current settings (zone/duration/estimator).")
registry.register("add", cmd_add, help_text="Add a task: /add <title> | due=... | est=... | deps=...")
registry.register("list", cmd_list, help_text="List tasks: /list [archived] [text].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("dep", cmd_dep, help_text="Set dependencies: /dep <id> <dep_id...> | /dep <id> -.")
registry.register("status", cmd_status, help_text="Change status: /status <id> <status>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("timeline", cmd_timeline, help_text="Lane timeline: /timeline [archived].")
registry.register("tree", cmd_tree, help_text="Dependency tree grouped by creation day.")
registry.register("export", cmd_export, help_text="Export tasks to JSON: /export <path>.")
registry.register("import", cmd_import, help_text="Replace tasks from JSON: /import <path>.")
