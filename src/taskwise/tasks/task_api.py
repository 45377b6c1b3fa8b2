# src/taskwise/tasks/task_api.py

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from ..core.clock import in_zone
from ..core.state import AppState
from ..llm.estimator import estimate_task_time
from ..schedule.guard import GuardVerdict, check_transition
from .task_models import Level, Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskNotFoundError(KeyError):
    """Raised when an edit targets an id that is not in the store."""


@dataclass(frozen=True, slots=True)
class TransitionResult:
    ok: bool
    task: Task
    verdict: GuardVerdict

    @property
    def message(self) -> str:
        if self.ok:
            return f'Task "{self.task.title}" -> {self.task.status.value}'
        return self.verdict.message(self.task)


@dataclass(frozen=True, slots=True)
class TaskFilter:
    """View filters (all empty = everything)."""

    search: str = ""
    priorities: frozenset[Level] = field(default_factory=frozenset)
    statuses: frozenset[TaskStatus] = field(default_factory=frozenset)
    due_date: date | None = None

    @property
    def active(self) -> bool:
        return bool(self.search.strip() or self.priorities or self.statuses or self.due_date)


def generate_color(rng: random.Random | None = None) -> str:
    """Random muted HSL colour for a new task."""
    r = rng or random
    hue = r.randrange(360)
    saturation = 40 + r.randrange(30)
    lightness = 50 + r.randrange(10)
    return f"hsl({hue}, {saturation}%, {lightness}%)"


def new_task(
    title: str,
    *,
    now: datetime,
    description: str = "",
    dependencies: Iterable[str] = (),
    due_date: date | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    estimated_time: int = 0,
    complexity: Level = Level.MEDIUM,
    priority: Level = Level.MEDIUM,
    icon: str = "Package",
    task_id: str | None = None,
) -> Task:
    """
    Build a Task with the creation-layer defaults filled in.

    This is where malformed input is rejected; the engine downstream never raises
    for it.
    """
    title = (title or "").strip()
    if not title:
        raise ValueError("title is required")
    if estimated_time < 0:
        raise ValueError("estimated_time must be >= 0")
    if start_time is not None and end_time is not None and end_time < start_time:
        raise ValueError("end_time must not be before start_time")

    tid = task_id or uuid.uuid4().hex
    return Task(
        id=tid,
        title=title,
        created_at=now,
        description=(description or "").strip(),
        status=TaskStatus.NOT_STARTED,
        dependencies=_clean_dependencies(tid, dependencies),
        due_date=due_date,
        start_time=start_time,
        end_time=end_time,
        estimated_time=int(estimated_time),
        complexity=complexity,
        priority=priority,
        color=generate_color(),
        icon=icon or "Package",
    )


def _clean_dependencies(task_id: str, dep_ids: Iterable[str]) -> list[str]:
    """Keep order, drop blanks, duplicates and self references."""
    out: list[str] = []
    for d in dep_ids:
        d = str(d or "").strip()
        if not d or d == task_id or d in out:
            continue
        out.append(d)
    return out


def _require(state: AppState, task_id: str) -> Task:
    task = state.task_store.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def create_task(
    state: AppState,
    title: str,
    *,
    estimate: bool = False,
    **fields,
) -> Task:
    """
    Create and store a task.

    estimate=True asks the estimator for estimated_time when none was given.
    """
    task = new_task(title, now=state.clock.now(), **fields)

    if estimate and task.estimated_time <= 0:
        task.estimated_time = estimate_task_time(
            task.title,
            task.description,
            task.complexity,
            llm=state.llm,
        )

    state.task_store.add_task(task)
    logger.info("Task created id=%s title=%r est=%s", task.id, task.title, task.estimated_time)
    return task


def update_task(state: AppState, task: Task) -> Task:
    """Direct edit (not guarded). Dependencies are normalized on the way in."""
    cleaned = replace(task, dependencies=_clean_dependencies(task.id, task.dependencies))
    if not state.task_store.update_task(cleaned):
        raise TaskNotFoundError(task.id)
    return cleaned


def set_dependencies(state: AppState, task_id: str, dep_ids: Iterable[str]) -> Task:
    task = _require(state, task_id)
    return update_task(state, replace(task, dependencies=list(dep_ids)))


def delete_task(state: AppState, task_id: str) -> None:
    if not state.task_store.delete_task(task_id):
        raise TaskNotFoundError(task_id)
    logger.info("Task deleted id=%s", task_id)


def change_status(state: AppState, task_id: str, new_status: TaskStatus) -> TransitionResult:
    """
    Guarded status change.

    On approval:
    - entering in_progress records started_at once (never overwritten)
    - entering completed records completed_at = now; started_at stays as it was
    - leaving completed clears completed_at
    A rejection is a normal outcome, returned rather than raised.
    """
    snapshot = state.task_store.list_tasks()
    task = next((t for t in snapshot if t.id == task_id), None)
    if task is None:
        raise TaskNotFoundError(task_id)

    verdict = check_transition(task, new_status, snapshot)
    if not verdict.ok:
        logger.info(
            "Completion of task %s blocked by dependency %s", task.id, verdict.blocking_task_id
        )
        return TransitionResult(ok=False, task=task, verdict=verdict)

    if new_status == task.status:
        return TransitionResult(ok=True, task=task, verdict=verdict)

    now = state.clock.now()
    started_at = task.started_at
    if new_status == TaskStatus.IN_PROGRESS and started_at is None:
        started_at = now
    completed_at = now if new_status == TaskStatus.COMPLETED else None

    updated = replace(task, status=new_status, started_at=started_at, completed_at=completed_at)
    state.task_store.update_task(updated)
    logger.info("Task %s %s -> %s", task.id, task.status.value, new_status.value)
    return TransitionResult(ok=True, task=updated, verdict=verdict)


def split_active_archived(tasks: Iterable[Task]) -> tuple[list[Task], list[Task]]:
    """(active, archived), each newest first."""
    active: list[Task] = []
    archived: list[Task] = []
    for t in tasks:
        (archived if t.status == TaskStatus.ARCHIVED else active).append(t)

    def key(t: Task) -> datetime:
        return in_zone(t.created_at, None)

    active.sort(key=key, reverse=True)
    archived.sort(key=key, reverse=True)
    return active, archived


def filter_tasks(tasks: Iterable[Task], flt: TaskFilter) -> list[Task]:
    query = flt.search.strip().lower()
    out: list[Task] = []
    for t in tasks:
        if query and query not in t.title.lower() and query not in (t.description or "").lower():
            continue
        if flt.priorities and t.priority not in flt.priorities:
            continue
        if flt.statuses and t.status not in flt.statuses:
            continue
        if flt.due_date is not None and t.due_date != flt.due_date:
            continue
        out.append(t)
    return out
