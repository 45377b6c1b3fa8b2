# src/taskwise/schedule/guard.py

from __future__ import annotations

"""
Status transition guard.

Only one rule exists: a task may move to "completed" only when every
dependency that exists in the working set is already completed. Dependencies
that cannot be found do not block. Every other move (start, reopen, archive,
unarchive) relaxes constraints and is always allowed.

Pure predicates: nothing here mutates a task. Timestamp bookkeeping belongs to
the caller (tasks/task_api.py).
"""

from collections.abc import Iterable
from dataclasses import dataclass

from ..tasks.task_models import Task, TaskStatus


@dataclass(frozen=True, slots=True)
class GuardVerdict:
    ok: bool
    blocking_task_id: str | None = None
    blocking_title: str | None = None

    @classmethod
    def approved(cls) -> GuardVerdict:
        return cls(ok=True)

    @classmethod
    def rejected(cls, blocker: Task) -> GuardVerdict:
        return cls(ok=False, blocking_task_id=blocker.id, blocking_title=blocker.title)

    def message(self, task: Task) -> str:
        if self.ok:
            return f'Task "{task.title}" can be completed.'
        return (
            f'Task "{task.title}" cannot be completed because dependency '
            f'"{self.blocking_title}" is not finished.'
        )


def can_complete(task: Task, working_set: Iterable[Task]) -> GuardVerdict:
    """Approve completion iff every in-scope dependency is completed (first blocker wins)."""
    by_id: dict[str, Task] = {}
    for t in working_set:
        by_id.setdefault(t.id, t)

    for dep_id in task.dependencies:
        dep = by_id.get(dep_id)
        if dep is None:
            continue
        if dep.status != TaskStatus.COMPLETED:
            return GuardVerdict.rejected(dep)
    return GuardVerdict.approved()


def check_transition(task: Task, new_status: TaskStatus, working_set: Iterable[Task]) -> GuardVerdict:
    """Guard any requested status change; only entering "completed" is checked."""
    if new_status != TaskStatus.COMPLETED or task.status == TaskStatus.COMPLETED:
        return GuardVerdict.approved()
    return can_complete(task, working_set)
