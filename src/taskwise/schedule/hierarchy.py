# src/taskwise/schedule/hierarchy.py

from __future__ import annotations

"""
Hierarchy builder: raw dependency edges -> forest grouped by creation day.

Shape of the result:

    All plans
      2024-03-02            (newest day first)
        task                (root: nothing in scope above it)
          dependent task    (lists its parent as a dependency)
            ...
      2024-03-01
        ...

A task with several in-scope dependencies shows up under each of them; nodes
are copied per parent edge, so the forest is a tree of values with shared
descendants duplicated.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Any, Iterator

from ..core.clock import in_zone
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

ALL_PLANS_ID = "all-plans"
ALL_PLANS_TITLE = "All plans"


@dataclass(slots=True)
class TaskNode:
    task: Task
    children: list[TaskNode] = field(default_factory=list)

    def walk(self) -> Iterator[TaskNode]:
        """Pre-order, children in order. Iterative; chains can be thousands deep."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def _shallow_dict(self) -> dict[str, Any]:
        return {
            "type": "task",
            "id": self.task.id,
            "title": self.task.title,
            "status": self.task.status.value,
            "children": [],
        }

    def to_dict(self) -> dict[str, Any]:
        out = self._shallow_dict()
        stack = [(self, out)]
        while stack:
            node, data = stack.pop()
            for child in node.children:
                child_data = child._shallow_dict()
                data["children"].append(child_data)
                stack.append((child, child_data))
        return out


@dataclass(slots=True)
class DayBucket:
    day: date
    roots: list[TaskNode] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.day.isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "day",
            "id": f"day-{self.label}",
            "title": self.label,
            "children": [r.to_dict() for r in self.roots],
        }


@dataclass(slots=True)
class HierarchyRoot:
    """Synthetic top-level node. Display convenience only."""

    buckets: list[DayBucket] = field(default_factory=list)
    id: str = ALL_PLANS_ID
    title: str = ALL_PLANS_TITLE

    def walk(self) -> Iterator[TaskNode]:
        for bucket in self.buckets:
            for root in bucket.roots:
                yield from root.walk()

    def root_ids(self) -> list[str]:
        return [r.task.id for b in self.buckets for r in b.roots]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "root",
            "id": self.id,
            "title": self.title,
            "children": [b.to_dict() for b in self.buckets],
        }


def _dedup(tasks: Iterable[Task]) -> list[Task]:
    seen: set[str] = set()
    out: list[Task] = []
    for t in tasks:
        if t.id in seen:
            continue
        seen.add(t.id)
        out.append(t)
    return out


class _ForestBuilder:
    def __init__(self, view: list[Task], universe: list[Task]) -> None:
        self.view = view
        self.by_id = {t.id: t for t in view}
        self.children_of: dict[str, list[str]] = {t.id: [] for t in view}
        self.reached: set[str] = set()

        for t in view:
            for dep_id in dict.fromkeys(t.dependencies):
                if dep_id in self.by_id:
                    self.children_of[dep_id].append(t.id)

        # Who lists whom, split by where the listing task lives.
        self.listed_in_view: set[str] = set()
        self.listed_outside: set[str] = set()
        for t in universe:
            target = self.listed_in_view if t.id in self.by_id else self.listed_outside
            target.update(d for d in t.dependencies if d != t.id)
        for t in view:
            self.listed_in_view.update(d for d in t.dependencies if d != t.id)

    def has_in_scope_dependency(self, task: Task) -> bool:
        return any(d in self.by_id for d in task.dependencies)

    def is_root(self, task: Task) -> bool:
        if self.has_in_scope_dependency(task):
            return False
        return task.id not in self.listed_in_view and task.id not in self.listed_outside

    def is_island(self, task: Task) -> bool:
        """Dependency-free here, but only claimed by tasks outside the view."""
        return (
            not self.has_in_scope_dependency(task)
            and task.id in self.listed_outside
            and task.id not in self.listed_in_view
        )

    def expand(self, task_id: str) -> TaskNode:
        """
        Copy the subtree under task_id, one node per parent edge.

        Explicit stack: the frames are exactly the current path, and a child
        already on the path closes a cycle and is left out.
        """
        self.reached.add(task_id)
        root = TaskNode(task=self.by_id[task_id])
        on_path = {task_id}
        stack: list[tuple[TaskNode, Iterator[str]]] = [(root, iter(self.children_of[task_id]))]

        while stack:
            node, pending = stack[-1]
            child_id = next(pending, None)
            if child_id is None:
                stack.pop()
                on_path.discard(node.task.id)
                continue
            if child_id in on_path:
                logger.debug("Hierarchy: skipping cyclic edge %s -> %s", node.task.id, child_id)
                continue
            self.reached.add(child_id)
            child = TaskNode(task=self.by_id[child_id])
            node.children.append(child)
            on_path.add(child_id)
            stack.append((child, iter(self.children_of[child_id])))

        return root

    def build_roots(self) -> list[TaskNode]:
        roots = [self.expand(t.id) for t in self.view if self.is_root(t)]

        # Anything still unplaced becomes a root: dependency-free tasks first,
        # then members of dependency cycles in collection order.
        for t in self.view:
            if t.id in self.reached or self.has_in_scope_dependency(t):
                continue
            if self.is_island(t):
                logger.debug("Hierarchy: task %s only claimed outside the view; skipped", t.id)
                continue
            roots.append(self.expand(t.id))

        for t in self.view:
            if t.id in self.reached or not self.has_in_scope_dependency(t):
                continue
            logger.debug("Hierarchy: promoting unplaced task %s to a root", t.id)
            roots.append(self.expand(t.id))

        return roots


def build_hierarchy(
    tasks: Iterable[Task],
    *,
    all_tasks: Iterable[Task] | None = None,
    tz: tzinfo | None = None,
) -> HierarchyRoot:
    """
    Build the day-bucketed dependency forest for the working set `tasks`.

    all_tasks is the full collection the view was filtered from (defaults to the
    view itself); it only matters for deciding which dependency-free tasks are
    claimed by someone else.
    """
    view = _dedup(tasks)
    universe = _dedup(all_tasks) if all_tasks is not None else view

    builder = _ForestBuilder(view, universe)
    roots = builder.build_roots()

    # Creation order inside a day; the stable sort keeps collection order for ties.
    roots.sort(key=lambda n: in_zone(n.task.created_at, tz))

    buckets: dict[date, DayBucket] = {}
    for node in roots:
        day = in_zone(node.task.created_at, tz).date()
        bucket = buckets.get(day)
        if bucket is None:
            bucket = buckets[day] = DayBucket(day=day)
        bucket.roots.append(node)

    ordered = sorted(buckets.values(), key=lambda b: b.day, reverse=True)
    logger.debug("Hierarchy: %d roots in %d day buckets", len(roots), len(ordered))
    return HierarchyRoot(buckets=ordered)
