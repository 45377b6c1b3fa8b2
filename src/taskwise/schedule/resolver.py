# src/taskwise/schedule/resolver.py

from __future__ import annotations

"""
Dependency graph resolver.

Turns partial timing information into an effective interval for every task:

- explicit start (start_time, else started_at) is the tentative start,
- the latest end among in-scope dependencies wins when it is later,
- otherwise the start of the due-date day, otherwise the start of today,
- the end comes from end_time, else the estimate, else the end of the day
  (all-day tasks), else the default duration.

Traversal is a depth-first walk with a memo and an explicit "currently
resolving" stack. A dependency that is already on the stack closes a cycle:
it contributes nothing, every edge on that cycle is ignored for the rest of
the pass, and a warning is logged. Nothing is cached between calls.
"""

import logging
from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo

from ..core.clock import in_zone
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60


@dataclass(frozen=True, slots=True)
class ResolvedInterval:
    start_date: datetime
    end_date: datetime
    is_all_day: bool

    @property
    def duration_minutes(self) -> int:
        return int((self.end_date - self.start_date).total_seconds() // 60)

    def to_dict(self) -> dict[str, object]:
        return {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "isAllDay": self.is_all_day,
        }


def start_of_day(day: date, tz: tzinfo | None) -> datetime:
    if tz is None:
        # Local midnight with the offset in force on that date.
        return datetime.combine(day, time.min).astimezone()
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: tzinfo | None) -> datetime:
    """Exclusive end: midnight of the following day."""
    return start_of_day(day + timedelta(days=1), tz)


@dataclass(slots=True)
class _Frame:
    task: Task
    pending: Iterator[str]
    dep_end: datetime | None = None


@dataclass(slots=True)
class DependencyResolver:
    """
    One resolution pass over a task snapshot.

    Build a new instance per pass; the memo, the resolving stack and the set of
    broken (cyclic) edges live and die with it.
    """

    tasks: Iterable[Task]
    now: datetime
    tz: tzinfo | None = None
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES

    cycles: list[list[str]] = field(default_factory=list, init=False)

    _by_id: dict[str, Task] = field(default_factory=dict, init=False)
    _memo: dict[str, ResolvedInterval] = field(default_factory=dict, init=False)
    _resolving: set[str] = field(default_factory=set, init=False)
    _broken: set[tuple[str, str]] = field(default_factory=set, init=False)

    def __post_init__(self) -> None:
        for t in self.tasks:
            if t.id in self._by_id:
                logger.warning("Duplicate task id=%s in snapshot; keeping the first one", t.id)
                continue
            self._by_id[t.id] = t
        self.now = in_zone(self.now, self.tz)
        self.default_duration_minutes = max(1, int(self.default_duration_minutes))

    # ---- public API ----

    def resolve_all(self, visible_ids: Collection[str] | None = None) -> dict[str, ResolvedInterval]:
        """
        Resolve every requested task (all of them when visible_ids is None).

        Dependencies outside visible_ids are still traversed so end instants are
        correct; they are just not part of the returned mapping.
        """
        out: dict[str, ResolvedInterval] = {}
        for task_id in self._by_id:
            if visible_ids is not None and task_id not in visible_ids:
                continue
            self.resolve(task_id)
            record = self._memo.get(task_id)
            assert record is not None, f"resolver left no record for task {task_id}"
            out[task_id] = record
        logger.debug(
            "Resolved %d/%d tasks (cycles=%d)", len(out), len(self._by_id), len(self.cycles)
        )
        return out

    def resolve(self, task_id: str) -> ResolvedInterval | None:
        """Resolve one task (and, transitively, its dependencies). None for unknown ids."""
        if task_id not in self._by_id:
            return None
        cached = self._memo.get(task_id)
        if cached is not None:
            return cached

        frames: list[_Frame] = [self._enter(task_id)]
        while frames:
            frame = frames[-1]
            dep_id = next(frame.pending, None)

            if dep_id is None:
                record = self._compute(frame.task, frame.dep_end)
                self._memo[frame.task.id] = record
                self._resolving.discard(frame.task.id)
                frames.pop()
                if frames:
                    self._contribute(frames[-1], frame.task.id, record)
                continue

            if dep_id not in self._by_id:
                # Dangling reference: satisfied for timing purposes.
                continue

            if dep_id in self._resolving:
                self._break_cycle(frames, dep_id)
                continue

            cached = self._memo.get(dep_id)
            if cached is not None:
                self._contribute(frame, dep_id, cached)
                continue

            frames.append(self._enter(dep_id))

        return self._memo[task_id]

    # ---- internals ----

    def _enter(self, task_id: str) -> _Frame:
        task = self._by_id[task_id]
        self._resolving.add(task_id)
        return _Frame(task=task, pending=iter(list(task.dependencies)))

    def _contribute(self, frame: _Frame, dep_id: str, record: ResolvedInterval) -> None:
        if (frame.task.id, dep_id) in self._broken:
            return
        if frame.dep_end is None or record.end_date > frame.dep_end:
            frame.dep_end = record.end_date

    def _break_cycle(self, frames: list[_Frame], dep_id: str) -> None:
        stack_ids = [f.task.id for f in frames]
        path = stack_ids[stack_ids.index(dep_id):] + [dep_id]
        for a, b in zip(path, path[1:]):
            self._broken.add((a, b))
        self.cycles.append(path)
        logger.warning(
            "Dependency cycle detected: %s (ignoring the cyclic contribution)",
            " -> ".join(path),
        )

    def _compute(self, task: Task, dep_end: datetime | None) -> ResolvedInterval:
        tz = self.tz

        explicit: datetime | None = None
        if task.start_time is not None:
            explicit = in_zone(task.start_time, tz)
        elif task.started_at is not None:
            explicit = in_zone(task.started_at, tz)

        start = explicit
        if dep_end is not None and (start is None or dep_end > start):
            start = dep_end
        if start is None and task.due_date is not None:
            start = start_of_day(task.due_date, tz)
        if start is None:
            start = start_of_day(self.now.date(), tz)

        is_all_day = explicit is None and task.due_date is not None

        # Negative estimates are a creation-layer bug; behave as zero.
        estimate = max(0, int(task.estimated_time or 0))

        if task.end_time is not None:
            explicit_end = in_zone(task.end_time, tz)
            if task.start_time is not None:
                # Keep the user's span, shifted if dependencies pushed the start.
                span = max(timedelta(0), explicit_end - in_zone(task.start_time, tz))
                end = start + span
            else:
                end = max(explicit_end, start)
        elif estimate > 0:
            end = start + timedelta(minutes=estimate)
        elif is_all_day:
            end = end_of_day(start.date(), tz)
        else:
            end = start + timedelta(minutes=self.default_duration_minutes)

        return ResolvedInterval(start_date=start, end_date=max(end, start), is_all_day=is_all_day)


def resolve_schedule(
    tasks: Iterable[Task],
    *,
    now: datetime,
    tz: tzinfo | None = None,
    visible_ids: Collection[str] | None = None,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> dict[str, ResolvedInterval]:
    """
    Effective {start_date, end_date, is_all_day} per task.

    Pure function of its inputs: re-running it on the same snapshot yields
    identical results.
    """
    resolver = DependencyResolver(
        tasks=list(tasks),
        now=now,
        tz=tz,
        default_duration_minutes=default_duration_minutes,
    )
    return resolver.resolve_all(visible_ids)
