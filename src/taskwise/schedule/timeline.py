# src/taskwise/schedule/timeline.py

from __future__ import annotations

"""
Timeline pipeline: snapshot -> resolved intervals -> lanes.

The renderer (console /timeline command, or any UI) only consumes the
Timeline value built here.
"""

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from ..tasks.task_models import Task
from .lanes import LaneInput, LaneLayout, pack_lanes
from .resolver import DEFAULT_DURATION_MINUTES, DependencyResolver, ResolvedInterval


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    task: Task
    interval: ResolvedInterval
    lane: int


@dataclass(frozen=True, slots=True)
class Timeline:
    entries: list[TimelineEntry] = field(default_factory=list)
    lane_count: int = 0
    cycles: list[list[str]] = field(default_factory=list)

    @property
    def schedule(self) -> dict[str, ResolvedInterval]:
        return {e.task.id: e.interval for e in self.entries}

    @property
    def layout(self) -> LaneLayout:
        return LaneLayout(lanes={e.task.id: e.lane for e in self.entries}, lane_count=self.lane_count)

    def bounds(self) -> tuple[datetime, datetime] | None:
        if not self.entries:
            return None
        return (
            min(e.interval.start_date for e in self.entries),
            max(e.interval.end_date for e in self.entries),
        )


def build_timeline(
    tasks: Iterable[Task],
    *,
    now: datetime,
    tz: tzinfo | None = None,
    visible_ids: Collection[str] | None = None,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> Timeline:
    snapshot = list(tasks)
    resolver = DependencyResolver(
        tasks=snapshot,
        now=now,
        tz=tz,
        default_duration_minutes=default_duration_minutes,
    )
    schedule = resolver.resolve_all(visible_ids)

    # Input order for packing = collection order, which is the tie-break.
    # reversed(): on duplicate ids the first occurrence wins, as in the resolver.
    by_id = {t.id: t for t in reversed(snapshot)}
    order = list(schedule)
    layout = pack_lanes(
        LaneInput(task_id=tid, start=schedule[tid].start_date, end=schedule[tid].end_date)
        for tid in order
    )

    entries = [
        TimelineEntry(task=by_id[tid], interval=schedule[tid], lane=layout.lanes[tid])
        for tid in order
    ]
    entries.sort(key=lambda e: e.interval.start_date)

    return Timeline(entries=entries, lane_count=layout.lane_count, cycles=list(resolver.cycles))
