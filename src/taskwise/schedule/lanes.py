# src/taskwise/schedule/lanes.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LaneInput:
    task_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True, slots=True)
class LaneLayout:
    """
    Result of lane packing.

    lanes: task id -> lane index (0-based)
    lane_count: number of lanes in use, used by renderers to size the canvas
    """

    lanes: dict[str, int] = field(default_factory=dict)
    lane_count: int = 0

    def lane_of(self, task_id: str) -> int | None:
        return self.lanes.get(task_id)


def pack_lanes(intervals: Iterable[LaneInput]) -> LaneLayout:
    """
    Greedy earliest-fit interval colouring.

    - sort by start (stable: ties keep input order)
    - put each interval in the first lane whose last end <= its start
      (touching intervals share a lane)
    - open a new lane when none fits

    Processing intervals by start time makes the lane count equal to the maximum
    number of simultaneously active intervals, which is the minimum possible.
    """
    ordered = sorted(intervals, key=lambda it: it.start)

    lane_ends: list[datetime] = []
    lanes: dict[str, int] = {}

    for item in ordered:
        end = item.end if item.end >= item.start else item.start
        for idx, lane_end in enumerate(lane_ends):
            if lane_end <= item.start:
                lanes[item.task_id] = idx
                lane_ends[idx] = end
                break
        else:
            lanes[item.task_id] = len(lane_ends)
            lane_ends.append(end)

    logger.debug("Packed %d intervals into %d lanes", len(lanes), len(lane_ends))
    return LaneLayout(lanes=lanes, lane_count=len(lane_ends))
