"""
Scheduling engine.

Components:
- resolver.py: effective start/end per task from partial timing + dependencies
- lanes.py: greedy earliest-fit lane packing of resolved intervals
- timeline.py: resolver + packer pipeline used by timeline renderers
- hierarchy.py: dependency forest grouped by creation day
- guard.py: precondition check for status changes to "completed"

Everything here is a pure function of the task snapshot it is given.
"""

from .guard import GuardVerdict, can_complete, check_transition
from .hierarchy import DayBucket, HierarchyRoot, TaskNode, build_hierarchy
from .lanes import LaneInput, LaneLayout, pack_lanes
from .resolver import DependencyResolver, ResolvedInterval, resolve_schedule
from .timeline import Timeline, TimelineEntry, build_timeline

__all__ = [
    "DayBucket",
    "DependencyResolver",
    "GuardVerdict",
    "HierarchyRoot",
    "LaneInput",
    "LaneLayout",
    "ResolvedInterval",
    "TaskNode",
    "Timeline",
    "TimelineEntry",
    "build_hierarchy",
    "build_timeline",
    "can_complete",
    "check_transition",
    "pack_lanes",
    "resolve_schedule",
]
