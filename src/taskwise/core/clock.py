# src/taskwise/core/clock.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class SystemClock:
    """Wall clock in the given zone (local zone when tz is None)."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(self._tz)


@dataclass(slots=True)
class FixedClock:
    """Deterministic clock for tests and replays."""

    current: datetime

    def now(self) -> datetime:
        return self.current

    def advance(self, *, minutes: int = 0, days: int = 0) -> datetime:
        self.current = self.current + timedelta(minutes=minutes, days=days)
        return self.current


def resolve_tz(name: str | None) -> tzinfo | None:
    """
    Map a configured zone name to a tzinfo.

    None / empty / unknown names mean "the machine's local zone" (returned as None).
    """
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def in_zone(value: datetime, tz: tzinfo | None) -> datetime:
    """
    Normalize an instant into the working zone.

    Naive datetimes are taken as wall time in that zone. With no zone the
    machine's local rules apply to each instant separately, so two instants on
    either side of a DST change get their own offsets.
    """
    if tz is None:
        return value.astimezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)
