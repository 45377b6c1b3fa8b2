# src/taskwise/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - no transition table is enforced; only moving into "completed" is guarded
      (see schedule/guard.py).
    - "archived" is terminal by convention but may be left again.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        try:
            return cls(raw)
        except ValueError:
            return cls.NOT_STARTED


class Level(StrEnum):
    """Shared scale for complexity and priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Level:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


def _dt_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _str_to_dt(raw: Any) -> datetime | None:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError:
        return None


def _str_to_date(raw: Any) -> date | None:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw)
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


@dataclass(slots=True)
class SubTask:
    id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubTask:
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=TaskStatus.from_db(data.get("status")),
        )


@dataclass(slots=True)
class Task:
    id: str
    title: str
    created_at: datetime

    description: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED
    dependencies: list[str] = field(default_factory=list)

    due_date: date | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    estimated_time: int = 0  # minutes
    actual_time: int = 0  # minutes

    started_at: datetime | None = None
    completed_at: datetime | None = None

    complexity: Level = Level.MEDIUM
    priority: Level = Level.MEDIUM
    color: str = ""
    icon: str = "Package"
    subtasks: list[SubTask] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (ISO strings for instants and dates)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "dependencies": list(self.dependencies),
            "dueDate": self.due_date.isoformat() if self.due_date is not None else None,
            "startTime": _dt_to_str(self.start_time),
            "endTime": _dt_to_str(self.end_time),
            "estimatedTime": int(self.estimated_time),
            "actualTime": int(self.actual_time),
            "startedAt": _dt_to_str(self.started_at),
            "completedAt": _dt_to_str(self.completed_at),
            "createdAt": _dt_to_str(self.created_at),
            "complexity": self.complexity.value,
            "priority": self.priority.value,
            "color": self.color,
            "icon": self.icon,
            "subtasks": [s.to_dict() for s in self.subtasks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """
        Tolerant inverse of to_dict().

        Missing fields get the same defaults the task-creation layer uses.
        """
        created_at = _str_to_dt(data.get("createdAt")) or datetime.fromtimestamp(0).astimezone()
        deps_raw = data.get("dependencies") or []
        subtasks_raw = data.get("subtasks") or []
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            created_at=created_at,
            description=str(data.get("description") or ""),
            status=TaskStatus.from_db(data.get("status")),
            dependencies=[str(d) for d in deps_raw if d],
            due_date=_str_to_date(data.get("dueDate")),
            start_time=_str_to_dt(data.get("startTime")),
            end_time=_str_to_dt(data.get("endTime")),
            estimated_time=int(data.get("estimatedTime") or 0),
            actual_time=int(data.get("actualTime") or 0),
            started_at=_str_to_dt(data.get("startedAt")),
            completed_at=_str_to_dt(data.get("completedAt")),
            complexity=Level.from_db(data.get("complexity")),
            priority=Level.from_db(data.get("priority")),
            color=str(data.get("color") or ""),
            icon=str(data.get("icon") or "Package"),
            subtasks=[SubTask.from_dict(s) for s in subtasks_raw if isinstance(s, dict)],
        )
