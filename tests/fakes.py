# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime

from taskwise.core.ports import ChatMessage
from taskwise.tasks.task_models import Task, TaskStatus


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Yields a predefined text as a single chunk
    """

    def __init__(self, next_text: str = "ok") -> None:
        self.next_text = next_text
        self.calls: list[tuple[list[ChatMessage], str]] = []

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        self.calls.append((messages, system_prompt))
        yield self.next_text


class FailingLLMClient:
    """Behaves like OpenRouterLLMClient when every model failed."""

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        raise RuntimeError("All LLM models failed.")
        yield ""  # pragma: no cover


def at(day: int, hour: int = 0, minute: int = 0, *, month: int = 1, year: int = 2024) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def make_task(
    task_id: str,
    *,
    title: str | None = None,
    deps: list[str] | None = None,
    status: TaskStatus = TaskStatus.NOT_STARTED,
    created_at: datetime | None = None,
    due_date: date | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    started_at: datetime | None = None,
    estimated_time: int = 0,
) -> Task:
    return Task(
        id=task_id,
        title=title or f"Task {task_id}",
        created_at=created_at or at(1),
        status=status,
        dependencies=list(deps or []),
        due_date=due_date,
        start_time=start_time,
        end_time=end_time,
        started_at=started_at,
        estimated_time=estimated_time,
    )
