# src/taskwise/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers/clocks swappable and makes testing easier.
"""

from datetime import datetime
from typing import Any, Iterable, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class Clock(Protocol):
    """Source of "now". Injected everywhere so runs are reproducible."""
    def now(self) -> datetime: ...


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class TaskRepo(Protocol):
    # Snapshot API (engine input)
    def count_tasks(self) -> int: ...
    def list_tasks(self) -> list[Any]: ...
    def get_task(self, task_id: str) -> Any | None: ...

    # Mutations (task-management layer only; the engine never writes)
    def add_task(self, task: Any) -> str: ...
    def update_task(self, task: Any) -> bool: ...
    def delete_task(self, task_id: str) -> bool: ...
    def replace_all(self, tasks: Iterable[Any]) -> int: ...
