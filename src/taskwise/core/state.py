# src/taskwise/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any

from .ports import Clock, LLMClient, TaskRepo


@dataclass
class AppState:
    """
    Everything a command or API call needs, wired once by the composition root
    (cli/bootstrap.py) and by tests.
    """

    settings: Any

    task_store: TaskRepo
    clock: Clock

    # None -> time estimation uses the offline heuristic only.
    llm: LLMClient | None = None
    tz: tzinfo | None = None

    @property
    def default_duration_minutes(self) -> int:
        return int(getattr(self.settings, "default_duration_minutes", 60) or 60)
