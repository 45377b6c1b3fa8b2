# tests/conftest.py

from __future__ import annotations

import time
from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskwise.core.clock import FixedClock
from taskwise.core.state import AppState
from taskwise.tasks.task_store import TaskStore

from .fakes import FakeLLMClient

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskwise-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        timezone="UTC",
        default_duration_minutes=60,
        estimator_enabled=False,
        console_enabled=False,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient(next_text="45")


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FixedClock, llm: FakeLLMClient) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep a real SQLite TaskStore here because its correctness
    is part of what we want to test.
    """
    return AppState(
        settings=settings,
        task_store=TaskStore(settings.tasks_db_path),
        clock=clock,
        llm=llm,
        tz=UTC,
    )


@pytest.fixture()
def berlin_local_zone(monkeypatch: pytest.MonkeyPatch):
    """Machine-local zone switched to Europe/Berlin (CET in winter, CEST in summer)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    if time.tzname[0] != "CET":
        monkeypatch.undo()
        time.tzset()
        pytest.skip("system tz database has no Europe/Berlin")
    yield
    monkeypatch.undo()
    time.tzset()
