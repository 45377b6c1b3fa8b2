# tests/test_bootstrap.py

from __future__ import annotations

from pathlib import Path

from taskwise.cli.bootstrap import create_initial_state
from taskwise.config import Settings
from taskwise.llm.offline import OfflineLLMClient


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKWISE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("TASKWISE_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("TASKWISE_DEFAULT_DURATION_MINUTES", "0")
    monkeypatch.setenv("TASKWISE_LLM_MODELS", "m1, m2")
    monkeypatch.delenv("TASKWISE_OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("TASKWISE_ESTIMATOR_ENABLED", raising=False)
    monkeypatch.delenv("TASKWISE_TASKS_DB_PATH", raising=False)

    s = Settings.from_env()

    assert s.data_dir == tmp_path / "data"
    assert s.tasks_db_path == tmp_path / "data" / "tasks.sqlite3"
    assert s.timezone == "Europe/Berlin"
    assert s.default_duration_minutes == 1
    assert s.llm_models == ["m1", "m2"]
    assert s.estimator_enabled is False


def test_initial_state_is_offline_without_key(settings) -> None:
    state = create_initial_state(settings=settings)

    assert isinstance(state.llm, OfflineLLMClient)
    assert str(state.tz) == "UTC"
    assert state.task_store.count_tasks() == 0
    assert settings.tasks_db_path.exists()


def test_unknown_timezone_falls_back_to_local(settings, caplog) -> None:
    settings.timezone = "Mars/Olympus"

    state = create_initial_state(settings=settings)

    assert state.tz is None
    assert "Unknown timezone" in caplog.text
