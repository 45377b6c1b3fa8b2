# src/taskwise/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Every variable is prefixed with TASKWISE_ (see .env.example). The scheduling
engine itself takes its zone and default duration as call arguments; settings
only supply the defaults the CLI passes in.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKWISE"

DEFAULT_MODELS = [
    "qwen/qwen-2.5-72b-instruct:free",
    "deepseek/deepseek-chat-v3-0324:free",
]

# Real environment variables win over .env values.
load_dotenv(override=False)


def _var(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _raw(suffix: str, *fallback_names: str) -> str | None:
    """First non-blank value among TASKWISE_<suffix> and the fallback names."""
    for name in (_var(suffix), *fallback_names):
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _str(suffix: str, default: str) -> str:
    return _raw(suffix) or default


def _bool(suffix: str, default: bool) -> bool:
    value = _raw(suffix)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "y", "on"}


def _number(suffix: str, default: float, cast=float):
    value = _raw(suffix)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        return default


def _words(suffix: str, default: list[str]) -> list[str]:
    value = _raw(suffix)
    if value is None:
        return list(default)
    return value.replace(",", " ").split()


def _path(suffix: str, default: Path) -> Path:
    value = _raw(suffix)
    return Path(value).expanduser() if value else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str = "taskwise"
    log_level: str = "INFO"
    console_enabled: bool = True

    # ---- Scheduling ----
    # None -> the machine's local zone.
    timezone: str | None = None
    default_duration_minutes: int = 60

    # ---- Time estimation (OpenRouter) ----
    estimator_enabled: bool = False
    openrouter_api_key: str | None = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_models: list[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    extra_headers: dict[str, str] = field(default_factory=dict)
    llm_connect_timeout: float = 5.0
    llm_read_timeout: float = 15.0
    llm_first_token_timeout: float = 10.0

    # ---- Local data (gitignored) ----
    data_dir: Path = Path(".local/taskwise")
    tasks_db_path: Path = Path(".local/taskwise/tasks.sqlite3")

    @staticmethod
    def from_env() -> Settings:
        app_name = _str("APP_NAME", "taskwise")
        api_key = _raw("OPENROUTER_API_KEY", "OPENROUTER_API_KEY")
        data_dir = _path("DATA_DIR", Path(".local/taskwise"))

        return Settings(
            app_name=app_name,
            log_level=_str("LOG_LEVEL", "INFO").upper(),
            console_enabled=_bool("CONSOLE_ENABLED", True),
            timezone=_raw("TIMEZONE"),
            default_duration_minutes=max(1, _number("DEFAULT_DURATION_MINUTES", 60, int)),
            # An API key alone turns the estimator on.
            estimator_enabled=_bool("ESTIMATOR_ENABLED", bool(api_key)),
            openrouter_api_key=api_key,
            openrouter_base_url=_str("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
            llm_models=_words("LLM_MODELS", DEFAULT_MODELS),
            extra_headers={
                "HTTP-Referer": _str("HTTP_REFERER", "https://example.com"),
                "X-Title": _str("APP_TITLE", app_name),
            },
            llm_connect_timeout=_number("LLM_CONNECT_TIMEOUT_SECONDS", 5.0),
            llm_read_timeout=_number("LLM_READ_TIMEOUT_SECONDS", 15.0),
            llm_first_token_timeout=_number("LLM_FIRST_TOKEN_TIMEOUT_SECONDS", 10.0),
            data_dir=data_dir,
            tasks_db_path=_path("TASKS_DB_PATH", data_dir / "tasks.sqlite3"),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
