# src/taskwise/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/clock/LLM).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock, resolve_tz
from ..core.ports import LLMClient
from ..core.state import AppState
from ..llm.client import OpenRouterLLMClient, friendly_llm_error_message
from ..llm.offline import OfflineLLMClient
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_llm(settings) -> LLMClient:
    if not getattr(settings, "estimator_enabled", False):
        return OfflineLLMClient()
    try:
        return OpenRouterLLMClient(settings)
    except RuntimeError as e:
        # Fallback for local runs without external services.
        logger.info("Estimator: %s Using offline estimates.", friendly_llm_error_message(e))
        return OfflineLLMClient()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    tz = resolve_tz(getattr(settings, "timezone", None))
    if getattr(settings, "timezone", None) and tz is None:
        logger.warning("Unknown timezone %r; using the local zone", settings.timezone)

    return AppState(
        settings=settings,
        task_store=TaskStore(settings.tasks_db_path),
        clock=SystemClock(tz),
        llm=_build_llm(settings),
        tz=tz,
    )
