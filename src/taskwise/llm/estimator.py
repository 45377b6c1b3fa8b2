# src/taskwise/llm/estimator.py

from __future__ import annotations

import logging
import re

from ..core.ports import LLMClient
from ..tasks.task_models import Level
from .client import friendly_llm_error_message
from .offline import OFFLINE_ESTIMATES

logger = logging.getLogger(__name__)

ESTIMATE_SYSTEM_PROMPT = (
    "You are an expert project manager. You are skilled at estimating how long tasks will take.\n"
    "Based on the task title, description, and complexity level, estimate how long the task "
    "will take to complete, in minutes. Return ONLY a number."
)

# Anything above a working month is treated as a bad answer.
MAX_ESTIMATE_MINUTES = 60 * 24 * 30

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


def heuristic_estimate(complexity: Level | str) -> int:
    return OFFLINE_ESTIMATES.get(str(complexity), OFFLINE_ESTIMATES["medium"])


def parse_minutes(text: str) -> int | None:
    """First number in the reply, rounded to whole minutes; None if absent or absurd."""
    m = _NUMBER_RE.search(text or "")
    if not m:
        return None
    minutes = round(float(m.group(0)))
    if minutes <= 0 or minutes > MAX_ESTIMATE_MINUTES:
        return None
    return minutes


def estimate_task_time(
    title: str,
    description: str,
    complexity: Level | str,
    *,
    llm: LLMClient | None = None,
) -> int:
    """
    Estimated minutes for a task.

    Asks the LLM when one is configured; any failure or unusable reply falls back
    to the per-complexity heuristic, so this never raises for LLM problems.
    """
    fallback = heuristic_estimate(complexity)
    if llm is None:
        return fallback

    prompt = (
        f"Task title: {title}\n"
        f"Task description: {description or '-'}\n"
        f"Task complexity: {complexity}"
    )
    try:
        reply = "".join(llm.stream_chat([{"role": "user", "content": prompt}], ESTIMATE_SYSTEM_PROMPT))
    except RuntimeError as e:
        logger.info("Estimator: %s; using heuristic", friendly_llm_error_message(e))
        return fallback

    minutes = parse_minutes(reply)
    if minutes is None:
        logger.info("Estimator: unusable reply %r; using heuristic", reply[:80])
        return fallback

    logger.debug("Estimator: %r -> %d min", title, minutes)
    return minutes
