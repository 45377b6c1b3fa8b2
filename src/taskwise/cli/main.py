# src/taskwise/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL.
Non-interactive use: `taskwise /timeline` runs a single command and exits.
"""

from __future__ import annotations

import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..cli.commands import registry as command_registry
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    store = getattr(state, "task_store", None)
    close = getattr(store, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.debug("TaskStore close failed.", exc_info=True)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args = sys.argv[1:] if argv is None else list(argv)

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/taskwise")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "taskwise"))

    state = create_initial_state(settings=settings)

    try:
        if args:
            line = " ".join(args)
            if not line.startswith("/"):
                line = "/" + line
            reply = command_registry.handle(state, line)
            print(reply or "")
            return 0

        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled (TASKWISE_CONSOLE_ENABLED=false); nothing to do.")
        return 0
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    sys.exit(main())
