# src/taskwise/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskwise.log"

# Console thresholds by logger-name prefix; the longest matching prefix wins.
# The engine logs every resolution pass, which is noise while typing commands.
_CONSOLE_MIN_LEVEL: dict[str, int] = {
    "taskwise": logging.NOTSET,
    "taskwise.schedule": logging.WARNING,
    "py.warnings": logging.ERROR,
}
_THIRD_PARTY_MIN_LEVEL = logging.ERROR


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        best = ""
        for prefix in _CONSOLE_MIN_LEVEL:
            if (record.name == prefix or record.name.startswith(prefix + ".")) and len(prefix) > len(best):
                best = prefix
        threshold = _CONSOLE_MIN_LEVEL[best] if best else _THIRD_PARTY_MIN_LEVEL
        return record.levelno >= threshold


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskwise",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route all logging to a filtered stderr handler and a full log file.

    Call once, before the first log line. Returns the log file path.
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    # warnings.warn(...) -> 'py.warnings' logger
    logging.captureWarnings(True)

    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log_file
