# src/taskwise/tasks/task_export.py

"""
JSON export/import of the whole task collection.

The file is a plain JSON array of task records (camelCase keys, ISO strings),
the same shape browser builds of the planner keep under the "taskwise-tasks"
key, so collections can move between them.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from ..core.ports import TaskRepo
from .task_models import Task

logger = logging.getLogger(__name__)

STORAGE_KEY = "taskwise-tasks"


def export_tasks(store: TaskRepo, path: str | Path) -> int:
    """Write the collection atomically. Returns the number of tasks written."""
    path = Path(path)
    tasks = store.list_tasks()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps([t.to_dict() for t in tasks], ensure_ascii=False, indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # Task text can be personal, keep the file private on disk.
        os.chmod(path, 0o600)
    logger.info("Exported %d tasks to %s", len(tasks), path)
    return len(tasks)


def load_tasks(path: str | Path) -> list[Task]:
    """
    Parse an exported file.

    Accepts either the bare array or an object holding it under STORAGE_KEY.
    Records that are not objects or have no id are skipped.
    """
    path = Path(path)
    data = json.loads(path.read_text("utf-8"))
    if isinstance(data, dict):
        data = data.get(STORAGE_KEY, [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of tasks")

    out: list[Task] = []
    for item in data:
        if not isinstance(item, dict) or not item.get("id"):
            logger.warning("Skipping malformed task record in %s", path)
            continue
        out.append(Task.from_dict(item))
    return out


def import_tasks(store: TaskRepo, path: str | Path) -> int:
    """Replace the stored collection with the file's content."""
    tasks = load_tasks(path)
    n = store.replace_all(tasks)
    logger.info("Imported %d tasks from %s", n, path)
    return n
