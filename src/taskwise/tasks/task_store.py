# src/taskwise/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .task_models import Level, SubTask, Task, TaskStatus, _str_to_date, _str_to_dt

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    Holds the authoritative, ordered task collection. The scheduling engine only
    ever reads full snapshots (list_tasks) from it.

    One row per task; list-valued fields (dependencies, subtasks) are JSON text.
    Columns added after the first release are back-filled on open through
    PRAGMA table_info + ALTER TABLE.

    Rows carry a `position` so list_tasks() returns the collection order the
    engine uses for tie-breaks: add_task() appends, replace_all() renumbers.

    No connection is shared between calls.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Called on shutdown; there is no long-lived connection to release."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'not_started',
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    due_date TEXT,
                    start_time TEXT,
                    end_time TEXT,
                    estimated_time INTEGER NOT NULL DEFAULT 0,
                    actual_time INTEGER NOT NULL DEFAULT 0,
                    started_at TEXT,
                    completed_at TEXT,
                    complexity TEXT NOT NULL DEFAULT 'medium',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    color TEXT NOT NULL DEFAULT '',
                    icon TEXT NOT NULL DEFAULT 'Package',
                    dependencies TEXT NOT NULL DEFAULT '[]',
                    subtasks TEXT NOT NULL DEFAULT '[]'
                )
                """
            )

            # Back-fill columns missing from older files.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("position", "INTEGER NOT NULL DEFAULT 0")
            add_col("start_time", "TEXT")
            add_col("end_time", "TEXT")
            add_col("actual_time", "INTEGER NOT NULL DEFAULT 0")
            add_col("started_at", "TEXT")
            add_col("completed_at", "TEXT")
            add_col("complexity", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("color", "TEXT NOT NULL DEFAULT ''")
            add_col("icon", "TEXT NOT NULL DEFAULT 'Package'")
            add_col("dependencies", "TEXT NOT NULL DEFAULT '[]'")
            add_col("subtasks", "TEXT NOT NULL DEFAULT '[]'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_position ON tasks(position)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _list_to_str(items: list[Any] | None) -> str:
        if not items:
            return "[]"
        try:
            return json.dumps(items, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Failed to JSON-encode list column; storing [].")
            return "[]"

    @staticmethod
    def _str_to_list(s: str | None) -> list[Any]:
        if not s:
            return []
        try:
            val = json.loads(s)
            return val if isinstance(val, list) else []
        except ValueError:
            return []

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        created_at = _str_to_dt(row["created_at"]) or datetime.fromtimestamp(0, tz=UTC)
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            created_at=created_at,
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            dependencies=[str(d) for d in self._str_to_list(row["dependencies"]) if d],
            due_date=_str_to_date(row["due_date"]),
            start_time=_str_to_dt(row["start_time"]),
            end_time=_str_to_dt(row["end_time"]),
            estimated_time=int(row["estimated_time"] or 0),
            actual_time=int(row["actual_time"] or 0),
            started_at=_str_to_dt(row["started_at"]),
            completed_at=_str_to_dt(row["completed_at"]),
            complexity=Level.from_db(row["complexity"]),
            priority=Level.from_db(row["priority"]),
            color=str(row["color"] or ""),
            icon=str(row["icon"] or "Package"),
            subtasks=[
                SubTask.from_dict(s) for s in self._str_to_list(row["subtasks"]) if isinstance(s, dict)
            ],
        )

    def _task_params(self, task: Task) -> dict[str, Any]:
        data = task.to_dict()
        return {
            "id": task.id,
            "status": task.status.value,
            "title": task.title,
            "description": task.description,
            "created_at": data["createdAt"],
            "updated_at": time.time(),
            "due_date": data["dueDate"],
            "start_time": data["startTime"],
            "end_time": data["endTime"],
            "estimated_time": int(task.estimated_time),
            "actual_time": int(task.actual_time),
            "started_at": data["startedAt"],
            "completed_at": data["completedAt"],
            "complexity": task.complexity.value,
            "priority": task.priority.value,
            "color": task.color,
            "icon": task.icon,
            "dependencies": self._list_to_str(list(task.dependencies)),
            "subtasks": self._list_to_str(data["subtasks"]),
        }

    @staticmethod
    def _validate(task: Task) -> None:
        if not task.id or not str(task.id).strip():
            raise ValueError("id is required")
        if not task.title or not task.title.strip():
            raise ValueError("title is required")
        if task.estimated_time < 0:
            raise ValueError("estimated_time must be >= 0")

    _INSERT_SQL = """
        INSERT INTO tasks(
            id, position, status, title, description, created_at, updated_at,
            due_date, start_time, end_time, estimated_time, actual_time,
            started_at, completed_at, complexity, priority, color, icon,
            dependencies, subtasks
        )
        VALUES (
            :id, :position, :status, :title, :description, :created_at, :updated_at,
            :due_date, :start_time, :end_time, :estimated_time, :actual_time,
            :started_at, :completed_at, :complexity, :priority, :color, :icon,
            :dependencies, :subtasks
        )
    """

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def list_tasks(self) -> list[Task]:
        """Full ordered snapshot (the input of every engine call)."""
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks ORDER BY position ASC, created_at ASC")
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks WHERE id = ?", (str(task_id),))
            row = cur.fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def add_task(self, task: Task) -> str:
        """Append a task at the end of the collection. Returns its id."""
        self._validate(task)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COALESCE(MAX(position), -1) + 1 FROM tasks")
            (position,) = cur.fetchone()
            params = self._task_params(task)
            params["position"] = int(position)
            cur.execute(self._INSERT_SQL, params)
            conn.commit()
            logger.debug(
                "Task added id=%s status=%s deps=%d due=%s",
                task.id,
                task.status.value,
                len(task.dependencies),
                task.due_date,
            )
            return task.id
        finally:
            conn.close()

    def update_task(self, task: Task) -> bool:
        """
        Overwrite every field of an existing task (position is kept).

        Returns False if no row with this id exists.
        """
        self._validate(task)
        params = self._task_params(task)
        assignments = ", ".join(f"{k} = :{k}" for k in params if k != "id")

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(f"UPDATE tasks SET {assignments} WHERE id = :id", params)
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> bool:
        """
        Remove a task. Other tasks keep the id in their dependency lists;
        the engine treats it as a dangling reference.
        """
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
            conn.commit()
            deleted = cur.rowcount == 1
            if deleted:
                logger.debug("Task deleted id=%s", task_id)
            return deleted
        finally:
            conn.close()

    def replace_all(self, tasks: Iterable[Task]) -> int:
        """Replace the whole collection atomically (bulk import / restore)."""
        items = list(tasks)
        for t in items:
            self._validate(t)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM tasks")
            for position, t in enumerate(items):
                params = self._task_params(t)
                params["position"] = position
                cur.execute(self._INSERT_SQL, params)
            conn.commit()
            logger.info("TaskStore replaced collection total=%d", len(items))
            return len(items)
        finally:
            conn.close()
