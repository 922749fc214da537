"""Task store client with an explicit connect/close lifecycle.

The agent shares one store between its execution loop and its analysis worker,
so every call is serialized behind a lock on a single connection.
"""

import sqlite3
import threading
from pathlib import Path

from task_manager.core import projects as projects_mod
from task_manager.core import tasks as tasks_mod
from task_manager.db.engine import init_db
from task_manager.db.models import Project, Task, TaskEvent, TaskQuery


class StoreError(Exception):
    """Raised when the store is used before connect() or after close()."""


class TaskStore:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def connect(self) -> "TaskStore":
        with self._lock:
            if self._conn is None:
                self._conn = init_db(self.db_path, check_same_thread=False)
        return self

    def close(self):
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "TaskStore":
        return self.connect()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _db(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Task store is not connected")
        return self._conn

    # ── Projects ─────────────────────────────────────────────────────────────

    def create_project(self, project_id: str, name: str, **kwargs) -> Project:
        with self._lock:
            return projects_mod.create_project(self._db(), project_id, name, **kwargs)

    def get_project(self, project_id: str) -> Project | None:
        with self._lock:
            return projects_mod.get_project(self._db(), project_id)

    def list_projects(self) -> list[Project]:
        with self._lock:
            return projects_mod.list_projects(self._db())

    def find_project(self, name_or_id: str) -> Project | None:
        with self._lock:
            return projects_mod.find_project(self._db(), name_or_id)

    # ── Tasks ────────────────────────────────────────────────────────────────

    def create_task(self, **fields) -> Task:
        with self._lock:
            return tasks_mod.create_task(self._db(), **fields)

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            return tasks_mod.get_task(self._db(), task_id)

    def get_tasks(self, query: TaskQuery | None = None) -> list[Task]:
        with self._lock:
            return tasks_mod.query_tasks(self._db(), query or TaskQuery())

    def update_task(
        self,
        task_id: str,
        status: str | None = None,
        actual_hours: float | None = None,
    ) -> Task:
        with self._lock:
            task = tasks_mod.update_task(
                self._db(), task_id, status=status, actual_hours=actual_hours
            )
        if task is None:
            raise ValueError(f"Task not found: {task_id}")
        return task

    def get_task_events(self, task_id: str) -> list[TaskEvent]:
        with self._lock:
            return tasks_mod.get_task_events(self._db(), task_id)
