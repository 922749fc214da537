"""In-process data structures for the autonomous agent."""

import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from task_manager.db.models import Task

CHANGE_TYPES = ("create", "modify", "delete")
RISK_LEVELS = ("low", "medium", "high")

DEFAULT_ALLOWED_PATTERNS = (
    "src/",
    "App.tsx",
    "app.json",
    "package.json",
    "README.md",
    ".expo/",
    "assets/",
    "components/",
    "screens/",
    "services/",
    "types/",
    "utils/",
    "contexts/",
    "navigation/",
)

DEFAULT_FORBIDDEN_PATTERNS = (
    "node_modules/",
    ".git/",
    "dist/",
    "build/",
    ".env",
    "ios/",
    "android/",
    "web-build/",
    ".expo-shared/",
)


@dataclass
class CodeChange:
    file_path: str
    content: str | None
    change_type: str
    reason: str = ""
    risk_level: str = "low"
    backup_path: str | None = None

    def __post_init__(self):
        if self.change_type not in CHANGE_TYPES:
            raise ValueError(f"Invalid change type: {self.change_type}")
        if self.risk_level not in RISK_LEVELS:
            raise ValueError(f"Invalid risk level: {self.risk_level}")


@dataclass
class TaskImplementation:
    task: Task
    changes: list[CodeChange] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    test_commands: list[str] = field(default_factory=list)
    risk: str = "low"
    estimated_minutes: int = 60


@dataclass(frozen=True)
class AgentConfig:
    workspace_root: Path
    target_project: str
    auto_approve: bool = False
    max_concurrent_tasks: int = 2
    analysis_interval: float = 30.0
    allowed_patterns: tuple[str, ...] = DEFAULT_ALLOWED_PATTERNS
    forbidden_patterns: tuple[str, ...] = DEFAULT_FORBIDDEN_PATTERNS
    log_level: str = "info"
    command_timeout: float = 300.0
    manifest_name: str = "package.json"

    def __post_init__(self):
        if self.max_concurrent_tasks < 1:
            raise ValueError("max_concurrent_tasks must be at least 1")
        if self.analysis_interval <= 0:
            raise ValueError("analysis_interval must be positive")

    @property
    def project_path(self) -> Path:
        return Path(self.workspace_root) / self.target_project


class AgentStats:
    """Running counters. They only grow, and reset only with the process."""

    FIELDS = (
        "tasks_completed",
        "tasks_generated",
        "code_changes_applied",
        "analysis_runs",
        "errors",
    )

    def __init__(self):
        self._lock = threading.Lock()
        self._counts = {name: 0 for name in self.FIELDS}
        self.started_at = time.monotonic()

    def increment(self, name: str, amount: int = 1):
        if name not in self._counts:
            raise KeyError(name)
        if amount < 0:
            raise ValueError("Counters never decrease")
        with self._lock:
            self._counts[name] += amount

    def __getattr__(self, name: str) -> int:
        counts = self.__dict__.get("_counts", {})
        if name not in counts:
            raise AttributeError(name)
        with self._lock:
            return counts[name]

    def summary(self) -> dict:
        with self._lock:
            data = dict(self._counts)
        data["runtime_minutes"] = round((time.monotonic() - self.started_at) / 60)
        return data


class InFlightTasks:
    """IDs of tasks currently being executed, bounded by an optional limit."""

    def __init__(self, limit: int | None = None):
        self.limit = limit
        self._lock = threading.Lock()
        self._ids: set[str] = set()

    def add(self, task_id: str):
        with self._lock:
            if task_id in self._ids:
                raise ValueError(f"Task is already being executed: {task_id}")
            if self.limit is not None and len(self._ids) >= self.limit:
                raise ValueError(f"Max concurrent tasks reached ({self.limit})")
            self._ids.add(task_id)

    def is_full(self) -> bool:
        with self._lock:
            return self.limit is not None and len(self._ids) >= self.limit

    def discard(self, task_id: str):
        with self._lock:
            self._ids.discard(task_id)

    def __contains__(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)
