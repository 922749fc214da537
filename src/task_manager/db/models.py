"""Data models for the task manager."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

PRIORITIES = ("critical", "high", "medium", "low")
STATUSES = ("todo", "in_progress", "in_review", "done", "blocked", "cancelled")
TASK_TYPES = (
    "feature",
    "bug",
    "improvement",
    "documentation",
    "refactor",
    "testing",
    "deployment",
)

# Sort weights: higher runs first
PRIORITY_WEIGHTS = {"critical": 4, "high": 3, "medium": 2, "low": 1}


class GeneratorKind(str, Enum):
    """Which code generator the agent uses to implement a task."""

    NONE = "none"
    NAVIGATION = "navigation"
    AUTHENTICATION = "authentication"
    PROJECT_STRUCTURE = "project_structure"
    BACKEND_CONFIG = "backend_config"


@dataclass
class AIContext:
    code_files: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    test_criteria: list[str] = field(default_factory=list)
    references: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code_files": list(self.code_files),
            "commands": list(self.commands),
            "test_criteria": list(self.test_criteria),
            "references": list(self.references),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "AIContext":
        data = data or {}
        return cls(
            code_files=list(data.get("code_files", [])),
            commands=list(data.get("commands", [])),
            test_criteria=list(data.get("test_criteria", [])),
            references=list(data.get("references", [])),
        )


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    repo_path: str = ""
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Task:
    id: str
    project_id: str
    title: str
    description: str = ""
    priority: str = "medium"
    status: str = "todo"
    type: str = "feature"
    generator: str = "none"
    estimated_hours: float | None = None
    actual_hours: float | None = None
    due_date: datetime | None = None
    tags: list[str] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)
    ai_context: AIContext = field(default_factory=AIContext)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class TaskEvent:
    id: int | None = None
    task_id: str = ""
    event_type: str = ""
    old_value: str | None = None
    new_value: str | None = None
    created_at: datetime | None = None


@dataclass
class TaskQuery:
    """Filter and ordering options for ``TaskStore.get_tasks``."""

    statuses: list[str] | None = None
    project_id: str | None = None
    sort_by: str = "created_at"
    sort_order: str = "asc"
    limit: int | None = None
