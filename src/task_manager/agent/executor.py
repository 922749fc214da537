"""Execute an approved implementation plan against the project."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from task_manager.agent.changes import ChangeApplicator, RollbackReport
from task_manager.agent.errors import CommandError
from task_manager.agent.models import AgentStats, CodeChange, InFlightTasks, TaskImplementation
from task_manager.integrations.files import LocalFileSystem

logger = logging.getLogger(__name__)

# The only status transitions the agent performs
AGENT_TRANSITIONS = {
    "todo": ("in_progress",),
    "in_progress": ("done", "blocked"),
}


def check_transition(current: str, new: str):
    if new not in AGENT_TRANSITIONS.get(current, ()):
        raise ValueError(f"Agent cannot move a task from '{current}' to '{new}'")


def actual_hours(plan: TaskImplementation) -> float:
    return max(plan.estimated_minutes / 60, 0.5)


@dataclass
class ExecutionResult:
    task_id: str
    status: str
    applied: list[str] = field(default_factory=list)
    tests_passed: bool = False
    error: str | None = None
    rollback: RollbackReport | None = None

    @property
    def success(self) -> bool:
        return self.status == "done"


class TaskExecutor:
    def __init__(
        self,
        store,
        applicator: ChangeApplicator,
        runner,
        project_root: Path,
        stats: AgentStats,
        in_flight: InFlightTasks,
        command_timeout: float | None = None,
        files=None,
        manifest_name: str = "package.json",
    ):
        self.store = store
        self.applicator = applicator
        self.runner = runner
        self.project_root = Path(project_root)
        self.stats = stats
        self.in_flight = in_flight
        self.command_timeout = command_timeout
        self.files = files or LocalFileSystem()
        self.manifest_name = manifest_name

    def execute(self, plan: TaskImplementation) -> ExecutionResult:
        """Run a plan to completion, leaving the task done or blocked.

        Raises ValueError if the task is already executing, the in-flight set
        is full, or the task is not in 'todo'.
        """
        task = plan.task
        check_transition(task.status, "in_progress")
        self.in_flight.add(task.id)
        try:
            return self._execute(plan)
        finally:
            self.in_flight.discard(task.id)

    def _execute(self, plan: TaskImplementation) -> ExecutionResult:
        task = plan.task
        logger.info("Executing task: %s (ID: %s)", task.title, task.id)
        self.store.update_task(task.id, status="in_progress")

        result = ExecutionResult(task_id=task.id, status="in_progress")
        applied: list[CodeChange] = []
        completed = False
        try:
            for change in plan.changes:
                if change.change_type != "create" and self.applicator.is_allowed(change.file_path):
                    self.applicator.backup(change)

            for change in plan.changes:
                if self.applicator.apply(change):
                    applied.append(change)
                    result.applied.append(change.file_path)
                    self.stats.increment("code_changes_applied")

            for command in plan.commands:
                logger.info("Running command: %s", command)
                self.runner.run(command, cwd=self.project_root, timeout=self.command_timeout)

            logger.info("Running tests...")
            result.tests_passed = self.run_tests(plan.test_commands)
            if result.tests_passed:
                self.store.update_task(task.id, status="done", actual_hours=actual_hours(plan))
                completed = True
        except Exception as e:
            self.stats.increment("errors")
            logger.exception("Error executing task: %s", task.title)
            result.error = str(e)

        if completed:
            self.applicator.discard_backups(plan.changes)
            self.stats.increment("tasks_completed")
            result.status = "done"
            logger.info("Task completed successfully: %s", task.title)
            return result

        result.rollback = self.applicator.rollback(applied)
        applied_ids = {id(c) for c in applied}
        self.applicator.discard_backups([c for c in plan.changes if id(c) not in applied_ids])
        if not result.rollback.complete:
            logger.error(
                "Rollback incomplete for %s: %d skipped, %d failed",
                task.title, len(result.rollback.skipped), len(result.rollback.failed),
            )
        try:
            self.store.update_task(task.id, status="blocked")
        except Exception:
            logger.exception("Failed to mark task as blocked: %s", task.id)
        result.status = "blocked"
        if result.error is None:
            logger.error("Task blocked due to test failures: %s", task.title)
        return result

    def run_tests(self, test_commands: list[str]) -> bool:
        """True when every test command exits zero."""
        for command in test_commands:
            if command == "npm test" and not self.has_test_script():
                logger.info("No test script in %s, skipping: %s", self.manifest_name, command)
                continue
            try:
                self.runner.run(command, cwd=self.project_root, timeout=self.command_timeout)
            except CommandError as e:
                logger.error("Test failed: %s", e)
                return False
        return True

    def has_test_script(self) -> bool:
        manifest = self.project_root / self.manifest_name
        if not self.files.exists(manifest):
            return False
        try:
            data = json.loads(self.files.read_text(manifest))
        except ValueError:
            logger.warning("Could not parse %s", manifest)
            return False
        return bool(data.get("scripts", {}).get("test"))
