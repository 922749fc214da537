"""Tests for the task executor."""

import json
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from task_manager.agent.changes import ChangeApplicator
from task_manager.agent.errors import CommandError
from task_manager.agent.executor import TaskExecutor, check_transition
from task_manager.agent.models import (
    DEFAULT_ALLOWED_PATTERNS,
    DEFAULT_FORBIDDEN_PATTERNS,
    AgentStats,
    CodeChange,
    InFlightTasks,
)
from task_manager.agent.planner import ImplementationPlanner
from task_manager.db.models import AIContext
from task_manager.db.store import TaskStore
from task_manager.integrations.files import LocalFileSystem
from task_manager.integrations.shell import CommandResult


class FakeRunner:
    """Records commands; fails any command listed in ``failing``."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.commands = []

    def run(self, command, cwd, timeout=None):
        self.commands.append(command)
        if command in self.failing:
            raise CommandError(f"Command failed: {command}", command=command, returncode=1)
        return CommandResult(stdout="", stderr="")


@pytest.fixture
def env():
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp) / "debt-settler"
        root.mkdir()
        (root / "App.tsx").write_text("original app")
        (root / "package.json").write_text(
            json.dumps({"dependencies": {"expo": "~50.0.0"}, "scripts": {"test": "jest"}})
        )
        with TaskStore(Path(tmp) / "tm.db") as store:
            store.create_project("demo", "Debt Settler")
            yield store, root


def _executor(store, root, runner, limit=2):
    files = LocalFileSystem()
    applicator = ChangeApplicator(
        files, root, DEFAULT_ALLOWED_PATTERNS, DEFAULT_FORBIDDEN_PATTERNS
    )
    return TaskExecutor(store, applicator, runner, root, AgentStats(), InFlightTasks(limit), files=files)


def _navigation_plan(store, commands=("npm install @react-navigation/native",)):
    task = store.create_task(
        title="Setup React Navigation",
        project_id="demo",
        priority="high",
        estimated_hours=4,
        ai_context=AIContext(commands=list(commands)),
    )
    return ImplementationPlanner().plan(task)


class TestTransitions:
    def test_allowed(self):
        check_transition("todo", "in_progress")
        check_transition("in_progress", "done")
        check_transition("in_progress", "blocked")

    @pytest.mark.parametrize("current,new", [
        ("todo", "done"),
        ("done", "todo"),
        ("in_progress", "cancelled"),
        ("blocked", "in_progress"),
    ])
    def test_refused(self, current, new):
        with pytest.raises(ValueError):
            check_transition(current, new)


class TestExecute:
    def test_success(self, env):
        store, root = env
        runner = FakeRunner()
        executor = _executor(store, root, runner)
        plan = _navigation_plan(store)

        result = executor.execute(plan)

        assert result.success
        assert result.applied == ["src/navigation/AppNavigator.tsx", "App.tsx"]
        assert runner.commands == ["npm install @react-navigation/native", "npm test"]
        assert (root / "src/navigation/AppNavigator.tsx").exists()
        assert "AppNavigator" in (root / "App.tsx").read_text()
        assert list(root.glob("*.backup-*")) == []

        task = store.get_task(plan.task.id)
        assert task.status == "done"
        assert task.actual_hours == 4.0
        assert executor.stats.tasks_completed == 1
        assert executor.stats.code_changes_applied == 2
        assert len(executor.in_flight) == 0

    def test_only_agent_statuses_written(self, env):
        store, root = env
        executor = _executor(store, root, FakeRunner())
        plan = _navigation_plan(store)
        executor.execute(plan)
        changes = [
            (e.old_value, e.new_value)
            for e in store.get_task_events(plan.task.id)
            if e.event_type == "status_changed"
        ]
        assert changes == [("todo", "in_progress"), ("in_progress", "done")]

    def test_failing_tests_block_and_revert(self, env):
        store, root = env
        executor = _executor(store, root, FakeRunner(failing={"npm test"}))
        plan = _navigation_plan(store)

        result = executor.execute(plan)

        assert result.status == "blocked"
        assert result.error is None
        assert result.rollback.complete
        assert (root / "App.tsx").read_text() == "original app"
        assert not (root / "src/navigation/AppNavigator.tsx").exists()
        assert list(root.glob("*.backup-*")) == []
        assert store.get_task(plan.task.id).status == "blocked"
        assert executor.stats.tasks_completed == 0
        assert executor.stats.errors == 0
        assert len(executor.in_flight) == 0

    def test_failing_command_counts_as_error(self, env):
        store, root = env
        executor = _executor(store, root, FakeRunner(failing={"npm install broken"}))
        plan = _navigation_plan(store, commands=["npm install broken"])

        result = executor.execute(plan)

        assert result.status == "blocked"
        assert "npm install broken" in result.error
        assert executor.stats.errors == 1
        assert (root / "App.tsx").read_text() == "original app"

    def test_forbidden_change_skipped(self, env):
        store, root = env
        executor = _executor(store, root, FakeRunner())
        task = store.create_task(title="Write docs", project_id="demo", type="documentation")
        plan = ImplementationPlanner().plan(task)
        plan.changes = [CodeChange(file_path=".env", content="KEY=1", change_type="create")]

        result = executor.execute(plan)

        assert result.success
        assert result.applied == []
        assert not (root / ".env").exists()
        assert executor.stats.code_changes_applied == 0

    def test_npm_test_skipped_without_script(self, env):
        store, root = env
        (root / "package.json").write_text(json.dumps({"dependencies": {"expo": "~50.0.0"}}))
        runner = FakeRunner(failing={"npm test"})
        executor = _executor(store, root, runner)
        plan = _navigation_plan(store, commands=[])

        assert executor.execute(plan).success
        assert runner.commands == []

    def test_failed_done_update_blocks_and_reverts(self, env):
        store, root = env
        executor = _executor(store, root, FakeRunner())
        plan = _navigation_plan(store)
        real_update = store.update_task

        def update_task(task_id, **fields):
            if fields.get("status") == "done":
                raise OSError("disk full")
            return real_update(task_id, **fields)

        with patch.object(store, "update_task", side_effect=update_task):
            result = executor.execute(plan)

        assert result.status == "blocked"
        assert "disk full" in result.error
        assert result.rollback.complete
        assert store.get_task(plan.task.id).status == "blocked"
        assert (root / "App.tsx").read_text() == "original app"
        assert not (root / "src/navigation/AppNavigator.tsx").exists()
        assert list(root.glob("*.backup-*")) == []
        assert executor.stats.errors == 1
        assert executor.stats.tasks_completed == 0

    def test_refuses_task_not_in_todo(self, env):
        store, root = env
        executor = _executor(store, root, FakeRunner())
        plan = _navigation_plan(store)
        plan.task.status = "done"
        with pytest.raises(ValueError):
            executor.execute(plan)
        assert store.get_task(plan.task.id).status == "todo"

    def test_refuses_task_already_in_flight(self, env):
        store, root = env
        executor = _executor(store, root, FakeRunner())
        plan = _navigation_plan(store)
        executor.in_flight.add(plan.task.id)
        with pytest.raises(ValueError, match="already being executed"):
            executor.execute(plan)
        assert store.get_task(plan.task.id).status == "todo"


class TestInFlightTasks:
    def test_bounded(self):
        in_flight = InFlightTasks(limit=1)
        in_flight.add("a")
        assert in_flight.is_full()
        with pytest.raises(ValueError):
            in_flight.add("b")
        in_flight.discard("a")
        assert not in_flight.is_full()


class TestAgentStats:
    def test_counters_only_grow(self):
        stats = AgentStats()
        stats.increment("errors")
        stats.increment("tasks_generated", 3)
        assert stats.errors == 1
        assert stats.summary()["tasks_generated"] == 3
        with pytest.raises(ValueError):
            stats.increment("errors", -1)

    def test_reads_take_the_lock(self):
        stats = AgentStats()
        stats.increment("errors")
        stats._lock = MagicMock()
        assert stats.errors == 1
        stats._lock.__enter__.assert_called_once()

    def test_unknown_counter(self):
        with pytest.raises(KeyError):
            AgentStats().increment("coffees")
