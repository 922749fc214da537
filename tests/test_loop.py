"""Tests for the autonomous agent loop."""

import json
import logging
import tempfile
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from task_manager.agent import loop as loop_mod
from task_manager.agent.errors import ValidationError
from task_manager.agent.loop import AutonomousAgent
from task_manager.agent.models import AgentConfig
from task_manager.agent.scanner import QuickScan
from task_manager.db.models import TaskQuery
from task_manager.db.store import TaskStore
from task_manager.integrations.shell import CommandResult


class FakeRunner:
    def __init__(self):
        self.commands = []

    def run(self, command, cwd, timeout=None):
        self.commands.append(command)
        return CommandResult(stdout="", stderr="")


class FakeChannel:
    def __init__(self, answer=True):
        self.answer = answer
        self.asked = 0

    def confirm(self, prompt_text, default=False):
        self.asked += 1
        return self.answer


@pytest.fixture
def workspace():
    with tempfile.TemporaryDirectory() as tmp:
        workspace = Path(tmp)
        root = workspace / "debt-settler"
        root.mkdir()
        (root / "package.json").write_text(json.dumps({"dependencies": {"expo": "~50.0.0"}}))
        (root / "App.tsx").write_text("export default function App() { return null; }")
        with TaskStore(workspace / "tm.db") as store:
            store.create_project("debt-settler", "Debt Settler")
            yield workspace, root, store


def _agent(workspace, store, auto_approve=False, channel=None, concurrent=2, sleep=0.0):
    config = AgentConfig(
        workspace_root=workspace,
        target_project="debt-settler",
        auto_approve=auto_approve,
        max_concurrent_tasks=concurrent,
    )
    return AutonomousAgent(
        config,
        store,
        runner=FakeRunner(),
        channel=channel or FakeChannel(),
        idle_sleep=sleep,
        busy_sleep=sleep,
        skip_sleep=sleep,
        error_sleep=sleep,
    )


def _structure_task(store):
    return store.create_task(
        title="Setup React Native Project Structure",
        project_id="debt-settler",
        type="improvement",
        priority="high",
    )


class TestValidateProject:
    def test_valid(self, workspace):
        ws, _, store = workspace
        _agent(ws, store).validate_project()

    def test_missing_directory(self, workspace):
        ws, root, store = workspace
        config = AgentConfig(workspace_root=ws, target_project="nope")
        with pytest.raises(ValidationError, match="not found"):
            AutonomousAgent(config, store).validate_project()

    def test_missing_manifest(self, workspace):
        ws, root, store = workspace
        (root / "package.json").unlink()
        with pytest.raises(ValidationError, match="package.json"):
            _agent(ws, store).validate_project()

    def test_non_expo_only_warns(self, workspace, caplog):
        ws, root, store = workspace
        (root / "package.json").write_text(json.dumps({"dependencies": {"react": "18"}}))
        _agent(ws, store).validate_project()
        assert "Expo" in caplog.text


class TestRunIteration:
    def test_auto_approved_low_risk_executes_without_asking(self, workspace):
        ws, root, store = workspace
        channel = FakeChannel(answer=False)
        agent = _agent(ws, store, auto_approve=True, channel=channel)
        task = _structure_task(store)

        assert agent.run_iteration() == loop_mod.EXECUTED
        assert channel.asked == 0
        assert store.get_task(task.id).status == "done"
        assert (root / "src/screens/index.ts").exists()
        assert agent.stats.tasks_completed == 1

    def test_rejected_task_is_skipped(self, workspace):
        ws, root, store = workspace
        channel = FakeChannel(answer=False)
        agent = _agent(ws, store, channel=channel)
        task = _structure_task(store)

        assert agent.run_iteration() == loop_mod.SKIPPED
        assert channel.asked == 1
        assert store.get_task(task.id).status == "todo"
        assert not (root / "src").exists()

    def test_highest_priority_first(self, workspace):
        ws, _, store = workspace
        agent = _agent(ws, store, auto_approve=True)
        store.create_task(title="Low chore", project_id="debt-settler", priority="low")
        urgent = store.create_task(title="Urgent chore", project_id="debt-settler", priority="critical")
        assert agent.next_task().id == urgent.id

    def test_at_capacity_does_not_fetch(self, workspace):
        ws, _, store = workspace
        agent = _agent(ws, store, concurrent=1)
        _structure_task(store)
        agent.in_flight.add("something-else")
        with patch.object(agent, "next_task") as next_task:
            assert agent.run_iteration() == loop_mod.AT_CAPACITY
        next_task.assert_not_called()

    def test_idle_when_nothing_changed(self, workspace):
        ws, _, store = workspace
        agent = _agent(ws, store)
        with patch.object(agent.scanner, "scan", return_value=QuickScan()):
            assert agent.run_iteration() == loop_mod.IDLE
        assert agent.stats.analysis_runs == 0

    def test_analyzes_when_scan_finds_changes(self, workspace):
        ws, _, store = workspace
        agent = _agent(ws, store)
        with patch.object(agent.scanner, "scan", return_value=QuickScan(status_changed=True)):
            assert agent.run_iteration() == loop_mod.ANALYZED
        assert agent.stats.analysis_runs == 1
        assert store.get_tasks(TaskQuery(statuses=["todo"]))

    def test_analysis_without_new_tasks_is_idle(self, workspace):
        ws, _, store = workspace
        agent = _agent(ws, store)
        agent.engine.analyze()
        for task in store.get_tasks():
            store.update_task(task.id, status="cancelled")
        with patch.object(agent.scanner, "scan", return_value=QuickScan(status_changed=True)):
            assert agent.run_iteration() == loop_mod.IDLE
        assert agent.stats.analysis_runs == 2

    def test_store_failure_treated_as_no_task(self, workspace, caplog):
        ws, _, store = workspace
        agent = _agent(ws, store)
        with patch.object(store, "get_tasks", side_effect=RuntimeError("locked")):
            assert agent.next_task() is None
        assert "Failed to get next task" in caplog.text


class TestLifecycle:
    def test_loop_counts_errors_and_continues(self, workspace):
        ws, _, store = workspace
        agent = _agent(ws, store)
        calls = []

        def iteration():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            agent.stop()
            return loop_mod.IDLE

        agent.run_iteration = iteration
        agent._run_loop()
        assert len(calls) == 2
        assert agent.stats.errors == 1

    def test_stop_is_idempotent(self, workspace, caplog):
        ws, _, store = workspace
        agent = _agent(ws, store)
        with caplog.at_level(logging.INFO):
            agent.stop()
            agent.stop()
        assert caplog.text.count("Autonomous agent stopped") == 1
        assert not agent.running

    def test_start_rejects_invalid_project(self, workspace):
        ws, root, store = workspace
        (root / "package.json").unlink()
        agent = _agent(ws, store)
        with pytest.raises(ValidationError):
            agent.start()
        assert not agent.running

    def test_start_runs_until_stopped(self, workspace):
        ws, root, store = workspace
        agent = _agent(ws, store, auto_approve=True, sleep=0.01)
        agent.scanner.scan = lambda: QuickScan()

        thread = threading.Thread(target=agent.start)
        thread.start()
        try:
            deadline = time.monotonic() + 10
            while time.monotonic() < deadline:
                if agent.stats.tasks_completed == 3:
                    break
                time.sleep(0.05)
        finally:
            agent.stop()
            thread.join(timeout=10)

        assert not thread.is_alive()
        done = store.get_tasks(TaskQuery(statuses=["done"]))
        assert {t.title for t in done} == {
            "Setup React Native Project Structure",
            "Setup React Navigation",
            "Setup Firebase for React Native",
        }
        assert agent.stats.tasks_generated == 3
        assert agent.stats.tasks_completed == 3
        assert len(agent.in_flight) == 0
        assert "AppNavigator" in (root / "App.tsx").read_text()
