"""Tests for the analysis engine and the quick scanner."""

import json
import os
import tempfile
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from task_manager.agent.analysis import AnalysisEngine, status_document_tasks
from task_manager.agent.models import AgentConfig, AgentStats
from task_manager.agent.scanner import QuickScan, QuickScanner
from task_manager.db.models import TaskQuery
from task_manager.db.store import TaskStore
from task_manager.integrations.files import LocalFileSystem
from task_manager.integrations.git import GitError

STATUS_DOC = """# Debt Settler

## Phase 1: MVP
- [ ] Firebase Setup
- [ ] Authentication
"""


@pytest.fixture
def workspace():
    with tempfile.TemporaryDirectory() as tmp:
        workspace = Path(tmp)
        root = workspace / "debt-settler"
        root.mkdir()
        (root / "package.json").write_text(
            json.dumps({
                "dependencies": {"expo": "~50.0.0", "react": "18.2.0"},
                "devDependencies": {"jest": "^29.0.0"},
            })
        )
        (root / "App.tsx").write_text("export default function App() { return null; }")
        with TaskStore(workspace / "tm.db") as store:
            store.create_project("debt-settler", "Debt Settler App")
            yield workspace, root, store


def _engine(workspace, store, target="debt-settler"):
    config = AgentConfig(workspace_root=workspace, target_project=target)
    return AnalysisEngine(store, LocalFileSystem(), config, AgentStats())


class TestStructure:
    def test_missing_directories(self, workspace):
        ws, root, store = workspace
        (root / "src" / "screens").mkdir(parents=True)
        structure = _engine(ws, store).inspect_structure()
        assert structure.has_app_tsx
        assert not structure.has_app_json
        assert structure.has_src_dir
        assert structure.missing_directories == ["src/components", "src/services", "src/types"]

    def test_markers_detected(self, workspace):
        ws, root, store = workspace
        (root / "App.tsx").write_text(
            "import { NavigationContainer } from '@react-navigation/native';\n"
            "import '@react-native-firebase/app';\n"
        )
        structure = _engine(ws, store).inspect_structure()
        assert structure.has_navigation_setup
        assert structure.has_backend_setup

    def test_dependency_names(self, workspace):
        ws, _, store = workspace
        assert _engine(ws, store).dependency_names() == ["expo", "jest", "react"]


class TestAnalyze:
    def test_generates_prioritized_tasks(self, workspace):
        ws, root, store = workspace
        (root / "PROJECT_STATUS.md").write_text(STATUS_DOC)
        engine = _engine(ws, store)

        result = engine.analyze()

        assert result.project_id == "debt-settler"
        assert result.created == [
            "Setup React Native Project Structure",
            "Setup React Navigation",
            "Setup Firebase for React Native",
            "Implement Authentication System",
            "Build Transaction Recording Feature",
        ]
        assert engine.stats.analysis_runs == 1
        assert engine.stats.tasks_generated == 5

        tasks = {t.title: t for t in store.get_tasks(TaskQuery(project_id="debt-settler"))}
        navigation = tasks["Setup React Navigation"]
        assert navigation.generator == "navigation"
        assert navigation.estimated_hours == 4
        assert navigation.ai_context.commands
        assert "auto-generated" in navigation.tags
        assert tasks["Setup Firebase for React Native"].type == "deployment"
        assert tasks["Setup React Native Project Structure"].generator == "project_structure"
        assert tasks["Build Transaction Recording Feature"].generator == "none"

    def test_second_pass_creates_nothing(self, workspace):
        ws, _, store = workspace
        engine = _engine(ws, store)
        first = engine.analyze()
        second = engine.analyze()
        assert first.created
        assert second.created == []
        assert sorted(second.skipped) == sorted(first.created)
        assert engine.stats.analysis_runs == 2
        assert engine.stats.tasks_generated == len(first.created)

    def test_dedup_is_case_insensitive(self, workspace):
        ws, _, store = workspace
        store.create_task(title="SETUP REACT NAVIGATION", project_id="debt-settler")
        result = _engine(ws, store).analyze()
        assert "Setup React Navigation" in result.skipped
        assert "Setup React Navigation" not in result.created

    def test_complete_project_generates_nothing(self, workspace):
        ws, root, store = workspace
        for directory in ("src/screens", "src/components", "src/services", "src/types"):
            (root / directory).mkdir(parents=True, exist_ok=True)
        (root / "App.tsx").write_text(
            "import { NavigationContainer } from '@react-navigation/native';\n"
            "import { FirebaseService } from './src/services/firebase';\n"
        )
        result = _engine(ws, store).analyze()
        assert result.candidates == []
        assert result.created == []

    def test_unknown_project_warns(self, workspace, caplog):
        ws, _, store = workspace
        result = _engine(ws, store, target="other-app").analyze()
        assert result.project_id is None
        assert result.created == []
        assert "not found" in caplog.text

    def test_create_failure_counts_as_not_created(self, workspace):
        ws, _, store = workspace
        engine = _engine(ws, store)
        with patch.object(store, "create_task", side_effect=ValueError("disk full")):
            result = engine.analyze()
        assert result.created == []
        assert engine.stats.tasks_generated == 0
        assert engine.stats.errors == 0

    def test_failed_pass_counts_error_and_raises(self, workspace):
        ws, _, store = workspace
        engine = _engine(ws, store)
        with patch.object(store, "find_project", side_effect=RuntimeError("db gone")):
            with pytest.raises(RuntimeError):
                engine.analyze()
        assert engine.stats.errors == 1
        assert engine.stats.analysis_runs == 1


class TestStatusDocument:
    def test_needs_both_markers(self):
        assert status_document_tasks("## Phase 1: MVP") == []
        assert len(status_document_tasks(STATUS_DOC)) == 2


class TestQuickScan:
    def test_potential_tasks(self):
        scan = QuickScan(status_changed=True, recent_changes=6, dependency_changes=False)
        assert scan.potential_tasks == 3

    def test_nothing_changed(self):
        assert QuickScan().potential_tasks == 0

    @patch("task_manager.agent.scanner.git.changed_files")
    def test_status_file_changes_once(self, mock_changed, workspace):
        mock_changed.return_value = []
        _, root, _ = workspace
        (root / "PROJECT_STATUS.md").write_text(STATUS_DOC)
        scanner = QuickScanner(LocalFileSystem(), root)

        assert scanner.scan().status_changed is True
        assert scanner.scan().status_changed is False

        future = time.time() + 60
        os.utime(root / "PROJECT_STATUS.md", (future, future))
        assert scanner.scan().status_changed is True

    @patch("task_manager.agent.scanner.git.changed_files")
    def test_missing_files_are_unchanged(self, mock_changed, workspace):
        mock_changed.return_value = ["src/a.ts"]
        _, root, _ = workspace
        scan = QuickScanner(LocalFileSystem(), root).scan()
        assert scan.status_changed is False
        assert scan.dependency_changes is False
        assert scan.recent_changes == 1
        assert scan.potential_tasks == 1

    @patch("task_manager.agent.scanner.git.changed_files")
    def test_git_failure_means_no_changes(self, mock_changed, workspace):
        mock_changed.side_effect = GitError("not a git repository")
        _, root, _ = workspace
        assert QuickScanner(LocalFileSystem(), root).scan().recent_changes == 0

    @patch("task_manager.agent.scanner.git.changed_files")
    def test_unexpected_failure_reports_zero(self, mock_changed, workspace):
        mock_changed.side_effect = RuntimeError("boom")
        _, root, _ = workspace
        assert QuickScanner(LocalFileSystem(), root).scan().potential_tasks == 0
