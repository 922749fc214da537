"""Inspect the target project and turn what is missing into new tasks."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from task_manager.agent.models import AgentConfig, AgentStats
from task_manager.db.models import PRIORITY_WEIGHTS, AIContext, GeneratorKind, TaskQuery

logger = logging.getLogger(__name__)

ESSENTIAL_DIRECTORIES = ("src", "src/screens", "src/components", "src/services", "src/types")
NAVIGATION_MARKERS = ("@react-navigation", "NavigationContainer")
BACKEND_MARKERS = ("firebase", "@react-native-firebase")
STATUS_DOCUMENT = "PROJECT_STATUS.md"
STATUS_MARKERS = ("Phase 1: MVP", "Firebase Setup")


@dataclass
class ProjectStructure:
    has_app_tsx: bool = False
    has_app_json: bool = False
    has_src_dir: bool = False
    has_screens_dir: bool = False
    has_components_dir: bool = False
    has_services_dir: bool = False
    has_navigation_setup: bool = False
    has_backend_setup: bool = False
    missing_directories: list[str] = field(default_factory=list)


@dataclass
class TaskDraft:
    """A task the engine proposes, before it is written to the store."""

    title: str
    description: str
    type: str
    priority: str = "high"
    estimated_hours: float | None = None
    tags: list[str] = field(default_factory=list)
    ai_context: AIContext = field(default_factory=AIContext)
    generator: GeneratorKind = GeneratorKind.NONE

    def to_fields(self, project_id: str) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "project_id": project_id,
            "priority": self.priority,
            "type": self.type,
            "estimated_hours": self.estimated_hours,
            "tags": list(self.tags),
            "ai_context": self.ai_context,
            "generator": self.generator,
        }


@dataclass
class AnalysisResult:
    project_id: str | None
    structure: ProjectStructure
    dependencies: list[str] = field(default_factory=list)
    candidates: list[TaskDraft] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def project_structure_task(missing: list[str]) -> TaskDraft:
    return TaskDraft(
        title="Setup React Native Project Structure",
        description=f"Create missing directories: {', '.join(missing)}",
        type="improvement",
        tags=["auto-generated", "project-structure", "react-native"],
        ai_context=AIContext(
            code_files=list(missing),
            commands=["mkdir -p src/screens src/components src/services src/types src/utils"],
            test_criteria=["Directory structure created", "Project follows React Native conventions"],
            references=["https://docs.expo.dev/guides/project-structure/"],
        ),
        generator=GeneratorKind.PROJECT_STRUCTURE,
    )


def navigation_task() -> TaskDraft:
    return TaskDraft(
        title="Setup React Navigation",
        description="Install and configure React Navigation for the Expo app with screen navigation",
        type="feature",
        estimated_hours=4,
        tags=["auto-generated", "navigation", "react-native"],
        ai_context=AIContext(
            code_files=["App.tsx", "src/navigation/AppNavigator.tsx"],
            commands=[
                "npm install @react-navigation/native @react-navigation/stack",
                "npx expo install react-native-screens react-native-safe-area-context",
            ],
            test_criteria=["Navigation working", "Screen transitions work", "App runs without errors"],
            references=["https://reactnavigation.org/docs/getting-started/"],
        ),
        generator=GeneratorKind.NAVIGATION,
    )


def backend_task() -> TaskDraft:
    return TaskDraft(
        title="Setup Firebase for React Native",
        description="Install and configure Firebase for authentication and Firestore",
        type="deployment",
        estimated_hours=6,
        tags=["auto-generated", "firebase", "backend"],
        ai_context=AIContext(
            code_files=["src/services/firebase.ts", "firebase.json", "app.json"],
            commands=[
                "npm install @react-native-firebase/app @react-native-firebase/auth "
                "@react-native-firebase/firestore",
            ],
            test_criteria=["Firebase connected", "Authentication working", "Firestore accessible"],
            references=["https://rnfirebase.io/"],
        ),
        generator=GeneratorKind.BACKEND_CONFIG,
    )


def status_document_tasks(content: str) -> list[TaskDraft]:
    """Milestone tasks named by the project's status document."""
    if not all(marker in content for marker in STATUS_MARKERS):
        return []
    return [
        TaskDraft(
            title="Implement Authentication System",
            description=(
                "Create login and register screens with Firebase authentication, "
                "user session management and a profile setup flow"
            ),
            type="feature",
            estimated_hours=16,
            tags=["auto-generated", "authentication", "mvp"],
            ai_context=AIContext(
                code_files=[
                    "src/screens/auth/LoginScreen.tsx",
                    "src/screens/auth/RegisterScreen.tsx",
                    "src/services/auth.ts",
                    "src/contexts/AuthContext.tsx",
                ],
                commands=["npm install @react-native-firebase/auth"],
                test_criteria=[
                    "User can register with email and password",
                    "User can log in",
                    "Session persists across app restarts",
                    "Invalid credentials show an error",
                ],
                references=["https://rnfirebase.io/auth/usage"],
            ),
            generator=GeneratorKind.AUTHENTICATION,
        ),
        TaskDraft(
            title="Build Transaction Recording Feature",
            description=(
                "Create transaction forms, list views, category selection and CRUD "
                "operations for expense tracking"
            ),
            type="feature",
            estimated_hours=20,
            tags=["auto-generated", "transactions", "mvp"],
            ai_context=AIContext(
                code_files=[
                    "src/screens/transactions/AddTransactionScreen.tsx",
                    "src/screens/transactions/TransactionListScreen.tsx",
                    "src/components/TransactionForm.tsx",
                    "src/services/transactions.ts",
                    "src/types/transaction.ts",
                ],
                commands=["npm install react-native-picker-select"],
                test_criteria=[
                    "Can add new transactions",
                    "Transaction list displays correctly",
                    "Data persists in Firestore",
                ],
            ),
        ),
    ]


class AnalysisEngine:
    def __init__(self, store, files, config: AgentConfig, stats: AgentStats):
        self.store = store
        self.files = files
        self.config = config
        self.stats = stats

    @property
    def project_path(self) -> Path:
        return self.config.project_path

    def analyze(self) -> AnalysisResult:
        """Run one analysis pass and create the tasks it finds missing."""
        self.stats.increment("analysis_runs")
        try:
            result = self._analyze()
        except Exception:
            self.stats.increment("errors")
            logger.exception("Analysis failed")
            raise
        self.stats.increment("tasks_generated", len(result.created))
        if result.created:
            logger.info("Generated %d new task(s)", len(result.created))
        else:
            logger.info("Analysis complete, no new tasks")
        return result

    def _analyze(self) -> AnalysisResult:
        logger.info("Analyzing project: %s", self.project_path)
        structure = self.inspect_structure()
        result = AnalysisResult(
            project_id=None,
            structure=structure,
            dependencies=self.dependency_names(),
        )

        project = self.store.find_project(self.config.target_project)
        if project is None:
            logger.warning("Project '%s' not found in task store", self.config.target_project)
            return result
        result.project_id = project.id

        result.candidates = self.prioritize(self.candidates(structure))
        existing = {
            task.title.lower()
            for task in self.store.get_tasks(TaskQuery(project_id=project.id))
        }
        for draft in result.candidates:
            if draft.title.lower() in existing:
                logger.debug("Task already exists, skipping: %s", draft.title)
                result.skipped.append(draft.title)
                continue
            if self.create(draft, project.id):
                existing.add(draft.title.lower())
                result.created.append(draft.title)
        return result

    def create(self, draft: TaskDraft, project_id: str) -> bool:
        try:
            task = self.store.create_task(**draft.to_fields(project_id))
        except Exception:
            logger.exception("Failed to create task: %s", draft.title)
            return False
        logger.info("Created task: %s (%s)", task.title, task.id)
        return True

    def inspect_structure(self) -> ProjectStructure:
        root = self.project_path
        structure = ProjectStructure(
            has_app_tsx=self.files.exists(root / "App.tsx"),
            has_app_json=self.files.exists(root / "app.json"),
            has_src_dir=self.files.is_dir(root / "src"),
            has_screens_dir=self.files.is_dir(root / "src/screens"),
            has_components_dir=self.files.is_dir(root / "src/components"),
            has_services_dir=self.files.is_dir(root / "src/services"),
        )
        if structure.has_app_tsx:
            content = self.files.read_text(root / "App.tsx")
            structure.has_navigation_setup = any(m in content for m in NAVIGATION_MARKERS)
            structure.has_backend_setup = any(m in content for m in BACKEND_MARKERS)
        structure.missing_directories = [
            d for d in ESSENTIAL_DIRECTORIES if not self.files.is_dir(root / d)
        ]
        return structure

    def dependency_names(self) -> list[str]:
        manifest = self.project_path / self.config.manifest_name
        if not self.files.exists(manifest):
            return []
        try:
            data = json.loads(self.files.read_text(manifest))
        except ValueError:
            logger.warning("Could not parse %s", manifest)
            return []
        names = set(data.get("dependencies", {})) | set(data.get("devDependencies", {}))
        return sorted(names)

    def candidates(self, structure: ProjectStructure) -> list[TaskDraft]:
        drafts = []
        if structure.missing_directories:
            drafts.append(project_structure_task(structure.missing_directories))
        if not structure.has_navigation_setup:
            drafts.append(navigation_task())
        if not structure.has_backend_setup:
            drafts.append(backend_task())

        status_path = self.project_path / STATUS_DOCUMENT
        if self.files.exists(status_path):
            drafts.extend(status_document_tasks(self.files.read_text(status_path)))
        logger.debug("Found %d candidate task(s)", len(drafts))
        return drafts

    @staticmethod
    def prioritize(drafts: list[TaskDraft]) -> list[TaskDraft]:
        return sorted(drafts, key=lambda d: PRIORITY_WEIGHTS[d.priority], reverse=True)
