"""Turn a task into a concrete implementation plan.

Planning is pure: generators build CodeChange objects from static templates and
nothing touches the disk until the executor applies the plan.
"""

import logging
from collections.abc import Callable

from task_manager.agent import templates
from task_manager.agent.models import CodeChange, TaskImplementation
from task_manager.agent.risk import assess_risk
from task_manager.core.tasks import infer_generator
from task_manager.db.models import GeneratorKind, Task

logger = logging.getLogger(__name__)

DEFAULT_TEST_COMMANDS = ("npm test",)
MAX_ESTIMATE_MINUTES = 240

ESSENTIAL_DIRECTORIES = (
    "src/screens",
    "src/components",
    "src/services",
    "src/types",
    "src/utils",
    "src/contexts",
    "src/navigation",
)


def navigation_changes() -> list[CodeChange]:
    return [
        CodeChange(
            file_path="src/navigation/AppNavigator.tsx",
            content=templates.app_navigator(),
            change_type="create",
            reason="Create main app navigator with React Navigation",
            risk_level="low",
        ),
        CodeChange(
            file_path="App.tsx",
            content=templates.app_entry_with_navigation(),
            change_type="modify",
            reason="Update App.tsx to use React Navigation",
            risk_level="low",
        ),
    ]


def authentication_changes() -> list[CodeChange]:
    return [
        CodeChange(
            file_path="src/services/auth.ts",
            content=templates.auth_service(),
            change_type="create",
            reason="Create Firebase authentication service",
            risk_level="medium",
        ),
        CodeChange(
            file_path="src/contexts/AuthContext.tsx",
            content=templates.auth_context(),
            change_type="create",
            reason="Create authentication context for state management",
        ),
        CodeChange(
            file_path="src/screens/auth/LoginScreen.tsx",
            content=templates.login_screen(),
            change_type="create",
            reason="Create login screen component",
        ),
        CodeChange(
            file_path="src/screens/auth/RegisterScreen.tsx",
            content=templates.register_screen(),
            change_type="create",
            reason="Create registration screen component",
        ),
    ]


def project_structure_changes() -> list[CodeChange]:
    return [
        CodeChange(
            file_path=f"{directory}/index.ts",
            content=templates.directory_index(directory),
            change_type="create",
            reason=f"Create {directory} directory structure",
        )
        for directory in ESSENTIAL_DIRECTORIES
    ]


def backend_config_changes() -> list[CodeChange]:
    return [
        CodeChange(
            file_path="src/services/firebase.ts",
            content=templates.backend_config(),
            change_type="create",
            reason="Create Firebase configuration",
            risk_level="medium",
        )
    ]


GENERATORS: dict[GeneratorKind, Callable[[], list[CodeChange]]] = {
    GeneratorKind.NONE: list,
    GeneratorKind.NAVIGATION: navigation_changes,
    GeneratorKind.AUTHENTICATION: authentication_changes,
    GeneratorKind.PROJECT_STRUCTURE: project_structure_changes,
    GeneratorKind.BACKEND_CONFIG: backend_config_changes,
}


def resolve_generator(task: Task) -> GeneratorKind:
    """The generator stored on the task, or one inferred for tasks created without it."""
    kind = GeneratorKind(task.generator or GeneratorKind.NONE.value)
    if kind is GeneratorKind.NONE:
        return infer_generator(task.type, task.title)
    return kind


def estimate_minutes(task: Task, changes: list[CodeChange]) -> int:
    base = max((task.estimated_hours or 0) * 60, 60)
    return int(min(base + 10 * len(changes), MAX_ESTIMATE_MINUTES))


class ImplementationPlanner:
    def __init__(self, test_commands: tuple[str, ...] = DEFAULT_TEST_COMMANDS):
        self.test_commands = tuple(test_commands)

    def plan(self, task: Task) -> TaskImplementation:
        logger.info("Generating implementation plan for: %s", task.title)

        kind = resolve_generator(task)
        changes = GENERATORS[kind]()
        if kind is GeneratorKind.NONE:
            logger.debug("No generator for task type '%s': %s", task.type, task.title)

        plan = TaskImplementation(
            task=task,
            changes=changes,
            commands=list(task.ai_context.commands),
            test_commands=list(self.test_commands),
            risk=assess_risk(changes),
            estimated_minutes=estimate_minutes(task, changes),
        )
        logger.debug(
            "Implementation plan: %d changes, risk: %s, time: %dmin",
            len(plan.changes), plan.risk, plan.estimated_minutes,
        )
        return plan
