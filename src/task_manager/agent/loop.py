"""The autonomous agent: analysis, planning, approval and execution in one loop."""

import json
import logging
import queue
import threading
from dataclasses import dataclass, field

from task_manager.agent.analysis import AnalysisEngine, AnalysisResult
from task_manager.agent.approval import ApprovalGate, ClickApprovalChannel
from task_manager.agent.changes import ChangeApplicator
from task_manager.agent.errors import ValidationError
from task_manager.agent.executor import TaskExecutor
from task_manager.agent.models import AgentConfig, AgentStats, InFlightTasks
from task_manager.agent.planner import ImplementationPlanner
from task_manager.agent.scanner import QuickScanner
from task_manager.db.models import Task, TaskQuery
from task_manager.integrations.files import LocalFileSystem
from task_manager.integrations.shell import CommandRunner

logger = logging.getLogger(__name__)

EXECUTED = "executed"
SKIPPED = "skipped"
IDLE = "idle"
ANALYZED = "analyzed"
AT_CAPACITY = "at_capacity"


@dataclass
class AnalysisRequest:
    """A message asking the analysis worker for one pass."""

    reason: str = "loop"
    done: threading.Event = field(default_factory=threading.Event)
    result: AnalysisResult | None = None
    error: Exception | None = None


class AutonomousAgent:
    def __init__(
        self,
        config: AgentConfig,
        store,
        runner=None,
        files=None,
        channel=None,
        idle_sleep: float = 15.0,
        busy_sleep: float = 30.0,
        skip_sleep: float = 5.0,
        error_sleep: float = 60.0,
    ):
        self.config = config
        self.store = store
        self.runner = runner or CommandRunner(default_timeout=config.command_timeout)
        self.files = files or LocalFileSystem()
        self.channel = channel or ClickApprovalChannel()
        self.error_sleep = error_sleep
        self._sleeps = {IDLE: idle_sleep, AT_CAPACITY: busy_sleep, SKIPPED: skip_sleep}

        self.stats = AgentStats()
        self.in_flight = InFlightTasks(limit=config.max_concurrent_tasks)
        self.planner = ImplementationPlanner()
        self.gate = ApprovalGate(config.auto_approve, self.channel)
        self.applicator = ChangeApplicator(
            self.files,
            config.project_path,
            allowed_patterns=config.allowed_patterns,
            forbidden_patterns=config.forbidden_patterns,
        )
        self.executor = TaskExecutor(
            store,
            self.applicator,
            self.runner,
            config.project_path,
            self.stats,
            self.in_flight,
            command_timeout=config.command_timeout,
            files=self.files,
            manifest_name=config.manifest_name,
        )
        self.engine = AnalysisEngine(store, self.files, config, self.stats)
        self.scanner = QuickScanner(self.files, config.project_path)

        self.running = False
        self._stop_event = threading.Event()
        self._requests: queue.Queue[AnalysisRequest | None] = queue.Queue()
        self._worker: threading.Thread | None = None
        self._timer: threading.Thread | None = None

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def validate_project(self):
        """Check the project directory and manifest. Raises ValidationError."""
        path = self.config.project_path
        if not self.files.is_dir(path):
            raise ValidationError(f"Project directory not found: {path}")

        manifest = path / self.config.manifest_name
        if not self.files.exists(manifest):
            raise ValidationError(
                f"{self.config.manifest_name} not found in project: {self.config.target_project}"
            )
        try:
            data = json.loads(self.files.read_text(manifest))
        except ValueError as e:
            raise ValidationError(f"Invalid {self.config.manifest_name}: {e}") from e

        if "expo" not in data.get("dependencies", {}) and "expo" not in data.get(
            "devDependencies", {}
        ):
            logger.warning("Project does not appear to be an Expo project")
        logger.info("Project validated: %s", self.config.target_project)

    def start(self):
        """Validate, analyze once, then run the execution loop until stop()."""
        logger.info("Starting autonomous agent")
        logger.info("Target project: %s", self.config.target_project)
        logger.info("Analysis interval: %g minutes", self.config.analysis_interval)
        logger.info("Auto-approve: %s", "yes" if self.config.auto_approve else "no")
        logger.info("Max concurrent tasks: %d", self.config.max_concurrent_tasks)

        self.validate_project()
        self.running = True
        self._stop_event.clear()
        self._requests = queue.Queue()

        logger.info("Performing initial analysis...")
        try:
            self.engine.analyze()
        except Exception:
            self.running = False
            raise

        self._worker = threading.Thread(
            target=self._analysis_worker, name="analysis-worker", daemon=True
        )
        self._worker.start()
        self._timer = threading.Thread(
            target=self._analysis_timer, name="analysis-timer", daemon=True
        )
        self._timer.start()
        logger.info("Autonomous agent is now running")

        try:
            self._run_loop()
        finally:
            self.stop()
            for thread in (self._worker, self._timer):
                thread.join(timeout=10)

    def stop(self):
        """Ask the agent to stop. A task that is executing runs to completion."""
        if self._stop_event.is_set():
            return
        logger.info("Stopping autonomous agent...")
        self._stop_event.set()
        self.running = False
        self._requests.put(None)
        self.log_stats()
        logger.info("Autonomous agent stopped")

    def log_stats(self):
        summary = self.stats.summary()
        logger.info("Agent statistics:")
        logger.info("  Runtime: %d minutes", summary["runtime_minutes"])
        logger.info("  Tasks completed: %d", summary["tasks_completed"])
        logger.info("  Tasks generated: %d", summary["tasks_generated"])
        logger.info("  Code changes applied: %d", summary["code_changes_applied"])
        logger.info("  Analysis runs: %d", summary["analysis_runs"])
        logger.info("  Errors: %d", summary["errors"])

    # ── Execution loop ───────────────────────────────────────────────────────

    def _run_loop(self):
        logger.info("Starting task execution loop...")
        while not self._stop_event.is_set():
            try:
                outcome = self.run_iteration()
            except Exception:
                self.stats.increment("errors")
                logger.exception("Error in task execution loop")
                self._stop_event.wait(self.error_sleep)
                continue
            delay = self._sleeps.get(outcome, 0)
            if delay:
                self._stop_event.wait(delay)

    def run_iteration(self) -> str:
        """Run one pass of the loop body and return its outcome."""
        if self.in_flight.is_full():
            logger.debug(
                "Max concurrent tasks reached (%d), waiting...", self.config.max_concurrent_tasks
            )
            return AT_CAPACITY

        task = self.next_task()
        if task is None:
            logger.info("No pending tasks found, running quick scan...")
            scan = self.scanner.scan()
            if scan.potential_tasks > 0:
                logger.info("Found %d potential task(s), analyzing...", scan.potential_tasks)
                request = self.request_analysis(wait=True)
                if request.result is not None and request.result.created:
                    return ANALYZED
            logger.info("No new tasks identified, waiting for changes...")
            return IDLE

        logger.info("Starting work on task: %s (ID: %s)", task.title, task.id)
        plan = self.planner.plan(task)
        if not self.gate.approve(plan):
            logger.info("Task skipped: %s", task.title)
            return SKIPPED

        self.executor.execute(plan)
        return EXECUTED

    def next_task(self) -> Task | None:
        """The highest-priority todo task, or None."""
        query = TaskQuery(statuses=["todo"], sort_by="priority", sort_order="desc", limit=1)
        try:
            tasks = self.store.get_tasks(query)
        except Exception:
            logger.exception("Failed to get next task")
            return None
        return tasks[0] if tasks else None

    # ── Analysis worker ──────────────────────────────────────────────────────

    def request_analysis(self, wait: bool = True, reason: str = "loop") -> AnalysisRequest:
        """Queue an analysis pass for the worker, optionally waiting for it.

        Before start() there is no worker, so the pass runs in the caller's thread.
        """
        request = AnalysisRequest(reason=reason)
        if self._worker is None or not self._worker.is_alive():
            self._handle_request(request)
            return request
        self._requests.put(request)
        if wait:
            # The worker exits on stop(), possibly before reaching this request
            while not request.done.wait(1.0):
                if not self._worker.is_alive():
                    break
        return request

    def _handle_request(self, request: AnalysisRequest):
        try:
            request.result = self.engine.analyze()
        except Exception as e:
            # The engine has already logged and counted the failure
            request.error = e
        finally:
            request.done.set()

    def _analysis_worker(self):
        while True:
            request = self._requests.get()
            if request is None:
                break
            self._handle_request(request)
            if request.error is not None and request.reason == "scheduled":
                logger.error("Scheduled analysis failed: %s", request.error)

    def _analysis_timer(self):
        interval = self.config.analysis_interval * 60
        logger.info(
            "Starting continuous monitoring (every %g minutes)", self.config.analysis_interval
        )
        while not self._stop_event.wait(interval):
            if self.running:
                logger.info("Performing scheduled analysis...")
                self._requests.put(AnalysisRequest(reason="scheduled"))
