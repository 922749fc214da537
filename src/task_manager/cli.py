"""CLI entry point for the task manager."""

import json
import signal
import sys
from pathlib import Path

import click

from task_manager.agent.approval import format_plan_summary
from task_manager.agent.errors import ValidationError
from task_manager.agent.loop import AutonomousAgent
from task_manager.agent.models import AgentConfig
from task_manager.agent.planner import ImplementationPlanner
from task_manager.config import get_config
from task_manager.core import projects as projects_mod
from task_manager.core import tasks as tasks_mod
from task_manager.db.engine import get_db
from task_manager.db.models import PRIORITIES, STATUSES, TASK_TYPES, AIContext
from task_manager.db.store import TaskStore
from task_manager.log import configure_logging, latest_log_file, new_log_file

STATUS_ICONS = {
    "todo": "○",
    "in_progress": "●",
    "in_review": "◐",
    "done": "✓",
    "blocked": "✗",
    "cancelled": "-",
}


def _get_db():
    config = get_config()
    return get_db(config.db_path)


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
def main():
    """tm - Task Manager CLI"""
    pass


# ── Project Commands ──────────────────────────────────────────────────────────


@main.command("init")
@click.argument("project_name")
@click.option("--repo-path", default=".", help="Path to the project directory")
@click.option("--description", "-d", default="", help="Project description")
def init_project(project_name, repo_path, description):
    """Initialize a new project."""
    repo_path = str(Path(repo_path).resolve())
    project_id = tasks_mod.slugify(project_name)

    with _get_db() as db:
        try:
            project = projects_mod.create_project(
                db, project_id, project_name, repo_path, description
            )
        except ValueError as e:
            _fail(str(e))
        click.echo(f"Project created: {project.id} ({project.name})")
        click.echo(f"  Path: {project.repo_path}")


@main.command("projects")
def project_list():
    """List projects."""
    with _get_db() as db:
        projects = projects_mod.list_projects(db)
    if not projects:
        click.echo("No projects found.")
        return
    for project in projects:
        click.echo(f"  {project.id}: {project.name} ({project.repo_path or '-'})")


# ── Task Commands ─────────────────────────────────────────────────────────────


@main.group("task")
def task_group():
    """Manage tasks."""
    pass


@task_group.command("add")
@click.argument("title")
@click.option("--project", required=True, help="Project ID")
@click.option("--description", "-d", default="", help="Task description")
@click.option("--priority", "-p", type=click.Choice(PRIORITIES), default="medium")
@click.option("--type", "task_type", type=click.Choice(TASK_TYPES), default="feature")
@click.option("--estimate", type=float, default=None, help="Estimated hours")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--depends-on", default=None, help="Comma-separated task IDs this depends on")
@click.option("--command", "commands", multiple=True, help="Command the agent runs (repeatable)")
def task_add(title, project, description, priority, task_type, estimate, tags, depends_on, commands):
    """Create a new task."""
    deps = [d.strip() for d in depends_on.split(",")] if depends_on else None

    with _get_db() as db:
        try:
            task = tasks_mod.create_task(
                db,
                title,
                project,
                description,
                priority=priority,
                type=task_type,
                estimated_hours=estimate,
                tags=list(tags),
                depends_on=deps,
                ai_context=AIContext(commands=list(commands)),
            )
        except ValueError as e:
            _fail(str(e))
        click.echo(f"Created task: {task.id}")
        click.echo(f"  Title: {task.title}")
        click.echo(f"  Priority: {task.priority}")
        click.echo(f"  Type: {task.type}")
        click.echo(f"  Status: {task.status}")
        if task.generator != "none":
            click.echo(f"  Generator: {task.generator}")
        if task.depends_on:
            click.echo(f"  Depends on: {', '.join(task.depends_on)}")


@task_group.command("list")
@click.option("--project", required=True, help="Project ID")
@click.option("--status", type=click.Choice(STATUSES), default=None, help="Filter by status")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def task_list(project, status, json_output):
    """List tasks, highest priority first."""
    with _get_db() as db:
        tasks = tasks_mod.list_tasks(db, project, status=status)

    if json_output:
        click.echo(json.dumps([_task_dict(t) for t in tasks], indent=2))
        return

    if not tasks:
        click.echo("No tasks found.")
        return

    for task in tasks:
        icon = STATUS_ICONS.get(task.status, "?")
        deps = f" [depends: {', '.join(task.depends_on)}]" if task.depends_on else ""
        click.echo(f"  {icon} [{task.priority}] {task.id}: {task.title} ({task.status}){deps}")


@task_group.command("show")
@click.argument("task_id")
def task_show(task_id):
    """Show task details."""
    with _get_db() as db:
        task = tasks_mod.get_task(db, task_id)
        if not task:
            click.echo(f"Task not found: {task_id}", err=True)
            sys.exit(1)

        click.echo(f"Task: {task.id}")
        click.echo(f"  Title: {task.title}")
        click.echo(f"  Priority: {task.priority}")
        click.echo(f"  Status: {task.status}")
        click.echo(f"  Type: {task.type}")
        click.echo(f"  Project: {task.project_id}")
        if task.description:
            click.echo(f"  Description: {task.description}")
        if task.estimated_hours is not None:
            click.echo(f"  Estimated: {task.estimated_hours:g}h")
        if task.actual_hours is not None:
            click.echo(f"  Actual: {task.actual_hours:g}h")
        if task.tags:
            click.echo(f"  Tags: {', '.join(task.tags)}")
        if task.depends_on:
            click.echo(f"  Depends on: {', '.join(task.depends_on)}")
        if task.ai_context.commands:
            click.echo(f"  Commands: {'; '.join(task.ai_context.commands)}")
        if task.created_at:
            click.echo(f"  Created: {task.created_at}")

        events = tasks_mod.get_task_events(db, task_id)
        if events:
            click.echo("  History:")
            for e in events:
                click.echo(f"    [{e.created_at}] {e.event_type}: {e.old_value} -> {e.new_value}")


@task_group.command("status")
@click.argument("task_id")
@click.argument("status", type=click.Choice(STATUSES))
def task_status(task_id, status):
    """Set a task's status."""
    with _get_db() as db:
        task = tasks_mod.update_task_status(db, task_id, status)
    if not task:
        click.echo(f"Task not found: {task_id}", err=True)
        sys.exit(1)
    click.echo(f"Task {task_id} is now {task.status}")


# ── Agent Commands ────────────────────────────────────────────────────────────


@main.group("agent")
def agent_group():
    """Run the autonomous agent."""
    pass


def _agent_config(project, workspace, auto_approve=False, interval=30.0, concurrent=2, log_level="info"):
    config = get_config()
    try:
        return AgentConfig(
            workspace_root=Path(workspace) if workspace else config.workspace_root,
            target_project=project,
            auto_approve=auto_approve,
            max_concurrent_tasks=concurrent,
            analysis_interval=interval,
            log_level=log_level,
            command_timeout=config.command_timeout,
        )
    except ValueError as e:
        _fail(str(e))


@agent_group.command("start")
@click.option("--project", required=True, help="Target project directory name")
@click.option("--workspace", default=None, help="Workspace root containing the project")
@click.option("--auto-approve", is_flag=True, help="Approve low-risk plans without asking")
@click.option("--interval", default=30.0, type=float, help="Analysis interval in minutes")
@click.option("--concurrent", default=2, type=int, help="Max concurrent tasks")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="info",
)
@click.option("--dry-run", is_flag=True, help="Validate and show configuration only")
@click.option("--yes", "-y", is_flag=True, help="Start without confirmation")
def agent_start(project, workspace, auto_approve, interval, concurrent, log_level, dry_run, yes):
    """Start the autonomous agent."""
    config = get_config()
    agent_config = _agent_config(project, workspace, auto_approve, interval, concurrent, log_level)

    click.echo(click.style("Autonomous agent configuration:", bold=True))
    click.echo(f"  Project: {agent_config.project_path}")
    click.echo(f"  Auto-approve: {'yes' if auto_approve else 'no'}")
    click.echo(f"  Analysis interval: {interval:g} minutes")
    click.echo(f"  Max concurrent tasks: {concurrent}")
    click.echo(f"  Log level: {log_level}")

    if dry_run:
        configure_logging(log_level)
        agent = AutonomousAgent(agent_config, TaskStore(config.db_path))
        try:
            agent.validate_project()
        except ValidationError as e:
            _fail(str(e))
        click.echo(click.style("Dry run complete, configuration is valid", fg="green"))
        return

    if not yes and not click.confirm("Start the autonomous agent?", default=True):
        click.echo("Cancelled.")
        return

    log_file = new_log_file(config.log_dir)
    configure_logging(log_level, log_file)
    click.echo(click.style(f"Logs: {log_file}", fg="bright_black"))
    click.echo(click.style("Press Ctrl+C to stop", fg="yellow"))

    with TaskStore(config.db_path) as store:
        agent = AutonomousAgent(agent_config, store)

        def _shutdown(signum, frame):
            agent.stop()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)
        try:
            agent.start()
        except ValidationError as e:
            _fail(str(e))


@agent_group.command("analyze")
@click.option("--project", required=True, help="Target project directory name")
@click.option("--workspace", default=None, help="Workspace root containing the project")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error"]), default="info")
def agent_analyze(project, workspace, log_level):
    """Run one analysis pass and create any missing tasks."""
    config = get_config()
    agent_config = _agent_config(project, workspace, log_level=log_level)
    configure_logging(log_level)

    with TaskStore(config.db_path) as store:
        agent = AutonomousAgent(agent_config, store)
        result = agent.engine.analyze()

    if result.project_id is None:
        _fail(f"No project matching '{project}'. Create one with 'tm init'.")
    click.echo(f"Created {len(result.created)} task(s)")
    for title in result.created:
        click.echo(f"  + {title}")
    for title in result.skipped:
        click.echo(f"  = {title} (exists)")


@agent_group.command("plan")
@click.argument("task_id")
def agent_plan(task_id):
    """Show the implementation plan for a task without executing it."""
    config = get_config()
    with TaskStore(config.db_path) as store:
        task = store.get_task(task_id)
    if not task:
        click.echo(f"Task not found: {task_id}", err=True)
        sys.exit(1)

    plan = ImplementationPlanner().plan(task)
    click.echo(format_plan_summary(plan))
    if plan.test_commands:
        click.echo(f"Tests: {'; '.join(plan.test_commands)}")


@agent_group.command("status")
@click.option("--lines", "-n", default=20, type=int, help="Number of log lines to show")
def agent_status(lines):
    """Show the tail of the most recent agent log."""
    config = get_config()
    log_file = latest_log_file(config.log_dir)
    if log_file is None:
        click.echo("No agent logs found.")
        return

    click.echo(f"Latest log: {log_file}")
    content = log_file.read_text(encoding="utf-8").splitlines()
    for line in content[-lines:]:
        click.echo(line)


# ── Dashboard Command ────────────────────────────────────────────────────────


@main.command("ui")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8787, type=int, help="Port to listen on")
@click.option("--open/--no-open", default=True, help="Open browser automatically")
def ui_command(host, port, open):
    """Launch the web dashboard."""
    import webbrowser

    from task_manager.web.app import run_server

    url = f"http://{host}:{port}"
    click.echo(f"Starting dashboard at {url}")
    if open:
        webbrowser.open(url)
    run_server(host=host, port=port)


# ── Helpers ───────────────────────────────────────────────────────────────────


def _task_dict(task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "type": task.type,
        "project": task.project_id,
        "description": task.description,
        "estimated_hours": task.estimated_hours,
        "tags": task.tags,
        "depends_on": task.depends_on,
    }


if __name__ == "__main__":
    main()
