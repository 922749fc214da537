"""Approval gate deciding whether a plan may run."""

import logging

import click

from task_manager.agent.models import TaskImplementation

logger = logging.getLogger(__name__)

CHANGE_ICONS = {"create": "+", "modify": "~", "delete": "-"}


class ClickApprovalChannel:
    """Asks a human at the terminal."""

    def confirm(self, prompt_text: str, default: bool = False) -> bool:
        click.echo(prompt_text)
        return click.confirm("Do you approve this implementation?", default=default)


def format_plan_summary(plan: TaskImplementation) -> str:
    lines = [
        click.style("Requesting approval for task implementation:", fg="yellow"),
        click.style(f"Task: {plan.task.title}", bold=True),
        click.style(f"Risk Level: {plan.risk}", fg="bright_black"),
        click.style(f"Estimated Time: {plan.estimated_minutes} minutes", fg="bright_black"),
        click.style(f"Files to change: {len(plan.changes)}", fg="bright_black"),
    ]
    for change in plan.changes:
        icon = CHANGE_ICONS[change.change_type]
        lines.append(click.style(f"  {icon} {change.change_type}: {change.file_path}", fg="cyan"))
        if change.reason:
            lines.append(click.style(f"    {change.reason}", fg="bright_black"))
    if plan.commands:
        lines.append(click.style(f"Commands: {'; '.join(plan.commands)}", fg="bright_black"))
    return "\n".join(lines)


class ApprovalGate:
    def __init__(self, auto_approve: bool, channel):
        self.auto_approve = auto_approve
        self.channel = channel

    def approve(self, plan: TaskImplementation) -> bool:
        if self.auto_approve and plan.risk == "low":
            logger.info("Auto-approved (low risk): %s", plan.task.title)
            return True

        approved = bool(
            self.channel.confirm(format_plan_summary(plan), default=plan.risk == "low")
        )
        logger.info("User %s task: %s", "approved" if approved else "rejected", plan.task.title)
        return approved
