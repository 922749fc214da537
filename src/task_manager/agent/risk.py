"""Risk assessment for a set of proposed file changes."""

from task_manager.agent.models import CodeChange


def assess_risk(changes: list[CodeChange]) -> str:
    """Classify a change set as 'low', 'medium' or 'high'.

    Modifications can destroy working code, so a medium-risk change that comes
    with any modification escalates the whole set to high.
    """
    if not changes:
        return "low"

    has_high = any(c.risk_level == "high" for c in changes)
    has_medium = any(c.risk_level == "medium" for c in changes)
    has_modify = any(c.change_type == "modify" for c in changes)

    if has_high or (has_medium and has_modify):
        return "high"
    if has_medium or has_modify:
        return "medium"
    return "low"
