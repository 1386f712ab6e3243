"""Message content helpers for Linear issues."""

import re

from swe_intake.issues.task_plan import recover_task_plan
from swe_intake.models.domain import LinearIssue
from swe_intake.models.state import TaskPlan

_IDENTIFIER_PATTERN = re.compile(r"([A-Z]+)-(\d+)")


def render_linear_issue(issue: LinearIssue) -> str:
    """Render a Linear issue as the text of the triggering chat message.

    Bold title, the description when it is not blank, then a footer naming
    the issue identifier and owning team.
    """
    content = f"**{issue.title}**"

    description = issue.description or ""
    if description.strip():
        content += f"\n\n{description}"

    content += f"\n\n---\n*Linear Issue: {issue.identifier} | Team: {issue.team.name}*"
    return content


def recover_linear_task_plan(description: str | None) -> TaskPlan | None:
    """Extract a task plan from a Linear issue description, if present."""
    return recover_task_plan(description)


def format_linear_issue_url(issue: LinearIssue) -> str:
    return issue.url


def linear_issue_reference(issue: LinearIssue) -> str:
    """Short reference such as "ENG-123: Fix login"."""
    return f"{issue.identifier}: {issue.title}"


def extract_linear_issue_identifier(text: str) -> str | None:
    """Find the first Linear identifier ("ENG-123") in text, e.g. an issue URL."""
    match = _IDENTIFIER_PATTERN.search(text)
    return match.group(0) if match else None


def contains_linear_issue_reference(text: str) -> bool:
    return _IDENTIFIER_PATTERN.search(text) is not None
