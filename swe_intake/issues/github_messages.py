"""Message content helpers for GitHub issues."""

from swe_intake.issues.task_plan import recover_task_plan, strip_task_plan
from swe_intake.models.domain import GitHubIssue
from swe_intake.models.state import TaskPlan


def render_github_issue(issue: GitHubIssue) -> str:
    """Render a GitHub issue as the text of the triggering chat message.

    The embedded plan block is not part of the request a human wrote, so it
    is left out of the rendered description.
    """
    content = f"**{issue.title}**"

    description = strip_task_plan(issue.body)
    if description.strip():
        content += f"\n\n{description}"

    content += f"\n\n---\n*GitHub Issue: #{issue.number} | Repository: {issue.repository}*"
    return content


def recover_github_task_plan(body: str | None) -> TaskPlan | None:
    """Extract a task plan from a GitHub issue body, if present."""
    return recover_task_plan(body)
