"""
Task plan blocks embedded in issue descriptions.

The agent writes its plan into the issue body as JSON between two marker
tags so that humans can see (and edit) it in the tracker:

    <open-swe-do-not-edit-task-plan>
    {"tasks": [...], "activeTaskIndex": 0}
    </open-swe-do-not-edit-task-plan>

The JSON may be wrapped in a fenced code block. Recovery is total: any
input that does not contain a valid block yields None.
"""

import json
import re

import structlog
from pydantic import ValidationError

from swe_intake.models.state import TaskPlan

log = structlog.get_logger(__name__)

TASK_PLAN_OPEN_TAG = "<open-swe-do-not-edit-task-plan>"
TASK_PLAN_CLOSE_TAG = "</open-swe-do-not-edit-task-plan>"

_BLOCK_PATTERN = re.compile(
    re.escape(TASK_PLAN_OPEN_TAG) + r"(.*?)" + re.escape(TASK_PLAN_CLOSE_TAG),
    re.DOTALL,
)
_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


def recover_task_plan(content: str | None) -> TaskPlan | None:
    """Extract the task plan embedded in an issue description.

    Args:
        content: Issue description (may be None or arbitrary text)

    Returns:
        The parsed TaskPlan, or None when no valid plan block is present
    """
    if not content:
        return None

    match = _BLOCK_PATTERN.search(content)
    if not match:
        return None

    raw = match.group(1).strip()
    fenced = _FENCE_PATTERN.match(raw)
    if fenced:
        raw = fenced.group(1).strip()

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as e:
        log.debug("task_plan_invalid_json", error=str(e))
        return None

    if not isinstance(data, dict):
        log.debug("task_plan_not_an_object", kind=type(data).__name__)
        return None

    try:
        return TaskPlan.model_validate(data)
    except ValidationError as e:
        log.debug("task_plan_invalid_structure", errors=e.error_count())
        return None


def strip_task_plan(content: str | None) -> str:
    """Remove the plan block from an issue description."""
    if not content:
        return ""
    return _BLOCK_PATTERN.sub("", content).strip()


def embed_task_plan(content: str | None, plan: TaskPlan) -> str:
    """Write `plan` into an issue description, replacing any existing block."""
    block = "\n".join(
        [
            TASK_PLAN_OPEN_TAG,
            json.dumps(plan.model_dump(by_alias=True, mode="json"), indent=2),
            TASK_PLAN_CLOSE_TAG,
        ]
    )
    body = strip_task_plan(content)
    if not body:
        return block
    return f"{body}\n\n{block}"
