"""
Session state threaded through every workflow node.

A workflow run owns one SessionState. Nodes never mutate it; they return a
StateUpdate and the graph engine merges it with `SessionState.apply`:
messages are appended in order, every other field set on the update is
last-write-wins.

Example:
    Merging an initializer's update::

        update = await initialize_issue(state, config)
        state = state.apply(update)
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from swe_intake.enums import MessageOrigin, TrackerKind

ORIGINAL_ISSUE_KEY = "isOriginalIssue"
LINEAR_ISSUE_ID_KEY = "linearIssueId"
GITHUB_ISSUE_ID_KEY = "githubIssueId"
REQUEST_SOURCE_KEY = "requestSource"


class ChatMessage(BaseModel):
    """One unit of conversation.

    `additional_kwargs` carries free-form metadata such as the originating
    issue id and the original-issue flag.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    content: str
    origin: MessageOrigin = MessageOrigin.HUMAN
    additional_kwargs: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def human(cls, content: str, **additional_kwargs: Any) -> ChatMessage:
        """Create a human-originated message."""
        return cls(content=content, origin=MessageOrigin.HUMAN, additional_kwargs=additional_kwargs)

    @property
    def is_human(self) -> bool:
        return self.origin == MessageOrigin.HUMAN

    @property
    def is_original_issue(self) -> bool:
        return bool(self.additional_kwargs.get(ORIGINAL_ISSUE_KEY))


class PlanItem(BaseModel):
    """A single step of a task's plan."""

    model_config = ConfigDict(populate_by_name=True)

    index: int
    plan: str
    completed: bool = False
    summary: str | None = None


class PlanTask(BaseModel):
    """A decomposed work item with its plan steps."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    task_index: int = Field(alias="taskIndex")
    request: str
    title: str
    completed: bool = False
    summary: str | None = None
    plan_items: list[PlanItem] = Field(default_factory=list, alias="planItems")


class TaskPlan(BaseModel):
    """The agent's decomposed work, as tracked in the session.

    Serialized with camelCase aliases when embedded in an issue description.
    """

    model_config = ConfigDict(populate_by_name=True)

    tasks: list[PlanTask] = Field(default_factory=list)
    active_task_index: int = Field(default=0, alias="activeTaskIndex")

    @property
    def active_task(self) -> PlanTask | None:
        for task in self.tasks:
            if task.task_index == self.active_task_index:
                return task
        return None


class IssueReference(BaseModel):
    """Points at the external issue a session was created from."""

    tracker: TrackerKind
    issue_id: str


class WorkspaceRef(BaseModel):
    """Workspace/team scope used for later tracker writes."""

    workspace_id: str
    team_id: str | None = None


class TargetRepository(BaseModel):
    """Repository the coding agent works in."""

    owner: str
    repo: str
    branch: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def parse(cls, value: str, branch: str | None = None) -> TargetRepository:
        """Parse "owner/repo".

        Raises:
            ValueError: If the value is not of the form "owner/repo"
        """
        owner, sep, repo = value.strip().partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ValueError(f"Expected 'owner/repo', got: {value!r}")
        return cls(owner=owner, repo=repo, branch=branch)


class StateUpdate(BaseModel):
    """A partial update returned by a node.

    Only fields passed explicitly count as set, so `StateUpdate()` is the
    empty update and `StateUpdate(task_plan=None)` clears the plan.
    """

    messages: list[ChatMessage] = Field(default_factory=list)
    task_plan: TaskPlan | None = None
    issue_ref: IssueReference | None = None
    workspace: WorkspaceRef | None = None
    target_repository: TargetRepository | None = None
    auto_accept_plan: bool = False

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def changes(self) -> dict[str, Any]:
        """The explicitly set fields, as a mapping of field name to value."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class SessionState(BaseModel):
    """The durable, run-scoped record shared by all workflow nodes."""

    messages: list[ChatMessage] = Field(default_factory=list)
    task_plan: TaskPlan | None = None
    issue_ref: IssueReference | None = None
    workspace: WorkspaceRef | None = None
    target_repository: TargetRepository | None = None
    auto_accept_plan: bool = False

    def has_human_message(self) -> bool:
        return any(message.is_human for message in self.messages)

    def issue_id_for(self, tracker: TrackerKind) -> str | None:
        """Return the issue id if the session references an issue in `tracker`."""
        if self.issue_ref is None or self.issue_ref.tracker != tracker:
            return None
        return self.issue_ref.issue_id

    def apply(self, update: StateUpdate) -> SessionState:
        """Merge an update into a copy of this state.

        A message whose id is already present replaces the earlier one at the
        same position; new messages are appended in order.
        """
        changes = update.changes()
        if not changes:
            return self.model_copy()

        if "messages" in changes:
            merged = list(self.messages)
            positions = {message.id: index for index, message in enumerate(merged)}
            for message in changes.pop("messages"):
                if message.id in positions:
                    merged[positions[message.id]] = message
                else:
                    positions[message.id] = len(merged)
                    merged.append(message)
            changes["messages"] = merged

        return self.model_copy(update=changes)
