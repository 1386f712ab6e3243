"""
Issue initialization: the first node of every manager run.

An initializer reconciles three sources into one consistent update: the
chat history already in the session, the task plan the session carries
forward, and the live issue in the tracker.

Two branches exist:

- Continuation: a human message is already present (a CLI/chat request, or
  a webhook that built the message itself). Only the plan is refreshed from
  the issue description; no message is added.
- Origination: no human message yet. The issue is fetched and rendered into
  exactly one message tagged as the original issue.

In both branches a plan recovered from the issue description replaces the
carried-forward plan, since a human may have edited it in the tracker.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import structlog

from swe_intake.config.settings import RunConfig
from swe_intake.enums import RequestSource, TrackerKind
from swe_intake.exceptions import ConfigurationError, NotFoundError
from swe_intake.issues.github_messages import recover_github_task_plan, render_github_issue
from swe_intake.issues.linear_messages import recover_linear_task_plan, render_linear_issue
from swe_intake.models.domain import GitHubIssue, LinearIssue
from swe_intake.models.state import (
    GITHUB_ISSUE_ID_KEY,
    LINEAR_ISSUE_ID_KEY,
    ORIGINAL_ISSUE_KEY,
    REQUEST_SOURCE_KEY,
    ChatMessage,
    SessionState,
    StateUpdate,
    TaskPlan,
    WorkspaceRef,
)
from swe_intake.providers.base import IssueTrackerClient
from swe_intake.providers.factory import create_tracker_client

log = structlog.get_logger(__name__)

# (credential, session state) -> client
ClientFactory = Callable[[str, SessionState], IssueTrackerClient]


class IssueInitializer(ABC):
    """Reconciles session state with one tracker's issue.

    Subclasses name the credential, build the client and translate the
    tracker's issue record; `reconcile` holds the shared algorithm.
    """

    tracker: TrackerKind
    credential_field: str
    """RunConfig attribute holding the tracker credential."""

    credential_label: str
    issue_label: str

    def __init__(self, client_factory: ClientFactory | None = None):
        """Initialize initializer.

        Args:
            client_factory: Builds the tracker client from the credential and
                session state; defaults to the real client for the tracker
        """
        self._client_factory = client_factory or self._default_client

    async def reconcile(self, state: SessionState, config: RunConfig) -> StateUpdate:
        """Produce the state update for this run's first step.

        Raises:
            ConfigurationError: Missing credential, issue reference or target repository
            NotFoundError: The referenced issue does not exist
            AuthError, TransientNetworkError, TrackerResponseError: From the client
        """
        if config.local_mode:
            # The triggering message is already in state
            log.info("issue_initialization_skipped", tracker=self.tracker.value, reason="local_mode")
            return StateUpdate()

        token = config.secret(self.credential_field)
        if not token:
            raise ConfigurationError(f"{self.credential_label} not provided")

        if state.has_human_message():
            return await self._continue_session(state, token)
        return await self._originate_session(state, token)

    async def _continue_session(self, state: SessionState, token: str) -> StateUpdate:
        task_plan = state.task_plan
        issue_id = state.issue_id_for(self.tracker)

        if issue_id is not None and self._can_fetch(state):
            issue = await self._fetch_issue(state, token, issue_id)
            task_plan = self._resolve_task_plan(issue, task_plan)
        elif issue_id is not None:
            log.warning("issue_refresh_skipped", tracker=self.tracker.value, issue_id=issue_id)

        log.info(
            "session_continued",
            tracker=self.tracker.value,
            issue_id=issue_id,
            has_task_plan=task_plan is not None,
        )
        return StateUpdate(task_plan=task_plan)

    async def _originate_session(self, state: SessionState, token: str) -> StateUpdate:
        issue_id = state.issue_id_for(self.tracker)
        if issue_id is None:
            raise ConfigurationError(f"{self.issue_label} ID not provided")
        if state.target_repository is None:
            raise ConfigurationError("Target repository not provided")

        issue = await self._fetch_issue(state, token, issue_id)
        task_plan = self._resolve_task_plan(issue, state.task_plan)

        message = ChatMessage.human(
            self.render(issue),
            **{ORIGINAL_ISSUE_KEY: True, REQUEST_SOURCE_KEY: self.request_source.value},
            **self.message_metadata(issue, issue_id),
        )

        log.info(
            "session_originated",
            tracker=self.tracker.value,
            issue_id=issue_id,
            message_id=message.id,
            has_task_plan=task_plan is not None,
        )
        return StateUpdate(messages=[message], task_plan=task_plan, **self.origination_fields(issue))

    async def _fetch_issue(self, state: SessionState, token: str, issue_id: str) -> Any:
        client = self._client_factory(token, state)
        try:
            issue = await client.get_issue(issue_id)
        finally:
            await client.close()

        if issue is None:
            raise NotFoundError(
                f"{self.issue_label} not found",
                resource="issue",
                identifier=issue_id,
                tracker=self.tracker.value,
            )
        return issue

    def _resolve_task_plan(self, issue: Any, carried: TaskPlan | None) -> TaskPlan | None:
        recovered = self.recover_plan(issue)
        if recovered is None:
            return carried
        if carried is not None:
            log.info("task_plan_replaced_from_issue", tracker=self.tracker.value, tasks=len(recovered.tasks))
        return recovered

    def _can_fetch(self, state: SessionState) -> bool:
        return True

    def origination_fields(self, issue: Any) -> dict[str, Any]:
        """Extra StateUpdate fields set when a session originates from `issue`."""
        return {}

    @property
    @abstractmethod
    def request_source(self) -> RequestSource:
        pass

    @abstractmethod
    def _default_client(self, token: str, state: SessionState) -> IssueTrackerClient:
        pass

    @abstractmethod
    def render(self, issue: Any) -> str:
        pass

    @abstractmethod
    def recover_plan(self, issue: Any) -> TaskPlan | None:
        pass

    @abstractmethod
    def message_metadata(self, issue: Any, issue_id: str) -> dict[str, Any]:
        pass


class LinearIssueInitializer(IssueInitializer):
    """Initializer for sessions originating from Linear issues."""

    tracker = TrackerKind.LINEAR
    credential_field = "linear_api_key"
    credential_label = "Linear API key"
    issue_label = "Linear issue"

    @property
    def request_source(self) -> RequestSource:
        return RequestSource.LINEAR_ISSUE_WEBHOOK

    def _default_client(self, token: str, state: SessionState) -> IssueTrackerClient:
        return create_tracker_client(TrackerKind.LINEAR, token)

    def render(self, issue: LinearIssue) -> str:
        return render_linear_issue(issue)

    def recover_plan(self, issue: LinearIssue) -> TaskPlan | None:
        return recover_linear_task_plan(issue.description)

    def message_metadata(self, issue: LinearIssue, issue_id: str) -> dict[str, Any]:
        return {LINEAR_ISSUE_ID_KEY: issue_id}

    def origination_fields(self, issue: LinearIssue) -> dict[str, Any]:
        # Linear has no workspace on the issue; the owning team scopes later writes
        return {"workspace": WorkspaceRef(workspace_id=issue.team.id, team_id=issue.team.id)}


class GitHubIssueInitializer(IssueInitializer):
    """Initializer for sessions originating from GitHub issues."""

    tracker = TrackerKind.GITHUB
    credential_field = "github_token"
    credential_label = "GitHub installation token"
    issue_label = "GitHub issue"

    @property
    def request_source(self) -> RequestSource:
        return RequestSource.GITHUB_ISSUE_WEBHOOK

    def _default_client(self, token: str, state: SessionState) -> IssueTrackerClient:
        return create_tracker_client(TrackerKind.GITHUB, token, repository=state.target_repository)

    def _can_fetch(self, state: SessionState) -> bool:
        # GitHub issues are addressed within a repository
        return state.target_repository is not None

    def render(self, issue: GitHubIssue) -> str:
        return render_github_issue(issue)

    def recover_plan(self, issue: GitHubIssue) -> TaskPlan | None:
        return recover_github_task_plan(issue.body)

    def message_metadata(self, issue: GitHubIssue, issue_id: str) -> dict[str, Any]:
        return {GITHUB_ISSUE_ID_KEY: issue_id}
