"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from swe_intake.config.settings import LinearSettings, RunConfig, ServiceSettings
from swe_intake.models.domain import GitHubIssue, LinearIssue, Team, Workspace, WorkflowState
from swe_intake.providers.base import IssueTrackerClient

PLAN_DESCRIPTION = """Users cannot log in with SSO.

<open-swe-do-not-edit-task-plan>
{
  "tasks": [
    {
      "id": "task-1",
      "taskIndex": 0,
      "request": "Fix SSO login",
      "title": "Fix SSO login",
      "planItems": [
        {"index": 0, "plan": "Reproduce the failure", "completed": true},
        {"index": 1, "plan": "Patch the callback handler"}
      ]
    }
  ],
  "activeTaskIndex": 0
}
</open-swe-do-not-edit-task-plan>"""


@pytest.fixture(autouse=True)
def quiet_structlog():
    """Keep log output out of captured stdout; tests use capture_logs to assert on logs."""
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def plan_description() -> str:
    """Issue description carrying an embedded one-task plan."""
    return PLAN_DESCRIPTION


@pytest.fixture
def linear_issue_payload() -> dict[str, Any]:
    """Linear issue as it appears in webhook and GraphQL data."""
    return {
        "id": "9f1c2d3e-0000-4000-8000-000000000001",
        "identifier": "ENG-123",
        "title": "Fix login",
        "description": "Users cannot log in with SSO.",
        "url": "https://linear.app/acme/issue/ENG-123/fix-login",
        "createdAt": "2024-05-01T10:00:00.000Z",
        "updatedAt": "2024-05-02T11:30:00.000Z",
        "state": {"id": "state-1", "name": "Todo", "type": "unstarted"},
        "team": {"id": "team-1", "name": "Engineering", "key": "ENG"},
        "assignee": {"id": "user-1", "name": "Sam Lee", "email": "sam@example.com"},
        "labels": {"nodes": [{"id": "label-1", "name": "open-swe-auto", "color": "#000000"}]},
    }


@pytest.fixture
def linear_issue(linear_issue_payload: dict[str, Any]) -> LinearIssue:
    return LinearIssue.from_payload(linear_issue_payload)


@pytest.fixture
def make_linear_issue():
    """Factory for Linear issues with a chosen description."""

    def _make(description: str | None = "Users cannot log in with SSO.", **overrides: Any) -> LinearIssue:
        now = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        values: dict[str, Any] = {
            "id": "9f1c2d3e-0000-4000-8000-000000000001",
            "identifier": "ENG-123",
            "title": "Fix login",
            "description": description,
            "state": WorkflowState(id="state-1", name="Todo", type="unstarted"),
            "team": Team(id="team-1", name="Engineering", key="ENG"),
            "url": "https://linear.app/acme/issue/ENG-123/fix-login",
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        return LinearIssue(**values)

    return _make


@pytest.fixture
def make_github_issue():
    """Factory for GitHub issues with a chosen body."""

    def _make(body: str = "The build fails on main.", **overrides: Any) -> GitHubIssue:
        now = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)
        values: dict[str, Any] = {
            "id": 1001,
            "number": 42,
            "title": "Broken build",
            "body": body,
            "state": "open",
            "url": "https://github.com/acme/widgets/issues/42",
            "repository": "acme/widgets",
            "created_at": now,
            "updated_at": now,
        }
        values.update(overrides)
        return GitHubIssue(**values)

    return _make


@pytest.fixture
def mock_tracker_client() -> MagicMock:
    """Tracker client whose calls can be asserted on."""
    client = MagicMock(spec=IssueTrackerClient)
    client.get_issue = AsyncMock()
    client.get_workspace = AsyncMock(return_value=Workspace(id="org-1", name="Acme", url_key="acme"))
    client.create_comment = AsyncMock()
    client.get_comments = AsyncMock(return_value=[])
    client.close = AsyncMock()
    return client


@pytest.fixture
def linear_config() -> RunConfig:
    return RunConfig.from_configurable({"issueTracker": "linear", "x-linear-api-key": "lin_api_test"})


@pytest.fixture
def github_config() -> RunConfig:
    return RunConfig.from_configurable({"issueTracker": "github", "x-github-installation-token": "ghs_test"})


@pytest.fixture
def service_settings() -> ServiceSettings:
    """Service settings with a Linear key and a repository mapping for team ENG."""
    return ServiceSettings(
        linear=LinearSettings(
            api_key="lin_api_test",
            team_repositories={"ENG": "acme/widgets"},
        ),
    )
