"""
Tracker record models.

These dataclasses are the normalized, read-only snapshots of what an issue
tracker returns. They are fetched fresh on every reconciliation and never
cached across sessions: the tracker owns title, description and labels.

Example:
    Building a Linear issue from a webhook payload::

        issue = LinearIssue.from_payload(payload["data"]["issue"])
        print(issue.identifier, issue.team.name)
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from swe_intake.exceptions import TrackerResponseError


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp as sent by tracker APIs.

    The 'Z' suffix is replaced with '+00:00' for fromisoformat(). Missing
    values become the current UTC time so partially populated webhook
    payloads can still be rendered.
    """
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.now(UTC)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class Team:
    """A Linear team, the owner of an issue."""

    id: str
    name: str
    key: str = ""


@dataclass
class WorkflowState:
    """Lifecycle state of a Linear issue (e.g., "Todo", type "unstarted")."""

    id: str
    name: str
    type: str = ""
    color: str = ""


@dataclass
class User:
    """A tracker user (assignee or comment author)."""

    id: str
    name: str
    email: str = ""


@dataclass
class IssueLabel:
    """A label attached to an issue."""

    id: str
    name: str
    color: str = ""


@dataclass
class Workspace:
    """The organization (Linear) or repository (GitHub) the credential sees."""

    id: str
    name: str
    url_key: str = ""


@dataclass
class Comment:
    """A comment on an issue."""

    id: str
    body: str
    user: User | None
    created_at: datetime


@dataclass
class LinearIssue:
    """Represents a Linear issue.

    `team` and `state` are always present: a record without them cannot
    scope subsequent comments and writes, so `from_payload` rejects it.
    """

    id: str
    """Linear's internal UUID."""

    identifier: str
    """Human-readable key such as "ENG-123"."""

    title: str

    description: str | None
    """Markdown description; None or blank for title-only issues."""

    state: WorkflowState
    team: Team
    url: str
    created_at: datetime
    updated_at: datetime
    assignee: User | None = None
    labels: list[IssueLabel] = field(default_factory=list)

    @property
    def label_names(self) -> list[str]:
        """Names of the attached labels."""
        return [label.name for label in self.labels]

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "LinearIssue":
        """Build an issue from GraphQL or webhook data.

        Labels are accepted both as a GraphQL connection ({"nodes": [...]})
        and as a plain list.

        Raises:
            TrackerResponseError: If the team or state is missing
        """
        state = data.get("state")
        team = data.get("team")
        if not state:
            raise TrackerResponseError("Issue state not found", tracker="linear")
        if not team:
            raise TrackerResponseError("Issue team not found", tracker="linear")

        raw_labels = data.get("labels") or []
        if isinstance(raw_labels, dict):
            raw_labels = raw_labels.get("nodes") or []

        assignee = data.get("assignee")

        return cls(
            id=data["id"],
            identifier=data.get("identifier", ""),
            title=data.get("title", ""),
            description=data.get("description") or None,
            state=WorkflowState(
                id=state.get("id", ""),
                name=state.get("name", ""),
                type=state.get("type", ""),
            ),
            team=Team(id=team["id"], name=team.get("name", ""), key=team.get("key", "")),
            assignee=(
                User(id=assignee["id"], name=assignee.get("name", ""), email=assignee.get("email") or "")
                if assignee
                else None
            ),
            labels=[
                IssueLabel(id=label.get("id", ""), name=label["name"], color=label.get("color", ""))
                for label in raw_labels
            ],
            url=data.get("url", ""),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass
class GitHubIssue:
    """Represents a GitHub issue in its repository."""

    id: int
    number: int
    title: str
    body: str
    state: str
    url: str
    repository: str
    """Full repository name, "owner/repo"."""

    created_at: datetime
    updated_at: datetime
    author: str = "unknown"
    labels: list[str] = field(default_factory=list)

    @property
    def identifier(self) -> str:
        """Human-readable reference ("#42")."""
        return f"#{self.number}"
