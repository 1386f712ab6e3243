"""
Abstract base class for issue tracker clients.

Each tracker (Linear, GitHub) normalizes its API into the records defined in
swe_intake.models.domain. All methods are async and may raise:

- AuthError: the credential was rejected
- NotFoundError: the issue (or team) does not exist
- TransientNetworkError: the tracker could not be reached
- TrackerResponseError: any other error or an incomplete record

Clients never retry and enforce no timeouts beyond their transport's.
"""

from abc import ABC, abstractmethod
from typing import Any

from swe_intake.models.domain import Comment, Workspace


class IssueTrackerClient(ABC):
    """Authenticated reads and writes against one issue tracker."""

    tracker: str = ""

    @abstractmethod
    async def get_issue(self, issue_id: Any) -> Any:
        """Fetch one issue by id or human-readable identifier.

        Args:
            issue_id: Tracker id ("ENG-123" or a UUID for Linear, a number
                for GitHub)

        Returns:
            The tracker's issue record (LinearIssue or GitHubIssue)

        Raises:
            NotFoundError: If the issue does not exist
        """
        pass

    @abstractmethod
    async def get_workspace(self) -> Workspace:
        """Return the workspace the credential belongs to.

        Raises:
            AuthError: If the credential is invalid
        """
        pass

    @abstractmethod
    async def create_comment(self, issue_id: Any, body: str) -> Comment:
        """Post a markdown comment on an issue."""
        pass

    @abstractmethod
    async def get_comments(self, issue_id: Any) -> list[Comment]:
        """List an issue's comments, oldest first."""
        pass

    async def close(self) -> None:
        """Release client resources."""
        return None
