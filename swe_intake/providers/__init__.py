"""Issue tracker clients.

Key Components:
    - IssueTrackerClient: Abstract base for tracker clients
    - LinearClient: Linear GraphQL implementation
    - GitHubClient: GitHub implementation on PyGithub
    - create_tracker_client: Build a client for a TrackerKind

Example:
    >>> from swe_intake.providers.linear_graphql import LinearClient
    >>> client = LinearClient(api_key="lin_api_...")
    >>> issue = await client.get_issue("ENG-123")
"""

from swe_intake.providers.base import IssueTrackerClient

__all__ = [
    "IssueTrackerClient",
]
