"""Tracker client construction."""

from swe_intake.config.settings import ServiceSettings
from swe_intake.enums import TrackerKind
from swe_intake.exceptions import ConfigurationError
from swe_intake.models.state import TargetRepository
from swe_intake.providers.base import IssueTrackerClient
from swe_intake.providers.github_rest import GitHubClient
from swe_intake.providers.linear_graphql import LINEAR_API_URL, LinearClient


def create_tracker_client(
    kind: TrackerKind,
    token: str,
    repository: TargetRepository | None = None,
    settings: ServiceSettings | None = None,
) -> IssueTrackerClient:
    """Build the client for `kind`.

    Args:
        kind: Tracker to talk to
        token: Tracker credential
        repository: Repository that scopes a GitHub client (required for GitHub)
        settings: Optional service settings for endpoint overrides

    Raises:
        ConfigurationError: If GitHub is requested without a repository
    """
    if kind == TrackerKind.LINEAR:
        api_url = settings.linear.api_url if settings else LINEAR_API_URL
        return LinearClient(api_key=token, api_url=api_url)

    if repository is None:
        raise ConfigurationError("Target repository not provided")
    base_url = settings.github.base_url if settings else "https://api.github.com"
    return GitHubClient(token=token, owner=repository.owner, repo=repository.repo, base_url=base_url)
