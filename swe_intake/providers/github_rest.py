"""GitHub issue client using PyGithub."""

import asyncio
from collections.abc import Callable
from typing import TypeVar

import structlog
from github import Auth, Github, GithubException  # type: ignore[import-not-found]
from github.Issue import Issue as GHIssue  # type: ignore[import-not-found]
from github.IssueComment import IssueComment as GHComment  # type: ignore[import-not-found]
from github.Repository import Repository as GHRepository  # type: ignore[import-not-found]

from swe_intake.exceptions import AuthError, NotFoundError, TrackerResponseError, TransientNetworkError
from swe_intake.models.domain import Comment, GitHubIssue, User, Workspace
from swe_intake.providers.base import IssueTrackerClient

log = structlog.get_logger(__name__)

T = TypeVar("T")


async def _run_sync(func: Callable[[], T]) -> T:
    """Run a synchronous PyGithub call in a thread pool."""
    return await asyncio.to_thread(func)


class GitHubClient(IssueTrackerClient):
    """GitHub issues of one repository."""

    tracker = "github"

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        base_url: str = "https://api.github.com",
    ):
        """Initialize GitHub client.

        Args:
            token: Installation or personal access token
            owner: Repository owner (user or organization)
            repo: Repository name
            base_url: GitHub API base URL (for GitHub Enterprise)
        """
        self.token = token.strip() if token else token
        self.owner = owner
        self.repo = repo
        self.base_url = base_url.rstrip("/")
        self._client: Github | None = None
        self._repo: GHRepository | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    async def _get_repo(self) -> GHRepository:
        if self._repo is None:

            def _connect() -> tuple[Github, GHRepository]:
                client = Github(auth=Auth.Token(self.token), base_url=self.base_url)
                return client, client.get_repo(self.full_name)

            self._client, self._repo = await self._call(
                "connect", _connect, resource="repository", identifier=self.full_name
            )
            log.info("github_connected", base_url=self.base_url, repository=self.full_name)
        return self._repo

    async def _call(
        self,
        operation: str,
        func: Callable[[], T],
        resource: str | None = None,
        identifier: str | None = None,
    ) -> T:
        """Run a PyGithub call and translate its failures."""
        try:
            return await _run_sync(func)
        except GithubException as e:
            log.error("github_request_failed", operation=operation, status=e.status, error=str(e))
            if e.status in (401, 403):
                raise AuthError(f"GitHub rejected the token: {e}", tracker=self.tracker) from e
            if e.status == 404:
                raise NotFoundError(
                    f"{(resource or 'entity').capitalize()} not found: {identifier}",
                    resource=resource,
                    identifier=identifier,
                    tracker=self.tracker,
                ) from e
            if e.status and e.status >= 500:
                raise TransientNetworkError(f"GitHub returned HTTP {e.status}", tracker=self.tracker) from e
            raise TrackerResponseError(f"GitHub {operation} failed", status_code=e.status, tracker=self.tracker) from e
        except OSError as e:
            # requests' connection errors derive from OSError
            log.error("github_unreachable", operation=operation, error=str(e))
            raise TransientNetworkError(f"GitHub API unreachable: {e}", tracker=self.tracker) from e

    async def get_issue(self, issue_id: int | str) -> GitHubIssue:
        """Get an issue by number."""
        number = int(issue_id)
        log.info("get_issue", number=number, repository=self.full_name)

        repo = await self._get_repo()
        gh_issue = await self._call(
            "get_issue", lambda: repo.get_issue(number), resource="issue", identifier=str(number)
        )
        return self._convert_issue(gh_issue)

    async def get_workspace(self) -> Workspace:
        """The repository stands in for a workspace on GitHub."""
        repo = await self._get_repo()
        return Workspace(id=str(repo.id), name=repo.full_name, url_key=repo.owner.login)

    async def create_comment(self, issue_id: int | str, body: str) -> Comment:
        """Add a comment to an issue."""
        number = int(issue_id)
        log.info("create_comment", number=number, repository=self.full_name)

        repo = await self._get_repo()

        def _create() -> GHComment:
            return repo.get_issue(number).create_comment(body)

        gh_comment = await self._call("create_comment", _create, resource="issue", identifier=str(number))
        return self._convert_comment(gh_comment)

    async def get_comments(self, issue_id: int | str) -> list[Comment]:
        """Get all comments for an issue."""
        number = int(issue_id)
        log.info("get_comments", number=number, repository=self.full_name)

        repo = await self._get_repo()

        def _list() -> list[GHComment]:
            return list(repo.get_issue(number).get_comments())

        gh_comments = await self._call("get_comments", _list, resource="issue", identifier=str(number))
        return [self._convert_comment(c) for c in gh_comments]

    async def close(self) -> None:
        if self._client:
            await _run_sync(self._client.close)
            self._client = None
            self._repo = None

    def _convert_issue(self, gh_issue: GHIssue) -> GitHubIssue:
        return GitHubIssue(
            id=gh_issue.id,
            number=gh_issue.number,
            title=gh_issue.title,
            body=gh_issue.body or "",
            state=gh_issue.state,
            url=gh_issue.html_url,
            repository=self.full_name,
            created_at=gh_issue.created_at,
            updated_at=gh_issue.updated_at,
            author=gh_issue.user.login if gh_issue.user else "unknown",
            labels=[label.name for label in gh_issue.labels],
        )

    def _convert_comment(self, gh_comment: GHComment) -> Comment:
        user = gh_comment.user
        return Comment(
            id=str(gh_comment.id),
            body=gh_comment.body,
            user=User(id=str(user.id), name=user.login) if user else None,
            created_at=gh_comment.created_at,
        )
