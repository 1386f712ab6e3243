"""Linear client implementation using direct GraphQL calls."""

import hashlib
from datetime import datetime
from typing import Any

import httpx
import structlog

from swe_intake.exceptions import AuthError, NotFoundError, TrackerResponseError, TransientNetworkError
from swe_intake.models.domain import Comment, LinearIssue, Team, User, Workspace, WorkflowState, parse_timestamp
from swe_intake.providers.base import IssueTrackerClient
from swe_intake.utils.connection_pool import HTTPConnectionPool, get_pool

log = structlog.get_logger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"

_ISSUE_FIELDS = """
    id
    identifier
    title
    description
    url
    createdAt
    updatedAt
    state { id name type }
    team { id name key }
    assignee { id name email }
    labels { nodes { id name color } }
"""

_COMMENT_FIELDS = """
    id
    body
    createdAt
    user { id name email }
"""

ISSUE_QUERY = f"""
query Issue($id: String!) {{
    issue(id: $id) {{ {_ISSUE_FIELDS} }}
}}
"""

VIEWER_ORGANIZATION_QUERY = """
query ViewerOrganization {
    viewer { organization { id name urlKey } }
}
"""

TEAMS_QUERY = """
query Teams {
    teams { nodes { id name key } }
}
"""

TEAM_STATES_QUERY = """
query TeamStates($id: String!) {
    team(id: $id) { states { nodes { id name type color } } }
}
"""

ISSUE_COMMENTS_QUERY = f"""
query IssueComments($id: String!) {{
    issue(id: $id) {{ comments {{ nodes {{ {_COMMENT_FIELDS} }} }} }}
}}
"""

COMMENT_CREATE_MUTATION = f"""
mutation CommentCreate($issueId: String!, $body: String!) {{
    commentCreate(input: {{ issueId: $issueId, body: $body }}) {{
        success
        comment {{ {_COMMENT_FIELDS} }}
    }}
}}
"""

ISSUE_UPDATE_STATE_MUTATION = """
mutation IssueUpdateState($id: String!, $stateId: String!) {
    issueUpdate(id: $id, input: { stateId: $stateId }) { success }
}
"""


class LinearClient(IssueTrackerClient):
    """Linear implementation using the GraphQL API."""

    tracker = "linear"

    def __init__(
        self,
        api_key: str,
        api_url: str = LINEAR_API_URL,
        pool: HTTPConnectionPool | None = None,
    ):
        """Initialize Linear client.

        Args:
            api_key: Linear API key (sent as-is in the Authorization header)
            api_url: GraphQL endpoint
            pool: Connection pool to use instead of the shared named pool
        """
        self.api_key = api_key.strip() if api_key else api_key
        url = httpx.URL(api_url)
        self.base_url = f"{url.scheme}://{url.netloc.decode()}"
        self.path = url.path or "/graphql"
        self._pool = pool

    async def _get_pool(self) -> HTTPConnectionPool:
        if self._pool is None:
            # One pool per credential: the key is part of the default headers
            digest = hashlib.sha256(self.api_key.encode("utf-8")).hexdigest()[:12]
            self._pool = await get_pool(
                name=f"linear-{digest}",
                base_url=self.base_url,
                headers={
                    "Authorization": self.api_key,
                    "Content-Type": "application/json",
                },
            )
        return self._pool

    async def _execute(
        self,
        operation: str,
        query: str,
        variables: dict[str, Any] | None = None,
        resource: str | None = None,
        identifier: str | None = None,
    ) -> dict[str, Any]:
        """Run a GraphQL document and return its `data` object.

        Raises:
            TransientNetworkError: On transport failures and HTTP 5xx
            AuthError: On HTTP 401/403 or GraphQL authentication errors
            NotFoundError: When GraphQL reports a missing entity
            TrackerResponseError: On any other error response
        """
        pool = await self._get_pool()
        try:
            response = await pool.post(self.path, json={"query": query, "variables": variables or {}})
        except httpx.TransportError as e:
            log.error("linear_request_failed", operation=operation, error=str(e))
            raise TransientNetworkError(f"Linear API unreachable: {e}", tracker=self.tracker) from e

        if response.status_code in (401, 403):
            log.error("linear_auth_failed", operation=operation, status=response.status_code)
            raise AuthError("Linear rejected the API key", tracker=self.tracker)
        if response.status_code >= 500:
            log.error("linear_server_error", operation=operation, status=response.status_code)
            raise TransientNetworkError(
                f"Linear API returned HTTP {response.status_code}", tracker=self.tracker
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TrackerResponseError(
                f"Linear returned a non-JSON response for {operation}",
                status_code=response.status_code,
                tracker=self.tracker,
            ) from e

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            self._raise_for_errors(operation, errors, resource, identifier)
        if response.status_code != 200:
            raise TrackerResponseError(
                f"Linear request {operation} failed", status_code=response.status_code, tracker=self.tracker
            )

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise TrackerResponseError(f"Linear returned no data for {operation}", tracker=self.tracker)
        return data

    def _raise_for_errors(
        self,
        operation: str,
        errors: list[dict[str, Any]],
        resource: str | None,
        identifier: str | None,
    ) -> None:
        messages = []
        for error in errors:
            extensions = error.get("extensions") or {}
            code = str(extensions.get("code") or extensions.get("type") or "").lower()
            message = str(error.get("message") or "")
            presentable = str(extensions.get("userPresentableMessage") or "")
            messages.append(message)

            if "authentication" in code or "forbidden" in code:
                log.error("linear_auth_failed", operation=operation, error=message)
                raise AuthError(f"Linear rejected the API key: {message}", tracker=self.tracker)
            if "not found" in message.lower() or "not found" in presentable.lower() or "not found" in code:
                log.info("linear_entity_not_found", operation=operation, resource=resource, identifier=identifier)
                raise NotFoundError(
                    f"{(resource or 'entity').capitalize()} not found: {identifier}",
                    resource=resource,
                    identifier=identifier,
                    tracker=self.tracker,
                )

        log.error("linear_graphql_errors", operation=operation, errors=messages)
        raise TrackerResponseError(f"Linear {operation} failed: {'; '.join(messages)}", tracker=self.tracker)

    async def get_issue(self, issue_id: str) -> LinearIssue:
        """Get an issue by UUID or identifier ("ENG-123")."""
        log.info("get_issue", issue_id=issue_id)

        data = await self._execute("issue", ISSUE_QUERY, {"id": issue_id}, resource="issue", identifier=issue_id)
        node = data.get("issue")
        if not node:
            raise NotFoundError(
                f"Issue not found: {issue_id}", resource="issue", identifier=issue_id, tracker=self.tracker
            )
        return LinearIssue.from_payload(node)

    async def get_workspace(self) -> Workspace:
        """Get the organization of the API key's user."""
        log.info("get_workspace")

        data = await self._execute("viewer_organization", VIEWER_ORGANIZATION_QUERY)
        organization = (data.get("viewer") or {}).get("organization")
        if not organization:
            raise TrackerResponseError("Linear returned no organization for the viewer", tracker=self.tracker)
        return Workspace(
            id=organization["id"],
            name=organization.get("name", ""),
            url_key=organization.get("urlKey", ""),
        )

    async def get_team(self, team_id_or_key: str) -> Team:
        """Get a team by id or key."""
        log.info("get_team", team=team_id_or_key)

        data = await self._execute("teams", TEAMS_QUERY)
        for node in (data.get("teams") or {}).get("nodes") or []:
            if team_id_or_key in (node.get("id"), node.get("key")):
                return Team(id=node["id"], name=node.get("name", ""), key=node.get("key", ""))

        raise NotFoundError(
            f"Team not found: {team_id_or_key}", resource="team", identifier=team_id_or_key, tracker=self.tracker
        )

    async def create_comment(self, issue_id: str, body: str) -> Comment:
        """Add a comment to an issue."""
        log.info("create_comment", issue_id=issue_id)

        data = await self._execute(
            "comment_create",
            COMMENT_CREATE_MUTATION,
            {"issueId": issue_id, "body": body},
            resource="issue",
            identifier=issue_id,
        )
        result = data.get("commentCreate") or {}
        if not result.get("success") or not result.get("comment"):
            raise TrackerResponseError("Failed to create comment", tracker=self.tracker)
        return self._parse_comment(result["comment"])

    async def get_comments(self, issue_id: str) -> list[Comment]:
        """Get all comments for an issue, oldest first."""
        log.info("get_comments", issue_id=issue_id)

        data = await self._execute(
            "issue_comments", ISSUE_COMMENTS_QUERY, {"id": issue_id}, resource="issue", identifier=issue_id
        )
        node = data.get("issue")
        if not node:
            raise NotFoundError(
                f"Issue not found: {issue_id}", resource="issue", identifier=issue_id, tracker=self.tracker
            )
        comments = [self._parse_comment(c) for c in (node.get("comments") or {}).get("nodes") or []]
        return sorted(comments, key=lambda c: c.created_at)

    async def update_issue_state(self, issue_id: str, state_id: str) -> None:
        """Move an issue to another workflow state."""
        log.info("update_issue_state", issue_id=issue_id, state_id=state_id)

        data = await self._execute(
            "issue_update",
            ISSUE_UPDATE_STATE_MUTATION,
            {"id": issue_id, "stateId": state_id},
            resource="issue",
            identifier=issue_id,
        )
        if not (data.get("issueUpdate") or {}).get("success"):
            raise TrackerResponseError(f"Failed to update state of issue {issue_id}", tracker=self.tracker)

    async def get_team_states(self, team_id: str) -> list[WorkflowState]:
        """Get all workflow states available to a team."""
        log.info("get_team_states", team_id=team_id)

        data = await self._execute(
            "team_states", TEAM_STATES_QUERY, {"id": team_id}, resource="team", identifier=team_id
        )
        team = data.get("team")
        if not team:
            raise NotFoundError(f"Team not found: {team_id}", resource="team", identifier=team_id, tracker=self.tracker)
        return [
            WorkflowState(
                id=node["id"],
                name=node.get("name", ""),
                type=node.get("type", ""),
                color=node.get("color", ""),
            )
            for node in (team.get("states") or {}).get("nodes") or []
        ]

    def _parse_comment(self, data: dict[str, Any]) -> Comment:
        """Parse a GraphQL comment node into the Comment model.

        The user can be null for comments posted by integrations.
        """
        user = data.get("user")
        created_at: datetime = parse_timestamp(data.get("createdAt"))
        return Comment(
            id=data["id"],
            body=data.get("body", ""),
            user=User(id=user["id"], name=user.get("name", ""), email=user.get("email") or "") if user else None,
            created_at=created_at,
        )
