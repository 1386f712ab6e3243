"""
Linear issue-labeled webhook ingestion.

A Linear label event walks through these stages:

    received -> filtered -> context_established -> run_input_built
             -> run_created -> acknowledged

Labels outside the trigger set stop at `ignored` without touching Linear.
Every failure is caught at this boundary and logged with the issue
identifier and label, so one bad webhook cannot take the service down. The
run configuration (auto-accept, models) is fixed before the run is created.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from swe_intake.config.settings import (
    ISSUE_TRACKER_KEY,
    ServiceSettings,
)
from swe_intake.engine.label_policy import LabelIntent, classify_label
from swe_intake.enums import RequestSource, TrackerKind
from swe_intake.exceptions import ConfigurationError, TrackerError
from swe_intake.issues.linear_messages import render_linear_issue
from swe_intake.models.domain import LinearIssue
from swe_intake.models.state import (
    LINEAR_ISSUE_ID_KEY,
    ORIGINAL_ISSUE_KEY,
    REQUEST_SOURCE_KEY,
    ChatMessage,
    IssueReference,
    StateUpdate,
    TargetRepository,
    WorkspaceRef,
)
from swe_intake.providers.base import IssueTrackerClient
from swe_intake.providers.linear_graphql import LinearClient
from swe_intake.webhooks.runs import RunCreator, RunHandle

log = structlog.get_logger(__name__)

ACKNOWLEDGEMENT_MESSAGE = "🤖 Open SWE has been triggered for this issue. Processing..."


class IngestionStage(str, Enum):
    """Last stage an event reached."""

    IGNORED = "ignored"
    RECEIVED = "received"
    FILTERED = "filtered"
    CONTEXT_ESTABLISHED = "context_established"
    RUN_INPUT_BUILT = "run_input_built"
    RUN_CREATED = "run_created"
    ACKNOWLEDGED = "acknowledged"


@dataclass
class WebhookContext:
    """Credentials and scope resolved for one event."""

    client: IssueTrackerClient
    workspace_id: str
    team_id: str | None = None


@dataclass
class IngestionResult:
    """Outcome of handling one webhook."""

    stage: IngestionStage
    intent: LabelIntent
    issue_identifier: str | None = None
    run: RunHandle | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


RunInputBuilder = Callable[[LinearIssue, WebhookContext, LabelIntent, ServiceSettings], StateUpdate]
LinearClientFactory = Callable[[str, ServiceSettings], IssueTrackerClient]


@dataclass(frozen=True)
class IngestionStrategy:
    """The pure decisions the ingestion function delegates."""

    classify_label: Callable[[str | None], LabelIntent]
    build_run_input: RunInputBuilder


def resolve_target_repository(
    issue: LinearIssue,
    context: WebhookContext,
    settings: ServiceSettings,
) -> TargetRepository:
    """Look up the repository configured for the issue's team.

    Raises:
        ConfigurationError: If no repository is configured or it is malformed
    """
    repository = settings.linear.repository_for_team(context.team_id, issue.team.id, issue.team.key)
    if not repository:
        raise ConfigurationError(f"No target repository configured for Linear team {issue.team.key or issue.team.id}")
    try:
        return TargetRepository.parse(repository)
    except ValueError as e:
        raise ConfigurationError(f"Invalid target repository for Linear team {issue.team.key}: {e}") from e


def build_linear_run_input(
    issue: LinearIssue,
    context: WebhookContext,
    intent: LabelIntent,
    settings: ServiceSettings,
) -> StateUpdate:
    """Build the initial state of the run started for `issue`."""
    message = ChatMessage.human(
        render_linear_issue(issue),
        **{
            REQUEST_SOURCE_KEY: RequestSource.LINEAR_ISSUE_WEBHOOK.value,
            ORIGINAL_ISSUE_KEY: True,
            LINEAR_ISSUE_ID_KEY: issue.id,
        },
    )
    return StateUpdate(
        messages=[message],
        issue_ref=IssueReference(tracker=TrackerKind.LINEAR, issue_id=issue.id),
        workspace=WorkspaceRef(workspace_id=context.workspace_id, team_id=context.team_id),
        target_repository=resolve_target_repository(issue, context, settings),
        auto_accept_plan=intent.auto_accept,
    )


def build_run_configurable(intent: LabelIntent, settings: ServiceSettings) -> dict[str, Any]:
    """Run configuration overrides; escalated labels select the max models."""
    configurable: dict[str, Any] = {ISSUE_TRACKER_KEY: TrackerKind.LINEAR.value}
    if intent.escalated_model:
        configurable["plannerModelName"] = settings.models.planner_model_name
        configurable["programmerModelName"] = settings.models.programmer_model_name
    return configurable


DEFAULT_STRATEGY = IngestionStrategy(
    classify_label=classify_label,
    build_run_input=build_linear_run_input,
)


def _default_client_factory(api_key: str, settings: ServiceSettings) -> IssueTrackerClient:
    return LinearClient(api_key=api_key, api_url=settings.linear.api_url)


async def establish_context(
    payload: dict[str, Any],
    settings: ServiceSettings,
    client_factory: LinearClientFactory,
) -> WebhookContext | None:
    """Resolve the Linear client and workspace for an event.

    Returns:
        The context, or None when the API key is missing or rejected
    """
    api_key = settings.linear.api_key.get_secret_value().strip() if settings.linear.api_key else ""
    if not api_key:
        log.error("linear_api_key_missing")
        return None

    client = client_factory(api_key, settings)
    try:
        workspace = await client.get_workspace()
    except TrackerError as e:
        log.error("linear_context_setup_failed", error=e.message, error_type=type(e).__name__)
        return None

    data = _mapping(payload.get("data"))
    team_id = _mapping(data.get("team")).get("id") or _mapping(_mapping(data.get("issue")).get("team")).get("id")
    return WebhookContext(client=client, workspace_id=workspace.id, team_id=team_id)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def format_acknowledgement(message: str, run: RunHandle) -> str:
    """Append the run identifiers as a hidden marker humans can correlate."""
    return f"{message}\n\n<!-- Open SWE Run: {run.run_id} | Thread: {run.thread_id} -->"


async def acknowledge(context: WebhookContext, issue_id: str, run: RunHandle) -> None:
    """Post the acknowledgement comment.

    Raises:
        TrackerError: If the comment cannot be created
    """
    log.info("creating_acknowledgement_comment", issue_id=issue_id, run_id=run.run_id)
    try:
        await context.client.create_comment(issue_id, format_acknowledgement(ACKNOWLEDGEMENT_MESSAGE, run))
    except TrackerError as e:
        log.error("acknowledgement_comment_failed", issue_id=issue_id, run_id=run.run_id, error=e.message)
        raise


async def handle_issue_labeled(
    payload: dict[str, Any],
    *,
    settings: ServiceSettings,
    run_creator: RunCreator,
    strategy: IngestionStrategy = DEFAULT_STRATEGY,
    client_factory: LinearClientFactory | None = None,
) -> IngestionResult:
    """Handle a Linear "label added to issue" webhook.

    Never raises: failures are logged and reported in the result. A run that
    was created stays created even if the acknowledgement fails.

    Args:
        payload: Webhook JSON (`data.label`, `data.issue`, `data.team`)
        settings: Service settings (Linear credentials, repositories, models)
        run_creator: Starts the manager run
        strategy: Label classification and run-input mapping
        client_factory: Builds the Linear client from the API key

    Returns:
        IngestionResult with the last stage reached
    """
    data = _mapping(payload.get("data"))
    label = _mapping(data.get("label")).get("name")
    if not isinstance(label, str):
        label = None
    raw_issue = _mapping(data.get("issue"))
    identifier = raw_issue.get("identifier")

    intent = strategy.classify_label(label)
    if not intent.is_trigger:
        log.debug("linear_label_ignored", label=label, issue=identifier)
        return IngestionResult(stage=IngestionStage.IGNORED, intent=intent, issue_identifier=identifier)

    log.info(
        "linear_trigger_label_added",
        label=label,
        issue=identifier,
        auto_accept=intent.auto_accept,
        escalated_model=intent.escalated_model,
    )

    stage = IngestionStage.FILTERED
    run: RunHandle | None = None
    with structlog.contextvars.bound_contextvars(issue=identifier, label=label):
        try:
            context = await establish_context(payload, settings, client_factory or _default_client_factory)
            if context is None:
                return IngestionResult(
                    stage=stage,
                    intent=intent,
                    issue_identifier=identifier,
                    error="Linear webhook context could not be established",
                )
            stage = IngestionStage.CONTEXT_ESTABLISHED

            if not raw_issue:
                log.error("linear_webhook_missing_issue")
                return IngestionResult(
                    stage=stage,
                    intent=intent,
                    issue_identifier=identifier,
                    error="No issue data in Linear webhook payload",
                )

            issue = LinearIssue.from_payload(raw_issue)
            run_input = strategy.build_run_input(issue, context, intent, settings)
            configurable = build_run_configurable(intent, settings)
            stage = IngestionStage.RUN_INPUT_BUILT

            run = await run_creator.create_run(run_input, configurable, idempotency_key=f"linear:{issue.id}:{label}")
            stage = IngestionStage.RUN_CREATED

            if not run.created:
                log.info("linear_run_already_active", run_id=run.run_id, thread_id=run.thread_id)
                return IngestionResult(stage=stage, intent=intent, issue_identifier=identifier, run=run)

            await acknowledge(context, issue.id, run)
            stage = IngestionStage.ACKNOWLEDGED
        except Exception as e:
            log.error("linear_webhook_failed", stage=stage.value, error=str(e), exc_info=True)
            return IngestionResult(stage=stage, intent=intent, issue_identifier=identifier, run=run, error=str(e))

    log.info("linear_webhook_processed", run_id=run.run_id, thread_id=run.thread_id)
    return IngestionResult(stage=stage, intent=intent, issue_identifier=identifier, run=run)
