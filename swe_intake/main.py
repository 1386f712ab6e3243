"""CLI entry point for swe-intake."""

import asyncio
import json
import os
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

import click
import structlog

from swe_intake.config.settings import (
    GITHUB_TOKEN_KEY,
    ISSUE_TRACKER_KEY,
    LINEAR_API_KEY,
    LOCAL_MODE_KEY,
    RunConfig,
    ServiceSettings,
    load_settings,
)
from swe_intake.engine.router import initialize_issue
from swe_intake.enums import TrackerKind
from swe_intake.exceptions import ConfigurationError, SweIntakeError
from swe_intake.issues.linear_messages import extract_linear_issue_identifier
from swe_intake.models.state import IssueReference, SessionState, TargetRepository
from swe_intake.utils.connection_pool import close_all_pools
from swe_intake.utils.logging_config import configure_logging
from swe_intake.webhooks.linear import IngestionResult, handle_issue_labeled
from swe_intake.webhooks.runs import LocalRunCreator

log = structlog.get_logger(__name__)

T = TypeVar("T")


@click.group()
@click.option("--config", default="swe_intake_config.yaml", help="Path to configuration file")
@click.option("--log-level", default="INFO", help="Logging level")
@click.option("--json-logs/--console-logs", default=True, help="Render logs as JSON lines")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str, json_logs: bool) -> None:
    """swe-intake: issue tracker intake for coding-agent runs."""
    configure_logging(log_level, json_output=json_logs)

    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    ctx.obj = {"settings": settings, "config_path": config}


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the Linear webhook server."""
    import uvicorn

    # The server loads its own settings at startup
    os.environ["SWE_INTAKE_CONFIG"] = ctx.obj["config_path"]
    uvicorn.run("swe_intake.webhook_server:app", host=host, port=port)


@cli.command("process-webhook")
@click.option(
    "--payload",
    "payload_file",
    type=click.File("r"),
    default="-",
    help="Webhook payload JSON file (default: stdin)",
)
@click.pass_context
def process_webhook(ctx: click.Context, payload_file: Any) -> None:
    """Run a Linear label webhook payload through ingestion."""
    try:
        payload = json.load(payload_file)
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid JSON payload: {e}", err=True)
        sys.exit(1)
    if not isinstance(payload, dict):
        click.echo("Error: Webhook payload must be a JSON object", err=True)
        sys.exit(1)

    result = asyncio.run(
        _with_pool_cleanup(
            handle_issue_labeled(payload, settings=ctx.obj["settings"], run_creator=LocalRunCreator())
        )
    )
    click.echo(json.dumps(_result_summary(result), indent=2))
    if not result.ok:
        sys.exit(1)


@cli.command()
@click.argument("issue")
@click.option("--repository", required=True, help="Target repository (owner/repo)")
@click.option(
    "--tracker",
    type=click.Choice([kind.value for kind in TrackerKind]),
    default=TrackerKind.LINEAR.value,
    help="Issue tracker the issue lives in",
)
@click.pass_context
def initialize(ctx: click.Context, issue: str, repository: str, tracker: str) -> None:
    """Initialize a session from ISSUE (Linear id, identifier or URL; GitHub number)."""
    settings: ServiceSettings = ctx.obj["settings"]
    kind = TrackerKind(tracker)

    try:
        target = TargetRepository.parse(repository)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    issue_id = _normalize_issue_id(kind, issue)
    if issue_id is None:
        click.echo(f"Error: Cannot read a {kind.value} issue reference from {issue!r}", err=True)
        sys.exit(1)

    state = SessionState(
        issue_ref=IssueReference(tracker=kind, issue_id=issue_id),
        target_repository=target,
    )
    config = RunConfig.from_configurable(_configurable_from_settings(kind, settings))

    try:
        update = asyncio.run(_with_pool_cleanup(initialize_issue(state, config)))
    except SweIntakeError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("initialize_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    click.echo(json.dumps(update.model_dump(mode="json", by_alias=True, include=update.model_fields_set), indent=2))


async def _with_pool_cleanup(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return await coro
    finally:
        await close_all_pools()


def _normalize_issue_id(kind: TrackerKind, issue: str) -> str | None:
    issue = issue.strip()
    if kind == TrackerKind.GITHUB:
        number = issue.rsplit("/", 1)[-1].lstrip("#")
        return number if number.isdigit() else None
    if issue.startswith(("http://", "https://")):
        return extract_linear_issue_identifier(issue)
    return issue or None


def _configurable_from_settings(kind: TrackerKind, settings: ServiceSettings) -> dict[str, Any]:
    configurable: dict[str, Any] = {ISSUE_TRACKER_KEY: kind.value, LOCAL_MODE_KEY: False}
    if settings.linear.api_key:
        configurable[LINEAR_API_KEY] = settings.linear.api_key.get_secret_value()
    if settings.github.token:
        configurable[GITHUB_TOKEN_KEY] = settings.github.token.get_secret_value()
    return configurable


def _result_summary(result: IngestionResult) -> dict[str, Any]:
    return {
        "stage": result.stage.value,
        "label": result.intent.label,
        "issue": result.issue_identifier,
        "auto_accept": result.intent.auto_accept,
        "escalated_model": result.intent.escalated_model,
        "run_id": result.run.run_id if result.run else None,
        "thread_id": result.run.thread_id if result.run else None,
        "error": result.error,
    }


if __name__ == "__main__":
    cli()
