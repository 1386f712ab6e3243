"""
Issue initialization routing.

The manager graph's first node. It picks the initializer for the configured
tracker and returns that initializer's update unchanged.
"""

from dataclasses import dataclass, field

import structlog

from swe_intake.config.settings import RunConfig
from swe_intake.engine.initializers import GitHubIssueInitializer, IssueInitializer, LinearIssueInitializer
from swe_intake.enums import TrackerKind
from swe_intake.models.state import SessionState, StateUpdate

log = structlog.get_logger(__name__)


@dataclass
class IssueInitializers:
    """One initializer per supported tracker."""

    linear: IssueInitializer = field(default_factory=LinearIssueInitializer)
    github: IssueInitializer = field(default_factory=GitHubIssueInitializer)


def select_initializer(kind: TrackerKind, initializers: IssueInitializers) -> IssueInitializer:
    """Return the initializer for `kind`; anything but Linear gets GitHub's."""
    if kind == TrackerKind.LINEAR:
        return initializers.linear
    return initializers.github


async def initialize_issue(
    state: SessionState,
    config: RunConfig,
    initializers: IssueInitializers | None = None,
) -> StateUpdate:
    """Initialize the session from its issue using the configured tracker.

    Args:
        state: Current session state
        config: Run configuration (tracker, credentials, local mode)
        initializers: Initializers to dispatch to (defaults to the real ones)

    Returns:
        The selected initializer's update
    """
    kind = TrackerKind.resolve(config.issue_tracker)
    initializer = select_initializer(kind, initializers or IssueInitializers())
    log.debug("initializer_selected", tracker=kind.value)
    return await initializer.reconcile(state, config)
