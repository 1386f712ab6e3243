"""Tests for swe_intake/engine/router.py and tracker resolution."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from swe_intake.config.settings import RunConfig
from swe_intake.engine.initializers import GitHubIssueInitializer, LinearIssueInitializer
from swe_intake.engine.router import IssueInitializers, initialize_issue, select_initializer
from swe_intake.enums import TrackerKind
from swe_intake.exceptions import ConfigurationError
from swe_intake.models.state import SessionState, StateUpdate


@pytest.fixture
def initializers():
    """Initializers whose reconcile results identify which one ran."""
    linear = MagicMock()
    linear.reconcile = AsyncMock(return_value=StateUpdate(auto_accept_plan=True))
    github = MagicMock()
    github.reconcile = AsyncMock(return_value=StateUpdate(auto_accept_plan=False))
    return IssueInitializers(linear=linear, github=github)


class TestTrackerKindResolve:
    """Tests for TrackerKind.resolve."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("linear", TrackerKind.LINEAR),
            ("LINEAR", TrackerKind.LINEAR),
            ("github", TrackerKind.GITHUB),
            (None, TrackerKind.GITHUB),
            ("", TrackerKind.GITHUB),
            (TrackerKind.LINEAR, TrackerKind.LINEAR),
        ],
    )
    def test_resolve(self, value, expected):
        assert TrackerKind.resolve(value) == expected

    def test_unknown_tracker_falls_back_with_warning(self):
        with capture_logs() as logs:
            assert TrackerKind.resolve("jira") == TrackerKind.GITHUB

        assert logs[0]["event"] == "unknown_issue_tracker"
        assert logs[0]["log_level"] == "warning"


class TestSelectInitializer:
    """Tests for select_initializer."""

    def test_linear(self, initializers):
        assert select_initializer(TrackerKind.LINEAR, initializers) is initializers.linear

    def test_github(self, initializers):
        assert select_initializer(TrackerKind.GITHUB, initializers) is initializers.github

    def test_default_initializers(self):
        defaults = IssueInitializers()

        assert isinstance(defaults.linear, LinearIssueInitializer)
        assert isinstance(defaults.github, GitHubIssueInitializer)


class TestInitializeIssue:
    """Tests for initialize_issue."""

    @pytest.mark.asyncio
    async def test_dispatches_to_linear(self, initializers):
        state = SessionState()
        config = RunConfig.from_configurable({"issueTracker": "linear"})

        update = await initialize_issue(state, config, initializers)

        assert update == StateUpdate(auto_accept_plan=True)
        initializers.linear.reconcile.assert_awaited_once_with(state, config)
        initializers.github.reconcile.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tracker", [None, "github", "unknown"])
    async def test_everything_else_goes_to_github(self, initializers, tracker):
        config = RunConfig.from_configurable({"issueTracker": tracker})

        await initialize_issue(SessionState(), config, initializers)

        initializers.github.reconcile.assert_awaited_once()
        initializers.linear.reconcile.assert_not_called()

    @pytest.mark.asyncio
    async def test_initializer_errors_propagate(self, initializers):
        initializers.linear.reconcile.side_effect = ConfigurationError("Linear API key not provided")
        config = RunConfig.from_configurable({"issueTracker": "linear"})

        with pytest.raises(ConfigurationError, match="Linear API key not provided"):
            await initialize_issue(SessionState(), config, initializers)

    @pytest.mark.asyncio
    async def test_default_initializers_in_local_mode(self):
        config = RunConfig.from_configurable({"issueTracker": "linear", "x-local-mode": True})

        update = await initialize_issue(SessionState(), config)

        assert update.is_empty()
