"""Tests for swe_intake/main.py CLI commands."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from swe_intake.enums import TrackerKind
from swe_intake.exceptions import ConfigurationError
from swe_intake.main import cli
from swe_intake.models.domain import Workspace
from swe_intake.models.state import ChatMessage, StateUpdate


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("swe_intake.main.configure_logging") as mock:
        yield mock


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "linear:\n"
        "  api_key: lin_api_test\n"
        "  team_repositories:\n"
        "    ENG: acme/widgets\n"
        "github:\n"
        "  token: ghs_test\n"
    )
    return str(config)


class TestCliGroup:
    """Tests for the top-level group."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "process-webhook" in result.output
        assert "initialize" in result.output
        assert "serve" in result.output

    def test_invalid_config_exits(self, runner, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("linear: [unclosed\n")

        result = runner.invoke(cli, ["--config", str(config), "initialize", "ENG-1", "--repository", "a/b"])

        assert result.exit_code == 1
        assert "Invalid YAML" in result.output

    def test_configures_logging(self, runner, config_file, no_logging_setup):
        runner.invoke(cli, ["--config", config_file, "--log-level", "DEBUG", "--console-logs", "serve", "--help"])

        no_logging_setup.assert_called_once_with("DEBUG", json_output=False)


class TestProcessWebhook:
    """Tests for the process-webhook command."""

    def test_inert_label(self, runner, config_file, linear_issue_payload):
        payload = {"data": {"label": {"name": "bug"}, "issue": linear_issue_payload}}

        result = runner.invoke(cli, ["--config", config_file, "process-webhook"], input=json.dumps(payload))

        assert result.exit_code == 0
        summary = json.loads(result.stdout)
        assert summary["stage"] == "ignored"
        assert summary["issue"] == "ENG-123"
        assert summary["run_id"] is None

    def test_trigger_label_from_file(self, runner, config_file, tmp_path, linear_issue_payload):
        payload_file = tmp_path / "payload.json"
        payload_file.write_text(
            json.dumps({"data": {"label": {"name": "open-swe-max-auto"}, "issue": linear_issue_payload}})
        )
        linear_client = MagicMock()
        linear_client.get_workspace = AsyncMock(return_value=Workspace(id="org-1", name="Acme"))
        linear_client.create_comment = AsyncMock()

        with patch("swe_intake.webhooks.linear.LinearClient", return_value=linear_client):
            result = runner.invoke(cli, ["--config", config_file, "process-webhook", "--payload", str(payload_file)])

        assert result.exit_code == 0
        summary = json.loads(result.stdout)
        assert summary["stage"] == "acknowledged"
        assert summary["auto_accept"] is True
        assert summary["escalated_model"] is True
        assert summary["run_id"]
        linear_client.create_comment.assert_awaited_once()

    def test_failed_ingestion_exits_nonzero(self, runner, tmp_path, linear_issue_payload):
        config = tmp_path / "config.yaml"
        config.write_text("log_level: INFO\n")
        payload = {"data": {"label": {"name": "open-swe"}, "issue": linear_issue_payload}}

        result = runner.invoke(cli, ["--config", str(config), "process-webhook"], input=json.dumps(payload))

        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"]

    def test_invalid_json(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "process-webhook"], input="not json")

        assert result.exit_code == 1
        assert "Invalid JSON payload" in result.output


class TestInitialize:
    """Tests for the initialize command."""

    def test_linear_url(self, runner, config_file):
        update = StateUpdate(messages=[ChatMessage.human("**Fix login**", isOriginalIssue=True)])

        with patch("swe_intake.main.initialize_issue", new=AsyncMock(return_value=update)) as initialize:
            result = runner.invoke(
                cli,
                [
                    "--config",
                    config_file,
                    "initialize",
                    "https://linear.app/acme/issue/ENG-123/fix-login",
                    "--repository",
                    "acme/widgets",
                ],
            )

        assert result.exit_code == 0
        output = json.loads(result.stdout)
        assert output["messages"][0]["content"] == "**Fix login**"
        assert set(output) == {"messages"}

        state, config = initialize.call_args.args
        assert state.issue_ref.tracker == TrackerKind.LINEAR
        assert state.issue_ref.issue_id == "ENG-123"
        assert state.target_repository.full_name == "acme/widgets"
        assert config.issue_tracker == "linear"
        assert config.secret("linear_api_key") == "lin_api_test"

    def test_github_number(self, runner, config_file):
        with patch("swe_intake.main.initialize_issue", new=AsyncMock(return_value=StateUpdate())) as initialize:
            result = runner.invoke(
                cli,
                ["--config", config_file, "initialize", "#42", "--repository", "acme/widgets", "--tracker", "github"],
            )

        assert result.exit_code == 0
        state, config = initialize.call_args.args
        assert state.issue_ref.issue_id == "42"
        assert config.secret("github_token") == "ghs_test"

    def test_invalid_github_reference(self, runner, config_file):
        result = runner.invoke(
            cli, ["--config", config_file, "initialize", "abc", "--repository", "acme/widgets", "--tracker", "github"]
        )

        assert result.exit_code == 1
        assert "Cannot read a github issue reference" in result.output

    def test_invalid_repository(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "initialize", "ENG-1", "--repository", "widgets"])

        assert result.exit_code == 1
        assert "owner/repo" in result.output

    def test_initialization_error(self, runner, config_file):
        error = ConfigurationError("Linear API key not provided")

        with patch("swe_intake.main.initialize_issue", new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["--config", config_file, "initialize", "ENG-1", "--repository", "a/b"])

        assert result.exit_code == 1
        assert "Linear API key not provided" in result.output
