"""Tests for swe_intake/config/settings.py."""

import pytest

from swe_intake.config.settings import (
    DEFAULT_MAX_MODEL,
    LinearSettings,
    RunConfig,
    RunSettings,
    ServiceSettings,
    load_settings,
)
from swe_intake.exceptions import ConfigurationError


class TestRunConfig:
    """Tests for RunConfig."""

    def test_from_configurable_wire_keys(self):
        config = RunConfig.from_configurable(
            {
                "issueTracker": "linear",
                "x-linear-api-key": "lin_api_test",
                "x-github-installation-token": "ghs_test",
                "x-local-mode": True,
                "plannerModelName": "anthropic:claude-opus-4-1",
                "unrelated": "ignored",
            }
        )

        assert config.issue_tracker == "linear"
        assert config.secret("linear_api_key") == "lin_api_test"
        assert config.secret("github_token") == "ghs_test"
        assert config.local_mode is True
        assert config.planner_model_name == "anthropic:claude-opus-4-1"

    def test_from_configurable_field_names(self):
        config = RunConfig.from_configurable({"issue_tracker": "github", "linear_api_key": "k"})

        assert config.issue_tracker == "github"
        assert config.secret("linear_api_key") == "k"

    def test_empty_configurable(self):
        config = RunConfig.from_configurable(None)

        assert config.issue_tracker is None
        assert config.local_mode is False
        assert config.secret("linear_api_key") is None

    def test_blank_secret_is_missing(self):
        assert RunConfig(linear_api_key="   ").secret("linear_api_key") is None

    def test_secret_not_in_repr(self):
        assert "lin_api_test" not in repr(RunConfig(linear_api_key="lin_api_test"))


class TestLinearSettings:
    """Tests for team repository lookup."""

    def test_team_mapping_by_id_or_key(self):
        settings = LinearSettings(team_repositories={"team-1": "acme/api", "OPS": "acme/ops"})

        assert settings.repository_for_team("team-1", "ENG") == "acme/api"
        assert settings.repository_for_team(None, "OPS") == "acme/ops"

    def test_default_repository(self):
        settings = LinearSettings(default_repository="acme/widgets")

        assert settings.repository_for_team("team-9") == "acme/widgets"
        assert LinearSettings().repository_for_team("team-9") is None


class TestRunSettings:
    """Tests for RunSettings."""

    def test_defaults(self):
        settings = RunSettings()

        assert settings.dedup_window_seconds == 300.0
        assert settings.max_recorded_runs == 100

    def test_from_yaml(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("runs:\n  dedup_window_seconds: 45\n  max_recorded_runs: 0\n")

        settings = ServiceSettings.from_yaml(str(config))

        assert settings.runs.dedup_window_seconds == 45
        assert settings.runs.max_recorded_runs == 0

    def test_window_must_be_positive(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("runs:\n  dedup_window_seconds: 0\n")

        with pytest.raises(ConfigurationError):
            ServiceSettings.from_yaml(str(config))


class TestServiceSettingsFromYaml:
    """Tests for ServiceSettings.from_yaml."""

    def test_loads_yaml_with_env_interpolation(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_LINEAR_KEY", "lin_api_from_env")
        config = tmp_path / "config.yaml"
        config.write_text(
            "linear:\n"
            "  api_key: ${TEST_LINEAR_KEY}\n"
            "  default_repository: ${TEST_MISSING_REPO:-acme/widgets}\n"
            "  team_repositories:\n"
            "    ENG: acme/api\n"
            "log_level: DEBUG\n"
        )

        settings = ServiceSettings.from_yaml(str(config))

        assert settings.linear.api_key.get_secret_value() == "lin_api_from_env"
        assert settings.linear.default_repository == "acme/widgets"
        assert settings.linear.team_repositories == {"ENG": "acme/api"}
        assert settings.log_level == "DEBUG"
        assert settings.models.planner_model_name == DEFAULT_MAX_MODEL
        assert settings.runs == RunSettings()

    def test_comment_lines_are_not_interpolated(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_UNSET_VAR", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text("# api_key: ${TEST_UNSET_VAR}\nlog_level: INFO\n")

        assert ServiceSettings.from_yaml(str(config)).log_level == "INFO"

    def test_missing_env_var(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_UNSET_VAR", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text("linear:\n  api_key: ${TEST_UNSET_VAR}\n")

        with pytest.raises(ConfigurationError, match="TEST_UNSET_VAR"):
            ServiceSettings.from_yaml(str(config))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ServiceSettings.from_yaml(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("linear: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ServiceSettings.from_yaml(str(config))

    def test_non_mapping_yaml(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="YAML object"):
            ServiceSettings.from_yaml(str(config))

    def test_invalid_values(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("linear:\n  team_repositories: not-a-mapping\n")

        with pytest.raises(ConfigurationError, match="Failed to validate"):
            ServiceSettings.from_yaml(str(config))


class TestLoadSettings:
    """Tests for load_settings."""

    def test_uses_file_when_present(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("log_level: WARNING\n")

        assert load_settings(str(config)).log_level == "WARNING"

    def test_falls_back_to_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SWE_INTAKE_LINEAR__DEFAULT_REPOSITORY", "acme/from-env")

        settings = load_settings(str(tmp_path / "missing.yaml"))

        assert settings.linear.default_repository == "acme/from-env"
