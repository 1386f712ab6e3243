"""
Configuration system using Pydantic for type-safe settings management.

Two layers of configuration exist:

- RunConfig is the workflow configuration the graph engine hands to every
  node of one run. Credentials live here so nodes never read the process
  environment.
- ServiceSettings configures the long-running ingestion service (webhook
  server, CLI) and is loaded from YAML and/or environment variables.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from swe_intake.exceptions import ConfigurationError

# Keys under which the graph engine's configurable mapping carries values
ISSUE_TRACKER_KEY = "issueTracker"
LINEAR_API_KEY = "x-linear-api-key"
GITHUB_TOKEN_KEY = "x-github-installation-token"
LOCAL_MODE_KEY = "x-local-mode"

DEFAULT_MAX_MODEL = "anthropic:claude-opus-4-1"


class RunConfig(BaseModel):
    """Workflow configuration scoped to a single run."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    issue_tracker: str | None = Field(
        default=None,
        alias=ISSUE_TRACKER_KEY,
        description="Tracker that originated the session; unset means GitHub",
    )
    linear_api_key: SecretStr | None = Field(default=None, alias=LINEAR_API_KEY)
    github_token: SecretStr | None = Field(default=None, alias=GITHUB_TOKEN_KEY)
    local_mode: bool = Field(
        default=False,
        alias=LOCAL_MODE_KEY,
        description="No tracker access; the triggering message is already in state",
    )
    planner_model_name: str | None = Field(default=None, alias="plannerModelName")
    programmer_model_name: str | None = Field(default=None, alias="programmerModelName")

    @classmethod
    def from_configurable(cls, configurable: dict[str, Any] | None) -> RunConfig:
        """Build from the graph engine's configurable mapping.

        Accepts both the wire keys (e.g. "x-linear-api-key") and field names.
        """
        return cls.model_validate(configurable or {})

    def secret(self, name: str) -> str | None:
        """Return a credential's plain value, or None when unset or blank."""
        value: SecretStr | None = getattr(self, name)
        if value is None:
            return None
        return value.get_secret_value().strip() or None


class LinearSettings(BaseModel):
    """Linear integration settings for the ingestion service."""

    api_key: SecretStr | None = Field(default=None, description="Linear personal or OAuth API key")
    api_url: str = Field(default="https://api.linear.app/graphql", description="GraphQL endpoint")
    webhook_secret: SecretStr | None = Field(
        default=None, description="Signing secret used to verify the Linear-Signature header"
    )
    default_repository: str | None = Field(
        default=None, description="Repository ('owner/repo') used when a team has no mapping"
    )
    team_repositories: dict[str, str] = Field(
        default_factory=dict, description="Linear team id or key to 'owner/repo'"
    )

    def repository_for_team(self, *team_refs: str | None) -> str | None:
        """Return the configured repository for the first mapped team id or key."""
        for ref in team_refs:
            if ref and ref in self.team_repositories:
                return self.team_repositories[ref]
        return self.default_repository


class GitHubSettings(BaseModel):
    """GitHub integration settings."""

    token: SecretStr | None = Field(default=None, description="Installation or personal access token")
    base_url: str = Field(default="https://api.github.com", description="API URL (GitHub Enterprise)")


class ModelOverrides(BaseModel):
    """Models requested for runs triggered by an escalated-model label."""

    planner_model_name: str = Field(default=DEFAULT_MAX_MODEL)
    programmer_model_name: str = Field(default=DEFAULT_MAX_MODEL)


class RunSettings(BaseModel):
    """Duplicate-event suppression for in-process run creation."""

    dedup_window_seconds: float = Field(
        default=300.0, gt=0, description="How long a repeated trigger for the same issue and label is ignored"
    )
    max_recorded_runs: int = Field(default=100, ge=0, description="Submitted runs kept for inspection")


class ServiceSettings(BaseSettings):
    """Settings for the ingestion service.

    Loaded from a YAML file with ${VAR} interpolation, or from environment
    variables such as SWE_INTAKE_LINEAR__API_KEY.
    """

    model_config = SettingsConfigDict(
        env_prefix="SWE_INTAKE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    linear: LinearSettings = Field(default_factory=LinearSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    models: ModelOverrides = Field(default_factory=ModelOverrides)
    runs: RunSettings = Field(default_factory=RunSettings)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_yaml(cls, config_path: str) -> ServiceSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} and ${VAR_NAME:-default} substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ServiceSettings instance

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Replace ${VAR} and ${VAR:-default} placeholders outside YAML comments.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            if default_value is not None:
                return default_value
            raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))


def load_settings(config_path: str | None = None) -> ServiceSettings:
    """Load service settings from `config_path` if it exists, else from the environment."""
    if config_path and Path(config_path).exists():
        return ServiceSettings.from_yaml(config_path)
    try:
        return ServiceSettings()
    except Exception as e:
        raise ConfigurationError(f"Failed to load settings from environment: {e}") from e
