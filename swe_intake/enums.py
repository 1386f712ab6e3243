"""Enumerations for swe-intake trackers and messages."""

from enum import Enum

import structlog

log = structlog.get_logger(__name__)


class TrackerKind(str, Enum):
    """Issue trackers that can originate a session.

    GitHub is the default: sessions created before Linear support existed
    carry no tracker setting at all.
    """

    GITHUB = "github"
    LINEAR = "linear"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def default(cls) -> "TrackerKind":
        """Return the tracker used when none is configured."""
        return cls.GITHUB

    @classmethod
    def resolve(cls, value: "str | TrackerKind | None") -> "TrackerKind":
        """Map a configured tracker name onto a supported tracker.

        Unset and unknown names fall back to the default tracker instead of
        failing.
        """
        if isinstance(value, TrackerKind):
            return value
        if not value:
            return cls.default()
        try:
            return cls(value.strip().lower())
        except ValueError:
            log.warning("unknown_issue_tracker", issue_tracker=value, fallback=cls.default().value)
            return cls.default()


class MessageOrigin(str, Enum):
    """Who authored a chat message."""

    HUMAN = "human"
    AI = "ai"
    SYSTEM = "system"

    def __str__(self) -> str:
        return self.value


class RequestSource(str, Enum):
    """Where a human message entered the system."""

    LINEAR_ISSUE_WEBHOOK = "linear_issue_webhook"
    GITHUB_ISSUE_WEBHOOK = "github_issue_webhook"
    CLI = "cli"

    def __str__(self) -> str:
        return self.value
