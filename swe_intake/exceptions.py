"""Custom exception hierarchy for swe-intake.

The hierarchy separates problems the operator must fix (configuration),
problems reported by an issue tracker, and failures of the run-creation
collaborator. Node code lets these propagate; only the webhook boundary
catches them.

Exception Hierarchy:
    SweIntakeError (base)
    ├── ConfigurationError
    ├── TrackerError
    │   ├── AuthError
    │   ├── NotFoundError
    │   ├── TransientNetworkError
    │   └── TrackerResponseError
    └── RunCreationError

Example Usage:
    >>> from swe_intake.exceptions import ConfigurationError
    >>> if not config.linear_api_key:
    ...     raise ConfigurationError("Linear API key not provided")
"""


class SweIntakeError(Exception):
    """Base exception for all swe-intake errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(SweIntakeError):
    """Configuration-related errors.

    Raised when a credential or a required session reference is missing, or
    when a settings file cannot be loaded. Never retried.

    Examples:
        - Linear API key not provided
        - Linear issue ID not provided
        - Target repository not provided
        - Invalid YAML in the settings file
    """

    pass


class TrackerError(SweIntakeError):
    """Base class for errors reported by an issue tracker.

    Attributes:
        message: Human-readable error description
        tracker: Tracker that produced the error ("linear", "github")
    """

    def __init__(self, message: str, tracker: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message
            tracker: Tracker name
        """
        self.tracker = tracker
        full_message = f"{message} (tracker: {tracker})" if tracker else message
        super().__init__(full_message)
        self.message = message


class AuthError(TrackerError):
    """The tracker rejected the supplied credential."""

    pass


class NotFoundError(TrackerError):
    """An issue, team or user does not exist in the tracker.

    Attributes:
        resource: Kind of entity that was looked up ("issue", "team")
        identifier: The id or key that was looked up
    """

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        identifier: str | None = None,
        tracker: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            resource: Entity kind
            identifier: Entity id or key
            tracker: Tracker name
        """
        self.resource = resource
        self.identifier = identifier
        super().__init__(message, tracker=tracker)


class TransientNetworkError(TrackerError):
    """The tracker could not be reached.

    Not retried here; the workflow layer decides whether to rerun the step.
    """

    pass


class TrackerResponseError(TrackerError):
    """The tracker answered with an error or an incomplete record.

    Attributes:
        status_code: HTTP status code (if applicable)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        tracker: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            tracker: Tracker name
        """
        self.status_code = status_code
        if status_code:
            message = f"{message} (HTTP {status_code})"
        super().__init__(message, tracker=tracker)


class RunCreationError(SweIntakeError):
    """The run-creation collaborator failed to create a run."""

    pass
