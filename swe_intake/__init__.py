"""swe-intake: route tracker issues and chat requests into coding-agent runs."""

__version__ = "0.1.0"
