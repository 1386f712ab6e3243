"""Configuration for swe-intake.

Key Components:
    - RunConfig: Per-run workflow configuration (credentials, tracker, local mode)
    - ServiceSettings: Ingestion service settings with YAML loading support

Example:
    >>> from swe_intake.config.settings import ServiceSettings
    >>> settings = ServiceSettings.from_yaml("swe_intake_config.yaml")
    >>> settings.linear.default_repository
"""
