"""Custom exceptions for configuration management."""


class ConfigError(Exception):
    """Raised when configuration data or run options cannot be processed."""
