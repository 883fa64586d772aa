"""Application-level exception types for shellmate."""

from __future__ import annotations


class ShellmateError(Exception):
    """Base exception for shellmate."""


class ConfigurationError(ShellmateError):
    """Base exception for configuration and startup validation errors."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""


class CompletionError(ShellmateError):
    """Raised when the completion service fails or returns unusable data."""


class StoreError(ShellmateError):
    """Raised when persisted state cannot be read or written."""
