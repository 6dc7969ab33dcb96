"""
Exception hierarchy for PromptVault.

Storage and configuration layers raise these typed errors; the manager
passes them through untouched so callers decide whether to retry, ask the
user, or abort.
"""

from __future__ import annotations


class PromptVaultError(Exception):
    """Base exception for all PromptVault errors."""
    pass


class PromptValidationError(PromptVaultError, ValueError):
    """Raised when a prompt record fails the structural contract."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class PromptNotFoundError(PromptVaultError, LookupError):
    """Raised when a prompt family does not exist."""
    pass


class VersionNotFoundError(PromptNotFoundError):
    """Raised when a family exists but the requested version does not."""
    pass


class PromptExistsError(PromptVaultError):
    """Raised when trying to create a prompt (or version) that already exists."""
    pass


class ConfigError(PromptVaultError):
    """Raised when the project configuration is missing, corrupt or invalid."""
    pass


class MissingParameterError(PromptVaultError, ValueError):
    """Raised when a declared template parameter has no value."""

    def __init__(self, parameter: str):
        super().__init__(f"Missing required parameter: {parameter}")
        self.parameter = parameter


class StorageError(PromptVaultError):
    """Raised when the underlying filesystem operation fails."""
    pass
