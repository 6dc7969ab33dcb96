"""
PromptVault - Local prompt storage and versioning.

Organizes LLM prompt templates into categorized, versioned records on
disk and renders them with {{parameter}} substitution.
"""

from promptvault.config import ConfigManager
from promptvault.core.models import (
    ModelConfiguration,
    OutputType,
    PromptMetadata,
    PromptRecord,
    PromptSummary,
    VersionAction,
)
from promptvault.core.manager import PromptManager
from promptvault.core.prompt import PromptModel
from promptvault.errors import (
    ConfigError,
    MissingParameterError,
    PromptExistsError,
    PromptNotFoundError,
    PromptValidationError,
    PromptVaultError,
    StorageError,
    VersionNotFoundError,
)
from promptvault.storage.filesystem import PromptFileSystem

__version__ = "0.1.0"
__all__ = [
    "ConfigManager",
    "PromptManager",
    "PromptModel",
    "PromptFileSystem",
    "PromptRecord",
    "PromptMetadata",
    "ModelConfiguration",
    "PromptSummary",
    "OutputType",
    "VersionAction",
    "PromptVaultError",
    "PromptValidationError",
    "PromptNotFoundError",
    "VersionNotFoundError",
    "PromptExistsError",
    "ConfigError",
    "MissingParameterError",
    "StorageError",
]
