"""Core models and prompt rendering."""

from promptvault.core.models import (
    Manifest,
    ModelConfiguration,
    OutputType,
    ProjectConfig,
    PromptCollection,
    PromptMetadata,
    PromptRecord,
    PromptSummary,
    VersionAction,
    VersionResult,
)
from promptvault.core.prompt import PromptModel

__all__ = [
    "Manifest",
    "ModelConfiguration",
    "OutputType",
    "ProjectConfig",
    "PromptCollection",
    "PromptMetadata",
    "PromptRecord",
    "PromptSummary",
    "VersionAction",
    "VersionResult",
    "PromptModel",
]
