"""Storage backends for prompt persistence."""

from promptvault.storage.base import PromptStorage
from promptvault.storage.filesystem import PromptFileSystem

__all__ = [
    "PromptStorage",
    "PromptFileSystem",
]
