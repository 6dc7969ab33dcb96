"""
Abstract storage interface for prompt management.

This module defines the contract a prompt store must implement. The
manager and PromptModel only talk to storage through these methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from promptvault.core.models import Manifest, PromptRecord, PromptSummary


class PromptStorage(ABC):
    """
    Abstract base class for prompt stores.

    Each (category, name) family holds immutable version snapshots plus a
    manifest with the current-version pointer. Implementations must write
    a snapshot completely before the manifest refers to it.
    """

    async def initialize(self) -> None:
        """Prepare the backing store. Nothing to do by default."""
        pass

    @abstractmethod
    def resolve_path(self, category: str, name: str, version: str | None = None) -> Path:
        """
        Map identifiers to a storage location.

        Returns the family location when no version is given, otherwise
        the snapshot location. Must not touch storage.
        """
        pass

    @abstractmethod
    async def write(
        self,
        category: str,
        name: str,
        version: str,
        record: PromptRecord | dict,
    ) -> PromptRecord:
        """
        Persist a new snapshot and make it current.

        Validates the record before touching storage.
        """
        pass

    @abstractmethod
    async def read(self, category: str, name: str, version: str | None = None) -> PromptRecord:
        """
        Load a snapshot. Defaults to the manifest's current version.
        """
        pass

    @abstractmethod
    async def read_manifest(self, category: str, name: str) -> Manifest:
        """Load a family's manifest."""
        pass

    @abstractmethod
    async def list_versions(self, category: str, name: str) -> list[str]:
        """List a family's versions in ascending order."""
        pass

    @abstractmethod
    async def set_current(self, category: str, name: str, version: str) -> None:
        """Move the current-version pointer without touching snapshots."""
        pass

    @abstractmethod
    async def delete(self, category: str, name: str) -> None:
        """Remove a family with all of its snapshots."""
        pass

    @abstractmethod
    async def rename(self, category: str, name: str, new_category: str, new_name: str) -> None:
        """
        Move a family to a new (category, name) with its whole history.

        Every snapshot is rewritten to carry the new identifiers.
        """
        pass

    @abstractmethod
    async def exists(self, category: str, name: str) -> bool:
        """Check whether a family has a manifest."""
        pass

    @abstractmethod
    async def list_categories(self) -> list[str]:
        """List all category names."""
        pass

    @abstractmethod
    async def list_families(self, category: str | None = None) -> list[PromptSummary]:
        """
        Summarize families from their manifests, without loading templates.
        """
        pass

    @abstractmethod
    async def create_category(self, category: str) -> None:
        """Create an empty category."""
        pass

    @abstractmethod
    async def delete_category(self, category: str) -> None:
        """Remove a category and every family in it."""
        pass
