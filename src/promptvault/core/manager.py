"""
PromptManager - High-level API for prompt management.

This is the main entry point for using PromptVault. It orchestrates
category and prompt CRUD, keeps an in-memory index in sync with storage,
and hands out PromptModel instances for rendering.
"""

from __future__ import annotations

import contextlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from promptvault.config import ConfigManager
from promptvault.core.index import PromptIndex
from promptvault.core.models import (
    ProjectConfig,
    PromptCollection,
    PromptFamilyExport,
    PromptRecord,
    PromptSummary,
    VersionAction,
    VersionResult,
    to_aliases,
)
from promptvault.core.prompt import PromptModel
from promptvault.core.validation import validate_prompt
from promptvault.core.versioning import (
    INITIAL_VERSION,
    compare_versions,
    increment_version,
    is_valid_version,
    latest_version,
    version_key,
)
from promptvault.errors import (
    ConfigError,
    PromptExistsError,
    PromptNotFoundError,
    PromptValidationError,
    PromptVaultError,
)
from promptvault.storage.base import PromptStorage
from promptvault.storage.filesystem import PromptFileSystem

logger = logging.getLogger(__name__)


class PromptManager:
    """
    Main interface for prompt management.

    The manager provides:
    - Creating, updating, and deleting prompts and categories
    - Version listing, snapshotting and switching
    - Template rendering with parameter substitution
    - Listing served from an in-memory index, plus search
    - Export/import of whole categories

    Storage is the source of truth. The index is updated entry by entry by
    every mutating call here; use ``reload()`` after editing files by hand.
    Mutations to the same prompt are not serialized; callers that issue
    them concurrently must hold their own per-prompt lock.

    Example:
        manager = PromptManager(config=ConfigManager(root="."))
        await manager.initialize()

        await manager.create_prompt({
            "category": "Greeting",
            "name": "Hello",
            "template": "Hi {{name}}!",
            "parameters": ["name"],
        })
        await manager.format_prompt("Greeting", "Hello", {"name": "Ann"})
    """

    def __init__(
        self,
        config: ConfigManager | None = None,
        storage: PromptStorage | None = None,
    ):
        """
        Initialize the manager.

        Args:
            config: Project configuration (defaults to the current directory)
            storage: Prompt store (defaults to one rooted at config's promptsDir)
        """
        self.config = config or ConfigManager()
        self.storage = storage
        # Storage built here follows promptsDir; injected storage is left alone.
        self._owns_storage = storage is None
        self._index = PromptIndex()
        self._initialized = False

    @classmethod
    def from_env(cls, **kwargs: Any) -> PromptManager:
        """
        Create a manager from environment variables.

        See ConfigManager.from_env for the variables read.
        """
        return cls(config=ConfigManager.from_env(), **kwargs)

    async def initialize(self) -> None:
        """
        Load config, make sure directories exist, and build the index.

        Safe to call again; a repeated call rebuilds the index from disk.
        """
        await self.config.initialize()

        if self._owns_storage:
            self.storage = PromptFileSystem(self.config.prompts_dir)
        await self.storage.initialize()

        self._initialized = True
        await self.reload()

    async def reload(self) -> None:
        """Rebuild the index from a full storage scan."""
        storage = self._require_storage()
        categories = await storage.list_categories()
        summaries = await storage.list_families()
        self._index.rebuild(categories, summaries)
        logger.info(f"Indexed {len(summaries)} prompts in {len(categories)} categories")

    async def update_config(self, patch: Mapping[str, Any]) -> ProjectConfig:
        """
        Update the project config.

        If ``promptsDir`` moves, storage is re-rooted there and the index
        is rebuilt from the new location.
        """
        self._require_storage()
        previous = self.config.prompts_dir
        updated = await self.config.update_config(patch)

        if self._owns_storage and self.config.prompts_dir != previous:
            self.storage = PromptFileSystem(self.config.prompts_dir)
            await self.storage.initialize()
            await self.reload()

        return updated

    def _require_storage(self) -> PromptStorage:
        if not self._initialized or self.storage is None:
            raise ConfigError("PromptManager is not initialized; call initialize() first")
        return self.storage

    def _index_record(self, record: PromptRecord, version_count: int) -> None:
        self._index.put(PromptSummary(
            category=record.category,
            name=record.name,
            current_version=record.version,
            version_count=version_count,
        ))

    async def _reindex(self, category: str, name: str) -> None:
        manifest = await self._require_storage().read_manifest(category, name)
        self._index.put(PromptSummary(
            category=category,
            name=name,
            current_version=manifest.current_version,
            version_count=len(manifest.versions),
        ))

    async def _next_version(self, category: str, name: str) -> str:
        """Increment the last component of the newest version."""
        versions = await self._require_storage().list_versions(category, name)
        return increment_version(latest_version(versions))

    # =========================================================================
    # Core CRUD Operations
    # =========================================================================

    async def get_prompt(
        self,
        category: str,
        name: str,
        version: str | None = None,
    ) -> PromptModel:
        """
        Load a prompt version (the current one by default).

        Raises:
            PromptNotFoundError: If the prompt or version does not exist
        """
        storage = self._require_storage()
        record = await storage.read(category, name, version)
        return PromptModel(record, storage)

    async def prompt_exists(self, category: str, name: str) -> bool:
        self._require_storage()
        return self._index.get(category, name) is not None

    async def create_prompt(self, record: PromptRecord | Mapping[str, Any]) -> PromptModel:
        """
        Create a new prompt at version 1.0.0.

        Args:
            record: A PromptRecord or raw record data (either key spelling)

        Raises:
            PromptValidationError: If the record is malformed
            PromptExistsError: If the category already holds a prompt with this name
        """
        storage = self._require_storage()

        data = record.model_dump(by_alias=True) if isinstance(record, PromptRecord) else dict(record)
        data["version"] = INITIAL_VERSION
        validated = validate_prompt(data)

        if validated.key in self._index:
            raise PromptExistsError(
                f"Prompt '{validated.name}' already exists in category '{validated.category}'. "
                "Use update_prompt to change it, or delete it first."
            )

        if validated.category not in self._index.categories():
            logger.info(f"Created new category: {validated.category}")

        saved = await storage.write(validated.category, validated.name, INITIAL_VERSION, validated)
        self._index_record(saved, version_count=1)

        logger.info(f"Created prompt {saved.category}/{saved.name} v{saved.version}")
        return PromptModel(saved, storage)

    async def update_prompt(
        self,
        category: str,
        name: str,
        patch: Mapping[str, Any],
    ) -> PromptModel:
        """
        Update a prompt by creating a new version.

        Snapshots are immutable - updates always create a new version.
        ``metadata`` and ``configuration`` in the patch are merged key-wise
        with the current values; other fields are replaced.

        Args:
            category: Prompt category
            name: Prompt name
            patch: Fields to change; may include an explicit ``version``

        Returns:
            The new current version

        Raises:
            PromptNotFoundError: If the prompt does not exist
            PromptValidationError: If the patch produces an invalid record,
                renames the prompt, or supplies a version that is not newer
        """
        storage = self._require_storage()
        current = await storage.read(category, name)

        patch = to_aliases(PromptRecord, patch)
        for key in ("category", "name"):
            if key in patch and patch[key] != getattr(current, key):
                raise PromptValidationError(
                    f"update_prompt cannot change '{key}'; use rename_prompt instead"
                )

        requested = patch.pop("version", None)
        if requested is not None:
            if not isinstance(requested, str) or not is_valid_version(requested):
                raise PromptValidationError(f"Invalid version string: {requested!r}")
            if compare_versions(requested, current.version) <= 0:
                raise PromptValidationError(
                    f"Version {requested} must be newer than the current version {current.version}"
                )
            new_version = requested
        else:
            new_version = await self._next_version(category, name)

        data = current.apply_patch(patch)
        data["version"] = new_version
        if isinstance(data.get("metadata"), dict):
            data["metadata"]["lastModified"] = datetime.now(timezone.utc).isoformat()

        saved = await storage.write(category, name, new_version, data)
        await self._reindex(category, name)

        logger.info(f"Updated prompt {category}/{name} to version {new_version}")
        return PromptModel(saved, storage)

    async def delete_prompt(self, category: str, name: str) -> None:
        """
        Delete a prompt with its whole version history.

        Raises:
            PromptNotFoundError: If the prompt does not exist
        """
        storage = self._require_storage()
        try:
            await storage.delete(category, name)
        except PromptNotFoundError:
            self._index.remove(category, name)
            raise
        self._index.remove(category, name)

        logger.info(f"Deleted prompt {category}/{name}")

    async def rename_prompt(
        self,
        category: str,
        name: str,
        new_category: str,
        new_name: str,
    ) -> PromptModel:
        """
        Move a prompt, with its whole version history, to a new category/name.

        Raises:
            PromptNotFoundError: If the prompt does not exist
            PromptExistsError: If the target already exists
        """
        storage = self._require_storage()
        await storage.rename(category, name, new_category, new_name)

        self._index.remove(category, name)
        await self._reindex(new_category, new_name)

        logger.info(f"Renamed prompt {category}/{name} to {new_category}/{new_name}")
        return await self.get_prompt(new_category, new_name)

    async def list_prompts(self, category: str | None = None) -> list[PromptSummary]:
        """
        List prompt summaries, optionally for one category.

        Served from the index; no storage access.
        """
        self._require_storage()
        return self._index.summaries(category)

    # =========================================================================
    # Categories
    # =========================================================================

    async def list_categories(self) -> list[str]:
        self._require_storage()
        return self._index.categories()

    async def create_category(self, category: str) -> None:
        await self._require_storage().create_category(category)
        self._index.add_category(category)

    async def delete_category(self, category: str) -> None:
        """
        Delete a category together with every prompt in it.

        Raises:
            PromptNotFoundError: If the category does not exist
        """
        storage = self._require_storage()
        try:
            await storage.delete_category(category)
        except PromptNotFoundError:
            self._index.remove_category(category)
            raise
        self._index.remove_category(category)

    # =========================================================================
    # Versions
    # =========================================================================

    async def version_prompt(
        self,
        action: VersionAction | str,
        category: str,
        name: str,
        version: str | None = None,
    ) -> VersionResult:
        """
        Manage prompt versions.

        Actions:
            list: All versions, oldest first
            create: Snapshot the current content under the next version
            switch: Make ``version`` the current one

        Raises:
            PromptValidationError: For an unknown action or a switch without version
            PromptNotFoundError: If the prompt does not exist
            VersionNotFoundError: If switching to a version that does not exist
        """
        try:
            action = VersionAction(action)
        except ValueError as e:
            raise PromptValidationError(f"Invalid version action: {action}") from e

        storage = self._require_storage()

        if action == VersionAction.LIST:
            prompt = await self.get_prompt(category, name)
            result: list[str] | str = await prompt.versions()

        elif action == VersionAction.CREATE:
            current = await storage.read(category, name)
            new_version = await self._next_version(category, name)
            snapshot = current.model_copy(update={"version": new_version})
            await storage.write(category, name, new_version, snapshot)
            await self._reindex(category, name)
            logger.info(f"Snapshotted {category}/{name} as v{new_version}")
            result = new_version

        else:
            if not version:
                raise PromptValidationError("Version is required for switch action")
            prompt = await self.get_prompt(category, name)
            await prompt.switch_version(version)
            await self._reindex(category, name)
            result = version

        return VersionResult(action=action, category=category, name=name, result=result)

    async def compare_versions(
        self,
        category: str,
        name: str,
        v1: str,
        v2: str,
    ) -> dict[str, Any]:
        """
        Compare two versions of a prompt.

        Returns a dict with differences including template changes,
        parameter changes, and configuration changes.
        """
        storage = self._require_storage()
        first = await storage.read(category, name, v1)
        second = await storage.read(category, name, v2)

        return {
            "v1": first.version,
            "v2": second.version,
            "template_changed": first.template != second.template,
            "content_changed": first.content_hash != second.content_hash,
            "configuration_changed": first.configuration != second.configuration,
            "parameters_added": [p for p in second.parameters if p not in first.parameters],
            "parameters_removed": [p for p in first.parameters if p not in second.parameters],
            "v1_template": first.template,
            "v2_template": second.template,
        }

    # =========================================================================
    # Rendering
    # =========================================================================

    async def format_prompt(
        self,
        category: str,
        name: str,
        params: Mapping[str, Any],
        version: str | None = None,
    ) -> str:
        """
        Render a prompt template with parameters.

        Raises:
            PromptNotFoundError: If the prompt does not exist
            MissingParameterError: If a declared parameter has no value
        """
        prompt = await self.get_prompt(category, name, version)
        return prompt.format(params)

    # =========================================================================
    # Discovery
    # =========================================================================

    async def search_prompts(
        self,
        query: str,
        category: str | None = None,
        limit: int = 20,
    ) -> list[PromptSummary]:
        """
        Search prompts by text.

        Matches name, category, description, tags and template of the
        current version; results are ordered by relevance.
        """
        storage = self._require_storage()
        query_lower = query.lower()

        results: list[tuple[int, PromptSummary]] = []
        for summary in self._index.summaries(category):
            record = await storage.read(summary.category, summary.name)
            score = 0

            if query_lower in record.name.lower():
                score += 10

            if query_lower in record.category.lower():
                score += 5

            if query_lower in record.description.lower():
                score += 5

            if any(query_lower in tag.lower() for tag in record.tags):
                score += 3

            if query_lower in record.template.lower():
                score += 2

            if score > 0:
                results.append((score, summary))

        results.sort(key=lambda x: x[0], reverse=True)
        return [s for _, s in results[:limit]]

    async def search_categories(self, query: str) -> list[str]:
        self._require_storage()
        query_lower = query.lower()
        return [c for c in self._index.categories() if query_lower in c.lower()]

    # =========================================================================
    # Export/Import
    # =========================================================================

    async def export_category(self, category: str) -> PromptCollection:
        """Export every prompt in a category with its full version history."""
        storage = self._require_storage()

        families = []
        for summary in self._index.summaries(category):
            versions = await storage.list_versions(summary.category, summary.name)
            snapshots = [
                await storage.read(summary.category, summary.name, v) for v in versions
            ]
            families.append(PromptFamilyExport(
                category=summary.category,
                name=summary.name,
                current_version=summary.current_version,
                snapshots=snapshots,
            ))

        return PromptCollection(
            name=category,
            description=f"Export of category '{category}'",
            families=families,
        )

    async def import_collection(
        self,
        collection: PromptCollection,
        overwrite: bool = False,
    ) -> dict[str, Any]:
        """
        Import a collection of prompt families.

        Existing prompts are skipped unless ``overwrite`` is set, in which
        case they are deleted and replaced. Each family's snapshots are
        written oldest first, then its current pointer is restored.
        """
        storage = self._require_storage()
        stats: dict[str, Any] = {
            "total": len(collection.families),
            "imported": 0,
            "skipped": 0,
            "errors": [],
        }

        for family in collection.families:
            key = f"{family.category}/{family.name}"
            try:
                exists = await storage.exists(family.category, family.name)
                if exists and not overwrite:
                    stats["skipped"] += 1
                    continue

                # Nothing on disk changes until the whole family checks out.
                snapshots = self._check_family(family)
                if exists:
                    await self.delete_prompt(family.category, family.name)

                await self._write_family(family, snapshots)
                stats["imported"] += 1

            except (PromptValidationError, PromptExistsError, PromptNotFoundError) as e:
                stats["errors"].append({"prompt": key, "error": str(e)})

        logger.info(f"Imported {stats['imported']}/{stats['total']} prompts")
        return stats

    @staticmethod
    def _check_family(family: PromptFamilyExport) -> list[PromptRecord]:
        """
        Validate an imported family as a whole and return its snapshots
        oldest first.

        Raises:
            PromptValidationError: If any snapshot is invalid or belongs
                elsewhere, versions repeat, or the current version is missing
        """
        key = f"{family.category}/{family.name}"
        if not family.snapshots:
            raise PromptValidationError(f"{key} has no snapshots")

        snapshots = [validate_prompt(s) for s in family.snapshots]
        for snapshot in snapshots:
            if snapshot.key != (family.category, family.name):
                raise PromptValidationError(
                    f"Snapshot v{snapshot.version} of {key} belongs to "
                    f"{snapshot.category}/{snapshot.name}"
                )

        keys = [version_key(s.version) for s in snapshots]
        if len(set(keys)) != len(keys):
            raise PromptValidationError(f"{key} lists a version more than once")

        if not is_valid_version(family.current_version) or version_key(family.current_version) not in keys:
            raise PromptValidationError(
                f"Current version {family.current_version} of {key} is not among its snapshots"
            )

        return sorted(snapshots, key=lambda r: version_key(r.version))

    async def _write_family(self, family: PromptFamilyExport, snapshots: list[PromptRecord]) -> None:
        """Write a checked family; a failure part way removes what was written."""
        storage = self._require_storage()
        try:
            for snapshot in snapshots:
                await storage.write(family.category, family.name, snapshot.version, snapshot)
            await storage.set_current(family.category, family.name, family.current_version)
        except PromptVaultError:
            with contextlib.suppress(PromptNotFoundError):
                await storage.delete(family.category, family.name)
            self._index.remove(family.category, family.name)
            raise

        await self._reindex(family.category, family.name)

    async def export_json(self, category: str) -> str:
        """Export a category as a JSON string."""
        collection = await self.export_category(category)
        return json.dumps(collection.to_export(), indent=2)

    async def import_json(self, json_str: str, overwrite: bool = False) -> dict[str, Any]:
        """Import prompt families from a JSON string."""
        try:
            data = json.loads(json_str)
            collection = PromptCollection.from_import(data)
        except ValueError as e:
            raise PromptValidationError(f"Invalid export document: {e}") from e
        return await self.import_collection(collection, overwrite)
