"""
Local filesystem prompt store.

Every file is written to a temp file first and moved into place with
os.replace, so readers never see a partially written snapshot or manifest.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import shutil
import uuid
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
from pydantic import ValidationError as PydanticValidationError

from promptvault.core.models import Manifest, PromptRecord, PromptSummary, check_segment
from promptvault.core.validation import validate_prompt
from promptvault.core.versioning import compare_versions, is_valid_version
from promptvault.errors import (
    PromptExistsError,
    PromptNotFoundError,
    PromptValidationError,
    StorageError,
    VersionNotFoundError,
)
from promptvault.storage.base import PromptStorage

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"
VERSIONS_DIR = ".versions"


async def write_json_atomic(path: Path, data: Any) -> None:
    """
    Write JSON via a temp file in the same directory plus os.replace.

    Raises:
        StorageError: If any filesystem step fails (the temp file is removed)
    """
    content = json.dumps(data, indent=2, ensure_ascii=False)
    temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")

    try:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(content)
            await f.flush()
        await aiofiles.os.replace(temp_path, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            await aiofiles.os.remove(temp_path)
        raise StorageError(f"Failed to write {path}: {e}") from e


class PromptFileSystem(PromptStorage):
    """
    Filesystem-backed prompt store.

    Structure:
        {base_path}/
            {category}/
                {name}/
                    manifest.json          # {"currentVersion", "versions"}
                    .versions/
                        v{version}.json    # one immutable snapshot each
    """

    def __init__(self, base_path: str | Path = "prompts"):
        """
        Args:
            base_path: Root directory holding the category folders
        """
        self.base_path = Path(base_path).expanduser().resolve()

    async def initialize(self) -> None:
        """Create the root directory if needed."""
        try:
            await aiofiles.os.makedirs(self.base_path, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create {self.base_path}: {e}") from e
        logger.info(f"Initialized prompt storage at {self.base_path}")

    # =========================================================================
    # Paths
    # =========================================================================

    @staticmethod
    def _segment(value: str, kind: str) -> str:
        try:
            return check_segment(value, kind)
        except ValueError as e:
            raise PromptValidationError(str(e)) from e

    def _category_path(self, category: str) -> Path:
        return self.base_path / self._segment(category, "Category")

    def resolve_path(self, category: str, name: str, version: str | None = None) -> Path:
        family = self._category_path(category) / self._segment(name, "Prompt name")
        if version is None:
            return family
        if not is_valid_version(version):
            raise PromptValidationError(f"Invalid version string: {version!r}")
        return family / VERSIONS_DIR / f"v{version}.json"

    def _manifest_path(self, category: str, name: str) -> Path:
        return self.resolve_path(category, name) / MANIFEST_FILENAME

    # =========================================================================
    # Raw I/O
    # =========================================================================

    async def _read_json(self, path: Path) -> Any:
        """Read and parse a JSON file. FileNotFoundError is left to the caller."""
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise PromptValidationError(f"Invalid JSON in {path}: {e}") from e

    async def _write_json(self, path: Path, data: Any) -> None:
        await write_json_atomic(path, data)

    async def _remove_tree(self, path: Path) -> None:
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e

    async def _subdirectories(self, path: Path) -> list[str]:
        """Visible subdirectory names of ``path``, sorted."""
        try:
            entries = await aiofiles.os.listdir(path)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Failed to list {path}: {e}") from e

        names = []
        for entry in sorted(entries):
            if entry.startswith("."):
                continue
            if await aiofiles.os.path.isdir(path / entry):
                names.append(entry)
        return names

    # =========================================================================
    # Manifest
    # =========================================================================

    async def read_manifest(self, category: str, name: str) -> Manifest:
        path = self._manifest_path(category, name)
        try:
            data = await self._read_json(path)
        except FileNotFoundError as e:
            raise PromptNotFoundError(
                f"Prompt '{name}' not found in category '{category}'"
            ) from e

        try:
            return Manifest.model_validate(data)
        except PydanticValidationError as e:
            raise PromptValidationError(f"Corrupt manifest for {category}/{name}: {e}") from e

    async def _write_manifest(self, category: str, name: str, manifest: Manifest) -> None:
        await self._write_json(
            self._manifest_path(category, name),
            manifest.model_dump(mode="json", by_alias=True),
        )

    @staticmethod
    def _find_version(manifest: Manifest, version: str) -> str | None:
        """Return the stored spelling of ``version`` ("1.0" matches "1.0.0")."""
        if not is_valid_version(version):
            return None
        for stored in manifest.versions:
            if compare_versions(stored, version) == 0:
                return stored
        return None

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def write(
        self,
        category: str,
        name: str,
        version: str,
        record: PromptRecord | dict,
    ) -> PromptRecord:
        validated = validate_prompt(record)
        if validated.key != (category, name) or validated.version != version:
            raise PromptValidationError(
                f"Record {validated.category}/{validated.name} v{validated.version} "
                f"does not match target {category}/{name} v{version}"
            )

        snapshot_path = self.resolve_path(category, name, version)

        try:
            manifest: Manifest | None = await self.read_manifest(category, name)
        except PromptNotFoundError:
            manifest = None

        if manifest is not None and self._find_version(manifest, version):
            raise PromptExistsError(
                f"Version {version} of '{name}' already exists in category '{category}'"
            )

        # Snapshot first: the manifest must never name a missing file.
        await self._write_json(snapshot_path, validated.to_json_dict())

        if manifest is None:
            manifest = Manifest(current_version=version, versions=[version])
        else:
            manifest.add_version(version)
        await self._write_manifest(category, name, manifest)

        logger.info(f"Saved prompt {category}/{name} v{version}")
        return validated

    async def read(self, category: str, name: str, version: str | None = None) -> PromptRecord:
        manifest = await self.read_manifest(category, name)

        target = manifest.current_version if version is None else self._find_version(manifest, version)
        if target is None:
            raise VersionNotFoundError(
                f"Version {version} of '{name}' not found in category '{category}'"
            )

        path = self.resolve_path(category, name, target)
        try:
            data = await self._read_json(path)
        except FileNotFoundError as e:
            raise StorageError(
                f"Manifest for {category}/{name} lists v{target} but the snapshot is missing"
            ) from e

        record = validate_prompt(data)
        if record.key != (category, name):
            raise PromptValidationError(
                f"Snapshot at {path} belongs to {record.category}/{record.name}"
            )

        logger.debug(f"Read prompt {category}/{name} v{target}")
        return record

    async def list_versions(self, category: str, name: str) -> list[str]:
        manifest = await self.read_manifest(category, name)
        return list(manifest.versions)

    async def set_current(self, category: str, name: str, version: str) -> None:
        manifest = await self.read_manifest(category, name)
        stored = self._find_version(manifest, version)
        if stored is None:
            raise VersionNotFoundError(
                f"Version {version} of '{name}' not found in category '{category}'"
            )

        manifest.current_version = stored
        await self._write_manifest(category, name, manifest)
        logger.info(f"Set current version of {category}/{name} to v{stored}")

    async def delete(self, category: str, name: str) -> None:
        family = self.resolve_path(category, name)
        if not await aiofiles.os.path.isdir(family):
            raise PromptNotFoundError(f"Prompt '{name}' not found in category '{category}'")

        await self._remove_tree(family)
        logger.info(f"Deleted prompt {category}/{name}")

    async def rename(self, category: str, name: str, new_category: str, new_name: str) -> None:
        source = self.resolve_path(category, name)
        target = self.resolve_path(new_category, new_name)

        manifest = await self.read_manifest(category, name)
        if await aiofiles.os.path.exists(target):
            raise PromptExistsError(
                f"Prompt '{new_name}' already exists in category '{new_category}'"
            )

        # Load everything first so a corrupt snapshot stops the move.
        records = [await self.read(category, name, v) for v in manifest.versions]

        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            await aiofiles.os.rename(source, target)
        except OSError as e:
            raise StorageError(f"Failed to move {source} to {target}: {e}") from e

        for record in records:
            moved = record.model_copy(update={"category": new_category, "name": new_name})
            await self._write_json(
                self.resolve_path(new_category, new_name, record.version),
                moved.to_json_dict(),
            )

        logger.info(f"Renamed prompt {category}/{name} to {new_category}/{new_name}")

    async def exists(self, category: str, name: str) -> bool:
        return await aiofiles.os.path.isfile(self._manifest_path(category, name))

    # =========================================================================
    # Discovery
    # =========================================================================

    async def list_categories(self) -> list[str]:
        return await self._subdirectories(self.base_path)

    async def list_families(self, category: str | None = None) -> list[PromptSummary]:
        if category is not None:
            self._segment(category, "Category")
            categories = [category]
        else:
            categories = await self.list_categories()

        summaries: list[PromptSummary] = []
        for cat in categories:
            for name in await self._subdirectories(self.base_path / cat):
                try:
                    manifest = await self.read_manifest(cat, name)
                except PromptNotFoundError:
                    # Directory without a manifest: first write never completed.
                    continue
                except PromptValidationError as e:
                    logger.warning(f"Skipping {cat}/{name}: {e}")
                    continue

                summaries.append(PromptSummary(
                    category=cat,
                    name=name,
                    current_version=manifest.current_version,
                    version_count=len(manifest.versions),
                ))

        return summaries

    async def create_category(self, category: str) -> None:
        path = self._category_path(category)
        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create {path}: {e}") from e
        logger.info(f"Created category {category}")

    async def delete_category(self, category: str) -> None:
        path = self._category_path(category)
        if not await aiofiles.os.path.isdir(path):
            raise PromptNotFoundError(f"Category '{category}' not found")

        await self._remove_tree(path)
        logger.info(f"Deleted category {category}")
