"""
PromptModel - an in-memory view of one prompt version.

Rendering happens here; persistence is delegated to the prompt store.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping

from promptvault.core.models import PromptRecord
from promptvault.errors import MissingParameterError, VersionNotFoundError
from promptvault.storage.base import PromptStorage

logger = logging.getLogger(__name__)

# Literal {{name}} tokens only; no whitespace, filters or expressions.
TOKEN_PATTERN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")


class PromptModel:
    """
    One loaded prompt version plus access to its family's history.

    Field access is forwarded to the underlying record, so
    ``model.template`` and ``model.version`` work as expected.

    Example:
        prompt = await manager.get_prompt("Greeting", "Hello")
        prompt.format({"name": "Ann"})      # "Hi Ann!"
        await prompt.versions()             # ["1.0.0", "1.0.1"]
        await prompt.switch_version("1.0.0")
    """

    def __init__(self, record: PromptRecord, storage: PromptStorage):
        self._record = record
        self._storage = storage

    def __getattr__(self, item: str) -> Any:
        # Only called for attributes not found on the model itself.
        if item.startswith("_"):
            raise AttributeError(item)
        return getattr(self._record, item)

    def __repr__(self) -> str:
        return f"PromptModel({self._record.category}/{self._record.name} v{self._record.version})"

    @property
    def record(self) -> PromptRecord:
        return self._record

    def format(self, params: Mapping[str, Any]) -> str:
        """
        Render the template.

        Every ``{{param}}`` token of a declared parameter is replaced by the
        supplied value. Values for undeclared names are ignored, and tokens
        naming undeclared parameters are left as they are.

        Raises:
            MissingParameterError: For the first declared parameter without a value
        """
        declared = self._record.parameters
        for param in declared:
            if param not in params:
                raise MissingParameterError(param)

        declared_set = set(declared)

        def substitute(match: re.Match) -> str:
            key = match.group(1)
            if key in declared_set:
                return str(params[key])
            return match.group(0)

        return TOKEN_PATTERN.sub(substitute, self._record.template)

    async def versions(self) -> list[str]:
        """All versions of this prompt, oldest first."""
        return await self._storage.list_versions(self._record.category, self._record.name)

    async def switch_version(self, version: str) -> None:
        """
        Make ``version`` current and load its content into this model.

        Raises:
            VersionNotFoundError: If the family has no such version
        """
        category, name = self._record.category, self._record.name

        available = await self.versions()
        if version not in available:
            raise VersionNotFoundError(
                f"Version {version} of '{name}' not found in category '{category}'"
            )

        await self._storage.set_current(category, name, version)
        self._record = await self._storage.read(category, name, version)
        logger.info(f"Switched {category}/{name} to v{version}")

    def update_metadata(self, patch: Mapping[str, Any]) -> None:
        """
        Merge ``patch`` into the metadata and stamp lastModified.

        In memory only: snapshots are immutable, so saving the change is up
        to the caller (PromptManager.update_prompt creates a new version).
        """
        metadata = self._record.metadata.merge(patch)
        metadata.last_modified = datetime.now(timezone.utc)
        self._record = self._record.model_copy(update={"metadata": metadata})

    def get_summary(self) -> str:
        description = self._record.description or "no description"
        return f"{self._record.name} ({self._record.category}): {description}"

    def to_dict(self) -> dict[str, Any]:
        return self._record.to_json_dict()
