"""
Project configuration.

The config lives in a JSON file at the project root. A ConfigManager is
constructed once at startup and handed to whatever needs storage paths:

    config = ConfigManager(root=".")
    await config.initialize()
    manager = PromptManager(config=config)
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

import aiofiles
import aiofiles.os

from promptvault.core.models import ProjectConfig, to_aliases
from promptvault.core.validation import validate_config
from promptvault.errors import ConfigError, StorageError
from promptvault.storage.filesystem import write_json_atomic

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "promptvault.json"


def _field_name(key: str) -> str | None:
    """Map a config key in either spelling to the model attribute name."""
    if key in ProjectConfig.model_fields:
        return key
    for name, field in ProjectConfig.model_fields.items():
        if field.alias == key:
            return name
    return None


class ConfigManager:
    """
    Loads, validates and persists the project config.

    Relative ``promptsDir`` / ``outputDir`` values resolve against the
    directory holding the config file.
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        root: str | Path | None = None,
    ):
        """
        Args:
            config_path: Explicit config file path
            root: Project root; the config file is ``{root}/promptvault.json``
        """
        if config_path is None:
            config_path = Path(root or os.getcwd()) / CONFIG_FILE_NAME
        self.config_path = Path(config_path).expanduser().resolve()
        self._config: ProjectConfig | None = None

    @classmethod
    def from_env(cls) -> ConfigManager:
        """
        Build from environment variables.

        Environment variables:
            PROMPTVAULT_CONFIG: Path to the config file
            PROMPTVAULT_ROOT: Project root (default: current directory)
        """
        return cls(
            config_path=os.getenv("PROMPTVAULT_CONFIG"),
            root=os.getenv("PROMPTVAULT_ROOT"),
        )

    @property
    def initialized(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> ProjectConfig:
        if self._config is None:
            raise ConfigError("Configuration not loaded; call initialize() first")
        return self._config

    @property
    def base_path(self) -> Path:
        return self.config_path.parent

    def _resolve(self, directory: str) -> Path:
        path = Path(directory).expanduser()
        if not path.is_absolute():
            path = self.base_path / path
        return path.resolve()

    @property
    def prompts_dir(self) -> Path:
        return self._resolve(self.config.prompts_dir)

    @property
    def output_dir(self) -> Path:
        return self._resolve(self.config.output_dir)

    async def initialize(self) -> ProjectConfig:
        """
        Load the config file, creating it with defaults if absent.

        Raises:
            ConfigError: If the file is unreadable, not JSON, or invalid
        """
        if await aiofiles.os.path.isfile(self.config_path):
            self._config = validate_config(await self._read())
            logger.info(f"Loaded configuration from {self.config_path}")
        else:
            self._config = ProjectConfig()
            await self._save(self._config)
            logger.info(f"Created default configuration at {self.config_path}")

        await self._ensure_directories()
        return self._config

    def get_config(self, key: str) -> Any:
        """
        Get a config value by key (``promptsDir`` or ``prompts_dir``).

        Returns a copy, so mutating it does not change the config.
        """
        name = _field_name(key)
        if name is None:
            raise ConfigError(f"Unknown configuration key: {key}")
        return copy.deepcopy(getattr(self.config, name))

    async def update_config(self, patch: Mapping[str, Any]) -> ProjectConfig:
        """
        Merge ``patch`` into the config and write it to disk.

        The merged result is validated before anything changes; the file
        is written before this returns. Storage already built from the old
        promptsDir is not moved; go through PromptManager.update_config for that.
        """
        for key in patch:
            if _field_name(key) is None:
                raise ConfigError(f"Unknown configuration key: {key}")

        merged = self.config.model_dump(by_alias=True)
        merged.update(to_aliases(ProjectConfig, patch))
        updated = validate_config(merged)

        await self._save(updated)
        self._config = updated
        await self._ensure_directories()

        logger.info(f"Updated configuration keys: {', '.join(patch)}")
        return updated

    async def _read(self) -> dict[str, Any]:
        try:
            async with aiofiles.open(self.config_path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except OSError as e:
            raise ConfigError(f"Failed to read configuration {self.config_path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {self.config_path} must be a JSON object")
        return data

    async def _save(self, config: ProjectConfig) -> None:
        await write_json_atomic(
            self.config_path,
            config.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    async def _ensure_directories(self) -> None:
        for directory in (self.prompts_dir, self.output_dir):
            try:
                await aiofiles.os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to create {directory}: {e}") from e
