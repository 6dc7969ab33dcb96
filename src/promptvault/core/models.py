"""
Core data models for prompt management.

Records are persisted as JSON with camelCase keys; the Python side uses
snake_case attributes. Both spellings are accepted when validating.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

import xxhash
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from promptvault.core.versioning import (
    INITIAL_VERSION,
    is_valid_version,
    sort_versions,
)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_segment(value: str, kind: str) -> str:
    """Ensure a category or prompt name is usable as a single path segment."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{kind} is required and cannot be empty")
    if value != value.strip():
        raise ValueError(f"{kind} {value!r} has leading or trailing whitespace")
    if "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"{kind} {value!r} must not contain path separators")
    if value.startswith("."):
        raise ValueError(f"{kind} {value!r} must not start with '.'")
    return value


def to_aliases(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite snake_case field names in ``data`` to the model's JSON aliases."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        field = model.model_fields.get(key)
        result[field.alias or key if field else key] = value
    return result


class OutputType(str, Enum):
    """Kind of output a prompt is expected to produce."""
    STRUCTURED = "structured"
    PLAIN = "plain"


class PromptMetadata(BaseModel):
    """Audit metadata. Unknown keys are kept as-is."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    created: datetime = Field(default_factory=_utcnow)
    last_modified: datetime = Field(default_factory=_utcnow, alias="lastModified")
    author: str | None = None

    def merge(self, patch: Mapping[str, Any]) -> PromptMetadata:
        """Merge a patch, with the patch taking precedence."""
        merged = self.model_dump(by_alias=True)
        merged.update(to_aliases(PromptMetadata, patch))
        return PromptMetadata.model_validate(merged)


class ModelConfiguration(BaseModel):
    """Model call settings stored alongside the template."""
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model_name: str = Field(default="default-model", alias="modelName")
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=100, gt=0, alias="maxTokens")
    top_p: float = Field(default=1.0, ge=0, le=1, alias="topP")
    frequency_penalty: float = Field(default=0.0, ge=-2, le=2, alias="frequencyPenalty")
    presence_penalty: float = Field(default=0.0, ge=-2, le=2, alias="presencePenalty")
    stop_sequences: list[str] = Field(default_factory=list, alias="stopSequences")

    def merge(self, patch: Mapping[str, Any]) -> ModelConfiguration:
        merged = self.model_dump(by_alias=True)
        merged.update(to_aliases(ModelConfiguration, patch))
        return ModelConfiguration.model_validate(merged)


class PromptRecord(BaseModel):
    """
    One version of a prompt.

    Snapshots are immutable once written; changes produce a new record
    under a new version string.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str
    category: str
    description: str = ""
    version: str = INITIAL_VERSION
    template: str
    parameters: list[str] = Field(default_factory=list)
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")
    output_schema: dict[str, Any] = Field(default_factory=dict, alias="outputSchema")
    metadata: PromptMetadata = Field(default_factory=PromptMetadata)
    configuration: ModelConfiguration = Field(default_factory=ModelConfiguration)
    output_type: OutputType = Field(default=OutputType.PLAIN, alias="outputType")
    tags: list[str] = Field(default_factory=list)
    default_model_name: str | None = Field(default=None, alias="defaultModelName")
    compatible_models: list[str] | None = Field(default=None, alias="compatibleModels")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return check_segment(value, "Prompt name")

    @field_validator("category")
    @classmethod
    def _check_category(cls, value: str) -> str:
        return check_segment(value, "Category")

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not is_valid_version(value):
            raise ValueError(f"Version {value!r} must be dot-separated integers, e.g. 1.0.3")
        return value

    @field_validator("parameters")
    @classmethod
    def _check_parameters(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        for param in value:
            if not IDENTIFIER_PATTERN.match(param):
                raise ValueError(f"Parameter {param!r} is not a valid identifier")
            if param in seen:
                raise ValueError(f"Parameter {param!r} is declared more than once")
            seen.add(param)
        return value

    @field_validator("tags")
    @classmethod
    def _check_tags(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError("Tags must be unique")
        return value

    @property
    def key(self) -> tuple[str, str]:
        return (self.category, self.name)

    @property
    def content_hash(self) -> str:
        """Hash of the content fields; metadata edits do not change it."""
        content = json.dumps(
            {
                "template": self.template,
                "parameters": self.parameters,
                "inputSchema": self.input_schema,
                "outputSchema": self.output_schema,
                "outputType": self.output_type.value,
            },
            sort_keys=True,
        )
        return xxhash.xxh64(content.encode()).hexdigest()

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def apply_patch(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        """
        Overlay ``patch`` on this record and return the raw merged data.

        ``metadata`` and ``configuration`` are merged key by key; every
        other field is replaced. The result still has to be validated.
        """
        data = self.model_dump(mode="json", by_alias=True)
        for key, value in to_aliases(PromptRecord, patch).items():
            if key == "metadata" and isinstance(value, Mapping):
                data[key] = {**data[key], **to_aliases(PromptMetadata, value)}
            elif key == "configuration" and isinstance(value, Mapping):
                data[key] = {**data[key], **to_aliases(ModelConfiguration, value)}
            else:
                data[key] = value
        return data


class Manifest(BaseModel):
    """Per-family control record: current pointer plus ordered version list."""
    model_config = ConfigDict(populate_by_name=True)

    current_version: str = Field(alias="currentVersion")
    versions: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_versions(self) -> Manifest:
        for version in self.versions:
            if not is_valid_version(version):
                raise ValueError(f"Invalid version in manifest: {version!r}")
        if len(set(self.versions)) != len(self.versions):
            raise ValueError("Manifest lists a version more than once")
        self.versions = sort_versions(self.versions)
        if self.current_version not in self.versions:
            raise ValueError(
                f"Current version {self.current_version} is not among {self.versions}"
            )
        return self

    def add_version(self, version: str) -> None:
        """Append a version and make it current."""
        if version not in self.versions:
            self.versions = sort_versions([*self.versions, version])
        self.current_version = version


class PromptSummary(BaseModel):
    """Lightweight listing entry built from a manifest."""
    model_config = ConfigDict(frozen=True)

    category: str
    name: str
    current_version: str
    version_count: int = 1


class VersionAction(str, Enum):
    LIST = "list"
    CREATE = "create"
    SWITCH = "switch"


class VersionResult(BaseModel):
    """Outcome of a version_prompt call."""
    action: VersionAction
    category: str
    name: str
    result: list[str] | str


class PromptFamilyExport(BaseModel):
    """Every snapshot of one family, used for export/import."""
    model_config = ConfigDict(populate_by_name=True)

    category: str
    name: str
    current_version: str = Field(alias="currentVersion")
    snapshots: list[PromptRecord] = Field(default_factory=list)


class PromptCollection(BaseModel):
    """
    A collection of prompt families, typically one category.
    Used for batch operations like export/import.
    """
    name: str
    description: str | None = None
    families: list[PromptFamilyExport] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    exported_at: datetime | None = None
    version: str = "1.0"

    def to_export(self) -> dict[str, Any]:
        """Prepare collection for export."""
        self.exported_at = _utcnow()
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_import(cls, data: dict[str, Any]) -> PromptCollection:
        """Create collection from imported data."""
        return cls.model_validate(data)


class ModelParams(BaseModel):
    """Per-model default call parameters in the project config."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    temperature: float | None = Field(default=None, ge=0, le=1)
    max_tokens: int | None = Field(default=None, gt=0, alias="maxTokens")
    top_p: float | None = Field(default=None, ge=0, le=1, alias="topP")
    frequency_penalty: float | None = Field(default=None, ge=-2, le=2, alias="frequencyPenalty")
    presence_penalty: float | None = Field(default=None, ge=-2, le=2, alias="presencePenalty")


class ProjectConfig(BaseModel):
    """Project-level settings persisted in the config file."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid", protected_namespaces=())

    prompts_dir: str = Field(default="prompts", min_length=1, alias="promptsDir")
    output_dir: str = Field(default="output", min_length=1, alias="outputDir")
    preferred_models: list[str] = Field(
        default_factory=lambda: ["gpt-4o-mini"], alias="preferredModels"
    )
    model_params: dict[str, ModelParams] = Field(default_factory=dict, alias="modelParams")
