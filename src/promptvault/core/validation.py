"""
Structural validation for prompt and config records.

Every storage boundary (read and write) goes through these functions so
malformed data is rejected at the edge instead of propagating.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from promptvault.core.models import ProjectConfig, PromptRecord
from promptvault.errors import ConfigError, PromptValidationError

logger = logging.getLogger(__name__)

SCHEMA_TYPES = {"object", "array", "string", "number", "integer", "boolean", "null"}


def _format_errors(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def schema_problems(schema: Any, path: str = "$") -> list[str]:
    """
    Collect structural problems in a JSON-schema-like document.

    Only the shape is checked (types of the well-known keywords), not the
    full JSON Schema vocabulary. An empty document is valid.
    """
    if not isinstance(schema, Mapping):
        return [f"{path}: schema must be an object"]

    problems: list[str] = []

    declared = schema.get("type")
    if declared is not None:
        types = declared if isinstance(declared, list) else [declared]
        for t in types:
            if t not in SCHEMA_TYPES:
                problems.append(f"{path}.type: unknown type {t!r}")

    properties = schema.get("properties")
    if properties is not None:
        if not isinstance(properties, Mapping):
            problems.append(f"{path}.properties: must be an object")
        else:
            for key, sub in properties.items():
                problems.extend(schema_problems(sub, f"{path}.properties.{key}"))

    items = schema.get("items")
    if items is not None:
        if isinstance(items, list):
            for i, sub in enumerate(items):
                problems.extend(schema_problems(sub, f"{path}.items[{i}]"))
        else:
            problems.extend(schema_problems(items, f"{path}.items"))

    required = schema.get("required")
    if required is not None and (
        not isinstance(required, list) or not all(isinstance(r, str) for r in required)
    ):
        problems.append(f"{path}.required: must be a list of strings")

    return problems


def validate_prompt(data: PromptRecord | Mapping[str, Any]) -> PromptRecord:
    """
    Validate a prompt record and return the typed model.

    Accepts a model instance (re-validated, since instances are mutable)
    or raw data in either key spelling.

    Raises:
        PromptValidationError: If the record does not match the contract
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)

    try:
        record = PromptRecord.model_validate(data)
    except PydanticValidationError as e:
        raise PromptValidationError(
            f"Invalid prompt record: {_format_errors(e)}", errors=e.errors()
        ) from e

    problems = schema_problems(record.input_schema, "inputSchema")
    problems += schema_problems(record.output_schema, "outputSchema")
    if problems:
        raise PromptValidationError(f"Invalid prompt record: {'; '.join(problems)}")

    return record


def validate_config(data: ProjectConfig | Mapping[str, Any]) -> ProjectConfig:
    """
    Validate project config data.

    Raises:
        ConfigError: On missing keys, unknown keys or type mismatches
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)

    try:
        return ProjectConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {_format_errors(e)}") from e
