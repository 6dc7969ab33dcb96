"""Dotted-numeric version helpers."""

from __future__ import annotations

import re
from typing import Iterable

INITIAL_VERSION = "1.0.0"

VERSION_PATTERN = re.compile(r"^\d+(\.\d+)*$")


def is_valid_version(version: str) -> bool:
    return bool(VERSION_PATTERN.match(version))


def parse_version(version: str) -> tuple[int, ...]:
    """Split a version string into its integer components."""
    if not is_valid_version(version):
        raise ValueError(f"Invalid version string: {version!r}")
    return tuple(int(part) for part in version.split("."))


def compare_versions(a: str, b: str) -> int:
    """
    Compare two version strings.

    Components are compared left to right; missing trailing components
    count as 0, so "1.0" == "1.0.0". Returns -1, 0 or 1.
    """
    parts_a = parse_version(a)
    parts_b = parse_version(b)
    length = max(len(parts_a), len(parts_b))
    parts_a += (0,) * (length - len(parts_a))
    parts_b += (0,) * (length - len(parts_b))

    if parts_a > parts_b:
        return 1
    if parts_a < parts_b:
        return -1
    return 0


def version_key(version: str) -> tuple[int, ...]:
    """Sort key consistent with compare_versions (trailing zeros stripped)."""
    parts = list(parse_version(version))
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def sort_versions(versions: Iterable[str]) -> list[str]:
    return sorted(versions, key=version_key)


def increment_version(version: str) -> str:
    """Bump the final component: "1.0.3" -> "1.0.4"."""
    parts = list(parse_version(version))
    parts[-1] += 1
    return ".".join(str(p) for p in parts)


def latest_version(versions: Iterable[str]) -> str | None:
    ordered = sort_versions(versions)
    return ordered[-1] if ordered else None
