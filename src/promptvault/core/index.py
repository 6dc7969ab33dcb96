"""
In-memory index of prompt families.

The index is a cache derived from storage, never the source of truth.
Mutating manager calls update exactly the entry they touched; a full
rebuild only happens through an explicit ``rebuild`` (PromptManager.reload).
"""

from __future__ import annotations

from typing import Iterable

from promptvault.core.models import PromptSummary


class PromptIndex:
    """category -> name -> PromptSummary"""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, PromptSummary]] = {}

    def __len__(self) -> int:
        return sum(len(prompts) for prompts in self._entries.values())

    def __contains__(self, key: tuple[str, str]) -> bool:
        category, name = key
        return name in self._entries.get(category, {})

    def rebuild(self, categories: Iterable[str], summaries: Iterable[PromptSummary]) -> None:
        """Replace the whole index with a fresh scan."""
        entries: dict[str, dict[str, PromptSummary]] = {c: {} for c in categories}
        for summary in summaries:
            entries.setdefault(summary.category, {})[summary.name] = summary
        self._entries = entries

    def get(self, category: str, name: str) -> PromptSummary | None:
        return self._entries.get(category, {}).get(name)

    def put(self, summary: PromptSummary) -> None:
        self._entries.setdefault(summary.category, {})[summary.name] = summary

    def remove(self, category: str, name: str) -> None:
        self._entries.get(category, {}).pop(name, None)

    def add_category(self, category: str) -> None:
        self._entries.setdefault(category, {})

    def remove_category(self, category: str) -> None:
        self._entries.pop(category, None)

    def categories(self) -> list[str]:
        return sorted(self._entries)

    def summaries(self, category: str | None = None) -> list[PromptSummary]:
        if category is not None:
            prompts = self._entries.get(category, {})
            return [prompts[name] for name in sorted(prompts)]

        return [
            self._entries[cat][name]
            for cat in sorted(self._entries)
            for name in sorted(self._entries[cat])
        ]
