"""
Per-role model preference lists.

Preferences arrive from user config as loosely typed data; normalization
keeps only well-formed ``provider/model`` ids for known roles, and
resolution picks the first preferred id the catalog actually offers.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from .types import AgentRole, ModelPreferences

PROVIDER_MODEL_PATTERN = re.compile(r"^[^/\s]+/\S+$")


def normalize_model_preferences(value: Any) -> ModelPreferences | None:
    """
    Normalize raw preference data into a role -> ordered ids mapping.

    Unknown roles, non-string entries and ids without a provider prefix are
    dropped. Duplicates keep their first position.

    Returns:
        The normalized mapping, or None when nothing usable remains
    """
    if not isinstance(value, Mapping):
        return None

    normalized: ModelPreferences = {}
    for role in AgentRole:
        raw = value.get(role.value, value.get(role))
        if not isinstance(raw, (list, tuple)):
            continue

        seen: set[str] = set()
        entries: list[str] = []
        for entry in raw:
            if not isinstance(entry, str):
                continue
            entry = entry.strip()
            if not PROVIDER_MODEL_PATTERN.match(entry) or entry in seen:
                continue
            seen.add(entry)
            entries.append(entry)

        if entries:
            normalized[role] = entries

    return normalized or None


def match_catalog_id(model: str, candidate_ids: Iterable[str]) -> str | None:
    """Case-insensitive lookup returning the catalog's spelling of the id."""
    wanted = model.lower()
    for candidate in candidate_ids:
        if candidate.lower() == wanted:
            return candidate
    return None


def resolve_preferred_model(
    role: AgentRole,
    preferences: ModelPreferences | None,
    candidate_ids: Iterable[str],
) -> str | None:
    """First preferred model for the role that the catalog offers."""
    if not preferences:
        return None
    preferred = preferences.get(role)
    if not preferred:
        return None

    by_lower: dict[str, str] = {}
    for candidate in candidate_ids:
        by_lower.setdefault(candidate.lower(), candidate)

    for wanted in preferred:
        resolved = by_lower.get(wanted.lower())
        if resolved:
            return resolved
    return None


__all__ = [
    "match_catalog_id",
    "normalize_model_preferences",
    "resolve_preferred_model",
]
