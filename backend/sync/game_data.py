"""Merge partial updates into a room's game-data document."""

from collections.abc import Mapping
from typing import Any

# Sub-documents that several clients update piecemeal; every other key is
# owned by whichever client sends it last.
DEEP_MERGE_KEYS = frozenset({"cards", "bids", "round"})


def merge_game_data(current: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Apply ``patch`` on top of ``current`` and return the merged document.

    Keys in DEEP_MERGE_KEYS are shallow-merged (patch sub-keys win, other
    sub-keys survive); any other key, or a deep-merge key whose patch value is
    not a mapping, is replaced outright. Keys missing from ``patch`` are left
    as they are. Neither argument is modified.
    """
    merged = dict(current)
    for key, value in patch.items():
        if key in DEEP_MERGE_KEYS and isinstance(value, Mapping):
            existing = current.get(key)
            base = existing if isinstance(existing, Mapping) else {}
            merged[key] = {**base, **value}
        else:
            merged[key] = value
    return merged


def changed_keys(current: Mapping[str, Any], merged: Mapping[str, Any]) -> list[str]:
    """Top-level keys whose value differs between two documents."""
    return [key for key in merged if key not in current or current[key] != merged[key]]
