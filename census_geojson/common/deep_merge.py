"""Recursive merging of nested mappings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def deep_merge_with(*maps: Mapping[str, Any]) -> dict[str, Any]:
    """Merge mappings left to right, recursing where every side holds a mapping.

    When the values colliding at a key are all mappings they are merged
    recursively; otherwise the last value wins. The inputs are not modified.
    """
    merged: dict[str, Any] = {}
    for mapping in maps:
        if mapping is None:
            continue
        for key, value in mapping.items():
            if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
                merged[key] = deep_merge_with(merged[key], value)
            elif isinstance(value, Mapping):
                merged[key] = deep_merge_with(value)
            else:
                merged[key] = value
    return merged
