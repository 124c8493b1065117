"""Deep merge of partial JSON objects describing the same entity."""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """Merge *incoming* onto a copy of *base* and return the copy.

    Nested objects merge recursively; any other incoming value overwrites.
    Detail endpoints often return null or empty placeholders, so those
    never erase a value that is already known.
    """
    merged = dict(base)
    for key, value in incoming.items():
        if value is None:
            continue
        existing = merged.get(key)
        if isinstance(value, dict):
            if isinstance(existing, dict):
                merged[key] = deep_merge(existing, value)
            elif value:
                merged[key] = dict(value)
            continue
        if isinstance(value, str) and not value.strip() and isinstance(existing, str) and existing.strip():
            continue
        merged[key] = value
    return merged
