"""Constructors that accept each sub-resource in any of its known shapes.

The API returns the same logical collection as a bare list, as
``{count, data}``, as ``{values}`` or as a ``series`` wrapper depending on
endpoint and firmware. Each function here isolates one such family.
"""

from __future__ import annotations

from typing import Any


def dict_rows(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


def is_object_rows(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(row, dict) for row in value)


def object_rows(value: Any) -> list[dict[str, Any]] | None:
    """Rows from a bare list, ``{data: [...]}`` or ``{values: [...]}``."""
    if is_object_rows(value):
        return list(value)
    if isinstance(value, dict):
        for key in ("data", "values"):
            rows = value.get(key)
            if is_object_rows(rows):
                return list(rows)
    return None


def count_data(rows: list[dict[str, Any]]) -> dict[str, Any]:
    """Canonical ``{count, data}`` storage shape for a collection."""
    return {"count": len(rows), "data": rows}


def string_rows(value: Any) -> list[str]:
    """Trimmed non-empty strings of a list."""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def usage_series(value: Any) -> list[dict[str, Any]] | None:
    """Normalize a data-usage response into a list of rows.

    Accepts a bare list, a non-empty ``data`` list, ``data.values``,
    ``data.series``, ``values``, ``series``, or a bare object carrying
    ``download``/``upload`` totals (returned as a single row).
    """
    if is_object_rows(value):
        return list(value)
    if not isinstance(value, dict):
        return None
    data = value.get("data")
    if is_object_rows(data) and data:
        return list(data)
    if isinstance(data, dict):
        for key in ("values", "series"):
            rows = data.get(key)
            if is_object_rows(rows) and rows:
                return list(rows)
    for key in ("values", "series"):
        rows = value.get(key)
        if is_object_rows(rows):
            return list(rows)
    row = {key: value[key] for key in ("download", "upload") if value.get(key) is not None}
    return [row] if row else None


def device_usage_payload(value: Any) -> dict[str, Any] | None:
    """Per-device usage rollup: objects pass through, lists become ``{values}``."""
    if isinstance(value, dict):
        return value
    if is_object_rows(value):
        return {"values": list(value)}
    return None


def channel_utilization_has_data(value: Any) -> bool:
    """True when a channel-utilization response actually carries samples."""
    if is_object_rows(value):
        return bool(value)
    if isinstance(value, dict):
        for key in ("utilization", "data", "values", "channels"):
            rows = value.get(key)
            if is_object_rows(rows):
                return bool(rows)
        return bool(value)
    return False
