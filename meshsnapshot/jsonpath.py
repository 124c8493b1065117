"""Typed path lookups over decoded JSON values.

Every accessor takes a value and a key path and returns ``None`` when any
step is missing or the leaf has the wrong type, so call sites never chain
``isinstance`` checks by hand.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any, TypeAlias

JSONValue: TypeAlias = None | bool | int | float | str | list[Any] | dict[str, Any]
Path: TypeAlias = Sequence[str]


def get(value: Any, path: Path) -> Any:
    """Walk *path* through nested objects; ``None`` on the first miss."""
    current = value
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_str(value: Any, path: Path) -> str | None:
    leaf = get(value, path)
    return leaf if isinstance(leaf, str) else None


def get_bool(value: Any, path: Path) -> bool | None:
    leaf = get(value, path)
    if isinstance(leaf, bool):
        return leaf
    if is_number(leaf):
        return leaf != 0
    return None


def get_int(value: Any, path: Path) -> int | None:
    leaf = get(value, path)
    if isinstance(leaf, bool):
        return None
    if isinstance(leaf, int):
        return leaf
    if isinstance(leaf, float):
        return int(leaf) if math.isfinite(leaf) else None
    if isinstance(leaf, str):
        try:
            return int(leaf.strip())
        except ValueError:
            return None
    return None


def get_float(value: Any, path: Path) -> float | None:
    leaf = get(value, path)
    if isinstance(leaf, bool):
        return None
    if is_number(leaf):
        return float(leaf)
    if isinstance(leaf, str):
        try:
            parsed = float(leaf.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def get_dict(value: Any, path: Path) -> dict[str, Any] | None:
    leaf = get(value, path)
    return leaf if isinstance(leaf, dict) else None


def get_list(value: Any, path: Path) -> list[Any] | None:
    leaf = get(value, path)
    return leaf if isinstance(leaf, list) else None


def get_dicts(value: Any, path: Path) -> list[dict[str, Any]] | None:
    """Object rows of the list at *path*; non-object entries are dropped."""
    leaf = get_list(value, path)
    if leaf is None:
        return None
    return [row for row in leaf if isinstance(row, dict)]


def get_str_map(value: Any, path: Path) -> dict[str, str]:
    """String-valued members of the object at *path*."""
    leaf = get_dict(value, path)
    if not leaf:
        return {}
    return {key: item for key, item in leaf.items() if isinstance(item, str)}


def first_str(value: Any, paths: Iterable[Path]) -> str | None:
    for path in paths:
        found = get_str(value, path)
        if found is not None:
            return found
    return None


def first_bool(value: Any, paths: Iterable[Path]) -> bool | None:
    for path in paths:
        found = get_bool(value, path)
        if found is not None:
            return found
    return None


def has_value(value: Any) -> bool:
    """True for anything other than null, a blank string or an empty container."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True
