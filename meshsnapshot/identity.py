"""Stable identifiers and join keys.

``normalize_key`` is the single join-key function used for every
cross-resource correlation, so ``AA:BB:CC:DD:EE:FF`` and ``aabbccddeeff``
always meet.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urlsplit


def normalize_key(value: str | None) -> str:
    """Trim, lowercase and strip non-alphanumerics.

    Falls back to the lowercased (unstripped) text when stripping leaves
    nothing, so punctuation-only keys still compare.
    """
    if value is None:
        return ""
    lowered = value.strip().lower()
    if not lowered:
        return ""
    stripped = "".join(ch for ch in lowered if ch.isalnum())
    return stripped or lowered


def stable_id(primary: str | None, fallbacks: Iterable[str | None] = (), prefix: str = "id") -> str:
    """First candidate that normalizes non-empty, as ``"{prefix}-{key}"``."""
    for candidate in (primary, *fallbacks):
        normalized = normalize_key(candidate)
        if normalized:
            return f"{prefix}-{normalized}"
    return f"{prefix}-unknown"


def id_from_url(value: str | None) -> str | None:
    """Final non-empty path segment of a resource URL or path.

    Only strings with both a scheme and a host are treated as URLs; a bare
    MAC such as ``aa:bb:cc:dd:ee:ff`` is returned unchanged.
    """
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    parts = urlsplit(raw)
    if parts.scheme and parts.netloc:
        segments = [segment for segment in parts.path.split("/") if segment]
        return segments[-1] if segments else None
    if "/" in raw:
        segments = [segment.strip() for segment in raw.split("/") if segment.strip()]
        return segments[-1] if segments else None
    return raw


def trim_stable_prefix(value: str) -> str:
    """Drop a ``prefix-`` head from an id produced by :func:`stable_id`."""
    index = value.find("-")
    if index > 0:
        suffix = value[index + 1 :]
        if suffix:
            return suffix
    return value


def is_placeholder_mac(value: str | None) -> bool:
    """True for an all-zero 12-digit MAC such as ``00:00:00:00:00:00``."""
    if value is None:
        return False
    compact = value.strip().replace(":", "").replace("-", "").lower()
    return len(compact) == 12 and set(compact) == {"0"}


def mac_from_resource_key(value: str | None) -> str | None:
    """Rebuild an upper-case ``AA:BB:CC:DD:EE:FF`` MAC from a usage resource key.

    Accepts colon- or dash-separated octets, or any 12 alphanumerics.
    """
    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if ":" in trimmed or "-" in trimmed:
        octets = trimmed.replace("-", ":").split(":")
        if len(octets) == 6 and all(len(octet) == 2 for octet in octets):
            return ":".join(octets).upper()
    compact = "".join(ch for ch in trimmed if ch.isalnum())
    if len(compact) != 12:
        return None
    return ":".join(compact[i : i + 2] for i in range(0, 12, 2)).upper()
