"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_BASE_URL = "https://api-user.e2ro.com"
DEFAULT_TIMEOUT = 20.0
DEFAULT_MAX_WORKERS = 8


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the transport and the enrichment pools.

    Attributes:
        base_url: Fixed API host that relative paths resolve against.
        timeout: Per-request ceiling in seconds.
        max_workers: Width of each concurrent fetch pool.
        token: Optional initial session token.
        routes_file: Optional JSON file overriding resource routes.
    """

    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    token: str | None = None
    routes_file: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``MESHSNAPSHOT_*`` environment variables."""
        return cls(
            base_url=os.getenv("MESHSNAPSHOT_BASE_URL", DEFAULT_BASE_URL).rstrip("/") or DEFAULT_BASE_URL,
            timeout=_env_float("MESHSNAPSHOT_TIMEOUT", DEFAULT_TIMEOUT),
            max_workers=_env_int("MESHSNAPSHOT_MAX_WORKERS", DEFAULT_MAX_WORKERS),
            token=os.getenv("MESHSNAPSHOT_TOKEN") or None,
            routes_file=os.getenv("MESHSNAPSHOT_ROUTES_FILE") or None,
        )
