"""Shared pydantic base for snapshot entities."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SnapshotModel(BaseModel):
    """Immutable entity; builders construct a new instance instead of mutating."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())
