"""Parental-control profiles."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from meshsnapshot.models.base import SnapshotModel


class ProfileFilters(SnapshotModel):
    block_adult: Optional[bool] = None
    block_gaming: Optional[bool] = None
    block_messaging: Optional[bool] = None
    block_shopping: Optional[bool] = None
    block_social: Optional[bool] = None
    block_streaming: Optional[bool] = None
    block_violent: Optional[bool] = None


class ProfileApplication(SnapshotModel):
    id: str
    name: str
    categories: list[str] = Field(default_factory=list)
    icon_url: Optional[str] = None
    is_blocked: bool = False


class Profile(SnapshotModel):
    id: str
    name: str
    paused: bool = False
    ad_block: Optional[bool] = None
    blocked_applications: list[str] = Field(default_factory=list)
    available_applications: list[ProfileApplication] = Field(default_factory=list)
    filters: ProfileFilters = Field(default_factory=ProfileFilters)
    resources: dict[str, str] = Field(default_factory=dict)
