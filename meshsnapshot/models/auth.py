"""Session lifecycle responses."""

from __future__ import annotations

from typing import Optional

from meshsnapshot.models.base import SnapshotModel


class LoginResponse(SnapshotModel):
    user_token: str


class VerifyResponse(SnapshotModel):
    account_name: Optional[str] = None
    account_id: Optional[str] = None


class RefreshResponse(SnapshotModel):
    user_token: str
