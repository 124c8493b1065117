"""Mutating actions handed to :meth:`MeshClient.perform`."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import requests
from pydantic import Field

from meshsnapshot.exceptions import InvalidResponseError, ServerError
from meshsnapshot.models.base import SnapshotModel

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class ActionKind(str, Enum):
    SET_GUEST_NETWORK = "set_guest_network"
    SET_NETWORK_FEATURE = "set_network_feature"
    SET_CLIENT_PAUSED = "set_client_paused"
    SET_PROFILE_PAUSED = "set_profile_paused"
    SET_PROFILE_AD_BLOCK = "set_profile_ad_block"
    SET_PROFILE_CONTENT_FILTER = "set_profile_content_filter"
    SET_PROFILE_BLOCKED_APPS = "set_profile_blocked_apps"
    SET_DEVICE_STATUS_LIGHT = "set_device_status_light"
    REBOOT_DEVICE = "reboot_device"
    REBOOT_NETWORK = "reboot_network"
    RUN_SPEED_TEST = "run_speed_test"
    RUN_BURST_REPORTERS = "run_burst_reporters"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Action(SnapshotModel):
    """One write request against the API.

    Only ``endpoint``, ``method`` and ``payload`` reach the wire; the other
    fields describe the action for a queueing or confirmation layer.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    kind: ActionKind
    network_id: str
    target_id: Optional[str] = None
    endpoint: str
    method: HTTPMethod
    payload: dict[str, Any] = Field(default_factory=dict)
    label: str
    risk_level: RiskLevel = RiskLevel.LOW
    queue_eligible: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def json_body(self) -> dict[str, Any] | None:
        return dict(self.payload) if self.payload else None

    def is_transient_failure(self, error: BaseException) -> bool:
        """Whether a failed :meth:`MeshClient.perform` may be queued for replay."""
        if not self.queue_eligible:
            return False
        if isinstance(error, ServerError):
            return error.status_code in TRANSIENT_STATUS_CODES
        if isinstance(error, InvalidResponseError):
            return isinstance(error.__cause__, (requests.ConnectionError, requests.Timeout))
        return False
