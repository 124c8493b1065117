"""Account snapshot and field-audit models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from meshsnapshot.models.base import SnapshotModel
from meshsnapshot.models.network import Network


class FieldAuditCounter(SnapshotModel):
    present: int = 0
    total: int = 0


class ModelFieldAudit(SnapshotModel):
    """How many fetched payloads carried each tracked telemetry field."""

    generated_at: datetime
    network_fields: dict[str, FieldAuditCounter] = Field(default_factory=dict)
    client_fields: dict[str, FieldAuditCounter] = Field(default_factory=dict)
    device_fields: dict[str, FieldAuditCounter] = Field(default_factory=dict)


class AccountSnapshot(SnapshotModel):
    fetched_at: datetime
    networks: list[Network] = Field(default_factory=list)
    model_audit: Optional[ModelFieldAudit] = None

    @property
    def total_connected_clients(self) -> int:
        return sum(network.connected_clients_count for network in self.networks)


class RawNetworkPayload(SnapshotModel):
    network_id: str
    payload: dict[str, Any]


class SnapshotWithPayloads(SnapshotModel):
    snapshot: AccountSnapshot
    raw_networks: list[RawNetworkPayload] = Field(default_factory=list)
