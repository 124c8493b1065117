"""Network entity and its configuration sections."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from meshsnapshot.models.base import SnapshotModel
from meshsnapshot.models.client import Client
from meshsnapshot.models.node import Node
from meshsnapshot.models.profile import Profile
from meshsnapshot.models.summaries import (
    ActivitySummary,
    ChannelUtilizationSummary,
    MeshSummary,
    ProxiedNodesSummary,
    RealtimeSummary,
    WirelessCongestion,
)


class GuestNetworkDetails(SnapshotModel):
    enabled: Optional[bool] = None
    name: Optional[str] = None
    password: Optional[str] = None


class NetworkFeatures(SnapshotModel):
    ad_block: Optional[bool] = None
    block_malware: Optional[bool] = None
    band_steering: Optional[bool] = None
    upnp: Optional[bool] = None
    wpa3: Optional[bool] = None
    thread_enabled: Optional[bool] = None
    sqm: Optional[bool] = None
    ipv6_upstream: Optional[bool] = None


class DDNSSummary(SnapshotModel):
    enabled: Optional[bool] = None
    subdomain: Optional[str] = None


class HealthSummary(SnapshotModel):
    internet_status: Optional[str] = None
    internet_up: Optional[bool] = None
    eero_network_status: Optional[str] = None


class DiagnosticsSummary(SnapshotModel):
    status: Optional[str] = None


class UpdateSummary(SnapshotModel):
    has_update: Optional[bool] = None
    can_update_now: Optional[bool] = None
    target_firmware: Optional[str] = None
    min_required_firmware: Optional[str] = None
    update_to_firmware: Optional[str] = None
    update_status: Optional[str] = None
    preferred_update_hour: Optional[int] = None
    scheduled_update_time: Optional[str] = None
    last_update_started: Optional[str] = None


class SpeedTestRecord(SnapshotModel):
    up_mbps: Optional[float] = None
    down_mbps: Optional[float] = None
    date: Optional[str] = None


class SpeedSummary(SnapshotModel):
    measured_down_value: Optional[float] = None
    measured_down_units: Optional[str] = None
    measured_up_value: Optional[float] = None
    measured_up_units: Optional[str] = None
    measured_at: Optional[str] = None
    latest_speed_test: Optional[SpeedTestRecord] = None


class SupportSummary(SnapshotModel):
    support_phone: Optional[str] = None
    contact_url: Optional[str] = None
    help_url: Optional[str] = None
    email_web_form_url: Optional[str] = None
    name: Optional[str] = None


class ACCompatibility(SnapshotModel):
    enabled: Optional[bool] = None
    state: Optional[str] = None


class SecuritySummary(SnapshotModel):
    blacklisted_device_count: int = 0
    blacklisted_device_names: list[str] = Field(default_factory=list)


class Reservation(SnapshotModel):
    id: str
    description: Optional[str] = None
    ip: Optional[str] = None
    mac: Optional[str] = None


class PortForward(SnapshotModel):
    id: str
    description: Optional[str] = None
    ip: Optional[str] = None
    gateway_port: Optional[int] = None
    client_port: Optional[int] = None
    protocol: Optional[str] = None
    enabled: Optional[bool] = None


class RoutingSummary(SnapshotModel):
    reservation_count: int = 0
    forward_count: int = 0
    pinhole_count: int = 0
    reservations: list[Reservation] = Field(default_factory=list)
    forwards: list[PortForward] = Field(default_factory=list)


class InsightsSummary(SnapshotModel):
    available: bool = False
    last_error: Optional[str] = None


class ThreadDetails(SnapshotModel):
    name: Optional[str] = None
    channel: Optional[int] = None
    pan_id: Optional[str] = None
    xpan_id: Optional[str] = None
    commissioning_credential: Optional[str] = None
    active_operational_dataset: Optional[str] = None


class BurstReporterSummary(SnapshotModel):
    status: Optional[str] = None


class Network(SnapshotModel):
    id: str
    name: str
    nickname: Optional[str] = None
    status: Optional[str] = None
    premium_enabled: bool = False
    connected_clients_count: int = 0
    connected_guest_clients_count: int = 0
    guest_network_enabled: bool = False
    guest_network_name: Optional[str] = None
    guest_network_password: Optional[str] = None
    guest_network_details: Optional[GuestNetworkDetails] = None
    backup_internet_enabled: Optional[bool] = None
    resources: dict[str, str] = Field(default_factory=dict)
    features: NetworkFeatures = Field(default_factory=NetworkFeatures)
    ddns: DDNSSummary = Field(default_factory=DDNSSummary)
    health: HealthSummary = Field(default_factory=HealthSummary)
    diagnostics: DiagnosticsSummary = Field(default_factory=DiagnosticsSummary)
    updates: UpdateSummary = Field(default_factory=UpdateSummary)
    speed: SpeedSummary = Field(default_factory=SpeedSummary)
    support: SupportSummary = Field(default_factory=SupportSummary)
    ac_compatibility: ACCompatibility = Field(default_factory=ACCompatibility)
    security: SecuritySummary = Field(default_factory=SecuritySummary)
    routing: RoutingSummary = Field(default_factory=RoutingSummary)
    insights: InsightsSummary = Field(default_factory=InsightsSummary)
    thread_details: Optional[ThreadDetails] = None
    burst_reporters: Optional[BurstReporterSummary] = None
    gateway_ip: Optional[str] = None
    mesh: Optional[MeshSummary] = None
    wireless_congestion: Optional[WirelessCongestion] = None
    activity: Optional[ActivitySummary] = None
    realtime: Optional[RealtimeSummary] = None
    channel_utilization: Optional[ChannelUtilizationSummary] = None
    proxied_nodes: Optional[ProxiedNodesSummary] = None
    clients: list[Client] = Field(default_factory=list)
    profiles: list[Profile] = Field(default_factory=list)
    nodes: list[Node] = Field(default_factory=list)
    last_updated: datetime

    @property
    def display_name(self) -> str:
        if self.nickname:
            return f'{self.name} "{self.nickname}"'
        return self.name
