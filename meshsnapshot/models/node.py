"""Mesh access-point nodes and their port and attachment records."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from meshsnapshot.models.base import SnapshotModel


class PortDetail(SnapshotModel):
    id: str
    position: Optional[int] = None
    port_name: Optional[str] = None
    ethernet_address: Optional[str] = None


class EthernetPortStatus(SnapshotModel):
    """One physical or logical interface, from either payload shape."""

    id: str
    interface_number: Optional[int] = None
    port_name: Optional[str] = None
    has_carrier: Optional[bool] = None
    is_wan_port: Optional[bool] = None
    speed_tag: Optional[str] = None
    power_saving: Optional[bool] = None
    original_speed: Optional[str] = None
    neighbor_name: Optional[str] = None
    neighbor_url: Optional[str] = None
    neighbor_port_name: Optional[str] = None
    neighbor_port: Optional[int] = None
    connection_kind: Optional[str] = None
    connection_type: Optional[str] = None
    peer_count: Optional[int] = None


class WirelessAttachment(SnapshotModel):
    id: str
    display_name: Optional[str] = None
    url: Optional[str] = None
    kind: Optional[str] = None
    model: Optional[str] = None
    device_type: Optional[str] = None


class Node(SnapshotModel):
    id: str
    name: str
    model: Optional[str] = None
    model_number: Optional[str] = None
    serial: Optional[str] = None
    mac_address: Optional[str] = None
    is_gateway: bool = False
    status: Optional[str] = None
    status_light_enabled: Optional[bool] = None
    status_light_brightness: Optional[int] = None
    update_available: Optional[bool] = None
    ip_address: Optional[str] = None
    os_version: Optional[str] = None
    last_reboot_at: Optional[str] = None
    connected_client_count: Optional[int] = None
    connected_client_names: Optional[list[str]] = None
    connected_wired_client_count: Optional[int] = None
    connected_wireless_client_count: Optional[int] = None
    mesh_quality_bars: Optional[int] = None
    wired_backhaul: Optional[bool] = None
    wifi_bands: list[str] = Field(default_factory=list)
    port_details: list[PortDetail] = Field(default_factory=list)
    ethernet_statuses: list[EthernetPortStatus] = Field(default_factory=list)
    wireless_attachments: Optional[list[WirelessAttachment]] = None
    usage_day_download: Optional[int] = None
    usage_day_upload: Optional[int] = None
    usage_week_download: Optional[int] = None
    usage_week_upload: Optional[int] = None
    usage_month_download: Optional[int] = None
    usage_month_upload: Optional[int] = None
    support_expired: Optional[bool] = None
    support_expiration_string: Optional[str] = None
    resources: dict[str, str] = Field(default_factory=dict)
