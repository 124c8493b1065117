"""Derived per-network summaries."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from meshsnapshot.models.base import SnapshotModel


class MeshSummary(SnapshotModel):
    eero_count: int
    online_eero_count: int
    gateway_name: Optional[str] = None
    gateway_mac_address: Optional[str] = None
    gateway_ip: Optional[str] = None
    average_mesh_quality_bars: Optional[float] = None
    wired_backhaul_count: int = 0
    wireless_backhaul_count: int = 0


class CongestedChannel(SnapshotModel):
    key: str
    channel: Optional[int] = None
    band: Optional[str] = None
    client_count: int
    average_signal_dbm: Optional[int] = None


class WirelessCongestion(SnapshotModel):
    wireless_client_count: int
    poor_signal_client_count: int
    average_score_bars: Optional[float] = None
    average_signal_dbm: Optional[float] = None
    congested_channels: list[CongestedChannel] = Field(default_factory=list)


class RealtimeSummary(SnapshotModel):
    """Sum of connected clients' live rates; approximates WAN throughput only."""

    download_mbps: float
    upload_mbps: float
    source_label: str
    is_proxy: bool = True
    sampled_at: datetime


class ProxiedNodesSummary(SnapshotModel):
    enabled: Optional[bool] = None
    total_devices: int = 0
    online_devices: int = 0
    offline_devices: int = 0


class ChannelUtilizationSample(SnapshotModel):
    id: str
    timestamp: datetime
    busy_percent: Optional[int] = None
    noise_percent: Optional[int] = None
    rx_tx_percent: Optional[int] = None
    rx_other_percent: Optional[int] = None


class ChannelUtilizationRadio(SnapshotModel):
    id: str
    eero_id: Optional[str] = None
    eero_name: Optional[str] = None
    band: Optional[str] = None
    control_channel: Optional[int] = None
    center_channel: Optional[int] = None
    channel_bandwidth: Optional[str] = None
    frequency_mhz: Optional[int] = None
    average_utilization: Optional[int] = None
    max_utilization: Optional[int] = None
    p99_utilization: Optional[int] = None
    time_series: list[ChannelUtilizationSample] = Field(default_factory=list)


class ChannelUtilizationSummary(SnapshotModel):
    radios: list[ChannelUtilizationRadio]
    sampled_at: datetime


class TopDeviceUsage(SnapshotModel):
    id: str
    name: str
    mac_address: Optional[str] = None
    manufacturer: Optional[str] = None
    device_type: Optional[str] = None
    day_download_bytes: Optional[int] = None
    day_upload_bytes: Optional[int] = None
    week_download_bytes: Optional[int] = None
    week_upload_bytes: Optional[int] = None
    month_download_bytes: Optional[int] = None
    month_upload_bytes: Optional[int] = None


class TimelineSample(SnapshotModel):
    id: str
    timestamp: datetime
    download_bytes: int
    upload_bytes: int


class DeviceUsageTimeline(SnapshotModel):
    id: str
    name: str
    mac_address: Optional[str] = None
    samples: list[TimelineSample] = Field(default_factory=list)

    @property
    def total_bytes(self) -> int:
        return sum(sample.download_bytes + sample.upload_bytes for sample in self.samples)


class ActivitySummary(SnapshotModel):
    network_day_download: Optional[int] = None
    network_day_upload: Optional[int] = None
    network_week_download: Optional[int] = None
    network_week_upload: Optional[int] = None
    network_month_download: Optional[int] = None
    network_month_upload: Optional[int] = None
    busiest_devices: list[TopDeviceUsage] = Field(default_factory=list)
    busiest_device_timelines: Optional[list[DeviceUsageTimeline]] = None
