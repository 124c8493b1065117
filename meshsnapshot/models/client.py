"""Connected or known client devices."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from meshsnapshot.models.base import SnapshotModel


class Client(SnapshotModel):
    id: str
    name: str
    mac: Optional[str] = None
    ip: Optional[str] = None
    connected: bool = False
    paused: bool = False
    wireless: Optional[bool] = None
    is_guest: bool = False
    connection_type: Optional[str] = None
    signal: Optional[str] = None
    signal_average: Optional[str] = None
    score_bars: Optional[int] = None
    channel: Optional[int] = None
    blacklisted: Optional[bool] = None
    device_type: Optional[str] = None
    manufacturer: Optional[str] = None
    last_active: Optional[str] = None
    is_private: Optional[bool] = None
    interface_frequency: Optional[str] = None
    interface_frequency_unit: Optional[str] = None
    rx_channel_width: Optional[str] = None
    tx_channel_width: Optional[str] = None
    rx_rate_mbps: Optional[float] = None
    tx_rate_mbps: Optional[float] = None
    usage_down_mbps: Optional[float] = None
    usage_up_mbps: Optional[float] = None
    usage_down_percent_current: Optional[int] = None
    usage_up_percent_current: Optional[int] = None
    usage_day_download: Optional[int] = None
    usage_day_upload: Optional[int] = None
    usage_week_download: Optional[int] = None
    usage_week_upload: Optional[int] = None
    usage_month_download: Optional[int] = None
    usage_month_upload: Optional[int] = None
    source_location: Optional[str] = None
    source_url: Optional[str] = None
    resources: dict[str, str] = Field(default_factory=dict)
