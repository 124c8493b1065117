"""Pydantic models for account snapshots, actions and session responses."""

from meshsnapshot.models.action import Action, ActionKind, HTTPMethod, RiskLevel
from meshsnapshot.models.auth import LoginResponse, RefreshResponse, VerifyResponse
from meshsnapshot.models.client import Client
from meshsnapshot.models.network import (
    ACCompatibility,
    BurstReporterSummary,
    DDNSSummary,
    DiagnosticsSummary,
    GuestNetworkDetails,
    HealthSummary,
    InsightsSummary,
    Network,
    NetworkFeatures,
    PortForward,
    Reservation,
    RoutingSummary,
    SecuritySummary,
    SpeedSummary,
    SpeedTestRecord,
    SupportSummary,
    ThreadDetails,
    UpdateSummary,
)
from meshsnapshot.models.node import EthernetPortStatus, Node, PortDetail, WirelessAttachment
from meshsnapshot.models.profile import Profile, ProfileApplication, ProfileFilters
from meshsnapshot.models.snapshot import (
    AccountSnapshot,
    FieldAuditCounter,
    ModelFieldAudit,
    RawNetworkPayload,
    SnapshotWithPayloads,
)
from meshsnapshot.models.summaries import (
    ActivitySummary,
    ChannelUtilizationRadio,
    ChannelUtilizationSample,
    ChannelUtilizationSummary,
    CongestedChannel,
    DeviceUsageTimeline,
    MeshSummary,
    ProxiedNodesSummary,
    RealtimeSummary,
    TimelineSample,
    TopDeviceUsage,
    WirelessCongestion,
)

__all__ = [
    "ACCompatibility",
    "AccountSnapshot",
    "Action",
    "ActionKind",
    "ActivitySummary",
    "BurstReporterSummary",
    "ChannelUtilizationRadio",
    "ChannelUtilizationSample",
    "ChannelUtilizationSummary",
    "Client",
    "CongestedChannel",
    "DDNSSummary",
    "DeviceUsageTimeline",
    "DiagnosticsSummary",
    "EthernetPortStatus",
    "FieldAuditCounter",
    "GuestNetworkDetails",
    "HTTPMethod",
    "HealthSummary",
    "InsightsSummary",
    "LoginResponse",
    "MeshSummary",
    "ModelFieldAudit",
    "Network",
    "NetworkFeatures",
    "Node",
    "PortDetail",
    "PortForward",
    "Profile",
    "ProfileApplication",
    "ProfileFilters",
    "ProxiedNodesSummary",
    "RawNetworkPayload",
    "RealtimeSummary",
    "RefreshResponse",
    "Reservation",
    "RiskLevel",
    "RoutingSummary",
    "SecuritySummary",
    "SnapshotWithPayloads",
    "SpeedSummary",
    "SpeedTestRecord",
    "SupportSummary",
    "ThreadDetails",
    "TimelineSample",
    "TopDeviceUsage",
    "UpdateSummary",
    "VerifyResponse",
    "WirelessAttachment",
    "WirelessCongestion",
]
