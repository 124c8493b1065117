"""Assemble a :class:`Network` from one enriched network payload."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from loguru import logger

from meshsnapshot.identity import id_from_url, stable_id
from meshsnapshot.jsonpath import (
    first_bool,
    first_str,
    get,
    get_bool,
    get_dict,
    get_dicts,
    get_float,
    get_int,
    get_str,
    get_str_map,
)
from meshsnapshot.models import (
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
from meshsnapshot.parsers.client import parse_client
from meshsnapshot.parsers.node import parse_node
from meshsnapshot.parsers.profile import parse_profile
from meshsnapshot.parsers.values import string_value
from meshsnapshot.summaries import (
    channel_utilization_summary,
    mesh_summary,
    proxied_nodes_summary,
    realtime_summary,
    wireless_congestion,
)
from meshsnapshot.topology import attach_connected_clients
from meshsnapshot.usage import activity_summary, attach_client_usage, attach_node_usage

UPDATE_STATUS_PATHS = [
    ["updates", "update_status"],
    ["updates", "updates_status"],
    ["updates", "state"],
    ["updates", "status"],
    ["update_status"],
    ["updates_status"],
    ["firmware_update_status"],
]

_PREMIUM_ACTIVE = {"active", "trialing"}


def parse_reservation(data: dict[str, Any]) -> Reservation:
    url = get_str(data, ["url"])
    return Reservation(
        id=stable_id(id_from_url(url), [url, get_str(data, ["ip"]), get_str(data, ["mac"])], "reservation"),
        description=get_str(data, ["description"]),
        ip=get_str(data, ["ip"]),
        mac=get_str(data, ["mac"]),
    )


def parse_forward(data: dict[str, Any]) -> PortForward:
    url = get_str(data, ["url"])
    return PortForward(
        id=stable_id(
            id_from_url(url),
            [url, get_str(data, ["ip"]), get_str(data, ["description"]), get_str(data, ["protocol"])],
            "forward",
        ),
        description=get_str(data, ["description"]),
        ip=get_str(data, ["ip"]),
        gateway_port=get_int(data, ["gateway_port"]),
        client_port=get_int(data, ["client_port"]),
        protocol=get_str(data, ["protocol"]),
        enabled=get_bool(data, ["enabled"]),
    )


def parse_ac_compatibility(value: Any) -> ACCompatibility:
    if isinstance(value, dict):
        return ACCompatibility(
            enabled=first_bool(value, [["enabled"], ["value"]]),
            state=get_str(value, ["state"]),
        )
    if isinstance(value, bool):
        return ACCompatibility(enabled=value)
    if isinstance(value, (int, float)):
        return ACCompatibility(enabled=value != 0)
    return ACCompatibility()


def parse_speed_test(value: Any) -> SpeedTestRecord | None:
    """Latest speed test from a list of results or a single result object."""
    if isinstance(value, list):
        first = next((row for row in value if isinstance(row, dict)), None)
        if first is None:
            return None
        return SpeedTestRecord(
            up_mbps=get_float(first, ["up_mbps"]),
            down_mbps=get_float(first, ["down_mbps"]),
            date=string_value(get(first, ["date"])),
        )
    if isinstance(value, dict):
        up = get_float(value, ["up_mbps"])
        if up is None:
            up = get_float(value, ["up", "value"])
        down = get_float(value, ["down_mbps"])
        if down is None:
            down = get_float(value, ["down", "value"])
        date = string_value(get(value, ["date"]))
        if up is not None or down is not None or date is not None:
            return SpeedTestRecord(up_mbps=up, down_mbps=down, date=date)
    return None


def parse_thread_details(data: dict[str, Any]) -> ThreadDetails | None:
    thread = get_dict(data, ["thread"]) or {}
    details = ThreadDetails(
        name=get_str(thread, ["name"]),
        channel=get_int(thread, ["channel"]),
        pan_id=get_str(thread, ["pan_id"]),
        xpan_id=get_str(thread, ["xpan_id"]),
        commissioning_credential=get_str(thread, ["commissioning_credential"]),
        active_operational_dataset=get_str(thread, ["active_operational_dataset"]),
    )
    if all(value is None for value in details.model_dump().values()):
        return None
    return details


def parse_burst_reporters(data: dict[str, Any]) -> BurstReporterSummary | None:
    burst = get_dict(data, ["burst_reporters"])
    if burst is None:
        return None
    return BurstReporterSummary(status=get_str(burst, ["status"]))


def _speed_summary(data: dict[str, Any]) -> SpeedSummary:
    latest = parse_speed_test(data.get("speedtest"))
    down = get_float(data, ["speed", "down", "value"])
    up = get_float(data, ["speed", "up", "value"])
    measured_at = string_value(get(data, ["speed", "date"]))
    return SpeedSummary(
        measured_down_value=down if down is not None else (latest.down_mbps if latest else None),
        measured_down_units=get_str(data, ["speed", "down", "units"]) or "Mbps",
        measured_up_value=up if up is not None else (latest.up_mbps if latest else None),
        measured_up_units=get_str(data, ["speed", "up", "units"]) or "Mbps",
        measured_at=measured_at if measured_at is not None else (latest.date if latest else None),
        latest_speed_test=latest,
    )


def _update_summary(data: dict[str, Any]) -> UpdateSummary:
    return UpdateSummary(
        has_update=first_bool(data, [["updates", "has_update"], ["updates", "update_required"]]),
        can_update_now=get_bool(data, ["updates", "can_update_now"]),
        target_firmware=get_str(data, ["updates", "target_firmware"]),
        min_required_firmware=get_str(data, ["updates", "min_required_firmware"]),
        update_to_firmware=get_str(data, ["updates", "update_to_firmware"]),
        update_status=first_str(data, UPDATE_STATUS_PATHS),
        preferred_update_hour=get_int(data, ["updates", "preferred_update_hour"]),
        scheduled_update_time=string_value(get(data, ["updates", "scheduled_update_time"])),
        last_update_started=string_value(get(data, ["updates", "last_update_started"])),
    )


def _routing_summary(data: dict[str, Any]) -> RoutingSummary:
    """Routing sub-collections win over the standalone endpoints when non-empty."""
    routing = get_dict(data, ["routing"]) or {}
    reservations = get_dicts(routing, ["reservations", "data"]) or get_dicts(data, ["reservations", "data"]) or []
    forwards = get_dicts(routing, ["forwards", "data"]) or get_dicts(data, ["forwards", "data"]) or []
    pinholes = get_dicts(routing, ["pinholes", "data"]) or []
    return RoutingSummary(
        reservation_count=len(reservations),
        forward_count=len(forwards),
        pinhole_count=len(pinholes),
        reservations=[parse_reservation(row) for row in reservations],
        forwards=[parse_forward(row) for row in forwards],
    )


def _security_summary(data: dict[str, Any]) -> SecuritySummary:
    blacklisted = get_dicts(data, ["device_blacklist", "data"]) or []
    names = [name for name in (first_str(row, [["nickname"], ["hostname"], ["mac"]]) for row in blacklisted) if name]
    return SecuritySummary(blacklisted_device_count=len(blacklisted), blacklisted_device_names=names)


def _insights_available(data: dict[str, Any]) -> bool:
    return bool(
        get_bool(data, ["capabilities", "historical_insights", "capable"])
        or get_bool(data, ["capabilities", "per_device_insights", "capable"])
        or data.get("insights_response") is not None
        or data.get("ouicheck_response") is not None
    )


def parse_network(data: dict[str, Any]) -> Network:
    """Parse one merged network payload into a :class:`Network`.

    Clients and nodes get their usage joined before the derived summaries
    are computed, so every summary sees the same joined entities.
    """
    url = get_str(data, ["url"])
    network_id = stable_id(
        id_from_url(url),
        [url, get_str(data, ["name"]), get_str(data, ["nickname_label"])],
        "network",
    )
    guest = get_dict(data, ["guest_network"]) or {}
    ad_block_profiles = get(data, ["premium_dns", "ad_block_settings", "profiles"])
    ad_block_urls = {item for item in ad_block_profiles if isinstance(item, str)} if isinstance(ad_block_profiles, list) else set()

    clients = [parse_client(row) for row in get_dicts(data, ["devices", "data"]) or []]
    profiles = [parse_profile(row, ad_block_urls) for row in get_dicts(data, ["profiles", "data"]) or []]
    nodes = [parse_node(row) for row in get_dicts(data, ["eeros", "data"]) or []]

    clients = attach_client_usage(data, clients)
    nodes = attach_connected_clients(nodes, clients)
    nodes = attach_node_usage(data, nodes)

    gateway = next((node for node in nodes if node.is_gateway), None)
    gateway_ip = get_str(data, ["gateway_ip"]) or (gateway.ip_address if gateway else None)
    premium_status = get_str(data, ["premium_status"]) or ""
    utilization = channel_utilization_summary(data)

    logger.debug(f"Parsed network {network_id}: {len(nodes)} nodes, {len(clients)} clients, {len(profiles)} profiles")

    return Network(
        id=network_id,
        name=get_str(data, ["name"]) or "Network",
        nickname=get_str(data, ["nickname_label"]),
        status=get_str(data, ["status"]),
        premium_enabled=bool(get_bool(data, ["capabilities", "premium", "capable"]))
        and premium_status in _PREMIUM_ACTIVE,
        connected_clients_count=sum(1 for client in clients if client.connected),
        connected_guest_clients_count=sum(1 for client in clients if client.connected and client.is_guest),
        guest_network_enabled=bool(get_bool(guest, ["enabled"])),
        guest_network_name=get_str(guest, ["name"]),
        guest_network_password=get_str(guest, ["password"]),
        guest_network_details=GuestNetworkDetails(
            enabled=get_bool(guest, ["enabled"]),
            name=get_str(guest, ["name"]),
            password=get_str(guest, ["password"]),
        ),
        backup_internet_enabled=get_bool(data, ["backup_internet_enabled"]),
        resources=get_str_map(data, ["resources"]),
        features=NetworkFeatures(
            ad_block=get_bool(data, ["premium_dns", "ad_block_settings", "enabled"]),
            block_malware=get_bool(data, ["premium_dns", "dns_policies", "block_malware"]),
            band_steering=get_bool(data, ["band_steering"]),
            upnp=get_bool(data, ["upnp"]),
            wpa3=get_bool(data, ["wpa3"]),
            thread_enabled=get_bool(data, ["thread", "enabled"]),
            sqm=get_bool(data, ["sqm"]),
            ipv6_upstream=get_bool(data, ["ipv6_upstream"]),
        ),
        ddns=DDNSSummary(
            enabled=get_bool(data, ["ddns", "enabled"]),
            subdomain=get_str(data, ["ddns", "subdomain"]),
        ),
        health=HealthSummary(
            internet_status=get_str(data, ["health", "internet", "status"]),
            internet_up=get_bool(data, ["health", "internet", "isp_up"]),
            eero_network_status=get_str(data, ["health", "eero_network", "status"]),
        ),
        diagnostics=DiagnosticsSummary(status=get_str(data, ["diagnostics", "status"])),
        updates=_update_summary(data),
        speed=_speed_summary(data),
        support=SupportSummary(
            support_phone=get_str(data, ["support", "support_phone"]),
            contact_url=get_str(data, ["support", "contact_url"]),
            help_url=get_str(data, ["support", "help_url"]),
            email_web_form_url=get_str(data, ["support", "email_web_form_url"]),
            name=get_str(data, ["support", "name"]),
        ),
        ac_compatibility=parse_ac_compatibility(data.get("ac_compat")),
        security=_security_summary(data),
        routing=_routing_summary(data),
        insights=InsightsSummary(available=_insights_available(data)),
        thread_details=parse_thread_details(data),
        burst_reporters=parse_burst_reporters(data),
        gateway_ip=gateway_ip,
        mesh=mesh_summary(nodes, gateway_ip),
        wireless_congestion=wireless_congestion(clients, utilization),
        activity=activity_summary(data, clients),
        realtime=realtime_summary(clients),
        channel_utilization=utilization,
        proxied_nodes=proxied_nodes_summary(data),
        clients=clients,
        profiles=profiles,
        nodes=nodes,
        last_updated=datetime.now(timezone.utc),
    )
