"""Mesh node (eero) parsing, including both Ethernet port payload shapes.

Older firmware reports ports under ``ethernet_status.statuses``; newer
firmware reports them under ``connections.ports.interfaces`` with a nested
``connection_status``. Both are parsed and merged, the newer shape winning
field by field.
"""

from __future__ import annotations

from typing import Any

from meshsnapshot.identity import id_from_url, normalize_key, stable_id
from meshsnapshot.jsonpath import (
    first_bool,
    first_str,
    get,
    get_bool,
    get_dict,
    get_dicts,
    get_int,
    get_str,
    get_str_map,
)
from meshsnapshot.models import EthernetPortStatus, Node, PortDetail, WirelessAttachment
from meshsnapshot.parsers.values import (
    date_value,
    enum_label,
    first_array_length,
    first_int_in,
    first_nonblank_in,
    first_value,
    iso_millis,
    port_speed_label,
    string_value,
)

_PEER_COUNT_KEYS = ["peer_count", "peerCount", "num_peers", "numPeers", "peers_count", "peersCount"]
_PEER_ARRAY_KEYS = ["peers", "peer_urls", "peerings", "connections"]
_NEIGHBOR_NAME_PATHS = [["location"], ["display_name"], ["model_name"], ["name"]]

_MULTIPLE_PEER_ROW_PATHS = [
    ["multiple_devices", "connections"],
    ["multiple_devices", "peers"],
    ["multiple_devices", "connections_info"],
    ["multiple_devices", "device_list"],
    ["multiple_devices", "multiple_devices", "connections"],
    ["multiple_devices", "multiple_devices", "connections_info"],
    ["multiple_devices", "multiple_devices", "device_list"],
    ["connections"],
    ["peers"],
    ["peerings"],
    ["multiple_devices", "multiple_devices", "peers"],
    ["multiple_devices", "multiple_devices", "peerings"],
    ["multiple_devices", "multiple_devices", "peer_urls"],
    ["multiple_devices"],
    ["metadata", "multiple_devices", "connections"],
    ["metadata", "multiple_devices", "peers"],
    ["metadata", "multiple_devices", "connections_info"],
    ["metadata", "multiple_devices", "multiple_devices", "connections"],
    ["metadata", "multiple_devices", "multiple_devices", "peers"],
    ["metadata", "multiple_devices", "multiple_devices", "peerings"],
    ["metadata", "multiple_devices", "multiple_devices", "connections_info"],
    ["metadata", "multiple_devices", "multiple_devices", "device_list"],
    ["metadata", "multiple_devices"],
    ["metadata", "multipleDevices"],
    ["multipleDevices"],
]

_MULTIPLE_PEER_URL_PATHS = [
    ["multiple_devices", "peer_urls"],
    ["multiple_devices", "peerUrls"],
    ["peer_urls"],
    ["peerUrls"],
    ["multiple_devices", "multiple_devices", "peer_urls"],
    ["metadata", "multiple_devices", "peer_urls"],
    ["metadata", "multiple_devices", "multiple_devices", "peer_urls"],
    ["metadata", "multiple_devices", "multiple_devices", "connections", "peer_urls"],
]

_INTERFACE_PEER_COUNT_PATHS = (
    [[key] for key in _PEER_COUNT_KEYS]
    + [["peer_count_total"], ["peerCountTotal"]]
    + [["multiple_devices", key] for key in _PEER_COUNT_KEYS]
    + [["multiple_devices", "multiple_devices", key] for key in _PEER_COUNT_KEYS]
    + [["multiple_devices", "multiple_devices", "peer_urls_count"]]
    + [["metadata", "multiple_devices", key] for key in _PEER_COUNT_KEYS]
    + [
        ["multipleDevices", "peer_count"],
        ["multipleDevices", "peerCount"],
        ["multipleDevices", "numPeers"],
        ["multipleDevices", "multipleDevices", "peer_count"],
        ["multipleDevices", "multipleDevices", "peerCount"],
        ["multiple_devices", "peer_urls_count"],
    ]
)

_INTERFACE_PEER_ARRAY_PATHS = [
    ["peers"],
    ["peer_urls"],
    ["peerings"],
    ["connections"],
    ["multiple_devices", "peers"],
    ["multiple_devices", "peer_urls"],
    ["multiple_devices", "peerings"],
    ["multiple_devices", "connections"],
    ["multiple_devices", "connections_info"],
    ["multiple_devices", "multiple_devices", "connections"],
    ["multiple_devices", "multiple_devices", "connections_info"],
    ["multiple_devices", "multiple_devices", "peer_urls"],
    ["multiple_devices", "device_list"],
    ["metadata", "multiple_devices", "peers"],
    ["metadata", "multiple_devices", "peer_urls"],
    ["metadata", "multiple_devices", "peerings"],
    ["metadata", "multiple_devices", "multiple_devices", "peer_urls"],
    ["metadata", "multiple_devices", "multiple_devices", "connections"],
    ["metadata", "multiple_devices", "multiple_devices", "connections_info"],
    ["metadata", "multiple_devices", "multiple_devices", "device_list"],
    ["metadata", "multiple_devices", "connections"],
]

_REBOOT_PATHS = [
    ["last_reboot"],
    ["last_reboot_at"],
    ["last_boot"],
    ["last_boot_at"],
    ["last_reboot_timestamp"],
    ["last_heartbeat"],
    ["lastHeartbeat"],
    ["joined"],
    ["metadata", "last_reboot"],
    ["metadata", "last_reboot_at"],
    ["metadata", "last_heartbeat"],
    ["status", "last_reboot"],
    ["status", "last_reboot_at"],
    ["status", "last_boot"],
    ["status", "last_boot_at"],
    ["status", "last_reboot_timestamp"],
    ["status", "last_heartbeat"],
    ["status", "lastHeartbeat"],
    ["update_status", "last_reboot"],
    ["update_status", "last_heartbeat"],
    ["diagnostics", "last_reboot"],
    ["diagnostics", "last_heartbeat"],
]

_MERGE_FIELDS = (
    "speed_tag",
    "peer_count",
    "original_speed",
    "power_saving",
    "is_wan_port",
    "has_carrier",
    "neighbor_name",
    "neighbor_url",
    "neighbor_port_name",
    "neighbor_port",
)


# ── peer collections ────────────────────────────────────────────────


def dictionary_array_value(sources: list[dict[str, Any]], paths: list[list[str]]) -> list[dict[str, Any]]:
    """Peer rows from a list, an object of rows, an object of URLs or a lone URL."""
    for source in sources:
        for path in paths:
            value = get(source, path)
            if value is None:
                continue
            if isinstance(value, list):
                rows = [row for row in value if isinstance(row, dict)]
                if rows or not value:
                    return rows
                continue
            if isinstance(value, dict):
                rows = [row for row in value.values() if isinstance(row, dict)]
                if rows:
                    return rows
                urls = [{"url": text} for text in value.values() if isinstance(text, str) and text.strip()]
                if urls:
                    return urls
            if isinstance(value, str) and value.strip():
                return [{"url": value}]
    return []


def string_array_value(sources: list[dict[str, Any]], paths: list[list[str]]) -> list[str]:
    for source in sources:
        for path in paths:
            value = get(source, path)
            if value is None:
                continue
            if isinstance(value, list):
                return [item.strip() for item in value if isinstance(item, str) and item.strip()]
            if isinstance(value, dict):
                rows = [item.strip() for item in value.values() if isinstance(item, str) and item.strip()]
                if rows:
                    return rows
            if isinstance(value, str) and value.strip():
                return [value.strip()]
    return []


def _array_value_count(value: Any, key_hint: str) -> int | None:
    if isinstance(value, list):
        return len(value)
    if not isinstance(value, dict):
        return None
    if "urls" in key_hint or "list" in key_hint:
        return len(value)
    members = list(value.values())
    strings = sum(1 for item in members if isinstance(item, str) and item)
    if strings:
        return strings
    objects = sum(1 for item in members if isinstance(item, dict))
    if objects:
        return max(objects, len(value))
    lists = sum(1 for item in members if isinstance(item, list))
    if lists:
        return lists
    return None


def _scan_peer_count(value: Any, depth: int) -> int | None:
    if depth >= 5:
        return None
    direct = _array_value_count(value, "")
    if direct is not None:
        return direct
    if not isinstance(value, dict):
        return None
    inferred: int | None = None
    for key, candidate in value.items():
        lowered = key.lower()
        if "metadata" in lowered or "advanced" in lowered:
            count = _scan_peer_count(candidate, depth + 1)
        elif any(token in lowered for token in ("peer", "device", "connection", "multiple")):
            count = _array_value_count(candidate, lowered)
            if count is None:
                count = _scan_peer_count(candidate, depth + 1)
        else:
            continue
        if count is not None:
            inferred = count if inferred is None else max(inferred, count)
    return inferred


def inferred_multiple_peer_count(sources: list[dict[str, Any]], connection_kind: str | None) -> int | None:
    """Largest collection size found under peer-like keys of a ``multiple`` link."""
    if "multiple" not in (connection_kind or "").lower():
        return None
    inferred: int | None = None
    for source in sources:
        count = _scan_peer_count(source, 0)
        if count is not None:
            inferred = count if inferred is None else max(inferred, count)
    return inferred


# ── ethernet statuses ───────────────────────────────────────────────


def parse_legacy_status(status: dict[str, Any], node_id: str) -> EthernetPortStatus:
    interface_number = get_int(status, ["interfaceNumber"])
    if interface_number is None:
        interface_number = get_int(status, ["interface_number"])
    port_name = first_str(status, [["port_name"], ["name"]])
    speed_tag = port_speed_label(
        first_value([status], [["speed"], ["negotiated_speed"], ["negotiatedSpeed"]]),
        first_value([status], [["original_speed"], ["supported_speed"], ["supportedSpeed"]]),
        first_value([status], [["link_speed"], ["speed_mbps"]]),
    )
    peer_count = first_int_in([status], [[key] for key in _PEER_COUNT_KEYS])
    if peer_count is None:
        peer_count = first_array_length([status], [[key] for key in _PEER_ARRAY_KEYS])

    neighbor = get_dict(status, ["neighbor", "metadata"]) or {}
    neighbor_name = get_str(neighbor, ["location"])
    neighbor_url = get_str(neighbor, ["url"])
    number_text = str(interface_number) if interface_number is not None else "?"

    return EthernetPortStatus(
        id=stable_id(f"{node_id}-if-{number_text}", [port_name, speed_tag, neighbor_url, neighbor_name], "eth"),
        interface_number=interface_number,
        port_name=port_name,
        has_carrier=first_bool(status, [["hasCarrier"], ["has_carrier"]]),
        is_wan_port=first_bool(status, [["isWanPort"], ["is_wan_port"]]),
        speed_tag=speed_tag,
        power_saving=first_bool(status, [["power_saving"], ["powerSaving"]]),
        original_speed=first_str(status, [["original_speed"], ["supported_speed"]]),
        neighbor_name=neighbor_name,
        neighbor_url=neighbor_url,
        neighbor_port_name=get_str(neighbor, ["port_name"]),
        neighbor_port=get_int(neighbor, ["port"]),
        peer_count=peer_count,
    )


def _carrier_state(
    interface: dict[str, Any],
    kind: str,
    disconnected: bool,
    connected: bool,
    has_neighbor_hint: bool,
) -> bool | None:
    port_status = (get_str(interface, ["port_status"]) or "").strip().lower()
    link_status = (get_str(interface, ["link_status"]) or "").strip().lower()
    if disconnected:
        return False
    if "disconnected" in port_status or "down" in port_status or "down" in link_status:
        return False
    if "connected" in port_status or "connected" in link_status or "up" in link_status:
        return True
    if connected:
        return True
    if not kind:
        return has_neighbor_hint
    return None


def parse_connection_interface(interface: dict[str, Any], node_id: str) -> EthernetPortStatus:
    """Parse one ``connections.ports.interfaces`` row.

    Carrier state is inferred from the connection kind and port/link status
    text when no explicit flag exists. A single peer's metadata overrides the
    interface-level neighbor fields.
    """
    interface_number = get_int(interface, ["interface_number"])
    if interface_number is None:
        interface_number = get_int(interface, ["interfaceNumber"])
    port_name = first_str(interface, [["name"], ["port_name"]])
    network_type = first_str(interface, [["network_type"], ["network_type", "value"], ["networkType"]])
    is_wan_port = "wan" in network_type.lower() if network_type is not None else None

    connection_status = get_dict(interface, ["connection_status"]) or {}
    metadata = get_dict(connection_status, ["metadata"]) or {}
    advanced = get_dict(metadata, ["advanced_attributes"]) or {}

    peer_rows = dictionary_array_value([connection_status, metadata], _MULTIPLE_PEER_ROW_PATHS)
    peer_urls = string_array_value([connection_status, metadata], _MULTIPLE_PEER_URL_PATHS)

    connection_kind = enum_label(
        first_value(
            [connection_status, interface],
            [["kind"], ["type"], ["connection_type"], ["connectionType"], ["connection_kind"], ["connectionKind"]],
        )
    )
    connection_type = enum_label(
        first_value([advanced, metadata, connection_status], [["connection_type"], ["connectionType"]])
    )
    kind = (connection_kind or "").lower()
    disconnected = any(token in kind for token in ("notconnected", "not_connected", "disconnected", "unknown"))
    connected = any(token in kind for token in ("client", "wan", "eero", "proxied", "multiple"))

    speed_sources = [interface, connection_status, metadata, advanced]
    negotiated = first_value(
        speed_sources, [["negotiated_speed"], ["negotiatedSpeed"], ["link_speed"], ["linkSpeed"], ["speed_mbps"]]
    )
    supported = first_value(
        speed_sources, [["supported_speed"], ["supportedSpeed"], ["max_supported_speed"], ["maxSupportedSpeed"]]
    )
    fallback = first_value([interface, metadata], [["speed"], ["port_speed"]])
    speed_tag = port_speed_label(
        None if disconnected else negotiated,
        supported,
        None if disconnected else fallback,
    )

    neighbor_sources = [metadata, advanced]
    neighbor_name = first_nonblank_in(neighbor_sources, _NEIGHBOR_NAME_PATHS)
    neighbor_url = first_nonblank_in(neighbor_sources, [["url"]])
    neighbor_port_name = first_nonblank_in(neighbor_sources, [["port_name"]])
    neighbor_port = first_int_in(neighbor_sources, [["port"]])

    has_carrier = _carrier_state(
        interface,
        kind,
        disconnected,
        connected,
        neighbor_name is not None or neighbor_url is not None or connection_type is not None,
    )

    number_text = str(interface_number) if interface_number is not None else "?"
    status_id = stable_id(f"{node_id}-if-{number_text}", [port_name, speed_tag, neighbor_url, neighbor_name], "eth")

    if peer_rows:
        peer_count: int | None = len(peer_rows)
    elif peer_urls:
        peer_count = len(peer_urls)
    else:
        peer_count = inferred_multiple_peer_count([connection_status, metadata, interface], connection_kind)
    count_sources = [interface, metadata, advanced, connection_status]
    if peer_count is None:
        peer_count = first_int_in(count_sources, _INTERFACE_PEER_COUNT_PATHS)
    if peer_count is None:
        peer_count = first_array_length(count_sources, _INTERFACE_PEER_ARRAY_PATHS)

    if peer_count == 1:
        if peer_rows:
            peer_meta = get_dict(peer_rows[0], ["metadata"]) or peer_rows[0]
            peer_advanced = get_dict(peer_meta, ["advanced_attributes"]) or {}
            peer_sources = [peer_meta, peer_advanced]
            neighbor_name = first_nonblank_in(peer_sources, _NEIGHBOR_NAME_PATHS) or neighbor_name
            neighbor_url = first_nonblank_in(peer_sources, [["url"]]) or neighbor_url
            neighbor_port_name = first_nonblank_in(peer_sources, [["port_name"]]) or neighbor_port_name
            peer_port = first_int_in(peer_sources, [["port"], ["portNumber"], ["port_number"]])
            if peer_port is not None:
                neighbor_port = peer_port
        elif peer_urls:
            neighbor_name = neighbor_name or peer_urls[0]
            neighbor_url = neighbor_url or peer_urls[0]

    return EthernetPortStatus(
        id=status_id,
        interface_number=interface_number,
        port_name=port_name,
        has_carrier=has_carrier,
        is_wan_port=is_wan_port,
        speed_tag=speed_tag,
        neighbor_name=neighbor_name,
        neighbor_url=neighbor_url,
        neighbor_port_name=neighbor_port_name,
        neighbor_port=neighbor_port,
        connection_kind=connection_kind,
        connection_type=connection_type,
        peer_count=peer_count,
    )


def _status_keys(status: EthernetPortStatus) -> list[str]:
    keys: list[str] = []
    if status.interface_number is not None:
        keys.append(f"if:{status.interface_number}")
    normalized = normalize_key(status.port_name)
    if normalized:
        keys.append(f"port:{normalized}")
    return keys


def merge_ethernet_statuses(
    preferred: list[EthernetPortStatus],
    fallback: list[EthernetPortStatus],
) -> list[EthernetPortStatus]:
    """Fill gaps in *preferred* from *fallback*, matched by interface number or port name.

    Unmatched fallback rows are appended after the preferred rows.
    """
    if not preferred:
        return list(fallback)
    if not fallback:
        return list(preferred)

    fallback_by_key: dict[str, EthernetPortStatus] = {}
    for status in fallback:
        for key in _status_keys(status):
            fallback_by_key.setdefault(key, status)

    consumed: set[str] = set()
    merged: list[EthernetPortStatus] = []
    for status in preferred:
        keys = _status_keys(status)
        match = next((fallback_by_key[key] for key in keys if key in fallback_by_key), None)
        if match is not None:
            updates = {
                field: getattr(match, field)
                for field in _MERGE_FIELDS
                if getattr(status, field) is None and getattr(match, field) is not None
            }
            if updates:
                status = status.model_copy(update=updates)
        consumed.update(keys)
        merged.append(status)

    for status in fallback:
        if any(key in consumed for key in _status_keys(status)):
            continue
        merged.append(status)
    return merged


# ── node ────────────────────────────────────────────────────────────


def parse_wireless_attachments(data: dict[str, Any]) -> list[WirelessAttachment]:
    attachments: list[WirelessAttachment] = []
    for row in get_dicts(data, ["connections", "wireless_devices"]) or []:
        metadata = get_dict(row, ["metadata"]) or row
        display_name = first_str(metadata, [["display_name"], ["location"]])
        url = get_str(metadata, ["url"])
        model = first_str(metadata, [["model"], ["model_name"]])
        device_type = get_str(metadata, ["device_type"])
        if display_name is None and url is None and model is None and device_type is None:
            continue
        attachments.append(
            WirelessAttachment(
                id=stable_id(id_from_url(url), [display_name, url, model, device_type], "wireless"),
                display_name=display_name,
                url=url,
                kind=first_str(row, [["kind"], ["type"]]) or first_str(metadata, [["kind"], ["type"]]),
                model=model,
                device_type=device_type,
            )
        )
    return attachments


def reboot_timestamp(data: dict[str, Any]) -> str | None:
    """First reboot/heartbeat timestamp found, normalized to ISO-8601 when parseable."""
    for path in _REBOOT_PATHS:
        candidate = get(data, path)
        if candidate is None:
            continue
        moment = date_value(candidate)
        if moment is not None:
            return iso_millis(moment)
        text = string_value(candidate)
        if text is not None and text.strip():
            return text.strip()
    return None


def parse_node(data: dict[str, Any]) -> Node:
    url = get_str(data, ["url"])
    node_id = stable_id(
        id_from_url(url),
        [
            get_str(data, ["mac_address"]),
            get_str(data, ["serial"]),
            get_str(data, ["ip_address"]),
            get_str(data, ["ip"]),
            get_str(data, ["location"]),
            get_str(data, ["nickname"]),
        ],
        "eero",
    )

    port_details = []
    for detail in get_dicts(data, ["port_details"]) or []:
        position = get_int(detail, ["position"])
        port_name = get_str(detail, ["port_name"])
        ethernet_address = get_str(detail, ["ethernet_address"])
        position_text = str(position) if position is not None else "?"
        port_details.append(
            PortDetail(
                id=stable_id(f"{node_id}-port-{position_text}", [port_name, ethernet_address], "port"),
                position=position,
                port_name=port_name,
                ethernet_address=ethernet_address,
            )
        )

    legacy = [parse_legacy_status(row, node_id) for row in get_dicts(data, ["ethernet_status", "statuses"]) or []]
    current = [
        parse_connection_interface(row, node_id)
        for row in get_dicts(data, ["connections", "ports", "interfaces"]) or []
    ]
    attachments = parse_wireless_attachments(data)
    bands = get(data, ["bands"])

    return Node(
        id=node_id,
        name=first_str(data, [["location"], ["nickname"]]) or "eero",
        model=get_str(data, ["model"]),
        model_number=get_str(data, ["model_number"]),
        serial=get_str(data, ["serial"]),
        mac_address=get_str(data, ["mac_address"]),
        is_gateway=bool(get_bool(data, ["gateway"])),
        status=get_str(data, ["status"]),
        status_light_enabled=get_bool(data, ["led_on"]),
        status_light_brightness=get_int(data, ["led_brightness"]),
        update_available=get_bool(data, ["update_available"]),
        ip_address=first_str(data, [["ip_address"], ["ip"]]),
        os_version=get_str(data, ["os_version"]),
        last_reboot_at=reboot_timestamp(data),
        connected_client_count=get_int(data, ["connected_clients_count"]),
        connected_wired_client_count=get_int(data, ["connected_wired_clients_count"]),
        connected_wireless_client_count=get_int(data, ["connected_wireless_clients_count"]),
        mesh_quality_bars=get_int(data, ["mesh_quality_bars"]),
        wired_backhaul=get_bool(data, ["wired"]),
        wifi_bands=[band for band in bands if isinstance(band, str)] if isinstance(bands, list) else [],
        port_details=port_details,
        ethernet_statuses=merge_ethernet_statuses(current, legacy),
        wireless_attachments=attachments or None,
        support_expired=get_bool(data, ["update_status", "support_expired"]),
        support_expiration_string=get_str(data, ["update_status", "support_expiration_string"]),
        resources=get_str_map(data, ["resources"]),
    )
