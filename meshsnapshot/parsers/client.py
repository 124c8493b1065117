"""Client (connected device) payload parsing."""

from __future__ import annotations

from typing import Any

from meshsnapshot.identity import id_from_url, stable_id
from meshsnapshot.jsonpath import first_str, get, get_bool, get_int, get_str, get_str_map
from meshsnapshot.models import Client
from meshsnapshot.parsers.values import first_integer, first_numeric, first_rate_mbps, string_value


def _prefixed(heads: list[list[str]], tails: list[str]) -> list[list[str]]:
    return [[*head, tail] for head in heads for tail in tails]


def _channel_width_paths(direction: str) -> list[list[str]]:
    tails = [f"{direction}_rate_info", f"{direction}_rate", f"{direction}RateInfo", f"{direction}Rate"]
    heads = [["connectivity", tail] for tail in tails] + [[tail] for tail in tails]
    return [[*head, "channel_width"] for head in heads]


def _rate_prefixes(direction: str) -> list[list[str]]:
    names = [
        f"{direction}_rate_mbps",
        f"{direction}RateMbps",
        f"{direction}_mbps",
        f"{direction}Mbps",
        f"{direction}_rate_info",
        f"{direction}_rate",
        f"{direction}RateInfo",
        f"{direction}Rate",
        f"{direction}_bitrate",
    ]
    return [["connectivity", name] for name in names] + [[name] for name in names]


_LINK_RATE_PREFIXES = [
    ["connectivity", "link_rate"],
    ["connectivity", "linkRate"],
    ["connectivity", "link_speed"],
    ["connectivity", "linkSpeed"],
    ["connectivity", "bitrate"],
    ["link_rate"],
    ["linkRate"],
    ["link_speed"],
    ["linkSpeed"],
    ["bitrate"],
]


def _mbps_paths(short: str, long: str, stream: str) -> list[list[str]]:
    """Live throughput keys, e.g. ``down_mbps`` / ``download_mbps`` / ``downstream_mbps``."""
    names = [
        f"{short}_mbps",
        f"{short}Mbps",
        f"{long}_mbps",
        f"{long}Mbps",
        f"{stream}_mbps",
        f"{stream}Mbps",
    ]
    current = [f"current_{long}_mbps", f"current{long.capitalize()}Mbps"]
    return _prefixed([["usage"]], names + current) + [[name] for name in names]


def _percent_paths(short: str, long: str, stream: str) -> list[list[str]]:
    names = [
        f"{short}_percent_current_usage",
        f"{short}_percent_current",
        f"{short}PercentCurrentUsage",
        f"{short}PercentCurrent",
        f"{long}_percent_current_usage",
        f"{long}PercentCurrentUsage",
        f"{stream}_percent_current_usage",
        f"{stream}PercentCurrentUsage",
        f"{short}_percent_current_load",
        f"{short}PercentCurrentLoad",
    ]
    return _prefixed([["usage"]], names) + [[name] for name in names]


DOWN_MBPS_PATHS = _mbps_paths("down", "download", "downstream")
UP_MBPS_PATHS = _mbps_paths("up", "upload", "upstream")
DOWN_PERCENT_PATHS = _percent_paths("down", "download", "downstream")
UP_PERCENT_PATHS = _percent_paths("up", "upload", "upstream")
RX_RATE_PREFIXES = _rate_prefixes("rx")
TX_RATE_PREFIXES = _rate_prefixes("tx")


def parse_client(data: dict[str, Any]) -> Client:
    """Build a :class:`Client` from one ``devices`` row.

    Link rates fall back to a shared ``link_rate``/``bitrate`` value when no
    directional rate is reported.
    """
    url = get_str(data, ["url"])
    client_id = stable_id(
        id_from_url(url if url is not None else get_str(data, ["resource_url"])),
        [
            get_str(data, ["mac"]),
            get_str(data, ["ip"]),
            get_str(data, ["ipv4"]),
            get_str(data, ["hostname"]),
            get_str(data, ["nickname"]),
        ],
        "client",
    )
    name = first_str(data, [["nickname"], ["hostname"], ["mac"]]) or "Client"
    shared_link_rate = first_rate_mbps(data, _LINK_RATE_PREFIXES)
    rx_rate = first_rate_mbps(data, RX_RATE_PREFIXES)
    tx_rate = first_rate_mbps(data, TX_RATE_PREFIXES)

    channel = get_int(data, ["channel"])
    if channel is None:
        channel = get_int(data, ["connectivity", "channel"])

    return Client(
        id=client_id,
        name=name,
        mac=get_str(data, ["mac"]),
        ip=first_str(data, [["ip"], ["ipv4"]]),
        connected=bool(get_bool(data, ["connected"])),
        paused=bool(get_bool(data, ["paused"])),
        wireless=get_bool(data, ["wireless"]),
        is_guest=bool(get_bool(data, ["is_guest"])),
        connection_type=get_str(data, ["connection_type"]),
        signal=get_str(data, ["connectivity", "signal"]),
        signal_average=get_str(data, ["connectivity", "signal_avg"]),
        score_bars=get_int(data, ["connectivity", "score_bars"]),
        channel=channel,
        blacklisted=get_bool(data, ["blacklisted"]),
        device_type=first_str(data, [["device_type"], ["manufacturer_device_type_id"]]),
        manufacturer=get_str(data, ["manufacturer"]),
        last_active=string_value(get(data, ["last_active"])),
        is_private=get_bool(data, ["is_private"]),
        interface_frequency=string_value(get(data, ["interface", "frequency"])),
        interface_frequency_unit=get_str(data, ["interface", "frequency_unit"]),
        rx_channel_width=first_str(data, _channel_width_paths("rx")),
        tx_channel_width=first_str(data, _channel_width_paths("tx")),
        rx_rate_mbps=rx_rate if rx_rate is not None else shared_link_rate,
        tx_rate_mbps=tx_rate if tx_rate is not None else shared_link_rate,
        usage_down_mbps=first_numeric(data, DOWN_MBPS_PATHS),
        usage_up_mbps=first_numeric(data, UP_MBPS_PATHS),
        usage_down_percent_current=first_integer(data, DOWN_PERCENT_PATHS),
        usage_up_percent_current=first_integer(data, UP_PERCENT_PATHS),
        source_location=get_str(data, ["source", "location"]),
        source_url=get_str(data, ["source", "url"]),
        resources=get_str_map(data, ["resources"]),
    )
