"""Derived per-network summaries: mesh health, radio load and live throughput."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from meshsnapshot.identity import id_from_url, normalize_key, stable_id
from meshsnapshot.jsonpath import first_str, get, get_dict, get_dicts, get_str
from meshsnapshot.models import (
    ChannelUtilizationRadio,
    ChannelUtilizationSample,
    ChannelUtilizationSummary,
    Client,
    CongestedChannel,
    MeshSummary,
    Node,
    ProxiedNodesSummary,
    RealtimeSummary,
    WirelessCongestion,
)
from meshsnapshot.parsers.values import (
    average,
    date_from_epoch,
    integer_value,
    numeric_value,
    parse_signal_dbm,
    string_value,
)

CONGESTED_CHANNEL_LIMIT = 6
POOR_SIGNAL_DBM = -70
POOR_SCORE_BARS = 2
REALTIME_SOURCE_LABEL = "eero client telemetry"

_ONLINE_EXACT = {"green", "healthy", "active", "ok"}
_ONLINE_TOKENS = ("connected", "online", "up")
_OFFLINE_TOKENS = ("disconnected", "offline", "down")


def node_is_online(status: str | None) -> bool:
    """Online for an exact healthy label or an online token in the status text.

    Unlike a plain substring test, text carrying an offline token is never
    online, so ``"disconnected"`` does not match ``"connected"``.
    """
    if status is None:
        return False
    lowered = status.lower()
    if lowered in _ONLINE_EXACT:
        return True
    if any(token in lowered for token in _OFFLINE_TOKENS):
        return False
    return any(token in lowered for token in _ONLINE_TOKENS)


def mesh_summary(nodes: list[Node], gateway_ip: str | None) -> MeshSummary | None:
    if not nodes:
        return None
    gateway = next((node for node in nodes if node.is_gateway), None)
    bars = [float(node.mesh_quality_bars) for node in nodes if node.mesh_quality_bars is not None]
    return MeshSummary(
        eero_count=len(nodes),
        online_eero_count=sum(1 for node in nodes if node_is_online(node.status)),
        gateway_name=gateway.name if gateway else None,
        gateway_mac_address=gateway.mac_address if gateway else None,
        gateway_ip=gateway_ip,
        average_mesh_quality_bars=average(bars),
        wired_backhaul_count=sum(1 for node in nodes if node.wired_backhaul is True),
        wireless_backhaul_count=sum(1 for node in nodes if node.wired_backhaul is False),
    )


# ── bands and congestion ────────────────────────────────────────────


def band_for_channel(channel: int) -> str:
    if 1 <= channel <= 14:
        return "2.4 GHz"
    if 15 <= channel <= 191:
        return "5 GHz"
    return "6 GHz"


def band_for_frequency(frequency_mhz: float) -> str:
    if frequency_mhz >= 5900:
        return "6 GHz"
    if frequency_mhz >= 4900:
        return "5 GHz"
    return "2.4 GHz"


def client_band(client: Client | None) -> str | None:
    """Band from the client's channel number, else its interface frequency."""
    if client is None:
        return None
    if client.channel is not None:
        return band_for_channel(client.channel)
    frequency = numeric_value(client.interface_frequency)
    if frequency is not None:
        return band_for_frequency(frequency)
    return None


def radio_band_label(band: str | None) -> str | None:
    """Map API band enums such as ``band_5GHz_low`` onto the ``"5 GHz"`` labels."""
    if band is None:
        return None
    lowered = band.lower().replace(" ", "")
    if "2_4" in lowered or "2.4" in lowered:
        return "2.4 GHz"
    if "6ghz" in lowered:
        return "6 GHz"
    if "5ghz" in lowered:
        return "5 GHz"
    return band


def _channel_key(channel: int | None, band: str | None) -> str:
    channel_text = str(channel) if channel is not None else "?"
    return f"{channel_text}-{band or 'Unavailable'}"


def _is_poor_signal(client: Client) -> bool:
    signal = parse_signal_dbm(client.signal)
    if signal is not None:
        return signal <= POOR_SIGNAL_DBM
    if client.score_bars is not None:
        return client.score_bars <= POOR_SCORE_BARS
    return False


def _radio_congestion(
    utilization: ChannelUtilizationSummary,
    client_counts: dict[str, int],
) -> list[CongestedChannel]:
    ranked: list[CongestedChannel] = []
    for radio in utilization.radios:
        score = max(0, radio.average_utilization or 0)
        if score <= 0:
            continue
        band = radio_band_label(radio.band) or "Unavailable"
        lookup_key = _channel_key(radio.control_channel, band)
        ranked.append(
            CongestedChannel(
                key=stable_id(f"{lookup_key}-{radio.eero_id or ''}", [radio.eero_name], "channel"),
                channel=radio.control_channel,
                band=band,
                client_count=max(client_counts.get(lookup_key, 0), score),
            )
        )
    ranked.sort(
        key=lambda row: (
            -row.client_count,
            row.channel is None,
            row.channel if row.channel is not None else 0,
        )
    )
    return ranked


def wireless_congestion(
    clients: list[Client],
    utilization: ChannelUtilizationSummary | None,
) -> WirelessCongestion | None:
    """Signal quality and per-channel load for connected wireless clients.

    Measured channel utilization, when present, replaces the client-count
    ranking.
    """
    wireless = [client for client in clients if client.wireless and client.connected]
    if not wireless:
        return None

    groups: dict[str, list[Client]] = defaultdict(list)
    for client in wireless:
        groups[_channel_key(client.channel, client_band(client))].append(client)

    congested: list[CongestedChannel] = []
    for key, grouped in groups.items():
        if len(grouped) < 2:
            continue
        signal = average(
            float(dbm) for dbm in (parse_signal_dbm(client.signal) for client in grouped) if dbm is not None
        )
        congested.append(
            CongestedChannel(
                key=key,
                channel=grouped[0].channel,
                band=client_band(grouped[0]),
                client_count=len(grouped),
                average_signal_dbm=round(signal) if signal is not None else None,
            )
        )
    congested.sort(
        key=lambda row: (
            -row.client_count,
            row.average_signal_dbm is not None,
            row.average_signal_dbm if row.average_signal_dbm is not None else 0,
        )
    )

    if utilization is not None:
        ranked = _radio_congestion(utilization, {key: len(rows) for key, rows in groups.items()})
        if ranked:
            congested = ranked

    signals = [parse_signal_dbm(client.signal) for client in wireless]
    return WirelessCongestion(
        wireless_client_count=len(wireless),
        poor_signal_client_count=sum(1 for client in wireless if _is_poor_signal(client)),
        average_score_bars=average(float(client.score_bars) for client in wireless if client.score_bars is not None),
        average_signal_dbm=average(float(dbm) for dbm in signals if dbm is not None),
        congested_channels=congested[:CONGESTED_CHANNEL_LIMIT],
    )


# ── channel utilization ─────────────────────────────────────────────


def _eero_name_lookup(payload: dict[str, Any]) -> dict[str, str]:
    names: dict[str, str] = {}
    for eero in get_dicts(payload, ["eeros"]) or []:
        name = first_str(eero, [["location"], ["nickname"], ["name"], ["model"]])
        if not name:
            continue
        numeric = integer_value(eero.get("id"))
        if numeric is not None:
            names[str(numeric)] = name
        text_id = get_str(eero, ["id"])
        if text_id is not None:
            names[text_id] = name
        url_id = id_from_url(get_str(eero, ["url"]))
        if url_id:
            names[url_id] = name
    return names


def lookup_eero_name(eero_id: str | None, names: dict[str, str]) -> str | None:
    if not eero_id:
        return None
    if eero_id in names:
        return names[eero_id]
    normalized = normalize_key(eero_id)
    return next((name for key, name in names.items() if normalize_key(key) == normalized), None)


def _radio_sample(row: dict[str, Any]) -> ChannelUtilizationSample | None:
    moment = date_from_epoch(numeric_value(row.get("timestamp")))
    if moment is None:
        return None
    busy = integer_value(row.get("busy"))
    noise = integer_value(row.get("noise"))
    rx_tx = integer_value(row.get("rx_tx"))
    rx_other = integer_value(row.get("rx_other"))
    parts = "-".join(str(value if value is not None else -1) for value in (busy, noise, rx_tx, rx_other))
    return ChannelUtilizationSample(
        id=stable_id(f"{moment.timestamp()}-{parts}", prefix="radio-sample"),
        timestamp=moment,
        busy_percent=busy,
        noise_percent=noise,
        rx_tx_percent=rx_tx,
        rx_other_percent=rx_other,
    )


def channel_utilization_summary(data: dict[str, Any]) -> ChannelUtilizationSummary | None:
    raw = data.get("channel_utilization")
    if isinstance(raw, dict):
        payload = raw
    elif isinstance(raw, list):
        payload = {"utilization": raw}
    else:
        return None

    names = _eero_name_lookup(payload)
    rows = get_dicts(payload, ["utilization"]) or []
    radios: list[ChannelUtilizationRadio] = []
    for row in rows:
        eero_id = string_value(row.get("eero_id"))
        if eero_id is None:
            eero_id = string_value(row.get("eeroId"))
        band = first_str(row, [["band"], ["band", "value"]])
        channel = integer_value(row.get("channel"))
        bandwidth = get_str(row, ["channel_bandwidth"])
        samples = [sample for sample in map(_radio_sample, get_dicts(row, ["time_series_data"]) or []) if sample]
        channel_text = str(channel) if channel is not None else "?"
        radios.append(
            ChannelUtilizationRadio(
                id=stable_id(f"{eero_id or 'unknown'}-{band or 'band'}-{channel_text}", [bandwidth], "radio"),
                eero_id=eero_id,
                eero_name=lookup_eero_name(eero_id, names),
                band=band,
                control_channel=channel,
                center_channel=integer_value(row.get("center_channel")),
                channel_bandwidth=bandwidth,
                frequency_mhz=integer_value(row.get("frequency")),
                average_utilization=integer_value(row.get("average_utilization")),
                max_utilization=integer_value(row.get("max_utilization")),
                p99_utilization=integer_value(row.get("p99_utilization")),
                time_series=samples,
            )
        )
    if not radios:
        return None

    def rank(radio: ChannelUtilizationRadio) -> tuple[float, float]:
        avg = radio.average_utilization if radio.average_utilization is not None else float("-inf")
        peak = radio.max_utilization if radio.max_utilization is not None else float("-inf")
        return (-avg, -peak)

    radios.sort(key=rank)
    return ChannelUtilizationSummary(radios=radios, sampled_at=datetime.now(timezone.utc))


# ── proxied nodes and realtime ──────────────────────────────────────


def _proxied_status(device: dict[str, Any]) -> str:
    status = get(device, ["status"])
    if isinstance(status, dict):
        status = status.get("value")
    return status.lower() if isinstance(status, str) else ""


def proxied_nodes_summary(data: dict[str, Any]) -> ProxiedNodesSummary | None:
    proxied = get_dict(data, ["proxied_nodes"])
    if proxied is None:
        return None
    devices = get_dicts(proxied, ["devices"]) or []
    statuses = [_proxied_status(device) for device in devices]
    return ProxiedNodesSummary(
        enabled=proxied.get("enabled") if isinstance(proxied.get("enabled"), bool) else None,
        total_devices=len(devices),
        online_devices=sum(1 for status in statuses if status == "green" or "online" in status),
        offline_devices=sum(1 for status in statuses if status == "red" or "offline" in status),
    )


def realtime_summary(clients: list[Client]) -> RealtimeSummary | None:
    """Sum of connected clients' live rates.

    This approximates WAN throughput from per-client telemetry; it is not a
    gateway measurement, hence ``is_proxy``.
    """
    active = [
        client
        for client in clients
        if client.connected and (client.usage_down_mbps is not None or client.usage_up_mbps is not None)
    ]
    if not active:
        return None
    return RealtimeSummary(
        download_mbps=sum(max(0.0, client.usage_down_mbps or 0.0) for client in active),
        upload_mbps=sum(max(0.0, client.usage_up_mbps or 0.0) for client in active),
        source_label=REALTIME_SOURCE_LABEL,
        is_proxy=True,
        sampled_at=datetime.now(timezone.utc),
    )
