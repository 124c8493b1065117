"""Data-usage normalization, per-resource joins and activity rollups.

Usage payloads arrive as flat ``{download, upload}`` rows, as ``series``
rows split by direction, or nested under ``totals``/``stats``/``usage``.
Everything here reduces them to :class:`UsageTotals` keyed by the resource
the row describes, then joins those totals onto clients and nodes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple

from meshsnapshot.identity import id_from_url, is_placeholder_mac, normalize_key, stable_id, trim_stable_prefix
from meshsnapshot.jsonpath import first_str, get, get_dict, get_dicts, get_str
from meshsnapshot.models import (
    ActivitySummary,
    Client,
    DeviceUsageTimeline,
    Node,
    TimelineSample,
    TopDeviceUsage,
)
from meshsnapshot.parsers.values import date_value, integer_value

PERIODS = ("day", "week", "month")
BUSIEST_DEVICE_LIMIT = 8


class Direction(str, Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"


class UsageTotals(NamedTuple):
    download: int | None = None
    upload: int | None = None

    @property
    def empty(self) -> bool:
        return self.download is None and self.upload is None


def _byte_paths(names: Sequence[str]) -> list[list[str]]:
    paths = [[name] for name in names]
    paths += [[f"{name}_bytes"] for name in names]
    paths += [[name, "value"] for name in names]
    for wrapper in ("totals", "stats", "data", "usage"):
        paths += [[wrapper, name] for name in names]
    return paths


_BYTE_PATHS = {
    Direction.DOWNLOAD: _byte_paths(("download", "down", "downstream", "rx")),
    Direction.UPLOAD: _byte_paths(("upload", "up", "upstream", "tx")),
}

_DIRECT_TOTAL_KEYS = ("download", "upload", "down", "up", "downstream", "upstream", "rx", "tx")


def usage_rows(data: Any, path: Sequence[str]) -> list[dict[str, Any]]:
    """Rows under *path*: a list, ``data``, ``values``, ``series`` or one totals object."""
    direct = get_dicts(data, path)
    if direct:
        return direct
    container = get_dict(data, path)
    if container is None:
        return []
    nested = get_dicts(container, ["data"])
    if nested:
        return nested
    values = get_dicts(container, ["values"])
    if values is not None:
        return values
    series = get_dicts(container, ["series"])
    if series:
        return series
    if any(integer_value(container.get(key)) is not None for key in _DIRECT_TOTAL_KEYS):
        return [container]
    return []


def usage_byte_value(row: dict[str, Any], direction: Direction) -> int | None:
    for path in _BYTE_PATHS[direction]:
        value = integer_value(get(row, path))
        if value is not None:
            return value
    return None


def direction_from_type(raw: str | None) -> Direction | None:
    if raw is None or not raw.strip():
        return None
    lowered = raw.strip().lower()
    if any(token in lowered for token in ("download", "downstream", "receive", "ingress")) or lowered in ("down", "rx"):
        return Direction.DOWNLOAD
    if any(token in lowered for token in ("upload", "upstream", "transmit", "egress")) or lowered in ("up", "tx"):
        return Direction.UPLOAD
    return None


def row_direction(row: dict[str, Any]) -> Direction | None:
    return direction_from_type(
        first_str(row, [["type"], ["data_usage_type"], ["direction"], ["metric"], ["insight_type_name"]])
    )


def series_total(row: dict[str, Any], direction: Direction | None) -> int | None:
    """Total bytes of one directional series row."""
    for key in ("sum", "total", "total_bytes"):
        raw = row.get(key)
        if raw is not None:
            total = integer_value(raw)
            if total is not None:
                return max(0, total)
            break

    samples = get_dicts(row, ["values"]) or []
    total = 0
    seen = False
    for sample in samples:
        if direction is not None:
            directional = usage_byte_value(sample, direction)
            if directional is not None:
                total += max(0, directional)
                seen = True
                continue
        value = integer_value(sample.get("value"))
        if value is not None:
            total += max(0, value)
            seen = True
    if seen:
        return total

    if direction is not None:
        direct = usage_byte_value(row, direction)
        if direct is not None:
            return max(0, direct)
    raw = row.get("value")
    if raw is None:
        raw = row.get("bytes")
    value = integer_value(raw)
    return max(0, value) if value is not None else None


def _add(current: int | None, amount: int) -> int:
    return (current or 0) + max(0, amount)


def accumulate(totals: UsageTotals, row: dict[str, Any]) -> UsageTotals:
    direction = row_direction(row)
    if direction is not None:
        total = series_total(row, direction)
        if total is not None:
            if direction is Direction.DOWNLOAD:
                return totals._replace(download=_add(totals.download, total))
            return totals._replace(upload=_add(totals.upload, total))
    down = usage_byte_value(row, Direction.DOWNLOAD)
    up = usage_byte_value(row, Direction.UPLOAD)
    if down is not None:
        totals = totals._replace(download=_add(totals.download, down))
    if up is not None:
        totals = totals._replace(upload=_add(totals.upload, up))
    return totals


def usage_totals(rows: Iterable[dict[str, Any]]) -> UsageTotals:
    totals = UsageTotals()
    for row in rows:
        totals = accumulate(totals, row)
    return totals


def resource_key_for_row(row: dict[str, Any]) -> str | None:
    """Which client or node a usage row describes: URL id, then MAC, then any id field."""
    for path in (["url"], ["source", "url"], ["device", "url"], ["resource", "url"]):
        resource_id = id_from_url(get_str(row, path))
        if resource_id:
            return resource_id
    for path in (["mac"], ["device", "mac"], ["source", "mac"]):
        mac = get_str(row, path)
        if mac and not is_placeholder_mac(mac):
            return mac
    for path in (
        ["resource_key"],
        ["resource_id"],
        ["resource", "id"],
        ["source", "id"],
        ["source", "resource_id"],
        ["device", "id"],
        ["device", "resource_id"],
        ["id"],
    ):
        identifier = get_str(row, path)
        if identifier:
            return id_from_url(identifier) or identifier
    return None


def usage_by_resource(data: Any, path: Sequence[str]) -> dict[str, UsageTotals]:
    summary: dict[str, UsageTotals] = {}
    for row in usage_rows(data, path):
        key = resource_key_for_row(row)
        if key is None:
            continue
        summary[key] = accumulate(summary.get(key, UsageTotals()), row)
    return {key: totals for key, totals in summary.items() if not totals.empty}


def usage_by_resource_any(data: Any, paths: Iterable[Sequence[str]]) -> dict[str, UsageTotals]:
    """First non-empty :func:`usage_by_resource` over candidate *paths*."""
    for path in paths:
        found = usage_by_resource(data, path)
        if found:
            return found
    return {}


def usage_by_key(key: str, usage: dict[str, UsageTotals]) -> UsageTotals | None:
    if key in usage:
        return usage[key]
    normalized = normalize_key(key)
    if not normalized:
        return None
    for candidate, totals in usage.items():
        if normalize_key(candidate) == normalized:
            return totals
    return None


def first_usage(usage: dict[str, UsageTotals], keys: Iterable[str | None]) -> UsageTotals | None:
    for key in keys:
        if not key:
            continue
        found = usage_by_key(key, usage)
        if found is not None:
            return found
    return None


def client_usage(client: Client, usage: dict[str, UsageTotals]) -> UsageTotals | None:
    """Join by client id, then normalized MAC, then the source URL's id."""
    direct = first_usage(usage, [client.id, trim_stable_prefix(client.id)])
    if direct is not None:
        return direct
    normalized = {normalize_key(key): totals for key, totals in usage.items() if normalize_key(key)}
    for candidate in (client.mac, id_from_url(client.source_url)):
        key = normalize_key(candidate)
        if key and key in normalized:
            return normalized[key]
    return None


def _period_fields(prefix: str, period: str, totals: UsageTotals | None) -> dict[str, int | None]:
    if totals is None:
        return {}
    return {f"{prefix}{period}_download": totals.download, f"{prefix}{period}_upload": totals.upload}


def _activity_paths(section: str, period: str) -> list[list[str]]:
    base = ["activity", section, f"data_usage_{period}"]
    return [base, [*base, "values"]]


def attach_client_usage(data: dict[str, Any], clients: list[Client]) -> list[Client]:
    tables = {period: usage_by_resource_any(data, _activity_paths("devices", period)) for period in PERIODS}
    joined: list[Client] = []
    for client in clients:
        update: dict[str, int | None] = {}
        for period, table in tables.items():
            update.update(_period_fields("usage_", period, client_usage(client, table)))
        joined.append(client.model_copy(update=update) if update else client)
    return joined


def attach_node_usage(data: dict[str, Any], nodes: list[Node]) -> list[Node]:
    tables = {period: usage_by_resource_any(data, _activity_paths("eeros", period)) for period in PERIODS}
    joined: list[Node] = []
    for node in nodes:
        keys = [node.id, trim_stable_prefix(node.id), node.mac_address]
        update: dict[str, int | None] = {}
        for period, table in tables.items():
            update.update(_period_fields("usage_", period, first_usage(table, keys)))
        joined.append(node.model_copy(update=update) if update else node)
    return joined


# ── busiest devices ─────────────────────────────────────────────────


def _client_lookup(clients: Iterable[Client], with_trimmed: bool) -> dict[str, Client]:
    lookup: dict[str, Client] = {}
    for client in clients:
        candidates = [client.id]
        if with_trimmed:
            candidates.append(trim_stable_prefix(client.id))
        candidates += [client.mac, id_from_url(client.source_url)]
        for candidate in candidates:
            key = normalize_key(candidate)
            if key:
                lookup.setdefault(key, client)
    return lookup


def _period_total(entry: TopDeviceUsage, period: str) -> int:
    down = getattr(entry, f"{period}_download_bytes") or 0
    up = getattr(entry, f"{period}_upload_bytes") or 0
    return max(0, down + up)


def top_device_usage(data: dict[str, Any], clients: list[Client]) -> list[TopDeviceUsage]:
    """Rank devices by month, then week, then day usage; ties break on name."""
    tables = {period: usage_by_resource(data, ["activity", "devices", f"data_usage_{period}"]) for period in PERIODS}
    # one raw key per normalized key, first spelling seen wins
    keys: dict[str, str] = {}
    for table in tables.values():
        for key in table:
            normalized = normalize_key(key)
            if normalized:
                keys.setdefault(normalized, key)
    if not keys:
        return []

    clients_by_key = _client_lookup(clients, with_trimmed=False)
    metadata: dict[str, dict[str, str | None]] = {}
    for period in PERIODS:
        for row in usage_rows(data, ["activity", "devices", f"data_usage_{period}"]):
            resource_key = resource_key_for_row(row)
            normalized = normalize_key(resource_key)
            if not normalized or normalized in metadata:
                continue
            metadata[normalized] = {
                "name": first_str(
                    row,
                    [
                        ["display_name"],
                        ["name"],
                        ["nickname"],
                        ["hostname"],
                        ["device", "display_name"],
                        ["source", "location"],
                    ],
                ),
                "mac": first_str(row, [["mac"], ["device", "mac"]]),
                "manufacturer": first_str(row, [["manufacturer"], ["device", "manufacturer"]]),
                "device_type": first_str(row, [["device_type"], ["device", "device_type"]]),
            }

    entries: list[TopDeviceUsage] = []
    for normalized, key in keys.items():
        client = clients_by_key.get(normalized)
        meta = metadata.get(normalized, {})
        name = (client.name if client else None) or meta.get("name") or key
        mac = (client.mac if client else None) or meta.get("mac")
        fields: dict[str, Any] = {}
        for period, table in tables.items():
            totals = usage_by_key(key, table)
            fields[f"{period}_download_bytes"] = totals.download if totals else None
            fields[f"{period}_upload_bytes"] = totals.upload if totals else None
        entries.append(
            TopDeviceUsage(
                id=stable_id(key, [mac, name], "usage-device"),
                name=name,
                mac_address=mac,
                manufacturer=(client.manufacturer if client else None) or meta.get("manufacturer"),
                device_type=(client.device_type if client else None) or meta.get("device_type"),
                **fields,
            )
        )

    entries.sort(
        key=lambda entry: (
            -_period_total(entry, "month"),
            -_period_total(entry, "week"),
            -_period_total(entry, "day"),
            entry.name.casefold(),
        )
    )
    return entries[:BUSIEST_DEVICE_LIMIT]


# ── timelines ───────────────────────────────────────────────────────


def _sample(moment: datetime, download: int, upload: int) -> TimelineSample:
    return TimelineSample(
        id=stable_id(str(moment.timestamp()), prefix="timeline-sample"),
        timestamp=moment,
        download_bytes=max(0, download),
        upload_bytes=max(0, upload),
    )


def _series_samples(payload: dict[str, Any]) -> list[TimelineSample]:
    series_rows = get_dicts(payload, ["series"]) or []
    downloads: dict[float, int] = {}
    uploads: dict[float, int] = {}
    moments: dict[float, datetime] = {}
    for series in series_rows:
        direction = direction_from_type(first_str(series, [["type"], ["data_usage_type"], ["insight_type_name"]]))
        if direction is None:
            continue
        target = downloads if direction is Direction.DOWNLOAD else uploads
        for value in get_dicts(series, ["values"]) or []:
            moment = date_value(value.get("time") if value.get("time") is not None else value.get("timestamp"))
            if moment is None:
                continue
            amount = integer_value(value.get("value"))
            if amount is None:
                amount = usage_byte_value(value, direction) or 0
            stamp = moment.timestamp()
            moments[stamp] = moment
            target[stamp] = max(0, amount)
    return [_sample(moments[stamp], downloads.get(stamp, 0), uploads.get(stamp, 0)) for stamp in sorted(moments)]


def _direct_samples(payload: dict[str, Any]) -> list[TimelineSample]:
    samples: list[TimelineSample] = []
    for row in usage_rows(payload, ["values"]):
        raw_time = next((row[key] for key in ("time", "timestamp", "date") if row.get(key) is not None), None)
        moment = date_value(raw_time)
        if moment is None:
            continue
        download = max(0, usage_byte_value(row, Direction.DOWNLOAD) or 0)
        upload = max(0, usage_byte_value(row, Direction.UPLOAD) or 0)
        if download == 0 and upload == 0:
            continue
        samples.append(_sample(moment, download, upload))
    samples.sort(key=lambda sample: sample.timestamp)
    return samples


def timeline_samples(payload: Any) -> list[TimelineSample]:
    """Samples from a ``series`` payload, a flat ``values`` payload or a bare list."""
    if isinstance(payload, dict):
        return _series_samples(payload) or _direct_samples(payload)
    if isinstance(payload, list) and payload:
        return _direct_samples({"values": [row for row in payload if isinstance(row, dict)]})
    return []


def device_usage_timelines(
    data: dict[str, Any],
    clients: list[Client],
    top_devices: list[TopDeviceUsage],
) -> list[DeviceUsageTimeline]:
    rows = get_dicts(data, ["activity", "devices", "device_timelines"]) or []
    if not rows:
        return []

    top_by_key: dict[str, TopDeviceUsage] = {}
    for device in top_devices:
        for candidate in (device.id, trim_stable_prefix(device.id), device.mac_address, device.name):
            key = normalize_key(candidate)
            if key:
                top_by_key.setdefault(key, device)
    clients_by_key = _client_lookup(clients, with_trimmed=True)

    timelines: list[DeviceUsageTimeline] = []
    for row in rows:
        payload = row.get("payload")
        samples = timeline_samples(payload)
        if not samples:
            continue
        resource_key = first_str(row, [["resource_key"], ["id"], ["mac"], ["display_name"]]) or "timeline"
        normalized = normalize_key(resource_key)
        top = top_by_key.get(normalized)
        client = clients_by_key.get(normalized)
        embedded = get_dict(payload, ["device"]) or {}
        mac = (
            get_str(row, ["mac"])
            or get_str(embedded, ["mac"])
            or (top.mac_address if top else None)
            or (client.mac if client else None)
        )
        name = (
            get_str(row, ["display_name"])
            or first_str(embedded, [["display_name"], ["nickname"], ["hostname"]])
            or (top.name if top else None)
            or (client.name if client else None)
            or resource_key
        )
        timelines.append(
            DeviceUsageTimeline(
                id=stable_id(resource_key, [mac, name], "usage-timeline"),
                name=name,
                mac_address=mac,
                samples=samples,
            )
        )

    timelines.sort(key=lambda timeline: (-timeline.total_bytes, timeline.name.casefold()))
    return timelines


def activity_summary(data: dict[str, Any], clients: list[Client]) -> ActivitySummary | None:
    """Network totals plus busiest devices and their timelines; ``None`` when all are empty."""
    totals = {
        period: usage_totals(usage_rows(data, ["activity", "network", f"data_usage_{period}"]))
        for period in PERIODS
    }
    busiest = top_device_usage(data, clients)
    timelines = device_usage_timelines(data, clients, busiest)
    if all(total.empty for total in totals.values()) and not busiest and not timelines:
        return None

    fields: dict[str, int | None] = {}
    for period, total in totals.items():
        fields.update(_period_fields("network_", period, total))
    return ActivitySummary(
        busiest_devices=busiest,
        busiest_device_timelines=timelines or None,
        **fields,
    )
