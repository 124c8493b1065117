"""Per-network enrichment: fetch every discoverable sub-resource onto one working payload.

The network resource only links to most of what describes a network. The
enricher follows those links (or conventional fallback paths), normalizes
each response to the shape the parsers expect, expands nodes and clients
with their detail resources and returns a new merged payload. Sub-resource
failures are treated as absence; cancellation always propagates.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar
from urllib.parse import quote

from loguru import logger

from meshsnapshot.activity import ActivityCollector
from meshsnapshot.channels import ChannelUtilizationCollector
from meshsnapshot.config import DEFAULT_MAX_WORKERS
from meshsnapshot.identity import id_from_url
from meshsnapshot.jsonpath import get, get_str, get_str_map
from meshsnapshot.merge import deep_merge
from meshsnapshot.parsers.profile import profile_identifier
from meshsnapshot.parsers.values import first_integer, first_numeric, first_rate_mbps
from meshsnapshot.resources import ResourceCatalog, ResourceShape
from meshsnapshot.shapes import count_data, dict_rows, object_rows
from meshsnapshot.transport import MeshTransport, with_query

T = TypeVar("T")
R = TypeVar("R")

DEVICE_QUERY_VARIANTS: tuple[dict[str, str], ...] = (
    {"thread": "true", "proxied_node": "true"},
    {"thread": "true"},
    {"proxied_node": "true"},
    {},
)

# Routes fetched as-is and stored under their canonical key.
SIMPLE_ROUTES = (
    "thread",
    "guest_network",
    "ac_compat",
    "blacklist",
    "diagnostics",
    "forwards",
    "reservations",
    "routing",
    "speedtest",
    "updates",
    "support",
    "insights",
    "ouicheck",
)

_MANAGED_UPDATE_PATHS = [["updates", "update_status"], ["updates", "status"], ["update_status"], ["firmware_update_status"]]


def _both_levels(*keys: str) -> list[list[str]]:
    return [["usage", key] for key in keys] + [[key] for key in keys]


def _link_rate_prefixes(direction: str) -> list[list[str]]:
    names = (f"{direction}_rate_info", f"{direction}_rate")
    return [["connectivity", name] for name in names] + [[name] for name in names]


_DETAIL_DOWN_MBPS = _both_levels("down_mbps", "downMbps")
_DETAIL_UP_MBPS = _both_levels("up_mbps", "upMbps")
_DETAIL_DOWN_PERCENT = _both_levels(
    "down_percent_current_usage", "down_percent_current", "downPercentCurrentUsage", "downPercentCurrent"
)
_DETAIL_UP_PERCENT = _both_levels(
    "up_percent_current_usage", "up_percent_current", "upPercentCurrentUsage", "upPercentCurrent"
)
_DETAIL_RX_RATE = _link_rate_prefixes("rx")
_DETAIL_TX_RATE = _link_rate_prefixes("tx")

_SCORE_RATE_BPS_PATHS = [
    [*head, rate, "rate_bps"]
    for head in (["connectivity"], [])
    for rate in ("rx_rate_info", "tx_rate_info", "rx_rate", "tx_rate")
]
_SCORE_BITRATE_PATHS = [[*head, key] for head in (["connectivity"], []) for key in ("rx_bitrate", "tx_bitrate")]
_SCORE_SOURCE_PATHS = [["source", "url"], ["source", "location"]]
_SCORE_USAGE_PATHS = [
    ["usage", key] for key in ("down_mbps", "up_mbps", "down_percent_current_usage", "up_percent_current_usage")
]


def _has_any(row: dict[str, Any], paths: Sequence[Sequence[str]]) -> bool:
    return any(get(row, path) is not None for path in paths)


def device_telemetry_score(rows: list[dict[str, Any]]) -> int:
    """Rank a devices-list response by how much live telemetry its rows carry.

    Link rates in bits per second weigh most, then bitrate strings, live
    usage, attachment source and finally the plain row count.
    """
    rate_bps = sum(1 for row in rows if _has_any(row, _SCORE_RATE_BPS_PATHS))
    bitrate = sum(1 for row in rows if _has_any(row, _SCORE_BITRATE_PATHS))
    usage = sum(1 for row in rows if _has_any(row, _SCORE_USAGE_PATHS))
    source = sum(1 for row in rows if _has_any(row, _SCORE_SOURCE_PATHS))
    return rate_bps * 10_000 + bitrate * 1_000 + usage * 100 + source * 10 + len(rows)


def device_needs_detail(device: dict[str, Any]) -> bool:
    """True unless the row already has live Mbps, current percent and both link rates."""
    present = (
        first_numeric(device, _DETAIL_DOWN_MBPS) is not None,
        first_numeric(device, _DETAIL_UP_MBPS) is not None,
        first_integer(device, _DETAIL_DOWN_PERCENT) is not None,
        first_integer(device, _DETAIL_UP_PERCENT) is not None,
        first_rate_mbps(device, _DETAIL_RX_RATE) is not None,
        first_rate_mbps(device, _DETAIL_TX_RATE) is not None,
    )
    return not all(present)


def device_detail_path(device: dict[str, Any], network_id: str) -> str | None:
    url = get_str(device, ["url"])
    if url and url.strip():
        return url
    mac = get_str(device, ["mac"])
    if not mac:
        return None
    return f"/2.2/networks/{network_id}/devices/{quote(mac, safe=':')}"


def needs_managed_merge(data: Mapping[str, Any]) -> bool:
    if data.get("proxied_nodes") is None or data.get("channel_utilization") is None:
        return True
    return all(get(data, path) is None for path in _MANAGED_UPDATE_PATHS)


def shaped(response: Any, shape: ResourceShape) -> Any:
    """Normalize a sub-resource response to its storage shape, or ``None`` to skip it."""
    if response is None:
        return None
    if shape is ResourceShape.OBJECT:
        return response if isinstance(response, dict) else None
    if shape is ResourceShape.ROWS:
        rows = object_rows(response)
        return count_data(rows) if rows is not None else None
    return response


class NetworkEnricher:
    """Fetch and merge every sub-resource of a network.

    Args:
        transport: Transport used for every request.
        catalog: Resource routes; defaults to :meth:`ResourceCatalog.default`.
        max_workers: Width of the thread pool used for independent fetches.
    """

    def __init__(
        self,
        transport: MeshTransport,
        catalog: ResourceCatalog | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.transport = transport
        self.catalog = catalog or ResourceCatalog.default()
        self.max_workers = max(1, max_workers)
        self.activity = ActivityCollector(transport)
        self.channels = ChannelUtilizationCollector(transport)

    # ── helpers ───────────────────────────────────────────────────────

    def map_concurrent(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        """Apply *fn* to every item on the pool, returning results in input order.

        The first exception propagates and cancels the futures not yet started.
        """
        if len(items) <= 1 or self.max_workers == 1:
            return [fn(item) for item in items]
        with concurrent.futures.ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as pool:
            futures = [pool.submit(fn, item) for item in items]
            try:
                return [future.result() for future in futures]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

    def fetch_route(self, name: str, resource_map: Mapping[str, str], network_id: str) -> Any:
        """Best-effort fetch of one catalog route, already shaped for storage."""
        route = self.catalog[name]
        path = self.catalog.path_for(name, resource_map, network_id)
        return shaped(self.transport.get_optional(path, name), route.shape)

    # ── devices ───────────────────────────────────────────────────────

    def fetch_devices(self, resource_map: Mapping[str, str], network_id: str) -> list[dict[str, Any]] | None:
        """The devices list from whichever query variant carries the richest telemetry."""
        base = self.catalog.path_for("devices", resource_map, network_id)
        paths = [with_query(base, params) for params in DEVICE_QUERY_VARIANTS]
        responses = self.map_concurrent(lambda path: self.transport.get_optional(path, "devices"), paths)

        best_rows: list[dict[str, Any]] | None = None
        best_score: int | None = None
        for response in responses:
            rows = object_rows(response)
            if not rows:
                continue
            score = device_telemetry_score(rows)
            if best_score is None or score > best_score:
                best_rows, best_score = rows, score
        return best_rows

    def enrich_device(self, device: dict[str, Any], network_id: str) -> dict[str, Any]:
        if not device_needs_detail(device):
            return device
        path = device_detail_path(device, network_id)
        if path is None:
            return device
        detail = self.transport.get_optional(path, "device detail")
        if not isinstance(detail, dict):
            return device
        return deep_merge(device, detail)

    # ── nodes and profiles ────────────────────────────────────────────

    def expand_eero(self, eero: dict[str, Any]) -> dict[str, Any]:
        """Merge the node's detail resource, then attach its ``connections`` resource."""
        url = get_str(eero, ["url"])
        if not url:
            return eero
        detail = self.transport.get_optional(url, "eero detail")
        if not isinstance(detail, dict):
            return eero
        merged = deep_merge(eero, detail)
        connections_path = get_str_map(merged, ["resources"]).get("connections")
        if connections_path:
            connections = self.transport.get_optional(connections_path, "eero connections")
            if connections is not None:
                merged["connections"] = connections
        return merged

    def profile_catalog(self, network_id: str, profile: dict[str, Any]) -> dict[str, Any] | None:
        profile_id = profile_identifier(profile)
        if not profile_id:
            return None
        path = f"/2.2/networks/{network_id}/dns_policies/profiles/{quote(profile_id)}/applications"
        payload = self.transport.get_optional(path, "profile applications")
        if isinstance(payload, dict) and payload:
            return payload
        rows = dict_rows(payload)
        if rows:
            return {"applications": rows}
        return None

    def attach_profile_catalogs(self, network_id: str, profiles: list[dict[str, Any]]) -> list[dict[str, Any]]:
        catalogs = self.map_concurrent(lambda profile: self.profile_catalog(network_id, profile), profiles)
        attached = []
        for profile, catalog in zip(profiles, catalogs):
            if catalog is not None:
                profile = {**profile, "applications_catalog": catalog}
            attached.append(profile)
        return attached

    # ── orchestration ─────────────────────────────────────────────────

    def enrich(self, network_url: str, network: dict[str, Any]) -> dict[str, Any]:
        """Return a merged copy of *network* with every reachable sub-resource attached.

        Args:
            network_url: The network's resource URL (used for activity and
                channel-utilization endpoints).
            network: The network resource payload.

        Raises:
            FetchCancelledError: The fetch was cancelled mid-way.
        """
        network_id = id_from_url(network_url) or network_url
        data = dict(network)
        resource_map = get_str_map(data, ["resources"])

        if needs_managed_merge(data):
            managed = self.fetch_route("managed", resource_map, network_id)
            if managed is not None:
                data = deep_merge(data, managed)
                resource_map = get_str_map(data, ["resources"])

        routes = [name for name in SIMPLE_ROUTES if name in self.catalog]
        if data.get("proxied_nodes") is None:
            routes.append("proxied_nodes")
        fetched = self.map_concurrent(lambda name: self.fetch_route(name, resource_map, network_id), routes)
        for name, value in zip(routes, fetched):
            if value is not None:
                data[self.catalog[name].store_as] = value

        devices = self.fetch_devices(resource_map, network_id)
        if devices is not None:
            devices = self.map_concurrent(lambda device: self.enrich_device(device, network_id), devices)
            data["devices"] = count_data(devices)

        profiles = self.fetch_route("profiles", resource_map, network_id)
        if profiles is not None:
            data["profiles"] = count_data(self.attach_profile_catalogs(network_id, profiles["data"]))

        eeros = self.fetch_route("eeros", resource_map, network_id)
        if eeros is not None:
            data["eeros"] = count_data(self.map_concurrent(self.expand_eero, eeros["data"]))

        tz_name = get_str(data, ["timezone", "value"]) or "UTC"
        activity = self.activity.collect(network_url, tz_name)
        if activity is not None:
            data["activity"] = activity

        eero_rows = dict_rows(get(data, ["eeros", "data"]))
        utilization = self.channels.collect(network_id, network_url, resource_map, tz_name, eero_rows)
        if utilization is not None:
            data["channel_utilization"] = utilization

        logger.debug(
            f"Enriched network {network_id}: {len(dict_rows(get(data, ['devices', 'data'])))} devices, "
            f"{len(eero_rows)} eeros, activity={'yes' if activity else 'no'}"
        )
        return data
