"""Fetch side of usage telemetry: period windows, usage series and device timelines."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple
from urllib.parse import quote
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from meshsnapshot.identity import mac_from_resource_key
from meshsnapshot.jsonpath import first_str, get_str
from meshsnapshot.parsers.values import iso_millis
from meshsnapshot.shapes import device_usage_payload, usage_series
from meshsnapshot.transport import MeshTransport, with_query
from meshsnapshot.usage import PERIODS, resource_key_for_row, usage_rows, usage_totals

TIMELINE_DEVICE_LIMIT = 5


class QueryWindow(NamedTuple):
    start: str
    end: str
    cadence: str

    def params(self, tz_name: str, cadence: str | None = None) -> dict[str, str]:
        return {
            "start": self.start,
            "end": self.end,
            "cadence": cadence or self.cadence,
            "timezone": tz_name,
        }


def zone_for(tz_name: str | None) -> ZoneInfo | timezone:
    if not tz_name:
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug(f"Unknown timezone {tz_name!r}, using UTC")
        return timezone.utc


def query_window(tz_name: str, period: str, now: datetime | None = None) -> QueryWindow | None:
    """Calendar window of *period* around *now* in the network's timezone.

    ``day`` runs from local midnight for one day, ``week`` from the most
    recent Sunday for seven days and ``month`` over the calendar month. Each
    ends one second before the next window starts.
    """
    zone = zone_for(tz_name)
    local = (now or datetime.now(timezone.utc)).astimezone(zone)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    last_second = timedelta(seconds=1)

    if period == "day":
        start, cadence = midnight, "hourly"
        end = start + timedelta(days=1) - last_second
    elif period == "week":
        # weekday(): Monday is 0, so Sunday-based offset is (weekday + 1) % 7
        start, cadence = midnight - timedelta(days=(midnight.weekday() + 1) % 7), "daily"
        end = start + timedelta(days=7) - last_second
    elif period == "month":
        start, cadence = midnight.replace(day=1), "daily"
        if start.month == 12:
            following = start.replace(year=start.year + 1, month=1)
        else:
            following = start.replace(month=start.month + 1)
        end = following - last_second
    else:
        return None
    return QueryWindow(iso_millis(start), iso_millis(end), cadence)


def top_timeline_devices(device_usage: dict[str, Any], limit: int = TIMELINE_DEVICE_LIMIT) -> list[dict[str, str | None]]:
    """Devices with the most combined traffic across the month, week and day rollups.

    Returns:
        Up to *limit* (at least one) dicts with ``resource_key``, ``mac`` and
        ``display_name``, ordered by traffic then key.
    """
    rows = []
    for period in ("month", "week", "day"):
        rows += usage_rows(device_usage, [f"data_usage_{period}"])

    scores: dict[str, int] = {}
    metadata: dict[str, dict[str, str | None]] = {}
    for row in rows:
        key = resource_key_for_row(row)
        if key is None:
            continue
        totals = usage_totals([row])
        scores[key] = scores.get(key, 0) + max(0, totals.download or 0) + max(0, totals.upload or 0)

        mac = get_str(row, ["mac"]) or mac_from_resource_key(key)
        name = first_str(row, [["display_name"], ["nickname"], ["hostname"]])
        known = metadata.setdefault(key, {"resource_key": key, "mac": None, "display_name": None})
        known["mac"] = known["mac"] or mac
        known["display_name"] = known["display_name"] or name

    ranked = sorted(scores, key=lambda key: (-scores[key], key.casefold()))
    return [metadata[key] for key in ranked[: max(1, limit)]]


class ActivityCollector:
    """Collects day/week/month usage for one network.

    Every request is best-effort: a missing endpoint just leaves its period
    out of the result.
    """

    def __init__(self, transport: MeshTransport):
        self.transport = transport

    def _series(self, path: str, tz_name: str, period: str) -> list[dict[str, Any]] | None:
        window = query_window(tz_name, period)
        if window is None:
            return None
        response = self.transport.get_optional(with_query(path, window.params(tz_name)), f"{period} usage")
        return usage_series(response) if response is not None else None

    def _series_with_fallback(self, paths: tuple[str, str], tz_name: str, period: str) -> list[dict[str, Any]] | None:
        values = self._series(paths[0], tz_name, period)
        if values is None:
            values = self._series(paths[1], tz_name, period)
        return values

    def _device_usage(self, network_url: str, tz_name: str, period: str) -> dict[str, Any] | None:
        window = query_window(tz_name, period)
        if window is None:
            return None
        path = with_query(f"{network_url}/data_usage/devices", window.params(tz_name))
        return device_usage_payload(self.transport.get_optional(path, f"{period} device usage"))

    def device_timelines(self, network_url: str, tz_name: str, device_usage: dict[str, Any]) -> list[dict[str, Any]]:
        devices = top_timeline_devices(device_usage)
        window = query_window(tz_name, "day")
        if not devices or window is None:
            return []

        timelines: list[dict[str, Any]] = []
        for device in devices:
            mac = device["mac"]
            if not mac:
                continue
            device_path = f"{network_url}/data_usage/devices/{quote(mac, safe=':')}"
            path = with_query(device_path, window.params(tz_name, "hourly"))
            response = self.transport.get_optional(path, "device timeline")
            if response is None:
                continue
            entry: dict[str, Any] = {"resource_key": device["resource_key"], "mac": mac}
            if device["display_name"]:
                entry["display_name"] = device["display_name"]
            entry["payload"] = response
            timelines.append(entry)
        return timelines

    def collect(self, network_url: str, tz_name: str) -> dict[str, Any] | None:
        """Activity payload ``{network, eeros, devices}`` with empty sections omitted."""
        network_usage: dict[str, Any] = {}
        eero_usage: dict[str, Any] = {}
        device_usage: dict[str, Any] = {}

        for period in PERIODS:
            values = self._series_with_fallback(
                (f"{network_url}/data_usage", f"{network_url}/data_usage/breakdown"), tz_name, period
            )
            if values is not None:
                network_usage[f"data_usage_{period}"] = values
            values = self._series_with_fallback(
                (f"{network_url}/data_usage/eeros", f"{network_url}/data_usage/eeros/summary"), tz_name, period
            )
            if values is not None:
                eero_usage[f"data_usage_{period}"] = values

        for period in PERIODS:
            payload = self._device_usage(network_url, tz_name, period)
            if payload is not None:
                device_usage[f"data_usage_{period}"] = payload

        timelines = self.device_timelines(network_url, tz_name, device_usage)
        if timelines:
            device_usage["device_timelines"] = timelines

        activity = {
            key: section
            for key, section in (("network", network_usage), ("eeros", eero_usage), ("devices", device_usage))
            if section
        }
        logger.debug(f"Activity for {network_url}: {sorted(activity) or 'none'}")
        return activity or None
