"""Per-fetch field audit: how often the tracked telemetry fields actually arrive."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from meshsnapshot.jsonpath import get, get_bool, get_dicts, has_value
from meshsnapshot.models import FieldAuditCounter, ModelFieldAudit
from meshsnapshot.parsers.network import UPDATE_STATUS_PATHS

Paths = Sequence[Sequence[str]]


def _rate_paths(direction: str) -> list[list[str]]:
    paths: list[list[str]] = []
    for head in (["connectivity"], []):
        for wrapper in (f"{direction}_rate_info", f"{direction}_rate"):
            paths += [[*head, wrapper, leaf] for leaf in ("rate_mbps", "mbps", "rate", "rate_bps")]
        paths.append([*head, f"{direction}_bitrate"])
    return paths


def _usage_paths(*keys: str) -> list[list[str]]:
    return [["usage", key] for key in keys] + [[key] for key in keys]


_DOWN_MBPS = _usage_paths("down_mbps", "downMbps")
_UP_MBPS = _usage_paths("up_mbps", "upMbps")

CLIENT_FIELD_PATHS: dict[str, Paths] = {
    "rx_rate_mbps": _rate_paths("rx"),
    "tx_rate_mbps": _rate_paths("tx"),
    "usage_down_mbps": _DOWN_MBPS,
    "usage_up_mbps": _UP_MBPS,
    "usage_down_percent_current": _usage_paths("down_percent_current_usage", "downPercentCurrentUsage"),
    "usage_up_percent_current": _usage_paths("up_percent_current_usage", "upPercentCurrentUsage"),
}


def has_any(data: Any, paths: Iterable[Sequence[str]]) -> bool:
    return any(has_value(get(data, path)) for path in paths)


def _gateway_has_ip(network: dict[str, Any]) -> bool:
    for eero in get_dicts(network, ["eeros", "data"]) or []:
        if get_bool(eero, ["gateway"]) and has_any(eero, [["ip_address"], ["ip"]]):
            return True
    return False


def _has_realtime_usage(clients: list[dict[str, Any]]) -> bool:
    return any(
        get_bool(client, ["connected"]) and (has_any(client, _DOWN_MBPS) or has_any(client, _UP_MBPS))
        for client in clients
    )


class FieldAuditAccumulator:
    """Counts present/total per tracked field across every network of one fetch."""

    def __init__(self) -> None:
        self.network_fields: dict[str, FieldAuditCounter] = {}
        self.client_fields: dict[str, FieldAuditCounter] = {}
        self.device_fields: dict[str, FieldAuditCounter] = {}

    @staticmethod
    def _bump(counters: dict[str, FieldAuditCounter], key: str, present: bool) -> None:
        counter = counters.get(key, FieldAuditCounter())
        counters[key] = FieldAuditCounter(present=counter.present + int(present), total=counter.total + 1)

    def record(self, network: dict[str, Any]) -> None:
        """Count one merged network payload and each of its client rows."""
        clients = get_dicts(network, ["devices", "data"]) or []
        checks = {
            "status": has_any(network, [["status"]]),
            "gateway_ip": has_any(network, [["gateway_ip"]]) or _gateway_has_ip(network),
            "updates_status": has_any(network, UPDATE_STATUS_PATHS),
            "channel_utilization": has_any(network, [["channel_utilization"]]),
            "proxied_nodes": has_any(network, [["proxied_nodes"]]),
            "activity_summary": has_any(network, [["activity"]]),
            "realtime_summary": _has_realtime_usage(clients),
        }
        for key, present in checks.items():
            self._bump(self.network_fields, key, present)

        for client in clients:
            for key, paths in CLIENT_FIELD_PATHS.items():
                self._bump(self.client_fields, key, has_any(client, paths))

    def summary(self, generated_at: datetime) -> ModelFieldAudit | None:
        if not (self.network_fields or self.client_fields or self.device_fields):
            return None
        return ModelFieldAudit(
            generated_at=generated_at,
            network_fields=dict(self.network_fields),
            client_fields=dict(self.client_fields),
            device_fields=dict(self.device_fields),
        )
