"""Channel-utilization fetch: probe base paths and query variants until one has data."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger

from meshsnapshot.identity import id_from_url
from meshsnapshot.jsonpath import get_str
from meshsnapshot.parsers.values import integer_value, iso_millis
from meshsnapshot.shapes import channel_utilization_has_data, string_rows
from meshsnapshot.transport import MeshTransport, with_query

CANONICAL_BANDS = ("band_2_4GHz", "band_5GHz_low", "band_5GHz_high", "band_5GHz_full", "band_6GHz")
WINDOW = timedelta(hours=6)
MAX_EERO_IDS = 4
MAX_BANDS = 6

Params = list[tuple[str, str]]


def band_candidates(eeros: list[dict[str, Any]]) -> list[str]:
    """Bands the nodes advertise, else the canonical band names; sorted."""
    discovered: set[str] = set()
    for eero in eeros:
        for key in ("wifi_bands", "wifiBands"):
            discovered.update(string_rows(eero.get(key)))
    return sorted(discovered or CANONICAL_BANDS)


def eero_ids(eeros: list[dict[str, Any]]) -> list[int]:
    """Numeric node ids from ``id`` or the trailing URL segment; sorted and unique."""
    found: set[int] = set()
    for eero in eeros:
        numeric = integer_value(eero.get("id"))
        if numeric is None:
            url_id = id_from_url(get_str(eero, ["url"]))
            if url_id is not None and url_id.isdigit():
                numeric = int(url_id)
        if numeric is not None:
            found.add(numeric)
    return sorted(found)


def query_variants(
    eeros: list[dict[str, Any]],
    tz_name: str,
    now: datetime | None = None,
) -> list[Params]:
    """Ordered query-parameter sets, most specific first."""
    end = now or datetime.now(timezone.utc)
    start = end - WINDOW
    window = [("start", iso_millis(start)), ("end", iso_millis(end))]
    common = window + [("granularity", "15"), ("gap_data_placeholder", "-1")]

    bands = band_candidates(eeros)[:MAX_BANDS]
    ids = [str(value) for value in eero_ids(eeros)[:MAX_EERO_IDS]]

    variants: list[Params] = []
    for node_id in ids:
        for band in bands:
            variants.append(common + [("eero_id", node_id), ("band", band)])
    variants += [common + [("band", band)] for band in bands]
    variants += [common + [("eero_id", node_id)] for node_id in ids]
    variants.append(common)
    variants.append(common + [("timezone", tz_name)])
    variants.append(
        window + [("granularity", "fifteen_minutes"), ("gap_data_placeholder", "true"), ("timezone", tz_name)]
    )
    return variants


def base_paths(network_id: str, network_url: str, resource_map: Mapping[str, str]) -> list[str]:
    candidates = [
        f"/2.2/networks/{network_id}/channel_utilization",
        resource_map.get("channel_utilization"),
        f"{network_url}/channel_utilization",
    ]
    unique = dict.fromkeys(path.strip() for path in candidates if isinstance(path, str) and path.strip())
    return list(unique)


class ChannelUtilizationCollector:
    """Find the first channel-utilization endpoint and query shape that returns samples."""

    def __init__(self, transport: MeshTransport):
        self.transport = transport

    def collect(
        self,
        network_id: str,
        network_url: str,
        resource_map: Mapping[str, str],
        tz_name: str,
        eeros: list[dict[str, Any]],
    ) -> Any:
        variants = query_variants(eeros, tz_name)
        for base in base_paths(network_id, network_url, resource_map):
            for params in variants:
                response = self.transport.get_optional(with_query(base, params), "channel utilization")
                if response is not None and channel_utilization_has_data(response):
                    logger.debug(f"Channel utilization for {network_id} from {base} with {dict(params)}")
                    return response
        logger.debug(f"No channel utilization data for {network_id}")
        return None

