"""Attribute connected clients to the mesh node serving them."""

from __future__ import annotations

from collections import defaultdict

from meshsnapshot.identity import id_from_url, normalize_key, trim_stable_prefix
from meshsnapshot.models import Client, Node


def _client_names_by_source(clients: list[Client]) -> tuple[dict[str, set[str]], dict[str, set[str]]]:
    by_source_id: dict[str, set[str]] = defaultdict(set)
    by_location: dict[str, set[str]] = defaultdict(set)
    for client in clients:
        if not client.connected:
            continue
        source_key = normalize_key(id_from_url(client.source_url))
        if source_key:
            by_source_id[source_key].add(client.name)
        location = (client.source_location or "").strip()
        if location:
            by_location[location.lower()].add(client.name)
    return by_source_id, by_location


def _client_name_index(clients: list[Client]) -> dict[str, str]:
    """Client name under each of its id, trimmed id, source id and MAC keys."""
    index: dict[str, str] = {}
    for client in clients:
        for candidate in (client.id, trim_stable_prefix(client.id), id_from_url(client.source_url), client.mac):
            key = normalize_key(candidate)
            if key:
                index.setdefault(key, client.name)
    return index


def attach_connected_clients(nodes: list[Node], clients: list[Client]) -> list[Node]:
    """Fill ``connected_client_names`` for each node.

    Clients are matched by the id in their ``source.url``, falling back to the
    node's location name. Wireless attachments and Ethernet neighbors that
    resolve to a known client are added too. ``connected_client_count`` is
    backfilled from the name list only when the API did not report one.
    """
    by_source_id, by_location = _client_names_by_source(clients)
    name_index = _client_name_index(clients)

    updated: list[Node] = []
    for node in nodes:
        names: set[str] = set()
        for candidate in (node.id, trim_stable_prefix(node.id), node.mac_address):
            key = normalize_key(candidate)
            if key:
                names |= by_source_id.get(key, set())
        if not names:
            names |= by_location.get(node.name.lower(), set())

        neighbor_keys: list[str | None] = []
        for attachment in node.wireless_attachments or []:
            neighbor_keys += [id_from_url(attachment.url), attachment.display_name]
        for status in node.ethernet_statuses:
            neighbor_keys += [id_from_url(status.neighbor_url), status.neighbor_name]
        for candidate in neighbor_keys:
            resolved = name_index.get(normalize_key(candidate))
            if resolved is not None:
                names.add(resolved)

        if not names:
            updated.append(node)
            continue
        ordered = sorted(names, key=str.casefold)
        update: dict[str, object] = {"connected_client_names": ordered}
        if node.connected_client_count is None:
            update["connected_client_count"] = len(ordered)
        updated.append(node.model_copy(update=update))
    return updated
