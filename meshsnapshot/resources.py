"""Resource discovery: advertised resource map first, conventional path second.

The key lists and fallback templates below were reverse-engineered from
live accounts and drift between firmware versions, so they are plain data
that a JSON file can override per route.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from loguru import logger


class ResourceShape(str, Enum):
    """How a fetched sub-resource must look to be stored."""

    OBJECT = "object"
    ROWS = "rows"
    ANY = "any"


@dataclass(frozen=True)
class ResourceRoute:
    """One logical sub-resource of a network.

    Attributes:
        name: Logical route name (also the override key).
        keys: Candidate resource-map keys, in priority order.
        fallback: Path template used when no key is advertised; ``{network_id}``
            is substituted.
        store_as: Canonical key on the working network payload.
        shape: Accepted payload shape.
    """

    name: str
    keys: tuple[str, ...]
    fallback: str
    store_as: str
    shape: ResourceShape = ResourceShape.OBJECT

    def fallback_path(self, network_id: str) -> str:
        return self.fallback.format(network_id=network_id)


def resolve(resource_map: Mapping[str, str], candidate_keys: Iterable[str], fallback_path: str) -> str:
    """First advertised path among *candidate_keys*, else *fallback_path*."""
    for key in candidate_keys:
        advertised = resource_map.get(key)
        if isinstance(advertised, str) and advertised.strip():
            return advertised.strip()
    return fallback_path


def _route(
    name: str,
    keys: tuple[str, ...],
    store_as: str | None = None,
    shape: ResourceShape = ResourceShape.OBJECT,
) -> ResourceRoute:
    return ResourceRoute(
        name=name,
        keys=keys,
        fallback=f"/2.2/networks/{{network_id}}/{keys[0]}",
        store_as=store_as or name,
        shape=shape,
    )


# Fetch order of the per-network sub-resources.
DEFAULT_ROUTES: tuple[ResourceRoute, ...] = (
    _route("managed", ("managed",)),
    _route("thread", ("thread",)),
    _route("guest_network", ("guestnetwork", "guest_network")),
    _route("devices", ("devices", "clients"), shape=ResourceShape.ROWS),
    _route("profiles", ("profiles",), shape=ResourceShape.ROWS),
    _route("eeros", ("eeros",), shape=ResourceShape.ROWS),
    _route("ac_compat", ("ac_compat",)),
    _route("blacklist", ("blacklist", "device_blacklist"), store_as="device_blacklist", shape=ResourceShape.ROWS),
    _route("diagnostics", ("diagnostics",)),
    _route("forwards", ("forwards",), shape=ResourceShape.ROWS),
    _route("reservations", ("reservations",), shape=ResourceShape.ROWS),
    _route("routing", ("routing",)),
    _route("speedtest", ("speedtest",), shape=ResourceShape.ANY),
    _route("updates", ("updates",)),
    _route("support", ("support",)),
    _route("insights", ("insights",), store_as="insights_response", shape=ResourceShape.ANY),
    _route("ouicheck", ("ouicheck",), store_as="ouicheck_response", shape=ResourceShape.ANY),
    _route("proxied_nodes", ("proxied_nodes",)),
    _route("channel_utilization", ("channel_utilization",), shape=ResourceShape.ANY),
)


class ResourceCatalog:
    """Lookup of :class:`ResourceRoute` by name, with optional overrides."""

    def __init__(self, routes: Iterable[ResourceRoute] = DEFAULT_ROUTES):
        self._routes: dict[str, ResourceRoute] = {route.name: route for route in routes}

    @classmethod
    def default(cls) -> ResourceCatalog:
        return cls(DEFAULT_ROUTES)

    @classmethod
    def from_file(cls, path: str | Path) -> ResourceCatalog:
        """Load overrides from a JSON object ``{route: {"keys": [...], "fallback": "..."}}``."""
        with open(path, encoding="utf-8") as fh:
            overrides = json.load(fh)
        catalog = cls.default()
        if not isinstance(overrides, dict):
            raise ValueError(f"Route overrides in {path} must be a JSON object")
        catalog.apply_overrides(overrides)
        return catalog

    def apply_overrides(self, overrides: Mapping[str, object]) -> None:
        for name, override in overrides.items():
            route = self._routes.get(name)
            if route is None or not isinstance(override, dict):
                logger.warning(f"Ignoring route override for unknown or malformed route {name!r}")
                continue
            keys = override.get("keys")
            fallback = override.get("fallback")
            if isinstance(keys, list) and all(isinstance(key, str) for key in keys) and keys:
                route = replace(route, keys=tuple(keys))
            if isinstance(fallback, str) and fallback.strip():
                route = replace(route, fallback=fallback.strip())
            self._routes[name] = route

    def __getitem__(self, name: str) -> ResourceRoute:
        return self._routes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def __iter__(self):
        return iter(self._routes.values())

    def path_for(self, name: str, resource_map: Mapping[str, str], network_id: str) -> str:
        route = self._routes[name]
        return resolve(resource_map, route.keys, route.fallback_path(network_id))
