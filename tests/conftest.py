"""Shared fixtures for the meshsnapshot test suite."""

from __future__ import annotations

from typing import Any

import pytest

from meshsnapshot.config import Settings
from meshsnapshot.exceptions import ServerError
from meshsnapshot.transport import MeshTransport

# ── scripted transport ────────────────────────────────────────────────


class FakeTransport(MeshTransport):
    """MeshTransport whose ``call`` answers from a path → payload table.

    A route matches the full path (query included) first, then the path with
    its query stripped. Exception payloads are raised; unknown paths raise
    ``ServerError(404)`` so best-effort fetches see them as absent.
    """

    def __init__(self, routes: dict[str, Any] | None = None, token: str | None = "test-token"):
        super().__init__(settings=Settings(token=token, max_workers=4))
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[tuple[str, str, Any]] = []

    def call(
        self,
        method: str,
        path_or_url: str,
        json_body: dict[str, Any] | None = None,
        requires_auth: bool = True,
        retry_on_auth_failure: bool = True,
    ) -> Any:
        self.check_cancelled()
        self.calls.append((method, path_or_url, json_body))
        for key in (path_or_url, path_or_url.split("?", 1)[0]):
            if key in self.routes:
                payload = self.routes[key]
                if isinstance(payload, BaseException):
                    raise payload
                return payload
        raise ServerError(404, "not found")

    def paths(self) -> list[str]:
        return [path for _, path, _ in self.calls]

    def paths_starting(self, prefix: str) -> list[str]:
        return [path for path in self.paths() if path.startswith(prefix)]


@pytest.fixture()
def fake_transport():
    """Factory fixture returning a FakeTransport over the given routes."""

    def _make(routes: dict[str, Any] | None = None, **kwargs):
        return FakeTransport(routes, **kwargs)

    return _make


# ── payload factories ─────────────────────────────────────────────────


@pytest.fixture()
def client_row():
    """Factory fixture returning one ``devices`` row with customizable fields."""

    def _make(**kwargs):
        defaults: dict[str, Any] = {
            "url": "/2.2/networks/111/devices/aabbccddeeff",
            "mac": "AA:BB:CC:DD:EE:FF",
            "ip": "192.168.4.20",
            "nickname": "Laptop",
            "connected": True,
            "wireless": True,
            "connection_type": "wireless",
            "connectivity": {"signal": "-58 dBm", "score_bars": 4},
            "channel": 36,
        }
        defaults.update(kwargs)
        return defaults

    return _make


@pytest.fixture()
def eero_row():
    """Factory fixture returning one ``eeros`` row with customizable fields."""

    def _make(**kwargs):
        defaults: dict[str, Any] = {
            "url": "/2.2/eeros/1",
            "location": "Living Room",
            "model": "eero Pro 6E",
            "serial": "GGC1",
            "mac_address": "F0:00:00:00:00:01",
            "ip_address": "192.168.4.1",
            "gateway": True,
            "status": "green",
            "mesh_quality_bars": 5,
            "wired": True,
        }
        defaults.update(kwargs)
        return defaults

    return _make


@pytest.fixture()
def home_network_routes(client_row, eero_row):
    """Routes for an account with one network, two eeros and two clients.

    The laptop is attached to the gateway by ``source.url``; the phone to
    the office eero by ``source.location``.
    """
    network = {
        "url": "/2.2/networks/111",
        "name": "Home",
        "status": "connected",
        "timezone": {"value": "UTC"},
        "updates": {"update_status": "up_to_date"},
        "proxied_nodes": {"enabled": False, "devices": []},
        "channel_utilization": {"utilization": []},
        "resources": {"eeros": "/2.2/networks/111/eeros"},
    }
    laptop = client_row(source={"url": "/2.2/eeros/1", "location": "Living Room"})
    phone = client_row(
        url="/2.2/networks/111/devices/112233445566",
        mac="11:22:33:44:55:66",
        nickname=None,
        hostname="phone",
        source={"location": "Office"},
    )
    office = eero_row(
        url="/2.2/eeros/2",
        location="Office",
        serial="GGC2",
        mac_address="F0:00:00:00:00:02",
        ip_address="192.168.4.2",
        gateway=False,
        status="red",
        mesh_quality_bars=3,
        wired=False,
    )
    return {
        "/2.2/account": {"name": "Alex", "networks": {"count": 1, "data": [{"url": "/2.2/networks/111"}]}},
        "/2.2/networks/111": network,
        "/2.2/networks/111/eeros": [eero_row(), office],
        "/2.2/networks/111/devices": [laptop, phone],
    }
