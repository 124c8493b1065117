"""Tests for the payload parsers and action models."""

from __future__ import annotations

import pytest
import requests

from meshsnapshot.exceptions import InvalidResponseError, ServerError
from meshsnapshot.models import Action, ActionKind, HTTPMethod
from meshsnapshot.parsers import (
    parse_application_catalog,
    parse_client,
    parse_connection_interface,
    parse_network,
    parse_node,
    parse_profile,
    profile_identifier,
)

# ── clients ───────────────────────────────────────────────────────────


class TestParseClient:
    """Test client row parsing."""

    def test_basic_fields(self, client_row):
        """Identity, name and connectivity fields are read."""
        client = parse_client(client_row(source={"url": "/2.2/eeros/1", "location": "Living Room"}))
        assert client.id == "client-aabbccddeeff"
        assert client.name == "Laptop"
        assert client.connected is True
        assert client.signal == "-58 dBm"
        assert client.score_bars == 4
        assert client.channel == 36
        assert client.source_url == "/2.2/eeros/1"
        assert client.source_location == "Living Room"

    def test_name_fallbacks(self, client_row):
        """Hostname, then MAC, then a generic name."""
        assert parse_client(client_row(nickname=None, hostname="phone")).name == "phone"
        assert parse_client(client_row(nickname=None)).name == "AA:BB:CC:DD:EE:FF"
        assert parse_client({}).name == "Client"

    def test_id_falls_back_to_mac(self, client_row):
        """Without a URL the normalized MAC is the id."""
        assert parse_client(client_row(url=None)).id == "client-aabbccddeeff"

    def test_directional_rates(self, client_row):
        """Rates nested under connectivity resolve to Mbps."""
        client = parse_client(
            client_row(connectivity={"rx_rate_info": {"rate_bps": 866_000_000}, "tx_bitrate": "433 Mbps"})
        )
        assert client.rx_rate_mbps == pytest.approx(866.0)
        assert client.tx_rate_mbps == pytest.approx(433.0)

    def test_shared_link_rate(self, client_row):
        """A shared link rate fills both directions."""
        client = parse_client(client_row(connectivity={"link_rate": "1.2 Gbps"}))
        assert client.rx_rate_mbps == client.tx_rate_mbps == pytest.approx(1200.0)

    def test_live_usage(self, client_row):
        """Live throughput and load percentages are read from ``usage``."""
        client = parse_client(
            client_row(usage={"down_mbps": 12.5, "upMbps": "1.5", "down_percent_current_usage": 40.4})
        )
        assert client.usage_down_mbps == 12.5
        assert client.usage_up_mbps == 1.5
        assert client.usage_down_percent_current == 40

    def test_channel_from_connectivity(self, client_row):
        """The channel falls back to ``connectivity.channel``."""
        client = parse_client(client_row(channel=None, connectivity={"channel": "149"}))
        assert client.channel == 149


# ── nodes ─────────────────────────────────────────────────────────────


class TestParseNode:
    """Test eero node parsing."""

    def test_basic_fields(self, eero_row):
        """Identity, role and status are read."""
        node = parse_node(eero_row(bands=["2.4GHz", "5GHz", 6], last_reboot=1700000000))
        assert node.id == "eero-1"
        assert node.name == "Living Room"
        assert node.is_gateway is True
        assert node.wired_backhaul is True
        assert node.mesh_quality_bars == 5
        assert node.wifi_bands == ["2.4GHz", "5GHz"]
        assert node.last_reboot_at == "2023-11-14T22:13:20.000Z"

    def test_single_neighbor_interface(self):
        """A client link reports carrier, speed and its neighbor."""
        status = parse_connection_interface(
            {
                "interface_number": 1,
                "name": "LAN 1",
                "network_type": "lan",
                "negotiated_speed": "P1000",
                "supported_speed": "P2500",
                "connection_status": {
                    "kind": "client",
                    "metadata": {"display_name": "NAS", "url": "/2.2/networks/1/devices/abc", "port": 3},
                },
            },
            "eero-1",
        )
        assert status.has_carrier is True
        assert status.is_wan_port is False
        assert status.speed_tag == "1 Gbps (max 2.5 Gbps)"
        assert status.neighbor_name == "NAS"
        assert status.neighbor_port == 3
        assert status.connection_kind == "client"
        assert status.peer_count is None

    def test_multiple_peers_counted(self):
        """A ``multiple`` link counts its peer URLs."""
        status = parse_connection_interface(
            {
                "interface_number": 2,
                "connection_status": {
                    "kind": "multiple",
                    "metadata": {"multiple_devices": {"peer_urls": ["/a", "/b", "/c"]}},
                },
            },
            "eero-1",
        )
        assert status.peer_count == 3
        assert status.has_carrier is True

    def test_disconnected_interface(self):
        """A disconnected link has no carrier and no negotiated speed."""
        status = parse_connection_interface(
            {"interface_number": 3, "negotiated_speed": "P1000", "connection_status": {"kind": "not_connected"}},
            "eero-1",
        )
        assert status.has_carrier is False
        assert status.speed_tag is None

    def test_legacy_and_current_ports_merge(self, eero_row):
        """Current interfaces win; legacy statuses fill their gaps and add unmatched ports."""
        node = parse_node(
            eero_row(
                ethernet_status={
                    "statuses": [
                        {
                            "interfaceNumber": 1,
                            "hasCarrier": True,
                            "speed": "P1000",
                            "power_saving": False,
                            "neighbor": {"metadata": {"location": "Office", "url": "/2.2/eeros/2"}},
                        },
                        {"interfaceNumber": 2, "hasCarrier": False},
                    ]
                },
                connections={"ports": {"interfaces": [{"interface_number": 1, "name": "LAN 1", "connection_status": {"kind": "eero"}}]}},
            )
        )
        first, second = node.ethernet_statuses
        assert first.port_name == "LAN 1"
        assert first.has_carrier is True
        assert first.speed_tag == "1 Gbps"
        assert first.neighbor_name == "Office"
        assert first.power_saving is False
        assert second.interface_number == 2
        assert second.has_carrier is False

    def test_wireless_attachments(self, eero_row):
        """Wireless devices under ``connections`` become attachments."""
        node = parse_node(
            eero_row(connections={"wireless_devices": [{"kind": "client", "metadata": {"display_name": "Phone", "url": "/d/1"}}, {}]})
        )
        (attachment,) = node.wireless_attachments
        assert attachment.display_name == "Phone"
        assert attachment.kind == "client"


# ── profiles ──────────────────────────────────────────────────────────


class TestProfiles:
    """Test profile and application catalog parsing."""

    def test_catalog_merges_blocked(self):
        """Blocked apps sort first; blocked names missing from the catalog are added."""
        catalog = {
            "applications": [
                {"name": "youtube", "display_name": "YouTube"},
                {"name": "tiktok", "display_name": "TikTok", "categories": ["social"]},
            ]
        }
        apps = parse_application_catalog(catalog, ["tiktok", "fortnite"])
        assert [(app.name, app.is_blocked) for app in apps] == [
            ("fortnite", True),
            ("TikTok", True),
            ("YouTube", False),
        ]
        assert apps[1].categories == ["social"]

    def test_parse_profile(self):
        """Profile flags, filters and ad-block membership are read."""
        url = "/2.2/networks/1/profiles/77"
        profile = parse_profile(
            {
                "url": url,
                "name": "Kids",
                "paused": True,
                "premium_dns": {"blocked_applications": ["tiktok"]},
                "unified_content_filters": {"dns_policies": {"block_pornographic_content": True}},
            },
            {url},
        )
        assert profile.id == "profile-77"
        assert profile.paused is True
        assert profile.ad_block is True
        assert profile.blocked_applications == ["tiktok"]
        assert profile.filters.block_adult is True
        assert profile.filters.block_gaming is None
        assert [app.name for app in profile.available_applications] == ["tiktok"]

    def test_profile_identifier(self):
        """The explicit id wins over the URL."""
        assert profile_identifier({"id": " 9 ", "url": "/p/77"}) == "9"
        assert profile_identifier({"url": "/p/77"}) == "77"


# ── networks ──────────────────────────────────────────────────────────


class TestParseNetwork:
    """Test network assembly from a merged payload."""

    @pytest.fixture()
    def network_payload(self):
        return {
            "url": "/2.2/networks/5",
            "name": "Cabin",
            "nickname_label": "lake",
            "status": "connected",
            "capabilities": {"premium": {"capable": True}},
            "premium_status": "trialing",
            "guest_network": {"enabled": True, "name": "Guests", "password": "pw"},
            "routing": {
                "reservations": {"data": [{"url": "/r/1", "ip": "10.0.0.5", "mac": "aa"}]},
                "forwards": {"data": []},
            },
            "forwards": {"data": [{"url": "/f/1", "gateway_port": 80, "client_port": 8080, "protocol": "tcp"}]},
            "device_blacklist": {"count": 1, "data": [{"nickname": "Bad", "mac": "x"}]},
            "speedtest": [{"up_mbps": 20.5, "down_mbps": 300.0, "date": "2024-05-01"}],
            "ac_compat": {"enabled": True, "state": "ok"},
            "thread": {"enabled": True, "name": "MyThread", "channel": 15},
            "updates": {"state": "pending"},
        }

    def test_identity_and_flags(self, network_payload):
        """Ids, names and premium status."""
        network = parse_network(network_payload)
        assert network.id == "network-5"
        assert network.display_name == 'Cabin "lake"'
        assert network.premium_enabled is True
        assert network.guest_network_enabled is True
        assert network.guest_network_name == "Guests"
        assert network.updates.update_status == "pending"

    def test_routing_prefers_non_empty_sources(self, network_payload):
        """Routing sub-collections win only when they have rows."""
        routing = parse_network(network_payload).routing
        assert routing.reservation_count == 1
        assert routing.forward_count == 1
        assert routing.forwards[0].gateway_port == 80

    def test_sections(self, network_payload):
        """Security, speed, AC compatibility and thread sections are read."""
        network = parse_network(network_payload)
        assert network.security.blacklisted_device_names == ["Bad"]
        assert network.speed.measured_down_value == 300.0
        assert network.speed.measured_down_units == "Mbps"
        assert network.speed.latest_speed_test.up_mbps == 20.5
        assert network.ac_compatibility.enabled is True
        assert network.thread_details.name == "MyThread"
        assert network.features.thread_enabled is True

    def test_empty_sections(self, network_payload):
        """Absent collections give empty summaries rather than errors."""
        network = parse_network(network_payload)
        assert network.mesh is None
        assert network.realtime is None
        assert network.activity is None
        assert network.channel_utilization is None
        assert network.connected_clients_count == 0

    def test_minimal_payload(self):
        """A bare object still parses."""
        network = parse_network({})
        assert network.name == "Network"
        assert network.id == "network-unknown"


# ── actions ───────────────────────────────────────────────────────────


class TestAction:
    """Test action bodies and replay classification."""

    def _action(self, **kwargs) -> Action:
        defaults = dict(
            kind=ActionKind.SET_GUEST_NETWORK,
            network_id="5",
            endpoint="/2.2/networks/5/guestnetwork",
            method=HTTPMethod.PUT,
            label="Enable guest network",
        )
        defaults.update(kwargs)
        return Action(**defaults)

    def test_json_body(self):
        """Empty payloads send no body."""
        assert self._action().json_body is None
        assert self._action(payload={"enabled": True}).json_body == {"enabled": True}

    def test_transient_failures(self):
        """Only queue-eligible actions with transient errors are replayable."""
        action = self._action(queue_eligible=True)
        dropped = InvalidResponseError()
        dropped.__cause__ = requests.ConnectionError("reset")

        assert action.is_transient_failure(ServerError(503, "unavailable"))
        assert not action.is_transient_failure(ServerError(400, "bad request"))
        assert action.is_transient_failure(dropped)
        assert not action.is_transient_failure(InvalidResponseError())
        assert not self._action().is_transient_failure(ServerError(503, "unavailable"))
