"""Tests for usage-window queries, activity collection and channel-utilization probing."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from meshsnapshot.activity import ActivityCollector, query_window, top_timeline_devices
from meshsnapshot.channels import (
    CANONICAL_BANDS,
    ChannelUtilizationCollector,
    band_candidates,
    base_paths,
    eero_ids,
    query_variants,
)

NOW = datetime(2024, 5, 15, 10, 30, tzinfo=timezone.utc)  # a Wednesday

# ── query windows ─────────────────────────────────────────────────────


class TestQueryWindow:
    """Test calendar windows for the usage endpoints."""

    def test_day(self):
        """The day runs from local midnight, hourly."""
        window = query_window("UTC", "day", NOW)
        assert window.start == "2024-05-15T00:00:00.000Z"
        assert window.end == "2024-05-15T23:59:59.000Z"
        assert window.cadence == "hourly"

    def test_week_starts_sunday(self):
        """The week starts on the most recent Sunday, daily."""
        window = query_window("UTC", "week", NOW)
        assert window.start == "2024-05-12T00:00:00.000Z"
        assert window.end == "2024-05-18T23:59:59.000Z"
        assert window.cadence == "daily"

    def test_week_on_sunday(self):
        """On a Sunday the week starts that day."""
        window = query_window("UTC", "week", datetime(2024, 5, 12, 8, tzinfo=timezone.utc))
        assert window.start == "2024-05-12T00:00:00.000Z"

    def test_month_and_december(self):
        """The month covers the calendar month, across a year boundary too."""
        assert query_window("UTC", "month", NOW).end == "2024-05-31T23:59:59.000Z"
        december = query_window("UTC", "month", datetime(2024, 12, 10, tzinfo=timezone.utc))
        assert december.start == "2024-12-01T00:00:00.000Z"
        assert december.end == "2024-12-31T23:59:59.000Z"

    def test_network_timezone(self):
        """Windows follow the network's local midnight."""
        window = query_window("America/New_York", "day", datetime(2024, 5, 15, 2, tzinfo=timezone.utc))
        assert window.start == "2024-05-14T04:00:00.000Z"

    def test_unknown_timezone_and_period(self):
        """Unknown zones fall back to UTC; unknown periods give None."""
        assert query_window("Mars/Olympus", "day", NOW).start == "2024-05-15T00:00:00.000Z"
        assert query_window("UTC", "year", NOW) is None

    def test_params(self):
        """Query parameters carry the timezone and an optional cadence override."""
        params = query_window("UTC", "day", NOW).params("UTC", "daily")
        assert params["cadence"] == "daily"
        assert params["timezone"] == "UTC"


class TestTopTimelineDevices:
    """Test picking devices for hourly timelines."""

    @pytest.fixture()
    def device_usage(self):
        return {
            "data_usage_day": {
                "values": [
                    {"mac": "b", "download": 5},
                    {"mac": "a", "download": 5},
                    {"url": "/x/c", "download": 50, "upload": -10},
                ]
            }
        }

    def test_ranked_by_traffic_then_key(self, device_usage):
        """Highest combined traffic first; ties by key."""
        ranked = top_timeline_devices(device_usage, limit=2)
        assert [device["resource_key"] for device in ranked] == ["c", "a"]

    def test_limit_at_least_one(self, device_usage):
        """A limit below one still returns the top device."""
        assert len(top_timeline_devices(device_usage, limit=0)) == 1

    def test_mac_rebuilt_from_key(self):
        """A compact MAC key is turned back into a MAC."""
        usage = {"data_usage_month": {"values": [{"resource_key": "aabbccddeeff", "download": 1}]}}
        (device,) = top_timeline_devices(usage)
        assert device["mac"] == "AA:BB:CC:DD:EE:FF"


# ── activity collection ───────────────────────────────────────────────


class TestActivityCollector:
    """Test best-effort activity collection."""

    def test_collect_with_fallbacks(self, fake_transport):
        """Series use fallbacks, device usage passes through and timelines are attached."""
        transport = fake_transport(
            {
                "/2.2/networks/111/data_usage": {"values": [{"download": 100, "upload": 10}]},
                "/2.2/networks/111/data_usage/eeros/summary": [{"url": "/2.2/eeros/1", "download": 5}],
                "/2.2/networks/111/data_usage/devices": {
                    "values": [{"mac": "aa:bb:cc:dd:ee:ff", "display_name": "Laptop", "download": 40}]
                },
                "/2.2/networks/111/data_usage/devices/aa:bb:cc:dd:ee:ff": {"series": []},
            }
        )

        activity = ActivityCollector(transport).collect("/2.2/networks/111", "UTC")

        assert activity["network"]["data_usage_day"] == [{"download": 100, "upload": 10}]
        assert activity["eeros"]["data_usage_month"] == [{"url": "/2.2/eeros/1", "download": 5}]
        assert activity["devices"]["data_usage_week"]["values"][0]["display_name"] == "Laptop"
        (timeline,) = activity["devices"]["device_timelines"]
        assert timeline == {
            "resource_key": "aa:bb:cc:dd:ee:ff",
            "mac": "aa:bb:cc:dd:ee:ff",
            "display_name": "Laptop",
            "payload": {"series": []},
        }
        day_calls = [p for p in transport.paths_starting("/2.2/networks/111/data_usage?") if "cadence=hourly" in p]
        assert day_calls
        (timeline_call,) = transport.paths_starting("/2.2/networks/111/data_usage/devices/aa:")
        assert timeline_call.startswith("/2.2/networks/111/data_usage/devices/aa:bb:cc:dd:ee:ff?")

    def test_nothing_available(self, fake_transport):
        """No usage endpoints means no activity section."""
        assert ActivityCollector(fake_transport()).collect("/2.2/networks/111", "UTC") is None


# ── channel utilization ───────────────────────────────────────────────


class TestChannelVariants:
    """Test channel-utilization query shapes."""

    def test_band_candidates(self):
        """Advertised bands are unioned; none advertised means the canonical set."""
        eeros = [{"wifi_bands": ["band_5GHz_low", "band_2_4GHz"]}, {"wifiBands": ["band_2_4GHz"]}]
        assert band_candidates(eeros) == ["band_2_4GHz", "band_5GHz_low"]
        assert band_candidates([]) == sorted(CANONICAL_BANDS)

    def test_eero_ids(self):
        """Numeric ids come from ``id`` or the URL; non-numeric URLs are skipped."""
        eeros = [{"id": "3"}, {"url": "/2.2/eeros/12"}, {"url": "/2.2/eeros/abc"}, {"id": 3}]
        assert eero_ids(eeros) == [3, 12]

    def test_variant_order(self):
        """Most specific variants come first; the last one uses named granularity."""
        variants = query_variants([{"id": 1, "wifi_bands": ["band_2_4GHz"]}], "Europe/Berlin", NOW)

        assert len(variants) == 6
        assert variants[0][-2:] == [("eero_id", "1"), ("band", "band_2_4GHz")]
        assert variants[1][-1] == ("band", "band_2_4GHz")
        assert variants[2][-1] == ("eero_id", "1")
        assert variants[3][-1] == ("gap_data_placeholder", "-1")
        assert variants[4][-1] == ("timezone", "Europe/Berlin")
        assert ("granularity", "fifteen_minutes") in variants[5]
        assert variants[0][:2] == [("start", "2024-05-15T04:30:00.000Z"), ("end", "2024-05-15T10:30:00.000Z")]

    def test_base_paths_unique(self):
        """Conventional, advertised and URL-relative paths are tried once each."""
        paths = base_paths("111", "/2.2/networks/111", {"channel_utilization": "/2.3/cu"})
        assert paths == ["/2.2/networks/111/channel_utilization", "/2.3/cu"]


class TestChannelCollector:
    """Test probing for channel-utilization data."""

    def test_first_response_with_samples(self, fake_transport):
        """Empty responses are skipped until a base path returns samples."""
        transport = fake_transport(
            {
                "/2.2/networks/111/channel_utilization": {"utilization": []},
                "/2.3/cu": {"utilization": [{"eero_id": 1, "channel": 36}]},
            }
        )
        eeros = [{"id": 1, "wifi_bands": ["band_5GHz_low"]}]

        result = ChannelUtilizationCollector(transport).collect(
            "111", "/2.2/networks/111", {"channel_utilization": "/2.3/cu"}, "UTC", eeros
        )

        assert result == {"utilization": [{"eero_id": 1, "channel": 36}]}
        assert len(transport.paths_starting("/2.2/networks/111/channel_utilization")) == 6
        assert len(transport.paths_starting("/2.3/cu")) == 1

    def test_no_data(self, fake_transport):
        """Nothing found anywhere gives None."""
        collector = ChannelUtilizationCollector(fake_transport())
        assert collector.collect("111", "/2.2/networks/111", {}, "UTC", []) is None
