"""Tests for data-usage normalization, joins and activity rollups."""

from __future__ import annotations

from datetime import datetime, timezone

from meshsnapshot.models import Client, Node
from meshsnapshot.usage import (
    BUSIEST_DEVICE_LIMIT,
    Direction,
    UsageTotals,
    activity_summary,
    attach_client_usage,
    attach_node_usage,
    resource_key_for_row,
    series_total,
    timeline_samples,
    top_device_usage,
    usage_by_resource,
    usage_rows,
    usage_totals,
)


def _activity(section: str, period: str, rows: list[dict]) -> dict:
    return {"activity": {section: {f"data_usage_{period}": {"values": rows}}}}


# ── rows and totals ───────────────────────────────────────────────────


class TestUsageRows:
    """Test row extraction and totals."""

    def test_rows_from_values(self):
        """Rows are read from a ``values`` container."""
        data = {"u": {"values": [{"download": 1}]}}
        assert usage_rows(data, ["u"]) == [{"download": 1}]

    def test_direct_totals_object(self):
        """A totals object is its own single row."""
        data = {"u": {"download": 10, "upload": 2}}
        assert usage_rows(data, ["u"]) == [{"download": 10, "upload": 2}]

    def test_missing_path(self):
        """Absent paths give no rows."""
        assert usage_rows({}, ["u"]) == []

    def test_flat_totals(self):
        """Flat and ``*_bytes`` fields are summed per direction."""
        totals = usage_totals([{"download": 10, "upload": 1}, {"download_bytes": 5}, {"usage": {"up": 2}}])
        assert totals == UsageTotals(download=15, upload=3)

    def test_directional_series(self):
        """Series rows split by type sum their samples into one direction."""
        rows = [
            {"type": "download", "values": [{"value": 4}, {"value": 6}]},
            {"type": "UPLOAD", "sum": 3},
        ]
        assert usage_totals(rows) == UsageTotals(download=10, upload=3)

    def test_negative_values_clamp(self):
        """Negative byte counts never reduce totals."""
        assert series_total({"values": [{"value": -5}, {"value": 2}]}, Direction.DOWNLOAD) == 2

    def test_empty_totals(self):
        """No usable rows give empty totals."""
        assert usage_totals([{"other": 1}]).empty


class TestResourceKeys:
    """Test which resource a usage row belongs to."""

    def test_url_id_first(self):
        """The URL id wins over the MAC."""
        row = {"url": "/2.2/networks/1/devices/abc", "mac": "AA:BB:CC:DD:EE:FF"}
        assert resource_key_for_row(row) == "abc"

    def test_placeholder_mac_skipped(self):
        """All-zero MACs fall through to id fields."""
        assert resource_key_for_row({"mac": "00:00:00:00:00:00", "id": "dev-1"}) == "dev-1"

    def test_unkeyed_rows_dropped(self):
        """Rows without any key are not attributed."""
        data = {"u": [{"download": 1}, {"mac": "aa", "download": 2}]}
        assert usage_by_resource(data, ["u"]) == {"aa": UsageTotals(download=2)}


# ── joins ─────────────────────────────────────────────────────────────


class TestUsageJoins:
    """Test joining usage onto clients and nodes."""

    def test_client_joined_by_normalized_mac(self):
        """A lower-case colon MAC in usage meets an upper-case client MAC."""
        data = _activity("devices", "day", [{"mac": "aa:bb:cc:dd:ee:ff", "download": 100, "upload": 10}])
        client = Client(id="client-12345", name="Laptop", mac="AA:BB:CC:DD:EE:FF")

        (joined,) = attach_client_usage(data, [client])

        assert joined.usage_day_download == 100
        assert joined.usage_day_upload == 10
        assert joined.usage_week_download is None

    def test_client_joined_by_id(self):
        """The trimmed stable id matches a URL-keyed row."""
        data = _activity("devices", "month", [{"url": "/2.2/networks/1/devices/abc", "download": 7}])
        (joined,) = attach_client_usage(data, [Client(id="client-abc", name="TV")])
        assert joined.usage_month_download == 7

    def test_unmatched_client_unchanged(self):
        """Clients without usage keep their fields empty."""
        client = Client(id="client-x", name="X")
        assert attach_client_usage({}, [client]) == [client]

    def test_node_joined_by_mac(self):
        """Node usage matches on the node MAC."""
        data = _activity("eeros", "week", [{"mac": "f0:00:00:00:00:01", "download": 9, "upload": 1}])
        node = Node(id="eero-1", name="Living Room", mac_address="F0:00:00:00:00:01")
        (joined,) = attach_node_usage(data, [node])
        assert joined.usage_week_download == 9


# ── busiest devices and timelines ─────────────────────────────────────


class TestBusiestDevices:
    """Test the busiest-device ranking."""

    def test_ties_break_on_name(self):
        """Equal usage sorts by case-insensitive name."""
        rows = [
            {"mac": "11:11:11:11:11:11", "display_name": "beta", "download": 50},
            {"mac": "22:22:22:22:22:22", "display_name": "Alpha", "download": 50},
            {"mac": "33:33:33:33:33:33", "display_name": "aardvark", "download": 10},
        ]
        ranked = top_device_usage(_activity("devices", "month", rows), [])
        assert [entry.name for entry in ranked] == ["Alpha", "beta", "aardvark"]
        assert ranked[0].month_download_bytes == 50

    def test_client_name_preferred(self):
        """A matching client's name replaces the usage row's name."""
        rows = [{"mac": "aa:bb:cc:dd:ee:ff", "display_name": "unknown-device", "download": 5}]
        client = Client(id="client-1", name="Laptop", mac="AA:BB:CC:DD:EE:FF", manufacturer="Acme")
        (entry,) = top_device_usage(_activity("devices", "day", rows), [client])
        assert entry.name == "Laptop"
        assert entry.manufacturer == "Acme"

    def test_mac_spellings_rank_once(self):
        """Period tables spelling one MAC differently yield a single entry."""
        data = {
            "activity": {
                "devices": {
                    "data_usage_day": {"values": [{"mac": "AA:BB:CC:DD:EE:FF", "display_name": "laptop", "download": 10}]},
                    "data_usage_month": {"values": [{"mac": "aa:bb:cc:dd:ee:ff", "download": 500}]},
                }
            }
        }

        (entry,) = top_device_usage(data, [])

        assert entry.id == "usage-device-aabbccddeeff"
        assert entry.name == "laptop"
        assert entry.day_download_bytes == 10
        assert entry.month_download_bytes == 500

    def test_limit(self):
        """At most the configured number of devices is returned."""
        rows = [{"mac": f"00:00:00:00:01:{i:02d}", "download": i + 1} for i in range(BUSIEST_DEVICE_LIMIT + 3)]
        assert len(top_device_usage(_activity("devices", "day", rows), [])) == BUSIEST_DEVICE_LIMIT


class TestTimelines:
    """Test usage timeline samples."""

    def test_series_payload(self):
        """Download and upload series are aligned by timestamp."""
        payload = {
            "series": [
                {
                    "type": "download",
                    "values": [
                        {"time": "2024-05-01T11:00:00Z", "value": 5},
                        {"time": "2024-05-01T10:00:00Z", "value": 100},
                    ],
                },
                {"type": "upload", "values": [{"time": "2024-05-01T10:00:00Z", "value": 7}]},
            ]
        }
        samples = timeline_samples(payload)
        assert [s.timestamp for s in samples] == [
            datetime(2024, 5, 1, 10, tzinfo=timezone.utc),
            datetime(2024, 5, 1, 11, tzinfo=timezone.utc),
        ]
        assert (samples[0].download_bytes, samples[0].upload_bytes) == (100, 7)
        assert (samples[1].download_bytes, samples[1].upload_bytes) == (5, 0)

    def test_flat_payload_skips_idle(self):
        """Flat rows with no traffic are dropped."""
        payload = {
            "values": [
                {"time": "2024-05-01T10:00:00Z", "download": 0, "upload": 0},
                {"time": "2024-05-01T11:00:00Z", "download": 3},
            ]
        }
        (sample,) = timeline_samples(payload)
        assert sample.download_bytes == 3

    def test_unusable_payload(self):
        """Non-collections give no samples."""
        assert timeline_samples(None) == []
        assert timeline_samples("x") == []


class TestActivitySummary:
    """Test the per-network activity rollup."""

    def test_empty_is_none(self):
        """No usage anywhere means no summary."""
        assert activity_summary({}, []) is None

    def test_network_totals_and_timelines(self):
        """Network totals, busiest devices and non-empty timelines are combined."""
        data = {
            "activity": {
                "network": {"data_usage_day": {"download": 1000, "upload": 200}},
                "devices": {
                    "data_usage_day": {"values": [{"mac": "aa:bb:cc:dd:ee:ff", "download": 40}]},
                    "device_timelines": [
                        {
                            "resource_key": "aabbccddeeff",
                            "mac": "AA:BB:CC:DD:EE:FF",
                            "payload": {"values": [{"time": "2024-05-01T10:00:00Z", "download": 40}]},
                        },
                        {"resource_key": "112233445566", "payload": {"values": []}},
                    ],
                },
            }
        }
        client = Client(id="client-1", name="Laptop", mac="AA:BB:CC:DD:EE:FF")

        summary = activity_summary(data, [client])

        assert summary.network_day_download == 1000
        assert summary.network_day_upload == 200
        assert [device.name for device in summary.busiest_devices] == ["Laptop"]
        assert len(summary.busiest_device_timelines) == 1
        assert summary.busiest_device_timelines[0].name == "Laptop"
