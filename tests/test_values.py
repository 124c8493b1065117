"""Tests for lenient scalar coercions."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from meshsnapshot.parsers.values import (
    date_from_epoch,
    date_value,
    enum_label,
    first_rate_mbps,
    integer_value,
    iso_millis,
    numeric_value,
    parse_signal_dbm,
    parse_string_list,
    port_speed_label,
    port_speed_value,
    rate_mbps,
    string_value,
)

# ── numbers and strings ───────────────────────────────────────────────


class TestScalars:
    """Test number, integer and string coercion."""

    def test_numeric_value(self):
        """Numbers and numeric strings convert; other values do not."""
        assert numeric_value(3) == 3.0
        assert numeric_value("2.5") == 2.5
        assert numeric_value("n/a") is None
        assert numeric_value(None) is None
        assert numeric_value("nan") is None

    def test_integer_value_rounds(self):
        """Floats and float strings are rounded; bools become 0/1."""
        assert integer_value(4.6) == 5
        assert integer_value("41.4") == 41
        assert integer_value("7") == 7
        assert integer_value(True) == 1
        assert integer_value("abc") is None

    def test_string_value(self):
        """Integral floats render without ``.0``."""
        assert string_value(12.0) == "12"
        assert string_value(12) == "12"
        assert string_value("x") == "x"
        assert string_value(None) is None

    def test_enum_label(self):
        """Wrapped enums expose their value."""
        assert enum_label({"value": "connected"}) == "connected"
        assert enum_label("  ok ") == "ok"
        assert enum_label("") is None

    def test_parse_signal_dbm(self):
        """The leading integer token of a signal label is used."""
        assert parse_signal_dbm("-58 dBm") == -58
        assert parse_signal_dbm(" -58 dBm") == -58
        assert parse_signal_dbm("   ") is None
        assert parse_signal_dbm("weak") is None
        assert parse_signal_dbm(None) is None

    def test_parse_string_list(self):
        """Lists of strings or of named rows flatten to names."""
        assert parse_string_list([" a ", "", "b"]) == ["a", "b"]
        assert parse_string_list([{"name": "TikTok"}, {"id": "app-2"}]) == ["TikTok", "app-2"]
        assert parse_string_list("nope") == []


# ── rates ─────────────────────────────────────────────────────────────


class TestRates:
    """Test link-rate resolution to Mbps."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("866 Mbps", 866.0),
            ("1.2Gbit/s", 1200.0),
            ("500 kbps", 0.5),
            (433, 433.0),
            (866_000_000, 866.0),
            ({"rate_bps": 1_200_000_000}, 1200.0),
            ({"rate_mbps": 144}, 144.0),
            ({"rate_info": {"rate_bps": 65_000_000}}, 65.0),
        ],
    )
    def test_rate_mbps(self, value, expected):
        """Every supported encoding resolves to megabits per second."""
        assert rate_mbps(value) == pytest.approx(expected)

    def test_rate_mbps_unparseable(self):
        """Values with no number give None."""
        assert rate_mbps("fast") is None
        assert rate_mbps(None) is None

    def test_first_rate_mbps_uses_suffixes(self):
        """Rates nested under a prefix are found through the known suffixes."""
        data = {"connectivity": {"rx_rate_info": {"rate_bps": 400_000_000}}}
        assert first_rate_mbps(data, [["connectivity", "rx_rate_info"]]) == pytest.approx(400.0)


class TestPortSpeeds:
    """Test port speed labels."""

    @pytest.mark.parametrize(
        "value, expected",
        [("P2500", "2.5 Gbps"), ("P1000", "1 Gbps"), (3, "2.5 Gbps"), ("2", "1 Gbps"), ({"tag": "P100"}, "100 Mbps")],
    )
    def test_port_speed_value(self, value, expected):
        """PHY tokens and enum ordinals map to readable labels."""
        assert port_speed_value(value) == expected

    def test_label_with_max(self):
        """Differing negotiated and supported speeds are combined."""
        assert port_speed_label("P1000", "P2500", None) == "1 Gbps (max 2.5 Gbps)"

    def test_label_same_speed(self):
        """Matching speeds give a single label."""
        assert port_speed_label("P1000", "P1000", None) == "1 Gbps"

    def test_label_fallback(self):
        """The fallback is used when neither speed is present."""
        assert port_speed_label(None, None, "P100") == "100 Mbps"
        assert port_speed_label(None, "P2500", None) == "max 2.5 Gbps"


# ── timestamps ────────────────────────────────────────────────────────


class TestTimestamps:
    """Test epoch and ISO-8601 timestamp handling."""

    def test_epoch_seconds_and_millis(self):
        """Seconds and milliseconds epochs are told apart by magnitude."""
        seconds = date_from_epoch(1_700_000_000)
        millis = date_from_epoch(1_700_000_000_000)
        assert seconds == millis == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_date_value_iso(self):
        """ISO text parses; naive text is taken as UTC."""
        assert date_value("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert date_value("2024-05-01T10:00:00") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert date_value("yesterday") is None

    def test_iso_millis(self):
        """Timestamps format as UTC with milliseconds and ``Z``."""
        moment = datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
        assert iso_millis(moment) == "2024-05-01T10:00:00.123Z"
