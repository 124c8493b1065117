"""Tests for stable identifiers and join keys."""

from __future__ import annotations

import pytest

from meshsnapshot.identity import (
    id_from_url,
    is_placeholder_mac,
    mac_from_resource_key,
    normalize_key,
    stable_id,
    trim_stable_prefix,
)

# ── normalize_key ─────────────────────────────────────────────────────


class TestNormalizeKey:
    """Test the shared join-key normalization."""

    def test_mac_spellings_meet(self):
        """Colon-separated upper-case and compact lower-case MACs normalize identically."""
        assert normalize_key("AA:BB:CC:DD:EE:FF") == normalize_key("aabbccddeeff") == "aabbccddeeff"

    def test_strips_punctuation_and_whitespace(self):
        """Whitespace, case and punctuation are removed."""
        assert normalize_key("  Living-Room ") == "livingroom"

    def test_punctuation_only_falls_back_to_lowered(self):
        """A key that strips to nothing keeps its lowercased form."""
        assert normalize_key(" -_- ") == "-_-"

    def test_empty_and_none(self):
        """None and blank input give an empty key."""
        assert normalize_key(None) == ""
        assert normalize_key("   ") == ""


# ── stable_id ─────────────────────────────────────────────────────────


class TestStableId:
    """Test prefixed stable id derivation."""

    def test_primary_wins(self):
        """A usable primary candidate is used with the prefix."""
        assert stable_id("12345", ["AA:BB"], "client") == "client-12345"

    def test_first_non_empty_fallback(self):
        """Empty candidates are skipped in order."""
        assert stable_id(None, ["", "  ", "AA:BB:CC:DD:EE:FF", "host"], "client") == "client-aabbccddeeff"

    def test_unknown_when_all_empty(self):
        """Every candidate empty gives ``{prefix}-unknown``."""
        assert stable_id(None, [None, ""], "eero") == "eero-unknown"

    def test_deterministic(self):
        """Re-running on the same inputs yields the same id."""
        first = stable_id("Office", ["x"], "eero")
        assert all(stable_id("Office", ["x"], "eero") == first for _ in range(5))


# ── URL and MAC helpers ───────────────────────────────────────────────


class TestUrlHelpers:
    """Test id extraction from resource URLs."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("/2.2/networks/12345", "12345"),
            ("https://api-user.e2ro.com/2.2/eeros/99/", "99"),
            ("/2.2/networks/1/devices/aabbccddeeff", "aabbccddeeff"),
            ("aa:bb:cc:dd:ee:ff", "aa:bb:cc:dd:ee:ff"),
            ("  ", None),
            (None, None),
        ],
    )
    def test_id_from_url(self, value, expected):
        """The final path segment is the natural id."""
        assert id_from_url(value) == expected

    def test_trim_stable_prefix(self):
        """The ``prefix-`` head is removed only when something follows it."""
        assert trim_stable_prefix("client-aabbcc") == "aabbcc"
        assert trim_stable_prefix("plain") == "plain"
        assert trim_stable_prefix("client-") == "client-"


class TestMacHelpers:
    """Test MAC placeholder detection and reconstruction."""

    def test_placeholder_mac(self):
        """All-zero MACs are placeholders in any separator style."""
        assert is_placeholder_mac("00:00:00:00:00:00")
        assert is_placeholder_mac("000000000000")
        assert not is_placeholder_mac("00:00:00:00:00:01")
        assert not is_placeholder_mac(None)

    def test_mac_from_resource_key(self):
        """Compact and dash-separated keys become upper-case colon MACs."""
        assert mac_from_resource_key("aabbccddeeff") == "AA:BB:CC:DD:EE:FF"
        assert mac_from_resource_key("aa-bb-cc-dd-ee-ff") == "AA:BB:CC:DD:EE:FF"

    def test_non_mac_key(self):
        """Keys that are not 12 alphanumerics are rejected."""
        assert mac_from_resource_key("12345") is None
        assert mac_from_resource_key("") is None
