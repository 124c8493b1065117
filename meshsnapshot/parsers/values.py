"""Lenient scalar coercions shared by the payload parsers.

The API reports the same quantity as a number, a numeric string, a
``{value: ...}`` wrapper or a unit-suffixed label depending on endpoint and
firmware, so every helper here accepts all of them and returns ``None``
rather than raising.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from meshsnapshot.jsonpath import Path, get, get_int, get_str, is_number

_PHY_RATE_TOKENS = {
    "P10": "10 Mbps",
    "P100": "100 Mbps",
    "P1000": "1 Gbps",
    "P2500": "2.5 Gbps",
    "P5000": "5 Gbps",
    "P10000": "10 Gbps",
}

# enum ordinals used by newer firmware for the same rates
_PHY_RATE_ENUM = {
    0: "10 Mbps",
    1: "100 Mbps",
    2: "1 Gbps",
    3: "2.5 Gbps",
    4: "5 Gbps",
    5: "10 Gbps",
}

_RATE_NUMBER = re.compile(r"[-+]?[0-9]*\.?[0-9]+")

# suffixes tried after the direct value when resolving a rate under a prefix
_RATE_SUFFIXES = (
    "rate_mbps",
    "rateMbps",
    "mbps",
    "rate",
    "rate_info",
    "rateInfo",
    "rate_bps",
    "rateBps",
    "bps",
    "value",
)


def numeric_value(value: Any) -> float | None:
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def integer_value(value: Any) -> int | None:
    """Integer from an int, a finite float or a numeric string."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return round(value) if math.isfinite(value) else None
    if isinstance(value, str):
        trimmed = value.strip()
        try:
            return int(trimmed)
        except ValueError:
            pass
        try:
            parsed = float(trimmed)
        except ValueError:
            return None
        return round(parsed) if math.isfinite(parsed) else None
    return None


def string_value(value: Any) -> str | None:
    """Strings pass through; numbers are rendered without a spurious ``.0``."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and math.isfinite(value):
        return str(int(value)) if value.is_integer() else repr(value)
    return None


def enum_label(value: Any) -> str | None:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, dict):
        for key in ("value", "name", "tag", "label"):
            label = string_value(value.get(key))
            if label is not None:
                return label
        return None
    return string_value(value)


def first_value(sources: Sequence[dict[str, Any]], paths: Iterable[Path]) -> Any:
    """First non-null value, scanning every path in each source before the next."""
    paths = list(paths)
    for source in sources:
        for path in paths:
            found = get(source, path)
            if found is not None:
                return found
    return None


def first_nonblank_in(sources: Sequence[dict[str, Any]], paths: Iterable[Path]) -> str | None:
    paths = list(paths)
    for source in sources:
        for path in paths:
            found = get_str(source, path)
            if found is not None and found.strip():
                return found
    return None


def first_int_in(sources: Sequence[dict[str, Any]], paths: Iterable[Path]) -> int | None:
    paths = list(paths)
    for source in sources:
        for path in paths:
            found = get_int(source, path)
            if found is not None:
                return found
    return None


def first_array_length(sources: Sequence[dict[str, Any]], paths: Iterable[Path]) -> int | None:
    """Length of the first list or object found; objects count their members."""
    paths = list(paths)
    for source in sources:
        for path in paths:
            found = get(source, path)
            if isinstance(found, (list, dict)):
                return len(found)
    return None


def first_numeric(data: Any, paths: Iterable[Path]) -> float | None:
    for path in paths:
        found = numeric_value(get(data, path))
        if found is not None:
            return found
    return None


def first_integer(data: Any, paths: Iterable[Path]) -> int | None:
    for path in paths:
        found = integer_value(get(data, path))
        if found is not None:
            return found
    return None


def parse_rate_string_mbps(text: str) -> float | None:
    """Parse ``"866 Mbps"``, ``"1.2Gbit/s"`` or a bare number into Mbps.

    Unitless values above 100000 are taken to be bits per second.
    """
    normalized = text.lower().replace(" ", "")
    match = _RATE_NUMBER.search(normalized)
    if match is None:
        return None
    number = float(match.group(0))
    if not math.isfinite(number):
        return None
    unit = normalized[match.end() :]
    if any(token in unit for token in ("gbit/s", "gbitps", "gbps")):
        return number * 1000
    if any(token in unit for token in ("mbit/s", "mbitps", "mbps")):
        return number
    if any(token in unit for token in ("kbit/s", "kbitps", "kbps")):
        return number / 1000
    if "bit/s" in unit or "bps" in unit:
        return number / 1_000_000
    return number / 1_000_000 if number > 100_000 else number


def rate_mbps(value: Any) -> float | None:
    """Resolve any of the rate encodings to megabits per second."""
    if value is None:
        return None
    if isinstance(value, dict):
        for key in ("rate_mbps", "rateMbps", "mbps", "value_mbps", "valueMbps", "link_speed_mbps", "linkSpeedMbps"):
            mbps = numeric_value(value.get(key))
            if mbps is not None:
                return mbps
        for key in ("rate_bps", "rateBps", "bps", "value_bps", "valueBps"):
            bps = numeric_value(value.get(key))
            if bps is not None:
                return bps / 1_000_000
        for key in ("rate", "rate_info", "rateInfo", "value"):
            nested = value.get(key)
            if nested is not None:
                rate = rate_mbps(nested)
                if rate is not None:
                    return rate
    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed:
            parsed = parse_rate_string_mbps(trimmed)
            if parsed is not None:
                return parsed
    numeric = numeric_value(value)
    if numeric is None:
        return None
    return numeric / 1_000_000 if numeric > 100_000 else numeric


def first_rate_mbps(data: Any, prefixes: Iterable[Path]) -> float | None:
    for prefix in prefixes:
        rate = rate_mbps(get(data, prefix))
        if rate is not None:
            return rate
        for suffix in _RATE_SUFFIXES:
            rate = rate_mbps(get(data, [*prefix, suffix]))
            if rate is not None:
                return rate
    return None


def formatted_bit_rate(bits_per_second: float) -> str:
    if bits_per_second >= 1_000_000_000:
        return f"{bits_per_second / 1_000_000_000:.1f} Gbps"
    if bits_per_second >= 1_000_000:
        return f"{bits_per_second / 1_000_000:.0f} Mbps"
    if bits_per_second >= 1_000:
        return f"{bits_per_second / 1_000:.0f} Kbps"
    return f"{bits_per_second:.0f} bps"


def normalized_port_speed_text(value: str) -> str | None:
    trimmed = value.strip()
    if not trimmed:
        return None
    phy = _PHY_RATE_TOKENS.get(trimmed.upper())
    if phy is not None:
        return phy
    compact = trimmed.replace("_", "")
    if "." not in compact:
        try:
            ordinal = int(compact)
        except ValueError:
            ordinal = None
        if ordinal is not None and ordinal in _PHY_RATE_ENUM:
            return _PHY_RATE_ENUM[ordinal]
    try:
        numeric = float(compact)
    except ValueError:
        numeric = None
    if numeric is not None and math.isfinite(numeric):
        if numeric > 100_000_000:
            return formatted_bit_rate(numeric)
        if numeric >= 1000:
            return f"{numeric / 1000:.1f} Gbps"
        if numeric >= 10:
            return f"{numeric:.0f} Mbps"
    return trimmed


def port_speed_value(value: Any) -> str | None:
    """Human-readable link speed from a tag, enum ordinal, number or rate object."""
    if value is None:
        return None
    if isinstance(value, dict):
        for key in ("tag", "name", "label", "display", "value"):
            label = string_value(value.get(key))
            if label is not None:
                return normalized_port_speed_text(label)
        for key in ("value", "rate", "rate_info", "rateInfo"):
            nested = value.get(key)
            if nested is not None:
                label = port_speed_value(nested)
                if label is not None:
                    return label
        rate = integer_value(value.get("rate"))
        if rate is not None:
            return normalized_port_speed_text(str(rate))
        for keys in (("rate_mbps", "rateMbps", "mbps"), ("rate_bps", "rateBps", "bps")):
            for key in keys:
                numeric = numeric_value(value.get(key))
                if numeric is not None:
                    return normalized_port_speed_text(str(numeric))
    text = string_value(value)
    if text is not None:
        return normalized_port_speed_text(text)
    number = integer_value(value)
    if number is not None:
        return _PHY_RATE_ENUM.get(number) or normalized_port_speed_text(str(number))
    return None


def port_speed_label(negotiated: Any, supported: Any, fallback: Any) -> str | None:
    """Combine negotiated and maximum speed, e.g. ``"1 Gbps (max 2.5 Gbps)"``."""
    negotiated_label = port_speed_value(negotiated)
    supported_label = port_speed_value(supported)
    if negotiated_label and supported_label and negotiated_label != supported_label:
        return f"{negotiated_label} (max {supported_label})"
    if negotiated_label:
        return negotiated_label
    if supported_label:
        return f"max {supported_label}"
    return port_speed_value(fallback)


def parse_string_list(value: Any) -> list[str]:
    """Trimmed names from a list of strings or of ``{id|name|value|title}`` rows."""
    if not isinstance(value, list):
        return []
    if all(isinstance(item, str) for item in value):
        return [item.strip() for item in value if item.strip()]
    if all(isinstance(item, dict) for item in value):
        names: list[str] = []
        for row in value:
            for key in ("id", "name", "value", "title"):
                candidate = row.get(key)
                if isinstance(candidate, str):
                    if candidate.strip():
                        names.append(candidate.strip())
                    break
        return names
    return []


def date_from_epoch(epoch: float | None) -> datetime | None:
    if epoch is None:
        return None
    seconds = epoch / 1000 if epoch > 1_000_000_000_000 else epoch
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def date_value(value: Any) -> datetime | None:
    """Timestamp from a datetime, an epoch (seconds or millis) or ISO-8601 text."""
    if isinstance(value, datetime):
        return value
    epoch = numeric_value(value)
    if epoch is not None:
        return date_from_epoch(epoch)
    text = string_value(value)
    if text is None or not text.strip():
        return None
    try:
        parsed = datetime.fromisoformat(text.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def iso_millis(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_signal_dbm(signal: str | None) -> int | None:
    """Leading integer of a signal label such as ``"-58 dBm"``."""
    if signal is None:
        return None
    tokens = signal.split()
    if not tokens:
        return None
    try:
        return int(tokens[0])
    except ValueError:
        return None


def average(values: Iterable[float]) -> float | None:
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)
