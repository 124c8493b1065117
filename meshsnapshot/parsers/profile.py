"""Parental-control profile parsing."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

from meshsnapshot.identity import id_from_url, normalize_key, stable_id
from meshsnapshot.jsonpath import first_str, get, get_bool, get_dicts, get_str, get_str_map
from meshsnapshot.models import Profile, ProfileApplication, ProfileFilters
from meshsnapshot.parsers.values import parse_string_list

_BLOCKED_APPLICATION_PATHS = [
    ["premium_dns", "blocked_applications"],
    ["dns_policies", "blocked_applications"],
    ["blocked_applications"],
    ["blocked_apps"],
    ["applications", "blocked"],
]

_FILTER_KEYS = {
    "block_adult": "block_pornographic_content",
    "block_gaming": "block_gaming_content",
    "block_messaging": "block_messaging_content",
    "block_shopping": "block_shopping_content",
    "block_social": "block_social_content",
    "block_streaming": "block_streaming_content",
    "block_violent": "block_violent_content",
}


def profile_identifier(profile: dict[str, Any]) -> str | None:
    """API identifier used in per-profile endpoint paths."""
    identifier = get_str(profile, ["id"])
    if identifier is not None and identifier.strip():
        return identifier.strip()
    return id_from_url(get_str(profile, ["url"]))


def parse_application_catalog(payload: Any, blocked: list[str]) -> list[ProfileApplication]:
    """Merge the application catalog with the blocked list.

    Blocked names missing from the catalog still appear, as blocked entries.
    Blocked applications sort first, then by case-insensitive name.
    """
    blocked_lookup = {name.strip() for name in blocked if name.strip()}
    blocked_normalized = {normalize_key(name) for name in blocked_lookup}

    rows: list[dict[str, Any]] = []
    if isinstance(payload, dict):
        rows = get_dicts(payload, ["applications"]) or get_dicts(payload, ["data"]) or []
    elif isinstance(payload, list):
        rows = [row for row in payload if isinstance(row, dict)]

    entries: dict[str, ProfileApplication] = {}
    for row in rows:
        app_id = first_str(row, [["name"], ["id"], ["application_id"], ["package_name"], ["application"]])
        if app_id is None or not app_id.strip():
            continue
        app_id = app_id.strip()
        normalized = normalize_key(app_id)
        is_blocked = get_bool(row, ["is_blocked"])
        entries[normalized] = ProfileApplication(
            id=app_id,
            name=first_str(row, [["display_name"], ["app_name"], ["title"]]) or app_id,
            categories=parse_string_list(get(row, ["categories"]) or get(row, ["category_ids"])),
            icon_url=first_str(row, [["image_asset_url"], ["icon_url"]]),
            is_blocked=is_blocked if is_blocked is not None else normalized in blocked_normalized,
        )

    for name in sorted(blocked_lookup):
        normalized = normalize_key(name)
        if normalized and normalized not in entries:
            entries[normalized] = ProfileApplication(id=name, name=name, is_blocked=True)

    return sorted(entries.values(), key=lambda app: (not app.is_blocked, app.name.casefold()))


def parse_profile(data: dict[str, Any], ad_block_profiles: Collection[str] = ()) -> Profile:
    url = get_str(data, ["url"])
    blocked: list[str] = []
    for path in _BLOCKED_APPLICATION_PATHS:
        raw = get(data, path)
        if raw is not None:
            blocked = parse_string_list(raw)
            break

    return Profile(
        id=stable_id(id_from_url(url), [url, get_str(data, ["name"])], "profile"),
        name=get_str(data, ["name"]) or "Profile",
        paused=bool(get_bool(data, ["paused"])),
        ad_block=(url in ad_block_profiles) if url is not None else None,
        blocked_applications=blocked,
        available_applications=parse_application_catalog(get(data, ["applications_catalog"]), blocked),
        filters=ProfileFilters(
            **{
                field: get_bool(data, ["unified_content_filters", "dns_policies", key])
                for field, key in _FILTER_KEYS.items()
            }
        ),
        resources=get_str_map(data, ["resources"]),
    )
