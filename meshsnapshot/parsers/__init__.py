"""Payload parsers: raw merged JSON in, immutable snapshot models out."""

from meshsnapshot.parsers.values import date_value, integer_value, numeric_value, rate_mbps, string_value
from meshsnapshot.parsers.client import parse_client
from meshsnapshot.parsers.profile import parse_application_catalog, parse_profile, profile_identifier
from meshsnapshot.parsers.node import merge_ethernet_statuses, parse_connection_interface, parse_node
from meshsnapshot.parsers.network import parse_network

__all__ = [
    "date_value",
    "integer_value",
    "merge_ethernet_statuses",
    "numeric_value",
    "parse_application_catalog",
    "parse_client",
    "parse_connection_interface",
    "parse_network",
    "parse_node",
    "parse_profile",
    "profile_identifier",
    "rate_mbps",
    "string_value",
]
