"""Command-line interface for eero account snapshots.

Examples:
  # Start a login; the printed token is needed for verify
  meshsnapshot login you@example.com
  meshsnapshot --token <TOKEN> verify 123456

  # Snapshot every network, or just one, as tables or JSON
  meshsnapshot --token <TOKEN> snapshot
  meshsnapshot snapshot --network 12345 --format json --raw-dir ./raw

  # Send a write request
  meshsnapshot perform --method PUT --endpoint /2.2/networks/12345/guestnetwork \\
      --payload '{"enabled": true}'
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from tabulate import tabulate

from meshsnapshot.client import MeshClient
from meshsnapshot.config import Settings
from meshsnapshot.exceptions import MeshError
from meshsnapshot.models import AccountSnapshot, Action, ActionKind, HTTPMethod, Network, RawNetworkPayload


def _mbps(value: float | None) -> str:
    return f"{value:.1f}" if value is not None else "-"


def _bytes(value: int | None) -> str:
    if value is None:
        return "-"
    size = float(value)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1000:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1000
    return f"{size:.1f} TB"


def _yes_no(value: bool | None) -> str:
    if value is None:
        return "-"
    return "yes" if value else "no"


def format_network(network: Network) -> str:
    """Render one network as a block of tables."""
    sections: list[str] = []

    mesh = network.mesh
    overview = [
        ["Network", network.name],
        ["Status", network.status or "-"],
        ["Gateway IP", network.gateway_ip or "-"],
        ["Clients connected", network.connected_clients_count],
        ["Eeros online", f"{mesh.online_eero_count}/{mesh.eero_count}" if mesh else "-"],
        ["Update status", network.updates.update_status or "-"],
    ]
    if network.realtime is not None:
        overview.append(
            [
                "Live throughput (proxy)",
                f"{_mbps(network.realtime.download_mbps)} down / {_mbps(network.realtime.upload_mbps)} up Mbps",
            ]
        )
    sections.append(tabulate(overview, tablefmt="mixed_grid"))

    if network.nodes:
        rows = [
            [
                node.name,
                node.model or "-",
                "gateway" if node.is_gateway else "",
                node.status or "-",
                node.connected_client_count if node.connected_client_count is not None else "-",
                _yes_no(node.wired_backhaul),
                node.mesh_quality_bars if node.mesh_quality_bars is not None else "-",
            ]
            for node in network.nodes
        ]
        sections.append(
            tabulate(rows, headers=["Eero", "Model", "Role", "Status", "Clients", "Wired", "Bars"], tablefmt="mixed_grid")
        )

    connected = sorted((c for c in network.clients if c.connected), key=lambda c: c.name.casefold())
    if connected:
        rows = [
            [
                client.name,
                client.ip or "-",
                client.mac or "-",
                client.connection_type or "-",
                client.signal or "-",
                _mbps(client.usage_down_mbps),
                _mbps(client.usage_up_mbps),
            ]
            for client in connected
        ]
        sections.append(
            tabulate(
                rows,
                headers=["Client", "IP", "MAC", "Link", "Signal", "Down Mbps", "Up Mbps"],
                tablefmt="mixed_grid",
            )
        )

    if network.activity is not None and network.activity.busiest_devices:
        rows = [
            [device.name, _bytes(device.day_download_bytes), _bytes(device.week_download_bytes), _bytes(device.month_download_bytes)]
            for device in network.activity.busiest_devices
        ]
        sections.append(
            tabulate(rows, headers=["Busiest device", "Day down", "Week down", "Month down"], tablefmt="mixed_grid")
        )

    return "\n".join(sections)


def write_raw_payloads(raw_networks: list[RawNetworkPayload], output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for raw in raw_networks:
        out_file = output_dir / f"{raw.network_id}.json"
        out_file.write_text(json.dumps(raw.payload, indent=2, sort_keys=True, default=str))
        written.append(out_file)
    return written


def cmd_login(client: MeshClient, args: argparse.Namespace) -> None:
    response = client.login(args.login)
    print(f"Verification code sent. User token: {response.user_token}")


def cmd_verify(client: MeshClient, args: argparse.Namespace) -> None:
    response = client.verify(args.code)
    print(f"Verified account {response.account_name or '-'} ({response.account_id or '-'})")


def cmd_refresh(client: MeshClient, args: argparse.Namespace) -> None:
    response = client.refresh_session()
    print(f"User token: {response.user_token}")


def cmd_snapshot(client: MeshClient, args: argparse.Namespace) -> None:
    result = client.fetch_account_with_raw_payloads(args.network or None)
    snapshot: AccountSnapshot = result.snapshot

    if args.raw_dir:
        for path in write_raw_payloads(result.raw_networks, Path(args.raw_dir)):
            print(f"Raw payload written to {path}", file=sys.stderr)

    if args.format == "json":
        print(snapshot.model_dump_json(indent=2))
        return

    if not snapshot.networks:
        print("No networks found")
        return
    print("\n\n".join(format_network(network) for network in snapshot.networks))


def cmd_perform(client: MeshClient, args: argparse.Namespace) -> None:
    try:
        payload = json.loads(args.payload) if args.payload else {}
    except json.JSONDecodeError as e:
        raise MeshError(f"--payload is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MeshError("--payload must be a JSON object")
    action = Action(
        kind=ActionKind(args.kind),
        network_id=args.network_id or "",
        endpoint=args.endpoint,
        method=HTTPMethod(args.method.upper()),
        payload=payload,
        label=args.label or f"{args.method.upper()} {args.endpoint}",
    )
    result = client.perform(action)
    if result is not None:
        print(json.dumps(result, indent=2, default=str))
    print(f"{action.label}: done")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the snapshot CLI."""
    parser = argparse.ArgumentParser(
        prog="meshsnapshot",
        description="Fetch consistent snapshots of eero mesh networks",
    )
    parser.add_argument("--token", help="Session token (default: $MESHSNAPSHOT_TOKEN)")
    parser.add_argument("--base-url", help="API host (default: $MESHSNAPSHOT_BASE_URL or the eero cloud)")
    parser.add_argument("--routes-file", help="JSON file overriding resource routes")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    login = subparsers.add_parser("login", help="Start a login and print the issued token")
    login.add_argument("login", help="Account email address or phone number")

    verify = subparsers.add_parser("verify", help="Verify a login with the emailed/texted code")
    verify.add_argument("code", help="Verification code")

    subparsers.add_parser("refresh", help="Refresh the session and print the new token")

    snapshot = subparsers.add_parser("snapshot", help="Fetch and print an account snapshot")
    snapshot.add_argument("--network", action="append", metavar="ID", help="Only this network id (repeatable)")
    snapshot.add_argument("--format", choices=["table", "json"], default="table", help="Output format (default: table)")
    snapshot.add_argument("--raw-dir", help="Write each merged network payload to DIR/{network_id}.json")

    perform = subparsers.add_parser("perform", help="Send one write request")
    perform.add_argument("--method", required=True, choices=[m.value for m in HTTPMethod], type=str.upper)
    perform.add_argument("--endpoint", required=True, help="Path or URL of the target resource")
    perform.add_argument("--payload", help="JSON object sent as the request body")
    perform.add_argument(
        "--kind",
        choices=[k.value for k in ActionKind],
        default=ActionKind.SET_NETWORK_FEATURE.value,
        help="Action kind recorded on the request",
    )
    perform.add_argument("--network-id", help="Network the action targets")
    perform.add_argument("--label", help="Human-readable description")

    return parser


COMMANDS = {
    "login": cmd_login,
    "verify": cmd_verify,
    "refresh": cmd_refresh,
    "snapshot": cmd_snapshot,
    "perform": cmd_perform,
}


def main(args: list[str] | None = None) -> None:
    """Main entry point for the snapshot CLI."""
    parser = build_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        sys.exit(1)

    settings = Settings.from_env()
    overrides = {}
    if parsed.token:
        overrides["token"] = parsed.token
    if parsed.base_url:
        overrides["base_url"] = parsed.base_url.rstrip("/")
    if parsed.routes_file:
        overrides["routes_file"] = parsed.routes_file
    settings = replace(settings, **overrides)

    try:
        with MeshClient(settings=settings) as client:
            COMMANDS[parsed.command](client, parsed)
    except MeshError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
