"""Entry point: startup banner, then the snapshot CLI.

Examples:
  meshsnapshot login you@example.com
  meshsnapshot --token <TOKEN> snapshot --format json

  python -m meshsnapshot snapshot --network 12345 --raw-dir ./raw
"""

from __future__ import annotations

import os
import sys

from tabulate import tabulate

from meshsnapshot import __version__, configure_logging
from meshsnapshot import glogger
from meshsnapshot.cli import main as cli_main


def _print_startup_banner() -> None:
    startup_rows = [
        ["version", __version__],
        ["api", os.environ.get("MESHSNAPSHOT_BASE_URL", "https://api-user.e2ro.com")],
        ["log level", os.environ.get("LOGURU_LEVEL", "DEBUG")],
    ]

    for var in ("GITHUB_REF", "GITHUB_SHA", "BUILDTIME"):
        val = os.environ.get(var)
        if val and not val.endswith("_is_undefined"):
            startup_rows.append([var, val])

    table_str = tabulate(startup_rows, tablefmt="mixed_grid")
    lines = table_str.split("\n")
    table_width = len(lines[0])
    title = "meshsnapshot starting up"
    title_border = "┍" + "━" * (table_width - 2) + "┑"
    title_row = "│ " + title.center(table_width - 4) + " │"
    separator = lines[0].replace("┍", "┝").replace("┑", "┥").replace("┯", "┿")

    glogger.opt(raw=True).info(
        "\n{}\n", title_border + "\n" + title_row + "\n" + separator + "\n" + "\n".join(lines[1:])
    )


def main(args: list[str] | None = None) -> None:
    """Configure logging, print the banner and dispatch to the CLI."""
    configure_logging()
    _print_startup_banner()
    cli_main(sys.argv[1:] if args is None else args)


if __name__ == "__main__":
    main()
