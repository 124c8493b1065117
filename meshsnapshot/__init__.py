"""Consistent, cross-referenced snapshots of eero mesh networks.

Fetches an account's networks from the eero cloud API, follows each
network's advertised resource links, reconciles the overlapping payloads
and returns one immutable :class:`AccountSnapshot`.
"""

__version__ = "0.0.1"

import os
import sys
from typing import Any, Callable, Dict

from loguru import logger as glogger

glogger.disable(__name__)


def _loguru_skiplog_filter(record: dict) -> bool:  # type: ignore[type-arg]
    """Filter function to hide records with ``extra['skiplog']`` set."""
    return not record.get("extra", {}).get("skiplog", False)


def configure_logging(
    loguru_filter: Callable[[Dict[str, Any]], bool] = _loguru_skiplog_filter,
) -> None:
    """Install one stderr sink at ``$LOGURU_LEVEL`` (default DEBUG) and enable package logging."""
    os.environ["LOGURU_LEVEL"] = os.getenv("LOGURU_LEVEL", "DEBUG")
    glogger.remove()
    logger_fmt: str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{module}</cyan>::<cyan>{extra[classname]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )
    glogger.add(sys.stderr, level=os.getenv("LOGURU_LEVEL"), format=logger_fmt, filter=loguru_filter)  # type: ignore[arg-type]
    glogger.configure(extra={"classname": "None", "skiplog": False})
    glogger.enable(__name__)


from meshsnapshot.client import MeshClient  # noqa: E402
from meshsnapshot.config import Settings  # noqa: E402
from meshsnapshot.exceptions import (  # noqa: E402
    FetchCancelledError,
    InvalidPayloadError,
    InvalidResponseError,
    MeshError,
    ServerError,
    UnauthenticatedError,
)
from meshsnapshot.models import AccountSnapshot, Action, Network  # noqa: E402
from meshsnapshot.resources import ResourceCatalog  # noqa: E402
from meshsnapshot.session import CredentialSession, CredentialSource  # noqa: E402
from meshsnapshot.transport import MeshTransport  # noqa: E402

__all__ = [
    "glogger",
    "configure_logging",
    "MeshClient",
    "MeshTransport",
    "Settings",
    "ResourceCatalog",
    "CredentialSession",
    "CredentialSource",
    "AccountSnapshot",
    "Action",
    "Network",
    "MeshError",
    "UnauthenticatedError",
    "InvalidResponseError",
    "InvalidPayloadError",
    "ServerError",
    "FetchCancelledError",
]
