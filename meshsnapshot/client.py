"""Account-level facade: session lifecycle, snapshot assembly and actions."""

from __future__ import annotations

import concurrent.futures
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Self

from loguru import logger

from meshsnapshot.audit import FieldAuditAccumulator
from meshsnapshot.config import Settings
from meshsnapshot.enrichment import NetworkEnricher
from meshsnapshot.exceptions import FetchCancelledError, InvalidPayloadError, MeshError
from meshsnapshot.identity import id_from_url
from meshsnapshot.jsonpath import get_dicts, get_str
from meshsnapshot.models import (
    AccountSnapshot,
    Action,
    LoginResponse,
    Network,
    RawNetworkPayload,
    RefreshResponse,
    SnapshotWithPayloads,
    VerifyResponse,
)
from meshsnapshot.parsers import parse_network
from meshsnapshot.resources import ResourceCatalog
from meshsnapshot.session import CredentialSource
from meshsnapshot.transport import MeshTransport

ACCOUNT_PATH = "/2.2/account"
LOGIN_PATH = "/2.2/login"
VERIFY_PATH = "/2.2/login/verify"


class MeshClient:
    """Fetch immutable account snapshots from the eero cloud API.

    Args:
        transport: Pre-built transport. Built from *credentials* and
            *settings* when omitted.
        credentials: Token source handed to a newly built transport.
        settings: Runtime settings; ``Settings.from_env()`` when omitted.
        catalog: Resource routes. Loaded from ``settings.routes_file`` when
            set, else the built-in defaults.

    Example::

        with MeshClient(settings=Settings(token="...")) as client:
            snapshot = client.fetch_account_snapshot()
            for network in snapshot.networks:
                print(network.name, network.connected_clients_count)
    """

    def __init__(
        self,
        transport: MeshTransport | None = None,
        credentials: CredentialSource | None = None,
        settings: Settings | None = None,
        catalog: ResourceCatalog | None = None,
    ):
        self.settings = settings or (transport.settings if transport else Settings.from_env())
        self.transport = transport or MeshTransport(credentials=credentials, settings=self.settings)
        if catalog is None:
            catalog = (
                ResourceCatalog.from_file(self.settings.routes_file)
                if self.settings.routes_file
                else ResourceCatalog.default()
            )
        self.catalog = catalog
        self.enricher = NetworkEnricher(self.transport, catalog, self.settings.max_workers)

    # ── lifecycle ─────────────────────────────────────────────────────

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def cancel(self) -> None:
        """Abort the in-flight fetch; it fails with :class:`FetchCancelledError`."""
        logger.info("Cancelling snapshot fetch")
        self.transport.cancel()

    # ── session ───────────────────────────────────────────────────────

    def set_token(self, token: str | None) -> None:
        self.transport.credentials.set_token(token)

    def current_token(self) -> str | None:
        return self.transport.credentials.current_token()

    def login(self, login: str) -> LoginResponse:
        """Start a login for an email address or phone number.

        Raises:
            InvalidPayloadError: The response carried no ``user_token``.
        """
        data = self.transport.call("POST", LOGIN_PATH, {"login": login}, requires_auth=False, retry_on_auth_failure=False)
        token = data.get("user_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise InvalidPayloadError()
        self.set_token(token)
        logger.info("Login started, verification code required")
        return LoginResponse(user_token=token)

    def verify(self, code: str) -> VerifyResponse:
        data = self.transport.call("POST", VERIFY_PATH, {"code": code}, retry_on_auth_failure=False)
        if not isinstance(data, dict):
            raise InvalidPayloadError()
        name = data.get("name")
        log_id = data.get("log_id")
        return VerifyResponse(
            account_name=name if isinstance(name, str) else None,
            account_id=log_id if isinstance(log_id, str) else None,
        )

    def refresh_session(self) -> RefreshResponse:
        return RefreshResponse(user_token=self.transport.refresh_session())

    # ── snapshot ──────────────────────────────────────────────────────

    def fetch_account_snapshot(self, network_ids: Iterable[str] | None = None) -> AccountSnapshot:
        """Fetch and assemble a snapshot of every network on the account.

        Args:
            network_ids: Restrict enrichment to these network ids (the last
                segment of the network URL). Empty or ``None`` means all.

        Raises:
            MeshError: The account root failed or was not an object, or the
                fetch was cancelled.
        """
        return self._fetch(network_ids, include_raw=False).snapshot

    def fetch_account_with_raw_payloads(self, network_ids: Iterable[str] | None = None) -> SnapshotWithPayloads:
        """Like :meth:`fetch_account_snapshot`, plus each merged network payload."""
        return self._fetch(network_ids, include_raw=True)

    def _network_refs(self, account: dict[str, Any], wanted: set[str]) -> list[tuple[str, str]]:
        refs: list[tuple[str, str]] = []
        for ref in get_dicts(account, ["networks", "data"]) or []:
            url = get_str(ref, ["url"])
            if not url:
                continue
            network_id = id_from_url(url) or url
            if wanted and network_id not in wanted:
                logger.debug(f"Skipping network {network_id} (not selected)")
                continue
            refs.append((network_id, url))
        return refs

    def _fetch_network(self, ref: tuple[str, str]) -> dict[str, Any] | None:
        network_id, url = ref
        try:
            network = self.transport.get(url)
        except FetchCancelledError:
            raise
        except MeshError as e:
            logger.warning(f"Network {network_id} unavailable, omitting it: {e}")
            return None
        if not isinstance(network, dict):
            logger.warning(f"Network {network_id} returned a non-object payload, omitting it")
            return None
        logger.info(f"Enriching network {network_id}")
        return self.enricher.enrich(url, network)

    def _fetch(self, network_ids: Iterable[str] | None, include_raw: bool) -> SnapshotWithPayloads:
        self.transport.reset_cancellation()
        account = self.transport.get(ACCOUNT_PATH)
        if not isinstance(account, dict):
            raise InvalidPayloadError()

        refs = self._network_refs(account, set(network_ids or ()))
        logger.info(f"Account has {len(refs)} network(s) to fetch")
        merged = self._fetch_networks(refs)

        audit = FieldAuditAccumulator()
        networks: list[Network] = []
        raw: list[RawNetworkPayload] = []
        for (network_id, _), data in zip(refs, merged):
            if data is None:
                continue
            if include_raw:
                raw.append(RawNetworkPayload(network_id=network_id, payload=data))
            audit.record(data)
            networks.append(parse_network(data))

        fetched_at = datetime.now(timezone.utc)
        snapshot = AccountSnapshot(fetched_at=fetched_at, networks=networks, model_audit=audit.summary(fetched_at))
        logger.info(f"Snapshot ready: {len(networks)} network(s), {snapshot.total_connected_clients} connected clients")
        return SnapshotWithPayloads(snapshot=snapshot, raw_networks=raw)

    def _fetch_networks(self, refs: list[tuple[str, str]]) -> list[dict[str, Any] | None]:
        if len(refs) <= 1:
            return [self._fetch_network(ref) for ref in refs]
        with concurrent.futures.ThreadPoolExecutor(max_workers=min(self.settings.max_workers, len(refs))) as pool:
            futures = [pool.submit(self._fetch_network, ref) for ref in refs]
            try:
                return [future.result() for future in futures]
            except BaseException:
                self.transport.cancel()
                for future in futures:
                    future.cancel()
                raise

    # ── actions ───────────────────────────────────────────────────────

    def perform(self, action: Action) -> Any:
        """Send one action; the payload is the JSON body, or no body when empty."""
        logger.info(f"Performing {action.kind.value}: {action.method.value} {action.endpoint}")
        return self.transport.call(action.method.value, action.endpoint, action.json_body)
