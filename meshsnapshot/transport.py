"""HTTP transport for the eero cloud API.

Performs authenticated calls, unwraps the ``{data, meta}`` envelope,
classifies failures and runs the single refresh-and-retry cycle on 401.
"""

from __future__ import annotations

import threading
from http import HTTPStatus
from typing import Any, Self
from urllib.parse import urlencode, urljoin, urlsplit

import requests
from loguru import logger

from meshsnapshot.config import Settings
from meshsnapshot.exceptions import (
    FetchCancelledError,
    InvalidPayloadError,
    InvalidResponseError,
    MeshError,
    ServerError,
    UnauthenticatedError,
)
from meshsnapshot.session import CredentialSession, CredentialSource

REFRESH_PATH = "/2.2/login/refresh"


def unwrap_envelope(value: Any) -> Any:
    """Return ``value["data"]`` when *value* is an object carrying ``data``."""
    if isinstance(value, dict) and "data" in value:
        return value["data"]
    return value


def extract_error_message(body: Any) -> str:
    """Pull a human-readable message out of a non-2xx JSON body."""
    if isinstance(body, dict):
        meta = body.get("meta")
        if isinstance(meta, dict):
            code = meta.get("code")
            error = meta.get("error")
            if isinstance(error, str):
                if isinstance(code, int) and not isinstance(code, bool):
                    return f"{error} ({code})"
                return error
        message = body.get("message")
        if isinstance(message, str):
            return message
    return "Unknown API error"


def with_query(path: str, params: dict[str, Any] | list[tuple[str, Any]]) -> str:
    """Append URL-encoded query parameters to *path*, keeping any existing query."""
    items = list(params.items()) if isinstance(params, dict) else list(params)
    if not items:
        return path
    query = urlencode([(key, str(value)) for key, value in items])
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{query}"


class MeshTransport:
    """Authenticated JSON-over-HTTPS transport backed by ``requests.Session``.

    Args:
        credentials: Source of the session token. Defaults to an in-memory
            :class:`CredentialSession`.
        settings: Base URL and timeout. Defaults to ``Settings.from_env()``.
    """

    def __init__(
        self,
        credentials: CredentialSource | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self.credentials: CredentialSource = credentials or CredentialSession(self.settings.token)
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/json"
        self._refresh_lock = threading.Lock()
        self._cancelled = threading.Event()

    # ── lifecycle ─────────────────────────────────────────────────────

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def cancel(self) -> None:
        """Make every subsequent call fail with :class:`FetchCancelledError`."""
        self._cancelled.set()

    def reset_cancellation(self) -> None:
        self._cancelled.clear()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise FetchCancelledError()

    # ── requests ──────────────────────────────────────────────────────

    def resolve_url(self, path_or_url: str) -> str:
        """Use absolute URLs as-is; resolve anything else against the base host."""
        parts = urlsplit(path_or_url)
        if parts.scheme:
            if not parts.netloc:
                raise InvalidResponseError()
            return path_or_url
        base = self.settings.base_url.rstrip("/") + "/"
        resolved = urljoin(base, path_or_url)
        if not urlsplit(resolved).netloc:
            raise InvalidResponseError()
        return resolved

    def call(
        self,
        method: str,
        path_or_url: str,
        json_body: dict[str, Any] | None = None,
        requires_auth: bool = True,
        retry_on_auth_failure: bool = True,
    ) -> Any:
        """Perform one API call and return the unwrapped JSON value.

        Args:
            method: HTTP verb.
            path_or_url: Absolute URL or a path relative to the base host.
            json_body: Optional JSON object sent as the request body.
            requires_auth: Attach the session cookie; fail fast without one.
            retry_on_auth_failure: Allow one refresh-and-retry cycle on 401.

        Returns:
            The ``data`` member of an enveloped body, else the parsed body.

        Raises:
            UnauthenticatedError: No token held for an authenticated call.
            InvalidResponseError: Transport failure or unparseable body.
            ServerError: Any non-2xx status left after the retry cycle.
            FetchCancelledError: The fetch was cancelled.
        """
        self.check_cancelled()
        url = self.resolve_url(path_or_url)

        headers: dict[str, str] = {}
        token: str | None = None
        if requires_auth:
            token = self.credentials.current_token()
            if not token:
                raise UnauthenticatedError()
            headers["Cookie"] = f"s={token}"

        logger.debug(f"{method} {path_or_url}")
        try:
            resp = self._session.request(
                method,
                url,
                json=json_body,
                headers=headers,
                timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            raise InvalidResponseError() from e
        self.check_cancelled()

        status = resp.status_code
        if 200 <= status < 300:
            return unwrap_envelope(self._decode(resp))

        message = self._error_message(resp)
        if status == 401 and requires_auth and retry_on_auth_failure and path_or_url != REFRESH_PATH:
            logger.debug(f"401 on {path_or_url}, refreshing session once")
            self._refresh_after_unauthorized(token)
            return self.call(method, path_or_url, json_body, requires_auth, retry_on_auth_failure=False)

        raise ServerError(status, message)

    def get(self, path_or_url: str) -> Any:
        return self.call("GET", path_or_url)

    def get_optional(self, path_or_url: str, label: str = "resource") -> Any:
        """Best-effort GET: any :class:`MeshError` except cancellation yields ``None``."""
        try:
            return self.get(path_or_url)
        except FetchCancelledError:
            raise
        except MeshError as e:
            logger.debug(f"{label} unavailable at {path_or_url}: {e}")
            return None

    def refresh_session(self) -> str:
        """POST the refresh endpoint and commit the new token.

        Returns:
            The new session token.

        Raises:
            InvalidPayloadError: The response carried no ``user_token``.
        """
        data = self.call("POST", REFRESH_PATH, requires_auth=True, retry_on_auth_failure=False)
        if not isinstance(data, dict):
            raise InvalidPayloadError()
        token = data.get("user_token")
        if not isinstance(token, str) or not token.strip():
            raise InvalidPayloadError()
        self.credentials.set_token(token)
        return token

    def _refresh_after_unauthorized(self, stale_token: str | None) -> None:
        # Only the first caller holding a stale token refreshes; the rest
        # retry with whatever token that refresh committed.
        with self._refresh_lock:
            if self.credentials.current_token() != stale_token:
                return
            self.refresh_session()

    @staticmethod
    def _decode(resp: requests.Response) -> Any:
        if not resp.content or not resp.content.strip():
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise InvalidResponseError() from e

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            try:
                return HTTPStatus(resp.status_code).phrase.lower()
            except ValueError:
                return resp.reason or "unknown error"
        return extract_error_message(body)
