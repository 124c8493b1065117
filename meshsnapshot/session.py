"""Session credential gatekeeper.

All token reads and writes go through one object so that a refresh is
committed before any retried request reads the credential.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable


@runtime_checkable
class CredentialSource(Protocol):
    """Anything that can hold and hand out the opaque session token."""

    def set_token(self, token: str | None) -> None: ...

    def current_token(self) -> str | None: ...


class CredentialSession:
    """In-memory credential source; one writer at a time, readers see the last commit."""

    def __init__(self, token: str | None = None):
        self._lock = threading.Lock()
        self._token: str | None = None
        self.set_token(token)

    def set_token(self, token: str | None) -> None:
        value = token.strip() if token else ""
        with self._lock:
            self._token = value or None

    def current_token(self) -> str | None:
        with self._lock:
            return self._token

    def clear(self) -> None:
        self.set_token(None)
