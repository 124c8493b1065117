"""Exception hierarchy for the eero snapshot client."""

from __future__ import annotations


class MeshError(Exception):
    """Base exception for all snapshot client errors."""


class UnauthenticatedError(MeshError):
    """No session credential is held for an authenticated call."""

    def __init__(self, message: str = "Not authenticated with eero."):
        super().__init__(message)


class InvalidResponseError(MeshError):
    """Transport-level failure: no HTTP response, unparseable body or bad URL."""

    def __init__(self, message: str = "Invalid response from eero API."):
        super().__init__(message)


class InvalidPayloadError(MeshError):
    """A successful response whose JSON shape is not what the caller required."""

    def __init__(self, message: str = "Unexpected eero API payload."):
        super().__init__(message)


class ServerError(MeshError):
    """Non-2xx HTTP response."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Eero API error ({status_code}): {message}")


class FetchCancelledError(MeshError):
    """The caller cancelled an in-flight snapshot fetch."""

    def __init__(self, message: str = "Snapshot fetch cancelled."):
        super().__init__(message)
