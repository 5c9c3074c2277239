"""Custom exception hierarchy for pyconnecteddrive."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyconnecteddrive.models.network import NetworkError


class ConnectedDriveError(Exception):
    """Base exception for all pyconnecteddrive errors."""


class ConnectedDriveConfigError(ConnectedDriveError):
    """Invalid or missing configuration.

    Terminal for a vehicle handler: it reports itself offline with a
    configuration error and does not start polling until the configuration
    is corrected.
    """


class ConnectedDriveTransportError(ConnectedDriveError):
    """HTTP-level failure (network, timeout, non-2xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = -1,
        reason: str = "",
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.url = url
        super().__init__(message)


class ConnectedDriveParseError(ConnectedDriveError):
    """A payload could not be decoded into the expected shape."""


class ConnectedDriveProtocolFallback(ConnectedDriveError):
    """The current status endpoint answered "not found".

    Raised by the current status protocol when inspecting an error
    response.  The status ingest catches it and switches the vehicle to
    the legacy protocol; it never reaches callers.
    """

    def __init__(self, error: NetworkError) -> None:
        self.error = error
        super().__init__(f"Status endpoint not found ({error.status}): {error.url}")


class ConnectedDriveValidationError(ConnectedDriveError):
    """An edit or command was rejected before any state changed.

    Covers unknown channels, out-of-range values, unknown remote services
    and commands issued while the vehicle cannot accept them.
    """
