"""Vehicle status ingest.

The status source decides whether the vehicle is reachable.  Vehicles that
answer the current status endpoint with "not found" are switched, once and
for good, to the legacy endpoint whose payload is converted into the
canonical status shape before it is processed.
"""

from __future__ import annotations

import enum
import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from pyconnecteddrive._api.endpoints import Endpoints
from pyconnecteddrive._constants import NOT_FOUND
from pyconnecteddrive._transport import Fetcher, RequestDescriptor, submit
from pyconnecteddrive.exceptions import ConnectedDriveParseError, ConnectedDriveProtocolFallback
from pyconnecteddrive.models.legacy import VehicleAttributesContainer
from pyconnecteddrive.models.network import NetworkError
from pyconnecteddrive.models.status import VehicleStatusContainer, VehicleStatusView
from pyconnecteddrive.state.cache import SourceCache, TelemetrySource

_logger = logging.getLogger(__name__)

INVALID_PAYLOAD_REASON = "invalid status payload"


class ProtocolMode(enum.StrEnum):
    CURRENT = "current"
    LEGACY = "legacy"


class DeviceStatus(enum.StrEnum):
    UNKNOWN = "UNKNOWN"
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class StatusDetail(enum.StrEnum):
    NONE = "NONE"
    COMMUNICATION_ERROR = "COMMUNICATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


@dataclass(frozen=True, slots=True)
class StatusReport:
    status: DeviceStatus
    detail: StatusDetail = StatusDetail.NONE
    reason: str = ""


class StatusProtocol(Protocol):
    """One wire variant of the status endpoint."""

    mode: ProtocolMode

    def request(self, endpoints: Endpoints) -> RequestDescriptor: ...

    def canonicalize(self, content: str) -> str:
        """Return the canonical ``{"vehicleStatus": ...}`` JSON for *content*."""
        ...

    def raise_for_error(self, error: NetworkError) -> None:
        """Raise :class:`ConnectedDriveProtocolFallback` if *error* calls for the legacy variant."""
        ...


class CurrentStatusProtocol:
    mode = ProtocolMode.CURRENT

    def request(self, endpoints: Endpoints) -> RequestDescriptor:
        return endpoints.status()

    def canonicalize(self, content: str) -> str:
        return content

    def raise_for_error(self, error: NetworkError) -> None:
        if error.status == NOT_FOUND:
            raise ConnectedDriveProtocolFallback(error)


class LegacyStatusProtocol:
    mode = ProtocolMode.LEGACY

    def __init__(self, vin: str) -> None:
        self._vin = vin

    def request(self, endpoints: Endpoints) -> RequestDescriptor:
        return endpoints.legacy_status()

    def canonicalize(self, content: str) -> str:
        try:
            container = VehicleAttributesContainer.model_validate(json.loads(content))
        except (ValueError, ValidationError) as exc:
            raise ConnectedDriveParseError(f"Invalid legacy status: {exc}") from exc
        return container.transform(self._vin)

    def raise_for_error(self, error: NetworkError) -> None:
        return None


class _StatusCallback:
    """Binds a response to the protocol its request was issued with."""

    def __init__(self, ingest: StatusIngest, protocol: StatusProtocol) -> None:
        self._ingest = ingest
        self._protocol = protocol

    def on_response(self, content: str) -> None:
        self._ingest.on_success(content, self._protocol)

    def on_error(self, error: NetworkError) -> None:
        self._ingest.on_error(error, self._protocol)


class StatusIngest:
    """Processes status responses into device status, cache and view.

    Parameters
    ----------
    on_complete : callable
        Called with :attr:`TelemetrySource.STATUS` once the status source of
        a cycle is resolved.  Not called when the request falls back to the
        legacy protocol; the legacy answer completes the source instead.
    on_status : callable
        Called with a :class:`StatusReport` whenever the device status
        actually changes.
    on_view : callable
        Called with the rebuilt :class:`VehicleStatusView` after each
        successfully parsed status.
    """

    def __init__(
        self,
        cache: SourceCache,
        fetcher: Fetcher,
        endpoints: Endpoints,
        vin: str,
        *,
        on_complete: Callable[[TelemetrySource], None],
        on_status: Callable[[StatusReport], None],
        on_view: Callable[[VehicleStatusView], None],
    ) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._endpoints = endpoints
        self._on_complete = on_complete
        self._on_status = on_status
        self._on_view = on_view
        self._protocols: dict[ProtocolMode, StatusProtocol] = {
            ProtocolMode.CURRENT: CurrentStatusProtocol(),
            ProtocolMode.LEGACY: LegacyStatusProtocol(vin),
        }
        self._lock = threading.RLock()
        self._mode = ProtocolMode.CURRENT
        self._report: StatusReport | None = None
        self._view: VehicleStatusView | None = None

    @property
    def mode(self) -> ProtocolMode:
        with self._lock:
            return self._mode

    @property
    def protocol(self) -> StatusProtocol:
        return self._protocols[self.mode]

    @property
    def status(self) -> StatusReport:
        with self._lock:
            return self._report or StatusReport(DeviceStatus.UNKNOWN)

    @property
    def view(self) -> VehicleStatusView | None:
        with self._lock:
            return self._view

    def request(self) -> None:
        protocol = self.protocol
        submit(self._fetcher, protocol.request(self._endpoints), _StatusCallback(self, protocol))

    def set_status(
        self,
        status: DeviceStatus,
        detail: StatusDetail = StatusDetail.NONE,
        reason: str = "",
    ) -> None:
        report = StatusReport(status, detail, reason)
        with self._lock:
            if report == self._report:
                return
            self._report = report
        self._on_status(report)

    def on_success(self, content: str, protocol: StatusProtocol) -> None:
        try:
            canonical = protocol.canonicalize(content)
            container = VehicleStatusContainer.model_validate_json(canonical)
            if container.vehicle_status is None:
                raise ConnectedDriveParseError("Status payload has no vehicleStatus")
        except (ConnectedDriveParseError, ValidationError) as exc:
            _logger.debug("Status payload rejected: %s", exc)
            self._cache.store(TelemetrySource.STATUS, content, is_error=True)
            self.set_status(DeviceStatus.OFFLINE, StatusDetail.COMMUNICATION_ERROR, INVALID_PAYLOAD_REASON)
            self._on_complete(TelemetrySource.STATUS)
            return

        self._cache.store(TelemetrySource.STATUS, canonical)
        self.set_status(DeviceStatus.ONLINE)
        view = VehicleStatusView.from_status(container.vehicle_status)
        with self._lock:
            self._view = view
        self._on_view(view)
        self._on_complete(TelemetrySource.STATUS)

    def on_error(self, error: NetworkError, protocol: StatusProtocol) -> None:
        _logger.debug("%s", error)
        self._cache.store(TelemetrySource.STATUS, error.to_json(), is_error=True)
        self.set_status(DeviceStatus.OFFLINE, StatusDetail.COMMUNICATION_ERROR, error.reason)
        try:
            protocol.raise_for_error(error)
        except ConnectedDriveProtocolFallback:
            with self._lock:
                switched = self._mode is ProtocolMode.CURRENT
                self._mode = ProtocolMode.LEGACY
            if switched:
                _logger.info("Vehicle status not found, switching to legacy status endpoint")
                self.request()
                return
        self._on_complete(TelemetrySource.STATUS)
