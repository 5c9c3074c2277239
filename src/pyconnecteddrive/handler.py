"""Vehicle handler: refresh cycles, commands and state publication."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pyconnecteddrive import channels
from pyconnecteddrive._api.endpoints import Endpoints
from pyconnecteddrive._constants import IMAGE_SIZE_MAX, IMAGE_SIZE_MIN, IMAGE_VIEWPORTS, LAST_DESTINATIONS, STATISTICS
from pyconnecteddrive._transport import Fetcher, RequestDescriptor, submit
from pyconnecteddrive.config import VehicleConfig
from pyconnecteddrive.diagnostics import log_fingerprint
from pyconnecteddrive.exceptions import (
    ConnectedDriveConfigError,
    ConnectedDriveParseError,
    ConnectedDriveValidationError,
)
from pyconnecteddrive.models.charge_profile import ChargeProfile
from pyconnecteddrive.models.destinations import Destination, DestinationContainer
from pyconnecteddrive.models.image import ImageProperties
from pyconnecteddrive.models.network import NetworkError
from pyconnecteddrive.models.remote import ExecutionState, RemoteService
from pyconnecteddrive.models.status import VehicleStatusView
from pyconnecteddrive.models.trips import AllTripsContainer, LastTripContainer
from pyconnecteddrive.models.vehicle import Vehicle, capabilities_for, discovery_properties
from pyconnecteddrive.remote import RemoteCommandDispatcher
from pyconnecteddrive.scheduler import AsyncioScheduler, Cancellable, Scheduler
from pyconnecteddrive.state.cache import SourceCache, TelemetrySource
from pyconnecteddrive.state.edit_session import ChargeProfileEditSession, coerce_int
from pyconnecteddrive.state.image import ImageState
from pyconnecteddrive.state.status import (
    DeviceStatus,
    ProtocolMode,
    StatusDetail,
    StatusIngest,
    StatusReport,
)
from pyconnecteddrive.state.tracker import OutstandingRequestTracker

_logger = logging.getLogger(__name__)

_ModelT = TypeVar("_ModelT", bound=BaseModel)

#: Channel groups rendered from the status view.
_STATUS_GROUPS = frozenset(
    {
        channels.GROUP_STATUS,
        channels.GROUP_LOCATION,
        channels.GROUP_CHECK_CONTROL,
        channels.GROUP_SERVICE,
    }
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class _SourceCallback:
    """Completion handler for the plain JSON sources."""

    def __init__(self, handler: VehicleHandler, source: TelemetrySource) -> None:
        self._handler = handler
        self._source = source

    def on_response(self, content: str) -> None:
        self._handler._on_source_response(self._source, content)

    def on_error(self, error: NetworkError) -> None:
        self._handler._on_source_error(self._source, error)


class _ImageCallback:
    """Completion handler for an image request with the properties it was issued for."""

    def __init__(self, handler: VehicleHandler, properties: ImageProperties) -> None:
        self._handler = handler
        self._properties = properties

    def on_response(self, content: bytes) -> None:
        self._handler._on_image_response(self._properties, content)

    def on_error(self, error: NetworkError) -> None:
        self._handler._on_image_error(self._properties, error)


class VehicleHandler:
    """Aggregates the telemetry of one vehicle and accepts its commands.

    Usage::

        handler = VehicleHandler(config, HttpFetcher(session), sink)
        handler.initialize()
        ...
        handler.handle_command("charge#timer1-enabled", "ON")
        handler.execute_remote_service("charge-control")
        ...
        handler.dispose()

    Every entry point returns without waiting on the network.  Results are
    published to *sink* as they arrive.
    """

    def __init__(
        self,
        config: VehicleConfig,
        fetcher: Fetcher,
        sink: channels.StateSink,
        *,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] | None = None,
        vehicle: Vehicle | None = None,
        capabilities: Iterable[str] | None = None,
    ) -> None:
        self._config = config
        self._fetcher = fetcher
        self._sink = sink
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._vehicle = vehicle
        self._is_electric = vehicle.is_electric if vehicle is not None else config.is_electric
        if capabilities is None:
            capabilities = capabilities_for(vehicle) if vehicle is not None else ()

        self._lock = threading.RLock()
        self._configured = False
        self._disposed = False
        self._refresh_job: Cancellable | None = None
        self._last_fingerprint: str | None = None

        self._endpoints = Endpoints(config)
        self._cache = SourceCache(capabilities)
        self._tracker = OutstandingRequestTracker(self._on_cycle_complete)
        self._image = ImageState(self._cache, ImageProperties(config.image_viewport, config.image_size))
        self._status = StatusIngest(
            self._cache,
            fetcher,
            self._endpoints,
            config.vin,
            on_complete=self._tracker.complete,
            on_status=self._on_status,
            on_view=self._on_view,
        )
        self._remote = RemoteCommandDispatcher(fetcher, self._endpoints, self._scheduler, self)
        self._edit_session = ChargeProfileEditSession(
            self._cache,
            sink,
            self._scheduler,
            self._remote,
            clock=clock or _utcnow,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def status(self) -> StatusReport:
        return self._status.status

    @property
    def protocol_mode(self) -> ProtocolMode:
        return self._status.mode

    @property
    def status_view(self) -> VehicleStatusView | None:
        return self._status.view

    @property
    def cache(self) -> SourceCache:
        return self._cache

    @property
    def tracker(self) -> OutstandingRequestTracker:
        return self._tracker

    @property
    def edit_session(self) -> ChargeProfileEditSession:
        return self._edit_session

    @property
    def remote(self) -> RemoteCommandDispatcher:
        return self._remote

    @property
    def image_properties(self) -> ImageProperties:
        return self._image.properties

    @property
    def is_electric(self) -> bool:
        return self._is_electric

    @property
    def last_fingerprint(self) -> str | None:
        """Fingerprint logged at the end of the last completed cycle."""
        with self._lock:
            return self._last_fingerprint

    @property
    def properties(self) -> dict[str, str]:
        """Discovery properties of the vehicle, empty without a listing entry."""
        if self._vehicle is None:
            return {}
        return discovery_properties(self._vehicle)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """Validate the configuration and start the refresh schedule.

        An invalid configuration leaves the vehicle offline with a
        configuration error; nothing is scheduled.  Returns whether the
        schedule was started.
        """
        self._status.set_status(DeviceStatus.UNKNOWN)
        try:
            self._config.validate()
        except ConnectedDriveConfigError as exc:
            _logger.warning("Vehicle configuration invalid: %s", exc)
            self._status.set_status(DeviceStatus.OFFLINE, StatusDetail.CONFIGURATION_ERROR, str(exc))
            return False

        properties = self._image.properties
        self._sink.publish(channels.IMAGE_VIEWPORT, properties.viewport)
        self._sink.publish(channels.IMAGE_SIZE, properties.size)

        with self._lock:
            if self._disposed:
                return False
            self._configured = True
            if self._refresh_job is None:
                self._refresh_job = self._scheduler.call_periodic(self._config.refresh_interval * 60, self.refresh)
        return True

    def dispose(self) -> None:
        """Stop refreshing and cancel the edit timeout and remote polling."""
        with self._lock:
            self._disposed = True
            self._configured = False
            job, self._refresh_job = self._refresh_job, None
        if job is not None:
            job.cancel()
        self._edit_session.close()
        self._remote.cancel()

    # ------------------------------------------------------------------
    # Refresh cycle
    # ------------------------------------------------------------------

    def cycle_sources(self) -> list[TelemetrySource]:
        """Sources requested by a cycle started now."""
        sources = [TelemetrySource.STATUS]
        if self._cache.is_supported(STATISTICS):
            sources += [TelemetrySource.LAST_TRIP, TelemetrySource.ALL_TRIPS]
        if self._cache.is_supported(LAST_DESTINATIONS):
            sources.append(TelemetrySource.DESTINATIONS)
        if self._is_electric:
            sources += [TelemetrySource.CHARGE_PROFILE, TelemetrySource.RANGE_MAP]
        if self._image.should_request():
            sources.append(TelemetrySource.IMAGE)
        return sources

    def refresh(self) -> bool:
        """Start a refresh cycle; ``False`` if not configured or the previous cycle is still open."""
        with self._lock:
            configured = self._configured
        if not configured:
            _logger.warning("Vehicle %s is not configured, refresh skipped", self._config.vin)
            return False
        sources = self.cycle_sources()
        if not self._tracker.begin_cycle(sources):
            return False
        for source in sources:
            self._request(source)
        return True

    def _request(self, source: TelemetrySource) -> None:
        if source is TelemetrySource.STATUS:
            self._status.request()
        elif source is TelemetrySource.IMAGE:
            self._request_image()
        else:
            submit(self._fetcher, self._request_for(source), _SourceCallback(self, source))

    def _request_for(self, source: TelemetrySource) -> RequestDescriptor:
        builders: dict[TelemetrySource, Callable[[], RequestDescriptor]] = {
            TelemetrySource.LAST_TRIP: self._endpoints.last_trip,
            TelemetrySource.ALL_TRIPS: self._endpoints.all_trips,
            TelemetrySource.CHARGE_PROFILE: self._endpoints.charge_profile,
            TelemetrySource.DESTINATIONS: self._endpoints.destinations,
            TelemetrySource.RANGE_MAP: self._endpoints.range_map,
        }
        return builders[source]()

    def _request_image(self) -> None:
        properties = self._image.properties
        submit(self._fetcher, self._endpoints.image(properties), _ImageCallback(self, properties))

    def _on_cycle_complete(self) -> None:
        fingerprint = log_fingerprint(
            self._cache,
            self._config.vin,
            discovery=self.properties,
            is_electric=self._is_electric,
        )
        with self._lock:
            self._last_fingerprint = fingerprint

    # ------------------------------------------------------------------
    # Source callbacks
    # ------------------------------------------------------------------

    def _on_status(self, report: StatusReport) -> None:
        self._sink.publish(channels.DEVICE_STATUS, report)

    def _on_view(self, view: VehicleStatusView) -> None:
        self._publish(channels.render_status(view))

    def _on_source_response(self, source: TelemetrySource, content: str) -> None:
        try:
            self._cache.store(source, content)
            self._render_source(source, content)
        except ConnectedDriveParseError as exc:
            _logger.debug("%s payload not understood: %s", source, exc)
            self._cache.store(source, content, is_error=True)
        finally:
            self._tracker.complete(source)

    def _on_source_error(self, source: TelemetrySource, error: NetworkError) -> None:
        _logger.debug("%s", error)
        self._cache.store(source, error.to_json(), is_error=True)
        self._tracker.complete(source)

    def _render_source(self, source: TelemetrySource, content: str) -> None:
        """Publish the channels of a freshly received payload.

        Raises :class:`ConnectedDriveParseError` when the payload does not
        have the expected shape.
        """
        if source is TelemetrySource.LAST_TRIP:
            last_trip = _parse(LastTripContainer, content).last_trip
            if last_trip is not None:
                self._publish(channels.render_last_trip(last_trip))
        elif source is TelemetrySource.ALL_TRIPS:
            all_trips = _parse(AllTripsContainer, content).all_trips
            if all_trips is not None:
                self._publish(channels.render_all_trips(all_trips))
        elif source is TelemetrySource.DESTINATIONS:
            destinations = _parse(DestinationContainer, content).destinations
            self._publish(channels.render_destination(destinations))
        elif source is TelemetrySource.CHARGE_PROFILE:
            ChargeProfile.from_json(content)
            # an open edit session keeps showing its overlay
            self._edit_session.render()

    def _on_image_response(self, properties: ImageProperties, content: bytes) -> None:
        try:
            if not content:
                _logger.debug("Empty vehicle image for %s", properties)
                self._image.failed(properties)
            elif self._image.accept(properties, content):
                self._sink.publish(channels.IMAGE_CONTENT, content)
            else:
                _logger.debug("Dropping vehicle image for outdated %s", properties)
        finally:
            self._tracker.complete(TelemetrySource.IMAGE)

    def _on_image_error(self, properties: ImageProperties, error: NetworkError) -> None:
        _logger.debug("%s", error)
        self._image.failed(properties)
        self._tracker.complete(TelemetrySource.IMAGE)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def refresh_group(self, group: str) -> None:
        """Re-publish a channel group from cached data."""
        if group in _STATUS_GROUPS:
            view = self._status.view
            if view is not None:
                self._publish(channels.render_status(view))
        elif group == channels.GROUP_DEVICE:
            self._on_status(self._status.status)
        elif group == channels.GROUP_CHARGE:
            self._edit_session.render()
        elif group == channels.GROUP_IMAGE:
            properties = self._image.properties
            self._sink.publish(channels.IMAGE_VIEWPORT, properties.viewport)
            self._sink.publish(channels.IMAGE_SIZE, properties.size)
            slot = self._cache.read(TelemetrySource.IMAGE)
            if slot is not None and isinstance(slot.payload, bytes):
                self._sink.publish(channels.IMAGE_CONTENT, slot.payload)
        elif group in (channels.GROUP_LAST_TRIP, channels.GROUP_LIFETIME, channels.GROUP_DESTINATION):
            source = {
                channels.GROUP_LAST_TRIP: TelemetrySource.LAST_TRIP,
                channels.GROUP_LIFETIME: TelemetrySource.ALL_TRIPS,
                channels.GROUP_DESTINATION: TelemetrySource.DESTINATIONS,
            }[group]
            slot = self._cache.read(source)
            if slot is None or slot.is_error or not isinstance(slot.payload, str):
                return
            try:
                self._render_source(source, slot.payload)
            except ConnectedDriveParseError as exc:
                _logger.debug("Cached %s not understood: %s", source, exc)
        elif group != channels.GROUP_REMOTE:
            raise ConnectedDriveValidationError(f"Unknown channel group {group!r}")

    def handle_command(self, channel_id: str, value: Any) -> None:
        """Dispatch a command for *channel_id*.

        Raises :class:`ConnectedDriveValidationError` for unknown channels and
        invalid values; nothing changes in that case.
        """
        group = channels.group_of(channel_id)
        if group == channels.GROUP_CHARGE:
            self._edit_session.apply_edit(channel_id, value)
        elif channel_id == channels.IMAGE_VIEWPORT:
            self.set_image_viewport(str(value))
        elif channel_id == channels.IMAGE_SIZE:
            self.set_image_size(value)
        elif channel_id == channels.DESTINATION_INDEX:
            self.select_destination(_selection(channel_id, value))
        elif channel_id == channels.SERVICE_INDEX:
            self.select_service(_selection(channel_id, value))
        elif channel_id == channels.CHECK_CONTROL_INDEX:
            self.select_check_control(_selection(channel_id, value))
        elif channel_id == channels.REMOTE_COMMAND:
            self.execute_remote_service(str(value))
        else:
            _logger.info("Unexpected command %r for %s not processed", value, channel_id)
            raise ConnectedDriveValidationError(f"Unsupported channel {channel_id!r}")

    def select_check_control(self, index: int) -> None:
        view = self._status.view
        if view is None or index >= len(view.check_control):
            raise ConnectedDriveValidationError(f"No check control entry {index}")
        self._publish(channels.render_check_control(view, index))

    def select_service(self, index: int) -> None:
        view = self._status.view
        if view is None or index >= len(view.services):
            raise ConnectedDriveValidationError(f"No service entry {index}")
        self._publish(channels.render_service(view, index))

    def select_destination(self, index: int) -> None:
        destinations = self._cached_destinations()
        if index >= len(destinations):
            raise ConnectedDriveValidationError(f"No destination entry {index}")
        self._publish(channels.render_destination(destinations, index))

    def _cached_destinations(self) -> list[Destination]:
        slot = self._cache.read(TelemetrySource.DESTINATIONS)
        if slot is None or slot.is_error or not isinstance(slot.payload, str):
            return []
        try:
            return _parse(DestinationContainer, slot.payload).destinations
        except ConnectedDriveParseError:
            return []

    def execute_remote_service(self, service_id: str | RemoteService, payload: str | None = None) -> None:
        """Execute a remote service by command (``"light"``) or service name.

        ``charge-control`` sends the charge profile being edited, or the
        cached one when no edit is open.
        """
        service = service_id if isinstance(service_id, RemoteService) else RemoteService.from_command(service_id)
        if service is RemoteService.CHARGING_CONTROL:
            self._edit_session.send(payload)
        else:
            self._remote.execute(service, payload)

    def on_remote_update(self, service: RemoteService, state: ExecutionState) -> None:
        if service is RemoteService.CHARGING_CONTROL and state is ExecutionState.EXECUTED:
            self._edit_session.confirm_sent()
        self._sink.publish(channels.REMOTE_STATE, channels.to_title_case(f"{service.value} {state.value}"))

    # ------------------------------------------------------------------
    # Image
    # ------------------------------------------------------------------

    def set_image_viewport(self, viewport: str) -> None:
        normalized = viewport.strip().upper()
        if normalized not in IMAGE_VIEWPORTS:
            raise ConnectedDriveValidationError(f"Image viewport must be one of {IMAGE_VIEWPORTS}, got {viewport!r}")
        changed = self._image.change(viewport=normalized)
        self._sink.publish(channels.IMAGE_VIEWPORT, normalized)
        if changed is not None:
            self._request_image()

    def set_image_size(self, size: Any) -> None:
        number = coerce_int(channels.IMAGE_SIZE, size, IMAGE_SIZE_MAX, IMAGE_SIZE_MIN)
        changed = self._image.change(size=number)
        self._sink.publish(channels.IMAGE_SIZE, number)
        if changed is not None:
            self._request_image()

    def _publish(self, states: dict[str, Any]) -> None:
        for channel_id, value in states.items():
            self._sink.publish(channel_id, value)


def _parse(model: type[_ModelT], content: str) -> _ModelT:
    try:
        return model.model_validate_json(content)
    except ValidationError as exc:
        raise ConnectedDriveParseError(f"Invalid {model.__name__}: {exc}") from exc


def _selection(channel_id: str, value: Any) -> int:
    index = channels.parse_index(str(value))
    if index < 0:
        raise ConnectedDriveValidationError(f"Cannot select {channel_id} entry {value!r}")
    return index
