"""Request descriptors for the vehicle endpoints.

Endpoints (relative to the region base URL):
  - /webapi/v1/user/vehicles/{vin}/status
  - /api/vehicle/dynamic/v1/{vin} (legacy status)
  - /webapi/v1/user/vehicles/{vin}/statistics/lastTrip
  - /webapi/v1/user/vehicles/{vin}/statistics/allTrips
  - /webapi/v1/user/vehicles/{vin}/chargingprofile
  - /webapi/v1/user/vehicles/{vin}/destinations
  - /webapi/v1/user/vehicles/{vin}/rangemap
  - /webapi/v1/user/vehicles/{vin}/image
  - /webapi/v1/user/vehicles/{vin}/executeService
  - /webapi/v1/user/vehicles/{vin}/serviceExecutionStatus
"""

from __future__ import annotations

from pyconnecteddrive._transport import RequestDescriptor
from pyconnecteddrive.config import VehicleConfig
from pyconnecteddrive.models.image import ImageProperties
from pyconnecteddrive.models.remote import RemoteService
from pyconnecteddrive.state.cache import TelemetrySource


class Endpoints:
    """Builds the request for every telemetry source of one vehicle."""

    def __init__(self, config: VehicleConfig) -> None:
        self._config = config

    @property
    def _vehicle_url(self) -> str:
        return f"{self._config.api_base_url}/webapi/v1/user/vehicles/{self._config.vin}"

    @property
    def _legacy_url(self) -> str:
        return f"{self._config.api_base_url}/api/vehicle/dynamic/v1/{self._config.vin}"

    def _get(self, source: TelemetrySource, path: str) -> RequestDescriptor:
        return RequestDescriptor(source=source, url=f"{self._vehicle_url}/{path}")

    def status(self) -> RequestDescriptor:
        return self._get(TelemetrySource.STATUS, "status")

    def legacy_status(self) -> RequestDescriptor:
        return RequestDescriptor(
            source=TelemetrySource.STATUS,
            url=self._legacy_url,
            params={"offset": "-60"},
        )

    def last_trip(self) -> RequestDescriptor:
        return self._get(TelemetrySource.LAST_TRIP, "statistics/lastTrip")

    def all_trips(self) -> RequestDescriptor:
        return self._get(TelemetrySource.ALL_TRIPS, "statistics/allTrips")

    def charge_profile(self) -> RequestDescriptor:
        return self._get(TelemetrySource.CHARGE_PROFILE, "chargingprofile")

    def destinations(self) -> RequestDescriptor:
        return self._get(TelemetrySource.DESTINATIONS, "destinations")

    def range_map(self) -> RequestDescriptor:
        return self._get(TelemetrySource.RANGE_MAP, "rangemap")

    def image(self, properties: ImageProperties) -> RequestDescriptor:
        size = str(properties.size)
        return RequestDescriptor(
            source=TelemetrySource.IMAGE,
            url=f"{self._vehicle_url}/image",
            params={"width": size, "height": size, "view": properties.viewport},
            binary=True,
        )

    def remote_execute(self, service: RemoteService, payload: str | None = None) -> RequestDescriptor:
        data = {"serviceType": service.value}
        if payload is not None:
            data["data"] = payload
        return RequestDescriptor(
            url=f"{self._vehicle_url}/executeService",
            method="POST",
            data=data,
        )

    def remote_status(self, service: RemoteService) -> RequestDescriptor:
        return RequestDescriptor(
            url=f"{self._vehicle_url}/serviceExecutionStatus",
            params={"serviceType": service.value},
        )
