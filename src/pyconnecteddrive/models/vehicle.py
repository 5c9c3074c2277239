"""Vehicle listing model and capability mapping.

The vehicle listing reports each connected service as a field whose value
is ``"SUPPORTED"``, ``"NOT_SUPPORTED"`` or ``"ACTIVATED"``.  Which field
backs which capability is declared once in :data:`SERVICE_FIELDS`.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import Field

from pyconnecteddrive._constants import (
    ACTIVATED,
    ELECTRIC_DRIVE_TRAINS,
    LAST_DESTINATIONS,
    NOT_SUPPORTED,
    STATISTICS,
    SUPPORTED,
)
from pyconnecteddrive.models._base import CdBaseModel


class Dealer(CdBaseModel):
    name: str = ""
    street: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = ""
    phone: str = ""


class Vehicle(CdBaseModel):
    """A vehicle associated with the account."""

    vin: str = ""
    model: str = ""
    drive_train: str = ""
    brand: str = ""
    bodytype: str = ""
    color: str = ""
    year_of_construction: int | None = None
    has_alarm_system: bool = False
    statistics_available: bool = False
    breakdown_number: str = ""
    supported_charging_modes: list[str] = Field(default_factory=list)
    dealer: Dealer | None = None

    # connected services
    remote360: str = ""
    climate_control: str = ""
    door_lock: str = ""
    door_unlock: str = ""
    light_flash: str = ""
    horn_blow: str = ""
    vehicle_finder: str = ""
    send_poi: str = ""
    last_destinations: str = ""
    charging_control: str = ""
    charge_now: str = ""
    range_map: str = ""
    car_alarm: str = ""

    @property
    def is_electric(self) -> bool:
        return self.drive_train in ELECTRIC_DRIVE_TRAINS


SERVICE_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "Remote360": "remote360",
        "ClimateControl": "climate_control",
        "DoorLock": "door_lock",
        "DoorUnlock": "door_unlock",
        "LightFlash": "light_flash",
        "HornBlow": "horn_blow",
        "VehicleFinder": "vehicle_finder",
        "SendPoi": "send_poi",
        LAST_DESTINATIONS: "last_destinations",
        "ChargingControl": "charging_control",
        "ChargeNow": "charge_now",
        "RangeMap": "range_map",
        "CarAlarm": "car_alarm",
    }
)


def services_with_state(vehicle: Vehicle, state: str) -> list[str]:
    """Capability names whose service field equals *state*."""
    return [name for name, attr in SERVICE_FIELDS.items() if getattr(vehicle, attr) == state]


def capabilities_for(vehicle: Vehicle) -> frozenset[str]:
    """Supported capability names, including :data:`STATISTICS` when available."""
    supported = set(services_with_state(vehicle, SUPPORTED))
    if vehicle.statistics_available:
        supported.add(STATISTICS)
    return frozenset(supported)


def discovery_properties(vehicle: Vehicle) -> dict[str, str]:
    """Human readable properties of a discovered vehicle."""
    properties: dict[str, str] = {}
    if vehicle.dealer is not None:
        dealer = vehicle.dealer
        properties["Dealer"] = dealer.name
        properties["Dealer Address"] = " ".join(
            part for part in (dealer.street, dealer.country, dealer.postal_code, dealer.city) if part
        )
        properties["Dealer Phone"] = dealer.phone

    not_supported = services_with_state(vehicle, NOT_SUPPORTED)
    if not vehicle.statistics_available:
        not_supported.append(STATISTICS)
    properties["Services Activated"] = " ".join(services_with_state(vehicle, ACTIVATED))
    properties["Services Supported"] = " ".join(sorted(capabilities_for(vehicle)))
    properties["Services Not Supported"] = " ".join(not_supported)
    properties["Support Breakdown Number"] = vehicle.breakdown_number

    if vehicle.supported_charging_modes:
        properties["Vehicle Charge Modes"] = " ".join(vehicle.supported_charging_modes)
    properties["Vehicle Alarm System"] = "Available" if vehicle.has_alarm_system else "Not Available"
    properties["Vehicle Brand"] = vehicle.brand
    properties["Vehicle Bodytype"] = vehicle.bodytype
    properties["Vehicle Color"] = vehicle.color
    if vehicle.year_of_construction is not None:
        properties["Vehicle Construction Year"] = str(vehicle.year_of_construction)
    properties["Vehicle Drive Train"] = vehicle.drive_train
    properties["Vehicle Model"] = vehicle.model
    return properties
