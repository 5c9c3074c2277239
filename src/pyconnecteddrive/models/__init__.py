"""Data models for ConnectedDrive API responses."""

from pyconnecteddrive.models._base import CdBaseModel, CdEnum
from pyconnecteddrive.models.charge_profile import (
    TIMER_KEYS,
    ChargeProfile,
    ChargingMode,
    ChargingPreference,
    ProfileKey,
    TimedEntry,
    Weekday,
)
from pyconnecteddrive.models.destinations import Destination, DestinationContainer
from pyconnecteddrive.models.image import ImageProperties
from pyconnecteddrive.models.legacy import VehicleAttributesContainer
from pyconnecteddrive.models.network import NetworkError
from pyconnecteddrive.models.remote import ExecutionState, ExecutionStatus, ExecutionStatusContainer, RemoteService
from pyconnecteddrive.models.status import (
    CbsMessage,
    CheckControlMessage,
    Position,
    VehicleStatus,
    VehicleStatusContainer,
    VehicleStatusView,
)
from pyconnecteddrive.models.trips import AllTrips, AllTripsContainer, LastTrip, LastTripContainer, StatisticValue
from pyconnecteddrive.models.vehicle import Dealer, Vehicle, capabilities_for, discovery_properties

__all__ = [
    "TIMER_KEYS",
    "AllTrips",
    "AllTripsContainer",
    "CbsMessage",
    "CdBaseModel",
    "CdEnum",
    "ChargeProfile",
    "ChargingMode",
    "ChargingPreference",
    "CheckControlMessage",
    "Dealer",
    "Destination",
    "DestinationContainer",
    "ExecutionState",
    "ExecutionStatus",
    "ExecutionStatusContainer",
    "ImageProperties",
    "LastTrip",
    "LastTripContainer",
    "NetworkError",
    "Position",
    "ProfileKey",
    "RemoteService",
    "StatisticValue",
    "TimedEntry",
    "Vehicle",
    "VehicleAttributesContainer",
    "VehicleStatus",
    "VehicleStatusContainer",
    "VehicleStatusView",
    "Weekday",
    "capabilities_for",
    "discovery_properties",
]
