"""pyconnecteddrive - Telemetry aggregation for BMW ConnectedDrive vehicles."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyconnecteddrive")
except PackageNotFoundError:
    __version__ = "0+local"
from pyconnecteddrive._transport import Fetcher, HttpFetcher, RequestDescriptor
from pyconnecteddrive.channels import StateSink
from pyconnecteddrive.config import VehicleConfig
from pyconnecteddrive.exceptions import (
    ConnectedDriveConfigError,
    ConnectedDriveError,
    ConnectedDriveParseError,
    ConnectedDriveProtocolFallback,
    ConnectedDriveTransportError,
    ConnectedDriveValidationError,
)
from pyconnecteddrive.handler import VehicleHandler
from pyconnecteddrive.models import (
    ChargeProfile,
    ChargingMode,
    ChargingPreference,
    ExecutionState,
    ImageProperties,
    NetworkError,
    ProfileKey,
    RemoteService,
    Vehicle,
    VehicleStatusView,
    Weekday,
)
from pyconnecteddrive.scheduler import AsyncioScheduler, Scheduler
from pyconnecteddrive.state.cache import CacheSlot, SourceCache, TelemetrySource
from pyconnecteddrive.state.status import DeviceStatus, ProtocolMode, StatusDetail, StatusReport

__all__ = [
    "__version__",
    "AsyncioScheduler",
    "CacheSlot",
    "ChargeProfile",
    "ChargingMode",
    "ChargingPreference",
    "ConnectedDriveConfigError",
    "ConnectedDriveError",
    "ConnectedDriveParseError",
    "ConnectedDriveProtocolFallback",
    "ConnectedDriveTransportError",
    "ConnectedDriveValidationError",
    "DeviceStatus",
    "ExecutionState",
    "Fetcher",
    "HttpFetcher",
    "ImageProperties",
    "NetworkError",
    "ProfileKey",
    "ProtocolMode",
    "RemoteService",
    "RequestDescriptor",
    "Scheduler",
    "SourceCache",
    "StateSink",
    "StatusDetail",
    "StatusReport",
    "TelemetrySource",
    "Vehicle",
    "VehicleConfig",
    "VehicleHandler",
    "VehicleStatusView",
    "Weekday",
]
