"""Remote service models."""

from __future__ import annotations

from pydantic import Field

from pyconnecteddrive.exceptions import ConnectedDriveValidationError
from pyconnecteddrive.models._base import CdBaseModel, CdEnum


class RemoteService(CdEnum):
    """Remote services understood by the ``executeService`` endpoint.

    The enum value is the ``serviceType`` sent to the vehicle; the
    :attr:`command` is the string accepted on the remote command channel.
    """

    LIGHT_FLASH = "LIGHT_FLASH"
    VEHICLE_FINDER = "VEHICLE_FINDER"
    DOOR_LOCK = "DOOR_LOCK"
    DOOR_UNLOCK = "DOOR_UNLOCK"
    HORN = "HORN_BLOW"
    AIR_CONDITIONING = "CLIMATE_NOW"
    CHARGE_NOW = "CHARGE_NOW"
    CHARGING_CONTROL = "CHARGING_CONTROL"
    UNKNOWN = "UNKNOWN"

    @property
    def command(self) -> str:
        return _COMMANDS_BY_SERVICE.get(self, "")

    @classmethod
    def from_command(cls, command: str) -> RemoteService:
        """Resolve a remote channel command (``"light"``) or service name.

        Raises :class:`ConnectedDriveValidationError` for unknown input.
        """
        normalized = command.strip().lower()
        for service, name in _COMMANDS_BY_SERVICE.items():
            if name == normalized:
                return service
        service = cls(command)
        if service is cls.UNKNOWN:
            raise ConnectedDriveValidationError(f"Remote service execution {command!r} unknown")
        return service


_COMMANDS_BY_SERVICE: dict[RemoteService, str] = {
    RemoteService.LIGHT_FLASH: "light",
    RemoteService.VEHICLE_FINDER: "finder",
    RemoteService.DOOR_LOCK: "lock",
    RemoteService.DOOR_UNLOCK: "unlock",
    RemoteService.HORN: "horn",
    RemoteService.AIR_CONDITIONING: "climate",
    RemoteService.CHARGE_NOW: "charge-now",
    RemoteService.CHARGING_CONTROL: "charge-control",
}


class ExecutionState(CdEnum):
    INITIATED = "INITIATED"
    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    EXECUTED = "EXECUTED"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"

    @property
    def is_final(self) -> bool:
        return self in (ExecutionState.EXECUTED, ExecutionState.ERROR)


class ExecutionStatus(CdBaseModel):
    service_type: str = ""
    status: str = ""
    event_id: str = ""

    @property
    def state(self) -> ExecutionState:
        return ExecutionState(self.status or "UNKNOWN")


class ExecutionStatusContainer(CdBaseModel):
    execution_status: ExecutionStatus = Field(default_factory=ExecutionStatus)
