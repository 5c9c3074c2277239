"""Vehicle status models and the derived status view."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field

from pyconnecteddrive.models._base import CdBaseModel


class Position(CdBaseModel):
    """GPS position reported with the vehicle status."""

    lat: float = 0.0
    lon: float = 0.0
    heading: int = -1
    status: str = ""


class CheckControlMessage(CdBaseModel):
    """Active check-control message (warning lamp)."""

    ccm_description_short: str = ""
    ccm_description_long: str = ""
    ccm_id: int = -1
    ccm_mileage: int = -1


class CbsMessage(CdBaseModel):
    """Condition based service item."""

    cbs_type: str = ""
    cbs_state: str = ""
    cbs_due_date: str = ""
    cbs_description: str = ""
    cbs_remaining_mileage: int = -1


class VehicleStatus(CdBaseModel):
    """Canonical vehicle status as delivered by the status endpoint."""

    vin: str = ""
    mileage: int = -1
    update_time: str = ""
    update_reason: str = ""
    door_lock_state: str = ""
    remaining_range_electric: float | None = None
    remaining_range_fuel: float | None = None
    remaining_fuel: float | None = None
    charging_status: str = ""
    charging_level_hv: float | None = None
    connection_status: str = ""
    position: Position | None = None
    check_control_messages: list[CheckControlMessage] = Field(default_factory=list)
    cbs_data: list[CbsMessage] = Field(default_factory=list)


class VehicleStatusContainer(CdBaseModel):
    vehicle_status: VehicleStatus | None = None


@dataclass(frozen=True, slots=True)
class VehicleStatusView:
    """Read-only projection of the latest status.

    Rebuilt every time the status source resolves successfully; never
    stored on its own.
    """

    position: Position | None
    check_control: tuple[CheckControlMessage, ...]
    services: tuple[CbsMessage, ...]
    mileage: int
    remaining_range_electric: float | None
    remaining_range_fuel: float | None
    charge_level: float | None
    charging_status: str
    door_lock_state: str
    update_time: str

    @classmethod
    def from_status(cls, status: VehicleStatus) -> VehicleStatusView:
        return cls(
            position=status.position,
            check_control=tuple(status.check_control_messages),
            services=tuple(status.cbs_data),
            mileage=status.mileage,
            remaining_range_electric=status.remaining_range_electric,
            remaining_range_fuel=status.remaining_range_fuel,
            charge_level=status.charging_level_hv,
            charging_status=status.charging_status,
            door_lock_state=status.door_lock_state,
            update_time=status.update_time,
        )
