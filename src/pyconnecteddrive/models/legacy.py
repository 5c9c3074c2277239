"""Legacy vehicle status format.

Some older vehicles answer the current status endpoint with ``404`` and
only serve the dynamic attributes endpoint.  Its payload is converted into
the canonical ``{"vehicleStatus": {...}}`` shape so the rest of the
library only ever handles one status format.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class _LegacyModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_empty(cls, values: Any) -> Any:
        # legacy attributes are all strings, empty when not available
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value not in (None, "")}


class LegacyAttributes(_LegacyModel):
    """The ``attributesMap`` block."""

    mileage: float | None = Field(default=None, validation_alias=AliasChoices("mileage"))
    update_time: str = Field(default="", validation_alias=AliasChoices("updateTime_converted_timestamp", "updateTime"))
    door_lock_state: str = Field(default="", validation_alias=AliasChoices("door_lock_state"))
    gps_lat: float | None = Field(default=None, validation_alias=AliasChoices("gps_lat"))
    gps_lng: float | None = Field(default=None, validation_alias=AliasChoices("gps_lng"))
    heading: float | None = Field(default=None, validation_alias=AliasChoices("heading"))
    remaining_range_electric: float | None = Field(
        default=None,
        validation_alias=AliasChoices("beRemainingRangeElectricKm", "beRemainingRangeElectric"),
    )
    remaining_range_fuel: float | None = Field(
        default=None,
        validation_alias=AliasChoices("beRemainingRangeFuelKm", "beRemainingRangeFuel"),
    )
    remaining_fuel: float | None = Field(default=None, validation_alias=AliasChoices("remaining_fuel"))
    charging_level_hv: float | None = Field(default=None, validation_alias=AliasChoices("chargingLevelHv"))
    charging_status: str = Field(default="", validation_alias=AliasChoices("charging_status"))
    connector_status: str = Field(default="", validation_alias=AliasChoices("connectorStatus"))


class LegacyCheckControl(_LegacyModel):
    text: str = ""
    description: str = ""
    id: int = -1
    mileage: float | None = None


class LegacyServiceMessage(_LegacyModel):
    text: str = ""
    description: str = ""
    status: str = ""
    date: str = ""
    unit_of_length_remaining: float | None = Field(default=None, validation_alias=AliasChoices("unitOfLengthRemaining"))


class LegacyMessages(_LegacyModel):
    ccm_messages: list[LegacyCheckControl] = Field(default_factory=list, validation_alias=AliasChoices("ccmMessages"))
    cbs_messages: list[LegacyServiceMessage] = Field(default_factory=list, validation_alias=AliasChoices("cbsMessages"))


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class VehicleAttributesContainer(_LegacyModel):
    """Top-level legacy status response."""

    attributes_map: LegacyAttributes = Field(validation_alias=AliasChoices("attributesMap"))
    vehicle_messages: LegacyMessages = Field(
        default_factory=LegacyMessages,
        validation_alias=AliasChoices("vehicleMessages"),
    )

    def transform(self, vin: str) -> str:
        """Return the canonical status JSON for this legacy payload."""
        attrs = self.attributes_map
        status: dict[str, Any] = _drop_none(
            {
                "vin": vin,
                "mileage": int(attrs.mileage) if attrs.mileage is not None else None,
                "updateTime": attrs.update_time,
                "doorLockState": attrs.door_lock_state,
                "remainingRangeElectric": attrs.remaining_range_electric,
                "remainingRangeFuel": attrs.remaining_range_fuel,
                "remainingFuel": attrs.remaining_fuel,
                "chargingLevelHv": attrs.charging_level_hv,
                "chargingStatus": attrs.charging_status,
                "connectionStatus": attrs.connector_status,
            }
        )
        if attrs.gps_lat is not None and attrs.gps_lng is not None:
            status["position"] = {
                "lat": attrs.gps_lat,
                "lon": attrs.gps_lng,
                "heading": int(attrs.heading) if attrs.heading is not None else -1,
                "status": "OK",
            }
        status["checkControlMessages"] = [
            _drop_none(
                {
                    "ccmDescriptionShort": msg.text,
                    "ccmDescriptionLong": msg.description,
                    "ccmId": msg.id,
                    "ccmMileage": int(msg.mileage) if msg.mileage is not None else None,
                }
            )
            for msg in self.vehicle_messages.ccm_messages
        ]
        status["cbsData"] = [
            _drop_none(
                {
                    "cbsType": msg.text.upper().replace(" ", "_"),
                    "cbsState": msg.status,
                    "cbsDueDate": msg.date,
                    "cbsDescription": msg.description,
                    "cbsRemainingMileage": (
                        int(msg.unit_of_length_remaining) if msg.unit_of_length_remaining is not None else None
                    ),
                }
            )
            for msg in self.vehicle_messages.cbs_messages
        ]
        return json.dumps({"vehicleStatus": status})
