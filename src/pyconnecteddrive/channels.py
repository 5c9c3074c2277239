"""Channel identifiers and state rendering.

A channel id is ``"<group>#<name>"``.  Rendering functions turn models into
``{channel_id: value}`` mappings that the handler publishes to a
:class:`StateSink`; ``None`` means "no data".
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any, Protocol

from pyconnecteddrive.models.charge_profile import TIMER_KEYS, ChargeProfile, ProfileKey, Weekday
from pyconnecteddrive.models.destinations import Destination
from pyconnecteddrive.models.status import VehicleStatusView
from pyconnecteddrive.models.trips import AllTrips, LastTrip, StatisticValue


class StateSink(Protocol):
    """Receives channel updates; must tolerate calls from any thread."""

    def publish(self, channel_id: str, value: Any) -> None: ...


def channel(group: str, name: str) -> str:
    return f"{group}#{name}"


def group_of(channel_id: str) -> str:
    return channel_id.partition("#")[0]


# ------------------------------------------------------------------
# Groups
# ------------------------------------------------------------------

GROUP_DEVICE = "device"
GROUP_STATUS = "status"
GROUP_LOCATION = "location"
GROUP_CHECK_CONTROL = "check-control"
GROUP_SERVICE = "service"
GROUP_DESTINATION = "destination"
GROUP_LAST_TRIP = "last-trip"
GROUP_LIFETIME = "lifetime"
GROUP_CHARGE = "charge"
GROUP_IMAGE = "image"
GROUP_REMOTE = "remote"

DEVICE_STATUS = channel(GROUP_DEVICE, "status")

STATUS_DOOR_LOCK = channel(GROUP_STATUS, "lock")
STATUS_MILEAGE = channel(GROUP_STATUS, "mileage")
STATUS_RANGE_ELECTRIC = channel(GROUP_STATUS, "range-electric")
STATUS_RANGE_FUEL = channel(GROUP_STATUS, "range-fuel")
STATUS_CHARGE_LEVEL = channel(GROUP_STATUS, "soc")
STATUS_CHARGING = channel(GROUP_STATUS, "charge-status")
STATUS_LAST_UPDATE = channel(GROUP_STATUS, "last-update")
STATUS_CHECK_CONTROL = channel(GROUP_STATUS, "check-control")
STATUS_SERVICE = channel(GROUP_STATUS, "service")

LOCATION_LATITUDE = channel(GROUP_LOCATION, "latitude")
LOCATION_LONGITUDE = channel(GROUP_LOCATION, "longitude")
LOCATION_HEADING = channel(GROUP_LOCATION, "heading")

CHECK_CONTROL_INDEX = channel(GROUP_CHECK_CONTROL, "index")
CHECK_CONTROL_OPTIONS = channel(GROUP_CHECK_CONTROL, "options")
CHECK_CONTROL_NAME = channel(GROUP_CHECK_CONTROL, "name")
CHECK_CONTROL_DETAILS = channel(GROUP_CHECK_CONTROL, "details")
CHECK_CONTROL_MILEAGE = channel(GROUP_CHECK_CONTROL, "mileage")

SERVICE_INDEX = channel(GROUP_SERVICE, "index")
SERVICE_OPTIONS = channel(GROUP_SERVICE, "options")
SERVICE_NAME = channel(GROUP_SERVICE, "name")
SERVICE_DATE = channel(GROUP_SERVICE, "date")
SERVICE_MILEAGE = channel(GROUP_SERVICE, "mileage")
SERVICE_DETAILS = channel(GROUP_SERVICE, "details")

DESTINATION_INDEX = channel(GROUP_DESTINATION, "index")
DESTINATION_OPTIONS = channel(GROUP_DESTINATION, "options")
DESTINATION_NAME = channel(GROUP_DESTINATION, "name")
DESTINATION_LATITUDE = channel(GROUP_DESTINATION, "latitude")
DESTINATION_LONGITUDE = channel(GROUP_DESTINATION, "longitude")

LAST_TRIP_DATE = channel(GROUP_LAST_TRIP, "date")
LAST_TRIP_DURATION = channel(GROUP_LAST_TRIP, "duration")
LAST_TRIP_DISTANCE = channel(GROUP_LAST_TRIP, "distance")
LAST_TRIP_AVG_CONSUMPTION = channel(GROUP_LAST_TRIP, "avg-consumption")
LAST_TRIP_AVG_COMBINED_CONSUMPTION = channel(GROUP_LAST_TRIP, "avg-combined-consumption")
LAST_TRIP_AVG_RECUPERATION = channel(GROUP_LAST_TRIP, "avg-recuperation")

LIFETIME_RESET_DATE = channel(GROUP_LIFETIME, "reset-date")
LIFETIME_TOTAL_ELECTRIC_DISTANCE = channel(GROUP_LIFETIME, "total-electric-distance")
LIFETIME_AVG_CONSUMPTION = channel(GROUP_LIFETIME, "avg-consumption")
LIFETIME_AVG_COMBINED_CONSUMPTION = channel(GROUP_LIFETIME, "avg-combined-consumption")
LIFETIME_AVG_RECUPERATION = channel(GROUP_LIFETIME, "avg-recuperation")
LIFETIME_LONGEST_SINGLE_CHARGE = channel(GROUP_LIFETIME, "single-longest-distance")

CHARGE_PREFERENCE = channel(GROUP_CHARGE, "preference")
CHARGE_MODE = channel(GROUP_CHARGE, "mode")
CHARGE_CLIMATE = channel(GROUP_CHARGE, "climate")

IMAGE_CONTENT = channel(GROUP_IMAGE, "png")
IMAGE_VIEWPORT = channel(GROUP_IMAGE, "viewport")
IMAGE_SIZE = channel(GROUP_IMAGE, "size")

REMOTE_COMMAND = channel(GROUP_REMOTE, "command")
REMOTE_STATE = channel(GROUP_REMOTE, "state")


def charge_enabled_channel(key: ProfileKey) -> str:
    if key is ProfileKey.CLIMATE:
        return CHARGE_CLIMATE
    if key in (ProfileKey.WINDOW_START, ProfileKey.WINDOW_END):
        return channel(GROUP_CHARGE, "window-enabled")
    return channel(GROUP_CHARGE, f"{key.value}-enabled")


def charge_time_channel(key: ProfileKey, is_hour: bool) -> str:
    return channel(GROUP_CHARGE, f"{key.value}-{'hour' if is_hour else 'minute'}")


def charge_day_channel(key: ProfileKey, day: Weekday) -> str:
    return channel(GROUP_CHARGE, f"{key.value}-day-{day.short}")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

_INDEX_RE = re.compile(r"^\s*(\d+)")


def to_title_case(value: str | None) -> str:
    """``"CHARGING_WINDOW"`` -> ``"Charging Window"``; ``None`` or empty -> ``"-"``."""
    if not value:
        return "-"
    words = value.replace("_", " ").split()
    return " ".join(word.capitalize() for word in words) or "-"


def format_option(index: int, label: str) -> str:
    return f"{index}. {label}"


def parse_index(value: str) -> int:
    """Extract the index of a ``"n"`` or ``"n. label"`` selection, ``-1`` if there is none."""
    match = _INDEX_RE.match(value)
    if match is None:
        return -1
    return int(match.group(1))


def _statistic(value: StatisticValue | None) -> float | None:
    if value is None:
        return None
    return value.user_average if value.user_average is not None else value.user_total


# ------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------


def render_profile_key(profile: ChargeProfile, key: ProfileKey) -> dict[str, Any]:
    """Channels derived from one entry of *profile*."""
    entry = profile.entries[key]
    states: dict[str, Any] = {charge_enabled_channel(key): entry.enabled}
    if key is ProfileKey.CLIMATE:
        return states
    states[charge_time_channel(key, True)] = entry.hour
    states[charge_time_channel(key, False)] = entry.minute
    if key in TIMER_KEYS:
        for day in Weekday:
            states[charge_day_channel(key, day)] = day in entry.days
    return states


def render_charge_profile(profile: ChargeProfile) -> dict[str, Any]:
    states: dict[str, Any] = {
        CHARGE_PREFERENCE: to_title_case(profile.preference.value),
        CHARGE_MODE: to_title_case(profile.mode.value),
    }
    for key in ProfileKey:
        states.update(render_profile_key(profile, key))
    return states


def render_check_control(view: VehicleStatusView, index: int = 0) -> dict[str, Any]:
    messages = view.check_control
    if not 0 <= index < len(messages):
        return {
            CHECK_CONTROL_INDEX: None,
            CHECK_CONTROL_NAME: None,
            CHECK_CONTROL_DETAILS: None,
            CHECK_CONTROL_MILEAGE: None,
        }
    message = messages[index]
    return {
        CHECK_CONTROL_INDEX: format_option(index, message.ccm_description_short),
        CHECK_CONTROL_NAME: message.ccm_description_short,
        CHECK_CONTROL_DETAILS: message.ccm_description_long or None,
        CHECK_CONTROL_MILEAGE: message.ccm_mileage if message.ccm_mileage >= 0 else None,
    }


def render_service(view: VehicleStatusView, index: int = 0) -> dict[str, Any]:
    services = view.services
    if not 0 <= index < len(services):
        return {
            SERVICE_INDEX: None,
            SERVICE_NAME: None,
            SERVICE_DATE: None,
            SERVICE_MILEAGE: None,
            SERVICE_DETAILS: None,
        }
    service = services[index]
    name = to_title_case(service.cbs_type)
    return {
        SERVICE_INDEX: format_option(index, name),
        SERVICE_NAME: name,
        SERVICE_DATE: service.cbs_due_date or None,
        SERVICE_MILEAGE: service.cbs_remaining_mileage if service.cbs_remaining_mileage >= 0 else None,
        SERVICE_DETAILS: service.cbs_description or None,
    }


def render_status(view: VehicleStatusView) -> dict[str, Any]:
    """Status, location, check-control and service channels of *view*."""
    position = view.position
    states: dict[str, Any] = {
        STATUS_DOOR_LOCK: to_title_case(view.door_lock_state) if view.door_lock_state else None,
        STATUS_MILEAGE: view.mileage if view.mileage >= 0 else None,
        STATUS_RANGE_ELECTRIC: view.remaining_range_electric,
        STATUS_RANGE_FUEL: view.remaining_range_fuel,
        STATUS_CHARGE_LEVEL: view.charge_level,
        STATUS_CHARGING: to_title_case(view.charging_status) if view.charging_status else None,
        STATUS_LAST_UPDATE: view.update_time or None,
        STATUS_CHECK_CONTROL: "Active" if view.check_control else "Not Active",
        STATUS_SERVICE: to_title_case(view.services[0].cbs_type) if view.services else None,
        LOCATION_LATITUDE: position.lat if position is not None else None,
        LOCATION_LONGITUDE: position.lon if position is not None else None,
        LOCATION_HEADING: position.heading if position is not None and position.heading >= 0 else None,
        CHECK_CONTROL_OPTIONS: [
            format_option(i, message.ccm_description_short) for i, message in enumerate(view.check_control)
        ],
        SERVICE_OPTIONS: [format_option(i, to_title_case(item.cbs_type)) for i, item in enumerate(view.services)],
    }
    states.update(render_check_control(view))
    states.update(render_service(view))
    return states


def render_last_trip(trip: LastTrip) -> dict[str, Any]:
    return {
        LAST_TRIP_DATE: trip.date or None,
        LAST_TRIP_DURATION: trip.duration,
        LAST_TRIP_DISTANCE: trip.total_distance,
        LAST_TRIP_AVG_CONSUMPTION: trip.avg_electric_consumption,
        LAST_TRIP_AVG_COMBINED_CONSUMPTION: trip.avg_combined_consumption,
        LAST_TRIP_AVG_RECUPERATION: trip.avg_recuperation,
    }


def render_all_trips(trips: AllTrips) -> dict[str, Any]:
    longest = trips.chargecycle_range.user_high if trips.chargecycle_range is not None else None
    return {
        LIFETIME_RESET_DATE: trips.reset_date or None,
        LIFETIME_TOTAL_ELECTRIC_DISTANCE: (
            trips.total_electric_distance.user_total if trips.total_electric_distance is not None else None
        ),
        LIFETIME_AVG_CONSUMPTION: _statistic(trips.avg_electric_consumption),
        LIFETIME_AVG_COMBINED_CONSUMPTION: _statistic(trips.avg_combined_consumption),
        LIFETIME_AVG_RECUPERATION: _statistic(trips.avg_recuperation),
        LIFETIME_LONGEST_SINGLE_CHARGE: longest,
    }


def render_destination(destinations: Sequence[Destination], index: int = 0) -> dict[str, Any]:
    """Destination channels with entry *index* selected."""
    states: dict[str, Any] = {
        DESTINATION_OPTIONS: [format_option(i, entry.label) for i, entry in enumerate(destinations)],
    }
    if not 0 <= index < len(destinations):
        states.update(
            {
                DESTINATION_INDEX: None,
                DESTINATION_NAME: None,
                DESTINATION_LATITUDE: None,
                DESTINATION_LONGITUDE: None,
            }
        )
        return states
    entry = destinations[index]
    states.update(
        {
            DESTINATION_INDEX: format_option(index, entry.label),
            DESTINATION_NAME: entry.label,
            DESTINATION_LATITUDE: entry.lat,
            DESTINATION_LONGITUDE: entry.lon,
        }
    )
    return states
