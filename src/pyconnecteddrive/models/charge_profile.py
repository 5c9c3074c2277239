"""Charge profile (weekly planner) models.

The wire format is parsed with Pydantic models; edits are applied to the
mutable :class:`ChargeProfile` which serialises back into the original
payload, so fields this library does not know about survive a round trip
to the vehicle.
"""

from __future__ import annotations

import copy
import enum
import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from pyconnecteddrive.exceptions import ConnectedDriveParseError
from pyconnecteddrive.models._base import CdBaseModel, CdEnum


class ProfileKey(enum.StrEnum):
    """Editable entries of a charge profile."""

    CLIMATE = "climate"
    TIMER1 = "timer1"
    TIMER2 = "timer2"
    TIMER3 = "timer3"
    OVERRIDE = "override"
    WINDOW_START = "window-start"
    WINDOW_END = "window-end"


#: Keys that carry weekday flags.
TIMER_KEYS: tuple[ProfileKey, ...] = (ProfileKey.TIMER1, ProfileKey.TIMER2, ProfileKey.TIMER3)


class Weekday(enum.StrEnum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def short(self) -> str:
        """Three letter lower-case abbreviation (``"mon"``)."""
        return self.value[:3].lower()


class ChargingPreference(CdEnum):
    NO_PRESELECTION = "NO_PRESELECTION"
    CHARGING_WINDOW = "CHARGING_WINDOW"
    UNKNOWN = "UNKNOWN"


class ChargingMode(CdEnum):
    IMMEDIATE_CHARGING = "IMMEDIATE_CHARGING"
    DELAYED_CHARGING = "DELAYED_CHARGING"
    UNKNOWN = "UNKNOWN"


# ------------------------------------------------------------------
# Wire format
# ------------------------------------------------------------------


class TimerPayload(CdBaseModel):
    departure_time: str = "00:00"
    timer_enabled: bool = False
    weekdays: list[Weekday] = []


class ChargingWindowPayload(CdBaseModel):
    enabled: bool = False
    start_time: str = "00:00"
    end_time: str = "00:00"


class WeeklyPlannerPayload(CdBaseModel):
    climatization_enabled: bool = False
    charging_mode: str = ""
    charging_preferences: str = ""
    timer1: TimerPayload | None = None
    timer2: TimerPayload | None = None
    timer3: TimerPayload | None = None
    override_timer: TimerPayload | None = None
    preferred_charging_window: ChargingWindowPayload | None = None


class ChargeProfilePayload(CdBaseModel):
    weekly_planner: WeeklyPlannerPayload | None = None


_TIMER_FIELDS: tuple[tuple[ProfileKey, str], ...] = (
    (ProfileKey.TIMER1, "timer1"),
    (ProfileKey.TIMER2, "timer2"),
    (ProfileKey.TIMER3, "timer3"),
    (ProfileKey.OVERRIDE, "overrideTimer"),
)


def _parse_time(value: str) -> tuple[int, int]:
    try:
        hour_text, minute_text = value.split(":")[:2]
        hour, minute = int(hour_text), int(minute_text)
    except ValueError:
        raise ConnectedDriveParseError(f"Invalid time {value!r} in charge profile") from None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ConnectedDriveParseError(f"Time {value!r} out of range in charge profile")
    return hour, minute


def _format_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


# ------------------------------------------------------------------
# Editable profile
# ------------------------------------------------------------------


@dataclass(slots=True)
class TimedEntry:
    enabled: bool = False
    hour: int = 0
    minute: int = 0
    days: set[Weekday] = field(default_factory=set)


@dataclass
class ChargeProfile:
    """Mutable charge profile used as the edit overlay."""

    entries: dict[ProfileKey, TimedEntry]
    preference: ChargingPreference = ChargingPreference.UNKNOWN
    mode: ChargingMode = ChargingMode.UNKNOWN
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, content: str) -> ChargeProfile:
        """Parse a charge profile payload.

        Raises :class:`ConnectedDriveParseError` for anything that is not a
        charge profile with a weekly planner.
        """
        try:
            data = json.loads(content)
        except (TypeError, ValueError) as exc:
            raise ConnectedDriveParseError(f"Charge profile is not JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConnectedDriveParseError("Charge profile is not a JSON object")
        try:
            payload = ChargeProfilePayload.model_validate(data)
        except ValidationError as exc:
            raise ConnectedDriveParseError(f"Invalid charge profile: {exc}") from exc
        planner = payload.weekly_planner
        if planner is None:
            raise ConnectedDriveParseError("Charge profile has no weekly planner")

        entries: dict[ProfileKey, TimedEntry] = {
            ProfileKey.CLIMATE: TimedEntry(enabled=planner.climatization_enabled),
        }
        timers = {
            ProfileKey.TIMER1: planner.timer1,
            ProfileKey.TIMER2: planner.timer2,
            ProfileKey.TIMER3: planner.timer3,
            ProfileKey.OVERRIDE: planner.override_timer,
        }
        for key, timer in timers.items():
            timer = timer or TimerPayload()
            hour, minute = _parse_time(timer.departure_time)
            entries[key] = TimedEntry(
                enabled=timer.timer_enabled,
                hour=hour,
                minute=minute,
                days=set(timer.weekdays),
            )
        window = planner.preferred_charging_window or ChargingWindowPayload()
        start_hour, start_minute = _parse_time(window.start_time)
        end_hour, end_minute = _parse_time(window.end_time)
        entries[ProfileKey.WINDOW_START] = TimedEntry(enabled=window.enabled, hour=start_hour, minute=start_minute)
        entries[ProfileKey.WINDOW_END] = TimedEntry(enabled=window.enabled, hour=end_hour, minute=end_minute)

        return cls(
            entries=entries,
            preference=ChargingPreference(planner.charging_preferences or "UNKNOWN"),
            mode=ChargingMode(planner.charging_mode or "UNKNOWN"),
            raw=data,
        )

    def to_json(self) -> str:
        """Serialise into the payload sent with the charging-control command."""
        data = copy.deepcopy(self.raw)
        planner = data.get("weeklyPlanner")
        if not isinstance(planner, dict):
            planner = {}
            data["weeklyPlanner"] = planner

        planner["climatizationEnabled"] = self.entries[ProfileKey.CLIMATE].enabled
        for key, name in _TIMER_FIELDS:
            entry = self.entries[key]
            existing = planner.get(name)
            timer = dict(existing) if isinstance(existing, dict) else {}
            timer["departureTime"] = _format_time(entry.hour, entry.minute)
            timer["timerEnabled"] = entry.enabled
            timer["weekdays"] = [day.value for day in Weekday if day in entry.days]
            planner[name] = timer

        start = self.entries[ProfileKey.WINDOW_START]
        end = self.entries[ProfileKey.WINDOW_END]
        existing_window = planner.get("preferredChargingWindow")
        window = dict(existing_window) if isinstance(existing_window, dict) else {}
        window["enabled"] = start.enabled
        window["startTime"] = _format_time(start.hour, start.minute)
        window["endTime"] = _format_time(end.hour, end.minute)
        planner["preferredChargingWindow"] = window

        # Unknown values keep whatever the vehicle sent.
        if self.preference is not ChargingPreference.UNKNOWN:
            planner["chargingPreferences"] = self.preference.value
        if self.mode is not ChargingMode.UNKNOWN:
            planner["chargingMode"] = self.mode.value
        return json.dumps(data)

    def copy(self) -> ChargeProfile:
        return copy.deepcopy(self)

    def set_enabled(self, key: ProfileKey, enabled: bool) -> None:
        self.entries[key].enabled = enabled
        # Both window entries share one flag on the wire.
        if key is ProfileKey.WINDOW_START:
            self.entries[ProfileKey.WINDOW_END].enabled = enabled
        elif key is ProfileKey.WINDOW_END:
            self.entries[ProfileKey.WINDOW_START].enabled = enabled

    def set_hour(self, key: ProfileKey, hour: int) -> None:
        self.entries[key].hour = hour

    def set_minute(self, key: ProfileKey, minute: int) -> None:
        self.entries[key].minute = minute

    def set_day_enabled(self, key: ProfileKey, day: Weekday, enabled: bool) -> None:
        if key not in TIMER_KEYS:
            raise ValueError(f"{key} has no weekdays")
        days = self.entries[key].days
        if enabled:
            days.add(day)
        else:
            days.discard(day)
