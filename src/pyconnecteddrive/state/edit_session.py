"""Optimistic charge profile editing.

Edits arrive one field at a time and accumulate in a local overlay of the
cached profile.  The overlay is discarded after five idle minutes, or
promoted into the cache once the vehicle confirms the charging-control
command that carried it.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, Protocol, TypeAlias

from pyconnecteddrive._constants import EDIT_TIMEOUT_SECONDS
from pyconnecteddrive.channels import (
    CHARGE_MODE,
    CHARGE_PREFERENCE,
    StateSink,
    charge_day_channel,
    charge_enabled_channel,
    charge_time_channel,
    render_charge_profile,
    render_profile_key,
    to_title_case,
)
from pyconnecteddrive.exceptions import ConnectedDriveParseError, ConnectedDriveValidationError
from pyconnecteddrive.models.charge_profile import (
    TIMER_KEYS,
    ChargeProfile,
    ChargingMode,
    ChargingPreference,
    ProfileKey,
    Weekday,
)
from pyconnecteddrive.models.remote import RemoteService
from pyconnecteddrive.scheduler import Cancellable, Scheduler
from pyconnecteddrive.state.cache import SourceCache, TelemetrySource

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RemoteExecutor(Protocol):
    def execute(self, service: RemoteService, payload: str | None = None) -> None: ...


# ------------------------------------------------------------------
# Channel dispatch table
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EnableField:
    key: ProfileKey


@dataclass(frozen=True, slots=True)
class TimeField:
    key: ProfileKey
    is_hour: bool


@dataclass(frozen=True, slots=True)
class DayField:
    key: ProfileKey
    day: Weekday


@dataclass(frozen=True, slots=True)
class PreferenceField:
    pass


@dataclass(frozen=True, slots=True)
class ModeField:
    pass


ChargeField: TypeAlias = EnableField | TimeField | DayField | PreferenceField | ModeField


def _build_charge_channels() -> Mapping[str, ChargeField]:
    fields: dict[str, ChargeField] = {
        CHARGE_PREFERENCE: PreferenceField(),
        CHARGE_MODE: ModeField(),
    }
    for key in ProfileKey:
        # the window shares one enabled flag, owned by its start entry
        if key is not ProfileKey.WINDOW_END:
            fields[charge_enabled_channel(key)] = EnableField(key)
        if key is ProfileKey.CLIMATE:
            continue
        fields[charge_time_channel(key, True)] = TimeField(key, True)
        fields[charge_time_channel(key, False)] = TimeField(key, False)
        if key in TIMER_KEYS:
            for day in Weekday:
                fields[charge_day_channel(key, day)] = DayField(key, day)
    return MappingProxyType(fields)


#: Editable charge channels, keyed by channel id.
CHARGE_CHANNELS: Mapping[str, ChargeField] = _build_charge_channels()


# ------------------------------------------------------------------
# Value coercion
# ------------------------------------------------------------------

_TRUE_STRINGS = frozenset({"ON", "TRUE"})
_FALSE_STRINGS = frozenset({"OFF", "FALSE"})


def _coerce_bool(channel_id: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().upper()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    raise ConnectedDriveValidationError(f"{channel_id} expects ON or OFF, got {value!r}")


def coerce_int(channel_id: str, value: Any, upper: int, lower: int = 0) -> int:
    """Whole number in *lower*..*upper* from an int, an integral float or a numeric string."""
    number: int | None = None
    if isinstance(value, bool):
        number = None
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float) and math.isfinite(value) and value.is_integer():
        number = int(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            parsed = math.nan
        if math.isfinite(parsed) and parsed.is_integer():
            number = int(parsed)
    if number is None or not lower <= number <= upper:
        raise ConnectedDriveValidationError(f"{channel_id} expects a whole number {lower}-{upper}, got {value!r}")
    return number


def _coerce_choice(channel_id: str, enum_cls: type[ChargingPreference] | type[ChargingMode], value: Any) -> Any:
    if isinstance(value, str):
        resolved = enum_cls(value)
        if resolved.value != "UNKNOWN":
            return resolved
    options = ", ".join(member.value for member in enum_cls if member.value != "UNKNOWN")
    raise ConnectedDriveValidationError(f"{channel_id} expects one of {options}, got {value!r}")


def coerce_value(channel_id: str, field: ChargeField, value: Any) -> Any:
    """Validate *value* for *field*; raises :class:`ConnectedDriveValidationError`."""
    if isinstance(field, (EnableField, DayField)):
        return _coerce_bool(channel_id, value)
    if isinstance(field, TimeField):
        return coerce_int(channel_id, value, 23 if field.is_hour else 59)
    if isinstance(field, PreferenceField):
        return _coerce_choice(channel_id, ChargingPreference, value)
    return _coerce_choice(channel_id, ChargingMode, value)


def _apply(profile: ChargeProfile, field: ChargeField, value: Any) -> dict[str, Any]:
    """Mutate *profile* and return the channel states that changed."""
    if isinstance(field, EnableField):
        profile.set_enabled(field.key, value)
        return render_profile_key(profile, field.key)
    if isinstance(field, TimeField):
        if field.is_hour:
            profile.set_hour(field.key, value)
        else:
            profile.set_minute(field.key, value)
        return render_profile_key(profile, field.key)
    if isinstance(field, DayField):
        profile.set_day_enabled(field.key, field.day, value)
        return render_profile_key(profile, field.key)
    if isinstance(field, PreferenceField):
        profile.preference = value
        return {CHARGE_PREFERENCE: to_title_case(profile.preference.value)}
    profile.mode = value
    return {CHARGE_MODE: to_title_case(profile.mode.value)}


# ------------------------------------------------------------------
# Session
# ------------------------------------------------------------------


class ChargeProfileEditSession:
    """Local overlay of the cached charge profile.

    At most one overlay exists at a time.  It is created by the first edit,
    reset on every further edit's idle timer, and ends either when the idle
    timeout fires (un-sent edits are reverted) or when the vehicle confirms
    the last sent profile (which becomes the cached profile).
    """

    def __init__(
        self,
        cache: SourceCache,
        sink: StateSink,
        scheduler: Scheduler,
        dispatcher: RemoteExecutor,
        *,
        clock: Callable[[], datetime] = _utcnow,
        timeout: float = EDIT_TIMEOUT_SECONDS,
    ) -> None:
        self._cache = cache
        self._sink = sink
        self._scheduler = scheduler
        self._dispatcher = dispatcher
        self._clock = clock
        self._timeout = timeout
        self._lock = threading.RLock()
        self._overlay: ChargeProfile | None = None
        self._last_mutation: datetime | None = None
        self._pending_sent: str | None = None
        self._timer: Cancellable | None = None
        self._generation = 0

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._overlay is not None

    @property
    def last_mutation(self) -> datetime | None:
        with self._lock:
            return self._last_mutation

    @property
    def pending_sent(self) -> str | None:
        with self._lock:
            return self._pending_sent

    @property
    def timer_scheduled(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _cached_profile(self) -> ChargeProfile | None:
        slot = self._cache.read(TelemetrySource.CHARGE_PROFILE)
        if slot is None or slot.is_error or not isinstance(slot.payload, str):
            return None
        try:
            return ChargeProfile.from_json(slot.payload)
        except ConnectedDriveParseError:
            return None

    def begin_edit(self) -> ChargeProfile:
        """Open the overlay from the cached profile if it is not open yet."""
        with self._lock:
            if self._overlay is None:
                slot = self._cache.read(TelemetrySource.CHARGE_PROFILE)
                if slot is None or slot.is_error or not isinstance(slot.payload, str):
                    raise ConnectedDriveValidationError("No charge profile received so far, cannot start editing")
                try:
                    self._overlay = ChargeProfile.from_json(slot.payload)
                except ConnectedDriveParseError as exc:
                    raise ConnectedDriveValidationError(f"Cannot edit charge profile: {exc}") from exc
                _logger.info("Charge profile editing started")
            return self._overlay

    def apply_edit(self, channel_id: str, value: Any) -> None:
        """Apply one field edit and echo the affected channels.

        Raises :class:`ConnectedDriveValidationError` for unknown channels and
        invalid values, leaving the session untouched.
        """
        field = CHARGE_CHANNELS.get(channel_id)
        if field is None:
            raise ConnectedDriveValidationError(f"Unsupported charge profile channel {channel_id!r}")
        coerced = coerce_value(channel_id, field, value)
        with self._lock:
            profile = self.begin_edit()
            states = _apply(profile, field, coerced)
            self._last_mutation = self._clock()
            self._restart_timer()
            self._publish(states)

    def _restart_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._generation += 1
        generation = self._generation
        self._timer = self._scheduler.call_later(self._timeout, lambda: self._on_timeout(generation))

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1

    def _on_timeout(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._overlay is None:
                return
            self._timer = None
            self._overlay = None
            self._last_mutation = None
            _logger.info("Charge profile editing timed out, reverting to last received profile")
            self.render()

    def send(self, payload: str | None = None) -> None:
        """Send the overlay, or *payload*, or the cached profile, in that order.

        The sent JSON is kept as the pending snapshot until the vehicle
        confirms it.  The overlay stays open.
        """
        with self._lock:
            if payload is None and self._overlay is not None:
                payload = self._overlay.to_json()
            if payload is None:
                slot = self._cache.read(TelemetrySource.CHARGE_PROFILE)
                if slot is None or slot.is_error or not isinstance(slot.payload, str):
                    raise ConnectedDriveValidationError("No charge profile available to send")
                payload = slot.payload
            previous, self._pending_sent = self._pending_sent, payload
        _logger.info("Sending charge profile")
        _logger.debug("Charge profile payload: %s", payload)
        try:
            self._dispatcher.execute(RemoteService.CHARGING_CONTROL, payload)
        except ConnectedDriveValidationError:
            with self._lock:
                if self._pending_sent == payload:
                    self._pending_sent = previous
            raise

    def confirm_sent(self) -> bool:
        """Promote the pending snapshot into the cache and end the session.

        The idle timeout is stopped in either case.  Returns ``False`` when
        nothing was pending.
        """
        with self._lock:
            self._stop_timer()
            if self._pending_sent is None:
                return False
            self._cache.store(TelemetrySource.CHARGE_PROFILE, self._pending_sent)
            self._pending_sent = None
            self._overlay = None
            self._last_mutation = None
            _logger.info("Charge profile confirmed by vehicle")
            self.render()
            return True

    def current_profile(self) -> ChargeProfile | None:
        """The overlay while editing, otherwise the cached profile."""
        with self._lock:
            if self._overlay is not None:
                return self._overlay.copy()
            return self._cached_profile()

    def render(self) -> None:
        with self._lock:
            profile = self.current_profile()
            if profile is None:
                return
            self._publish(render_charge_profile(profile))

    def close(self) -> None:
        """Cancel the idle timer and drop the overlay."""
        with self._lock:
            self._stop_timer()
            self._overlay = None
            self._last_mutation = None

    def _publish(self, states: Mapping[str, Any]) -> None:
        for channel_id, value in states.items():
            self._sink.publish(channel_id, value)
