"""Test doubles shared by the test modules."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from pyconnecteddrive._transport import RequestDescriptor
from pyconnecteddrive.callbacks import ResponseCallback
from pyconnecteddrive.config import VehicleConfig
from pyconnecteddrive.models.network import NetworkError
from pyconnecteddrive.state.cache import TelemetrySource

VIN = "WBA12345"
LATITUDE = 48.1
LONGITUDE = 11.5


def make_config(**overrides: Any) -> VehicleConfig:
    values: dict[str, Any] = {
        "username": "user@example.com",
        "password": "secret",
        "vin": VIN,
        "is_electric": True,
    }
    values.update(overrides)
    return VehicleConfig(**values)


# ------------------------------------------------------------------
# Fetcher
# ------------------------------------------------------------------


@dataclass
class PendingRequest:
    request: RequestDescriptor
    callback: ResponseCallback
    resolved: bool = False

    def respond(self, content: str | bytes) -> None:
        assert not self.resolved, f"{self.request.url} resolved twice"
        self.resolved = True
        self.callback.on_response(content)  # type: ignore[arg-type]

    def fail(self, status: int = 500, reason: str = "Internal Server Error") -> None:
        assert not self.resolved, f"{self.request.url} resolved twice"
        self.resolved = True
        self.callback.on_error(NetworkError(url=self.request.url, status=status, reason=reason))


class FakeFetcher:
    """Records requests; the test resolves them in any order."""

    def __init__(self) -> None:
        self.requests: list[PendingRequest] = []

    def fetch(self, request: RequestDescriptor, callback: ResponseCallback) -> None:
        self.requests.append(PendingRequest(request, callback))

    @property
    def pending(self) -> list[PendingRequest]:
        return [item for item in self.requests if not item.resolved]

    def for_source(self, source: TelemetrySource) -> list[PendingRequest]:
        return [item for item in self.requests if item.request.source is source]

    def next(self, source: TelemetrySource | None = None, *, url_part: str = "") -> PendingRequest:
        for item in self.pending:
            if source is not None and item.request.source is not source:
                continue
            if url_part not in item.request.url:
                continue
            return item
        raise AssertionError(f"No pending request for {source} {url_part!r}")


class RefusingFetcher(FakeFetcher):
    """Raises from ``fetch`` for URLs containing any of *refused*."""

    def __init__(self, *refused: str) -> None:
        super().__init__()
        self.refused = set(refused)

    def fetch(self, request: RequestDescriptor, callback: ResponseCallback) -> None:
        if any(part in request.url for part in self.refused):
            raise RuntimeError("client session is closed")
        super().fetch(request, callback)


# ------------------------------------------------------------------
# Scheduler
# ------------------------------------------------------------------


@dataclass
class FakeTimer:
    due: float
    fn: Callable[[], None]
    interval: float | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock; timers only fire from :meth:`advance`."""

    EPOCH = datetime(2026, 1, 1, tzinfo=UTC)

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def clock(self) -> datetime:
        return self.EPOCH + timedelta(seconds=self.now)

    def call_later(self, delay_seconds: float, fn: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(due=self.now + delay_seconds, fn=fn)
        self.timers.append(timer)
        return timer

    def call_periodic(self, interval_seconds: float, fn: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(due=self.now + interval_seconds, fn=fn, interval=interval_seconds)
        self.timers.append(timer)
        fn()
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [timer for timer in self.active if timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda item: item.due)
            self.now = timer.due
            if timer.interval is None:
                timer.cancelled = True
            else:
                timer.due += timer.interval
            timer.fn()
        self.now = target


# ------------------------------------------------------------------
# Sink
# ------------------------------------------------------------------

_MISSING = object()


class RecordingSink:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.updates: list[tuple[str, Any]] = []

    def publish(self, channel_id: str, value: Any) -> None:
        with self._lock:
            self.updates.append((channel_id, value))

    def values(self, channel_id: str) -> list[Any]:
        return [value for channel, value in self.updates if channel == channel_id]

    def last(self, channel_id: str, default: Any = _MISSING) -> Any:
        values = self.values(channel_id)
        if values:
            return values[-1]
        if default is _MISSING:
            raise AssertionError(f"{channel_id} was never published")
        return default


# ------------------------------------------------------------------
# Payloads
# ------------------------------------------------------------------


def status_payload(*, vin: str = VIN, mileage: int = 12345) -> str:
    return json.dumps(
        {
            "vehicleStatus": {
                "vin": vin,
                "mileage": mileage,
                "updateTime": "2026-01-01T10:00:00+0000",
                "doorLockState": "SECURED",
                "remainingRangeElectric": 120.0,
                "remainingRangeFuel": 80.0,
                "chargingLevelHv": 64.0,
                "chargingStatus": "CHARGING",
                "connectionStatus": "CONNECTED",
                "position": {"lat": LATITUDE, "lon": LONGITUDE, "heading": 270, "status": "OK"},
                "checkControlMessages": [
                    {
                        "ccmDescriptionShort": "Tyre pressure",
                        "ccmDescriptionLong": "Check tyre pressure",
                        "ccmId": 955,
                        "ccmMileage": 12000,
                    }
                ],
                "cbsData": [
                    {
                        "cbsType": "BRAKE_FLUID",
                        "cbsState": "OK",
                        "cbsDueDate": "2027-05",
                        "cbsDescription": "Next change in 2027",
                    },
                    {
                        "cbsType": "VEHICLE_CHECK",
                        "cbsState": "OK",
                        "cbsDueDate": "2026-09",
                        "cbsRemainingMileage": 15000,
                    },
                ],
            }
        }
    )


def legacy_status_payload() -> str:
    return json.dumps(
        {
            "attributesMap": {
                "mileage": "17236",
                "updateTime_converted_timestamp": "1600000000000",
                "door_lock_state": "SECURED",
                "gps_lat": str(LATITUDE),
                "gps_lng": str(LONGITUDE),
                "heading": "41",
                "beRemainingRangeElectricKm": "",
                "beRemainingRangeFuelKm": "248",
                "remaining_fuel": "32",
            },
            "vehicleMessages": {
                "ccmMessages": [],
                "cbsMessages": [
                    {
                        "text": "Engine oil",
                        "description": "Next service",
                        "status": "OK",
                        "date": "2027-01",
                        "unitOfLengthRemaining": "9000",
                    }
                ],
            },
        }
    )


def charge_profile_payload() -> str:
    return json.dumps(
        {
            "weeklyPlanner": {
                "climatizationEnabled": False,
                "chargingMode": "IMMEDIATE_CHARGING",
                "chargingPreferences": "NO_PRESELECTION",
                "timer1": {
                    "departureTime": "07:30",
                    "timerEnabled": False,
                    "weekdays": ["MONDAY", "FRIDAY"],
                },
                "timer2": {"departureTime": "12:00", "timerEnabled": False, "weekdays": []},
                "timer3": {"departureTime": "00:00", "timerEnabled": False, "weekdays": []},
                "overrideTimer": {"departureTime": "06:00", "timerEnabled": False, "weekdays": ["SATURDAY"]},
                "preferredChargingWindow": {"enabled": False, "startTime": "22:00", "endTime": "05:00"},
                "vendorExtension": {"keep": True},
            }
        }
    )


def last_trip_payload(vin: str = VIN) -> str:
    return json.dumps(
        {
            "lastTrip": {
                "date": "2026-01-01T09:00:00",
                "duration": 25.0,
                "totalDistance": 17.5,
                "avgElectricConsumption": 14.2,
                "avgRecuperation": 1.1,
                "vehicle": vin,
            }
        }
    )


def all_trips_payload() -> str:
    return json.dumps(
        {
            "allTrips": {
                "resetDate": "2020-01-01",
                "totalElectricDistance": {"userTotal": 23456.0},
                "avgElectricConsumption": {"userAverage": 16.3},
                "avgRecuperation": {"userAverage": 2.1},
                "chargecycleRange": {"userAverage": 180.0, "userHigh": 240.0},
            }
        }
    )


def destinations_payload() -> str:
    return json.dumps(
        {
            "destinations": [
                {
                    "lat": 48.2,
                    "lon": 11.6,
                    "country": "GERMANY",
                    "city": "Munich",
                    "street": "Petuelring",
                    "streetNumber": "130",
                    "type": "DESTINATION",
                    "createdAt": "2026-01-01T08:00:00",
                },
                {
                    "lat": 48.3,
                    "lon": 11.7,
                    "country": "GERMANY",
                    "city": "Freising",
                    "type": "DESTINATION",
                },
            ]
        }
    )


def range_map_payload() -> str:
    return json.dumps({"rangemap": {"center": {"lat": LATITUDE, "lon": LONGITUDE}, "quadrants": []}})


def execution_payload(status: str, service: str = "CHARGING_CONTROL") -> str:
    return json.dumps({"executionStatus": {"serviceType": service, "status": status, "eventId": "evt-1"}})
