"""Per-source telemetry cache."""

from __future__ import annotations

import enum
import threading
from collections.abc import Iterable
from dataclasses import dataclass


class TelemetrySource(enum.StrEnum):
    """One independently fetched and cached category of vehicle data."""

    STATUS = "status"
    LAST_TRIP = "last-trip"
    ALL_TRIPS = "all-trips"
    CHARGE_PROFILE = "charge-profile"
    DESTINATIONS = "destinations"
    RANGE_MAP = "range-map"
    IMAGE = "image"


# Sources whose emptiness means the capability set is not trustworthy yet.
_PROBE_SOURCES: tuple[TelemetrySource, ...] = (
    TelemetrySource.LAST_TRIP,
    TelemetrySource.ALL_TRIPS,
    TelemetrySource.DESTINATIONS,
)


@dataclass(frozen=True, slots=True)
class CacheSlot:
    """Most recent resolution of a source, successful or not."""

    payload: str | bytes
    is_error: bool = False


class SourceCache:
    """One slot per :class:`TelemetrySource`.

    Slots are overwritten unconditionally by the latest resolution, so a
    later error replaces an earlier success and vice versa.  Only the
    image slot may be wiped.
    """

    def __init__(self, capabilities: Iterable[str] = ()) -> None:
        self._lock = threading.RLock()
        self._slots: dict[TelemetrySource, CacheSlot] = {}
        self._capabilities: frozenset[str] = frozenset(capabilities)

    def store(self, source: TelemetrySource, payload: str | bytes, is_error: bool = False) -> None:
        with self._lock:
            self._slots[source] = CacheSlot(payload=payload, is_error=is_error)

    def read(self, source: TelemetrySource) -> CacheSlot | None:
        with self._lock:
            return self._slots.get(source)

    def has(self, source: TelemetrySource) -> bool:
        with self._lock:
            return source in self._slots

    def clear(self, source: TelemetrySource) -> None:
        if source is not TelemetrySource.IMAGE:
            raise ValueError(f"Only the image slot can be cleared, not {source}")
        with self._lock:
            self._slots.pop(source, None)

    def snapshot(self) -> dict[TelemetrySource, CacheSlot]:
        with self._lock:
            return dict(self._slots)

    @property
    def capabilities(self) -> frozenset[str]:
        with self._lock:
            return self._capabilities

    def set_capabilities(self, names: Iterable[str]) -> None:
        with self._lock:
            self._capabilities = frozenset(names)

    def is_supported(self, capability: str) -> bool:
        """Whether a capability should be queried.

        A listed capability is always supported.  Until last trip, all
        trips and destinations have each resolved once, every capability
        is probed so that the cache gets filled at least once.
        """
        with self._lock:
            if capability in self._capabilities:
                return True
            return any(source not in self._slots for source in _PROBE_SOURCES)
