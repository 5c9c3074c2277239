from __future__ import annotations

import pytest

from pyconnecteddrive._constants import LAST_DESTINATIONS, STATISTICS
from pyconnecteddrive.state.cache import CacheSlot, SourceCache, TelemetrySource


def test_most_recent_resolution_wins() -> None:
    cache = SourceCache()
    assert cache.read(TelemetrySource.LAST_TRIP) is None
    assert not cache.has(TelemetrySource.LAST_TRIP)

    cache.store(TelemetrySource.LAST_TRIP, '{"lastTrip": {}}')
    cache.store(TelemetrySource.LAST_TRIP, '{"status": 500}', is_error=True)
    assert cache.read(TelemetrySource.LAST_TRIP) == CacheSlot('{"status": 500}', is_error=True)

    cache.store(TelemetrySource.LAST_TRIP, '{"lastTrip": {"totalDistance": 3}}')
    assert cache.read(TelemetrySource.LAST_TRIP) == CacheSlot('{"lastTrip": {"totalDistance": 3}}')


def test_only_image_slot_can_be_cleared() -> None:
    cache = SourceCache()
    cache.store(TelemetrySource.IMAGE, b"\x89PNG")
    cache.store(TelemetrySource.STATUS, "{}")

    cache.clear(TelemetrySource.IMAGE)
    assert not cache.has(TelemetrySource.IMAGE)

    with pytest.raises(ValueError):
        cache.clear(TelemetrySource.STATUS)
    assert cache.has(TelemetrySource.STATUS)


def test_listed_capability_is_always_supported() -> None:
    cache = SourceCache([STATISTICS])
    for source in (TelemetrySource.LAST_TRIP, TelemetrySource.ALL_TRIPS, TelemetrySource.DESTINATIONS):
        cache.store(source, "{}")

    assert cache.is_supported(STATISTICS)
    assert not cache.is_supported(LAST_DESTINATIONS)


@pytest.mark.parametrize(
    "missing",
    [TelemetrySource.LAST_TRIP, TelemetrySource.ALL_TRIPS, TelemetrySource.DESTINATIONS],
)
def test_unlisted_capability_probed_while_any_probe_source_is_empty(missing: TelemetrySource) -> None:
    cache = SourceCache()
    for source in (TelemetrySource.LAST_TRIP, TelemetrySource.ALL_TRIPS, TelemetrySource.DESTINATIONS):
        if source is not missing:
            cache.store(source, "{}", is_error=True)

    assert cache.is_supported(STATISTICS)
    assert cache.is_supported(LAST_DESTINATIONS)


def test_capabilities_can_be_replaced() -> None:
    cache = SourceCache()
    cache.set_capabilities([LAST_DESTINATIONS])
    assert cache.capabilities == {LAST_DESTINATIONS}
