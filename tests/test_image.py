from __future__ import annotations

import pytest

from pyconnecteddrive.models.image import ImageProperties
from pyconnecteddrive.state.cache import SourceCache, TelemetrySource
from pyconnecteddrive.state.image import ImageState


@pytest.fixture
def cache() -> SourceCache:
    return SourceCache()


def test_requested_until_cached(cache: SourceCache) -> None:
    state = ImageState(cache)
    assert state.should_request()
    assert state.accept(ImageProperties(), b"png")
    assert not state.should_request()
    assert cache.read(TelemetrySource.IMAGE).payload == b"png"  # type: ignore[union-attr]


def test_fail_budget_stops_requests(cache: SourceCache) -> None:
    state = ImageState(cache, fail_limit=3)
    for _ in range(3):
        assert state.should_request()
        state.failed(ImageProperties())
    assert state.fail_limit_reached
    assert not state.should_request()


def test_change_resets_budget_and_wipes_image(cache: SourceCache) -> None:
    state = ImageState(cache, fail_limit=1)
    state.accept(ImageProperties(), b"front")
    state.failed(ImageProperties())

    updated = state.change(viewport="REAR")

    assert updated == ImageProperties(viewport="REAR", size=1024)
    assert state.properties == updated
    assert not cache.has(TelemetrySource.IMAGE)
    assert state.should_request()


def test_unchanged_properties_are_a_noop(cache: SourceCache) -> None:
    state = ImageState(cache)
    state.accept(ImageProperties(), b"front")
    assert state.change(viewport="FRONT", size=1024) is None
    assert cache.has(TelemetrySource.IMAGE)


def test_stale_response_is_dropped(cache: SourceCache) -> None:
    state = ImageState(cache)
    requested = state.properties
    state.change(size=512)

    assert not state.accept(requested, b"old")
    state.failed(requested)

    assert not cache.has(TelemetrySource.IMAGE)
    assert not state.fail_limit_reached
    assert state.accept(ImageProperties(size=512), b"new")
