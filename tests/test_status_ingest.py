from __future__ import annotations

import json

import pytest
from fakes import VIN, FakeFetcher, RefusingFetcher, legacy_status_payload, make_config, status_payload

from pyconnecteddrive._api.endpoints import Endpoints
from pyconnecteddrive.models.status import VehicleStatusView
from pyconnecteddrive.state.cache import SourceCache, TelemetrySource
from pyconnecteddrive.state.status import (
    INVALID_PAYLOAD_REASON,
    DeviceStatus,
    ProtocolMode,
    StatusDetail,
    StatusIngest,
    StatusReport,
)


class _Recorder:
    def __init__(self) -> None:
        self.completed: list[TelemetrySource] = []
        self.reports: list[StatusReport] = []
        self.views: list[VehicleStatusView] = []


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


@pytest.fixture
def cache() -> SourceCache:
    return SourceCache()


@pytest.fixture
def ingest(cache: SourceCache, fetcher: FakeFetcher, recorder: _Recorder) -> StatusIngest:
    return StatusIngest(
        cache,
        fetcher,
        Endpoints(make_config()),
        VIN,
        on_complete=recorder.completed.append,
        on_status=recorder.reports.append,
        on_view=recorder.views.append,
    )


def test_successful_status_brings_vehicle_online(
    ingest: StatusIngest, fetcher: FakeFetcher, cache: SourceCache, recorder: _Recorder
) -> None:
    ingest.request()
    request = fetcher.next(TelemetrySource.STATUS)
    assert request.request.url.endswith(f"/webapi/v1/user/vehicles/{VIN}/status")

    request.respond(status_payload())

    assert ingest.status == StatusReport(DeviceStatus.ONLINE)
    assert recorder.reports == [StatusReport(DeviceStatus.ONLINE)]
    assert recorder.completed == [TelemetrySource.STATUS]
    slot = cache.read(TelemetrySource.STATUS)
    assert slot is not None and not slot.is_error

    view = recorder.views[0]
    assert view.position is not None
    assert (view.position.lat, view.position.lon) == (48.1, 11.5)
    assert [msg.ccm_id for msg in view.check_control] == [955]
    assert [item.cbs_type for item in view.services] == ["BRAKE_FLUID", "VEHICLE_CHECK"]
    assert ingest.view == view


def test_unparseable_status_is_cached_and_reported_offline(
    ingest: StatusIngest, fetcher: FakeFetcher, cache: SourceCache, recorder: _Recorder
) -> None:
    ingest.request()
    fetcher.next(TelemetrySource.STATUS).respond("<html>maintenance</html>")

    assert ingest.status == StatusReport(
        DeviceStatus.OFFLINE, StatusDetail.COMMUNICATION_ERROR, INVALID_PAYLOAD_REASON
    )
    assert cache.read(TelemetrySource.STATUS) is not None
    assert cache.read(TelemetrySource.STATUS).is_error  # type: ignore[union-attr]
    assert recorder.views == []
    assert recorder.completed == [TelemetrySource.STATUS]


def test_not_found_switches_to_legacy_once(
    ingest: StatusIngest, fetcher: FakeFetcher, cache: SourceCache, recorder: _Recorder
) -> None:
    ingest.request()
    fetcher.next(TelemetrySource.STATUS).fail(404, "Not Found")

    assert ingest.mode is ProtocolMode.LEGACY
    # status stays in flight until the legacy answer arrives
    assert recorder.completed == []
    legacy = fetcher.next(TelemetrySource.STATUS)
    assert f"/api/vehicle/dynamic/v1/{VIN}" in legacy.request.url
    assert legacy.request.params == {"offset": "-60"}
    assert len(fetcher.for_source(TelemetrySource.STATUS)) == 2

    legacy.respond(legacy_status_payload())

    assert recorder.completed == [TelemetrySource.STATUS]
    assert ingest.status.status is DeviceStatus.ONLINE
    canonical = json.loads(cache.read(TelemetrySource.STATUS).payload)  # type: ignore[union-attr, arg-type]
    status = canonical["vehicleStatus"]
    assert status["vin"] == VIN
    assert status["mileage"] == 17236
    assert status["position"] == {"lat": 48.1, "lon": 11.5, "heading": 41, "status": "OK"}
    assert status["cbsData"][0]["cbsType"] == "ENGINE_OIL"
    assert recorder.views[-1].remaining_range_fuel == 248.0


def test_legacy_mode_is_permanent(ingest: StatusIngest, fetcher: FakeFetcher, recorder: _Recorder) -> None:
    ingest.request()
    fetcher.next(TelemetrySource.STATUS).fail(404, "Not Found")
    fetcher.next(TelemetrySource.STATUS).fail(404, "Not Found")

    # no second fallback: the cycle completes offline
    assert recorder.completed == [TelemetrySource.STATUS]
    assert fetcher.pending == []
    assert ingest.status == StatusReport(DeviceStatus.OFFLINE, StatusDetail.COMMUNICATION_ERROR, "Not Found")

    ingest.request()
    assert "/api/vehicle/dynamic/v1/" in fetcher.next(TelemetrySource.STATUS).request.url
    assert ingest.mode is ProtocolMode.LEGACY


def test_other_errors_do_not_switch_protocol(
    ingest: StatusIngest, fetcher: FakeFetcher, cache: SourceCache, recorder: _Recorder
) -> None:
    ingest.request()
    fetcher.next(TelemetrySource.STATUS).fail(503, "Service Unavailable")

    assert ingest.mode is ProtocolMode.CURRENT
    assert recorder.completed == [TelemetrySource.STATUS]
    assert ingest.status.reason == "Service Unavailable"
    slot = cache.read(TelemetrySource.STATUS)
    assert slot is not None and slot.is_error
    assert json.loads(slot.payload)["status"] == 503  # type: ignore[arg-type]


def test_repeated_status_is_not_reannounced(ingest: StatusIngest, fetcher: FakeFetcher, recorder: _Recorder) -> None:
    for _ in range(3):
        ingest.request()
        fetcher.next(TelemetrySource.STATUS).respond(status_payload())
    ingest.request()
    fetcher.next(TelemetrySource.STATUS).fail(500, "boom")
    ingest.request()
    fetcher.next(TelemetrySource.STATUS).fail(500, "boom")
    ingest.request()
    fetcher.next(TelemetrySource.STATUS).respond(status_payload())

    assert [report.status for report in recorder.reports] == [
        DeviceStatus.ONLINE,
        DeviceStatus.OFFLINE,
        DeviceStatus.ONLINE,
    ]
    assert len(recorder.views) == 4


def test_legacy_request_that_cannot_be_started_completes_status(
    cache: SourceCache, recorder: _Recorder
) -> None:
    fetcher = RefusingFetcher("/dynamic/")
    ingest = StatusIngest(
        cache,
        fetcher,
        Endpoints(make_config()),
        VIN,
        on_complete=recorder.completed.append,
        on_status=recorder.reports.append,
        on_view=recorder.views.append,
    )

    ingest.request()
    fetcher.next(TelemetrySource.STATUS).fail(404, "Not Found")

    assert ingest.mode is ProtocolMode.LEGACY
    assert recorder.completed == [TelemetrySource.STATUS]
    assert ingest.status.status is DeviceStatus.OFFLINE
    slot = cache.read(TelemetrySource.STATUS)
    assert slot is not None and slot.is_error
    assert json.loads(slot.payload) == {  # type: ignore[arg-type]
        "url": f"{make_config().api_base_url}/api/vehicle/dynamic/v1/{VIN}",
        "status": -1,
        "reason": "client session is closed",
    }
