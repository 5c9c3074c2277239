from __future__ import annotations

import pytest
from fakes import FakeFetcher, FakeScheduler, execution_payload, make_config

from pyconnecteddrive._api.endpoints import Endpoints
from pyconnecteddrive.exceptions import ConnectedDriveValidationError
from pyconnecteddrive.models.remote import ExecutionState, RemoteService
from pyconnecteddrive.remote import RemoteCommandDispatcher


class RecordingListener:
    def __init__(self) -> None:
        self.updates: list[tuple[RemoteService, ExecutionState]] = []

    def on_remote_update(self, service: RemoteService, state: ExecutionState) -> None:
        self.updates.append((service, state))


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def dispatcher(fetcher: FakeFetcher, scheduler: FakeScheduler, listener: RecordingListener) -> RemoteCommandDispatcher:
    return RemoteCommandDispatcher(
        fetcher,
        Endpoints(make_config()),
        scheduler,
        listener,
        poll_interval=5.0,
        poll_attempts=3,
    )


def test_execute_posts_service_and_polls_until_final(
    dispatcher: RemoteCommandDispatcher,
    fetcher: FakeFetcher,
    scheduler: FakeScheduler,
    listener: RecordingListener,
) -> None:
    dispatcher.execute(RemoteService.LIGHT_FLASH)

    request = fetcher.next(url_part="/executeService")
    assert request.request.method == "POST"
    assert request.request.data == {"serviceType": "LIGHT_FLASH"}
    assert dispatcher.active is RemoteService.LIGHT_FLASH

    request.respond(execution_payload("INITIATED", "LIGHT_FLASH"))
    assert fetcher.pending == []

    scheduler.advance(5)
    poll = fetcher.next(url_part="/serviceExecutionStatus")
    assert poll.request.params == {"serviceType": "LIGHT_FLASH"}
    poll.respond(execution_payload("DELIVERED", "LIGHT_FLASH"))

    scheduler.advance(5)
    fetcher.next(url_part="/serviceExecutionStatus").respond(execution_payload("EXECUTED", "LIGHT_FLASH"))

    assert listener.updates == [
        (RemoteService.LIGHT_FLASH, ExecutionState.INITIATED),
        (RemoteService.LIGHT_FLASH, ExecutionState.DELIVERED),
        (RemoteService.LIGHT_FLASH, ExecutionState.EXECUTED),
    ]
    assert dispatcher.active is None
    assert scheduler.active == []


def test_payload_is_sent_with_charging_control(
    dispatcher: RemoteCommandDispatcher, fetcher: FakeFetcher
) -> None:
    dispatcher.execute(RemoteService.CHARGING_CONTROL, '{"weeklyPlanner": {}}')
    assert fetcher.next().request.data == {"serviceType": "CHARGING_CONTROL", "data": '{"weeklyPlanner": {}}'}


def test_unchanged_state_is_reported_once(
    dispatcher: RemoteCommandDispatcher,
    fetcher: FakeFetcher,
    scheduler: FakeScheduler,
    listener: RecordingListener,
) -> None:
    dispatcher.execute(RemoteService.DOOR_LOCK)
    fetcher.next().respond(execution_payload("PENDING", "DOOR_LOCK"))
    scheduler.advance(5)
    fetcher.next().respond(execution_payload("PENDING", "DOOR_LOCK"))

    assert listener.updates == [(RemoteService.DOOR_LOCK, ExecutionState.PENDING)]


def test_gives_up_after_poll_attempts(
    dispatcher: RemoteCommandDispatcher,
    fetcher: FakeFetcher,
    scheduler: FakeScheduler,
    listener: RecordingListener,
) -> None:
    dispatcher.execute(RemoteService.HORN)
    fetcher.next().respond(execution_payload("PENDING", "HORN_BLOW"))
    for _ in range(3):
        scheduler.advance(5)
        fetcher.next().respond(execution_payload("PENDING", "HORN_BLOW"))

    assert listener.updates[-1] == (RemoteService.HORN, ExecutionState.ERROR)
    assert dispatcher.active is None
    assert len(fetcher.requests) == 4
    assert scheduler.active == []


@pytest.mark.parametrize("fail", [True, False])
def test_failure_reports_error(
    dispatcher: RemoteCommandDispatcher,
    fetcher: FakeFetcher,
    listener: RecordingListener,
    fail: bool,
) -> None:
    dispatcher.execute(RemoteService.VEHICLE_FINDER)
    if fail:
        fetcher.next().fail(503, "Service Unavailable")
    else:
        fetcher.next().respond("not json")

    assert listener.updates == [(RemoteService.VEHICLE_FINDER, ExecutionState.ERROR)]
    assert dispatcher.active is None


def test_busy_dispatcher_rejects_other_commands(
    dispatcher: RemoteCommandDispatcher, fetcher: FakeFetcher
) -> None:
    dispatcher.execute(RemoteService.DOOR_UNLOCK)
    with pytest.raises(ConnectedDriveValidationError, match="already running"):
        dispatcher.execute(RemoteService.LIGHT_FLASH)
    assert len(fetcher.requests) == 1


def test_second_charging_control_is_absorbed(
    dispatcher: RemoteCommandDispatcher, fetcher: FakeFetcher
) -> None:
    dispatcher.execute(RemoteService.CHARGING_CONTROL, "{}")
    dispatcher.execute(RemoteService.CHARGING_CONTROL, '{"a": 1}')
    assert len(fetcher.requests) == 1


def test_unknown_service_is_rejected(dispatcher: RemoteCommandDispatcher, fetcher: FakeFetcher) -> None:
    with pytest.raises(ConnectedDriveValidationError):
        dispatcher.execute(RemoteService.UNKNOWN)
    assert fetcher.requests == []


def test_cancel_ignores_late_answers(
    dispatcher: RemoteCommandDispatcher,
    fetcher: FakeFetcher,
    scheduler: FakeScheduler,
    listener: RecordingListener,
) -> None:
    dispatcher.execute(RemoteService.CHARGE_NOW)
    fetcher.next().respond(execution_payload("PENDING", "CHARGE_NOW"))
    dispatcher.cancel()

    scheduler.advance(60)
    assert len(fetcher.requests) == 1
    assert dispatcher.active is None
    assert listener.updates == [(RemoteService.CHARGE_NOW, ExecutionState.PENDING)]

    dispatcher.execute(RemoteService.DOOR_LOCK)
    assert len(fetcher.requests) == 2
