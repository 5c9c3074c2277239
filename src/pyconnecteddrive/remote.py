"""Remote service execution.

Commands are fire-and-forget: :meth:`RemoteCommandDispatcher.execute`
returns as soon as the request is handed to the fetcher.  The execution
state reported by the vehicle is polled on the scheduler until it is final
and every change is delivered to a :class:`RemoteListener`.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from pydantic import ValidationError

from pyconnecteddrive._api.endpoints import Endpoints
from pyconnecteddrive._constants import REMOTE_POLL_ATTEMPTS, REMOTE_POLL_INTERVAL
from pyconnecteddrive._transport import Fetcher, submit
from pyconnecteddrive.exceptions import ConnectedDriveValidationError
from pyconnecteddrive.models.network import NetworkError
from pyconnecteddrive.models.remote import ExecutionState, ExecutionStatusContainer, RemoteService
from pyconnecteddrive.scheduler import Cancellable, Scheduler

_logger = logging.getLogger(__name__)


class RemoteListener(Protocol):
    def on_remote_update(self, service: RemoteService, state: ExecutionState) -> None: ...


class _ExecutionCallback:
    def __init__(self, dispatcher: RemoteCommandDispatcher, generation: int, service: RemoteService) -> None:
        self._dispatcher = dispatcher
        self._generation = generation
        self._service = service

    def on_response(self, content: str) -> None:
        try:
            state = ExecutionStatusContainer.model_validate_json(content).execution_status.state
        except ValidationError as exc:
            _logger.debug("Unreadable execution status for %s: %s", self._service, exc)
            state = ExecutionState.ERROR
        self._dispatcher._report(self._generation, self._service, state)

    def on_error(self, error: NetworkError) -> None:
        _logger.debug("%s", error)
        self._dispatcher._report(self._generation, self._service, ExecutionState.ERROR)


class RemoteCommandDispatcher:
    """Runs one remote service at a time.

    A charging-control command issued while another charging-control
    command is in flight is absorbed: the vehicle receives only the first,
    the caller keeps its newer snapshot as the one awaiting confirmation.
    Any other command while busy is rejected.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        endpoints: Endpoints,
        scheduler: Scheduler,
        listener: RemoteListener,
        *,
        poll_interval: float = REMOTE_POLL_INTERVAL,
        poll_attempts: int = REMOTE_POLL_ATTEMPTS,
    ) -> None:
        self._fetcher = fetcher
        self._endpoints = endpoints
        self._scheduler = scheduler
        self._listener = listener
        self._poll_interval = poll_interval
        self._poll_attempts = poll_attempts
        self._lock = threading.RLock()
        self._active: RemoteService | None = None
        self._generation = 0
        self._polls = 0
        self._last_state: ExecutionState | None = None
        self._poll_handle: Cancellable | None = None

    @property
    def active(self) -> RemoteService | None:
        with self._lock:
            return self._active

    def execute(self, service: RemoteService, payload: str | None = None) -> None:
        if service is RemoteService.UNKNOWN:
            raise ConnectedDriveValidationError("Unknown remote service")
        with self._lock:
            if self._active is not None:
                if service is RemoteService.CHARGING_CONTROL and self._active is RemoteService.CHARGING_CONTROL:
                    _logger.debug("Charging control already in flight, not sending again")
                    return
                raise ConnectedDriveValidationError(f"Remote service {self._active} already running")
            self._generation += 1
            generation = self._generation
            self._active = service
            self._polls = 0
            self._last_state = None
        _logger.info("Executing remote service %s", service)
        submit(
            self._fetcher,
            self._endpoints.remote_execute(service, payload),
            _ExecutionCallback(self, generation, service),
        )

    def _report(self, generation: int, service: RemoteService, state: ExecutionState) -> None:
        with self._lock:
            if generation != self._generation or self._active is None:
                return
            if not state.is_final:
                if self._polls >= self._poll_attempts:
                    _logger.warning("No final state for %s after %d polls", service, self._polls)
                    state = ExecutionState.ERROR
                else:
                    self._poll_handle = self._scheduler.call_later(
                        self._poll_interval, lambda: self._poll(generation, service)
                    )
            if state.is_final:
                self._active = None
                self._poll_handle = None
            changed = state != self._last_state
            self._last_state = state
        if changed:
            _logger.debug("Remote service %s: %s", service, state)
            self._listener.on_remote_update(service, state)

    def _poll(self, generation: int, service: RemoteService) -> None:
        with self._lock:
            if generation != self._generation or self._active is None:
                return
            self._polls += 1
            self._poll_handle = None
        submit(
            self._fetcher,
            self._endpoints.remote_status(service),
            _ExecutionCallback(self, generation, service),
        )

    def cancel(self) -> None:
        """Stop tracking the running command; late answers are ignored."""
        with self._lock:
            self._generation += 1
            self._active = None
            if self._poll_handle is not None:
                self._poll_handle.cancel()
                self._poll_handle = None
