"""Deferred and periodic task scheduling.

The handler only needs two primitives: run something once after a delay
(the edit idle timeout, remote status polls) and run something on a fixed
interval (the refresh loop).  Both return a handle that can be cancelled
from any thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Protocol

_logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_seconds: float, fn: Callable[[], None]) -> Cancellable: ...

    def call_periodic(self, interval_seconds: float, fn: Callable[[], None]) -> Cancellable:
        """Run *fn* now and then every *interval_seconds*."""
        ...


def _run_logged(fn: Callable[[], None]) -> None:
    try:
        fn()
    except Exception:
        _logger.exception("Scheduled task %r failed", fn)


class _ThreadSafeHandle:
    """Cancels a loop handle or task from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._lock = threading.Lock()
        self._handle: asyncio.TimerHandle | asyncio.Task[None] | None = None
        self._cancelled = False

    def attach(self, handle: asyncio.TimerHandle | asyncio.Task[None]) -> None:
        with self._lock:
            if self._cancelled:
                handle.cancel()
                return
            self._handle = handle

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            handle.cancel()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(handle.cancel)


class AsyncioScheduler:
    """:class:`Scheduler` backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _on_loop(self, fn: Callable[[], None]) -> None:
        loop = self.loop
        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            fn()
        else:
            loop.call_soon_threadsafe(fn)

    def call_later(self, delay_seconds: float, fn: Callable[[], None]) -> Cancellable:
        handle = _ThreadSafeHandle(self.loop)
        self._on_loop(lambda: handle.attach(self.loop.call_later(delay_seconds, _run_logged, fn)))
        return handle

    def call_periodic(self, interval_seconds: float, fn: Callable[[], None]) -> Cancellable:
        handle = _ThreadSafeHandle(self.loop)

        async def _periodic() -> None:
            while True:
                _run_logged(fn)
                await asyncio.sleep(interval_seconds)

        self._on_loop(lambda: handle.attach(self.loop.create_task(_periodic())))
        return handle
