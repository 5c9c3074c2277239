"""Outstanding-request tracking for one refresh cycle."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from pyconnecteddrive.state.cache import TelemetrySource

_logger = logging.getLogger(__name__)


class OutstandingRequestTracker:
    """Counts the in-flight fetches of a refresh cycle.

    ``on_complete`` runs exactly once per cycle, when the last source of the
    cycle resolves.  Sources completing after that (stragglers) are ignored.
    """

    def __init__(self, on_complete: Callable[[], None]) -> None:
        self._lock = threading.Lock()
        self._on_complete = on_complete
        self._in_flight: set[TelemetrySource] = set()
        self._open = False

    def begin_cycle(self, sources: Iterable[TelemetrySource]) -> bool:
        """Open a new cycle for *sources*.

        Returns ``False`` without touching the current cycle while a previous
        cycle has not completed yet.
        """
        requested = set(sources)
        with self._lock:
            if self._open:
                _logger.warning(
                    "Refresh skipped, still waiting for %s",
                    ", ".join(sorted(self._in_flight)),
                )
                return False
            if not requested:
                return False
            self._in_flight = requested
            self._open = True
        _logger.debug("Refresh cycle started for %s", ", ".join(sorted(requested)))
        return True

    def complete(self, source: TelemetrySource) -> None:
        with self._lock:
            if source not in self._in_flight:
                return
            self._in_flight.discard(source)
            if self._in_flight:
                return
            self._open = False
        # outside the lock: the callback may start the next cycle
        self._on_complete()

    @property
    def pending(self) -> frozenset[TelemetrySource]:
        with self._lock:
            return frozenset(self._in_flight)

    @property
    def is_idle(self) -> bool:
        with self._lock:
            return not self._open
