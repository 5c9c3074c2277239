"""Vehicle image parameters and download budget."""

from __future__ import annotations

import dataclasses
import threading

from pyconnecteddrive._constants import IMAGE_FAIL_LIMIT
from pyconnecteddrive.models.image import ImageProperties
from pyconnecteddrive.state.cache import SourceCache, TelemetrySource


class ImageState:
    """Active image properties plus the failed-download counter.

    Property changes and response acceptance are serialised on one lock, so
    a response is judged against the properties active when it arrives.
    """

    def __init__(
        self,
        cache: SourceCache,
        properties: ImageProperties | None = None,
        fail_limit: int = IMAGE_FAIL_LIMIT,
    ) -> None:
        self._cache = cache
        self._lock = threading.Lock()
        self._properties = properties or ImageProperties()
        self._fail_limit = fail_limit
        self._failures = 0

    @property
    def properties(self) -> ImageProperties:
        with self._lock:
            return self._properties

    @property
    def fail_limit_reached(self) -> bool:
        with self._lock:
            return self._failures >= self._fail_limit

    def should_request(self) -> bool:
        """An image is requested while none is cached and the budget allows it."""
        with self._lock:
            return self._failures < self._fail_limit and not self._cache.has(TelemetrySource.IMAGE)

    def change(self, *, viewport: str | None = None, size: int | None = None) -> ImageProperties | None:
        """Apply new properties.

        Returns the new properties when they differ from the active ones, in
        which case the cached image is wiped and the budget is reset.
        Returns ``None`` when nothing changed.
        """
        with self._lock:
            updated = self._properties
            if viewport is not None:
                updated = dataclasses.replace(updated, viewport=viewport)
            if size is not None:
                updated = dataclasses.replace(updated, size=size)
            if updated == self._properties:
                return None
            self._properties = updated
            self._failures = 0
            self._cache.clear(TelemetrySource.IMAGE)
            return updated

    def accept(self, requested: ImageProperties, content: bytes) -> bool:
        """Cache *content* unless *requested* is no longer the active properties."""
        with self._lock:
            if requested != self._properties:
                return False
            self._cache.store(TelemetrySource.IMAGE, content)
            return True

    def failed(self, requested: ImageProperties) -> None:
        with self._lock:
            if requested == self._properties:
                self._failures += 1
