"""Vehicle image request parameters."""

from __future__ import annotations

from dataclasses import dataclass

from pyconnecteddrive._constants import DEFAULT_IMAGE_SIZE, DEFAULT_IMAGE_VIEWPORT


@dataclass(frozen=True, slots=True)
class ImageProperties:
    """Viewing parameters of the rendered vehicle image.

    Two requests for equal properties are interchangeable; a response for
    properties that are no longer active is stale.
    """

    viewport: str = DEFAULT_IMAGE_VIEWPORT
    size: int = DEFAULT_IMAGE_SIZE
