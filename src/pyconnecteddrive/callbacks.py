"""Completion handlers bound to vehicle requests.

A fetcher resolves every request exactly once: either ``on_response`` with
the body or ``on_error`` with a :class:`NetworkError`.  Callbacks may be
invoked from any thread.
"""

from __future__ import annotations

from typing import Protocol, TypeAlias

from pyconnecteddrive.models.network import NetworkError


class StringResponseCallback(Protocol):
    """Callback for text (JSON) responses."""

    def on_response(self, content: str) -> None: ...

    def on_error(self, error: NetworkError) -> None: ...


class ByteResponseCallback(Protocol):
    """Callback for binary responses (vehicle image)."""

    def on_response(self, content: bytes) -> None: ...

    def on_error(self, error: NetworkError) -> None: ...


ResponseCallback: TypeAlias = StringResponseCallback | ByteResponseCallback
