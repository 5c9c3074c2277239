"""HTTP fetcher for vehicle requests.

The handler never awaits network I/O: it hands a :class:`RequestDescriptor`
and a callback to a :class:`Fetcher` and returns.  The fetcher resolves the
callback exactly once, without retries.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any, Literal, Protocol

import aiohttp
from pydantic import BaseModel, ConfigDict, Field

from pyconnecteddrive._constants import USER_AGENT
from pyconnecteddrive._redact import describe_request, mask_url, redact_for_log
from pyconnecteddrive.callbacks import ResponseCallback
from pyconnecteddrive.exceptions import ConnectedDriveTransportError
from pyconnecteddrive.models.network import NetworkError
from pyconnecteddrive.state.cache import TelemetrySource

_logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str]]


class RequestDescriptor(BaseModel):
    """Everything a fetcher needs to perform one request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: TelemetrySource | None = None
    """Telemetry source this request fills, ``None`` for remote services."""
    url: str
    method: Literal["GET", "POST"] = "GET"
    params: dict[str, str] = Field(default_factory=dict)
    data: dict[str, str] | None = None
    binary: bool = False


class Fetcher(Protocol):
    """Performs requests and resolves their callbacks exactly once."""

    def fetch(self, request: RequestDescriptor, callback: ResponseCallback) -> None: ...


def submit(fetcher: Fetcher, request: RequestDescriptor, callback: ResponseCallback) -> None:
    """Hand *request* to *fetcher*.

    A fetcher that raises instead of accepting the request resolves
    *callback* with a network error, so the caller always gets an answer.
    """
    try:
        fetcher.fetch(request, callback)
    except Exception as exc:
        _logger.warning("Request %s could not be started", mask_url(request.url), exc_info=True)
        callback.on_error(NetworkError(url=request.url, status=-1, reason=str(exc) or type(exc).__name__))


class HttpFetcher:
    """aiohttp based :class:`Fetcher`.

    Each request runs as its own task on *loop* (the running loop when
    omitted).  Calls from other threads are handed over to the loop.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        token_provider: TokenProvider | None = None,
        timeout: float = 30.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._http = http_session
        self._token_provider = token_provider
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._loop = loop
        self._lock = threading.Lock()
        self._pending: set[asyncio.Future[Any] | concurrent.futures.Future[Any]] = set()

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def fetch(self, request: RequestDescriptor, callback: ResponseCallback) -> None:
        loop = self._resolve_loop()
        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        future: asyncio.Future[Any] | concurrent.futures.Future[Any]
        if running is loop:
            future = loop.create_task(self._perform(request, callback))
        else:
            future = asyncio.run_coroutine_threadsafe(self._perform(request, callback), loop)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._done)

    def _done(self, future: asyncio.Future[Any] | concurrent.futures.Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            _logger.error("Response callback failed", exc_info=exc)

    async def _headers(self) -> dict[str, str]:
        headers = {"user-agent": USER_AGENT, "accept": "application/json"}
        if self._token_provider is not None:
            token = await self._token_provider()
            headers["authorization"] = f"Bearer {token}"
        return headers

    async def _perform(self, request: RequestDescriptor, callback: ResponseCallback) -> None:
        _logger.debug("%s", describe_request(request.method, request.url, request.params, request.data))
        content: str | bytes = b""
        error: NetworkError | None = None
        try:
            headers = await self._headers()
            async with self._http.request(
                request.method,
                request.url,
                params=request.params or None,
                data=request.data,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                if resp.status >= 300:
                    error = NetworkError(url=request.url, status=resp.status, reason=resp.reason or "")
                elif request.binary:
                    content = await resp.read()
                else:
                    # a body that does not match its charset still resolves as text
                    content = await resp.text(errors="replace")
        except ConnectedDriveTransportError as exc:
            error = NetworkError(url=request.url, status=exc.status_code, reason=exc.reason or str(exc))
        except (aiohttp.ClientError, TimeoutError) as exc:
            error = NetworkError(url=request.url, status=-1, reason=str(exc) or type(exc).__name__)
        except Exception as exc:
            _logger.warning("Unexpected failure for %s", mask_url(request.url), exc_info=True)
            error = NetworkError(url=request.url, status=-1, reason=str(exc) or type(exc).__name__)

        # outside the try: each request resolves exactly once
        if error is not None:
            _logger.debug("%s", redact_for_log(str(error)))
            callback.on_error(error)
            return
        callback.on_response(content)  # type: ignore[arg-type]

    def close(self) -> None:
        """Cancel all outstanding requests."""
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()
        for future in pending:
            future.cancel()
