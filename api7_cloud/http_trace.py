"""HTTP call tracing for troubleshooting API7 Cloud communication.

Tracing is opt-in. When it is off no aiohttp TraceConfig is installed on
the session, no series is allocated and nothing is emitted, so a client
without tracing behaves exactly as one that never imported this module.

When it is on, every call gets a TraceSeries:
- begun by the transport before the request is issued
- appended to by aiohttp lifecycle signals, in occurrence order
- completed with the response (or the failure)
- handed to the emitter exactly once

Tracing only observes; it never changes the outcome of a call.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import aiohttp
from yarl import URL

from .ids import IDGenerator, UUIDGenerator

_LOGGER = logging.getLogger(__name__)

# Key under which the series travels in aiohttp's trace_request_ctx.
_SERIES_KEY = "api7_cloud.trace_series"

_REDACTED_HEADERS = frozenset({"authorization"})


@dataclass(frozen=True)
class TraceEvent:
    """An event that occurred during one call to API7 Cloud."""

    message: str
    happened_at: datetime


def generate_event(template: str, *args: Any) -> TraceEvent:
    """Create an event stamped with the current time."""
    message = template % args if args else template
    return TraceEvent(message=message, happened_at=datetime.now())


@dataclass(frozen=True)
class RequestSnapshot:
    """Copy of the outgoing request. The body lives on the series."""

    method: str
    url: URL
    headers: dict[str, str]


@dataclass(frozen=True)
class ResponseSnapshot:
    """Copy of the response status line and headers."""

    status: int
    reason: str | None
    headers: dict[str, str]


@dataclass
class TraceSeries:
    """Events of one HTTP call, ordered by their happening time.

    Attributes:
        id: Unique identifier of this series.
        request: Snapshot of the outgoing request.
        request_body: Copy of the outgoing request body.
        response: Snapshot of the response, None if the call failed.
        response_body: Copy of the response body.
        events: Lifecycle events in chronological order.
    """

    id: str
    request: RequestSnapshot
    request_body: bytes = b""
    response: ResponseSnapshot | None = None
    response_body: bytes = b""
    events: list[TraceEvent] = field(default_factory=lambda: [])

    _body_bytes_sent: int = field(default=0, repr=False)
    _request_sent: bool = field(default=False, repr=False)
    _published: bool = field(default=False, repr=False)

    @property
    def address(self) -> str:
        """``host:port`` the call is destined to."""
        url = self.request.url
        return f"{url.host}:{url.port}"

    def append_event(self, event: TraceEvent) -> None:
        self.events.append(event)

    def mark_request_sent(self) -> None:
        """Record the "request sent" event; later calls are no-ops."""
        if self._request_sent:
            return
        self._request_sent = True
        self.append_event(generate_event("request sent"))


class TraceEmitter(ABC):
    """Abstract consumer of finished trace series.

    Implementations can write to:
    - In-memory buffer (tests, dev tools)
    - asyncio queue (a task printing or shipping series)
    - Callback (custom handling)
    - Null (discard)
    """

    @abstractmethod
    def emit(self, series: TraceSeries) -> None:
        """Hand over a finished series.

        Must not block. Implementations handle their own buffering.
        """

    async def emit_async(self, series: TraceSeries) -> None:
        """Hand over a finished series, waiting if the emitter is full."""
        self.emit(series)


class NullEmitter(TraceEmitter):
    """No-op emitter."""

    def emit(self, series: TraceSeries) -> None:
        """Discard the series."""


class BufferEmitter(TraceEmitter):
    """Keeps the most recent series in memory; the oldest drop out first."""

    def __init__(self, max_size: int = 1000) -> None:
        self._recent: deque[TraceSeries] = deque(maxlen=max_size)

    def emit(self, series: TraceSeries) -> None:
        self._recent.append(series)

    @property
    def series(self) -> list[TraceSeries]:
        """Retained series, oldest first."""
        return list(self._recent)

    def clear(self) -> None:
        self._recent.clear()

    def last(self, n: int = 1) -> list[TraceSeries]:
        """The n most recent series, oldest first."""
        return self.series[-n:]


class CallbackEmitter(TraceEmitter):
    """Emitter that calls a callback function."""

    def __init__(self, callback: Callable[[TraceSeries], None]) -> None:
        self._callback = callback

    def emit(self, series: TraceSeries) -> None:
        self._callback(series)


class QueueEmitter(TraceEmitter):
    """Hands series over to a consumer task through an asyncio queue.

    By default the queue is unbounded: a traced call never waits for the
    consumer and series pile up in memory until it drains them. With a
    positive maxsize the transport waits for room before returning, so a
    slow consumer slows the calls down instead.

    Usage:
        async for series in client.traces:
            print(format_trace_series(series))
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[TraceSeries] = asyncio.Queue(maxsize=maxsize)

    @property
    def bounded(self) -> bool:
        return self._queue.maxsize > 0

    def emit(self, series: TraceSeries) -> None:
        """Queue the series without waiting; dropped if the queue is full."""
        try:
            self._queue.put_nowait(series)
        except asyncio.QueueFull:
            _LOGGER.warning("Trace queue full, dropping series %s", series.id)

    async def emit_async(self, series: TraceSeries) -> None:
        await self._queue.put(series)

    async def get(self) -> TraceSeries:
        """Wait for the next finished series."""
        return await self._queue.get()

    def pending(self) -> int:
        """Number of series not consumed yet."""
        return self._queue.qsize()

    def __aiter__(self) -> AsyncIterator[TraceSeries]:
        return self._iter_series()

    async def _iter_series(self) -> AsyncIterator[TraceSeries]:
        while True:
            yield await self._queue.get()


def _series_of(trace_config_ctx: Any) -> TraceSeries | None:
    request_ctx = getattr(trace_config_ctx, "trace_request_ctx", None)
    if isinstance(request_ctx, Mapping):
        series = request_ctx.get(_SERIES_KEY)
        if isinstance(series, TraceSeries):
            return series
    return None


class TraceCollector:
    """Collects lifecycle events of traced calls and publishes them.

    Usage:
        collector = TraceCollector(emitter)
        session = aiohttp.ClientSession(trace_configs=[collector.trace_config()])
        series = collector.begin("POST", url, headers, body)
        # issue request with trace_request_ctx=collector.request_context(series)
        collector.record_response(series, resp, body)   # or record_error()
        collector.publish(series)
    """

    def __init__(
        self,
        emitter: TraceEmitter,
        *,
        id_generator: IDGenerator | None = None,
    ) -> None:
        self._emitter = emitter
        self._id_generator = id_generator or UUIDGenerator()

    @property
    def emitter(self) -> TraceEmitter:
        return self._emitter

    def trace_config(self) -> aiohttp.TraceConfig:
        """Build the aiohttp TraceConfig feeding this collector."""
        config = aiohttp.TraceConfig()
        config.on_connection_create_start.append(self._on_connection_create_start)
        config.on_connection_create_end.append(self._on_connection_create_end)
        config.on_connection_reuseconn.append(self._on_connection_reuseconn)
        config.on_dns_resolvehost_start.append(self._on_dns_resolvehost_start)
        config.on_dns_resolvehost_end.append(self._on_dns_resolvehost_end)
        config.on_request_headers_sent.append(self._on_request_headers_sent)
        config.on_request_chunk_sent.append(self._on_request_chunk_sent)
        config.on_request_end.append(self._on_request_end)
        return config

    def begin(
        self,
        method: str,
        url: URL,
        headers: Mapping[str, str],
        body: bytes | None,
    ) -> TraceSeries:
        """Allocate the series for a call about to be issued."""
        return TraceSeries(
            id=self._id_generator.next_id(),
            request=RequestSnapshot(method=method, url=url, headers=dict(headers)),
            request_body=bytes(body or b""),
        )

    @staticmethod
    def request_context(series: TraceSeries) -> dict[str, Any]:
        """Value for aiohttp's ``trace_request_ctx`` request argument."""
        return {_SERIES_KEY: series}

    def record_response(
        self, series: TraceSeries, response: aiohttp.ClientResponse, body: bytes
    ) -> None:
        series.response = ResponseSnapshot(
            status=response.status,
            reason=response.reason,
            headers=dict(response.headers),
        )
        series.response_body = body

    def record_error(self, series: TraceSeries, err: BaseException) -> None:
        series.append_event(
            generate_event("response error: %s", str(err) or type(err).__name__)
        )

    def publish(self, series: TraceSeries) -> None:
        """Hand the series to the emitter. A series is published once."""
        if series._published:
            return
        series._published = True
        self._emitter.emit(series)

    async def publish_async(self, series: TraceSeries) -> None:
        """Like publish, but waits while a bounded emitter is full."""
        if series._published:
            return
        await self._emitter.emit_async(series)
        series._published = True

    async def _on_connection_create_start(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        if (series := _series_of(ctx)) is not None:
            series.append_event(generate_event("plan to connect to %s", series.address))

    async def _on_connection_create_end(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        if (series := _series_of(ctx)) is None:
            return
        # The end params carry no peer address; report the address dialed
        series.append_event(generate_event("connected to %s", series.address))
        # aiohttp establishes TLS as part of creating the connection
        if series.request.url.scheme == "https":
            series.append_event(generate_event("TLS handshake done"))

    async def _on_connection_reuseconn(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        if (series := _series_of(ctx)) is not None:
            series.append_event(generate_event("reused connection to %s", series.address))

    async def _on_dns_resolvehost_start(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        if (series := _series_of(ctx)) is not None:
            series.append_event(generate_event("plan to resolve domain %s", params.host))

    async def _on_dns_resolvehost_end(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        if (series := _series_of(ctx)) is not None:
            series.append_event(generate_event("resolved domain %s", params.host))

    async def _on_request_headers_sent(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        series = _series_of(ctx)
        if series is not None and not series.request_body:
            series.mark_request_sent()

    async def _on_request_chunk_sent(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        if (series := _series_of(ctx)) is None:
            return
        series._body_bytes_sent += len(params.chunk)
        if series._body_bytes_sent >= len(series.request_body):
            series.mark_request_sent()

    async def _on_request_end(
        self, session: aiohttp.ClientSession, ctx: Any, params: Any
    ) -> None:
        # A response implies the request went out even if no write signal fired.
        if (series := _series_of(ctx)) is not None:
            series.mark_request_sent()


def _redact(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        name: "<redacted>" if name.lower() in _REDACTED_HEADERS else value
        for name, value in headers.items()
    }


def format_trace_series(series: TraceSeries) -> str:
    """Render a series as a multi-line dump for humans.

    The Authorization header is redacted.
    """
    request = series.request
    lines = [
        f"[{series.id}] Send a {request.method} request to {request.url}",
        f"[{series.id}] With request header: {_redact(request.headers)}",
    ]
    if series.request_body:
        lines.append(
            f"[{series.id}] Send a request body: "
            f"{series.request_body.decode('utf-8', errors='replace')}"
        )
    if series.response is not None:
        lines.append(
            f"[{series.id}] Receive a response with status: {series.response.status}"
        )
    if series.response_body:
        lines.append(
            f"[{series.id}] Receive a response body: "
            f"{series.response_body.decode('utf-8', errors='replace')}"
        )
    lines.append(f"[{series.id}] Dump {len(series.events)} events:")
    for i, event in enumerate(series.events):
        lines.append(
            f"[{series.id}] Event#{i} "
            f"{event.happened_at:%Y-%m-%d %H:%M:%S} : {event.message}"
        )
    return "\n".join(lines) + "\n"
