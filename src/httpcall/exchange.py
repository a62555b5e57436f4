"""One request/response exchange, settled exactly once.

An exchange is driven by a send task that reports what happens on the wire
(response headers, body chunks, end of body, errors) to an :class:`Exchange`.
The exchange keeps its outcome in a one-shot future: the first signal that
settles it wins and every later signal is ignored.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Mapping, NamedTuple, TypeVar

import httpx
import structlog

from .exceptions import (
    ContentLengthError,
    ExchangeAbortedError,
    ExchangeTimeoutError,
    ExchangeTransportError,
    ExternalWriteError,
    HttpCallError,
    RequestBodyError,
    ResponseStreamError,
)
from .options import ConnectionOptions, RequestOptions, merge_headers
from .transport import RequestSink, WriteContext, http_request, iter_chunks

logger = structlog.get_logger(__name__)

_T = TypeVar("_T")

BODYLESS_STATUS_CODES = frozenset({204, 304})


class ExchangeState(str, Enum):
    STARTED = "started"
    AWAITING_RESPONSE = "awaiting_response"
    RECEIVING_BODY = "receiving_body"
    SETTLED_OK = "settled_ok"
    SETTLED_ERROR = "settled_error"


class ExchangeOutcome(NamedTuple):
    """``(error, status_code, headers, body)``; either error or the other three."""

    error: HttpCallError | None
    status_code: int | None
    headers: httpx.Headers | None
    body: bytes | None

    @classmethod
    def failure(cls, error: HttpCallError) -> "ExchangeOutcome":
        return cls(error, None, None, None)

    @classmethod
    def success(cls, status_code: int, headers: httpx.Headers, body: bytes) -> "ExchangeOutcome":
        return cls(None, status_code, headers, body)

    @property
    def ok(self) -> bool:
        return self.error is None


class _FixedBodyBuffer:
    """Pre-sized buffer for a body whose length was declared up front."""

    def __init__(self, length: int) -> None:
        self._buffer = bytearray(length)
        self._offset = 0

    def write(self, chunk: bytes) -> None:
        end = self._offset + len(chunk)
        if end > len(self._buffer):
            raise ContentLengthError(
                f"response body exceeds declared content-length {len(self._buffer)}",
                declared=len(self._buffer),
                received=end,
            )
        self._buffer[self._offset : end] = chunk
        self._offset = end

    def getvalue(self) -> bytes:
        if self._offset != len(self._buffer):
            raise ContentLengthError(
                f"response body ended after {self._offset} of {len(self._buffer)} declared bytes",
                declared=len(self._buffer),
                received=self._offset,
            )
        return bytes(self._buffer)


class _GrowingBodyBuffer:
    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, chunk: bytes) -> None:
        self._buffer += chunk

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


def declared_content_length(headers: Mapping[str, str]) -> int | None:
    """Parse ``content-length``; absent, zero or malformed values give ``None``."""
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        length = int(raw)
    except ValueError:
        return None
    return length if length > 0 else None


def body_buffer_for(method: str, status_code: int, headers: Mapping[str, str]) -> _FixedBodyBuffer | _GrowingBodyBuffer:
    if method == "HEAD" or status_code < 200 or status_code in BODYLESS_STATUS_CODES:
        return _GrowingBodyBuffer()
    length = declared_content_length(headers)
    if length:
        return _FixedBodyBuffer(length)
    return _GrowingBodyBuffer()


class Exchange:
    """State machine for one exchange.

    Signals: :meth:`request_sent`, :meth:`receive`, :meth:`feed`,
    :meth:`finish`, :meth:`fail` and :meth:`abort`. Only ``finish``, ``fail``
    and ``abort`` settle; each returns whether it was the one that did.
    """

    def __init__(self, method: str) -> None:
        self.method = method
        self.state = ExchangeState.STARTED
        self._outcome: asyncio.Future[ExchangeOutcome] = asyncio.get_running_loop().create_future()
        self._status_code: int | None = None
        self._headers: httpx.Headers | None = None
        self._buffer: _FixedBodyBuffer | _GrowingBodyBuffer | None = None

    @property
    def settled(self) -> bool:
        return self._outcome.done()

    @property
    def future(self) -> asyncio.Future[ExchangeOutcome]:
        return self._outcome

    async def outcome(self) -> ExchangeOutcome:
        return await asyncio.shield(self._outcome)

    def _settle(self, outcome: ExchangeOutcome, state: ExchangeState) -> bool:
        if self._outcome.done():
            logger.debug("late_signal_ignored", method=self.method, state=self.state.value, ok=outcome.ok)
            return False
        self.state = state
        self._outcome.set_result(outcome)
        return True

    def request_sent(self) -> None:
        if self.state is ExchangeState.STARTED:
            self.state = ExchangeState.AWAITING_RESPONSE

    def receive(self, status_code: int, headers: httpx.Headers) -> None:
        if self.settled:
            return
        self._status_code = status_code
        self._headers = headers
        self._buffer = body_buffer_for(self.method, status_code, headers)
        self.state = ExchangeState.RECEIVING_BODY

    def feed(self, chunk: bytes) -> None:
        if self.settled:
            return
        if self._buffer is None:
            raise RuntimeError("body chunk received before response headers")
        try:
            self._buffer.write(chunk)
        except ContentLengthError as exc:
            logger.warning("response_overflow", method=self.method, declared=exc.declared, received=exc.received)
            self.fail(exc)

    def finish(self) -> bool:
        if self.settled:
            return False
        if self._buffer is None or self._status_code is None or self._headers is None:
            raise RuntimeError("end of body received before response headers")
        try:
            body = self._buffer.getvalue()
        except ContentLengthError as exc:
            logger.warning("response_truncated", method=self.method, declared=exc.declared, received=exc.received)
            return self.fail(exc)
        return self._settle(ExchangeOutcome.success(self._status_code, self._headers, body), ExchangeState.SETTLED_OK)

    def fail(self, error: BaseException) -> bool:
        if not isinstance(error, HttpCallError):
            error = HttpCallError(str(error) or type(error).__name__, cause=error)
        return self._settle(ExchangeOutcome.failure(error), ExchangeState.SETTLED_ERROR)

    def abort(self, reason: BaseException | None = None) -> bool:
        if self.settled:
            logger.debug("late_abort_ignored", method=self.method, state=self.state.value, reason=str(reason))
            return False
        logger.warning("exchange_aborted", method=self.method, state=self.state.value, reason=str(reason))
        return self.fail(ExchangeAbortedError("connection aborted before the response completed", cause=reason))


async def _within(seconds: float | None, awaitable: Awaitable[_T], message: str) -> _T:
    """Await ``awaitable``; past ``seconds`` cancel it and raise a timeout error."""
    if not seconds:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, seconds)
    except asyncio.TimeoutError as exc:
        raise ExchangeTimeoutError(message, timeout=seconds, cause=exc) from exc


def _transport_error(exc: httpx.TransportError) -> HttpCallError:
    if isinstance(exc, httpx.TimeoutException):
        return ExchangeTimeoutError(str(exc) or "request timed out", cause=exc)
    if isinstance(exc, httpx.ConnectError):
        return ExchangeTransportError(str(exc) or "connection failed", code="ECONNECT", cause=exc)
    return ExchangeTransportError(str(exc) or type(exc).__name__, cause=exc)


async def _single_chunk(data: bytes) -> AsyncIterator[bytes]:
    yield data


def _request_content(request_options: RequestOptions, sink: RequestSink | None) -> Any:
    if request_options.buffer is not None:
        if request_options.set_content_length_from_buffer:
            return request_options.buffer
        return _single_chunk(request_options.buffer)
    if request_options.stream is not None:
        return iter_chunks(request_options.stream)
    if sink is not None:
        return sink
    return None


async def _next_chunk(chunks: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


async def _receive_body(exchange: Exchange, response: httpx.Response, idle_timeout: float | None) -> None:
    exchange.receive(response.status_code, response.headers)
    if response.is_stream_consumed:
        # the transport already buffered the body
        if response.content:
            exchange.feed(response.content)
        exchange.finish()
        return
    chunks = response.aiter_raw()
    while not exchange.settled:
        chunk = await _within(idle_timeout, _next_chunk(chunks), "response timed out")
        if chunk is None:
            exchange.finish()
            return
        exchange.feed(chunk)


async def _drive(
    exchange: Exchange,
    request_options: RequestOptions,
    connection_options: ConnectionOptions,
    content: Any,
) -> None:
    send = request_options.request_function or http_request
    exchange.request_sent()
    try:
        response = await _within(
            request_options.request_timeout,
            send(connection_options, content),
            "request timed out",
        )
    except ExchangeTimeoutError as exc:
        logger.info("request_timeout", method=exchange.method, timeout=exc.timeout)
        exchange.fail(exc)
        return
    except RequestBodyError as exc:
        logger.warning("request_body_error", method=exchange.method, error=str(exc))
        exchange.fail(exc)
        return
    except httpx.TransportError as exc:
        logger.warning("request_error", method=exchange.method, error=str(exc))
        exchange.fail(_transport_error(exc))
        return

    # the request timeout keeps running as an idle timeout while the body arrives
    idle_timeout = request_options.response_timeout or request_options.request_timeout
    try:
        await _receive_body(exchange, response, idle_timeout)
    except ExchangeTimeoutError as exc:
        logger.info("response_timeout", method=exchange.method, timeout=exc.timeout)
        exchange.fail(exc)
    except (httpx.RemoteProtocolError, httpx.ReadError) as exc:
        exchange.abort(exc)
    except (httpx.HTTPError, httpx.StreamError) as exc:
        logger.warning("response_error", method=exchange.method, error=str(exc))
        exchange.fail(ResponseStreamError(str(exc) or type(exc).__name__, cause=exc))
    finally:
        await response.aclose()


async def _write_body(exchange: Exchange, context: WriteContext) -> None:
    writer = context.request_options.external_write
    try:
        await writer(context)
    except Exception as exc:
        logger.warning("external_write_failed", method=exchange.method, error=str(exc))
        exchange.fail(ExternalWriteError(str(exc) or type(exc).__name__, cause=exc))
        return
    await context.sink.end()


def _prepare_headers(request_options: RequestOptions, connection_options: ConnectionOptions) -> ConnectionOptions:
    buffer = request_options.buffer
    if buffer is None or not request_options.set_content_length_from_buffer:
        return connection_options
    headers = merge_headers(connection_options.headers, {"content-length": str(len(buffer))})
    return connection_options.model_copy(update={"headers": headers})


async def run_exchange(request_options: RequestOptions, connection_options: ConnectionOptions) -> ExchangeOutcome:
    """Run one exchange with fully merged options and return its outcome.

    Failures during the exchange are returned in the outcome's error slot;
    nothing is retried.
    """
    connection_options = _prepare_headers(request_options, connection_options)
    exchange = Exchange(connection_options.method)

    sink = None
    if (
        request_options.buffer is None
        and request_options.stream is None
        and request_options.external_write is not None
    ):
        sink = RequestSink()
    content = _request_content(request_options, sink)

    tasks = [asyncio.ensure_future(_drive(exchange, request_options, connection_options, content))]
    if sink is not None:
        context = WriteContext(
            sink=sink,
            request_options=request_options,
            connection_options=connection_options,
            fail=exchange.fail,
        )
        tasks.append(asyncio.ensure_future(_write_body(exchange, context)))

    driver = tasks[0]
    try:
        await asyncio.wait([driver, exchange.future], return_when=asyncio.FIRST_COMPLETED)
        if not exchange.settled:
            # the driver always settles unless it crashed
            driver.result()
        return await exchange.outcome()
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
