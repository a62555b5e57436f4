"""Plain and encrypted request functions and the request body plumbing."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable

import httpx
import structlog

from .exceptions import RequestBodyError
from .options import ConnectionOptions, RequestOptions
from .pool import shared_pool
from .security import sanitize_headers

logger = structlog.get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024


def build_url(scheme: str, options: ConnectionOptions) -> httpx.URL:
    host = options.host
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    netloc = host if options.port is None else f"{host}:{options.port}"
    return httpx.URL(f"{scheme}://{netloc}{options.path}")


async def _send(scheme: str, options: ConnectionOptions, content: Any) -> httpx.Response:
    pool = options.pool or shared_pool(scheme)
    url = build_url(scheme, options)
    request = pool.build_request(options.method, url, headers=options.headers, content=content)
    logger.debug(
        "request_started",
        method=request.method,
        url=str(request.url),
        headers=sanitize_headers(dict(request.headers)),
    )
    return await pool.send(request)


async def http_request(options: ConnectionOptions, content: Any = None) -> httpx.Response:
    return await _send("http", options, content)


async def https_request(options: ConnectionOptions, content: Any = None) -> httpx.Response:
    return await _send("https", options, content)


def _as_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"request body chunks must be bytes, got {type(chunk).__name__}")


async def _source_chunks(source: Any) -> AsyncIterator[bytes]:
    if hasattr(source, "__aiter__"):
        async for chunk in source:
            yield _as_bytes(chunk)
    elif hasattr(source, "read"):
        while True:
            chunk = source.read(READ_CHUNK_SIZE)
            if asyncio.iscoroutine(chunk):
                chunk = await chunk
            if not chunk:
                break
            yield _as_bytes(chunk)
    else:
        for chunk in source:
            yield _as_bytes(chunk)


async def iter_chunks(source: Any) -> AsyncIterator[bytes]:
    """Adapt an async iterable, an iterable or a readable object to async chunks.

    Failures of the source surface as :class:`RequestBodyError`.
    """
    try:
        async for chunk in _source_chunks(source):
            yield chunk
    except Exception as exc:
        raise RequestBodyError(f"request body stream failed: {exc}", cause=exc) from exc


class RequestSink:
    """Write end of a request body fed by a body writer.

    ``write`` waits while the transport is behind; ``end`` finishes the body.
    Writing after ``end`` is an error.
    """

    _END = object()

    def __init__(self, max_pending: int = 16) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_pending)
        self.ended = False
        self.bytes_written = 0

    async def write(self, data: bytes | bytearray | str) -> None:
        if self.ended:
            raise RuntimeError("write after end")
        chunk = data.encode() if isinstance(data, str) else bytes(data)
        if not chunk:
            return
        self.bytes_written += len(chunk)
        await self._queue.put(chunk)

    async def end(self) -> None:
        if self.ended:
            return
        self.ended = True
        await self._queue.put(self._END)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is self._END:
                return
            yield chunk


@dataclass(frozen=True)
class WriteContext:
    """What a body writer gets: the sink, both option sets and a way to fail.

    The writer must not settle the exchange any other way than ``fail``;
    a successful exchange is always settled by the response.
    """

    sink: RequestSink
    request_options: RequestOptions
    connection_options: ConnectionOptions
    fail: Callable[[BaseException], bool]
