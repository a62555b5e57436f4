"""Pytest configuration for httpcall tests."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, TypeVar

import httpx
import pytest

_T = TypeVar("_T")


@pytest.fixture(autouse=True)
def configure_structlog():
    """Configure structlog for testing."""
    import structlog

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivered chunk by chunk, optionally slowly or failing."""

    def __init__(self, chunks: Iterable[bytes], *, delay: float = 0.0, error: Exception | None = None) -> None:
        self._chunks = list(chunks)
        self._delay = delay
        self._error = error

    async def __aiter__(self):
        for chunk in self._chunks:
            if self._delay:
                await asyncio.sleep(self._delay)
            yield chunk
        if self._error is not None:
            raise self._error


class StallingStream(httpx.AsyncByteStream):
    """Delivers its first chunks promptly, then goes silent."""

    def __init__(self, chunks: Iterable[bytes], *, stall: float = 30.0) -> None:
        self._chunks = list(chunks)
        self._stall = stall

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        await asyncio.sleep(self._stall)
        yield b"too late"


async def settle_within(awaitable: Awaitable[_T], seconds: float = 5.0) -> _T:
    """Await an exchange, failing the test if it never settles."""
    try:
        return await asyncio.wait_for(awaitable, seconds)
    except asyncio.TimeoutError:
        pytest.fail(f"exchange did not settle within {seconds}s")
