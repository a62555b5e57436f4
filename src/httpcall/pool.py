"""Keep-alive connection pools shared by the request functions."""

from __future__ import annotations

import os
from typing import Any

import httpx
import structlog

from .exceptions import HttpCallValidationError

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SOCKETS = 128
MAX_SOCKETS_ENV_VAR = "HTTPCALL_MAX_SOCKETS"
SCHEMES = ("http", "https")

_shared_pools: dict[str, "ConnectionPool"] = {}


class ConnectionPool:
    """A bounded pool of (optionally kept-alive) connections.

    Every exchange sent through the same pool shares its sockets; nothing else
    is shared between exchanges. Timeouts are enforced per exchange, so the
    underlying client runs without any of its own.
    """

    def __init__(
        self,
        *,
        max_sockets: int = DEFAULT_MAX_SOCKETS,
        keep_alive: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if max_sockets <= 0:
            raise HttpCallValidationError("max_sockets must be greater than 0")
        self.max_sockets = max_sockets
        self.keep_alive = keep_alive
        limits = httpx.Limits(
            max_connections=max_sockets,
            max_keepalive_connections=max_sockets if keep_alive else 0,
        )
        self._client = httpx.AsyncClient(
            limits=limits,
            timeout=None,
            follow_redirects=False,
            trust_env=False,
            transport=transport,
        )

    def __repr__(self) -> str:
        return f"ConnectionPool(max_sockets={self.max_sockets}, keep_alive={self.keep_alive})"

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def build_request(
        self,
        method: str,
        url: httpx.URL,
        *,
        headers: dict[str, str],
        content: Any = None,
    ) -> httpx.Request:
        return self._client.build_request(method, url, headers=headers, content=content)

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` and return as soon as the response headers arrive."""
        return await self._client.send(request, stream=True)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ConnectionPool":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _max_sockets_from_env(env_var: str = MAX_SOCKETS_ENV_VAR) -> int:
    raw = os.getenv(env_var)
    if not raw:
        return DEFAULT_MAX_SOCKETS
    try:
        return int(raw)
    except ValueError:
        raise HttpCallValidationError(f"{env_var} must be an integer, got {raw!r}") from None


def shared_pool(scheme: str) -> ConnectionPool:
    """Return the process-wide pool for ``scheme``, creating it on first use.

    Shared pools are never closed; they live as long as the process.
    """
    if scheme not in SCHEMES:
        raise HttpCallValidationError(f"Unsupported scheme: {scheme}")
    pool = _shared_pools.get(scheme)
    if pool is None:
        pool = ConnectionPool(max_sockets=_max_sockets_from_env())
        _shared_pools[scheme] = pool
        logger.debug("shared_pool_created", scheme=scheme, max_sockets=pool.max_sockets)
    return pool
