"""Per-method request functions bound to one target."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping

from .exceptions import HttpCallValidationError
from .exchange import ExchangeOutcome, run_exchange
from .options import (
    ConnectionOptions,
    RequestOptions,
    coerce_options,
    merge_connection_options,
    merge_request_options,
)
from .transport import http_request, https_request

HTTP_METHODS = ("GET", "POST", "HEAD", "PATCH", "PUT", "DELETE", "OPTIONS")

ConnectionOptionsLike = ConnectionOptions | Mapping[str, Any] | None
RequestOptionsLike = RequestOptions | Mapping[str, Any] | None


class RequestCalls:
    """One request function per HTTP method, sharing base options.

    Each call merges its own options over the base ones and returns an
    awaitable :class:`ExchangeOutcome`; nothing touches the network until it
    is awaited.
    """

    def __init__(self, connection_options: ConnectionOptions, request_options: RequestOptions) -> None:
        self.connection_options = connection_options
        self.request_options = request_options

    def __repr__(self) -> str:
        return f"RequestCalls(host={self.connection_options.host!r}, port={self.connection_options.port!r})"

    def request(
        self,
        method: str,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        method = method.upper()
        if method not in HTTP_METHODS:
            raise HttpCallValidationError(f"Unsupported HTTP method: {method}")
        per_call_connection = coerce_options(ConnectionOptions, connection_options)
        per_call_request = coerce_options(RequestOptions, request_options)

        final_connection = merge_connection_options(self.connection_options, per_call_connection)
        final_connection = final_connection.model_copy(update={"method": method})
        final_request = merge_request_options(self.request_options, per_call_request)
        return run_exchange(final_request, final_connection)

    def get(
        self,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        return self.request("GET", connection_options, request_options)

    def post(
        self,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        return self.request("POST", connection_options, request_options)

    def head(
        self,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        return self.request("HEAD", connection_options, request_options)

    def patch(
        self,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        return self.request("PATCH", connection_options, request_options)

    def put(
        self,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        return self.request("PUT", connection_options, request_options)

    def delete(
        self,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        return self.request("DELETE", connection_options, request_options)

    def options(
        self,
        connection_options: ConnectionOptionsLike = None,
        request_options: RequestOptionsLike = None,
    ) -> Awaitable[ExchangeOutcome]:
        return self.request("OPTIONS", connection_options, request_options)


def make_request(
    connection_options: ConnectionOptionsLike = None,
    request_options: RequestOptionsLike = None,
    *,
    request_function: Callable[..., Any] = http_request,
) -> RequestCalls:
    """Build the per-method request functions for one target.

    Defaults: the shared keep-alive pool of the scheme, content-length taken
    from in-memory bodies, and ``request_function`` as the transport call.
    """
    base_request = merge_request_options(
        RequestOptions(set_content_length_from_buffer=True, request_function=request_function),
        coerce_options(RequestOptions, request_options),
    )
    base_connection = coerce_options(ConnectionOptions, connection_options)
    return RequestCalls(base_connection, base_request)


def make_http_request(
    connection_options: ConnectionOptionsLike = None,
    request_options: RequestOptionsLike = None,
) -> RequestCalls:
    return make_request(connection_options, request_options, request_function=http_request)


def make_https_request(
    connection_options: ConnectionOptionsLike = None,
    request_options: RequestOptionsLike = None,
) -> RequestCalls:
    return make_request(connection_options, request_options, request_function=https_request)
