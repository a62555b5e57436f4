"""Pooled HTTP/HTTPS request functions that settle to one outcome tuple.

Example:
    ```python
    from httpcall import make_http_request

    calls = make_http_request({"host": "localhost", "port": 8080}, {"request_timeout": 5})
    error, status, headers, body = await calls.post({"path": "/items"}, {"buffer": b"hello"})
    ```
"""

from .exceptions import (
    ContentLengthError,
    ExchangeAbortedError,
    ExchangeTimeoutError,
    ExchangeTransportError,
    ExternalWriteError,
    HttpCallError,
    HttpCallValidationError,
    RequestBodyError,
    ResponseStreamError,
)
from .exchange import Exchange, ExchangeOutcome, ExchangeState, run_exchange
from .factory import HTTP_METHODS, RequestCalls, make_http_request, make_https_request, make_request
from .options import ConnectionOptions, RequestOptions
from .pool import ConnectionPool, shared_pool
from .transport import RequestSink, WriteContext, http_request, https_request

__all__ = [
    "ConnectionOptions",
    "ConnectionPool",
    "ContentLengthError",
    "Exchange",
    "ExchangeAbortedError",
    "ExchangeOutcome",
    "ExchangeState",
    "ExchangeTimeoutError",
    "ExchangeTransportError",
    "ExternalWriteError",
    "HTTP_METHODS",
    "HttpCallError",
    "HttpCallValidationError",
    "RequestBodyError",
    "RequestCalls",
    "RequestOptions",
    "RequestSink",
    "ResponseStreamError",
    "WriteContext",
    "http_request",
    "https_request",
    "make_http_request",
    "make_https_request",
    "make_request",
    "run_exchange",
    "shared_pool",
]
