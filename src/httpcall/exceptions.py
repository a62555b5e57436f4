"""Library-specific exceptions."""

from __future__ import annotations


class HttpCallError(Exception):
    """Base exception for all httpcall failures.

    ``code`` is a short marker (``"ETIMEDOUT"``, ``"ECONNRESET"``...) that lets
    callers tell failures apart when they only hold the outcome's error slot.
    """

    default_code = "EHTTPCALL"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        timeout: float | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.timeout = timeout
        self.cause = cause

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.code}: {self.args[0]}"


class HttpCallValidationError(HttpCallError, ValueError):
    """Raised when connection or request options are invalid."""

    default_code = "EINVAL"


class ExchangeTransportError(HttpCallError):
    """Connection-level failure: refused, reset, DNS."""

    default_code = "ETRANSPORT"


class ExchangeTimeoutError(HttpCallError):
    """A request or response exceeded its configured timeout."""

    default_code = "ETIMEDOUT"


class ExchangeAbortedError(HttpCallError):
    """The peer dropped the connection before the body was complete."""

    default_code = "ECONNRESET"


class ResponseStreamError(HttpCallError):
    """Reading the response body failed."""

    default_code = "ERESPONSE"


class ContentLengthError(ResponseStreamError):
    """The body did not match its declared content-length."""

    default_code = "ECONTENTLENGTH"

    def __init__(self, message: str, *, declared: int, received: int) -> None:
        super().__init__(message)
        self.declared = declared
        self.received = received


class ExternalWriteError(HttpCallError):
    """A caller-supplied body writer raised."""

    default_code = "EWRITE"


class RequestBodyError(HttpCallError):
    """Reading the request body source failed during upload."""

    default_code = "EBODY"
