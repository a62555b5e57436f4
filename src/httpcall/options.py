"""Connection and request-shaping options, and how layers of them merge."""

from __future__ import annotations

from typing import Any, Callable, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import HttpCallValidationError
from .pool import ConnectionPool
from .security import validate_host, validate_path, validate_port


class HttpCallModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        arbitrary_types_allowed=True,
        coerce_numbers_to_str=True,
    )


class ConnectionOptions(HttpCallModel):
    """Where and how to connect: target, method, headers, pool."""

    host: str = "localhost"
    port: int | None = None
    path: str = "/"
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    pool: ConnectionPool | None = None

    @field_validator("host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        return validate_host(value)

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        return validate_path(value)

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int | None) -> int | None:
        return validate_port(value)

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()


class RequestOptions(HttpCallModel):
    """How one exchange behaves: body source, timeouts, transport call.

    ``request_function`` is awaited as ``request_function(connection_options,
    content)`` and must return a streaming ``httpx.Response``.
    ``external_write`` is awaited as ``external_write(context)`` with a
    :class:`httpcall.transport.WriteContext`.
    """

    set_content_length_from_buffer: bool = True
    request_function: Callable[..., Any] | None = None
    buffer: bytes | None = None
    stream: Any = None
    external_write: Callable[..., Any] | None = None
    request_timeout: float | None = Field(default=None, gt=0)
    response_timeout: float | None = Field(default=None, gt=0)

    @field_validator("stream")
    @classmethod
    def _check_stream(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (str, bytes, bytearray)):
            raise ValueError("stream must produce bytes chunks; pass in-memory bodies as buffer")
        if not any(hasattr(value, attr) for attr in ("__aiter__", "__iter__", "read")):
            raise ValueError("stream must be an iterable, an async iterable or a readable object")
        return value


_Options = TypeVar("_Options", ConnectionOptions, RequestOptions)


def coerce_options(model: type[_Options], value: _Options | Mapping[str, Any] | None) -> _Options:
    """Accept a model instance, a plain mapping or ``None``."""
    if value is None:
        return model()
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        raise HttpCallValidationError(f"invalid {model.__name__}: {exc}", cause=exc) from exc


def merge_headers(base: Mapping[str, str], override: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header mappings key by key; names compare case-insensitively."""
    if not override:
        return dict(base)
    replaced = {key.lower() for key in override}
    merged = {key: value for key, value in base.items() if key.lower() not in replaced}
    merged.update(override)
    return merged


def _explicit_fields(options: HttpCallModel) -> dict[str, Any]:
    return {name: getattr(options, name) for name in options.model_fields_set}


def merge_connection_options(base: ConnectionOptions, override: ConnectionOptions) -> ConnectionOptions:
    updates = _explicit_fields(override)
    updates["headers"] = merge_headers(base.headers, override.headers)
    return base.model_copy(update=updates)


def merge_request_options(base: RequestOptions, override: RequestOptions) -> RequestOptions:
    return base.model_copy(update=_explicit_fields(override))
