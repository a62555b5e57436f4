from __future__ import annotations

import pytest

from httpcall import ConnectionOptions, HttpCallValidationError, RequestOptions
from httpcall.options import (
    coerce_options,
    merge_connection_options,
    merge_headers,
    merge_request_options,
)


def test_merge_headers_override_wins_case_insensitively() -> None:
    merged = merge_headers(
        {"Accept": "text/plain", "X-Trace": "base"},
        {"accept": "application/json"},
    )
    assert merged == {"X-Trace": "base", "accept": "application/json"}


def test_merge_headers_without_override_copies_base() -> None:
    base = {"Accept": "text/plain"}
    merged = merge_headers(base, None)
    assert merged == base
    assert merged is not base


def test_merge_connection_options_only_replaces_explicit_fields() -> None:
    base = ConnectionOptions(host="api.test", port=8443, path="/v1", headers={"X-Base": "1"})
    override = ConnectionOptions(path="/v2", headers={"X-Call": "2"})

    merged = merge_connection_options(base, override)

    assert merged.host == "api.test"
    assert merged.port == 8443
    assert merged.path == "/v2"
    assert merged.headers == {"X-Base": "1", "X-Call": "2"}
    assert base.path == "/v1"


def test_merge_request_options_replaces_wholesale() -> None:
    base = RequestOptions(request_timeout=5, buffer=b"base")
    override = coerce_options(RequestOptions, {"buffer": b"call"})

    merged = merge_request_options(base, override)

    assert merged.request_timeout == 5
    assert merged.buffer == b"call"
    assert merged.set_content_length_from_buffer is True


def test_coerce_options_defaults_and_passthrough() -> None:
    assert coerce_options(ConnectionOptions, None) == ConnectionOptions()
    options = RequestOptions(response_timeout=1.5)
    assert coerce_options(RequestOptions, options) is options


def test_connection_options_normalize_values() -> None:
    options = coerce_options(ConnectionOptions, {"method": "post", "headers": {"X-Count": 3}})
    assert options.method == "POST"
    assert options.headers == {"X-Count": "3"}


def test_request_options_encode_text_buffer() -> None:
    assert RequestOptions(buffer="héllo").buffer == "héllo".encode()


@pytest.mark.parametrize("stream", [b"raw bytes", "text", 42])
def test_request_options_reject_non_chunk_streams(stream: object) -> None:
    with pytest.raises(HttpCallValidationError, match="stream"):
        coerce_options(RequestOptions, {"stream": stream})


def test_request_options_reject_non_positive_timeouts() -> None:
    with pytest.raises(HttpCallValidationError):
        coerce_options(RequestOptions, {"response_timeout": -1})


def test_options_are_frozen() -> None:
    options = ConnectionOptions()
    with pytest.raises(Exception):
        options.host = "elsewhere"  # type: ignore[misc]
