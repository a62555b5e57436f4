from __future__ import annotations

import httpx
import pytest

from httpcall import ConnectionOptions
from httpcall.security import sanitize_headers, validate_host, validate_path, validate_port
from httpcall.transport import build_url


def test_sanitize_headers_redacts_credentials() -> None:
    headers = sanitize_headers({"Authorization": "Bearer secret", "Cookie": "a=b", "Accept": "*/*"})

    assert headers == {"Authorization": "[REDACTED]", "Cookie": "[REDACTED]", "Accept": "*/*"}


@pytest.mark.parametrize("host", ["", "http://api.test", "api.test/path", "api\x00.test"])
def test_validate_host_rejects_non_hosts(host: str) -> None:
    with pytest.raises(ValueError):
        validate_host(host)


@pytest.mark.parametrize("path", ["items", "https://api.test/items", "/items\x00"])
def test_validate_path_rejects_bad_paths(path: str) -> None:
    with pytest.raises(ValueError):
        validate_path(path)


def test_validate_port_bounds() -> None:
    assert validate_port(None) is None
    assert validate_port(443) == 443
    with pytest.raises(ValueError):
        validate_port(0)


def test_build_url_brackets_ipv6_hosts() -> None:
    url = build_url("http", ConnectionOptions(host="::1", port=8080, path="/health"))

    assert url == httpx.URL("http://[::1]:8080/health")
