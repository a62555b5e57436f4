"""Target validation and log redaction helpers."""

from __future__ import annotations

from typing import Mapping


SENSITIVE_HEADERS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
}


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return headers with sensitive values redacted for logging."""
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted


def validate_host(host: str) -> str:
    """Reject hosts that smuggle a scheme, a path or NUL bytes."""
    if not host:
        raise ValueError("host must not be empty")
    if "\x00" in host:
        raise ValueError("Invalid host characters")
    if "://" in host or "/" in host:
        raise ValueError("host must be a bare hostname or address, not a URL")
    return host


def validate_path(path: str) -> str:
    if "://" in path:
        raise ValueError("Full URLs are not allowed in path")
    if not path.startswith("/"):
        raise ValueError("Path must be absolute and start with '/'")
    if "\x00" in path:
        raise ValueError("Invalid path characters")
    return path


def validate_port(port: int | None) -> int | None:
    if port is None:
        return None
    if not 0 < port < 65536:
        raise ValueError("port must be between 1 and 65535")
    return port
