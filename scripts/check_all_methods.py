#!/usr/bin/env python3
"""Integration check: send every HTTP method to a running server."""

from __future__ import annotations

import asyncio
import os
import sys

from httpcall import HTTP_METHODS, ExchangeOutcome, make_http_request

HOST = os.getenv("HTTPCALL_CHECK_HOST", "localhost")
PORT = int(os.getenv("HTTPCALL_CHECK_PORT", "3033"))

passed: list[str] = []
failed: list[tuple[str, str]] = []


def ok(name: str, outcome: ExchangeOutcome) -> None:
    size = len(outcome.body) if outcome.body is not None else 0
    print(f"  PASS  {name}  -> {outcome.status_code} ({size} bytes)")
    passed.append(name)


def fail(name: str, err: Exception) -> None:
    msg = str(err)[:200]
    print(f"  FAIL  {name}  -> {msg}")
    failed.append((name, msg))


async def run(name: str, call) -> ExchangeOutcome | None:
    """Await call(), record pass/fail from the outcome's error slot."""
    outcome = await call()
    if outcome.error is not None:
        fail(name, outcome.error)
        return None
    ok(name, outcome)
    return outcome


async def main() -> None:
    calls = make_http_request(
        {"host": HOST, "port": PORT, "headers": {"User-Agent": "httpcall-check/0.1.0"}},
        {"request_timeout": 15.0, "response_timeout": 15.0},
    )

    print("\n=== Bodyless ===")
    for method in HTTP_METHODS:
        await run(method, lambda method=method: getattr(calls, method.lower())())

    print("\n=== Buffered body ===")
    for method in ("POST", "PUT", "PATCH"):
        await run(
            f"{method} buffer",
            lambda method=method: calls.request(method, {"path": "/echo"}, {"buffer": b"hello"}),
        )

    print("\n=== Streamed body ===")
    await run("POST stream", lambda: calls.post({"path": "/echo"}, {"stream": [b"hello ", b"world"]}))

    print("\n" + "=" * 60)
    print(f"PASSED: {len(passed)}   FAILED: {len(failed)}")
    if failed:
        print("\nFailed calls:")
        for name, err in failed:
            print(f"  - {name}: {err}")
    print("=" * 60)

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    asyncio.run(main())
