from __future__ import annotations

import asyncio

import pytest
from starlette.requests import Request
from starlette.responses import Response

import flashdeck.middleware as middleware_module
from flashdeck.middleware import RateLimitMiddleware


async def _call_next(_: Request) -> Response:
    return Response("ok", media_type="text/plain")


def _dispatch(middleware: RateLimitMiddleware, request: Request) -> Response:
    return asyncio.run(middleware.dispatch(request, _call_next))


def _make_request(*, client_ip: str = "198.51.100.10", path: str = "/api/decks") -> Request:
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": "GET",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": b"",
        "headers": [],
        "client": (client_ip, 52314),
        "state": {},
    }
    return Request(scope)


def _middleware(capacity: int, **kwargs) -> RateLimitMiddleware:
    return RateLimitMiddleware(
        app=lambda scope, receive, send: None,
        ip_capacity_per_minute=capacity,
        **kwargs,
    )


def test_rate_limit_blocks_after_capacity_per_ip() -> None:
    middleware = _middleware(2)

    first = _dispatch(middleware, _make_request())
    second = _dispatch(middleware, _make_request())
    third = _dispatch(middleware, _make_request())

    assert first.status_code == 200
    assert first.headers["X-RateLimit-Remaining-Ip"] == "1"
    assert second.status_code == 200
    assert third.status_code == 429
    assert third.headers["Retry-After"] == "60"
    assert third.headers["X-RateLimit-Limit-Ip"] == "2"


def test_rate_limit_buckets_are_per_address() -> None:
    middleware = _middleware(1)

    assert _dispatch(middleware, _make_request(client_ip="203.0.113.1")).status_code == 200
    assert _dispatch(middleware, _make_request(client_ip="203.0.113.2")).status_code == 200
    assert _dispatch(middleware, _make_request(client_ip="203.0.113.1")).status_code == 429


def test_health_probe_is_exempt() -> None:
    middleware = _middleware(1)

    for _ in range(3):
        response = _dispatch(middleware, _make_request(path="/healthz"))
        assert response.status_code == 200


def test_idle_buckets_expire(monkeypatch: pytest.MonkeyPatch) -> None:
    clock = {"now": 1000.0}
    monkeypatch.setattr(middleware_module.time, "time", lambda: clock["now"])
    middleware = _middleware(1, bucket_ttl_seconds=30)

    assert _dispatch(middleware, _make_request()).status_code == 200
    assert _dispatch(middleware, _make_request()).status_code == 429

    clock["now"] += 31
    _dispatch(middleware, _make_request(client_ip="192.0.2.99"))

    assert "198.51.100.10" not in middleware._ip_buckets
    assert _dispatch(middleware, _make_request()).status_code == 200
