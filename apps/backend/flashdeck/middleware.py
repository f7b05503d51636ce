from __future__ import annotations

import threading
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from .logging import logger

__all__ = [
    "RequestIDMiddleware",
    "RateLimitMiddleware",
]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign a request ID to each incoming request and expose it in headers.

    - Sets `request.state.request_id`
    - Adds `X-Request-ID` to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class _TokenBucket:
    """Thread-safe token bucket that refills to capacity every fixed interval (seconds)."""

    def __init__(self, capacity: int, refill_interval_sec: float) -> None:
        self.capacity = max(1, capacity)
        self.tokens = self.capacity
        self.refill_interval = max(1.0, float(refill_interval_sec))
        self.last_refill = time.time()
        self._lock = threading.Lock()

    def allow(self) -> tuple[bool, int]:
        """Consume one token if available and return the remaining count."""
        now = time.time()
        with self._lock:
            elapsed = now - self.last_refill
            if elapsed >= self.refill_interval:
                self.tokens = self.capacity
                self.last_refill = now
            if self.tokens > 0:
                self.tokens -= 1
                return True, self.tokens
            return False, 0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per client IP rate limiting with one token bucket per address.

    クライアント IP ごとに 1 分間のトークンバケットを持ち、枯渇すると 429 と
    `Retry-After` を返す。`bucket_ttl_seconds` を超えて使われていない
    バケットはリクエスト処理時に破棄する。`exempt_paths` は制限対象外。
    """

    def __init__(
        self,
        app,
        *,
        ip_capacity_per_minute: int,
        bucket_ttl_seconds: float = 15 * 60,
        exempt_paths: tuple[str, ...] = ("/healthz",),
    ) -> None:
        super().__init__(app)
        self._ip_capacity = max(1, int(ip_capacity_per_minute))
        self._ip_buckets: dict[str, tuple[_TokenBucket, float]] = {}
        self._bucket_ttl = max(1.0, float(bucket_ttl_seconds))
        self._exempt_paths = frozenset(exempt_paths)
        self._lock = threading.Lock()

    def _get_ip_bucket(self, key: str, now: float) -> _TokenBucket:
        with self._lock:
            expired = [
                ip for ip, (_, last_seen) in self._ip_buckets.items()
                if now - last_seen > self._bucket_ttl
            ]
            for ip in expired:
                self._ip_buckets.pop(ip, None)
            entry = self._ip_buckets.get(key)
            bucket = entry[0] if entry else _TokenBucket(
                capacity=self._ip_capacity,
                refill_interval_sec=60.0,
            )
            self._ip_buckets[key] = (bucket, now)
            return bucket

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        if request.url.path in self._exempt_paths:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        ok_ip, remaining_ip = self._get_ip_bucket(client_ip, time.time()).allow()
        if not ok_ip:
            logger.warning(
                "rate_limited",
                client_ip=client_ip,
                path=request.url.path,
                request_id=getattr(request.state, "request_id", None),
            )
            return JSONResponse(
                status_code=429,
                content={"detail": "Too Many Requests (per IP)"},
                headers={
                    "Retry-After": "60",
                    "X-RateLimit-Limit-Ip": str(self._ip_capacity),
                    "X-RateLimit-Remaining-Ip": str(remaining_ip),
                },
            )

        response = await call_next(request)
        response.headers.setdefault("X-RateLimit-Limit-Ip", str(self._ip_capacity))
        response.headers.setdefault("X-RateLimit-Remaining-Ip", str(remaining_ip))
        return response
