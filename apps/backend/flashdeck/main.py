from __future__ import annotations

import asyncio
import time
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp
from structlog import contextvars as structlog_contextvars

from . import __version__
from .config import settings
from .logging import configure_logging, logger
from .metrics import registry
from .middleware import RateLimitMiddleware, RequestIDMiddleware
from .routers import config as cfg
from .routers import decks, health, review, stats


class AccessLogAndMetricsMiddleware(BaseHTTPMiddleware):
    """Emit structured request logs and capture latency/metrics for each call.

    Every request is logged once as `request_complete` with its request id,
    and its latency and status code land in the metrics registry.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:  # type: ignore[override]
        start = time.time()
        path = request.url.path
        method = request.method
        request_id = getattr(request.state, "request_id", None)
        if not request_id:
            request_id = uuid4().hex
            request.state.request_id = request_id
        structlog_contextvars.bind_contextvars(request_id=request_id)
        client_ip = request.client.host if request.client else "unknown"
        ua = request.headers.get("user-agent", "-")
        is_error = False
        is_timeout = False
        status_code: int | None = None
        error_type: str | None = None
        error_message: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            is_error = status_code >= 500
            return response
        except Exception as exc:
            is_error = True
            status_code = getattr(exc, "status_code", 500)
            error_type = exc.__class__.__name__
            raw_error_message = str(exc)
            error_message = (
                raw_error_message
                if len(raw_error_message) <= 200
                else f"{raw_error_message[:197]}..."
            )
            is_timeout = isinstance(exc, asyncio.TimeoutError)
            raise
        finally:
            latency_ms = (time.time() - start) * 1000
            registry.record(
                path,
                latency_ms,
                status_code=status_code,
                is_error=is_error,
                is_timeout=is_timeout,
            )
            # 5xx and unhandled exceptions are logged at error level
            log_method = logger.error if is_error else logger.info
            log_method(
                "request_complete",
                path=path,
                method=method,
                latency_ms=latency_ms,
                is_error=is_error,
                is_timeout=is_timeout,
                status_code=status_code,
                error_type=error_type,
                error_message=error_message,
                client_ip=client_ip,
                user_agent=ua,
            )
            structlog_contextvars.unbind_contextvars("request_id")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    configure_logging()
    app = FastAPI(title="Flashdeck API", version=__version__)

    configured_origins = list(settings.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]

    # credentials are only allowed for explicitly configured origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Middleware stack (inner → outer): CORS → RateLimit → AccessLog → RequestID.
    # Starlette runs middleware added later on the outside, so the request id
    # exists before access logging and rate limiting, and 429s are logged too.
    app.add_middleware(
        RateLimitMiddleware,
        ip_capacity_per_minute=settings.rate_limit_per_min_ip,
    )
    app.add_middleware(AccessLogAndMetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(cfg.router, prefix="/api")
    app.include_router(decks.router, prefix="/api")
    app.include_router(review.router, prefix="/api")
    app.include_router(stats.router, prefix="/api")

    logger.info(
        "app_configured",
        environment=settings.environment,
        db_path=settings.flashcards_db_path,
        good_ease_rule=settings.srs_good_ease_rule,
    )
    return app


app = create_app()


def run() -> None:
    """Console entry point serving the API with uvicorn."""
    uvicorn.run("flashdeck.main:app", host="0.0.0.0", port=8000)
