"""
API middleware stack.

- Request ID injection (X-Request-ID header)
- Structured request/response logging
- Global exception handler
- CORS configuration
- Per-client limit on consistency checks, which fan out into many Riot calls
"""
from __future__ import annotations

import time
import uuid
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

UNLOGGED_PATHS = ("/health", "/ready", "/metrics")
CONSISTENCY_RPM = 10
RATE_LIMIT_WINDOW_S = 60


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Injects a unique X-Request-ID header into every request/response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs structured request/response information."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in UNLOGGED_PATHS:
            return await call_next(request)

        start = time.monotonic()
        request_id = getattr(request.state, "request_id", "unknown")
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "http_request_error",
                method=request.method,
                path=path,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
                request_id=request_id,
                error=str(exc),
                exc_info=True,
            )
            raise

        logger.info(
            "http_request",
            method=request.method,
            path=path,
            status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
            request_id=request_id,
            client=request.client.host if request.client else "unknown",
        )
        return response


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            request_id=request_id,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "request_id": request_id,
            },
        )


class ConsistencyRateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window limit per client IP on consistency endpoints.

    One consistency check can page through dozens of Riot listing calls, so
    these are limited well below what the Riot key would allow for lookups.
    """

    def __init__(
        self,
        app: ASGIApp,
        rpm: int = CONSISTENCY_RPM,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        self._rpm = rpm
        self._clock = clock
        self._buckets: dict[str, list[float]] = {}
        self._last_prune = clock()

    @property
    def tracked_clients(self) -> int:
        return len(self._buckets)

    def _recent(self, timestamps: list[float], now: float) -> list[float]:
        return [t for t in timestamps if now - t < RATE_LIMIT_WINDOW_S]

    def _prune(self, now: float) -> None:
        """Drop expired timestamps, and the buckets of clients with none left."""
        for client_ip in list(self._buckets):
            recent = self._recent(self._buckets[client_ip], now)
            if recent:
                self._buckets[client_ip] = recent
            else:
                del self._buckets[client_ip]
        self._last_prune = now

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not (path.startswith("/v1/players/") and path.endswith("/consistency")):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = self._clock()
        if now - self._last_prune >= RATE_LIMIT_WINDOW_S:
            self._prune(now)
        window = self._recent(self._buckets.get(client_ip, []), now)

        if len(window) >= self._rpm:
            self._buckets[client_ip] = window
            return JSONResponse(
                status_code=429,
                content={"error": "rate_limit_exceeded", "message": f"Max {self._rpm} consistency checks per minute"},
                headers={"Retry-After": str(RATE_LIMIT_WINDOW_S)},
            )

        window.append(now)
        self._buckets[client_ip] = window
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self._rpm - len(window)))
        return response


def setup_cors(app: FastAPI) -> None:
    """Configure CORS middleware."""
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
    )


def setup_middleware(app: FastAPI) -> None:
    """Apply all middleware to the FastAPI app in the correct order."""
    # Starlette wraps in reverse order: the last middleware added runs first.
    app.add_middleware(ConsistencyRateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # CORS is added last so it stays outermost for preflight requests.
    setup_cors(app)
    setup_exception_handlers(app)
