"""
Seller analytics API middleware: request ids and timing, per-client rate
limiting and response security headers.
"""

import asyncio
import time
from typing import Callable, Dict, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id for the duration of the call and logs its timing"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(time.time_ns())

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            logger.info(
                "Analytics request received",
                method=request.method,
                path=request.url.path,
                client=request.client.host if request.client else None,
            )
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "Analytics request served",
                status_code=response.status_code,
                duration_ms=round(elapsed_ms, 2),
            )
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
        response.headers["X-Request-ID"] = request_id
        return response


class SlidingWindowLimiter:
    """
    Request timestamps per client over a sliding window.

    Clients with no request inside the window are forgotten, so the table
    only holds hosts that are currently active.
    """

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: Dict[str, List[float]] = {}

    def __len__(self) -> int:
        return len(self._requests)

    def prune(self, now: float) -> None:
        """Forget timestamps that left the window, and clients left with none."""
        for client_id in list(self._requests):
            recent = [t for t in self._requests[client_id] if now - t < self.window_seconds]
            if recent:
                self._requests[client_id] = recent
            else:
                del self._requests[client_id]

    def hit(self, client_id: str, now: float) -> Optional[int]:
        """Record a request and return the remaining allowance, or None when over the limit."""
        self.prune(now)
        history = self._requests.get(client_id, [])
        if len(history) >= self.max_requests:
            return None
        history.append(now)
        self._requests[client_id] = history
        return self.max_requests - len(history)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory, per-process rate limiter keyed on client host"""

    def __init__(self, app, max_requests: int = 100, window_seconds: int = 60):
        super().__init__(app)
        self.limiter = SlidingWindowLimiter(max_requests, window_seconds)
        self._lock = asyncio.Lock()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_id = request.client.host if request.client else "unknown"
        limit = str(self.limiter.max_requests)

        async with self._lock:
            remaining = self.limiter.hit(client_id, time.monotonic())

        if remaining is None:
            logger.warning("Rate limit exceeded", client=client_id, limit=self.limiter.max_requests)
            return Response(
                content='{"error": "Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
                headers={
                    "Retry-After": str(self.limiter.window_seconds),
                    "X-RateLimit-Limit": limit,
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = limit
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(self.headers)
        return response
