"""
Unit Tests - API Middleware
"""
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sokonova_analytics.serving.api.middleware import (
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    SlidingWindowLimiter,
)


class TestSlidingWindowLimiter:
    """Tests for per-client request accounting"""

    def test_counts_down_then_refuses(self):
        limiter = SlidingWindowLimiter(max_requests=2, window_seconds=60)

        assert limiter.hit("10.0.0.1", now=0.0) == 1
        assert limiter.hit("10.0.0.1", now=1.0) == 0
        assert limiter.hit("10.0.0.1", now=2.0) is None

    def test_clients_are_independent(self):
        limiter = SlidingWindowLimiter(max_requests=1, window_seconds=60)

        assert limiter.hit("10.0.0.1", now=0.0) == 0
        assert limiter.hit("10.0.0.2", now=0.0) == 0

    def test_allowance_returns_after_window(self):
        limiter = SlidingWindowLimiter(max_requests=1, window_seconds=60)
        limiter.hit("10.0.0.1", now=0.0)

        assert limiter.hit("10.0.0.1", now=59.0) is None
        assert limiter.hit("10.0.0.1", now=60.0) == 0

    def test_idle_clients_are_forgotten(self):
        limiter = SlidingWindowLimiter(max_requests=5, window_seconds=60)
        for n in range(50):
            limiter.hit(f"10.0.0.{n}", now=float(n))
        assert len(limiter) == 50

        limiter.hit("10.0.1.1", now=200.0)

        assert len(limiter) == 1

    def test_prune_keeps_active_clients(self):
        limiter = SlidingWindowLimiter(max_requests=5, window_seconds=60)
        limiter.hit("old", now=0.0)
        limiter.hit("busy", now=30.0)

        limiter.prune(now=70.0)

        assert len(limiter) == 1
        assert limiter.hit("busy", now=70.0) == 3


class TestMiddlewareOverHttp:
    """Middleware mounted on a bare app"""

    def _client(self, max_requests):
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window_seconds=60)
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        return TestClient(app)

    def test_rate_limit_headers_and_429(self):
        client = self._client(max_requests=2)

        first = client.get("/ping")
        second = client.get("/ping")
        refused = client.get("/ping")

        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert second.headers["X-RateLimit-Remaining"] == "0"
        assert refused.status_code == 429
        assert refused.json() == {"error": "Rate limit exceeded"}
        assert refused.headers["Retry-After"] == "60"

    def test_security_headers(self):
        response = self._client(max_requests=10).get("/ping")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
