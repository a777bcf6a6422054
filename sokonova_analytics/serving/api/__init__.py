"""
API Module
"""
from .main import create_api_app
from .middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    SlidingWindowLimiter,
)

__all__ = [
    "create_api_app",
    "RequestLoggingMiddleware",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
    "SlidingWindowLimiter",
]
