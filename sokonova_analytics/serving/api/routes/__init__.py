"""
API Routes Module
"""
from .health import router as health_router
from .seller_analytics import router as seller_analytics_router

__all__ = [
    "health_router",
    "seller_analytics_router",
]
