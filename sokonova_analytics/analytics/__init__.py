"""
Seller Analytics Module
"""
from .service import SellerAnalyticsService

__all__ = ["SellerAnalyticsService"]
