"""
SOKONOVA Seller Analytics

Read-only analytics for marketplace sellers: profitability, inventory
health and buyer behaviour.
"""

__version__ = "1.0.0"
