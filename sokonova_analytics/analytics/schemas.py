"""
Seller Analytics Models

Request and response shapes for the seller analytics. Field names are
snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sokonova_analytics.database.models import OrderStatus


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# ENUMERATIONS
# =============================================================================

class VelocityStatus(str, Enum):
    """Inventory movement classification"""
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"


class RiskLevel(str, Enum):
    """Three-level risk classification"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AgingStatus(str, Enum):
    """Product age classification"""
    VERY_OLD = "very_old"
    OLD = "old"
    MATURING = "maturing"


class RecommendationType(str, Enum):
    """Inventory recommendation kind"""
    MARKDOWN = "markdown"
    RESTOCK = "restock"
    BUNDLE = "bundle"


# =============================================================================
# PROFITABILITY
# =============================================================================

class ProfitabilityMetrics(CamelModel):
    """Seller profitability rollup"""
    total_revenue: float = 0.0
    total_cost: float = 0.0
    total_fees: float = 0.0
    total_shipping: float = 0.0
    total_promos: float = 0.0
    gross_profit: float = 0.0
    net_profit: float = 0.0
    profit_margin: float = 0.0
    order_count: int = 0


class OrderLine(CamelModel):
    """Seller-scoped order line"""
    product_id: str
    product_title: Optional[str]
    qty: int
    price: float
    line_total: float


class OrderFeeBreakdown(CamelModel):
    """Order annotated with the seller's revenue and fees"""
    id: str
    buyer_id: str
    status: OrderStatus
    created_at: datetime
    items: List[OrderLine]
    item_revenue: float
    item_fees: float
    net_revenue: float


class PricingScenario(CamelModel):
    """What-if inputs, percentages"""
    fee_change: Optional[float] = Field(default=None, ge=0, le=100)
    bundle_discount: Optional[float] = Field(default=None, ge=0, le=100)
    product_id: Optional[str] = None


class MetricsDifference(CamelModel):
    """Simulated minus current"""
    total_revenue: float
    net_profit: float
    profit_margin: float


class PricingSimulation(CamelModel):
    """Pricing scenario outcome"""
    current: ProfitabilityMetrics
    simulated: ProfitabilityMetrics
    difference: MetricsDifference


# =============================================================================
# INVENTORY
# =============================================================================

class VelocityItem(CamelModel):
    """Per-product sales velocity. ``velocity`` is units sold per day."""
    product_id: str
    product_name: str
    current_inventory: int
    total_sold: int
    daily_sales_rate: float
    days_of_supply: float
    velocity: float
    status: VelocityStatus


class VelocityAggregate(CamelModel):
    """Velocity rollup across the seller's products"""
    total_inventory: int
    total_sold: int
    avg_days_of_supply: float
    slow_moving_items: int
    fast_moving_items: int


class InventoryVelocityReport(CamelModel):
    products: List[VelocityItem]
    aggregate: VelocityAggregate


class RiskFactors(CamelModel):
    """Risk sub-scores, each in [0, 1]"""
    aging: float
    velocity: float
    rating: float


class RiskItem(CamelModel):
    """Per-product inventory risk"""
    product_id: str
    product_name: str
    current_inventory: int
    days_of_supply: float
    avg_rating: float
    risk_score: int
    risk_level: RiskLevel
    risk_factors: RiskFactors


class RiskDistribution(CamelModel):
    """Share of products per risk level, percent"""
    high: float
    medium: float
    low: float


class RiskAggregate(CamelModel):
    total_products: int
    high_risk_items: int
    medium_risk_items: int
    low_risk_items: int
    risk_distribution: RiskDistribution


class InventoryRiskReport(CamelModel):
    products: List[RiskItem]
    aggregate: RiskAggregate


class AgingItem(CamelModel):
    """Product that has been listed for a while"""
    product_id: str
    product_name: str
    current_inventory: int
    age_in_days: int
    status: AgingStatus
    created_at: datetime


class StockoutPrediction(CamelModel):
    """Projected stockout for a product"""
    product_id: str
    product_name: str
    current_inventory: int
    daily_sales_rate: float
    days_until_stockout: int
    risk_of_stockout: RiskLevel
    recommended_restock: int


class RecommendationRequest(CamelModel):
    product_id: Optional[str] = None


class InventoryRecommendation(CamelModel):
    """Suggested inventory action"""
    type: RecommendationType
    product_id: str
    product_name: str
    action: str
    reason: str
    discount_percentage: Optional[float] = None
    quantity: Optional[int] = None


# =============================================================================
# BUYERS
# =============================================================================

class CohortOrder(CamelModel):
    order_id: str
    buyer_id: str
    created_at: datetime
    revenue: float


class BuyerCohort(CamelModel):
    """
    Buyers grouped by account creation month.

    ``buyer_count`` counts orders, ``unique_buyers`` counts distinct buyers.
    """
    period: str
    buyer_count: int
    total_revenue: float
    orders: List[CohortOrder]
    unique_buyers: int
    repeat_buyers: int
    retention_rate: float


class BuyerSummary(CamelModel):
    """Seller-scoped buyer activity"""
    buyer_id: str
    name: Optional[str]
    email: str
    total_spent: float
    order_count: int
    days_since_last_order: int


class BuyerSegment(CamelModel):
    id: str
    name: str
    buyers: List[BuyerSummary]
    criteria: str


class DiscountCampaignRequest(CamelModel):
    discount_percentage: float = Field(gt=0, le=100)
    duration_days: int = Field(ge=1)
    max_uses: Optional[int] = Field(default=None, ge=1)


class DiscountCampaign(CamelModel):
    """Campaign value object, not persisted here"""
    id: str
    seller_id: str
    segment_id: str
    discount_percentage: float
    duration_days: int
    max_uses: int
    redemption_count: int
    status: str
    created_at: datetime
    expires_at: datetime


# =============================================================================
# CATALOG / DASHBOARD
# =============================================================================

class TopProduct(CamelModel):
    """Product ranked by order-item count"""
    id: str
    title: str
    price: float
    total_sold: int


class SellerMeta(CamelModel):
    shop_name: Optional[str]
    seller_handle: Optional[str]


class RevenueWindow(CamelModel):
    amount: float
    currency: str


class TopSku(CamelModel):
    product_id: str
    title: str
    qty: int


class DisputeWindow(CamelModel):
    dispute_rate_pct: float
    sold_window: int
    disputes_window: int


class RatingPoint(CamelModel):
    rating: int
    ts: datetime


class RatingSummary(CamelModel):
    avg: float
    count: int
    trend: List[RatingPoint]


class SellerSummary(CamelModel):
    """Seller dashboard headline numbers"""
    seller_meta: SellerMeta
    revenue7d: RevenueWindow = Field(alias="revenue7d")
    top_skus: List[TopSku]
    dispute: DisputeWindow
    rating: RatingSummary
