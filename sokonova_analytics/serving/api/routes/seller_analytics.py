"""
Seller Analytics API Endpoints

REST API behind the seller dashboard: profitability, inventory health and
buyer intelligence for one seller.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from sokonova_analytics.analytics import SellerAnalyticsService
from sokonova_analytics.analytics.schemas import (
    AgingItem,
    BuyerCohort,
    BuyerSegment,
    DiscountCampaign,
    DiscountCampaignRequest,
    InventoryRecommendation,
    InventoryRiskReport,
    InventoryVelocityReport,
    OrderFeeBreakdown,
    PricingScenario,
    PricingSimulation,
    ProfitabilityMetrics,
    RecommendationRequest,
    SellerSummary,
    StockoutPrediction,
    TopProduct,
)
from sokonova_analytics.database.connection import get_db_dependency
from sokonova_analytics.database.repository import SqlAlchemySellerRepository

router = APIRouter()
logger = structlog.get_logger(__name__)


async def get_analytics_service(
    db: AsyncSession = Depends(get_db_dependency),
) -> SellerAnalyticsService:
    """Service bound to the request's database session."""
    return SellerAnalyticsService(SqlAlchemySellerRepository(db))


# =============================================================================
# DASHBOARD / PROFITABILITY
# =============================================================================

@router.get("/{seller_id}/summary", response_model=SellerSummary)
async def get_seller_summary(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> SellerSummary:
    """Headline dashboard numbers for the seller."""
    return await service.get_seller_summary(seller_id)


@router.get("/{seller_id}/profitability", response_model=ProfitabilityMetrics)
async def get_profitability(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> ProfitabilityMetrics:
    """Revenue, estimated cost, fees and margin across all of the seller's orders."""
    logger.info("get_profitability called", seller_id=seller_id)
    return await service.get_profitability_metrics(seller_id)


@router.get("/{seller_id}/orders", response_model=List[OrderFeeBreakdown])
async def get_orders_with_fees(
    seller_id: str,
    limit: int = Query(50, ge=1, le=100),
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[OrderFeeBreakdown]:
    """Newest orders with the seller's fee breakdown."""
    return await service.get_orders_with_fee_breakdown(seller_id, limit)


@router.get("/{seller_id}/recent-orders", response_model=List[OrderFeeBreakdown])
async def get_recent_orders(
    seller_id: str,
    limit: int = Query(10, ge=1, le=100),
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[OrderFeeBreakdown]:
    return await service.get_recent_orders(seller_id, limit)


@router.post("/{seller_id}/simulate-pricing", response_model=PricingSimulation)
async def simulate_pricing(
    seller_id: str,
    scenario: PricingScenario,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> PricingSimulation:
    """
    What-if on fees and bundle discounts.

    Nothing is persisted; the same scenario always yields the same answer
    for unchanged data.
    """
    logger.info(
        "simulate_pricing called",
        seller_id=seller_id,
        fee_change=scenario.fee_change,
        bundle_discount=scenario.bundle_discount,
    )
    return await service.simulate_pricing_scenario(seller_id, scenario)


@router.get("/{seller_id}/top-products", response_model=List[TopProduct])
async def get_top_products(
    seller_id: str,
    limit: int = Query(10, ge=1, le=100),
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[TopProduct]:
    return await service.get_top_selling_products(seller_id, limit)


# =============================================================================
# INVENTORY
# =============================================================================

@router.get("/{seller_id}/inventory-velocity", response_model=InventoryVelocityReport)
async def get_inventory_velocity(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> InventoryVelocityReport:
    return await service.get_inventory_velocity_metrics(seller_id)


@router.get("/{seller_id}/inventory-risk", response_model=InventoryRiskReport)
async def get_inventory_risk(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> InventoryRiskReport:
    return await service.get_inventory_risk_analysis(seller_id)


@router.get("/{seller_id}/aging-inventory", response_model=List[AgingItem])
async def get_aging_inventory(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[AgingItem]:
    return await service.get_aging_inventory(seller_id)


@router.get("/{seller_id}/stockout-predictions", response_model=List[StockoutPrediction])
async def get_stockout_predictions(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[StockoutPrediction]:
    return await service.get_stockout_predictions(seller_id)


@router.post(
    "/{seller_id}/inventory-recommendations",
    response_model=List[InventoryRecommendation],
    response_model_exclude_none=True,
)
async def generate_inventory_recommendations(
    seller_id: str,
    data: Optional[RecommendationRequest] = None,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[InventoryRecommendation]:
    """Markdown, restock and bundle suggestions."""
    product_id = data.product_id if data else None
    return await service.generate_inventory_recommendations(seller_id, product_id)


# =============================================================================
# BUYERS
# =============================================================================

@router.get("/{seller_id}/buyer-cohorts", response_model=List[BuyerCohort])
async def get_buyer_cohorts(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[BuyerCohort]:
    return await service.get_buyer_cohorts(seller_id)


@router.get("/{seller_id}/buyer-segments", response_model=List[BuyerSegment])
async def get_buyer_segments(
    seller_id: str,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> List[BuyerSegment]:
    return await service.get_buyer_segments(seller_id)


@router.post(
    "/{seller_id}/segments/{segment_id}/discount-campaign",
    response_model=DiscountCampaign,
)
async def generate_discount_campaign(
    seller_id: str,
    segment_id: str,
    discount_data: DiscountCampaignRequest,
    service: SellerAnalyticsService = Depends(get_analytics_service),
) -> DiscountCampaign:
    """Build a discount campaign for a buyer segment."""
    logger.info("generate_discount_campaign called", seller_id=seller_id, segment_id=segment_id)
    return await service.generate_discount_campaign(seller_id, segment_id, discount_data)
