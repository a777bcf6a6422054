"""
Seller Analytics Service

Read-only aggregator behind the seller dashboard. Each call queries the
repository afresh and reduces the rows in memory; nothing is cached and
nothing is written. Store errors propagate to the caller.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

import structlog

from sokonova_analytics.config import AnalyticsSettings, get_settings
from sokonova_analytics.database.repository import SellerAnalyticsRepository
from sokonova_analytics.analytics import metrics
from sokonova_analytics.analytics.schemas import (
    AgingItem,
    BuyerCohort,
    BuyerSegment,
    DiscountCampaign,
    DiscountCampaignRequest,
    DisputeWindow,
    InventoryRecommendation,
    InventoryRiskReport,
    InventoryVelocityReport,
    OrderFeeBreakdown,
    PricingScenario,
    PricingSimulation,
    ProfitabilityMetrics,
    RatingPoint,
    RatingSummary,
    RevenueWindow,
    SellerMeta,
    SellerSummary,
    StockoutPrediction,
    TopProduct,
)

logger = structlog.get_logger(__name__)


class SellerAnalyticsService:
    """
    Financial and inventory analytics for a single seller.

    Args:
        repository: Read access to orders, products and reviews
        config: Business ratios and thresholds, defaults from settings
        clock: Returns naive UTC "now"; injectable for tests
    """

    def __init__(
        self,
        repository: SellerAnalyticsRepository,
        config: Optional[AnalyticsSettings] = None,
        clock: Callable[[], datetime] = metrics.utcnow,
    ):
        self.repository = repository
        self.config = config or get_settings().analytics
        self.clock = clock

    # -------------------------------------------------------------------------
    # Profitability
    # -------------------------------------------------------------------------

    async def get_profitability_metrics(self, seller_id: str) -> ProfitabilityMetrics:
        orders = await self.repository.orders_with_seller_items(seller_id)
        result = metrics.profitability_from_orders(orders, seller_id, self.config)
        logger.info(
            "Profitability computed",
            seller_id=seller_id,
            orders=result.order_count,
            revenue=round(result.total_revenue, 2),
        )
        return result

    async def get_orders_with_fee_breakdown(self, seller_id: str, limit: int = 50) -> List[OrderFeeBreakdown]:
        """Newest orders first, each with the seller's share of revenue and fees."""
        orders = await self.repository.orders_with_seller_items(
            seller_id, newest_first=True, limit=limit
        )
        logger.debug("Orders with fees loaded", seller_id=seller_id, orders=len(orders), limit=limit)
        return [metrics.order_fee_breakdown(order, seller_id, self.config) for order in orders]

    async def get_recent_orders(self, seller_id: str, limit: int = 10) -> List[OrderFeeBreakdown]:
        return await self.get_orders_with_fee_breakdown(seller_id, limit)

    async def simulate_pricing_scenario(self, seller_id: str, scenario: PricingScenario) -> PricingSimulation:
        current = await self.get_profitability_metrics(seller_id)
        simulation = metrics.simulate_pricing(current, scenario)
        logger.info(
            "Pricing scenario simulated",
            seller_id=seller_id,
            fee_change=scenario.fee_change,
            bundle_discount=scenario.bundle_discount,
            net_profit_delta=round(simulation.difference.net_profit, 2),
        )
        return simulation

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def _since(self, days: int) -> datetime:
        return self.clock() - timedelta(days=days)

    async def get_inventory_velocity_metrics(self, seller_id: str) -> InventoryVelocityReport:
        products = await self.repository.products_with_sales(
            seller_id, self._since(self.config.velocity_window_days)
        )
        report = metrics.velocity_report(products, self.config)
        logger.info(
            "Inventory velocity computed",
            seller_id=seller_id,
            products=len(report.products),
            slow=report.aggregate.slow_moving_items,
            fast=report.aggregate.fast_moving_items,
        )
        return report

    async def get_inventory_risk_analysis(self, seller_id: str) -> InventoryRiskReport:
        now = self.clock()
        products = await self.repository.products_with_sales(
            seller_id, now - timedelta(days=self.config.velocity_window_days)
        )
        report = metrics.risk_report(products, now, self.config)
        logger.info(
            "Inventory risk computed",
            seller_id=seller_id,
            products=report.aggregate.total_products,
            high_risk=report.aggregate.high_risk_items,
        )
        return report

    async def get_aging_inventory(self, seller_id: str) -> List[AgingItem]:
        products = await self.repository.products(seller_id)
        aging = metrics.aging_inventory(products, self.clock(), self.config)
        logger.info("Aging inventory computed", seller_id=seller_id, items=len(aging))
        return aging

    async def get_stockout_predictions(self, seller_id: str) -> List[StockoutPrediction]:
        products = await self.repository.products_with_sales(
            seller_id, self._since(self.config.stockout_window_days)
        )
        predictions = metrics.stockout_predictions(products, self.config)
        logger.info("Stockout predictions computed", seller_id=seller_id, predictions=len(predictions))
        return predictions

    async def generate_inventory_recommendations(
        self,
        seller_id: str,
        product_id: Optional[str] = None,
    ) -> List[InventoryRecommendation]:
        """
        Derive markdown, restock and bundle suggestions from the risk,
        stockout and aging reports.

        ``product_id`` is accepted for API compatibility and not used.
        """
        risk = await self.get_inventory_risk_analysis(seller_id)
        stockouts = await self.get_stockout_predictions(seller_id)
        aging = await self.get_aging_inventory(seller_id)

        recommendations = metrics.inventory_recommendations(risk, stockouts, aging, self.config)
        logger.info(
            "Inventory recommendations generated",
            seller_id=seller_id,
            recommendations=len(recommendations),
        )
        return recommendations

    async def get_top_selling_products(self, seller_id: str, limit: int = 10) -> List[TopProduct]:
        ranked = await self.repository.top_selling_products(seller_id, limit)
        return [
            TopProduct(
                id=product.id,
                title=product.title,
                price=float(product.price),
                total_sold=total_sold,
            )
            for product, total_sold in ranked
        ]

    # -------------------------------------------------------------------------
    # Buyers
    # -------------------------------------------------------------------------

    async def get_buyer_cohorts(self, seller_id: str) -> List[BuyerCohort]:
        orders = await self.repository.orders_with_seller_items(seller_id)
        cohorts = metrics.buyer_cohorts(orders, seller_id)
        logger.info("Buyer cohorts computed", seller_id=seller_id, cohorts=len(cohorts))
        return cohorts

    async def get_buyer_segments(self, seller_id: str) -> List[BuyerSegment]:
        orders = await self.repository.orders_with_buyer_history(seller_id)
        segments = metrics.buyer_segments(orders, seller_id, self.clock(), self.config)
        logger.info(
            "Buyer segments computed",
            seller_id=seller_id,
            sizes={segment.id: len(segment.buyers) for segment in segments},
        )
        return segments

    async def generate_discount_campaign(
        self,
        seller_id: str,
        segment_id: str,
        request: DiscountCampaignRequest,
    ) -> DiscountCampaign:
        """Build a campaign for a segment. Storing it is up to the caller."""
        campaign = metrics.discount_campaign(seller_id, segment_id, request, self.clock(), self.config)
        logger.info(
            "Discount campaign generated",
            seller_id=seller_id,
            segment_id=segment_id,
            campaign_id=campaign.id,
        )
        return campaign

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    async def get_seller_summary(self, seller_id: str) -> SellerSummary:
        """Headline numbers: recent revenue, top SKUs, dispute rate, rating trend."""
        config = self.config

        recent_items = await self.repository.paid_items_since(
            seller_id, self._since(config.summary_revenue_window_days)
        )

        dispute_since = self._since(config.summary_dispute_window_days)
        sold = await self.repository.count_paid_items_since(seller_id, dispute_since)
        disputes = await self.repository.count_active_disputes_since(seller_id, dispute_since)

        # Newest first from the store, oldest first for charts
        reviews = await self.repository.recent_visible_reviews(seller_id, config.summary_review_trend_size)
        trend = [RatingPoint(rating=r.rating, ts=r.created_at) for r in reversed(reviews)]

        seller = await self.repository.get_seller(seller_id)

        summary = SellerSummary(
            seller_meta=SellerMeta(
                shop_name=seller.shop_name if seller else None,
                seller_handle=seller.seller_handle if seller else None,
            ),
            revenue7d=RevenueWindow(
                amount=metrics.net_revenue(recent_items),
                currency=metrics.revenue_currency(recent_items),
            ),
            top_skus=metrics.top_skus(recent_items, config.summary_top_skus),
            dispute=DisputeWindow(
                dispute_rate_pct=metrics.dispute_rate(disputes, sold),
                sold_window=sold,
                disputes_window=disputes,
            ),
            rating=RatingSummary(
                avg=(seller.rating_avg or 0.0) if seller else 0.0,
                count=(seller.rating_count or 0) if seller else 0,
                trend=trend,
            ),
        )
        logger.info("Seller summary computed", seller_id=seller_id, sold=sold, disputes=disputes)
        return summary
