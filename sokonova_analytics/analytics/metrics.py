"""
Seller Metric Calculations

Pure functions that turn loaded orders and products into seller metrics.
Nothing here touches the store; callers hand in ORM objects (or transient
ones built in tests) with the relationships already populated.

Every ratio falls back to zero when its denominator is zero.
"""

import math
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Sequence

from sokonova_analytics.config import AnalyticsSettings
from sokonova_analytics.database.models import Order, OrderItem, Product
from sokonova_analytics.analytics.schemas import (
    AgingItem,
    AgingStatus,
    BuyerCohort,
    BuyerSegment,
    BuyerSummary,
    CohortOrder,
    DiscountCampaign,
    DiscountCampaignRequest,
    InventoryRecommendation,
    InventoryRiskReport,
    InventoryVelocityReport,
    MetricsDifference,
    OrderFeeBreakdown,
    OrderLine,
    PricingScenario,
    PricingSimulation,
    ProfitabilityMetrics,
    RecommendationType,
    RiskAggregate,
    RiskDistribution,
    RiskFactors,
    RiskItem,
    RiskLevel,
    StockoutPrediction,
    TopSku,
    VelocityAggregate,
    VelocityItem,
    VelocityStatus,
)

DAY = timedelta(days=1)

# Risk heuristics
AGING_RISK_OLD = 0.8
AGING_RISK_RECENT = 0.2
VELOCITY_RISK_SLOW = 0.9
VELOCITY_RISK_FAST = 0.3
VELOCITY_RISK_NORMAL = 0.6
MAX_RATING = 5.0
HIGH_RISK_SCORE = 70
MEDIUM_RISK_SCORE = 40

# Stockout horizons in days
STOCKOUT_HIGH_DAYS = 7
STOCKOUT_MEDIUM_DAYS = 14


# =============================================================================
# HELPERS
# =============================================================================

def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def round_half_up(value: float) -> int:
    """Round .5 upwards, unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def whole_days(start: datetime, end: datetime) -> int:
    return (end - start) // DAY


def seller_items(order: Order, seller_id: str) -> List[OrderItem]:
    """Items of ``order`` that belong to ``seller_id``."""
    return [item for item in order.items if item.seller_id == seller_id]


def line_revenue(item: OrderItem) -> float:
    return float(item.price) * item.qty


def units_sold(product: Product) -> int:
    """Units across the product's loaded order items."""
    return sum(item.qty for item in product.order_items)


# =============================================================================
# PROFITABILITY
# =============================================================================

def build_profitability(
    revenue: float,
    cost: float,
    fees: float,
    shipping: float,
    promos: float,
    order_count: int,
) -> ProfitabilityMetrics:
    gross_profit = revenue - cost
    net_profit = gross_profit - fees - shipping - promos
    profit_margin = (net_profit / revenue) * 100 if revenue else 0.0

    return ProfitabilityMetrics(
        total_revenue=revenue,
        total_cost=cost,
        total_fees=fees,
        total_shipping=shipping,
        total_promos=promos,
        gross_profit=gross_profit,
        net_profit=net_profit,
        profit_margin=profit_margin,
        order_count=order_count,
    )


def profitability_from_orders(
    orders: Sequence[Order],
    seller_id: str,
    config: AnalyticsSettings,
) -> ProfitabilityMetrics:
    """
    Roll up revenue, estimated cost and platform fees over the seller's items.

    Cost is estimated from the product's *current* list price; fees from the
    price actually paid. Shipping and promotions are not tracked yet and
    stay at zero.
    """
    revenue = 0.0
    cost = 0.0
    fees = 0.0
    shipping = 0.0
    promos = 0.0

    for order in orders:
        for item in seller_items(order, seller_id):
            revenue += float(item.price) * item.qty
            cost += float(item.product.price) * config.cost_of_goods_ratio * item.qty
            fees += float(item.price) * config.platform_fee_rate * item.qty

    return build_profitability(revenue, cost, fees, shipping, promos, len(orders))


def order_fee_breakdown(
    order: Order,
    seller_id: str,
    config: AnalyticsSettings,
) -> OrderFeeBreakdown:
    items = seller_items(order, seller_id)
    lines = [
        OrderLine(
            product_id=item.product_id,
            product_title=item.product.title if item.product is not None else None,
            qty=item.qty,
            price=float(item.price),
            line_total=line_revenue(item),
        )
        for item in items
    ]
    item_revenue = sum(line.line_total for line in lines)
    item_fees = item_revenue * config.platform_fee_rate

    return OrderFeeBreakdown(
        id=order.id,
        buyer_id=order.buyer_id,
        status=order.status,
        created_at=order.created_at,
        items=lines,
        item_revenue=item_revenue,
        item_fees=item_fees,
        net_revenue=item_revenue - item_fees,
    )


def simulate_pricing(current: ProfitabilityMetrics, scenario: PricingScenario) -> PricingSimulation:
    """
    Apply a what-if scenario to one profitability snapshot.

    ``fee_change`` replaces total fees with that percentage of current
    revenue; ``bundle_discount`` scales revenue down. Cost, shipping and
    promotions are held.
    """
    revenue = current.total_revenue
    fees = current.total_fees

    if scenario.fee_change is not None:
        fees = current.total_revenue * (scenario.fee_change / 100)
    if scenario.bundle_discount is not None:
        revenue = revenue * (1 - scenario.bundle_discount / 100)

    simulated = build_profitability(
        revenue,
        current.total_cost,
        fees,
        current.total_shipping,
        current.total_promos,
        current.order_count,
    )

    return PricingSimulation(
        current=current,
        simulated=simulated,
        difference=MetricsDifference(
            total_revenue=simulated.total_revenue - current.total_revenue,
            net_profit=simulated.net_profit - current.net_profit,
            profit_margin=simulated.profit_margin - current.profit_margin,
        ),
    )


# =============================================================================
# INVENTORY
# =============================================================================

def days_of_supply(inventory: int, daily_rate: float) -> float:
    return inventory / daily_rate if daily_rate > 0 else 0.0


def classify_velocity(supply_days: float, daily_rate: float, config: AnalyticsSettings) -> VelocityStatus:
    # Products without sales report zero days of supply; they are not "fast"
    if supply_days > config.slow_moving_days_of_supply:
        return VelocityStatus.SLOW
    if daily_rate > 0 and supply_days < config.fast_moving_days_of_supply:
        return VelocityStatus.FAST
    return VelocityStatus.NORMAL


def velocity_report(products: Sequence[Product], config: AnalyticsSettings) -> InventoryVelocityReport:
    """Per-product days of supply over the velocity window, with a rollup."""
    items: List[VelocityItem] = []
    for product in products:
        sold = units_sold(product)
        rate = sold / config.velocity_window_days
        supply = days_of_supply(product.stock_quantity, rate)
        items.append(
            VelocityItem(
                product_id=product.id,
                product_name=product.title,
                current_inventory=product.stock_quantity,
                total_sold=sold,
                daily_sales_rate=rate,
                days_of_supply=supply,
                velocity=rate,
                status=classify_velocity(supply, rate, config),
            )
        )

    aggregate = VelocityAggregate(
        total_inventory=sum(i.current_inventory for i in items),
        total_sold=sum(i.total_sold for i in items),
        avg_days_of_supply=safe_ratio(sum(i.days_of_supply for i in items), len(items)),
        slow_moving_items=sum(1 for i in items if i.status == VelocityStatus.SLOW),
        fast_moving_items=sum(1 for i in items if i.status == VelocityStatus.FAST),
    )
    return InventoryVelocityReport(products=items, aggregate=aggregate)


def aging_risk(created_at: datetime, now: datetime, config: AnalyticsSettings) -> float:
    if created_at < now - timedelta(days=config.very_old_days):
        return AGING_RISK_OLD
    return AGING_RISK_RECENT


def velocity_risk(supply_days: float, config: AnalyticsSettings) -> float:
    """Overstock scores high, short supply scores low."""
    if supply_days > config.slow_moving_days_of_supply:
        return VELOCITY_RISK_SLOW
    if supply_days < config.fast_moving_days_of_supply:
        return VELOCITY_RISK_FAST
    return VELOCITY_RISK_NORMAL


def rating_risk(avg_rating: float) -> float:
    return (MAX_RATING - avg_rating) / MAX_RATING


def classify_risk_level(score: int) -> RiskLevel:
    if score > HIGH_RISK_SCORE:
        return RiskLevel.HIGH
    if score > MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def risk_report(
    products: Sequence[Product],
    now: datetime,
    config: AnalyticsSettings,
) -> InventoryRiskReport:
    """
    Blend aging, velocity and rating into a 0-100 markdown-worthiness score.

    There is no rating feed yet: products that sold in the window get the
    configured placeholder rating, others get zero.
    """
    items: List[RiskItem] = []
    for product in products:
        sold = units_sold(product)
        rate = sold / config.velocity_window_days
        supply = days_of_supply(product.stock_quantity, rate)
        avg_rating = config.placeholder_rating if sold > 0 else 0.0

        factors = RiskFactors(
            aging=aging_risk(product.created_at, now, config),
            velocity=velocity_risk(supply, config),
            rating=rating_risk(avg_rating),
        )
        score = round_half_up((factors.aging + factors.velocity + factors.rating) / 3 * 100)

        items.append(
            RiskItem(
                product_id=product.id,
                product_name=product.title,
                current_inventory=product.stock_quantity,
                days_of_supply=supply,
                avg_rating=avg_rating,
                risk_score=score,
                risk_level=classify_risk_level(score),
                risk_factors=factors,
            )
        )

    counts = {level: sum(1 for i in items if i.risk_level == level) for level in RiskLevel}
    total = len(items)
    aggregate = RiskAggregate(
        total_products=total,
        high_risk_items=counts[RiskLevel.HIGH],
        medium_risk_items=counts[RiskLevel.MEDIUM],
        low_risk_items=counts[RiskLevel.LOW],
        risk_distribution=RiskDistribution(
            high=safe_ratio(counts[RiskLevel.HIGH], total) * 100,
            medium=safe_ratio(counts[RiskLevel.MEDIUM], total) * 100,
            low=safe_ratio(counts[RiskLevel.LOW], total) * 100,
        ),
    )
    return InventoryRiskReport(products=items, aggregate=aggregate)


def classify_age(age_in_days: int, config: AnalyticsSettings) -> AgingStatus:
    if age_in_days > config.very_old_days:
        return AgingStatus.VERY_OLD
    if age_in_days > config.aging_days:
        return AgingStatus.OLD
    return AgingStatus.MATURING


def aging_inventory(
    products: Iterable[Product],
    now: datetime,
    config: AnalyticsSettings,
) -> List[AgingItem]:
    """Products listed for longer than the aging threshold."""
    cutoff = now - timedelta(days=config.aging_days)
    report = []
    for product in products:
        if product.created_at >= cutoff:
            continue
        age = whole_days(product.created_at, now)
        report.append(
            AgingItem(
                product_id=product.id,
                product_name=product.title,
                current_inventory=product.stock_quantity,
                age_in_days=age,
                status=classify_age(age, config),
                created_at=product.created_at,
            )
        )
    return report


def classify_stockout_risk(days_until_stockout: int) -> RiskLevel:
    if days_until_stockout < STOCKOUT_HIGH_DAYS:
        return RiskLevel.HIGH
    if days_until_stockout < STOCKOUT_MEDIUM_DAYS:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def stockout_predictions(products: Iterable[Product], config: AnalyticsSettings) -> List[StockoutPrediction]:
    """
    Project stockouts from the stockout window's sales rate.

    Products without sales report zero days until stockout and therefore
    fall inside the reporting horizon.
    """
    predictions = []
    for product in products:
        rate = units_sold(product) / config.stockout_window_days
        inventory = product.stock_quantity
        if rate > 0:
            days_left = math.floor(inventory / rate)
            restock = math.ceil(rate * config.restock_cover_days)
        else:
            days_left = 0
            restock = 0

        if days_left >= config.stockout_horizon_days:
            continue

        predictions.append(
            StockoutPrediction(
                product_id=product.id,
                product_name=product.title,
                current_inventory=inventory,
                daily_sales_rate=rate,
                days_until_stockout=days_left,
                risk_of_stockout=classify_stockout_risk(days_left),
                recommended_restock=restock,
            )
        )
    return predictions


def inventory_recommendations(
    risk: InventoryRiskReport,
    stockouts: Sequence[StockoutPrediction],
    aging: Sequence[AgingItem],
    config: AnalyticsSettings,
) -> List[InventoryRecommendation]:
    """Markdown, restock and bundle suggestions; one product can get several."""
    recommendations: List[InventoryRecommendation] = []

    for item in risk.products:
        if item.risk_level != RiskLevel.HIGH:
            continue
        recommendations.append(
            InventoryRecommendation(
                type=RecommendationType.MARKDOWN,
                product_id=item.product_id,
                product_name=item.product_name,
                action="Apply markdown",
                reason=f"High inventory risk score ({item.risk_score}) with "
                       f"{item.days_of_supply:.0f} days of supply",
                discount_percentage=config.markdown_discount_percent,
            )
        )

    for prediction in stockouts:
        if prediction.risk_of_stockout != RiskLevel.HIGH:
            continue
        recommendations.append(
            InventoryRecommendation(
                type=RecommendationType.RESTOCK,
                product_id=prediction.product_id,
                product_name=prediction.product_name,
                action="Restock inventory",
                reason=f"Projected to sell out in {prediction.days_until_stockout} days "
                       f"at {prediction.daily_sales_rate:.2f} units/day",
                quantity=prediction.recommended_restock,
            )
        )

    for item in aging:
        if item.status not in (AgingStatus.OLD, AgingStatus.VERY_OLD):
            continue
        recommendations.append(
            InventoryRecommendation(
                type=RecommendationType.BUNDLE,
                product_id=item.product_id,
                product_name=item.product_name,
                action="Bundle with faster movers",
                reason=f"Listed for {item.age_in_days} days",
            )
        )

    return recommendations


# =============================================================================
# BUYERS
# =============================================================================

def buyer_cohorts(orders: Sequence[Order], seller_id: str) -> List[BuyerCohort]:
    """
    Group the seller's orders by the buyer's signup month.

    ``buyer_count`` is incremented per order, so a returning buyer counts
    more than once there; ``unique_buyers`` is the distinct count.
    """
    cohorts: Dict[str, dict] = OrderedDict()

    for order in orders:
        period = order.buyer.created_at.strftime("%Y-%m")
        cohort = cohorts.setdefault(
            period,
            {"buyer_count": 0, "total_revenue": 0.0, "orders": []},
        )
        revenue = sum(line_revenue(item) for item in seller_items(order, seller_id))
        cohort["buyer_count"] += 1
        cohort["total_revenue"] += revenue
        cohort["orders"].append(
            CohortOrder(
                order_id=order.id,
                buyer_id=order.buyer_id,
                created_at=order.created_at,
                revenue=revenue,
            )
        )

    result = []
    for period, cohort in cohorts.items():
        unique_buyers = len({o.buyer_id for o in cohort["orders"]})
        repeat_buyers = len(cohort["orders"]) - unique_buyers
        result.append(
            BuyerCohort(
                period=period,
                buyer_count=cohort["buyer_count"],
                total_revenue=cohort["total_revenue"],
                orders=cohort["orders"],
                unique_buyers=unique_buyers,
                repeat_buyers=repeat_buyers,
                retention_rate=safe_ratio(repeat_buyers, unique_buyers) * 100,
            )
        )
    return result


def summarize_buyer(order: Order, seller_id: str, now: datetime) -> BuyerSummary:
    """Seller-scoped spend and recency across the buyer's whole history."""
    buyer = order.buyer
    scoped = [o for o in buyer.orders if seller_items(o, seller_id)]
    total_spent = sum(line_revenue(item) for o in scoped for item in seller_items(o, seller_id))
    last_order_at = max((o.created_at for o in scoped), default=order.created_at)

    return BuyerSummary(
        buyer_id=buyer.id,
        name=buyer.name,
        email=buyer.email,
        total_spent=total_spent,
        order_count=len(scoped),
        days_since_last_order=whole_days(last_order_at, now),
    )


def buyer_segments(
    orders: Sequence[Order],
    seller_id: str,
    now: datetime,
    config: AnalyticsSettings,
) -> List[BuyerSegment]:
    """
    Bucket the seller's buyers into overlapping segments.

    All four segments are always returned. ``seasonal`` has no rule yet and
    stays empty.
    """
    summaries: List[BuyerSummary] = []
    seen = set()
    for order in orders:
        if order.buyer_id in seen:
            continue
        seen.add(order.buyer_id)
        summaries.append(summarize_buyer(order, seller_id, now))

    return [
        BuyerSegment(
            id="highValue",
            name="High Value Buyers",
            buyers=[b for b in summaries if b.total_spent > config.high_value_spend],
            criteria=f"Total spend over {config.high_value_spend:g}",
        ),
        BuyerSegment(
            id="frequent",
            name="Frequent Buyers",
            buyers=[b for b in summaries if b.order_count > config.frequent_order_count],
            criteria=f"More than {config.frequent_order_count} orders",
        ),
        BuyerSegment(
            id="atRisk",
            name="At-Risk Buyers",
            buyers=[b for b in summaries if b.days_since_last_order > config.at_risk_days],
            criteria=f"No purchase in over {config.at_risk_days} days",
        ),
        BuyerSegment(
            id="seasonal",
            name="Seasonal Buyers",
            buyers=[],
            criteria="Purchases concentrated around seasonal peaks",
        ),
    ]


def discount_campaign(
    seller_id: str,
    segment_id: str,
    request: DiscountCampaignRequest,
    now: datetime,
    config: AnalyticsSettings,
) -> DiscountCampaign:
    millis = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
    max_uses = request.max_uses if request.max_uses is not None else config.default_campaign_max_uses

    return DiscountCampaign(
        id=f"campaign_{millis}",
        seller_id=seller_id,
        segment_id=segment_id,
        discount_percentage=request.discount_percentage,
        duration_days=request.duration_days,
        max_uses=max_uses,
        redemption_count=0,
        status="active",
        created_at=now,
        expires_at=now + timedelta(days=request.duration_days),
    )


# =============================================================================
# DASHBOARD
# =============================================================================

def top_skus(items: Iterable[OrderItem], limit: int) -> List[TopSku]:
    """Products ranked by units across ``items``; ties keep first-seen order."""
    totals: Dict[str, TopSku] = OrderedDict()
    for item in items:
        sku = totals.get(item.product_id)
        if sku is None:
            title = item.product.title if item.product is not None else None
            sku = TopSku(product_id=item.product_id, title=title or "Untitled", qty=0)
            totals[item.product_id] = sku
        sku.qty += item.qty
    return sorted(totals.values(), key=lambda s: s.qty, reverse=True)[:limit]


def revenue_currency(items: Sequence[OrderItem], default: str = "USD") -> str:
    return items[0].currency if items and items[0].currency else default


def net_revenue(items: Iterable[OrderItem]) -> float:
    return sum(float(item.net_amount or 0) for item in items)


def dispute_rate(disputes: int, sold: int) -> float:
    return safe_ratio(disputes, sold) * 100
