"""
Seller Analytics Read Repository

Narrow read interface between the seller analytics aggregator and the
marketplace store. The SQLAlchemy implementation eager-loads every
relationship the aggregator walks, so no lazy IO happens once a query
has returned.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sokonova_analytics.database.models import (
    Dispute,
    DisputeStatus,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Review,
    User,
)

logger = structlog.get_logger(__name__)


class SellerAnalyticsRepository(ABC):
    """Read-only queries the seller analytics need"""

    @abstractmethod
    async def orders_with_seller_items(
        self,
        seller_id: str,
        *,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[Order]:
        """Orders holding at least one of the seller's items, with items, products, inventory and buyer."""

    @abstractmethod
    async def orders_with_buyer_history(self, seller_id: str) -> List[Order]:
        """Same orders as above, with every buyer's full order history and items."""

    @abstractmethod
    async def products(self, seller_id: str) -> List[Product]:
        """Seller's products with inventory."""

    @abstractmethod
    async def products_with_sales(self, seller_id: str, since: datetime) -> List[Product]:
        """Seller's products with inventory and only the order items created at or after ``since``."""

    @abstractmethod
    async def top_selling_products(self, seller_id: str, limit: int) -> List[Tuple[Product, int]]:
        """Products paired with their order item count, highest count first."""

    @abstractmethod
    async def get_seller(self, seller_id: str) -> Optional[User]:
        """Seller profile, or None when unknown."""

    @abstractmethod
    async def paid_items_since(self, seller_id: str, since: datetime) -> List[OrderItem]:
        """Seller's items on paid orders created at or after ``since``, with products."""

    @abstractmethod
    async def count_paid_items_since(self, seller_id: str, since: datetime) -> int:
        """Number of seller's items on paid orders created at or after ``since``."""

    @abstractmethod
    async def count_active_disputes_since(self, seller_id: str, since: datetime) -> int:
        """Disputes not rejected, on seller's items created at or after ``since``."""

    @abstractmethod
    async def recent_visible_reviews(self, seller_id: str, limit: int) -> List[Review]:
        """Visible reviews of the seller, newest first."""


class SqlAlchemySellerRepository(SellerAnalyticsRepository):
    """Repository backed by an async SQLAlchemy session"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def orders_with_seller_items(
        self,
        seller_id: str,
        *,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[Order]:
        query = (
            select(Order)
            .where(Order.items.any(OrderItem.seller_id == seller_id))
            .options(
                selectinload(Order.items)
                .selectinload(OrderItem.product)
                .selectinload(Product.inventory),
                selectinload(Order.buyer),
            )
            .order_by(Order.created_at.desc() if newest_first else Order.created_at.asc())
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        orders = list(result.scalars().all())
        logger.debug("Loaded seller orders", seller_id=seller_id, orders=len(orders))
        return orders

    async def orders_with_buyer_history(self, seller_id: str) -> List[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.items.any(OrderItem.seller_id == seller_id))
            .options(
                selectinload(Order.items),
                selectinload(Order.buyer)
                .selectinload(User.orders)
                .selectinload(Order.items),
            )
            .order_by(Order.created_at.asc())
        )
        orders = list(result.scalars().all())
        logger.debug("Loaded seller orders with buyer history", seller_id=seller_id, orders=len(orders))
        return orders

    async def products(self, seller_id: str) -> List[Product]:
        result = await self.session.execute(
            select(Product)
            .where(Product.seller_id == seller_id)
            .options(selectinload(Product.inventory))
            .order_by(Product.created_at.asc())
        )
        return list(result.scalars().all())

    async def products_with_sales(self, seller_id: str, since: datetime) -> List[Product]:
        # Windows differ between calls sharing a session, so reload collections
        result = await self.session.execute(
            select(Product)
            .where(Product.seller_id == seller_id)
            .options(
                selectinload(Product.inventory),
                selectinload(Product.order_items.and_(OrderItem.created_at >= since)),
            )
            .order_by(Product.created_at.asc())
            .execution_options(populate_existing=True)
        )
        products = list(result.scalars().all())
        logger.debug(
            "Loaded seller products with sales",
            seller_id=seller_id,
            products=len(products),
            since=since.isoformat(),
        )
        return products

    async def top_selling_products(self, seller_id: str, limit: int) -> List[Tuple[Product, int]]:
        total_sold = func.count(OrderItem.id).label("total_sold")
        result = await self.session.execute(
            select(Product, total_sold)
            .outerjoin(OrderItem, OrderItem.product_id == Product.id)
            .where(Product.seller_id == seller_id)
            .group_by(Product.id)
            .order_by(total_sold.desc())
            .limit(limit)
        )
        return [(row[0], int(row[1] or 0)) for row in result.all()]

    async def get_seller(self, seller_id: str) -> Optional[User]:
        return await self.session.get(User, seller_id)

    async def paid_items_since(self, seller_id: str, since: datetime) -> List[OrderItem]:
        result = await self.session.execute(
            select(OrderItem)
            .join(OrderItem.order)
            .where(
                OrderItem.seller_id == seller_id,
                OrderItem.created_at >= since,
                Order.status == OrderStatus.PAID,
            )
            .options(selectinload(OrderItem.product))
        )
        return list(result.scalars().all())

    async def count_paid_items_since(self, seller_id: str, since: datetime) -> int:
        result = await self.session.execute(
            select(func.count(OrderItem.id))
            .join(OrderItem.order)
            .where(
                OrderItem.seller_id == seller_id,
                OrderItem.created_at >= since,
                Order.status == OrderStatus.PAID,
            )
        )
        return result.scalar() or 0

    async def count_active_disputes_since(self, seller_id: str, since: datetime) -> int:
        result = await self.session.execute(
            select(func.count(Dispute.id))
            .join(Dispute.order_item)
            .where(
                OrderItem.seller_id == seller_id,
                OrderItem.created_at >= since,
                Dispute.status != DisputeStatus.REJECTED,
            )
        )
        return result.scalar() or 0

    async def recent_visible_reviews(self, seller_id: str, limit: int) -> List[Review]:
        result = await self.session.execute(
            select(Review)
            .where(Review.seller_id == seller_id, Review.is_visible.is_(True))
            .order_by(Review.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
