"""
Test Suite Configuration
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from itertools import count
from typing import AsyncGenerator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from sokonova_analytics.analytics import SellerAnalyticsService
from sokonova_analytics.config import AnalyticsSettings, Settings
from sokonova_analytics.database.models import (
    Base,
    Dispute,
    DisputeStatus,
    Inventory,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Review,
    Role,
    User,
)
from sokonova_analytics.database.repository import SellerAnalyticsRepository

NOW = datetime(2025, 6, 15, 12, 0, 0)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(APP_ENV="testing", DEBUG=True)


@pytest.fixture
def analytics_config() -> AnalyticsSettings:
    """Default business ratios and thresholds"""
    return AnalyticsSettings()


@pytest.fixture
def now() -> datetime:
    """Fixed clock reading"""
    return NOW


# =============================================================================
# MARKETPLACE BUILDER
# =============================================================================

@dataclass
class WindowedProduct:
    """Product view holding only the order items inside a sales window"""
    id: str
    title: str
    created_at: datetime
    stock_quantity: int
    order_items: List[OrderItem] = field(default_factory=list)


class FakeSellerRepository(SellerAnalyticsRepository):
    """In-memory repository over transient ORM objects"""

    def __init__(self, market: "Marketplace"):
        self.market = market

    def _seller_orders(self, seller_id: str) -> List[Order]:
        return [
            o for o in self.market.orders
            if any(item.seller_id == seller_id for item in o.items)
        ]

    async def orders_with_seller_items(self, seller_id, *, newest_first=False, limit=None):
        orders = sorted(self._seller_orders(seller_id), key=lambda o: o.created_at, reverse=newest_first)
        return orders[:limit] if limit is not None else orders

    async def orders_with_buyer_history(self, seller_id):
        return sorted(self._seller_orders(seller_id), key=lambda o: o.created_at)

    async def products(self, seller_id):
        return sorted(
            (p for p in self.market.products if p.seller_id == seller_id),
            key=lambda p: p.created_at,
        )

    async def products_with_sales(self, seller_id, since):
        return [
            WindowedProduct(
                id=p.id,
                title=p.title,
                created_at=p.created_at,
                stock_quantity=p.stock_quantity,
                order_items=[i for i in p.order_items if i.created_at >= since],
            )
            for p in await self.products(seller_id)
        ]

    async def top_selling_products(self, seller_id, limit) -> List[Tuple[Product, int]]:
        ranked = [(p, len(p.order_items)) for p in await self.products(seller_id)]
        ranked.sort(key=lambda pair: pair[1], reverse=True)
        return ranked[:limit]

    async def get_seller(self, seller_id):
        return self.market.users.get(seller_id)

    async def paid_items_since(self, seller_id, since):
        return [
            item
            for o in self.market.orders if o.status == OrderStatus.PAID
            for item in o.items
            if item.seller_id == seller_id and item.created_at >= since
        ]

    async def count_paid_items_since(self, seller_id, since):
        return len(await self.paid_items_since(seller_id, since))

    async def count_active_disputes_since(self, seller_id, since):
        return sum(
            1 for d in self.market.disputes
            if d.order_item.seller_id == seller_id
            and d.order_item.created_at >= since
            and d.status != DisputeStatus.REJECTED
        )

    async def recent_visible_reviews(self, seller_id, limit):
        reviews = sorted(
            (r for r in self.market.reviews if r.seller_id == seller_id and r.is_visible),
            key=lambda r: r.created_at,
            reverse=True,
        )
        return reviews[:limit]


class Marketplace:
    """
    Builds linked, unsaved ORM objects.

    Column defaults only apply on flush, so every field the analytics read
    is set here explicitly. The same objects can be added to a session.
    """

    def __init__(self, now: datetime):
        self.now = now
        self._ids = count(1)
        self.users: Dict[str, User] = {}
        self.products: List[Product] = []
        self.orders: List[Order] = []
        self.reviews: List[Review] = []
        self.disputes: List[Dispute] = []

    def _id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def seller(self, shop_name: str = "Nova Crafts", rating_avg: Optional[float] = 4.6, rating_count: int = 12) -> User:
        user = User(
            id=self._id("seller"),
            email=f"{shop_name.lower().replace(' ', '.')}@example.com",
            name=shop_name,
            role=Role.SELLER,
            shop_name=shop_name,
            seller_handle=shop_name.lower().replace(" ", "-"),
            rating_avg=rating_avg,
            rating_count=rating_count,
            created_at=self.now - timedelta(days=400),
        )
        self.users[user.id] = user
        return user

    def buyer(self, name: str = "Amina", created_at: Optional[datetime] = None) -> User:
        user_id = self._id("buyer")
        user = User(
            id=user_id,
            email=f"{user_id}@example.com",
            name=name,
            role=Role.BUYER,
            rating_count=0,
            created_at=created_at or self.now - timedelta(days=120),
        )
        self.users[user.id] = user
        return user

    def product(
        self,
        seller: User,
        title: str = "Woven Basket",
        price: str = "100.00",
        age_days: float = 10,
        stock: Optional[int] = 10,
    ) -> Product:
        product = Product(
            id=self._id("prod"),
            title=title,
            price=Decimal(price),
            currency="USD",
            seller_id=seller.id,
            seller=seller,
            created_at=self.now - timedelta(days=age_days),
        )
        if stock is not None:
            product.inventory = Inventory(
                id=self._id("inv"),
                product_id=product.id,
                quantity=stock,
                updated_at=self.now,
            )
        self.products.append(product)
        return product

    def order(
        self,
        buyer: User,
        lines: List[Tuple[Product, int]],
        days_ago: float = 1,
        status: OrderStatus = OrderStatus.PAID,
        price: Optional[str] = None,
    ) -> Order:
        """``lines`` are (product, qty); unit price defaults to list price."""
        created_at = self.now - timedelta(days=days_ago)
        order = Order(
            id=self._id("order"),
            buyer_id=buyer.id,
            buyer=buyer,
            status=status,
            currency="USD",
            created_at=created_at,
        )
        total = Decimal("0")
        for product, qty in lines:
            unit_price = Decimal(price) if price is not None else product.price
            line = unit_price * qty
            order.items.append(OrderItem(
                id=self._id("item"),
                order_id=order.id,
                product_id=product.id,
                product=product,
                seller_id=product.seller_id,
                qty=qty,
                price=unit_price,
                net_amount=line * Decimal("0.9"),
                currency="USD",
                created_at=created_at,
            ))
            total += line
        order.total = total
        self.orders.append(order)
        return order

    def review(self, seller: User, rating: int, days_ago: float = 1, is_visible: bool = True) -> Review:
        review = Review(
            id=self._id("review"),
            seller_id=seller.id,
            rating=rating,
            is_visible=is_visible,
            created_at=self.now - timedelta(days=days_ago),
        )
        self.reviews.append(review)
        return review

    def dispute(self, item: OrderItem, status: DisputeStatus = DisputeStatus.OPEN) -> Dispute:
        dispute = Dispute(
            id=self._id("dispute"),
            order_item_id=item.id,
            order_item=item,
            status=status,
            reason="Item not as described",
            created_at=item.created_at + timedelta(hours=6),
        )
        self.disputes.append(dispute)
        return dispute

    def repository(self) -> FakeSellerRepository:
        return FakeSellerRepository(self)

    def all_objects(self) -> list:
        return [*self.users.values(), *self.products, *self.orders, *self.reviews, *self.disputes]


@pytest.fixture
def marketplace(now) -> Marketplace:
    """Empty marketplace on the fixed clock"""
    return Marketplace(now)


@pytest.fixture
def make_service(analytics_config, now):
    """Service over a marketplace's fake repository on the fixed clock"""
    def _make(market: Marketplace, config: Optional[AnalyticsSettings] = None) -> SellerAnalyticsService:
        return SellerAnalyticsService(
            market.repository(),
            config=config or analytics_config,
            clock=lambda: now,
        )
    return _make


# =============================================================================
# DATABASE
# =============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine shared across connections"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()
