"""
Development seed data

Creates the marketplace tables and fills them with fake sellers, buyers,
listings, orders, disputes and reviews so the analytics endpoints have
something to read.

    python -m sokonova_analytics.ingestion.seed_db
"""

import asyncio
import random
from datetime import timedelta
from decimal import Decimal
from typing import List

from faker import Faker

from sokonova_analytics.analytics.metrics import utcnow
from sokonova_analytics.config import get_settings
from sokonova_analytics.config.logging import configure_logging, get_logger
from sokonova_analytics.database.connection import close_database, get_db, get_engine, init_database
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

logger = get_logger(__name__)
settings = get_settings()

fake = Faker()

# Reproducible data
random.seed(42)
Faker.seed(42)

CATEGORIES = ["fashion", "electronics", "home", "beauty", "crafts", "food"]

# Status weights, mostly completed orders
ORDER_STATUSES = [
    (OrderStatus.PAID, 0.25),
    (OrderStatus.SHIPPED, 0.2),
    (OrderStatus.DELIVERED, 0.4),
    (OrderStatus.PENDING, 0.08),
    (OrderStatus.CANCELLED, 0.05),
    (OrderStatus.REFUNDED, 0.02),
]


def _pick_status() -> OrderStatus:
    statuses, weights = zip(*ORDER_STATUSES)
    return random.choices(statuses, weights=weights)[0]


def generate_users(num_sellers: int, num_buyers: int) -> List[User]:
    """Build seller and buyer accounts spread over the last year."""
    now = utcnow()
    users = []

    for _ in range(num_sellers):
        shop = fake.unique.company()
        users.append(User(
            email=fake.unique.email(),
            name=fake.name(),
            role=Role.SELLER,
            shop_name=shop,
            seller_handle=fake.unique.user_name(),
            rating_avg=round(random.uniform(3.0, 5.0), 2),
            rating_count=random.randint(0, 250),
            created_at=now - timedelta(days=random.randint(200, 720)),
        ))

    for _ in range(num_buyers):
        users.append(User(
            email=fake.unique.email(),
            name=fake.name(),
            role=Role.BUYER,
            created_at=now - timedelta(days=random.randint(0, 365)),
        ))

    return users


def generate_products(sellers: List[User], per_seller: int) -> List[Product]:
    """Listings with a mix of fresh and long-lived stock."""
    now = utcnow()
    products = []

    for seller in sellers:
        for _ in range(per_seller):
            product = Product(
                title=f"{fake.word().title()} {fake.word()}",
                price=Decimal(str(round(random.uniform(5, 250), 2))),
                category=random.choice(CATEGORIES),
                seller=seller,
                created_at=now - timedelta(days=random.randint(1, 300)),
            )
            # Some listings never get an inventory row
            if random.random() > 0.1:
                product.inventory = Inventory(
                    quantity=random.choice([0, 1, 3, 5, 12, 40, 120]),
                    updated_at=now,
                )
            products.append(product)

    return products


def generate_orders(buyers: List[User], products: List[Product], num_orders: int) -> List[Order]:
    """Orders of one to four items, possibly from several sellers."""
    now = utcnow()
    orders = []

    for _ in range(num_orders):
        created_at = now - timedelta(
            days=random.randint(0, 180), minutes=random.randint(0, 1440)
        )
        order = Order(
            buyer=random.choice(buyers),
            status=_pick_status(),
            created_at=created_at,
        )

        total = Decimal("0")
        for product in random.sample(products, k=random.randint(1, 4)):
            qty = random.randint(1, 3)
            line = product.price * qty
            fee = (line * Decimal(str(settings.analytics.platform_fee_rate))).quantize(Decimal("0.01"))
            order.items.append(OrderItem(
                product=product,
                seller_id=product.seller.id,
                qty=qty,
                price=product.price,
                net_amount=line - fee,
                created_at=created_at,
            ))
            total += line

        order.total = total
        orders.append(order)

    return orders


def generate_disputes(orders: List[Order], rate: float = 0.04) -> List[Dispute]:
    disputes = []
    for order in orders:
        for item in order.items:
            if random.random() < rate:
                disputes.append(Dispute(
                    order_item=item,
                    status=random.choice(list(DisputeStatus)),
                    reason=fake.sentence(nb_words=8),
                    created_at=item.created_at + timedelta(days=random.randint(1, 10)),
                ))
    return disputes


def generate_reviews(orders: List[Order], rate: float = 0.3) -> List[Review]:
    now = utcnow()
    reviews = []
    for order in orders:
        for item in order.items:
            if random.random() < rate:
                reviews.append(Review(
                    seller_id=item.seller_id,
                    product_id=item.product.id,
                    rating=random.choices([1, 2, 3, 4, 5], weights=[1, 1, 2, 4, 6])[0],
                    is_visible=random.random() > 0.05,
                    created_at=min(item.created_at + timedelta(days=random.randint(2, 20)), now),
                ))
    return reviews


async def create_tables() -> None:
    """Create the marketplace tables if they do not exist."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created")


async def seed(
    num_sellers: int = 5,
    num_buyers: int = 200,
    products_per_seller: int = 20,
    num_orders: int = 1500,
) -> None:
    users = generate_users(num_sellers, num_buyers)
    sellers = [u for u in users if u.role == Role.SELLER]
    buyers = [u for u in users if u.role == Role.BUYER]

    # Ids are needed for the denormalized seller id on order items
    for user in users:
        user.id = fake.uuid4().replace("-", "")

    products = generate_products(sellers, products_per_seller)
    for product in products:
        product.id = fake.uuid4().replace("-", "")

    orders = generate_orders(buyers, products, num_orders)
    disputes = generate_disputes(orders)
    reviews = generate_reviews(orders)

    async with get_db() as db:
        db.add_all(users)
        db.add_all(products)
        db.add_all(orders)
        db.add_all(disputes)
        db.add_all(reviews)
        await db.commit()

    logger.info(
        "Seeded marketplace data",
        sellers=len(sellers),
        buyers=len(buyers),
        products=len(products),
        orders=len(orders),
        disputes=len(disputes),
        reviews=len(reviews),
    )
    for seller in sellers:
        logger.info("Seller available", seller_id=seller.id, shop_name=seller.shop_name)


async def main():
    configure_logging()
    logger.info("Starting database seeding...")
    await init_database()

    try:
        await create_tables()
        await seed()
        logger.info("Database seeding completed successfully!")
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise
    finally:
        await close_database()


def run():
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
