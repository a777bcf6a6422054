"""
Database Models - Marketplace Schema

This module maps the marketplace tables the seller analytics read from.
They are written by other SOKONOVA subsystems (catalog, checkout,
fulfillment, disputes, reviews); analytics never mutates them.

Core Tables:
- Users: buyers, sellers and admins
- Products: seller listings with list price
- Inventory: on-hand quantity per product (0 or 1 row)
- Orders / OrderItems: purchases, items carry a denormalized seller id

Supporting Tables:
- Disputes: buyer disputes against order items
- Reviews: buyer reviews of sellers
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    """Opaque string identifier"""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Role(str, Enum):
    """Marketplace user role"""
    BUYER = "BUYER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "PENDING"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class DisputeStatus(str, Enum):
    """Dispute status enumeration"""
    OPEN = "OPEN"
    SELLER_RESPONDED = "SELLER_RESPONDED"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"


# =============================================================================
# CORE TABLES
# =============================================================================

class User(Base):
    """
    Marketplace User

    Buyers are grouped into cohorts by ``created_at``; sellers carry their
    shop identity and cached rating.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(200))
    role: Mapped[Role] = mapped_column(SQLEnum(Role), default=Role.BUYER)

    # Seller profile
    shop_name: Mapped[Optional[str]] = mapped_column(String(200))
    seller_handle: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    rating_avg: Mapped[Optional[float]] = mapped_column(Float)
    rating_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    # Relationships
    orders: Mapped[List["Order"]] = relationship(back_populates="buyer")
    products: Mapped[List["Product"]] = relationship(back_populates="seller")

    __table_args__ = (
        Index("ix_users_role", "role"),
    )


class Product(Base):
    """
    Product Listing

    ``price`` is the current list price, independent of what buyers paid.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    category: Mapped[Optional[str]] = mapped_column(String(50))
    seller_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    # Relationships
    seller: Mapped["User"] = relationship(back_populates="products")
    inventory: Mapped[Optional["Inventory"]] = relationship(
        back_populates="product", uselist=False
    )
    order_items: Mapped[List["OrderItem"]] = relationship(back_populates="product")

    __table_args__ = (
        Index("ix_products_seller", "seller_id"),
        Index("ix_products_created", "created_at"),
    )

    @property
    def stock_quantity(self) -> int:
        """On-hand units, zero when there is no inventory row"""
        return self.inventory.quantity if self.inventory is not None else 0


class Inventory(Base):
    """On-hand stock for a product"""
    __tablename__ = "inventory"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id"), unique=True, nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    product: Mapped["Product"] = relationship(back_populates="inventory")


class Order(Base):
    """
    Order

    An order may contain items from several sellers.
    """
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    buyer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus), default=OrderStatus.PENDING
    )
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    # Relationships
    buyer: Mapped["User"] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(back_populates="order")

    __table_args__ = (
        Index("ix_orders_buyer", "buyer_id"),
        Index("ix_orders_created", "created_at"),
    )


class OrderItem(Base):
    """
    Order Line Item

    ``price`` is the unit price at purchase time and ``seller_id`` is the
    owning seller, copied from the product when the order is placed.
    """
    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id"), nullable=False
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id"), nullable=False
    )
    seller_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    # Relationships
    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship(back_populates="order_items")
    disputes: Mapped[List["Dispute"]] = relationship(back_populates="order_item")

    __table_args__ = (
        Index("ix_order_items_seller", "seller_id"),
        Index("ix_order_items_product", "product_id"),
        Index("ix_order_items_created", "created_at"),
    )


# =============================================================================
# SUPPORTING TABLES
# =============================================================================

class Dispute(Base):
    """Buyer dispute raised against a single order item"""
    __tablename__ = "disputes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("order_items.id"), nullable=False
    )
    status: Mapped[DisputeStatus] = mapped_column(
        SQLEnum(DisputeStatus), default=DisputeStatus.OPEN
    )
    reason: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    order_item: Mapped["OrderItem"] = relationship(back_populates="disputes")


class Review(Base):
    """Buyer review of a seller"""
    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    seller_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    product_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("products.id")
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_reviews_seller_created", "seller_id", "created_at"),
    )
