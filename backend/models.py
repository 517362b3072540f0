from sqlalchemy import (
    Boolean,
    String,
    Text,
    DateTime,
    CheckConstraint,
    UniqueConstraint,
    Index,
    Numeric,
    Integer,
    Uuid,
    text,
    ForeignKey,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship, declarative_base
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, List
import uuid

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Fixed-point amount rounded to cents"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class UserRole(str, Enum):
    CUSTOMER = "customer"
    RETAILER = "retailer"
    WHOLESALER = "wholesaler"


class OrderType(str, Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"


class OrderStatus(str, Enum):
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class InventoryKind(str, Enum):
    RETAILER = "retailer"
    WHOLESALER = "wholesaler"


def _enum_column(enum_cls, name: str):
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class User(Base):
    """
    Marketplace participant. Accounts are issued by the auth service; this core
    only reads the id and role.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Immutable once assigned
    role: Mapped[UserRole] = mapped_column(
        _enum_column(UserRole, "user_role"),
        default=UserRole.CUSTOMER,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    products: Mapped[List["Product"]] = relationship("Product", back_populates="seller")


class Product(Base):
    """
    Products listed by retailers (sold to customers) or wholesalers (sold to retailers)
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="product_price_non_negative_check"),
        Index("ix_products_seller_id", "seller_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    seller: Mapped["User"] = relationship("User", back_populates="products")
    retailer_inventory: Mapped[List["RetailerInventory"]] = relationship(
        "RetailerInventory",
        back_populates="product",
        cascade="all, delete-orphan"
    )
    wholesaler_inventory: Mapped[List["WholesalerInventory"]] = relationship(
        "WholesalerInventory",
        back_populates="product",
        cascade="all, delete-orphan"
    )


class RetailerInventory(Base):
    """
    Stock a retailer holds for resale to customers
    """
    __tablename__ = "retailer_inventory"
    __table_args__ = (
        UniqueConstraint("retailer_id", "product_id", name="unique_retailer_product"),
        CheckConstraint("quantity_in_stock >= 0", name="retailer_stock_non_negative_check"),
        CheckConstraint("reorder_level >= 0", name="retailer_reorder_level_non_negative_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    retailer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )

    quantity_in_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reorder_level: Mapped[int] = mapped_column(
        Integer,
        default=10,
        server_default=text("10"),
        nullable=False
    )
    last_restocked: Mapped[Optional[datetime]] = mapped_column(DateTime(True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    product: Mapped["Product"] = relationship("Product", back_populates="retailer_inventory")

    @property
    def needs_restock(self) -> bool:
        return self.quantity_in_stock <= self.reorder_level


class WholesalerInventory(Base):
    """
    Bulk stock a wholesaler sells to retailers, gated by a minimum order quantity
    """
    __tablename__ = "wholesaler_inventory"
    __table_args__ = (
        UniqueConstraint("wholesaler_id", "product_id", name="unique_wholesaler_product"),
        CheckConstraint("quantity_in_stock >= 0", name="wholesaler_stock_non_negative_check"),
        CheckConstraint("minimum_order_quantity > 0", name="wholesaler_moq_positive_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wholesaler_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
    )

    quantity_in_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minimum_order_quantity: Mapped[int] = mapped_column(
        Integer,
        default=25,
        server_default=text("25"),
        nullable=False
    )
    last_restocked: Mapped[Optional[datetime]] = mapped_column(DateTime(True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    product: Mapped["Product"] = relationship("Product", back_populates="wholesaler_inventory")


class Order(Base):
    """
    One line of a purchase. Only `status` changes after creation.
    """
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive_check"),
        CheckConstraint("price >= 0", name="order_price_non_negative_check"),
        CheckConstraint("buyer_id <> seller_id", name="no_self_dealing_check"),
        Index("ix_orders_buyer_type", "buyer_id", "order_type"),
        Index("ix_orders_seller_type", "seller_id", "order_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Order participants
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    # Product details, price is the unit price at order time
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    order_type: Mapped[OrderType] = mapped_column(_enum_column(OrderType, "order_type"), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        _enum_column(OrderStatus, "order_status"),
        default=OrderStatus.PENDING,
        nullable=False
    )
    order_date: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    # Delivery details
    offline_order: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    delivery_details: Mapped[Optional[str]] = mapped_column(Text)
    expected_delivery_date: Mapped[Optional[datetime]] = mapped_column(DateTime(True))

    buyer: Mapped["User"] = relationship("User", foreign_keys=[buyer_id])
    seller: Mapped["User"] = relationship("User", foreign_keys=[seller_id])
    product: Mapped["Product"] = relationship("Product")
