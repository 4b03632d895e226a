from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional, List

from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from services.database import Base
from models.customer import Customer
from models.product import Product, CURRENCY_PATTERN
from models.hateoas import HATEOASLink

# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------
class OrderStatus(str, PyEnum):
    """Lifecycle status of an order"""
    PENDING = "pending"         # Open; items may still change
    PAID = "paid"               # Payment captured
    SHIPPED = "shipped"         # Handed to the carrier
    DELIVERED = "delivered"     # Received by the customer (terminal)
    CANCELLED = "cancelled"     # Cancelled before delivery (terminal)


# -----------------------------------------------------------------------------
# SQLAlchemy Models
# -----------------------------------------------------------------------------
class Order(Base):
    __tablename__ = "orders"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    customer: Mapped[Customer] = relationship(back_populates="orders", lazy="selectin")
    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.created_at",
    )

    @property
    def total_cents(self) -> int:
        return sum(item.line_total_cents for item in self.items)

    @property
    def item_count(self) -> int:
        return len(self.items)


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("products.id"),
        nullable=False,
        index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # Captured from the product when the item is added
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    order: Mapped[Order] = relationship(back_populates="items")
    product: Mapped[Product] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_order_items_order_product"),
    )

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


# -----------------------------------------------------------------------------
# Pydantic Models
# -----------------------------------------------------------------------------
class OrderItemCreate(BaseModel):
    """Add a product to an order"""
    product_id: UUID = Field(
        ...,
        description="Product to add"
    )
    quantity: int = Field(
        1,
        ge=1,
        description="Number of units"
    )


class OrderItemUpdate(BaseModel):
    """Change the quantity of an order item"""
    quantity: int = Field(
        ...,
        ge=1,
        description="New number of units"
    )


class OrderItemRead(BaseModel):
    """Read information about an order item"""
    id: UUID
    order_id: UUID
    product_id: UUID
    quantity: int
    unit_price_cents: int = Field(
        ...,
        description="Unit price captured when the item was added"
    )
    line_total_cents: int = Field(
        ...,
        description="quantity * unit_price_cents"
    )
    created_at: datetime
    updated_at: datetime
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links."
    )

    model_config = ConfigDict(from_attributes=True)


class OrderCreate(BaseModel):
    customer_id: UUID = Field(
        ...,
        description="ID of the customer placing the order"
    )
    currency: Optional[str] = Field(
        None,
        pattern=CURRENCY_PATTERN,
        description="ISO-4217 currency code; defaults to the service currency"
    )
    notes: Optional[str] = Field(
        None,
        description="Free-form notes"
    )
    items: List[OrderItemCreate] = Field(
        default_factory=list,
        description="Initial items"
    )


class OrderUpdate(BaseModel):
    """Partial update of an order; ID is taken from path"""
    status: Optional[OrderStatus] = Field(
        None,
        description="Requested status; must be a legal transition"
    )
    notes: Optional[str] = Field(
        None,
        description="Updated notes"
    )

    @field_validator('status')
    @classmethod
    def reject_null_status(cls, v: Optional[OrderStatus]) -> OrderStatus:
        # Omit status to leave it unchanged; an order always has one
        if v is None:
            raise ValueError("Status cannot be null")
        return v


class OrderRead(BaseModel):
    """Read information about an order"""
    id: UUID
    customer_id: UUID
    status: OrderStatus
    currency: str
    notes: Optional[str] = None
    total_cents: int = Field(
        ...,
        description="Sum of all item line totals"
    )
    item_count: int
    created_at: datetime
    updated_at: datetime
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links."
    )

    model_config = ConfigDict(from_attributes=True)


class OrderPaginated(BaseModel):
    data: List[OrderRead]
    page: int
    size: int
    total: int
    total_pages: int
    has_next: bool
    links: List[HATEOASLink] = []


class OrderItemList(BaseModel):
    data: List[OrderItemRead]
    links: List[HATEOASLink] = []
