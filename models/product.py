from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, List

from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import String, Boolean, DateTime, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from services.database import Base
from models.hateoas import HATEOASLink

CURRENCY_PATTERN = r'^[A-Z]{3}$'

# -----------------------------------------------------------------------------
# SQLAlchemy Model
# -----------------------------------------------------------------------------
class Product(Base):
    __tablename__ = "products"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    sku: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Prices are stored in minor units (cents) to avoid float rounding
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

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

# -----------------------------------------------------------------------------
# Pydantic Models
# -----------------------------------------------------------------------------
class ProductBase(BaseModel):
    """Base model definition for a product in the catalog."""
    sku: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Stock keeping unit, unique across the catalog"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name of the product"
    )
    description: Optional[str] = Field(
        None,
        description="Long-form product description"
    )
    unit_price_cents: int = Field(
        ...,
        ge=0,
        description="Unit price in minor currency units"
    )

    model_config = ConfigDict(from_attributes=True)


class ProductCreate(ProductBase):
    currency: Optional[str] = Field(
        None,
        pattern=CURRENCY_PATTERN,
        description="ISO-4217 currency code; defaults to the service currency"
    )
    is_active: bool = Field(
        True,
        description="Whether this product can be ordered"
    )


class ProductRead(ProductBase):
    """Read information about a product"""
    id: UUID = Field(
        ...,
        description="Internal unique identifier for this product"
    )
    currency: str = Field(
        ...,
        description="ISO-4217 currency code"
    )
    is_active: bool = Field(
        ...,
        description="Whether this product can be ordered"
    )
    created_at: datetime = Field(
        ...,
        description="Timestamp when this product was created"
    )
    updated_at: datetime = Field(
        ...,
        description="Timestamp when this product was last updated"
    )
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links."
    )

    model_config = ConfigDict(from_attributes=True)


class ProductPaginated(BaseModel):
    data: List[ProductRead]
    page: int
    size: int
    total: int
    total_pages: int
    has_next: bool
    links: List[HATEOASLink] = []


class ProductUpdate(BaseModel):
    """Partial update of a product; ID is taken from path"""
    sku: Optional[str] = Field(None, min_length=1, max_length=64)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    unit_price_cents: Optional[int] = Field(None, ge=0)
    currency: Optional[str] = Field(None, pattern=CURRENCY_PATTERN)
    is_active: Optional[bool] = None

    @field_validator('sku', 'name')
    @classmethod
    def reject_empty_strings(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v.strip() == "":
            raise ValueError("Field cannot be empty string")
        return v

    @field_validator('sku', 'name', 'unit_price_cents', 'currency', 'is_active')
    @classmethod
    def reject_null(cls, v):
        # Omit a field to leave it unchanged; these columns are NOT NULL
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    model_config = ConfigDict(from_attributes=True)
