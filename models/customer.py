from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, List, TYPE_CHECKING

from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from services.database import Base
from models.hateoas import HATEOASLink

if TYPE_CHECKING:
    from models.order import Order

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

# -----------------------------------------------------------------------------
# SQLAlchemy Model
# -----------------------------------------------------------------------------
class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    # unique identifier
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

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

    orders: Mapped[List["Order"]] = relationship(
        back_populates="customer",
        cascade="all, delete-orphan",
    )


# -----------------------------------------------------------------------------
# Pydantic Schemas
# -----------------------------------------------------------------------------
class CustomerBase(BaseModel):
    """Base customer fields shared across schemas"""
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Customer's full name"
    )
    email: str = Field(
        ...,
        max_length=255,
        pattern=EMAIL_PATTERN,
        description="Customer's email address (must be unique and valid)",
        examples=["email@domain.com"]
    )


class CustomerCreate(CustomerBase):
    """Create a customer"""
    pass


class CustomerUpdate(BaseModel):
    """Partial update of a customer; ID is taken from path"""
    name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Updated name"
    )
    email: Optional[str] = Field(
        None,
        max_length=255,
        pattern=EMAIL_PATTERN,
        description="Updated email address (must be unique and valid)"
    )

    @field_validator('name', 'email')
    @classmethod
    def reject_empty_strings(cls, v: Optional[str]) -> Optional[str]:
        """Ensure if provided, fields are neither null nor empty strings"""
        if v is None:
            raise ValueError("Field cannot be null")
        if v.strip() == "":
            raise ValueError("Field cannot be empty string")
        return v


class CustomerRead(CustomerBase):
    """Customer data returned to clients"""
    id: UUID = Field(
        ...,
        description="Internal unique identifier for this customer"
    )
    created_at: datetime = Field(
        ...,
        description="Timestamp when this customer was created"
    )
    updated_at: datetime = Field(
        ...,
        description="Timestamp when this customer was last updated"
    )
    links: Optional[List[HATEOASLink]] = Field(
        None,
        description="HATEOAS links for available actions"
    )

    model_config = ConfigDict(from_attributes=True)


class CustomerPaginated(BaseModel):
    data: List[CustomerRead]
    page: int
    size: int
    total: int
    total_pages: int
    has_next: bool
    links: List[HATEOASLink] = []
