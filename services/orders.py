"""
Order lifecycle rules.

Routers load and persist; the functions here only decide whether a change is
allowed and apply it to the ORM objects. Rule violations raise
``OrderStateError`` (translated to 409 by the routers) or ``OrderInputError``
(translated to 400).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.order import Order, OrderItem, OrderStatus
from models.product import Product

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class OrderStateError(Exception):
    """The order is in a state that does not allow the requested change."""


class OrderInputError(Exception):
    """The requested change is invalid regardless of the order's state."""


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------
async def load_order(db: AsyncSession, order_id: UUID) -> Optional[Order]:
    """Load an order with its customer and items (and their products) fresh from the DB."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def find_item(order: Order, item_id: UUID) -> Optional[OrderItem]:
    for item in order.items:
        if item.id == item_id:
            return item
    return None


# -----------------------------------------------------------------------------
# Status transitions
# -----------------------------------------------------------------------------
def can_transition(order: Order, target: OrderStatus) -> bool:
    if target not in ALLOWED_TRANSITIONS[order.status]:
        return False
    if order.status == OrderStatus.PENDING and target == OrderStatus.PAID:
        return len(order.items) > 0
    return True


def available_transitions(order: Order) -> list[OrderStatus]:
    """Statuses the order may move to right now, in lifecycle order."""
    return [status for status in OrderStatus if can_transition(order, status)]


def transition_order(order: Order, target: OrderStatus) -> bool:
    """
    Move the order to `target`.

    Returns False when the order already has that status (no-op), True when
    the status changed. Raises OrderStateError for illegal transitions.
    """
    if order.status == target:
        return False

    if target not in ALLOWED_TRANSITIONS[order.status]:
        logger.warning(
            "Rejected transition %s -> %s for order %s",
            order.status.value, target.value, order.id,
        )
        raise OrderStateError(
            f"Cannot change order status from '{order.status.value}' to '{target.value}'"
        )

    if order.status == OrderStatus.PENDING and target == OrderStatus.PAID and not order.items:
        raise OrderStateError("Cannot pay for an order without items")

    logger.info("Order %s: %s -> %s", order.id, order.status.value, target.value)
    order.status = target
    return True


# -----------------------------------------------------------------------------
# Items
# -----------------------------------------------------------------------------
def ensure_editable(order: Order) -> None:
    if order.status != OrderStatus.PENDING:
        raise OrderStateError(
            f"Items can only be changed while the order is pending (status is '{order.status.value}')"
        )


def touch(order: Order) -> None:
    # Item edits do not change any order column, so bump updated_at by hand
    order.updated_at = datetime.now(timezone.utc)


def add_item(order: Order, product: Product, quantity: int) -> OrderItem:
    """
    Add `quantity` units of `product` to the order.

    A product already on the order has its quantity increased; otherwise a new
    item is created with the product's current unit price.
    """
    ensure_editable(order)

    if not product.is_active:
        raise OrderInputError(f"Product '{product.sku}' is not active")
    if product.currency != order.currency:
        raise OrderInputError(
            f"Product currency '{product.currency}' does not match order currency '{order.currency}'"
        )

    for item in order.items:
        if item.product_id == product.id:
            item.quantity += quantity
            touch(order)
            return item

    item = OrderItem(
        product_id=product.id,
        product=product,
        quantity=quantity,
        unit_price_cents=product.unit_price_cents,
    )
    order.items.append(item)
    touch(order)
    return item


def change_item_quantity(order: Order, item: OrderItem, quantity: int) -> None:
    ensure_editable(order)
    item.quantity = quantity
    touch(order)


def remove_item(order: Order, item: OrderItem) -> None:
    ensure_editable(order)
    order.items.remove(item)
    touch(order)
