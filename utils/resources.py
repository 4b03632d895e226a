"""
Format-neutral views of the API's resources.

A ``ResourceView`` holds everything the HAL and JSON:API renderers need: the
JSON:API type, the attributes, the HATEOAS links and the relationships (with
the related resources attached when they are loaded). The renderers decide
which related resources end up in ``_embedded`` or ``included``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, status

from models.customer import Customer, CustomerRead
from models.hateoas import HATEOASLink
from models.order import Order, OrderItem, OrderItemRead, OrderRead
from models.product import Product, ProductRead
from utils.hateoas import (
    build_customer_links,
    build_order_item_links,
    build_order_links,
    build_product_links,
)

CUSTOMERS = "customers"
PRODUCTS = "products"
ORDERS = "orders"
ORDER_ITEMS = "order-items"

# Relationship paths a client may ask to embed (HAL) or include (JSON:API)
INCLUDABLE: Dict[str, frozenset] = {
    CUSTOMERS: frozenset(),
    PRODUCTS: frozenset(),
    ORDERS: frozenset({"items", "customer", "items.product"}),
    ORDER_ITEMS: frozenset({"product", "order"}),
}

# Foreign keys are exposed as relationships, never as attributes
HIDDEN_ATTRIBUTES = {"id", "links", "customer_id", "order_id", "product_id"}


@dataclass
class Relationship:
    type: str
    related_href: str
    many: bool = False
    ids: Optional[List[str]] = None     # None: linkage not loaded
    resources: Optional[List["ResourceView"]] = None

    def linkage(self) -> Any:
        identifiers = [{"type": self.type, "id": i} for i in (self.ids or [])]
        if self.many:
            return identifiers
        return identifiers[0] if identifiers else None


@dataclass
class ResourceView:
    type: str
    id: str
    attributes: Dict[str, Any]
    links: List[HATEOASLink]
    relationships: Dict[str, Relationship] = field(default_factory=dict)

    @property
    def self_href(self) -> str:
        return next(link.href for link in self.links if link.rel == "self")

    def related(self, name: str) -> List["ResourceView"]:
        relationship = self.relationships.get(name)
        if relationship is None or not relationship.resources:
            return []
        return relationship.resources


def parse_include(value: Optional[str], resource_type: str) -> frozenset:
    """Parse a comma-separated include/embed parameter; 400 on unknown paths."""
    if not value:
        return frozenset()
    paths = frozenset(p.strip() for p in value.split(",") if p.strip())
    unknown = sorted(paths - INCLUDABLE[resource_type])
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot include {', '.join(unknown)} for {resource_type}",
        )
    return paths


def _attributes(read_model) -> Dict[str, Any]:
    return read_model.model_dump(mode="json", exclude=HIDDEN_ATTRIBUTES)


# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------
def customer_view(request: Request, customer: Customer) -> ResourceView:
    return ResourceView(
        type=CUSTOMERS,
        id=str(customer.id),
        attributes=_attributes(CustomerRead.model_validate(customer)),
        links=build_customer_links(request, customer),
        relationships={
            "orders": Relationship(
                type=ORDERS,
                related_href=str(request.url_for("list_customer_orders", customer_id=customer.id)),
                many=True,
            ),
        },
    )


def product_view(request: Request, product: Product) -> ResourceView:
    return ResourceView(
        type=PRODUCTS,
        id=str(product.id),
        attributes=_attributes(ProductRead.model_validate(product)),
        links=build_product_links(request, product),
    )


def order_item_view(request: Request, item: OrderItem, order: Optional[Order] = None) -> ResourceView:
    order_rel = Relationship(
        type=ORDERS,
        related_href=str(request.url_for("get_order", order_id=item.order_id)),
        ids=[str(item.order_id)],
    )
    if order is not None:
        order_rel.resources = [order_view(request, order, with_items=False)]

    return ResourceView(
        type=ORDER_ITEMS,
        id=str(item.id),
        attributes=_attributes(OrderItemRead.model_validate(item)),
        links=build_order_item_links(request, item),
        relationships={
            "order": order_rel,
            "product": Relationship(
                type=PRODUCTS,
                related_href=str(request.url_for("get_product", product_id=item.product_id)),
                ids=[str(item.product_id)],
                resources=[product_view(request, item.product)],
            ),
        },
    )


def order_view(request: Request, order: Order, with_items: bool = True) -> ResourceView:
    items_rel = Relationship(
        type=ORDER_ITEMS,
        related_href=str(request.url_for("list_order_items", order_id=order.id)),
        many=True,
        ids=[str(item.id) for item in order.items],
    )
    if with_items:
        items_rel.resources = [order_item_view(request, item) for item in order.items]

    return ResourceView(
        type=ORDERS,
        id=str(order.id),
        attributes=_attributes(OrderRead.model_validate(order)),
        links=build_order_links(request, order),
        relationships={
            "customer": Relationship(
                type=CUSTOMERS,
                related_href=str(request.url_for("get_customer", customer_id=order.customer_id)),
                ids=[str(order.customer_id)],
                resources=[customer_view(request, order.customer)],
            ),
            "items": items_rel,
        },
    )
