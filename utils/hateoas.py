from fastapi import Request
from typing import List

from models.hateoas import HATEOASLink
from models.customer import Customer, CustomerRead
from models.product import Product, ProductRead
from models.order import Order, OrderItem, OrderItemRead, OrderRead, OrderStatus
from services.orders import available_transitions


# Relation name and title advertised for each reachable order status
TRANSITION_LINKS = {
    OrderStatus.PAID: ("pay", "Mark the order as paid"),
    OrderStatus.SHIPPED: ("ship", "Mark the order as shipped"),
    OrderStatus.DELIVERED: ("deliver", "Mark the order as delivered"),
    OrderStatus.CANCELLED: ("cancel", "Cancel the order"),
}


# -----------------------------------------------------------------------------
# Customer HATEOAS
# -----------------------------------------------------------------------------
def build_customer_links(request: Request, customer: Customer) -> List[HATEOASLink]:
    return [
        HATEOASLink(
            rel="self",
            href=str(request.url_for("get_customer", customer_id=customer.id)),
            method="GET",
        ),
        HATEOASLink(
            rel="update",
            href=str(request.url_for("update_customer", customer_id=customer.id)),
            method="PATCH",
        ),
        HATEOASLink(
            rel="delete",
            href=str(request.url_for("delete_customer", customer_id=customer.id)),
            method="DELETE",
        ),
        HATEOASLink(
            rel="collection",
            href=str(request.url_for("list_customers")),
            method="GET",
        ),
        HATEOASLink(
            rel="orders",
            href=str(request.url_for("list_customer_orders", customer_id=customer.id)),
            method="GET",
        ),
    ]

def hateoas_customer(request: Request, customer: Customer):
    links: List[HATEOASLink] = build_customer_links(request, customer)

    customer_read = CustomerRead.model_validate(customer)
    if links:
        customer_read = customer_read.model_copy(update={"links": links})

    return customer_read


# -----------------------------------------------------------------------------
# Product HATEOAS
# -----------------------------------------------------------------------------
def build_product_links(request: Request, product: Product) -> List[HATEOASLink]:
    return [
        HATEOASLink(
            rel="self",
            href=str(request.url_for("get_product", product_id=product.id)),
            method="GET",
        ),
        HATEOASLink(
            rel="update",
            href=str(request.url_for("update_product", product_id=product.id)),
            method="PATCH",
        ),
        HATEOASLink(
            rel="delete",
            href=str(request.url_for("delete_product", product_id=product.id)),
            method="DELETE",
        ),
        HATEOASLink(
            rel="collection",
            href=str(request.url_for("list_products")),
            method="GET",
        ),
    ]

def hateoas_product(request: Request, product: Product):
    links: List[HATEOASLink] = build_product_links(request, product)

    product_read = ProductRead.model_validate(product)
    if links:
        product_read = product_read.model_copy(update={"links": links})

    return product_read


# -----------------------------------------------------------------------------
# Order HATEOAS
# -----------------------------------------------------------------------------
def build_order_links(request: Request, order: Order) -> List[HATEOASLink]:
    order_href = str(request.url_for("get_order", order_id=order.id))
    update_href = str(request.url_for("update_order", order_id=order.id))

    links = [
        HATEOASLink(rel="self", href=order_href, method="GET"),
        HATEOASLink(rel="update", href=update_href, method="PATCH"),
        HATEOASLink(
            rel="delete",
            href=str(request.url_for("delete_order", order_id=order.id)),
            method="DELETE",
        ),
        HATEOASLink(
            rel="collection",
            href=str(request.url_for("list_orders")),
            method="GET",
        ),
        HATEOASLink(
            rel="customer",
            href=str(request.url_for("get_customer", customer_id=order.customer_id)),
            method="GET",
        ),
        HATEOASLink(
            rel="items",
            href=str(request.url_for("list_order_items", order_id=order.id)),
            method="GET",
        ),
    ]

    if order.status == OrderStatus.PENDING:
        links.append(
            HATEOASLink(
                rel="add-item",
                href=str(request.url_for("add_order_item", order_id=order.id)),
                method="POST",
                title="Add a product to the order",
            )
        )

    # State transitions the client may trigger next
    for target in available_transitions(order):
        rel, title = TRANSITION_LINKS[target]
        links.append(HATEOASLink(rel=rel, href=update_href, method="PATCH", title=title))

    return links

def hateoas_order(request: Request, order: Order):
    links: List[HATEOASLink] = build_order_links(request, order)

    order_read = OrderRead.model_validate(order)
    if links:
        order_read = order_read.model_copy(update={"links": links})

    return order_read


# -----------------------------------------------------------------------------
# Order item HATEOAS
# -----------------------------------------------------------------------------
def build_order_item_links(request: Request, item: OrderItem) -> List[HATEOASLink]:
    item_href = str(request.url_for("get_order_item", order_id=item.order_id, item_id=item.id))
    return [
        HATEOASLink(rel="self", href=item_href, method="GET"),
        HATEOASLink(
            rel="update",
            href=str(request.url_for("update_order_item", order_id=item.order_id, item_id=item.id)),
            method="PATCH",
        ),
        HATEOASLink(
            rel="delete",
            href=str(request.url_for("delete_order_item", order_id=item.order_id, item_id=item.id)),
            method="DELETE",
        ),
        HATEOASLink(
            rel="collection",
            href=str(request.url_for("list_order_items", order_id=item.order_id)),
            method="GET",
        ),
        HATEOASLink(
            rel="order",
            href=str(request.url_for("get_order", order_id=item.order_id)),
            method="GET",
        ),
        HATEOASLink(
            rel="product",
            href=str(request.url_for("get_product", product_id=item.product_id)),
            method="GET",
        ),
    ]

def hateoas_order_item(request: Request, item: OrderItem):
    links: List[HATEOASLink] = build_order_item_links(request, item)

    item_read = OrderItemRead.model_validate(item)
    if links:
        item_read = item_read.model_copy(update={"links": links})

    return item_read
