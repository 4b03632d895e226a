"""Tests for HAL rendering."""

from __future__ import annotations

from models.hateoas import HATEOASLink
from utils.hal import hal_collection, hal_error, hal_link, hal_links, hal_resource
from utils.pagination import Page
from utils.resources import Relationship, ResourceView


def make_item(item_id: str, product: ResourceView) -> ResourceView:
    return ResourceView(
        type="order-items",
        id=item_id,
        attributes={"quantity": 1},
        links=[HATEOASLink(rel="self", href=f"http://t/orders/o1/items/{item_id}", method="GET")],
        relationships={
            "product": Relationship(
                type="products", related_href=f"http://t/products/{product.id}", ids=[product.id], resources=[product],
            ),
        },
    )


def make_order() -> ResourceView:
    product = ResourceView(
        type="products",
        id="p1",
        attributes={"name": "Keyboard"},
        links=[HATEOASLink(rel="self", href="http://t/products/p1", method="GET")],
    )
    customer = ResourceView(
        type="customers",
        id="c1",
        attributes={"name": "Ada"},
        links=[HATEOASLink(rel="self", href="http://t/customers/c1", method="GET")],
    )
    item = make_item("i1", product)
    return ResourceView(
        type="orders",
        id="o1",
        attributes={"status": "pending", "total_cents": 100},
        links=[
            HATEOASLink(rel="items", href="http://t/orders/o1/items", method="GET"),
            HATEOASLink(rel="self", href="http://t/orders/o1", method="GET"),
            HATEOASLink(rel="pay", href="http://t/orders/o1", method="PATCH", title="Mark the order as paid"),
        ],
        relationships={
            "customer": Relationship(
                type="customers", related_href="http://t/customers/c1", ids=["c1"], resources=[customer],
            ),
            "items": Relationship(
                type="order-items", related_href="http://t/orders/o1/items", many=True, ids=["i1"], resources=[item],
            ),
        },
    )


class TestLinks:
    """HAL link objects."""

    def test_get_link_is_href_only(self) -> None:
        link = HATEOASLink(rel="self", href="http://t/orders/o1", method="GET")
        assert hal_link(link) == {"href": "http://t/orders/o1"}

    def test_action_link_carries_method_and_title(self) -> None:
        link = HATEOASLink(rel="pay", href="http://t/orders/o1", method="PATCH", title="Pay")
        assert hal_link(link) == {"href": "http://t/orders/o1", "method": "PATCH", "title": "Pay"}

    def test_templated_link(self) -> None:
        link = HATEOASLink(rel="find", href="http://t/orders/{id}", method="GET")
        assert hal_link(link)["templated"] is True

    def test_self_first_and_repeated_rel_becomes_array(self) -> None:
        links = hal_links([
            HATEOASLink(rel="cancel", href="http://t/a", method="PATCH"),
            HATEOASLink(rel="self", href="http://t/s", method="GET"),
            HATEOASLink(rel="cancel", href="http://t/b", method="PATCH"),
        ])
        assert list(links) == ["self", "cancel"]
        assert [l["href"] for l in links["cancel"]] == ["http://t/a", "http://t/b"]


class TestResource:
    """Single HAL resources."""

    def test_links_and_attributes(self) -> None:
        document = hal_resource(make_order())
        assert document["id"] == "o1"
        assert document["status"] == "pending"
        assert document["_links"]["self"] == {"href": "http://t/orders/o1"}
        assert document["_links"]["items"] == {"href": "http://t/orders/o1/items"}

    def test_items_are_always_embedded(self) -> None:
        document = hal_resource(make_order())
        assert [i["id"] for i in document["_embedded"]["items"]] == ["i1"]
        assert "customer" not in document["_embedded"]
        assert "_embedded" not in document["_embedded"]["items"][0]

    def test_embed_to_one_and_nested(self) -> None:
        document = hal_resource(make_order(), {"customer", "items.product"})
        assert document["_embedded"]["customer"]["id"] == "c1"
        item = document["_embedded"]["items"][0]
        assert item["_embedded"]["product"]["name"] == "Keyboard"

    def test_no_embedded_without_relationships(self) -> None:
        view = ResourceView(
            type="products",
            id="p1",
            attributes={},
            links=[HATEOASLink(rel="self", href="http://t/products/p1", method="GET")],
        )
        assert "_embedded" not in hal_resource(view)


class TestCollection:
    """HAL collections and errors."""

    def test_paginated_collection(self) -> None:
        page = Page(items=[], page=2, size=1, total=3)
        links = [
            HATEOASLink(rel="self", href="http://t/orders/?page=2&size=1", method="GET"),
            HATEOASLink(rel="next", href="http://t/orders/?page=3&size=1", method="GET"),
        ]
        document = hal_collection("orders", [make_order()], links, page)
        assert document["_links"]["next"]["href"].endswith("page=3&size=1")
        assert len(document["_embedded"]["orders"]) == 1
        assert (document["page"], document["size"], document["total"], document["total_pages"]) == (2, 1, 3, 3)

    def test_error_body(self) -> None:
        assert hal_error(404, "Order not found", "http://t/orders/x") == {
            "message": "Order not found",
            "status": 404,
            "_links": {"self": {"href": "http://t/orders/x"}},
        }
