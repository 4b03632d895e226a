"""Tests for ETag generation and If-None-Match evaluation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from models.customer import Customer
from models.order import Order, OrderItem
from models.product import Product
from utils.etag import etag_matches, generate_etag, related_rows, representation_variant
from utils.negotiation import MediaType


def make_customer(updated_at: datetime) -> Customer:
    return Customer(id=uuid4(), name="Ada", email="ada@example.com", updated_at=updated_at)


class TestGenerateEtag:
    def test_strong_and_quoted(self) -> None:
        etag = generate_etag(make_customer(datetime.now(timezone.utc)))
        assert etag.startswith('"') and etag.endswith('"')
        assert not etag.startswith("W/")

    def test_changes_with_updated_at(self) -> None:
        now = datetime.now(timezone.utc)
        customer = make_customer(now)
        before = generate_etag(customer)
        customer.updated_at = now + timedelta(seconds=1)
        assert generate_etag(customer) != before

    def test_variant_changes_etag(self) -> None:
        customer = make_customer(datetime.now(timezone.utc))
        plain = generate_etag(customer, representation_variant(MediaType.JSON))
        hal = generate_etag(customer, representation_variant(MediaType.HAL))
        hal_embedded = generate_etag(customer, representation_variant(MediaType.HAL, ["orders"]))
        assert len({plain, hal, hal_embedded}) == 3

    def test_same_id_different_type(self) -> None:
        now = datetime.now(timezone.utc)
        customer = make_customer(now)
        product = Product(id=customer.id, sku="A", name="A", unit_price_cents=1, updated_at=now)
        assert generate_etag(customer) != generate_etag(product)


class TestRepresentationVariant:
    def test_paths_are_sorted(self) -> None:
        assert representation_variant(MediaType.JSONAPI, ["items", "customer"]) == (
            representation_variant(MediaType.JSONAPI, ["customer", "items"])
        )


class TestEtagMatches:
    def test_missing_header(self) -> None:
        assert etag_matches(None, '"abc"') is False

    def test_exact(self) -> None:
        assert etag_matches('"abc"', '"abc"') is True

    def test_list_and_weak(self) -> None:
        assert etag_matches('"zzz", W/"abc"', '"abc"') is True

    def test_wildcard(self) -> None:
        assert etag_matches("*", '"abc"') is True

    def test_mismatch(self) -> None:
        assert etag_matches('"zzz"', '"abc"') is False


class TestRelatedRows:
    def test_embedded_rows_change_etag(self) -> None:
        now = datetime.now(timezone.utc)
        customer = make_customer(now)
        order = Order(id=uuid4(), customer_id=customer.id, currency="USD", updated_at=now)
        order.customer = customer

        before = generate_etag(order, related=related_rows(order, ["customer"]))
        customer.updated_at = now + timedelta(seconds=1)
        assert generate_etag(order, related=related_rows(order, ["customer"])) != before

    def test_nested_paths_and_loaded_overrides(self) -> None:
        now = datetime.now(timezone.utc)
        order = Order(id=uuid4(), customer_id=uuid4(), currency="USD", updated_at=now)
        product = Product(id=uuid4(), sku="A", name="A", unit_price_cents=1, updated_at=now)
        item = OrderItem(id=uuid4(), product_id=product.id, quantity=1, unit_price_cents=1, updated_at=now)
        item.product = product
        order.items.append(item)

        assert related_rows(order, ["items.product"]) == [item, product]
        assert related_rows(item, ["order", "product"], order=order) == [order, product]
