"""End-to-end tests for /products."""

from __future__ import annotations

from utils.negotiation import MediaType

HAL = MediaType.HAL.value
JSONAPI = MediaType.JSONAPI.value


def create(client, sku: str, price: int, **extra) -> dict:
    response = client.post("/products/", json={"sku": sku, "name": f"Product {sku}", "unit_price_cents": price, **extra})
    assert response.status_code == 201
    return response.json()


class TestProducts:
    def test_defaults(self, client) -> None:
        product = create(client, "A-1", 100)
        assert product["currency"] == "USD"
        assert product["is_active"] is True

    def test_jsonapi_create_and_read(self, client) -> None:
        response = client.post(
            "/products/",
            json={"data": {"type": "products", "attributes": {"sku": "B-1", "name": "B", "unit_price_cents": 5}}},
            headers={"Accept": JSONAPI, "Content-Type": JSONAPI},
        )
        assert response.status_code == 201
        product_id = response.json()["data"]["id"]

        document = client.get(f"/products/{product_id}", headers={"Accept": JSONAPI}).json()
        assert document["data"]["attributes"]["sku"] == "B-1"
        assert document["links"]["self"].endswith(f"/products/{product_id}")
        assert "relationships" not in document["data"]

    def test_duplicate_sku(self, client) -> None:
        create(client, "A-1", 100)
        response = client.post("/products/", json={"sku": "A-1", "name": "Again", "unit_price_cents": 1})
        assert response.status_code == 409

    def test_negative_price_rejected(self, client) -> None:
        response = client.post("/products/", json={"sku": "A-1", "name": "A", "unit_price_cents": -1})
        assert response.status_code == 422

    def test_filter_and_sort(self, client) -> None:
        create(client, "A-1", 300)
        create(client, "A-2", 100)
        create(client, "A-3", 200, is_active=False)

        body = client.get(
            "/products/",
            params={"is_active": "true", "sort_by": "unit_price_cents", "sort_order": "desc"},
        ).json()
        assert [p["sku"] for p in body["data"]] == ["A-1", "A-2"]

        body = client.get("/products/", params={"min_price_cents": 150, "sort_by": "sku"}).json()
        assert [p["sku"] for p in body["data"]] == ["A-1", "A-3"]

    def test_invalid_sort_field(self, client) -> None:
        response = client.get("/products/", params={"sort_by": "secret"}, headers={"Accept": JSONAPI})
        assert response.status_code == 422
        assert response.json()["errors"][0]["source"] == {"parameter": "sort_by"}

    def test_hal_collection(self, client) -> None:
        create(client, "A-1", 100)
        body = client.get("/products/", headers={"Accept": HAL}).json()
        assert body["_embedded"]["products"][0]["sku"] == "A-1"
        assert set(body["_links"]) == {"self", "first", "last"}

    def test_update(self, client) -> None:
        product = create(client, "A-1", 100)
        response = client.patch(f"/products/{product['id']}", json={"unit_price_cents": 150, "is_active": False})
        assert response.status_code == 200
        assert response.json()["unit_price_cents"] == 150
        assert response.json()["is_active"] is False

    def test_delete_unreferenced(self, client) -> None:
        product = create(client, "A-1", 100)
        assert client.delete(f"/products/{product['id']}").status_code == 204
        assert client.get(f"/products/{product['id']}").status_code == 404

    def test_delete_referenced_conflict(self, client, order, product) -> None:
        response = client.delete(f"/products/{product['id']}")
        assert response.status_code == 409

    def test_null_required_fields_rejected(self, client) -> None:
        product = create(client, "A-1", 100)
        for field in ("sku", "name", "unit_price_cents", "currency", "is_active"):
            response = client.patch(f"/products/{product['id']}", json={field: None})
            assert response.status_code == 422, field

    def test_null_description_clears_it(self, client) -> None:
        product = create(client, "A-1", 100, description="Old")
        response = client.patch(f"/products/{product['id']}", json={"description": None})
        assert response.status_code == 200
        assert response.json()["description"] is None
