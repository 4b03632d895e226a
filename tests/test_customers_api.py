"""End-to-end tests for /customers in all three representations."""

from __future__ import annotations

from utils.negotiation import MediaType

HAL = MediaType.HAL.value
JSONAPI = MediaType.JSONAPI.value


class TestCreate:
    def test_plain_json(self, client) -> None:
        response = client.post("/customers/", json={"name": "Ada", "email": "ada@example.com"})
        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "ada@example.com"
        assert response.headers["location"].endswith(f"/customers/{body['id']}")
        rels = {link["rel"]: link for link in body["links"]}
        assert set(rels) == {"self", "update", "delete", "collection", "orders"}
        assert rels["delete"]["method"] == "DELETE"

    def test_jsonapi_document(self, client) -> None:
        response = client.post(
            "/customers/",
            json={"data": {"type": "customers", "attributes": {"name": "Ada", "email": "ada@example.com"}}},
            headers={"Accept": JSONAPI, "Content-Type": JSONAPI},
        )
        assert response.status_code == 201
        assert response.headers["content-type"].startswith(JSONAPI)
        data = response.json()["data"]
        assert data["type"] == "customers"
        assert data["attributes"] == {
            "name": "Ada",
            "email": "ada@example.com",
            "created_at": data["attributes"]["created_at"],
            "updated_at": data["attributes"]["updated_at"],
        }
        assert data["relationships"]["orders"]["links"]["related"].endswith(f"/customers/{data['id']}/orders")
        assert "data" not in data["relationships"]["orders"]

    def test_duplicate_email_conflict(self, client, customer) -> None:
        response = client.post("/customers/", json={"name": "Other", "email": customer["email"]})
        assert response.status_code == 409

    def test_invalid_email_jsonapi_error(self, client) -> None:
        response = client.post(
            "/customers/",
            json={"data": {"type": "customers", "attributes": {"name": "Ada", "email": "nope"}}},
            headers={"Accept": JSONAPI},
        )
        assert response.status_code == 422
        errors = response.json()["errors"]
        assert errors[0]["status"] == "422"
        assert errors[0]["source"] == {"pointer": "/data/attributes/email"}

    def test_wrong_type_conflict(self, client) -> None:
        response = client.post(
            "/customers/",
            json={"data": {"type": "products", "attributes": {"name": "Ada", "email": "ada@example.com"}}},
            headers={"Accept": JSONAPI},
        )
        assert response.status_code == 409
        assert response.json()["errors"][0]["title"] == "Conflict"


class TestRead:
    def test_hal(self, client, customer) -> None:
        response = client.get(f"/customers/{customer['id']}", headers={"Accept": HAL})
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == customer["id"]
        assert body["_links"]["self"]["href"].endswith(f"/customers/{customer['id']}")
        assert body["_links"]["update"]["method"] == "PATCH"
        assert body["_links"]["orders"]["href"].endswith("/orders")

    def test_not_found_hal_error(self, client) -> None:
        response = client.get("/customers/00000000-0000-4000-8000-000000000000", headers={"Accept": HAL})
        assert response.status_code == 404
        assert response.headers["content-type"].startswith(HAL)
        body = response.json()
        assert body["status"] == 404
        assert body["message"] == "Customer not found"
        assert "self" in body["_links"]

    def test_not_found_plain_error(self, client) -> None:
        response = client.get("/customers/00000000-0000-4000-8000-000000000000")
        assert response.status_code == 404
        assert response.json() == {"detail": "Customer not found"}

    def test_unknown_include(self, client, customer) -> None:
        response = client.get(
            f"/customers/{customer['id']}/orders",
            params={"include": "payments"},
            headers={"Accept": JSONAPI},
        )
        assert response.status_code == 400


class TestList:
    def test_pagination_links(self, client) -> None:
        for i in range(3):
            client.post("/customers/", json={"name": f"C{i}", "email": f"c{i}@example.com"})

        response = client.get("/customers/", params={"page": 2, "size": 1}, headers={"Accept": HAL})
        body = response.json()
        assert (body["page"], body["size"], body["total"], body["total_pages"]) == (2, 1, 3, 3)
        assert len(body["_embedded"]["customers"]) == 1
        assert set(body["_links"]) == {"self", "first", "prev", "next", "last"}
        assert "page=3" in body["_links"]["next"]["href"]
        assert "page=1" in body["_links"]["prev"]["href"]

    def test_filters_preserved_in_links(self, client, customer) -> None:
        response = client.get("/customers/", params={"search": "ada"}, headers={"Accept": JSONAPI})
        document = response.json()
        assert [r["id"] for r in document["data"]] == [customer["id"]]
        assert "search=ada" in document["links"]["self"]
        assert document["meta"]["total"] == 1
        assert "next" not in document["links"]

    def test_plain_list(self, client, customer) -> None:
        body = client.get("/customers/").json()
        assert body["total"] == 1
        assert body["has_next"] is False
        assert body["data"][0]["id"] == customer["id"]


class TestUpdateDelete:
    def test_patch(self, client, customer) -> None:
        response = client.patch(f"/customers/{customer['id']}", json={"name": "Ada King"})
        assert response.status_code == 200
        assert response.json()["name"] == "Ada King"

    def test_null_required_field_rejected(self, client, customer) -> None:
        for field in ("name", "email"):
            response = client.patch(f"/customers/{customer['id']}", json={field: None})
            assert response.status_code == 422
        assert client.get(f"/customers/{customer['id']}").json()["name"] == customer["name"]

    def test_empty_patch(self, client, customer) -> None:
        response = client.patch(f"/customers/{customer['id']}", json={})
        assert response.status_code == 400

    def test_patch_id_mismatch(self, client, customer) -> None:
        response = client.patch(
            f"/customers/{customer['id']}",
            json={"data": {"type": "customers", "id": "other", "attributes": {"name": "X"}}},
        )
        assert response.status_code == 409

    def test_delete_cascades_orders(self, client, order) -> None:
        response = client.delete(f"/customers/{order['customer_id']}")
        assert response.status_code == 204
        assert client.get(f"/orders/{order['id']}").status_code == 404


class TestEtag:
    def test_not_modified(self, client, customer) -> None:
        first = client.get(f"/customers/{customer['id']}")
        etag = first.headers["etag"]
        assert first.headers["cache-control"] == "private, max-age=0, must-revalidate"

        second = client.get(f"/customers/{customer['id']}", headers={"If-None-Match": etag})
        assert second.status_code == 304
        assert second.headers["etag"] == etag

    def test_etag_differs_per_representation(self, client, customer) -> None:
        plain = client.get(f"/customers/{customer['id']}").headers["etag"]
        hal = client.get(f"/customers/{customer['id']}", headers={"Accept": HAL}).headers["etag"]
        assert plain != hal

    def test_etag_changes_after_update(self, client, customer) -> None:
        before = client.get(f"/customers/{customer['id']}").headers["etag"]
        client.patch(f"/customers/{customer['id']}", json={"name": "Changed"})
        response = client.get(f"/customers/{customer['id']}", headers={"If-None-Match": before})
        assert response.status_code == 200
        assert response.headers["etag"] != before
