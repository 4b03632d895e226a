"""Pytest configuration and fixtures."""

import os
import tempfile
from pathlib import Path

import pytest

# Set test environment variables before importing app modules
_DB_DIR = tempfile.mkdtemp(prefix="orders_api_test_")
_DB_PATH = Path(_DB_DIR) / "test.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402

from main import app  # noqa: E402
from services.database import Base  # noqa: E402


@pytest.fixture
def reset_db():
    """Drop and recreate all tables in the test database."""
    engine = create_engine(f"sqlite:///{_DB_PATH}")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    engine.dispose()

@pytest.fixture
def client(reset_db):
    """Test client running the app lifespan against a clean database."""
    with TestClient(app) as test_client:
        yield test_client

@pytest.fixture
def customer(client):
    response = client.post("/customers/", json={"name": "Ada Lovelace", "email": "ada@example.com"})
    assert response.status_code == 201
    return response.json()

@pytest.fixture
def product(client):
    response = client.post(
        "/products/",
        json={"sku": "KB-001", "name": "Keyboard", "unit_price_cents": 8999},
    )
    assert response.status_code == 201
    return response.json()

@pytest.fixture
def other_product(client):
    response = client.post(
        "/products/",
        json={"sku": "MS-002", "name": "Mouse", "unit_price_cents": 2999},
    )
    assert response.status_code == 201
    return response.json()

@pytest.fixture
def order(client, customer, product):
    response = client.post(
        "/orders/",
        json={
            "customer_id": customer["id"],
            "items": [{"product_id": product["id"], "quantity": 2}],
        },
    )
    assert response.status_code == 201
    return response.json()
