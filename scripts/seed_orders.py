import asyncio
import json
from pathlib import Path

from sqlalchemy import select

from config.settings import settings
from models.customer import Customer
from models.order import Order, OrderStatus
from models.product import Product
from services.database import AsyncSessionLocal, close_db, init_db
from services.orders import add_item, transition_order


async def seed(data: dict) -> dict:
    counts = {"customers": 0, "products": 0, "orders": 0}

    async with AsyncSessionLocal() as db:
        customers = {}
        new_customers = set()
        for entry in data.get("customers", []):
            result = await db.execute(select(Customer).where(Customer.email == entry["email"]))
            customer = result.scalar_one_or_none()
            if customer is None:
                customer = Customer(name=entry["name"], email=entry["email"])
                db.add(customer)
                counts["customers"] += 1
                new_customers.add(entry["email"])
            customers[entry["email"]] = customer

        products = {}
        for entry in data.get("products", []):
            result = await db.execute(select(Product).where(Product.sku == entry["sku"]))
            product = result.scalar_one_or_none()
            if product is None:
                product = Product(
                    sku=entry["sku"],
                    name=entry["name"],
                    description=entry.get("description"),
                    unit_price_cents=entry["unit_price_cents"],
                    currency=entry.get("currency", settings.DEFAULT_CURRENCY),
                    is_active=entry.get("is_active", True),
                )
                db.add(product)
                counts["products"] += 1
            products[entry["sku"]] = product

        await db.flush()

        # Orders are only seeded for customers created in this run
        for entry in data.get("orders", []):
            if entry["customer"] not in new_customers:
                continue
            customer = customers[entry["customer"]]

            order = Order(
                customer_id=customer.id,
                status=OrderStatus.PENDING,
                currency=entry.get("currency", settings.DEFAULT_CURRENCY),
                notes=entry.get("notes"),
            )
            for item in entry.get("items", []):
                add_item(order, products[item["sku"]], item["quantity"])
            if "status" in entry:
                transition_order(order, OrderStatus(entry["status"]))

            db.add(order)
            counts["orders"] += 1

        await db.commit()

    return counts


async def main():
    BASE_DIR = Path(__file__).resolve().parent

    with open(BASE_DIR / "seed_data.json", "r", encoding="utf-8") as f:
        data = json.load(f)

    await init_db()
    try:
        counts = await seed(data)
    finally:
        await close_db()

    for name, count in counts.items():
        print(f"Inserted {count} {name}")
    print("Order seeding complete.")


if __name__ == "__main__":
    asyncio.run(main())
