"""
Seed data for development and demos.

Creates the default administrator and user accounts plus a small catalog.
Existing rows (matched by email or SKU) are left untouched, so seeding can be
re-run safely.

Usage:
    python -m storefront.seeds
    storefront-seed
"""
import asyncio
import sys
from decimal import Decimal
from typing import Dict, List, Optional

from storefront.auth.hashing import PasswordHasher
from storefront.base_service import BaseService, configure_logging
from storefront.config import Settings
from storefront.database.models import Product, Role, User
from storefront.database.repositories import ProductRepository, UserRepository
from storefront.database.store import Database

SEED_USERS = [
    {"email": "admin@ecommerce.com", "password": "Admin123!", "name": "Administrator", "role": Role.ADMIN},
    {"email": "user@ecommerce.com", "password": "User123!", "name": "Test User", "role": Role.USER},
]

SEED_PRODUCTS = [
    {
        "name": "iPhone 15 Pro",
        "description": "Latest iPhone with the A17 Pro chip and a new camera system",
        "price": Decimal("1199.99"),
        "quantity": 50,
        "sku": "IPHONE-15-PRO-128",
        "category": "Smartphones",
    },
    {
        "name": "MacBook Air M2",
        "description": "Ultra-thin laptop with the M2 chip",
        "price": Decimal("1499.99"),
        "quantity": 25,
        "sku": "MACBOOK-AIR-M2-256",
        "category": "Computers",
    },
    {
        "name": "AirPods Pro",
        "description": "Wireless earbuds with active noise cancellation",
        "price": Decimal("279.99"),
        "quantity": 100,
        "sku": "AIRPODS-PRO-GEN2",
        "category": "Audio",
    },
    {
        "name": "iPad Pro 12.9\"",
        "description": "Professional tablet with a Liquid Retina XDR display",
        "price": Decimal("1099.99"),
        "quantity": 30,
        "sku": "IPAD-PRO-129-256",
        "category": "Tablets",
    },
    {
        "name": "Apple Watch Series 9",
        "description": "Smartwatch with the S9 chip",
        "price": Decimal("429.99"),
        "quantity": 75,
        "sku": "WATCH-S9-45MM-GPS",
        "category": "Watches",
    },
    {
        "name": "Magic Mouse",
        "description": "Rechargeable wireless mouse",
        "price": Decimal("89.99"),
        "quantity": 200,
        "sku": "MAGIC-MOUSE-WHITE",
        "category": "Accessories",
    },
    {
        "name": "Magic Keyboard",
        "description": "Wireless keyboard with numeric keypad",
        "price": Decimal("149.99"),
        "quantity": 150,
        "sku": "MAGIC-KB-NUMERIC",
        "category": "Accessories",
    },
    {
        "name": "Studio Display",
        "description": "27-inch 5K Retina display",
        "price": Decimal("1599.99"),
        "quantity": 15,
        "sku": "STUDIO-DISPLAY-27",
        "category": "Displays",
    },
    {
        "name": "Mac Studio",
        "description": "Compact workstation with the M2 Max chip",
        "price": Decimal("2499.99"),
        "quantity": 10,
        "sku": "MAC-STUDIO-M2-MAX",
        "category": "Computers",
    },
    {
        "name": "HomePod mini",
        "description": "Compact smart speaker",
        "price": Decimal("99.99"),
        "quantity": 80,
        "sku": "HOMEPOD-MINI-WHITE",
        "category": "Audio",
    },
]

seeder = BaseService("seeds")


async def seed_users(db: Database, hasher: PasswordHasher) -> Dict[str, User]:
    """
    Create the default accounts unless their email is already registered.

    Returns:
        Mapping of email to the stored user
    """
    users = UserRepository(db)
    seeded = {}
    for account in SEED_USERS:
        user = await users.find_by_email(account["email"])
        if user is None:
            user = await users.create(
                email=account["email"],
                password=await hasher.hash_async(account["password"]),
                name=account["name"],
                role=account["role"],
            )
        seeded[user.email] = user
    seeder.log_event("seed.users", {"emails": sorted(seeded)})
    return seeded


async def seed_products(db: Database) -> List[Product]:
    products = ProductRepository(db)
    seeded = [await products.upsert_by_sku(dict(item, is_active=True)) for item in SEED_PRODUCTS]
    seeder.log_event("seed.products", {"count": len(seeded)})
    return seeded


async def main(settings: Optional[Settings] = None) -> None:
    settings = settings or Settings.from_env()
    configure_logging(settings)
    db = Database(settings.database_url)
    try:
        await db.create_all()
        await seed_users(db, PasswordHasher(settings.bcrypt_rounds))
        await seed_products(db)
        seeder.log_event("seed.complete")
    except Exception as exc:
        seeder.log_error(exc, context="Seeding")
        raise
    finally:
        await db.dispose()


def cli() -> None:
    """Console entry point: seed the database configured by DATABASE_URL."""
    try:
        asyncio.run(main())
    except Exception:
        sys.exit(1)


if __name__ == "__main__":
    cli()
