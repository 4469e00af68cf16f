"""
Test cases for the seed data.
"""
import pytest

from storefront.auth.hashing import PasswordHasher
from storefront.database.models import Role
from storefront.database.repositories import ProductRepository
from storefront.seeds import SEED_PRODUCTS, seed_products, seed_users


@pytest.mark.asyncio
async def test_seeding_is_repeatable(database):
    hasher = PasswordHasher(rounds=4)

    first = await seed_users(database, hasher)
    second = await seed_users(database, hasher)
    await seed_products(database)
    await seed_products(database)

    assert first["admin@ecommerce.com"].id == second["admin@ecommerce.com"].id
    assert first["admin@ecommerce.com"].role == Role.ADMIN
    assert first["user@ecommerce.com"].role == Role.USER
    assert hasher.verify("Admin123!", first["admin@ecommerce.com"].password)
    assert await ProductRepository(database).count() == len(SEED_PRODUCTS) == 10


@pytest.mark.asyncio
async def test_seeded_catalog_is_listed(client, database):
    await seed_products(database)

    response = await client.get("/api/v1/products", params={"category": "Audio", "sortBy": "name", "sortOrder": "asc"})

    assert [p["sku"] for p in response.json()["products"]] == ["AIRPODS-PRO-GEN2", "HOMEPOD-MINI-WHITE"]
