"""
Typed CRUD and aggregate access to users and products.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.sql import Select

from storefront.database.models import Product, User
from storefront.database.store import Database, RecordNotFound

LOW_STOCK_THRESHOLD = 10

PRODUCT_SORT_COLUMNS = {
    "name": Product.name,
    "price": Product.price,
    "quantity": Product.quantity,
    "category": Product.category,
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
}


@dataclass
class ProductFilters:
    """Filters accepted by the product listing."""
    search: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None

    def apply(self, stmt: Select) -> Select:
        if self.search:
            stmt = stmt.where(
                or_(
                    Product.name.icontains(self.search, autoescape=True),
                    Product.description.icontains(self.search, autoescape=True),
                    Product.sku.icontains(self.search, autoescape=True),
                )
            )
        if self.category:
            stmt = stmt.where(Product.category.icontains(self.category, autoescape=True))
        if self.is_active is not None:
            stmt = stmt.where(Product.is_active == self.is_active)
        return stmt


class UserRepository:
    """User persistence. Users are never deleted through this surface."""

    def __init__(self, db: Database):
        self.db = db

    async def find_by_id(self, user_id: str) -> Optional[User]:
        async with self.db.session() as session:
            return await session.get(User, user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        async with self.db.session() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def find_by_email_excluding(self, email: str, user_id: str) -> Optional[User]:
        """First user holding ``email`` other than ``user_id``."""
        async with self.db.session() as session:
            result = await session.execute(
                select(User).where(User.email == email, User.id != user_id).limit(1)
            )
            return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> User:
        async with self.db.session() as session:
            user = User(**fields)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    async def update(self, user_id: str, **fields: Any) -> User:
        async with self.db.session() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise RecordNotFound(f"User {user_id} not found")
            for key, value in fields.items():
                setattr(user, key, value)
            await session.commit()
            await session.refresh(user)
            return user


class ProductRepository:
    """Product persistence and catalog aggregates."""

    def __init__(self, db: Database):
        self.db = db

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        async with self.db.session() as session:
            return await session.get(Product, product_id)

    async def find_by_sku(self, sku: str) -> Optional[Product]:
        async with self.db.session() as session:
            result = await session.execute(select(Product).where(Product.sku == sku))
            return result.scalar_one_or_none()

    async def find_by_sku_excluding(self, sku: str, product_id: str) -> Optional[Product]:
        async with self.db.session() as session:
            result = await session.execute(
                select(Product).where(Product.sku == sku, Product.id != product_id).limit(1)
            )
            return result.scalar_one_or_none()

    async def find_many(
        self,
        filters: ProductFilters,
        skip: int = 0,
        limit: int = 10,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> List[Product]:
        column = PRODUCT_SORT_COLUMNS.get(sort_by, Product.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()
        stmt = filters.apply(select(Product)).order_by(order, Product.id).offset(skip).limit(limit)
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count(self, filters: Optional[ProductFilters] = None) -> int:
        stmt = select(func.count()).select_from(Product)
        if filters is not None:
            stmt = filters.apply(stmt)
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def count_active(self, is_active: bool) -> int:
        return await self.count(ProductFilters(is_active=is_active))

    async def count_low_stock(self, threshold: int = LOW_STOCK_THRESHOLD) -> int:
        stmt = (
            select(func.count())
            .select_from(Product)
            .where(Product.quantity < threshold, Product.is_active.is_(True))
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def sum_price(self) -> float:
        async with self.db.session() as session:
            result = await session.execute(select(func.sum(Product.price)))
            total = result.scalar_one_or_none()
            return float(total) if total is not None else 0.0

    async def count_by_category(self) -> List[Tuple[str, int]]:
        stmt = (
            select(Product.category, func.count(Product.id))
            .group_by(Product.category)
            .order_by(Product.category)
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            return [(row[0], int(row[1])) for row in result.all()]

    async def create(self, **fields: Any) -> Product:
        async with self.db.session() as session:
            product = Product(**fields)
            session.add(product)
            await session.commit()
            await session.refresh(product)
            return product

    async def update(self, product_id: str, **fields: Any) -> Product:
        async with self.db.session() as session:
            product = await session.get(Product, product_id)
            if product is None:
                raise RecordNotFound(f"Product {product_id} not found")
            for key, value in fields.items():
                setattr(product, key, value)
            await session.commit()
            await session.refresh(product)
            return product

    async def delete(self, product_id: str) -> None:
        async with self.db.session() as session:
            result = await session.execute(delete(Product).where(Product.id == product_id))
            if result.rowcount == 0:
                raise RecordNotFound(f"Product {product_id} not found")
            await session.commit()

    async def upsert_by_sku(self, fields: Dict[str, Any]) -> Product:
        """Create the product unless its SKU already exists (seeding)."""
        existing = await self.find_by_sku(fields["sku"])
        if existing is not None:
            return existing
        return await self.create(**fields)
