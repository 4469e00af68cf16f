"""
Catalog workflows.

This module provides the service behind the /products endpoints:
- Product CRUD
- Paginated, filtered, sorted listing
- Catalog statistics

Single products are cached under ``product:<id>``. Listings and statistics
live under ``products:v<N>:...``; every write bumps ``N`` so readers move to a
fresh key space instead of relying on pattern deletes.
"""
import asyncio
import hashlib
import json
import math
from typing import Any, Dict

from storefront.base_service import BaseService
from storefront.cache.redis_cache import CacheAside, CacheService, NamespaceVersion
from storefront.database.repositories import ProductFilters, ProductRepository
from storefront.database.store import RecordNotFound, UniqueConstraintViolation
from storefront.errors import conflict, not_found
from storefront.products.schemas import ProductCreate, ProductQuery, ProductUpdate

PRODUCT_CACHE_TTL = 600
LIST_CACHE_TTL = 300
STATS_CACHE_TTL = 900
CATALOG_NAMESPACE = "products"

DUPLICATE_SKU = "A product with this SKU already exists"
PRODUCT_NOT_FOUND = "Product not found"


def product_cache_key(product_id: str) -> str:
    return f"product:{product_id}"


def query_hash(query: ProductQuery) -> str:
    canonical = json.dumps(query.cache_fingerprint(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def paginate(total_count: int, page: int, limit: int) -> Dict[str, Any]:
    total_pages = math.ceil(total_count / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalCount": total_count,
        "limit": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


class CatalogService(BaseService):
    """Service for product catalog operations."""

    def __init__(self, products: ProductRepository, cache: CacheService):
        super().__init__("catalog")
        self.products = products
        self.cache = cache
        self.cache_aside = CacheAside(cache, self.logger)
        self.catalog_version = NamespaceVersion(cache, CATALOG_NAMESPACE)

    async def _invalidate_catalog(self) -> None:
        version = await self.catalog_version.bump()
        self.logger.debug("Catalog cache version now %s", version)

    async def create_product(self, data: ProductCreate, actor_id: str) -> Dict[str, Any]:
        self.log_event("product.create.attempt", {"user_id": actor_id, "sku": data.sku})

        if await self.products.find_by_sku(data.sku) is not None:
            self.logger.warning("Product creation with existing SKU %s", data.sku)
            raise conflict(DUPLICATE_SKU)

        try:
            product = await self.products.create(**data.model_dump())
        except UniqueConstraintViolation:
            raise conflict(DUPLICATE_SKU)

        await self._invalidate_catalog()
        self.log_event("product.created", {"id": product.id, "sku": product.sku})
        return {"message": "Product created successfully", "product": product.to_dict()}

    async def get_products(self, query: ProductQuery) -> Dict[str, Any]:
        """
        Paginated product listing.

        The count and the page fetch run concurrently; a failure in either
        fails the whole call.
        """
        cache_key = await self.catalog_version.key("list", query_hash(query))
        cached = await self.cache_aside.read(cache_key)
        if cached is not None:
            self.logger.debug("Product listing served from cache")
            return cached

        filters = ProductFilters(
            search=query.search,
            category=query.category,
            is_active=query.is_active,
        )
        skip = (query.page - 1) * query.limit
        products, total_count = await asyncio.gather(
            self.products.find_many(
                filters,
                skip=skip,
                limit=query.limit,
                sort_by=query.sort_by.value,
                sort_order=query.sort_order.value,
            ),
            self.products.count(filters),
        )

        result = {
            "products": [product.to_dict() for product in products],
            "pagination": paginate(total_count, query.page, query.limit),
        }
        await self.cache_aside.write(cache_key, result, LIST_CACHE_TTL)

        self.logger.debug("Listed %d of %d products", len(products), total_count)
        return result

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        key = product_cache_key(product_id)
        product = await self.cache_aside.read(key)
        if product is None:
            record = await self.products.find_by_id(product_id)
            if record is None:
                raise not_found(PRODUCT_NOT_FOUND)
            product = record.to_dict()
            await self.cache_aside.write(key, product, PRODUCT_CACHE_TTL)
        return {"product": product}

    async def update_product(self, product_id: str, data: ProductUpdate, actor_id: str) -> Dict[str, Any]:
        self.log_event("product.update.attempt", {"id": product_id, "user_id": actor_id})

        existing = await self.products.find_by_id(product_id)
        if existing is None:
            raise not_found(PRODUCT_NOT_FOUND)

        changes = data.model_dump(exclude_none=True)
        new_sku = changes.get("sku")
        if new_sku and new_sku != existing.sku:
            if await self.products.find_by_sku_excluding(new_sku, product_id) is not None:
                raise conflict(DUPLICATE_SKU)

        try:
            product = await self.products.update(product_id, **changes)
        except UniqueConstraintViolation:
            raise conflict(DUPLICATE_SKU)
        except RecordNotFound:
            raise not_found(PRODUCT_NOT_FOUND)

        await asyncio.gather(
            self.cache_aside.drop(product_cache_key(product_id)),
            self._invalidate_catalog(),
        )
        self.log_event("product.updated", {"id": product_id})
        return {"message": "Product updated successfully", "product": product.to_dict()}

    async def delete_product(self, product_id: str, actor_id: str) -> Dict[str, Any]:
        self.log_event("product.delete.attempt", {"id": product_id, "user_id": actor_id})

        if await self.products.find_by_id(product_id) is None:
            raise not_found(PRODUCT_NOT_FOUND)

        try:
            await self.products.delete(product_id)
        except RecordNotFound:
            raise not_found(PRODUCT_NOT_FOUND)

        await asyncio.gather(
            self.cache_aside.drop(product_cache_key(product_id)),
            self._invalidate_catalog(),
        )
        self.log_event("product.deleted", {"id": product_id})
        return {"message": "Product deleted successfully"}

    async def get_stats(self) -> Dict[str, Any]:
        cache_key = await self.catalog_version.key("stats")
        stats = await self.cache_aside.read(cache_key)
        if stats is None:
            (
                total_products,
                active_products,
                inactive_products,
                total_value,
                categories,
                low_stock,
            ) = await asyncio.gather(
                self.products.count(),
                self.products.count_active(True),
                self.products.count_active(False),
                self.products.sum_price(),
                self.products.count_by_category(),
                self.products.count_low_stock(),
            )
            stats = {
                "totalProducts": total_products,
                "activeProducts": active_products,
                "inactiveProducts": inactive_products,
                "totalValue": round(total_value, 2),
                "categoriesCount": len(categories),
                "categories": [{"name": name, "count": count} for name, count in categories],
                "lowStockProducts": low_stock,
            }
            await self.cache_aside.write(cache_key, stats, STATS_CACHE_TTL)
        return {"stats": stats}
