"""
Product router.

Public read endpoints plus administrator-only write and statistics endpoints.
"""
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from storefront.auth.jwt import TokenClaims
from storefront.auth.middleware import RBACMiddleware
from storefront.database.models import Role
from storefront.products.schemas import ProductCreate, ProductQuery, ProductUpdate
from storefront.products.service import CatalogService
from storefront.validation import validate_query

router = APIRouter(tags=["products"])

require_admin = RBACMiddleware.has_roles([Role.ADMIN])


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def product_query(request: Request) -> ProductQuery:
    return validate_query(ProductQuery, request)


@router.get("", response_model=Dict[str, Any])
async def list_products(
    query: ProductQuery = Depends(product_query),
    service: CatalogService = Depends(get_catalog_service),
):
    """List products with pagination, filters and sorting."""
    return await service.get_products(query)


@router.get("/stats/overview", response_model=Dict[str, Any])
async def product_stats(
    admin: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Catalog statistics (administrators only)."""
    return await service.get_stats()


@router.get("/{product_id}", response_model=Dict[str, Any])
async def get_product(
    product_id: UUID,
    service: CatalogService = Depends(get_catalog_service),
):
    return await service.get_product(str(product_id))


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
async def create_product(
    product_data: ProductCreate,
    admin: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Create a product (administrators only)."""
    return await service.create_product(product_data, admin.id)


@router.put("/{product_id}", response_model=Dict[str, Any])
async def update_product(
    product_id: UUID,
    update_data: ProductUpdate,
    admin: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Update a product (administrators only)."""
    return await service.update_product(str(product_id), update_data, admin.id)


@router.delete("/{product_id}", response_model=Dict[str, Any])
async def delete_product(
    product_id: UUID,
    admin: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Delete a product (administrators only)."""
    return await service.delete_product(str(product_id), admin.id)
