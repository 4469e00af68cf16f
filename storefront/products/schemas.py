"""
Request models for the product endpoints.
"""
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from storefront.validation import CamelModel

SKU_PATTERN = r"^[A-Z0-9_-]+$"


class SortField(str, Enum):
    NAME = "name"
    PRICE = "price"
    QUANTITY = "quantity"
    CATEGORY = "category"
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ProductCreate(CamelModel):
    """Model for creating a product."""
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    quantity: int = Field(0, ge=0)
    sku: str = Field(..., min_length=3, max_length=50, pattern=SKU_PATTERN)
    category: str = Field(..., min_length=2, max_length=100)
    is_active: bool = True


class ProductUpdate(CamelModel):
    """Model for a partial product update; at least one field is required."""
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = Field(None, min_length=3, max_length=50, pattern=SKU_PATTERN)
    category: Optional[str] = Field(None, min_length=2, max_length=100)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field must be provided for the update")
        return self


class ProductQuery(CamelModel):
    """Query string of the product listing."""
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    def cache_fingerprint(self) -> dict:
        """Canonical form of the query, used to build the list cache key."""
        return self.model_dump(mode="json", by_alias=True)
