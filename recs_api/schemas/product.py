"""Pydantic schemas for the mirrored product catalog."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from recs_api.schemas.common import ApiResponse, BaseSchema


class ProductResponse(BaseSchema):
    """A mirrored product as shown on the admin products page."""

    id: UUID
    ecwid_product_id: str
    name: str
    sku: str | None = None
    description: str | None = None
    price: float
    compare_to_price: float | None = None
    stock: int
    image_url: str | None = None
    enabled: bool
    category_ids: list[str] = []
    options: list[dict[str, Any]] = []
    upsells: list[str] = []
    cross_sells: list[str] = []
    synced_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ProductDetailResponse(ApiResponse):
    product: ProductResponse


class ProductUpdate(BaseSchema):
    """Partial update for a mirrored product. Unset fields are left alone."""

    name: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    compare_to_price: float | None = Field(default=None, ge=0)
    sku: str | None = Field(default=None, max_length=255)
    stock: int | None = Field(default=None, ge=0)
    enabled: bool | None = None


class ProductBulkItem(ProductUpdate):
    id: UUID


class ProductBulkUpdate(BaseSchema):
    store_id: str = Field(alias="storeId")
    updates: list[ProductBulkItem]
