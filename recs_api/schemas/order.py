"""Pydantic schemas for the mirrored order history."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from recs_api.schemas.common import ApiResponse, BaseSchema


class OrderResponse(BaseSchema):
    """A mirrored order row."""

    id: UUID
    ecwid_order_id: str
    order_number: str | None = None
    product_ids: list[str] = []
    total: float
    payment_status: str | None = None
    fulfillment_status: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    notes: str | None = None
    order_created_at: datetime | None = None
    created_at: datetime


class OrderDetailResponse(ApiResponse):
    order: OrderResponse


class OrderUpdate(BaseSchema):
    """Admin-side annotations; payment data stays owned by Ecwid."""

    fulfillment_status: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class OrderBulkItem(OrderUpdate):
    id: UUID


class OrderBulkUpdate(BaseSchema):
    store_id: str = Field(alias="storeId")
    updates: list[OrderBulkItem]


class OrderStats(BaseSchema):
    total_orders: int
    total_revenue: float
    average_order_value: float
    payment_status_breakdown: dict[str, int]
    fulfillment_status_breakdown: dict[str, int]


class OrderStatsResponse(ApiResponse):
    stats: OrderStats


class RecentOrdersResponse(ApiResponse):
    orders: list[OrderResponse]
