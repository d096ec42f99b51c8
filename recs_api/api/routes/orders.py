"""Orders API endpoints for the mirrored order history."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from recs_api.core.deps import (
    DBSession,
    get_authenticated_store_from_query,
    get_store_from_query,
    require_authenticated,
)
from recs_api.models.order import Order
from recs_api.models.store import Store
from recs_api.schemas.analytics import EventBreakdownResponse
from recs_api.schemas.common import BulkUpdateResponse, PaginatedResponse
from recs_api.schemas.order import (
    OrderBulkUpdate,
    OrderDetailResponse,
    OrderResponse,
    OrderStatsResponse,
    OrderUpdate,
    RecentOrdersResponse,
)
from recs_api.services.analytics_service import AnalyticsService
from recs_api.services.order_service import OrderService
from recs_api.services.store_service import StoreService

router = APIRouter()


async def _get_or_404(service: OrderService, store: Store, order_id: UUID) -> Order:
    order = await service.get_order(store.id, order_id)
    if order is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Order not found")
    return order


@router.get("/", response_model=PaginatedResponse[OrderResponse])
async def list_orders(
    db: DBSession,
    store: Store = Depends(get_store_from_query),
    payment_status: str | None = Query(None, alias="paymentStatus"),
    search: str | None = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[OrderResponse]:
    """List mirrored orders, newest first."""
    orders, total = await OrderService(db).list_orders(
        store.id,
        payment_status=payment_status,
        search=search,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse[OrderResponse].build(
        [OrderResponse.model_validate(o) for o in orders], total, page, page_size
    )


@router.get("/stats/summary", response_model=OrderStatsResponse)
async def order_stats(
    db: DBSession,
    store: Store = Depends(get_store_from_query),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
) -> OrderStatsResponse:
    """Revenue and status breakdowns."""
    stats = await OrderService(db).get_stats(store.id, start_date, end_date)
    return OrderStatsResponse(stats=stats)


@router.get("/recent/list", response_model=RecentOrdersResponse)
async def recent_orders(
    db: DBSession,
    store: Store = Depends(get_store_from_query),
    limit: int = Query(10, ge=1, le=100),
) -> RecentOrdersResponse:
    orders = await OrderService(db).recent_orders(store.id, limit)
    return RecentOrdersResponse(orders=[OrderResponse.model_validate(o) for o in orders])


@router.put("/bulk", response_model=BulkUpdateResponse)
async def bulk_update_orders(data: OrderBulkUpdate, db: DBSession) -> BulkUpdateResponse:
    """Apply several order edits; each row succeeds or fails on its own."""
    store = await StoreService(db).get_by_store_id(data.store_id)
    if store is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Store not found")
    require_authenticated(store)

    results = await OrderService(db).bulk_update(store.id, data.updates)
    updated = sum(1 for r in results if r.success)
    return BulkUpdateResponse(results=results, updated=updated, failed=len(results) - updated)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_from_query),
) -> OrderDetailResponse:
    order = await _get_or_404(OrderService(db), store, order_id)
    return OrderDetailResponse(order=OrderResponse.model_validate(order))


@router.put("/{order_id}", response_model=OrderDetailResponse)
async def update_order(
    order_id: UUID,
    update: OrderUpdate,
    db: DBSession,
    store: Store = Depends(get_authenticated_store_from_query),
) -> OrderDetailResponse:
    """Update admin-side fields (fulfillment status, notes)."""
    service = OrderService(db)
    order = await _get_or_404(service, store, order_id)
    order = await service.update_order(order, update)
    return OrderDetailResponse(order=OrderResponse.model_validate(order))


@router.get("/{order_id}/analytics", response_model=EventBreakdownResponse)
async def order_analytics(
    order_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_from_query),
) -> EventBreakdownResponse:
    """Daily widget events that reference this order."""
    order = await _get_or_404(OrderService(db), store, order_id)
    breakdown = await AnalyticsService(db).get_order_activity(store.store_id, order.ecwid_order_id)
    return EventBreakdownResponse(breakdown=breakdown)
