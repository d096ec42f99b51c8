"""Order mirror queries for the admin orders page."""

import logging
from collections import Counter
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.models.order import Order
from recs_api.schemas.common import BulkResult
from recs_api.schemas.order import OrderBulkItem, OrderStats, OrderUpdate

logger = logging.getLogger(__name__)

UNKNOWN_STATUS = "unknown"


class OrderService:
    """Business logic for mirrored orders."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_orders(
        self,
        store_pk: UUID,
        *,
        payment_status: str | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Order], int]:
        conditions = [Order.store_id == store_pk]
        if payment_status:
            conditions.append(Order.payment_status == payment_status)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                Order.order_number.ilike(pattern)
                | Order.customer_email.ilike(pattern)
                | Order.customer_name.ilike(pattern)
            )

        count_stmt = select(func.count()).select_from(Order).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(Order)
            .where(*conditions)
            .order_by(Order.order_created_at.desc().nulls_last(), Order.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        orders = list((await self.db.execute(stmt)).scalars().all())
        return orders, total

    async def get_order(self, store_pk: UUID, order_id: UUID) -> Order | None:
        result = await self.db.execute(
            select(Order).where(Order.id == order_id, Order.store_id == store_pk)
        )
        return result.scalar_one_or_none()

    async def update_order(self, order: Order, update: OrderUpdate) -> Order:
        self._apply(order, update)
        await self.db.commit()
        await self.db.refresh(order)
        return order

    async def bulk_update(self, store_pk: UUID, items: list[OrderBulkItem]) -> list[BulkResult]:
        """Apply each update independently; a missing order fails only its own row."""
        results: list[BulkResult] = []
        for item in items:
            order = await self.get_order(store_pk, item.id)
            if order is None:
                results.append(BulkResult(id=item.id, success=False, error="Order not found"))
                continue
            self._apply(order, item)
            results.append(BulkResult(id=item.id, success=True))
        await self.db.commit()
        return results

    @staticmethod
    def _apply(order: Order, update: OrderUpdate) -> None:
        for field, value in update.model_dump(exclude_unset=True, exclude={"id"}).items():
            setattr(order, field, value)

    async def recent_orders(self, store_pk: UUID, limit: int = 10) -> list[Order]:
        orders, _ = await self.list_orders(store_pk, page_size=limit)
        return orders

    async def get_stats(
        self,
        store_pk: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> OrderStats:
        """Revenue totals and status breakdowns over an optional date window."""
        stmt = select(Order.total, Order.payment_status, Order.fulfillment_status).where(
            Order.store_id == store_pk
        )
        if start:
            stmt = stmt.where(Order.order_created_at >= start)
        if end:
            stmt = stmt.where(Order.order_created_at <= end)
        rows = (await self.db.execute(stmt)).all()

        total_revenue = sum(row.total or 0 for row in rows)
        payment = Counter(row.payment_status or UNKNOWN_STATUS for row in rows)
        fulfillment = Counter(row.fulfillment_status or UNKNOWN_STATUS for row in rows)

        return OrderStats(
            total_orders=len(rows),
            total_revenue=round(total_revenue, 2),
            average_order_value=round(total_revenue / len(rows), 2) if rows else 0.0,
            payment_status_breakdown=dict(payment),
            fulfillment_status_breakdown=dict(fulfillment),
        )
