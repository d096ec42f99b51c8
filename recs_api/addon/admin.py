"""Read-only admin views: dashboard, products, orders, analytics and stats."""

import asyncio
from dataclasses import dataclass

from recs_api.addon.session import AdminSession, AuthState
from recs_api.schemas.analytics import AnalyticsSummary, RealtimeAnalytics
from recs_api.schemas.common import PaginatedResponse
from recs_api.schemas.ecwid import SyncStatus
from recs_api.schemas.order import OrderResponse, OrderStats
from recs_api.schemas.product import ProductResponse
from recs_api.schemas.store import StoreStats


@dataclass(frozen=True)
class DashboardSummary:
    store_id: str
    auth_state: AuthState
    store_name: str | None
    sync_status: SyncStatus | None
    stats: StoreStats | None
    recent_orders: list[OrderResponse]


@dataclass(frozen=True)
class AnalyticsOverview:
    summary: AnalyticsSummary
    realtime: RealtimeAnalytics


class AdminViews:
    """Each view fetches what its page shows for the session's store."""

    def __init__(self, session: AdminSession) -> None:
        self.session = session
        self.api = session.api

    async def dashboard(self) -> DashboardSummary:
        """Auth state first; counts and recent orders only for authorized stores."""
        store_id = self.session.require_store_id()
        if self.session.auth_state is AuthState.UNKNOWN:
            await self.session.refresh_auth()

        stats: StoreStats | None = None
        recent: list[OrderResponse] = []
        if self.session.auth_state is AuthState.AUTHENTICATED:
            stats, recent = await asyncio.gather(
                self.api.get_store_stats(store_id),
                self.api.get_recent_orders(store_id),
            )

        status = self.session.oauth_status
        return DashboardSummary(
            store_id=store_id,
            auth_state=self.session.auth_state,
            store_name=status.store.store_name if status and status.store else None,
            sync_status=self.session.sync_status,
            stats=stats,
            recent_orders=recent,
        )

    async def products(
        self,
        search: str | None = None,
        category_id: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> PaginatedResponse[ProductResponse]:
        return await self.api.list_products(
            self.session.require_store_id(),
            search=search,
            categoryId=category_id,
            page=page,
            page_size=page_size,
        )

    async def orders(
        self,
        payment_status: str | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> PaginatedResponse[OrderResponse]:
        return await self.api.list_orders(
            self.session.require_store_id(),
            paymentStatus=payment_status,
            search=search,
            page=page,
            page_size=page_size,
        )

    async def order_stats(self) -> OrderStats:
        return await self.api.get_order_stats(self.session.require_store_id())

    async def analytics(self) -> AnalyticsOverview:
        store_id = self.session.require_store_id()
        summary, realtime = await asyncio.gather(
            self.api.get_analytics_summary(store_id),
            self.api.get_realtime_analytics(store_id),
        )
        return AnalyticsOverview(summary=summary, realtime=realtime)

    async def store_stats(self) -> StoreStats:
        return await self.api.get_store_stats(self.session.require_store_id())
