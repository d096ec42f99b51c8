"""Widget usage analytics: event recording and aggregation."""

import logging
from collections import Counter
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from recs_api.models.analytics_event import AnalyticsEvent
from recs_api.schemas.analytics import (
    AnalyticsEventResponse,
    AnalyticsSummary,
    DailyEventCount,
    EventTypeCount,
    GroupBy,
    PeriodEventCount,
    RealtimeAnalytics,
)

logger = logging.getLogger(__name__)

REALTIME_WINDOW = timedelta(hours=1)
RECENT_EVENTS_LIMIT = 10


def _period_key(moment: datetime, group_by: GroupBy) -> str:
    if group_by == "hour":
        return moment.strftime("%Y-%m-%d %H:00")
    if group_by == "week":
        year, week, _ = moment.isocalendar()
        return f"{year}-W{week:02d}"
    if group_by == "month":
        return moment.strftime("%Y-%m")
    return moment.strftime("%Y-%m-%d")


class AnalyticsService:
    """Records storefront events and answers the admin analytics queries."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record_event(
        self,
        store_id: str,
        event_type: str,
        event_data: dict[str, Any],
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> AnalyticsEvent:
        event = AnalyticsEvent(
            store_id=store_id,
            event_type=event_type,
            event_data=event_data,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self.db.add(event)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    @staticmethod
    def _filtered(
        stmt: Select[Any],
        store_id: str | None,
        start: datetime | None = None,
        end: datetime | None = None,
        event_type: str | None = None,
    ) -> Select[Any]:
        if store_id:
            stmt = stmt.where(AnalyticsEvent.store_id == store_id)
        if start:
            stmt = stmt.where(AnalyticsEvent.created_at >= start)
        if end:
            stmt = stmt.where(AnalyticsEvent.created_at <= end)
        if event_type:
            stmt = stmt.where(AnalyticsEvent.event_type == event_type)
        return stmt

    async def list_events(
        self,
        store_id: str | None,
        *,
        event_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[AnalyticsEventResponse], int]:
        """A page of raw events, newest first, plus the total count."""
        count_stmt = self._filtered(
            select(func.count()).select_from(AnalyticsEvent), store_id, start, end, event_type
        )
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            self._filtered(select(AnalyticsEvent), store_id, start, end, event_type)
            .order_by(AnalyticsEvent.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        events = (await self.db.execute(stmt)).scalars().all()
        return [AnalyticsEventResponse.model_validate(e) for e in events], total

    async def _timestamps(
        self, store_id: str | None, start: datetime | None, end: datetime | None
    ) -> list[tuple[str, datetime]]:
        stmt = self._filtered(
            select(AnalyticsEvent.event_type, AnalyticsEvent.created_at), store_id, start, end
        )
        return [(row.event_type, row.created_at) for row in await self.db.execute(stmt)]

    async def get_summary(
        self,
        store_id: str | None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> AnalyticsSummary:
        """Totals by type, by day and by hour of day."""
        rows = await self._timestamps(store_id, start, end)

        by_type: Counter[str] = Counter()
        by_day: Counter[str] = Counter()
        by_hour: Counter[int] = Counter()
        for event_type, created_at in rows:
            by_type[event_type] += 1
            by_day[created_at.strftime("%Y-%m-%d")] += 1
            by_hour[created_at.hour] += 1

        return AnalyticsSummary(
            total_events=len(rows),
            event_types=dict(by_type),
            daily_events=dict(sorted(by_day.items())),
            hourly_events=dict(sorted(by_hour.items())),
            top_events=[
                EventTypeCount(event_type=t, count=c) for t, c in by_type.most_common(10)
            ],
        )

    async def get_breakdown(
        self,
        store_id: str | None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DailyEventCount]:
        """Counts per (day, event type), newest day first."""
        rows = await self._timestamps(store_id, start, end)
        counts = Counter((created_at.strftime("%Y-%m-%d"), t) for t, created_at in rows)
        ordered = sorted(counts.items(), key=lambda item: (item[0][0], item[1]), reverse=True)
        return [DailyEventCount(date=day, event_type=t, count=c) for (day, t), c in ordered]

    async def get_range(
        self,
        store_id: str | None,
        start: datetime,
        end: datetime,
        group_by: GroupBy = "day",
    ) -> list[PeriodEventCount]:
        rows = await self._timestamps(store_id, start, end)
        counts = Counter((_period_key(created_at, group_by), t) for t, created_at in rows)
        ordered = sorted(counts.items(), key=lambda item: (item[0][0], item[1]), reverse=True)
        return [PeriodEventCount(period=p, event_type=t, count=c) for (p, t), c in ordered]

    async def get_top_events(
        self,
        store_id: str | None,
        limit: int = 10,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[EventTypeCount]:
        """Most frequent event types with first/last occurrence."""
        count = func.count().label("count")
        stmt = (
            self._filtered(
                select(
                    AnalyticsEvent.event_type,
                    count,
                    func.min(AnalyticsEvent.created_at).label("first_seen"),
                    func.max(AnalyticsEvent.created_at).label("last_seen"),
                ),
                store_id,
                start,
                end,
            )
            .group_by(AnalyticsEvent.event_type)
            .order_by(count.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [
            EventTypeCount(
                event_type=row.event_type,
                count=row.count,
                first_seen=row.first_seen,
                last_seen=row.last_seen,
            )
            for row in result
        ]

    async def get_realtime(self, store_id: str | None) -> RealtimeAnalytics:
        """Activity in the last hour plus the latest events."""
        end = datetime.now(UTC)
        start = end - REALTIME_WINDOW

        breakdown = await self.get_top_events(store_id, limit=100, start=start)

        stmt = (
            self._filtered(select(AnalyticsEvent), store_id, start)
            .order_by(AnalyticsEvent.created_at.desc())
            .limit(RECENT_EVENTS_LIMIT)
        )
        recent = (await self.db.execute(stmt)).scalars().all()

        return RealtimeAnalytics(
            breakdown=breakdown,
            recent_events=[AnalyticsEventResponse.model_validate(e) for e in recent],
            start=start,
            end=end,
        )

    async def get_product_activity(
        self, store_id: str, ecwid_product_id: str
    ) -> list[DailyEventCount]:
        """Daily event counts for events whose payload names the product."""
        return await self._activity_for(store_id, "productId", ecwid_product_id)

    async def get_order_activity(self, store_id: str, ecwid_order_id: str) -> list[DailyEventCount]:
        """Daily event counts for events whose payload names the order."""
        return await self._activity_for(store_id, "orderId", ecwid_order_id)

    async def _activity_for(self, store_id: str, key: str, value: str) -> list[DailyEventCount]:
        stmt = self._filtered(
            select(
                AnalyticsEvent.event_type,
                AnalyticsEvent.created_at,
                AnalyticsEvent.event_data,
            ),
            store_id,
        )
        counts: Counter[tuple[str, str]] = Counter()
        for row in await self.db.execute(stmt):
            data = row.event_data or {}
            if str(data.get(key, "")) == value:
                counts[(row.created_at.strftime("%Y-%m-%d"), row.event_type)] += 1
        ordered = sorted(counts.items(), key=lambda item: (item[0][0], item[1]), reverse=True)
        return [DailyEventCount(date=day, event_type=t, count=c) for (day, t), c in ordered[:30]]
