"""Unit tests for AnalyticsService.

Tests event recording, summaries, breakdowns, grouped ranges and the
realtime window.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.services.analytics_service import AnalyticsService, _period_key
from tests.conftest import OTHER_STORE_ID, TEST_STORE_ID


def _at(day: int, hour: int = 12) -> datetime:
    return datetime(2024, 6, day, hour, 0, tzinfo=UTC)


class TestRecordEvent:
    @pytest.mark.asyncio
    async def test_persists_request_metadata(self, db_session: AsyncSession) -> None:
        event = await AnalyticsService(db_session).record_event(
            TEST_STORE_ID,
            "widget_view",
            {"productId": "5"},
            user_agent="Mozilla/5.0",
            ip_address="203.0.113.9",
        )

        assert event.id is not None
        assert event.event_data == {"productId": "5"}
        assert event.ip_address == "203.0.113.9"


class TestGetSummary:
    @pytest.mark.asyncio
    async def test_counts(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        await event_factory(event_type="widget_view", created_at=_at(1, 9))
        await event_factory(event_type="widget_view", created_at=_at(2, 9))
        await event_factory(event_type="recommendation_click", created_at=_at(2, 15))
        await event_factory(store_id=OTHER_STORE_ID, created_at=_at(2))

        summary = await AnalyticsService(db_session).get_summary(TEST_STORE_ID)

        assert summary.total_events == 3
        assert summary.event_types == {"widget_view": 2, "recommendation_click": 1}
        assert summary.daily_events == {"2024-06-01": 1, "2024-06-02": 2}
        assert summary.hourly_events == {9: 2, 15: 1}
        assert summary.top_events[0].event_type == "widget_view"

    @pytest.mark.asyncio
    async def test_all_stores_when_unfiltered(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        await event_factory(created_at=_at(1))
        await event_factory(store_id=OTHER_STORE_ID, created_at=_at(1))

        summary = await AnalyticsService(db_session).get_summary(None)

        assert summary.total_events == 2

    @pytest.mark.asyncio
    async def test_date_window(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        await event_factory(created_at=_at(1))
        await event_factory(created_at=_at(10))

        summary = await AnalyticsService(db_session).get_summary(
            TEST_STORE_ID, start=_at(5), end=_at(20)
        )

        assert summary.total_events == 1


class TestBreakdownAndRange:
    @pytest.mark.asyncio
    async def test_breakdown_newest_day_first(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        await event_factory(event_type="widget_view", created_at=_at(1))
        await event_factory(event_type="widget_view", created_at=_at(3))
        await event_factory(event_type="add_to_cart", created_at=_at(3))

        breakdown = await AnalyticsService(db_session).get_breakdown(TEST_STORE_ID)

        assert [(b.date, b.event_type, b.count) for b in breakdown] == [
            ("2024-06-03", "widget_view", 1),
            ("2024-06-03", "add_to_cart", 1),
            ("2024-06-01", "widget_view", 1),
        ]

    @pytest.mark.asyncio
    async def test_range_by_month(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        await event_factory(created_at=_at(1))
        await event_factory(created_at=_at(15))

        events = await AnalyticsService(db_session).get_range(
            TEST_STORE_ID, _at(1, 0), _at(30), "month"
        )

        assert [(e.period, e.count) for e in events] == [("2024-06", 2)]

    @pytest.mark.parametrize(
        "group_by,expected",
        [
            ("hour", "2024-06-03 14:00"),
            ("day", "2024-06-03"),
            ("week", "2024-W23"),
            ("month", "2024-06"),
        ],
    )
    def test_period_key(self, group_by: Any, expected: str) -> None:
        assert _period_key(_at(3, 14), group_by) == expected


class TestTopAndRealtime:
    @pytest.mark.asyncio
    async def test_top_events(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        await event_factory(event_type="a", created_at=_at(1))
        await event_factory(event_type="b", created_at=_at(1))
        await event_factory(event_type="b", created_at=_at(4))

        top = await AnalyticsService(db_session).get_top_events(TEST_STORE_ID, limit=1)

        assert len(top) == 1
        assert top[0].event_type == "b"
        assert top[0].count == 2
        assert top[0].first_seen is not None and top[0].first_seen.day == 1
        assert top[0].last_seen is not None and top[0].last_seen.day == 4

    @pytest.mark.asyncio
    async def test_realtime_window(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        now = datetime.now(UTC)
        await event_factory(event_type="widget_view", created_at=now - timedelta(minutes=5))
        await event_factory(event_type="widget_view", created_at=now - timedelta(hours=3))

        realtime = await AnalyticsService(db_session).get_realtime(TEST_STORE_ID)

        assert [(b.event_type, b.count) for b in realtime.breakdown] == [("widget_view", 1)]
        assert len(realtime.recent_events) == 1
        assert realtime.end - realtime.start == timedelta(hours=1)


class TestProductActivity:
    @pytest.mark.asyncio
    async def test_matches_product_id_in_payload(
        self, db_session: AsyncSession, event_factory: Callable[..., Any]
    ) -> None:
        await event_factory(event_type="recommendation_click", event_data={"productId": 5})
        await event_factory(event_type="recommendation_click", event_data={"productId": "6"})
        await event_factory(event_type="widget_view", event_data={})

        activity = await AnalyticsService(db_session).get_product_activity(TEST_STORE_ID, "5")

        assert len(activity) == 1
        assert activity[0].count == 1
