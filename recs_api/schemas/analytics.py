"""Analytics Pydantic schemas for storefront widget events."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from recs_api.schemas.common import ApiResponse, BaseSchema

GroupBy = Literal["hour", "day", "week", "month"]


class AnalyticsEventCreate(BaseSchema):
    """Event beacon posted by the storefront widget."""

    store_id: str = Field(..., min_length=1, max_length=64, alias="storeId")
    event_type: str = Field(..., min_length=1, max_length=100, alias="eventType")
    event_data: dict[str, Any] = Field(default_factory=dict, alias="eventData")


class AnalyticsEventResponse(BaseSchema):
    id: UUID
    store_id: str
    event_type: str
    event_data: dict[str, Any]
    user_agent: str | None = None
    ip_address: str | None = None
    created_at: datetime


class AnalyticsEventCreated(ApiResponse):
    event: AnalyticsEventResponse


class EventTypeCount(BaseSchema):
    """Count of one event type, with first/last occurrence."""

    event_type: str
    count: int
    first_seen: datetime | None = None
    last_seen: datetime | None = None


class DailyEventCount(BaseSchema):
    date: str  # YYYY-MM-DD
    event_type: str
    count: int


class AnalyticsSummary(BaseSchema):
    total_events: int
    event_types: dict[str, int]
    daily_events: dict[str, int]
    hourly_events: dict[int, int]
    top_events: list[EventTypeCount]


class AnalyticsSummaryResponse(ApiResponse):
    summary: AnalyticsSummary


class EventBreakdownResponse(ApiResponse):
    breakdown: list[DailyEventCount]


class RealtimeAnalytics(BaseSchema):
    """Activity over the last hour."""

    breakdown: list[EventTypeCount]
    recent_events: list[AnalyticsEventResponse]
    start: datetime
    end: datetime


class RealtimeAnalyticsResponse(ApiResponse):
    realtime: RealtimeAnalytics


class PeriodEventCount(BaseSchema):
    period: str
    event_type: str
    count: int


class AnalyticsRangeResponse(ApiResponse):
    start_date: datetime
    end_date: datetime
    group_by: GroupBy
    events: list[PeriodEventCount]


class TopEventsResponse(ApiResponse):
    events: list[EventTypeCount]
