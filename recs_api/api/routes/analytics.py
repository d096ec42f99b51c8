"""Analytics endpoints: widget event beacons and admin reporting."""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, Request, status

from recs_api.core.deps import DBSession
from recs_api.core.rate_limit import ANALYTICS_EVENT_LIMIT, get_client_ip, limiter
from recs_api.schemas.analytics import (
    AnalyticsEventCreate,
    AnalyticsEventCreated,
    AnalyticsEventResponse,
    AnalyticsRangeResponse,
    AnalyticsSummaryResponse,
    EventBreakdownResponse,
    GroupBy,
    RealtimeAnalyticsResponse,
    TopEventsResponse,
)
from recs_api.schemas.common import PaginatedResponse
from recs_api.services.analytics_service import AnalyticsService

router = APIRouter()

StoreFilter = Query(None, alias="storeId", max_length=64)
StartDate = Query(None, alias="startDate")
EndDate = Query(None, alias="endDate")


@router.post("/", response_model=AnalyticsEventCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit(ANALYTICS_EVENT_LIMIT)
async def record_event(
    request: Request,
    event: AnalyticsEventCreate,
    db: DBSession,
) -> AnalyticsEventCreated:
    """Record one storefront widget event."""
    created = await AnalyticsService(db).record_event(
        store_id=event.store_id,
        event_type=event.event_type,
        event_data=event.event_data,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request),
    )
    return AnalyticsEventCreated(event=AnalyticsEventResponse.model_validate(created))


@router.get("/", response_model=PaginatedResponse[AnalyticsEventResponse])
async def list_events(
    db: DBSession,
    store_id: str | None = StoreFilter,
    event_type: str | None = Query(None, alias="eventType"),
    start_date: datetime | None = StartDate,
    end_date: datetime | None = EndDate,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[AnalyticsEventResponse]:
    """Raw events, newest first."""
    items, total = await AnalyticsService(db).list_events(
        store_id,
        event_type=event_type,
        start=start_date,
        end=end_date,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse[AnalyticsEventResponse].build(items, total, page, page_size)


@router.get("/summary", response_model=AnalyticsSummaryResponse)
async def summary(
    db: DBSession,
    store_id: str | None = StoreFilter,
    start_date: datetime | None = StartDate,
    end_date: datetime | None = EndDate,
) -> AnalyticsSummaryResponse:
    result = await AnalyticsService(db).get_summary(store_id, start_date, end_date)
    return AnalyticsSummaryResponse(summary=result)


@router.get("/events/breakdown", response_model=EventBreakdownResponse)
async def events_breakdown(
    db: DBSession,
    store_id: str | None = StoreFilter,
    start_date: datetime | None = StartDate,
    end_date: datetime | None = EndDate,
) -> EventBreakdownResponse:
    """Counts per day and event type."""
    breakdown = await AnalyticsService(db).get_breakdown(store_id, start_date, end_date)
    return EventBreakdownResponse(breakdown=breakdown)


@router.get("/realtime", response_model=RealtimeAnalyticsResponse)
async def realtime(
    db: DBSession,
    store_id: str | None = StoreFilter,
) -> RealtimeAnalyticsResponse:
    """Activity over the last hour."""
    return RealtimeAnalyticsResponse(realtime=await AnalyticsService(db).get_realtime(store_id))


@router.get("/range", response_model=AnalyticsRangeResponse)
async def events_range(
    db: DBSession,
    store_id: str | None = StoreFilter,
    start_date: datetime | None = StartDate,
    end_date: datetime | None = EndDate,
    group_by: GroupBy = Query("day", alias="groupBy"),
) -> AnalyticsRangeResponse:
    """Counts per period (hour, day, week or month) and event type."""
    if start_date is None or end_date is None:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, "Start date and end date are required"
        )
    events = await AnalyticsService(db).get_range(store_id, start_date, end_date, group_by)
    return AnalyticsRangeResponse(
        start_date=start_date,
        end_date=end_date,
        group_by=group_by,
        events=events,
    )


@router.get("/top", response_model=TopEventsResponse)
async def top_events(
    db: DBSession,
    store_id: str | None = StoreFilter,
    start_date: datetime | None = StartDate,
    end_date: datetime | None = EndDate,
    limit: int = Query(10, ge=1, le=100),
) -> TopEventsResponse:
    events = await AnalyticsService(db).get_top_events(store_id, limit, start_date, end_date)
    return TopEventsResponse(events=events)
