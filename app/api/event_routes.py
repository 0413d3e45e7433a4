"""
Event Bus API endpoints for the change feed.

Provides endpoints to monitor event statistics.
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_service_event_bus
from app.api.models import EventStatsResponse
from app.events.bus import EventBus

router = APIRouter(prefix="/v1/events", tags=["events"])


@router.get("/stats", response_model=EventStatsResponse)
async def get_event_stats(event_bus: EventBus = Depends(get_service_event_bus)) -> EventStatsResponse:
    """
    Get event bus statistics.

    Returns:
        Statistics about event publishing and subscriptions:
        - total_published: Total events published since startup
        - total_delivered: Total deliveries to listeners
        - total_dropped: Events dropped on full listener buffers
        - subscriber_count: Number of live listeners
        - topics: Live listeners per topic
    """
    return EventStatsResponse(**event_bus.get_statistics())
