"""API routes for the ride share data layer.

Thin HTTP surface over the consumer adapters. Every dataset response carries
the same status fields as the adapters (``loading``, ``error``) so a client
can show last-known data with a non-blocking error indicator.

Freshness:
- Locations: cached per city for 5 minutes
- Suggestions: cached for 2 minutes
- Notifications: no TTL, invalidated every 15s while a stream is open
"""

import json
import logging
from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from app.models import (
    LocationAnalytics,
    LocationRecord,
    Notification,
    SuggestionRecord,
)
from app.services import DataLayer, ReadResult

logger = logging.getLogger(__name__)

router = APIRouter()


def get_data_layer(request: Request) -> DataLayer:
    """Data layer created by the application lifespan."""
    return request.app.state.data_layer


# ─── Response models ───


class DatasetStatus(BaseModel):
    loading: bool = False
    error: Optional[str] = Field(None, description="Last fetch error, if any")


class LocationsResponse(DatasetStatus):
    city: str
    locations: list[LocationRecord] = Field(default_factory=list)
    grouped: dict[str, list[LocationRecord]] = Field(default_factory=dict)
    category_order: list[str] = Field(default_factory=list)


class SuggestionsResponse(DatasetStatus):
    suggestions: list[SuggestionRecord] = Field(default_factory=list)


class UnreadCountResponse(DatasetStatus):
    user_id: str
    unread_count: int = 0


class NotificationsResponse(DatasetStatus):
    user_id: str
    notifications: list[Notification] = Field(default_factory=list)


def _raise_if_unavailable(result: ReadResult) -> None:
    """First-ever load failures surface as an error instead of empty data."""
    if result.data is None and result.error:
        raise HTTPException(status_code=502, detail=result.error)


def _locations_response(city: str, categories: tuple[str, ...], result: ReadResult) -> LocationsResponse:
    _raise_if_unavailable(result)
    return LocationsResponse(
        city=city,
        locations=result.data or [],
        grouped=result.view or {},
        category_order=list(categories),
        loading=result.loading,
        error=result.error,
    )


# ─── Locations ───


@router.get("/locations", response_model=LocationsResponse)
async def get_locations(
    city: Optional[str] = Query(None, description="City, defaults to the configured one"),
    data: DataLayer = Depends(get_data_layer),
) -> LocationsResponse:
    adapter = data.locations(city)
    result = await adapter.read()
    return _locations_response(adapter.city, adapter.category_order, result)


@router.get("/locations/by-name", response_model=LocationRecord)
async def get_location_by_name(
    name: str = Query(..., min_length=1),
    city: Optional[str] = Query(None),
    data: DataLayer = Depends(get_data_layer),
) -> LocationRecord:
    adapter = data.locations(city)
    _raise_if_unavailable(await adapter.read())
    location = adapter.get_location_by_name(name)
    if location is None:
        raise HTTPException(status_code=404, detail=f"Unknown location: {name}")
    return location


@router.post("/locations/refresh", response_model=LocationsResponse)
async def refresh_locations(
    city: Optional[str] = Query(None),
    data: DataLayer = Depends(get_data_layer),
) -> LocationsResponse:
    adapter = data.locations(city)
    result = await adapter.refresh()
    return _locations_response(adapter.city, adapter.category_order, result)


@router.get("/locations/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    q: Optional[str] = Query(None, description="Typed location text"),
    limit: int = Query(8, ge=1, le=50),
    data: DataLayer = Depends(get_data_layer),
) -> SuggestionsResponse:
    adapter = data.suggestions()
    suggestions = await adapter.get_filtered_suggestions(q, limit)
    result = adapter.snapshot()
    _raise_if_unavailable(result)
    return SuggestionsResponse(
        suggestions=suggestions, loading=result.loading, error=result.error
    )


@router.post("/locations/suggestions/refresh", response_model=SuggestionsResponse)
async def refresh_suggestions(
    data: DataLayer = Depends(get_data_layer),
) -> SuggestionsResponse:
    result = await data.suggestions().refresh()
    _raise_if_unavailable(result)
    return SuggestionsResponse(
        suggestions=result.view or [], loading=result.loading, error=result.error
    )


@router.get("/locations/analytics", response_model=LocationAnalytics)
async def get_location_analytics(
    limit: int = Query(15, ge=1, le=100),
    data: DataLayer = Depends(get_data_layer),
) -> LocationAnalytics:
    adapter = data.suggestions()
    analytics = await adapter.location_analytics(limit)
    _raise_if_unavailable(adapter.snapshot())
    return analytics


# ─── Notifications ───


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user_id: str = Query(..., min_length=1),
    data: DataLayer = Depends(get_data_layer),
) -> UnreadCountResponse:
    result = await data.unread_notifications(user_id).read()
    _raise_if_unavailable(result)
    return UnreadCountResponse(
        user_id=user_id,
        unread_count=result.view or 0,
        loading=result.loading,
        error=result.error,
    )


@router.get("/notifications", response_model=NotificationsResponse)
async def get_notifications(
    user_id: str = Query(..., min_length=1),
    data: DataLayer = Depends(get_data_layer),
) -> NotificationsResponse:
    result = await data.notification_feed(user_id).read()
    _raise_if_unavailable(result)
    return NotificationsResponse(
        user_id=user_id,
        notifications=result.view or [],
        loading=result.loading,
        error=result.error,
    )


@router.post("/notifications/read-all")
async def mark_all_notifications_read(
    user_id: str = Query(..., min_length=1),
    data: DataLayer = Depends(get_data_layer),
) -> dict[str, Any]:
    await data.mark_all_notifications_read(user_id)
    return {"success": True}


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user_id: str = Query(..., min_length=1),
    data: DataLayer = Depends(get_data_layer),
) -> dict[str, Any]:
    await data.mark_notification_read(user_id, notification_id)
    return {"success": True}


async def _unread_events(data: DataLayer, user_id: str) -> AsyncIterator[str]:
    stream = data.watch_unread(user_id)
    try:
        async for count in stream:
            yield f"event: unread\ndata: {json.dumps({'user_id': user_id, 'unread_count': count})}\n\n"
    finally:
        await stream.aclose()


@router.get("/notifications/stream")
async def stream_unread_count(
    user_id: str = Query(..., min_length=1),
    data: DataLayer = Depends(get_data_layer),
) -> StreamingResponse:
    """Server-sent events with the unread count, refreshed every poll tick."""
    logger.info(f"[API] notification stream opened for {user_id}")
    return StreamingResponse(
        _unread_events(data, user_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
