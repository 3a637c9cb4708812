"""
Event endpoints with Redis caching on list operations.
"""

import datetime as dt
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.logging import get_logger
from booking_api.core.security import require_organizer
from booking_api.db.session import get_db
from booking_api.models.event import EventCategory
from booking_api.models.user import User
from booking_api.schemas.common import APIResponse, PageParams
from booking_api.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse, TIME_PATTERN
from booking_api.services import event_service
from booking_api.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from booking_api.services.event_service import EventFilters

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=APIResponse[EventListResponse])
async def list_events_endpoint(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    category: Optional[EventCategory] = Query(None),
    location: Optional[str] = Query(None),
    date: Optional[dt.date] = Query(None),
    time: Optional[str] = Query(None, pattern=TIME_PATTERN),
    search: Optional[str] = Query(None),
    sort_by: str = Query("date"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db),
):
    """
    List events with filters, sorting and pagination.
    Results are cached in Redis; any event write, booking or cancellation
    invalidates them.
    """
    page_params = PageParams.from_query(page, limit)
    filters = EventFilters(
        category=category.value if category else None,
        location=location,
        date=date,
        time=time,
        search=search,
    )
    cache_params = {
        **asdict(filters),
        "page": page_params.page,
        "limit": page_params.limit,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }

    cached = await get_cached_events(cache_params)
    if cached:
        logger.info("events_list_cache_hit", page=page_params.page)
        cached["cached"] = True
        return APIResponse(data=EventListResponse(**cached))

    events, total = await event_service.list_events(db, page_params, filters, sort_by, sort_order)
    listing = EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        pagination=page_params.meta(total),
    )

    await set_cached_events(cache_params, listing.model_dump(mode="json"))
    return APIResponse(data=listing)


@router.get("/categories", response_model=APIResponse[list[str]])
async def list_categories_endpoint(db: AsyncSession = Depends(get_db)):
    return APIResponse(data=await event_service.list_categories(db))


@router.get("/locations", response_model=APIResponse[list[str]])
async def list_locations_endpoint(db: AsyncSession = Depends(get_db)):
    return APIResponse(data=await event_service.list_locations(db))


@router.get("/{event_id}", response_model=APIResponse[EventResponse])
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single event by ID. Not cached (needs real-time seat counts)."""
    event = await event_service.get_event(db, event_id)
    return APIResponse(data=EventResponse.model_validate(event))


@router.post("", response_model=APIResponse[EventResponse], status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Organizers and admins only."""
    event = await event_service.create_event(db, event_data, user.id)
    await invalidate_event_cache()
    return APIResponse(message="Event created successfully", data=EventResponse.model_validate(event))


@router.put("/{event_id}", response_model=APIResponse[EventResponse])
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    user: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
):
    """Update an event. Only its creator or an admin may do this."""
    event = await event_service.update_event(db, event_id, event_data, user)
    await invalidate_event_cache()
    return APIResponse(message="Event updated successfully", data=EventResponse.model_validate(event))


@router.delete("/{event_id}", response_model=APIResponse[None])
async def delete_event_endpoint(
    event_id: int,
    user: User = Depends(require_organizer),
    db: AsyncSession = Depends(get_db),
):
    await event_service.delete_event(db, event_id, user)
    await invalidate_event_cache()
    return APIResponse(message="Event deleted successfully")
