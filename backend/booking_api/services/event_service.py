"""
Event service: CRUD plus the seat-inventory primitives the booking lifecycle
depends on.

SEAT INVENTORY CONTRACT
=======================

`available_seats` is never assigned from a value read earlier in Python.
Every change is a single conditional UPDATE evaluated by the database:

  reserve:  SET available_seats = available_seats - :n
            WHERE id = :id AND available_seats >= :n
  release:  SET available_seats = min(available_seats + :n, total_seats)
            WHERE id = :id

rowcount == 0 means the condition did not hold at write time. Two callers
racing for the last seat therefore cannot both succeed: the second UPDATE
sees the first one's decrement (row lock in PostgreSQL) and matches no row.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update, delete, func, or_, case
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.exceptions import (
    ConflictError, ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError,
)
from booking_api.core.logging import get_logger
from booking_api.models.booking import Booking, BookingStatus
from booking_api.models.event import Event
from booking_api.models.user import User
from booking_api.schemas.common import PageParams
from booking_api.schemas.event import EventCreate, EventUpdate

logger = get_logger(__name__)

SORTABLE_FIELDS = {
    "date": Event.date,
    "price": Event.price,
    "title": Event.title,
    "created_at": Event.created_at,
}


@dataclass(frozen=True)
class EventFilters:
    """Optional listing filters, combined with AND."""

    category: Optional[str] = None
    location: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    search: Optional[str] = None

    def conditions(self) -> list:
        conditions = []
        if self.category:
            conditions.append(Event.category == self.category)
        if self.location:
            conditions.append(Event.location.ilike(f"%{self.location}%"))
        if self.date:
            conditions.append(Event.date == self.date)
        if self.time:
            conditions.append(Event.time == self.time)
        if self.search:
            pattern = f"%{self.search}%"
            conditions.append(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))
        return conditions


def _ensure_can_manage(event: Event, actor: User) -> None:
    if event.created_by != actor.id and not actor.is_admin:
        raise ForbiddenError("Access denied. Insufficient permissions.")


async def create_event(db: AsyncSession, event_data: EventCreate, organizer_id: int) -> Event:
    """Create a new event. Available seats default to the full capacity."""
    if event_data.date <= dt.datetime.now(dt.timezone.utc).date():
        raise InvalidInputError("Event date must be in the future")

    available = event_data.available_seats
    event = Event(
        title=event_data.title,
        description=event_data.description,
        category=event_data.category.value,
        location=event_data.location,
        venue=event_data.venue,
        date=event_data.date,
        time=event_data.time,
        price=Decimal(str(event_data.price)),
        total_seats=event_data.total_seats,
        available_seats=event_data.total_seats if available is None else available,
        image_url=event_data.image_url,
        created_by=organizer_id,
    )
    db.add(event)
    await db.commit()

    logger.info("event_created", event_id=event.id, title=event.title, seats=event.total_seats)
    return await get_event(db, event.id)


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID, always reading the latest persisted row."""
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError("Event not found")
    return event


async def list_events(
    db: AsyncSession,
    page: PageParams,
    filters: EventFilters = EventFilters(),
    sort_by: str = "date",
    sort_order: str = "asc",
) -> tuple[list[Event], int]:
    """List events with optional filters, sorting and pagination."""
    conditions = filters.conditions()

    total = (await db.execute(select(func.count(Event.id)).where(*conditions))).scalar_one()

    if sort_by in SORTABLE_FIELDS and sort_by != "date":
        sort_columns = [SORTABLE_FIELDS[sort_by]]
    else:
        # zero-padded HH:MM orders correctly as a string
        sort_columns = [Event.date, Event.time]
    ordering = [c.desc() if sort_order == "desc" else c.asc() for c in sort_columns]
    result = await db.execute(
        select(Event)
        .where(*conditions)
        .order_by(*ordering, Event.id.asc())
        .offset(page.offset)
        .limit(page.limit)
    )
    return list(result.scalars().all()), total


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate, actor: User) -> Event:
    """
    Owner/admin edit. A new total_seats shifts available_seats by the same
    delta, refused when it would drop below the seats already sold.
    """
    event = await get_event(db, event_id)
    _ensure_can_manage(event, actor)

    changes = event_data.model_dump(exclude_unset=True, exclude_none=True)
    if "category" in changes:
        changes["category"] = event_data.category.value
    if "price" in changes:
        changes["price"] = Decimal(str(event_data.price))
    if "date" in changes and changes["date"] <= dt.datetime.now(dt.timezone.utc).date():
        raise InvalidInputError("Event date must be in the future")

    new_total = changes.pop("total_seats", None)
    if new_total is not None and new_total != event.total_seats:
        delta = new_total - event.total_seats
        result = await db.execute(
            update(Event)
            .where(Event.id == event_id, Event.available_seats + delta >= 0)
            .values(
                total_seats=new_total,
                available_seats=Event.available_seats + delta,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise InvalidStateError("Cannot reduce total seats below seats already booked")

    if changes:
        await db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )

    await db.commit()
    logger.info("event_updated", event_id=event_id, fields=sorted(changes), total_seats=new_total)
    return await get_event(db, event_id)


async def delete_event(db: AsyncSession, event_id: int, actor: User) -> None:
    """
    Delete an event. Refused while confirmed bookings exist; remaining
    (cancelled) bookings are kept as history with their event reference cleared.
    """
    event = await get_event(db, event_id)
    _ensure_can_manage(event, actor)

    active = (
        await db.execute(
            select(func.count(Booking.id)).where(
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
        )
    ).scalar_one()
    if active:
        raise ConflictError(f"Event has {active} active bookings and cannot be deleted")

    await db.execute(update(Booking).where(Booking.event_id == event_id).values(event_id=None))
    await db.execute(delete(Event).where(Event.id == event_id))
    await db.commit()
    logger.info("event_deleted", event_id=event_id, actor_id=actor.id)


async def list_categories(db: AsyncSession) -> list[str]:
    result = await db.execute(select(Event.category).distinct().order_by(Event.category))
    return list(result.scalars().all())


async def list_locations(db: AsyncSession) -> list[str]:
    result = await db.execute(select(Event.location).distinct().order_by(Event.location))
    return list(result.scalars().all())


async def get_available_seats(db: AsyncSession, event_id: int) -> Optional[int]:
    result = await db.execute(select(Event.available_seats).where(Event.id == event_id))
    return result.scalar_one_or_none()


async def reserve_seats(db: AsyncSession, event_id: int, seats: int) -> bool:
    """Atomically take `seats` from the inventory. False if not enough remain."""
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.available_seats >= seats)
        .values(available_seats=Event.available_seats - seats)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def release_seats(db: AsyncSession, event_id: int, seats: int) -> bool:
    """Atomically give `seats` back, capped at total_seats. False if the event is gone."""
    restored = Event.available_seats + seats
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(available_seats=case((restored > Event.total_seats, Event.total_seats), else_=restored))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
