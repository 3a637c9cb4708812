"""
Booking ledger: read side of the bookings table.

Point lookups used by the lifecycle manager and the paginated listings for
users and admins. Ownership mismatches surface as NotFound so a caller cannot
discover other users' bookings.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.exceptions import InvalidInputError, NotFoundError
from booking_api.models.booking import Booking, BookingStatus
from booking_api.models.event import Event
from booking_api.schemas.common import PageParams

BOOKING_STATUSES = {status.value for status in BookingStatus}


@dataclass(frozen=True)
class BookingFilters:
    """Optional admin listing filters, combined with AND."""

    status: Optional[str] = None
    event_id: Optional[int] = None
    user_id: Optional[int] = None

    def conditions(self) -> list:
        conditions = []
        if self.status:
            conditions.append(Booking.status == validate_status(self.status))
        if self.event_id is not None:
            conditions.append(Booking.event_id == self.event_id)
        if self.user_id is not None:
            conditions.append(Booking.user_id == self.user_id)
        return conditions


def validate_status(status: str) -> str:
    if status not in BOOKING_STATUSES:
        raise InvalidInputError(f"Invalid booking status: {status}")
    return status


async def find_confirmed(db: AsyncSession, user_id: int, event_id: int) -> Optional[Booking]:
    result = await db.execute(
        select(Booking).where(
            Booking.user_id == user_id,
            Booking.event_id == event_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
    )
    return result.scalars().first()


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Load a booking with its user and event, refreshing any stale copy."""
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


async def get_user_booking(db: AsyncSession, user_id: int, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id, Booking.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


async def _paginate(db: AsyncSession, conditions: list, page: PageParams) -> tuple[list[Booking], int]:
    total = (await db.execute(select(func.count(Booking.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Booking)
        .where(*conditions)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset(page.offset)
        .limit(page.limit)
    )
    return list(result.scalars().all()), total


async def list_user_bookings(
    db: AsyncSession,
    user_id: int,
    page: PageParams,
    status: Optional[str] = None,
) -> tuple[list[Booking], int]:
    """A user's own bookings, newest first."""
    conditions = [Booking.user_id == user_id]
    if status:
        conditions.append(Booking.status == validate_status(status))
    return await _paginate(db, conditions, page)


async def list_all_bookings(
    db: AsyncSession,
    page: PageParams,
    filters: BookingFilters = BookingFilters(),
) -> tuple[list[Booking], int]:
    """Every booking matching the filters, newest first. Admin only."""
    return await _paginate(db, filters.conditions(), page)


async def get_event_booking_stats(
    db: AsyncSession,
    event_id: int,
    page: PageParams,
    status: Optional[str] = None,
) -> dict:
    """
    Bookings for one event plus per-status totals.

    The stats always cover every status; the status filter only narrows the
    paginated booking list.
    """
    event = (await db.execute(select(Event).where(Event.id == event_id))).scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")

    conditions = [Booking.event_id == event_id]
    if status:
        conditions.append(Booking.status == validate_status(status))
    bookings, total = await _paginate(db, conditions, page)

    stats_rows = await db.execute(
        select(
            Booking.status,
            func.count(Booking.id),
            func.coalesce(func.sum(Booking.seats_booked), 0),
            func.coalesce(func.sum(Booking.total_amount), 0),
        )
        .where(Booking.event_id == event_id)
        .group_by(Booking.status)
        .order_by(Booking.status)
    )
    stats = [
        {
            "status": row[0],
            "count": int(row[1]),
            "total_seats": int(row[2]),
            "total_revenue": float(row[3]),
        }
        for row in stats_rows.all()
    ]

    return {
        "event": event,
        "bookings": bookings,
        "stats": stats,
        "pagination": page.meta(total),
    }
