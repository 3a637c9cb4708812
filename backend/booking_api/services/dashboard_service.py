"""
Reporting: read-only aggregates over the booking ledger for the admin
dashboard.

Only confirmed bookings count towards bookings, seats and revenue. Every
ordering carries an explicit tie-break so the same snapshot always produces
the same output.
"""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, func, extract, and_
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.logging import get_logger
from booking_api.models.booking import Booking, BookingStatus
from booking_api.models.event import Event
from booking_api.models.user import User, UserRole

logger = get_logger(__name__)

REVENUE_PERIODS = ("week", "month", "year")

_CONFIRMED = Booking.status == BookingStatus.CONFIRMED.value


def _months_ago(moment: datetime, months: int) -> datetime:
    """Same wall-clock instant `months` calendar months earlier, day clamped."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_period(period: Optional[str]) -> str:
    """Unknown or missing periods fall back to month."""
    return period if period in REVENUE_PERIODS else "month"


def _window_start(period: str, now: datetime) -> datetime:
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return _months_ago(now, 1)
    return _months_ago(now, 12)


async def dashboard_overview(db: AsyncSession) -> dict:
    total_events = (await db.execute(select(func.count(Event.id)))).scalar_one()
    total_bookings = (await db.execute(select(func.count(Booking.id)).where(_CONFIRMED))).scalar_one()
    total_users = (
        await db.execute(select(func.count(User.id)).where(User.role == UserRole.USER.value))
    ).scalar_one()
    total_revenue = (
        await db.execute(select(func.coalesce(func.sum(Booking.total_amount), 0)).where(_CONFIRMED))
    ).scalar_one()

    return {
        "total_events": int(total_events),
        "total_bookings": int(total_bookings),
        "total_users": int(total_users),
        "total_revenue": float(total_revenue),
    }


async def monthly_trend(
    db: AsyncSession,
    months_back: int = 6,
    now: Optional[datetime] = None,
) -> list[dict]:
    """Confirmed bookings per calendar month over the trailing `months_back` months."""
    now = now or datetime.now(timezone.utc)
    cutoff = _months_ago(now, months_back)

    year = extract("year", Booking.created_at)
    month = extract("month", Booking.created_at)
    result = await db.execute(
        select(
            year.label("year"),
            month.label("month"),
            func.count(Booking.id).label("bookings"),
            func.coalesce(func.sum(Booking.total_amount), 0).label("revenue"),
            func.coalesce(func.sum(Booking.seats_booked), 0).label("seats"),
        )
        .where(_CONFIRMED, Booking.created_at >= cutoff)
        .group_by(year, month)
        .order_by(year.asc(), month.asc())
    )
    return [
        {
            "year": int(row.year),
            "month": int(row.month),
            "bookings": int(row.bookings),
            "revenue": float(row.revenue),
            "seats": int(row.seats),
        }
        for row in result.all()
    ]


async def popular_events(db: AsyncSession, limit: int = 5) -> list[dict]:
    """Events with the most confirmed bookings. Deleted events drop out of the join."""
    booking_count = func.count(Booking.id)
    result = await db.execute(
        select(
            Event.id,
            Event.title,
            Event.category,
            Event.date,
            booking_count.label("total_bookings"),
            func.coalesce(func.sum(Booking.seats_booked), 0).label("total_seats"),
            func.coalesce(func.sum(Booking.total_amount), 0).label("total_revenue"),
        )
        .select_from(Booking)
        .join(Event, Event.id == Booking.event_id)
        .where(_CONFIRMED)
        .group_by(Event.id, Event.title, Event.category, Event.date)
        .order_by(booking_count.desc(), Event.id.asc())
        .limit(limit)
    )
    return [
        {
            "event_id": row.id,
            "title": row.title,
            "category": row.category,
            "date": row.date,
            "total_bookings": int(row.total_bookings),
            "total_seats": int(row.total_seats),
            "total_revenue": float(row.total_revenue),
        }
        for row in result.all()
    ]


async def category_breakdown(db: AsyncSession) -> list[dict]:
    """
    Per category of all events: how many events, and the confirmed bookings
    and revenue they brought in. Categories with no bookings report zeros.
    """
    booking_count = func.count(Booking.id)
    result = await db.execute(
        select(
            Event.category,
            func.count(func.distinct(Event.id)).label("event_count"),
            booking_count.label("total_bookings"),
            func.coalesce(func.sum(Booking.total_amount), 0).label("total_revenue"),
        )
        .select_from(Event)
        .outerjoin(Booking, and_(Booking.event_id == Event.id, _CONFIRMED))
        .group_by(Event.category)
        .order_by(booking_count.desc(), Event.category.asc())
    )
    return [
        {
            "category": row.category,
            "event_count": int(row.event_count),
            "total_bookings": int(row.total_bookings),
            "total_revenue": float(row.total_revenue),
        }
        for row in result.all()
    ]


async def revenue_series(
    db: AsyncSession,
    period: str = "month",
    now: Optional[datetime] = None,
) -> list[dict]:
    """
    Confirmed revenue over the last week, month or year.

    week and month are bucketed per day, year per month. Any other period
    is treated as month.
    """
    period = resolve_period(period)
    now = now or datetime.now(timezone.utc)
    cutoff = _window_start(period, now)
    daily = period != "year"

    buckets = [extract("year", Booking.created_at), extract("month", Booking.created_at)]
    if daily:
        buckets.append(extract("day", Booking.created_at))

    result = await db.execute(
        select(
            *buckets,
            func.coalesce(func.sum(Booking.total_amount), 0),
            func.count(Booking.id),
            func.coalesce(func.sum(Booking.seats_booked), 0),
        )
        .where(_CONFIRMED, Booking.created_at >= cutoff)
        .group_by(*buckets)
        .order_by(*(bucket.asc() for bucket in buckets))
    )

    series = []
    for row in result.all():
        revenue, bookings, seats = row[-3:]
        series.append(
            {
                "year": int(row[0]),
                "month": int(row[1]),
                "day": int(row[2]) if daily else None,
                "revenue": float(revenue),
                "bookings": int(bookings),
                "seats": int(seats),
            }
        )
    return series


async def recent_bookings(db: AsyncSession, limit: int = 10) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(_CONFIRMED)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def upcoming_events(db: AsyncSession, limit: int = 5) -> list[Event]:
    today = datetime.now(timezone.utc).date()
    result = await db.execute(
        select(Event)
        .where(Event.date >= today)
        .order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def dashboard_stats(db: AsyncSession) -> dict:
    stats = {
        "overview": await dashboard_overview(db),
        "monthly_bookings": await monthly_trend(db),
        "popular_events": await popular_events(db),
        "category_stats": await category_breakdown(db),
        "recent_bookings": await recent_bookings(db),
        "upcoming_events": await upcoming_events(db),
    }
    logger.info(
        "dashboard_stats_computed",
        total_events=stats["overview"]["total_events"],
        total_bookings=stats["overview"]["total_bookings"],
    )
    return stats
