"""
Tests for the admin reporting service and endpoints.
"""

from datetime import datetime, timezone, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from booking_api.services import dashboard_service
from booking_api.services.dashboard_service import _months_ago


def test_months_ago_clamps_day():
    moment = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)
    assert _months_ago(moment, 1) == datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)
    assert _months_ago(moment, 3) == datetime(2025, 12, 31, 12, 0, tzinfo=timezone.utc)
    assert _months_ago(moment, 12) == datetime(2025, 3, 31, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_empty_dashboard(session_factory):
    async with session_factory() as db:
        stats = await dashboard_service.dashboard_stats(db)

    assert stats["overview"] == {
        "total_events": 0,
        "total_bookings": 0,
        "total_users": 0,
        "total_revenue": 0.0,
    }
    for key in ("monthly_bookings", "popular_events", "category_stats", "recent_bookings", "upcoming_events"):
        assert stats[key] == []


@pytest.mark.asyncio
async def test_overview_counts_confirmed_only(session_factory, make_user, make_event, make_booking):
    users = [await make_user() for _ in range(3)]
    await make_user(role="organizer")
    event = await make_event(price=Decimal("25.00"))
    await make_booking(users[0], event, seats=2)
    await make_booking(users[1], event, seats=1)
    await make_booking(users[2], event, seats=4, status="cancelled")

    async with session_factory() as db:
        overview = await dashboard_service.dashboard_overview(db)

    # make_event adds its own organizer; only role=user accounts count
    assert overview == {
        "total_events": 1,
        "total_bookings": 2,
        "total_users": 3,
        "total_revenue": 75.0,
    }


@pytest.mark.asyncio
async def test_revenue_reconciles(session_factory, make_user, make_event, make_booking):
    """Overview revenue equals the per-event and per-category sums."""
    concert = await make_event(category="concert", price=Decimal("30.00"))
    workshop = await make_event(category="workshop", price=Decimal("12.50"))
    for seats in (1, 2, 3):
        await make_booking(await make_user(), concert, seats=seats)
    await make_booking(await make_user(), workshop, seats=2)
    await make_booking(await make_user(), workshop, seats=1, status="cancelled")

    async with session_factory() as db:
        overview = await dashboard_service.dashboard_overview(db)
        popular = await dashboard_service.popular_events(db)
        categories = await dashboard_service.category_breakdown(db)

    assert overview["total_revenue"] == 205.0
    assert sum(p["total_revenue"] for p in popular) == overview["total_revenue"]
    assert sum(c["total_revenue"] for c in categories) == overview["total_revenue"]


@pytest.mark.asyncio
async def test_popular_events_order_and_ties(session_factory, make_user, make_event, make_booking):
    first = await make_event(title="First")
    second = await make_event(title="Second")
    third = await make_event(title="Third")
    await make_booking(await make_user(), third)
    await make_booking(await make_user(), third)
    await make_booking(await make_user(), second, seats=4)
    await make_booking(await make_user(), first)

    async with session_factory() as db:
        popular = await dashboard_service.popular_events(db)

    assert [p["title"] for p in popular] == ["Third", "First", "Second"]
    assert popular[0]["total_bookings"] == 2
    assert popular[2]["total_seats"] == 4

    async with session_factory() as db:
        assert len(await dashboard_service.popular_events(db, limit=1)) == 1


@pytest.mark.asyncio
async def test_category_breakdown_includes_unbooked(session_factory, make_user, make_event, make_booking):
    concert = await make_event(category="concert")
    await make_event(category="concert")
    await make_event(category="sports")
    await make_event(category="exhibition")
    await make_booking(await make_user(), concert, seats=2)

    async with session_factory() as db:
        categories = await dashboard_service.category_breakdown(db)

    assert categories == [
        {"category": "concert", "event_count": 2, "total_bookings": 1, "total_revenue": 100.0},
        {"category": "exhibition", "event_count": 1, "total_bookings": 0, "total_revenue": 0.0},
        {"category": "sports", "event_count": 1, "total_bookings": 0, "total_revenue": 0.0},
    ]


@pytest.mark.asyncio
async def test_monthly_trend_window(session_factory, make_user, make_event, make_booking):
    now = datetime.now(timezone.utc)
    event = await make_event(price=Decimal("10.00"))
    await make_booking(await make_user(), event, seats=1, created_at=now)
    await make_booking(await make_user(), event, seats=2, created_at=now - timedelta(days=65))
    await make_booking(await make_user(), event, seats=5, created_at=now - timedelta(days=220))
    await make_booking(await make_user(), event, seats=3, created_at=now, status="cancelled")

    async with session_factory() as db:
        trend = await dashboard_service.monthly_trend(db)

    earlier = now - timedelta(days=65)
    assert trend == [
        {"year": earlier.year, "month": earlier.month, "bookings": 1, "revenue": 20.0, "seats": 2},
        {"year": now.year, "month": now.month, "bookings": 1, "revenue": 10.0, "seats": 1},
    ]


@pytest.mark.asyncio
async def test_revenue_series_periods(session_factory, make_user, make_event, make_booking):
    now = datetime.now(timezone.utc)
    event = await make_event(price=Decimal("10.00"))
    three_days_ago = now - timedelta(days=3)
    await make_booking(await make_user(), event, seats=1, created_at=now)
    await make_booking(await make_user(), event, seats=2, created_at=three_days_ago)
    await make_booking(await make_user(), event, seats=4, created_at=now - timedelta(days=65))

    async with session_factory() as db:
        week = await dashboard_service.revenue_series(db, "week")
        year = await dashboard_service.revenue_series(db, "year")

    assert [(p["month"], p["day"], p["revenue"]) for p in week] == [
        (three_days_ago.month, three_days_ago.day, 20.0),
        (now.month, now.day, 10.0),
    ]
    assert all(p["day"] is None for p in year)
    assert sum(p["bookings"] for p in year) == 3
    assert sum(p["revenue"] for p in year) == 70.0


@pytest.mark.asyncio
async def test_revenue_series_unknown_period_uses_month(session_factory, make_user, make_event, make_booking):
    now = datetime.now(timezone.utc)
    event = await make_event(price=Decimal("10.00"))
    await make_booking(await make_user(), event, seats=1, created_at=now - timedelta(days=3))
    await make_booking(await make_user(), event, seats=2, created_at=now - timedelta(days=65))

    async with session_factory() as db:
        fallback = await dashboard_service.revenue_series(db, "decade")
        month = await dashboard_service.revenue_series(db, "month")

    assert fallback == month
    assert [p["revenue"] for p in fallback] == [10.0]
    assert fallback[0]["day"] is not None
    assert dashboard_service.resolve_period(None) == "month"


@pytest.mark.asyncio
async def test_aggregation_is_idempotent(session_factory, make_user, make_event, make_booking):
    event = await make_event()
    await make_booking(await make_user(), event, seats=2)

    async with session_factory() as db:
        first = await dashboard_service.dashboard_stats(db)
    async with session_factory() as db:
        second = await dashboard_service.dashboard_stats(db)

    for key in ("overview", "monthly_bookings", "popular_events", "category_stats"):
        assert first[key] == second[key]


@pytest.mark.asyncio
async def test_upcoming_events_sorted(session_factory, make_event, event_start):
    later = await make_event(title="Later", **event_start(timedelta(days=20)))
    sooner = await make_event(title="Sooner", **event_start(timedelta(days=2)))
    await make_event(title="Past", **event_start(timedelta(days=-3)))

    async with session_factory() as db:
        upcoming = await dashboard_service.upcoming_events(db)

    assert [e.id for e in upcoming] == [sooner.id, later.id]


@pytest.mark.asyncio
async def test_dashboard_stats_endpoint(client: AsyncClient, admin_headers, make_user, make_event, make_booking):
    event = await make_event(title="Big Show")
    await make_booking(await make_user(), event, seats=2)

    response = await client.get("/api/v1/dashboard/stats", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["overview"]["total_bookings"] == 1
    assert data["overview"]["total_revenue"] == 100.0
    assert data["popular_events"][0]["title"] == "Big Show"
    assert data["recent_bookings"][0]["seats_booked"] == 2
    assert data["upcoming_events"][0]["title"] == "Big Show"


@pytest.mark.asyncio
async def test_dashboard_requires_admin(client: AsyncClient, auth_headers, organizer_headers):
    assert (await client.get("/api/v1/dashboard/stats", headers=auth_headers)).status_code == 403
    assert (await client.get("/api/v1/dashboard/revenue", headers=organizer_headers)).status_code == 403
    assert (await client.get("/api/v1/dashboard/stats")).status_code == 401


@pytest.mark.asyncio
async def test_revenue_endpoint(client: AsyncClient, admin_headers, make_user, make_event, make_booking):
    await make_booking(await make_user(), await make_event(), seats=1)

    response = await client.get("/api/v1/dashboard/revenue?period=week", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["period"] == "week"
    assert data["revenue_data"][0]["revenue"] == 50.0

    response = await client.get("/api/v1/dashboard/revenue?period=decade", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["period"] == "month"
    assert response.json()["data"]["revenue_data"][0]["revenue"] == 50.0
