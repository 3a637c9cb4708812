"""
Admin reporting endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.security import require_admin
from booking_api.db.session import get_db
from booking_api.models.user import User
from booking_api.schemas.booking import BookingResponse
from booking_api.schemas.common import APIResponse
from booking_api.schemas.dashboard import (
    CategoryStat,
    DashboardOverview,
    DashboardStats,
    MonthlyTrendPoint,
    PopularEvent,
    RevenueData,
    RevenuePoint,
    UpcomingEvent,
)
from booking_api.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=APIResponse[DashboardStats])
async def dashboard_stats(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    stats = await dashboard_service.dashboard_stats(db)
    return APIResponse(
        data=DashboardStats(
            overview=DashboardOverview(**stats["overview"]),
            monthly_bookings=[MonthlyTrendPoint(**row) for row in stats["monthly_bookings"]],
            popular_events=[PopularEvent(**row) for row in stats["popular_events"]],
            category_stats=[CategoryStat(**row) for row in stats["category_stats"]],
            recent_bookings=[BookingResponse.model_validate(b) for b in stats["recent_bookings"]],
            upcoming_events=[UpcomingEvent.model_validate(e) for e in stats["upcoming_events"]],
        )
    )


@router.get("/revenue", response_model=APIResponse[RevenueData])
async def revenue(
    period: str = Query("month"),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Confirmed revenue over the last week, month or year (default month)."""
    period = dashboard_service.resolve_period(period)
    series = await dashboard_service.revenue_series(db, period)
    return APIResponse(
        data=RevenueData(period=period, revenue_data=[RevenuePoint(**row) for row in series])
    )
