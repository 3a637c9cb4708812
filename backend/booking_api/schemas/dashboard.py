"""
Read models produced by the reporting service.
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel

from booking_api.schemas.booking import BookingResponse


class DashboardOverview(BaseModel):
    total_events: int
    total_bookings: int
    total_users: int
    total_revenue: float


class MonthlyTrendPoint(BaseModel):
    year: int
    month: int
    bookings: int
    revenue: float
    seats: int


class PopularEvent(BaseModel):
    event_id: int
    title: str
    category: str
    date: dt.date
    total_bookings: int
    total_seats: int
    total_revenue: float


class CategoryStat(BaseModel):
    category: str
    event_count: int
    total_bookings: int
    total_revenue: float


class RevenuePoint(BaseModel):
    year: int
    month: int
    day: Optional[int] = None
    revenue: float
    bookings: int
    seats: int


class UpcomingEvent(BaseModel):
    id: int
    title: str
    date: dt.date
    time: str
    venue: str
    available_seats: int
    total_seats: int

    model_config = {"from_attributes": True}


class DashboardStats(BaseModel):
    overview: DashboardOverview
    monthly_bookings: list[MonthlyTrendPoint]
    popular_events: list[PopularEvent]
    category_stats: list[CategoryStat]
    recent_bookings: list[BookingResponse]
    upcoming_events: list[UpcomingEvent]


class RevenueData(BaseModel):
    period: str
    revenue_data: list[RevenuePoint]
