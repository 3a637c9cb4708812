from booking_api.schemas.common import APIResponse, PageParams, PaginationMeta
from booking_api.schemas.user import UserCreate, UserResponse, UserLogin, UserSummary, Token
from booking_api.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from booking_api.schemas.booking import BookingCreate, BookingResponse, BookingListData
from booking_api.schemas.dashboard import DashboardOverview, DashboardStats, RevenueData

__all__ = [
    "APIResponse", "PageParams", "PaginationMeta",
    "UserCreate", "UserResponse", "UserLogin", "UserSummary", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "BookingCreate", "BookingResponse", "BookingListData",
    "DashboardOverview", "DashboardStats", "RevenueData",
]
