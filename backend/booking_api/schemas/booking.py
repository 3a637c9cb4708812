"""
Pydantic schemas for booking-related request/response validation.
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from booking_api.schemas.common import PaginationMeta
from booking_api.schemas.event import EventSummary
from booking_api.schemas.user import UserSummary

PHONE_PATTERN = r"^\+?[\d\s\-()]{10,}$"


class BookingDetails(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    emergency_contact: str = Field(..., min_length=2, max_length=100)
    emergency_phone: str = Field(..., pattern=PHONE_PATTERN)
    special_requests: str = ""


class PaymentDetailsIn(BaseModel):
    method: str = Field("mock", min_length=1, max_length=32)


class BookingCreate(BaseModel):
    event_id: int
    seats_booked: int = Field(default=1, ge=1, le=10)
    booking_details: BookingDetails
    payment_details: PaymentDetailsIn = Field(default_factory=PaymentDetailsIn)


class PaymentDetailsResponse(BaseModel):
    method: str
    transaction_id: Optional[str]
    status: str
    amount_paid: float
    paid_at: Optional[dt.datetime]
    refunded_at: Optional[dt.datetime]


class BookingResponse(BaseModel):
    id: int
    user_id: int
    event_id: Optional[int]
    seats_booked: int
    total_amount: float
    status: str
    payment_id: Optional[str]
    booking_reference: str
    booking_date: dt.datetime
    booking_details: BookingDetails
    payment_details: PaymentDetailsResponse
    user: Optional[UserSummary] = None
    event: Optional[EventSummary] = None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class PaymentReceipt(BaseModel):
    transaction_id: Optional[str]
    amount: float
    status: str


class BookingCreateData(BaseModel):
    booking: BookingResponse
    payment: PaymentReceipt


class BookingCancelData(BaseModel):
    booking: BookingResponse


class BookingListData(BaseModel):
    bookings: list[BookingResponse]
    pagination: PaginationMeta


class EventBrief(BaseModel):
    id: int
    title: str
    date: dt.date
    venue: str
    location: str

    model_config = {"from_attributes": True}


class BookingStatusStat(BaseModel):
    status: str
    count: int
    total_seats: int
    total_revenue: float


class EventBookingsData(BaseModel):
    event: EventBrief
    bookings: list[BookingResponse]
    stats: list[BookingStatusStat]
    pagination: PaginationMeta
