"""
Pydantic schemas for event-related request/response validation.
"""

import datetime as dt
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from booking_api.models.event import EventCategory
from booking_api.schemas.common import PaginationMeta
from booking_api.schemas.user import UserSummary

TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    category: EventCategory = EventCategory.OTHER
    location: str = Field(..., min_length=1, max_length=255)
    venue: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN)
    price: float = Field(..., ge=0)
    total_seats: int = Field(..., gt=0, le=100000)
    available_seats: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_available_seats(self):
        if self.available_seats is not None and self.available_seats > self.total_seats:
            raise ValueError("available_seats cannot exceed total_seats")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[EventCategory] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    price: Optional[float] = Field(None, ge=0)
    total_seats: Optional[int] = Field(None, gt=0, le=100000)
    image_url: Optional[str] = Field(None, max_length=500)


class EventSummary(BaseModel):
    id: int
    title: str
    date: dt.date
    time: str
    venue: str
    location: str
    price: float

    model_config = {"from_attributes": True}


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    category: str
    location: str
    venue: str
    date: dt.date
    time: str
    price: float
    total_seats: int
    available_seats: int
    image_url: Optional[str]
    created_by: int
    creator: Optional[UserSummary] = None
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    pagination: PaginationMeta
    cached: bool = False
