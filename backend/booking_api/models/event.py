"""
Event model with seat inventory tracking.

Key design decisions:
- `available_seats` is denormalized (avoids COUNT over bookings) and is only
  ever changed through conditional UPDATE statements in the event service
- CHECK constraints keep 0 <= available_seats <= total_seats at the DB level
- `date` + `time` give the start instant, interpreted in UTC
"""

from datetime import datetime, time, timezone
from enum import Enum

from sqlalchemy import Column, Integer, String, Date, Numeric, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from booking_api.db.base import Base, TimestampMixin


class EventCategory(str, Enum):
    CONFERENCE = "conference"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    CONCERT = "concert"
    SPORTS = "sports"
    EXHIBITION = "exhibition"
    NETWORKING = "networking"
    OTHER = "other"


_CATEGORY_VALUES = ", ".join(f"'{c.value}'" for c in EventCategory)


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=True)
    category = Column(String(20), nullable=False, default=EventCategory.OTHER.value)
    location = Column(String(255), nullable=False)
    venue = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    image_url = Column(String(500), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    creator = relationship("User", lazy="joined")

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("total_seats > 0", name="check_total_seats_positive"),
        CheckConstraint("available_seats <= total_seats", name="check_available_lte_total"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        CheckConstraint(f"category IN ({_CATEGORY_VALUES})", name="check_event_category"),
        Index("ix_events_date", "date"),
        Index("ix_events_category_location_date", "category", "location", "date"),
    )

    @property
    def starts_at(self) -> datetime:
        hours, minutes = (int(part) for part in self.time.split(":"))
        return datetime.combine(self.date, time(hours, minutes), tzinfo=timezone.utc)

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_seats}/{self.total_seats})>"
