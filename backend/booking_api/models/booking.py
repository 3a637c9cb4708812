"""
Booking model representing a user's paid reservation for an event.

Key design decisions:
- Partial unique index on (user_id, event_id) WHERE status = 'confirmed':
  one active booking per user per event, re-booking after cancellation allowed
- Status field allows cancellation without deleting records
- total_amount is frozen at booking time (price x seats)
- event_id is nullable: bookings outlive a deleted event as history
"""

from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, JSON, ForeignKey, Index, CheckConstraint, text,
)
from sqlalchemy.orm import relationship

from booking_api.db.base import Base, TimestampMixin, utcnow


class BookingStatus(str, Enum):
    # pending, paid and refunded are reserved for a real payment integration
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)
    seats_booked = Column(Integer, nullable=False, default=1)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_id = Column(String(64), nullable=True)
    booking_reference = Column(String(36), nullable=False, unique=True)
    booking_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    booking_details = Column(JSON, nullable=False)

    # Payment sub-record, owned by this booking
    payment_method = Column(String(32), nullable=False, default="mock")
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    amount_paid = Column(Numeric(10, 2), nullable=False, default=0)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", lazy="joined")
    event = relationship("Event", lazy="joined")

    __table_args__ = (
        Index(
            "uq_confirmed_booking_user_event",
            "user_id",
            "event_id",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
        Index("ix_bookings_status_created_at", "status", "created_at"),
        CheckConstraint("seats_booked >= 1 AND seats_booked <= 10", name="check_seats_booked_range"),
        CheckConstraint("total_amount >= 0", name="check_total_amount_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'paid', 'refunded')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_payment_status",
        ),
    )

    @property
    def payment_details(self) -> dict:
        return {
            "method": self.payment_method,
            "transaction_id": self.payment_id,
            "status": self.payment_status,
            "amount_paid": self.amount_paid,
            "paid_at": self.paid_at,
            "refunded_at": self.refunded_at,
        }

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
