"""
Booking lifecycle: paid seat reservation and cancellation.

CONCURRENCY STRATEGY: Conditional Update inside one transaction
================================================================

Problem:
  Two users try to book the last seat simultaneously.
  Both read available_seats=1, both decrement to 0, both succeed.
  Result: Overbooking.

Solution:
  The decrement is a conditional UPDATE (see event_service.reserve_seats):

    UPDATE events SET available_seats = available_seats - N
    WHERE id = :event_id AND available_seats >= N

  rowcount == 0 means another booking took the seats first. The booking row
  is inserted and the seats are taken in the same transaction, so a commit
  makes both visible together and a lost race rolls both back.

  Duplicate bookings are settled the same way: a partial unique index on
  (user_id, event_id) WHERE status = 'confirmed' is the authoritative check,
  the pre-check only gives a cheap early answer. Any other integrity
  failure on insert is an internal error, not a conflict.

Payment ordering:
  All non-monetary preconditions run first, then the read transaction is
  closed and the gateway is charged with nothing locked. A charge is voided
  if the write phase loses a race after payment succeeded.

Cancellation:
  confirmed -> cancelled is itself a conditional UPDATE on status, so two
  concurrent cancels cannot both restore seats. The refund is queued after
  commit and never affects the outcome.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.config import get_settings
from booking_api.core.exceptions import (
    BookingAPIError,
    ConflictError,
    InsufficientCapacityError,
    InternalError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    PaymentFailedError,
)
from booking_api.core.logging import get_logger
from booking_api.core.metrics import booking_latency, record_booking_attempt, record_cancellation, record_payment
from booking_api.db.base import utcnow
from booking_api.models.booking import Booking, BookingStatus, PaymentStatus
from booking_api.services import booking_ledger, event_service
from booking_api.services.interfaces.payment import PaymentGateway, PaymentResult
from booking_api.services.payment_service import get_payment_gateway
from booking_api.services.refund_queue import RefundJob, RefundQueue, get_refund_queue

logger = get_logger(__name__)

_ATTEMPT_OUTCOMES = {
    ConflictError: "conflict",
    InsufficientCapacityError: "no_seats",
    PaymentFailedError: "payment_failed",
    InternalError: "error",
}


async def create_booking(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    seats_booked: int,
    booking_details: dict,
    payment_details: Optional[dict] = None,
    gateway: Optional[PaymentGateway] = None,
) -> tuple[Booking, PaymentResult]:
    """
    Charge for and reserve `seats_booked` seats.

    Returns the persisted booking (user and event loaded) and the gateway
    receipt. Raises NotFoundError, InvalidStateError, ConflictError,
    InsufficientCapacityError, PaymentFailedError, or InternalError when the
    insert fails on anything but the duplicate-booking index; none of them
    leave a booking behind or move the seat counter.
    """
    gateway = gateway or get_payment_gateway()
    with booking_latency.time():
        try:
            booking, payment = await _create_booking(
                db, gateway, user_id, event_id, seats_booked, booking_details, payment_details or {}
            )
        except BookingAPIError as exc:
            record_booking_attempt(_ATTEMPT_OUTCOMES.get(type(exc), "rejected"))
            raise
    record_booking_attempt("success")
    return booking, payment


async def _create_booking(
    db: AsyncSession,
    gateway: PaymentGateway,
    user_id: int,
    event_id: int,
    seats_booked: int,
    booking_details: dict,
    payment_details: dict,
) -> tuple[Booking, PaymentResult]:
    max_seats = get_settings().MAX_SEATS_PER_BOOKING
    if not 1 <= seats_booked <= max_seats:
        raise InvalidInputError(f"Seats per booking must be between 1 and {max_seats}")

    event = await event_service.get_event(db, event_id)

    if event.starts_at <= datetime.now(timezone.utc):
        raise InvalidStateError("Cannot book tickets for past events")

    if await booking_ledger.find_confirmed(db, user_id, event_id):
        raise ConflictError("You already have a booking for this event")

    if event.available_seats < seats_booked:
        logger.warning(
            "booking_failed_no_seats",
            event_id=event_id,
            requested=seats_booked,
            available=event.available_seats,
        )
        raise InsufficientCapacityError(event.available_seats)

    total_amount = (Decimal(event.price) * seats_booked).quantize(Decimal("0.01"))

    # Nothing stays locked while the gateway call is in flight
    await db.commit()

    payment = await gateway.charge(total_amount, payment_details)
    if not payment.success:
        logger.warning("booking_payment_failed", event_id=event_id, user_id=user_id, error=payment.error)
        raise PaymentFailedError("Payment failed", error=payment.error)

    booking = Booking(
        user_id=user_id,
        event_id=event_id,
        seats_booked=seats_booked,
        total_amount=total_amount,
        status=BookingStatus.CONFIRMED.value,
        payment_id=payment.transaction_id,
        booking_reference=str(uuid.uuid4()),
        booking_date=utcnow(),
        booking_details=booking_details,
        payment_method=payment_details.get("method", "mock"),
        payment_status=PaymentStatus.COMPLETED.value,
        amount_paid=total_amount,
        paid_at=utcnow(),
    )
    db.add(booking)

    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        # Only a committed rival booking makes this a duplicate
        duplicate = await booking_ledger.find_confirmed(db, user_id, event_id) is not None
        event_exists = await event_service.get_available_seats(db, event_id) is not None
        await db.rollback()
        await _void_charge(gateway, payment, reason="duplicate_booking" if duplicate else "insert_failed")
        if duplicate:
            raise ConflictError("You already have a booking for this event")
        if not event_exists:
            raise NotFoundError("Event not found")
        logger.error("booking_insert_failed", user_id=user_id, event_id=event_id, error=str(exc.orig))
        raise InternalError("Booking could not be saved")

    if not await event_service.reserve_seats(db, event_id, seats_booked):
        await db.rollback()
        remaining = await event_service.get_available_seats(db, event_id)
        await db.rollback()
        await _void_charge(gateway, payment, reason="seats_taken")
        if remaining is None:
            raise NotFoundError("Event not found")
        logger.warning(
            "booking_failed_no_seats",
            event_id=event_id,
            requested=seats_booked,
            available=remaining,
            after_payment=True,
        )
        raise InsufficientCapacityError(remaining)

    await db.commit()

    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        event_id=event_id,
        seats=seats_booked,
        total_amount=str(total_amount),
        payment_id=payment.transaction_id,
    )
    return await booking_ledger.get_booking(db, booking.id), payment


async def _void_charge(gateway: PaymentGateway, payment: PaymentResult, reason: str) -> None:
    """Give the money back for a charge whose booking could not be written."""
    try:
        await gateway.refund(payment.transaction_id, payment.amount)
    except Exception as e:
        record_payment("void", success=False)
        logger.error("payment_void_failed", payment_id=payment.transaction_id, reason=reason, error=str(e))
        return
    record_payment("void", success=True)
    logger.info("payment_voided", payment_id=payment.transaction_id, reason=reason)


async def cancel_booking(
    db: AsyncSession,
    user_id: int,
    booking_id: int,
    refunds: Optional[RefundQueue] = None,
) -> Booking:
    """
    Cancel a confirmed booking at least CANCELLATION_WINDOW_HOURS before the
    event and release its seats back to the event.
    """
    try:
        booking = await _cancel_booking(db, user_id, booking_id, refunds or get_refund_queue())
    except BookingAPIError:
        record_cancellation("rejected")
        raise
    record_cancellation("success")
    return booking


async def _cancel_booking(db: AsyncSession, user_id: int, booking_id: int, refunds: RefundQueue) -> Booking:
    booking = await booking_ledger.get_user_booking(db, user_id, booking_id)

    if booking.status == BookingStatus.CANCELLED.value:
        raise InvalidStateError("Booking is already cancelled")
    if booking.status != BookingStatus.CONFIRMED.value:
        raise InvalidStateError(f"Cannot cancel a booking with status '{booking.status}'")

    if booking.event_id is None:
        raise NotFoundError("Event not found")
    event = await event_service.get_event(db, booking.event_id)

    window_hours = get_settings().CANCELLATION_WINDOW_HOURS
    hours_until_event = (event.starts_at - datetime.now(timezone.utc)).total_seconds() / 3600
    if hours_until_event < window_hours:
        raise InvalidStateError(
            f"Cannot cancel booking less than {window_hours} hours before the event"
        )

    event_id = event.id
    seats = booking.seats_booked
    payment_id = booking.payment_id
    amount = booking.total_amount

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == BookingStatus.CONFIRMED.value)
        .values(status=BookingStatus.CANCELLED.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise InvalidStateError("Booking is already cancelled")

    if not await event_service.release_seats(db, event_id, seats):
        await db.rollback()
        raise NotFoundError("Event not found")

    await db.commit()

    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        user_id=user_id,
        event_id=event_id,
        seats_restored=seats,
    )

    if payment_id:
        refunds.enqueue(RefundJob(booking_id=booking_id, payment_id=payment_id, amount=amount))

    return await booking_ledger.get_booking(db, booking_id)


async def get_user_booking(db: AsyncSession, user_id: int, booking_id: int) -> Booking:
    return await booking_ledger.get_user_booking(db, user_id, booking_id)
