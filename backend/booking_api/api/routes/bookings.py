"""
Booking endpoints with concurrency-safe seat reservation.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.security import get_current_user_id, require_admin
from booking_api.db.session import get_db
from booking_api.models.user import User
from booking_api.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCreateData,
    BookingCancelData,
    BookingListData,
    BookingStatusStat,
    EventBookingsData,
    EventBrief,
    PaymentReceipt,
)
from booking_api.schemas.common import APIResponse, PageParams
from booking_api.services import booking_ledger, booking_service
from booking_api.services.booking_ledger import BookingFilters
from booking_api.services.cache_service import invalidate_event_cache
from booking_api.services.interfaces.payment import PaymentGateway
from booking_api.services.payment_service import get_payment_gateway
from booking_api.services.refund_queue import RefundQueue, get_refund_queue

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _booking_list(bookings, page: PageParams, total: int) -> BookingListData:
    return BookingListData(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        pagination=page.meta(total),
    )


@router.post("", response_model=APIResponse[BookingCreateData], status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Pay for and book seats for an event.

    The seat decrement is a conditional UPDATE, so concurrent requests for the
    last seats cannot oversell; the losers get 409 insufficient_capacity.
    """
    booking, payment = await booking_service.create_booking(
        db,
        user_id,
        booking_data.event_id,
        booking_data.seats_booked,
        booking_data.booking_details.model_dump(),
        booking_data.payment_details.model_dump(),
        gateway=gateway,
    )
    # available_seats changed
    await invalidate_event_cache()
    return APIResponse(
        message="Booking created successfully",
        data=BookingCreateData(
            booking=BookingResponse.model_validate(booking),
            payment=PaymentReceipt(
                transaction_id=payment.transaction_id,
                amount=float(payment.amount),
                status=payment.status,
            ),
        ),
    )


@router.get("/user", response_model=APIResponse[BookingListData])
async def list_user_bookings(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated user's bookings, newest first."""
    page_params = PageParams.from_query(page, limit)
    bookings, total = await booking_ledger.list_user_bookings(db, user_id, page_params, status_filter)
    return APIResponse(data=_booking_list(bookings, page_params, total))


@router.get("/admin/all", response_model=APIResponse[BookingListData])
async def list_all_bookings(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    event_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    page_params = PageParams.from_query(page, limit)
    filters = BookingFilters(status=status_filter, event_id=event_id, user_id=user_id)
    bookings, total = await booking_ledger.list_all_bookings(db, page_params, filters)
    return APIResponse(data=_booking_list(bookings, page_params, total))


@router.get("/admin/event/{event_id}", response_model=APIResponse[EventBookingsData])
async def event_bookings(
    event_id: int,
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Bookings for one event with per-status seat and revenue totals."""
    page_params = PageParams.from_query(page, limit)
    report = await booking_ledger.get_event_booking_stats(db, event_id, page_params, status_filter)
    return APIResponse(
        data=EventBookingsData(
            event=EventBrief.model_validate(report["event"]),
            bookings=[BookingResponse.model_validate(b) for b in report["bookings"]],
            stats=[BookingStatusStat(**row) for row in report["stats"]],
            pagination=report["pagination"],
        )
    )


@router.get("/{booking_id}", response_model=APIResponse[BookingResponse])
async def get_booking(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_user_booking(db, user_id, booking_id)
    return APIResponse(data=BookingResponse.model_validate(booking))


@router.patch("/{booking_id}/cancel", response_model=APIResponse[BookingCancelData])
async def cancel_booking(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    refunds: RefundQueue = Depends(get_refund_queue),
):
    """Cancel a booking and release seats back to the event."""
    booking = await booking_service.cancel_booking(db, user_id, booking_id, refunds=refunds)
    await invalidate_event_cache()
    return APIResponse(
        message="Booking cancelled successfully",
        data=BookingCancelData(booking=BookingResponse.model_validate(booking)),
    )
