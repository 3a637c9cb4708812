"""
Refund bookkeeping queue.

Cancellation is the source of truth; refunding the charge and stamping the
booking's payment record happen afterwards, off the request path. Jobs go on
an in-process asyncio.Queue consumed by a background worker that the app
lifespan starts and stops. Each job runs in its own DB session, is retried a
bounded number of times, and ends as `completed`, `skipped` or `failed` in the
logs and in the `refund_jobs_total` counter. The gateway refund and the DB
stamp are separate steps: a retry never refunds a settled charge again, and
the stamp only applies to a cancelled, not yet refunded booking, so a
redelivered job is a no-op. Nothing here can fail a cancellation.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.config import get_settings
from booking_api.core.logging import get_logger
from booking_api.core.metrics import record_refund_job
from booking_api.db.base import utcnow
from booking_api.models.booking import Booking, BookingStatus, PaymentStatus
from booking_api.services.interfaces.payment import PaymentGateway
from booking_api.services.payment_service import get_payment_gateway

logger = get_logger(__name__)


class RefundError(Exception):
    """The gateway declined a refund."""


@dataclass(frozen=True)
class RefundJob:
    booking_id: int
    payment_id: str
    amount: Decimal


class RefundQueue:

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        gateway: Optional[PaymentGateway] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        maxsize: int = 0,
    ):
        settings = get_settings()
        self._session_factory = session_factory
        self._gateway = gateway
        self.max_attempts = max_attempts or settings.REFUND_MAX_ATTEMPTS
        self.retry_delay = settings.REFUND_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.running = False
        self.task: Optional[asyncio.Task] = None

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        if self._session_factory is None:
            from booking_api.db.session import AsyncSessionLocal
            self._session_factory = AsyncSessionLocal
        return self._session_factory

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway or get_payment_gateway()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, job: RefundJob) -> bool:
        """Queue a job without waiting. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            record_refund_job("dropped")
            logger.error("refund_dropped", booking_id=job.booking_id, payment_id=job.payment_id)
            return False
        record_refund_job("enqueued")
        logger.info("refund_enqueued", booking_id=job.booking_id, payment_id=job.payment_id)
        return True

    async def start(self) -> None:
        if self.running:
            logger.warning("refund_worker_already_running")
            return
        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info("refund_worker_started", max_attempts=self.max_attempts)

    async def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
        logger.info("refund_worker_stopped", pending=self.pending)

    async def join(self) -> None:
        """Wait until every queued job has been processed by the worker."""
        await self._queue.join()

    async def drain(self) -> int:
        """Process queued jobs inline (used when no worker is running)."""
        processed = 0
        while not self._queue.empty():
            job = self._queue.get_nowait()
            try:
                await self.process(job)
            finally:
                self._queue.task_done()
            processed += 1
        return processed

    async def _run(self) -> None:
        while self.running:
            job = await self._queue.get()
            try:
                await self.process(job)
            finally:
                self._queue.task_done()

    async def process(self, job: RefundJob) -> bool:
        """
        Refund the charge, then stamp the booking. The gateway is called at
        most once per job: once it has settled, retries only repeat the stamp.
        """
        refunded = False
        for attempt in range(1, self.max_attempts + 1):
            try:
                if not refunded:
                    if await self._already_refunded(job):
                        record_refund_job("skipped")
                        logger.info("refund_already_applied", booking_id=job.booking_id, payment_id=job.payment_id)
                        return True
                    await self._refund_charge(job)
                    refunded = True
                await self._stamp(job)
            except Exception as e:
                logger.warning(
                    "refund_attempt_failed",
                    booking_id=job.booking_id,
                    attempt=attempt,
                    gateway_refunded=refunded,
                    error=str(e),
                )
                if attempt < self.max_attempts:
                    record_refund_job("retried")
                    await asyncio.sleep(self.retry_delay)
                continue

            record_refund_job("completed")
            logger.info("refund_completed", booking_id=job.booking_id, payment_id=job.payment_id)
            return True

        record_refund_job("failed")
        logger.error(
            "refund_failed",
            booking_id=job.booking_id,
            payment_id=job.payment_id,
            attempts=self.max_attempts,
            gateway_refunded=refunded,
        )
        return False

    async def _already_refunded(self, job: RefundJob) -> bool:
        """A redelivered job finds the booking stamped and does nothing."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(Booking.payment_status).where(Booking.id == job.booking_id)
            )
            return result.scalar_one_or_none() == PaymentStatus.REFUNDED.value

    async def _refund_charge(self, job: RefundJob) -> None:
        result = await self.gateway.refund(job.payment_id, job.amount)
        if not result.success:
            raise RefundError(result.error or "Refund declined")

    async def _stamp(self, job: RefundJob) -> None:
        async with self.session_factory() as db:
            result = await db.execute(
                update(Booking)
                .where(
                    Booking.id == job.booking_id,
                    Booking.status == BookingStatus.CANCELLED.value,
                    Booking.payment_status != PaymentStatus.REFUNDED.value,
                )
                .values(payment_status=PaymentStatus.REFUNDED.value, refunded_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        if result.rowcount == 0:
            logger.warning("refund_stamp_skipped", booking_id=job.booking_id, payment_id=job.payment_id)


_refund_queue: Optional[RefundQueue] = None


def get_refund_queue() -> RefundQueue:
    """Get refund queue singleton. Overridable as a FastAPI dependency."""
    global _refund_queue
    if _refund_queue is None:
        _refund_queue = RefundQueue()
    return _refund_queue
