"""
Mock payment gateway standing in for a real provider.

Every call awaits a fixed latency to simulate network I/O and is not
cancellable. The booking service calls it only after all non-monetary
preconditions pass and with no transaction open, so a caller-level retry has
no side effects.
"""

import asyncio
import uuid
from decimal import Decimal
from typing import Optional

from booking_api.core.config import get_settings
from booking_api.core.logging import get_logger
from booking_api.core.metrics import record_payment
from booking_api.services.interfaces.payment import PaymentGateway, PaymentResult

logger = get_logger(__name__)


class MockPaymentGateway(PaymentGateway):

    def __init__(self, latency_seconds: Optional[float] = None):
        if latency_seconds is None:
            latency_seconds = get_settings().PAYMENT_LATENCY_SECONDS
        self.latency_seconds = latency_seconds

    async def _simulate_network(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

    async def charge(self, amount: Decimal, details: Optional[dict] = None) -> PaymentResult:
        method = (details or {}).get("method", "mock")
        logger.info("payment_processing", amount=str(amount), method=method)

        if amount < 0:
            record_payment("charge", success=False)
            return PaymentResult(success=False, amount=amount, error="Invalid payment amount")

        if amount == 0:
            record_payment("charge", success=True)
            return PaymentResult(success=True, amount=amount, transaction_id=f"txn_{uuid.uuid4().hex}", status="completed")

        await self._simulate_network()

        result = PaymentResult(
            success=True,
            amount=amount,
            transaction_id=f"txn_{uuid.uuid4().hex}",
            status="completed",
        )
        record_payment("charge", success=True)
        logger.info("payment_completed", transaction_id=result.transaction_id, amount=str(amount))
        return result

    async def refund(self, transaction_id: str, amount: Decimal) -> PaymentResult:
        await self._simulate_network()
        record_payment("refund", success=True)
        logger.info("payment_refunded", transaction_id=transaction_id, amount=str(amount))
        return PaymentResult(
            success=True,
            amount=amount,
            transaction_id=transaction_id,
            status="refunded",
        )


_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """Get payment gateway singleton. Overridable as a FastAPI dependency."""
    global _gateway
    if _gateway is None:
        _gateway = MockPaymentGateway()
    return _gateway
