"""
Payment gateway interface.
Lets the booking lifecycle run against the mock gateway or a real provider
without changing business logic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    amount: Decimal
    transaction_id: Optional[str] = None
    status: str = "failed"
    error: Optional[str] = None


class PaymentGateway(ABC):
    """
    Interface for payment providers.

    Implementations:
    - MockPaymentGateway: fixed latency, always settles non-negative amounts
    """

    @abstractmethod
    async def charge(self, amount: Decimal, details: Optional[dict] = None) -> PaymentResult:
        """
        Charge the customer.

        Returns:
            PaymentResult with success=True and a transaction id, or
            success=False and an error message. Never raises for a decline.
        """
        pass

    @abstractmethod
    async def refund(self, transaction_id: str, amount: Decimal) -> PaymentResult:
        """Refund (or void) a previous charge."""
        pass
