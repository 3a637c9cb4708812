"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .payment import PaymentGateway, PaymentResult

__all__ = ['PaymentGateway', 'PaymentResult']
