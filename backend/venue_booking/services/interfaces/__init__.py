"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .payment import PaymentDeclined, PaymentPort
from .sandbox_payment import SandboxPayments

__all__ = ['PaymentDeclined', 'PaymentPort', 'SandboxPayments']
