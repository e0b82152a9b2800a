"""
Payment port interface.
The booking core only ever talks to a provider through this contract.
"""

from abc import ABC, abstractmethod


class PaymentDeclined(Exception):
    """The provider refused the charge or could not process it."""

    def __init__(self, message: str = "Payment was declined"):
        super().__init__(message)
        self.message = message


class PaymentPort(ABC):
    """
    Interface for payment providers.

    Card details never reach the server: the browser widget tokenizes the
    card and we receive an opaque single-use token.

    Implementations:
    - SandboxPayments: deterministic, in-process, for development and tests
    """

    @abstractmethod
    async def charge(self, token: str, amount_cents: int, idempotency_key: str) -> str:
        """
        Charge a tokenized card.

        Args:
            token: Opaque card token from the client-side widget
            amount_cents: Amount to charge
            idempotency_key: Same key, same charge; retries never double-charge

        Returns:
            Provider payment id

        Raises:
            PaymentDeclined: card refused or provider error
        """
        pass

    @abstractmethod
    async def refund(self, payment_id: str, amount_cents: int) -> None:
        """
        Refund a charge in full.

        Used as compensation when a charge succeeded but the booking it paid
        for could not be committed.
        """
        pass
