"""
Payment provider factory.
Configures which PaymentPort implementation the booking core talks to.
"""

from venue_booking.core.config import get_settings
from venue_booking.services.interfaces.payment import PaymentPort
from venue_booking.services.interfaces.sandbox_payment import SandboxPayments


def get_payment_strategy() -> PaymentPort:
    """
    Build the configured payment provider.

    Selected by the PAYMENT_PROVIDER env var. Only the sandbox ships with
    this service; real providers plug in here behind the same PaymentPort.
    """
    provider = get_settings().PAYMENT_PROVIDER

    if provider == "sandbox":
        return SandboxPayments()
    raise ValueError(f"Unknown PAYMENT_PROVIDER {provider!r}")


# Singleton instance
_payments: PaymentPort | None = None


def get_payments() -> PaymentPort:
    """Get payment provider singleton (FastAPI dependency)."""
    global _payments
    if _payments is None:
        _payments = get_payment_strategy()
    return _payments
