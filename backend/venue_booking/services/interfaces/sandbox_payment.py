"""
Sandbox payment provider - no network, deterministic outcomes.
Mirrors the provider sandbox nonces so client builds can be pointed at it.
"""

import uuid

from venue_booking.services.interfaces.payment import PaymentDeclined, PaymentPort

OK_NONCE = "cnon:card-nonce-ok"
DECLINED_NONCE = "cnon:card-nonce-declined"


class SandboxPayments(PaymentPort):
    """
    Accepts OK_NONCE (and any other "cnon:" token), declines DECLINED_NONCE
    and anything that does not look like a nonce.

    Charges are remembered by idempotency key so a retried finalize returns
    the original payment id, and refunds are recorded for inspection.
    """

    def __init__(self):
        self.charges: dict[str, tuple[str, int]] = {}
        self.refunds: dict[str, int] = {}

    def tokenize(self, declined: bool = False) -> str:
        """Stand-in for the browser widget's tokenize() call."""
        return DECLINED_NONCE if declined else OK_NONCE

    async def charge(self, token: str, amount_cents: int, idempotency_key: str) -> str:
        if not token.startswith("cnon:") or token == DECLINED_NONCE:
            raise PaymentDeclined("Card declined")
        if amount_cents < 0:
            raise PaymentDeclined("Invalid amount")

        if idempotency_key in self.charges:
            return self.charges[idempotency_key][0]

        payment_id = f"sandbox-{uuid.uuid4().hex[:16]}"
        self.charges[idempotency_key] = (payment_id, amount_cents)
        return payment_id

    async def refund(self, payment_id: str, amount_cents: int) -> None:
        self.refunds[payment_id] = amount_cents
