"""
Signed link tokens and staff authentication.

Guest-list management links and group/occasion share links carry an opaque
token of the form ``bookingId.expiry.signature``:

- bookingId: integer primary key of the booking the link grants access to
- expiry: unix timestamp (seconds) after which the link stops working
- signature: urlsafe base64 HMAC-SHA256 over ``purpose:bookingId.expiry``

The purpose is mixed into the signature so a share link can never be replayed
as a guest-list management link, and vice versa.
"""

import base64
import hashlib
import hmac
import time

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from venue_booking.core.config import get_settings
from venue_booking.core.errors import InvalidLink

GUEST_LIST_PURPOSE = "guest_list"
SHARE_PURPOSE = "share"

security = HTTPBearer(auto_error=False)


def _sign(purpose: str, payload: str) -> str:
    key = get_settings().SECRET_KEY.encode()
    digest = hmac.new(key, f"{purpose}:{payload}".encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def create_link_token(booking_id: int, purpose: str, ttl_seconds: int, now: float | None = None) -> str:
    expiry = int((now if now is not None else time.time()) + ttl_seconds)
    payload = f"{booking_id}.{expiry}"
    return f"{payload}.{_sign(purpose, payload)}"


def verify_link_token(token: str, purpose: str, now: float | None = None) -> int:
    """Return the booking id a token grants access to, or raise InvalidLink."""
    parts = (token or "").split(".")
    if len(parts) != 3:
        raise InvalidLink()

    booking_id, expiry, signature = parts
    if not booking_id.isdigit() or not expiry.isdigit():
        raise InvalidLink()

    expected = _sign(purpose, f"{booking_id}.{expiry}")
    if not hmac.compare_digest(expected, signature):
        raise InvalidLink()

    if int(expiry) < (now if now is not None else time.time()):
        raise InvalidLink("This link has expired.")

    return int(booking_id)


def create_guest_list_token(booking_id: int) -> str:
    ttl = get_settings().GUEST_LIST_TOKEN_TTL_DAYS * 86400
    return create_link_token(booking_id, GUEST_LIST_PURPOSE, ttl)


def create_share_token(booking_id: int) -> str:
    ttl = get_settings().SHARE_TOKEN_TTL_DAYS * 86400
    return create_link_token(booking_id, SHARE_PURPOSE, ttl)


def verify_admin_token(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str:
    """Verify the staff bearer token used by venue management routes."""
    expected = get_settings().ADMIN_TOKEN
    if credentials is None or not hmac.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
