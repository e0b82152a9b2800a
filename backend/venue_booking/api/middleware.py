"""
Per-request logging and correlation.

Every request gets an ID (the caller's X-Request-ID when present) bound to
structlog's context, so hold, payment and refund lines from one booking
attempt can be grepped together.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

from venue_booking.core.logging import get_logger

logger = get_logger(__name__)

# Probe endpoints hit by load balancers and Prometheus every few seconds
QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        path = request.url.path
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id, "method": request.method, "path": path}
        venue = request.query_params.get("venue")
        if venue:
            context["venue"] = venue
        structlog.contextvars.bind_contextvars(**context)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if path not in QUIET_PATHS:
            log = logger.warning if response.status_code >= 500 else logger.info
            log("request_completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response
