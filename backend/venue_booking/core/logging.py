"""
Structured logging configuration using structlog.

JSON lines in production, console output elsewhere. Request IDs bound by
RequestLoggingMiddleware appear on every line of a request. Customer
contact details and payment nonces never reach the log stream; see
redact_customer_fields.
"""

import logging
import sys
import structlog
from venue_booking.core.config import get_settings

# Keys that may carry guest PII or card nonces
REDACTED_KEYS = frozenset({"email", "phone", "payment_token", "date_of_birth", "guest_list_token"})


def redact_customer_fields(logger, method_name, event_dict):
    for key in REDACTED_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def setup_logging() -> None:
    settings = get_settings()
    production = settings.ENVIRONMENT == "production"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_customer_fields,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if production:
        processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if production
        else structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "development")
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            # uvicorn and alembic log through stdlib; give them the same shape
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
