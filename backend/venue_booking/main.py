"""
Venue Booking API - Main Application Entry Point

Karaoke booth sessions, group tickets and occasions for the venues:
- Time-limited holds guarded by unique constraints, never by read-then-write
- Capacity-bounded ticket purchases through share links
- Payments behind a port, with refund compensation
"""

import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from venue_booking.core.config import get_settings
from venue_booking.core.errors import BookingError, booking_error_handler
from venue_booking.core.logging import setup_logging, get_logger
from venue_booking.core.metrics import metrics_endpoint
from venue_booking.api.router import api_router
from venue_booking.api.middleware import RequestLoggingMiddleware
from venue_booking.db.session import AsyncSessionLocal, engine
from venue_booking.services.cache_service import get_redis, close_redis, get_cache_stats
from venue_booking.services.maintenance_service import run_sweeper

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        payment_provider=settings.PAYMENT_PROVIDER,
    )

    if settings.REDIS_ENABLED and await get_redis() is None:
        logger.warning("redis_unavailable", message="Booth catalog served from the database")

    # Lazy expiry already keeps holds correct; the sweeper only frees claims sooner
    app.state.sweeper = None
    if settings.HOLD_SWEEP_INTERVAL_SECONDS > 0:
        app.state.sweeper = asyncio.create_task(
            run_sweeper(AsyncSessionLocal, settings.HOLD_SWEEP_INTERVAL_SECONDS)
        )

    yield

    if app.state.sweeper is not None:
        app.state.sweeper.cancel()
        try:
            await app.state.sweeper
        except asyncio.CancelledError:
            pass
    await close_redis()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Booth holds, ticket groups and occasions with concurrency-safe reservations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.PUBLIC_BASE_URL] if settings.ENVIRONMENT == "production" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
app.add_exception_handler(BookingError, booking_error_handler)
app.include_router(api_router)


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("database_unreachable", error=str(e))
        return "unreachable"
    return "connected"


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness for load balancers. Degraded when the database is unreachable."""
    database = await _database_status()
    sweeper = getattr(app.state, "sweeper", None)
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "cache": await get_cache_stats(),
        "hold_sweeper": "running" if sweeper is not None and not sweeper.done() else "off",
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
