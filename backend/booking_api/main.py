"""
Event Booking API - Main Application Entry Point

- Oversell-free seat reservation via conditional UPDATEs
- Mock payment step with no transaction held across it
- Background refund bookkeeping queue
- Admin reporting over the booking ledger
- Redis caching of event listings, structured logging, Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_api.api.middleware import RequestLoggingMiddleware
from booking_api.api.router import api_router
from booking_api.core.config import get_settings
from booking_api.core.exceptions import register_exception_handlers
from booking_api.core.logging import setup_logging, get_logger
from booking_api.core.metrics import metrics_endpoint
from booking_api.services.cache_service import get_redis, close_redis, get_cache_stats
from booking_api.services.refund_queue import get_refund_queue

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    refunds = get_refund_queue()
    await refunds.start()

    yield

    await refunds.stop()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event booking API with oversell-free seat reservation and admin reporting",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": await get_cache_stats(),
        "refund_queue": {"pending": get_refund_queue().pending},
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
