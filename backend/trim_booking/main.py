# backend/trim_booking/main.py
"""
ASGI application for the Trim booking engine.

Run with:
    uvicorn trim_booking.main:app --app-dir backend
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .core.request_context import attach_request_context_filter
from .database import Base, engine
from .errors import register_error_handlers
from .middleware.request_context_asgi import RequestContextMiddlewareASGI
from .middleware.tenant_asgi import TenantResolutionMiddlewareASGI
from .routes import health, prometheus
from .routes.v1 import availability as availability_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import payments as payments_v1

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] [%(tenant)s] %(message)s",
)
attach_request_context_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    if settings.environment == "development" and not settings.is_testing:
        # Local SQLite has no migration step
        Base.metadata.create_all(bind=engine)
        logger.info("Development schema ensured")

    if not settings.stripe_webhook_secret_value():
        logger.warning("Stripe webhook secret not configured; payment webhooks will be rejected")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    engine.dispose()


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

# Added last runs first: request context wraps tenant resolution
app.add_middleware(TenantResolutionMiddlewareASGI)
app.add_middleware(RequestContextMiddlewareASGI)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(payments_v1.router, prefix="/payments")
app.include_router(api_v1)

# Tenant-agnostic infrastructure routes
app.include_router(health.router)
app.include_router(prometheus.router)
