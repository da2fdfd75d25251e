# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .routes.v1 import (
    admin_commission as admin_commission_v1,
    booking_requests as booking_requests_v1,
    fee_breakdown as fee_breakdown_v1,
    film_reviews as film_reviews_v1,
    health as health_v1,
    internal as internal_v1,
    prometheus as prometheus_v1,
    webhooks_stripe as webhooks_stripe_v1,
)
from .services.stripe_service import configure_stripe

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment} (SITE_MODE={settings.site_mode})")

    if configure_stripe():
        logger.info("Stripe configured")
    else:
        logger.warning("Stripe secret key not set; payment endpoints will fail")
    if not settings.cron_secret:
        logger.warning("CRON_SECRET not set; the internal expiry endpoint rejects every call")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
# Register unified error envelope handlers
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT"],
    allow_headers=["*"],
)

# V1 API router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(booking_requests_v1.router, prefix="/booking-requests")
api_v1.include_router(film_reviews_v1.router, prefix="/film-reviews")
api_v1.include_router(fee_breakdown_v1.router)
api_v1.include_router(admin_commission_v1.router, prefix="/admin")
api_v1.include_router(webhooks_stripe_v1.router, prefix="/webhooks")
api_v1.include_router(internal_v1.router, prefix="/internal")

app.include_router(api_v1)

# Infrastructure routes (intentionally unversioned)
app.include_router(health_v1.router, prefix="/health")
app.include_router(prometheus_v1.router)
