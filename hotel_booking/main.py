# hotel_booking/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hotel_booking.config import ALLOWED_ORIGINS, ENVIRONMENT
from hotel_booking.logging_config import setup_logging
from hotel_booking.middleware import RequestIDMiddleware
from hotel_booking.routes.bookings import router as bookings_router
from hotel_booking.routes.cron import router as cron_router
from hotel_booking.routes.health import router as health_router
from hotel_booking.routes.metrics import router as metrics_router
from hotel_booking.routes.pricing import router as pricing_router
from hotel_booking.routes.rates import router as rates_router
from hotel_booking.routes.webhook import router as webhook_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Hotel Booking API",
    description="Stay pricing, soft holds and payment reconciliation for hotel bookings",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(pricing_router, tags=["Pricing"])
app.include_router(bookings_router, tags=["Bookings"])
app.include_router(rates_router, tags=["Rates"])
app.include_router(webhook_router, tags=["Webhooks"])
app.include_router(cron_router, tags=["Cron"])


@app.on_event("startup")
def startup_event() -> None:
    """Log application startup."""
    logger.info("application_started", environment=ENVIRONMENT)
