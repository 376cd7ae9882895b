"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from event_management_platform.config import settings
from event_management_platform.api import api_router
from event_management_platform.database import init_database, close_database
from event_management_platform.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from event_management_platform.utils.logging_config import setup_logging

setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file="logs/event_management.log" if settings.environment == "production" else None,
    enable_json_logging=settings.enable_json_logging or settings.environment == "production",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Event Management Platform")
    await init_database()
    yield
    logger.info("Shutting down Event Management Platform")
    await close_database()


app = FastAPI(
    title="Event Management Platform API",
    description="""
    ## Event Management Platform

    Booking and capacity engine for an event management web application.

    ### Key Features

    * **Bookings**: One seat per booking, never more confirmed bookings than capacity
    * **Waitlist**: First come, first served promotion when a seat frees up
    * **Loyalty**: Points on every booking, tiers with ticket discounts
    * **Payouts**: Organiser payout requests reviewed by admins
    * **Moderation**: Suspension and role management for admins

    ### Authentication

    Send the JWT issued by the identity provider in the Authorization header:
    `Authorization: Bearer <access_token>`. The `sub` claim carries the user id.

    ### Error Handling

    ```json
    {
      "error": {
        "error_code": "EVENT_FULL",
        "message": "Event is fully booked.",
        "details": {"event_id": "...", "capacity": 100},
        "suggestions": ["Join the waitlist"]
      },
      "error_id": "...",
      "timestamp": "..."
    }
    ```

    ### Concurrency Safety

    Seat claims use optimistic locking on the event row. A client that loses
    the race for the last seat gets 400 `EVENT_FULL`; any other lost claim is
    answered with 409 `CONCURRENCY_CONFLICT` and may simply be retried.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "users", "description": "Loyalty balance of the current user"},
        {"name": "events", "description": "Event management and lifecycle operations"},
        {"name": "waitlist", "description": "Waitlists for fully booked events"},
        {"name": "bookings", "description": "Booking, cancellation and check-in"},
        {"name": "organizers", "description": "Organiser views and refunds"},
        {"name": "payouts", "description": "Organiser payout requests"},
        {"name": "admin", "description": "Moderation operations"},
        {"name": "notifications", "description": "In-app notifications"},
        {"name": "store", "description": "Products bought with loyalty points"},
        {"name": "health", "description": "System health endpoints"},
    ],
    lifespan=lifespan,
)

# Starlette runs middleware in reverse order of registration: CORS, then
# error mapping, then request logging closest to the routes.
app.add_middleware(
    LoggingMiddleware,
    log_requests=settings.enable_request_logging,
    log_responses=settings.enable_request_logging,
)
app.add_middleware(ErrorHandlerMiddleware, debug=settings.debug)

# Browsers refuse credentials with a wildcard origin, so debug mode drops them.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins,
    allow_credentials=False if settings.debug else settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers,
)

app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Root endpoint for API information."""
    return {
        "message": "Event Management Platform API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Basic health check endpoint for uptime monitoring."""
    return {"status": "healthy", "service": "event-management-platform"}
