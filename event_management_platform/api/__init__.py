"""API endpoints for the Event Management Platform."""

from fastapi import APIRouter

from ..schemas.common import ErrorResponse
from .users import router as users_router
from .events import router as events_router
from .waitlist import router as waitlist_router
from .bookings import router as bookings_router
from .organizers import router as organizers_router
from .payouts import router as payouts_router
from .admin import router as admin_router
from .notifications import router as notifications_router
from .store import router as store_router

# Create main API router; every route may answer with the error envelope
api_router = APIRouter(
    prefix="/api/v1",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or state"},
        403: {"model": ErrorResponse, "description": "Not allowed"},
        404: {"model": ErrorResponse, "description": "Not found"},
        409: {"model": ErrorResponse, "description": "Conflict"},
    },
)

# Include all routers
api_router.include_router(users_router)
api_router.include_router(events_router)
api_router.include_router(waitlist_router)
api_router.include_router(bookings_router)
api_router.include_router(organizers_router)
api_router.include_router(payouts_router)
api_router.include_router(admin_router)
api_router.include_router(notifications_router)
api_router.include_router(store_router)

__all__ = ["api_router"]
