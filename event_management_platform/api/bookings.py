"""
FastAPI routes for booking management.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..messaging import DomainEventPublisher, get_event_publisher
from ..models.booking import Booking
from ..models.event import Event
from ..models.user import User
from ..schemas.booking import (
    BookingCreateRequest,
    BookingListResponse,
    BookingResponse,
    CheckInInfoResponse,
)
from ..services.booking_service import BookingService
from ..utils.clock import Clock, get_clock
from ..utils.dependencies import get_current_actor, get_current_user
from ..utils.permissions import Actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> BookingService:
    return BookingService(db, clock, publisher)


def _booking_response(booking: Booking, event: Optional[Event] = None) -> BookingResponse:
    """Create a BookingResponse from a booking model."""
    return BookingResponse(
        id=booking.id,
        user_id=booking.user_id,
        event_id=booking.event_id,
        status=booking.status,
        booked_at=booking.booked_at,
        points_earned=booking.points_earned,
        points_status=booking.points_status,
        amount_paid=booking.amount_paid,
        check_in_token=booking.check_in_token,
        checked_in_at=booking.checked_in_at,
        is_checked_in=booking.is_checked_in,
        event_title=event.title if event else None,
        event_start_date=event.start_date if event else None,
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreateRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """
    Book a seat at an event.

    Returns 201 for a new booking and 200 when a cancelled booking was
    reactivated. A full event answers 400; the waitlist is the next step.
    """
    result = await service.create_booking(current_user.id, booking_data.event_id)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return _booking_response(result.booking, result.event)


@router.get("/mine", response_model=BookingListResponse)
async def list_my_bookings(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings of the current user, newest first."""
    bookings = await service.list_user_bookings(current_user.id)
    return BookingListResponse(
        bookings=[_booking_response(booking, booking.event) for booking in bookings],
        total=len(bookings),
    )


@router.delete("/events/{event_id}/mine", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_my_bookings_for_event(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    cancelled = await service.cancel_my_bookings_for_event(actor, event_id)
    logger.info(f"User {actor.user_id} cancelled {cancelled} bookings for event {event_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/checkin/{token}", response_model=CheckInInfoResponse)
async def get_check_in_info(
    token: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    info = await service.get_check_in_info(token)
    return CheckInInfoResponse.model_validate(info)


@router.post("/checkin/{token}", status_code=status.HTTP_204_NO_CONTENT)
async def check_in_by_token(
    token: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Check an attendee in by the token on their ticket. Organiser or admin only."""
    await service.check_in_by_token(actor, token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """
    Cancel one of your bookings.

    Not allowed within the cancellation window before the event unless the
    event itself was cancelled. The points earned are taken back and the
    first eligible user on the waitlist gets the seat.
    """
    await service.cancel_booking(actor, booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{booking_id}/checkin", status_code=status.HTTP_204_NO_CONTENT)
async def check_in(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    await service.check_in(actor, booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
