"""
Organiser dashboard endpoints: own events, attendees and refunds.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from ..schemas.event import AttendeeResponse, EventResponse
from ..services.booking_service import BookingService
from ..services.event_service import EventService
from ..utils.dependencies import get_current_actor
from ..utils.permissions import Actor
from .bookings import get_booking_service
from .events import event_response, get_event_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizers/me", tags=["organizers"])


@router.get("/events", response_model=List[EventResponse])
async def list_my_events(
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    return [event_response(details) for details in await service.get_organizer_events(actor)]


@router.get("/events/{event_id}/attendees", response_model=List[AttendeeResponse])
async def list_attendees(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    """Every booking of the event with its attendee, oldest first."""
    attendees = await service.get_attendees(actor, event_id)
    return [AttendeeResponse.model_validate(a, from_attributes=True) for a in attendees]


@router.delete("/events/{event_id}/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def refund_booking(
    event_id: UUID,
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """
    Cancel an attendee's booking on their behalf.

    No cancellation window applies. Points are reversed and the waitlist
    is promoted as for a regular cancellation.
    """
    await service.refund_booking(actor, event_id, booking_id)
    logger.info(f"Organizer {actor.user_id} refunded booking {booking_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
