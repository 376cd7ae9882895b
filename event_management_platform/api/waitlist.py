"""
Waitlist API endpoints for managing event waitlists.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..messaging import DomainEventPublisher, get_event_publisher
from ..models.user import User
from ..schemas.waitlist import (
    EventWaitlistResponse,
    WaitlistEntryResponse,
    WaitlistPositionResponse,
)
from ..services.waitlist_service import WaitlistService
from ..utils.clock import Clock, get_clock
from ..utils.dependencies import get_current_actor, get_current_user
from ..utils.permissions import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["waitlist"])


def get_waitlist_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> WaitlistService:
    return WaitlistService(db, clock, publisher)


@router.post(
    "/{event_id}/waitlist",
    response_model=WaitlistPositionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_waitlist(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    """
    Join the waitlist for a fully booked event.

    Returns the caller's 1-based position in the queue.
    """
    position = await service.join(current_user.id, event_id)
    logger.info(f"User {current_user.id} joined waitlist for event {event_id} at {position.position}")
    return WaitlistPositionResponse.model_validate(position)


@router.delete("/{event_id}/waitlist", status_code=status.HTTP_204_NO_CONTENT)
async def leave_waitlist(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    await service.leave(current_user.id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{event_id}/waitlist/position", response_model=WaitlistPositionResponse)
async def get_waitlist_position(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    position = await service.position(current_user.id, event_id)
    return WaitlistPositionResponse.model_validate(position)


@router.get("/{event_id}/waitlist", response_model=EventWaitlistResponse)
async def get_event_waitlist(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: WaitlistService = Depends(get_waitlist_service),
):
    """The whole queue, for the event's organiser or an admin."""
    listings = await service.list_for_event(actor, event_id)
    return EventWaitlistResponse(
        event_id=event_id,
        entries=[WaitlistEntryResponse.model_validate(listing) for listing in listings],
        total=len(listings),
    )
