"""
Event API endpoints for event management and lifecycle operations.
"""

import logging
import math
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..messaging import DomainEventPublisher, get_event_publisher
from ..models.user import User
from ..schemas.event import (
    AnnouncementCreate,
    AnnouncementResponse,
    EventCreate,
    EventListResponse,
    EventPostpone,
    EventResponse,
    EventStatsResponse,
)
from ..services.event_service import EventDetails, EventService
from ..utils.clock import Clock, get_clock
from ..utils.dependencies import get_current_actor, get_optional_user
from ..utils.permissions import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    publisher: DomainEventPublisher = Depends(get_event_publisher),
) -> EventService:
    return EventService(db, clock, publisher)


def event_response(details: EventDetails) -> EventResponse:
    """Create an EventResponse from an event and its seat count."""
    event = details.event
    return EventResponse(
        id=event.id,
        organizer_id=event.organizer_id,
        title=event.title,
        description=event.description,
        location=event.location,
        start_date=event.start_date,
        end_date=event.end_date,
        postponed_from=event.postponed_from,
        capacity=event.capacity,
        price=event.price,
        status=event.status,
        is_suspended=event.is_suspended,
        version=event.version,
        created_at=event.created_at,
        updated_at=event.updated_at,
        confirmed_count=details.confirmed_count,
        remaining_seats=details.remaining_seats,
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    """
    Create a new event. Events start as drafts and must be published
    before they can be booked.
    """
    event = await service.create_event(actor, event_data)
    logger.info(f"Created event {event.id}: {event.title}")
    return event_response(EventDetails(event=event, confirmed_count=0))


@router.get("", response_model=EventListResponse)
async def list_events(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    service: EventService = Depends(get_event_service),
):
    """Bookable events ordered by start date."""
    events, total = await service.get_events(page=page, size=size)
    return EventListResponse(
        events=[event_response(details) for details in events],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total else 0,
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    service: EventService = Depends(get_event_service),
):
    actor = Actor.from_user(current_user) if current_user else None
    return event_response(await service.get_event(event_id, actor))


@router.post("/{event_id}/publish", response_model=EventResponse)
async def publish_event(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    await service.publish_event(actor, event_id)
    return event_response(await service.get_event(event_id, actor))


@router.post("/{event_id}/cancel", response_model=EventResponse)
async def cancel_event(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    """Cancel the event. Attendees are notified and may cancel their bookings at any time."""
    await service.cancel_event(actor, event_id)
    return event_response(await service.get_event(event_id, actor))


@router.post("/{event_id}/postpone", response_model=EventResponse)
async def postpone_event(
    event_id: UUID,
    data: EventPostpone,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    await service.postpone_event(actor, event_id, data)
    return event_response(await service.get_event(event_id, actor))


@router.post(
    "/{event_id}/announcements",
    response_model=AnnouncementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_announcement(
    event_id: UUID,
    data: AnnouncementCreate,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    announcement = await service.post_announcement(actor, event_id, data)
    return AnnouncementResponse.model_validate(announcement)


@router.get("/{event_id}/announcements", response_model=List[AnnouncementResponse])
async def list_announcements(
    event_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    service: EventService = Depends(get_event_service),
):
    actor = Actor.from_user(current_user) if current_user else None
    announcements = await service.list_announcements(event_id, actor)
    return [AnnouncementResponse.model_validate(a) for a in announcements]


@router.get("/{event_id}/stats", response_model=EventStatsResponse)
async def get_event_stats(
    event_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
):
    """Occupancy, revenue and waitlist length. Organiser or admin only."""
    stats = await service.get_event_stats(actor, event_id)
    return EventStatsResponse.model_validate(stats, from_attributes=True)
