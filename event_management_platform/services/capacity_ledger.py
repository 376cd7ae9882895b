"""
Admission control: confirmed bookings against event capacity.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingStatus
from ..models.event import Event, EventStatus
from ..utils.exceptions import (
    EventFullError,
    EventNotBookableError,
    InvalidStateError,
    OptimisticLockError,
)

logger = logging.getLogger(__name__)

BOOKABLE_STATUSES = frozenset({EventStatus.PUBLISHED, EventStatus.POSTPONED})


def admission_error(event: Event, confirmed_count: int) -> Optional[InvalidStateError]:
    """Return the reason an event cannot take one more confirmed booking, if any."""
    event_id = str(event.id)
    if event.is_suspended:
        return EventNotBookableError("This event is currently unavailable.", event_id=event_id)
    if event.status == EventStatus.DRAFT:
        return EventNotBookableError("Cannot book a draft event.", event_id=event_id)
    if event.status == EventStatus.CANCELLED:
        return EventNotBookableError("Event has been cancelled.", event_id=event_id)
    if event.status not in BOOKABLE_STATUSES:
        return EventNotBookableError("Event is not open for booking.", event_id=event_id)
    if confirmed_count >= event.capacity:
        return EventFullError(event_id=event_id, capacity=event.capacity)
    return None


def can_confirm(event: Event, confirmed_count: int) -> bool:
    return admission_error(event, confirmed_count) is None


def ensure_can_confirm(event: Event, confirmed_count: int) -> None:
    error = admission_error(event, confirmed_count)
    if error is not None:
        raise error


class CapacityLedger:
    """Counts confirmed bookings and claims seats under an optimistic version check."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def confirmed_count(self, event_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(Booking.id)).where(
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
        )
        return result.scalar_one()

    async def cancelled_count(self, event_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(Booking.id)).where(
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CANCELLED,
            )
        )
        return result.scalar_one()

    async def claim_seat(self, event_id: UUID, seen_version: int, capacity: int) -> None:
        """
        Bump the event version if nobody else has since the caller read it.

        The caller must have admitted the booking against a count read after
        ``seen_version``. Any concurrent claim moves the version, so at most
        one of two racing claims can match.

        Raises:
            EventFullError: The claim lost and the event has filled up
            OptimisticLockError: The claim lost but seats remain
        """
        result = await self.session.execute(
            update(Event)
            .where(Event.id == event_id, Event.version == seen_version)
            .values(version=Event.version + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            confirmed = await self.confirmed_count(event_id)
            logger.info(
                f"Seat claim on event {event_id} lost at version {seen_version} "
                f"({confirmed}/{capacity} confirmed)"
            )
            if confirmed >= capacity:
                raise EventFullError(event_id=str(event_id), capacity=capacity)
            raise OptimisticLockError("Event", str(event_id))
