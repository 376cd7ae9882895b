"""
Per-event FIFO waitlist for fully booked events.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..messaging import DomainEventPublisher, get_event_publisher
from ..models.booking import Booking, BookingStatus
from ..models.event import Event, EventStatus
from ..models.user import User
from ..models.waitlist import WaitlistEntry
from ..utils.clock import Clock, get_clock
from ..utils.exceptions import (
    AlreadyOnWaitlistError,
    ConcurrencyError,
    DuplicateBookingError,
    EventFullError,
    EventNotBookableError,
    EventNotFoundError,
    EventNotFullError,
    WaitlistEntryNotFoundError,
)
from ..utils.logging_config import log_business_event
from ..utils.permissions import Actor, require_event_manager
from .capacity_ledger import CapacityLedger, can_confirm

logger = logging.getLogger(__name__)

QUEUE_ORDER = (WaitlistEntry.joined_at, WaitlistEntry.sequence, WaitlistEntry.id)


@dataclass
class WaitlistPosition:
    event_id: UUID
    user_id: UUID
    position: int
    joined_at: datetime


@dataclass
class WaitlistListing:
    position: int
    user_id: UUID
    full_name: str
    email: str
    joined_at: datetime


@dataclass
class PromotionResult:
    booking: Booking
    user_id: UUID
    event_id: UUID
    created: bool


class WaitlistService:
    """Service for joining, leaving and promoting from event waitlists."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[Clock] = None,
        publisher: Optional[DomainEventPublisher] = None,
    ):
        self.session = session
        self.clock = clock or get_clock()
        self.publisher = publisher or get_event_publisher()
        self.ledger = CapacityLedger(session)

    async def join(self, user_id: UUID, event_id: UUID) -> WaitlistPosition:
        """
        Add a user to the back of an event's waitlist.

        Only full events take a waitlist; otherwise the user should book.

        Raises:
            EventNotFoundError: When the event does not exist
            EventNotBookableError: When the event is suspended, cancelled or a draft
            EventNotFullError: When seats are still available
            DuplicateBookingError: When the user already holds a confirmed booking
            AlreadyOnWaitlistError: When the user is already queued
            ConcurrencyError: When a concurrent join took the same queue slot
        """
        event = await self._get_event(event_id)
        if event.is_suspended:
            raise EventNotBookableError("Event is unavailable.", event_id=str(event_id))
        if event.status == EventStatus.CANCELLED:
            raise EventNotBookableError("Event is cancelled.", event_id=str(event_id))
        if event.status == EventStatus.DRAFT:
            raise EventNotBookableError("Event is not published.", event_id=str(event_id))

        confirmed = await self.ledger.confirmed_count(event_id)
        if confirmed < event.capacity:
            raise EventNotFullError(str(event_id), available=event.capacity - confirmed)

        if await self._has_confirmed_booking(user_id, event_id):
            raise DuplicateBookingError(str(event_id))
        if await self._get_entry(user_id, event_id) is not None:
            raise AlreadyOnWaitlistError(str(event_id))

        last_sequence = await self.session.scalar(
            select(func.coalesce(func.max(WaitlistEntry.sequence), 0)).where(
                WaitlistEntry.event_id == event_id
            )
        )
        entry = WaitlistEntry(
            user_id=user_id,
            event_id=event_id,
            joined_at=self.clock.now(),
            sequence=last_sequence + 1,
        )
        self.session.add(entry)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Concurrent waitlist join for user {user_id}, event {event_id}: {e}")
            if await self._get_entry(user_id, event_id) is not None:
                raise AlreadyOnWaitlistError(str(event_id))
            raise ConcurrencyError("Another user joined the waitlist at the same moment. Please try again.")

        log_business_event("waitlist_joined", {"event_id": str(event_id)}, user_id=str(user_id))
        return await self.position(user_id, event_id)

    async def position(self, user_id: UUID, event_id: UUID) -> WaitlistPosition:
        entries = await self._ordered_entries(event_id)
        for index, entry in enumerate(entries):
            if entry.user_id == user_id:
                return WaitlistPosition(
                    event_id=event_id,
                    user_id=user_id,
                    position=index + 1,
                    joined_at=entry.joined_at,
                )
        raise WaitlistEntryNotFoundError(str(event_id))

    async def leave(self, user_id: UUID, event_id: UUID) -> None:
        entry = await self._get_entry(user_id, event_id)
        if entry is None:
            raise WaitlistEntryNotFoundError(str(event_id))

        await self.session.delete(entry)
        await self.session.commit()
        log_business_event("waitlist_left", {"event_id": str(event_id)}, user_id=str(user_id))

    async def list_for_event(self, actor: Actor, event_id: UUID) -> List[WaitlistListing]:
        """The queue with positions, for the event's organiser or an admin."""
        event = await self._get_event(event_id)
        require_event_manager(actor, event.organizer_id)

        result = await self.session.execute(
            select(WaitlistEntry, User)
            .join(User, User.id == WaitlistEntry.user_id)
            .where(WaitlistEntry.event_id == event_id)
            .order_by(*QUEUE_ORDER)
        )
        return [
            WaitlistListing(
                position=index + 1,
                user_id=user.id,
                full_name=user.full_name,
                email=user.email,
                joined_at=entry.joined_at,
            )
            for index, (entry, user) in enumerate(result.all())
        ]

    async def promote_next(self, event_id: UUID) -> Optional[PromotionResult]:
        """
        Give a freed seat to the first eligible user in the queue. Does not commit.

        Entries of suspended users and of users who already hold a confirmed
        booking are dropped on the way. A lost seat claim leaves the queue
        untouched.

        Returns:
            The promotion, or None when nothing was promoted
        """
        from .booking_service import BookingService

        event = await self._get_event(event_id)
        seen_version = event.version
        confirmed = await self.ledger.confirmed_count(event_id)
        if not can_confirm(event, confirmed):
            return None

        booking_service = BookingService(self.session, self.clock, self.publisher)

        while True:
            entries = await self._ordered_entries(event_id, limit=1)
            if not entries:
                return None
            entry = entries[0]
            user_id = entry.user_id

            user = await self.session.scalar(
                select(User).where(User.id == user_id).execution_options(populate_existing=True)
            )
            if user is None or user.is_suspended:
                logger.info(f"Dropping waitlist entry of unavailable user {user_id} for event {event_id}")
                await self._drop(entry)
                continue

            rows = await self._user_bookings_for_event(user_id, event_id)
            if any(row.is_confirmed for row in rows):
                logger.info(f"Dropping waitlist entry of already booked user {user_id} for event {event_id}")
                await self._drop(entry)
                continue

            try:
                result = await booking_service.confirm_seat(
                    user, event, seen_version, rows[0] if rows else None
                )
            except (EventFullError, ConcurrencyError) as e:
                logger.warning(f"Waitlist promotion for event {event_id} skipped: {e.message}")
                return None

            await self._drop(entry)
            log_business_event(
                "waitlist_promoted",
                {
                    "event_id": str(event_id),
                    "booking_id": str(result.booking.id),
                    "points_earned": result.booking.points_earned,
                },
                user_id=str(user_id),
            )
            return PromotionResult(
                booking=result.booking,
                user_id=user_id,
                event_id=event_id,
                created=result.created,
            )

    async def queue_length(self, event_id: UUID) -> int:
        return await self.session.scalar(
            select(func.count(WaitlistEntry.id)).where(WaitlistEntry.event_id == event_id)
        )

    async def _drop(self, entry: WaitlistEntry) -> None:
        await self.session.delete(entry)
        await self.session.flush()

    async def _ordered_entries(self, event_id: UUID, limit: Optional[int] = None) -> List[WaitlistEntry]:
        query = select(WaitlistEntry).where(WaitlistEntry.event_id == event_id).order_by(*QUEUE_ORDER)
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _get_entry(self, user_id: UUID, event_id: UUID) -> Optional[WaitlistEntry]:
        return await self.session.scalar(
            select(WaitlistEntry).where(
                WaitlistEntry.user_id == user_id,
                WaitlistEntry.event_id == event_id,
            )
        )

    async def _has_confirmed_booking(self, user_id: UUID, event_id: UUID) -> bool:
        booking_id = await self.session.scalar(
            select(Booking.id).where(
                Booking.user_id == user_id,
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
        )
        return booking_id is not None

    async def _user_bookings_for_event(self, user_id: UUID, event_id: UUID) -> List[Booking]:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.user_id == user_id, Booking.event_id == event_id)
            .order_by(Booking.booked_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _get_event(self, event_id: UUID) -> Event:
        event = await self.session.scalar(
            select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
        )
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event
