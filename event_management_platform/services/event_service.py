"""
Event service for managing events and their lifecycle.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..messaging import (
    AnnouncementPosted,
    DomainEventPublisher,
    EventCancelled,
    EventPostponed,
    get_event_publisher,
)
from ..models import Announcement, Booking, BookingStatus, Event, EventStatus, User
from ..models.waitlist import WaitlistEntry
from ..schemas.event import AnnouncementCreate, EventCreate, EventPostpone
from ..utils.clock import Clock, as_utc, get_clock
from ..utils.exceptions import EventNotFoundError, InvalidStateError, ValidationError
from ..utils.logging_config import log_business_event
from ..utils.permissions import (
    Actor,
    can_manage_event,
    require_admin,
    require_event_manager,
    require_organizer,
)
from .capacity_ledger import BOOKABLE_STATUSES, CapacityLedger

logger = logging.getLogger(__name__)


@dataclass
class EventDetails:
    event: Event
    confirmed_count: int

    @property
    def remaining_seats(self) -> int:
        return max(0, self.event.capacity - self.confirmed_count)


@dataclass
class EventStats:
    event_id: UUID
    capacity: int
    confirmed_bookings: int
    cancelled_bookings: int
    remaining_seats: int
    occupancy_percentage: float
    revenue: Decimal
    waitlist_length: int
    checked_in: int


@dataclass
class Attendee:
    booking_id: UUID
    user_id: UUID
    full_name: str
    email: str
    status: BookingStatus
    booked_at: datetime
    amount_paid: Decimal
    is_checked_in: bool
    checked_in_at: Optional[datetime]


def _confirmed_counts():
    return (
        select(Booking.event_id, func.count(Booking.id).label("confirmed"))
        .where(Booking.status == BookingStatus.CONFIRMED)
        .group_by(Booking.event_id)
        .subquery()
    )


class EventService:
    """Service class for event management operations."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Optional[Clock] = None,
        publisher: Optional[DomainEventPublisher] = None,
    ):
        """Initialize the event service with database session."""
        self.db = db
        self.clock = clock or get_clock()
        self.publisher = publisher or get_event_publisher()
        self.ledger = CapacityLedger(db)

    async def create_event(self, actor: Actor, event_data: EventCreate) -> Event:
        """
        Create a new event in Draft status owned by the caller.

        Raises:
            AuthorizationError: If the caller cannot organise events
            ValidationError: If event data is invalid
        """
        require_organizer(actor)

        field_errors = {}
        if event_data.capacity <= 0:
            field_errors["capacity"] = ["must be greater than zero"]
        if event_data.price < 0:
            field_errors["price"] = ["must not be negative"]
        if as_utc(event_data.end_date) < as_utc(event_data.start_date):
            field_errors["end_date"] = ["must not be before start_date"]
        if field_errors:
            raise ValidationError("Invalid event data.", field_errors=field_errors)

        event = Event(
            organizer_id=actor.user_id,
            title=event_data.title,
            description=event_data.description,
            location=event_data.location,
            start_date=event_data.start_date,
            end_date=event_data.end_date,
            capacity=event_data.capacity,
            price=event_data.price,
            status=EventStatus.DRAFT,
        )
        self.db.add(event)
        await self.db.commit()

        log_business_event(
            "event_created",
            {"event_id": str(event.id), "capacity": event.capacity},
            user_id=str(actor.user_id),
        )
        return event

    async def get_event(self, event_id: UUID, actor: Optional[Actor] = None) -> EventDetails:
        """
        Get an event with its live seat count.

        Drafts, suspended and cancelled events are only visible to their
        organiser and admins.
        """
        event = await self._get_event(event_id)
        if not self._is_public(event) and not (actor and can_manage_event(actor, event.organizer_id)):
            raise EventNotFoundError(str(event_id))
        return EventDetails(event=event, confirmed_count=await self.ledger.confirmed_count(event_id))

    async def get_events(self, page: int = 1, size: int = 20) -> Tuple[List[EventDetails], int]:
        """Bookable events ordered by start date, paginated."""
        conditions = (Event.status.in_(BOOKABLE_STATUSES), Event.is_suspended.is_(False))

        total = await self.db.scalar(select(func.count(Event.id)).where(*conditions))

        counts = _confirmed_counts()
        result = await self.db.execute(
            select(Event, func.coalesce(counts.c.confirmed, 0))
            .outerjoin(counts, counts.c.event_id == Event.id)
            .where(*conditions)
            .order_by(Event.start_date, Event.id)
            .offset((page - 1) * size)
            .limit(size)
        )
        return [EventDetails(event=event, confirmed_count=count) for event, count in result.all()], total

    async def get_organizer_events(self, actor: Actor) -> List[EventDetails]:
        """Every event the caller organises, in any status."""
        require_organizer(actor)

        counts = _confirmed_counts()
        result = await self.db.execute(
            select(Event, func.coalesce(counts.c.confirmed, 0))
            .outerjoin(counts, counts.c.event_id == Event.id)
            .where(Event.organizer_id == actor.user_id)
            .order_by(Event.start_date.desc())
        )
        return [EventDetails(event=event, confirmed_count=count) for event, count in result.all()]

    async def publish_event(self, actor: Actor, event_id: UUID) -> Event:
        event = await self._get_managed_event(actor, event_id)
        if event.status != EventStatus.DRAFT:
            raise InvalidStateError("Only Draft events can be published.")

        event.status = EventStatus.PUBLISHED
        await self.db.commit()
        log_business_event("event_published", {"event_id": str(event_id)}, user_id=str(actor.user_id))
        return event

    async def cancel_event(self, actor: Actor, event_id: UUID) -> Event:
        """
        Cancel an event. Attendees may then cancel their bookings at any time.

        The waitlist is cleared and an announcement is recorded; attendees are
        notified through the EventCancelled domain event.
        """
        event = await self._get_managed_event(actor, event_id)
        if event.is_cancelled:
            raise InvalidStateError("Event is already cancelled.")

        event.status = EventStatus.CANCELLED
        self.db.add(
            Announcement(
                event_id=event.id,
                title="Event Cancelled",
                message=f"{event.title} has been cancelled.",
            )
        )
        cleared = await self.db.execute(delete(WaitlistEntry).where(WaitlistEntry.event_id == event_id))
        await self.db.commit()

        log_business_event(
            "event_cancelled",
            {"event_id": str(event_id), "waitlist_cleared": cleared.rowcount},
            user_id=str(actor.user_id),
        )
        self.publisher.publish([EventCancelled(event_id=event.id, title=event.title)])
        return event

    async def postpone_event(self, actor: Actor, event_id: UUID, data: EventPostpone) -> Event:
        """
        Move an event to new dates. The original start date is kept in
        ``postponed_from`` across repeated postponements.
        """
        event = await self._get_managed_event(actor, event_id)
        if event.is_cancelled:
            raise InvalidStateError("Cannot postpone a cancelled event.")
        if event.status == EventStatus.DRAFT:
            raise InvalidStateError("Cannot postpone a draft event.")
        if as_utc(data.new_end_date) < as_utc(data.new_start_date):
            raise ValidationError(
                "Invalid event dates.",
                field_errors={"new_end_date": ["must not be before new_start_date"]}
            )

        if event.postponed_from is None:
            event.postponed_from = event.start_date
        event.start_date = data.new_start_date
        event.end_date = data.new_end_date
        event.status = EventStatus.POSTPONED
        self.db.add(
            Announcement(
                event_id=event.id,
                title="Event Postponed",
                message=f"{event.title} has been moved to {data.new_start_date.isoformat()}.",
            )
        )
        await self.db.commit()

        log_business_event(
            "event_postponed",
            {"event_id": str(event_id), "new_start_date": data.new_start_date.isoformat()},
            user_id=str(actor.user_id),
        )
        self.publisher.publish([
            EventPostponed(event_id=event.id, title=event.title, new_start_date=data.new_start_date)
        ])
        return event

    async def post_announcement(self, actor: Actor, event_id: UUID, data: AnnouncementCreate) -> Announcement:
        event = await self._get_managed_event(actor, event_id)

        announcement = Announcement(event_id=event.id, title=data.title, message=data.message)
        self.db.add(announcement)
        await self.db.commit()

        self.publisher.publish([
            AnnouncementPosted(
                event_id=event.id,
                announcement_id=announcement.id,
                title=announcement.title,
                body=announcement.message,
            )
        ])
        return announcement

    async def list_announcements(self, event_id: UUID, actor: Optional[Actor] = None) -> List[Announcement]:
        await self.get_event(event_id, actor)
        result = await self.db.execute(
            select(Announcement)
            .where(Announcement.event_id == event_id)
            .order_by(Announcement.created_at.desc())
        )
        return list(result.scalars().all())

    async def set_suspended(self, actor: Actor, event_id: UUID, suspended: bool) -> Event:
        """Suspend or reinstate an event. Admin only."""
        require_admin(actor)
        event = await self._get_event(event_id)

        event.is_suspended = suspended
        await self.db.commit()

        log_business_event(
            "event_suspended" if suspended else "event_unsuspended",
            {"event_id": str(event_id)},
            user_id=str(actor.user_id),
        )
        return event

    async def get_event_stats(self, actor: Actor, event_id: UUID) -> EventStats:
        from .waitlist_service import WaitlistService

        event = await self._get_managed_event(actor, event_id)
        confirmed = await self.ledger.confirmed_count(event_id)
        cancelled = await self.ledger.cancelled_count(event_id)

        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Booking.amount_paid), 0)).where(
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
        )
        checked_in = await self.db.scalar(
            select(func.count(Booking.id)).where(
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CONFIRMED,
                Booking.checked_in_at.is_not(None),
            )
        )
        waitlist_length = await WaitlistService(self.db, self.clock, self.publisher).queue_length(event_id)

        return EventStats(
            event_id=event.id,
            capacity=event.capacity,
            confirmed_bookings=confirmed,
            cancelled_bookings=cancelled,
            remaining_seats=max(0, event.capacity - confirmed),
            occupancy_percentage=round(confirmed / event.capacity * 100, 2),
            revenue=Decimal(revenue).quantize(Decimal("0.01")),
            waitlist_length=waitlist_length,
            checked_in=checked_in,
        )

    async def get_attendees(self, actor: Actor, event_id: UUID) -> List[Attendee]:
        """Every booking row of the event with its attendee, oldest first."""
        await self._get_managed_event(actor, event_id)

        result = await self.db.execute(
            select(Booking, User)
            .join(User, User.id == Booking.user_id)
            .where(Booking.event_id == event_id)
            .order_by(Booking.booked_at, Booking.id)
        )
        return [
            Attendee(
                booking_id=booking.id,
                user_id=user.id,
                full_name=user.full_name,
                email=user.email,
                status=booking.status,
                booked_at=booking.booked_at,
                amount_paid=booking.amount_paid,
                is_checked_in=booking.is_checked_in,
                checked_in_at=booking.checked_in_at,
            )
            for booking, user in result.all()
        ]

    @staticmethod
    def _is_public(event: Event) -> bool:
        return event.status in BOOKABLE_STATUSES and not event.is_suspended

    async def _get_managed_event(self, actor: Actor, event_id: UUID) -> Event:
        event = await self._get_event(event_id)
        require_event_manager(actor, event.organizer_id)
        return event

    async def _get_event(self, event_id: UUID) -> Event:
        event = await self.db.scalar(
            select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
        )
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event
