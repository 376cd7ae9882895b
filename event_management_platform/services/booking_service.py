"""
Booking lifecycle: confirm, reactivate, cancel, refund and check-in.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from ..config import get_settings
from ..messaging import (
    BookingCancelled,
    BookingConfirmed,
    DomainEvent,
    DomainEventPublisher,
    WaitlistPromoted,
    get_event_publisher,
)
from ..models.booking import Booking, BookingStatus, PointsStatus
from ..models.event import Event
from ..models.user import User
from ..models.waitlist import WaitlistEntry
from ..utils.clock import Clock, as_utc, get_clock
from ..utils.exceptions import (
    AuthorizationError,
    BookingNotFoundError,
    CancellationWindowClosedError,
    ConflictError,
    DuplicateBookingError,
    EventNotFoundError,
    InvalidStateError,
    NotFoundError,
    UserNotFoundError,
)
from ..utils.logging_config import log_business_event
from ..utils.permissions import Actor, require_event_manager
from .capacity_ledger import CapacityLedger, ensure_can_confirm
from .loyalty_service import LoyaltyService, points_for, price_for

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    booking: Booking
    event: Event
    created: bool


@dataclass
class CheckInInfo:
    booking_id: UUID
    event_id: UUID
    event_title: str
    attendee_name: str
    status: BookingStatus
    is_checked_in: bool
    checked_in_at: Optional[datetime]


class BookingService:
    """Service for booking state transitions and their loyalty side effects."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[Clock] = None,
        publisher: Optional[DomainEventPublisher] = None,
    ):
        self.session = session
        self.clock = clock or get_clock()
        self.publisher = publisher or get_event_publisher()
        self.settings = get_settings()
        self.ledger = CapacityLedger(session)
        self.loyalty = LoyaltyService(session)

    async def create_booking(self, user_id: UUID, event_id: UUID) -> BookingResult:
        """
        Book one seat for a user.

        A previously cancelled booking for the same event is reactivated
        instead of inserting a second row.

        Args:
            user_id: ID of the attendee
            event_id: ID of the event to book

        Returns:
            The booking and whether a new row was created

        Raises:
            EventNotFoundError: When the event does not exist
            EventNotBookableError: When the event is suspended, draft or cancelled
            EventFullError: When no seats remain
            InvalidStateError: When the user is suspended
            DuplicateBookingError: When the user already holds a confirmed booking
            OptimisticLockError: When a concurrent booking won the seat claim
        """
        logger.info(f"Creating booking for user {user_id}, event {event_id}")

        event = await self._get_event(event_id)
        seen_version = event.version
        confirmed = await self.ledger.confirmed_count(event_id)
        ensure_can_confirm(event, confirmed)

        user = await self._get_user(user_id)
        if user.is_suspended:
            raise InvalidStateError("Your account is suspended.")

        rows = await self._user_bookings_for_event(user_id, event_id)
        if any(row.is_confirmed for row in rows):
            raise DuplicateBookingError(str(event_id))
        existing = rows[0] if rows else None

        # Booking directly takes the user out of the queue
        await self.session.execute(
            delete(WaitlistEntry).where(
                WaitlistEntry.user_id == user_id,
                WaitlistEntry.event_id == event_id,
            )
        )

        try:
            result = await self.confirm_seat(user, event, seen_version, existing)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Duplicate confirmed booking rejected for user {user_id}, event {event_id}: {e}")
            raise DuplicateBookingError(str(event_id))

        booking = result.booking
        log_business_event(
            "booking_reactivated" if not result.created else "booking_created",
            {
                "booking_id": str(booking.id),
                "event_id": str(event_id),
                "points_earned": booking.points_earned,
                "amount_paid": str(booking.amount_paid),
            },
            user_id=str(user_id),
        )
        self.publisher.publish([
            BookingConfirmed(
                booking_id=booking.id,
                user_id=user_id,
                event_id=event_id,
                points_earned=booking.points_earned,
                reactivated=not result.created,
            )
        ])
        return result

    async def confirm_seat(
        self,
        user: User,
        event: Event,
        seen_version: int,
        existing: Optional[Booking] = None,
    ) -> BookingResult:
        """
        Claim a seat and write the confirmed booking. Does not commit.

        The caller has already admitted the booking against a confirmed
        count read after ``seen_version``. Points and the amount paid are
        computed from the user's balance before this booking's points.
        """
        await self.ledger.claim_seat(event.id, seen_version, event.capacity)

        now = self.clock.now()
        points = points_for(event.price, user.loyalty_points)
        amount = price_for(event.price, user.loyalty_points)

        if existing is not None:
            booking = existing
            booking.status = BookingStatus.CONFIRMED
            booking.booked_at = now
            booking.points_earned = points
            booking.points_status = PointsStatus.AWARDED
            booking.amount_paid = amount
            booking.checked_in_at = None
            created = False
        else:
            booking = Booking(
                user_id=user.id,
                event_id=event.id,
                status=BookingStatus.CONFIRMED,
                booked_at=now,
                points_earned=points,
                points_status=PointsStatus.AWARDED,
                amount_paid=amount,
                check_in_token=secrets.token_urlsafe(32),
            )
            self.session.add(booking)
            created = True

        await self.session.flush()
        await self.loyalty.earn(user.id, points)
        return BookingResult(booking=booking, event=event, created=created)

    async def cancel_booking(self, actor: Actor, booking_id: UUID) -> Booking:
        """
        Cancel the caller's own booking.

        Raises:
            BookingNotFoundError: When the booking does not exist
            AuthorizationError: When the caller does not own the booking
            InvalidStateError: When the booking is already cancelled
            CancellationWindowClosedError: When the event starts too soon
        """
        booking = await self._get_booking(booking_id)
        if booking.user_id != actor.user_id:
            raise AuthorizationError("You can only cancel your own bookings.")
        if not booking.is_confirmed:
            raise InvalidStateError("Booking is already cancelled.")
        self._ensure_cancellation_window(booking.event)

        await self._cancel_and_commit([booking], by_organizer=False)
        return booking

    async def cancel_my_bookings_for_event(self, actor: Actor, event_id: UUID) -> int:
        """Cancel every confirmed booking the caller holds for an event."""
        event = await self._get_event(event_id)

        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event), selectinload(Booking.user))
            .where(
                Booking.user_id == actor.user_id,
                Booking.event_id == event_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
        )
        bookings = list(result.scalars().all())
        if not bookings:
            raise NotFoundError(
                "No active bookings found for this event.",
                resource_type="Booking",
                resource_id=str(event_id),
            )
        self._ensure_cancellation_window(event)

        await self._cancel_and_commit(bookings, by_organizer=False)
        return len(bookings)

    async def refund_booking(self, actor: Actor, event_id: UUID, booking_id: UUID) -> Booking:
        """
        Organiser-initiated cancellation. No cancellation window applies.

        Raises:
            EventNotFoundError: When the event does not exist
            AuthorizationError: When the caller does not manage the event
            BookingNotFoundError: When the booking does not exist for this event
            InvalidStateError: When the booking is already cancelled
        """
        event = await self._get_event(event_id)
        require_event_manager(actor, event.organizer_id)

        booking = await self._get_booking(booking_id)
        if booking.event_id != event.id:
            raise BookingNotFoundError(str(booking_id))
        if not booking.is_confirmed:
            raise InvalidStateError("Booking is already cancelled.")

        await self._cancel_and_commit([booking], by_organizer=True)

        log_business_event(
            "booking_refunded",
            {"booking_id": str(booking_id), "event_id": str(event_id)},
            user_id=str(actor.user_id),
        )
        return booking

    async def check_in(self, actor: Actor, booking_id: UUID) -> Booking:
        booking = await self._get_booking(booking_id)
        return await self._mark_checked_in(actor, booking)

    async def check_in_by_token(self, actor: Actor, token: str) -> Booking:
        booking = await self._get_booking_by_token(token)
        return await self._mark_checked_in(actor, booking)

    async def get_check_in_info(self, token: str) -> CheckInInfo:
        booking = await self._get_booking_by_token(token)
        return CheckInInfo(
            booking_id=booking.id,
            event_id=booking.event_id,
            event_title=booking.event.title,
            attendee_name=booking.user.full_name,
            status=booking.status,
            is_checked_in=booking.is_checked_in,
            checked_in_at=booking.checked_in_at,
        )

    async def list_user_bookings(self, user_id: UUID) -> List[Booking]:
        """Bookings of a user, newest first."""
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(Booking.user_id == user_id)
            .order_by(desc(Booking.booked_at))
        )
        return list(result.scalars().all())

    async def _cancel_and_commit(self, bookings: List[Booking], by_organizer: bool) -> None:
        events: List[DomainEvent] = []
        try:
            for booking in bookings:
                events.extend(await self._cancel(booking, by_organizer))
            await self.session.commit()
        except InvalidStateError:
            await self.session.rollback()
            raise
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Cancellation rolled back on constraint violation: {e}")
            raise ConflictError("The booking was changed concurrently. Please try again.")
        self.publisher.publish(events)

    async def _cancel(self, booking: Booking, by_organizer: bool) -> List[DomainEvent]:
        """Cancel a confirmed booking, reverse its points and promote the waitlist head."""
        from .waitlist_service import WaitlistService

        deducted = await self._release_seat(booking)

        logger.info(f"Booking {booking.id} cancelled, {deducted} points reversed")
        events: List[DomainEvent] = [
            BookingCancelled(
                booking_id=booking.id,
                user_id=booking.user_id,
                event_id=booking.event_id,
                points_deducted=deducted,
                by_organizer=by_organizer,
            )
        ]

        promotion = await WaitlistService(self.session, self.clock, self.publisher).promote_next(
            booking.event_id
        )
        if promotion is not None:
            events.append(
                WaitlistPromoted(
                    booking_id=promotion.booking.id,
                    user_id=promotion.user_id,
                    event_id=promotion.event_id,
                    points_earned=promotion.booking.points_earned,
                )
            )
        return events

    async def _release_seat(self, booking: Booking) -> int:
        """
        Move the row from Confirmed to Cancelled and take back its points.

        Both updates are guarded on the stored state, so when two requests
        cancel the same booking only the first one to write sees a row; the
        other gets InvalidStateError and must roll back.

        Returns:
            The number of points taken off the owner's balance
        """
        result = await self.session.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == BookingStatus.CONFIRMED)
            .values(status=BookingStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidStateError("Booking is already cancelled.")
        set_committed_value(booking, "status", BookingStatus.CANCELLED)

        reversed_points = (
            await self.session.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.points_status == PointsStatus.AWARDED)
                .values(points_status=PointsStatus.REVERSED)
                .returning(Booking.points_earned)
                .execution_options(synchronize_session=False)
            )
        ).scalar_one_or_none()
        if reversed_points is None:
            return 0

        set_committed_value(booking, "points_status", PointsStatus.REVERSED)
        await self.loyalty.deduct(booking.user_id, reversed_points)
        return reversed_points

    def _ensure_cancellation_window(self, event: Event) -> None:
        # Attendees may always cancel out of a cancelled event
        if event.is_cancelled:
            return
        window_days = self.settings.cancellation_window_days
        if as_utc(event.start_date) - self.clock.now() < timedelta(days=window_days):
            raise CancellationWindowClosedError(window_days)

    async def _mark_checked_in(self, actor: Actor, booking: Booking) -> Booking:
        require_event_manager(actor, booking.event.organizer_id)
        if not booking.is_confirmed:
            raise InvalidStateError("Cannot check in a cancelled booking.")
        if booking.is_checked_in:
            raise InvalidStateError("Already checked in.")

        booking.checked_in_at = self.clock.now()
        await self.session.commit()

        log_business_event(
            "booking_checked_in",
            {"booking_id": str(booking.id), "event_id": str(booking.event_id)},
            user_id=str(actor.user_id),
        )
        return booking

    async def _get_event(self, event_id: UUID) -> Event:
        result = await self.session.execute(
            select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    async def _get_user(self, user_id: UUID) -> User:
        result = await self.session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def _get_booking(self, booking_id: UUID) -> Booking:
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event), selectinload(Booking.user))
            .where(Booking.id == booking_id)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(str(booking_id))
        return booking

    async def _get_booking_by_token(self, token: str) -> Booking:
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event), selectinload(Booking.user))
            .where(Booking.check_in_token == token)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Invalid check-in token.", resource_type="Booking")
        return booking

    async def _user_bookings_for_event(self, user_id: UUID, event_id: UUID) -> List[Booking]:
        """All rows of a user for an event, most recent first."""
        result = await self.session.execute(
            select(Booking)
            .where(Booking.user_id == user_id, Booking.event_id == event_id)
            .order_by(desc(Booking.booked_at))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
