"""
Tests for the FIFO waitlist and promotion on cancellation.
"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from event_management_platform.messaging import WaitlistPromoted
from event_management_platform.models import Booking, BookingStatus, EventStatus, User, UserRole, WaitlistEntry
from event_management_platform.services.booking_service import BookingService
from event_management_platform.services.waitlist_service import WaitlistService
from event_management_platform.utils.exceptions import (
    AlreadyOnWaitlistError,
    AuthorizationError,
    ConcurrencyError,
    DuplicateBookingError,
    EventNotBookableError,
    EventNotFullError,
    WaitlistEntryNotFoundError,
)
from event_management_platform.utils.permissions import Actor


@pytest.fixture
def bookings(db_session, clock, publisher) -> BookingService:
    return BookingService(db_session, clock, publisher)


@pytest.fixture
def waitlist(db_session, clock, publisher) -> WaitlistService:
    return WaitlistService(db_session, clock, publisher)


@pytest_asyncio.fixture
async def full_event(bookings, organizer, attendee, make_event):
    event = await make_event(organizer, capacity=1)
    await bookings.create_booking(attendee.id, event.id)
    return event


@pytest.mark.asyncio
async def test_join_requires_full_event(waitlist, organizer, attendee, make_event):
    event = await make_event(organizer, capacity=3)

    with pytest.raises(EventNotFullError):
        await waitlist.join(attendee.id, event.id)


@pytest.mark.asyncio
async def test_join_rejects_unbookable_events(waitlist, organizer, attendee, make_event):
    for status in (EventStatus.DRAFT, EventStatus.CANCELLED):
        event = await make_event(organizer, status=status)
        with pytest.raises(EventNotBookableError):
            await waitlist.join(attendee.id, event.id)


@pytest.mark.asyncio
async def test_join_positions_are_fifo(waitlist, clock, full_event, make_user):
    first = await make_user()
    second = await make_user()

    assert (await waitlist.join(first.id, full_event.id)).position == 1
    clock.advance(minutes=1)
    assert (await waitlist.join(second.id, full_event.id)).position == 2

    assert (await waitlist.position(second.id, full_event.id)).position == 2
    assert await waitlist.queue_length(full_event.id) == 2


@pytest.mark.asyncio
async def test_same_timestamp_ordered_by_arrival(waitlist, full_event, make_user):
    first = await make_user()
    second = await make_user()

    await waitlist.join(first.id, full_event.id)
    await waitlist.join(second.id, full_event.id)

    assert (await waitlist.position(first.id, full_event.id)).position == 1
    assert (await waitlist.position(second.id, full_event.id)).position == 2


@pytest.mark.asyncio
async def test_join_duplicates(waitlist, full_event, attendee, make_user):
    with pytest.raises(DuplicateBookingError):
        await waitlist.join(attendee.id, full_event.id)

    user = await make_user()
    await waitlist.join(user.id, full_event.id)
    with pytest.raises(AlreadyOnWaitlistError):
        await waitlist.join(user.id, full_event.id)


@pytest.mark.asyncio
async def test_leave(waitlist, clock, full_event, make_user):
    first = await make_user()
    second = await make_user()
    await waitlist.join(first.id, full_event.id)
    clock.advance(seconds=5)
    await waitlist.join(second.id, full_event.id)

    await waitlist.leave(first.id, full_event.id)

    assert (await waitlist.position(second.id, full_event.id)).position == 1
    with pytest.raises(WaitlistEntryNotFoundError):
        await waitlist.leave(first.id, full_event.id)
    with pytest.raises(WaitlistEntryNotFoundError):
        await waitlist.position(first.id, full_event.id)


@pytest.mark.asyncio
async def test_cancellation_promotes_queue_head(
    bookings, waitlist, db_session, clock, publisher, full_event, attendee, make_user
):
    first = await make_user()
    second = await make_user()
    await waitlist.join(first.id, full_event.id)
    clock.advance(minutes=1)
    await waitlist.join(second.id, full_event.id)

    own = await bookings.list_user_bookings(attendee.id)
    await bookings.cancel_booking(Actor.from_user(attendee), own[0].id)

    promoted = await db_session.scalar(
        select(Booking).where(Booking.user_id == first.id, Booking.event_id == full_event.id)
    )
    assert promoted.status == BookingStatus.CONFIRMED
    assert promoted.points_earned == 1000
    balance = await db_session.scalar(select(User.loyalty_points).where(User.id == first.id))
    assert balance == 1000

    with pytest.raises(WaitlistEntryNotFoundError):
        await waitlist.position(first.id, full_event.id)
    assert (await waitlist.position(second.id, full_event.id)).position == 1

    events = publisher.of_type(WaitlistPromoted)
    assert len(events) == 1
    assert events[0].user_id == first.id
    assert events[0].booking_id == promoted.id


@pytest.mark.asyncio
async def test_promotion_skips_suspended_users(
    bookings, waitlist, db_session, clock, full_event, attendee, make_user
):
    suspended = await make_user()
    next_in_line = await make_user()
    await waitlist.join(suspended.id, full_event.id)
    clock.advance(minutes=1)
    await waitlist.join(next_in_line.id, full_event.id)

    suspended.is_suspended = True
    await db_session.commit()

    own = await bookings.list_user_bookings(attendee.id)
    await bookings.cancel_booking(Actor.from_user(attendee), own[0].id)

    assert await waitlist.queue_length(full_event.id) == 0
    booked = await db_session.scalar(
        select(Booking.status).where(Booking.user_id == next_in_line.id, Booking.event_id == full_event.id)
    )
    assert booked == BookingStatus.CONFIRMED
    skipped = await db_session.scalar(
        select(Booking.id).where(Booking.user_id == suspended.id, Booking.event_id == full_event.id)
    )
    assert skipped is None


@pytest.mark.asyncio
async def test_no_promotion_with_empty_queue(bookings, waitlist, publisher, full_event, attendee):
    own = await bookings.list_user_bookings(attendee.id)
    await bookings.cancel_booking(Actor.from_user(attendee), own[0].id)

    assert publisher.of_type(WaitlistPromoted) == []
    assert await waitlist.promote_next(full_event.id) is None


@pytest.mark.asyncio
async def test_direct_booking_leaves_the_queue(bookings, waitlist, db_session, full_event, make_user):
    user = await make_user()
    await waitlist.join(user.id, full_event.id)

    full_event.capacity = 2
    await db_session.commit()

    result = await bookings.create_booking(user.id, full_event.id)
    assert result.booking.is_confirmed
    assert await waitlist.queue_length(full_event.id) == 0


@pytest.mark.asyncio
async def test_refund_promotes_queue_head(bookings, waitlist, publisher, organizer, full_event, attendee, make_user):
    user = await make_user()
    await waitlist.join(user.id, full_event.id)
    own = await bookings.list_user_bookings(attendee.id)

    await bookings.refund_booking(Actor.from_user(organizer), full_event.id, own[0].id)

    assert await waitlist.queue_length(full_event.id) == 0
    assert publisher.of_type(WaitlistPromoted)[0].user_id == user.id


@pytest.mark.asyncio
async def test_list_for_event(waitlist, clock, organizer, full_event, make_user):
    first = await make_user(full_name="First Person")
    second = await make_user(full_name="Second Person")
    await waitlist.join(first.id, full_event.id)
    clock.advance(minutes=1)
    await waitlist.join(second.id, full_event.id)

    listing = await waitlist.list_for_event(Actor.from_user(organizer), full_event.id)
    assert [(entry.position, entry.full_name) for entry in listing] == [
        (1, "First Person"),
        (2, "Second Person"),
    ]

    other = await make_user(role=UserRole.ORGANIZER)
    with pytest.raises(AuthorizationError):
        await waitlist.list_for_event(Actor.from_user(other), full_event.id)
    with pytest.raises(AuthorizationError):
        await waitlist.list_for_event(Actor.from_user(first), full_event.id)


@pytest.mark.asyncio
async def test_queue_slots_are_unique_per_event(db_session, clock, full_event, make_user):
    first = await make_user()
    second = await make_user()
    db_session.add(WaitlistEntry(user_id=first.id, event_id=full_event.id, joined_at=clock.now(), sequence=1))
    db_session.add(WaitlistEntry(user_id=second.id, event_id=full_event.id, joined_at=clock.now(), sequence=1))

    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


async def join_in_own_session(session_factory, clock, publisher, user_id, event_id):
    async with session_factory() as session:
        return await WaitlistService(session, clock, publisher).join(user_id, event_id)


@pytest.mark.asyncio
async def test_concurrent_joins_keep_distinct_slots(session_factory, clock, publisher, full_event, make_user):
    users = [await make_user() for _ in range(4)]

    results = await asyncio.gather(
        *(join_in_own_session(session_factory, clock, publisher, user.id, full_event.id) for user in users),
        return_exceptions=True,
    )

    joined = [r for r in results if not isinstance(r, BaseException)]
    assert joined
    for failure in (r for r in results if isinstance(r, BaseException)):
        assert isinstance(failure, ConcurrencyError)

    async with session_factory() as session:
        sequences = list(
            (await session.execute(
                select(WaitlistEntry.sequence).where(WaitlistEntry.event_id == full_event.id)
            )).scalars()
        )
    assert len(sequences) == len(joined)
    assert len(set(sequences)) == len(sequences)
