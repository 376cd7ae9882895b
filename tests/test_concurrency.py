"""
Tests for racing bookings on the last seat.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select

from event_management_platform.models import Booking, BookingStatus, PointsStatus, User
from event_management_platform.services.booking_service import BookingService
from event_management_platform.services.capacity_ledger import CapacityLedger
from event_management_platform.utils.exceptions import ConcurrencyError, EventFullError, InvalidStateError
from event_management_platform.utils.permissions import Actor


async def book_in_own_session(session_factory, clock, publisher, user_id, event_id):
    async with session_factory() as session:
        return await BookingService(session, clock, publisher).create_booking(user_id, event_id)


@pytest.mark.asyncio
async def test_last_seat_goes_to_exactly_one_booking(
    session_factory, db_session, clock, publisher, organizer, make_user, make_event
):
    event = await make_event(organizer, capacity=1)
    first = await make_user()
    second = await make_user()

    results = await asyncio.gather(
        book_in_own_session(session_factory, clock, publisher, first.id, event.id),
        book_in_own_session(session_factory, clock, publisher, second.id, event.id),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, BaseException)]
    failures = [r for r in results if isinstance(r, BaseException)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], (EventFullError, ConcurrencyError))

    assert await CapacityLedger(db_session).confirmed_count(event.id) == 1


@pytest.mark.asyncio
async def test_parallel_bookings_never_exceed_capacity(
    session_factory, db_session, clock, publisher, organizer, make_user, make_event
):
    event = await make_event(organizer, capacity=3)
    users = [await make_user() for _ in range(6)]

    results = await asyncio.gather(
        *(book_in_own_session(session_factory, clock, publisher, user.id, event.id) for user in users),
        return_exceptions=True,
    )

    # Claims are optimistic: a loser may get 409 even while seats remain, and the
    # server never retries for it. Only the upper bound is guaranteed.
    successes = [r for r in results if not isinstance(r, BaseException)]
    assert 1 <= len(successes) <= 3
    for failure in (r for r in results if isinstance(r, BaseException)):
        assert isinstance(failure, (EventFullError, ConcurrencyError))

    assert await CapacityLedger(db_session).confirmed_count(event.id) == len(successes)


async def cancel_in_own_session(session_factory, clock, publisher, user, booking_id):
    async with session_factory() as session:
        return await BookingService(session, clock, publisher).cancel_booking(Actor.from_user(user), booking_id)


@pytest.mark.asyncio
async def test_concurrent_cancels_reverse_points_once(
    session_factory, db_session, clock, publisher, organizer, make_user, make_event
):
    event = await make_event(organizer, price=Decimal("100.00"))
    user = await make_user(loyalty_points=500)
    booked = await BookingService(db_session, clock, publisher).create_booking(user.id, event.id)
    assert booked.booking.points_earned == 1000

    results = await asyncio.gather(
        cancel_in_own_session(session_factory, clock, publisher, user, booked.booking.id),
        cancel_in_own_session(session_factory, clock, publisher, user, booked.booking.id),
        return_exceptions=True,
    )

    cancelled = [r for r in results if not isinstance(r, BaseException)]
    failures = [r for r in results if isinstance(r, BaseException)]
    assert len(cancelled) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InvalidStateError)

    async with session_factory() as session:
        balance = await session.scalar(select(User.loyalty_points).where(User.id == user.id))
        row = (await session.execute(select(Booking.status, Booking.points_status).where(Booking.id == booked.booking.id))).one()
    assert balance == 500
    assert row.status == BookingStatus.CANCELLED
    assert row.points_status == PointsStatus.REVERSED
