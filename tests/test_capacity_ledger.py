"""
Tests for admission control and seat claims.
"""

import pytest

from event_management_platform.models import Event, EventStatus
from event_management_platform.services.booking_service import BookingService
from event_management_platform.services.capacity_ledger import (
    CapacityLedger,
    admission_error,
    can_confirm,
)
from event_management_platform.utils.exceptions import (
    EventFullError,
    EventNotBookableError,
    OptimisticLockError,
)
from event_management_platform.utils.permissions import Actor


def event_with(status=EventStatus.PUBLISHED, is_suspended=False, capacity=2) -> Event:
    return Event(title="Test", status=status, is_suspended=is_suspended, capacity=capacity)


def test_suspension_is_reported_first():
    error = admission_error(event_with(status=EventStatus.DRAFT, is_suspended=True), 5)
    assert isinstance(error, EventNotBookableError)
    assert error.message == "This event is currently unavailable."


@pytest.mark.parametrize(
    "status,message",
    [
        (EventStatus.DRAFT, "Cannot book a draft event."),
        (EventStatus.CANCELLED, "Event has been cancelled."),
    ],
)
def test_unbookable_statuses(status, message):
    error = admission_error(event_with(status=status), 0)
    assert isinstance(error, EventNotBookableError)
    assert error.message == message


def test_status_checked_before_capacity():
    error = admission_error(event_with(status=EventStatus.CANCELLED, capacity=1), 1)
    assert isinstance(error, EventNotBookableError)


def test_capacity_limit():
    event = event_with(capacity=2)
    assert can_confirm(event, 0)
    assert can_confirm(event, 1)
    assert isinstance(admission_error(event, 2), EventFullError)
    assert not can_confirm(event_with(status=EventStatus.POSTPONED, capacity=2), 2)
    assert can_confirm(event_with(status=EventStatus.POSTPONED, capacity=2), 1)


@pytest.mark.asyncio
async def test_counts(db_session, clock, publisher, organizer, attendee, make_user, make_event):
    event = await make_event(organizer)
    bookings = BookingService(db_session, clock, publisher)
    ledger = CapacityLedger(db_session)

    first = await bookings.create_booking(attendee.id, event.id)
    await bookings.create_booking((await make_user()).id, event.id)
    await bookings.cancel_booking(Actor.from_user(attendee), first.booking.id)

    assert await ledger.confirmed_count(event.id) == 1
    assert await ledger.cancelled_count(event.id) == 1


@pytest.mark.asyncio
async def test_claim_with_stale_version_and_free_seats(db_session, organizer, make_event):
    event = await make_event(organizer, capacity=5)
    ledger = CapacityLedger(db_session)
    seen = event.version

    await ledger.claim_seat(event.id, seen, event.capacity)

    with pytest.raises(OptimisticLockError):
        await ledger.claim_seat(event.id, seen, event.capacity)


@pytest.mark.asyncio
async def test_claim_with_stale_version_on_full_event(db_session, clock, publisher, organizer, attendee, make_event):
    event = await make_event(organizer, capacity=1)
    seen = event.version

    await BookingService(db_session, clock, publisher).create_booking(attendee.id, event.id)

    with pytest.raises(EventFullError):
        await CapacityLedger(db_session).claim_seat(event.id, seen, event.capacity)
