"""
Tests for organiser payout requests.
"""

import asyncio
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from event_management_platform.models import PayoutRequest, PayoutStatus, UserRole
from event_management_platform.services.payout_service import PayoutService, parse_payout_status
from event_management_platform.utils.exceptions import (
    AuthorizationError,
    ConflictError,
    PayoutRequestNotFoundError,
    PendingPayoutExistsError,
    ValidationError,
)
from event_management_platform.utils.permissions import Actor


@pytest.fixture
def service(db_session, clock) -> PayoutService:
    return PayoutService(db_session, clock)


def test_parse_payout_status():
    assert parse_payout_status("Approved") == PayoutStatus.APPROVED
    assert parse_payout_status(" rejected ") == PayoutStatus.REJECTED
    assert parse_payout_status(PayoutStatus.PENDING) == PayoutStatus.PENDING
    with pytest.raises(ValidationError):
        parse_payout_status("paid")


@pytest.mark.asyncio
async def test_one_pending_request_per_organizer(service, admin, organizer):
    first = await service.create_request(Actor.from_user(organizer), Decimal("250.00"), "IBAN DE00 1234")
    assert first.status == PayoutStatus.PENDING
    assert first.amount == Decimal("250.00")

    with pytest.raises(PendingPayoutExistsError):
        await service.create_request(Actor.from_user(organizer), Decimal("10.00"), "IBAN DE00 1234")

    await service.process_request(Actor.from_user(admin), first.id, "approved", "Paid out")

    second = await service.create_request(Actor.from_user(organizer), Decimal("10.00"), "IBAN DE00 1234")
    assert second.status == PayoutStatus.PENDING


@pytest.mark.asyncio
async def test_create_request_validation(service, organizer, attendee):
    with pytest.raises(AuthorizationError):
        await service.create_request(Actor.from_user(attendee), Decimal("10.00"), "IBAN")

    with pytest.raises(ValidationError):
        await service.create_request(Actor.from_user(organizer), Decimal("0"), "IBAN")

    with pytest.raises(ValidationError):
        await service.create_request(Actor.from_user(organizer), Decimal("-5.00"), "IBAN")

    with pytest.raises(ValidationError):
        await service.create_request(Actor.from_user(organizer), Decimal("5.00"), "   ")


async def process_in_own_session(session_factory, clock, admin, payout_id, new_status):
    async with session_factory() as session:
        return await PayoutService(session, clock).process_request(Actor.from_user(admin), payout_id, new_status)


@pytest.mark.asyncio
async def test_racing_reviews_process_a_request_once(service, session_factory, clock, admin, organizer):
    payout = await service.create_request(Actor.from_user(organizer), Decimal("75.00"), "IBAN")

    results = await asyncio.gather(
        process_in_own_session(session_factory, clock, admin, payout.id, "approved"),
        process_in_own_session(session_factory, clock, admin, payout.id, "rejected"),
        return_exceptions=True,
    )

    processed = [r for r in results if not isinstance(r, BaseException)]
    failures = [r for r in results if isinstance(r, BaseException)]
    assert len(processed) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], ConflictError)

    async with session_factory() as session:
        stored = await session.scalar(select(PayoutRequest.status).where(PayoutRequest.id == payout.id))
    assert stored == processed[0].status


@pytest.mark.asyncio
async def test_process_request(service, clock, admin, organizer):
    payout = await service.create_request(Actor.from_user(organizer), Decimal("99.99"), "IBAN")

    processed = await service.process_request(Actor.from_user(admin), payout.id, "Rejected", "Wrong account")

    assert processed.status == PayoutStatus.REJECTED
    assert processed.admin_notes == "Wrong account"
    assert processed.processed_at is not None

    with pytest.raises(ConflictError, match="already rejected"):
        await service.process_request(Actor.from_user(admin), payout.id, "approved")


@pytest.mark.asyncio
async def test_process_request_errors(service, admin, organizer):
    payout = await service.create_request(Actor.from_user(organizer), Decimal("20.00"), "IBAN")

    with pytest.raises(AuthorizationError):
        await service.process_request(Actor.from_user(organizer), payout.id, "approved")

    with pytest.raises(ValidationError):
        await service.process_request(Actor.from_user(admin), payout.id, "pending")

    with pytest.raises(ValidationError):
        await service.process_request(Actor.from_user(admin), uuid.uuid4(), "paid")

    with pytest.raises(PayoutRequestNotFoundError):
        await service.process_request(Actor.from_user(admin), uuid.uuid4(), "approved")


@pytest.mark.asyncio
async def test_list_requests(service, clock, admin, organizer, make_user):
    other = await make_user(role=UserRole.ORGANIZER)

    first = await service.create_request(Actor.from_user(organizer), Decimal("10.00"), "IBAN A")
    clock.advance(minutes=1)
    second = await service.create_request(Actor.from_user(other), Decimal("20.00"), "IBAN B")
    await service.process_request(Actor.from_user(admin), first.id, "approved")

    all_requests = await service.list_requests(Actor.from_user(admin))
    assert [p.id for p in all_requests] == [second.id, first.id]

    pending = await service.list_requests(Actor.from_user(admin), "pending")
    assert [p.id for p in pending] == [second.id]

    mine = await service.list_for_organizer(organizer.id)
    assert [p.id for p in mine] == [first.id]

    with pytest.raises(AuthorizationError):
        await service.list_requests(Actor.from_user(organizer))
