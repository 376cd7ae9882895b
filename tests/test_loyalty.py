"""
Tests for loyalty tiers, pricing and balance changes.
"""

import uuid
from decimal import Decimal

import pytest

from event_management_platform.services.loyalty_service import (
    LoyaltyService,
    LoyaltyTier,
    discount_for,
    next_tier,
    points_for,
    price_for,
    tier_for,
)
from event_management_platform.utils.exceptions import (
    AuthorizationError,
    InsufficientPointsError,
    UserNotFoundError,
)
from event_management_platform.utils.permissions import Actor


@pytest.mark.parametrize(
    "points,tier",
    [
        (0, LoyaltyTier.STANDARD),
        (999, LoyaltyTier.STANDARD),
        (1_000, LoyaltyTier.BRONZE),
        (4_999, LoyaltyTier.BRONZE),
        (5_000, LoyaltyTier.SILVER),
        (15_000, LoyaltyTier.GOLD),
        (49_999, LoyaltyTier.GOLD),
        (50_000, LoyaltyTier.ELITE),
        (1_000_000, LoyaltyTier.ELITE),
    ],
)
def test_tier_thresholds(points, tier):
    assert tier_for(points) == tier


def test_discounts_per_tier():
    assert discount_for(LoyaltyTier.STANDARD) == Decimal("0")
    assert discount_for(LoyaltyTier.BRONZE) == Decimal("0.05")
    assert discount_for(LoyaltyTier.SILVER) == Decimal("0.10")
    assert discount_for(LoyaltyTier.GOLD) == Decimal("0.15")
    assert discount_for(LoyaltyTier.ELITE) == Decimal("0.20")


def test_next_tier():
    assert next_tier(0).tier == LoyaltyTier.BRONZE
    assert next_tier(1_200).tier == LoyaltyTier.SILVER
    assert next_tier(50_000) is None


def test_price_and_points_follow_the_tier():
    assert price_for(Decimal("100.00"), 0) == Decimal("100.00")
    assert points_for(Decimal("100.00"), 0) == 1000

    assert price_for(Decimal("100.00"), 1_000) == Decimal("95.00")
    assert points_for(Decimal("100.00"), 1_000) == 950

    assert price_for(Decimal("0.00"), 50_000) == Decimal("0.00")
    assert points_for(Decimal("0.00"), 50_000) == 0


def test_points_round_half_up():
    # 12.35 * 0.95 * 10 = 117.325
    assert points_for(Decimal("12.35"), 1_000) == 117
    # 0.05 * 10 = 0.5
    assert points_for(Decimal("0.05"), 0) == 1
    assert price_for(Decimal("12.35"), 1_000) == Decimal("11.73")


@pytest.mark.asyncio
async def test_earn_and_deduct_floor_at_zero(db_session, attendee):
    service = LoyaltyService(db_session)

    assert await service.earn(attendee.id, 300) == 300
    assert await service.deduct(attendee.id, 100) == 200
    assert await service.deduct(attendee.id, 500) == 0
    await db_session.commit()

    summary = await service.summary(attendee.id)
    assert summary.points == 0
    assert summary.tier == LoyaltyTier.STANDARD


@pytest.mark.asyncio
async def test_admin_adjustment(db_session, admin, make_user):
    user = await make_user(loyalty_points=900)
    service = LoyaltyService(db_session)

    summary = await service.adjust_admin(Actor.from_user(admin), user.id, 150)
    assert summary.points == 1_050
    assert summary.tier == LoyaltyTier.BRONZE
    assert summary.next_tier == LoyaltyTier.SILVER
    assert summary.points_to_next_tier == 3_950

    summary = await service.adjust_admin(Actor.from_user(admin), user.id, -5_000)
    assert summary.points == 0


@pytest.mark.asyncio
async def test_admin_adjustment_requires_admin(db_session, organizer, attendee):
    service = LoyaltyService(db_session)

    with pytest.raises(AuthorizationError):
        await service.adjust_admin(Actor.from_user(organizer), attendee.id, 100)


@pytest.mark.asyncio
async def test_admin_adjustment_unknown_user(db_session, admin):
    with pytest.raises(UserNotFoundError):
        await LoyaltyService(db_session).adjust_admin(Actor.from_user(admin), uuid.uuid4(), 100)


@pytest.mark.asyncio
async def test_redeem(db_session, make_user):
    user = await make_user(loyalty_points=500)
    service = LoyaltyService(db_session)

    assert await service.redeem(user.id, 200) == 300
    await db_session.commit()

    with pytest.raises(InsufficientPointsError) as exc_info:
        await service.redeem(user.id, 301)
    assert exc_info.value.details == {"balance": 300, "required": 301}

    assert (await service.summary(user.id)).points == 300
