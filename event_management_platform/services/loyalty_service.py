"""
Loyalty points, tiers and tier discounts.
"""

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models.user import User
from ..utils.exceptions import InsufficientPointsError, UserNotFoundError
from ..utils.logging_config import log_business_event
from ..utils.permissions import Actor, require_admin

logger = logging.getLogger(__name__)


class LoyaltyTier(str, enum.Enum):
    STANDARD = "Standard"
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    ELITE = "Elite"


@dataclass(frozen=True)
class TierRule:
    tier: LoyaltyTier
    min_points: int
    discount: Decimal


# Highest threshold first
TIER_TABLE = (
    TierRule(LoyaltyTier.ELITE, 50_000, Decimal("0.20")),
    TierRule(LoyaltyTier.GOLD, 15_000, Decimal("0.15")),
    TierRule(LoyaltyTier.SILVER, 5_000, Decimal("0.10")),
    TierRule(LoyaltyTier.BRONZE, 1_000, Decimal("0.05")),
    TierRule(LoyaltyTier.STANDARD, 0, Decimal("0.00")),
)

CENT = Decimal("0.01")


def tier_for(points: int) -> LoyaltyTier:
    for rule in TIER_TABLE:
        if points >= rule.min_points:
            return rule.tier
    return LoyaltyTier.STANDARD


def discount_for(tier: LoyaltyTier) -> Decimal:
    for rule in TIER_TABLE:
        if rule.tier == tier:
            return rule.discount
    raise ValueError(f"Unknown loyalty tier: {tier}")


def next_tier(points: int) -> Optional[TierRule]:
    """The next tier above the balance, or None at the top tier."""
    upcoming = None
    for rule in TIER_TABLE:
        if rule.min_points > points:
            upcoming = rule
    return upcoming


def effective_price(price: Decimal, points: int) -> Decimal:
    """Ticket price after the tier discount, unrounded."""
    return Decimal(price) * (Decimal("1") - discount_for(tier_for(points)))


def price_for(price: Decimal, points: int) -> Decimal:
    """Ticket price after the tier discount, rounded to cents."""
    return effective_price(price, points).quantize(CENT, rounding=ROUND_HALF_UP)


def points_for(price: Decimal, points: int) -> int:
    """
    Points earned for a booking: effective price times the earn rate,
    rounded half up to a whole point.
    """
    rate = get_settings().points_per_currency_unit
    earned = (effective_price(price, points) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, int(earned))


@dataclass
class LoyaltySummary:
    user_id: UUID
    points: int
    tier: LoyaltyTier
    discount: Decimal
    next_tier: Optional[LoyaltyTier]
    points_to_next_tier: Optional[int]


class LoyaltyService:
    """
    Point balance mutations.

    Balances are changed with single UPDATE statements so concurrent
    bookings by the same user cannot lose increments.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def earn(self, user_id: UUID, points: int) -> int:
        """Credit points and return the new balance."""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(loyalty_points=User.loyalty_points + points)
            .returning(User.loyalty_points)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one()

    async def deduct(self, user_id: UUID, points: int) -> int:
        """Remove points, flooring the balance at zero, and return the new balance."""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                loyalty_points=case(
                    (User.loyalty_points >= points, User.loyalty_points - points),
                    else_=0,
                )
            )
            .returning(User.loyalty_points)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one()

    async def adjust_admin(self, actor: Actor, user_id: UUID, delta: int) -> LoyaltySummary:
        """
        Apply an admin correction to a user's balance.

        Args:
            actor: The admin making the change
            user_id: Target user
            delta: Signed number of points; the balance never drops below zero

        Returns:
            Summary of the new balance

        Raises:
            AuthorizationError: When the actor is not an admin
            UserNotFoundError: When the user does not exist
        """
        require_admin(actor)
        await self._get_user(user_id)

        if delta >= 0:
            balance = await self.earn(user_id, delta)
        else:
            balance = await self.deduct(user_id, -delta)
        await self.session.commit()

        log_business_event(
            "loyalty_points_adjusted",
            {"target_user_id": str(user_id), "delta": delta, "balance": balance},
            user_id=str(actor.user_id),
        )
        return self._summarize(user_id, balance)

    async def redeem(self, user_id: UUID, cost: int) -> int:
        """
        Take ``cost`` points off the balance and return what is left. Does not commit.

        The balance check and the debit are one statement, so two redemptions
        racing for the same points cannot both pass.

        Raises:
            InsufficientPointsError: When the balance cannot cover the cost
        """
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id, User.loyalty_points >= cost)
            .values(loyalty_points=User.loyalty_points - cost)
            .returning(User.loyalty_points)
            .execution_options(synchronize_session=False)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            current = await self.session.scalar(select(User.loyalty_points).where(User.id == user_id))
            raise InsufficientPointsError(balance=current or 0, required=cost)
        return balance

    async def summary(self, user_id: UUID) -> LoyaltySummary:
        user = await self._get_user(user_id)
        return self._summarize(user.id, user.loyalty_points)

    async def _get_user(self, user_id: UUID) -> User:
        result = await self.session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    def _summarize(self, user_id: UUID, points: int) -> LoyaltySummary:
        tier = tier_for(points)
        upcoming = next_tier(points)
        return LoyaltySummary(
            user_id=user_id,
            points=points,
            tier=tier,
            discount=discount_for(tier),
            next_tier=upcoming.tier if upcoming else None,
            points_to_next_tier=upcoming.min_points - points if upcoming else None,
        )
