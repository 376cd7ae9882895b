"""
User profile endpoints: loyalty balance.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.loyalty import LoyaltySummaryResponse
from ..services.loyalty_service import LoyaltyService, LoyaltySummary
from ..utils.dependencies import get_current_user

router = APIRouter(prefix="/users", tags=["users"])


def loyalty_response(summary: LoyaltySummary) -> LoyaltySummaryResponse:
    return LoyaltySummaryResponse(
        user_id=summary.user_id,
        points=summary.points,
        tier=summary.tier.value,
        discount=summary.discount,
        next_tier=summary.next_tier.value if summary.next_tier else None,
        points_to_next_tier=summary.points_to_next_tier,
    )


@router.get("/me/loyalty", response_model=LoyaltySummaryResponse)
async def get_my_loyalty(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current balance, tier and discount, plus the distance to the next tier."""
    return loyalty_response(await LoyaltyService(db).summary(current_user.id))
