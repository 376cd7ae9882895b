"""
Pydantic schemas for loyalty balances and adjustments.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class LoyaltySummaryResponse(BaseModel):
    user_id: UUID
    points: int
    tier: str
    discount: Decimal = Field(..., description="Fraction taken off ticket prices")
    next_tier: Optional[str]
    points_to_next_tier: Optional[int]

    model_config = {"from_attributes": True}


class PointsAdjustmentRequest(BaseModel):
    """Signed correction applied by an admin."""

    points: int = Field(..., description="Points to add, or remove when negative")
