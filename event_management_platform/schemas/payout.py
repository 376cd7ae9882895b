"""
Pydantic schemas for organiser payout requests.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.payout import PayoutStatus


class PayoutCreateRequest(BaseModel):
    """Amount and bank details are validated by the payout service."""

    amount: Decimal = Field(..., description="Requested amount")
    bank_details: str = Field(..., description="Where the money should go")


class PayoutProcessRequest(BaseModel):
    status: str = Field(..., description="approved or rejected")
    admin_notes: Optional[str] = Field(None, max_length=1000)


class PayoutResponse(BaseModel):
    id: UUID
    organizer_id: UUID
    amount: Decimal
    bank_details: str
    status: PayoutStatus
    admin_notes: Optional[str]
    requested_at: datetime
    processed_at: Optional[datetime]

    model_config = {"from_attributes": True}
