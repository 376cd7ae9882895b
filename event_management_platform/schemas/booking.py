"""
Pydantic schemas for booking-related API requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus, PointsStatus


class BookingCreateRequest(BaseModel):
    """Schema for creating a new booking."""

    event_id: UUID = Field(..., description="ID of the event to book")


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: UUID
    user_id: UUID
    event_id: UUID
    status: BookingStatus
    booked_at: datetime
    points_earned: int
    points_status: PointsStatus
    amount_paid: Decimal
    check_in_token: str
    checked_in_at: Optional[datetime]
    is_checked_in: bool

    # Related data
    event_title: Optional[str] = None
    event_start_date: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int


class CheckInInfoResponse(BaseModel):
    """What a door scanner shows for a check-in token."""

    booking_id: UUID
    event_id: UUID
    event_title: str
    attendee_name: str
    status: BookingStatus
    is_checked_in: bool
    checked_in_at: Optional[datetime]

    model_config = {"from_attributes": True}
