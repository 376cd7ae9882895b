"""
Event schemas for request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus
from ..models.event import EventStatus


class EventCreate(BaseModel):
    """
    Schema for creating a new event.

    Capacity, price and date ordering are checked by the event service so
    that they surface as 400 validation errors.
    """

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    description: Optional[str] = Field(None, description="Event description")
    location: str = Field(..., min_length=1, max_length=255, description="Event location")
    start_date: datetime = Field(..., description="Event start date and time")
    end_date: datetime = Field(..., description="Event end date and time")
    capacity: int = Field(..., description="Maximum number of confirmed bookings")
    price: Decimal = Field(default=Decimal("0.00"), description="Ticket price before discounts")


class EventPostpone(BaseModel):
    """Schema for moving an event to new dates."""

    new_start_date: datetime
    new_end_date: datetime


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)


class AnnouncementResponse(BaseModel):
    id: UUID
    event_id: UUID
    title: str
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EventResponse(BaseModel):
    """Schema for event response, including live availability."""

    id: UUID
    organizer_id: UUID
    title: str
    description: Optional[str]
    location: str
    start_date: datetime
    end_date: datetime
    postponed_from: Optional[datetime]
    capacity: int
    price: Decimal
    status: EventStatus
    is_suspended: bool
    version: int
    created_at: datetime
    updated_at: datetime
    confirmed_count: int
    remaining_seats: int


class EventListResponse(BaseModel):
    """Schema for paginated event list response."""

    events: List[EventResponse]
    total: int
    page: int
    size: int
    pages: int


class EventStatsResponse(BaseModel):
    event_id: UUID
    capacity: int
    confirmed_bookings: int
    cancelled_bookings: int
    remaining_seats: int
    occupancy_percentage: float
    revenue: Decimal
    waitlist_length: int
    checked_in: int


class AttendeeResponse(BaseModel):
    booking_id: UUID
    user_id: UUID
    full_name: str
    email: str
    status: BookingStatus
    booked_at: datetime
    amount_paid: Decimal
    is_checked_in: bool
    checked_in_at: Optional[datetime]
