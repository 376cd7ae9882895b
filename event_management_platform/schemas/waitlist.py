"""
Pydantic schemas for waitlist-related API requests and responses.
"""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class WaitlistPositionResponse(BaseModel):
    """Schema for the caller's place in an event's queue."""

    event_id: UUID
    user_id: UUID
    position: int = Field(..., ge=1, description="1-based position in the queue")
    joined_at: datetime

    model_config = {"from_attributes": True}


class WaitlistEntryResponse(BaseModel):
    position: int
    user_id: UUID
    full_name: str
    email: str
    joined_at: datetime

    model_config = {"from_attributes": True}


class EventWaitlistResponse(BaseModel):
    event_id: UUID
    entries: List[WaitlistEntryResponse]
    total: int
