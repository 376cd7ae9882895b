"""
Pydantic schemas for admin moderation endpoints.
"""

from pydantic import BaseModel, Field


class RoleChangeRequest(BaseModel):
    role: str = Field(..., description="attendee, organizer or admin")
