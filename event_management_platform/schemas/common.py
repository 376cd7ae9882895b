"""
Common schemas for API responses and error handling.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "error_code": "EVENT_FULL",
                        "message": "Event is fully booked.",
                        "details": {
                            "event_id": "123e4567-e89b-12d3-a456-426614174000",
                            "capacity": 100
                        },
                        "suggestions": ["Join the waitlist for this event"]
                    }
                },
                {
                    "error": {
                        "error_code": "CANCELLATION_WINDOW_CLOSED",
                        "message": "Cancellations are only allowed up to 7 days before the event.",
                        "details": {"window_days": 7}
                    }
                }
            ]
        }
    }

