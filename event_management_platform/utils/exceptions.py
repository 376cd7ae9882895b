"""
Domain errors raised by the services.

Every error carries an ``ErrorCode``; ``middleware.error_handler`` turns the
code into an HTTP status and ``to_dict`` into the response body.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"

    # 400: the request is well formed but the current state refuses it
    INVALID_STATE = "INVALID_STATE"
    EVENT_NOT_BOOKABLE = "EVENT_NOT_BOOKABLE"
    EVENT_FULL = "EVENT_FULL"
    EVENT_NOT_FULL = "EVENT_NOT_FULL"
    CANCELLATION_WINDOW_CLOSED = "CANCELLATION_WINDOW_CLOSED"
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"

    # 409
    CONFLICT = "CONFLICT"
    DUPLICATE_BOOKING = "DUPLICATE_BOOKING"
    ALREADY_ON_WAITLIST = "ALREADY_ON_WAITLIST"
    PENDING_PAYOUT_EXISTS = "PENDING_PAYOUT_EXISTS"
    PRODUCT_ALREADY_OWNED = "PRODUCT_ALREADY_OWNED"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"

    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


class PlatformError(Exception):
    """Base class; subclasses pick a default ``error_code``."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error_code": self.error_code.value, "message": self.message}
        if self.details:
            body["details"] = self.details
        if self.suggestions:
            body["suggestions"] = self.suggestions
        if self.retry_after:
            body["retry_after"] = self.retry_after
        return body


class ValidationError(PlatformError):
    """Input the HTTP layer accepted but the domain rejects (400)."""

    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        self.field_errors = field_errors or {}
        super().__init__(message, details={"field_errors": field_errors} if field_errors else None, **kwargs)


class AuthorizationError(PlatformError):
    error_code = ErrorCode.FORBIDDEN

    def __init__(self, message: str = "Access denied", required_permission: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            details={"required_permission": required_permission} if required_permission else None,
            **kwargs,
        )


# Not found


class NotFoundError(PlatformError):
    error_code = ErrorCode.NOT_FOUND

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        details = {"resource_type": resource_type, "resource_id": resource_id} if resource_type else None
        super().__init__(message, details=details, **kwargs)


class EventNotFoundError(NotFoundError):
    def __init__(self, event_id: str):
        super().__init__(f"Event {event_id} not found", "event", event_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found", "user", user_id)


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} not found", "booking", booking_id)


class WaitlistEntryNotFoundError(NotFoundError):
    def __init__(self, event_id: str):
        super().__init__("Not on waitlist.", "waitlist_entry", event_id)


class PayoutRequestNotFoundError(NotFoundError):
    def __init__(self, payout_id: str):
        super().__init__(f"Payout request {payout_id} not found", "payout_request", payout_id)


class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: str):
        super().__init__(f"Notification {notification_id} not found", "notification", notification_id)


class StoreProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        super().__init__("Product not found.", "store_product", product_id)


# State rules


class InvalidStateError(PlatformError):
    """The entity is not in a state that allows the operation."""

    error_code = ErrorCode.INVALID_STATE


class EventNotBookableError(InvalidStateError):
    """Draft, cancelled or suspended events take neither bookings nor waitlist entries."""

    error_code = ErrorCode.EVENT_NOT_BOOKABLE

    def __init__(self, message: str, event_id: Optional[str] = None, **kwargs):
        super().__init__(message, details={"event_id": event_id} if event_id else None, **kwargs)


class EventFullError(InvalidStateError):
    error_code = ErrorCode.EVENT_FULL

    def __init__(self, event_id: str, capacity: int):
        super().__init__(
            "Event is fully booked.",
            details={"event_id": event_id, "capacity": capacity},
            suggestions=["Join the waitlist"],
        )


class EventNotFullError(InvalidStateError):
    error_code = ErrorCode.EVENT_NOT_FULL

    def __init__(self, event_id: str, available: int):
        super().__init__(
            "Event still has available spots. Book directly.",
            details={"event_id": event_id, "available": available},
        )


class CancellationWindowClosedError(InvalidStateError):
    error_code = ErrorCode.CANCELLATION_WINDOW_CLOSED

    def __init__(self, window_days: int):
        super().__init__(
            f"Cancellations are only allowed up to {window_days} days before the event.",
            details={"window_days": window_days},
        )


class InsufficientPointsError(InvalidStateError):
    error_code = ErrorCode.INSUFFICIENT_POINTS

    def __init__(self, balance: int, required: int):
        super().__init__("Not enough loyalty points.", details={"balance": balance, "required": required})


# Conflicts


class ConflictError(PlatformError):
    """The request collides with state another request already created."""

    error_code = ErrorCode.CONFLICT


class DuplicateBookingError(ConflictError):
    error_code = ErrorCode.DUPLICATE_BOOKING

    def __init__(self, event_id: str):
        super().__init__("You already have a booking for this event.", details={"event_id": event_id})


class AlreadyOnWaitlistError(ConflictError):
    error_code = ErrorCode.ALREADY_ON_WAITLIST

    def __init__(self, event_id: str):
        super().__init__("Already on waitlist.", details={"event_id": event_id})


class PendingPayoutExistsError(ConflictError):
    error_code = ErrorCode.PENDING_PAYOUT_EXISTS

    def __init__(self, organizer_id: str):
        super().__init__("You already have a pending payout request.", details={"organizer_id": organizer_id})


class ProductAlreadyOwnedError(ConflictError):
    error_code = ErrorCode.PRODUCT_ALREADY_OWNED

    def __init__(self, product_id: str):
        super().__init__("You already own this item.", details={"product_id": product_id})


class ConcurrencyError(PlatformError):
    """Lost a race with another transaction; retrying may succeed."""

    error_code = ErrorCode.CONCURRENCY_CONFLICT

    def __init__(self, message: str, retry_after: int = 1, **kwargs):
        super().__init__(message, retry_after=retry_after, suggestions=["Retry the request"], **kwargs)


class OptimisticLockError(ConcurrencyError):
    """A version-guarded update matched no row."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} {resource_id} was modified by another transaction",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ExternalServiceError(PlatformError):
    error_code = ErrorCode.EXTERNAL_SERVICE_ERROR

    def __init__(self, service_name: str, message: str):
        super().__init__(f"{service_name} service error: {message}", details={"service_name": service_name})
