"""
Database models for the Event Management Platform.
"""

from .base import Base
from .user import User, UserRole
from .event import Event, EventStatus
from .booking import Booking, BookingStatus, PointsStatus
from .waitlist import WaitlistEntry
from .payout import PayoutRequest, PayoutStatus
from .notification import Notification, NotificationType, Announcement
from .store import StoreProduct, UserPurchase

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Event",
    "EventStatus",
    "Booking",
    "BookingStatus",
    "PointsStatus",
    "WaitlistEntry",
    "PayoutRequest",
    "PayoutStatus",
    "Notification",
    "NotificationType",
    "Announcement",
    "StoreProduct",
    "UserPurchase",
]
