"""Business logic services for the Event Management Platform."""

from .user_service import UserService
from .loyalty_service import LoyaltyService
from .capacity_ledger import CapacityLedger
from .booking_service import BookingService
from .waitlist_service import WaitlistService
from .payout_service import PayoutService
from .event_service import EventService
from .admin_service import AdminService
from .notification_service import NotificationService
from .store_service import StoreService

__all__ = [
    "UserService",
    "LoyaltyService",
    "CapacityLedger",
    "BookingService",
    "WaitlistService",
    "PayoutService",
    "EventService",
    "AdminService",
    "NotificationService",
    "StoreService",
]
