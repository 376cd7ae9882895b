"""Domain events and their delivery."""

from .domain_events import (
    DomainEvent,
    BookingConfirmed,
    BookingCancelled,
    WaitlistPromoted,
    EventCancelled,
    EventPostponed,
    AnnouncementPosted,
    from_payload,
)
from .publisher import (
    DomainEventPublisher,
    CeleryEventPublisher,
    RecordingEventPublisher,
    get_event_publisher,
)

__all__ = [
    "DomainEvent",
    "BookingConfirmed",
    "BookingCancelled",
    "WaitlistPromoted",
    "EventCancelled",
    "EventPostponed",
    "AnnouncementPosted",
    "from_payload",
    "DomainEventPublisher",
    "CeleryEventPublisher",
    "RecordingEventPublisher",
    "get_event_publisher",
]
