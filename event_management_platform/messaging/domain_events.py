"""
Domain events emitted by the booking engine.

Events are plain dataclasses so they can cross the Celery boundary as JSON
via ``to_payload`` / ``from_payload``.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, ClassVar, Dict, Type
from uuid import UUID


@dataclass(frozen=True)
class DomainEvent:
    event_type: ClassVar[str] = "domain_event"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"event_type": self.event_type}
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, UUID):
                value = str(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            payload[field.name] = value
        return payload


@dataclass(frozen=True)
class BookingConfirmed(DomainEvent):
    event_type: ClassVar[str] = "booking_confirmed"

    booking_id: UUID
    user_id: UUID
    event_id: UUID
    points_earned: int
    reactivated: bool = False


@dataclass(frozen=True)
class BookingCancelled(DomainEvent):
    event_type: ClassVar[str] = "booking_cancelled"

    booking_id: UUID
    user_id: UUID
    event_id: UUID
    points_deducted: int
    by_organizer: bool = False


@dataclass(frozen=True)
class WaitlistPromoted(DomainEvent):
    event_type: ClassVar[str] = "waitlist_promoted"

    booking_id: UUID
    user_id: UUID
    event_id: UUID
    points_earned: int


@dataclass(frozen=True)
class EventCancelled(DomainEvent):
    event_type: ClassVar[str] = "event_cancelled"

    event_id: UUID
    title: str


@dataclass(frozen=True)
class EventPostponed(DomainEvent):
    event_type: ClassVar[str] = "event_postponed"

    event_id: UUID
    title: str
    new_start_date: datetime


@dataclass(frozen=True)
class AnnouncementPosted(DomainEvent):
    event_type: ClassVar[str] = "announcement_posted"

    event_id: UUID
    announcement_id: UUID
    title: str
    body: str


EVENT_TYPES: Dict[str, Type[DomainEvent]] = {
    cls.event_type: cls
    for cls in (
        BookingConfirmed,
        BookingCancelled,
        WaitlistPromoted,
        EventCancelled,
        EventPostponed,
        AnnouncementPosted,
    )
}


def from_payload(payload: Dict[str, Any]) -> DomainEvent:
    """Rebuild a domain event from its JSON payload."""
    try:
        cls = EVENT_TYPES[payload["event_type"]]
    except KeyError:
        raise ValueError(f"Unknown domain event payload: {payload!r}")

    values = {}
    for field in fields(cls):
        if field.name not in payload:
            continue
        value = payload[field.name]
        if field.type is UUID and isinstance(value, str):
            value = UUID(value)
        elif field.type is datetime and isinstance(value, str):
            value = datetime.fromisoformat(value)
        values[field.name] = value
    return cls(**values)
