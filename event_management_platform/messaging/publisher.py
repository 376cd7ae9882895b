"""
Delivery of domain events to the notification pipeline.
"""

import logging
from typing import List, Protocol, Sequence

from ..config import get_settings
from .domain_events import DomainEvent

logger = logging.getLogger(__name__)


class DomainEventPublisher(Protocol):
    def publish(self, events: Sequence[DomainEvent]) -> None:
        ...


class CeleryEventPublisher:
    """Queues one fan-out task per event. Called only after the commit."""

    def publish(self, events: Sequence[DomainEvent]) -> None:
        if not get_settings().notifications_enabled:
            return

        from ..tasks.notification_tasks import dispatch_domain_event_task

        for event in events:
            try:
                dispatch_domain_event_task.delay(event.to_payload())
                logger.info(f"Queued {event.event_type} notification fan-out")
            except Exception as e:
                # The state change is already committed; delivery is best effort
                logger.warning(f"Failed to queue {event.event_type} notification: {e}")


class RecordingEventPublisher:
    """Keeps published events in memory."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def publish(self, events: Sequence[DomainEvent]) -> None:
        self.events.extend(events)

    def of_type(self, event_class) -> List[DomainEvent]:
        return [event for event in self.events if isinstance(event, event_class)]


_default_publisher = CeleryEventPublisher()


def get_event_publisher() -> DomainEventPublisher:
    """FastAPI dependency returning the process-wide publisher."""
    return _default_publisher
