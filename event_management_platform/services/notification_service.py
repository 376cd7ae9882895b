"""
Notification service turning domain events into in-app notifications.
"""

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..messaging import (
    AnnouncementPosted,
    BookingCancelled,
    BookingConfirmed,
    DomainEvent,
    EventCancelled,
    EventPostponed,
    WaitlistPromoted,
)
from ..models.booking import Booking, BookingStatus
from ..models.event import Event
from ..models.notification import Notification, NotificationType
from ..utils.exceptions import NotificationNotFoundError

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for recording and reading user notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, event: DomainEvent) -> int:
        """
        Fan a domain event out into per-user notifications.

        Booking events notify the booking's owner; event-wide events notify
        every attendee holding a confirmed booking.

        Returns:
            Number of notifications written
        """
        notifications = await self._build(event)
        if not notifications:
            logger.info(f"No recipients for {event.event_type}")
            return 0

        self.session.add_all(notifications)
        await self.session.commit()
        logger.info(f"Recorded {len(notifications)} notifications for {event.event_type}")
        return len(notifications)

    async def list_for_user(self, user_id: UUID, unread_only: bool = False) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.session.execute(query.order_by(Notification.created_at.desc()))
        return list(result.scalars().all())

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> Notification:
        notification = await self.session.scalar(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        if notification is None:
            raise NotificationNotFoundError(str(notification_id))

        notification.is_read = True
        await self.session.commit()
        return notification

    async def _build(self, event: DomainEvent) -> List[Notification]:
        if isinstance(event, BookingConfirmed):
            title = await self._event_title(event.event_id)
            verb = "reactivated" if event.reactivated else "confirmed"
            return [
                Notification(
                    user_id=event.user_id,
                    event_id=event.event_id,
                    type=NotificationType.BOOKING_CONFIRMATION,
                    title="Booking Confirmed",
                    message=f"Your booking for {title} is {verb}. You earned {event.points_earned} points.",
                )
            ]

        if isinstance(event, BookingCancelled):
            title = await self._event_title(event.event_id)
            if event.by_organizer:
                message = f"The organizer cancelled your booking for {title}."
            else:
                message = f"Your booking for {title} has been cancelled."
            if event.points_deducted:
                message += f" {event.points_deducted} points were deducted."
            return [
                Notification(
                    user_id=event.user_id,
                    event_id=event.event_id,
                    type=NotificationType.BOOKING_CANCELLED,
                    title="Booking Cancelled",
                    message=message,
                )
            ]

        if isinstance(event, WaitlistPromoted):
            title = await self._event_title(event.event_id)
            return [
                Notification(
                    user_id=event.user_id,
                    event_id=event.event_id,
                    type=NotificationType.WAITLIST_PROMOTION,
                    title="Spot available, you're in!",
                    message=f"A seat opened up for {title} and your booking is confirmed.",
                )
            ]

        if isinstance(event, EventCancelled):
            return await self._for_attendees(
                event.event_id,
                NotificationType.EVENT_CANCELLED,
                "Event Cancelled",
                f"{event.title} has been cancelled. You can cancel your booking at any time.",
            )

        if isinstance(event, EventPostponed):
            return await self._for_attendees(
                event.event_id,
                NotificationType.EVENT_POSTPONED,
                "Event Postponed",
                f"{event.title} has been moved to {event.new_start_date.isoformat()}.",
            )

        if isinstance(event, AnnouncementPosted):
            return await self._for_attendees(
                event.event_id,
                NotificationType.ANNOUNCEMENT,
                event.title,
                event.body,
            )

        logger.warning(f"Unhandled domain event {event.event_type}")
        return []

    async def _for_attendees(
        self,
        event_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> List[Notification]:
        return [
            Notification(
                user_id=user_id,
                event_id=event_id,
                type=notification_type,
                title=title,
                message=message,
            )
            for user_id in await self._attendee_ids(event_id)
        ]

    async def _attendee_ids(self, event_id: UUID) -> Sequence[UUID]:
        result = await self.session.execute(
            select(Booking.user_id)
            .where(Booking.event_id == event_id, Booking.status == BookingStatus.CONFIRMED)
            .distinct()
        )
        return list(result.scalars().all())

    async def _event_title(self, event_id: UUID) -> str:
        title: Optional[str] = await self.session.scalar(select(Event.title).where(Event.id == event_id))
        return title or "the event"
