"""
Celery tasks fanning domain events out into in-app notifications.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .celery_app import celery_app
from ..database import create_database_engine, create_session_factory
from ..messaging import from_payload
from ..services.notification_service import NotificationService

logger = logging.getLogger(__name__)


async def dispatch_domain_event(
    payload: Dict[str, Any],
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """
    Record the notifications for one domain event payload.

    Without a session factory a short-lived engine is created, since every
    task runs on its own event loop.

    Returns:
        Number of notifications written
    """
    event = from_payload(payload)

    engine = None
    if session_factory is None:
        engine = create_database_engine()
        session_factory = create_session_factory(engine)

    try:
        async with session_factory() as session:
            return await NotificationService(session).record(event)
    finally:
        if engine is not None:
            await engine.dispose()


@celery_app.task(bind=True, name="dispatch_domain_event_task")
def dispatch_domain_event_task(self, payload: Dict[str, Any]):
    """
    Task to deliver a domain event to its recipients.

    Args:
        payload: The event as produced by ``DomainEvent.to_payload``
    """
    event_type = payload.get("event_type")

    async def _dispatch():
        try:
            logger.info(f"Dispatching {event_type} notifications")
            created = await dispatch_domain_event(payload)
            return {"event_type": event_type, "status": "sent", "notifications": created}
        except Exception as e:
            logger.error(f"Error dispatching {event_type} notifications: {e}")
            return {"event_type": event_type, "status": "error", "error": str(e)}

    # Run the async function
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_dispatch())
    finally:
        loop.close()
