"""
Celery application that carries domain events to the notification workers.
"""

from celery import Celery

from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "event_management_platform",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["event_management_platform.tasks.notification_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    enable_utc=True,
    timezone="UTC",
    task_time_limit=120,
    task_soft_time_limit=90,
    task_ignore_result=True,
    worker_prefetch_multiplier=1,
)
