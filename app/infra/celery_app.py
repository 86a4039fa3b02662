"""Celery application for notification fan-out and scheduled jobs."""

from celery import Celery
from celery.schedules import crontab

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    settings.app_name,
    broker=settings.celery_broker_url,
    include=[
        "app.tasks.notification_task",
        "app.tasks.moderation_task",
        "app.tasks.digest_task",
    ],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_backend=None,
    task_ignore_result=True,
    task_acks_late=True,
    broker_connection_retry_on_startup=True,
    task_always_eager=settings.is_test,
    timezone=settings.digest_timezone,
    beat_schedule={
        "send-unmatched-digest": {
            "task": "app.tasks.digest_task.send_unmatched_digest_task",
            "schedule": crontab(minute=0, hour=settings.digest_hours),
        },
    },
)
