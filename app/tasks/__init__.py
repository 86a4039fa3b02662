# Import celery app first
from app.infra.celery_app import celery_app

# Initialize logging configuration for Celery workers
from app.infra.logging_config import LoggingConfig
from app.tasks.digest_task import send_unmatched_digest_task
from app.tasks.moderation_task import hide_messages_by_keywords_task
from app.tasks.notification_task import (
    CeleryNotificationQueue,
    dispatch_notification_task,
)

LoggingConfig()  # Initialize logging

__all__ = [
    "celery_app",
    "CeleryNotificationQueue",
    "dispatch_notification_task",
    "hide_messages_by_keywords_task",
    "send_unmatched_digest_task",
]
