"""Celery tasks for notification fan-out."""

from __future__ import annotations

from typing import Any

from app.db import db_manager
from app.infra.celery_app import celery_app
from app.infra.logging_config import get_logger
from app.schemas.push import NotificationEvent
from app.services.notification_service import NotificationDispatcher

logger = get_logger("notification_task")


@celery_app.task(name="app.tasks.notification_task.dispatch_notification_task")
def dispatch_notification_task(event_data: dict[str, Any]) -> int:
    """
    Deliver one serialized NotificationEvent. Returns the number of push
    deliveries that succeeded.
    """
    event = NotificationEvent.model_validate(event_data)
    with db_manager.db_session() as db:
        report = NotificationDispatcher.from_settings(db).notify(
            event, event.target_user_id
        )
    return report.delivered


class CeleryNotificationQueue:
    """Notifier that hands events to the worker instead of sending inline."""

    def notify(self, event: NotificationEvent, target_user_id: str) -> None:
        if event.target_user_id != target_user_id:
            event = event.model_copy(update={"target_user_id": target_user_id})
        dispatch_notification_task.delay(event.model_dump(mode="json"))
        logger.debug("Queued %s notification for %s", event.kind.value, target_user_id)
