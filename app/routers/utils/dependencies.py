import secrets
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.content_filter import ContentFilter
from app.core.errors import Unauthorized
from app.db import get_db
from app.services.match_service import Notifier
from app.services.notification_service import NotificationDispatcher


def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """FastAPI dependency returning the caller's user id from the X-User-Id header."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise Unauthorized("X-User-Id header is required")
    return user_id


def require_admin(authorization: Optional[str] = Header(None)) -> None:
    """FastAPI dependency accepting only ``Authorization: Bearer <ADMIN_API_KEY>``."""
    expected = get_settings().admin_api_key
    scheme, _, token = (authorization or "").partition(" ")
    if (
        not expected
        or scheme.lower() != "bearer"
        or not secrets.compare_digest(token.strip(), expected)
    ):
        raise Unauthorized("Admin authorization required")


def get_content_filter() -> ContentFilter:
    return ContentFilter(get_settings().hidden_keyword_list)


def get_notifier(db: Session = Depends(get_db)) -> Notifier:
    """Inline dispatcher, or the Celery queue when NOTIFICATIONS_ASYNC is set."""
    if get_settings().notifications_async:
        from app.tasks.notification_task import CeleryNotificationQueue

        return CeleryNotificationQueue()
    return NotificationDispatcher.from_settings(db)
