"""Celery task for the periodic hidden-keyword sweep."""

from __future__ import annotations

from app.config import get_settings
from app.db import db_manager
from app.infra.celery_app import celery_app
from app.infra.logging_config import get_logger
from app.services.moderation_service import MessageModerationService

logger = get_logger("moderation_task")


@celery_app.task(name="app.tasks.moderation_task.hide_messages_by_keywords_task")
def hide_messages_by_keywords_task() -> int:
    """
    Hide every visible message containing a configured HIDDEN_KEYWORDS entry.
    Returns the number hidden; does nothing when no keywords are configured.
    """
    keywords = get_settings().hidden_keyword_list
    if not keywords:
        logger.info("Keyword sweep skipped: no hidden keywords configured")
        return 0
    with db_manager.db_session() as db:
        _, hidden = MessageModerationService(db).hide_matching_keywords(keywords)
    return hidden
